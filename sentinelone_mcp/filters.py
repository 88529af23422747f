"""Query-string filters for the REST list endpoints.

Each model field carries the console's parameter name as its alias
(``computerName__contains``, ``createdAt__gt`` ...). ``to_params`` drops
anything unset or empty so no blank ``siteIds=`` ever reaches the wire.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set)):
        parts = [str(v) for v in value if v is not None and str(v) != ""]
        return ",".join(parts) or None
    text = str(value)
    return text or None


class Filters(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True).items():
            serialized = _serialize(value)
            if serialized is not None:
                params[key] = serialized
        return params


class ScopeFilter(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    group_ids: Optional[List[str]] = Field(None, alias="groupIds")
    account_ids: Optional[List[str]] = Field(None, alias="accountIds")

    def to_body(self) -> Dict[str, List[str]]:
        """JSON-body form used by Deep Visibility: lists stay lists."""
        body: Dict[str, List[str]] = {}
        for key, value in self.model_dump(by_alias=True).items():
            if value:
                body[key] = list(value)
        return body


class ThreatFilters(Filters):
    computer_name: Optional[str] = Field(None, alias="computerName__contains")
    threat_name: Optional[str] = Field(None, alias="threatDetails__contains")
    mitigation_statuses: Optional[List[str]] = Field(None, alias="mitigationStatuses")
    classifications: Optional[List[str]] = None
    analyst_verdicts: Optional[List[str]] = Field(None, alias="analystVerdicts")
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    group_ids: Optional[List[str]] = Field(None, alias="groupIds")
    resolved: Optional[bool] = None


class AgentFilters(Filters):
    computer_name: Optional[str] = Field(None, alias="computerName__contains")
    os_types: Optional[List[str]] = Field(None, alias="osTypes")
    is_active: Optional[bool] = Field(None, alias="isActive")
    is_infected: Optional[bool] = Field(None, alias="isInfected")
    network_statuses: Optional[List[str]] = Field(None, alias="networkStatuses")
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    group_ids: Optional[List[str]] = Field(None, alias="groupIds")


class SiteFilters(Filters):
    name_contains: Optional[List[str]] = Field(None, alias="name__contains")
    query: Optional[str] = None
    state: Optional[str] = None
    site_type: Optional[str] = Field(None, alias="siteType")
    sku: Optional[str] = None
    account_ids: Optional[List[str]] = Field(None, alias="accountIds")
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    sort_by: Optional[str] = Field(None, alias="sortBy")
    sort_order: Optional[str] = Field(None, alias="sortOrder")


class ActivityFilters(Filters):
    activity_types: Optional[List[int]] = Field(None, alias="activityTypes")
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    account_ids: Optional[List[str]] = Field(None, alias="accountIds")
    agent_ids: Optional[List[str]] = Field(None, alias="agentIds")
    threat_ids: Optional[List[str]] = Field(None, alias="threatIds")
    created_after: Optional[str] = Field(None, alias="createdAt__gt")
    created_before: Optional[str] = Field(None, alias="createdAt__lt")
    sort_by: Optional[str] = Field(None, alias="sortBy")
    sort_order: Optional[str] = Field(None, alias="sortOrder")


class ExclusionFilters(Filters):
    type: Optional[str] = None
    os_types: Optional[List[str]] = Field(None, alias="osTypes")
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    query: Optional[str] = None
    value_contains: Optional[str] = Field(None, alias="value__contains")


class GroupFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    type: Optional[str] = None
    query: Optional[str] = None
    name: Optional[str] = None


class AppRiskFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    account_ids: Optional[List[str]] = Field(None, alias="accountIds")
    severities: Optional[List[str]] = None
    cve_id_contains: Optional[str] = Field(None, alias="cveId__contains")
    application_names: Optional[List[str]] = Field(None, alias="applicationNames")
    exploited_in_the_wild: Optional[bool] = Field(None, alias="exploitedInTheWild")
    mitigation_status: Optional[str] = Field(None, alias="mitigationStatus")
    sort_by: Optional[str] = Field(None, alias="sortBy")
    sort_order: Optional[str] = Field(None, alias="sortOrder")


class AppInventoryFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    name_contains: Optional[str] = Field(None, alias="name__contains")
    vendor_contains: Optional[str] = Field(None, alias="vendor__contains")
    os_types: Optional[List[str]] = Field(None, alias="osTypes")


class TagFilters(Filters):
    type: str
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    query: Optional[str] = None
    name_contains: Optional[str] = Field(None, alias="name__contains")


class DeviceControlFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    interfaces: Optional[List[str]] = Field(None, alias="serviceClasses")
    event_types: Optional[List[str]] = Field(None, alias="eventTypes")
    agent_ids: Optional[List[str]] = Field(None, alias="agentIds")
    event_time_after: Optional[str] = Field(None, alias="eventTime__gt")
    event_time_before: Optional[str] = Field(None, alias="eventTime__lt")
    query: Optional[str] = None


class RangerFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    managed_states: Optional[List[str]] = Field(None, alias="managedStates")
    device_types: Optional[List[str]] = Field(None, alias="deviceTypes")
    os_types: Optional[List[str]] = Field(None, alias="osTypes")
    query: Optional[str] = None
    local_ip_contains: Optional[str] = Field(None, alias="localIp__contains")
    mac_address_contains: Optional[str] = Field(None, alias="macAddress__contains")
    hostnames_contains: Optional[str] = Field(None, alias="hostnames__contains")
    first_seen_after: Optional[str] = Field(None, alias="firstSeen__gt")
    last_seen_after: Optional[str] = Field(None, alias="lastSeen__gt")


class IOCFilters(Filters):
    site_ids: Optional[List[str]] = Field(None, alias="siteIds")
    type: Optional[str] = None
    value: Optional[str] = None
    severity: Optional[str] = None
    source: Optional[str] = None
    creator_contains: Optional[str] = Field(None, alias="creator__contains")
    name_contains: Optional[str] = Field(None, alias="name__contains")
    created_after: Optional[str] = Field(None, alias="creationTime__gt")
    created_before: Optional[str] = Field(None, alias="creationTime__lt")
