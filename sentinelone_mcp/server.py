# sentinelone_mcp/server.py
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from typing import Annotated, Iterator, List, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_context
from pydantic import Field
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from . import formatting as fmt
from .client import (
    ACTIVITIES,
    AGENTS,
    APP_INVENTORY,
    APP_RISKS,
    BLOCKLIST,
    DEVICE_CONTROL_EVENTS,
    EXCLUSIONS,
    GROUPS,
    IOCS,
    RANGER_DEVICES,
    SITES,
    TAGS,
    THREATS,
    SentinelOneClient,
)
from .deep_visibility import (
    DeepVisibility,
    EventsNotReady,
    SearchFinished,
    SearchStillRunning,
    raise_for_outcome,
)
from .errors import SentinelOneError, redact
from .filters import (
    ActivityFilters,
    AgentFilters,
    AppInventoryFilters,
    AppRiskFilters,
    DeviceControlFilters,
    ExclusionFilters,
    GroupFilters,
    IOCFilters,
    RangerFilters,
    ScopeFilter,
    SiteFilters,
    TagFilters,
    ThreatFilters,
)
from .graphql import AlertsClient, build_alert_filters
from .models import ActionResult, DVQueryStatus, Page
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# -------------------- FastMCP server config --------------------
mcp = FastMCP("SentinelOne MCP")


# -------------------- Shared services --------------------
class Services:
    """Everything a tool needs, built once from one immutable Settings."""

    def __init__(self, settings: Settings, client: SentinelOneClient | None = None):
        self.settings = settings
        self.client = client or SentinelOneClient(settings)
        self.alerts = AlertsClient(self.client)
        self.deep_visibility = DeepVisibility(self.client)

    async def close(self) -> None:
        await self.client.close()


_services: Services | None = None
_services_lock = asyncio.Lock()


def bind_services(services: Services | None) -> None:
    """Install the services used by every tool (``None`` unbinds)."""
    global _services
    _services = services


async def _get_services() -> Services:
    global _services
    if _services is not None:
        return _services
    async with _services_lock:
        if _services is None:
            _services = Services(get_settings())
    return _services


@contextmanager
def _tool_errors(action: str) -> Iterator[None]:
    """Single conversion point from internal failures to MCP tool errors."""
    try:
        yield
    except ToolError:
        raise
    except SentinelOneError as exc:
        raise ToolError(_scrub(f"Error {action}: {exc}")) from exc
    except Exception as exc:
        logger.exception("Unexpected failure while %s", action)
        raise ToolError(_scrub(f"Error {action}: {exc}")) from exc


def _scrub(message: str) -> str:
    secret = _services.settings.sentinelone_api_key if _services else None
    return redact(message, secret)


def _action_text(result: ActionResult, noun: str, target_id: str, done: str) -> str:
    if result.affected == 0:
        return f"No {noun} matched ID {target_id}; nothing was {done}. Affected: 0"
    return f"✓ {noun.capitalize()} {target_id} {done}. Affected: {result.affected}"


Limit1000 = Annotated[Optional[int], Field(ge=1, le=1000, description="Max results (default 25, max 1000)")]
Limit100 = Annotated[Optional[int], Field(ge=1, le=100, description="Max results (default 25, max 100)")]
Cursor = Annotated[Optional[str], "Pagination cursor from previous response"]
SiteIds = Annotated[Optional[List[str]], "Filter by site IDs"]
OsTypes = Annotated[Optional[List[str]], "Filter by OS: windows, linux, macos"]


# -------------------- Threats --------------------
@mcp.tool(
    name="s1_list_threats",
    description="List SentinelOne threats with optional filters",
)
async def list_threats(
    computer_name: Annotated[Optional[str], "Search by computer/endpoint name (partial match)"] = None,
    threat_name: Annotated[Optional[str], "Search by threat name (partial match)"] = None,
    mitigation_statuses: Annotated[Optional[List[str]], "Filter: not_mitigated, mitigated, marked_as_benign"] = None,
    classifications: Annotated[Optional[List[str]], "Filter: Malware, PUA, Suspicious"] = None,
    analyst_verdicts: Annotated[Optional[List[str]], "Filter: true_positive, false_positive, suspicious, undefined"] = None,
    site_ids: SiteIds = None,
    group_ids: Annotated[Optional[List[str]], "Filter by group IDs"] = None,
    resolved: Annotated[Optional[bool], "Filter by resolved state"] = None,
    limit: Limit1000 = None,
    cursor: Cursor = None,
) -> str:
    """List threats.

    Endpoint:
      GET /web/api/v2.1/threats
    """
    with _tool_errors("listing threats"):
        s = await _get_services()
        filters = ThreatFilters(
            computer_name=computer_name,
            threat_name=threat_name,
            mitigation_statuses=mitigation_statuses,
            classifications=classifications,
            analyst_verdicts=analyst_verdicts,
            site_ids=site_ids,
            group_ids=group_ids,
            resolved=resolved,
        )
        page = await s.client.list(THREATS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "threat(s)", fmt.summarize_threat)


@mcp.tool(
    name="s1_get_threat",
    description="Get a specific SentinelOne threat by ID",
)
async def get_threat(
    threat_id: Annotated[str, "The threat ID to retrieve"],
) -> str:
    with _tool_errors("getting threat"):
        s = await _get_services()
        return fmt.threat_details(await s.client.get(THREATS, threat_id))


@mcp.tool(
    name="s1_mitigate_threat",
    description="Mitigate a threat: kill (terminate process), quarantine (isolate file), remediate (full cleanup), rollback-remediation (undo)",
)
async def mitigate_threat(
    threat_id: Annotated[str, "The threat ID to mitigate"],
    action: Annotated[
        Literal["kill", "quarantine", "remediate", "rollback-remediation"],
        "Action: kill, quarantine, remediate, rollback-remediation",
    ],
) -> str:
    """Apply a mitigation action to exactly one threat.

    Endpoint:
      POST /web/api/v2.1/threats/mitigate/{action}

    Request body:
      { "filter": { "ids": ["<threat_id>"] } }
    """
    with _tool_errors("mitigating threat"):
        s = await _get_services()
        result = await s.client.mitigate_threat(threat_id, action)
        if result.affected == 0:
            return f"No threat matched ID {threat_id}; {action} was not applied. Affected: 0"
        return f"✓ {action} applied to threat {threat_id}. Affected: {result.affected}"


# -------------------- Agents --------------------
@mcp.tool(
    name="s1_list_agents",
    description="List SentinelOne agents with optional filters",
)
async def list_agents(
    computer_name: Annotated[Optional[str], "Search by computer name (partial match)"] = None,
    os_types: Annotated[Optional[List[str]], "Filter by OS: windows, macos, linux"] = None,
    is_active: Annotated[Optional[bool], "Filter by active status"] = None,
    is_infected: Annotated[Optional[bool], "Filter by infected status"] = None,
    network_statuses: Annotated[Optional[List[str]], "Filter: connected, disconnected"] = None,
    site_ids: SiteIds = None,
    group_ids: Annotated[Optional[List[str]], "Filter by group IDs"] = None,
    limit: Limit1000 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing agents"):
        s = await _get_services()
        filters = AgentFilters(
            computer_name=computer_name,
            os_types=os_types,
            is_active=is_active,
            is_infected=is_infected,
            network_statuses=network_statuses,
            site_ids=site_ids,
            group_ids=group_ids,
        )
        page = await s.client.list(AGENTS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "agent(s)", fmt.summarize_agent)


@mcp.tool(
    name="s1_get_agent",
    description="Get a specific SentinelOne agent by ID",
)
async def get_agent(
    agent_id: Annotated[str, "The agent ID to retrieve"],
) -> str:
    with _tool_errors("getting agent"):
        s = await _get_services()
        return fmt.agent_details(await s.client.get(AGENTS, agent_id))


@mcp.tool(
    name="s1_isolate_agent",
    description="Network isolate an agent (disconnect from network while maintaining S1 communication)",
)
async def isolate_agent(
    agent_id: Annotated[str, "The agent ID to network isolate"],
) -> str:
    """Endpoint:
      POST /web/api/v2.1/agents/actions/disconnect
    """
    with _tool_errors("isolating agent"):
        s = await _get_services()
        return _action_text(await s.client.isolate_agent(agent_id), "agent", agent_id, "isolated")


@mcp.tool(
    name="s1_reconnect_agent",
    description="Remove network isolation from an agent",
)
async def reconnect_agent(
    agent_id: Annotated[str, "The agent ID to reconnect"],
) -> str:
    """Endpoint:
      POST /web/api/v2.1/agents/actions/connect
    """
    with _tool_errors("reconnecting agent"):
        s = await _get_services()
        return _action_text(await s.client.reconnect_agent(agent_id), "agent", agent_id, "reconnected")


# -------------------- Unified alerts (GraphQL) --------------------
@mcp.tool(
    name="s1_list_alerts",
    description="List unified alerts via GraphQL. Use storyline_id to correlate with threats.",
)
async def list_alerts(
    severity: Annotated[Optional[str], "Filter by severity: Low, Medium, High, Critical"] = None,
    analyst_verdict: Annotated[Optional[str], "Filter by analyst verdict: TruePositive, FalsePositive, Suspicious, Undefined"] = None,
    incident_status: Annotated[Optional[str], "Filter by incident status: Unresolved, InProgress, Resolved"] = None,
    site_ids: SiteIds = None,
    storyline_id: Annotated[Optional[str], "Filter by storyline ID (correlate with threat)"] = None,
    limit: Annotated[Optional[int], Field(ge=1, le=50, description="Max results (default 20, max 50)")] = None,
    cursor: Annotated[Optional[str], "Pagination cursor (endCursor from previous response)"] = None,
) -> str:
    """List unified alerts.

    Endpoint:
      POST /web/api/v2.1/unifiedalerts/graphql

    Request body:
      { "query": "query GetAlerts(...) { alerts(...) { edges { node { ... } } pageInfo { ... } } }",
        "variables": { "first": 20, "after": "<cursor>", "filters": [ ... ] } }
    """
    with _tool_errors("listing alerts"):
        s = await _get_services()
        filters = build_alert_filters(
            severity=severity,
            analyst_verdict=analyst_verdict,
            incident_status=incident_status,
            storyline_id=storyline_id,
            site_ids=site_ids,
        )
        result = await s.alerts.query_alerts(filters, limit=limit, cursor=cursor)
        page = Page(items=result.items, next_cursor=result.end_cursor if result.has_more else None)
        return fmt.render_page(page, "alert(s)", fmt.summarize_alert)


# -------------------- Hash reputation --------------------
@mcp.tool(
    name="s1_hash_reputation",
    description="Lookup reputation for a SHA1 or SHA256 hash",
)
async def hash_reputation(
    hash: Annotated[str, "SHA1 (40 chars) or SHA256 (64 chars) hash to lookup"],
) -> str:
    """Endpoint:
      GET /web/api/v2.1/hashes/{hash}/reputation

    The hash is validated locally before any request is made.
    """
    with _tool_errors("getting hash reputation"):
        s = await _get_services()
        reputation = await s.client.hash_reputation(hash)
        if reputation is None:
            return f"No reputation data found for hash: {hash}"
        return json.dumps(reputation.model_dump(exclude_none=True), indent=2)


# -------------------- Deep Visibility --------------------
@mcp.tool(
    name="s1_dv_query",
    description='Run a Deep Visibility query. Returns queryId when complete. Example query: ProcessName Contains "python"',
)
async def dv_query(
    query: Annotated[str, 'Deep Visibility query (e.g., ProcessName Contains "python", SrcIP = "10.0.0.1")'],
    from_date: Annotated[str, "Start date in ISO format (e.g., 2024-01-01T00:00:00Z)"],
    to_date: Annotated[str, "End date in ISO format (e.g., 2024-01-02T00:00:00Z)"],
    site_ids: SiteIds = None,
    group_ids: Annotated[Optional[List[str]], "Filter by group IDs"] = None,
    account_ids: Annotated[Optional[List[str]], "Filter by account IDs"] = None,
) -> str:
    """Submit a Deep Visibility query and wait a bounded time for it.

    Endpoints:
      POST /web/api/v2.1/dv/init-query
      GET  /web/api/v2.1/dv/query-status?queryId=<id>   (once per second, at most 30 times)

    Returns:
      The queryId once the query finished, or the queryId with a hint to use
      s1_dv_get_events later if it is still running.
    """
    with _tool_errors("running Deep Visibility query"):
        s = await _get_services()
        engine = s.deep_visibility
        ctx = get_context()

        async def report(status: DVQueryStatus, checks: int) -> None:
            await ctx.report_progress(progress=checks, total=engine.max_checks)

        scope = ScopeFilter(site_ids=site_ids, group_ids=group_ids, account_ids=account_ids)
        outcome = await engine.submit_and_await(query, from_date, to_date, scope, on_poll=report)
        raise_for_outcome(outcome)

        if isinstance(outcome, SearchStillRunning):
            return (
                f"Query still running after {outcome.checks} status checks. "
                f"Use s1_dv_get_events with queryId: {outcome.query_id} to retrieve results later."
            )
        if not isinstance(outcome, SearchFinished):
            raise ToolError(f"Unexpected Deep Visibility outcome for query {outcome.query_id}")
        return json.dumps(
            {
                "queryId": outcome.query_id,
                "status": "FINISHED",
                "message": "Query completed. Use s1_dv_get_events to retrieve results.",
            },
            indent=2,
        )


@mcp.tool(
    name="s1_dv_get_events",
    description="Get events from a completed Deep Visibility query",
)
async def dv_get_events(
    query_id: Annotated[str, "Query ID returned from s1_dv_query"],
    limit: Annotated[Optional[int], Field(ge=1, le=100, description="Max results (default 50, max 100)")] = None,
    cursor: Cursor = None,
) -> str:
    """Endpoints:
      GET /web/api/v2.1/dv/query-status?queryId=<id>
      GET /web/api/v2.1/dv/events?queryId=<id>&limit=<n>&cursor=<c>
    """
    with _tool_errors("getting Deep Visibility events"):
        s = await _get_services()
        outcome = await s.deep_visibility.fetch_events(query_id, limit=limit, cursor=cursor)
        raise_for_outcome(outcome)
        if isinstance(outcome, EventsNotReady):
            return (
                f"Query {query_id} is still running ({outcome.progress}% complete). "
                "Please wait and try again."
            )
        return fmt.render_page(
            outcome.page,
            "event(s)",
            fmt.summarize_event,
            empty="No events found for this query.",
            separator="\n",
        )


# -------------------- Sites --------------------
@mcp.tool(
    name="s1_list_sites",
    description="List SentinelOne sites with optional filters",
)
async def list_sites(
    name_contains: Annotated[Optional[List[str]], "Filter by site name (partial match, multiple values)"] = None,
    query: Annotated[Optional[str], "Full-text search across name, account name, and description"] = None,
    state: Annotated[Optional[str], "Filter by state: active, deleted, expired"] = None,
    site_type: Annotated[Optional[str], "Filter by type: Paid or Trial"] = None,
    sku: Annotated[Optional[str], "Filter by SKU: core, control, complete"] = None,
    account_ids: Annotated[Optional[List[str]], "Filter by account IDs"] = None,
    site_ids: SiteIds = None,
    sort_by: Annotated[Optional[str], "Sort by: name, state, siteType, createdAt, expiration, activeLicenses, totalLicenses"] = None,
    sort_order: Annotated[Optional[str], "Sort direction: asc or desc"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing sites"):
        s = await _get_services()
        filters = SiteFilters(
            name_contains=name_contains,
            query=query,
            state=state,
            site_type=site_type,
            sku=sku,
            account_ids=account_ids,
            site_ids=site_ids,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        page = await s.client.list(SITES, filters, limit=limit, cursor=cursor)
        totals = page.summary.get("allSites") or {}
        extra = ""
        if totals:
            extra = f" (Total licenses: {totals.get('activeLicenses', 0)}/{totals.get('totalLicenses', 0)})"
        # Sites report the grand total in the header instead of "N of M".
        page = page.model_copy(update={"total_items": None})
        return fmt.render_page(page, "site(s)", fmt.summarize_site, header_extra=extra)


@mcp.tool(
    name="s1_get_site",
    description="Get a specific SentinelOne site by ID",
)
async def get_site(
    site_id: Annotated[str, "The site ID to retrieve"],
) -> str:
    with _tool_errors("getting site"):
        s = await _get_services()
        return fmt.site_details(await s.client.get(SITES, site_id))


# -------------------- Activities --------------------
@mcp.tool(
    name="s1_list_activities",
    description="List console activities (audit log) with optional filters",
)
async def list_activities(
    activity_types: Annotated[Optional[List[int]], "Filter by activity type IDs (integers)"] = None,
    site_ids: SiteIds = None,
    account_ids: Annotated[Optional[List[str]], "Filter by account IDs"] = None,
    agent_ids: Annotated[Optional[List[str]], "Filter by agent IDs"] = None,
    threat_ids: Annotated[Optional[List[str]], "Filter by threat IDs"] = None,
    created_after: Annotated[Optional[str], "Activities created after this datetime (ISO 8601)"] = None,
    created_before: Annotated[Optional[str], "Activities created before this datetime (ISO 8601)"] = None,
    sort_by: Annotated[Optional[str], "Sort by field: createdAt, activityType"] = None,
    sort_order: Annotated[Optional[str], "Sort direction: asc or desc"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing activities"):
        s = await _get_services()
        filters = ActivityFilters(
            activity_types=activity_types,
            site_ids=site_ids,
            account_ids=account_ids,
            agent_ids=agent_ids,
            threat_ids=threat_ids,
            created_after=created_after,
            created_before=created_before,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        page = await s.client.list(ACTIVITIES, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "activities", fmt.summarize_activity)


@mcp.tool(
    name="s1_list_activity_types",
    description="List the activity type IDs usable as s1_list_activities filters",
)
async def list_activity_types() -> str:
    with _tool_errors("listing activity types"):
        s = await _get_services()
        types = await s.client.list_activity_types()
        if not types:
            return "No activity types found."
        lines = [f"{fmt.BULLET} {t.id}: {t.action} - {t.descriptionTemplate}" for t in types]
        return f"Found {len(types)} activity type(s):\n\n" + "\n".join(lines)


# -------------------- Exclusions / blocklist --------------------
@mcp.tool(
    name="s1_list_exclusions",
    description="List exclusions (paths, hashes, certificates, ...) with optional filters",
)
async def list_exclusions(
    type: Annotated[Optional[str], "Exclusion type: path, white_hash, certificate, file_type, browser"] = None,
    os_types: OsTypes = None,
    site_ids: SiteIds = None,
    query: Annotated[Optional[str], "Full-text search across exclusion values"] = None,
    value_contains: Annotated[Optional[str], "Filter by value (partial match)"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing exclusions"):
        s = await _get_services()
        filters = ExclusionFilters(
            type=type, os_types=os_types, site_ids=site_ids, query=query, value_contains=value_contains
        )
        page = await s.client.list(EXCLUSIONS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "exclusion(s)", fmt.summarize_exclusion)


@mcp.tool(
    name="s1_list_blocklist",
    description="List blocklist (restriction) entries with optional filters",
)
async def list_blocklist(
    site_ids: SiteIds = None,
    os_types: OsTypes = None,
    query: Annotated[Optional[str], "Full-text search across blocklist values"] = None,
    value_contains: Annotated[Optional[str], "Filter by value (partial match)"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing blocklist"):
        s = await _get_services()
        filters = ExclusionFilters(site_ids=site_ids, os_types=os_types, query=query, value_contains=value_contains)
        page = await s.client.list(BLOCKLIST, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "blocklist entries", fmt.summarize_exclusion)


# -------------------- Groups --------------------
@mcp.tool(
    name="s1_list_groups",
    description="List agent groups with optional filters",
)
async def list_groups(
    site_ids: SiteIds = None,
    type: Annotated[Optional[str], "Filter by type: static, dynamic, pinned"] = None,
    query: Annotated[Optional[str], "Full-text search across group names"] = None,
    name: Annotated[Optional[str], "Filter by exact group name"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing groups"):
        s = await _get_services()
        filters = GroupFilters(site_ids=site_ids, type=type, query=query, name=name)
        page = await s.client.list(GROUPS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "group(s)", fmt.summarize_group)


@mcp.tool(
    name="s1_get_group",
    description="Get a specific agent group by ID",
)
async def get_group(
    group_id: Annotated[str, "The group ID to retrieve"],
) -> str:
    with _tool_errors("getting group"):
        s = await _get_services()
        return fmt.group_details(await s.client.get(GROUPS, group_id))


# -------------------- Application management --------------------
@mcp.tool(
    name="s1_list_app_risks",
    description="List application vulnerabilities (CVEs) found on endpoints",
)
async def list_app_risks(
    site_ids: SiteIds = None,
    account_ids: Annotated[Optional[List[str]], "Filter by account IDs"] = None,
    severities: Annotated[Optional[List[str]], "Filter by severity: critical, high, medium, low"] = None,
    cve_id_contains: Annotated[Optional[str], "Filter by CVE ID (partial match)"] = None,
    application_names: Annotated[Optional[List[str]], "Filter by application names"] = None,
    exploited_in_the_wild: Annotated[Optional[bool], "Filter for CVEs exploited in the wild"] = None,
    mitigation_status: Annotated[Optional[str], "Filter by mitigation status"] = None,
    sort_by: Annotated[Optional[str], "Sort by: riskScore, severity, applicationName"] = None,
    sort_order: Annotated[Optional[str], "Sort direction: asc or desc"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing application risks"):
        s = await _get_services()
        filters = AppRiskFilters(
            site_ids=site_ids,
            account_ids=account_ids,
            severities=severities,
            cve_id_contains=cve_id_contains,
            application_names=application_names,
            exploited_in_the_wild=exploited_in_the_wild,
            mitigation_status=mitigation_status,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        page = await s.client.list(APP_RISKS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "application risk(s)", fmt.summarize_app_risk)


@mcp.tool(
    name="s1_list_app_inventory",
    description="List installed applications across endpoints",
)
async def list_app_inventory(
    site_ids: SiteIds = None,
    name_contains: Annotated[Optional[str], "Filter by application name (partial match)"] = None,
    vendor_contains: Annotated[Optional[str], "Filter by vendor name (partial match)"] = None,
    os_types: OsTypes = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing application inventory"):
        s = await _get_services()
        filters = AppInventoryFilters(
            site_ids=site_ids, name_contains=name_contains, vendor_contains=vendor_contains, os_types=os_types
        )
        page = await s.client.list(APP_INVENTORY, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "application(s)", fmt.summarize_app,
                               empty="No application inventory items found matching criteria.")


# -------------------- Network --------------------
@mcp.tool(
    name="s1_list_tags",
    description="List tags of a given type (firewall, network-quarantine, device-inventory)",
)
async def list_tags(
    type: Annotated[str, "Tag type (required): firewall, network-quarantine, device-inventory"],
    site_ids: SiteIds = None,
    query: Annotated[Optional[str], "Full-text search across tag names"] = None,
    name_contains: Annotated[Optional[str], "Filter by tag name (partial match)"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing tags"):
        s = await _get_services()
        filters = TagFilters(type=type, site_ids=site_ids, query=query, name_contains=name_contains)
        page = await s.client.list(TAGS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "tag(s)", fmt.summarize_tag)


@mcp.tool(
    name="s1_list_device_control_events",
    description="List device control events (USB, Bluetooth, ...) with optional filters",
)
async def list_device_control_events(
    site_ids: SiteIds = None,
    interfaces: Annotated[Optional[List[str]], "Filter by interface: USB, Bluetooth, Thunderbolt, SDCard"] = None,
    event_types: Annotated[Optional[List[str]], "Filter by event types"] = None,
    agent_ids: Annotated[Optional[List[str]], "Filter by agent IDs"] = None,
    event_time_after: Annotated[Optional[str], "Events after this datetime (ISO 8601)"] = None,
    event_time_before: Annotated[Optional[str], "Events before this datetime (ISO 8601)"] = None,
    query: Annotated[Optional[str], "Full-text search across device control events"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing device control events"):
        s = await _get_services()
        filters = DeviceControlFilters(
            site_ids=site_ids,
            interfaces=interfaces,
            event_types=event_types,
            agent_ids=agent_ids,
            event_time_after=event_time_after,
            event_time_before=event_time_before,
            query=query,
        )
        page = await s.client.list(DEVICE_CONTROL_EVENTS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "device control event(s)", fmt.summarize_device_control_event)


@mcp.tool(
    name="s1_list_ranger_inventory",
    description="List network devices discovered by Ranger",
)
async def list_ranger_inventory(
    site_ids: SiteIds = None,
    managed_states: Annotated[Optional[List[str]], "Filter by managed state: managed, unmanaged, notManageable"] = None,
    device_types: Annotated[Optional[List[str]], "Filter by device types"] = None,
    os_types: OsTypes = None,
    query: Annotated[Optional[str], "Full-text search across ranger inventory"] = None,
    local_ip_contains: Annotated[Optional[str], "Filter by local IP (partial match)"] = None,
    mac_address_contains: Annotated[Optional[str], "Filter by MAC address (partial match)"] = None,
    hostnames_contains: Annotated[Optional[str], "Filter by hostname (partial match)"] = None,
    first_seen_after: Annotated[Optional[str], "Devices first seen after this datetime (ISO 8601)"] = None,
    last_seen_after: Annotated[Optional[str], "Devices last seen after this datetime (ISO 8601)"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing Ranger inventory"):
        s = await _get_services()
        filters = RangerFilters(
            site_ids=site_ids,
            managed_states=managed_states,
            device_types=device_types,
            os_types=os_types,
            query=query,
            local_ip_contains=local_ip_contains,
            mac_address_contains=mac_address_contains,
            hostnames_contains=hostnames_contains,
            first_seen_after=first_seen_after,
            last_seen_after=last_seen_after,
        )
        page = await s.client.list(RANGER_DEVICES, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "device(s)", fmt.summarize_ranger_device,
                               empty="No Ranger inventory items found matching criteria.")


@mcp.tool(
    name="s1_list_iocs",
    description="List threat intelligence IOCs (hashes, domains, IPs, URLs)",
)
async def list_iocs(
    site_ids: SiteIds = None,
    type: Annotated[Optional[str], "IOC type: DNS, IPV4, URL, SHA1, SHA256, MD5"] = None,
    value: Annotated[Optional[str], "Filter by IOC value"] = None,
    severity: Annotated[Optional[str], "Filter by severity"] = None,
    source: Annotated[Optional[str], "Filter by source"] = None,
    creator_contains: Annotated[Optional[str], "Filter by creator (partial match)"] = None,
    name_contains: Annotated[Optional[str], "Filter by IOC name (partial match)"] = None,
    created_after: Annotated[Optional[str], "IOCs created after this datetime (ISO 8601)"] = None,
    created_before: Annotated[Optional[str], "IOCs created before this datetime (ISO 8601)"] = None,
    limit: Limit100 = None,
    cursor: Cursor = None,
) -> str:
    with _tool_errors("listing IOCs"):
        s = await _get_services()
        filters = IOCFilters(
            site_ids=site_ids,
            type=type,
            value=value,
            severity=severity,
            source=source,
            creator_contains=creator_contains,
            name_contains=name_contains,
            created_after=created_after,
            created_before=created_before,
        )
        page = await s.client.list(IOCS, filters, limit=limit, cursor=cursor)
        return fmt.render_page(page, "IOC(s)", fmt.summarize_ioc, empty="No IOCs found matching criteria.")


# -------------------- Health --------------------
@mcp.resource("health://ready")
def health_ready() -> str:
    return "ok"


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> PlainTextResponse:
    return PlainTextResponse("OK")
