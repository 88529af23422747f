from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .client import SentinelOneClient
from .errors import MissingDataError, QueryError
from .models import Alert, AlertPage
from .validators import check_limit

logger = logging.getLogger(__name__)

GRAPHQL_PATH = "/unifiedalerts/graphql"
DEFAULT_ALERT_LIMIT = 20
MAX_ALERT_LIMIT = 50

ALERTS_QUERY = """query GetAlerts($first: Int, $after: String, $filters: [FilterInput!]) {
  alerts(first: $first, after: $after, filters: $filters) {
    edges {
      node {
        id
        severity
        analystVerdict
        name
        classification
        confidenceLevel
        status
        storylineId
        detectedAt
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}"""


def string_equal(field_id: str, value: str) -> Dict[str, Any]:
    return {"fieldId": field_id, "stringEqual": {"value": value}}


def string_in(field_id: str, values: List[str]) -> Dict[str, Any]:
    return {"fieldId": field_id, "stringIn": {"values": list(values)}}


def build_alert_filters(
    severity: Optional[str] = None,
    analyst_verdict: Optional[str] = None,
    incident_status: Optional[str] = None,
    storyline_id: Optional[str] = None,
    site_ids: Optional[List[str]] = None,
) -> List[Dict[str, Any]]:
    """Translate named filters into the GraphQL ``FilterInput`` list.

    The site set is always a ``stringIn`` match; every other filter is a
    ``stringEqual`` on a single value. Unset filters are left out.
    """
    filters: List[Dict[str, Any]] = []
    if severity:
        filters.append(string_equal("severity", severity))
    if analyst_verdict:
        filters.append(string_equal("analystVerdict", analyst_verdict))
    if incident_status:
        filters.append(string_equal("status", incident_status))
    if storyline_id:
        filters.append(string_equal("storylineId", storyline_id))
    if site_ids:
        filters.append(string_in("siteId", site_ids))
    return filters


class AlertsClient:
    """Unified alerts over the console's GraphQL endpoint."""

    def __init__(self, client: SentinelOneClient):
        self.client = client

    async def query_alerts(
        self,
        filters: Optional[List[Dict[str, Any]]] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> AlertPage:
        first = check_limit(DEFAULT_ALERT_LIMIT if limit is None else limit, MAX_ALERT_LIMIT)
        variables: Dict[str, Any] = {"first": first}
        if cursor:
            variables["after"] = cursor
        if filters:
            variables["filters"] = filters

        result = await self.client.request(
            GRAPHQL_PATH, method="POST", json={"query": ALERTS_QUERY, "variables": variables}
        )

        # Transport success does not imply query success.
        errors = result.get("errors") or []
        if errors:
            messages = [self.client.redact(str(e.get("message", e))) for e in errors]
            logger.warning("alerts query returned %d error(s)", len(messages))
            raise QueryError(messages)

        alerts = (result.get("data") or {}).get("alerts")
        if not alerts:
            raise MissingDataError("No data returned from GraphQL query")

        page_info = alerts.get("pageInfo") or {}
        return AlertPage(
            items=[Alert.model_validate(edge["node"]) for edge in alerts.get("edges") or []],
            has_more=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )
