from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, cast
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from .errors import (
    HttpError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    SubmissionError,
    redact,
)
from .filters import Filters, ScopeFilter
from .models import (
    ActionResult,
    Activity,
    ActivityType,
    Agent,
    AppInventoryItem,
    AppRisk,
    DeviceControlEvent,
    DVEvent,
    DVQueryStatus,
    Exclusion,
    Group,
    HashReputation,
    IOC,
    MitigationAction,
    Page,
    RangerDevice,
    Site,
    Tag,
    Threat,
)
from .settings import Settings
from .validators import check_limit, validate_hash

logger = logging.getLogger(__name__)

TIMEOUT_MS = 30_000
DEFAULT_HEADERS = {
    "User-Agent": "sentinelone-mcp/1.0",
    "Accept": "application/json",
    "Content-Type": "application/json",
}

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class Resource(Generic[M]):
    """A REST collection the console pages through with limit/cursor."""

    noun: str
    path: str
    model: Type[M]
    default_limit: int = 25
    max_limit: int = 100
    # Sites nest their items under data.sites next to data.allSites.
    items_key: Optional[str] = None
    # "ids" -> GET {path}?ids=<id>; "path" -> GET {path}/<id>
    lookup: Optional[str] = None


THREATS = Resource("threat", "/threats", Threat, max_limit=1000, lookup="ids")
AGENTS = Resource("agent", "/agents", Agent, max_limit=1000, lookup="ids")
SITES = Resource("site", "/sites", Site, items_key="sites", lookup="path")
GROUPS = Resource("group", "/groups", Group, lookup="path")
ACTIVITIES = Resource("activity", "/activities", Activity)
EXCLUSIONS = Resource("exclusion", "/exclusions", Exclusion)
BLOCKLIST = Resource("blocklist entry", "/restrictions", Exclusion)
APP_RISKS = Resource("application risk", "/application-management/risks", AppRisk)
APP_INVENTORY = Resource("application", "/application-management/inventory", AppInventoryItem)
TAGS = Resource("tag", "/tags", Tag)
DEVICE_CONTROL_EVENTS = Resource("device control event", "/device-control/events", DeviceControlEvent)
RANGER_DEVICES = Resource("device", "/ranger/table-view", RangerDevice)
IOCS = Resource("IOC", "/threat-intelligence/iocs", IOC)
DV_EVENTS = Resource("event", "/dv/events", DVEvent, default_limit=50)


class SentinelOneClient:
    """Authenticated, timeout-bounded access to the management console API."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.base_url = settings.api_url
        self._api_key = settings.sentinelone_api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        headers = DEFAULT_HEADERS.copy()
        headers["Authorization"] = f"ApiToken {self._api_key}"
        self._client = httpx.AsyncClient(base_url=self.base_url,
                                         headers=headers,
                                         timeout=TIMEOUT_MS / 1000,
                                         transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SentinelOneClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            await self.start()
        return cast(httpx.AsyncClient, self._client)

    def redact(self, text: str) -> str:
        return redact(text, self._api_key)

    # ---- gateway ----
    async def request(
        self,
        path: str,
        method: str = "GET",
        params: Dict[str, Any] | None = None,
        json: Any = None,
        headers: Dict[str, str] | None = None,
    ) -> Any:
        client = await self._http()
        logger.debug("%s %s params=%s", method, path, params)
        try:
            r = await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out after %sms", method, path, TIMEOUT_MS)
            raise RequestTimeoutError(TIMEOUT_MS) from e
        except httpx.HTTPError as e:
            message = self.redact(f"Network error calling {path}: {e}")
            logger.warning(message)
            raise NetworkError(message) from e
        if not r.is_success:
            logger.warning("%s %s -> HTTP %s", method, path, r.status_code)
            raise HttpError(r.status_code, r.reason_phrase, self.redact(r.text))
        try:
            return r.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON in response from {path}") from e

    # ---- paginated resources ----
    async def list(
        self,
        resource: Resource[M],
        filters: Filters | None = None,
        limit: int | None = None,
        cursor: str | None = None,
        extra_params: Dict[str, str] | None = None,
    ) -> Page[M]:
        limit = check_limit(resource.default_limit if limit is None else limit, resource.max_limit)
        params: Dict[str, str] = dict(extra_params or {})
        if filters is not None:
            params.update(filters.to_params())
        params["limit"] = str(limit)
        if cursor:
            params["cursor"] = cursor
        payload = await self.request(resource.path, params=params)
        return self._parse_page(resource, payload)

    def _parse_page(self, resource: Resource[M], payload: Dict[str, Any]) -> Page[M]:
        data = payload.get("data") or []
        summary: Dict[str, Any] = {}
        if resource.items_key:
            container = data if isinstance(data, dict) else {}
            summary = {k: v for k, v in container.items() if k != resource.items_key}
            data = container.get(resource.items_key) or []
        pagination = payload.get("pagination") or {}
        return Page(
            items=[resource.model.model_validate(item) for item in data],
            next_cursor=pagination.get("nextCursor") or None,
            total_items=pagination.get("totalItems"),
            summary=summary,
        )

    async def get(self, resource: Resource[M], item_id: str) -> M:
        title = resource.noun.capitalize()
        if resource.lookup == "ids":
            payload = await self.request(resource.path, params={"ids": item_id})
            items = payload.get("data") or []
            if not items:
                raise NotFoundError(f"{title} {item_id} not found")
            return resource.model.model_validate(items[0])
        try:
            payload = await self.request(f"{resource.path}/{quote(item_id, safe='')}")
        except HttpError as e:
            if e.status == 404:
                raise NotFoundError(f"{title} {item_id} not found") from e
            raise
        if not payload.get("data"):
            raise NotFoundError(f"{title} {item_id} not found")
        return resource.model.model_validate(payload["data"])

    async def _act_on(self, path: str, target_id: str) -> ActionResult:
        payload = await self.request(path, method="POST", json={"filter": {"ids": [target_id]}})
        result = ActionResult.model_validate(payload.get("data") or {})
        logger.info("POST %s for %s affected %s", path, target_id, result.affected)
        return result

    # ---- actions ----
    async def mitigate_threat(self, threat_id: str, action: MitigationAction | str) -> ActionResult:
        action = MitigationAction(action)
        return await self._act_on(f"/threats/mitigate/{action.value}", threat_id)

    async def isolate_agent(self, agent_id: str) -> ActionResult:
        return await self._act_on("/agents/actions/disconnect", agent_id)

    async def reconnect_agent(self, agent_id: str) -> ActionResult:
        return await self._act_on("/agents/actions/connect", agent_id)

    # ---- one-offs ----
    async def list_activity_types(self) -> List[ActivityType]:
        payload = await self.request("/activities/types")
        return [ActivityType.model_validate(t) for t in payload.get("data") or []]

    async def hash_reputation(self, sha: str) -> Optional[HashReputation]:
        sha = validate_hash(sha)
        payload = await self.request(f"/hashes/{sha}/reputation")
        data = payload.get("data")
        if isinstance(data, list):
            data = data[0] if data else None
        if not data:
            return None
        return HashReputation.model_validate(data)

    # ---- Deep Visibility primitives ----
    async def init_dv_query(self, query: str, from_date: str, to_date: str,
                            scope: ScopeFilter | None = None) -> str:
        body: Dict[str, Any] = {"query": query, "fromDate": from_date, "toDate": to_date}
        if scope is not None:
            body.update(scope.to_body())
        try:
            payload = await self.request("/dv/init-query", method="POST", json=body)
        except HttpError as e:
            raise SubmissionError(f"Deep Visibility query rejected: {e}") from e
        query_id = (payload.get("data") or {}).get("queryId")
        if not query_id:
            raise SubmissionError("Deep Visibility query was not accepted: no queryId returned")
        return query_id

    async def dv_query_status(self, query_id: str) -> DVQueryStatus:
        payload = await self.request("/dv/query-status", params={"queryId": query_id})
        return DVQueryStatus.model_validate(payload.get("data") or {})

    async def dv_events(self, query_id: str, limit: int | None = None,
                        cursor: str | None = None) -> Page[DVEvent]:
        return await self.list(DV_EVENTS, limit=limit, cursor=cursor,
                               extra_params={"queryId": query_id})
