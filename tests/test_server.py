import json

import httpx
import pytest
from fastmcp import Client

from sentinelone_mcp.server import mcp

from .conftest import API_KEY


async def call(name, **arguments):
    async with Client(mcp) as client:
        return await client.call_tool(name, arguments, raise_on_error=False)


def text_of(result):
    return result.content[0].text


def _status(status, **extra):
    return httpx.Response(200, json={"data": {"queryId": "q-1", "status": status, **extra}})


@pytest.mark.asyncio
async def test_all_tools_registered():
    async with Client(mcp) as client:
        names = {tool.name for tool in await client.list_tools()}

    assert {
        "s1_list_threats", "s1_get_threat", "s1_mitigate_threat",
        "s1_list_agents", "s1_get_agent", "s1_isolate_agent", "s1_reconnect_agent",
        "s1_list_alerts", "s1_hash_reputation", "s1_dv_query", "s1_dv_get_events",
        "s1_list_sites", "s1_get_site", "s1_list_activities", "s1_list_activity_types",
        "s1_list_exclusions", "s1_list_blocklist", "s1_list_groups", "s1_get_group",
        "s1_list_app_risks", "s1_list_app_inventory", "s1_list_tags",
        "s1_list_device_control_events", "s1_list_ranger_inventory", "s1_list_iocs",
    } <= names


@pytest.mark.asyncio
async def test_list_threats(services, api):
    api.get("/threats").respond(200, json={
        "data": [{"id": "t-1", "threatInfo": {"threatName": "evil.exe", "mitigationStatus": "not_mitigated"},
                  "agentRealtimeInfo": {"agentComputerName": "ws-7"}}],
        "pagination": {"totalItems": 4, "nextCursor": "c2"},
    })

    result = await call("s1_list_threats", computer_name="ws")

    assert not result.is_error
    text = text_of(result)
    assert text.startswith("Found 1 of 4 threat(s):")
    assert "ws-7 | evil.exe" in text
    assert 'Use cursor: "c2"' in text


@pytest.mark.asyncio
async def test_http_failure_is_flagged_and_redacted(services, api):
    api.get("/agents").respond(403, text=f"forbidden for ApiToken {API_KEY}")

    result = await call("s1_list_agents")

    assert result.is_error
    assert text_of(result).startswith("Error listing agents: HTTP 403")
    assert API_KEY not in text_of(result)


@pytest.mark.asyncio
async def test_limit_above_maximum_is_rejected(services, api):
    result = await call("s1_list_sites", limit=101)

    assert result.is_error
    assert not api.calls


@pytest.mark.asyncio
async def test_get_threat_not_found(services, api):
    api.get("/threats").respond(200, json={"data": []})

    result = await call("s1_get_threat", threat_id="404")

    assert result.is_error
    assert "Threat 404 not found" in text_of(result)


@pytest.mark.asyncio
async def test_mitigate_threat(services, api):
    api.post("/threats/mitigate/kill").respond(200, json={"data": {"affected": 1}})

    result = await call("s1_mitigate_threat", threat_id="t-1", action="kill")

    assert text_of(result) == "✓ kill applied to threat t-1. Affected: 1"


@pytest.mark.asyncio
async def test_action_matching_nothing_is_not_an_error(services, api):
    api.post("/agents/actions/connect").respond(200, json={"data": {"affected": 0}})

    result = await call("s1_reconnect_agent", agent_id="gone")

    assert not result.is_error
    assert "Affected: 0" in text_of(result)
    assert "No agent matched ID gone" in text_of(result)


@pytest.mark.asyncio
async def test_list_alerts(services, api):
    api.post("/unifiedalerts/graphql").respond(200, json={"data": {"alerts": {
        "edges": [{"node": {"id": "al-1", "name": "Suspicious PowerShell", "severity": "High"}}],
        "pageInfo": {"hasNextPage": True, "endCursor": "e1"},
    }}})

    result = await call("s1_list_alerts", severity="High")

    text = text_of(result)
    assert text.startswith("Found 1 alert(s):")
    assert "Suspicious PowerShell | High" in text
    assert 'Use cursor: "e1"' in text


@pytest.mark.asyncio
async def test_graphql_errors_flagged(services, api):
    api.post("/unifiedalerts/graphql").respond(200, json={"errors": [{"message": "unknown field"}]})

    result = await call("s1_list_alerts")

    assert result.is_error
    assert "GraphQL errors: unknown field" in text_of(result)


@pytest.mark.asyncio
async def test_invalid_hash_never_reaches_the_api(services, api):
    result = await call("s1_hash_reputation", hash="xyz")

    assert result.is_error
    assert "Invalid hash format" in text_of(result)
    assert not api.calls


@pytest.mark.asyncio
async def test_dv_query_finished(services, api, fake_sleep):
    api.post("/dv/init-query").respond(200, json={"data": {"queryId": "q-1"}})
    api.get("/dv/query-status").mock(side_effect=[_status("RUNNING"), _status("RUNNING"), _status("FINISHED")])

    result = await call("s1_dv_query", query='ProcessName Contains "python"',
                        from_date="2024-01-01T00:00:00Z", to_date="2024-01-02T00:00:00Z")

    assert not result.is_error
    assert json.loads(text_of(result))["queryId"] == "q-1"
    assert fake_sleep.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_dv_query_still_running(services, api, fake_sleep):
    api.post("/dv/init-query").respond(200, json={"data": {"queryId": "q-1"}})
    api.get("/dv/query-status").mock(return_value=_status("RUNNING"))

    result = await call("s1_dv_query", query="q", from_date="a", to_date="b")

    assert not result.is_error
    assert "still running after 30 status checks" in text_of(result)
    assert "queryId: q-1" in text_of(result)


@pytest.mark.asyncio
async def test_dv_query_failed(services, api):
    api.post("/dv/init-query").respond(200, json={"data": {"queryId": "q-1"}})
    api.get("/dv/query-status").mock(return_value=_status("FAILED", responseError="bad syntax"))

    result = await call("s1_dv_query", query="q", from_date="a", to_date="b")

    assert result.is_error
    assert "Query q-1 failed: bad syntax" in text_of(result)


@pytest.mark.asyncio
async def test_dv_get_events_not_ready(services, api):
    api.get("/dv/query-status").mock(return_value=_status("RUNNING", progressStatus=30))

    result = await call("s1_dv_get_events", query_id="q-1")

    assert not result.is_error
    assert text_of(result) == "Query q-1 is still running (30% complete). Please wait and try again."


@pytest.mark.asyncio
async def test_dv_get_events_empty(services, api):
    api.get("/dv/query-status").mock(return_value=_status("FINISHED"))
    api.get("/dv/events").respond(200, json={"data": []})

    result = await call("s1_dv_get_events", query_id="q-1")

    assert text_of(result) == "No events found for this query."


@pytest.mark.asyncio
async def test_list_sites_shows_license_totals(services, api):
    api.get("/sites").respond(200, json={
        "data": {"sites": [{"id": "s1", "name": "HQ", "state": "active"}],
                 "allSites": {"activeLicenses": 3, "totalLicenses": 10}},
        "pagination": {"totalItems": 1},
    })

    result = await call("s1_list_sites")

    assert text_of(result).startswith("Found 1 site(s) (Total licenses: 3/10):")


@pytest.mark.asyncio
async def test_list_tags_requires_type(services, api):
    route = api.get("/tags").respond(200, json={"data": [{"id": "g1", "name": "blocked", "type": "firewall"}]})

    result = await call("s1_list_tags", type="firewall")

    assert "blocked" in text_of(result)
    assert route.calls.last.request.url.params["type"] == "firewall"
    assert (await call("s1_list_tags")).is_error


@pytest.mark.asyncio
async def test_device_control_interfaces_map_to_service_classes(services, api):
    route = api.get("/device-control/events").respond(200, json={"data": []})

    result = await call("s1_list_device_control_events", interfaces=["USB", "Bluetooth"])

    assert text_of(result) == "No device control events found matching criteria."
    assert route.calls.last.request.url.params["serviceClasses"] == "USB,Bluetooth"


@pytest.mark.asyncio
async def test_dv_query_schema_exposes_only_query_arguments():
    async with Client(mcp) as client:
        tools = {tool.name: tool for tool in await client.list_tools()}

    properties = tools["s1_dv_query"].inputSchema["properties"]
    assert set(properties) == {"query", "from_date", "to_date", "site_ids", "group_ids", "account_ids"}
    assert set(tools["s1_dv_query"].inputSchema["required"]) == {"query", "from_date", "to_date"}


@pytest.mark.asyncio
async def test_dv_query_reports_each_status_check_as_progress(services, api):
    api.post("/dv/init-query").respond(200, json={"data": {"queryId": "q-1"}})
    api.get("/dv/query-status").mock(side_effect=[_status("RUNNING"), _status("FINISHED")])
    seen = []

    async def on_progress(progress, total, message):
        seen.append((progress, total))

    async with Client(mcp, progress_handler=on_progress) as client:
        result = await client.call_tool("s1_dv_query", {"query": "q", "from_date": "a", "to_date": "b"},
                                        raise_on_error=False)

    assert not result.is_error
    assert seen == [(1, 30), (2, 30)]


@pytest.mark.asyncio
async def test_padded_hash_is_rejected_locally(services, api):
    result = await call("s1_hash_reputation", hash=" " + "a" * 40)

    assert result.is_error
    assert "got 41 chars" in text_of(result)
    assert not api.calls
