import json

import pytest

from sentinelone_mcp.errors import InvalidParameterError, MissingDataError, QueryError
from sentinelone_mcp.graphql import AlertsClient, build_alert_filters

from .conftest import API_KEY


def _alerts_payload(nodes, has_next=False, end_cursor=None):
    return {
        "data": {
            "alerts": {
                "edges": [{"node": n} for n in nodes],
                "pageInfo": {"hasNextPage": has_next, "endCursor": end_cursor},
            }
        }
    }


def test_filters_use_equal_for_scalars_and_in_for_sites():
    filters = build_alert_filters(severity="High", storyline_id="S-1", site_ids=["1", "2"])

    assert filters == [
        {"fieldId": "severity", "stringEqual": {"value": "High"}},
        {"fieldId": "storylineId", "stringEqual": {"value": "S-1"}},
        {"fieldId": "siteId", "stringIn": {"values": ["1", "2"]}},
    ]


def test_no_filters_when_nothing_set():
    assert build_alert_filters() == []


@pytest.mark.asyncio
async def test_query_flattens_edges_and_page_info(client, api):
    route = api.post("/unifiedalerts/graphql").respond(
        200, json=_alerts_payload([{"id": "a1", "severity": "High"}], has_next=True, end_cursor="e1")
    )

    page = await AlertsClient(client).query_alerts(build_alert_filters(severity="High"), limit=10)

    assert [a.id for a in page.items] == ["a1"]
    assert page.has_more is True
    assert page.end_cursor == "e1"
    body = json.loads(route.calls.last.request.content)
    assert body["variables"]["first"] == 10
    assert "after" not in body["variables"]
    assert body["variables"]["filters"][0]["fieldId"] == "severity"


@pytest.mark.asyncio
async def test_unfiltered_query_sends_no_filters(client, api):
    route = api.post("/unifiedalerts/graphql").respond(200, json=_alerts_payload([]))

    page = await AlertsClient(client).query_alerts(cursor="e1")

    assert page.items == []
    variables = json.loads(route.calls.last.request.content)["variables"]
    assert variables == {"first": 20, "after": "e1"}


@pytest.mark.asyncio
async def test_graphql_errors_raise_query_error(client, api):
    api.post("/unifiedalerts/graphql").respond(
        200, json={"errors": [{"message": "bad field"}, {"message": f"token {API_KEY}"}], "data": None}
    )

    with pytest.raises(QueryError) as exc:
        await AlertsClient(client).query_alerts()

    assert exc.value.messages[0] == "bad field"
    assert API_KEY not in str(exc.value)
    assert str(exc.value).startswith("GraphQL errors: bad field")


@pytest.mark.asyncio
async def test_missing_data_is_not_an_empty_result(client, api):
    api.post("/unifiedalerts/graphql").respond(200, json={"data": {}})

    with pytest.raises(MissingDataError):
        await AlertsClient(client).query_alerts()


@pytest.mark.asyncio
async def test_alert_limit_over_fifty_rejected(client, api):
    with pytest.raises(InvalidParameterError):
        await AlertsClient(client).query_alerts(limit=51)
    assert not api.calls
