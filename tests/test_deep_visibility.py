import json

import httpx
import pytest

from sentinelone_mcp.deep_visibility import (
    MAX_STATUS_CHECKS,
    DeepVisibility,
    EventsNotReady,
    EventsPage,
    PollStep,
    SearchCanceled,
    SearchFailed,
    SearchFinished,
    SearchStillRunning,
    next_step,
    raise_for_outcome,
)
from sentinelone_mcp.errors import (
    InvalidParameterError,
    JobCanceledError,
    JobFailedError,
    SubmissionError,
)
from sentinelone_mcp.filters import ScopeFilter
from sentinelone_mcp.models import DVQueryState


def _status(status, progress=None, error=None):
    data = {"queryId": "q-1", "status": status}
    if progress is not None:
        data["progressStatus"] = progress
    if error is not None:
        data["responseError"] = error
    return httpx.Response(200, json={"data": data})


@pytest.fixture
def engine(client, fake_sleep):
    return DeepVisibility(client, sleep=fake_sleep)


@pytest.fixture
def submitted(api):
    return api.post("/dv/init-query").respond(200, json={"data": {"queryId": "q-1"}})


# ---- pure decision function ----
@pytest.mark.parametrize("state, checks, expected", [
    (DVQueryState.FINISHED, 1, PollStep.FINISHED),
    (DVQueryState.FAILED, 1, PollStep.FAILED),
    (DVQueryState.CANCELED, 5, PollStep.CANCELED),
    (DVQueryState.RUNNING, 1, PollStep.CONTINUE),
    (DVQueryState.RUNNING, 29, PollStep.CONTINUE),
    (DVQueryState.RUNNING, 30, PollStep.EXHAUSTED),
    (DVQueryState.FINISHED, 30, PollStep.FINISHED),
])
def test_next_step(state, checks, expected):
    assert next_step(state, checks, MAX_STATUS_CHECKS) is expected


@pytest.mark.parametrize("remote, state", [
    ("FINISHED", DVQueryState.FINISHED),
    ("RUNNING", DVQueryState.RUNNING),
    ("PROCESS_RUNNING", DVQueryState.RUNNING),
    ("EVENTS_RUNNING", DVQueryState.RUNNING),
    ("FAILED", DVQueryState.FAILED),
    ("FAILED_CLIENT", DVQueryState.FAILED),
    ("TIMED_OUT", DVQueryState.FAILED),
    ("CANCELED", DVQueryState.CANCELED),
    ("CANCELLED", DVQueryState.CANCELED),
    (None, DVQueryState.FAILED),
    ("", DVQueryState.FAILED),
])
def test_remote_status_vocabulary(remote, state):
    assert DVQueryState.from_remote(remote) is state


# ---- submit_and_await ----
@pytest.mark.asyncio
async def test_finished_on_first_check_never_sleeps(engine, api, submitted, fake_sleep):
    api.get("/dv/query-status").mock(return_value=_status("FINISHED"))

    outcome = await engine.submit_and_await("ProcessName Contains \"python\"", "2024-01-01T00:00:00Z",
                                            "2024-01-02T00:00:00Z")

    assert outcome == SearchFinished(query_id="q-1", checks=1)
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_running_running_finished(engine, api, submitted, fake_sleep):
    status = api.get("/dv/query-status").mock(side_effect=[
        _status("RUNNING"), _status("RUNNING"), _status("FINISHED"),
    ])

    outcome = await engine.submit_and_await("q", "a", "b")

    assert isinstance(outcome, SearchFinished)
    assert outcome.checks == 3
    assert status.call_count == 3
    assert fake_sleep.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_still_running_after_ceiling_is_not_an_error(engine, api, submitted, fake_sleep):
    status = api.get("/dv/query-status").mock(return_value=_status("RUNNING", progress=40))

    outcome = await engine.submit_and_await("q", "a", "b")

    assert outcome == SearchStillRunning(query_id="q-1", checks=30, progress=40)
    assert status.call_count == 30
    assert len(fake_sleep.calls) == 29
    raise_for_outcome(outcome)


@pytest.mark.asyncio
async def test_failed_stops_immediately(engine, api, submitted, fake_sleep):
    status = api.get("/dv/query-status").mock(return_value=_status("FAILED", error="syntax error"))

    outcome = await engine.submit_and_await("q", "a", "b")

    assert outcome == SearchFailed(query_id="q-1", detail="syntax error")
    assert status.call_count == 1
    assert fake_sleep.calls == []
    with pytest.raises(JobFailedError, match="Query q-1 failed: syntax error"):
        raise_for_outcome(outcome)


@pytest.mark.asyncio
async def test_canceled_is_terminal(engine, api, submitted, fake_sleep):
    api.get("/dv/query-status").mock(side_effect=[_status("RUNNING"), _status("CANCELED")])

    outcome = await engine.submit_and_await("q", "a", "b")

    assert outcome == SearchCanceled(query_id="q-1")
    assert fake_sleep.calls == [1.0]
    with pytest.raises(JobCanceledError, match="Query q-1 was canceled"):
        raise_for_outcome(outcome)


@pytest.mark.asyncio
async def test_submission_sends_scope_as_lists(engine, api, submitted):
    api.get("/dv/query-status").mock(return_value=_status("FINISHED"))

    await engine.submit_and_await("q", "a", "b", ScopeFilter(site_ids=["s1"], group_ids=[]))

    body = json.loads(submitted.calls.last.request.content)
    assert body == {"query": "q", "fromDate": "a", "toDate": "b", "siteIds": ["s1"]}


@pytest.mark.asyncio
async def test_rejected_submission(engine, api):
    api.post("/dv/init-query").respond(400, json={"errors": [{"title": "bad query"}]})

    with pytest.raises(SubmissionError):
        await engine.submit_and_await("q", "a", "b")
    assert len(api.calls) == 1


@pytest.mark.asyncio
async def test_submission_without_query_id(engine, api):
    api.post("/dv/init-query").respond(200, json={"data": {}})

    with pytest.raises(SubmissionError, match="no queryId"):
        await engine.submit("q", "a", "b")


@pytest.mark.asyncio
async def test_poll_callback_sees_every_check(engine, api, submitted):
    api.get("/dv/query-status").mock(side_effect=[_status("RUNNING"), _status("FINISHED")])
    seen = []

    async def on_poll(status, checks):
        seen.append((status.status, checks))

    await engine.submit_and_await("q", "a", "b", on_poll=on_poll)

    assert seen == [("RUNNING", 1), ("FINISHED", 2)]


# ---- fetch_events ----
@pytest.mark.asyncio
async def test_fetch_events_while_running_makes_no_events_call(engine, api):
    api.get("/dv/query-status").mock(return_value=_status("RUNNING", progress=55))
    events = api.get("/dv/events")

    outcome = await engine.fetch_events("q-1")

    assert outcome == EventsNotReady(query_id="q-1", progress=55)
    assert not events.called


@pytest.mark.asyncio
async def test_fetch_events_when_finished(engine, api):
    api.get("/dv/query-status").mock(return_value=_status("FINISHED"))
    events = api.get("/dv/events").respond(200, json={
        "data": [{"eventType": "Process Creation", "processName": "python"}],
        "pagination": {"nextCursor": "n1"},
    })

    outcome = await engine.fetch_events("q-1", limit=10)

    assert isinstance(outcome, EventsPage)
    assert outcome.page.items[0].processName == "python"
    assert outcome.page.next_cursor == "n1"
    params = events.calls.last.request.url.params
    assert params["queryId"] == "q-1"
    assert params["limit"] == "10"


@pytest.mark.asyncio
async def test_fetch_events_default_limit_is_fifty(engine, api):
    api.get("/dv/query-status").mock(return_value=_status("FINISHED"))
    events = api.get("/dv/events").respond(200, json={"data": []})

    await engine.fetch_events("q-1")

    assert events.calls.last.request.url.params["limit"] == "50"


@pytest.mark.asyncio
async def test_fetch_events_failed_and_canceled(engine, api):
    api.get("/dv/query-status").mock(side_effect=[_status("FAILED", error="boom"), _status("CANCELED")])
    events = api.get("/dv/events")

    assert await engine.fetch_events("q-1") == SearchFailed(query_id="q-1", detail="boom")
    assert await engine.fetch_events("q-1") == SearchCanceled(query_id="q-1")
    assert not events.called


@pytest.mark.asyncio
async def test_fetch_events_limit_over_hundred_rejected(engine, api):
    with pytest.raises(InvalidParameterError):
        await engine.fetch_events("q-1", limit=101)
    assert not api.calls


@pytest.mark.asyncio
async def test_missing_status_fails_instead_of_polling_forever(engine, api, submitted, fake_sleep):
    status = api.get("/dv/query-status").respond(200, json={"data": {"queryId": "q-1"}})

    outcome = await engine.submit_and_await("q", "a", "b")

    assert outcome == SearchFailed(query_id="q-1", detail="no status reported")
    assert status.call_count == 1
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_fetch_events_with_missing_status_is_failed(engine, api):
    api.get("/dv/query-status").respond(200, json={"data": {}})
    events = api.get("/dv/events")

    outcome = await engine.fetch_events("q-1")

    assert isinstance(outcome, SearchFailed)
    assert not events.called
