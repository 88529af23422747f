"""Deep Visibility query lifecycle.

A query is submitted once, then observed: the console moves it from
RUNNING to one of FINISHED, FAILED or CANCELED and the client only ever
reads that status. Two entry points share the same status check:

    submit_and_await  submit, then poll on a fixed cadence up to a fixed
                      number of status checks. Running out of checks is a
                      valid outcome (``SearchStillRunning``), not an error.
    fetch_events      re-check status, then fetch one page of events only
                      when the query is FINISHED. Safe to call repeatedly
                      with the same query id.

Lifecycle states come back as outcome values; ``raise_for_outcome`` turns
the terminal failures into exceptions at the caller's boundary.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict

from .client import DV_EVENTS, SentinelOneClient
from .errors import JobCanceledError, JobFailedError
from .filters import ScopeFilter
from .models import DVQueryState, DVQueryStatus, Page
from .validators import check_limit

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 1.0
MAX_STATUS_CHECKS = 30
DEFAULT_EVENT_LIMIT = DV_EVENTS.default_limit
MAX_EVENT_LIMIT = DV_EVENTS.max_limit

Sleep = Callable[[float], Awaitable[None]]
PollCallback = Callable[[DVQueryStatus, int], Awaitable[None]]


class _Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    query_id: str


class SearchFinished(_Outcome):
    checks: int


class SearchStillRunning(_Outcome):
    checks: int
    progress: int = 0


class SearchFailed(_Outcome):
    detail: Optional[str] = None


class SearchCanceled(_Outcome):
    pass


class EventsNotReady(_Outcome):
    progress: int = 0


class EventsPage(_Outcome):
    page: Page


SearchOutcome = Union[SearchFinished, SearchStillRunning, SearchFailed, SearchCanceled]
EventsOutcome = Union[EventsPage, EventsNotReady, SearchFailed, SearchCanceled]


class PollStep(str, Enum):
    CONTINUE = "continue"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELED = "canceled"
    EXHAUSTED = "exhausted"


def next_step(state: DVQueryState, checks: int, max_checks: int) -> PollStep:
    """Decide what follows the ``checks``-th status observation."""
    if state is DVQueryState.FINISHED:
        return PollStep.FINISHED
    if state is DVQueryState.FAILED:
        return PollStep.FAILED
    if state is DVQueryState.CANCELED:
        return PollStep.CANCELED
    if checks >= max_checks:
        return PollStep.EXHAUSTED
    return PollStep.CONTINUE


def raise_for_outcome(outcome: Union[SearchOutcome, EventsOutcome]) -> None:
    if isinstance(outcome, SearchFailed):
        raise JobFailedError(outcome.query_id, outcome.detail)
    if isinstance(outcome, SearchCanceled):
        raise JobCanceledError(outcome.query_id)


class DeepVisibility:
    def __init__(
        self,
        client: SentinelOneClient,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_checks: int = MAX_STATUS_CHECKS,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.max_checks = max_checks
        self._sleep = sleep

    async def submit(self, query: str, from_date: str, to_date: str,
                     scope: ScopeFilter | None = None) -> str:
        query_id = await self.client.init_dv_query(query, from_date, to_date, scope)
        logger.info("Deep Visibility query %s submitted (%s -> %s)", query_id, from_date, to_date)
        return query_id

    async def submit_and_await(
        self,
        query: str,
        from_date: str,
        to_date: str,
        scope: ScopeFilter | None = None,
        on_poll: PollCallback | None = None,
    ) -> SearchOutcome:
        query_id = await self.submit(query, from_date, to_date, scope)
        return await self.await_query(query_id, on_poll=on_poll)

    async def await_query(self, query_id: str, on_poll: PollCallback | None = None) -> SearchOutcome:
        checks = 0
        while True:
            status = await self.client.dv_query_status(query_id)
            checks += 1
            logger.debug("query %s check %d/%d: %s", query_id, checks, self.max_checks, status.state.value)
            if on_poll is not None:
                await on_poll(status, checks)

            step = next_step(status.state, checks, self.max_checks)
            if step is PollStep.CONTINUE:
                await self._sleep(self.poll_interval)
                continue

            logger.info("query %s stopped polling after %d check(s): %s", query_id, checks, step.value)
            if step is PollStep.FINISHED:
                return SearchFinished(query_id=query_id, checks=checks)
            if step is PollStep.FAILED:
                return SearchFailed(query_id=query_id, detail=status.failure_detail)
            if step is PollStep.CANCELED:
                return SearchCanceled(query_id=query_id)
            return SearchStillRunning(query_id=query_id, checks=checks,
                                      progress=status.progressStatus or 0)

    async def fetch_events(self, query_id: str, limit: int | None = None,
                           cursor: str | None = None) -> EventsOutcome:
        limit = check_limit(DEFAULT_EVENT_LIMIT if limit is None else limit, MAX_EVENT_LIMIT)

        # Status can change between calls, so it is re-read before every page.
        status = await self.client.dv_query_status(query_id)
        state = status.state
        if state is DVQueryState.RUNNING:
            return EventsNotReady(query_id=query_id, progress=status.progressStatus or 0)
        if state is DVQueryState.FAILED:
            return SearchFailed(query_id=query_id, detail=status.failure_detail)
        if state is DVQueryState.CANCELED:
            return SearchCanceled(query_id=query_id)

        page = await self.client.dv_events(query_id, limit=limit, cursor=cursor)
        return EventsPage(query_id=query_id, page=page)
