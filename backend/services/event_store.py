"""
Click Event Source Gateway

The attribution pipeline reads ad clicks through the ClickEventSource protocol
and never writes them. Two sources are provided:

- PostgresClickEventSource: reads the click_event table through the shared
  asyncpg pool. This is what the API uses.
- InMemoryClickEventSource: a list-backed source for tests and local runs.

Failure contract:
- SourceUnavailable when the event store cannot be reached or the query fails
- SourceMalformed when returned rows cannot be turned into ClickEvent

Neither is retried here; retry policy belongs to the caller.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Protocol, runtime_checkable

import asyncpg
from pydantic import ValidationError as PydanticValidationError

from backend.core.database import get_db_pool
from backend.core.exceptions import SourceMalformed, SourceUnavailable
from backend.models import ClickEvent
from backend.sql import CLICK_EVENTS_IN_WINDOW

logger = logging.getLogger(__name__)


@runtime_checkable
class ClickEventSource(Protocol):
    """Anything that can list click events inside a time window."""

    async def fetch(self, window_start: datetime, window_end: datetime) -> List[ClickEvent]:
        """Return click events with window_start <= timestamp <= window_end."""
        ...


class PostgresClickEventSource:
    """Click events stored in the click_event table."""

    async def fetch(self, window_start: datetime, window_end: datetime) -> List[ClickEvent]:
        try:
            pool = await get_db_pool()
            async with pool.acquire() as conn:
                rows = await conn.fetch(CLICK_EVENTS_IN_WINDOW, window_start, window_end)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError) as e:
            logger.exception("Click event store query failed")
            raise SourceUnavailable(f"Click event store unavailable: {e}") from e

        events = []
        for index, row in enumerate(rows, start=1):
            try:
                events.append(ClickEvent.model_validate(dict(row)))
            except PydanticValidationError as e:
                raise SourceMalformed(
                    f"Click event record {index} could not be parsed: {e.errors()[0]['msg']}"
                ) from e

        logger.info(
            f"Fetched {len(events)} click events between "
            f"{window_start.isoformat()} and {window_end.isoformat()}"
        )
        return events


class InMemoryClickEventSource:
    """
    List-backed click event source.

    Naive event timestamps are read in the timezone of the requested window,
    so fixtures can be written as local wall-clock times.
    """

    def __init__(self, events: Iterable[ClickEvent] = ()):
        self._events = list(events)

    def add(self, event: ClickEvent) -> None:
        self._events.append(event)

    async def fetch(self, window_start: datetime, window_end: datetime) -> List[ClickEvent]:
        matched = []
        for event in self._events:
            if event.timestamp.tzinfo is None and window_start.tzinfo is not None:
                event = event.model_copy(
                    update={'timestamp': event.timestamp.replace(tzinfo=window_start.tzinfo)}
                )
            if window_start <= event.timestamp <= window_end:
                matched.append(event)
        return matched
