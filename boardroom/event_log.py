"""Append-only, timestamp-ordered record of discussion events."""

import dataclasses
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from boardroom.models import AgentEvent

_MIN_STEP = timedelta(milliseconds=1)


def utcnow() -> datetime:
    """Current UTC time truncated to whole milliseconds."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class EventLog:
    """Ordered event store owned by a single discussion controller.

    ``append`` stamps each event with ``max(now, last + 1ms)`` so timestamps
    strictly increase even when the wall clock steps backwards. Readers only
    ever receive tuples, never the internal list.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._events: list[AgentEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: AgentEvent) -> int:
        """Stamp and store ``event``. Returns its sequence position."""
        stamp = self._clock()
        if self._events:
            floor = self._events[-1].timestamp + _MIN_STEP
            if stamp < floor:
                stamp = floor
        self._events.append(dataclasses.replace(event, timestamp=stamp))
        return len(self._events) - 1

    def snapshot(self) -> tuple[AgentEvent, ...]:
        return tuple(self._events)

    def last_timestamp(self) -> datetime | None:
        return self._events[-1].timestamp if self._events else None
