"""In-memory bounded event store.

Events are kept in a deque with the newest event at the left::

    [newest, ..., oldest]

Appends push on the left; eviction pops from the right until the store is
back at capacity, so eviction is FIFO by insertion order regardless of any
event field.

A single ``threading.Lock`` covers append + evict as one step and every read,
so a reader can never observe a partially appended event or a size above
capacity.  The lock is never held across an ``await``.

Id uniqueness is checked against the retained events.  Lifetime uniqueness
(after eviction) comes from capture assigning random UUIDs.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from itertools import islice

from honeytrap.sensor.models.events import AttackEvent

MAX_CAPACITY = 1000


class DuplicateEventError(RuntimeError):
    """Raised when an event id is appended twice.  Always a programming error."""


class BoundedEventStore:
    """Thread-safe, capacity-capped, newest-first event store."""

    def __init__(self, capacity: int = MAX_CAPACITY) -> None:
        if capacity < 1:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._events: deque[AttackEvent] = deque()
        self._index: dict[str, AttackEvent] = {}
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    # -- Write -----------------------------------------------------------------

    def append(self, event: AttackEvent) -> None:
        """Append *event* as the newest entry.

        Callers are responsible for non-decreasing timestamps; capture uses
        ``append_new`` which guarantees it.
        """
        with self._lock:
            self._append_locked(event)

    def append_new(self, build: Callable[[datetime], AttackEvent]) -> AttackEvent:
        """Stamp, build and append an event under the write lock.

        The instant handed to *build* is never earlier than the current
        newest event's timestamp, so timestamp order always agrees with
        insertion order even if the wall clock steps backwards.
        """
        with self._lock:
            now = datetime.now(UTC)
            if self._events and now < self._events[0].timestamp:
                now = self._events[0].timestamp
            event = build(now)
            self._append_locked(event)
        return event

    def _append_locked(self, event: AttackEvent) -> None:
        if event.id in self._index:
            msg = f"Event '{event.id}' already stored"
            raise DuplicateEventError(msg)

        self._events.appendleft(event)
        self._index[event.id] = event
        while len(self._events) > self._capacity:
            evicted = self._events.pop()
            del self._index[evicted.id]

        assert len(self._events) <= self._capacity  # noqa: S101

    # -- Read ------------------------------------------------------------------

    def snapshot(self, limit: int | None = None) -> list[AttackEvent]:
        if limit is not None and limit < 0:
            msg = f"limit must be non-negative, got {limit}"
            raise ValueError(msg)
        with self._lock:
            if limit is None:
                return list(self._events)
            return list(islice(self._events, limit))

    def latest(self) -> AttackEvent | None:
        with self._lock:
            return self._events[0] if self._events else None

    def get(self, event_id: str) -> AttackEvent | None:
        with self._lock:
            return self._index.get(event_id)

    def count(self) -> int:
        with self._lock:
            return len(self._events)
