"""Event store interface.

The event store is the single owner of the canonical attack sequence.  Every
other component (aggregator, hub, HTTP readers) goes through this contract;
nothing holds a second writable copy.

Ordering is newest-first by insertion.  The interface is synchronous: the
only backend is in-process memory, and the operations must also be callable
from worker threads.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol, runtime_checkable

from honeytrap.sensor.models.events import AttackEvent


@runtime_checkable
class EventStore(Protocol):
    """Bounded, append-only store of attack events."""

    @property
    def capacity(self) -> int:
        """Maximum number of retained events."""
        ...

    def append(self, event: AttackEvent) -> None:
        """Append an already-built event, evicting the oldest beyond capacity."""
        ...

    def append_new(self, build: Callable[[datetime], AttackEvent]) -> AttackEvent:
        """Build an event from the insertion instant and append it atomically."""
        ...

    def snapshot(self, limit: int | None = None) -> list[AttackEvent]:
        """Return up to *limit* events, newest first (all when ``None``)."""
        ...

    def latest(self) -> AttackEvent | None:
        """Return the newest event, or ``None`` when the store is empty."""
        ...

    def get(self, event_id: str) -> AttackEvent | None:
        """Return a retained event by id."""
        ...

    def count(self) -> int:
        ...
