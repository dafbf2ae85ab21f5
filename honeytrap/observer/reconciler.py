"""Client-side reconciliation of the attack stream.

An observer learns about events through four paths that can race and
overlap: an on-demand snapshot, the bootstrap batch sent at subscribe time,
periodic polling of the latest event, and the live push stream.  They all go
through ``ClientReconciler.ingest`` and the same merge rule:

- an event whose id is already in the window is dropped;
- otherwise it is inserted in newest-first timestamp order and the window is
  truncated to its bound.

Polled and pushed events whose id has never been seen are reported as new
exactly once.  Snapshot and bootstrap events only mark ids as seen.

The seen-id memory is bounded: it holds the ``seen_limit`` most recently seen
ids (default ``MAX_CAPACITY``, never less than the window).  An id redelivered
after that many newer ids have been seen is announced again.  The sensor
retains at most ``MAX_CAPACITY`` events, so no snapshot, bootstrap or poll can
redeliver an event that old.

The hub gives no gap-filling guarantee, so after a stream disconnect the
reconciler flags that a fresh bootstrap is required before it can claim to be
in sync again.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable

from honeytrap.sensor.models.enums import EventSource
from honeytrap.sensor.models.events import AttackEvent
from honeytrap.sensor.store.memory import MAX_CAPACITY

MIN_WINDOW = 50
MAX_WINDOW = 200

_NOTIFYING_SOURCES = frozenset({EventSource.PUSH, EventSource.POLL})


class ClientReconciler:
    """Bounded, duplicate-free, newest-first window of attack events."""

    def __init__(self, window: int = MIN_WINDOW, *, seen_limit: int = MAX_CAPACITY) -> None:
        if not MIN_WINDOW <= window <= MAX_WINDOW:
            msg = f"window must be within [{MIN_WINDOW}, {MAX_WINDOW}], got {window}"
            raise ValueError(msg)
        self._bound = window
        self._events: list[AttackEvent] = []
        # Insertion-ordered so the oldest ids are forgotten first.
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._seen_limit = max(seen_limit, window)
        self._needs_bootstrap = True

    # -- Query -----------------------------------------------------------------

    @property
    def bound(self) -> int:
        return self._bound

    @property
    def events(self) -> list[AttackEvent]:
        """Copy of the current window, newest first."""
        return list(self._events)

    @property
    def needs_bootstrap(self) -> bool:
        return self._needs_bootstrap

    def __len__(self) -> int:
        return len(self._events)

    def __contains__(self, event_id: object) -> bool:
        return any(e.id == event_id for e in self._events)

    # -- Merge -----------------------------------------------------------------

    def ingest(self, events: Iterable[AttackEvent], source: EventSource) -> list[AttackEvent]:
        """Merge a batch delivered newest-first through *source*.

        Returns the events to announce as new (push / poll only), in the
        order they were delivered.
        """
        batch = list(events)
        fresh: list[AttackEvent] = []
        # Oldest first, so equal timestamps keep their delivered order.
        for event in reversed(batch):
            if self._merge(event, source):
                fresh.append(event)
        fresh.reverse()

        if source == EventSource.BOOTSTRAP:
            self._needs_bootstrap = False
        return fresh

    def ingest_one(self, event: AttackEvent, source: EventSource) -> bool:
        """Merge a single event.  Returns ``True`` if it should be announced."""
        return bool(self.ingest([event], source))

    def _merge(self, event: AttackEvent, source: EventSource) -> bool:
        first_sighting = event.id not in self._seen
        self._remember(event.id)

        if event.id not in self:
            index = self._insert_index(event)
            if index < self._bound:
                self._events.insert(index, event)
                del self._events[self._bound :]

        return first_sighting and source in _NOTIFYING_SOURCES

    def _insert_index(self, event: AttackEvent) -> int:
        # Ahead of equal timestamps: the later arrival counts as newer.
        for index, existing in enumerate(self._events):
            if existing.timestamp <= event.timestamp:
                return index
        return len(self._events)

    def _remember(self, event_id: str) -> None:
        if event_id in self._seen:
            self._seen.move_to_end(event_id)
            return
        self._seen[event_id] = None
        while len(self._seen) > self._seen_limit:
            self._seen.popitem(last=False)

    # -- Stream lifecycle ------------------------------------------------------

    def mark_disconnected(self) -> None:
        """The live stream dropped; continuity can no longer be assumed."""
        self._needs_bootstrap = True
