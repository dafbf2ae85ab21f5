"""Unit tests for BoundedEventStore.

No app or event loop required -- the store is a plain thread-safe object.
"""

from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from honeytrap.sensor.models.enums import EndpointKind
from honeytrap.sensor.models.events import AttackEvent
from honeytrap.sensor.store.base import EventStore
from honeytrap.sensor.store.memory import MAX_CAPACITY, BoundedEventStore, DuplicateEventError


@pytest.fixture
def store() -> BoundedEventStore:
    return BoundedEventStore()


def _builder(origin: str = "198.51.100.1"):
    event_id = uuid.uuid4().hex

    def build(now: datetime) -> AttackEvent:
        return AttackEvent(
            id=event_id,
            timestamp=now,
            origin_address=origin,
            endpoint_kind=EndpointKind.ROUTER,
            method="GET",
            outcome=False,
        )

    return build


def test_satisfies_protocol(store: BoundedEventStore) -> None:
    assert isinstance(store, EventStore)
    assert store.capacity == MAX_CAPACITY == 1000


def test_empty_store(store: BoundedEventStore) -> None:
    assert store.snapshot() == []
    assert store.latest() is None
    assert store.count() == 0


def test_snapshot_is_newest_first(store: BoundedEventStore, make_event) -> None:
    events = [make_event(i) for i in range(5)]
    for event in events:
        store.append(event)

    assert [e.id for e in store.snapshot()] == [e.id for e in reversed(events)]
    assert store.latest() == events[-1]
    assert store.count() == 5


def test_capacity_never_exceeded(store: BoundedEventStore, make_event) -> None:
    events = [make_event(i) for i in range(MAX_CAPACITY + 25)]
    for event in events:
        store.append(event)
        assert store.count() <= MAX_CAPACITY

    retained = store.snapshot()
    assert len(retained) == MAX_CAPACITY
    # Exactly the most recent MAX_CAPACITY insertions survive.
    assert [e.id for e in retained] == [e.id for e in reversed(events[-MAX_CAPACITY:])]


def test_eviction_is_fifo_by_insertion_not_timestamp(make_event) -> None:
    store = BoundedEventStore(capacity=3)
    # Timestamps deliberately run backwards; eviction must ignore them.
    events = [make_event(-i) for i in range(5)]
    for event in events:
        store.append(event)

    assert [e.id for e in store.snapshot()] == [events[4].id, events[3].id, events[2].id]
    assert store.get(events[0].id) is None
    assert store.get(events[4].id) == events[4]


def test_snapshot_limit(store: BoundedEventStore, make_event) -> None:
    for i in range(10):
        store.append(make_event(i))

    assert len(store.snapshot(3)) == 3
    assert store.snapshot(3) == store.snapshot()[:3]
    assert store.snapshot(0) == []
    assert len(store.snapshot(50)) == 10


def test_snapshot_negative_limit_rejected(store: BoundedEventStore) -> None:
    with pytest.raises(ValueError, match="non-negative"):
        store.snapshot(-1)


def test_snapshot_is_a_copy(store: BoundedEventStore, make_event) -> None:
    store.append(make_event(1))
    view = store.snapshot()
    view.clear()
    assert store.count() == 1


def test_duplicate_id_is_rejected(store: BoundedEventStore, make_event) -> None:
    store.append(make_event(1, event_id="dup"))
    with pytest.raises(DuplicateEventError):
        store.append(make_event(2, event_id="dup"))
    assert store.count() == 1


def test_events_are_immutable(store: BoundedEventStore, make_event) -> None:
    store.append(make_event(1))
    event = store.latest()
    assert event is not None
    with pytest.raises(ValidationError):
        event.method = "DELETE"  # type: ignore[misc]


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError):
        BoundedEventStore(capacity=0)


def test_append_new_keeps_timestamps_monotonic(store: BoundedEventStore, make_event) -> None:
    future = datetime.now(UTC) + timedelta(hours=1)
    store.append(make_event(timestamp=future))

    event = store.append_new(_builder())
    assert event.timestamp >= future
    assert store.latest() == event


def test_concurrent_appends_keep_ids_unique_and_order(store: BoundedEventStore) -> None:
    """10,000 appends from many threads: capped, unique and newest-first."""
    total = 10_000
    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(lambda _: store.append_new(_builder()), range(total)))

    assert len({e.id for e in results}) == total
    retained = store.snapshot()
    assert len(retained) == MAX_CAPACITY
    assert len({e.id for e in retained}) == MAX_CAPACITY

    timestamps = [e.timestamp for e in retained]
    assert timestamps == sorted(timestamps, reverse=True)


def test_readers_never_see_more_than_capacity() -> None:
    store = BoundedEventStore(capacity=50)
    stop = threading.Event()
    violations: list[int] = []

    def reader() -> None:
        while not stop.is_set():
            size = len(store.snapshot())
            if size > store.capacity or store.count() > store.capacity:
                violations.append(size)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda i: store.append_new(_builder(f"198.51.100.{i % 250}")), range(2_000)))
    finally:
        stop.set()
        for t in threads:
            t.join()

    assert violations == []
    assert store.count() == 50
