"""Rollup statistics over the retained events.

Stats are recomputed from a fresh store snapshot on every call; nothing is
cached.  Because the store is capped, every figure here describes what is
currently retained, not lifetime totals.  In particular the threat tier can
go down as old events are evicted.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from honeytrap.sensor.models.enums import ThreatTier
from honeytrap.sensor.models.stats import AttackStats

if TYPE_CHECKING:
    from honeytrap.sensor.store.base import EventStore

HIGH_THREAT_ABOVE = 30
MEDIUM_THREAT_ABOVE = 10


def classify_threat(total_count: int) -> ThreatTier:
    if total_count > HIGH_THREAT_ABOVE:
        return ThreatTier.HIGH
    if total_count > MEDIUM_THREAT_ABOVE:
        return ThreatTier.MEDIUM
    return ThreatTier.LOW


class Aggregator:
    def __init__(self, store: EventStore) -> None:
        self._store = store

    def stats(self) -> AttackStats:
        events = self._store.snapshot()
        by_endpoint = Counter(str(e.endpoint_kind) for e in events)
        return AttackStats(
            total_count=len(events),
            unique_origin_count=len({e.origin_address for e in events}),
            threat_tier=classify_threat(len(events)),
            computed_at=datetime.now(UTC),
            intercepted_count=sum(1 for e in events if e.outcome),
            by_endpoint=dict(by_endpoint),
            last_event_at=events[0].timestamp if events else None,
        )
