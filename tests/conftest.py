"""Shared test fixtures.

Everything runs in-process: the event store, hub and device table are plain
Python objects, and the geolocation provider is replaced by
``httpx.MockTransport`` where a test needs one.  No network access is made.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta

import pytest

from honeytrap.sensor.models.enums import EndpointKind
from honeytrap.sensor.models.events import AttackEvent
from honeytrap.sensor.settings import _get_settings_cached

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def sensor_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Deterministic sensor settings: no geo lookups, every hit intercepted."""
    monkeypatch.setenv("HONEY_GEO_ENABLED", "false")
    monkeypatch.setenv("HONEY_INTERCEPT_PROBABILITY", "1.0")
    monkeypatch.setenv("HONEY_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("HONEY_HIT_LOG_LEVEL", "WARNING")
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()


@pytest.fixture
def make_event() -> Callable[..., AttackEvent]:
    """Factory for events with predictable, increasing timestamps.

    ``make_event(n)`` is stamped ``n`` seconds after a fixed base time, so a
    higher ``n`` is a newer event.
    """

    def _make(
        n: int = 0,
        *,
        event_id: str | None = None,
        origin: str = "203.0.113.7",
        kind: EndpointKind = EndpointKind.CAMERA,
        outcome: bool = True,
        timestamp: datetime | None = None,
        payload: str | None = None,
    ) -> AttackEvent:
        return AttackEvent(
            id=event_id or uuid.uuid4().hex,
            timestamp=timestamp or BASE_TIME + timedelta(seconds=n),
            origin_address=origin,
            endpoint_kind=kind,
            method="POST",
            payload=payload,
            outcome=outcome,
        )

    return _make
