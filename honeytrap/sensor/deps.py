"""FastAPI dependency injection for the sensor's process-level singletons.

Usage in route handlers::

    @router.get("/attacks")
    async def list_attacks(store: Store) -> dict:
        ...

The singletons are attached to ``app.state`` by the lifespan.  Dependencies
raise HTTP 503 if they are missing (e.g. a test app without lifespan).
``HTTPConnection`` is used instead of ``Request`` so the same aliases work in
WebSocket handlers.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection

from honeytrap.sensor.devices import DeviceTable
from honeytrap.sensor.hub import BroadcastHub
from honeytrap.sensor.pipeline.aggregator import Aggregator
from honeytrap.sensor.pipeline.capture import CaptureService
from honeytrap.sensor.settings import HoneySettings
from honeytrap.sensor.store.base import EventStore


def _state(conn: HTTPConnection, name: str) -> Any:
    value = getattr(conn.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Sensor not initialised ({name} missing).",
        )
    return value


def get_store(conn: HTTPConnection) -> EventStore:
    return _state(conn, "store")


def get_devices(conn: HTTPConnection) -> DeviceTable:
    return _state(conn, "devices")


def get_hub(conn: HTTPConnection) -> BroadcastHub:
    return _state(conn, "hub")


def get_capture(conn: HTTPConnection) -> CaptureService:
    return _state(conn, "capture")


def get_aggregator(conn: HTTPConnection) -> Aggregator:
    return _state(conn, "aggregator")


def get_app_settings(conn: HTTPConnection) -> HoneySettings:
    """Settings the running app was built with."""
    return _state(conn, "settings")


# -- Annotated type aliases for concise route signatures ---------------------

Store = Annotated[EventStore, Depends(get_store)]
"""Annotated dependency: the bounded event store."""

Devices = Annotated[DeviceTable, Depends(get_devices)]

Hub = Annotated[BroadcastHub, Depends(get_hub)]
"""Annotated dependency: the live broadcast hub."""

Capture = Annotated[CaptureService, Depends(get_capture)]

Stats = Annotated[Aggregator, Depends(get_aggregator)]

Settings = Annotated[HoneySettings, Depends(get_app_settings)]
