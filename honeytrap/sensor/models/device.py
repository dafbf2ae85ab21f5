"""Decoy device records."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from honeytrap.sensor.models.enums import DeviceStatus, EndpointKind


class DeviceRecord(BaseModel):
    """A decoy device's identity and running counters.

    Counters (``attacks``, ``last_seen``) are only mutated by the device
    table while holding its lock.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    kind: EndpointKind = Field(alias="type")
    status: DeviceStatus = DeviceStatus.ONLINE
    attacks: int = 0
    ip: str
    location: str
    last_seen: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="lastSeen")
    firmware: str | None = None
    uptime: str | None = None


class DeviceCreate(BaseModel):
    """Input for registering an additional decoy device."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    kind: EndpointKind = Field(alias="type")
    ip: str
    location: str
    status: DeviceStatus = DeviceStatus.ONLINE
    firmware: str | None = None
    uptime: str | None = None
