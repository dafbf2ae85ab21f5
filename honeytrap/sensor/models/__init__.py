"""Data models for the sensor."""

from honeytrap.sensor.models.api import ApiError, CaptureAck, LiveMessage, SettingsView
from honeytrap.sensor.models.device import DeviceCreate, DeviceRecord
from honeytrap.sensor.models.enums import (
    DeviceStatus,
    EndpointKind,
    EventSource,
    LiveMessageType,
    ThreatTier,
)
from honeytrap.sensor.models.events import AttackEvent, GeoInfo
from honeytrap.sensor.models.stats import AttackStats

__all__ = [
    # API schemas
    "ApiError",
    # Events
    "AttackEvent",
    # Stats
    "AttackStats",
    "CaptureAck",
    # Devices
    "DeviceCreate",
    "DeviceRecord",
    # Enums
    "DeviceStatus",
    "EndpointKind",
    "EventSource",
    "GeoInfo",
    "LiveMessage",
    "LiveMessageType",
    "SettingsView",
    "ThreatTier",
]
