"""Shared enumerations used across the sensor."""

from __future__ import annotations

from enum import StrEnum

# -- Decoys ------------------------------------------------------------------


class EndpointKind(StrEnum):
    """Decoy device kinds.  Each kind is exposed at ``/honeypot/{kind}``."""

    CAMERA = "camera"
    LOCK = "lock"
    ROUTER = "router"
    THERMOSTAT = "thermostat"
    PLUG = "plug"

    @property
    def path(self) -> str:
        return f"/honeypot/{self.value}"


class DeviceStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


# -- Stats -------------------------------------------------------------------


class ThreatTier(StrEnum):
    """Coarse classification of the currently retained attack volume."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# -- Live delivery -----------------------------------------------------------


class LiveMessageType(StrEnum):
    """Message types on the live subscription channels (WebSocket / SSE)."""

    # Server -> observer
    STATUS = "status"
    LATEST_ATTACKS = "latest_attacks"
    ATTACK = "attack"

    # Observer -> server (WebSocket only)
    REQUEST_LATEST_ATTACKS = "request_latest_attacks"


class EventSource(StrEnum):
    """Delivery path an event reached an observer through."""

    SNAPSHOT = "snapshot"
    BOOTSTRAP = "bootstrap"
    POLL = "poll"
    PUSH = "push"
