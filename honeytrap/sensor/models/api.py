"""API response schemas.

Every JSON endpoint wraps its payload in the dashboard's envelope:
``{"data": ...}`` on success, ``{"error": ..., "message": ...}`` on failure.
Domain models (``AttackEvent``, ``DeviceRecord``, ``AttackStats``) are
serialised by alias inside ``data``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from honeytrap.sensor.models.enums import LiveMessageType


class CaptureAck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    attack_id: str = Field(alias="attackId")


class ApiError(BaseModel):
    error: str
    message: str | None = None


class SettingsView(BaseModel):
    """Read-only projection of dashboard-facing settings."""

    model_config = ConfigDict(populate_by_name=True)

    auto_block: bool = Field(alias="autoBlock")
    threat_threshold: int = Field(alias="threatThreshold")
    websocket_enabled: bool = Field(alias="websocketEnabled")
    retention_days: int = Field(alias="retentionDays")


class LiveMessage(BaseModel):
    """Envelope for one message on the WebSocket channel."""

    type: LiveMessageType
    data: Any = None


def status_payload() -> dict[str, str]:
    """Handshake body sent proactively when an observer connects."""
    return {"message": "Connected", "serverTime": datetime.now(UTC).isoformat()}


def envelope(data: Any, message: str | None = None) -> dict[str, Any]:
    """Wrap *data* in the success envelope."""
    body: dict[str, Any] = {"data": data}
    if message is not None:
        body["message"] = message
    return body
