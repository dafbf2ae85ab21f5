"""Health and read-only settings endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

from honeytrap.sensor.deps import Settings
from honeytrap.sensor.models.api import SettingsView, envelope

router = APIRouter(tags=["system"])


def health_payload() -> dict[str, str]:
    return {"status": "healthy", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/health")
async def health() -> dict[str, str]:
    return health_payload()


@router.get("/settings")
async def read_settings(settings: Settings) -> dict:
    """Dashboard settings.  ``retentionDays`` is informational only."""
    view = SettingsView(
        auto_block=settings.auto_block,
        threat_threshold=settings.threat_threshold,
        websocket_enabled=settings.websocket_enabled,
        retention_days=settings.retention_days,
    )
    return envelope(view.model_dump(by_alias=True))
