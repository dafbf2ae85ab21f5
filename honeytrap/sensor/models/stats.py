"""Rollup statistics derived from the retained events."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from honeytrap.sensor.models.enums import ThreatTier


class AttackStats(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_count: int = Field(alias="totalCount")
    unique_origin_count: int = Field(alias="uniqueOriginCount")
    threat_tier: ThreatTier = Field(alias="threatTier")
    computed_at: datetime = Field(alias="computedAt")

    intercepted_count: int = Field(default=0, alias="interceptedCount")
    by_endpoint: dict[str, int] = Field(default_factory=dict, alias="byEndpoint")
    last_event_at: datetime | None = Field(default=None, alias="lastEventAt")
