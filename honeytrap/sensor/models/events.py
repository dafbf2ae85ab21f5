"""Attack event models.

``AttackEvent`` is the canonical record produced by capture.  It is frozen:
once appended to the store it is never modified, so the hub and subscribers
can share the same instance without copying.

Wire names follow the dashboard API (``sourceIP``, ``blocked``, ``country``,
...) while Python code uses descriptive attribute names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from honeytrap.sensor.models.enums import EndpointKind


class GeoInfo(BaseModel):
    """Coarse geolocation returned by the enrichment client."""

    model_config = ConfigDict(frozen=True)

    region: str | None = None
    city: str | None = None


class AttackEvent(BaseModel):
    """One recorded interaction with a decoy endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    timestamp: datetime
    origin_address: str = Field(alias="sourceIP")
    endpoint_kind: EndpointKind = Field(alias="endpointKind")
    method: str
    payload: str | None = None
    outcome: bool = Field(alias="blocked")
    """``True`` when the hit was intercepted, ``False`` when it passed through."""

    origin_region: str | None = Field(default=None, alias="country")
    origin_city: str | None = Field(default=None, alias="city")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def endpoint(self) -> str:
        """Decoy path that was hit (e.g. ``/honeypot/camera``)."""
        return self.endpoint_kind.path

    def to_wire(self) -> dict[str, Any]:
        """Serialise for HTTP / live delivery.

        Optional fields that are unset (payload, geo) are omitted rather than
        sent as ``null``; ``timestamp`` becomes an ISO-8601 string.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
