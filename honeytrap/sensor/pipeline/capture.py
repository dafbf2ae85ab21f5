"""Event capture -- turns a decoy hit into a stored, broadcast attack event.

Per hit, the pipeline runs:

1. **Validate**: reduce the request body to an optional payload string
2. **Decide**: ask the outcome policy whether the hit was intercepted
3. **Enrich**: best-effort geolocation under its own deadline (no locks held)
4. **Commit**: stamp id + timestamp and append to the event store
5. **Attribute**: bump the counters of the matching decoy device
6. **Publish**: hand the event to the broadcast hub (fire-and-forget)

Steps 4-6 always happen in that order, so an observer that receives a push
can immediately find the event in a snapshot read.  Only a failed commit is
reported to the caller; enrichment, attribution and publish problems are
logged and swallowed because a decoy must always appear to respond normally.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import TYPE_CHECKING, Any

from honeytrap.sensor.log import hit_logger
from honeytrap.sensor.models.events import AttackEvent

if TYPE_CHECKING:
    from datetime import datetime

    from honeytrap.sensor.devices import DeviceTable
    from honeytrap.sensor.hub import BroadcastHub
    from honeytrap.sensor.models.enums import EndpointKind
    from honeytrap.sensor.pipeline.enrichment import GeoClient
    from honeytrap.sensor.pipeline.policy import OutcomePolicy
    from honeytrap.sensor.store.base import EventStore

logger = logging.getLogger(__name__)
hits = hit_logger()

UNKNOWN_ORIGIN = "unknown"


class CaptureError(RuntimeError):
    """Raised when a hit could not be committed to the event store."""


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def resolve_origin(forwarded_for: str | None, peer: str | None) -> str:
    """Pick the caller address for a hit.

    The first entry of a comma-separated ``X-Forwarded-For`` header wins;
    otherwise the transport peer; otherwise ``"unknown"``.
    """
    if forwarded_for is not None:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if peer:
        return peer
    return UNKNOWN_ORIGIN


def validate_payload(body: Any) -> str | None:
    """Serialise a structured request body, or ``None`` if there is nothing to log.

    Only JSON objects and arrays count.  Empty objects are treated as absent so
    that accidental empty bodies are not recorded as attacker payloads.
    """
    if body is None or not isinstance(body, dict | list):
        return None
    try:
        text = json.dumps(body, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return None
    if not text or text == "{}":
        return None
    return text


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CaptureService:
    """Process-level singleton wiring the capture pipeline together."""

    def __init__(
        self,
        *,
        store: EventStore,
        devices: DeviceTable,
        hub: BroadcastHub,
        policy: OutcomePolicy,
        geo: GeoClient | None = None,
    ) -> None:
        self._store = store
        self._devices = devices
        self._hub = hub
        self._policy = policy
        self._geo = geo

    async def capture(
        self,
        endpoint_kind: EndpointKind,
        method: str,
        raw_body: Any,
        origin_address: str | None,
    ) -> AttackEvent:
        """Record one hit and return the committed event.

        Raises ``CaptureError`` if the event could not be stored; in that case
        nothing was appended, attributed or published.
        """
        origin = origin_address or UNKNOWN_ORIGIN
        payload = validate_payload(raw_body)
        outcome = self._policy.decide(origin, endpoint_kind)

        geo = await self._geo.lookup(origin) if self._geo is not None else None

        event_id = uuid.uuid4().hex

        def build(now: datetime) -> AttackEvent:
            return AttackEvent(
                id=event_id,
                timestamp=now,
                origin_address=origin,
                endpoint_kind=endpoint_kind,
                method=method.upper(),
                payload=payload,
                outcome=outcome,
                origin_region=geo.region if geo else None,
                origin_city=geo.city if geo else None,
            )

        try:
            event = self._store.append_new(build)
        except Exception as exc:
            logger.exception("Capture of %s hit from %s failed", endpoint_kind, origin)
            msg = f"Could not record {endpoint_kind} hit"
            raise CaptureError(msg) from exc

        self._attribute(event)
        self._publish(event)

        hits.info(
            "Captured %s %s from %s: id=%s, blocked=%s",
            event.method,
            event.endpoint,
            origin,
            event.id,
            event.outcome,
        )
        return event

    def _attribute(self, event: AttackEvent) -> None:
        try:
            self._devices.record_hit(event.endpoint_kind, event.timestamp)
        except Exception:
            logger.exception("Device attribution of event %s failed", event.id)

    def _publish(self, event: AttackEvent) -> None:
        try:
            delivered = self._hub.publish(event)
        except Exception:
            logger.exception("Publish of event %s failed", event.id)
        else:
            logger.debug("Event %s pushed to %d subscribers", event.id, delivered)
