"""Attack read endpoints: snapshot, latest and stats.

Thin HTTP adapter over the event store and aggregator.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from honeytrap.sensor.deps import Stats, Store
from honeytrap.sensor.models.api import ApiError, envelope
from honeytrap.sensor.store.memory import MAX_CAPACITY

router = APIRouter(tags=["attacks"])


@router.get("/attacks")
async def list_attacks(
    store: Store,
    limit: int | None = Query(None, ge=0, le=MAX_CAPACITY, description="Return at most this many events."),
) -> dict:
    """Current retained events, newest first."""
    return envelope([event.to_wire() for event in store.snapshot(limit)])


@router.get("/attacks/latest", response_model=None, responses={404: {"model": ApiError}})
async def latest_attack(store: Store) -> dict | JSONResponse:
    """The single newest event.  404 is the expected "none yet" state."""
    event = store.latest()
    if event is None:
        body = ApiError(error="No attacks recorded yet")
        return JSONResponse(body.model_dump(exclude_none=True), status_code=status.HTTP_404_NOT_FOUND)
    return envelope(event.to_wire())


@router.get("/stats")
async def attack_stats(aggregator: Stats) -> dict:
    return envelope(aggregator.stats().model_dump(mode="json", by_alias=True))
