"""Live subscription endpoints.

Two transports share the broadcast hub:

- ``WS /api/live`` -- bidirectional.  The server sends a ``status``
  handshake on connect; the observer may send
  ``{"type": "request_latest_attacks"}`` at any time and gets a
  ``latest_attacks`` batch back; every new event arrives as ``attack``.
- ``GET /api/stream`` -- Server-Sent Events for clients that cannot speak
  WebSocket.  The bootstrap batch is requested with ``?bootstrap=true``.

Both subscribe to the hub *before* reading the bootstrap batch, so an event
captured in between shows up in both and the observer's dedup removes the
overlap; nothing falls into a gap.
"""

from __future__ import annotations

import contextlib
import json
from collections.abc import AsyncIterator

import anyio
from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from loguru import logger
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse
from starlette.websockets import WebSocketState

from honeytrap.sensor.deps import Hub, Settings
from honeytrap.sensor.hub import BroadcastHub, HubClosedError, Subscriber
from honeytrap.sensor.models.api import LiveMessage, status_payload
from honeytrap.sensor.models.enums import LiveMessageType

router = APIRouter(tags=["live"])


def _latest_attacks(hub: BroadcastHub) -> list[dict]:
    return [event.to_wire() for event in hub.bootstrap()]


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


@router.websocket("/live")
async def live_socket(websocket: WebSocket, hub: Hub, settings: Settings) -> None:
    if not settings.websocket_enabled:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Live updates disabled")
        return

    try:
        subscriber = hub.subscribe()
    except HubClosedError:
        await websocket.close(code=status.WS_1001_GOING_AWAY, reason="Sensor shutting down")
        return

    try:
        await websocket.accept()
        await _send(websocket, LiveMessageType.STATUS, status_payload())
        async with anyio.create_task_group() as tg:
            tg.start_soon(_pump_events, websocket, subscriber, tg.cancel_scope)
            await _serve_requests(websocket, hub)
            tg.cancel_scope.cancel()
    except WebSocketDisconnect:
        pass
    finally:
        hub.unsubscribe(subscriber)
        if WebSocketState.DISCONNECTED not in (websocket.client_state, websocket.application_state):
            with contextlib.suppress(RuntimeError, WebSocketDisconnect):
                await websocket.close()


async def _send(websocket: WebSocket, kind: LiveMessageType, data: object) -> None:
    await websocket.send_json(LiveMessage(type=kind, data=data).model_dump(mode="json"))


async def _pump_events(websocket: WebSocket, subscriber: Subscriber, scope: anyio.CancelScope) -> None:
    """Forward hub events to the socket until the subscriber closes."""
    try:
        async for event in subscriber:
            await _send(websocket, LiveMessageType.ATTACK, event.to_wire())
    except WebSocketDisconnect:
        pass
    scope.cancel()


async def _serve_requests(websocket: WebSocket, hub: BroadcastHub) -> None:
    """Answer observer requests until the client disconnects."""
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = LiveMessage.model_validate_json(raw)
            except ValidationError:
                logger.debug("Live: ignoring malformed message {!r}", raw[:200])
                continue
            if message.type == LiveMessageType.REQUEST_LATEST_ATTACKS:
                await _send(websocket, LiveMessageType.LATEST_ATTACKS, _latest_attacks(hub))
            else:
                logger.debug("Live: ignoring unexpected message type {}", message.type)
    except WebSocketDisconnect:
        return


# ---------------------------------------------------------------------------
# Server-Sent Events
# ---------------------------------------------------------------------------


@router.get("/stream")
async def live_stream(
    hub: Hub,
    bootstrap: bool = Query(True, description="Send the latest attacks right after the handshake."),
) -> EventSourceResponse:
    try:
        subscriber = hub.subscribe()
    except HubClosedError:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Sensor shutting down.") from None
    return EventSourceResponse(sse_events(hub, subscriber, bootstrap=bootstrap))


async def sse_events(hub: BroadcastHub, subscriber: Subscriber, *, bootstrap: bool) -> AsyncIterator[dict]:
    """SSE frames for one subscriber.  Unsubscribes when the client goes away."""
    try:
        yield {"event": LiveMessageType.STATUS.value, "data": json.dumps(status_payload())}
        if bootstrap:
            yield {"event": LiveMessageType.LATEST_ATTACKS.value, "data": json.dumps(_latest_attacks(hub))}
        async for event in subscriber:
            yield {"event": LiveMessageType.ATTACK.value, "id": event.id, "data": json.dumps(event.to_wire())}
    finally:
        hub.unsubscribe(subscriber)
