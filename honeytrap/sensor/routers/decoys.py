"""Decoy endpoints.

One route per ``EndpointKind`` at ``/honeypot/{kind}``.  Every request is a
hit, whatever its method: WebDAV verbs, ``TRACE``, ``CONNECT`` and made-up
methods are captured just like ``GET``.  The hit is acknowledged with the new
event id.  The body is only inspected when it is declared as JSON and fits
the size limit; anything else is recorded without a payload rather than
rejected, so the decoy always looks like a working device.

FastAPI routes always carry a method allow-list, so the decoys are plain
Starlette routes around an ASGI endpoint; a Starlette ``Route`` whose endpoint
is not a function matches every method.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from honeytrap.sensor.deps import get_capture
from honeytrap.sensor.models.api import CaptureAck, envelope
from honeytrap.sensor.models.enums import EndpointKind
from honeytrap.sensor.pipeline.capture import resolve_origin

MAX_BODY_BYTES = 10 * 1024


async def read_json_body(request: Request) -> Any:
    """Return the parsed JSON body, or ``None`` when absent/unparseable."""
    if "json" not in request.headers.get("content-type", ""):
        return None
    raw = await request.body()
    if not raw or len(raw) > MAX_BODY_BYTES:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


class DecoyEndpoint:
    """ASGI endpoint that records every request to one decoy as a hit."""

    def __init__(self, kind: EndpointKind) -> None:
        self.kind = kind

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        response = await self.handle_hit(request)
        await response(scope, receive, send)

    async def handle_hit(self, request: Request) -> JSONResponse:
        capture = get_capture(request)
        origin = resolve_origin(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
        )
        event = await capture.capture(self.kind, request.method, await read_json_body(request), origin)
        ack = CaptureAck(attack_id=event.id)
        return JSONResponse(envelope(ack.model_dump(by_alias=True), message="Simulated IoT device response"))


routes = [Route(kind.path, DecoyEndpoint(kind), name=f"decoy_{kind.value}") for kind in EndpointKind]
