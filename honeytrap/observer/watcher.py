"""Command-line observer for a running sensor.

Connects to ``/api/stream`` (Server-Sent Events) and, in parallel, polls
``/api/attacks/latest`` as a fallback.  Both paths, plus the initial snapshot
and every bootstrap batch, are merged through a ``ClientReconciler`` so each
attack is announced exactly once no matter which path delivered it first.

Every (re)connect requests a fresh bootstrap batch; the stream has no
gap-filling guarantee.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import anyio
import httpx
from loguru import logger
from pydantic import ValidationError

from honeytrap.observer.reconciler import MIN_WINDOW, ClientReconciler
from honeytrap.sensor.models.enums import EventSource, LiveMessageType
from honeytrap.sensor.models.events import AttackEvent


async def iter_sse(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, str]]:
    """Parse Server-Sent Event frames into ``(event, data)`` pairs.

    Comment lines (keep-alive pings) and frames without data are skipped.
    """
    event_type = "message"
    data_lines: list[str] = []
    async for line in lines:
        if not line:
            if data_lines:
                yield event_type, "\n".join(data_lines)
            event_type, data_lines = "message", []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value
        elif field == "data":
            data_lines.append(value)
    if data_lines:
        yield event_type, "\n".join(data_lines)


def parse_events(items: Any) -> list[AttackEvent]:
    """Validate wire-format events, skipping malformed entries."""
    if isinstance(items, dict):
        items = [items]
    if not isinstance(items, list):
        return []
    events: list[AttackEvent] = []
    for item in items:
        try:
            events.append(AttackEvent.model_validate(item))
        except ValidationError:
            logger.warning("Observer: skipping malformed event {!r}", item)
    return events


def _log_new_attack(event: AttackEvent) -> None:
    geo = ", ".join(part for part in (event.origin_city, event.origin_region) if part)
    logger.info(
        "New attack: {} {} from {}{} [{}]",
        event.method,
        event.endpoint,
        event.origin_address,
        f" ({geo})" if geo else "",
        "BLOCKED" if event.outcome else "ALLOWED",
    )


class EventWatcher:
    """Keeps a reconciled view of a sensor's attack stream."""

    def __init__(
        self,
        base_url: str,
        *,
        window: int = MIN_WINDOW,
        poll_interval: float = 3.0,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
        client: httpx.AsyncClient | None = None,
        on_new: Callable[[AttackEvent], None] | None = None,
    ) -> None:
        self.reconciler = ClientReconciler(window)
        self._poll_interval = poll_interval
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(10.0, read=None))
        self._on_new = on_new or _log_new_attack

    # -- Lifecycle -------------------------------------------------------------

    async def run(self) -> None:
        """Snapshot once, then stream and poll until cancelled."""
        logger.info("Observer: watching {}", self._client.base_url)
        try:
            try:
                await self.refresh_snapshot()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Observer: initial snapshot failed: {}", exc)

            async with anyio.create_task_group() as tg:
                tg.start_soon(self._stream_forever)
                if self._poll_interval > 0:
                    tg.start_soon(self._poll_forever)
        finally:
            if self._owns_client:
                await self._client.aclose()

    # -- Delivery paths --------------------------------------------------------

    async def refresh_snapshot(self) -> None:
        response = await self._client.get("/api/attacks", params={"limit": self.reconciler.bound})
        response.raise_for_status()
        events = parse_events(response.json().get("data"))
        self.reconciler.ingest(events, EventSource.SNAPSHOT)
        logger.debug("Observer: snapshot merged ({} events)", len(events))

    async def poll_latest(self) -> list[AttackEvent]:
        """Fetch the newest event.  Returns the events announced as new."""
        response = await self._client.get("/api/attacks/latest")
        if response.status_code == httpx.codes.NOT_FOUND:
            return []
        response.raise_for_status()
        return self._announce(parse_events(response.json().get("data")), EventSource.POLL)

    async def consume_stream(self) -> int:
        """Read one SSE connection until the server ends it.  Returns frame count."""
        frames = 0
        async with self._client.stream("GET", "/api/stream", params={"bootstrap": "true"}) as response:
            response.raise_for_status()
            async for event_type, data in iter_sse(response.aiter_lines()):
                frames += 1
                self.handle_frame(event_type, data)
        return frames

    def handle_frame(self, event_type: str, data: str) -> list[AttackEvent]:
        """Apply one live frame.  Returns the events announced as new."""
        try:
            body = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Observer: undecodable {} frame", event_type)
            return []

        if event_type == LiveMessageType.STATUS:
            server_time = body.get("serverTime") if isinstance(body, dict) else None
            logger.info("Observer: connected (server time {})", server_time)
            return []
        if event_type == LiveMessageType.LATEST_ATTACKS:
            self.reconciler.ingest(parse_events(body), EventSource.BOOTSTRAP)
            return []
        if event_type == LiveMessageType.ATTACK:
            return self._announce(parse_events(body), EventSource.PUSH)

        logger.debug("Observer: ignoring {} frame", event_type)
        return []

    def _announce(self, events: list[AttackEvent], source: EventSource) -> list[AttackEvent]:
        fresh = self.reconciler.ingest(events, source)
        for event in fresh:
            self._on_new(event)
        return fresh

    # -- Loops -----------------------------------------------------------------

    async def _stream_forever(self) -> None:
        delay = self._reconnect_delay
        while True:
            try:
                if await self.consume_stream():
                    delay = self._reconnect_delay
                logger.info("Observer: stream closed by server")
            except httpx.HTTPError as exc:
                logger.warning("Observer: stream error: {}", exc)

            self.reconciler.mark_disconnected()
            logger.info("Observer: reconnecting in {:.1f}s (will re-bootstrap)", delay)
            await anyio.sleep(delay)
            delay = min(delay * 2, self._max_reconnect_delay)

    async def _poll_forever(self) -> None:
        while True:
            await anyio.sleep(self._poll_interval)
            try:
                await self.poll_latest()
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("Observer: poll failed: {}", exc)
