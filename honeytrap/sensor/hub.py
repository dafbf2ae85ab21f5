"""In-process broadcast hub for live attack delivery.

Tracks connected observers (WebSocket / SSE) and fans newly captured events
out to each of them.  Ephemeral -- empty on process restart.  The hub never
owns events; it forwards references to the immutable ``AttackEvent``
instances held by the event store.

Delivery contract:

- ``publish`` never waits on a subscriber.  Each subscriber has a bounded
  buffer; when it is full the **oldest** buffered event is dropped and the
  subscriber's ``dropped`` counter is incremented.
- A subscriber sees delivered events in publish order.  Gaps are possible
  after drops; observers re-bootstrap to recover.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from honeytrap.sensor.models.events import AttackEvent
    from honeytrap.sensor.store.base import EventStore


class HubClosedError(RuntimeError):
    """Raised when subscribing to a hub that is shutting down."""


class Subscriber:
    """One observer connection's outbound buffer.

    Consumers iterate with ``async for event in subscriber``; iteration ends
    once the subscriber is closed and its buffer is drained.
    """

    def __init__(self, maxsize: int = 100) -> None:
        if maxsize < 1:
            msg = f"maxsize must be positive, got {maxsize}"
            raise ValueError(msg)
        self.subscriber_id = uuid.uuid4().hex
        self.joined_at = datetime.now(UTC)
        self.dropped = 0
        self._buffer: deque[AttackEvent] = deque(maxlen=maxsize)
        self._ready = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def offer(self, event: AttackEvent) -> bool:
        """Buffer *event* without blocking.  Returns ``False`` once closed."""
        if self._closed:
            return False
        if len(self._buffer) == self._buffer.maxlen:
            # deque(maxlen) discards from the left on append
            self.dropped += 1
        self._buffer.append(event)
        self._ready.set()
        return True

    def close(self) -> None:
        self._closed = True
        self._ready.set()

    async def next_event(self) -> AttackEvent | None:
        """Wait for the next buffered event; ``None`` once closed and drained."""
        while not self._buffer:
            if self._closed:
                return None
            self._ready.clear()
            await self._ready.wait()
        return self._buffer.popleft()

    def __aiter__(self) -> AsyncIterator[AttackEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[AttackEvent]:
        while (event := await self.next_event()) is not None:
            yield event


class BroadcastHub:
    """Registry of live subscribers plus bootstrap reads from the store.

    All methods are called from the event loop; ``publish`` iterates a
    snapshot of the registry so subscribers may join or leave concurrently.
    """

    def __init__(self, store: EventStore, *, queue_size: int = 100, bootstrap_size: int = 10) -> None:
        self._store = store
        self._queue_size = queue_size
        self._bootstrap_size = bootstrap_size
        self._subscribers: dict[str, Subscriber] = {}
        self._closed = False

    # -- Membership ------------------------------------------------------------

    def subscribe(self) -> Subscriber:
        """Register a new subscriber.  Raises ``HubClosedError`` after ``close``."""
        if self._closed:
            raise HubClosedError
        subscriber = Subscriber(self._queue_size)
        self._subscribers[subscriber.subscriber_id] = subscriber
        logger.debug("Hub: subscriber {} joined (total={})", subscriber.subscriber_id, len(self._subscribers))
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove and close *subscriber*.  Safe to call repeatedly."""
        removed = self._subscribers.pop(subscriber.subscriber_id, None)
        subscriber.close()
        if removed is not None:
            logger.debug(
                "Hub: subscriber {} left (dropped={}, total={})",
                subscriber.subscriber_id,
                subscriber.dropped,
                len(self._subscribers),
            )

    # -- Delivery --------------------------------------------------------------

    def bootstrap(self, limit: int | None = None) -> list[AttackEvent]:
        """Most recent events for a newly joined observer, newest first."""
        size = self._bootstrap_size if limit is None else min(limit, self._bootstrap_size)
        return self._store.snapshot(max(size, 0))

    def publish(self, event: AttackEvent) -> int:
        """Offer *event* to every current subscriber.  Returns the fan-out count."""
        delivered = 0
        for subscriber in list(self._subscribers.values()):
            if subscriber.offer(event):
                delivered += 1
        return delivered

    # -- Query -----------------------------------------------------------------

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # -- Lifecycle -------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> int:
        """Refuse new subscribers and end every live stream.

        Returns the number of subscribers that were connected.
        """
        self._closed = True
        subscribers = list(self._subscribers.values())
        self._subscribers.clear()
        for subscriber in subscribers:
            subscriber.close()
        logger.info("Hub: closed ({} subscribers released)", len(subscribers))
        return len(subscribers)
