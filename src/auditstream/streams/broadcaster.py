"""
In-process fan-out of events to Server-Sent-Events subscribers.

Every subscriber owns a bounded queue. Publishing never blocks: a subscriber
whose queue is full misses the event, the others still receive it.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog

from auditstream.core.utils.logging import log_structured
from auditstream.streams.events import ServerSentEvent, StreamChannel

logger = structlog.get_logger(__name__)

# Queue item that ends a stream.
_CLOSED = None


class EventBroadcaster:
    """Channel-keyed event hub for streaming responses. Event-loop only."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: dict[StreamChannel, set[asyncio.Queue[ServerSentEvent | None]]] = {
            channel: set() for channel in StreamChannel
        }
        self.closed = False

    def subscriber_count(self, channel: StreamChannel | str | None = None) -> int:
        if channel is None:
            return sum(len(queues) for queues in self._subscribers.values())
        return len(self._subscribers[StreamChannel.resolve(channel)])

    @asynccontextmanager
    async def subscribe(self, channel: StreamChannel | str) -> AsyncIterator[asyncio.Queue[ServerSentEvent | None]]:
        """Register a subscriber queue for ``channel`` until the block exits."""
        channel = StreamChannel.resolve(channel)
        queue: asyncio.Queue[ServerSentEvent | None] = asyncio.Queue(maxsize=self.queue_size)
        if self.closed:
            queue.put_nowait(_CLOSED)

        self._subscribers[channel].add(queue)
        logger.info("Subscriber connected", channel=channel.value, subscribers=len(self._subscribers[channel]))
        try:
            yield queue
        finally:
            self._subscribers[channel].discard(queue)
            logger.info("Subscriber disconnected", channel=channel.value, subscribers=len(self._subscribers[channel]))

    def publish(self, channel: StreamChannel | str, payload: Any, event_id: str | None = None) -> int:
        """
        Send ``payload`` to every subscriber of ``channel``.

        Strings are sent as-is; other payloads are JSON-encoded. Returns the
        number of subscribers that received the event.
        """
        channel = StreamChannel.resolve(channel)
        event = ServerSentEvent.from_payload(payload, event=channel.event_name, event_id=event_id)

        delivered = 0
        for queue in list(self._subscribers[channel]):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                log_structured(
                    logger,
                    "Subscriber queue full, dropping event",
                    level="warning",
                    channel=channel.value,
                    queue_size=self.queue_size,
                )
        return delivered

    async def events(
        self,
        channel: StreamChannel | str,
        keepalive_seconds: float = 15.0,
        retry_ms: int | None = None,
    ) -> AsyncIterator[ServerSentEvent]:
        """
        Yield events for one subscriber until the broadcaster closes.

        Starts with a ``connected`` comment carrying the reconnect interval and
        emits a ``keepalive`` comment after ``keepalive_seconds`` of silence.
        """
        async with self.subscribe(channel) as queue:
            yield ServerSentEvent(comment="connected", retry=retry_ms)
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield ServerSentEvent(comment="keepalive")
                    continue
                if event is _CLOSED:
                    return
                yield event

    async def close(self) -> None:
        """End every open stream. Later subscribers end immediately."""
        self.closed = True
        for queues in self._subscribers.values():
            for queue in list(queues):
                if queue.full():
                    # Make room for the terminator; the subscriber is going away anyway.
                    queue.get_nowait()
                queue.put_nowait(_CLOSED)
        logger.info("Event broadcaster closed", subscribers=self.subscriber_count())
