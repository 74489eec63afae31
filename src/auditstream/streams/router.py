from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Request

from auditstream.core.config.stream_config import StreamConfig
from auditstream.core.utils.logging import log_operation
from auditstream.streams.broadcaster import EventBroadcaster
from auditstream.streams.events import ServerSentEvent, StreamChannel
from auditstream.web.converters import MessageConverters
from auditstream.web.media_types import TEXT_EVENT_STREAM
from auditstream.web.responses import EventStreamResponse

logger = structlog.get_logger(__name__)


def create_stream_router(
    broadcaster: EventBroadcaster,
    converters: MessageConverters,
    stream_config: StreamConfig,
) -> APIRouter:
    """
    Build the router serving one event stream per audit log channel.

    The broadcaster and converter list are bound here at startup; handlers
    never look them up from request state.
    """
    router = APIRouter()

    async def _channel_events(channel: StreamChannel, client: str) -> AsyncIterator[ServerSentEvent]:
        async with log_operation("event_stream", channel=channel.value, client=client):
            async for event in broadcaster.events(
                channel,
                keepalive_seconds=stream_config.keepalive_seconds,
                retry_ms=stream_config.retry_ms,
            ):
                yield event

    @router.get("/{channel_path}", summary="Subscribe to an audit log event stream")
    async def stream_channel(channel_path: str, request: Request) -> EventStreamResponse:
        """
        Stream events for one channel as ``text/event-stream``.

        - `stream`: every audit log record (event name `streams`)
        - `auth`, `auth_failed`, `unauth`: authorization outcomes
        """
        channel = StreamChannel.from_path(channel_path)
        media_type, converter = converters.negotiate(request.headers.get("accept"), producible=[TEXT_EVENT_STREAM])
        client = request.client.host if request.client else "unknown"

        return EventStreamResponse(
            _channel_events(channel, client),
            converter=converter,
            media_type=media_type,
        )

    return router
