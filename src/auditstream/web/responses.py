"""
Responses whose bodies are written through a message converter.
"""

from collections.abc import AsyncIterable, AsyncIterator, Mapping

from starlette.background import BackgroundTask
from starlette.responses import Response, StreamingResponse

from auditstream.streams.events import ServerSentEvent
from auditstream.web.converters import StringMessageConverter
from auditstream.web.media_types import TEXT_EVENT_STREAM, MediaType


class TextMessageResponse(Response):
    """A ``str`` body encoded by the given converter for the given media type."""

    def __init__(
        self,
        content: str,
        converter: StringMessageConverter,
        media_type: MediaType | None = None,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        self.converter = converter
        self.resolved_media_type = converter.resolve_content_type(media_type)
        self.charset = converter.charset_for(self.resolved_media_type)
        super().__init__(
            content=content,
            status_code=status_code,
            headers=headers,
            media_type=str(self.resolved_media_type),
            background=background,
        )

    def render(self, content: str) -> bytes:
        return self.converter.write(content, self.resolved_media_type)


class EventStreamResponse(StreamingResponse):
    """Streams ``ServerSentEvent`` objects, each written through the converter."""

    def __init__(
        self,
        events: AsyncIterable[ServerSentEvent],
        converter: StringMessageConverter,
        media_type: MediaType | None = None,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        self.converter = converter
        self.resolved_media_type = converter.resolve_content_type(media_type or TEXT_EVENT_STREAM)
        self.charset = converter.charset_for(self.resolved_media_type)
        stream_headers = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no", **(headers or {})}
        super().__init__(
            self._encode(events),
            status_code=status_code,
            headers=stream_headers,
            media_type=str(self.resolved_media_type),
            background=background,
        )

    async def _encode(self, events: AsyncIterable[ServerSentEvent]) -> AsyncIterator[bytes]:
        async for event in events:
            yield self.converter.write(event.encode(), self.resolved_media_type)
