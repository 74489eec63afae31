"""
HTTP message converters.

A converter translates between HTTP body bytes and in-process values for the
media types it supports. The web layer keeps an ordered ``MessageConverters``
list; the first converter that can handle a media type wins.
"""

from __future__ import annotations

import codecs
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from functools import lru_cache

import structlog

from auditstream.core.config import config
from auditstream.core.config.converter_config import ConverterConfig
from auditstream.core.errors import (
    MediaTypeNotAcceptableError,
    MediaTypeNotSupportedError,
    MessageNotReadableError,
)
from auditstream.web.media_types import (
    APPLICATION_JSON,
    TEXT_EVENT_STREAM,
    TEXT_PLAIN,
    MediaType,
    parse_media_types,
)

logger = structlog.get_logger(__name__)

DEFAULT_SUPPORTED_MEDIA_TYPES = (TEXT_PLAIN, TEXT_EVENT_STREAM, APPLICATION_JSON)

# Always written as UTF-8, whatever charset the client asks for.
UTF8_ONLY_MIME_TYPES = {APPLICATION_JSON.mime_type, TEXT_EVENT_STREAM.mime_type}


def _normalize_charset(charset: str) -> str:
    try:
        return codecs.lookup(charset).name
    except LookupError as e:
        raise ValueError(f"Unknown charset '{charset}'") from e


@dataclass(frozen=True)
class StringMessageConverter:
    """
    Reads and writes ``str`` bodies in a fixed default charset.

    A charset parameter on the negotiated media type overrides the default.
    JSON and event streams are always UTF-8; JSON is sent without a charset
    parameter, event streams always announce ``charset=utf-8``.
    """

    default_charset: str = "utf-8"
    supported_media_types: tuple[MediaType, ...] = field(default=DEFAULT_SUPPORTED_MEDIA_TYPES)

    def __post_init__(self) -> None:
        object.__setattr__(self, "default_charset", _normalize_charset(self.default_charset))
        object.__setattr__(self, "supported_media_types", tuple(self.supported_media_types))

    def supports(self, value_type: type) -> bool:
        return issubclass(value_type, str)

    @property
    def default_content_type(self) -> MediaType:
        return self.supported_media_types[0]

    def can_read(self, media_type: MediaType | None = None) -> bool:
        if media_type is None:
            return True
        return any(supported.includes(media_type) for supported in self.supported_media_types)

    def can_write(self, media_type: MediaType | None = None) -> bool:
        if media_type is None or (media_type.is_wildcard_type and media_type.is_wildcard_subtype):
            return True
        return any(supported.is_compatible_with(media_type) for supported in self.supported_media_types)

    def charset_for(self, media_type: MediaType | None) -> str:
        if media_type is not None:
            if media_type.mime_type in UTF8_ONLY_MIME_TYPES:
                return "utf-8"
            if media_type.charset:
                return _normalize_charset(media_type.charset)
        return self.default_charset

    def resolve_content_type(self, media_type: MediaType | None = None) -> MediaType:
        """Media type to announce for a body written as ``media_type``."""
        if media_type is None or not media_type.is_concrete:
            media_type = self.default_content_type
        media_type = MediaType(
            media_type.type, media_type.subtype, tuple((k, v) for k, v in media_type.parameters if k != "q")
        )
        if media_type.mime_type == APPLICATION_JSON.mime_type:
            return media_type.without_charset()
        if media_type.mime_type == TEXT_EVENT_STREAM.mime_type:
            return media_type.with_charset("utf-8")
        if media_type.charset is None:
            return media_type.with_charset(self.default_charset)
        return media_type

    def content_type(self, media_type: MediaType | None = None) -> str:
        return str(self.resolve_content_type(media_type))

    def write(self, body: str, media_type: MediaType | None = None) -> bytes:
        return body.encode(self.charset_for(media_type))

    def content_length(self, body: str, media_type: MediaType | None = None) -> int:
        return len(self.write(body, media_type))

    def read(self, data: bytes, content_type: str | MediaType | None = None) -> str:
        media_type = MediaType.parse(content_type) if isinstance(content_type, str) else content_type
        if not self.can_read(media_type):
            raise MediaTypeNotSupportedError(
                f"Content type '{media_type}' not supported",
                details={"supported": [str(mt) for mt in self.supported_media_types]},
            )
        try:
            charset = self.charset_for(media_type)
        except ValueError as e:
            raise MessageNotReadableError(str(e)) from e
        try:
            return data.decode(charset)
        except UnicodeDecodeError as e:
            raise MessageNotReadableError(
                f"Body is not valid {charset}", details={"position": e.start, "charset": charset}
            ) from e


class MessageConverters:
    """Ordered list of message converters consulted during content negotiation."""

    def __init__(self, converters: Iterable[StringMessageConverter] = ()) -> None:
        self._converters: list[StringMessageConverter] = list(converters)

    def append(self, converter: StringMessageConverter) -> None:
        self._converters.append(converter)

    def __iter__(self) -> Iterator[StringMessageConverter]:
        return iter(self._converters)

    def __len__(self) -> int:
        return len(self._converters)

    def __getitem__(self, index: int) -> StringMessageConverter:
        return self._converters[index]

    def find_writer(
        self, media_type: MediaType | None = None, value_type: type = str
    ) -> StringMessageConverter | None:
        for converter in self._converters:
            if converter.supports(value_type) and converter.can_write(media_type):
                return converter
        return None

    def producible_media_types(self, value_type: type = str) -> list[MediaType]:
        producible: list[MediaType] = []
        for converter in self._converters:
            if not converter.supports(value_type):
                continue
            for media_type in converter.supported_media_types:
                if media_type not in producible:
                    producible.append(media_type)
        return producible

    def negotiate(
        self,
        accept: str | None,
        producible: Iterable[MediaType] | None = None,
        value_type: type = str,
    ) -> tuple[MediaType, StringMessageConverter]:
        """
        Pick the response media type and converter for an ``Accept`` header.

        ``producible`` narrows the candidates (e.g. an endpoint that only
        streams events). Raises MediaTypeNotAcceptableError when nothing the
        client accepts can be written.
        """
        candidates = list(producible) if producible is not None else self.producible_media_types(value_type)
        candidates = [mt for mt in candidates if self.find_writer(mt, value_type) is not None]

        for acceptable in parse_media_types(accept):
            if acceptable.quality == 0.0:
                continue
            for candidate in candidates:
                if not acceptable.is_compatible_with(candidate):
                    continue
                if not self._charset_available(acceptable):
                    continue
                chosen = candidate if not acceptable.is_concrete else acceptable
                converter = self.find_writer(chosen, value_type)
                if converter is not None:
                    return converter.resolve_content_type(chosen), converter

        logger.debug("No acceptable media type", accept=accept, candidates=[str(c) for c in candidates])
        raise MediaTypeNotAcceptableError(accept or "*/*", [str(c) for c in candidates])

    @staticmethod
    def _charset_available(media_type: MediaType) -> bool:
        if media_type.charset is None:
            return True
        try:
            _normalize_charset(media_type.charset)
        except ValueError:
            logger.debug("Unknown charset in Accept header", media_type=str(media_type))
            return False
        return True


def create_string_converter(converter_config: ConverterConfig | None = None) -> StringMessageConverter:
    """Build the UTF-8 string converter for plain text, event streams and JSON strings."""
    converter_config = converter_config or config.converter
    return StringMessageConverter(
        default_charset=converter_config.charset,
        supported_media_types=tuple(MediaType.parse(mt) for mt in converter_config.supported_media_types),
    )


def configure_message_converters(
    converters: MessageConverters, converter_config: ConverterConfig | None = None
) -> None:
    """Append the string converter to the application's converter list."""
    converter = create_string_converter(converter_config)
    converters.append(converter)
    logger.info(
        "Registered message converter",
        charset=converter.default_charset,
        media_types=[str(mt) for mt in converter.supported_media_types],
    )


@lru_cache
def string_message_converter() -> StringMessageConverter:
    """Process-wide string converter for components that write text bodies."""
    return create_string_converter()
