"""
Core error classes for the auditstream web layer.
"""

from typing import Any


class WebLayerError(Exception):
    """Base class for errors raised while converting or negotiating HTTP messages."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidMediaTypeError(WebLayerError):
    """Raised when a media type or Accept header cannot be parsed."""

    status_code = 400
    code = "invalid_media_type"


class MediaTypeNotAcceptableError(WebLayerError):
    """Raised when no registered converter can produce a type the client accepts."""

    status_code = 406
    code = "not_acceptable"

    def __init__(self, accept: str, supported: list[str]) -> None:
        super().__init__(
            f"Could not find acceptable representation for '{accept}'",
            details={"accept": accept, "supported": supported},
        )


class MediaTypeNotSupportedError(WebLayerError):
    """Raised when a request body has a content type no converter can read."""

    status_code = 415
    code = "unsupported_media_type"


class MessageNotReadableError(WebLayerError):
    """Raised when a request body cannot be decoded with the negotiated charset."""

    status_code = 400
    code = "message_not_readable"


class UnknownChannelError(WebLayerError):
    """Raised when a stream channel name is not registered."""

    status_code = 404
    code = "unknown_channel"
