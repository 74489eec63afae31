"""
Server-Sent-Events model and stream channels.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from auditstream.core.errors import UnknownChannelError

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class StreamChannel(str, Enum):
    """Audit log channels; the value is also the SSE event name clients listen for."""

    STREAMS = "streams"
    AUTH = "auth"
    AUTH_FAILED = "auth_failed"
    UNAUTH = "unauth"

    @property
    def event_name(self) -> str:
        return self.value

    @property
    def path(self) -> str:
        # The general stream is served from /stream, the others from their own name.
        return "stream" if self is StreamChannel.STREAMS else self.value

    @classmethod
    def from_path(cls, segment: str) -> "StreamChannel":
        for channel in cls:
            if channel.path == segment:
                return channel
        raise UnknownChannelError(
            f"Unknown stream '{segment}'",
            details={"available": [channel.path for channel in cls]},
        )

    @classmethod
    def resolve(cls, channel: "StreamChannel | str") -> "StreamChannel":
        if isinstance(channel, cls):
            return channel
        try:
            return cls(channel)
        except ValueError as e:
            raise UnknownChannelError(
                f"Unknown channel '{channel}'",
                details={"available": [c.value for c in cls]},
            ) from e


@dataclass(frozen=True)
class ServerSentEvent:
    """One event in a ``text/event-stream`` body."""

    data: str | None = None
    event: str | None = None
    id: str | None = None
    retry: int | None = None
    comment: str | None = None

    def __post_init__(self) -> None:
        # A line break would end the field and let the value inject new fields.
        for name in ("id", "event"):
            value = getattr(self, name)
            if value is not None and ("\r" in value or "\n" in value):
                raise ValueError(f"Event {name} must not contain line breaks: {value!r}")

    @classmethod
    def from_payload(cls, payload: Any, event: str | None = None, event_id: str | None = None) -> "ServerSentEvent":
        """Build an event from a string or a JSON-serializable payload."""
        if isinstance(payload, str):
            data = payload
        else:
            data = json.dumps(payload, ensure_ascii=False, default=str)
        return cls(data=data, event=event, id=event_id)

    def encode(self) -> str:
        """Render the event in the event-stream wire format, terminated by a blank line."""
        lines: list[str] = []
        if self.comment is not None:
            lines.extend(f":{line}" for line in _LINE_BREAK.split(self.comment))
        if self.id is not None:
            lines.append(f"id:{self.id}")
        if self.event is not None:
            lines.append(f"event:{self.event}")
        if self.retry is not None:
            lines.append(f"retry:{self.retry}")
        if self.data is not None:
            lines.extend(f"data:{line}" for line in _LINE_BREAK.split(self.data))
        return "\n".join(lines) + "\n\n"
