"""
Media type parsing and matching.

Media types are immutable values of the form ``type/subtype;param=value``.
Wildcards follow the usual HTTP rules: ``*/*`` includes everything,
``text/*`` includes every text subtype and ``application/*+json`` includes
every JSON-suffixed subtype.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from auditstream.core.errors import InvalidMediaTypeError

WILDCARD = "*"

_TOKEN = re.compile(r"^[!#$%&'*+.^_`|~0-9A-Za-z-]+$")


@dataclass(frozen=True)
class MediaType:
    """A parsed media type with optional parameters."""

    type: str
    subtype: str
    parameters: tuple[tuple[str, str], ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", self.type.lower())
        object.__setattr__(self, "subtype", self.subtype.lower())
        object.__setattr__(
            self,
            "parameters",
            tuple((name.lower(), value) for name, value in self.parameters),
        )

    @classmethod
    def parse(cls, value: str) -> MediaType:
        """Parse a single media type, raising InvalidMediaTypeError on malformed input."""
        if not value or not value.strip():
            raise InvalidMediaTypeError("Media type must not be empty")

        full_type, *raw_params = value.split(";")
        full_type = full_type.strip()
        if full_type == WILDCARD:
            full_type = "*/*"

        if full_type.count("/") != 1:
            raise InvalidMediaTypeError(f"Invalid media type '{value}': does not contain '/'", {"value": value})

        main, sub = full_type.split("/")
        if not main or not sub:
            raise InvalidMediaTypeError(f"Invalid media type '{value}': empty type or subtype", {"value": value})
        if not _TOKEN.match(main) or not _TOKEN.match(sub):
            raise InvalidMediaTypeError(f"Invalid media type '{value}': illegal character", {"value": value})
        if main == WILDCARD and sub != WILDCARD:
            raise InvalidMediaTypeError(
                f"Invalid media type '{value}': wildcard type is legal only in '*/*'", {"value": value}
            )

        params: list[tuple[str, str]] = []
        for raw in raw_params:
            raw = raw.strip()
            if not raw:
                continue
            if "=" not in raw:
                raise InvalidMediaTypeError(f"Invalid parameter '{raw}' in '{value}'", {"value": value})
            name, param_value = (part.strip() for part in raw.split("=", 1))
            if len(param_value) >= 2 and param_value[0] == param_value[-1] == '"':
                param_value = param_value[1:-1]
            if not name or not _TOKEN.match(name):
                raise InvalidMediaTypeError(f"Invalid parameter name '{name}' in '{value}'", {"value": value})
            params.append((name, param_value))

        return cls(main, sub, tuple(params))

    @property
    def params(self) -> dict[str, str]:
        return dict(self.parameters)

    @property
    def charset(self) -> str | None:
        return self.params.get("charset")

    @property
    def quality(self) -> float:
        raw = self.params.get("q")
        if raw is None:
            return 1.0
        try:
            q = float(raw)
        except ValueError as e:
            raise InvalidMediaTypeError(f"Invalid quality value '{raw}'", {"value": str(self)}) from e
        if not 0.0 <= q <= 1.0:
            raise InvalidMediaTypeError(f"Quality value '{raw}' must be between 0 and 1", {"value": str(self)})
        return q

    @property
    def is_wildcard_type(self) -> bool:
        return self.type == WILDCARD

    @property
    def is_wildcard_subtype(self) -> bool:
        return self.subtype == WILDCARD or self.subtype.startswith("*+")

    @property
    def is_concrete(self) -> bool:
        return not self.is_wildcard_type and not self.is_wildcard_subtype

    @property
    def suffix(self) -> str | None:
        if "+" in self.subtype:
            return self.subtype.rsplit("+", 1)[1]
        return None

    @property
    def mime_type(self) -> str:
        return f"{self.type}/{self.subtype}"

    def without_charset(self) -> MediaType:
        return MediaType(self.type, self.subtype, tuple((k, v) for k, v in self.parameters if k != "charset"))

    def with_charset(self, charset: str) -> MediaType:
        return MediaType(self.type, self.subtype, self.without_charset().parameters + (("charset", charset),))

    def includes(self, other: MediaType) -> bool:
        """Whether this (possibly wildcard) type includes ``other``."""
        if self.is_wildcard_type:
            return True
        if self.type != other.type:
            return False
        if self.subtype == other.subtype or self.subtype == WILDCARD:
            return True
        # application/*+json includes application/vnd.foo+json
        if self.subtype.startswith("*+"):
            return other.suffix == self.subtype[2:]
        return False

    def is_compatible_with(self, other: MediaType) -> bool:
        """Symmetric match: either side may carry the wildcard."""
        return self.includes(other) or other.includes(self)

    def specificity(self) -> int:
        if self.is_wildcard_type:
            return 0
        if self.is_wildcard_subtype:
            return 1
        return 2 + len([name for name, _ in self.parameters if name != "q"])

    def __str__(self) -> str:
        rendered = self.mime_type
        for name, value in self.parameters:
            rendered += f";{name}={value}"
        return rendered


ALL = MediaType("*", "*")
TEXT_PLAIN = MediaType("text", "plain")
TEXT_EVENT_STREAM = MediaType("text", "event-stream")
APPLICATION_JSON = MediaType("application", "json")


def parse_media_types(header: str | None) -> list[MediaType]:
    """
    Parse a comma-separated list of media types (an ``Accept`` header).

    Returns ``[*/*]`` for an absent or blank header. The result is ordered by
    quality, then specificity; equal entries keep header order.
    """
    if header is None or not header.strip():
        return [ALL]

    media_types = [MediaType.parse(part) for part in header.split(",") if part.strip()]
    if not media_types:
        return [ALL]

    return sorted(media_types, key=lambda mt: (-mt.quality, -mt.specificity()))
