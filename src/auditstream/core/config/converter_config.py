"""
Message converter configuration.
"""

from dataclasses import dataclass, field


@dataclass
class ConverterConfig:
    """String converter configuration."""

    charset: str = "utf-8"
    supported_media_types: list[str] = field(
        default_factory=lambda: ["text/plain", "text/event-stream", "application/json"]
    )
