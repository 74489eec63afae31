"""
Event stream configuration.
"""

from dataclasses import dataclass


@dataclass
class StreamConfig:
    """Server-Sent-Events stream configuration."""

    queue_size: int = 100  # events buffered per subscriber
    keepalive_seconds: float = 15.0
    retry_ms: int = 5000  # client reconnect interval sent on connect
