"""
HTTP server configuration.
"""

from dataclasses import dataclass


@dataclass
class ServerConfig:
    """Server bind configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
