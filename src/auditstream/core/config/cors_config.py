"""
CORS configuration.
"""

from dataclasses import dataclass, field

DEFAULT_PATH_PATTERN = "/api/**"

DEFAULT_ALLOWED_METHODS = ["GET", "POST", "DELETE", "PUT", "PATCH", "OPTIONS"]

DEFAULT_EXPOSED_HEADERS = [
    "Cache-Control",
    "Content-Language",
    "Content-Type",
    "Expires",
    "Last-Modified",
    "Pragma",
    "Connection",
    "Access-Control-Allow-Origin",
]


@dataclass
class CORSConfig:
    """CORS configuration for the API routes."""

    path_pattern: str = DEFAULT_PATH_PATTERN
    allowed_origin_patterns: list[str] = field(default_factory=lambda: ["*"])
    allowed_methods: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_METHODS))
    allowed_headers: list[str] = field(default_factory=lambda: ["*"])
    allow_credentials: bool = True
    exposed_headers: list[str] = field(default_factory=lambda: list(DEFAULT_EXPOSED_HEADERS))
    max_age: int = 3600  # seconds
