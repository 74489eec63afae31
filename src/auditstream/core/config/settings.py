"""
Main configuration class that composes all configs.
"""

import codecs
import json
import logging
import os

from dotenv import load_dotenv

from auditstream.core.config.converter_config import ConverterConfig
from auditstream.core.config.cors_config import (
    DEFAULT_ALLOWED_METHODS,
    DEFAULT_EXPOSED_HEADERS,
    DEFAULT_PATH_PATTERN,
    CORSConfig,
)
from auditstream.core.config.logging_config import LoggingConfig
from auditstream.core.config.server_config import ServerConfig
from auditstream.core.config.stream_config import StreamConfig

logger = logging.getLogger(__name__)

KNOWN_HTTP_METHODS = {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "*"}

# Load environment variables from a .env file
load_dotenv()


def _json_list(name: str, default: list[str]) -> list[str]:
    """Read a JSON list from the environment, falling back to the default on bad input."""
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"{name} is not valid JSON, using defaults")
        return list(default)
    if not isinstance(value, list):
        logger.warning(f"{name} must be a JSON list, using defaults")
        return list(default)
    return [str(item) for item in value]


def _bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


class Config:
    """Main configuration class."""

    def __init__(self) -> None:
        # CORS configuration
        self.cors = CORSConfig(
            path_pattern=os.getenv("CORS_PATH_PATTERN", DEFAULT_PATH_PATTERN),
            allowed_origin_patterns=_json_list("CORS_ALLOWED_ORIGIN_PATTERNS", ["*"]),
            allowed_methods=_json_list("CORS_ALLOWED_METHODS", DEFAULT_ALLOWED_METHODS),
            allowed_headers=_json_list("CORS_ALLOWED_HEADERS", ["*"]),
            allow_credentials=_bool("CORS_ALLOW_CREDENTIALS", True),
            exposed_headers=_json_list("CORS_EXPOSED_HEADERS", DEFAULT_EXPOSED_HEADERS),
            max_age=int(os.getenv("CORS_MAX_AGE", "3600")),
        )

        self.converter = ConverterConfig(
            charset=os.getenv("CONVERTER_CHARSET", "utf-8"),
        )

        self.stream = StreamConfig(
            queue_size=int(os.getenv("STREAM_QUEUE_SIZE", "100")),
            keepalive_seconds=float(os.getenv("STREAM_KEEPALIVE_SECONDS", "15")),
            retry_ms=int(os.getenv("STREAM_RETRY_MS", "5000")),
        )

        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            file_path=os.getenv("LOG_FILE_PATH"),
        )

        self.server = ServerConfig(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
        )

        # Development settings
        self.debug = _bool("DEBUG", False)
        self.environment = os.getenv("ENVIRONMENT", "development")

    def validate(self) -> bool:
        """Validate configuration."""
        errors = []

        if not self.cors.path_pattern.startswith("/"):
            errors.append("CORS_PATH_PATTERN must start with '/'")

        unknown = [m for m in self.cors.allowed_methods if m.upper() not in KNOWN_HTTP_METHODS]
        if unknown:
            errors.append(f"CORS_ALLOWED_METHODS contains unknown methods: {unknown}")

        if self.cors.max_age < 0:
            errors.append("CORS_MAX_AGE must not be negative")

        if not self.cors.allowed_origin_patterns:
            errors.append("CORS_ALLOWED_ORIGIN_PATTERNS must not be empty")

        try:
            codecs.lookup(self.converter.charset)
        except LookupError:
            errors.append(f"CONVERTER_CHARSET '{self.converter.charset}' is not a known encoding")

        if self.stream.queue_size <= 0:
            errors.append("STREAM_QUEUE_SIZE must be positive")

        if self.stream.keepalive_seconds <= 0:
            errors.append("STREAM_KEEPALIVE_SECONDS must be positive")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True


# Global config instance
config = Config()
