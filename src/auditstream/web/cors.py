"""
Path-scoped CORS policy registration.

A ``CORSRegistry`` collects mappings from Ant-style path patterns to CORS
policies. ``install_cors`` hands the resulting immutable mappings to an ASGI
middleware that applies Starlette's CORS handling only to requests whose path
matches a mapping. Requests outside every mapping get no CORS headers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from starlette.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.types import ASGIApp, Receive, Scope, Send

    from auditstream.core.config.cors_config import CORSConfig

logger = structlog.get_logger(__name__)


def compile_path_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile an Ant-style path pattern.

    ``**`` as a whole segment matches zero or more segments, ``*`` matches
    within a single segment and ``?`` matches one character.
    """
    regex = ""
    i = 0
    while i < len(pattern):
        if pattern.startswith("/**", i) and (i + 3 == len(pattern) or pattern[i + 3] == "/"):
            regex += "(?:/.*)?"
            i += 3
        elif pattern.startswith("**", i):
            regex += ".*"
            i += 2
        elif pattern[i] == "*":
            regex += "[^/]*"
            i += 1
        elif pattern[i] == "?":
            regex += "[^/]"
            i += 1
        else:
            regex += re.escape(pattern[i])
            i += 1
    return re.compile(regex)


def origin_patterns_to_regex(patterns: list[str] | tuple[str, ...]) -> str:
    """Translate origin patterns (``*`` matches any run of characters) into one regex."""
    alternatives = [re.escape(pattern.rstrip("/")).replace(r"\*", ".*") for pattern in patterns]
    return "|".join(f"(?:{alt})" for alt in alternatives)


@dataclass(frozen=True)
class CORSPolicy:
    """Immutable CORS attributes applied to one path mapping."""

    allowed_origin_patterns: tuple[str, ...] = ("*",)
    allowed_methods: tuple[str, ...] = ("GET", "HEAD", "POST")
    allowed_headers: tuple[str, ...] = ("*",)
    allow_credentials: bool = False
    exposed_headers: tuple[str, ...] = ()
    max_age: int = 1800

    @property
    def origin_regex(self) -> str:
        return origin_patterns_to_regex(self.allowed_origin_patterns)


@dataclass(frozen=True)
class CORSMapping:
    """A path pattern bound to the CORS policy for matching requests."""

    path_pattern: str
    policy: CORSPolicy
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", compile_path_pattern(self.path_pattern))

    def matches(self, path: str) -> bool:
        return self._compiled.fullmatch(path) is not None


class CORSRegistration:
    """Builder for a single mapping, returned by ``CORSRegistry.add_mapping``."""

    def __init__(self, path_pattern: str) -> None:
        self.path_pattern = path_pattern
        self._origin_patterns: list[str] = ["*"]
        self._methods: list[str] = ["GET", "HEAD", "POST"]
        self._headers: list[str] = ["*"]
        self._credentials = False
        self._exposed: list[str] = []
        self._max_age = 1800

    def allowed_origin_patterns(self, *patterns: str) -> CORSRegistration:
        self._origin_patterns = list(patterns)
        return self

    def allowed_methods(self, *methods: str) -> CORSRegistration:
        self._methods = [method.upper() for method in methods]
        return self

    def allowed_headers(self, *headers: str) -> CORSRegistration:
        self._headers = list(headers)
        return self

    def allow_credentials(self, allow: bool) -> CORSRegistration:
        self._credentials = allow
        return self

    def exposed_headers(self, *headers: str) -> CORSRegistration:
        self._exposed = list(headers)
        return self

    def max_age(self, seconds: int) -> CORSRegistration:
        self._max_age = seconds
        return self

    def to_mapping(self) -> CORSMapping:
        return CORSMapping(
            path_pattern=self.path_pattern,
            policy=CORSPolicy(
                allowed_origin_patterns=tuple(self._origin_patterns),
                allowed_methods=tuple(self._methods),
                allowed_headers=tuple(self._headers),
                allow_credentials=self._credentials,
                exposed_headers=tuple(self._exposed),
                max_age=self._max_age,
            ),
        )


class CORSRegistry:
    """Ordered collection of CORS registrations; the first matching mapping wins."""

    def __init__(self) -> None:
        self._registrations: list[CORSRegistration] = []

    def add_mapping(self, path_pattern: str) -> CORSRegistration:
        registration = CORSRegistration(path_pattern)
        self._registrations.append(registration)
        return registration

    def get_mappings(self) -> tuple[CORSMapping, ...]:
        return tuple(registration.to_mapping() for registration in self._registrations)


def add_cors_mappings(registry: CORSRegistry, cors_config: CORSConfig) -> None:
    """Register the API CORS mapping described by ``cors_config``."""
    (
        registry.add_mapping(cors_config.path_pattern)
        .allowed_origin_patterns(*cors_config.allowed_origin_patterns)
        .allowed_methods(*cors_config.allowed_methods)
        .allowed_headers(*cors_config.allowed_headers)
        .allow_credentials(cors_config.allow_credentials)
        .exposed_headers(*cors_config.exposed_headers)
        .max_age(cors_config.max_age)
    )


class PathScopedCORSMiddleware:
    """Apply a CORS policy only to requests whose path matches its mapping."""

    def __init__(self, app: ASGIApp, mappings: tuple[CORSMapping, ...] | list[CORSMapping]) -> None:
        self.app = app
        self.mappings = tuple(mappings)
        self._handlers = [
            (
                mapping,
                CORSMiddleware(
                    app,
                    allow_origin_regex=mapping.policy.origin_regex,
                    allow_methods=mapping.policy.allowed_methods,
                    allow_headers=mapping.policy.allowed_headers,
                    allow_credentials=mapping.policy.allow_credentials,
                    expose_headers=mapping.policy.exposed_headers,
                    max_age=mapping.policy.max_age,
                ),
            )
            for mapping in self.mappings
        ]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope.get("path", "")
            for mapping, handler in self._handlers:
                if mapping.matches(path):
                    await handler(scope, receive, send)
                    return
        await self.app(scope, receive, send)


def install_cors(app: FastAPI, mappings: tuple[CORSMapping, ...] | list[CORSMapping]) -> None:
    """Install the path-scoped CORS middleware for ``mappings`` on ``app``."""
    app.add_middleware(PathScopedCORSMiddleware, mappings=tuple(mappings))
    for mapping in mappings:
        logger.info(
            "Registered CORS mapping",
            path_pattern=mapping.path_pattern,
            origins=list(mapping.policy.allowed_origin_patterns),
            methods=list(mapping.policy.allowed_methods),
            max_age=mapping.policy.max_age,
        )
