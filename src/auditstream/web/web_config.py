"""
Startup wiring for the web layer.

``build_web_config`` produces the one configuration struct the application
factory consumes: the CORS mappings, the ordered converter list and the string
converter that text-writing components receive as a constructor argument.
"""

from dataclasses import dataclass

from auditstream.core.config import Config, config
from auditstream.web.converters import (
    MessageConverters,
    StringMessageConverter,
    configure_message_converters,
    create_string_converter,
)
from auditstream.web.cors import CORSMapping, CORSRegistry, add_cors_mappings


@dataclass(frozen=True)
class WebConfig:
    """CORS mappings and message converters, built once at startup."""

    cors_mappings: tuple[CORSMapping, ...]
    converters: MessageConverters
    string_converter: StringMessageConverter


def build_web_config(app_config: Config | None = None) -> WebConfig:
    app_config = app_config or config

    registry = CORSRegistry()
    add_cors_mappings(registry, app_config.cors)

    converters = MessageConverters()
    configure_message_converters(converters, app_config.converter)

    return WebConfig(
        cors_mappings=registry.get_mappings(),
        converters=converters,
        string_converter=create_string_converter(app_config.converter),
    )
