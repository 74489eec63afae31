"""
Web layer: CORS mappings, message converters and converter-backed responses.
"""

from auditstream.web.converters import (
    MessageConverters,
    StringMessageConverter,
    configure_message_converters,
    create_string_converter,
    string_message_converter,
)
from auditstream.web.cors import CORSMapping, CORSPolicy, CORSRegistry, add_cors_mappings, install_cors
from auditstream.web.media_types import MediaType

__all__ = [
    "CORSMapping",
    "CORSPolicy",
    "CORSRegistry",
    "MediaType",
    "MessageConverters",
    "StringMessageConverter",
    "add_cors_mappings",
    "configure_message_converters",
    "create_string_converter",
    "install_cors",
    "string_message_converter",
]
