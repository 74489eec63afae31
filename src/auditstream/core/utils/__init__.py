"""
Shared utilities for logging setup and timed operation logging.
"""

from auditstream.core.utils.logging import configure_logging, log_operation, log_structured

__all__ = [
    "configure_logging",
    "log_operation",
    "log_structured",
]
