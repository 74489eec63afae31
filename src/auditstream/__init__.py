"""auditstream: CORS and UTF-8 message conversion for the audit log stream API."""

__version__ = "0.1.0"
