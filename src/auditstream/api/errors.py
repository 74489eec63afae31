"""Structured error response models for consistent API error handling."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from pydantic import BaseModel

from auditstream.core.errors import WebLayerError
from auditstream.web.converters import StringMessageConverter
from auditstream.web.media_types import APPLICATION_JSON
from auditstream.web.responses import TextMessageResponse

logger = structlog.get_logger(__name__)


class ErrorResponse(BaseModel):
    """Standardized error response schema."""

    error: bool = True
    code: str
    message: str
    details: dict[str, Any] | None = None


def create_error_response(code: str, message: str, details: dict[str, Any] | None = None) -> ErrorResponse:
    """Create standardized error response."""
    return ErrorResponse(code=code, message=message, details=details)


def register_exception_handlers(app: FastAPI, converter: StringMessageConverter) -> None:
    """Render web layer errors as JSON written through ``converter``."""

    async def handle_web_layer_error(request: Request, exc: WebLayerError) -> TextMessageResponse:
        logger.warning("Request failed", path=request.url.path, code=exc.code, message=exc.message)
        body = create_error_response(exc.code, exc.message, exc.details)
        return TextMessageResponse(
            body.model_dump_json(),
            converter=converter,
            media_type=APPLICATION_JSON,
            status_code=exc.status_code,
        )

    app.add_exception_handler(WebLayerError, handle_web_layer_error)
