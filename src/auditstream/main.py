import logging

import uvicorn
from fastapi import FastAPI

from auditstream import __version__
from auditstream.api.errors import register_exception_handlers
from auditstream.core.config import Config, config
from auditstream.core.utils.logging import configure_logging
from auditstream.streams.broadcaster import EventBroadcaster
from auditstream.streams.events import StreamChannel
from auditstream.streams.router import create_stream_router
from auditstream.web.cors import install_cors
from auditstream.web.web_config import WebConfig, build_web_config

logger = logging.getLogger(__name__)


def create_app(
    web_config: WebConfig | None = None,
    broadcaster: EventBroadcaster | None = None,
    app_config: Config | None = None,
) -> FastAPI:
    """Build the application from an explicit web configuration struct."""
    app_config = app_config or config
    app_config.validate()
    web_config = web_config or build_web_config(app_config)
    broadcaster = broadcaster or EventBroadcaster(queue_size=app_config.stream.queue_size)

    app = FastAPI(
        title="auditstream",
        description="Audit log event streams with CORS-enabled API routes.",
        version=__version__,
    )

    # --- CORS Configuration ---

    install_cors(app, web_config.cors_mappings)

    # --- Error Handling ---

    register_exception_handlers(app, web_config.string_converter)

    # --- Include Routers ---

    app.include_router(
        create_stream_router(broadcaster, web_config.converters, app_config.stream),
        prefix="/api/kafka",
        tags=["Event Streams"],
    )

    # In-process publishers reach the broadcaster through the app.
    app.state.broadcaster = broadcaster

    # --- Root Endpoint ---

    @app.get("/health", tags=["Health Check"])
    async def health():
        """A simple health check endpoint that also reports open streams."""
        return {
            "status": "ok",
            "environment": app_config.environment,
            "subscribers": {channel.value: broadcaster.subscriber_count(channel) for channel in StreamChannel},
        }

    # --- Application Lifecycle ---

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close open event streams so the server can drain."""
        await broadcaster.close()
        logger.info("Event streams closed.")

    return app


# --- Application Setup ---

configure_logging(config.logging)
app = create_app()


def main() -> None:
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=config.logging.level.lower())


if __name__ == "__main__":
    main()
