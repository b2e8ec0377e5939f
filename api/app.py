"""FastAPI application for gistnotes."""

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .config import Settings
from .dependencies import Services
from .observability import initialize_observability
from .routes import folders_router, health_router, notes_router, share_router, sync_router

# Initialize logger
logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    gist_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build an application instance with its own services.

    Args:
        settings: Explicit settings; read from the environment at startup when omitted
        gist_transport: Optional transport for the Gist client, e.g. ``httpx.MockTransport``
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Handle startup and shutdown events."""
        # Startup
        logger.info("api_starting")

        # Initialize OpenTelemetry
        initialize_observability()

        services = Services.build(settings or Settings.from_env(), transport=gist_transport)
        app.state.services = services
        await services.start()
        logger.info("api_started")

        yield

        # Shutdown
        logger.info("api_shutting_down")
        await services.close()
        logger.info("api_shutdown_complete")

    app = FastAPI(
        title="gistnotes API",
        description="Notes with Gist-backed sync and public share links",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Instrument FastAPI with OpenTelemetry
    FastAPIInstrumentor.instrument_app(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(notes_router)
    app.include_router(folders_router)
    app.include_router(sync_router)
    app.include_router(share_router)

    return app


app = create_app()
