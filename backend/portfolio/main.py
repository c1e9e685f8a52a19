"""Portfolio API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Collaborators (settings, metrics, backend client, image source) built once
      per app in create_app() and stored on app.state
    - Typed errors → registered handlers; untyped → RequestContextMiddleware
    - CORS configured from settings (not hardcoded)
    - Lifespan: logging setup + metrics start on startup; metrics flush and
      HTTP client close on shutdown

Design Decisions:
    - create_app(settings, backend_transport) factory: tests inject settings and an
      httpx.MockTransport instead of patching globals
    - Lifespan over @app.on_event (FastAPI recommended pattern)
    - Module-level `app` for `uvicorn portfolio.main:app`
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio.api.error_handlers import register_error_handlers
from portfolio.api.middleware import RequestContextMiddleware
from portfolio.api.routes import album_images, albums, auth, health, images, upload
from portfolio.config import Settings, get_settings
from portfolio.infrastructure.backend_client import BackendClient
from portfolio.infrastructure.image_sources import create_image_source
from portfolio.infrastructure.metrics import create_metrics_client
from portfolio.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    await app.state.metrics.start()
    logger.info(
        "Portfolio API started",
        extra={
            "details": {
                "environment": settings.environment.value,
                "image_source": settings.image_source.value,
                "metrics_backend": settings.metrics_backend.value,
                "metrics_enabled": settings.enable_metrics,
                "backend_configured": settings.backend_configured,
            },
        },
    )
    if not settings.backend_configured:
        logger.warning("BACKEND_API_URL is not set; backend routes will return 500")
    yield
    logger.info("Portfolio API shutting down")
    await app.state.metrics.shutdown()
    await app.state.backend.aclose()


def create_app(
    settings: Settings | None = None,
    backend_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Portfolio API", version="1.0.0", lifespan=lifespan)

    backend = BackendClient(
        settings.backend_api_url, settings.backend_api_key,
        transport=backend_transport,
    )
    app.state.settings = settings
    app.state.backend = backend
    app.state.metrics = create_metrics_client(settings)
    app.state.image_source = create_image_source(settings, backend)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id"],
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(albums.router)
    app.include_router(album_images.router)
    app.include_router(upload.router)
    app.include_router(images.router)

    return app


app = create_app()
