"""FastAPI application entry point and lifecycle management."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trivial_drive import __version__
from trivial_drive.config import Config
from trivial_drive.container import ServiceContainer
from trivial_drive.logging_config import configure_logging, get_logger
from trivial_drive.middleware import ContextMiddleware, RequestLoggingMiddleware
from trivial_drive.models import ErrorResponse

logger = get_logger(__name__)


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Configuration to use (loaded from CONFIG_PATH / default path if not provided)

    Returns:
        Configured FastAPI application instance
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_format = os.getenv("LOG_FORMAT", "json").lower() == "json"
    configure_logging(log_level=log_level, json_format=json_format)

    app_config = config or Config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the services on startup, stop them on shutdown."""
        logger.info("trivial_drive_starting", version=__version__, config=str(app_config.config_path))
        services = ServiceContainer.build(app_config)
        await services.start()
        app.state.services = services
        logger.info("trivial_drive_started", status="ready")
        try:
            yield
        finally:
            logger.info("trivial_drive_shutting_down")
            app.state.services = None
            await services.shutdown()
            logger.info("trivial_drive_stopped")

    app = FastAPI(
        title="Trivial Drive",
        description="Gas tank game with in-app purchases and infinite gas subscriptions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Allow all origins for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_request_details = os.getenv("LOG_REQUEST_DETAILS", "true").lower() == "true"
    app.add_middleware(RequestLoggingMiddleware, include_request_details=include_request_details)
    app.add_middleware(ContextMiddleware)

    from trivial_drive.api.control import router as control_router
    from trivial_drive.api.game import router as game_router
    from trivial_drive.api.products import router as products_router

    app.include_router(game_router)
    app.include_router(products_router)
    app.include_router(control_router)

    @app.get("/")
    async def root(request: Request) -> dict[str, Optional[str]]:
        """Service banner."""
        services: Optional[ServiceContainer] = getattr(request.app.state, "services", None)
        return {
            "service": "trivial-drive",
            "status": "running",
            "version": __version__,
            "package_name": services.config.default_package_name if services else None,
        }

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Listener health; 503 if a billing listener has died."""
        services: Optional[ServiceContainer] = getattr(request.app.state, "services", None)
        if services is None:
            return JSONResponse(status_code=503, content={"status": "starting"})

        aggregator = services.aggregator
        healthy = aggregator.is_healthy
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "degraded",
                "listeners": {name: status.value for name, status in aggregator.listener_statuses().items()},
                "config": f"loaded ({len(services.product_repository)} total products)",
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="internal_server_error",
                message="An unexpected error occurred",
            ).model_dump(),
        )

    logger.info("app_created", endpoints=len(app.routes))
    return app
