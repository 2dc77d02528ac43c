"""
FastAPI application factory and configuration.

The application exposes health endpoints, a REST view of the active sessions
and the WebSocket terminal endpoint.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ...application.container import IContainer
from ...application.startup import ApplicationStartup
from ...infrastructure.config.models import ApplicationConfig
from .middleware import ErrorHandlerMiddleware, RequestTimingMiddleware
from .routers import health, sessions, terminal

logger = logging.getLogger(__name__)


def create_app(
    container: IContainer,
    config: ApplicationConfig,
    startup: Optional[ApplicationStartup] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Dependency injection container with services configured
        config: Application configuration
        startup: When given, components are started and stopped with the
            application lifespan

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application starting up...")
        if startup is not None:
            await startup.start_application()
        try:
            yield
        finally:
            if startup is not None:
                await startup.stop_application()
            logger.info("Application shutting down...")

    app = FastAPI(
        title=config.name,
        version=config.version,
        description="Multi-session SSH terminal relay",
        debug=config.debug,
        lifespan=lifespan
    )

    app.state.container = container
    app.state.config = config

    _configure_middleware(app, config)
    _register_routes(app)

    logger.info(f"FastAPI application created: {config.name} v{config.version}")
    return app


def _configure_middleware(app: FastAPI, config: ApplicationConfig) -> None:
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.debug("Middleware configured")


def _register_routes(app: FastAPI) -> None:
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["sessions"])
    app.include_router(terminal.router, prefix="/ws", tags=["terminal"])

    @app.get("/", tags=["root"])
    async def root() -> Dict[str, Any]:
        """Root endpoint with basic application information."""
        return {
            "name": app.title,
            "version": app.version,
            "status": "running",
            "docs_url": "/docs",
            "health_url": "/health",
            "terminal_url": "/ws/terminal"
        }

    logger.debug("Routes registered")
