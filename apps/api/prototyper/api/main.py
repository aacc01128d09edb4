"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prototyper.api.routes import router
from prototyper.config import Settings, get_settings
from prototyper.container import Container, build_container
from prototyper.database.session import init_db
from prototyper.exceptions import PrototyperError


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, container: Container | None = None) -> FastAPI:
    """Build the FastAPI application.

    When ``container`` is given it is used as-is and left open on shutdown;
    otherwise one is built from settings during startup.
    """
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")
        owned = getattr(app.state, "container", None) is None
        if owned:
            app.state.container = build_container(settings)

        # Initialize database
        if settings.environment == "development":
            await init_db(app.state.container.engine)
            logger.info("Database initialized")

        yield

        # Shutdown
        logger.info("Shutting down...")
        if owned:
            await app.state.container.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Prototyper API - prompt to React component previews",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PrototyperError)
    async def prototyper_error_handler(request: Request, exc: PrototyperError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    # Include routes
    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs",
        }

    return app


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
