"""PyRock main application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from pyrock.api.routes import router
from pyrock.api.websocket import router as websocket_router
from pyrock.core import setup_logging
from pyrock.core.dependencies import (
    get_app_settings,
    initialize_browser_session,
    shutdown_browser_session,
)
from pyrock.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles application startup and shutdown events.
    """
    # Startup
    setup_logging()
    logger.info("application_startup", app_name=app.title, version=app.version)

    # Initialize browser session
    try:
        ready = await initialize_browser_session()
        logger.info("browser_session_initialized", ready=ready)
    except Exception as e:
        logger.error("browser_session_initialization_failed_on_startup", error=str(e))
        # Continue without a session - the first command initializes one

    yield

    # Shutdown
    logger.info("application_shutdown")

    try:
        await shutdown_browser_session()
        logger.info("browser_session_shutdown")
    except Exception as e:
        logger.error("browser_session_shutdown_failed", error=str(e))


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Uses centralized dependency injection for settings.
    """
    settings = get_app_settings()

    app = FastAPI(
        title=settings.app_name,
        description="PyRock remote browser control",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(router)  # Viewer page, health, metrics
    app.include_router(websocket_router)  # Control channel on /

    # Static assets last so routes win; serves the published screenshot
    settings.static_path.mkdir(parents=True, exist_ok=True)
    app.mount("/", StaticFiles(directory=settings.static_path), name="static")

    return app


app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    settings = get_app_settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
