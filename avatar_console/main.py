"""Avatar Console - FastAPI Application Entry Point.

Operator console backend for knowledge-base-driven avatar chat sessions
with conversation continuity across interruptions.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from avatar_console import __version__
from avatar_console.api.dependencies import init_services, shutdown_services
from avatar_console.api.errors import register_exception_handlers
from avatar_console.api.middleware.request_id import RequestIDMiddleware
from avatar_console.api.routes import conversations, health, sessions
from avatar_console.config.settings import get_settings
from avatar_console.observability.logging import get_logger, init_logging
from avatar_console.observability.metrics import set_build_info

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the completion and streaming clients on startup; ends every
    live session (flushing their transcripts) on shutdown.
    """
    settings = get_settings()
    init_logging(
        json_format=settings.environment == "production",
        level=settings.log_level,
    )
    logger.info(
        "avatar_console_starting",
        version=__version__,
        environment=settings.environment,
        port=settings.api_port,
    )

    try:
        components = await init_services()
        for component, healthy in components.items():
            health.set_component_health(component, healthy)

        if settings.metrics_enabled:
            set_build_info(__version__)

        health.set_ready(True)
        logger.info("avatar_console_ready", components=health.get_component_health())

    except Exception as e:
        logger.error("avatar_console_startup_failed", error=str(e))
        raise

    yield

    logger.info("avatar_console_shutting_down")
    health.set_ready(False)

    ended_count = await shutdown_services()
    logger.info("sessions_ended", count=ended_count)
    logger.info("avatar_console_shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Avatar Console",
        description="Avatar chat sessions with conversation continuity",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(sessions.router)
    app.include_router(sessions.ws_router)

    register_exception_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "avatar_console.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower().replace("warn", "warning"),
        reload=settings.environment == "development",
    )
