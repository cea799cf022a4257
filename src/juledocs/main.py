"""FastAPI application entry point for the render service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from juledocs.api.routes.health import router as health_router
from juledocs.api.routes.render import router as render_router
from juledocs.build import setup_highlighter
from juledocs.dependencies import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Set up the highlighter before serving; setup failures abort startup."""
    settings = get_settings()
    app.state.highlighter = await setup_highlighter(settings)
    logger.info("Render service ready")
    yield
    app.state.highlighter = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        lifespan=lifespan,
    )
    application.state.highlighter = None

    application.include_router(health_router)
    application.include_router(render_router)

    return application


app = create_app()
