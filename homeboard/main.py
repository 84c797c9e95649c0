"""
FastAPI application entrypoint for the home dashboard.
"""

from __future__ import annotations

from fastapi import FastAPI

from homeboard.api.routes import router as api_router
from homeboard.core.config import get_settings
from homeboard.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Homeboard",
        version="0.1.0",
        description="Home dashboard API: appliances, calendar and provider credentials.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
