"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI

from app.api.routes import api_router
from app.config import get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.init import init_database
from app.db.session import get_database

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0")
setup_logging()
if settings.telemetry_enabled:
    setup_telemetry(settings, app=app, engine=get_database().engine)


@app.on_event("startup")
async def startup() -> None:
    """Create the snapshot table when the service boots."""

    database = get_database()
    logger.info("Starting %s with settings %s", settings.app_name, settings.dict_for_logging())
    await init_database(database.engine)


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_database().dispose()


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return service readiness metadata."""

    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "timezone": settings.timezone,
    }


def configure_app() -> FastAPI:
    """Attach routes and dependencies."""

    app.include_router(api_router)
    return app


configure_app()

__all__ = ["app", "configure_app"]
