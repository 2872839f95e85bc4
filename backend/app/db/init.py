"""Database schema initialization helpers."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from app.db.base import Base
from app.db.session import get_database
from app.models import KPISnapshot

logger = logging.getLogger(__name__)


async def init_database(engine: AsyncEngine | None = None) -> None:
    """Ensure the snapshot table exists.

    Source tables belong to the fleet CRUD system and are never created here.
    """

    engine = engine or get_database().engine
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=[KPISnapshot.__table__])
    except SQLAlchemyError:
        logger.exception("Failed to initialise database schema")
        raise


__all__ = ["init_database"]
