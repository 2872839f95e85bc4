"""Insert-only persistence for KPI snapshot rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import KPISnapshot
from fleet_kpi.errors import TenantIsolationError, UnsupportedDialectError
from fleet_kpi.models import KPICard

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}
_CONFLICT_COLUMNS = ["organization_id", "metric_key", "computed_at"]


@dataclass(frozen=True)
class WriteResult:
    inserted: int = 0
    duplicates: int = 0


class SnapshotStore:
    """Append KPI cards for one organization and read back the latest values.

    Rows are never updated. A card whose ``(organization_id, metric_key,
    computed_at)`` already exists is skipped and counted as a duplicate, which
    makes a second run inside the same bucket a no-op.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _insert(self):
        dialect = self._session.get_bind().dialect.name
        try:
            return _INSERTS[dialect]
        except KeyError as exc:
            raise UnsupportedDialectError(dialect) from exc

    async def write(
        self,
        organization_id: int,
        cards: Iterable[KPICard],
        computed_at: datetime,
    ) -> WriteResult:
        """Insert ``cards`` for ``organization_id``; the caller owns the commit."""

        cards = list(cards)
        for card in cards:
            if card.organization_id != organization_id:
                raise TenantIsolationError(
                    organization_id,
                    f"card {card.metric_key} belongs to organization {card.organization_id}",
                )
            if not card.value_human or not card.value_human.strip():
                raise ValueError(f"{card.metric_key}: value_human must not be empty")

        insert = self._insert()
        inserted = duplicates = 0
        for card in cards:
            stmt = (
                insert(KPISnapshot)
                .values(
                    organization_id=organization_id,
                    metric_key=card.metric_key,
                    title=card.title,
                    value_human=card.value_human,
                    payload=card.payload,
                    theme=card.theme,
                    computed_at=computed_at,
                )
                .on_conflict_do_nothing(index_elements=_CONFLICT_COLUMNS)
                .returning(KPISnapshot.id)
            )
            result = await self._session.execute(stmt)
            if result.scalar_one_or_none() is None:
                duplicates += 1
            else:
                inserted += 1

        if duplicates:
            logger.info(
                "Skipped %s existing snapshot(s) for organization %s at %s",
                duplicates,
                organization_id,
                computed_at.isoformat(),
            )
        return WriteResult(inserted=inserted, duplicates=duplicates)

    async def latest(self, organization_id: int) -> list[KPISnapshot]:
        """Most recent snapshot per metric key, ordered by key."""

        newest = (
            select(
                KPISnapshot.metric_key.label("metric_key"),
                func.max(KPISnapshot.computed_at).label("computed_at"),
            )
            .where(KPISnapshot.organization_id == organization_id)
            .group_by(KPISnapshot.metric_key)
            .subquery()
        )
        stmt = (
            select(KPISnapshot)
            .join(
                newest,
                (KPISnapshot.metric_key == newest.c.metric_key)
                & (KPISnapshot.computed_at == newest.c.computed_at),
            )
            .where(KPISnapshot.organization_id == organization_id)
            .order_by(KPISnapshot.metric_key)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())


__all__ = ["SnapshotStore", "WriteResult"]
