from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from app.models import KPISnapshot
from app.services.snapshot_store import SnapshotStore
from fleet_kpi.errors import (
    ImmutableSnapshotError,
    KPIError,
    TenantIsolationError,
    UnsupportedDialectError,
)
from fleet_kpi.models import KPICard
from fleet_support import sqlite_database, utc


def _card(organization_id: int, metric_key: str = "mtd.distance", value_human: str = "2,089 km") -> KPICard:
    return KPICard(
        organization_id=organization_id,
        metric_key=metric_key,
        title="Distance (MTD)",
        value_human=value_human,
        theme="distance",
        payload={"type": "kpi", "value": 2089, "unit": "km", "period": "Day 1-17"},
    )


def test_card_rejects_empty_display_value():
    with pytest.raises(ValueError):
        _card(1, value_human="  ")


async def test_duplicates_are_skipped_and_counted(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        computed_at = utc(2026, 10, 17, 10)
        async with database.session_factory() as session:
            store = SnapshotStore(session)
            first = await store.write(1, [_card(1), _card(1, "mtd.trips", "2 trips")], computed_at)
            second = await store.write(1, [_card(1)], computed_at)
            other_tenant = await store.write(2, [_card(2)], computed_at)
            await session.commit()

        assert (first.inserted, first.duplicates) == (2, 0)
        assert (second.inserted, second.duplicates) == (0, 1)
        assert (other_tenant.inserted, other_tenant.duplicates) == (1, 0)


async def test_foreign_cards_are_rejected_before_writing(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        async with database.session_factory() as session:
            store = SnapshotStore(session)
            with pytest.raises(TenantIsolationError):
                await store.write(1, [_card(1), _card(2, "mtd.trips")], utc(2026, 10, 17, 10))
            assert await store.latest(1) == []


async def test_latest_returns_newest_row_per_metric(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        async with database.session_factory() as session:
            store = SnapshotStore(session)
            await store.write(1, [_card(1, value_human="100 km")], utc(2026, 10, 17, 9))
            await store.write(1, [_card(1, value_human="250 km")], utc(2026, 10, 17, 10))
            await store.write(1, [_card(1, "mtd.trips", "3 trips")], utc(2026, 10, 17, 9))
            await store.write(2, [_card(2, value_human="9,999 km")], utc(2026, 10, 17, 11))
            await session.commit()

        async with database.session_factory() as session:
            latest = await SnapshotStore(session).latest(1)

        assert [(row.metric_key, row.value_human) for row in latest] == [
            ("mtd.distance", "250 km"),
            ("mtd.trips", "3 trips"),
        ]


async def test_snapshots_cannot_be_updated_or_deleted(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        async with database.session_factory() as session:
            await SnapshotStore(session).write(1, [_card(1)], utc(2026, 10, 17, 10))
            await session.commit()

        async with database.session_factory() as session:
            snapshot = (await SnapshotStore(session).latest(1))[0]
            snapshot.value_human = "0 km"
            with pytest.raises(ImmutableSnapshotError):
                await session.flush()
            await session.rollback()

        async with database.session_factory() as session:
            snapshot = await session.get(KPISnapshot, 1)
            await session.delete(snapshot)
            with pytest.raises(ImmutableSnapshotError):
                await session.flush()
            await session.rollback()

        async with database.session_factory() as session:
            assert (await session.get(KPISnapshot, 1)).value_human == "2,089 km"


async def test_unsupported_dialect_is_a_kpi_error():
    class MySQLSession:
        executed = False

        def get_bind(self):
            return SimpleNamespace(dialect=SimpleNamespace(name="mysql"))

        async def execute(self, stmt):
            self.executed = True

    session = MySQLSession()
    with pytest.raises(UnsupportedDialectError) as excinfo:
        await SnapshotStore(session).write(1, [_card(1)], utc(2026, 10, 17, 10))

    assert isinstance(excinfo.value, KPIError)
    assert excinfo.value.dialect == "mysql"
    assert not session.executed
