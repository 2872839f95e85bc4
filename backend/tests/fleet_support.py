"""Shared builders for the database-backed KPI tests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator

from app.config import AppSettings
from app.db.base import Base
from app.db.session import Database
from app.models import Driver, Organization, Trip, Vehicle

# Saturday; the ISO week started on Monday 2026-10-12.
RUN_AT = datetime(2026, 10, 17, 10, 15, tzinfo=timezone.utc)

EXPECTED_METRIC_KEYS = sorted(
    [
        "today.distance",
        "today.trips",
        "today.profit",
        "today.active_vehicles",
        "week.distance",
        "week.trips",
        "week.profit",
        "mtd.distance",
        "mtd.trips",
        "mtd.revenue",
        "mtd.expenses",
        "mtd.profit",
        "mtd.maintenance_cost",
        "mtd.profit_margin",
        "fleet.utilization",
        "fleet.active_drivers",
        "comparison.mtd_revenue_vs_last_month",
        "comparison.mtd_trips_vs_last_month",
        "comparison.mtd_distance_vs_last_month",
        "comparison.mtd_profit_vs_last_month",
        "comparison.wow_distance",
        "comparison.wow_trips",
        "comparison.wow_profit",
        "comparison.dod_distance",
        "comparison.dod_trips",
        "comparison.dod_profit",
        "comparison.first10_distance",
        "comparison.first10_trips",
        "comparison.first10_profit",
        "performance.top_vehicle",
        "performance.top_drivers",
        "efficiency.fuel_trend",
        "efficiency.cost_per_km",
    ]
)


def utc(*parts: int) -> datetime:
    return datetime(*parts, tzinfo=timezone.utc)


def make_settings(**overrides: Any) -> AppSettings:
    values: dict[str, Any] = {
        "timezone": "UTC",
        "kpi_max_concurrency": 1,
        "database_url": "sqlite+aiosqlite://",
    }
    values.update(overrides)
    return AppSettings(**values)


@asynccontextmanager
async def sqlite_database(tmp_path: Path) -> AsyncIterator[Database]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}")
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield database
    finally:
        await database.dispose()


async def seed(database: Database, *rows: Any) -> None:
    async with database.session_factory() as session:
        for row in rows:
            session.add(row)
            await session.flush()
        await session.commit()


def organization(org_id: int, name: str | None = None, created_at: datetime | None = None) -> Organization:
    return Organization(
        id=org_id,
        name=name or f"Org {org_id}",
        created_at=created_at or utc(2026, 1, org_id),
    )


def basic_fleet(org_id: int, vehicle_id: int, driver_id: int) -> list[Any]:
    """One organization with a single vehicle and driver, no trips."""

    return [
        organization(org_id),
        Vehicle(id=vehicle_id, organization_id=org_id, registration_number=f"KA-0{vehicle_id}", status="active"),
        Driver(id=driver_id, organization_id=org_id, name=f"Driver {driver_id}", status="active"),
    ]


def trip(trip_id: int, org_id: int, when: datetime, start_km: int, end_km: int, **extra: Any) -> Trip:
    return Trip(
        id=trip_id,
        organization_id=org_id,
        trip_start_date=when,
        start_km=start_km,
        end_km=end_km,
        **extra,
    )
