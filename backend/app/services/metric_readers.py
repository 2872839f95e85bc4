"""SQL aggregate readers over the fleet CRUD tables."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import Numeric, and_, case, cast, distinct, func, or_, select
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Driver, MaintenanceTask, Organization, Trip, Vehicle
from fleet_kpi.arithmetic import coalesce_decimal, coalesce_int
from fleet_kpi.errors import MalformedRecordError, TenantIsolationError
from fleet_kpi.models import ZERO, EntityProfit, FleetCounts, TripTotals
from fleet_kpi.sources import ACTIVE_STATUS
from fleet_kpi.windows import TimeWindow

_AMOUNT = Numeric(20, 4)

_distance = case(
    (
        and_(Trip.start_km.is_not(None), Trip.end_km.is_not(None), Trip.end_km > Trip.start_km),
        Trip.end_km - Trip.start_km,
    ),
    else_=0,
)
_profit = case(
    (Trip.net_profit.is_not(None), Trip.net_profit),
    else_=func.coalesce(Trip.income_amount, 0) - func.coalesce(Trip.total_expense, 0),
)

# TripTotals measure -> (summed expression, column named in malformed-value errors).
_TRIP_SUMS = {
    "distance": (_distance, "distance"),
    "revenue": (Trip.income_amount, "income_amount"),
    "expenses": (Trip.total_expense, "total_expense"),
    "profit": (_profit, "net_profit"),
    "fuel_cost": (Trip.total_fuel_cost, "total_fuel_cost"),
    "fuel_litres": (Trip.fuel_quantity, "fuel_quantity"),
}


def _total(expression: Any) -> Any:
    return cast(func.coalesce(func.sum(expression), 0), _AMOUNT)


def _active(status_column: Any) -> Any:
    return func.coalesce(
        func.sum(case((or_(status_column.is_(None), status_column == ACTIVE_STATUS), 1), else_=0)), 0
    )


def _in_window(column: Any, window: TimeWindow) -> Any:
    return and_(column >= window.start, column < window.end)


async def list_organization_ids(session: AsyncSession) -> list[int]:
    """Return every tenant in processing order (oldest first)."""

    result = await session.execute(select(Organization.id).order_by(Organization.created_at, Organization.id))
    return list(result.scalars())


class SqlMetricReader:
    """Answer metric queries with one aggregate statement each.

    Every statement filters on ``organization_id``; the ranking queries join
    vehicles and drivers without that filter so a cross-tenant reference is
    detected instead of silently dropped.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _execute(self, stmt: Any) -> Result[Any]:
        # One SAVEPOINT per read; a failed statement must not leave the
        # organization's transaction aborted for later metrics and the write.
        async with self._session.begin_nested():
            return await self._session.execute(stmt)

    async def trip_totals(self, organization_id: int, window: TimeWindow) -> TripTotals:
        stmt = select(
            func.count(Trip.id),
            func.count(distinct(Trip.vehicle_id)),
            *(_total(expression) for expression, _ in _TRIP_SUMS.values()),
        ).where(Trip.organization_id == organization_id, _in_window(Trip.trip_start_date, window))
        row = (await self._execute(stmt)).one()

        sums: dict[str, Decimal] = {}
        broken: dict[str, MalformedRecordError] = {}
        for (measure, (_, column)), value in zip(_TRIP_SUMS.items(), row[2:]):
            try:
                sums[measure] = coalesce_decimal(value, entity="trip", field=column)
            except MalformedRecordError as exc:
                broken[measure] = exc
                sums[measure] = ZERO
        return TripTotals(
            trips=coalesce_int(row[0]),
            vehicles_used=coalesce_int(row[1]),
            broken=broken,
            **sums,
        )

    async def maintenance_cost(self, organization_id: int, window: TimeWindow) -> Decimal:
        stmt = select(_total(MaintenanceTask.actual_cost)).where(
            MaintenanceTask.organization_id == organization_id,
            _in_window(MaintenanceTask.start_date, window),
        )
        value = (await self._execute(stmt)).scalar_one()
        return coalesce_decimal(value, entity="maintenance_task", field="actual_cost")

    async def fleet_counts(self, organization_id: int) -> FleetCounts:
        vehicles = (
            await self._execute(
                select(func.count(Vehicle.id), _active(Vehicle.status)).where(
                    Vehicle.organization_id == organization_id
                )
            )
        ).one()
        drivers = (
            await self._execute(
                select(func.count(Driver.id), _active(Driver.status)).where(
                    Driver.organization_id == organization_id
                )
            )
        ).one()
        return FleetCounts(
            total_vehicles=coalesce_int(vehicles[0]),
            active_vehicles=coalesce_int(vehicles[1]),
            total_drivers=coalesce_int(drivers[0]),
            active_drivers=coalesce_int(drivers[1]),
        )

    async def profit_by_vehicle(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return await self._profit_by(
            organization_id, window, Trip.vehicle_id, Vehicle, Vehicle.registration_number, "vehicle"
        )

    async def profit_by_driver(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return await self._profit_by(organization_id, window, Trip.driver_id, Driver, Driver.name, "driver")

    async def _profit_by(
        self,
        organization_id: int,
        window: TimeWindow,
        key: Any,
        entity: Any,
        label: Any,
        kind: str,
    ) -> list[EntityProfit]:
        stmt = (
            select(key, entity.organization_id, label, func.count(Trip.id), _total(_profit))
            .select_from(Trip)
            .outerjoin(entity, entity.id == key)
            .where(
                Trip.organization_id == organization_id,
                key.is_not(None),
                _in_window(Trip.trip_start_date, window),
            )
            .group_by(key, entity.organization_id, label)
            .order_by(key)
        )
        results: list[EntityProfit] = []
        for entity_id, owner_id, name, trip_count, profit in (await self._execute(stmt)).all():
            if owner_id is not None and owner_id != organization_id:
                raise TenantIsolationError(
                    organization_id,
                    f"trip references {kind} {entity_id} owned by organization {owner_id}",
                )
            results.append(
                EntityProfit(
                    entity_id=entity_id,
                    name=name if name else f"{kind.title()} #{entity_id}",
                    trip_count=coalesce_int(trip_count),
                    total_profit=coalesce_decimal(profit, entity="trip", field="net_profit"),
                )
            )
        return results


__all__ = ["SqlMetricReader", "list_organization_ids"]
