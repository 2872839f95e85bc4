"""Metric sources feeding the KPI generators.

A source answers a handful of aggregate questions for one organization and one
reporting window. The organization is always passed explicitly so no query can
silently widen its tenant scope.
"""
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

from .arithmetic import coalesce_decimal, trip_distance, trip_profit
from .errors import MalformedRecordError, TenantIsolationError
from .models import (
    ZERO,
    DriverRecord,
    EntityProfit,
    FleetCounts,
    MaintenanceRecord,
    TripRecord,
    TripTotals,
    VehicleRecord,
)
from .windows import TimeWindow

ACTIVE_STATUS = "active"

T = TypeVar("T")

# TripTotals measure -> one trip's contribution; each measure fails independently.
_TRIP_MEASURES: dict[str, Callable[[TripRecord], Decimal]] = {
    "distance": lambda trip: trip_distance(trip.start_km, trip.end_km),
    "revenue": lambda trip: coalesce_decimal(trip.income_amount, entity="trip", field="income_amount"),
    "expenses": lambda trip: coalesce_decimal(trip.total_expense, entity="trip", field="total_expense"),
    "profit": lambda trip: trip_profit(trip.net_profit, trip.income_amount, trip.total_expense),
    "fuel_cost": lambda trip: coalesce_decimal(trip.total_fuel_cost, entity="trip", field="total_fuel_cost"),
    "fuel_litres": lambda trip: coalesce_decimal(trip.fuel_quantity, entity="trip", field="fuel_quantity"),
}


def is_active(status: str | None) -> bool:
    return status is None or status == ACTIVE_STATUS


class MetricSource(Protocol):
    async def trip_totals(self, organization_id: int, window: TimeWindow) -> TripTotals:
        ...

    async def maintenance_cost(self, organization_id: int, window: TimeWindow) -> Decimal:
        ...

    async def fleet_counts(self, organization_id: int) -> FleetCounts:
        ...

    async def profit_by_vehicle(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        ...

    async def profit_by_driver(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        ...


class InMemoryMetricSource:
    """Answer metric queries from plain record lists."""

    def __init__(
        self,
        *,
        trips: Iterable[TripRecord] = (),
        vehicles: Iterable[VehicleRecord] = (),
        drivers: Iterable[DriverRecord] = (),
        maintenance: Iterable[MaintenanceRecord] = (),
    ) -> None:
        self._trips = list(trips)
        self._vehicles = {vehicle.id: vehicle for vehicle in vehicles}
        self._drivers = {driver.id: driver for driver in drivers}
        self._maintenance = list(maintenance)

    def _trips_in(self, organization_id: int, window: TimeWindow) -> list[TripRecord]:
        return [
            trip
            for trip in self._trips
            if trip.organization_id == organization_id and window.contains(trip.trip_start_date)
        ]

    async def trip_totals(self, organization_id: int, window: TimeWindow) -> TripTotals:
        trips = self._trips_in(organization_id, window)
        sums = dict.fromkeys(_TRIP_MEASURES, ZERO)
        broken: dict[str, MalformedRecordError] = {}
        vehicles: set[int] = set()
        for trip in trips:
            for measure, extract in _TRIP_MEASURES.items():
                if measure in broken:
                    continue
                try:
                    sums[measure] += extract(trip)
                except MalformedRecordError as exc:
                    broken[measure] = exc
            if trip.vehicle_id is not None:
                vehicles.add(trip.vehicle_id)
        for measure in broken:
            sums[measure] = ZERO
        return TripTotals(trips=len(trips), vehicles_used=len(vehicles), broken=broken, **sums)

    async def maintenance_cost(self, organization_id: int, window: TimeWindow) -> Decimal:
        total = ZERO
        for task in self._maintenance:
            if task.organization_id == organization_id and window.contains(task.start_date):
                total += coalesce_decimal(task.actual_cost, entity="maintenance_task", field="actual_cost")
        return total

    async def fleet_counts(self, organization_id: int) -> FleetCounts:
        vehicles = [v for v in self._vehicles.values() if v.organization_id == organization_id]
        drivers = [d for d in self._drivers.values() if d.organization_id == organization_id]
        return FleetCounts(
            total_vehicles=len(vehicles),
            active_vehicles=sum(1 for v in vehicles if is_active(v.status)),
            total_drivers=len(drivers),
            active_drivers=sum(1 for d in drivers if is_active(d.status)),
        )

    def _profit_by(
        self,
        organization_id: int,
        window: TimeWindow,
        key: Callable[[TripRecord], int | None],
        lookup: Callable[[int], tuple[int, str] | None],
        kind: str,
    ) -> list[EntityProfit]:
        counts: dict[int, int] = defaultdict(int)
        totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for trip in self._trips_in(organization_id, window):
            entity_id = key(trip)
            if entity_id is None:
                continue
            counts[entity_id] += 1
            totals[entity_id] += trip_profit(trip.net_profit, trip.income_amount, trip.total_expense)

        results: list[EntityProfit] = []
        for entity_id in sorted(counts):
            owner = lookup(entity_id)
            if owner is not None and owner[0] != organization_id:
                raise TenantIsolationError(
                    organization_id,
                    f"trip references {kind} {entity_id} owned by organization {owner[0]}",
                )
            name = owner[1] if owner is not None else f"{kind.title()} #{entity_id}"
            results.append(
                EntityProfit(
                    entity_id=entity_id,
                    name=name,
                    trip_count=counts[entity_id],
                    total_profit=totals[entity_id],
                )
            )
        return results

    def _vehicle_owner(self, vehicle_id: int) -> tuple[int, str] | None:
        vehicle = self._vehicles.get(vehicle_id)
        return (vehicle.organization_id, vehicle.registration_number) if vehicle else None

    def _driver_owner(self, driver_id: int) -> tuple[int, str] | None:
        driver = self._drivers.get(driver_id)
        return (driver.organization_id, driver.name) if driver else None

    async def profit_by_vehicle(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return self._profit_by(
            organization_id, window, lambda trip: trip.vehicle_id, self._vehicle_owner, "vehicle"
        )

    async def profit_by_driver(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return self._profit_by(
            organization_id, window, lambda trip: trip.driver_id, self._driver_owner, "driver"
        )


class CachingMetricSource:
    """Memoize reads of another source for the duration of one organization run.

    Several cards share the same aggregate (``mtd.distance`` and the month over
    month comparison both need month-to-date totals); the cache keeps that to a
    single query. Failures are not cached.
    """

    def __init__(self, inner: MetricSource) -> None:
        self._inner = inner
        self._cache: dict[tuple, object] = {}

    async def _cached(self, key: tuple, loader: Callable[[], Awaitable[T]]) -> T:
        if key not in self._cache:
            self._cache[key] = await loader()
        return self._cache[key]  # type: ignore[return-value]

    async def trip_totals(self, organization_id: int, window: TimeWindow) -> TripTotals:
        return await self._cached(
            ("trip_totals", organization_id, window),
            lambda: self._inner.trip_totals(organization_id, window),
        )

    async def maintenance_cost(self, organization_id: int, window: TimeWindow) -> Decimal:
        return await self._cached(
            ("maintenance_cost", organization_id, window),
            lambda: self._inner.maintenance_cost(organization_id, window),
        )

    async def fleet_counts(self, organization_id: int) -> FleetCounts:
        return await self._cached(
            ("fleet_counts", organization_id),
            lambda: self._inner.fleet_counts(organization_id),
        )

    async def profit_by_vehicle(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return await self._cached(
            ("profit_by_vehicle", organization_id, window),
            lambda: self._inner.profit_by_vehicle(organization_id, window),
        )

    async def profit_by_driver(self, organization_id: int, window: TimeWindow) -> list[EntityProfit]:
        return await self._cached(
            ("profit_by_driver", organization_id, window),
            lambda: self._inner.profit_by_driver(organization_id, window),
        )


__all__ = [
    "ACTIVE_STATUS",
    "is_active",
    "MetricSource",
    "InMemoryMetricSource",
    "CachingMetricSource",
]
