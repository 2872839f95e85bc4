"""Absolute KPIs: daily, weekly and month-to-date totals plus fleet utilization."""
from __future__ import annotations

from typing import Awaitable, Callable

from .arithmetic import percent_of
from .cards import collect_metric, value_card
from .formatting import DEFAULT_CURRENCY_SYMBOL
from .models import GeneratorResult, KPICard, TripTotals
from .sources import MetricSource
from .values import MetricValue, ValueKind
from .windows import ReportingWindows, TimeWindow

CURRENT_PERIOD = "Current"


class BasicKPIGenerator:
    """Build the absolute KPI cards for one organization."""

    def __init__(
        self,
        source: MetricSource,
        windows: ReportingWindows,
        *,
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
    ) -> None:
        self._source = source
        self._windows = windows
        self._currency_symbol = currency_symbol

    async def generate(self, organization_id: int) -> GeneratorResult:
        result = GeneratorResult()
        for metric_key, build in self._builders(organization_id):
            await collect_metric(result, organization_id, metric_key, build)
        return result

    def _builders(self, organization_id: int) -> list[tuple[str, Callable[[], Awaitable[KPICard]]]]:
        w = self._windows
        builders: list[tuple[str, Callable[[], Awaitable[KPICard]]]] = [
            self._trip_metric(organization_id, "today.distance", "Today's Distance", "distance", w.today),
            self._trip_metric(organization_id, "today.trips", "Today's Trips", "trips", w.today),
            self._trip_metric(organization_id, "today.profit", "Today's P&L", "pnl", w.today),
            ("today.active_vehicles", lambda: self._active_vehicles_today(organization_id)),
            self._trip_metric(organization_id, "week.distance", "This Week's Distance", "distance", w.week_to_date),
            self._trip_metric(organization_id, "week.trips", "This Week's Trips", "trips", w.week_to_date),
            self._trip_metric(organization_id, "week.profit", "This Week's P&L", "pnl", w.week_to_date),
            self._trip_metric(organization_id, "mtd.distance", "Distance (MTD)", "distance", w.month_to_date),
            self._trip_metric(organization_id, "mtd.trips", "Trips (MTD)", "trips", w.month_to_date),
            self._trip_metric(organization_id, "mtd.revenue", "Revenue (MTD)", "revenue", w.month_to_date),
            self._trip_metric(organization_id, "mtd.expenses", "Expenses (MTD)", "expenses", w.month_to_date),
            self._trip_metric(organization_id, "mtd.profit", "Net Profit (MTD)", "pnl", w.month_to_date),
            ("mtd.maintenance_cost", lambda: self._maintenance_cost(organization_id)),
            ("mtd.profit_margin", lambda: self._profit_margin(organization_id)),
            ("fleet.utilization", lambda: self._fleet_utilization(organization_id)),
            ("fleet.active_drivers", lambda: self._active_drivers(organization_id)),
        ]
        return builders

    def _trip_metric(
        self,
        organization_id: int,
        metric_key: str,
        title: str,
        theme: str,
        window: TimeWindow,
    ) -> tuple[str, Callable[[], Awaitable[KPICard]]]:
        measure = metric_key.rsplit(".", 1)[1]

        async def build() -> KPICard:
            totals = await self._source.trip_totals(organization_id, window)
            return self._card(organization_id, metric_key, title, theme, _trip_value(totals, measure), window.label)

        return metric_key, build

    def _card(
        self,
        organization_id: int,
        metric_key: str,
        title: str,
        theme: str,
        value: MetricValue,
        period: str,
    ) -> KPICard:
        return value_card(
            organization_id,
            metric_key,
            title,
            theme,
            value,
            period,
            currency_symbol=self._currency_symbol,
        )

    async def _active_vehicles_today(self, organization_id: int) -> KPICard:
        window = self._windows.today
        totals = await self._source.trip_totals(organization_id, window)
        counts = await self._source.fleet_counts(organization_id)
        value = MetricValue.resolve(ValueKind.FRACTION, totals.vehicles_used, total=counts.total_vehicles)
        return self._card(
            organization_id, "today.active_vehicles", "Vehicles On Road Today", "utilization", value, window.label
        )

    async def _maintenance_cost(self, organization_id: int) -> KPICard:
        window = self._windows.month_to_date
        cost = await self._source.maintenance_cost(organization_id, window)
        value = MetricValue.resolve(ValueKind.CURRENCY, cost)
        return self._card(
            organization_id, "mtd.maintenance_cost", "Maintenance Spend (MTD)", "maintenance", value, window.label
        )

    async def _profit_margin(self, organization_id: int) -> KPICard:
        window = self._windows.month_to_date
        totals = await self._source.trip_totals(organization_id, window)
        margin = percent_of(totals.require("profit"), totals.require("revenue"))
        value = MetricValue.resolve(ValueKind.PERCENT, margin)
        return self._card(organization_id, "mtd.profit_margin", "Profit Margin (MTD)", "pnl", value, window.label)

    async def _fleet_utilization(self, organization_id: int) -> KPICard:
        counts = await self._source.fleet_counts(organization_id)
        value = MetricValue.resolve(
            ValueKind.PERCENT, percent_of(counts.active_vehicles, counts.total_vehicles)
        )
        return self._card(
            organization_id, "fleet.utilization", "Fleet Utilization", "utilization", value, CURRENT_PERIOD
        )

    async def _active_drivers(self, organization_id: int) -> KPICard:
        counts = await self._source.fleet_counts(organization_id)
        value = MetricValue.resolve(ValueKind.FRACTION, counts.active_drivers, total=counts.total_drivers)
        return self._card(
            organization_id, "fleet.active_drivers", "Active Drivers", "utilization", value, CURRENT_PERIOD
        )


def _trip_value(totals: TripTotals, measure: str) -> MetricValue:
    if measure == "trips":
        return MetricValue.resolve(ValueKind.COUNT, totals.trips, noun="trip")
    if measure == "distance":
        return MetricValue.resolve(ValueKind.DISTANCE, totals.require("distance"))
    if measure in ("revenue", "expenses", "profit"):
        return MetricValue.resolve(ValueKind.CURRENCY, totals.require(measure))
    raise ValueError(f"unknown trip measure: {measure}")


__all__ = ["BasicKPIGenerator"]
