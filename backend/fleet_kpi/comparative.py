"""Period-over-period comparisons, performer rankings and efficiency trends."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable

from .arithmetic import rank_entities, safe_divide
from .cards import clip, collect_metric, comparison_card, json_number
from .formatting import DEFAULT_CURRENCY_SYMBOL, format_currency, unit_for
from .models import ZERO, EntityProfit, GeneratorResult, KPICard, TripTotals
from .sources import MetricSource
from .values import MetricValue, ValueKind, compare
from .windows import ReportingWindows, TimeWindow

NO_TRIPS_TEXT = "No trips yet"
DEFAULT_TOP_DRIVERS = 3

Builder = Callable[[], Awaitable[KPICard]]


@dataclass(frozen=True)
class PeriodComparison:
    metric_key: str
    title: str
    measure: str
    current: str
    previous: str
    comparison_type: str


# (current window, previous window) pairs are ReportingWindows attribute names.
PERIOD_COMPARISONS = (
    PeriodComparison("comparison.mtd_revenue_vs_last_month", "Revenue vs Last Month", "revenue",
                     "month_to_date", "previous_month_to_date", "month_over_month"),
    PeriodComparison("comparison.mtd_trips_vs_last_month", "Trips vs Last Month", "trips",
                     "month_to_date", "previous_month_to_date", "month_over_month"),
    PeriodComparison("comparison.mtd_distance_vs_last_month", "Distance vs Last Month", "distance",
                     "month_to_date", "previous_month_to_date", "month_over_month"),
    PeriodComparison("comparison.mtd_profit_vs_last_month", "Net Profit vs Last Month", "profit",
                     "month_to_date", "previous_month_to_date", "month_over_month"),
    PeriodComparison("comparison.wow_distance", "Distance vs Last Week", "distance",
                     "week_to_date", "previous_week", "week_over_week"),
    PeriodComparison("comparison.wow_trips", "Trips vs Last Week", "trips",
                     "week_to_date", "previous_week", "week_over_week"),
    PeriodComparison("comparison.wow_profit", "P&L vs Last Week", "profit",
                     "week_to_date", "previous_week", "week_over_week"),
    PeriodComparison("comparison.dod_distance", "Distance vs Yesterday", "distance",
                     "today", "yesterday", "day_over_day"),
    PeriodComparison("comparison.dod_trips", "Trips vs Yesterday", "trips",
                     "today", "yesterday", "day_over_day"),
    PeriodComparison("comparison.dod_profit", "P&L vs Yesterday", "profit",
                     "today", "yesterday", "day_over_day"),
    PeriodComparison("comparison.first10_distance", "First 10 Days Distance", "distance",
                     "first_days", "previous_first_days", "first_days"),
    PeriodComparison("comparison.first10_trips", "First 10 Days Trips", "trips",
                     "first_days", "previous_first_days", "first_days"),
    PeriodComparison("comparison.first10_profit", "First 10 Days Net Profit", "profit",
                     "first_days", "previous_first_days", "first_days"),
)

_MEASURES: dict[str, tuple[ValueKind, str | None]] = {
    "revenue": (ValueKind.CURRENCY, None),
    "profit": (ValueKind.CURRENCY, None),
    "distance": (ValueKind.DISTANCE, None),
    "trips": (ValueKind.COUNT, "trip"),
}


def _measure(totals: TripTotals, measure: str) -> Decimal | int:
    return totals.require(measure)


class ComparativeKPIGenerator:
    """Build comparison, ranking and efficiency cards for one organization."""

    def __init__(
        self,
        source: MetricSource,
        windows: ReportingWindows,
        *,
        currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
        top_drivers_limit: int = DEFAULT_TOP_DRIVERS,
        trend_epsilon: Decimal = ZERO,
    ) -> None:
        self._source = source
        self._windows = windows
        self._currency_symbol = currency_symbol
        self._top_drivers_limit = top_drivers_limit
        self._trend_epsilon = trend_epsilon

    async def generate(self, organization_id: int) -> GeneratorResult:
        result = GeneratorResult()
        builders: list[tuple[str, Builder]] = [
            (definition.metric_key, self._period_builder(organization_id, definition))
            for definition in PERIOD_COMPARISONS
        ]
        builders += [
            ("performance.top_vehicle", lambda: self._top_vehicle(organization_id)),
            ("performance.top_drivers", lambda: self._top_drivers(organization_id)),
            ("efficiency.fuel_trend", lambda: self._fuel_trend(organization_id)),
            ("efficiency.cost_per_km", lambda: self._cost_per_km(organization_id)),
        ]
        for metric_key, build in builders:
            await collect_metric(result, organization_id, metric_key, build)
        return result

    def _period_builder(self, organization_id: int, definition: PeriodComparison) -> Builder:
        async def build() -> KPICard:
            current_window: TimeWindow = getattr(self._windows, definition.current)
            previous_window: TimeWindow = getattr(self._windows, definition.previous)
            current = await self._source.trip_totals(organization_id, current_window)
            previous = await self._source.trip_totals(organization_id, previous_window)
            kind, noun = _MEASURES[definition.measure]
            comparison = compare(
                kind,
                _measure(current, definition.measure),
                _measure(previous, definition.measure),
                noun=noun,
                epsilon=self._trend_epsilon,
            )
            return comparison_card(
                organization_id,
                definition.metric_key,
                definition.title,
                "comparison",
                comparison,
                f"{current_window.label} vs {previous_window.label}",
                definition.comparison_type,
                currency_symbol=self._currency_symbol,
            )

        return build

    async def _efficiency(
        self,
        organization_id: int,
        metric_key: str,
        title: str,
        kind: ValueKind,
        ratio: Callable[[TripTotals], Decimal],
    ) -> KPICard:
        current_window = self._windows.month_to_date
        previous_window = self._windows.previous_month_to_date
        current = await self._source.trip_totals(organization_id, current_window)
        previous = await self._source.trip_totals(organization_id, previous_window)
        comparison = compare(kind, ratio(current), ratio(previous), epsilon=self._trend_epsilon)
        return comparison_card(
            organization_id,
            metric_key,
            title,
            "efficiency",
            comparison,
            f"{current_window.label} vs {previous_window.label}",
            "month_over_month",
            currency_symbol=self._currency_symbol,
        )

    async def _fuel_trend(self, organization_id: int) -> KPICard:
        return await self._efficiency(
            organization_id,
            "efficiency.fuel_trend",
            "Fuel Efficiency",
            ValueKind.FUEL_EFFICIENCY,
            lambda totals: safe_divide(totals.require("distance"), totals.require("fuel_litres")),
        )

    async def _cost_per_km(self, organization_id: int) -> KPICard:
        return await self._efficiency(
            organization_id,
            "efficiency.cost_per_km",
            "Cost per km",
            ValueKind.COST_PER_KM,
            lambda totals: safe_divide(totals.require("expenses"), totals.require("distance")),
        )

    async def _top_vehicle(self, organization_id: int) -> KPICard:
        window = self._windows.month_to_date
        ranked = rank_entities(await self._source.profit_by_vehicle(organization_id, window), 1)
        return self._ranking_card(organization_id, "performance.top_vehicle", "Top Vehicle", ranked, 1, window)

    async def _top_drivers(self, organization_id: int) -> KPICard:
        window = self._windows.month_to_date
        limit = self._top_drivers_limit
        ranked = rank_entities(await self._source.profit_by_driver(organization_id, window), limit)
        return self._ranking_card(organization_id, "performance.top_drivers", "Top Drivers", ranked, limit, window)

    def _ranking_card(
        self,
        organization_id: int,
        metric_key: str,
        title: str,
        ranked: list[EntityProfit],
        limit: int,
        window: TimeWindow,
    ) -> KPICard:
        symbol = self._currency_symbol
        top_profit = MetricValue.resolve(ValueKind.CURRENCY, ranked[0].total_profit if ranked else None)
        if ranked:
            text = ", ".join(
                f"{item.name} ({format_currency(item.total_profit, symbol)})" for item in ranked
            )
        else:
            text = NO_TRIPS_TEXT
        return KPICard(
            organization_id=organization_id,
            metric_key=metric_key,
            title=title,
            value_human=clip(text),
            theme="performance",
            payload={
                "type": "kpi",
                "value": json_number(top_profit.amount),
                "unit": unit_for(top_profit, symbol),
                "period": window.label,
                "limit": limit,
                "items": [
                    {
                        "rank": position,
                        "entity_id": item.entity_id,
                        "name": item.name,
                        "trip_count": item.trip_count,
                        "total_profit": json_number(item.total_profit),
                    }
                    for position, item in enumerate(ranked, start=1)
                ],
            },
        )


__all__ = ["ComparativeKPIGenerator", "PERIOD_COMPARISONS", "NO_TRIPS_TEXT", "DEFAULT_TOP_DRIVERS"]
