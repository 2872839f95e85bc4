"""Null-safe arithmetic used by every KPI computation.

Every helper here accepts possibly-missing operands (``None`` from an empty
aggregate, a NULL column, an absent prior period) and always returns a defined,
finite ``Decimal``. Nothing downstream of this module ever sees ``None``.

Percentage change convention when the previous period is zero:

* current == 0  -> 0 %, ``baseline_missing`` False (nothing happened in either period)
* current != 0  -> capped at +/-``PERCENT_CHANGE_CAP`` (100 %) with the sign of
  ``current`` and ``baseline_missing`` True, so the dashboard can show "new"
  instead of an unbounded figure.

When the previous value is negative (a loss) the change is measured against its
magnitude, so moving from -100 to -50 reads as +50 %.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from enum import Enum
from typing import Any, Iterable

from .errors import MalformedRecordError
from .models import ZERO, EntityProfit

getcontext().prec = 28

PERCENT_CHANGE_CAP = Decimal("100")
HUNDRED = Decimal("100")
ONE_PLACE = Decimal("0.1")
TWO_PLACES = Decimal("0.01")


def coalesce_decimal(value: Any, *, entity: str = "value", field: str = "value") -> Decimal:
    """Resolve ``value`` to a finite Decimal, treating ``None`` as zero."""

    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise MalformedRecordError(entity, field, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise MalformedRecordError(entity, field, value) from exc
    else:
        raise MalformedRecordError(entity, field, value)
    if not result.is_finite():
        raise MalformedRecordError(entity, field, value)
    return result


def coalesce_int(value: Any, *, entity: str = "value", field: str = "value") -> int:
    return int(coalesce_decimal(value, entity=entity, field=field))


def safe_divide(numerator: Any, denominator: Any) -> Decimal:
    """Divide, returning 0 when the denominator is zero or missing."""

    num = coalesce_decimal(numerator)
    den = coalesce_decimal(denominator)
    if den == 0:
        return ZERO
    return num / den


def percent_of(part: Any, whole: Any) -> Decimal:
    return safe_divide(part, whole) * HUNDRED


def round_to(value: Decimal, places: Decimal) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


def trip_distance(start_km: Any, end_km: Any) -> Decimal:
    """Odometer distance; missing or reversed readings contribute nothing."""

    if start_km is None or end_km is None:
        return ZERO
    start = coalesce_decimal(start_km, entity="trip", field="start_km")
    end = coalesce_decimal(end_km, entity="trip", field="end_km")
    return end - start if end > start else ZERO


def trip_profit(net_profit: Any, income_amount: Any, total_expense: Any) -> Decimal:
    if net_profit is not None:
        return coalesce_decimal(net_profit, entity="trip", field="net_profit")
    income = coalesce_decimal(income_amount, entity="trip", field="income_amount")
    expense = coalesce_decimal(total_expense, entity="trip", field="total_expense")
    return income - expense


@dataclass(frozen=True)
class PercentChange:
    value: Decimal
    baseline_missing: bool = False


def percentage_change(
    current: Any,
    previous: Any,
    *,
    cap: Decimal = PERCENT_CHANGE_CAP,
) -> PercentChange:
    """Period-over-period change in percent, rounded to one decimal place."""

    cur = coalesce_decimal(current)
    prev = coalesce_decimal(previous)
    if prev == 0:
        if cur == 0:
            return PercentChange(ZERO)
        return PercentChange(cap if cur > 0 else -cap, baseline_missing=True)
    change = (cur - prev) / abs(prev) * HUNDRED
    return PercentChange(round_to(change, ONE_PLACE))


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


def trend_direction(change: Decimal, epsilon: Decimal = ZERO) -> Trend:
    if abs(change) <= epsilon:
        return Trend.FLAT
    return Trend.UP if change > 0 else Trend.DOWN


def rank_entities(items: Iterable[EntityProfit], limit: int) -> list[EntityProfit]:
    """Order by profit descending, breaking ties by entity id ascending."""

    if limit <= 0:
        return []
    ordered = sorted(items, key=lambda item: (-item.total_profit, item.entity_id))
    return ordered[:limit]


__all__ = [
    "PERCENT_CHANGE_CAP",
    "HUNDRED",
    "ONE_PLACE",
    "TWO_PLACES",
    "coalesce_decimal",
    "coalesce_int",
    "safe_divide",
    "percent_of",
    "round_to",
    "trip_distance",
    "trip_profit",
    "PercentChange",
    "percentage_change",
    "Trend",
    "trend_direction",
    "rank_entities",
]
