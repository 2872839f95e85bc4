"""Typed metric values resolved before any display string is built."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from .arithmetic import PercentChange, Trend, coalesce_decimal, percentage_change, trend_direction
from .models import ZERO


class ValueKind(str, Enum):
    COUNT = "count"
    DISTANCE = "distance"
    CURRENCY = "currency"
    PERCENT = "percent"
    FUEL_EFFICIENCY = "fuel_efficiency"
    COST_PER_KM = "cost_per_km"
    FRACTION = "fraction"


@dataclass(frozen=True)
class MetricValue:
    """A numeric metric with every default already applied."""

    kind: ValueKind
    amount: Decimal
    noun: str | None = None
    total: Decimal | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            raise TypeError(f"{self.kind.value} amount must be a finite Decimal, got {self.amount!r}")
        if self.kind is ValueKind.FRACTION and not isinstance(self.total, Decimal):
            raise TypeError("fraction values require a resolved total")

    @classmethod
    def resolve(
        cls,
        kind: ValueKind,
        raw: Any,
        *,
        noun: str | None = None,
        total: Any = None,
    ) -> "MetricValue":
        resolved_total = coalesce_decimal(total) if kind is ValueKind.FRACTION else None
        return cls(kind=kind, amount=coalesce_decimal(raw), noun=noun, total=resolved_total)


@dataclass(frozen=True)
class Comparison:
    current: MetricValue
    previous: MetricValue
    change: PercentChange
    trend: Trend


def compare(
    kind: ValueKind,
    current: Any,
    previous: Any,
    *,
    noun: str | None = None,
    epsilon: Decimal = ZERO,
) -> Comparison:
    """Resolve both periods and derive the change and trend between them."""

    current_value = MetricValue.resolve(kind, current, noun=noun)
    previous_value = MetricValue.resolve(kind, previous, noun=noun)
    change = percentage_change(current_value.amount, previous_value.amount)
    return Comparison(
        current=current_value,
        previous=previous_value,
        change=change,
        trend=trend_direction(change.value, epsilon),
    )


__all__ = ["ValueKind", "MetricValue", "Comparison", "compare"]
