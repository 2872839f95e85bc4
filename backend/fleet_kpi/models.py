"""Domain models used by the fleet KPI aggregation engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from .errors import MalformedRecordError

ZERO = Decimal("0")


@dataclass(frozen=True)
class TripTotals:
    """Aggregated trip figures for one organization and one window."""

    trips: int = 0
    distance: Decimal = ZERO
    revenue: Decimal = ZERO
    expenses: Decimal = ZERO
    profit: Decimal = ZERO
    fuel_cost: Decimal = ZERO
    fuel_litres: Decimal = ZERO
    vehicles_used: int = 0
    broken: dict[str, MalformedRecordError] = field(default_factory=dict, compare=False, repr=False)

    def require(self, measure: str) -> Decimal | int:
        """Return ``measure``, re-raising the error recorded if a row could not be summed into it.

        A malformed column only poisons the measures built from it; ``trips`` and
        ``vehicles_used`` are row counts and never fail.
        """

        error = self.broken.get(measure)
        if error is not None:
            raise error
        return getattr(self, measure)


@dataclass(frozen=True)
class FleetCounts:
    total_vehicles: int = 0
    active_vehicles: int = 0
    total_drivers: int = 0
    active_drivers: int = 0


@dataclass(frozen=True)
class EntityProfit:
    """Profit earned by a single vehicle or driver within a window."""

    entity_id: int
    name: str
    trip_count: int
    total_profit: Decimal


@dataclass(frozen=True)
class TripRecord:
    """A raw trip row as exported by the fleet CRUD system."""

    id: int
    organization_id: int
    trip_start_date: datetime
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    start_km: Any = None
    end_km: Any = None
    income_amount: Any = None
    total_expense: Any = None
    net_profit: Any = None
    total_fuel_cost: Any = None
    fuel_quantity: Any = None


@dataclass(frozen=True)
class VehicleRecord:
    id: int
    organization_id: int
    registration_number: str
    status: Optional[str] = "active"


@dataclass(frozen=True)
class DriverRecord:
    id: int
    organization_id: int
    name: str
    status: Optional[str] = "active"


@dataclass(frozen=True)
class MaintenanceRecord:
    id: int
    organization_id: int
    start_date: datetime
    vehicle_id: Optional[int] = None
    actual_cost: Any = None


@dataclass(frozen=True)
class KPICard:
    """A fully rendered metric ready to be persisted as a snapshot row."""

    organization_id: int
    metric_key: str
    title: str
    value_human: str
    theme: str
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.value_human, str) or not self.value_human.strip():
            raise ValueError(f"{self.metric_key}: value_human must be a non-empty string")


@dataclass(frozen=True)
class MetricError:
    """A failure recorded for one organization (and optionally one metric)."""

    organization_id: int | None
    metric_key: str | None
    message: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "metric_key": self.metric_key,
            "message": self.message,
        }


@dataclass
class GeneratorResult:
    cards: list[KPICard] = field(default_factory=list)
    errors: list[MetricError] = field(default_factory=list)

    def extend(self, other: "GeneratorResult") -> None:
        self.cards.extend(other.cards)
        self.errors.extend(other.errors)


__all__ = [
    "ZERO",
    "TripTotals",
    "FleetCounts",
    "EntityProfit",
    "TripRecord",
    "VehicleRecord",
    "DriverRecord",
    "MaintenanceRecord",
    "KPICard",
    "MetricError",
    "GeneratorResult",
]
