"""Display formatting for resolved metric values.

Formatters only accept numbers that already went through the arithmetic layer;
handing them ``None`` is a programming error and raises ``TypeError`` instead of
producing an empty or partial string.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from .arithmetic import ONE_PLACE, TWO_PLACES, round_to
from .values import Comparison, MetricValue, ValueKind

DEFAULT_CURRENCY_SYMBOL = "₹"
_WHOLE = Decimal("1")


def _require(value: Decimal | int) -> Decimal:
    if value is None or isinstance(value, bool) or not isinstance(value, (Decimal, int)):
        raise TypeError(f"formatters require a resolved numeric value, got {value!r}")
    return Decimal(value) if isinstance(value, int) else value


def _whole(value: Decimal) -> int:
    return int(value.quantize(_WHOLE, rounding=ROUND_HALF_UP))


def format_integer(value: Decimal | int) -> str:
    return f"{_whole(_require(value)):,}"


def format_currency(value: Decimal | int, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    amount = _whole(_require(value))
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,}"


def format_currency_precise(value: Decimal | int, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    amount = round_to(_require(value), TWO_PLACES)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_distance(value: Decimal | int) -> str:
    return f"{format_integer(value)} km"


def format_count(value: Decimal | int, noun: str) -> str:
    count = _whole(_require(value))
    return f"{count:,} {noun if count == 1 else noun + 's'}"


def format_percent(value: Decimal | int) -> str:
    return f"{_whole(_require(value))}%"


def format_signed_percent(value: Decimal | int) -> str:
    """``+12.5%``, ``-100%`` or ``0%``; whole numbers drop the decimal."""

    change = round_to(_require(value), ONE_PLACE)
    if change == 0:
        return "0%"
    magnitude = abs(change)
    if magnitude == magnitude.to_integral_value():
        text = f"{int(magnitude):,}"
    else:
        text = f"{magnitude:,.1f}"
    return f"{'+' if change > 0 else '-'}{text}%"


def format_fuel_efficiency(value: Decimal | int) -> str:
    return f"{round_to(_require(value), TWO_PLACES):,.2f} km/L"


def format_cost_per_km(value: Decimal | int, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    return f"{format_currency_precise(value, symbol)}/km"


def format_fraction(amount: Decimal | int, total: Decimal | int) -> str:
    return f"{format_integer(amount)} / {format_integer(total)}"


def unit_for(value: MetricValue, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    if value.kind is ValueKind.COUNT:
        return f"{value.noun}s" if value.noun else "count"
    return {
        ValueKind.DISTANCE: "km",
        ValueKind.CURRENCY: symbol,
        ValueKind.PERCENT: "%",
        ValueKind.FUEL_EFFICIENCY: "km/L",
        ValueKind.COST_PER_KM: f"{symbol}/km",
        ValueKind.FRACTION: "ratio",
    }[value.kind]


def render(value: MetricValue, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    """Convert a resolved metric value into its display string."""

    kind = value.kind
    if kind is ValueKind.COUNT:
        return format_count(value.amount, value.noun or "item")
    if kind is ValueKind.DISTANCE:
        return format_distance(value.amount)
    if kind is ValueKind.CURRENCY:
        return format_currency(value.amount, symbol)
    if kind is ValueKind.PERCENT:
        return format_percent(value.amount)
    if kind is ValueKind.FUEL_EFFICIENCY:
        return format_fuel_efficiency(value.amount)
    if kind is ValueKind.COST_PER_KM:
        return format_cost_per_km(value.amount, symbol)
    return format_fraction(value.amount, value.total)  # type: ignore[arg-type]


def render_comparison(comparison: Comparison, symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    return f"{render(comparison.current, symbol)} ({format_signed_percent(comparison.change.value)})"


__all__ = [
    "DEFAULT_CURRENCY_SYMBOL",
    "format_integer",
    "format_currency",
    "format_currency_precise",
    "format_distance",
    "format_count",
    "format_percent",
    "format_signed_percent",
    "format_fuel_efficiency",
    "format_cost_per_km",
    "format_fraction",
    "unit_for",
    "render",
    "render_comparison",
]
