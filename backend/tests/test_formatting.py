from __future__ import annotations

from decimal import Decimal

import pytest

from fleet_kpi.arithmetic import PercentChange, Trend
from fleet_kpi.formatting import (
    format_cost_per_km,
    format_count,
    format_currency,
    format_distance,
    format_fraction,
    format_fuel_efficiency,
    format_percent,
    format_signed_percent,
    render,
    render_comparison,
)
from fleet_kpi.values import Comparison, MetricValue, ValueKind, compare


def test_display_formats():
    assert format_currency(Decimal("12345")) == "₹12,345"
    assert format_currency(Decimal("-1200")) == "-₹1,200"
    assert format_currency(Decimal("0")) == "₹0"
    assert format_currency(Decimal("99.5"), "$") == "$100"
    assert format_distance(Decimal("2089")) == "2,089 km"
    assert format_count(10, "trip") == "10 trips"
    assert format_count(1, "trip") == "1 trip"
    assert format_count(0, "trip") == "0 trips"
    assert format_percent(Decimal("75")) == "75%"
    assert format_fuel_efficiency(Decimal("4.254")) == "4.25 km/L"
    assert format_cost_per_km(Decimal("12.345")) == "₹12.35/km"
    assert format_fraction(3, 4) == "3 / 4"


def test_signed_percent():
    assert format_signed_percent(Decimal("12.5")) == "+12.5%"
    assert format_signed_percent(Decimal("-100.0")) == "-100%"
    assert format_signed_percent(Decimal("0")) == "0%"
    assert format_signed_percent(Decimal("-0.04")) == "0%"


@pytest.mark.parametrize(
    "formatter",
    [format_currency, format_distance, format_percent, format_signed_percent, format_fuel_efficiency],
)
def test_formatters_reject_unresolved_values(formatter):
    with pytest.raises(TypeError):
        formatter(None)


def test_render_comparison_shows_value_and_change():
    comparison = compare(ValueKind.DISTANCE, Decimal("0"), Decimal("1089"))
    assert render_comparison(comparison) == "0 km (-100%)"
    assert comparison.trend is Trend.DOWN

    trips = compare(ValueKind.COUNT, 9, 8, noun="trip")
    assert render_comparison(trips) == "9 trips (+12.5%)"


def test_render_fraction_and_currency_symbol():
    assert render(MetricValue.resolve(ValueKind.FRACTION, 3, total=4)) == "3 / 4"
    assert render(MetricValue.resolve(ValueKind.CURRENCY, None), "$") == "$0"
    comparison = Comparison(
        current=MetricValue.resolve(ValueKind.CURRENCY, 500),
        previous=MetricValue.resolve(ValueKind.CURRENCY, 0),
        change=PercentChange(Decimal("100"), baseline_missing=True),
        trend=Trend.UP,
    )
    assert render_comparison(comparison) == "₹500 (+100%)"
