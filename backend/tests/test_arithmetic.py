from __future__ import annotations

from decimal import Decimal

import pytest

from fleet_kpi.arithmetic import (
    Trend,
    coalesce_decimal,
    percentage_change,
    rank_entities,
    safe_divide,
    trend_direction,
    trip_distance,
    trip_profit,
)
from fleet_kpi.errors import MalformedRecordError
from fleet_kpi.models import EntityProfit


def test_coalesce_treats_missing_as_zero():
    assert coalesce_decimal(None) == Decimal("0")
    assert coalesce_decimal("12.50") == Decimal("12.50")
    assert coalesce_decimal(3) == Decimal("3")
    assert coalesce_decimal(1.5) == Decimal("1.5")


@pytest.mark.parametrize("raw", ["abc", "NaN", float("inf"), True, object()])
def test_coalesce_rejects_non_numeric(raw):
    with pytest.raises(MalformedRecordError):
        coalesce_decimal(raw, entity="trip", field="income_amount")


def test_safe_divide_by_zero_is_zero():
    assert safe_divide(Decimal("10"), Decimal("0")) == Decimal("0")
    assert safe_divide(Decimal("10"), None) == Decimal("0")
    assert safe_divide(Decimal("10"), Decimal("4")) == Decimal("2.5")


def test_percentage_change_regular_periods():
    change = percentage_change(Decimal("150"), Decimal("100"))
    assert change.value == Decimal("50.0")
    assert not change.baseline_missing

    assert percentage_change(Decimal("0"), Decimal("1089")).value == Decimal("-100.0")
    assert percentage_change(Decimal("1"), Decimal("3")).value == Decimal("-66.7")


def test_percentage_change_without_baseline_is_capped():
    assert percentage_change(0, 0).value == Decimal("0")
    assert not percentage_change(0, 0).baseline_missing

    up = percentage_change(Decimal("250"), None)
    assert up.value == Decimal("100")
    assert up.baseline_missing

    down = percentage_change(Decimal("-40"), Decimal("0"))
    assert down.value == Decimal("-100")
    assert down.baseline_missing


def test_percentage_change_against_a_loss_uses_magnitude():
    assert percentage_change(Decimal("-50"), Decimal("-100")).value == Decimal("50.0")


@pytest.mark.parametrize(
    "current,previous",
    [(None, None), (0, None), (None, 7), (Decimal("1E+20"), Decimal("0.01"))],
)
def test_percentage_change_is_always_finite(current, previous):
    assert percentage_change(current, previous).value.is_finite()


def test_trend_direction_uses_epsilon():
    assert trend_direction(Decimal("12.5")) is Trend.UP
    assert trend_direction(Decimal("-0.1")) is Trend.DOWN
    assert trend_direction(Decimal("0")) is Trend.FLAT
    assert trend_direction(Decimal("0.4"), Decimal("0.5")) is Trend.FLAT


def test_trip_distance_ignores_missing_or_reversed_readings():
    assert trip_distance(1000, 2089) == Decimal("1089")
    assert trip_distance(None, 2089) == Decimal("0")
    assert trip_distance(500, 400) == Decimal("0")


def test_trip_profit_falls_back_to_income_minus_expense():
    assert trip_profit(Decimal("300"), Decimal("900"), Decimal("100")) == Decimal("300")
    assert trip_profit(None, Decimal("900"), Decimal("100")) == Decimal("800")
    assert trip_profit(None, None, Decimal("100")) == Decimal("-100")


def test_rank_entities_breaks_ties_by_id():
    items = [
        EntityProfit(entity_id=3, name="V3", trip_count=1, total_profit=Decimal("300")),
        EntityProfit(entity_id=2, name="V2", trip_count=1, total_profit=Decimal("500")),
        EntityProfit(entity_id=1, name="V1", trip_count=1, total_profit=Decimal("500")),
    ]
    ranked = rank_entities(items, 3)
    assert [item.name for item in ranked] == ["V1", "V2", "V3"]
    assert [item.name for item in rank_entities(items, 1)] == ["V1"]
    assert rank_entities(items, 0) == []
