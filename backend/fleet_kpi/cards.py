"""Card construction shared by the basic and comparative generators."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable

from .errors import TenantIsolationError
from .formatting import render, render_comparison, unit_for
from .models import GeneratorResult, KPICard, MetricError
from .values import Comparison, MetricValue

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 255


def json_number(value: Decimal) -> int | float:
    """Convert a Decimal into a JSON-friendly number."""

    if value == value.to_integral_value():
        return int(value)
    return float(value)


def clip(text: str, limit: int = MAX_TEXT_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def value_card(
    organization_id: int,
    metric_key: str,
    title: str,
    theme: str,
    value: MetricValue,
    period: str,
    *,
    currency_symbol: str,
) -> KPICard:
    payload: dict[str, Any] = {
        "type": "kpi",
        "value": json_number(value.amount),
        "unit": unit_for(value, currency_symbol),
        "period": period,
    }
    if value.total is not None:
        payload["total"] = json_number(value.total)
    return KPICard(
        organization_id=organization_id,
        metric_key=metric_key,
        title=title,
        value_human=clip(render(value, currency_symbol)),
        theme=theme,
        payload=payload,
    )


def comparison_card(
    organization_id: int,
    metric_key: str,
    title: str,
    theme: str,
    comparison: Comparison,
    period: str,
    comparison_type: str,
    *,
    currency_symbol: str,
) -> KPICard:
    current = comparison.current
    return KPICard(
        organization_id=organization_id,
        metric_key=metric_key,
        title=title,
        value_human=clip(render_comparison(comparison, currency_symbol)),
        theme=theme,
        payload={
            "type": "kpi",
            "value": json_number(current.amount),
            "unit": unit_for(current, currency_symbol),
            "period": period,
            "current_value": json_number(current.amount),
            "previous_value": json_number(comparison.previous.amount),
            "change_percent": json_number(comparison.change.value),
            "trend": comparison.trend.value,
            "baseline_missing": comparison.change.baseline_missing,
            "comparison_type": comparison_type,
        },
    )


async def collect_metric(
    result: GeneratorResult,
    organization_id: int,
    metric_key: str,
    build: Callable[[], Awaitable[KPICard]],
) -> None:
    """Run one metric builder inside its own error boundary.

    Tenant isolation violations are re-raised so the whole organization is
    aborted; any other failure only drops this metric.
    """

    try:
        card = await build()
    except TenantIsolationError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Failed to compute metric %s for organization %s: %s",
            metric_key,
            organization_id,
            exc,
            exc_info=True,
        )
        result.errors.append(MetricError(organization_id, metric_key, str(exc) or type(exc).__name__))
        return
    result.cards.append(card)


__all__ = [
    "MAX_TEXT_LENGTH",
    "json_number",
    "clip",
    "value_card",
    "comparison_card",
    "collect_metric",
]
