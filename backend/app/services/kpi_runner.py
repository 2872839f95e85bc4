"""Run coordination: compute and persist KPI cards for every organization."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from opentelemetry import metrics, trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import AppSettings, get_settings
from app.db.session import get_session_factory
from app.services.metric_readers import SqlMetricReader, list_organization_ids
from app.services.snapshot_store import SnapshotStore
from fleet_kpi.basic import BasicKPIGenerator
from fleet_kpi.comparative import ComparativeKPIGenerator
from fleet_kpi.errors import TenantIsolationError
from fleet_kpi.models import GeneratorResult, KPICard, MetricError
from fleet_kpi.sources import CachingMetricSource, MetricSource
from fleet_kpi.windows import ReportingWindows, bucket_start, build_reporting_windows

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter("fleet_kpi")

snapshots_created = meter.create_counter(
    "fleet_kpi.snapshots.created",
    unit="1",
    description="KPI snapshot rows inserted",
)
organizations_failed = meter.create_counter(
    "fleet_kpi.organizations.failed",
    unit="1",
    description="Organizations whose KPI computation was aborted",
)

SourceFactory = Callable[[AsyncSession], MetricSource]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


class OrganizationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class OrganizationOutcome:
    organization_id: int
    state: OrganizationState = OrganizationState.IDLE
    cards_created: int = 0
    duplicates_skipped: int = 0
    errors: list[MetricError] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.state = OrganizationState.FAILED
        self.cards_created = 0
        self.duplicates_skipped = 0
        self.errors.append(MetricError(self.organization_id, None, message))

    def as_dict(self) -> dict[str, Any]:
        return {
            "organization_id": self.organization_id,
            "state": self.state.value,
            "cards_created": self.cards_created,
            "duplicates_skipped": self.duplicates_skipped,
            "errors": [error.as_dict() for error in self.errors],
        }


@dataclass
class RunReport:
    """Outcome of one run across every organization."""

    computed_at: datetime
    outcomes: list[OrganizationOutcome] = field(default_factory=list)
    run_errors: list[MetricError] = field(default_factory=list)

    @property
    def organizations_processed(self) -> int:
        return len(self.outcomes)

    @property
    def organizations_failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.state is OrganizationState.FAILED)

    @property
    def cards_created(self) -> int:
        return sum(outcome.cards_created for outcome in self.outcomes)

    @property
    def duplicates_skipped(self) -> int:
        return sum(outcome.duplicates_skipped for outcome in self.outcomes)

    @property
    def errors(self) -> list[MetricError]:
        collected = list(self.run_errors)
        for outcome in self.outcomes:
            collected.extend(outcome.errors)
        return collected

    @property
    def success(self) -> bool:
        # Metric-level errors alone keep the run successful.
        return not self.run_errors and self.organizations_failed == 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "cards_created": self.cards_created,
            "duplicates_skipped": self.duplicates_skipped,
            "organizations_processed": self.organizations_processed,
            "organizations_failed": self.organizations_failed,
            "computed_at": self.computed_at.isoformat(),
            "errors": [error.as_dict() for error in self.errors],
            "organizations": [outcome.as_dict() for outcome in self.outcomes],
        }


class KPIRunCoordinator:
    """Fan a KPI run out over organizations with bounded concurrency.

    Each organization gets its own session, metric cache, timeout and error
    boundary; nothing is shared between organizations except the read-only
    reporting windows and the ``computed_at`` bucket.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: AppSettings | None = None,
        *,
        source_factory: SourceFactory = SqlMetricReader,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._source_factory = source_factory
        self.state = RunState.IDLE

    async def run(self, now: datetime | None = None) -> RunReport:
        settings = self._settings
        run_at = now or datetime.now(timezone.utc)
        computed_at = bucket_start(run_at, settings.kpi_bucket_minutes, settings.timezone)
        windows = build_reporting_windows(run_at, settings.timezone)
        report = RunReport(computed_at=computed_at)

        self.state = RunState.RUNNING
        with tracer.start_as_current_span("fleet_kpi.run") as span:
            span.set_attribute("fleet_kpi.computed_at", computed_at.isoformat())
            try:
                organization_ids = await self._list_organizations()
            except (SQLAlchemyError, OSError) as exc:
                logger.exception("Failed to list organizations for KPI run")
                report.run_errors.append(MetricError(None, None, f"failed to list organizations: {exc}"))
                organization_ids = []

            semaphore = asyncio.Semaphore(settings.kpi_max_concurrency)
            report.outcomes = list(
                await asyncio.gather(
                    *(
                        self._process(organization_id, windows, computed_at, semaphore)
                        for organization_id in organization_ids
                    )
                )
            )
            span.set_attribute("fleet_kpi.organizations", report.organizations_processed)
            span.set_attribute("fleet_kpi.cards_created", report.cards_created)
        self.state = RunState.COMPLETED

        logger.info(
            "KPI run for bucket %s finished: %s card(s) created, %s duplicate(s), %s/%s organization(s) failed",
            computed_at.isoformat(),
            report.cards_created,
            report.duplicates_skipped,
            report.organizations_failed,
            report.organizations_processed,
        )
        return report

    async def _list_organizations(self) -> list[int]:
        async with self._session_factory() as session:
            return await list_organization_ids(session)

    async def _process(
        self,
        organization_id: int,
        windows: ReportingWindows,
        computed_at: datetime,
        semaphore: asyncio.Semaphore,
    ) -> OrganizationOutcome:
        outcome = OrganizationOutcome(organization_id)
        timeout = self._settings.kpi_org_timeout_seconds
        async with semaphore:
            outcome.state = OrganizationState.RUNNING
            with tracer.start_as_current_span("fleet_kpi.organization") as span:
                span.set_attribute("fleet_kpi.organization_id", organization_id)
                try:
                    await asyncio.wait_for(
                        self._run_organization(organization_id, windows, computed_at, outcome),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError:
                    logger.error("KPI computation for organization %s timed out after %ss", organization_id, timeout)
                    outcome.fail(f"timed out after {timeout:g}s")
                except TenantIsolationError as exc:
                    logger.error("Tenant isolation violated, organization %s aborted: %s", organization_id, exc)
                    outcome.fail(str(exc))
                except Exception as exc:  # noqa: BLE001
                    logger.exception("KPI computation failed for organization %s", organization_id)
                    outcome.fail(str(exc) or type(exc).__name__)
                else:
                    outcome.state = OrganizationState.SUCCEEDED

                span.set_attribute("fleet_kpi.state", outcome.state.value)
        if outcome.state is OrganizationState.FAILED:
            organizations_failed.add(1)
        elif outcome.cards_created:
            snapshots_created.add(outcome.cards_created)
        return outcome

    async def _run_organization(
        self,
        organization_id: int,
        windows: ReportingWindows,
        computed_at: datetime,
        outcome: OrganizationOutcome,
    ) -> None:
        settings = self._settings
        async with self._session_factory() as session:
            source = CachingMetricSource(self._source_factory(session))
            result = GeneratorResult()
            result.extend(
                await BasicKPIGenerator(
                    source, windows, currency_symbol=settings.currency_symbol
                ).generate(organization_id)
            )
            result.extend(
                await ComparativeKPIGenerator(
                    source,
                    windows,
                    currency_symbol=settings.currency_symbol,
                    top_drivers_limit=settings.kpi_top_drivers_limit,
                    trend_epsilon=settings.kpi_trend_epsilon_pct,
                ).generate(organization_id)
            )
            _verify_scope(organization_id, result.cards)

            written = await SnapshotStore(session).write(organization_id, result.cards, computed_at)
            await session.commit()

        outcome.errors.extend(result.errors)
        outcome.cards_created = written.inserted
        outcome.duplicates_skipped = written.duplicates


def _verify_scope(organization_id: int, cards: list[KPICard]) -> None:
    foreign = sorted({card.organization_id for card in cards if card.organization_id != organization_id})
    if foreign:
        raise TenantIsolationError(organization_id, f"computed cards for organization(s) {foreign}")


async def run_kpi_generation(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    settings: AppSettings | None = None,
    *,
    now: datetime | None = None,
) -> RunReport:
    """Run one KPI generation pass with the default database wiring."""

    if session_factory is None:
        session_factory = get_session_factory()
    return await KPIRunCoordinator(session_factory, settings).run(now)


__all__ = [
    "RunState",
    "OrganizationState",
    "OrganizationOutcome",
    "RunReport",
    "KPIRunCoordinator",
    "run_kpi_generation",
]
