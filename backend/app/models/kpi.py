"""Immutable KPI snapshot rows."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from fleet_kpi.errors import ImmutableSnapshotError


class KPISnapshot(Base):
    __tablename__ = "kpi_snapshot"
    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "metric_key",
            "computed_at",
            name="uq_kpi_snapshot_org_metric_computed_at",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(index=True, nullable=False)
    metric_key: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    value_human: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    theme: Mapped[str] = mapped_column(String(50), nullable=False)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


@event.listens_for(KPISnapshot, "before_update")
def _reject_update(mapper, connection, target: KPISnapshot) -> None:  # noqa: ARG001
    raise ImmutableSnapshotError(f"kpi_snapshot {target.id} is immutable and cannot be updated")


@event.listens_for(KPISnapshot, "before_delete")
def _reject_delete(mapper, connection, target: KPISnapshot) -> None:  # noqa: ARG001
    raise ImmutableSnapshotError(f"kpi_snapshot {target.id} is immutable and cannot be deleted")


__all__ = ["KPISnapshot"]
