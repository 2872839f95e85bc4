"""Pydantic schema exports."""

from .kpi import KPIRunReportSchema, KPISnapshotSchema, MetricErrorSchema, OrganizationOutcomeSchema

__all__ = [
    "KPIRunReportSchema",
    "KPISnapshotSchema",
    "MetricErrorSchema",
    "OrganizationOutcomeSchema",
]
