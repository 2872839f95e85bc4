"""Pydantic schemas for KPI runs and snapshot reads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MetricErrorSchema(BaseModel):
    organization_id: int | None = None
    metric_key: str | None = None
    message: str


class OrganizationOutcomeSchema(BaseModel):
    organization_id: int
    state: str
    cards_created: int
    duplicates_skipped: int
    errors: list[MetricErrorSchema] = Field(default_factory=list)


class KPIRunReportSchema(BaseModel):
    success: bool
    cards_created: int
    duplicates_skipped: int
    organizations_processed: int
    organizations_failed: int
    computed_at: datetime
    errors: list[MetricErrorSchema] = Field(default_factory=list)
    organizations: list[OrganizationOutcomeSchema] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "cards_created": 33,
                "duplicates_skipped": 0,
                "organizations_processed": 1,
                "organizations_failed": 0,
                "computed_at": "2026-10-17T05:00:00+00:00",
                "errors": [],
                "organizations": [
                    {
                        "organization_id": 1,
                        "state": "succeeded",
                        "cards_created": 33,
                        "duplicates_skipped": 0,
                        "errors": [],
                    }
                ],
            }
        }
    )


class KPISnapshotSchema(BaseModel):
    id: int
    organization_id: int
    metric_key: str = Field(..., examples=["mtd.distance"])
    title: str
    value_human: str = Field(..., examples=["2,089 km"])
    theme: str
    payload: dict[str, Any]
    computed_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "MetricErrorSchema",
    "OrganizationOutcomeSchema",
    "KPIRunReportSchema",
    "KPISnapshotSchema",
]
