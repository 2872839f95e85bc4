"""
Create the kpi_snapshot table.

Revision ID: 0001_create_kpi_snapshot
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "0001_create_kpi_snapshot"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "kpi_snapshot",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("metric_key", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("value_human", sa.String(length=255), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("theme", sa.String(length=50), nullable=False),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "organization_id",
            "metric_key",
            "computed_at",
            name="uq_kpi_snapshot_org_metric_computed_at",
        ),
    )
    op.create_index("ix_kpi_snapshot_organization_id", "kpi_snapshot", ["organization_id"])


def downgrade() -> None:
    op.drop_index("ix_kpi_snapshot_organization_id", table_name="kpi_snapshot")
    op.drop_table("kpi_snapshot")
