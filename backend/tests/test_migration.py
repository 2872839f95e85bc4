from __future__ import annotations

import importlib.util
from pathlib import Path

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations

from app.models import KPISnapshot

MIGRATION = Path(__file__).resolve().parents[1] / "app" / "migrations" / "versions" / "0001_create_kpi_snapshot.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_0001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_migration_creates_and_drops_snapshot_table(tmp_path: Path):
    migration = _load_migration()
    engine = sa.create_engine(f"sqlite:///{tmp_path / 'migrate.db'}")

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()

    inspector = sa.inspect(engine)
    columns = {column["name"] for column in inspector.get_columns("kpi_snapshot")}
    assert columns == {
        "id",
        "organization_id",
        "metric_key",
        "title",
        "value_human",
        "payload",
        "theme",
        "computed_at",
    }
    unique = {constraint["name"] for constraint in inspector.get_unique_constraints("kpi_snapshot")}
    assert "uq_kpi_snapshot_org_metric_computed_at" in unique
    indexes = {index["name"] for index in inspector.get_indexes("kpi_snapshot")}
    # The unique constraint already indexes (organization_id, metric_key, computed_at).
    assert indexes == {"ix_kpi_snapshot_organization_id"}

    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.downgrade()

    assert not sa.inspect(engine).has_table("kpi_snapshot")
    engine.dispose()


def test_model_indexes_match_migration():
    table = KPISnapshot.__table__
    assert {index.name for index in table.indexes} == {"ix_kpi_snapshot_organization_id"}
    unique = [constraint for constraint in table.constraints if isinstance(constraint, sa.UniqueConstraint)]
    assert [[column.name for column in constraint.columns] for constraint in unique] == [
        ["organization_id", "metric_key", "computed_at"]
    ]
