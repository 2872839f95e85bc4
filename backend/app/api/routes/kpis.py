"""KPI run trigger and snapshot read endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import AppSettings, get_settings
from app.db.session import get_db, get_session_factory
from app.schemas import KPIRunReportSchema, KPISnapshotSchema
from app.services.kpi_runner import KPIRunCoordinator
from app.services.snapshot_store import SnapshotStore

router = APIRouter()


def get_run_settings() -> AppSettings:
    return get_settings()


@router.post("/run", response_model=KPIRunReportSchema)
async def run_kpis(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: AppSettings = Depends(get_run_settings),
) -> KPIRunReportSchema:
    """Compute and store KPI snapshots for every organization."""

    report = await KPIRunCoordinator(session_factory, settings).run()
    return KPIRunReportSchema(**report.as_dict())


@router.get("/latest", response_model=list[KPISnapshotSchema])
async def latest_kpis(
    organization_id: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_db),
) -> list[KPISnapshotSchema]:
    snapshots = await SnapshotStore(session).latest(organization_id)
    return [KPISnapshotSchema.model_validate(snapshot) for snapshot in snapshots]
