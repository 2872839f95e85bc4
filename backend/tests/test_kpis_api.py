"""KPI API tests."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.routes import api_router
from app.api.routes.kpis import get_run_settings
from app.db.session import get_db, get_session_factory
from fleet_support import EXPECTED_METRIC_KEYS, basic_fleet, make_settings, seed, sqlite_database, trip, utc


def _app(database) -> FastAPI:
    app = FastAPI()
    app.include_router(api_router)

    async def _db():
        async with database.session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_session_factory] = lambda: database.session_factory
    app.dependency_overrides[get_run_settings] = lambda: make_settings()
    return app


async def test_run_then_read_latest(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        await seed(
            database,
            *basic_fleet(1, vehicle_id=1, driver_id=1),
            trip(1, 1, utc(2026, 10, 1, 9), 0, 12, vehicle_id=1),
        )
        transport = ASGITransport(app=_app(database))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            run = await client.post("/kpis/run")
            latest = await client.get("/kpis/latest", params={"organization_id": 1})
            empty = await client.get("/kpis/latest", params={"organization_id": 2})

    assert run.status_code == 200
    report = run.json()
    assert report["success"] is True
    assert report["cards_created"] == len(EXPECTED_METRIC_KEYS)
    assert report["errors"] == []
    assert report["organizations"][0]["state"] == "succeeded"

    assert latest.status_code == 200
    cards = latest.json()
    assert [card["metric_key"] for card in cards] == EXPECTED_METRIC_KEYS
    assert all(card["organization_id"] == 1 and card["value_human"] for card in cards)
    assert empty.json() == []


async def test_latest_requires_organization(tmp_path: Path):
    async with sqlite_database(tmp_path) as database:
        transport = ASGITransport(app=_app(database))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/kpis/latest")

    assert response.status_code == 422
