"""Compute and store KPI snapshots for every organization.

Invoked by the external scheduler; prints the run report as JSON and exits
non-zero when any organization failed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Sequence

from app.config import get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.init import init_database
from app.db.session import Database
from app.services.kpi_runner import RunReport, run_kpi_generation


def _parse_at(value: str) -> datetime:
    moment = datetime.fromisoformat(value)
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


async def _run(database_url: str | None, at: datetime | None, init_db: bool) -> RunReport:
    settings = get_settings()
    database = Database(database_url or settings.database_url)
    setup_telemetry(settings, engine=database.engine)
    try:
        if init_db:
            await init_database(database.engine)
        return await run_kpi_generation(database.session_factory, settings, now=at)
    finally:
        await database.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate fleet KPI snapshots")
    parser.add_argument("--database-url", default=None, help="Override the configured database URL")
    parser.add_argument(
        "--at",
        type=_parse_at,
        default=None,
        help="Run as if executed at this ISO-8601 time (UTC when no offset is given)",
    )
    parser.add_argument("--init-db", action="store_true", help="Create the snapshot table before running")
    args = parser.parse_args(argv)

    setup_logging()
    report = asyncio.run(_run(args.database_url, args.at, args.init_db))
    print(json.dumps(report.as_dict(), indent=2, ensure_ascii=False))
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
