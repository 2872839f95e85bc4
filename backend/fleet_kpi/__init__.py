"""Fleet KPI aggregation core.

Database-free building blocks for turning raw trip, maintenance, vehicle and
driver records into rendered KPI cards. The service layer under ``app`` feeds
these generators from SQL and persists the resulting cards.
"""

from .basic import BasicKPIGenerator
from .comparative import ComparativeKPIGenerator
from .errors import (
    ImmutableSnapshotError,
    KPIError,
    MalformedRecordError,
    TenantIsolationError,
    UnsupportedDialectError,
)
from .models import (
    DriverRecord,
    EntityProfit,
    FleetCounts,
    GeneratorResult,
    KPICard,
    MaintenanceRecord,
    MetricError,
    TripRecord,
    TripTotals,
    VehicleRecord,
)
from .sources import CachingMetricSource, InMemoryMetricSource, MetricSource
from .windows import ReportingWindows, TimeWindow, bucket_start, build_reporting_windows

__all__ = [
    "BasicKPIGenerator",
    "ComparativeKPIGenerator",
    "KPIError",
    "MalformedRecordError",
    "TenantIsolationError",
    "ImmutableSnapshotError",
    "UnsupportedDialectError",
    "DriverRecord",
    "EntityProfit",
    "FleetCounts",
    "GeneratorResult",
    "KPICard",
    "MaintenanceRecord",
    "MetricError",
    "TripRecord",
    "TripTotals",
    "VehicleRecord",
    "MetricSource",
    "InMemoryMetricSource",
    "CachingMetricSource",
    "ReportingWindows",
    "TimeWindow",
    "bucket_start",
    "build_reporting_windows",
]
