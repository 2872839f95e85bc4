"""Database model exports."""

from .fleet import Driver, MaintenanceTask, Organization, Trip, Vehicle
from .kpi import KPISnapshot

__all__ = [
    "Organization",
    "Vehicle",
    "Driver",
    "Trip",
    "MaintenanceTask",
    "KPISnapshot",
]
