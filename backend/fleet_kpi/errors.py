"""Error types raised by the KPI aggregation engine."""

from __future__ import annotations


class KPIError(Exception):
    """Base class for KPI engine failures."""


class MalformedRecordError(KPIError):
    """A source row holds a value that cannot be aggregated."""

    def __init__(self, entity: str, field: str, value: object):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"{entity}.{field} holds a non-numeric value: {value!r}")


class TenantIsolationError(KPIError):
    """A computation touched data owned by another organization.

    Never recovered at metric level; it aborts the whole organization run.
    """

    def __init__(self, organization_id: int, message: str):
        self.organization_id = organization_id
        super().__init__(f"organization {organization_id}: {message}")


class ImmutableSnapshotError(KPIError):
    """Raised when code attempts to modify or delete a persisted snapshot."""


class UnsupportedDialectError(KPIError):
    """The configured database has no insert-or-skip statement for snapshot writes."""

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(f"snapshot writes are not supported on {dialect}")


__all__ = [
    "KPIError",
    "MalformedRecordError",
    "TenantIsolationError",
    "ImmutableSnapshotError",
    "UnsupportedDialectError",
]
