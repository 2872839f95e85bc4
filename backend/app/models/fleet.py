"""Read-only mappings of the fleet CRUD tables the KPI readers aggregate."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True)
    registration_number: Mapped[str] = mapped_column(String(50))
    status: Mapped[Optional[str]] = mapped_column(String(20), default="active")


class Driver(Base):
    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    status: Mapped[Optional[str]] = mapped_column(String(20), default="active")


class Trip(Base):
    __tablename__ = "trips"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True)
    vehicle_id: Mapped[Optional[int]] = mapped_column(ForeignKey("vehicles.id"), nullable=True)
    driver_id: Mapped[Optional[int]] = mapped_column(ForeignKey("drivers.id"), nullable=True)
    trip_start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    trip_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    start_km: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    end_km: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    income_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    total_expense: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    net_profit: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    total_fuel_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    fuel_quantity: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)


class MaintenanceTask(Base):
    __tablename__ = "maintenance_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True)
    vehicle_id: Mapped[Optional[int]] = mapped_column(ForeignKey("vehicles.id"), nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    actual_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


__all__ = ["Organization", "Vehicle", "Driver", "Trip", "MaintenanceTask"]
