"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .kpis import router as kpis_router

api_router = APIRouter()
api_router.include_router(kpis_router, prefix="/kpis", tags=["kpis"])

__all__ = ["api_router"]
