"""Configuration package for the fleet KPI service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
