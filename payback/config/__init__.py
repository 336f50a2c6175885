"""Configuration package."""

from payback.config.settings import (
    AppSettings,
    PersistenceSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "PersistenceSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
