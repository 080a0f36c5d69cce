"""Configuration package."""

from clientist.config.settings import (
    AppSettings,
    LocalStorageSettings,
    NotificationSettings,
    Settings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "LocalStorageSettings",
    "NotificationSettings",
    "Settings",
    "SupabaseSettings",
    "get_settings",
    "validate_all_settings",
]
