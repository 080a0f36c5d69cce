"""
Configuration Management for Clientist

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Hosted backend (database + auth) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Supabase project URL"
    )
    key: str = Field(
        ...,
        description="Supabase anon or service key"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Supabase URL must be http(s): {v}")
        return v.rstrip("/")


class LocalStorageSettings(BaseSettings):
    """On-device storage configuration (fallback store and images)."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENTIST_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".clientist"),
        description="Directory holding the local key-value files"
    )
    images_dir_name: str = Field(
        default="client_profiles",
        description="Sub-directory of data_dir for client profile pictures"
    )

    @property
    def images_dir(self) -> Path:
        return self.data_dir / self.images_dir_name


class NotificationSettings(BaseSettings):
    """Local notification scheduler configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENTIST_NOTIFICATIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Master switch for scheduling notifications"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Dashboard
    follow_up_days: int = Field(
        default=7,
        ge=1,
        description="Clients idle longer than this need a follow-up"
    )
    upcoming_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many upcoming deadlines the dashboard lists"
    )
    currency_symbol: str = Field(
        default="",
        max_length=3,
        description="Prefix used when formatting amounts"
    )

    # Validation thresholds
    max_invoice_amount: float = Field(
        default=10000000.0,
        description="Maximum reasonable invoice amount (for sanity checking)"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,heic",
        description="Comma-separated list of supported image formats"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the app can run local-only
    # without backend credentials.

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def notifications(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("supabase", "storage", "notifications", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
