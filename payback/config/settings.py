"""
Configuration Management for PayBack Ledger Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every tunable the reconciliation engine reads (debounce window,
retry policy, data file location) is declared and validated in one place.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Reconciliation and persistence timing."""

    model_config = SettingsConfigDict(
        env_prefix="PAYBACK_SYNC_",
        extra="ignore"
    )

    debounce_ms: int = Field(
        default=250,
        ge=50,
        le=5000,
        description="Quiet window before a debounced write is flushed"
    )

    # Remote fetch retry policy (transient failures only)
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per remote fetch"
    )
    retry_min_wait_s: float = Field(
        default=1.0,
        ge=0.0,
        description="Lower bound of the exponential backoff"
    )
    retry_max_wait_s: float = Field(
        default=10.0,
        ge=0.0,
        description="Upper bound of the exponential backoff"
    )

    @property
    def debounce_seconds(self) -> float:
        """Debounce window in seconds."""
        return self.debounce_ms / 1000


class PersistenceSettings(BaseSettings):
    """Local ledger cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PAYBACK_PERSISTENCE_",
        extra="ignore"
    )

    data_path: Path = Field(
        default=Path.home() / ".payback" / "payback.json",
        description="Path of the JSON snapshot of groups and expenses"
    )

    @field_validator('data_path')
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        """Allow '~' in configured paths."""
        return v.expanduser()


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    placeholder_user_name: str = Field(
        default="You",
        min_length=1,
        description="Display name of the current user before authentication"
    )


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

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def persistence(self) -> PersistenceSettings:
        return PersistenceSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    `<name>_error` entries for sections that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("sync", "persistence", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
