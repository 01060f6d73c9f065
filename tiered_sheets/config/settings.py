"""
Centralized configuration for tiered sheets retrieval

Type-safe settings built on Pydantic Settings. Values come from environment
variables (case-insensitive) or a local `.env` file.

Cache TTLs are deliberately not configurable: they live in
`tiered_sheets.services.tiered_retrieval.TIER_TTL_MS` so the ordering across
tiers cannot be broken by an environment override.
"""

import os
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> Optional[str]:
    return ".env" if not os.getenv("DOCKER_CONTAINER") else None


class CacheBackend(str, Enum):
    """Tier cache backends"""
    MEMORY = "memory"
    REDIS = "redis"


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets API settings"""

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    google_sheets_api_key: Optional[str] = Field(
        default=None,
        validate_default=True,
        description="Google Sheets API key (falls back to GOOGLE_API_KEY)"
    )
    google_sheets_base_url: str = Field(
        default="https://sheets.googleapis.com/v4/spreadsheets",
        description="Sheets API v4 spreadsheets endpoint"
    )
    google_sheets_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for Sheets API calls"
    )

    @field_validator("google_sheets_api_key", mode="before")
    @classmethod
    def get_api_key(cls, v):
        value = v or os.getenv("GOOGLE_API_KEY")
        return value.strip() if isinstance(value, str) and value.strip() else None


class TieredRetrievalSettings(BaseSettings):
    """Sampling, snapshot bounds and large-workbook threshold"""

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    tier_default_sample_size: int = Field(
        default=100,
        ge=1,
        description="Rows sampled at tier 3 when the caller gives no size"
    )
    tier_max_sample_size: int = Field(
        default=500,
        ge=1,
        description="Upper bound on tier 3 sample rows"
    )
    tier_snapshot_max_rows: int = Field(
        default=5000,
        ge=1,
        description="Default row cap for the tier 5 snapshot window"
    )
    tier_snapshot_max_columns: int = Field(
        default=100,
        ge=1,
        description="Column cap for the tier 5 snapshot window"
    )
    tier_large_workbook_sheet_threshold: int = Field(
        default=10,
        ge=1,
        description="Workbooks with more sheets than this use the reduced tier 2 projection"
    )
    tier_conditional_format_limit: int = Field(
        default=20,
        ge=0,
        description="Conditional format rules described per sheet"
    )
    tier_data_validation_limit: int = Field(
        default=50,
        ge=0,
        description="Data validation summaries kept per sheet at tier 5"
    )


class CacheSettings(BaseSettings):
    """Tier cache settings"""

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    tier_cache_backend: CacheBackend = Field(
        default=CacheBackend.MEMORY,
        description="Cache backend for tier records"
    )
    tier_cache_key_prefix: str = Field(
        default="",
        description="Prefix prepended to every tier cache key in Redis"
    )
    redis_host: str = Field(
        default="localhost",
        description="Redis host"
    )
    redis_port: int = Field(
        default=6379,
        description="Redis port"
    )
    redis_password: Optional[str] = Field(
        default=None,
        description="Redis password"
    )
    redis_db: int = Field(
        default=0,
        description="Redis database index"
    )


class ApplicationSettings(BaseSettings):
    """Aggregates all settings"""

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    google_sheets: GoogleSheetsSettings = Field(default_factory=GoogleSheetsSettings)
    retrieval: TieredRetrievalSettings = Field(default_factory=TieredRetrievalSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)


settings = ApplicationSettings()


def get_settings() -> ApplicationSettings:
    """
    Get the global settings instance

    Returns:
        ApplicationSettings: The global settings instance
    """
    return settings


def reload_settings() -> ApplicationSettings:
    """
    Reload settings from environment (useful for testing)

    Returns:
        ApplicationSettings: New settings instance with reloaded values
    """
    global settings
    settings = ApplicationSettings()
    return settings
