"""
Configuration access point

    from tiered_sheets.config import get_settings

    settings = get_settings()
    settings.retrieval.tier_max_sample_size
"""

from .settings import (
    ApplicationSettings,
    CacheBackend,
    CacheSettings,
    GoogleSheetsSettings,
    TieredRetrievalSettings,
    get_settings,
    reload_settings,
)

__all__ = [
    "ApplicationSettings",
    "CacheBackend",
    "CacheSettings",
    "GoogleSheetsSettings",
    "TieredRetrievalSettings",
    "get_settings",
    "reload_settings",
]
