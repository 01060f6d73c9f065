"""
Service Factory Module

Builds a TieredRetrieval from settings. The cache and client are created
here and passed in explicitly; callers may inject their own instead.
"""

import logging
from typing import Optional

from tiered_sheets.config.settings import ApplicationSettings, CacheBackend, CacheSettings, get_settings
from tiered_sheets.services.sheets_client import GoogleSheetsClient, SheetsClient
from tiered_sheets.services.tier_cache import InMemoryTierCache, RedisTierCache, TierCache
from tiered_sheets.services.tiered_retrieval import TieredRetrieval

logger = logging.getLogger(__name__)


def create_tier_cache(cache_settings: CacheSettings) -> TierCache:
    """Redis cache when configured, otherwise a process-local one."""
    if cache_settings.tier_cache_backend == CacheBackend.REDIS:
        return RedisTierCache.from_settings(
            host=cache_settings.redis_host,
            port=cache_settings.redis_port,
            password=cache_settings.redis_password,
            db=cache_settings.redis_db,
            key_prefix=cache_settings.tier_cache_key_prefix,
        )
    logger.info("Tier cache using in-memory backend")
    return InMemoryTierCache()


def create_tiered_retrieval(
    settings: Optional[ApplicationSettings] = None,
    *,
    client: Optional[SheetsClient] = None,
    cache: Optional[TierCache] = None,
    access_token: Optional[str] = None,
) -> TieredRetrieval:
    """
    Create a TieredRetrieval wired from settings.

    Args:
        settings: Application settings; the global instance when omitted
        client: Remote document client override
        cache: Cache override
        access_token: OAuth bearer token for the default Google client

    Returns:
        TieredRetrieval: Ready-to-use retrieval service
    """
    settings = settings or get_settings()
    sheets_settings = settings.google_sheets
    retrieval = settings.retrieval

    if client is None:
        client = GoogleSheetsClient(
            api_key=sheets_settings.google_sheets_api_key,
            access_token=access_token,
            base_url=sheets_settings.google_sheets_base_url,
            timeout=sheets_settings.google_sheets_timeout,
        )
    if cache is None:
        cache = create_tier_cache(settings.cache)

    return TieredRetrieval(
        cache,
        client,
        default_sample_size=retrieval.tier_default_sample_size,
        max_sample_size=retrieval.tier_max_sample_size,
        snapshot_max_rows=retrieval.tier_snapshot_max_rows,
        snapshot_max_columns=retrieval.tier_snapshot_max_columns,
        large_workbook_sheet_threshold=retrieval.tier_large_workbook_sheet_threshold,
        conditional_format_limit=retrieval.tier_conditional_format_limit,
        data_validation_limit=retrieval.tier_data_validation_limit,
    )
