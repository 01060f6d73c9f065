"""
Tier cache backends

Minimal async key/value stores with per-entry TTL in milliseconds.

- InMemoryTierCache: process-local dict, expired entries dropped on read
- RedisTierCache: redis.asyncio client, JSON values with PSETEX expiry
"""

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TierCache(Protocol):
    """Cache collaborator injected into TieredRetrieval."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        ...


class InMemoryTierCache:
    """
    Time-based in-memory cache. Expired entries are swept on every write.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, Tuple[Any, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        self.cleanup_expired()
        self._entries[key] = (value, self._clock() + ttl_ms / 1000.0)

    def cleanup_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired_keys = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)


class RedisTierCache:
    """
    Redis-backed tier cache.

    Pydantic models are stored as their JSON dump; reads return plain
    decoded JSON and the caller re-validates it into the tier type.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_settings(
        cls,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        key_prefix: str = "",
    ) -> "RedisTierCache":
        client = redis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            decode_responses=True,
        )
        logger.info(f"Tier cache using Redis at {host}:{port}/{db}")
        return cls(client, key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        data = await self._client.get(self._key(key))
        if data is None:
            return None
        return json.loads(data)

    async def set(self, key: str, value: Any, ttl_ms: int) -> None:
        if isinstance(value, BaseModel):
            payload = value.model_dump_json()
        else:
            payload = json.dumps(value)
        await self._client.psetex(self._key(key), int(ttl_ms), payload)

    async def close(self) -> None:
        await self._client.aclose()
