"""
Namespaced asyncio Redis client used for short-lived webhook bookkeeping.
"""
from __future__ import annotations

import json
from typing import Any, Optional

from redis import asyncio as aioredis

from core.config import settings
from core.logging_config import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Thin wrapper adding key namespacing to SET."""

    def __init__(self, client: aioredis.Redis, namespace: str = "") -> None:
        self._client = client
        self._namespace = namespace.strip(":")

    def _format_key(self, key: str) -> str:
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    @staticmethod
    def _serialize(value: Any) -> str:
        if isinstance(value, (str, int, float)):
            return str(value)
        return json.dumps(value, default=str, ensure_ascii=False)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, nx: bool = False) -> bool:
        """SET with optional TTL; with nx=True returns False when the key already existed.

        Redis errors propagate so callers can tell "already set" from "unavailable".
        """
        expire = ttl if ttl is not None else settings.redis.default_ttl
        result = await self._client.set(
            self._format_key(key),
            self._serialize(value),
            ex=expire if expire and expire > 0 else None,
            nx=nx,
        )
        return bool(result)

    async def close(self) -> None:
        await self._client.aclose()


_cache_instance: Optional[RedisClient] = None


async def init_redis_client(namespace: Optional[str] = None, **kwargs) -> RedisClient:
    """Create the process-wide client from REDIS__URL; called once from the app lifespan."""
    global _cache_instance

    if _cache_instance is not None:
        return _cache_instance

    if not settings.redis.url:
        raise RuntimeError("REDIS__URL is not configured")

    client = aioredis.from_url(
        settings.redis.url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis.max_connections,
        **kwargs
    )
    await client.ping()

    _cache_instance = RedisClient(client=client, namespace=namespace or settings.redis.namespace)
    logger.info("redis_client_initialized", namespace=namespace or settings.redis.namespace)
    return _cache_instance


async def get_redis_client() -> RedisClient:
    if _cache_instance is None:
        return await init_redis_client()
    return _cache_instance


async def shutdown_redis_client() -> None:
    global _cache_instance

    if _cache_instance is not None:
        try:
            await _cache_instance.close()
            logger.info("redis_client_closed")
        finally:
            _cache_instance = None
