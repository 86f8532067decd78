"""Cache access for the service."""
from .redis_client import (
    RedisClient,
    init_redis_client,
    get_redis_client,
    shutdown_redis_client,
)


__all__ = [
    "RedisClient",
    "init_redis_client",
    "get_redis_client",
    "shutdown_redis_client",
]
