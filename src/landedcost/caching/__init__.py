"""Redis-backed storage for shared decision criteria."""

from landedcost.caching.redis_client import RedisClient, get_redis_client

__all__ = ["RedisClient", "get_redis_client"]
