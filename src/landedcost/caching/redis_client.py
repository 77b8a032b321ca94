"""Redis access for the remote decision-criteria store.

Cache Keys:
- decision:criteria:global         -> JSON criteria shared by every user
- decision:criteria:user:{user_id} -> JSON criteria saved by one user
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

import redis

GLOBAL_CRITERIA_KEY = "decision:criteria:global"


def user_criteria_key(user_id: str) -> str:
    return f"decision:criteria:user:{user_id}"


class RedisClient:
    """Thin JSON wrapper over a redis connection."""

    def __init__(self, url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.url = url or os.getenv("LANDEDCOST_REDIS_URL", "redis://localhost:6379/0")
        self._client = client or redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the decoded JSON object stored at ``key``, or None on a miss.

        Connection failures propagate as ``redis.exceptions.RedisError``; a
        value that is not a JSON object is treated as a miss.
        """
        data = self._client.get(key)
        if not data:
            return None
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return None
        return payload if isinstance(payload, dict) else None

    def set_json(self, key: str, payload: Dict[str, Any], ttl: Optional[int] = None) -> None:
        raw = json.dumps(payload, sort_keys=True)
        if ttl:
            self._client.setex(key, ttl, raw)
        else:
            self._client.set(key, raw)

    def get_criteria(self, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Global criteria first, then the user's own when ``user_id`` is given."""

        payload = self.get_json(GLOBAL_CRITERIA_KEY)
        if payload is not None:
            return payload
        if user_id:
            return self.get_json(user_criteria_key(user_id))
        return None

    def save_criteria(self, payload: Dict[str, Any], user_id: Optional[str] = None) -> None:
        key = user_criteria_key(user_id) if user_id else GLOBAL_CRITERIA_KEY
        self.set_json(key, payload)


_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """Get the process-wide client, connecting lazily on first use."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client
