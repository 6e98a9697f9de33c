import json
import logging
from typing import Any, Dict, Optional, Protocol

import redis

from party_registration.config import config

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Per-session key/value storage for JSON-serializable values.

    Injected into the workflow instead of reaching for ambient globals; a
    draft survives as long as the backing store keeps the session.
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySessionStore:
    """SessionStore held in process memory (one browser tab's lifetime)"""

    def __init__(self):
        self._values: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._values.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        # Stored serialized so callers never share mutable state with the store
        self._values[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class RedisSessionStore:
    """
    SessionStore kept in Redis with a sliding TTL.

    Each session gets its own key namespace, so reloading a page (or
    reconnecting from another worker) with the same session id restores the
    draft, while an expired or cleared session starts over.
    """

    def __init__(
        self, redis_client: redis.Redis, session_id: str, ttl_seconds: int = 1800
    ):
        """
        Initialize RedisSessionStore.

        Args:
            redis_client: Redis client instance (from dependency injection)
            session_id: Identifier of the owning browser session
            ttl_seconds: Time-to-live in seconds (default: 1800 = 30 minutes)
        """
        self.redis_client = redis_client
        self.session_id = session_id
        self.ttl_seconds = ttl_seconds

    def _key(self, key: str) -> str:
        return f"session:{self.session_id}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """
        Read a value, refreshing its TTL.

        Returns:
            The stored value, or None if absent or corrupted

        Raises:
            redis.RedisError: If Redis operation fails
        """
        redis_key = self._key(key)
        try:
            raw = self.redis_client.get(redis_key)
            if raw is None:
                return None
            self.redis_client.expire(redis_key, self.ttl_seconds)
        except redis.RedisError as e:
            logger.error(f"Redis error reading {redis_key}: {e}")
            raise

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error(f"Corrupted session value at {redis_key}, ignoring it")
            return None

    def set(self, key: str, value: Any) -> None:
        """
        Store a value with the session TTL.

        Raises:
            redis.RedisError: If Redis operation fails
        """
        redis_key = self._key(key)
        try:
            self.redis_client.setex(redis_key, self.ttl_seconds, json.dumps(value))
        except redis.RedisError as e:
            logger.error(f"Redis error writing {redis_key}: {e}")
            raise

    def delete(self, key: str) -> None:
        """
        Remove a value.

        Raises:
            redis.RedisError: If Redis operation fails
        """
        redis_key = self._key(key)
        try:
            self.redis_client.delete(redis_key)
        except redis.RedisError as e:
            logger.error(f"Redis error deleting {redis_key}: {e}")
            raise


def redis_session_store(
    session_id: str,
    redis_url: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> RedisSessionStore:
    """Build a RedisSessionStore from configuration"""
    client = redis.from_url(
        redis_url or config["redis_url"],
        decode_responses=True,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )
    return RedisSessionStore(
        client, session_id, ttl_seconds or config["session_ttl_seconds"]
    )
