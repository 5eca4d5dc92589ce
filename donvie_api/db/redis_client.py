"""Redis client configuration for DonVie."""

import os
from typing import Optional
from urllib.parse import urlparse

import redis


class RedisClient:
    """Singleton Redis client."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        """
        Get Redis client instance (SESSION_BACKEND=redis).

        REDIS_URL defaults to redis://localhost:6379/0; REDIS_PASSWORD is
        applied only when the URL carries none.

        Returns:
            redis.Redis: Redis client
        """
        if cls._instance is None:
            redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")
            redis_password = os.getenv("REDIS_PASSWORD")

            parsed = urlparse(redis_url)

            kwargs = {
                "decode_responses": True,
                "socket_connect_timeout": 5,
                "socket_timeout": 5,
                "health_check_interval": 30,
            }

            if not parsed.password and redis_password:
                kwargs["password"] = redis_password

            cls._instance = redis.from_url(redis_url, **kwargs)

        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset Redis client (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None


def get_redis() -> redis.Redis:
    """Get Redis client for dependency injection."""
    return RedisClient.get_client()


def redis_key(*parts: str) -> str:
    """Namespaced key: redis_key("session", h) -> "donvie:session:<h>".

    DONVIE_REDIS_PREFIX overrides the namespace when several deployments
    share one Redis database.
    """
    prefix = os.getenv("DONVIE_REDIS_PREFIX", "donvie")
    return ":".join((prefix, *parts))
