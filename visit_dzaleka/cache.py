"""
Redis caching utilities for public reference data
Zones, meeting points and pricing are read on every booking form load
"""

import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

REFERENCE_DATA_TTL = 600


class Cache:
    """Redis cache wrapper with automatic serialization. Fails open when Redis is missing."""

    def __init__(self):
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


# Global cache instance
cache = Cache()


def cached(key_prefix: str, ttl: int = 3600, key_builder: Optional[Callable] = None):
    """
    Decorator to cache JSON-serialisable function results

    Example:
        @cached(key_prefix="zones", ttl=600, key_builder=lambda db: "zones:active")
        def list_active_zones(db):
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if key_builder:
                cache_key = key_builder(*args, **kwargs)
            else:
                cache_key = key_prefix

            cached_value = cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            result = func(*args, **kwargs)
            if result is not None:
                cache.set(cache_key, result, ttl)
            return result

        return wrapper

    return decorator


ZONES_KEY = "reference:zones"
MEETING_POINTS_KEY = "reference:meeting_points"
POINTS_OF_INTEREST_KEY = "reference:points_of_interest"
PRICING_KEY = "reference:pricing"


def invalidate_reference_cache(*keys: str) -> None:
    """Drop cached reference data after a staff write"""
    for key in keys:
        cache.delete(key)
