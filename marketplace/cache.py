"""
Redis caching utilities for read-mostly discovery data
Fail-open: every operation degrades to a cache miss when Redis is unavailable
"""
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

CATEGORIES_KEY = "search:categories"


def get_redis_client(redis_url: str) -> redis.Redis:
    """Create a Redis client from a URL and verify connectivity"""
    # Mask password in URL for logging
    if "@" in redis_url:
        url_parts = redis_url.split("@")
        protocol = url_parts[0].split(":")[0]
        masked_url = f"{protocol}:****@{url_parts[1]}"
    else:
        masked_url = "****"
    logger.info(f"📡 Using Redis URL connection: {masked_url}")

    client = redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
    )
    client.ping()
    return client


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.redis_client = client
        self._unavailable = False

    def _get_client(self):
        """Lazy load Redis client"""
        if self.redis_client is None and not self._unavailable:
            if not self.redis_url:
                self._unavailable = True
                return None
            try:
                self.redis_client = get_redis_client(self.redis_url)
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                self._unavailable = True
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
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
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        """Delete value from cache"""
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


def invalidate_categories_cache(cache: Cache) -> bool:
    """Invalidate the distinct-categories listing after a service write"""
    return cache.delete(CATEGORIES_KEY)
