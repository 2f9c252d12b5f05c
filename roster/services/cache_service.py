"""
Redis Cache Service for tenant lookups.
Provides tenant-isolated caching with graceful degradation.

Only small, rarely changing records are cached (tenant by slug). Roster
documents and requests are always read from the database.
"""

import logging
import json
from typing import Any, Optional, Callable
from datetime import datetime, date

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask, current_app

logger = logging.getLogger(__name__)

# Scope used for records that are looked up before a tenant is known
GLOBAL_SCOPE = 'global'


class CacheService:
    """
    Redis-based caching service with multi-tenant support.

    Keys pattern: {prefix}:tenant:{scope}:{module}:{key}
    """

    def __init__(self, app: Optional[Flask] = None):
        self.client: Optional[redis.Redis] = None
        self._enabled: bool = False
        self._prefix: str = ""

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Initialize Redis client from Flask app config."""
        self._enabled = app.config.get('CACHE_ENABLED', True)
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'roster')
        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')

        if not self._enabled:
            logger.info("[CACHE] Cache is DISABLED via config")
            return

        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[CACHE] Redis connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Cache DISABLED.")
            self._enabled = False
            self.client = None

    def is_available(self) -> bool:
        return self._enabled and self.client is not None

    def _build_key(self, scope, module: str, key: str) -> str:
        """Build tenant-isolated cache key."""
        return f"{self._prefix}:tenant:{scope}:{module}:{key}"

    def _serialize(self, value: Any) -> str:
        def default_handler(obj: Any) -> Any:
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
        return json.dumps(value, default=default_handler)

    def get(self, scope, module: str, key: str) -> Optional[Any]:
        """Get value from cache (None on miss or Redis failure)."""
        if not self.is_available():
            return None
        try:
            value = self.client.get(self._build_key(scope, module, key))
            if value is None:
                return None
            return json.loads(value)
        except (RedisError, json.JSONDecodeError) as e:
            logger.warning(f"[CACHE] Get error: {e}")
            return None

    def set(self, scope, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL."""
        if not self.is_available():
            return False
        try:
            if ttl is None:
                ttl = current_app.config.get('CACHE_DEFAULT_TTL', 60)
            self.client.setex(self._build_key(scope, module, key), ttl, self._serialize(value))
            return True
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] Set error: {e}")
            return False

    def delete(self, scope, module: str, key: str) -> bool:
        if not self.is_available():
            return False
        try:
            self.client.delete(self._build_key(scope, module, key))
            logger.info(f"[CACHE] INVALIDATE: {self._build_key(scope, module, key)}")
            return True
        except RedisError as e:
            logger.warning(f"[CACHE] Delete error: {e}")
            return False

    def memoize(self, scope, module: str, key: str, loader_fn: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Cache-aside: return the cached value, or load, cache and return it."""
        cached = self.get(scope, module, key)
        if cached is not None:
            return cached
        value = loader_fn()
        if value is not None:
            self.set(scope, module, key, value, ttl)
        return value


_cache_service: Optional[CacheService] = None


def init_cache(app: Flask) -> None:
    """Initialize cache service singleton."""
    global _cache_service
    _cache_service = CacheService(app)
    app.extensions['cache'] = _cache_service


def get_cache() -> CacheService:
    if _cache_service is None:
        raise RuntimeError("Cache not initialized.")
    return _cache_service
