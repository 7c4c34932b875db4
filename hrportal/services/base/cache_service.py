"""
Cache service with pluggable backends.

The cache is an explicit object handed to the services that need it;
values carry their own expiry and there is no module-level cache state.
"""

import json
import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from hrportal.config.settings import CacheSettings
from hrportal.core.logging import get_logger

logger = get_logger(__name__)


class CacheBackend:
    """Abstract cache backend interface"""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def clear(self, prefix: str = "") -> int:
        raise NotImplementedError


class InMemoryCacheBackend(CacheBackend):
    """Process-local backend storing ``(value, expires_at)`` pairs."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        expires_at = self._clock() + expire if expire else None
        with self._lock:
            self._store[key] = (value, expires_at)
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self, prefix: str = "") -> int:
        with self._lock:
            keys = [k for k in self._store if k.startswith(prefix)]
            for k in keys:
                del self._store[k]
            return len(keys)


class RedisCacheBackend(CacheBackend):
    """Redis backend; values are stored as JSON."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[Any]:
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        payload = json.dumps(value, default=str)
        if expire:
            return bool(self.client.setex(key, expire, payload))
        return bool(self.client.set(key, payload))

    def delete(self, key: str) -> bool:
        return self.client.delete(key) > 0

    def clear(self, prefix: str = "") -> int:
        keys = list(self.client.scan_iter(match=f"{prefix}*"))
        if not keys:
            return 0
        return int(self.client.delete(*keys))


class CacheService:
    """
    Namespaced cache with TTL support.

    Backend errors are logged and treated as misses so a cache outage
    degrades to direct lookups.
    """

    def __init__(self, backend: CacheBackend, namespace: str = "hrportal", default_ttl: int = 300):
        self.backend = backend
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._logger = get_logger(self.__class__.__name__)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        try:
            value = self.backend.get(self._key(key))
        except (redis.RedisError, ValueError) as e:
            self._logger.warning(f"Cache get error for {key}: {e}")
            return default
        if value is None:
            self._logger.debug(f"Cache miss: {key}")
            return default
        self._logger.debug(f"Cache hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        try:
            return self.backend.set(self._key(key), value, expire=ttl)
        except (redis.RedisError, TypeError, ValueError) as e:
            self._logger.warning(f"Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return self.backend.delete(self._key(key))
        except redis.RedisError as e:
            self._logger.warning(f"Cache delete error for {key}: {e}")
            return False

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl_seconds: Optional[int] = None) -> Any:
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value, ttl_seconds)
        return value

    def invalidate_namespace(self, sub_namespace: str) -> int:
        try:
            return self.backend.clear(self._key(sub_namespace))
        except redis.RedisError as e:
            self._logger.warning(f"Cache invalidation error for {sub_namespace}: {e}")
            return 0


def build_cache_service(settings: CacheSettings) -> CacheService:
    """Create the cache service for the configured backend."""
    if settings.CACHE_BACKEND == "redis":
        backend: CacheBackend = RedisCacheBackend.from_url(settings.REDIS_URL)
        logger.info("Using Redis cache backend")
    else:
        backend = InMemoryCacheBackend()
    return CacheService(
        backend,
        namespace=settings.CACHE_NAMESPACE,
        default_ttl=settings.HOLIDAY_CACHE_TTL_SECONDS,
    )
