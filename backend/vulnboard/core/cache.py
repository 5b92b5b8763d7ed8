"""
Caching for Knowledge Lookups

Two layers are provided:

- ``CacheService``: a Redis-backed cache shared by all backend pods for
  knowledge-base point lookups (CWE, EPSS, OSV, NVD). JSON values, key
  prefixing, TTLs, and graceful fallback when Redis is unavailable.
- ``BoundedTTLCache``: an in-process LRU cache with an explicit capacity and
  time-to-live, used for package metadata lookups within one pod.
"""

import asyncio
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from vulnboard.core.config import settings
from vulnboard.core.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """
    Distributed cache service using Redis.

    Every failure path returns the "not cached" value so callers fall back to
    the primary store.
    """

    def __init__(self):
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._available: bool = True
        self._lock: asyncio.Lock = asyncio.Lock()

    async def get_client(self) -> redis.Redis:
        """Get or create Redis client with connection pooling."""
        if self._client is not None and self._pool is not None:
            return self._client

        async with self._lock:
            if self._client is not None and self._pool is not None:
                return self._client

            try:
                self._pool = ConnectionPool.from_url(
                    settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True,
                    max_connections=20,
                )
                self._client = redis.Redis(connection_pool=self._pool)
                await self._client.ping()
                self._available = True
                logger.info("Redis cache connection established")
            except Exception as e:
                logger.warning(f"Redis connection failed: {e}. Cache will be disabled.")
                self._available = False
                raise
        return self._client

    async def close(self) -> None:
        """Close Redis connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
        if self._pool:
            await self._pool.disconnect()
            self._pool = None

    def _make_key(self, key: str) -> str:
        return f"{settings.CACHE_PREFIX}{key}"

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key (will be prefixed automatically)

        Returns:
            Cached value or None if not found/expired/unavailable
        """
        if not self._available:
            return None

        try:
            client = await self.get_client()
            data = await client.get(self._make_key(key))
            if data:
                cache_hits_total.inc()
                return json.loads(data)
            cache_misses_total.inc()
            return None
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return None
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to decode cached value for {key}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        """
        Set value in cache with TTL.

        Args:
            key: Cache key (will be prefixed automatically)
            value: Value to cache (must be JSON serializable)
            ttl_seconds: Time-to-live in seconds (default from settings)

        Returns:
            True if cached successfully, False otherwise
        """
        if not self._available:
            return False

        if ttl_seconds is None:
            ttl_seconds = settings.CACHE_DEFAULT_TTL_HOURS * 3600

        try:
            client = await self.get_client()
            await client.setex(self._make_key(key), ttl_seconds, json.dumps(value, default=str))
            return True
        except redis.ConnectionError:
            logger.warning("Redis connection lost, disabling cache temporarily")
            self._available = False
            return False
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value for {key}: {e}")
            return False
        except Exception as e:
            logger.warning(f"Cache set error for {key}: {e}")
            return False

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or fetch and cache if missing.

        Args:
            key: Cache key
            fetch_fn: Async function to call on a cache miss
            ttl_seconds: TTL for the cached value

        Returns:
            Cached or freshly fetched value
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        data = await fetch_fn()
        if data is not None:
            await self.set(key, data, ttl_seconds)
        return data

    async def health_check(self) -> Dict[str, Any]:
        """Get cache health status."""
        try:
            client = await self.get_client()
            return {
                "status": "healthy",
                "available": self._available,
                "total_keys": await client.dbsize(),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "available": False,
                "error": str(e),
            }


# Global cache service instance
cache_service = CacheService()


class CacheTTL:
    """Standard TTL values (seconds) for cached knowledge data."""

    CWE_ENTRY = 7 * 24 * 3600  # CWE catalog changes rarely
    EPSS_SCORE = 24 * 3600  # EPSS updates daily
    OSV_VULNERABILITY = 6 * 3600
    NVD_VULNERABILITY = 6 * 3600


class CacheKeys:
    """Cache key builders for consistent key naming."""

    @staticmethod
    def cwe(cwe_id: str) -> str:
        return f"cwe:{cwe_id}"

    @staticmethod
    def epss(advisory_id: str) -> str:
        return f"epss:{advisory_id}"

    @staticmethod
    def osv(osv_id: str) -> str:
        return f"osv:{osv_id}"

    @staticmethod
    def osv_by_cve(cve_id: str) -> str:
        return f"osv:cve:{cve_id}"

    @staticmethod
    def nvd(nvd_id: str) -> str:
        return f"nvd:{nvd_id}"


K = TypeVar("K", bound=Hashable)


class BoundedTTLCache(Generic[K, T]):
    """
    In-process LRU cache with a fixed capacity and per-entry time-to-live.

    Reads refresh recency; inserting beyond capacity evicts the least
    recently used entry. Expired entries are dropped on access.
    """

    def __init__(self, capacity: int, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[K, Tuple[float, T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None

    def get(self, key: K) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: K, value: T) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted!r} from bounded cache")

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[K]:
        return list(self._entries.keys())
