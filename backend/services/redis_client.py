"""
Redis Connection Manager - Context cache backend.

Provides:
- Async Redis client (redis.asyncio) for string values with per-key TTL
- MemoryCache: bounded in-process LRU used when Redis is disabled or down
- Throttled reconnection from health checks
- Singleton access for the running application

Usage:
    from services.redis_client import get_redis

    redis = await get_redis()
    await redis.set("context:session_x", payload, ttl=7200)
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

import redis.asyncio as redis_async

logger = logging.getLogger(__name__)


class MemoryCache:
    """LRU map with absolute per-key expiry.

    Expiry is fixed when a key is written; reads never extend it.
    """

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._values: "OrderedDict[str, str]" = OrderedDict()
        self._expires_at: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _expired(self, key: str, now: float) -> bool:
        expiry = self._expires_at.get(key)
        return expiry is not None and now > expiry

    def get(self, key: str) -> Optional[str]:
        if self._expired(key, time.time()):
            self.delete(key)
            return None
        value = self._values.get(key)
        if value is not None:
            self._values.move_to_end(key)
        return value

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if key not in self._values and len(self._values) >= self.max_entries:
            self.purge_expired()
            while len(self._values) >= self.max_entries:
                oldest, _ = self._values.popitem(last=False)
                self._expires_at.pop(oldest, None)

        self._values[key] = value
        self._values.move_to_end(key)
        if ttl:
            self._expires_at[key] = time.time() + ttl
        else:
            self._expires_at.pop(key, None)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)
        self._expires_at.pop(key, None)

    def expires_at(self, key: str) -> Optional[float]:
        return self._expires_at.get(key)

    def ttl(self, key: str) -> int:
        """Seconds left, or -1 when the key is missing or never expires."""
        if self.get(key) is None or key not in self._expires_at:
            return -1
        return max(0, int(self._expires_at[key] - time.time()))

    def purge_expired(self) -> int:
        now = time.time()
        expired = [k for k in self._expires_at if self._expired(k, now)]
        for k in expired:
            self.delete(k)
        return len(expired)


@dataclass
class RedisManager:
    """
    Redis-backed key/value store that degrades to MemoryCache.

    Once a Redis call fails the manager stays in fallback mode until a
    health check reconnects it. Values written during fallback are not
    copied back to Redis; those contexts are simply rebuilt.
    """

    url: str = "redis://localhost:6379/0"
    enabled: bool = True
    max_memory_entries: int = 1000
    reconnect_interval_s: float = 30.0

    memory: MemoryCache = field(init=False, repr=False)
    _client: Any = field(default=None, repr=False)
    _fallback_mode: bool = field(default=True, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    _last_reconnect_attempt: float = field(default=0.0, repr=False)
    # Keys written or deleted while Redis was unreachable
    _fallback_keys: Set[str] = field(default_factory=set, repr=False)

    def __post_init__(self):
        self.memory = MemoryCache(self.max_memory_entries)

    @property
    def available(self) -> bool:
        """True while Redis itself is serving requests."""
        return self._client is not None and not self._fallback_mode

    @property
    def fallback_mode(self) -> bool:
        return self._fallback_mode

    async def connect(self) -> bool:
        """
        Connect to Redis.

        Returns:
            True if connected, False if the in-memory cache is in use
        """
        if not self.enabled:
            logger.info("Redis disabled by config, using in-memory context cache")
            self._fallback_mode = True
            return False

        async with self._lock:
            if self.available:
                return True

            client = redis_async.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5.0,
                socket_timeout=5.0,
            )
            try:
                await client.ping()
                await self._resync(client)
            except Exception as e:
                logger.warning(f"Redis connection failed: {e}, using in-memory context cache")
                await client.aclose()
                self._fallback_mode = True
                return False

            stale, self._client = self._client, client
            if stale is not None:
                try:
                    await stale.aclose()
                except Exception as e:
                    logger.debug(f"Error closing previous Redis client: {e}")
            self._fallback_mode = False
            logger.info(f"Redis connected: {self.url}")
            return True

    async def _resync(self, client: Any) -> None:
        """Replay fallback-time writes and deletes onto Redis."""
        if not self._fallback_keys:
            return
        for key in sorted(self._fallback_keys):
            value = self.memory.get(key)
            if value is None:
                await client.delete(key)
            else:
                ttl = self.memory.ttl(key)
                await client.set(key, value, ex=None if ttl < 0 else max(ttl, 1))
        logger.info(f"Redis resynced {len(self._fallback_keys)} key(s) touched during fallback")
        self._fallback_keys.clear()

    async def disconnect(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
            self._fallback_mode = True
            if client is not None:
                try:
                    await client.aclose()
                except Exception as e:
                    logger.warning(f"Error closing Redis: {e}")

    async def health_check(self) -> Dict[str, Any]:
        """
        Check cache health, reconnecting at most every reconnect_interval_s.

        Returns:
            Dict with status, mode and latency or cache size
        """
        if self._fallback_mode and self.enabled:
            now = time.monotonic()
            if now - self._last_reconnect_attempt >= self.reconnect_interval_s:
                self._last_reconnect_attempt = now
                logger.info("Attempting Redis reconnection...")
                await self.connect()

        if self._fallback_mode:
            return {"status": "fallback", "mode": "in-memory", "cache_size": len(self.memory)}

        try:
            start = time.perf_counter()
            await self._client.ping()
            return {
                "status": "connected",
                "mode": "redis",
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            }
        except Exception as e:
            self._enter_fallback(e)
            return {"status": "error", "mode": "in-memory", "error": str(e)}

    # === Key-Value Operations ===

    async def get(self, key: str) -> Optional[str]:
        if not self._fallback_mode:
            try:
                return await self._client.get(key)
            except Exception as e:
                self._enter_fallback(e)
        return self.memory.get(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Store a value; ``ttl`` is seconds from now and never refreshed by reads."""
        if not self._fallback_mode:
            try:
                await self._client.set(key, value, ex=ttl or None)
                return True
            except Exception as e:
                self._enter_fallback(e)
        self.memory.set(key, value, ttl)
        if self.enabled:
            self._fallback_keys.add(key)
        return True

    async def delete(self, key: str) -> bool:
        """Delete a key. Deleting a missing key is not an error."""
        if not self._fallback_mode:
            try:
                await self._client.delete(key)
                return True
            except Exception as e:
                self._enter_fallback(e)
        self.memory.delete(key)
        if self.enabled:
            self._fallback_keys.add(key)
        return True

    async def get_ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-1 when unknown)."""
        if not self._fallback_mode:
            try:
                return await self._client.ttl(key)
            except Exception as e:
                logger.warning(f"Redis TTL failed for {key}: {e}")
                return -1
        return self.memory.ttl(key)

    def _enter_fallback(self, error: Exception) -> None:
        if not self._fallback_mode:
            logger.warning(f"Redis unavailable ({error}), switching to in-memory context cache")
            self._fallback_mode = True


# Singleton instance
_redis_manager: Optional[RedisManager] = None
_init_lock = asyncio.Lock()


async def get_redis() -> RedisManager:
    """
    Get the Redis manager singleton.

    Lazily initializes connection on first call.
    """
    global _redis_manager

    if _redis_manager is None:
        async with _init_lock:
            if _redis_manager is None:
                from config import runtime_config

                manager = RedisManager(
                    url=runtime_config.redis_url,
                    enabled=runtime_config.redis_enabled,
                )
                await manager.connect()
                _redis_manager = manager

    return _redis_manager


async def close_redis() -> None:
    """Close the Redis connection (call on shutdown)."""
    global _redis_manager
    if _redis_manager:
        await _redis_manager.disconnect()
        _redis_manager = None
