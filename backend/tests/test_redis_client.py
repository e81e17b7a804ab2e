"""
Tests for the context cache backend and its in-memory fallback.
"""

import time
from unittest.mock import AsyncMock, patch

from services.context_store import ContextStore, DocumentContext
from services.redis_client import MemoryCache, RedisManager

from conftest import run


class TestMemoryCache:
    """Bounded LRU with fixed expiry."""

    def test_set_get_delete(self):
        cache = MemoryCache()
        cache.set("k", "v")
        assert cache.get("k") == "v"
        assert "k" in cache
        cache.delete("k")
        assert cache.get("k") is None
        cache.delete("k")

    def test_ttl_expiry(self):
        cache = MemoryCache()
        cache.set("k", "v", ttl=10)
        assert 0 < cache.ttl("k") <= 10
        with patch("services.redis_client.time.time", return_value=time.time() + 11):
            assert cache.get("k") is None
        assert len(cache) == 0

    def test_ttl_unknown_without_expiry(self):
        cache = MemoryCache()
        cache.set("k", "v")
        assert cache.ttl("k") == -1
        assert cache.ttl("missing") == -1

    def test_lru_eviction(self):
        cache = MemoryCache(max_entries=2)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")  # "b" becomes least recently used
        cache.set("c", "3")
        assert cache.get("a") == "1"
        assert cache.get("b") is None
        assert cache.get("c") == "3"

    def test_expired_entries_evicted_before_live_ones(self):
        cache = MemoryCache(max_entries=2)
        cache.set("old", "1", ttl=1)
        cache.set("live", "2")
        with patch("services.redis_client.time.time", return_value=time.time() + 5):
            cache.set("new", "3")
            assert cache.get("live") == "2"
            assert cache.get("new") == "3"


class TestFallbackMode:
    """Redis disabled -> MemoryCache behind the same async interface."""

    def test_disabled_manager_uses_fallback(self, memory_redis):
        assert memory_redis.fallback_mode is True
        assert memory_redis.available is False

    def test_set_get_delete(self, memory_redis):
        assert run(memory_redis.set("k", "v", ttl=60)) is True
        assert run(memory_redis.get("k")) == "v"
        assert 0 < run(memory_redis.get_ttl("k")) <= 60
        assert run(memory_redis.delete("k")) is True
        assert run(memory_redis.get("k")) is None

    def test_delete_missing_key(self, memory_redis):
        assert run(memory_redis.delete("missing")) is True

    def test_health_check_reports_in_memory(self, memory_redis):
        run(memory_redis.set("k", "v"))
        health = run(memory_redis.health_check())
        assert health == {"status": "fallback", "mode": "in-memory", "cache_size": 1}

    def test_max_entries_passed_through(self):
        assert RedisManager(enabled=False, max_memory_entries=3).memory.max_entries == 3


class TestRedisFailures:
    """A failing Redis call moves the manager onto the memory cache."""

    def _connected(self, client):
        manager = RedisManager(enabled=True)
        manager._client = client
        manager._fallback_mode = False
        return manager

    def test_set_failure_falls_back(self):
        client = AsyncMock()
        client.set.side_effect = ConnectionError("redis down")
        manager = self._connected(client)

        assert run(manager.set("k", "v", ttl=60)) is True
        assert manager.fallback_mode is True
        assert manager.memory.get("k") == "v"

    def test_get_uses_redis_when_healthy(self):
        client = AsyncMock()
        client.get.return_value = "from-redis"
        manager = self._connected(client)

        assert run(manager.get("k")) == "from-redis"
        assert manager.available is True

    def test_set_passes_expiry(self):
        client = AsyncMock()
        manager = self._connected(client)

        run(manager.set("k", "v", ttl=7200))

        client.set.assert_awaited_once_with("k", "v", ex=7200)


class FlakyRedis:
    """Dict-backed stand-in for a redis.asyncio client that can go down."""

    def __init__(self):
        self.data = {}
        self.down = False

    def _check(self):
        if self.down:
            raise ConnectionError("redis down")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value

    async def delete(self, key):
        self._check()
        self.data.pop(key, None)

    async def aclose(self):
        pass


class TestResyncAfterOutage:
    """Writes and deletes made in fallback reach Redis on reconnect."""

    def _reconnect(self, manager, client):
        with patch("services.redis_client.redis_async.from_url", return_value=client):
            assert run(manager.connect()) is True

    def test_delete_during_outage_removed_on_reconnect(self):
        client = FlakyRedis()
        manager = RedisManager(enabled=True)
        self._reconnect(manager, client)
        run(manager.set("context:s1", "payload", ttl=60))

        client.down = True
        run(manager.delete("context:s1"))
        assert manager.fallback_mode is True
        assert "context:s1" in client.data

        client.down = False
        self._reconnect(manager, client)

        assert "context:s1" not in client.data
        assert run(manager.get("context:s1")) is None

    def test_write_during_outage_pushed_on_reconnect(self):
        client = FlakyRedis()
        client.data["context:s1"] = "old"
        manager = RedisManager(enabled=True)
        self._reconnect(manager, client)

        client.down = True
        run(manager.set("context:s1", "new", ttl=60))

        client.down = False
        self._reconnect(manager, client)

        assert run(manager.get("context:s1")) == "new"

    def test_failed_resync_keeps_fallback(self):
        client = AsyncMock()
        client.delete.side_effect = ConnectionError("redis down")
        manager = RedisManager(enabled=True)
        run(manager.delete("context:s1"))

        with patch("services.redis_client.redis_async.from_url", return_value=client):
            assert run(manager.connect()) is False

        assert manager.fallback_mode is True
        assert "context:s1" in manager._fallback_keys

    def test_cleared_session_stays_cleared(self):
        client = FlakyRedis()
        manager = RedisManager(enabled=True)
        self._reconnect(manager, client)
        store = ContextStore(manager, ttl_seconds=7200)
        run(store.put("s1", DocumentContext.create("texto del documento", "https://x/doc.pdf")))

        client.down = True
        run(store.forget("s1"))
        client.down = False
        self._reconnect(manager, client)

        assert run(store.get("s1")) is None
