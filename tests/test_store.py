"""Unit tests for bulkcache.store module."""

import threading
from unittest.mock import MagicMock

import pytest

from bulkcache.exceptions import IllegalArgumentException, IllegalStateException
from bulkcache.store import (
    CacheStats,
    CacheValue,
    InMemoryCache,
    InMemoryCacheManager,
    SimpleCacheResolver,
)


class TestCacheStats:
    """Tests for CacheStats dataclass."""

    def test_default_values(self):
        stats = CacheStats()
        assert stats.hits == 0
        assert stats.misses == 0
        assert stats.puts == 0
        assert stats.evictions == 0
        assert stats.creation_time > 0

    def test_hit_ratio_zero_total(self):
        assert CacheStats().hit_ratio == 0.0
        assert CacheStats().miss_ratio == 0.0

    def test_ratios(self):
        stats = CacheStats(hits=3, misses=1)
        assert stats.hit_ratio == 0.75
        assert stats.miss_ratio == 0.25

    def test_to_dict(self):
        stats = CacheStats(hits=1, puts=2)
        result = stats.to_dict()
        assert result["hits"] == 1
        assert result["puts"] == 2
        assert "hit_ratio" in result


class TestInMemoryCache:
    """Tests for InMemoryCache."""

    @pytest.fixture
    def cache(self):
        return InMemoryCache("test")

    def test_miss_returns_none(self, cache):
        assert cache.get("missing") is None
        assert cache.stats.misses == 1

    def test_put_and_get(self, cache):
        cache.put("k", "v")
        assert cache.get("k") == CacheValue("v")
        assert cache.stats.hits == 1
        assert cache.stats.puts == 1

    def test_none_value_is_a_hit(self, cache):
        cache.put("k", None)
        hit = cache.get("k")
        assert hit is not None
        assert hit.value is None

    def test_none_values_disallowed(self):
        cache = InMemoryCache("strict", allow_none_values=False)
        with pytest.raises(IllegalArgumentException):
            cache.put("k", None)
        assert cache.size == 0

    def test_put_overwrites(self, cache):
        cache.put("k", 1)
        cache.put("k", 2)
        assert cache.get("k").value == 2
        assert cache.size == 1

    def test_evict(self, cache):
        cache.put("k", 1)
        cache.evict("k")
        cache.evict("absent")
        assert not cache.contains("k")
        assert cache.stats.evictions == 1

    def test_clear(self, cache):
        cache.put(1, 1)
        cache.put(2, 2)
        cache.clear()
        assert cache.size == 0

    def test_contains_does_not_count(self, cache):
        cache.contains("k")
        assert cache.stats.misses == 0

    def test_keys_snapshot(self, cache):
        cache.put(1, "a")
        keys = cache.keys()
        cache.put(2, "b")
        assert keys == [1]

    def test_concurrent_puts(self, cache):
        def writer(offset):
            for i in range(100):
                cache.put(offset + i, i)

        threads = [threading.Thread(target=writer, args=(n * 100,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.size == 400


class TestInMemoryCacheManager:
    def test_static_names(self):
        manager = InMemoryCacheManager(["a", "b"], dynamic=False)
        assert manager.get_cache_names() == frozenset({"a", "b"})
        assert manager.get_cache("a").name == "a"
        assert manager.get_cache("c") is None

    def test_dynamic_creation(self):
        manager = InMemoryCacheManager()
        cache = manager.get_cache("new")
        assert cache is manager.get_cache("new")
        assert "new" in manager.get_cache_names()

    def test_allow_none_values_propagated(self):
        manager = InMemoryCacheManager(["a"], allow_none_values=False)
        assert manager.get_cache("a").allow_none_values is False

    def test_close(self):
        manager = InMemoryCacheManager(["a"])
        manager.get_cache("a").put(1, 1)
        manager.close()
        assert manager.is_closed
        with pytest.raises(IllegalStateException):
            manager.get_cache("a")
        manager.close()

    def test_context_manager(self):
        with InMemoryCacheManager(["a"]) as manager:
            assert not manager.is_closed
        assert manager.is_closed


class TestSimpleCacheResolver:
    def _context(self, *names):
        context = MagicMock()
        context.declaration.cache_names = names
        context.declaration.description = "READ[find]"
        return context

    def test_resolves_in_order(self):
        manager = InMemoryCacheManager(["a", "b"], dynamic=False)
        resolver = SimpleCacheResolver(manager)
        caches = resolver.resolve_caches(self._context("b", "a"))
        assert [c.name for c in caches] == ["b", "a"]

    def test_no_names(self):
        resolver = SimpleCacheResolver(InMemoryCacheManager())
        with pytest.raises(IllegalStateException) as exc_info:
            resolver.resolve_caches(self._context())
        assert "At least one cache" in str(exc_info.value)

    def test_unknown_name(self):
        resolver = SimpleCacheResolver(InMemoryCacheManager(["a"], dynamic=False))
        with pytest.raises(IllegalArgumentException) as exc_info:
            resolver.resolve_caches(self._context("missing"))
        assert "Cannot find cache named 'missing'" in str(exc_info.value)
