"""Keyed cache store collaborators.

bulkcache does not implement a storage engine of its own. It talks to
caches through the small :class:`Cache` interface and finds them through a
:class:`CacheResolver`. This module ships those interfaces plus a
thread-safe in-memory implementation that is used by default and in tests.

Example:
    >>> manager = InMemoryCacheManager(["users"])
    >>> cache = manager.get_cache("users")
    >>> cache.put(1, "alice")
    >>> cache.get(1).value
    'alice'
    >>> cache.get(2) is None
    True
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from bulkcache.exceptions import IllegalArgumentException, IllegalStateException
from bulkcache.logging import get_logger

if TYPE_CHECKING:
    from bulkcache.context import OperationContext


_logger = get_logger("store")

_MISSING = object()


@dataclass(frozen=True)
class CacheValue:
    """Wrapper around a cached value.

    A miss is ``None``; a hit is a ``CacheValue``, whose ``value`` may itself
    be ``None`` when the cache allows storing it.
    """

    value: Any


@dataclass
class CacheStats:
    """Statistics for cache operations.

    Attributes:
        hits: Number of successful lookups.
        misses: Number of lookups that found nothing.
        puts: Number of entries written.
        evictions: Number of entries removed by key.
        creation_time: Timestamp when the cache was created.
    """

    hits: int = 0
    misses: int = 0
    puts: int = 0
    evictions: int = 0
    creation_time: float = field(default_factory=time.time)

    @property
    def hit_ratio(self) -> float:
        """Calculate the cache hit ratio (0.0 to 1.0)."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    @property
    def miss_ratio(self) -> float:
        """Calculate the cache miss ratio (0.0 to 1.0)."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.misses / total

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "puts": self.puts,
            "evictions": self.evictions,
            "hit_ratio": self.hit_ratio,
            "miss_ratio": self.miss_ratio,
            "creation_time": self.creation_time,
        }


class Cache(ABC):
    """A named key/value cache handle."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the cache name."""
        pass

    @abstractmethod
    def get(self, key: Any) -> Optional[CacheValue]:
        """Look up a key.

        Returns:
            A :class:`CacheValue` on a hit, ``None`` on a miss.
        """
        pass

    @abstractmethod
    def put(self, key: Any, value: Any) -> None:
        """Store a value under a key, replacing any previous one."""
        pass

    @abstractmethod
    def evict(self, key: Any) -> None:
        """Remove the entry for a key if present."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""
        pass


class InMemoryCache(Cache):
    """Thread-safe dictionary backed cache.

    Args:
        name: The cache name.
        allow_none_values: Whether ``None`` may be stored as a value.
    """

    def __init__(self, name: str, allow_none_values: bool = True):
        self._name = name
        self._allow_none_values = allow_none_values
        self._store: Dict[Any, Any] = {}
        self._stats = CacheStats()
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def allow_none_values(self) -> bool:
        return self._allow_none_values

    @property
    def stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats

    @property
    def size(self) -> int:
        """Get the number of entries in the cache."""
        with self._lock:
            return len(self._store)

    def get(self, key: Any) -> Optional[CacheValue]:
        with self._lock:
            if key not in self._store:
                self._stats.misses += 1
                return None
            self._stats.hits += 1
            return CacheValue(self._store[key])

    def put(self, key: Any, value: Any) -> None:
        if value is None and not self._allow_none_values:
            raise IllegalArgumentException(
                f"Cache '{self._name}' is configured to not allow None values "
                f"but None was provided for key '{key}'"
            )
        with self._lock:
            self._store[key] = value
            self._stats.puts += 1

    def evict(self, key: Any) -> None:
        with self._lock:
            if self._store.pop(key, _MISSING) is not _MISSING:
                self._stats.evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def contains(self, key: Any) -> bool:
        """Check if a key exists without touching the statistics."""
        with self._lock:
            return key in self._store

    def keys(self) -> List[Any]:
        """Get a snapshot of the cached keys."""
        with self._lock:
            return list(self._store.keys())

    def __repr__(self) -> str:
        return f"InMemoryCache(name={self._name!r}, size={self.size})"


class CacheManager(ABC):
    """Provides named caches."""

    @abstractmethod
    def get_cache(self, name: str) -> Optional[Cache]:
        """Get the cache with the given name, or ``None`` if unknown."""
        pass

    @abstractmethod
    def get_cache_names(self) -> frozenset:
        """Get the names of the known caches."""
        pass


class InMemoryCacheManager(CacheManager):
    """Cache manager handing out :class:`InMemoryCache` instances.

    Args:
        cache_names: Caches to create up front.
        dynamic: Whether unknown caches are created on first request.
        allow_none_values: Passed to every created cache.

    Example:
        >>> with InMemoryCacheManager(["users"], dynamic=False) as manager:
        ...     manager.get_cache("orders") is None
        True
    """

    def __init__(
        self,
        cache_names: Optional[Iterable[str]] = None,
        dynamic: bool = True,
        allow_none_values: bool = True,
    ):
        self._dynamic = dynamic
        self._allow_none_values = allow_none_values
        self._caches: Dict[str, InMemoryCache] = {}
        self._lock = threading.Lock()
        self._closed = False
        for name in cache_names or ():
            self._caches[name] = self._create_cache(name)

    @property
    def is_dynamic(self) -> bool:
        return self._dynamic

    @property
    def is_closed(self) -> bool:
        """Check if this cache manager is closed."""
        return self._closed

    def _check_not_closed(self) -> None:
        if self._closed:
            raise IllegalStateException("CacheManager is closed")

    def _create_cache(self, name: str) -> InMemoryCache:
        return InMemoryCache(name, allow_none_values=self._allow_none_values)

    def get_cache(self, name: str) -> Optional[InMemoryCache]:
        self._check_not_closed()

        with self._lock:
            cache = self._caches.get(name)
            if cache is None and self._dynamic:
                _logger.debug("Creating cache '%s' on demand", name)
                cache = self._create_cache(name)
                self._caches[name] = cache
            return cache

    def get_cache_names(self) -> frozenset:
        self._check_not_closed()

        with self._lock:
            return frozenset(self._caches.keys())

    def close(self) -> None:
        """Close this manager and clear every managed cache."""
        if self._closed:
            return

        with self._lock:
            self._closed = True
            for cache in self._caches.values():
                cache.clear()
            self._caches.clear()

    def __enter__(self) -> "InMemoryCacheManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"InMemoryCacheManager(caches={len(self._caches)}, dynamic={self._dynamic})"


class CacheResolver(ABC):
    """Determines the caches an operation context works with."""

    @abstractmethod
    def resolve_caches(self, context: "OperationContext") -> List[Cache]:
        """Resolve the ordered cache handles for an operation context."""
        pass


class SimpleCacheResolver(CacheResolver):
    """Resolves the declared cache names against a :class:`CacheManager`.

    Args:
        cache_manager: The manager to look names up in.
    """

    def __init__(self, cache_manager: CacheManager):
        self._cache_manager = cache_manager

    @property
    def cache_manager(self) -> CacheManager:
        return self._cache_manager

    def get_cache_names(self, context: "OperationContext") -> Iterable[str]:
        return context.declaration.cache_names

    def resolve_caches(self, context: "OperationContext") -> List[Cache]:
        names = list(self.get_cache_names(context))
        if not names:
            raise IllegalStateException(
                "No cache could be resolved for "
                f"'{context.declaration.description}'. At least one cache "
                "should be provided per cache operation."
            )
        caches = []
        for name in names:
            cache = self._cache_manager.get_cache(name)
            if cache is None:
                raise IllegalArgumentException(
                    f"Cannot find cache named '{name}' for "
                    f"{context.declaration.description}"
                )
            caches.append(cache)
        return caches
