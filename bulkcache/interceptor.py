"""Batch-aware cache coordination.

:class:`BatchCacheCoordinator` is the entry point: given the bulk
declarations of a method and an intercepted :class:`Invocation`, it runs one
of the bulk algorithms.

- bulk read-through: serve hits from the caches, call the method once with
  only the missing keys, merge, and cache every fetched entry on its own key
- bulk read-through of everything (find-all): call the method and cache
  every returned entry on its own key
- bulk write-through: call the method and cache every returned element
- bulk evict: evict every requested key from every cache, then call the
  method

Example:
    >>> coordinator = BatchCacheCoordinator(InMemoryCacheManager(["users"]))
    >>>
    >>> class UserRepository:
    ...     @coordinator.collection_cacheable("users")
    ...     def find_by_ids(self, ids):
    ...         return {i: load_user(i) for i in ids}
"""

import threading
from collections.abc import Collection, Mapping, Set
from typing import Any, Dict, Iterator, List, Optional, Sequence

from bulkcache import annotations
from bulkcache.config import CachingConfig
from bulkcache.context import OperationContext, OperationMetadata
from bulkcache.exceptions import ConfigurationException, TypeMismatchException
from bulkcache.expression import ConditionEvaluator, ExpressionEvaluator
from bulkcache.invocation import ArgumentPosition, Invocation
from bulkcache.key import KeyGenerator, SimpleKeyGenerator
from bulkcache.logging import get_logger
from bulkcache.operation import BulkOperationKind, OperationDeclaration
from bulkcache.store import (
    CacheManager,
    CacheResolver,
    CacheValue,
    InMemoryCacheManager,
    SimpleCacheResolver,
)


_logger = get_logger("interceptor")

_DISPATCH_ORDER = (
    BulkOperationKind.READ,
    BulkOperationKind.WRITE,
    BulkOperationKind.EVICT,
)


def is_key_collection(value: Any) -> bool:
    """Check whether a value can serve as the collection of keys."""
    return isinstance(value, Collection) and not isinstance(
        value, (str, bytes, bytearray, Mapping)
    )


class CandidateKeySet:
    """Private copy of the collection argument of an invocation.

    Hits are removed from the copy as they are resolved; the caller's
    collection is never mutated.

    Args:
        position: Index or keyword of the collection argument.
        original: The collection the caller passed.
    """

    def __init__(self, position: ArgumentPosition, original: Collection):
        self._position = position
        self._original_type = type(original)
        self._keys: List[Any] = list(original)

    @classmethod
    def extract(cls, invocation: Invocation) -> "CandidateKeySet":
        """Find the single collection argument of an invocation.

        Raises:
            ConfigurationException: If there is not exactly one collection
                argument.
        """
        found = [
            (index, value)
            for index, value in enumerate(invocation.arguments)
            if is_key_collection(value)
        ]
        found.extend(
            (name, value)
            for name, value in invocation.keyword_arguments.items()
            if is_key_collection(value)
        )
        if len(found) != 1:
            raise ConfigurationException(
                "Did not find exactly one collection argument in "
                f"{invocation!r}, found {len(found)}"
            )
        position, original = found[0]
        return cls(position, original)

    @property
    def position(self) -> ArgumentPosition:
        return self._position

    def remove(self, key: Any) -> None:
        """Remove one occurrence of a key."""
        self._keys.remove(key)

    def snapshot(self) -> List[Any]:
        return list(self._keys)

    def materialize(self) -> Collection:
        """Build a new container holding the remaining keys.

        Sets, frozen sets and tuples keep their family, anything else
        becomes a list.
        """
        if issubclass(self._original_type, frozenset):
            return frozenset(self._keys)
        if issubclass(self._original_type, Set):
            return set(self._keys)
        if issubclass(self._original_type, tuple):
            return tuple(self._keys)
        return list(self._keys)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"CandidateKeySet(position={self._position!r}, keys={self._keys!r})"


class BatchCacheCoordinator:
    """Runs the bulk caching algorithms for intercepted invocations.

    Args:
        cache_manager: Default cache manager. Ignored when a
            ``cache_resolver`` is given.
        cache_resolver: Default cache resolver.
        key_generator: Default key generator.
        evaluator: Evaluator for key, condition and unless expressions.
        key_generators: Key generators a declaration can refer to by name.
        cache_managers: Cache managers a declaration can refer to by name.
        cache_resolvers: Cache resolvers a declaration can refer to by name.
        config: Configuration; used to build the default in-memory cache
            manager when neither manager nor resolver is given, and for
            global declaration defaults.

    Example:
        >>> coordinator = BatchCacheCoordinator.from_config(
        ...     CachingConfig.from_yaml("bulkcache.yml")
        ... )
    """

    def __init__(
        self,
        cache_manager: Optional[CacheManager] = None,
        cache_resolver: Optional[CacheResolver] = None,
        key_generator: Optional[KeyGenerator] = None,
        evaluator: Optional[ConditionEvaluator] = None,
        key_generators: Optional[Dict[str, KeyGenerator]] = None,
        cache_managers: Optional[Dict[str, CacheManager]] = None,
        cache_resolvers: Optional[Dict[str, CacheResolver]] = None,
        config: Optional[CachingConfig] = None,
    ):
        self._config = config or CachingConfig()
        if cache_manager is None and cache_resolver is None:
            cache_manager = InMemoryCacheManager(
                self._config.cache_names,
                dynamic=self._config.dynamic_caches,
                allow_none_values=self._config.allow_none_values,
            )
        self._cache_manager = cache_manager
        self._cache_resolver = cache_resolver or SimpleCacheResolver(cache_manager)
        self._key_generator = key_generator or SimpleKeyGenerator()
        self._evaluator = evaluator or ExpressionEvaluator()
        self._key_generators: Dict[str, KeyGenerator] = dict(key_generators or {})
        self._cache_managers: Dict[str, CacheManager] = dict(cache_managers or {})
        self._cache_resolvers: Dict[str, CacheResolver] = dict(cache_resolvers or {})
        self._metadata_cache: Dict[tuple, OperationMetadata] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: CachingConfig, **kwargs) -> "BatchCacheCoordinator":
        """Create a coordinator from a :class:`CachingConfig`."""
        return cls(config=config, **kwargs)

    @property
    def config(self) -> CachingConfig:
        return self._config

    @property
    def cache_manager(self) -> Optional[CacheManager]:
        """Get the default cache manager, if any."""
        return self._cache_manager

    @property
    def cache_resolver(self) -> CacheResolver:
        return self._cache_resolver

    @property
    def key_generator(self) -> KeyGenerator:
        return self._key_generator

    @property
    def evaluator(self) -> ConditionEvaluator:
        return self._evaluator

    def register_key_generator(self, name: str, key_generator: KeyGenerator) -> None:
        with self._lock:
            self._key_generators[name] = key_generator
            self._metadata_cache.clear()

    def register_cache_manager(self, name: str, cache_manager: CacheManager) -> None:
        with self._lock:
            self._cache_managers[name] = cache_manager
            self._metadata_cache.clear()

    def register_cache_resolver(self, name: str, cache_resolver: CacheResolver) -> None:
        with self._lock:
            self._cache_resolvers[name] = cache_resolver
            self._metadata_cache.clear()

    # Declaration decorators bound to this coordinator.

    def collection_cacheable(self, cache_names=None, **attributes):
        """Declare a bulk read-through method. See :mod:`bulkcache.annotations`."""
        return annotations.collection_cacheable(cache_names, coordinator=self, **attributes)

    def collection_cache_put(self, cache_names=None, **attributes):
        """Declare a bulk write-through method. See :mod:`bulkcache.annotations`."""
        return annotations.collection_cache_put(cache_names, coordinator=self, **attributes)

    def collection_cache_evict(self, cache_names=None, **attributes):
        """Declare a bulk evict method. See :mod:`bulkcache.annotations`."""
        return annotations.collection_cache_evict(cache_names, coordinator=self, **attributes)

    # Metadata

    def get_operation_metadata(
        self,
        declaration: OperationDeclaration,
        method: Any,
        target_class: Optional[type],
    ) -> OperationMetadata:
        """Resolve the collaborators of a declaration, memoized per method."""
        cache_key = (declaration, method, target_class)
        metadata = self._metadata_cache.get(cache_key)
        if metadata is not None:
            return metadata

        with self._lock:
            metadata = OperationMetadata(
                declaration,
                method,
                target_class,
                self._resolve_key_generator(declaration),
                self._resolve_cache_resolver(declaration),
            )
            self._metadata_cache[cache_key] = metadata
        return metadata

    def _resolve_key_generator(self, declaration: OperationDeclaration) -> KeyGenerator:
        if not declaration.key_generator:
            return self._key_generator
        key_generator = self._key_generators.get(declaration.key_generator)
        if key_generator is None:
            raise ConfigurationException(
                f"No key generator named '{declaration.key_generator}' "
                f"for {declaration.description}"
            )
        return key_generator

    def _resolve_cache_resolver(self, declaration: OperationDeclaration) -> CacheResolver:
        if declaration.cache_resolver:
            resolver = self._cache_resolvers.get(declaration.cache_resolver)
            if resolver is None:
                raise ConfigurationException(
                    f"No cache resolver named '{declaration.cache_resolver}' "
                    f"for {declaration.description}"
                )
            return resolver
        if declaration.cache_manager:
            manager = self._cache_managers.get(declaration.cache_manager)
            if manager is None:
                raise ConfigurationException(
                    f"No cache manager named '{declaration.cache_manager}' "
                    f"for {declaration.description}"
                )
            return SimpleCacheResolver(manager)
        return self._cache_resolver

    def _create_context(
        self, declaration: OperationDeclaration, invocation: Invocation
    ) -> OperationContext:
        metadata = self.get_operation_metadata(
            declaration, invocation.method, invocation.target_class
        )
        return OperationContext(metadata, invocation.target, self._evaluator)

    # Dispatch

    @staticmethod
    def select_operation(
        declarations: Optional[Sequence[OperationDeclaration]],
    ) -> Optional[OperationDeclaration]:
        """Pick the first declaration of the first applicable kind."""
        if not declarations:
            return None
        for kind in _DISPATCH_ORDER:
            for declaration in declarations:
                if declaration.kind is kind:
                    return declaration
        return None

    def execute(
        self,
        declarations: Optional[Sequence[OperationDeclaration]],
        invocation: Invocation,
    ) -> Any:
        """Run the bulk algorithm matching the declarations.

        Args:
            declarations: The bulk declarations attached to the method.
            invocation: The intercepted call.

        Returns:
            A mapping for bulk reads, the method's result otherwise.

        Raises:
            ConfigurationException: If the invocation does not have exactly
                one collection argument where one is needed.
            TypeMismatchException: If the method returns the wrong shape.
        """
        declaration = self.select_operation(declarations)
        if declaration is None:
            return invocation.proceed()

        declaration = declaration.with_defaults(self._config.defaults)
        context = self._create_context(declaration, invocation)

        if declaration.kind is BulkOperationKind.READ:
            if declaration.is_find_all:
                return self._process_find_all(context, invocation)
            return self._process_cacheable(context, invocation)
        if declaration.kind is BulkOperationKind.WRITE:
            return self._process_cache_put(context, invocation)
        return self._process_cache_evict(context, invocation)

    # Algorithms

    def _process_cacheable(self, context: OperationContext, invocation: Invocation) -> Mapping:
        candidates = CandidateKeySet.extract(invocation)
        if not context.is_eligible_by_condition(candidates.materialize()):
            _logger.debug(
                "Condition not passing for %s, bypassing caches",
                context.declaration.name,
            )
            return self._invoke_for_mapping(invocation)

        result: Dict[Any, Any] = {}
        for element in candidates:
            key = context.generate_key(element)
            cache_hit = self._find_in_caches(context, key)
            if cache_hit is not None:
                result[element] = cache_hit.value
                candidates.remove(element)

        if len(candidates):
            _logger.debug(
                "%d of %d keys missed for %s",
                len(candidates),
                len(candidates) + len(result),
                context.declaration.name,
            )
            invocation.set_argument(candidates.position, candidates.materialize())
            uncached_result = self._invoke_for_mapping(invocation)
            result.update(uncached_result)
            self._put_mapping_to_cache(uncached_result, context)
        return result

    def _process_find_all(self, context: OperationContext, invocation: Invocation) -> Mapping:
        uncached_result = self._invoke_for_mapping(invocation)
        self._put_mapping_to_cache(uncached_result, context)
        return uncached_result

    def _process_cache_put(self, context: OperationContext, invocation: Invocation) -> Any:
        # The condition is not applied on the write-through path.
        result = invocation.proceed()
        if not is_key_collection(result):
            raise TypeMismatchException(
                "Expecting result of invocation to be a collection, got "
                f"{type(result).__name__}",
                expected="collection",
                actual=type(result),
            )
        for element in result:
            key = context.generate_key(element)
            for cache in context.caches:
                _logger.debug("Putting key '%s' into cache '%s'", key, cache.name)
                cache.put(key, element)
        return result

    def _process_cache_evict(self, context: OperationContext, invocation: Invocation) -> Any:
        candidates = CandidateKeySet.extract(invocation)
        if not context.is_eligible_by_condition(candidates.materialize()):
            _logger.debug(
                "Condition not passing for %s, skipping eviction",
                context.declaration.name,
            )
            return invocation.proceed()

        for element in candidates:
            key = context.generate_key(element)
            for cache in context.caches:
                _logger.debug("Evicting key '%s' from cache '%s'", key, cache.name)
                cache.evict(key)
        return invocation.proceed()

    # Helpers

    @staticmethod
    def _invoke_for_mapping(invocation: Invocation) -> Mapping:
        result = invocation.proceed()
        if isinstance(result, Mapping):
            return result
        raise TypeMismatchException(
            "Expecting result of invocation to be a mapping, got "
            f"{type(result).__name__}",
            expected="mapping",
            actual=type(result),
        )

    @staticmethod
    def _find_in_caches(context: OperationContext, key: Any) -> Optional[CacheValue]:
        for cache in context.caches:
            wrapper = cache.get(key)
            if wrapper is not None:
                _logger.debug("Cache entry for key '%s' found in cache '%s'", key, cache.name)
                return wrapper
        _logger.debug(
            "No cache entry for key '%s' in caches %s",
            key,
            context.declaration.cache_names,
        )
        return None

    @staticmethod
    def _put_mapping_to_cache(uncached_result: Mapping, context: OperationContext) -> None:
        if not context.is_eligible_to_cache(uncached_result):
            _logger.debug("Result of %s vetoed by 'unless'", context.declaration.name)
            return
        for element, value in uncached_result.items():
            key = context.generate_key(element)
            for cache in context.caches:
                cache.put(key, value)

    def __repr__(self) -> str:
        return (
            f"BatchCacheCoordinator(cache_resolver={self._cache_resolver!r}, "
            f"evaluator={type(self._evaluator).__name__})"
        )
