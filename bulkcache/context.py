"""Per-invocation operation context.

A bulk declaration is written as if it dealt with a single element: its
key expression computes the key of *one* element and its condition looks at
*one* argument. :class:`OperationContext` lets the coordinator evaluate
those expressions once per element of a batch by binding each element in
turn to a single slot, without re-resolving caches or metadata.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Tuple

from bulkcache.expression import NO_RESULT, ConditionEvaluator, EvaluationContext
from bulkcache.key import KeyGenerator
from bulkcache.operation import OperationDeclaration
from bulkcache.store import Cache, CacheResolver

_UNBOUND = object()


class OperationMetadata:
    """A declaration resolved against the method and class it applies to.

    Args:
        declaration: The declaration, defaults already applied.
        method: The declaring method.
        target_class: The class of the instances the method runs on.
        key_generator: The key generator to use.
        cache_resolver: The cache resolver to use.
    """

    __slots__ = ("declaration", "method", "target_class", "key_generator", "cache_resolver")

    def __init__(
        self,
        declaration: OperationDeclaration,
        method: Callable,
        target_class: Optional[type],
        key_generator: KeyGenerator,
        cache_resolver: CacheResolver,
    ):
        self.declaration = declaration
        self.method = method
        self.target_class = target_class
        self.key_generator = key_generator
        self.cache_resolver = cache_resolver


class _ElementSlot:
    """Holds the element currently being keyed or evaluated."""

    __slots__ = ("_value",)

    def __init__(self):
        self._value = _UNBOUND

    def as_args(self) -> Tuple[Any, ...]:
        if self._value is _UNBOUND:
            return ()
        return (self._value,)

    @contextmanager
    def bound(self, element: Any) -> Iterator[None]:
        self._value = element
        try:
            yield
        finally:
            self._value = _UNBOUND


class OperationContext:
    """Binds one operation and one target to a single-element slot.

    Args:
        metadata: The resolved operation metadata.
        target: The instance the method is invoked on.
        evaluator: Evaluator for key, condition and unless expressions.
    """

    def __init__(
        self,
        metadata: OperationMetadata,
        target: Any,
        evaluator: ConditionEvaluator,
    ):
        self._metadata = metadata
        self._target = target
        self._evaluator = evaluator
        self._slot = _ElementSlot()
        self._caches: List[Cache] = []
        self._caches = metadata.cache_resolver.resolve_caches(self)

    @property
    def declaration(self) -> OperationDeclaration:
        return self._metadata.declaration

    @property
    def metadata(self) -> OperationMetadata:
        return self._metadata

    @property
    def method(self) -> Callable:
        return self._metadata.method

    @property
    def target(self) -> Any:
        return self._target

    @property
    def caches(self) -> List[Cache]:
        """Get the resolved caches, in declaration order."""
        return list(self._caches)

    def resolve_caches(self) -> List[Cache]:
        return self.caches

    def _evaluation_context(self, result: Any) -> EvaluationContext:
        return EvaluationContext(
            method=self._metadata.method,
            target=self._target,
            args=self._slot.as_args(),
            caches=self._caches,
            result=result,
            target_class=self._metadata.target_class,
        )

    def generate_key(self, element: Any) -> Any:
        """Compute the cache key of a single element.

        The element is visible to a key expression both as the single
        argument and as ``result``, so ``result.id`` works for keys derived
        from returned values as well as from requested ones.
        """
        declaration = self._metadata.declaration
        with self._slot.bound(element):
            if declaration.key is not None:
                return self._evaluator.evaluate(
                    declaration.key, self._evaluation_context(element)
                )
            return self._metadata.key_generator.generate(
                self._target, self._metadata.method, element
            )

    def is_eligible_by_condition(self, candidate: Any) -> bool:
        """Evaluate the condition with ``candidate`` as the single argument.

        No result is available to the condition. Without a condition the
        candidate is always eligible.
        """
        condition = self._metadata.declaration.condition
        if condition is None:
            return True
        with self._slot.bound(candidate):
            return bool(
                self._evaluator.evaluate(condition, self._evaluation_context(NO_RESULT))
            )

    def is_eligible_to_cache(self, result: Any) -> bool:
        """Check that the ``unless`` expression does not veto ``result``.

        The whole result is not tied to one element, so the single argument
        is bound to ``None`` while ``unless`` runs.
        """
        unless = self._metadata.declaration.unless
        if unless is None:
            return True
        with self._slot.bound(None):
            return not bool(
                self._evaluator.evaluate(unless, self._evaluation_context(result))
            )

    def __repr__(self) -> str:
        return f"OperationContext({self._metadata.declaration.description})"
