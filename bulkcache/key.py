"""Cache key generation.

When a declaration has no explicit ``key`` expression, a
:class:`KeyGenerator` turns the element currently being processed into a
cache key. The default :class:`SimpleKeyGenerator` uses the element itself,
so ``find_by_ids([1, 2])`` caches its entries under ``1`` and ``2``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable


class SimpleKey:
    """Hashable composite key made of an ordered sequence of parameters."""

    __slots__ = ("_params", "_hash")

    EMPTY: "SimpleKey"

    def __init__(self, *params: Any):
        self._params = tuple(params)
        self._hash = hash(self._params)

    @property
    def params(self) -> tuple:
        return self._params

    def __eq__(self, other) -> bool:
        if not isinstance(other, SimpleKey):
            return NotImplemented
        return self._params == other._params

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"SimpleKey{list(self._params)!r}"


SimpleKey.EMPTY = SimpleKey()


class KeyGenerator(ABC):
    """Strategy generating a cache key from a method invocation."""

    @abstractmethod
    def generate(self, target: Any, method: Callable, *params: Any) -> Any:
        """Generate a key.

        Args:
            target: The instance the method is invoked on.
            method: The invoked method.
            *params: The parameters to derive the key from. In a bulk
                operation this is the single element being processed.

        Returns:
            A hashable cache key.
        """
        pass


class SimpleKeyGenerator(KeyGenerator):
    """Default key generator.

    - no parameters: :attr:`SimpleKey.EMPTY`
    - one non-``None`` parameter: the parameter itself
    - otherwise: a :class:`SimpleKey` over all parameters
    """

    def generate(self, target: Any, method: Callable, *params: Any) -> Any:
        return self.generate_key(*params)

    @staticmethod
    def generate_key(*params: Any) -> Any:
        if not params:
            return SimpleKey.EMPTY
        if len(params) == 1 and params[0] is not None:
            return params[0]
        return SimpleKey(*params)
