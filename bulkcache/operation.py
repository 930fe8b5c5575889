"""Bulk cache operation declarations.

An :class:`OperationDeclaration` describes one bulk caching behaviour
attached to a method: which caches it touches, how a single element is
turned into a cache key, and the ``condition``/``unless`` expressions that
gate it. Declarations are immutable and validated on construction.

Example:
    >>> op = OperationDeclaration(
    ...     BulkOperationKind.READ,
    ...     cache_names=["users"],
    ...     key="user.id",
    ...     unless="len(result) > 100",
    ... )
    >>> op.cache_names
    ('users',)
"""

from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from bulkcache.config import CacheDefaults, _normalize_names, _optional_text
from bulkcache.exceptions import ConfigurationException


Expression = Union[str, Any]


class BulkOperationKind(Enum):
    """The three bulk caching semantics."""
    READ = "READ"
    WRITE = "WRITE"
    EVICT = "EVICT"


def _has_text(expression: Optional[Expression]) -> bool:
    if expression is None:
        return False
    if isinstance(expression, str):
        return bool(expression.strip())
    return True


def _normalize_expression(expression: Optional[Expression], field_name: str):
    if expression is None:
        return None
    if isinstance(expression, str):
        return expression.strip() or None
    if callable(expression):
        return expression
    raise ConfigurationException(
        f"{field_name} must be an expression string or a callable"
    )


class OperationDeclaration:
    """Immutable descriptor of one declared bulk operation.

    Args:
        kind: The bulk semantics of the operation.
        name: A description of the declaring method, used in messages.
        cache_names: Ordered names of the caches to use.
        key: Expression computing the key of a single element. When not
            set, the key generator decides (by default the element itself).
        key_generator: Name of a registered key generator.
        cache_manager: Name of a registered cache manager.
        cache_resolver: Name of a registered cache resolver.
        condition: Expression gating the whole batch before invocation.
        unless: Expression vetoing storage of the invocation result.
        is_find_all: Whether the method takes no key argument at all.

    Raises:
        ConfigurationException: If mutually exclusive attributes are combined.
    """

    __slots__ = (
        "_kind",
        "_name",
        "_cache_names",
        "_key",
        "_key_generator",
        "_cache_manager",
        "_cache_resolver",
        "_condition",
        "_unless",
        "_is_find_all",
    )

    def __init__(
        self,
        kind: BulkOperationKind,
        name: str = "",
        cache_names: Optional[Iterable[str]] = None,
        key: Optional[Expression] = None,
        key_generator: Optional[str] = None,
        cache_manager: Optional[str] = None,
        cache_resolver: Optional[str] = None,
        condition: Optional[Expression] = None,
        unless: Optional[Expression] = None,
        is_find_all: bool = False,
    ):
        if not isinstance(kind, BulkOperationKind):
            raise ConfigurationException(f"Invalid operation kind: {kind!r}")
        self._kind = kind
        self._name = name or ""
        self._cache_names = _normalize_names(cache_names)
        self._key = _normalize_expression(key, "key")
        self._key_generator = _optional_text(key_generator, "key_generator")
        self._cache_manager = _optional_text(cache_manager, "cache_manager")
        self._cache_resolver = _optional_text(cache_resolver, "cache_resolver")
        self._condition = _normalize_expression(condition, "condition")
        self._unless = _normalize_expression(unless, "unless")
        self._is_find_all = bool(is_find_all)
        self._validate()

    def _validate(self) -> None:
        if self._cache_manager and self._cache_resolver:
            raise ConfigurationException(
                f"Invalid cache declaration on '{self._name}'. Both "
                "'cache_manager' and 'cache_resolver' attributes have been set. "
                "These attributes are mutually exclusive: the cache manager is "
                "used to configure a default cache resolver if none is set."
            )
        if _has_text(self._key) and self._key_generator:
            raise ConfigurationException(
                f"Invalid cache declaration on '{self._name}'. Both 'key' and "
                "'key_generator' attributes have been set. These attributes "
                "are mutually exclusive."
            )
        if self._is_find_all and _has_text(self._condition):
            raise ConfigurationException(
                f"Invalid cache declaration on '{self._name}'. Cannot use "
                "'condition' on 'find_all'-like methods."
            )
        if self._is_find_all and self._kind is BulkOperationKind.EVICT:
            raise ConfigurationException(
                f"Invalid cache declaration on '{self._name}'. Bulk eviction "
                "needs a collection of keys."
            )

    @property
    def kind(self) -> BulkOperationKind:
        """Get the bulk semantics of this operation."""
        return self._kind

    @property
    def name(self) -> str:
        """Get the description of the declaring method."""
        return self._name

    @property
    def cache_names(self) -> Tuple[str, ...]:
        """Get the ordered cache names."""
        return self._cache_names

    @property
    def key(self) -> Optional[Expression]:
        return self._key

    @property
    def key_generator(self) -> Optional[str]:
        return self._key_generator

    @property
    def cache_manager(self) -> Optional[str]:
        return self._cache_manager

    @property
    def cache_resolver(self) -> Optional[str]:
        return self._cache_resolver

    @property
    def condition(self) -> Optional[Expression]:
        return self._condition

    @property
    def unless(self) -> Optional[Expression]:
        return self._unless

    @property
    def is_find_all(self) -> bool:
        """Check whether the operation materializes the whole source."""
        return self._is_find_all

    def replace(self, **changes) -> "OperationDeclaration":
        """Return a copy of this declaration with some attributes changed."""
        values = {
            "kind": self._kind,
            "name": self._name,
            "cache_names": self._cache_names,
            "key": self._key,
            "key_generator": self._key_generator,
            "cache_manager": self._cache_manager,
            "cache_resolver": self._cache_resolver,
            "condition": self._condition,
            "unless": self._unless,
            "is_find_all": self._is_find_all,
        }
        values.update(changes)
        return OperationDeclaration(**values)

    def with_defaults(self, defaults: Optional[CacheDefaults]) -> "OperationDeclaration":
        """Apply shared defaults to the attributes this declaration leaves unset.

        Cache names are inherited only when none are declared. The key
        generator is inherited only when neither a key nor a key generator
        is declared. A cache resolver or manager is inherited only when
        neither is declared, the resolver taking precedence.

        Args:
            defaults: The defaults to apply, or ``None``.

        Returns:
            This declaration if nothing changes, otherwise a new one.
        """
        if defaults is None or defaults.is_empty:
            return self

        changes = {}
        if not self._cache_names and defaults.cache_names:
            changes["cache_names"] = defaults.cache_names
        if (
            not _has_text(self._key)
            and not self._key_generator
            and defaults.key_generator
        ):
            changes["key_generator"] = defaults.key_generator
        if not self._cache_manager and not self._cache_resolver:
            if defaults.cache_resolver:
                changes["cache_resolver"] = defaults.cache_resolver
            elif defaults.cache_manager:
                changes["cache_manager"] = defaults.cache_manager

        if not changes:
            return self
        return self.replace(**changes)

    @classmethod
    def from_dict(cls, kind: BulkOperationKind, data: dict) -> "OperationDeclaration":
        """Create an OperationDeclaration from a dictionary."""
        if isinstance(kind, str):
            try:
                kind = BulkOperationKind(kind.upper())
            except ValueError:
                raise ConfigurationException(f"Invalid operation kind: {kind}")
        return cls(
            kind,
            name=data.get("name", ""),
            cache_names=data.get("cache_names"),
            key=data.get("key"),
            key_generator=data.get("key_generator"),
            cache_manager=data.get("cache_manager"),
            cache_resolver=data.get("cache_resolver"),
            condition=data.get("condition"),
            unless=data.get("unless"),
            is_find_all=data.get("is_find_all", False),
        )

    @property
    def description(self) -> str:
        """Get a human readable description of the operation."""
        parts = [
            f"{self._kind.value}[{self._name}]",
            f"caches={list(self._cache_names)}",
            f"key='{self._key or ''}'",
            f"key_generator='{self._key_generator or ''}'",
            f"cache_manager='{self._cache_manager or ''}'",
            f"cache_resolver='{self._cache_resolver or ''}'",
            f"condition='{self._condition or ''}'",
            f"unless='{self._unless or ''}'",
            f"is_find_all='{self._is_find_all}'",
        ]
        return " | ".join(parts)

    def _identity(self) -> tuple:
        return (
            self._kind,
            self._name,
            self._cache_names,
            self._key,
            self._key_generator,
            self._cache_manager,
            self._cache_resolver,
            self._condition,
            self._unless,
            self._is_find_all,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, OperationDeclaration):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __repr__(self) -> str:
        return f"OperationDeclaration({self.description})"
