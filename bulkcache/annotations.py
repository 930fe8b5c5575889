"""Declaration decorators for bulk cached methods.

Decorating a method both declares its bulk operation and routes its calls
through a :class:`bulkcache.interceptor.BatchCacheCoordinator`. Signatures
are validated when the decorator is applied, so a malformed declaration
fails at import time rather than on the first call.

Example:
    Declaring a repository::

        coordinator = BatchCacheCoordinator()

        @cache_config(cache_names=["users"])
        class UserRepository:

            @coordinator.collection_cacheable(key="result.id")
            def find_by_ids(self, ids: Collection[UserId]) -> Dict[UserId, User]:
                return self._db.load_many(ids)

            @coordinator.collection_cacheable()
            def find_all(self) -> Dict[UserId, User]:
                return self._db.load_all()

            @coordinator.collection_cache_put(key="result.id")
            def save_all(self, users: List[User]) -> List[User]:
                return self._db.save_many(users)

            @coordinator.collection_cache_evict()
            def delete_all(self, ids: Collection[UserId]) -> None:
                self._db.delete_many(ids)
"""

import functools
import inspect
import threading
import typing
from collections.abc import Collection, Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from bulkcache.config import CacheDefaults
from bulkcache.exceptions import ConfigurationException
from bulkcache.invocation import Invocation
from bulkcache.logging import get_logger
from bulkcache.operation import BulkOperationKind, OperationDeclaration


_logger = get_logger("annotations")

BULK_OPERATIONS_ATTR = "__bulk_cache_operations__"
CACHE_DEFAULTS_ATTR = "__bulk_cache_defaults__"

_RECEIVER_NAMES = ("self", "cls")


def cache_config(
    cache_names: Optional[Iterable[str]] = None,
    key_generator: Optional[str] = None,
    cache_manager: Optional[str] = None,
    cache_resolver: Optional[str] = None,
):
    """Class decorator sharing declaration defaults between methods.

    Defaults are applied lazily on the first call of each decorated method,
    and only to the attributes a declaration leaves unset.
    """
    defaults = CacheDefaults(
        cache_names=cache_names,
        key_generator=key_generator,
        cache_manager=cache_manager,
        cache_resolver=cache_resolver,
    )

    def decorator(cls):
        setattr(cls, CACHE_DEFAULTS_ATTR, defaults)
        return cls

    return decorator


def get_declarations(func: Callable) -> List[OperationDeclaration]:
    """Get the bulk declarations attached to a decorated function."""
    return list(getattr(func, BULK_OPERATIONS_ATTR, ()))


def _describe(func: Callable) -> str:
    module = getattr(func, "__module__", None) or ""
    qualname = getattr(func, "__qualname__", None) or repr(func)
    return f"{module}.{qualname}" if module else qualname


def _is_method(func: Callable) -> bool:
    params = list(inspect.signature(func).parameters)
    return bool(params) and params[0] in _RECEIVER_NAMES


def _owner_of(target: Any) -> Optional[type]:
    if target is None:
        return None
    return target if isinstance(target, type) else type(target)


def _annotation_class(annotation: Any) -> Optional[type]:
    if annotation is inspect.Parameter.empty or annotation is typing.Any:
        return None
    if isinstance(annotation, str):
        return None
    origin = typing.get_origin(annotation) or annotation
    return origin if isinstance(origin, type) else None


class CollectionCacheAnnotationParser:
    """Validates decorated signatures and builds declarations."""

    def key_parameters(self, func: Callable) -> List[inspect.Parameter]:
        params = list(inspect.signature(func).parameters.values())
        if params and params[0].name in _RECEIVER_NAMES:
            params = params[1:]
        return params

    def is_find_all(self, func: Callable) -> bool:
        return not self.key_parameters(func)

    def parse(
        self, func: Callable, kind: BulkOperationKind, attributes: Dict[str, Any]
    ) -> OperationDeclaration:
        """Build the declaration of a decorated function.

        Raises:
            ConfigurationException: If the signature does not fit ``kind``.
        """
        find_all = self.is_find_all(func)
        if kind is BulkOperationKind.READ:
            self._validate_read_signature(func, find_all)
        elif kind is BulkOperationKind.WRITE:
            self._validate_write_signature(func)
        else:
            self._validate_evict_signature(func, find_all)
            find_all = False

        return OperationDeclaration(
            kind,
            name=_describe(func),
            is_find_all=find_all,
            **attributes,
        )

    def _invalid(self, func: Callable, reason: str) -> ConfigurationException:
        return ConfigurationException(
            f"Invalid bulk cache declaration on '{_describe(func)}'. {reason}"
        )

    def _validate_read_signature(self, func: Callable, find_all: bool) -> None:
        signature = inspect.signature(func)
        return_class = _annotation_class(signature.return_annotation)
        if return_class is not None and not issubclass(return_class, Mapping):
            raise self._invalid(func, "Return type is not a mapping.")
        if find_all:
            return

        params = self.key_parameters(func)
        if len(params) != 1:
            raise self._invalid(func, "Did not find zero or one collection parameter.")
        param_annotation = params[0].annotation
        param_class = _annotation_class(param_annotation)
        if param_class is not None and (
            not issubclass(param_class, Collection)
            or issubclass(param_class, (str, bytes, Mapping))
        ):
            raise self._invalid(func, "The parameter is not a collection.")

        element_args = typing.get_args(param_annotation) if param_class else ()
        mapping_args = (
            typing.get_args(signature.return_annotation) if return_class else ()
        )
        if not element_args or not mapping_args:
            return
        if len(element_args) != 1:
            raise self._invalid(
                func, "Parameterized collection does not have exactly one type argument."
            )
        if len(mapping_args) != 2:
            raise self._invalid(
                func, "Parameterized mapping does not have exactly two type arguments."
            )
        if mapping_args[0] != element_args[0]:
            raise self._invalid(
                func, "The mapping key type should be equal to the collection type."
            )

    def _validate_write_signature(self, func: Callable) -> None:
        return_class = _annotation_class(inspect.signature(func).return_annotation)
        if return_class is not None and (
            not issubclass(return_class, Collection)
            or issubclass(return_class, (str, bytes, Mapping))
        ):
            raise self._invalid(func, "Return type is not a collection.")

    def _validate_evict_signature(self, func: Callable, find_all: bool) -> None:
        if find_all:
            raise self._invalid(func, "Bulk eviction needs a collection parameter.")


_parser = CollectionCacheAnnotationParser()


def _declare(kind: BulkOperationKind, cache_names, coordinator, attributes: Dict[str, Any]):
    if coordinator is None:
        raise ConfigurationException("A coordinator is required to declare bulk caching")
    if cache_names is not None:
        attributes["cache_names"] = cache_names

    def decorator(func: Callable) -> Callable:
        declaration = _parser.parse(func, kind, attributes)
        _logger.debug("Declared %s", declaration.description)

        existing = getattr(func, BULK_OPERATIONS_ATTR, None)
        if existing is not None:
            existing.append(declaration)
            return func

        declarations = [declaration]
        is_method = _is_method(func)
        with_defaults: Dict[Optional[type], Tuple[OperationDeclaration, ...]] = {}
        lock = threading.Lock()

        def resolve(target: Any) -> Tuple[OperationDeclaration, ...]:
            owner = _owner_of(target)
            resolved = with_defaults.get(owner)
            if resolved is None:
                defaults = getattr(owner, CACHE_DEFAULTS_ATTR, None) if owner else None
                resolved = tuple(d.with_defaults(defaults) for d in declarations)
                with lock:
                    with_defaults[owner] = resolved
            return resolved

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if is_method and args:
                target, args = args[0], args[1:]
            else:
                target = None
            invocation = Invocation(func, target, args, kwargs)
            return coordinator.execute(resolve(target), invocation)

        setattr(wrapper, BULK_OPERATIONS_ATTR, declarations)
        return wrapper

    return decorator


def collection_cacheable(cache_names=None, *, coordinator=None, **attributes):
    """Declare a bulk read-through method.

    The method takes exactly one collection of keys and returns a mapping
    from key to value, or takes no argument at all (find-all) and returns
    the mapping of everything.

    Args:
        cache_names: Name or names of the caches to use.
        coordinator: The coordinator handling the calls.
        **attributes: ``key``, ``key_generator``, ``cache_manager``,
            ``cache_resolver``, ``condition``, ``unless``.
    """
    return _declare(BulkOperationKind.READ, cache_names, coordinator, attributes)


def collection_cache_put(cache_names=None, *, coordinator=None, **attributes):
    """Declare a bulk write-through method returning a collection of values."""
    return _declare(BulkOperationKind.WRITE, cache_names, coordinator, attributes)


def collection_cache_evict(cache_names=None, *, coordinator=None, **attributes):
    """Declare a bulk evict method taking one collection of keys."""
    return _declare(BulkOperationKind.EVICT, cache_names, coordinator, attributes)
