"""The intercepted method call."""

import inspect
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from bulkcache.exceptions import IllegalStateException

ArgumentPosition = Union[int, str]


class Invocation:
    """A call of a cached method that has been intercepted.

    The invocation keeps its own copy of the positional and keyword
    arguments, so the coordinator can substitute the collection argument
    without touching what the caller passed. :meth:`proceed` performs the
    real work with the current arguments and may be called only once.

    Args:
        method: The invoked function.
        target: The instance the method is invoked on, or ``None`` for a
            plain function.
        args: Positional arguments, excluding the target.
        kwargs: Keyword arguments.
        invoker: Callable performing the real call with
            ``(*args, **kwargs)``. Defaults to calling ``method``, with the
            target prepended when there is one.

    Example:
        >>> invocation = Invocation(repo.find_by_ids, args=([1, 2],))
        >>> invocation.proceed()
        {1: 'a', 2: 'b'}
    """

    def __init__(
        self,
        method: Callable,
        target: Any = None,
        args: Iterable[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        invoker: Optional[Callable[..., Any]] = None,
    ):
        self._method = method
        self._target = target
        self._arguments: List[Any] = list(args)
        self._kwargs: Dict[str, Any] = dict(kwargs or {})
        self._invoker = invoker
        self._proceeded = False

    @property
    def method(self) -> Callable:
        return self._method

    @property
    def target(self) -> Any:
        return self._target

    @property
    def target_class(self) -> Optional[type]:
        """Get the class the method runs on; the target itself for a classmethod."""
        if self._target is None:
            return None
        if isinstance(self._target, type):
            return self._target
        return type(self._target)

    @property
    def arguments(self) -> List[Any]:
        """Get a copy of the current positional arguments."""
        return list(self._arguments)

    @property
    def keyword_arguments(self) -> Dict[str, Any]:
        """Get a copy of the current keyword arguments."""
        return dict(self._kwargs)

    @property
    def has_proceeded(self) -> bool:
        return self._proceeded

    def get_argument(self, position: ArgumentPosition) -> Any:
        if isinstance(position, int):
            return self._arguments[position]
        return self._kwargs[position]

    def set_argument(self, position: ArgumentPosition, value: Any) -> None:
        """Replace an argument before :meth:`proceed` is called.

        Args:
            position: Index of a positional argument or name of a keyword one.
            value: The new value.
        """
        if self._proceeded:
            raise IllegalStateException("Cannot change arguments after proceeding")
        if isinstance(position, int):
            self._arguments[position] = value
        else:
            self._kwargs[position] = value

    def proceed(self) -> Any:
        """Perform the real call.

        Raises:
            IllegalStateException: If the invocation already proceeded.
        """
        if self._proceeded:
            raise IllegalStateException(
                f"Invocation of '{self._describe()}' already proceeded"
            )
        self._proceeded = True
        if self._invoker is not None:
            return self._invoker(*self._arguments, **self._kwargs)
        if self._target is not None and not inspect.ismethod(self._method):
            return self._method(self._target, *self._arguments, **self._kwargs)
        return self._method(*self._arguments, **self._kwargs)

    def _describe(self) -> str:
        return getattr(self._method, "__qualname__", repr(self._method))

    def __repr__(self) -> str:
        return (
            f"Invocation(method={self._describe()!r}, args={self._arguments!r}, "
            f"kwargs={self._kwargs!r})"
        )
