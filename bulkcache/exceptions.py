"""bulkcache exceptions.

This module defines the exception hierarchy for bulkcache. All exceptions
inherit from :class:`BulkCacheException`.

Errors raised by the underlying method or by a cache store are never
wrapped: they reach the caller unchanged.

Example:
    Handling bulkcache exceptions::

        from bulkcache.exceptions import (
            BulkCacheException,
            ConfigurationException,
            TypeMismatchException,
        )

        try:
            users = repository.find_by_ids([1, 2, 3])
        except ConfigurationException:
            print("Method is not declared correctly")
        except TypeMismatchException:
            print("Method returned the wrong shape")
        except BulkCacheException as e:
            print(f"bulkcache error: {e}")
"""


class BulkCacheException(Exception):
    """Base class for all bulkcache exceptions.

    Args:
        message: The error message describing the exception.
        cause: The underlying exception that caused this error, if any.

    Attributes:
        cause: The underlying cause of this exception, if any.
    """

    def __init__(self, message: str = "", cause: Exception = None):
        super().__init__(message)
        self.cause = cause


class IllegalStateException(BulkCacheException):
    """Raised when an operation is invoked on an illegal state.

    Example:
        - Calling ``proceed()`` twice on the same invocation
        - Resolving caches for a declaration without cache names
        - Using a closed cache manager
    """
    pass


class IllegalArgumentException(BulkCacheException):
    """Raised when an illegal or inappropriate argument is passed.

    Example:
        - Referring to a cache name the cache manager does not know
        - Storing ``None`` in a cache that does not allow it
    """
    pass


class ConfigurationException(BulkCacheException):
    """Raised when a declaration or configuration is malformed.

    Always fatal and never retried. Raised at declaration time where
    possible, otherwise on the first invocation.

    Example:
        - Both ``cache_manager`` and ``cache_resolver`` set
        - A ``condition`` on a find-all declaration
        - Zero or more than one collection argument at call time
        - Unknown key generator, cache manager or cache resolver name
    """
    pass


class TypeMismatchException(BulkCacheException):
    """Raised when the underlying method returns the wrong shape.

    A bulk read must return a mapping, a bulk write must return a
    collection of values.

    Args:
        message: The error message.
        expected: Name of the expected shape.
        actual: The type that was actually returned.
    """

    def __init__(self, message: str, expected: str = "", actual: type = None):
        super().__init__(message)
        self._expected = expected
        self._actual = actual

    @property
    def expected(self) -> str:
        """Get the name of the expected result shape."""
        return self._expected

    @property
    def actual(self) -> type:
        """Get the type the method actually returned."""
        return self._actual


class ExpressionEvaluationException(BulkCacheException):
    """Raised when a key, condition or unless expression cannot be evaluated.

    Args:
        message: The error message.
        expression: The expression that failed.
        cause: The error raised while evaluating it.
    """

    def __init__(self, message: str, expression=None, cause: Exception = None):
        super().__init__(message, cause)
        self.expression = expression


class VariableNotAvailableException(ExpressionEvaluationException):
    """Raised when an expression refers to a variable that is not bound yet.

    The typical case is a ``condition`` that refers to ``result``: conditions
    run before the method is invoked, so there is no result to see.

    Args:
        name: The name of the unavailable variable.
    """

    def __init__(self, name: str, expression=None):
        super().__init__(
            f"Variable '{name}' is not available in this context", expression
        )
        self._name = name

    @property
    def name(self) -> str:
        """Get the name of the unavailable variable."""
        return self._name
