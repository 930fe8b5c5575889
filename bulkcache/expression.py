"""Evaluation of key, condition and unless expressions.

Declarations carry expressions either as callables or as short Python
expression strings. Both are evaluated against an :class:`EvaluationContext`
that exposes the invoked method, the target, the arguments and, once known,
the result.

Names visible to string expressions:

- the method's parameter names, bound to the current arguments
- ``p0``/``a0``, ``p1``/``a1``... for positional access
- ``args``, ``method``, ``method_name``, ``target``, ``target_class``,
  ``caches`` and ``root`` (the context itself)
- ``result``, when a result is available

Example:
    >>> evaluator = ExpressionEvaluator()
    >>> ctx = EvaluationContext(method=find_by_ids, args=([1, 2],))
    >>> evaluator.evaluate("len(ids) < 3", ctx)
    True
"""

import dis
import inspect
import threading
from abc import ABC, abstractmethod
from types import CodeType
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence

from bulkcache.exceptions import (
    ExpressionEvaluationException,
    VariableNotAvailableException,
)
from bulkcache.logging import get_logger


_logger = get_logger("expression")


class _NoResult:
    """Marker for "no result available yet"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_RESULT"


NO_RESULT = _NoResult()

_NAME_LOADS = frozenset({"LOAD_NAME", "LOAD_GLOBAL"})


_SAFE_BUILTINS: Dict[str, Any] = {
    "abs": abs,
    "all": all,
    "any": any,
    "bool": bool,
    "dict": dict,
    "frozenset": frozenset,
    "getattr": getattr,
    "hasattr": hasattr,
    "int": int,
    "isinstance": isinstance,
    "len": len,
    "list": list,
    "max": max,
    "min": min,
    "None": None,
    "False": False,
    "True": True,
    "set": set,
    "sorted": sorted,
    "str": str,
    "sum": sum,
    "tuple": tuple,
}


def parameter_names(method: Callable, target: Any = None) -> List[str]:
    """Get the names of the parameters a caller passes to ``method``.

    For a plain function invoked on a target, the leading ``self``/``cls``
    parameter is dropped.
    """
    try:
        params = list(inspect.signature(method).parameters.values())
    except (TypeError, ValueError):
        return []
    if target is not None and not inspect.ismethod(method) and params:
        params = params[1:]
    return [
        p.name
        for p in params
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


class EvaluationContext:
    """The root object an expression is evaluated against.

    Args:
        method: The invoked method.
        target: The instance the method is invoked on.
        args: The arguments visible to the expression.
        caches: The caches the operation works with.
        result: The invocation result, or :data:`NO_RESULT`.
        target_class: The class of the target, defaults to ``type(target)``.
    """

    def __init__(
        self,
        method: Callable,
        target: Any = None,
        args: Sequence[Any] = (),
        caches: Sequence[Any] = (),
        result: Any = NO_RESULT,
        target_class: Optional[type] = None,
    ):
        self.method = method
        self.target = target
        self.args = tuple(args)
        self.caches = tuple(caches)
        self._result = result
        if target_class is None and target is not None:
            target_class = target if isinstance(target, type) else type(target)
        self.target_class = target_class

    @property
    def method_name(self) -> str:
        return getattr(self.method, "__name__", repr(self.method))

    @property
    def has_result(self) -> bool:
        return self._result is not NO_RESULT

    @property
    def result(self) -> Any:
        """Get the result.

        Raises:
            VariableNotAvailableException: If no result is available.
        """
        if self._result is NO_RESULT:
            raise VariableNotAvailableException("result")
        return self._result

    def variables(self) -> "_ContextVariables":
        """Build the name bindings for string expressions."""
        bindings: Dict[str, Any] = {
            "root": self,
            "args": self.args,
            "method": self.method,
            "method_name": self.method_name,
            "target": self.target,
            "target_class": self.target_class,
            "caches": self.caches,
        }
        for index, value in enumerate(self.args):
            bindings[f"p{index}"] = value
            bindings[f"a{index}"] = value
        for name, value in zip(parameter_names(self.method, self.target), self.args):
            bindings[name] = value
        if self.has_result:
            bindings["result"] = self._result
        return _ContextVariables(bindings)

    def __repr__(self) -> str:
        return (
            f"EvaluationContext(method={self.method_name!r}, args={self.args!r}, "
            f"result={self._result!r})"
        )


class _ContextVariables(dict):
    """Expression bindings that report an unavailable ``result`` explicitly."""

    def __missing__(self, name: str) -> Any:
        if name == "result":
            raise VariableNotAvailableException(name)
        raise KeyError(name)


def _referenced_names(code: CodeType) -> FrozenSet[str]:
    """Collect the free names a compiled expression looks up, nested scopes included."""
    names = {
        instruction.argval
        for instruction in dis.get_instructions(code)
        if instruction.opname in _NAME_LOADS
    }
    for const in code.co_consts:
        if isinstance(const, CodeType):
            names |= _referenced_names(const)
    return frozenset(names)


class ConditionEvaluator(ABC):
    """Evaluates declaration expressions against an :class:`EvaluationContext`."""

    @abstractmethod
    def evaluate(self, expression: Any, context: EvaluationContext) -> Any:
        """Evaluate an expression.

        Args:
            expression: The expression as declared.
            context: The context to evaluate against.

        Returns:
            The value of the expression.
        """
        pass


class ExpressionEvaluator(ConditionEvaluator):
    """Default evaluator for callables and restricted Python expressions.

    Callables are invoked with the context. Strings are compiled once and
    evaluated with a small set of builtins; compiled code is shared across
    invocations.
    """

    def __init__(self):
        self._compiled: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _compile(self, expression: str):
        code = self._compiled.get(expression)
        if code is not None:
            return code
        try:
            code = compile(expression, "<bulkcache expression>", "eval")
        except SyntaxError as e:
            raise ExpressionEvaluationException(
                f"Invalid expression '{expression}': {e.msg}", expression, cause=e
            )
        with self._lock:
            self._compiled[expression] = code
        return code

    def evaluate(self, expression: Any, context: EvaluationContext) -> Any:
        if callable(expression):
            try:
                return expression(context)
            except VariableNotAvailableException:
                raise
            except Exception as e:
                raise ExpressionEvaluationException(
                    f"Failed to evaluate {expression!r}: {e}", expression, cause=e
                )

        if not isinstance(expression, str):
            raise ExpressionEvaluationException(
                f"Unsupported expression type: {type(expression).__name__}", expression
            )

        code = self._compile(expression)
        namespace = dict(context.variables())
        if "result" not in namespace and "result" in _referenced_names(code):
            raise VariableNotAvailableException("result", expression)
        # Bindings live in globals so comprehension bodies can see them.
        namespace["__builtins__"] = _SAFE_BUILTINS
        try:
            return eval(code, namespace)
        except Exception as e:
            _logger.debug("Expression '%s' failed against %r: %s", expression, context, e)
            raise ExpressionEvaluationException(
                f"Failed to evaluate '{expression}': {e}", expression, cause=e
            )

    def clear(self) -> None:
        """Drop all compiled expressions."""
        with self._lock:
            self._compiled.clear()
