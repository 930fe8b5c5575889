"""Unit tests for bulkcache.exceptions module."""

import pytest

from bulkcache.exceptions import (
    BulkCacheException,
    IllegalStateException,
    IllegalArgumentException,
    ConfigurationException,
    TypeMismatchException,
    ExpressionEvaluationException,
    VariableNotAvailableException,
)


class TestBulkCacheException:
    """Tests for the base exception."""

    def test_message(self):
        exc = BulkCacheException("something failed")
        assert str(exc) == "something failed"
        assert exc.cause is None

    def test_with_cause(self):
        cause = ValueError("root cause")
        exc = BulkCacheException("wrapped", cause)
        assert exc.cause is cause

    def test_default_message(self):
        assert str(BulkCacheException()) == ""


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "exc_class",
        [
            IllegalStateException,
            IllegalArgumentException,
            ConfigurationException,
            ExpressionEvaluationException,
        ],
    )
    def test_subclasses(self, exc_class):
        exc = exc_class("message")
        assert isinstance(exc, BulkCacheException)
        assert str(exc) == "message"

    def test_type_mismatch_is_bulkcache_exception(self):
        assert issubclass(TypeMismatchException, BulkCacheException)

    def test_variable_not_available_is_evaluation_error(self):
        assert issubclass(VariableNotAvailableException, ExpressionEvaluationException)


class TestTypeMismatchException:
    def test_attributes(self):
        exc = TypeMismatchException("bad shape", expected="mapping", actual=list)
        assert str(exc) == "bad shape"
        assert exc.expected == "mapping"
        assert exc.actual is list

    def test_defaults(self):
        exc = TypeMismatchException("bad shape")
        assert exc.expected == ""
        assert exc.actual is None


class TestExpressionExceptions:
    def test_evaluation_exception(self):
        cause = NameError("x")
        exc = ExpressionEvaluationException("failed", "x + 1", cause)
        assert exc.expression == "x + 1"
        assert exc.cause is cause

    def test_variable_not_available(self):
        exc = VariableNotAvailableException("result", "len(result)")
        assert exc.name == "result"
        assert exc.expression == "len(result)"
        assert "Variable 'result' is not available" in str(exc)
