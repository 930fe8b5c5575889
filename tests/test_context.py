"""Unit tests for bulkcache.context module."""

from unittest.mock import MagicMock

import pytest

from bulkcache.context import OperationContext, OperationMetadata
from bulkcache.exceptions import VariableNotAvailableException
from bulkcache.key import SimpleKeyGenerator
from bulkcache.operation import BulkOperationKind, OperationDeclaration
from bulkcache.store import SimpleCacheResolver


def find_by_ids(ids):
    return {}


def make_context(cache_manager, evaluator, **attributes):
    declaration = OperationDeclaration(
        BulkOperationKind.READ, cache_names=["myCache", "otherCache"], **attributes
    )
    metadata = OperationMetadata(
        declaration,
        find_by_ids,
        None,
        SimpleKeyGenerator(),
        SimpleCacheResolver(cache_manager),
    )
    return OperationContext(metadata, None, evaluator)


class TestOperationContext:
    def test_caches_resolved_in_order(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator)
        assert [c.name for c in context.caches] == ["myCache", "otherCache"]
        assert context.resolve_caches() == context.caches
        assert context.method is find_by_ids
        assert context.target is None

    def test_caches_resolved_once(self, cache_manager, evaluator):
        resolver = MagicMock(wraps=SimpleCacheResolver(cache_manager))
        declaration = OperationDeclaration(BulkOperationKind.READ, cache_names=["myCache"])
        metadata = OperationMetadata(
            declaration, find_by_ids, None, SimpleKeyGenerator(), resolver
        )
        context = OperationContext(metadata, None, evaluator)
        context.caches
        context.caches
        assert resolver.resolve_caches.call_count == 1

    def test_generate_key_default(self, cache_manager, evaluator):
        assert make_context(cache_manager, evaluator).generate_key(7) == 7

    def test_generate_key_with_expression(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, key="('user', result)")
        assert context.generate_key(7) == ("user", 7)

    def test_generate_key_sees_parameter_name(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, key="ids + 1")
        assert context.generate_key(1) == 2

    def test_key_generator_receives_element(self, cache_manager, evaluator):
        generator = MagicMock()
        generator.generate.return_value = "k"
        declaration = OperationDeclaration(BulkOperationKind.READ, cache_names=["myCache"])
        metadata = OperationMetadata(
            declaration, find_by_ids, None, generator, SimpleCacheResolver(cache_manager)
        )
        context = OperationContext(metadata, None, evaluator)
        assert context.generate_key(5) == "k"
        generator.generate.assert_called_once_with(None, find_by_ids, 5)

    def test_condition_absent(self, cache_manager, evaluator):
        assert make_context(cache_manager, evaluator).is_eligible_by_condition([1]) is True

    def test_condition_sees_whole_batch(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, condition="len(ids) < 3")
        assert context.is_eligible_by_condition([1, 2])
        assert not context.is_eligible_by_condition([1, 2, 3])

    def test_condition_cannot_see_result(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, condition="result is None")
        with pytest.raises(VariableNotAvailableException):
            context.is_eligible_by_condition([1])

    def test_unless(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, unless="len(result) > 1")
        assert context.is_eligible_to_cache({1: "a"})
        assert not context.is_eligible_to_cache({1: "a", 2: "b"})

    def test_unless_absent(self, cache_manager, evaluator):
        assert make_context(cache_manager, evaluator).is_eligible_to_cache({}) is True

    def test_unless_sees_argument_as_none(self, cache_manager, evaluator):
        context = make_context(cache_manager, evaluator, unless="p0 is None and ids is None")
        context.generate_key(1)
        assert not context.is_eligible_to_cache({1: "a"})
