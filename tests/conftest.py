"""Shared pytest fixtures for bulkcache tests."""

import pytest
from unittest.mock import MagicMock

from bulkcache.config import CachingConfig
from bulkcache.expression import ExpressionEvaluator
from bulkcache.interceptor import BatchCacheCoordinator
from bulkcache.operation import BulkOperationKind, OperationDeclaration
from bulkcache.store import InMemoryCacheManager


@pytest.fixture
def default_config():
    """Create a default CachingConfig."""
    return CachingConfig()


@pytest.fixture
def cache_manager():
    """Create a static cache manager with two caches."""
    return InMemoryCacheManager(["myCache", "otherCache"], dynamic=False)


@pytest.fixture
def my_cache(cache_manager):
    return cache_manager.get_cache("myCache")


@pytest.fixture
def other_cache(cache_manager):
    return cache_manager.get_cache("otherCache")


@pytest.fixture
def evaluator():
    return ExpressionEvaluator()


@pytest.fixture
def coordinator(cache_manager):
    """Create a coordinator backed by the static cache manager."""
    return BatchCacheCoordinator(cache_manager)


@pytest.fixture
def read_declaration():
    return OperationDeclaration(
        BulkOperationKind.READ, name="find_by_ids", cache_names=["myCache"]
    )


@pytest.fixture
def data():
    return {1: "a", 2: "b", 3: "c", 4: "d"}


@pytest.fixture
def find_by_ids(data):
    """A bulk source function recording its calls."""
    source = MagicMock(side_effect=lambda ids: {i: data[i] for i in ids if i in data})

    def find_by_ids(ids):
        return source(ids)

    find_by_ids.source = source
    return find_by_ids
