"""bulkcache: batch-aware read-through and write-through caching."""

from bulkcache.config import CacheDefaults, CachingConfig
from bulkcache.exceptions import (
    BulkCacheException,
    IllegalStateException,
    IllegalArgumentException,
    ConfigurationException,
    TypeMismatchException,
    ExpressionEvaluationException,
    VariableNotAvailableException,
)
from bulkcache.operation import BulkOperationKind, OperationDeclaration
from bulkcache.key import KeyGenerator, SimpleKey, SimpleKeyGenerator
from bulkcache.store import (
    Cache,
    CacheValue,
    CacheStats,
    InMemoryCache,
    CacheManager,
    InMemoryCacheManager,
    CacheResolver,
    SimpleCacheResolver,
)
from bulkcache.expression import (
    NO_RESULT,
    EvaluationContext,
    ConditionEvaluator,
    ExpressionEvaluator,
)
from bulkcache.context import OperationContext, OperationMetadata
from bulkcache.invocation import Invocation
from bulkcache.interceptor import BatchCacheCoordinator, CandidateKeySet
from bulkcache.annotations import (
    cache_config,
    collection_cacheable,
    collection_cache_put,
    collection_cache_evict,
    get_declarations,
)

__all__ = [
    # Configuration
    "CacheDefaults",
    "CachingConfig",
    # Exceptions
    "BulkCacheException",
    "IllegalStateException",
    "IllegalArgumentException",
    "ConfigurationException",
    "TypeMismatchException",
    "ExpressionEvaluationException",
    "VariableNotAvailableException",
    # Declarations
    "BulkOperationKind",
    "OperationDeclaration",
    # Keys
    "KeyGenerator",
    "SimpleKey",
    "SimpleKeyGenerator",
    # Stores
    "Cache",
    "CacheValue",
    "CacheStats",
    "InMemoryCache",
    "CacheManager",
    "InMemoryCacheManager",
    "CacheResolver",
    "SimpleCacheResolver",
    # Expressions
    "NO_RESULT",
    "EvaluationContext",
    "ConditionEvaluator",
    "ExpressionEvaluator",
    # Coordination
    "OperationContext",
    "OperationMetadata",
    "Invocation",
    "BatchCacheCoordinator",
    "CandidateKeySet",
    # Decorators
    "cache_config",
    "collection_cacheable",
    "collection_cache_put",
    "collection_cache_evict",
    "get_declarations",
]

__version__ = "0.1.0"
