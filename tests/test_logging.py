"""Unit tests for bulkcache.logging module."""

import logging

import pytest

from bulkcache.invocation import Invocation
from bulkcache.logging import (
    BULKCACHE_ROOT_LOGGER,
    BulkCacheLoggerFactory,
    configure_logging,
    get_logger,
)
from bulkcache.operation import BulkOperationKind, OperationDeclaration


@pytest.fixture(autouse=True)
def restore_loggers():
    names = [BULKCACHE_ROOT_LOGGER, f"{BULKCACHE_ROOT_LOGGER}.interceptor"]
    saved = {name: (list(logging.getLogger(name).handlers), logging.getLogger(name).level) for name in names}
    logging.getLogger(BULKCACHE_ROOT_LOGGER).handlers = []
    yield
    for name, (handlers, level) in saved.items():
        logger = logging.getLogger(name)
        logger.handlers = handlers
        logger.setLevel(level)


class TestBulkCacheLoggerFactory:
    """Tests for BulkCacheLoggerFactory class."""

    def test_root_logger(self):
        assert BulkCacheLoggerFactory.get_logger().name == "bulkcache"

    def test_component_logger(self):
        assert get_logger("interceptor").name == "bulkcache.interceptor"
        assert get_logger("interceptor").parent is get_logger()

    def test_configure_installs_handler_once(self):
        handler = logging.NullHandler()
        logger = configure_logging(level=logging.WARNING, handler=handler)
        configure_logging(level=logging.WARNING)

        assert logger.handlers == [handler]
        assert logger.level == logging.WARNING
        assert BulkCacheLoggerFactory.is_configured()

    def test_component_levels(self):
        configure_logging(
            handler=logging.NullHandler(),
            component_levels={"interceptor": logging.DEBUG},
        )
        assert get_logger("interceptor").level == logging.DEBUG
        assert get_logger().level == logging.INFO


class TestCoordinatorLogging:
    def test_hit_logged_at_debug(self, caplog, coordinator, my_cache, read_declaration):
        my_cache.put(1, "a")
        with caplog.at_level(logging.DEBUG, logger=BULKCACHE_ROOT_LOGGER):
            coordinator.execute([read_declaration], Invocation(lambda ids: {}, args=([1],)))

        messages = [r.getMessage() for r in caplog.records if r.name == "bulkcache.interceptor"]
        assert "Cache entry for key '1' found in cache 'myCache'" in messages

    def test_skipped_batch_logged(self, caplog, coordinator):
        declaration = OperationDeclaration(
            BulkOperationKind.READ, name="find", cache_names=["myCache"], condition="False"
        )
        with caplog.at_level(logging.DEBUG, logger=BULKCACHE_ROOT_LOGGER):
            coordinator.execute([declaration], Invocation(lambda ids: {}, args=([1],)))

        assert any("bypassing caches" in r.getMessage() for r in caplog.records)
