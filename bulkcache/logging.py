"""Loggers for the bulkcache components.

Each module logs through ``get_logger("<component>")``, so a single
component can be tuned with the standard ``logging`` API::

    logging.getLogger("bulkcache.interceptor").setLevel(logging.DEBUG)

Components: ``interceptor`` (hits, misses, skipped batches, puts and
evictions), ``store`` (caches created on demand), ``expression`` (failed
expressions) and ``annotations`` (declared operations). Everything is
logged at DEBUG. No handler is installed until :func:`configure_logging`
is called.
"""

import logging
from typing import Dict, Optional


BULKCACHE_ROOT_LOGGER = "bulkcache"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class BulkCacheLoggerFactory:
    """Creates the component loggers below the ``bulkcache`` logger."""

    _configured: bool = False

    @classmethod
    def get_logger(cls, component: str = "") -> logging.Logger:
        """Get the logger of a component, or the ``bulkcache`` logger."""
        if not component:
            return logging.getLogger(BULKCACHE_ROOT_LOGGER)
        return logging.getLogger(f"{BULKCACHE_ROOT_LOGGER}.{component}")

    @classmethod
    def configure(
        cls,
        level: int = logging.INFO,
        format_string: str = DEFAULT_FORMAT,
        handler: Optional[logging.Handler] = None,
        component_levels: Optional[Dict[str, int]] = None,
    ) -> logging.Logger:
        """Attach a handler to the ``bulkcache`` logger.

        A handler is added only when the logger has none, so calling this
        twice does not duplicate output.

        Args:
            level: Level of the ``bulkcache`` logger.
            format_string: Format of the installed handler.
            handler: Handler to install; a ``StreamHandler`` by default.
            component_levels: Per-component overrides, for instance
                ``{"interceptor": logging.DEBUG}`` to trace cache hits only.

        Returns:
            The ``bulkcache`` logger.
        """
        logger = cls.get_logger()
        logger.setLevel(level)

        if not logger.handlers:
            handler = handler or logging.StreamHandler()
            handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(handler)

        for component, component_level in (component_levels or {}).items():
            cls.get_logger(component).setLevel(component_level)

        cls._configured = True
        return logger

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured


def get_logger(component: str = "") -> logging.Logger:
    """Get the logger of a bulkcache component."""
    return BulkCacheLoggerFactory.get_logger(component)


def configure_logging(
    level: int = logging.INFO,
    format_string: str = DEFAULT_FORMAT,
    handler: Optional[logging.Handler] = None,
    component_levels: Optional[Dict[str, int]] = None,
) -> logging.Logger:
    """Send bulkcache log records to a handler.

    See :meth:`BulkCacheLoggerFactory.configure`.
    """
    return BulkCacheLoggerFactory.configure(level, format_string, handler, component_levels)
