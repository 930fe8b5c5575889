"""bulkcache configuration."""

import os
from typing import Iterable, List, Optional, Tuple

import yaml

from bulkcache.exceptions import ConfigurationException


def _normalize_names(names) -> Tuple[str, ...]:
    """Turn a single name or an iterable of names into an ordered tuple."""
    if names is None:
        return ()
    if isinstance(names, str):
        names = [names]
    result = []
    for name in names:
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationException(f"Invalid cache name: {name!r}")
        if name not in result:
            result.append(name)
    return tuple(result)


def _optional_text(value: Optional[str], field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationException(f"{field_name} must be a string")
    return value.strip() or None


class CacheDefaults:
    """Shared settings applied to declarations that leave them unset.

    Used both for class-level defaults (see
    :func:`bulkcache.annotations.cache_config`) and for the global defaults
    of a :class:`CachingConfig`.
    """

    def __init__(
        self,
        cache_names: Optional[Iterable[str]] = None,
        key_generator: Optional[str] = None,
        cache_manager: Optional[str] = None,
        cache_resolver: Optional[str] = None,
    ):
        self._cache_names = _normalize_names(cache_names)
        self._key_generator = _optional_text(key_generator, "key_generator")
        self._cache_manager = _optional_text(cache_manager, "cache_manager")
        self._cache_resolver = _optional_text(cache_resolver, "cache_resolver")

    @property
    def cache_names(self) -> Tuple[str, ...]:
        """Get the default cache names."""
        return self._cache_names

    @cache_names.setter
    def cache_names(self, value: Iterable[str]) -> None:
        self._cache_names = _normalize_names(value)

    @property
    def key_generator(self) -> Optional[str]:
        """Get the default key generator name."""
        return self._key_generator

    @key_generator.setter
    def key_generator(self, value: Optional[str]) -> None:
        self._key_generator = _optional_text(value, "key_generator")

    @property
    def cache_manager(self) -> Optional[str]:
        """Get the default cache manager name."""
        return self._cache_manager

    @cache_manager.setter
    def cache_manager(self, value: Optional[str]) -> None:
        self._cache_manager = _optional_text(value, "cache_manager")

    @property
    def cache_resolver(self) -> Optional[str]:
        """Get the default cache resolver name."""
        return self._cache_resolver

    @cache_resolver.setter
    def cache_resolver(self, value: Optional[str]) -> None:
        self._cache_resolver = _optional_text(value, "cache_resolver")

    @property
    def is_empty(self) -> bool:
        """Check whether no default is set at all."""
        return not (
            self._cache_names
            or self._key_generator
            or self._cache_manager
            or self._cache_resolver
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CacheDefaults":
        """Create CacheDefaults from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationException("defaults must be a mapping")
        return cls(
            cache_names=data.get("cache_names"),
            key_generator=data.get("key_generator"),
            cache_manager=data.get("cache_manager"),
            cache_resolver=data.get("cache_resolver"),
        )

    def __repr__(self) -> str:
        return (
            f"CacheDefaults(cache_names={list(self._cache_names)!r}, "
            f"key_generator={self._key_generator!r}, "
            f"cache_manager={self._cache_manager!r}, "
            f"cache_resolver={self._cache_resolver!r})"
        )


class CachingConfig:
    """Configuration for a :class:`bulkcache.interceptor.BatchCacheCoordinator`.

    Attributes:
        cache_names: Caches created up front by the default in-memory
            cache manager.
        dynamic_caches: Whether the default cache manager creates unknown
            caches on first use.
        allow_none_values: Whether the default caches accept ``None`` values.
        defaults: Global declaration defaults.

    Example:
        Basic configuration::

            config = CachingConfig()
            config.cache_names = ["users", "orders"]
            config.dynamic_caches = False

        From YAML file::

            config = CachingConfig.from_yaml("bulkcache.yml")
    """

    def __init__(self):
        self._cache_names: Tuple[str, ...] = ()
        self._dynamic_caches: bool = True
        self._allow_none_values: bool = True
        self._defaults: CacheDefaults = CacheDefaults()

    @property
    def cache_names(self) -> List[str]:
        """Get the names of the caches created up front."""
        return list(self._cache_names)

    @cache_names.setter
    def cache_names(self, value: Iterable[str]) -> None:
        self._cache_names = _normalize_names(value)

    @property
    def dynamic_caches(self) -> bool:
        """Get whether unknown caches are created on demand."""
        return self._dynamic_caches

    @dynamic_caches.setter
    def dynamic_caches(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ConfigurationException("dynamic_caches must be a boolean")
        self._dynamic_caches = value

    @property
    def allow_none_values(self) -> bool:
        """Get whether caches accept ``None`` values."""
        return self._allow_none_values

    @allow_none_values.setter
    def allow_none_values(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ConfigurationException("allow_none_values must be a boolean")
        self._allow_none_values = value

    @property
    def defaults(self) -> CacheDefaults:
        """Get the global declaration defaults."""
        return self._defaults

    @defaults.setter
    def defaults(self, value: CacheDefaults) -> None:
        self._defaults = value

    def _validate(self) -> None:
        if not self._dynamic_caches and not self._cache_names:
            raise ConfigurationException(
                "cache_names cannot be empty when dynamic_caches is disabled"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "CachingConfig":
        """Create CachingConfig from a dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationException("Configuration must be a mapping")

        config = cls()

        if "cache_names" in data:
            config.cache_names = data["cache_names"]

        if "dynamic_caches" in data:
            config.dynamic_caches = data["dynamic_caches"]

        if "allow_none_values" in data:
            config.allow_none_values = data["allow_none_values"]

        if "defaults" in data:
            config.defaults = CacheDefaults.from_dict(data["defaults"] or {})

        config._validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "CachingConfig":
        """Load configuration from a YAML file.

        Args:
            yaml_path: Path to the YAML configuration file.

        Returns:
            CachingConfig instance.

        Raises:
            ConfigurationException: If the file cannot be read or parsed.
        """
        if not os.path.exists(yaml_path):
            raise ConfigurationException(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)
        except IOError as e:
            raise ConfigurationException(
                f"Failed to read configuration file: {e}", cause=e
            )

        return cls._from_loaded(data)

    @classmethod
    def from_yaml_string(cls, yaml_content: str) -> "CachingConfig":
        """Load configuration from a YAML string.

        Raises:
            ConfigurationException: If the YAML cannot be parsed.
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationException(f"Failed to parse YAML: {e}", cause=e)

        return cls._from_loaded(data)

    @classmethod
    def _from_loaded(cls, data) -> "CachingConfig":
        if data is None:
            data = {}

        if isinstance(data, dict) and "bulkcache" in data:
            data = data["bulkcache"] or {}

        return cls.from_dict(data)

    def __repr__(self) -> str:
        return (
            f"CachingConfig(cache_names={list(self._cache_names)!r}, "
            f"dynamic_caches={self._dynamic_caches}, "
            f"defaults={self._defaults!r})"
        )
