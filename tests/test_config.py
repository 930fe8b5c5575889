"""Unit tests for bulkcache.config module."""

import os
import tempfile

import pytest

from bulkcache.config import CacheDefaults, CachingConfig
from bulkcache.exceptions import ConfigurationException


class TestCacheDefaults:
    """Tests for CacheDefaults."""

    def test_default_values(self):
        defaults = CacheDefaults()
        assert defaults.cache_names == ()
        assert defaults.key_generator is None
        assert defaults.cache_manager is None
        assert defaults.cache_resolver is None
        assert defaults.is_empty

    def test_single_name(self):
        assert CacheDefaults(cache_names="users").cache_names == ("users",)

    def test_names_deduplicated_in_order(self):
        defaults = CacheDefaults(cache_names=["b", "a", "b"])
        assert defaults.cache_names == ("b", "a")

    def test_invalid_name(self):
        with pytest.raises(ConfigurationException):
            CacheDefaults(cache_names=["ok", ""])

    def test_blank_text_is_unset(self):
        defaults = CacheDefaults(key_generator="  ")
        assert defaults.key_generator is None

    def test_non_string_collaborator(self):
        with pytest.raises(ConfigurationException):
            CacheDefaults(cache_manager=42)

    def test_setters(self):
        defaults = CacheDefaults()
        defaults.cache_resolver = "resolver"
        assert defaults.cache_resolver == "resolver"
        assert not defaults.is_empty

    def test_from_dict(self):
        defaults = CacheDefaults.from_dict(
            {"cache_names": ["users"], "key_generator": "custom"}
        )
        assert defaults.cache_names == ("users",)
        assert defaults.key_generator == "custom"

    def test_from_dict_not_mapping(self):
        with pytest.raises(ConfigurationException):
            CacheDefaults.from_dict(["users"])


class TestCachingConfig:
    """Tests for CachingConfig."""

    def test_default_values(self, default_config):
        assert default_config.cache_names == []
        assert default_config.dynamic_caches is True
        assert default_config.allow_none_values is True
        assert default_config.defaults.is_empty

    def test_invalid_dynamic_caches(self, default_config):
        with pytest.raises(ConfigurationException) as exc_info:
            default_config.dynamic_caches = "yes"
        assert "dynamic_caches must be a boolean" in str(exc_info.value)

    def test_invalid_allow_none_values(self, default_config):
        with pytest.raises(ConfigurationException):
            default_config.allow_none_values = 1

    def test_from_dict(self):
        config = CachingConfig.from_dict(
            {
                "cache_names": ["users", "orders"],
                "dynamic_caches": False,
                "allow_none_values": False,
                "defaults": {"cache_names": "users"},
            }
        )
        assert config.cache_names == ["users", "orders"]
        assert config.dynamic_caches is False
        assert config.allow_none_values is False
        assert config.defaults.cache_names == ("users",)

    def test_from_dict_static_without_names(self):
        with pytest.raises(ConfigurationException) as exc_info:
            CachingConfig.from_dict({"dynamic_caches": False})
        assert "cache_names cannot be empty" in str(exc_info.value)

    def test_from_dict_not_mapping(self):
        with pytest.raises(ConfigurationException):
            CachingConfig.from_dict("users")

    def test_from_dict_null_defaults(self):
        config = CachingConfig.from_dict({"defaults": None})
        assert config.defaults.is_empty


class TestCachingConfigYaml:
    def test_from_yaml_string(self):
        yaml_content = """
bulkcache:
  cache_names:
    - users
  defaults:
    cache_names: users
    key_generator: custom
"""
        config = CachingConfig.from_yaml_string(yaml_content)
        assert config.cache_names == ["users"]
        assert config.defaults.key_generator == "custom"

    def test_from_yaml_string_without_section(self):
        config = CachingConfig.from_yaml_string("dynamic_caches: true\n")
        assert config.dynamic_caches is True

    def test_from_yaml_string_empty(self):
        config = CachingConfig.from_yaml_string("")
        assert config.cache_names == []

    def test_from_yaml_string_invalid(self):
        with pytest.raises(ConfigurationException) as exc_info:
            CachingConfig.from_yaml_string("cache_names: [unclosed")
        assert "Failed to parse YAML" in str(exc_info.value)
        assert exc_info.value.cause is not None

    def test_from_yaml_file(self):
        with tempfile.NamedTemporaryFile(
            "w", suffix=".yml", delete=False, encoding="utf-8"
        ) as f:
            f.write("bulkcache:\n  cache_names: [orders]\n  dynamic_caches: false\n")
            path = f.name
        try:
            config = CachingConfig.from_yaml(path)
            assert config.cache_names == ["orders"]
            assert config.dynamic_caches is False
        finally:
            os.unlink(path)

    def test_from_yaml_missing_file(self):
        with pytest.raises(ConfigurationException) as exc_info:
            CachingConfig.from_yaml("/nonexistent/bulkcache.yml")
        assert "Configuration file not found" in str(exc_info.value)
