"""Unit tests for bulkcache.key module."""

from bulkcache.key import KeyGenerator, SimpleKey, SimpleKeyGenerator


class TestSimpleKey:
    def test_equality(self):
        assert SimpleKey(1, "a") == SimpleKey(1, "a")
        assert SimpleKey(1, "a") != SimpleKey("a", 1)
        assert hash(SimpleKey(1, "a")) == hash(SimpleKey(1, "a"))

    def test_not_equal_to_tuple(self):
        assert SimpleKey(1, 2) != (1, 2)

    def test_params(self):
        assert SimpleKey(1, 2).params == (1, 2)

    def test_empty(self):
        assert SimpleKey.EMPTY == SimpleKey()
        assert SimpleKey.EMPTY.params == ()

    def test_repr(self):
        assert repr(SimpleKey(1, 2)) == "SimpleKey[1, 2]"


class TestSimpleKeyGenerator:
    def setup_method(self):
        self.generator = SimpleKeyGenerator()

    def test_single_element_is_its_own_key(self):
        assert self.generator.generate(None, len, 42) == 42

    def test_no_params(self):
        assert self.generator.generate(None, len) is SimpleKey.EMPTY

    def test_none_param(self):
        assert self.generator.generate(None, len, None) == SimpleKey(None)

    def test_several_params(self):
        assert SimpleKeyGenerator.generate_key(1, 2) == SimpleKey(1, 2)

    def test_is_key_generator(self):
        assert isinstance(self.generator, KeyGenerator)
