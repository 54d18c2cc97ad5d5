"""Tests for plain scalar resolution and number formatting."""

import math

import pytest
from typedyaml import resolver
from typedyaml import number
from typedyaml.error import NumberOverflowWarning
from typedyaml.resolver import NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, STR_TAG


class TestResolve:
    """Test core schema implicit typing."""

    @pytest.mark.parametrize('text', ['', '~', 'null', 'Null', 'NULL'])
    def test_null(self, text):
        assert resolver.resolve(text) == NULL_TAG

    @pytest.mark.parametrize('text', ['true', 'True', 'TRUE', 'false', 'False', 'FALSE'])
    def test_bool(self, text):
        assert resolver.resolve(text) == BOOL_TAG

    @pytest.mark.parametrize('text', ['0', '42', '-7', '+3', '0x1F', '0o17'])
    def test_int(self, text):
        assert resolver.resolve(text) == INT_TAG

    @pytest.mark.parametrize('text', ['0.1', '-1.5', '1e10', '1e+20', '.5', '.inf', '-.Inf', '.nan'])
    def test_float(self, text):
        assert resolver.resolve(text) == FLOAT_TAG

    @pytest.mark.parametrize('text', ['yes', 'no', 'on', '0123', '1_000', 'hello', 'tRue', 'nULL'])
    def test_string(self, text):
        """YAML 1.1 words and odd casings stay strings."""
        assert resolver.resolve(text) == STR_TAG

    @pytest.mark.parametrize('text', ['yes', 'off', '0755', '1_000', '12:30', '2001-12-14', '1.0', 'null'])
    def test_ambiguous(self, text):
        """Texts some reader would not take as a string."""
        assert resolver.is_ambiguous(text)

    @pytest.mark.parametrize('text', ['hello', 'a1', 'v1.2.3'])
    def test_not_ambiguous(self, text):
        assert not resolver.is_ambiguous(text)

    def test_custom_resolver(self):
        """Subclasses can add resolvers without touching the base table."""
        import re

        class Custom(resolver.Resolver):
            pass

        Custom.add_implicit_resolver('!color', re.compile(r'^#[0-9a-f]{6}$'), ['#'])
        assert Custom().resolve('#ff0000') == '!color'
        assert resolver.Resolver().resolve('#ff0000') == STR_TAG


class TestFormat:
    """Test number formatting."""

    def test_shortest_float(self):
        """Floats use the shortest round-trip text."""
        assert number.format_float(0.1) == '0.1'
        assert float(number.format_float(0.1)) == 0.1
        assert number.format_float(1.0) == '1.0'

    def test_special_floats(self):
        assert number.format_float(math.inf) == '.inf'
        assert number.format_float(-math.inf) == '-.inf'
        assert number.format_float(math.nan) == '.nan'

    def test_float_text_never_int(self):
        """Formatted floats always resolve as floats."""
        for value in (1.0, 1e20, 1e-7, -0.0, 123456789.0):
            assert resolver.resolve(number.format_float(value)) == FLOAT_TAG

    def test_format_int(self):
        assert number.format_int(-42) == '-42'
        with pytest.raises(TypeError):
            number.format_int(True)


class TestParse:
    """Test number parsing and the overflow fallback."""

    def test_parse_int_forms(self):
        assert number.parse_int('0x1F') == 31
        assert number.parse_int('0o17') == 15
        assert number.parse_int('-12') == -12
        assert number.parse_int('abc') is None

    @pytest.mark.parametrize('text', ['0x-5', '0x+5', '0x1_0', '0o+7', '0b 1', '1_000', '0x', '-', ''])
    def test_parse_int_rejects_loose_digits(self, text):
        """Only plain digits of the base follow the prefix."""
        assert number.parse_int(text) is None

    def test_parse_int_signs_before_prefix(self):
        assert number.parse_int('-0x10') == -16
        assert number.parse_int('+0b101') == 5

    def test_parse_float_forms(self):
        assert number.parse_float('.inf') == math.inf
        assert number.parse_float('-.inf') == -math.inf
        assert math.isnan(number.parse_float('.nan'))
        assert number.parse_float('inf') is None
        assert number.parse_float('1_0.0') is None

    def test_u64_max_fits(self):
        assert number.parse_number('18446744073709551615') == 2 ** 64 - 1

    def test_overflow_falls_back_to_float(self):
        """Integers wider than 64 bits read as floats with a warning."""
        with pytest.warns(NumberOverflowWarning):
            value = number.parse_number('18446744073709551616')
        assert isinstance(value, float)
        assert value == float(2 ** 64)

    def test_negative_overflow(self):
        with pytest.warns(NumberOverflowWarning):
            value = number.parse_number('-9223372036854775809')
        assert isinstance(value, float)

    def test_huge_overflow_is_infinite(self):
        with pytest.warns(NumberOverflowWarning):
            value = number.parse_number('9' * 400)
        assert value == math.inf

    def test_not_a_number(self):
        assert number.parse_number('hello') is None
