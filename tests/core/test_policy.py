"""Tests for FormatOptions and the scalar style policy."""

import pytest
import typedyaml as ty
from typedyaml.policy import FormatOptions, DEFAULT_OPTIONS, resolve_options


class TestOptions:
    """Test construction and validation."""

    def test_defaults(self):
        options = FormatOptions()
        assert options.indent == 2
        assert options.prefer_flow_for_empty is True
        assert options.quote_style_preference == ('plain', 'single', 'double')
        assert options.width is None

    def test_frozen(self):
        with pytest.raises(Exception):
            DEFAULT_OPTIONS.indent = 4

    def test_replace(self):
        options = DEFAULT_OPTIONS.replace(indent=4)
        assert options.indent == 4
        assert DEFAULT_OPTIONS.indent == 2

    @pytest.mark.parametrize('kwargs', [
        {'indent': 1},
        {'indent': 10},
        {'quote_style_preference': ('plain', 'fancy')},
        {'width': 4},
        {'recursion_limit': 0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            FormatOptions(**kwargs)

    def test_preference_list_normalized(self):
        options = FormatOptions(quote_style_preference=['double'])
        assert options.quote_style_preference == ('double',)

    def test_resolve_options(self):
        assert resolve_options() is DEFAULT_OPTIONS
        base = FormatOptions(indent=4)
        assert resolve_options(base) is base
        assert resolve_options(base, flow=True) == FormatOptions(indent=4, flow=True)

    def test_unknown_override(self):
        with pytest.raises(TypeError):
            ty.dumps({}, colour=True)


class TestScalarStyle:
    """Test the quoting precedence plain > single > double."""

    def setup_method(self):
        self.options = FormatOptions()

    @pytest.mark.parametrize('text', ['hello', 'hello world', 'a-b', 'path/to/file', 'v1.2.3'])
    def test_plain(self, text):
        assert self.options.scalar_style(text) is None

    @pytest.mark.parametrize('text', ['123', 'true', 'null', '', ' x', 'x ', 'yes', '---x', '...'])
    def test_single(self, text):
        assert self.options.scalar_style(text) == "'"

    def test_double_for_control_characters(self):
        assert self.options.scalar_style('bell\x07') == '"'

    def test_literal_for_multiline(self):
        assert self.options.scalar_style('a\nb') == '|'
        assert FormatOptions(block_multiline=False).scalar_style('a\nb') == "'"

    def test_blank_multiline_not_literal(self):
        assert self.options.scalar_style('\n\n') == "'"

    def test_preference_order(self):
        options = FormatOptions(quote_style_preference=('double',))
        assert options.scalar_style('hello') == '"'
        options = FormatOptions(quote_style_preference=('single', 'plain'))
        assert options.scalar_style('hello') == "'"

    def test_literal_preference(self):
        options = FormatOptions(block_multiline=False,
                                quote_style_preference=('literal', 'double'))
        assert options.scalar_style('a\nb') == '|'
        assert options.scalar_style('ab') == '"'

    @pytest.mark.parametrize('text, expected', [
        ('hello', True),
        ('123', False),
        ('a\nb', False),
        (' lead', False),
        ('--- doc', False),
        ('off', False),
        ('12:30', False),
    ])
    def test_is_plain_safe(self, text, expected):
        assert self.options.is_plain_safe(text) is expected

    @pytest.mark.parametrize('text', [
        'a: b', 'a:', '#x', 'a #b', '-', '- x', '?', ': x', '@a', '`a', '"', "'q",
        '{', '[x]', '&a', '*a', '!t', '|x', '>x', '%x', 'tab\there', 'x\t',
    ])
    def test_indicators_are_not_plain(self, text):
        assert self.options.is_plain_safe(text) is False

    @pytest.mark.parametrize('text', ['a-b', 'a:b', 'x#y', '-1x', 'it\'s', 'http://host/path'])
    def test_inner_indicators_are_plain(self, text):
        assert self.options.is_plain_safe(text) is True

    @pytest.mark.parametrize('text', ['a,b', 'a[0]', 'what?', 'a:b', 'http://host'])
    def test_flow_context_is_stricter(self, text):
        """Flow collections end a plain scalar at any of ,?[]{}:."""
        assert self.options.is_plain_safe(text, flow=True) is False
        assert self.options.scalar_style(text, flow=True) == "'"

    @pytest.mark.parametrize('text', ['\x85', 'a\x85b', '\u2028', 'a\u2029b', 'a\rb', '\r\n', 'x\n\x85'])
    def test_line_break_characters_are_double_quoted(self, text):
        """NEL, LS, PS and CR are folded by readers unless escaped."""
        assert self.options.scalar_style(text) == '"'
        options = FormatOptions(quote_style_preference=('literal', 'single', 'plain'))
        assert options.scalar_style(text) == '"'

    def test_byte_order_mark_is_double_quoted(self):
        assert self.options.scalar_style('a\ufeffb') == '"'

    def test_lone_surrogate_rejected(self):
        with pytest.raises(ty.CustomError, match='surrogate'):
            self.options.scalar_style('a\ud800')
