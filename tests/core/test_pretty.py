"""Tests for the ruamel.yaml pretty backend."""

import math

import pytest
import typedyaml as ty
from typedyaml import Bool, Mapping, Number, Sequence, String, Tagged

pytest.importorskip('ruamel.yaml')


class TestPrettyLayout:
    """Test the layout of pretty output."""

    def test_sequence_under_key(self):
        assert ty.dumps({'a': [1, 2]}, pretty=True) == 'a:\n  - 1\n  - 2\n'

    def test_nested_mapping(self):
        assert ty.dumps({'a': {'b': 'c'}}, pretty=True) == 'a:\n  b: c\n'

    def test_empty_collections(self):
        assert ty.dumps({'a': [], 'b': {}}, pretty=True) == 'a: []\nb: {}\n'

    def test_quoting_follows_policy(self):
        """Both backends quote the same strings the same way."""
        assert ty.dumps({'k': '123'}, pretty=True) == "k: '123'\n"
        assert ty.dumps({'k': 'yes'}, pretty=True) == "k: 'yes'\n"
        assert ty.dumps({'k': 'plain'}, pretty=True) == 'k: plain\n'

    def test_literal_block(self):
        text = ty.dumps({'k': 'one\ntwo\n'}, pretty=True)
        assert text == 'k: |\n  one\n  two\n'

    def test_flow(self):
        text = ty.dumps({'a': [1, 2]}, pretty=True, flow=True)
        assert text.startswith('{')
        assert ty.loads(text) == {'a': [1, 2]}

    def test_explicit_start(self):
        assert ty.dumps({'a': 1}, pretty=True, explicit_start=True).startswith('---')

    def test_multiple_documents(self):
        text = ty.dumps_all([{'a': 1}, {'b': 2}], pretty=True)
        assert text.count('---') == 2
        assert ty.loads_all(text) == [{'a': 1}, {'b': 2}]

    def test_no_documents(self):
        assert ty.dumps_all([], pretty=True) == ''


class TestPrettyRoundTrip:
    """Pretty output reads back as the same tree."""

    @pytest.mark.parametrize('value', [
        {'name': 'svc', 'port': 8080, 'ratio': 0.1, 'on': True, 'off': None},
        {'list': [1, 'two', 3.5, [4, {'five': 5}]]},
        {'quoted': ['123', 'true', '', ' pad', 'a: b', '#x', 'line\nbreak']},
        {'floats': [math.inf, -math.inf, 1e20, 1.0]},
        [{'a': 1}, {'b': [2, 3]}],
    ])
    def test_python_data(self, value):
        assert ty.loads(ty.dumps(value, pretty=True)) == value

    def test_indent(self):
        value = {'a': {'b': [1, {'c': 2}]}}
        text = ty.dumps(value, pretty=True, indent=4)
        assert '    b:' in text
        assert ty.loads(text) == value

    def test_tagged_values(self):
        value = ty.from_python({'p': {'x': 1}, 'q': 5, 'r': '007', 's': ['a']})
        value['p'] = Tagged('!Point', value['p'])
        value['q'] = Tagged('!Id', value['q'])
        value['r'] = Tagged('!Code', value['r'])
        value['s'] = Tagged('!List', value['s'])
        assert ty.loads(ty.dumps(value, pretty=True)) == value

    def test_typed_values(self):
        from dataclasses import dataclass
        from typing import List

        @dataclass
        class Job:
            name: str
            steps: List[str]

        job = Job('build', ['make', 'make test'])
        assert ty.loads(ty.dumps(job, pretty=True), Job) == job

    @pytest.mark.parametrize('flow', [False, True])
    @pytest.mark.parametrize('text', [
        'a: b', '#x', 'a #b', '-', '- x', '?', '@a', '`a', '"', '{', '[x]', 'a,b',
        '&a', '*a', '|', '%x', 'what?', 'http://host', 'plain', '123', '',
    ])
    def test_tagged_strings_with_indicators(self, text, flow):
        """Tagged strings read back as the same text under either layout."""
        value = Mapping([('v', Sequence([Tagged('!t', text)])), ('w', Tagged('!t', text))])
        assert ty.loads(ty.dumps(value, pretty=True, flow=flow)) == value
        assert ty.loads(ty.dumps(Tagged('!t', text), pretty=True)) == Tagged('!t', text)

    @pytest.mark.parametrize('value', ['a\nb', 'x\n\n', 'line\n', ' lead\nx'])
    def test_multiline_at_root(self, value):
        """A multiline string alone in a document still reads back."""
        assert ty.loads(ty.dumps(value, pretty=True)) == value
        tagged = Tagged('!t', value)
        assert ty.loads(ty.dumps(tagged, pretty=True)) == tagged
        assert ty.loads_all(ty.dumps_all([value, value], pretty=True)) == [value, value]

    @pytest.mark.parametrize('value', [
        '\x85', 'a\x85b', '\u2028', 'a\u2029b', 'a\rb', '\r\n', 'x\n\x85', 'a\ufeffb',
    ])
    def test_line_break_characters(self, value):
        """NEL, LS, PS and CR are escaped, never folded."""
        tree = ty.from_python({'k': value, 'seq': [value]})
        tree['t'] = Tagged('!t', value)
        assert ty.loads(ty.dumps(tree, pretty=True)) == tree
        assert ty.loads(ty.dumps(value, pretty=True)) == value

    def test_carriage_return_keys(self):
        tree = ty.from_python({'a\rb': 1, 'a\ufeffb': 2})
        assert ty.loads(ty.dumps(tree, pretty=True)) == tree


class TestPrettyKeys:
    """Mapping keys that Python cannot tell apart."""

    @pytest.mark.parametrize('pairs', [
        [(Number(1), 'int'), (Number(1.0), 'float')],
        [(Number(1), 'int'), (Bool(True), 'bool')],
        [(Number(0), 'int'), (Bool(False), 'bool')],
    ])
    def test_colliding_keys_refused(self, pairs):
        """Entries are never dropped; the pretty backend refuses instead."""
        value = Mapping(pairs)
        with pytest.raises(ty.CustomError, match='same key'):
            ty.dumps(value, pretty=True)
        assert ty.loads(ty.dumps(value)) == value

    def test_distinct_keys_kept(self):
        value = Mapping([(Number(1), 'int'), (String('1'), 'str'), (Bool(False), 'bool')])
        assert ty.loads(ty.dumps(value, pretty=True)) == value
