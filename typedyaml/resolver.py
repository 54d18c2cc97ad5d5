"""Implicit typing of plain scalars (YAML 1.2 core schema)."""

import re


NULL_TAG = 'tag:yaml.org,2002:null'
BOOL_TAG = 'tag:yaml.org,2002:bool'
INT_TAG = 'tag:yaml.org,2002:int'
FLOAT_TAG = 'tag:yaml.org,2002:float'
STR_TAG = 'tag:yaml.org,2002:str'
SEQ_TAG = 'tag:yaml.org,2002:seq'
MAP_TAG = 'tag:yaml.org,2002:map'
BINARY_TAG = 'tag:yaml.org,2002:binary'
MERGE_TAG = 'tag:yaml.org,2002:merge'

CORE_SCALAR_TAGS = frozenset([NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, STR_TAG, BINARY_TAG])
CORE_TAGS = CORE_SCALAR_TAGS | frozenset([SEQ_TAG, MAP_TAG])

# Words and forms that YAML 1.1 readers type implicitly although the core
# schema does not. Such strings are quoted on output.
_YAML11_WORDS = frozenset('''
    y Y yes Yes YES n N no No NO on On ON off Off OFF
    = <<
'''.split())

_YAML11_NUMBER = re.compile(r'''^(?:
    [-+]?0[0-7_]+
    |[-+]?0b[0-1_]+
    |[-+]?0[0-9_]+
    |[-+]?(?:0|[1-9][0-9_]*)(?::[0-5]?[0-9])+(?:\.[0-9_]*)?
    |[-+]?[0-9][0-9_]*\.[0-9_]*(?:[eE][-+]?[0-9]+)?
    |[-+]?[0-9][0-9_]*_[0-9_]*
    |[-+]?\.[0-9_]+(?:[eE][-+]?[0-9]+)?
    |[0-9][0-9][0-9][0-9]-[0-9][0-9]?-[0-9][0-9]?.*
)$''', re.X)


class Resolver:
    """Map plain scalar text to a core schema tag.

    Resolvers are kept in a table indexed by the first character of the
    scalar, like PyYAML does, so most strings are rejected after a single
    dictionary lookup.
    """

    yaml_implicit_resolvers = {}

    DEFAULT_SCALAR_TAG = STR_TAG

    @classmethod
    def add_implicit_resolver(cls, tag, regexp, first):
        """Add an implicit resolver."""
        if 'yaml_implicit_resolvers' not in cls.__dict__:
            cls.yaml_implicit_resolvers = {
                key: list(value) for key, value in cls.yaml_implicit_resolvers.items()}
        if first is None:
            first = [None]
        for ch in first:
            cls.yaml_implicit_resolvers.setdefault(ch, []).append((tag, regexp))

    def resolve(self, value):
        """Return the tag a plain scalar with text ``value`` resolves to."""
        if value == '':
            return NULL_TAG
        for tag, regexp in self.yaml_implicit_resolvers.get(value[0], ()):
            if regexp.match(value):
                return tag
        for tag, regexp in self.yaml_implicit_resolvers.get(None, ()):
            if regexp.match(value):
                return tag
        return self.DEFAULT_SCALAR_TAG

    def is_ambiguous(self, value):
        """True if a plain ``value`` could be read as non-string by some reader.

        Covers both the core schema and the YAML 1.1 words and number forms
        (``yes``, ``off``, ``0755``, ``1_000``, ``12:30``, dates) that older
        parsers still type implicitly.
        """
        if self.resolve(value) != STR_TAG:
            return True
        return value in _YAML11_WORDS or bool(_YAML11_NUMBER.match(value))


Resolver.add_implicit_resolver(
    NULL_TAG,
    re.compile(r'^(?:~|null|Null|NULL)$'),
    list('~nN'))

Resolver.add_implicit_resolver(
    BOOL_TAG,
    re.compile(r'^(?:true|True|TRUE|false|False|FALSE)$'),
    list('tTfF'))

# Leading zeros are not an integer: "0123" stays a string.
Resolver.add_implicit_resolver(
    INT_TAG,
    re.compile(r'''^(?:[-+]?(?:0|[1-9][0-9]*)
                    |0o[0-7]+
                    |0x[0-9a-fA-F]+)$''', re.X),
    list('-+0123456789'))

Resolver.add_implicit_resolver(
    FLOAT_TAG,
    re.compile(r'''^(?:[-+]?(?:\.[0-9]+|(?:0|[1-9][0-9]*)(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?
                    |[-+]?\.(?:inf|Inf|INF)
                    |\.(?:nan|NaN|NAN))$''', re.X),
    list('-+.0123456789'))


_resolver = Resolver()


def resolve(value):
    """Module level shortcut for :meth:`Resolver.resolve`."""
    return _resolver.resolve(value)


def is_ambiguous(value):
    return _resolver.is_ambiguous(value)
