"""
typedyaml - typed YAML serialization for Python

Converts typed Python values (dataclasses, enums, typing hints) to YAML text
and back, without hand written parsers, and offers an owned Value Tree for
working with YAML whose shape is not known in advance.

Key features:
- Core schema implicit typing, shared by reading and writing
- Anchors and aliases (expanded to independent copies), merge keys (<<)
- Duplicate mapping keys are an error, never last-value-wins
- Nesting and alias expansion are bounded; hostile input fails cleanly
- Shortest round-trip float formatting (0.1 stays 0.1)
- Explicit formatting options, optional ruamel.yaml pretty backend

Example:
    >>> import typedyaml
    >>> doc = typedyaml.loads("name: Alice\\nage: 30\\n")
    >>> doc["age"]
    Number(30)
    >>> typedyaml.dumps({'name': 'Alice', 'tags': ['a', 'b']})
    'name: Alice\\ntags:\\n  - a\\n  - b\\n'

    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class User:
    ...     name: str
    ...     age: int = 0
    >>> typedyaml.loads("name: Bob\\n", User)
    User(name='Bob', age=0)
"""

import io
import os

from typedyaml.error import (
    ErrorKind,
    Mark,
    YAMLError,
    YAMLSyntaxError,
    UnexpectedEventError,
    UnknownAnchorError,
    DuplicateKeyError,
    InvalidTagError,
    RecursionLimitError,
    InvalidMergeError,
    CustomError,
    NumberOverflowWarning,
)
from typedyaml.value import (
    Value,
    Null,
    Bool,
    Number,
    String,
    Sequence,
    Mapping,
    Tagged,
    from_python,
)
from typedyaml.policy import FormatOptions, DEFAULT_OPTIONS, resolve_options
from typedyaml.shapes import variant
from typedyaml.de import Deserializer, DEFAULT_RECURSION_LIMIT, deserialize_document
from typedyaml.ser import EventSerializer, ValueSerializer, to_value
from typedyaml import loader
from typedyaml import pretty
from typedyaml import ser


__version__ = '0.1.0'


def loads(stream, shape=Value, *, recursion_limit=DEFAULT_RECURSION_LIMIT, name='<string>'):
    """
    Deserialize a single YAML document.

    Args:
        stream: YAML text as str or bytes (bytes are decoded by BOM, UTF-8
            by default)
        shape: What to build: ``Value`` (default), ``typing.Any`` for plain
            Python data, or any supported type hint
        recursion_limit: Maximum nesting depth, counting alias expansions
        name: Stream name used in error messages

    Returns:
        The deserialized value. An empty stream reads as null.

    Raises:
        YAMLError: On malformed input or a shape mismatch. A stream with more
            than one document raises UnexpectedEventError; use loads_all().
    """
    documents = loader.parse(stream, name, recursion_limit)
    if not documents:
        documents = [loader.empty_document(name)]
    elif len(documents) > 1:
        raise UnexpectedEventError(
            problem="deserializing from YAML containing more than one document is not supported",
            problem_mark=documents[1].mark(0))
    return deserialize_document(documents[0], shape, recursion_limit)


def loads_all(stream, shape=Value, *, recursion_limit=DEFAULT_RECURSION_LIMIT, name='<string>'):
    """
    Deserialize every document of a YAML stream.

    Returns:
        A list with one value per document, in stream order. An empty stream
        gives an empty list.
    """
    return [deserialize_document(document, shape, recursion_limit)
            for document in loader.parse(stream, name, recursion_limit)]


def _read(fp):
    if isinstance(fp, (str, os.PathLike)):
        with open(fp, 'rb') as f:
            return f.read(), os.fspath(fp)
    return fp.read(), getattr(fp, 'name', '<file>')


def load(fp, shape=Value, **kwargs):
    """Deserialize a single document from a path or a file-like object."""
    data, name = _read(fp)
    kwargs.setdefault('name', name)
    return loads(data, shape, **kwargs)


def load_all(fp, shape=Value, **kwargs):
    """Deserialize all documents from a path or a file-like object."""
    data, name = _read(fp)
    kwargs.setdefault('name', name)
    return loads_all(data, shape, **kwargs)


def dumps_all(objs, shape=None, *, options=None, **overrides):
    """
    Serialize several values as a multi-document YAML stream.

    Args:
        objs: Iterable of values
        shape: Optional type hint applied to every value
        options: FormatOptions; keyword overrides such as ``indent=4`` are
            applied on top

    Returns:
        YAML text. No values give an empty string.
    """
    options = resolve_options(options, **overrides)
    objs = list(objs)
    if options.pretty:
        return pretty.render([to_value(obj, shape) for obj in objs], options)
    return ser.serialize_all(objs, options, shape)


def dumps(obj, shape=None, *, options=None, **overrides):
    """
    Serialize a value to a YAML string.

    Args:
        obj: A Value, plain Python data, a dataclass, an enum member, ...
        shape: Optional type hint guiding the serialization
        options: FormatOptions; keyword overrides such as ``indent=4`` are
            applied on top

    Returns:
        YAML formatted string
    """
    return dumps_all([obj], shape, options=options, **overrides)


def _write(text, fp):
    if isinstance(fp, (str, os.PathLike)):
        with open(fp, 'w', encoding='utf-8') as f:
            f.write(text)
    elif isinstance(fp, (io.RawIOBase, io.BufferedIOBase)) or 'b' in getattr(fp, 'mode', ''):
        fp.write(text.encode('utf-8'))
    else:
        fp.write(text)


def dump(obj, fp, shape=None, **kwargs):
    """Serialize a value and write it to a path or file-like object."""
    _write(dumps(obj, shape, **kwargs), fp)


def dump_all(objs, fp, shape=None, **kwargs):
    """Serialize several documents and write them to a path or file-like object."""
    _write(dumps_all(objs, shape, **kwargs), fp)


def from_value(value, shape):
    """
    Deserialize a Value Tree into ``shape``.

    Uses the same rules as reading text: the tree is replayed as parser
    events through the deserializer.
    """
    if not isinstance(value, Value):
        value = from_python(value)
    options = DEFAULT_OPTIONS.replace(emit_anchors=False)
    document = loader.Document('<value>', '')
    document.events = ser.document_events(value, options)
    return deserialize_document(document, shape)


__all__ = [
    # API
    'loads', 'loads_all', 'load', 'load_all',
    'dumps', 'dumps_all', 'dump', 'dump_all',
    'to_value', 'from_value', 'from_python',
    'variant', 'FormatOptions',
    'Deserializer', 'EventSerializer', 'ValueSerializer',
    # Value Tree
    'Value', 'Null', 'Bool', 'Number', 'String', 'Sequence', 'Mapping', 'Tagged',
    # errors
    'ErrorKind', 'Mark', 'YAMLError', 'YAMLSyntaxError', 'UnexpectedEventError',
    'UnknownAnchorError', 'DuplicateKeyError', 'InvalidTagError',
    'RecursionLimitError', 'InvalidMergeError', 'CustomError',
    'NumberOverflowWarning',
]
