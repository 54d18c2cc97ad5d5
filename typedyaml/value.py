"""
The Value Tree: an owned, dynamically typed YAML node.

Values are what :func:`typedyaml.loads` returns when no target type is
given, and what :func:`typedyaml.to_value` produces. They compare
structurally, hash consistently with that comparison, and can therefore be
used as mapping keys (YAML allows sequences and mappings as keys).

Example:
    >>> import typedyaml
    >>> doc = typedyaml.loads("name: Alice\\nports: [80, 443]\\n")
    >>> doc["ports"][1]
    Number(443)
    >>> doc.get("missing") is None
    True
    >>> doc.to_python()
    {'name': 'Alice', 'ports': [80, 443]}
"""

import base64
import collections.abc
import math

from typedyaml.error import DuplicateKeyError, InvalidMergeError
from typedyaml.number import I64_MIN, U64_MAX
from typedyaml.resolver import BINARY_TAG


MERGE_KEY = '<<'


class Value:
    """Base class of all nodes.

    ``anchor`` optionally names the anchor the node was read with, so that a
    tree can be written back with the same ``&anchor`` / ``*alias`` layout.
    It is not part of equality.
    """

    type_name = 'value'

    def __init__(self):
        self.anchor = None

    # -- shape queries (all of them look through tags) ---------------------

    def untag(self):
        node = self
        while isinstance(node, Tagged):
            node = node.value
        return node

    def is_null(self):
        return isinstance(self.untag(), Null)

    def is_bool(self):
        return isinstance(self.untag(), Bool)

    def is_number(self):
        return isinstance(self.untag(), Number)

    def is_int(self):
        node = self.untag()
        return isinstance(node, Number) and not node.is_float

    def is_float(self):
        node = self.untag()
        return isinstance(node, Number) and node.is_float

    def is_string(self):
        return isinstance(self.untag(), String)

    def is_sequence(self):
        return isinstance(self.untag(), Sequence)

    def is_mapping(self):
        return isinstance(self.untag(), Mapping)

    def is_tagged(self):
        return isinstance(self, Tagged)

    def as_null(self):
        return () if self.is_null() else None

    def as_bool(self):
        node = self.untag()
        return node.value if isinstance(node, Bool) else None

    def as_int(self):
        node = self.untag()
        if isinstance(node, Number) and not node.is_float:
            return node.value
        return None

    def as_float(self):
        node = self.untag()
        return float(node.value) if isinstance(node, Number) else None

    def as_str(self):
        node = self.untag()
        return node.value if isinstance(node, String) else None

    def as_sequence(self):
        node = self.untag()
        return node if isinstance(node, Sequence) else None

    def as_mapping(self):
        node = self.untag()
        return node if isinstance(node, Mapping) else None

    def get_tag(self):
        return self.tag if isinstance(self, Tagged) else None

    # -- indexing ------------------------------------------------------------

    def get(self, index, default=None):
        """Index into a sequence or mapping, returning ``default`` on a miss.

        An ``int`` indexes a sequence by position, or a mapping by numeric
        key. Anything else is looked up as a mapping key. Probing a scalar
        is a miss, not an error.
        """
        node = self.untag()
        if isinstance(node, Sequence):
            if isinstance(index, int) and not isinstance(index, bool) \
                    and 0 <= index < len(node.value):
                return node.value[index]
            return default
        if isinstance(node, Mapping):
            try:
                return node.value.get(_key(index), default)
            except KeyError:
                return default
        return default

    def __getitem__(self, index):
        node = self.untag()
        if isinstance(node, Sequence):
            if not isinstance(index, (int, slice)) or isinstance(index, bool):
                raise TypeError("sequence indices must be integers, not %s"
                                % type(index).__name__)
            return node.value[index]
        if isinstance(node, Mapping):
            try:
                return node.value[_key(index)]
            except KeyError:
                raise KeyError(index) from None
        raise TypeError("cannot index into a %s" % node.type_name)

    # -- equality ------------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, Value):
            try:
                other = from_python(other)
            except TypeError:
                return NotImplemented
        return self._equals(other)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return self._hash()

    def _equals(self, other):
        raise NotImplementedError

    def _hash(self):
        raise NotImplementedError

    # -- conversion ------------------------------------------------------------

    def copy(self):
        """Return a deep copy of the tree."""
        duplicate = self._copy()
        duplicate.anchor = self.anchor
        return duplicate

    def to_python(self):
        """Convert to plain Python data (dict, list, str, int, ...)."""
        raise NotImplementedError

    def apply_merge(self):
        """Splice ``<<`` merge keys into their mappings, in place.

        Trees read from text are merged already. This is for trees built
        through the API. Keys present in the mapping win over merged ones, and
        among merged mappings the earlier one wins.
        """
        stack = [self]
        while stack:
            node = stack.pop()
            if isinstance(node, Mapping):
                merge_key = String(MERGE_KEY)
                if merge_key in node.value:
                    merged = node.value.pop(merge_key)
                    if isinstance(merged, Mapping):
                        sources = [merged]
                    elif isinstance(merged, Sequence):
                        sources = []
                        for element in merged.value:
                            if isinstance(element, Mapping):
                                sources.append(element)
                            elif isinstance(element, Sequence):
                                raise InvalidMergeError(
                                    problem="expected a mapping for merging, but found a sequence")
                            elif isinstance(element, Tagged):
                                raise InvalidMergeError(
                                    problem="unexpected tagged value in merge")
                            else:
                                raise InvalidMergeError(
                                    problem="expected a mapping for merging, but found a scalar")
                    elif isinstance(merged, Tagged):
                        raise InvalidMergeError(problem="unexpected tagged value in merge")
                    else:
                        raise InvalidMergeError(
                            problem="expected a mapping or list of mappings for merging, "
                                    "but found a scalar")
                    for source in sources:
                        for key, value in source.value.items():
                            node.value.setdefault(key, value)
                stack.extend(node.value.values())
            elif isinstance(node, Sequence):
                stack.extend(node.value)
            elif isinstance(node, Tagged):
                stack.append(node.value)

    def __repr__(self):
        return '%s(%r)' % (type(self).__name__, self.value)


class Null(Value):
    type_name = 'null'
    value = None

    def _equals(self, other):
        return isinstance(other, Null)

    def _hash(self):
        return hash(None)

    def _copy(self):
        return Null()

    def to_python(self):
        return None

    def __repr__(self):
        return 'Null()'


class Bool(Value):
    type_name = 'boolean'

    def __init__(self, value):
        super().__init__()
        self.value = bool(value)

    def _equals(self, other):
        return isinstance(other, Bool) and self.value == other.value

    def _hash(self):
        return hash(self.value)

    def _copy(self):
        return Bool(self.value)

    def to_python(self):
        return self.value


class Number(Value):
    """An integer or a float.

    The Python type of ``value`` records whether the number was written as an
    integer or as a float. ``Number(1)`` and ``Number(1.0)`` are different
    values, and ``.nan`` is equal to itself.
    """

    type_name = 'number'

    def __init__(self, value):
        super().__init__()
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError("Number expects an int or a float, got %s"
                            % type(value).__name__)
        self.value = value

    @property
    def is_float(self):
        return isinstance(self.value, float)

    def is_i64(self):
        return not self.is_float and I64_MIN <= self.value < (1 << 63)

    def is_u64(self):
        return not self.is_float and 0 <= self.value <= U64_MAX

    def is_f64(self):
        return self.is_float

    def is_nan(self):
        return self.is_float and math.isnan(self.value)

    def _equals(self, other):
        if not isinstance(other, Number) or self.is_float != other.is_float:
            return False
        if self.is_nan():
            return other.is_nan()
        return self.value == other.value

    def _hash(self):
        if self.is_nan():
            return hash('.nan')
        return hash(self.value)

    def _copy(self):
        return Number(self.value)

    def to_python(self):
        return self.value

    def __int__(self):
        return int(self.value)

    def __float__(self):
        return float(self.value)


class String(Value):
    type_name = 'string'

    def __init__(self, value):
        super().__init__()
        if not isinstance(value, str):
            raise TypeError("String expects a str, got %s" % type(value).__name__)
        self.value = value

    def _equals(self, other):
        return isinstance(other, String) and self.value == other.value

    def _hash(self):
        return hash(self.value)

    def _copy(self):
        return String(self.value)

    def to_python(self):
        return self.value

    def __str__(self):
        return self.value


class Sequence(Value):
    type_name = 'sequence'

    def __init__(self, value=None):
        super().__init__()
        self.value = [_coerce(element) for element in (value or ())]

    def append(self, element):
        self.value.append(_coerce(element))

    def __setitem__(self, index, element):
        self.value[index] = _coerce(element)

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def _equals(self, other):
        return isinstance(other, Sequence) and self.value == other.value

    def _hash(self):
        return hash(tuple(self.value))

    def _copy(self):
        duplicate = Sequence()
        duplicate.value = [element.copy() for element in self.value]
        return duplicate

    def to_python(self):
        return [element.to_python() for element in self.value]


class Mapping(Value):
    """Insertion ordered mapping from Value keys to Values.

    Keys are unique by structural equality. :meth:`insert` replaces the value
    of an existing key in place; building a mapping from a dict or from pairs
    refuses duplicates with :class:`DuplicateKeyError`. Plain Python keys are
    accepted wherever a key is expected.
    """

    type_name = 'mapping'

    def __init__(self, value=None):
        super().__init__()
        self.value = {}
        if value:
            items = value.items() if isinstance(value, collections.abc.Mapping) else value
            for key, element in items:
                self._add(key, element)

    @classmethod
    def from_pairs(cls, pairs):
        mapping = cls()
        for key, element in pairs:
            mapping._add(key, element)
        return mapping

    def _add(self, key, element):
        key = _coerce(key)
        if key in self.value:
            raise DuplicateKeyError(problem="duplicate entry with key %s" % _describe(key))
        self.value[key] = _coerce(element)

    def insert(self, key, element):
        """Set ``key`` and return the previous value, or None."""
        key = _coerce(key)
        previous = self.value.get(key)
        self.value[key] = _coerce(element)
        return previous

    def remove(self, key):
        """Remove ``key`` and return its value, or None if it was absent."""
        return self.value.pop(_key(key), None)

    def __setitem__(self, key, element):
        self.insert(key, element)

    def __delitem__(self, key):
        del self.value[_key(key)]

    def __contains__(self, key):
        return _key(key) in self.value

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def keys(self):
        return self.value.keys()

    def values(self):
        return self.value.values()

    def items(self):
        return self.value.items()

    def _equals(self, other):
        if not isinstance(other, Mapping) or len(self.value) != len(other.value):
            return False
        for key, element in self.value.items():
            if key not in other.value or other.value[key] != element:
                return False
        return True

    def _hash(self):
        return hash(frozenset(self.value.items()))

    def _copy(self):
        duplicate = Mapping()
        for key, element in self.value.items():
            duplicate.value[key.copy()] = element.copy()
        return duplicate

    def to_python(self):
        result = {}
        for key, element in self.value.items():
            python_key = key.to_python()
            try:
                hash(python_key)
            except TypeError:
                python_key = key
            result[python_key] = element.to_python()
        return result


class Tagged(Value):
    """A node carrying an explicit, non core schema tag.

    Tags are normalized on construction: a bare name such as ``Point`` is
    stored as the local tag ``!Point``. After that they compare verbatim.
    """

    type_name = 'tagged'

    def __init__(self, tag, value):
        super().__init__()
        if not tag or tag == '!':
            raise ValueError("empty tag")
        if not tag.startswith('!') and ':' not in tag:
            tag = '!' + tag
        self.tag = tag
        self.value = _coerce(value)

    @property
    def name(self):
        """The tag without its leading ``!``."""
        return self.tag[1:] if self.tag.startswith('!') else self.tag

    def _equals(self, other):
        return isinstance(other, Tagged) and self.tag == other.tag and self.value == other.value

    def _hash(self):
        return hash((self.tag, self.value))

    def _copy(self):
        return Tagged(self.tag, self.value.copy())

    def to_python(self):
        if self.tag == BINARY_TAG and isinstance(self.value, String):
            return base64.b64decode(self.value.value)
        return self.value.to_python()

    def __repr__(self):
        return 'Tagged(%r, %r)' % (self.tag, self.value)


def from_python(obj):
    """Build a Value Tree from plain Python data."""
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return Null()
    if isinstance(obj, bool):
        return Bool(obj)
    if isinstance(obj, (int, float)):
        return Number(obj)
    if isinstance(obj, str):
        return String(obj)
    if isinstance(obj, (bytes, bytearray)):
        return Tagged(BINARY_TAG, String(base64.b64encode(bytes(obj)).decode('ascii')))
    if isinstance(obj, collections.abc.Mapping):
        return Mapping.from_pairs(obj.items())
    if isinstance(obj, (list, tuple, set, frozenset)):
        return Sequence(obj)
    raise TypeError("cannot convert %s to a YAML value" % type(obj).__name__)


def _coerce(obj):
    return obj if isinstance(obj, Value) else from_python(obj)


def _key(index):
    try:
        return _coerce(index)
    except TypeError:
        raise KeyError(index) from None


def _describe(key):
    if isinstance(key, String):
        return repr(key.value)
    if isinstance(key, (Null, Bool, Number)):
        return str(key.to_python())
    return key.type_name
