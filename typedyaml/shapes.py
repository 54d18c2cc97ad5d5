"""Binding of Python types to the data model.

A *shape* is what the caller wants back from the deserializer, written as a
type hint: ``int``, ``list[str]``, ``Optional[Config]``, ``dict[str, Any]``,
a dataclass, an ``enum.Enum`` or a union of ``@variant`` classes. The same
hints, when given, steer the serializer.

Dataclasses are structs. Enum members are unit variants. ``@variant``
dataclasses are enum variants whose payload is their fields::

    @variant
    @dataclass
    class Text:
        value: str          # newtype variant:  Text: hello

    @variant
    @dataclass
    class Point:
        x: int              # struct variant:   Point: {x: 1, y: 2}
        y: int

    Message = Union[Text, Point]

Classes can take over with ``__serialize__(self, serializer)`` and a
classmethod ``__deserialize__(cls, deserializer)``.
"""

import base64
import collections.abc
import dataclasses
import enum
import functools
import types
import typing

from typedyaml import datamodel
from typedyaml.error import YAMLError, CustomError, RecursionLimitError
from typedyaml.resolver import BINARY_TAG
from typedyaml.value import Value, Null, Bool, Number, String, Sequence, Mapping, Tagged


_NoneType = type(None)
_UnionType = getattr(types, 'UnionType', None)

VARIANT_KINDS = ('unit', 'newtype', 'tuple', 'struct')


@dataclasses.dataclass(frozen=True)
class VariantInfo:
    name: str
    kind: str


def variant(cls=None, *, name=None, kind=None):
    """Mark a dataclass as an enum variant.

    ``kind`` defaults to ``unit`` for a class without fields, ``newtype`` for
    one field and ``struct`` otherwise. ``tuple`` must be asked for; its
    payload is a sequence of the field values.
    """
    if kind is not None and kind not in VARIANT_KINDS:
        raise ValueError("unknown variant kind %r" % (kind,))

    def wrap(cls):
        if not dataclasses.is_dataclass(cls):
            cls = dataclasses.dataclass(cls)
        fields = [field for field in dataclasses.fields(cls) if field.init]
        variant_kind = kind
        if variant_kind is None:
            variant_kind = 'unit' if not fields else 'newtype' if len(fields) == 1 else 'struct'
        if variant_kind == 'unit' and fields:
            raise TypeError("unit variant %s cannot have fields" % cls.__name__)
        if variant_kind == 'newtype' and len(fields) != 1:
            raise TypeError("newtype variant %s needs exactly one field" % cls.__name__)
        cls.__variant__ = VariantInfo(name or cls.__name__, variant_kind)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def variant_info(shape):
    info = getattr(shape, '__variant__', None)
    return info if isinstance(info, VariantInfo) else None


@functools.lru_cache(maxsize=None)
def _fields(cls):
    """``[(name, hint, field), ...]`` for the init fields of a dataclass."""
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError):
        hints = {}
    return tuple((field.name, hints.get(field.name, field.type), field)
                 for field in dataclasses.fields(cls) if field.init)


def _is_union(shape):
    origin = typing.get_origin(shape)
    return origin is typing.Union or (_UnionType is not None and origin is _UnionType)


def _is_optional(shape):
    return _is_union(shape) and _NoneType in typing.get_args(shape)


def _is_any(shape):
    return shape is None or shape is typing.Any or shape is object


def _name(shape):
    return getattr(shape, '__name__', None) or str(shape)


# -- visitors -----------------------------------------------------------------

class ValueVisitor(datamodel.Visitor):
    """Builds the Value Tree."""

    expecting = 'any YAML value'

    def visit_none(self):
        return Null()

    def visit_bool(self, value):
        return Bool(value)

    def visit_int(self, value):
        return Number(value)

    def visit_float(self, value):
        return Number(value)

    def visit_str(self, value):
        return String(value)

    def visit_bytes(self, value):
        return Tagged(BINARY_TAG, String(base64.b64encode(value).decode('ascii')))

    def visit_some(self, deserializer):
        return deserializer.deserialize_any(self)

    def visit_seq(self, access):
        elements = []
        while access.has_next():
            elements.append(access.next_element(Value))
        return Sequence(elements)

    def visit_map(self, access):
        pairs = []
        while access.has_next():
            pairs.append(access.next_entry(Value, Value))
        return Mapping.from_pairs(pairs)

    def visit_enum(self, access):
        name, payload = access.variant()
        tag = getattr(access, 'tag', None) or '!' + name
        return Tagged(tag, payload.newtype_variant(Value))


class _NoneVisitor(datamodel.Visitor):
    expecting = 'null'

    def visit_none(self):
        return None


class _BoolVisitor(datamodel.Visitor):
    expecting = 'a boolean'

    def visit_bool(self, value):
        return value


class _IntVisitor(datamodel.Visitor):
    expecting = 'an integer'

    def visit_int(self, value):
        return value


class _FloatVisitor(datamodel.Visitor):
    expecting = 'a float'

    def visit_int(self, value):
        return float(value)

    def visit_float(self, value):
        return value


class _StrVisitor(datamodel.Visitor):
    expecting = 'a string'

    def visit_str(self, value):
        return value


class _BytesVisitor(datamodel.Visitor):
    expecting = 'a !!binary byte array'

    def visit_bytes(self, value):
        return value


class _OptionVisitor(datamodel.Visitor):

    def __init__(self, shape):
        self.shape = shape
        self.expecting = 'an optional %s' % _name(shape)

    def visit_none(self):
        return None

    def visit_some(self, deserializer):
        return deserialize(self.shape, deserializer)


class _SeqVisitor(datamodel.Visitor):

    def __init__(self, element, factory=list):
        self.element = element
        self.factory = factory
        self.expecting = 'a sequence'

    def visit_seq(self, access):
        elements = []
        while access.has_next():
            elements.append(access.next_element(self.element))
        try:
            return self.factory(elements)
        except TypeError as e:
            raise CustomError(problem="cannot build %s: %s" % (_name(self.factory), e)) from None


class _TupleVisitor(datamodel.Visitor):

    def __init__(self, elements):
        self.elements = elements
        self.expecting = 'a tuple of size %d' % len(elements)

    def visit_seq(self, access):
        values = []
        for index, element in enumerate(self.elements):
            if not access.has_next():
                raise datamodel.invalid_length(index, self.expecting)
            values.append(access.next_element(element))
        return tuple(values)


class _DictVisitor(datamodel.Visitor):
    expecting = 'a map'

    def __init__(self, key, value):
        self.key = key
        self.value = value

    def visit_map(self, access):
        result = {}
        while access.has_next():
            if _is_any(self.key):
                node = access.next_key(Value)
                key = node.to_python()
                try:
                    hash(key)
                except TypeError:
                    key = node
            else:
                key = access.next_key(self.key)
                try:
                    hash(key)
                except TypeError:
                    raise CustomError(problem="unhashable mapping key of type %s"
                                      % type(key).__name__) from None
            result[key] = access.next_value(self.value)
        return result


class _StructVisitor(datamodel.Visitor):

    def __init__(self, cls):
        self.cls = cls
        self.expecting = 'struct %s' % cls.__name__

    def visit_map(self, access):
        fields = {name: (hint, field) for name, hint, field in _fields(self.cls)}
        values = {}
        while access.has_next():
            key = access.next_key(str)
            if key not in fields:
                access.skip_value()
                continue
            values[key] = access.next_value(fields[key][0])
        for name, (hint, field) in fields.items():
            if name in values:
                continue
            if field.default is dataclasses.MISSING \
                    and field.default_factory is dataclasses.MISSING:
                if not _is_optional(hint):
                    raise datamodel.missing_field(name)
                values[name] = None
        try:
            return self.cls(**values)
        except (TypeError, ValueError) as e:
            raise CustomError(problem="cannot build %s: %s" % (self.cls.__name__, e)) from None


class _EnumVisitor(datamodel.Visitor):

    def __init__(self, cls):
        self.cls = cls
        self.expecting = 'enum %s' % cls.__name__

    def visit_enum(self, access):
        name, payload = access.variant()
        member = self.cls.__members__.get(name)
        if member is None:
            raise datamodel.unknown_variant(name, list(self.cls.__members__))
        payload.unit_variant()
        return member


class _VariantsVisitor(datamodel.Visitor):

    def __init__(self, classes):
        self.table = {variant_info(cls).name: cls for cls in classes}
        self.expecting = 'one of the variants %s' % ', '.join(self.table)

    def visit_enum(self, access):
        name, payload = access.variant()
        cls = self.table.get(name)
        if cls is None:
            raise datamodel.unknown_variant(name, list(self.table))
        kind = variant_info(cls).kind
        fields = _fields(cls)
        if kind == 'unit':
            payload.unit_variant()
            return cls()
        if kind == 'newtype':
            return cls(payload.newtype_variant(fields[0][1]))
        if kind == 'tuple':
            values = payload.tuple_variant(len(fields), _TupleVisitor([hint for _, hint, _ in fields]))
            return cls(*values)
        return payload.struct_variant([name for name, _, _ in fields], _StructVisitor(cls))


# -- deserialization ------------------------------------------------------------

def deserialize(shape, deserializer):
    """Read one value of ``shape`` from ``deserializer``."""
    if _is_any(shape):
        return deserializer.deserialize_any(ValueVisitor()).to_python()
    if isinstance(shape, type) and issubclass(shape, Value):
        value = deserializer.deserialize_any(ValueVisitor())
        if not isinstance(value, shape):
            raise datamodel.invalid_type(value.type_name, shape.type_name)
        return value
    hook = getattr(shape, '__deserialize__', None)
    if hook is not None:
        return hook(deserializer)

    if _is_union(shape):
        return _deserialize_union(typing.get_args(shape), deserializer)

    origin = typing.get_origin(shape) or shape
    args = typing.get_args(shape)
    if origin is _NoneType:
        return deserializer.deserialize_any(_NoneVisitor())
    if origin is bool:
        return deserializer.deserialize_bool(_BoolVisitor())
    if origin is int:
        return deserializer.deserialize_int(_IntVisitor())
    if origin is float:
        return deserializer.deserialize_float(_FloatVisitor())
    if origin is str:
        return deserializer.deserialize_str(_StrVisitor())
    if origin in (bytes, bytearray):
        return origin(deserializer.deserialize_bytes(_BytesVisitor()))
    if origin in (list, set, frozenset) or origin is collections.abc.Sequence:
        factory = list if origin is collections.abc.Sequence else origin
        return deserializer.deserialize_seq(_SeqVisitor(args[0] if args else None, factory))
    if origin is tuple:
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            return deserializer.deserialize_seq(_SeqVisitor(args[0] if args else None, tuple))
        if args == ((),):
            return deserializer.deserialize_tuple(0, _TupleVisitor([]))
        return deserializer.deserialize_tuple(len(args), _TupleVisitor(list(args)))
    if origin in (dict, collections.abc.Mapping):
        key, value = args if args else (None, None)
        return deserializer.deserialize_map(_DictVisitor(key, value))
    if isinstance(origin, type) and issubclass(origin, enum.Enum):
        return deserializer.deserialize_enum(
            origin.__name__, list(origin.__members__), _EnumVisitor(origin))
    if variant_info(origin) is not None:
        return _deserialize_variants((origin,), deserializer)
    if dataclasses.is_dataclass(origin) and isinstance(origin, type):
        fields = [name for name, _, _ in _fields(origin)]
        return deserializer.deserialize_struct(origin.__name__, fields, _StructVisitor(origin))
    raise CustomError(problem="unsupported type %s" % _name(shape))


def _deserialize_variants(classes, deserializer):
    visitor = _VariantsVisitor(classes)
    return deserializer.deserialize_enum(None, list(visitor.table), visitor)


def _deserialize_union(members, deserializer):
    present = [member for member in members if member is not _NoneType]
    if len(present) < len(members):
        inner = present[0] if len(present) == 1 else typing.Union[tuple(present)]
        return deserializer.deserialize_option(_OptionVisitor(inner))
    if all(variant_info(member) is not None for member in members):
        return _deserialize_variants(members, deserializer)
    # Untagged: the first member that reads without error wins.
    for member in members:
        attempt = deserializer.fork()
        try:
            value = deserialize(member, attempt)
        except RecursionLimitError:
            raise
        except YAMLError:
            continue
        deserializer.commit(attempt)
        return value
    raise CustomError(problem="data did not match any variant of %s"
                      % ' | '.join(_name(member) for member in members))


# -- serialization --------------------------------------------------------------

def serialize(obj, serializer, shape=None):
    """Describe ``obj`` to ``serializer``, guided by the optional ``shape``."""
    if not _is_any(shape) and _is_union(shape):
        if obj is None and _is_optional(shape):
            return serializer.serialize_none()
        present = [member for member in typing.get_args(shape) if member is not _NoneType]
        shape = present[0] if len(present) == 1 else None
    hook = getattr(type(obj), '__serialize__', None)
    if hook is not None:
        return hook(obj, serializer)
    if isinstance(obj, Value):
        return serializer.serialize_node(obj)
    if obj is None:
        return serializer.serialize_none()
    if isinstance(obj, bool):
        return serializer.serialize_bool(obj)
    if isinstance(obj, enum.Enum):
        cls = type(obj)
        return serializer.serialize_unit_variant(
            cls.__name__, list(cls.__members__).index(obj.name), obj.name)
    if isinstance(obj, int):
        return serializer.serialize_int(int(obj))
    if isinstance(obj, float):
        return serializer.serialize_float(obj)
    if isinstance(obj, str):
        return serializer.serialize_str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return serializer.serialize_bytes(bytes(obj))
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        if variant_info(type(obj)) is not None:
            return _serialize_variant(obj, serializer)
        return _serialize_struct(obj, serializer)

    args = () if _is_any(shape) else typing.get_args(shape)
    if isinstance(obj, collections.abc.Mapping):
        key_shape, value_shape = args if len(args) == 2 else (None, None)
        mapping = serializer.serialize_map(len(obj))
        for key, value in obj.items():
            mapping.serialize_entry(key, value, key_shape, value_shape)
        return mapping.end()
    if isinstance(obj, tuple) and args and not (len(args) == 2 and args[1] is Ellipsis):
        if len(args) != len(obj):
            raise CustomError(problem="expected a tuple of size %d, got %d" % (len(args), len(obj)))
        seq = serializer.serialize_tuple(len(obj))
        for element, element_shape in zip(obj, args):
            seq.serialize_element(element, element_shape)
        return seq.end()
    if isinstance(obj, (list, tuple, set, frozenset)):
        element_shape = args[0] if args else None
        seq = serializer.serialize_seq(len(obj))
        for element in obj:
            seq.serialize_element(element, element_shape)
        return seq.end()
    raise CustomError(problem="cannot serialize object of type %s" % type(obj).__name__)


def _serialize_struct(obj, serializer):
    cls = type(obj)
    fields = _fields(cls)
    struct = serializer.serialize_struct(cls.__name__, len(fields))
    for name, hint, _ in fields:
        struct.serialize_field(name, getattr(obj, name), hint)
    return struct.end()


def _serialize_variant(obj, serializer):
    cls = type(obj)
    info = variant_info(cls)
    fields = _fields(cls)
    enum_name = cls.__qualname__
    if info.kind == 'unit':
        return serializer.serialize_unit_variant(enum_name, 0, info.name)
    if info.kind == 'newtype':
        name, hint, _ = fields[0]
        return serializer.serialize_newtype_variant(
            enum_name, 0, info.name, getattr(obj, name), hint)
    if info.kind == 'tuple':
        seq = serializer.serialize_tuple_variant(enum_name, 0, info.name, len(fields))
        for name, hint, _ in fields:
            seq.serialize_element(getattr(obj, name), hint)
        return seq.end()
    struct = serializer.serialize_struct_variant(enum_name, 0, info.name, len(fields))
    for name, hint, _ in fields:
        struct.serialize_field(name, getattr(obj, name), hint)
    return struct.end()
