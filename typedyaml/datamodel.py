"""The data model contract shared by the serializer and the deserializer.

A value is described to the serializer through one ``serialize_*`` call per
shape (null, bool, int, float, str, bytes, sequence, mapping, struct, enum
variant). The deserializer answers requests for a shape by calling one
``visit_*`` method on a :class:`Visitor`. Compound shapes hand out access
objects (:class:`SeqAccess`, :class:`MapAccess`, :class:`EnumAccess`) that
read their parts on demand.

Enum variants are externally tagged: a unit variant is its name, any other
variant is a mapping with a single entry from the name to the payload.
"""

from typedyaml.error import CustomError
from typedyaml.value import Null, Bool, Number, String, Sequence, Mapping, Tagged


def invalid_type(unexpected, expected):
    return CustomError(problem="invalid type: %s, expected %s" % (unexpected, expected))


def invalid_value(unexpected, expected):
    return CustomError(problem="invalid value: %s, expected %s" % (unexpected, expected))


def invalid_length(length, expected):
    return CustomError(problem="invalid length %d, expected %s" % (length, expected))


def missing_field(name):
    return CustomError(problem="missing field `%s`" % name)


def unknown_variant(name, expected):
    if expected:
        choices = ', '.join('`%s`' % variant for variant in expected)
        return CustomError(problem="unknown variant `%s`, expected one of %s" % (name, choices))
    return CustomError(problem="unknown variant `%s`, there are no variants" % name)


class Visitor:
    """Receives the shape the deserializer found.

    Every method defaults to failing with an ``invalid type`` error that
    names :attr:`expecting`, so subclasses override only what they accept.
    """

    expecting = 'any value'

    def _reject(self, unexpected):
        raise invalid_type(unexpected, self.expecting)

    def visit_none(self):
        self._reject('null')

    def visit_some(self, deserializer):
        self._reject('Option value')

    def visit_bool(self, value):
        self._reject('boolean `%s`' % ('true' if value else 'false'))

    def visit_int(self, value):
        self._reject('integer `%d`' % value)

    def visit_float(self, value):
        self._reject('floating point `%r`' % value)

    def visit_str(self, value):
        self._reject('string %r' % value)

    def visit_bytes(self, value):
        self._reject('byte array')

    def visit_seq(self, access):
        self._reject('sequence')

    def visit_map(self, access):
        self._reject('map')

    def visit_enum(self, access):
        self._reject('enum')


class SeqAccess:
    """Reads the elements of a sequence one by one."""

    def has_next(self):
        raise NotImplementedError

    def next_element(self, shape=None):
        raise NotImplementedError

    def size_hint(self):
        return None

    def __iter__(self):
        while self.has_next():
            yield self.next_element()


class MapAccess:
    """Reads the entries of a mapping, key first then value."""

    def has_next(self):
        raise NotImplementedError

    def next_key(self, shape=None):
        raise NotImplementedError

    def next_value(self, shape=None):
        raise NotImplementedError

    def next_entry(self, key_shape=None, value_shape=None):
        key = self.next_key(key_shape)
        return key, self.next_value(value_shape)

    def skip_value(self):
        """Consume the pending value without building it."""
        raise NotImplementedError

    def size_hint(self):
        return None


class EnumAccess:

    def variant(self):
        """Return ``(name, VariantAccess)`` for the selected variant."""
        raise NotImplementedError


class VariantAccess:

    def unit_variant(self):
        raise NotImplementedError

    def newtype_variant(self, shape=None):
        raise NotImplementedError

    def tuple_variant(self, length, visitor):
        raise NotImplementedError

    def struct_variant(self, fields, visitor):
        raise NotImplementedError


class Deserializer:
    """Produces visitor calls.

    The hinted entry points exist so formats can use what the caller expects;
    by default they all defer to :meth:`deserialize_any`.
    """

    def deserialize_any(self, visitor):
        raise NotImplementedError

    def deserialize_bool(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_int(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_float(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_str(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_bytes(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_option(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_seq(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_tuple(self, length, visitor):
        return self.deserialize_seq(visitor)

    def deserialize_map(self, visitor):
        return self.deserialize_any(visitor)

    def deserialize_struct(self, name, fields, visitor):
        return self.deserialize_map(visitor)

    def deserialize_enum(self, name, variants, visitor):
        return self.deserialize_any(visitor)

    def deserialize_ignored_any(self):
        raise NotImplementedError


class Serializer:
    """Accepts one call per value.

    Compound calls return a helper whose ``serialize_element`` /
    ``serialize_key`` / ``serialize_value`` / ``serialize_field`` methods
    take the parts and whose ``end()`` returns the result.
    """

    def serialize_none(self):
        raise NotImplementedError

    def serialize_bool(self, value):
        raise NotImplementedError

    def serialize_int(self, value):
        raise NotImplementedError

    def serialize_float(self, value):
        raise NotImplementedError

    def serialize_str(self, value):
        raise NotImplementedError

    def serialize_bytes(self, value):
        raise NotImplementedError

    def serialize_seq(self, length=None):
        raise NotImplementedError

    def serialize_tuple(self, length):
        return self.serialize_seq(length)

    def serialize_map(self, length=None):
        raise NotImplementedError

    def serialize_struct(self, name, length):
        raise NotImplementedError

    def serialize_unit_variant(self, name, index, variant):
        raise NotImplementedError

    def serialize_newtype_variant(self, name, index, variant, value, shape=None):
        raise NotImplementedError

    def serialize_tuple_variant(self, name, index, variant, length):
        raise NotImplementedError

    def serialize_struct_variant(self, name, index, variant, length):
        raise NotImplementedError

    def serialize_tagged(self, tag, value, shape=None):
        """Serialize ``value`` under an explicit YAML tag."""
        raise NotImplementedError

    def serialize_node(self, value):
        """Serialize a Value Tree node by walking it."""
        if isinstance(value, Null):
            return self.serialize_none()
        if isinstance(value, Bool):
            return self.serialize_bool(value.value)
        if isinstance(value, Number):
            if value.is_float:
                return self.serialize_float(value.value)
            return self.serialize_int(value.value)
        if isinstance(value, String):
            return self.serialize_str(value.value)
        if isinstance(value, Sequence):
            seq = self.serialize_seq(len(value.value))
            for element in value.value:
                seq.serialize_element(element)
            return seq.end()
        if isinstance(value, Mapping):
            mapping = self.serialize_map(len(value.value))
            for key, element in value.value.items():
                mapping.serialize_entry(key, element)
            return mapping.end()
        if isinstance(value, Tagged):
            return self.serialize_tagged(value.tag, value.value)
        raise CustomError(problem="cannot serialize %s" % type(value).__name__)
