"""Serializer: turns data model calls into YAML.

:class:`EventSerializer` produces PyYAML emitter events, which
:func:`emit` writes as text. :class:`ValueSerializer` builds a Value Tree
instead. Both accept exactly the same calls, so ``to_value`` followed by a
dump writes the same document as a direct dump.
"""

import base64
import logging

import yaml

from typedyaml import datamodel
from typedyaml import shapes
from typedyaml.error import CustomError, RecursionLimitError
from typedyaml.number import format_int, format_float
from typedyaml.resolver import BINARY_TAG
from typedyaml.value import Null, Bool, Number, String, Sequence, Mapping, Tagged, from_python


logger = logging.getLogger(__name__)

# Line width handed to the emitter when wrapping is off.
_NO_WRAP = 1 << 30


class _Dumper(yaml.SafeDumper):
    """PyYAML emitter with two adjustments.

    Block sequences are indented under their parent key like every other
    collection, and a tagged scalar may stay plain when its event asks for
    it with an empty style (``!Point 1`` rather than ``!Point '1'``).
    """

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)

    def choose_scalar_style(self):
        if self.analysis is None:
            self.analysis = self.analyze_scalar(self.event.value)
        if self.event.tag is not None and self.event.style == '':
            if (not (self.simple_key_context
                     and (self.analysis.empty or self.analysis.multiline))
                and (self.flow_level and self.analysis.allow_flow_plain
                     or (not self.flow_level and self.analysis.allow_block_plain))):
                return ''
            return "'" if self.analysis.allow_single_quoted else '"'
        return super().choose_scalar_style()


class EventSerializer(datamodel.Serializer):
    """Collects the node events of one document in :attr:`events`."""

    def __init__(self, options):
        self.options = options
        self.events = []
        self._tag = None
        self._anchor = None
        self._anchors = {}
        self._depth = 0

    def _take(self):
        anchor, tag = self._anchor, self._tag
        self._anchor = self._tag = None
        return anchor, tag

    def _scalar(self, value, style=None, plain=True):
        anchor, tag = self._take()
        if tag is None:
            implicit = (plain, True)
        else:
            implicit = (False, False)
            if style is None and plain:
                style = ''
        self.events.append(yaml.ScalarEvent(anchor, tag, implicit, value, style=style))

    def _enter(self):
        self._depth += 1
        if self._depth > self.options.recursion_limit:
            raise RecursionLimitError(
                problem="recursion limit of %d exceeded" % self.options.recursion_limit)

    def _leave(self):
        self._depth -= 1

    def _flow(self, length):
        if self.options.flow:
            return True
        return length == 0 and self.options.prefer_flow_for_empty

    def _start(self, event_class, length):
        anchor, tag = self._take()
        self._enter()
        self.events.append(event_class(anchor, tag, tag is None, flow_style=self._flow(length)))

    def _end(self, event_class):
        self.events.append(event_class())
        self._leave()

    # -- primitives ------------------------------------------------------------

    def serialize_none(self):
        self._scalar('null')

    def serialize_bool(self, value):
        self._scalar('true' if value else 'false')

    def serialize_int(self, value):
        self._scalar(format_int(value))

    def serialize_float(self, value):
        self._scalar(format_float(value))

    def serialize_str(self, value):
        style = self.options.scalar_style(value)
        self._scalar(value, style, plain=style is None)

    def serialize_bytes(self, value):
        if self._tag is not None:
            raise CustomError(problem="a !!binary value cannot carry another tag")
        self._tag = BINARY_TAG
        self._scalar(base64.b64encode(value).decode('ascii'))

    # -- collections -----------------------------------------------------------

    def serialize_seq(self, length=None):
        self._start(yaml.SequenceStartEvent, length)
        return _SeqEmitter(self)

    def serialize_map(self, length=None):
        self._start(yaml.MappingStartEvent, length)
        return _MapEmitter(self)

    def serialize_struct(self, name, length):
        return self.serialize_map(length)

    # -- enum variants, as {Variant: payload} ----------------------------------

    def serialize_unit_variant(self, name, index, variant):
        self.serialize_str(variant)

    def serialize_newtype_variant(self, name, index, variant, value, shape=None):
        mapping = self.serialize_map(1)
        mapping.serialize_entry(variant, value, str, shape)
        mapping.end()

    def serialize_tuple_variant(self, name, index, variant, length):
        outer = self.serialize_map(1)
        self.serialize_str(variant)
        return _Nested(self.serialize_seq(length), outer)

    def serialize_struct_variant(self, name, index, variant, length):
        outer = self.serialize_map(1)
        self.serialize_str(variant)
        return _Nested(self.serialize_map(length), outer)

    # -- YAML specifics ----------------------------------------------------------

    def serialize_tagged(self, tag, value, shape=None):
        if self._tag is not None:
            raise CustomError(problem="cannot serialize a tagged value inside the tag %s" % self._tag)
        self._tag = tag
        shapes.serialize(value, self, shape)

    def serialize_node(self, value):
        anchor = value.anchor if self.options.emit_anchors else None
        if anchor is not None and self._anchor is None and self._tag is None:
            previous = self._anchors.get(anchor)
            if previous is not None and previous == value:
                self.events.append(yaml.AliasEvent(anchor))
                return
        owns_anchor = anchor is not None and self._anchor is None
        if owns_anchor:
            self._anchor = anchor
        super().serialize_node(value)
        if owns_anchor:
            self._anchors[anchor] = value


class _SeqEmitter:

    def __init__(self, serializer):
        self.serializer = serializer

    def serialize_element(self, value, shape=None):
        shapes.serialize(value, self.serializer, shape)

    def end(self):
        self.serializer._end(yaml.SequenceEndEvent)


class _MapEmitter:

    def __init__(self, serializer):
        self.serializer = serializer

    def serialize_key(self, key, shape=None):
        shapes.serialize(key, self.serializer, shape)

    def serialize_value(self, value, shape=None):
        shapes.serialize(value, self.serializer, shape)

    def serialize_entry(self, key, value, key_shape=None, value_shape=None):
        self.serialize_key(key, key_shape)
        self.serialize_value(value, value_shape)

    def serialize_field(self, name, value, shape=None):
        self.serializer.serialize_str(name)
        self.serialize_value(value, shape)

    def end(self):
        self.serializer._end(yaml.MappingEndEvent)


class _Nested:
    """Payload helper of a tuple or struct variant; closes the wrapper too."""

    def __init__(self, inner, outer):
        self.inner = inner
        self.outer = outer

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def end(self):
        self.inner.end()
        return self.outer.end()


class ValueSerializer(datamodel.Serializer):
    """Builds a Value Tree from data model calls."""

    def serialize_none(self):
        return Null()

    def serialize_bool(self, value):
        return Bool(value)

    def serialize_int(self, value):
        return Number(value)

    def serialize_float(self, value):
        return Number(float(value))

    def serialize_str(self, value):
        return String(value)

    def serialize_bytes(self, value):
        return from_python(bytes(value))

    def serialize_seq(self, length=None):
        return _SeqBuilder(self)

    def serialize_map(self, length=None):
        return _MapBuilder(self)

    def serialize_struct(self, name, length):
        return _MapBuilder(self)

    def serialize_unit_variant(self, name, index, variant):
        return String(variant)

    def serialize_newtype_variant(self, name, index, variant, value, shape=None):
        return Mapping.from_pairs([(String(variant), shapes.serialize(value, self, shape))])

    def serialize_tuple_variant(self, name, index, variant, length):
        return _VariantBuilder(variant, _SeqBuilder(self))

    def serialize_struct_variant(self, name, index, variant, length):
        return _VariantBuilder(variant, _MapBuilder(self))

    def serialize_tagged(self, tag, value, shape=None):
        inner = shapes.serialize(value, self, shape)
        if isinstance(inner, Tagged):
            raise CustomError(problem="cannot serialize a tagged value inside the tag %s" % tag)
        return Tagged(tag, inner)

    def serialize_node(self, value):
        return value.copy()


class _SeqBuilder:

    def __init__(self, serializer):
        self.serializer = serializer
        self.elements = []

    def serialize_element(self, value, shape=None):
        self.elements.append(shapes.serialize(value, self.serializer, shape))

    def end(self):
        return Sequence(self.elements)


class _MapBuilder:

    def __init__(self, serializer):
        self.serializer = serializer
        self.pairs = []
        self._key = None

    def serialize_key(self, key, shape=None):
        self._key = shapes.serialize(key, self.serializer, shape)

    def serialize_value(self, value, shape=None):
        if self._key is None:
            raise CustomError(problem="serialize_value called before serialize_key")
        self.pairs.append((self._key, shapes.serialize(value, self.serializer, shape)))
        self._key = None

    def serialize_entry(self, key, value, key_shape=None, value_shape=None):
        self.serialize_key(key, key_shape)
        self.serialize_value(value, value_shape)

    def serialize_field(self, name, value, shape=None):
        self.pairs.append((String(name), shapes.serialize(value, self.serializer, shape)))

    def end(self):
        return Mapping.from_pairs(self.pairs)


class _VariantBuilder:

    def __init__(self, variant, inner):
        self.variant = variant
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def end(self):
        return Mapping.from_pairs([(String(self.variant), self.inner.end())])


def to_value(obj, shape=None):
    """Serialize ``obj`` into a Value Tree."""
    try:
        return shapes.serialize(obj, ValueSerializer(), shape)
    except RecursionError:
        raise RecursionLimitError(problem="value nesting exceeds the interpreter stack") from None


def document_events(obj, options, shape=None):
    """Node events for one document holding ``obj``."""
    serializer = EventSerializer(options)
    try:
        shapes.serialize(obj, serializer, shape)
    except RecursionError:
        raise RecursionLimitError(problem="value nesting exceeds the interpreter stack") from None
    return serializer.events


def stream_events(objs, options, shape=None):
    events = [yaml.StreamStartEvent()]
    for obj in objs:
        events.append(yaml.DocumentStartEvent(explicit=options.explicit_start))
        events.extend(document_events(obj, options, shape))
        events.append(yaml.DocumentEndEvent(explicit=False))
    events.append(yaml.StreamEndEvent())
    return events


def emit(events, options):
    """Write events as YAML text."""
    try:
        return yaml.emit(events, Dumper=_Dumper, indent=options.indent,
                         width=options.width or _NO_WRAP, allow_unicode=True,
                         line_break='\n')
    except yaml.YAMLError as e:
        raise CustomError(problem="cannot emit YAML: %s" % e) from None


def serialize_all(objs, options, shape=None):
    events = stream_events(objs, options, shape)
    logger.debug("emitting %d events", len(events))
    return emit(events, options)
