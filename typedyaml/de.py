"""Deserializer: drives data model visitors from parsed YAML events.

The events of a document are kept in a list. Aliases are not copied at parse
time; an alias is deserialized by jumping to the position of the node its
anchor labels and reading that node again, which yields an independent copy
for every alias. Nesting (including alias expansion) is bounded by a depth
ceiling and the total number of alias expansions by a budget proportional to
the document size, so hostile input fails with RecursionLimitError instead of
exhausting the stack or memory.
"""

import base64
import binascii
import contextlib
import logging

import yaml

from typedyaml import datamodel
from typedyaml import shapes
from typedyaml.error import (
    YAMLError, UnexpectedEventError, DuplicateKeyError, InvalidTagError,
    InvalidMergeError, RecursionLimitError,
)
from typedyaml.number import parse_int, parse_float, widen
from typedyaml.resolver import (
    NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, STR_TAG, SEQ_TAG, MAP_TAG,
    BINARY_TAG, MERGE_TAG, CORE_TAGS, resolve,
)
from typedyaml.value import Value, String, Null, Bool, Number


logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 128

_NULL_WORDS = frozenset(['', '~', 'null', 'Null', 'NULL'])
_TRUE_WORDS = frozenset(['true', 'True', 'TRUE'])
_FALSE_WORDS = frozenset(['false', 'False', 'FALSE'])

_START = (yaml.SequenceStartEvent, yaml.MappingStartEvent)
_END = (yaml.SequenceEndEvent, yaml.MappingEndEvent)


def _is_plain(event):
    return event.style is None or event.style == ''


def _describe_event(event):
    if isinstance(event, yaml.ScalarEvent):
        return 'scalar %r' % event.value
    if isinstance(event, yaml.AliasEvent):
        return 'alias *%s' % event.anchor
    if isinstance(event, yaml.SequenceStartEvent):
        return 'sequence'
    if isinstance(event, yaml.MappingStartEvent):
        return 'mapping'
    return type(event).__name__


def _describe_key(key):
    if isinstance(key, String):
        return key.value
    if isinstance(key, (Null, Bool, Number)):
        return str(key.to_python())
    return '<%s>' % key.type_name


class _State:
    """Per call bookkeeping shared by a deserializer and its children."""

    def __init__(self, document, recursion_limit):
        self.document = document
        self.recursion_limit = recursion_limit
        self.remaining_depth = recursion_limit
        self.jumps = 0
        self.jump_limit = 100 * max(len(document.events), 10)
        self.path = []
        self.ends = {}
        self.keys = {}


class Deserializer(datamodel.Deserializer):
    """Reads one document.

    Args:
        document: A :class:`typedyaml.loader.Document`
        recursion_limit: Maximum nesting depth, counting alias expansions
    """

    def __init__(self, document, recursion_limit=DEFAULT_RECURSION_LIMIT,
                 _state=None, _pos=0, _untagged=None):
        self.state = _state if _state is not None else _State(document, recursion_limit)
        self.document = document
        self.events = document.events
        self.pos = _pos
        self._untagged = _untagged

    def _at(self, pos, untagged=None):
        return Deserializer(self.document, _state=self.state, _pos=pos, _untagged=untagged)

    def fork(self):
        """A deserializer at the same position, for trial reads."""
        return self._at(self.pos, self._untagged)

    def commit(self, fork):
        self.pos = fork.pos

    @property
    def done(self):
        return self.pos >= len(self.events)

    # -- event helpers -------------------------------------------------------

    def _peek(self):
        if self.pos >= len(self.events):
            raise UnexpectedEventError(problem="unexpected end of document",
                                       problem_mark=self.document.mark(self.pos))
        return self.events[self.pos]

    def _next(self):
        event = self._peek()
        self.pos += 1
        return event

    def _tag(self, pos, event):
        if pos == self._untagged:
            return None
        return event.tag

    def _is_custom_tag(self, tag):
        return tag is not None and tag != '!' and tag not in CORE_TAGS

    def _skip(self, pos):
        """Position just after the node starting at ``pos``."""
        event = self.events[pos]
        if not isinstance(event, _START):
            return pos + 1
        end = self.state.ends.get(pos)
        if end is not None:
            return end
        start = pos
        depth = 0
        while True:
            event = self.events[pos]
            pos += 1
            if isinstance(event, _START):
                depth += 1
            elif isinstance(event, _END):
                depth -= 1
                if depth == 0:
                    self.state.ends[start] = pos
                    return pos

    def path(self):
        out = ''
        for segment in self.state.path:
            if segment.startswith('['):
                out += segment
            else:
                out += ('.' if out else '') + segment
        return out or None

    @contextlib.contextmanager
    def _locate(self, pos):
        try:
            yield
        except YAMLError as exc:
            exc.locate(self.document.mark(pos), self.path())
            raise

    @contextlib.contextmanager
    def _nested(self, pos):
        state = self.state
        if state.remaining_depth <= 0:
            raise RecursionLimitError(
                problem="recursion limit of %d exceeded" % state.recursion_limit,
                problem_mark=self.document.mark(pos),
                path=self.path())
        state.remaining_depth -= 1
        try:
            yield
        finally:
            state.remaining_depth += 1

    @contextlib.contextmanager
    def _segment(self, segment):
        self.state.path.append(segment)
        try:
            yield
        finally:
            self.state.path.pop()

    def _target(self, pos):
        """Position of the node the alias at ``pos`` refers to."""
        state = self.state
        state.jumps += 1
        if state.jumps > state.jump_limit:
            raise RecursionLimitError(
                problem="repetition limit exceeded while expanding aliases",
                problem_mark=self.document.mark(pos),
                path=self.path())
        return self.document.aliases[pos]

    def _resolve_alias(self, pos):
        while isinstance(self.events[pos], yaml.AliasEvent):
            pos = self._target(pos)
        return pos

    def _via_alias(self, method, *args):
        pos = self.pos
        self.pos += 1
        target = self._at(self._target(pos))
        with self._nested(pos):
            return getattr(target, method)(*args)

    def _at_alias(self):
        return isinstance(self._peek(), yaml.AliasEvent)

    # -- entry points --------------------------------------------------------

    def deserialize_any(self, visitor):
        if self._at_alias():
            return self._via_alias('deserialize_any', visitor)
        pos = self.pos
        event = self._peek()
        tag = self._tag(pos, event)
        with self._locate(pos):
            if self._is_custom_tag(tag):
                result = self._visit_tagged(pos, tag, visitor)
            elif isinstance(event, yaml.ScalarEvent):
                self.pos += 1
                result = self._visit_scalar(pos, event, visitor)
            elif isinstance(event, yaml.SequenceStartEvent):
                result = self._visit_sequence(pos, event, visitor)
            elif isinstance(event, yaml.MappingStartEvent):
                result = self._visit_mapping(pos, event, visitor)
            else:
                raise UnexpectedEventError(problem="unexpected %s" % _describe_event(event))
        if event.anchor is not None and pos != self._untagged and isinstance(result, Value):
            result.anchor = event.anchor
        return result

    def deserialize_str(self, visitor):
        # Any untagged scalar reads as its text when a string is wanted, so
        # `version: 1.10` can fill a str field without quotes.
        if self._at_alias():
            return self._via_alias('deserialize_str', visitor)
        pos = self.pos
        event = self._peek()
        if isinstance(event, yaml.ScalarEvent) \
                and self._tag(pos, event) in (None, '!', STR_TAG):
            self.pos += 1
            with self._locate(pos):
                return visitor.visit_str(event.value)
        return self.deserialize_any(visitor)

    def deserialize_option(self, visitor):
        if self._at_alias():
            target = self._resolve_alias(self.pos)
            if self._is_null(target, self.events[target]):
                self.pos += 1
                return visitor.visit_none()
            return visitor.visit_some(self)
        pos = self.pos
        event = self._peek()
        if self._is_null(pos, event):
            self.pos += 1
            with self._locate(pos):
                return visitor.visit_none()
        return visitor.visit_some(self)

    def deserialize_enum(self, name, variants, visitor):
        if self._at_alias():
            return self._via_alias('deserialize_enum', name, variants, visitor)
        pos = self.pos
        event = self._peek()
        tag = self._tag(pos, event)
        with self._locate(pos):
            if self._is_custom_tag(tag):
                return self._visit_tagged(pos, tag, visitor)
            if isinstance(event, yaml.ScalarEvent):
                self.pos += 1
                return visitor.visit_enum(_UnitEnumAccess(event.value))
            if isinstance(event, yaml.MappingStartEvent):
                with self._nested(pos):
                    entries, end = self._mapping_entries(pos)
                    if len(entries) != 1:
                        raise datamodel.invalid_length(
                            len(entries), "map containing 1 entry for enum %s" % (name or 'variant'))
                    result = visitor.visit_enum(_MapEnumAccess(self, entries[0]))
                self.pos = end
                return result
            raise datamodel.invalid_type(_describe_event(event), 'enum %s' % (name or 'variant'))

    def deserialize_ignored_any(self):
        self.pos = self._skip(self.pos)

    # -- scalars -------------------------------------------------------------

    def _is_null(self, pos, event):
        if not isinstance(event, yaml.ScalarEvent):
            return False
        tag = self._tag(pos, event)
        if tag == NULL_TAG:
            return True
        return tag is None and _is_plain(event) and resolve(event.value) == NULL_TAG

    def _visit_scalar(self, pos, event, visitor):
        tag = self._tag(pos, event)
        value = event.value
        if tag is None:
            resolved = resolve(value) if _is_plain(event) else STR_TAG
        elif tag == '!' or tag == MERGE_TAG:
            resolved = STR_TAG
        elif tag in (SEQ_TAG, MAP_TAG):
            raise InvalidTagError(problem="tag %s is not valid on a scalar" % tag)
        else:
            resolved = tag
        return self._visit_resolved(resolved, value, tag is not None and tag != '!', visitor)

    def _visit_resolved(self, tag, value, explicit, visitor):
        if tag == STR_TAG:
            return visitor.visit_str(value)
        if tag == NULL_TAG:
            if value not in _NULL_WORDS:
                raise InvalidTagError(problem="invalid value %r for !!null" % value)
            return visitor.visit_none()
        if tag == BOOL_TAG:
            if value in _TRUE_WORDS:
                return visitor.visit_bool(True)
            if value in _FALSE_WORDS:
                return visitor.visit_bool(False)
            raise InvalidTagError(problem="invalid value %r for !!bool" % value)
        if tag == INT_TAG:
            number = parse_int(value.strip()) if explicit else parse_int(value)
            if number is None:
                raise InvalidTagError(problem="invalid value %r for !!int" % value)
            number = widen(number, value)
            if isinstance(number, float):
                return visitor.visit_float(number)
            return visitor.visit_int(number)
        if tag == FLOAT_TAG:
            number = parse_float(value.strip())
            if number is None:
                number = parse_int(value.strip())
                if number is None:
                    raise InvalidTagError(problem="invalid value %r for !!float" % value)
                number = float(number)
            return visitor.visit_float(number)
        if tag == BINARY_TAG:
            try:
                data = base64.b64decode(''.join(value.split()), validate=True)
            except (binascii.Error, ValueError) as e:
                raise InvalidTagError(problem="invalid base64 in !!binary: %s" % e) from None
            return visitor.visit_bytes(data)
        raise InvalidTagError(problem="unsupported tag %s" % tag)

    # -- tagged nodes --------------------------------------------------------

    def _visit_tagged(self, pos, tag, visitor):
        access = _TagEnumAccess(self, pos, tag)
        with self._nested(pos):
            result = visitor.visit_enum(access)
        self.pos = access.finish()
        return result

    # -- sequences -----------------------------------------------------------

    def _visit_sequence(self, pos, event, visitor):
        tag = self._tag(pos, event)
        if tag not in (None, '!', SEQ_TAG):
            raise InvalidTagError(problem="tag %s is not valid on a sequence" % tag)
        with self._nested(pos):
            self.pos += 1
            access = _SeqAccess(self)
            result = visitor.visit_seq(access)
            if not isinstance(self._peek(), yaml.SequenceEndEvent):
                extra = 0
                while not isinstance(self._peek(), yaml.SequenceEndEvent):
                    self.deserialize_ignored_any()
                    extra += 1
                raise datamodel.invalid_length(access.count + extra, "fewer elements in sequence")
            self.pos += 1
        return result

    # -- mappings ------------------------------------------------------------

    def _visit_mapping(self, pos, event, visitor):
        tag = self._tag(pos, event)
        if tag not in (None, '!', MAP_TAG):
            raise InvalidTagError(problem="tag %s is not valid on a mapping" % tag)
        with self._nested(pos):
            entries, end = self._mapping_entries(pos)
            access = _MapAccess(self, entries)
            result = visitor.visit_map(access)
            if access.index < len(entries):
                raise datamodel.invalid_length(len(entries), "fewer elements in map")
        self.pos = end
        return result

    def _key(self, pos):
        keys = self.state.keys
        key = keys.get(pos)
        if key is None:
            key = keys[pos] = self._at(pos).deserialize_any(shapes.ValueVisitor())
        return key

    def _is_merge_key(self, pos):
        event = self.events[pos]
        if not isinstance(event, yaml.ScalarEvent) or event.value != '<<':
            return False
        tag = self._tag(pos, event)
        return tag == MERGE_TAG or (tag is None and _is_plain(event))

    def _raw_entries(self, start):
        pos = start + 1
        raw = []
        while not isinstance(self.events[pos], yaml.MappingEndEvent):
            key_pos = pos
            pos = self._skip(pos)
            raw.append((key_pos, pos))
            pos = self._skip(pos)
        return raw, pos + 1

    def _mapping_entries(self, start):
        """Entries of the mapping at ``start`` with merge keys spliced in.

        Returns ``([(key_pos, value_pos, key), ...], end)`` where ``end`` is
        the position after the mapping. Keys written in the mapping win over
        merged ones, and an earlier merged mapping wins over a later one.
        Structurally equal keys written in the mapping itself are an error.
        """
        raw, end = self._raw_entries(start)
        seen = set()
        for key_pos, value_pos in raw:
            if self._is_merge_key(key_pos):
                continue
            key = self._key(key_pos)
            if key in seen:
                raise DuplicateKeyError(
                    context="while constructing a mapping",
                    context_mark=self.document.mark(start),
                    problem="found duplicate key %s" % _describe_key(key),
                    problem_mark=self.document.mark(key_pos),
                    path=self.path())
            seen.add(key)
        entries = []
        for key_pos, value_pos in raw:
            if self._is_merge_key(key_pos):
                merged = self._merge_entries(value_pos)
                logger.debug("merging %d entries into mapping at %s",
                             len(merged), self.document.mark(start))
                for entry in merged:
                    if entry[2] not in seen:
                        seen.add(entry[2])
                        entries.append(entry)
            else:
                entries.append((key_pos, value_pos, self._key(key_pos)))
        return entries, end

    def _merge_entries(self, pos):
        mark_pos = pos
        pos = self._resolve_alias(pos)
        event = self.events[pos]
        if self._is_custom_tag(event.tag):
            raise InvalidMergeError(problem="unexpected tagged value in merge",
                                    problem_mark=self.document.mark(mark_pos))
        if isinstance(event, yaml.MappingStartEvent):
            with self._nested(pos):
                return self._mapping_entries(pos)[0]
        if isinstance(event, yaml.SequenceStartEvent):
            merged = []
            element = pos + 1
            while not isinstance(self.events[element], yaml.SequenceEndEvent):
                target = self._resolve_alias(element)
                target_event = self.events[target]
                if isinstance(target_event, yaml.MappingStartEvent) \
                        and not self._is_custom_tag(target_event.tag):
                    with self._nested(target):
                        merged.extend(self._mapping_entries(target)[0])
                elif isinstance(target_event, yaml.SequenceStartEvent):
                    raise InvalidMergeError(
                        problem="expected a mapping for merging, but found a sequence",
                        problem_mark=self.document.mark(element))
                elif self._is_custom_tag(target_event.tag):
                    raise InvalidMergeError(problem="unexpected tagged value in merge",
                                            problem_mark=self.document.mark(element))
                else:
                    raise InvalidMergeError(
                        problem="expected a mapping for merging, but found a scalar",
                        problem_mark=self.document.mark(element))
                element = self._skip(element)
            return merged
        raise InvalidMergeError(
            problem="expected a mapping or list of mappings for merging, but found a scalar",
            problem_mark=self.document.mark(mark_pos))


class _SeqAccess(datamodel.SeqAccess):

    def __init__(self, de):
        self.de = de
        self.count = 0

    def has_next(self):
        return not isinstance(self.de._peek(), yaml.SequenceEndEvent)

    def next_element(self, shape=None):
        with self.de._segment('[%d]' % self.count):
            value = shapes.deserialize(shape, self.de)
        self.count += 1
        return value


class _MapAccess(datamodel.MapAccess):

    def __init__(self, de, entries):
        self.de = de
        self.entries = entries
        self.index = 0

    def has_next(self):
        return self.index < len(self.entries)

    def size_hint(self):
        return len(self.entries)

    def next_key(self, shape=None):
        key_pos = self.entries[self.index][0]
        return shapes.deserialize(shape, self.de._at(key_pos))

    def next_value(self, shape=None):
        key_pos, value_pos, key = self.entries[self.index]
        self.index += 1
        with self.de._segment(_describe_key(key)):
            return shapes.deserialize(shape, self.de._at(value_pos))

    def skip_value(self):
        self.index += 1


class _PayloadAccess(datamodel.VariantAccess):
    """Reads the payload of a variant from a positioned deserializer."""

    def __init__(self, de, name):
        self.de = de
        self.name = name

    def unit_variant(self):
        with self.de._segment(self.name):
            shapes.deserialize(type(None), self.de)

    def newtype_variant(self, shape=None):
        with self.de._segment(self.name):
            return shapes.deserialize(shape, self.de)

    def tuple_variant(self, length, visitor):
        with self.de._segment(self.name):
            return self.de.deserialize_tuple(length, visitor)

    def struct_variant(self, fields, visitor):
        with self.de._segment(self.name):
            return self.de.deserialize_struct(self.name, fields, visitor)


class _MapEnumAccess(datamodel.EnumAccess):
    """``{Variant: payload}``"""

    def __init__(self, de, entry):
        self.de = de
        self.entry = entry

    def variant(self):
        key_pos, value_pos, key = self.entry
        name = shapes.deserialize(str, self.de._at(key_pos))
        return name, _PayloadAccess(self.de._at(value_pos), name)


class _TagEnumAccess(datamodel.EnumAccess):
    """``!Variant payload``: the tag names the variant."""

    def __init__(self, de, pos, tag):
        self.tag = tag
        self.pos = pos
        self.payload = de._at(pos, untagged=pos)

    def variant(self):
        name = self.tag[1:] if self.tag.startswith('!') else self.tag
        return name, _PayloadAccess(self.payload, name)

    def finish(self):
        if self.payload.pos == self.pos:
            self.payload.deserialize_ignored_any()
        return self.payload.pos


class _UnitEnumAccess(datamodel.EnumAccess, datamodel.VariantAccess):
    """A bare scalar naming a unit variant."""

    def __init__(self, name):
        self.name = name

    def variant(self):
        return self.name, self

    def unit_variant(self):
        return None

    def newtype_variant(self, shape=None):
        raise datamodel.invalid_type('unit variant', 'newtype variant')

    def tuple_variant(self, length, visitor):
        raise datamodel.invalid_type('unit variant', 'tuple variant')

    def struct_variant(self, fields, visitor):
        raise datamodel.invalid_type('unit variant', 'struct variant')


def deserialize_document(document, shape=None, recursion_limit=DEFAULT_RECURSION_LIMIT):
    """Deserialize one parsed document into ``shape``."""
    de = Deserializer(document, recursion_limit)
    try:
        result = shapes.deserialize(shape, de)
    except RecursionError:
        raise RecursionLimitError(
            problem="document nesting exceeds the interpreter stack",
            problem_mark=document.mark(de.pos)) from None
    if not de.done:
        raise UnexpectedEventError(
            problem="unexpected %s after the document value" % _describe_event(de.events[de.pos]),
            problem_mark=document.mark(de.pos))
    logger.debug("deserialized %s (%d events, %d alias expansions)",
                 document.name, len(document.events), de.state.jumps)
    return result
