"""Event source: runs the PyYAML parser and splits its events into documents.

Alias targets are resolved here, in document order, so the deserializer can
jump to an anchored node by position even when it skips over parts of the
document.
"""

import codecs
import logging

import yaml

from typedyaml.anchors import AnchorTable
from typedyaml.error import Mark, YAMLSyntaxError, UnexpectedEventError, RecursionLimitError


logger = logging.getLogger(__name__)

_Loader = getattr(yaml, 'CSafeLoader', yaml.SafeLoader)

_NODE_START = (yaml.ScalarEvent, yaml.SequenceStartEvent, yaml.MappingStartEvent)
_COLLECTION_START = (yaml.SequenceStartEvent, yaml.MappingStartEvent)
_COLLECTION_END = (yaml.SequenceEndEvent, yaml.MappingEndEvent)

_BOMS = (
    (codecs.BOM_UTF32_BE, 'utf-32-be'),
    (codecs.BOM_UTF32_LE, 'utf-32-le'),
    (codecs.BOM_UTF16_BE, 'utf-16-be'),
    (codecs.BOM_UTF16_LE, 'utf-16-le'),
    (codecs.BOM_UTF8, 'utf-8'),
)


def decode(stream, name='<string>'):
    """Decode a bytes stream to text, honouring a byte order mark.

    UTF-32 is checked before UTF-16 because the UTF-32 LE mark starts with
    the UTF-16 LE one. Without a mark the stream must be UTF-8.
    """
    if isinstance(stream, (bytes, bytearray)):
        stream = bytes(stream)
        encoding = 'utf-8'
        for bom, candidate in _BOMS:
            if stream.startswith(bom):
                stream = stream[len(bom):]
                encoding = candidate
                break
        try:
            return stream.decode(encoding)
        except UnicodeDecodeError as e:
            raise YAMLSyntaxError(
                problem="failed to decode stream as %s: %s" % (encoding, e.reason),
                problem_mark=Mark(name, e.start, 0, e.start)) from None
    if not isinstance(stream, str):
        raise TypeError("expected str or bytes, got %s" % type(stream).__name__)
    if stream.startswith('\ufeff'):
        stream = stream[1:]
    return stream


class Document:
    """The node events of one document, with alias targets resolved.

    Attributes:
        events: Node events, without the document start and end events
        aliases: Position of each alias event mapped to the position of the
            node its anchor labels
        explicit_start: True if the document began with ``---``
    """

    def __init__(self, name, buffer, explicit_start=False):
        self.name = name
        self.buffer = buffer
        self.explicit_start = explicit_start
        self.events = []
        self.aliases = {}

    def mark(self, pos):
        """Source position of the event at ``pos``."""
        if not self.events:
            return None
        event = self.events[min(pos, len(self.events) - 1)]
        return convert_mark(event.start_mark, self.name, self.buffer)

    def __len__(self):
        return len(self.events)

    def __repr__(self):
        return '<Document %s: %d events>' % (self.name, len(self.events))


class _DocumentBuilder:

    def __init__(self, document, recursion_limit=None):
        self.document = document
        self.recursion_limit = recursion_limit
        self.anchors = AnchorTable()
        self.open_anchors = []

    def add(self, event):
        document = self.document
        pos = len(document.events)
        document.events.append(event)
        if isinstance(event, yaml.AliasEvent):
            mark = convert_mark(event.start_mark, document.name, document.buffer)
            document.aliases[pos] = self.anchors.resolve(event.anchor, mark)
        elif isinstance(event, yaml.ScalarEvent):
            if event.anchor is not None:
                self.anchors.reserve(event.anchor, pos)
                self.anchors.bind(event.anchor)
        elif isinstance(event, _COLLECTION_START):
            if event.anchor is not None:
                self.anchors.reserve(event.anchor, pos)
            self.open_anchors.append(event.anchor)
            if self.recursion_limit is not None and len(self.open_anchors) > self.recursion_limit:
                raise RecursionLimitError(
                    problem="recursion limit of %d exceeded" % self.recursion_limit,
                    problem_mark=convert_mark(event.start_mark, document.name, document.buffer))
        elif isinstance(event, _COLLECTION_END):
            anchor = self.open_anchors.pop()
            if anchor is not None:
                self.anchors.bind(anchor)


def convert_mark(mark, name, buffer):
    if mark is None:
        return None
    return Mark(name, mark.index, mark.line, mark.column, buffer)


def _convert_error(exc, name, buffer):
    if isinstance(exc, yaml.MarkedYAMLError):
        return YAMLSyntaxError(
            context=exc.context,
            context_mark=convert_mark(exc.context_mark, name, buffer),
            problem=exc.problem,
            problem_mark=convert_mark(exc.problem_mark, name, buffer),
            note=exc.note)
    position = getattr(exc, 'position', None)
    mark = Mark.from_index(name, buffer, position) if position is not None else None
    return YAMLSyntaxError(problem=str(exc), problem_mark=mark)


def parse(stream, name='<string>', recursion_limit=None):
    """Parse a YAML stream into a list of :class:`Document`.

    An empty stream has no documents. With ``recursion_limit`` set, parsing
    stops at the first collection nested deeper than the limit instead of
    scanning the rest of the stream.
    """
    text = decode(stream, name)
    documents = []
    builder = None
    try:
        for event in yaml.parse(text, Loader=_Loader):
            if isinstance(event, yaml.DocumentStartEvent):
                builder = _DocumentBuilder(Document(name, text, event.explicit), recursion_limit)
            elif isinstance(event, yaml.DocumentEndEvent):
                documents.append(builder.document)
                builder = None
            elif isinstance(event, (yaml.StreamStartEvent, yaml.StreamEndEvent)):
                continue
            elif builder is None:
                raise UnexpectedEventError(
                    problem="unexpected %s outside of a document" % type(event).__name__,
                    problem_mark=convert_mark(event.start_mark, name, text))
            else:
                builder.add(event)
    except yaml.YAMLError as exc:
        raise _convert_error(exc, name, text) from None
    logger.debug("parsed %d document(s) from %s", len(documents), name)
    return documents


def empty_document(name='<string>'):
    """A document holding a single null, standing in for an empty stream."""
    document = Document(name, '')
    document.events.append(yaml.ScalarEvent(None, None, (True, False), ''))
    return document
