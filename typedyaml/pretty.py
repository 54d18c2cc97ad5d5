"""Pretty backend built on ruamel.yaml.

Receives fully resolved Value Trees and the same :class:`FormatOptions` as
the event serializer, so both backends agree on content and on the quoting
decisions; ruamel.yaml only contributes its layout (sequence dash offset,
comment aware round-trip representer). Install with ``pip install
typedyaml[pretty]``.
"""

import io
import logging

from typedyaml.error import CustomError
from typedyaml.number import format_number
from typedyaml.value import Null, Bool, Number, String, Sequence, Mapping, Tagged


logger = logging.getLogger(__name__)


def _ruamel():
    try:
        from ruamel.yaml import YAML
    except ImportError:
        raise CustomError(
            problem="the pretty backend needs ruamel.yaml; install typedyaml[pretty]") from None
    return YAML


class _Builder:
    """Converts Value Trees to ruamel.yaml round-trip objects."""

    def __init__(self, options):
        from ruamel.yaml import comments, scalarstring
        from ruamel.yaml.tag import Tag

        self.options = options
        self.comments = comments
        self.Tag = Tag
        self.string_types = {
            "'": scalarstring.SingleQuotedScalarString,
            '"': scalarstring.DoubleQuotedScalarString,
            '|': scalarstring.LiteralScalarString,
        }

    def scalar_text(self, node, flow=False):
        """Text and ruamel style of a scalar under a tag; '-' forces plain."""
        if isinstance(node, Null):
            return 'null', '-'
        if isinstance(node, Bool):
            return ('true' if node.value else 'false'), '-'
        if isinstance(node, Number):
            return format_number(node.value), '-'
        # A plain-safe string still goes through ruamel's own analysis.
        return node.value, self.options.scalar_style(node.value, flow)

    def build(self, node, key=False, root=False):
        if isinstance(node, Null):
            return None
        if isinstance(node, (Bool, Number)):
            return node.value
        if isinstance(node, String):
            style = self.options.scalar_style(node.value, self.options.flow or key)
            if style is None:
                return node.value
            # ruamel writes a literal block at the document root unindented
            if style == '|' and (key or root):
                style = '"'
            return self.string_types[style](node.value)
        if isinstance(node, Sequence):
            seq = (self.comments.CommentedKeySeq if key else self.comments.CommentedSeq)(
                self.build(element, key) for element in node.value)
            if not key:
                self._flow(seq, len(node.value))
            return seq
        if isinstance(node, Mapping):
            if key:
                return self.comments.CommentedKeyMap(
                    self._pairs(node, lambda v: self.build(v, True)))
            mapping = self.comments.CommentedMap()
            for k, v in self._pairs(node, self.build):
                mapping[k] = v
            self._flow(mapping, len(node.value))
            return mapping
        if isinstance(node, Tagged):
            return self.tagged(node, key, root)
        raise CustomError(problem="cannot render %s" % type(node).__name__)

    def _pairs(self, node, build_value):
        pairs = {}
        sources = {}
        for k, v in node.value.items():
            built = self.build(k, True)
            if built in sources:
                raise CustomError(
                    problem="mapping keys %r and %r become the same key in the pretty backend"
                            % (sources[built], k))
            sources[built] = k
            pairs[built] = build_value(v)
        return list(pairs.items())

    def tagged(self, node, key, root=False):
        inner = node.value
        if isinstance(inner, Tagged):
            raise CustomError(problem="cannot serialize a tagged value inside the tag %s" % node.tag)
        if isinstance(inner, (Sequence, Mapping)) and not key:
            built = self.build(inner)
            built.yaml_set_ctag(self.Tag(suffix=node.tag))
            return built
        if isinstance(inner, (Sequence, Mapping)):
            raise CustomError(problem="tagged collections cannot be mapping keys here")
        text, style = self.scalar_text(inner, self.options.flow or key)
        if style == '|' and (key or root):
            style = '"'
        return self.comments.TaggedScalar(value=text, style=style, tag=node.tag)

    def _flow(self, collection, length):
        if self.options.flow or (length == 0 and self.options.prefer_flow_for_empty):
            collection.fa.set_flow_style()
        else:
            collection.fa.set_block_style()


def render(values, options):
    """Render Value Trees as a YAML stream with ruamel.yaml."""
    YAML = _ruamel()
    yaml = YAML(typ='rt')
    yaml.indent(mapping=options.indent, sequence=options.indent + 2, offset=options.indent)
    yaml.allow_unicode = True
    yaml.explicit_start = options.explicit_start or len(values) > 1
    yaml.width = options.width or 4096
    yaml.default_flow_style = options.flow
    builder = _Builder(options)
    documents = [builder.build(value, root=True) for value in values]
    logger.debug("rendering %d document(s) with ruamel.yaml", len(documents))
    stream = io.StringIO()
    if documents:
        yaml.dump_all(documents, stream)
    return stream.getvalue()
