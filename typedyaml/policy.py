"""Formatting options for the serializer.

Options are passed explicitly to every dump call; there is no process wide
default that could be changed behind a caller's back::

    >>> opts = FormatOptions(indent=4)
    >>> typedyaml.dumps(data, options=opts)
    >>> typedyaml.dumps(data, indent=4)          # same thing
"""

import dataclasses
import re
from typing import Optional, Tuple

from typedyaml.error import CustomError
from typedyaml.resolver import is_ambiguous


QUOTE_STYLES = ('plain', 'single', 'double', 'literal')

# Text single quotes and literal blocks carry verbatim. CR, NEL, LS and PS
# are line breaks to a YAML reader and only survive escaped in double quotes.
_PRINTABLE = re.compile('^[\x09\x0A\x20-\x7E\xA0-\u2027\u202A-\uD7FF'
                        '\uE000-\uFEFE\uFF00-\uFFFD\U00010000-\U0010FFFF]*$')
# Plain scalars additionally exclude tabs and line feeds.
_PLAIN_TEXT = re.compile('^[\x20-\x7E\xA0-\u2027\u202A-\uD7FF'
                         '\uE000-\uFEFE\uFF00-\uFFFD\U00010000-\U0010FFFF]*$')
_SURROGATE = re.compile('[\uD800-\uDFFF]')
_DOCUMENT_MARKERS = ('---', '...')
_LEADING_INDICATORS = frozenset('#,[]{}&*!|>\'"%@`')
_FLOW_INDICATORS = re.compile('[,?\\[\\]{}:]')


@dataclasses.dataclass(frozen=True)
class FormatOptions:
    """How values are laid out as YAML text.

    Attributes:
        indent: Columns per nesting level, 2 to 9.
        prefer_flow_for_empty: Write empty containers as ``[]`` and ``{}``.
            YAML has no block form for an empty container, so the emitter
            does this either way; the option is kept for the pretty backend
            and for symmetry with configuration files that set it.
        quote_style_preference: Order in which scalar styles are tried for a
            string. The first style that reads back as the same string wins;
            double quotes can express anything and end the search.
        block_multiline: Write strings containing line breaks as literal
            block scalars (``|``) when possible.
        flow: Write every collection in flow style.
        explicit_start: Start every document with ``---``.
        width: Preferred line width. ``None`` never folds long scalars.
        emit_anchors: Write ``Value.anchor`` back as anchors and aliases.
        pretty: Render through the ruamel.yaml backend.
        recursion_limit: Nesting ceiling for both directions.
    """

    indent: int = 2
    prefer_flow_for_empty: bool = True
    quote_style_preference: Tuple[str, ...] = ('plain', 'single', 'double')
    block_multiline: bool = True
    flow: bool = False
    explicit_start: bool = False
    width: Optional[int] = None
    emit_anchors: bool = True
    pretty: bool = False
    recursion_limit: int = 128

    def __post_init__(self):
        if not 2 <= self.indent <= 9:
            raise ValueError("indent must be between 2 and 9, got %r" % (self.indent,))
        preference = tuple(self.quote_style_preference)
        unknown = [style for style in preference if style not in QUOTE_STYLES]
        if unknown:
            raise ValueError("unknown quote style %r, expected one of %s"
                             % (unknown[0], ', '.join(QUOTE_STYLES)))
        object.__setattr__(self, 'quote_style_preference', preference)
        if self.width is not None and self.width <= 2 * self.indent:
            raise ValueError("width must be larger than twice the indent")
        if self.recursion_limit < 1:
            raise ValueError("recursion_limit must be positive")

    def replace(self, **overrides):
        return dataclasses.replace(self, **overrides)

    def is_plain_safe(self, text, flow=False):
        """True if ``text`` written unquoted reads back as the same string.

        Pass ``flow=True`` for scalars inside flow collections, where
        ``,?[]{}:`` also end a plain scalar.
        """
        if not text or text != text.strip(' ') or not _PLAIN_TEXT.match(text):
            return False
        if text.startswith(_DOCUMENT_MARKERS) or text[0] in _LEADING_INDICATORS:
            return False
        if text[0] in '-?:' and (len(text) == 1 or text[1] == ' '):
            return False
        if ': ' in text or text.endswith(':') or ' #' in text:
            return False
        if flow and (text[0] in '?:' or _FLOW_INDICATORS.search(text)):
            return False
        return not is_ambiguous(text)

    def scalar_style(self, text, flow=False):
        """Pick the emitter style for a string.

        Returns ``None`` for plain, ``"'"``, ``'"'`` or ``'|'``. The emitter may
        still move a quoted style down to double quotes when the text cannot be
        expressed in it, which keeps the choice deterministic.

        Raises:
            CustomError: ``text`` holds a lone surrogate, which has no UTF-8
                encoding.
        """
        if _SURROGATE.search(text):
            raise CustomError(problem="cannot serialize a string holding a lone surrogate")
        multiline = '\n' in text
        if multiline and self.block_multiline and _PRINTABLE.match(text) \
                and text.strip(' \n'):
            return '|'
        for style in self.quote_style_preference:
            if style == 'plain':
                if self.is_plain_safe(text, flow):
                    return None
            elif style == 'single':
                if _PRINTABLE.match(text):
                    return "'"
            elif style == 'double':
                return '"'
            elif style == 'literal':
                if multiline and _PRINTABLE.match(text):
                    return '|'
        return '"'


DEFAULT_OPTIONS = FormatOptions()


def resolve_options(options=None, **overrides):
    """Combine an options object with keyword overrides."""
    if options is None:
        options = DEFAULT_OPTIONS
    if overrides:
        options = options.replace(**overrides)
    return options
