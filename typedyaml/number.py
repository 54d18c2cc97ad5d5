"""Number formatting and parsing.

Integers keep their exact value as long as they fit in 64 bits (signed or
unsigned). Wider literals are read as floats and a
:class:`~typedyaml.error.NumberOverflowWarning` is issued. Floats are written
with the shortest text that reads back to the same IEEE-754 double.
"""

import logging
import math
import re

from typedyaml.error import warn_overflow
from typedyaml.resolver import INT_TAG, FLOAT_TAG, resolve


logger = logging.getLogger(__name__)

I64_MIN = -(1 << 63)
U64_MAX = (1 << 64) - 1

_INFINITY_WORDS = frozenset(['.inf', '.Inf', '.INF'])
_NAN_WORDS = frozenset(['.nan', '.NaN', '.NAN'])

_PREFIXES = {'0x': 16, '0o': 8, '0b': 2}
_DIGITS = {
    16: re.compile('[0-9a-fA-F]+'),
    10: re.compile('[0-9]+'),
    8: re.compile('[0-7]+'),
    2: re.compile('[01]+'),
}


def fits(value):
    """True if the integer ``value`` fits the supported integer width."""
    return I64_MIN <= value <= U64_MAX


def format_int(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("expected an int, got %s" % type(value).__name__)
    return str(value)


def format_float(value):
    value = float(value)
    if math.isnan(value):
        return '.nan'
    if math.isinf(value):
        return '.inf' if value > 0 else '-.inf'
    # repr() is the shortest round-trip form; it always carries a '.' or an
    # exponent, so the text never resolves as an integer.
    return repr(value)


def format_number(value):
    if isinstance(value, float):
        return format_float(value)
    return format_int(value)


def parse_int(text):
    """Parse integer text of the core schema, or return None."""
    sign = 1
    body = text
    if body[:1] in ('-', '+'):
        sign = -1 if body[0] == '-' else 1
        body = body[1:]
    base = _PREFIXES.get(body[:2].lower(), 10)
    if base != 10:
        body = body[2:]
    # int() would also take signs, underscores and spaces after the prefix
    if not _DIGITS[base].fullmatch(body):
        return None
    return sign * int(body, base)


def parse_float(text):
    """Parse float text of the core schema, or return None."""
    body = text[1:] if text[:1] in ('-', '+') else text
    if body in _INFINITY_WORDS:
        return -math.inf if text[0] == '-' else math.inf
    if text in _NAN_WORDS:
        return math.nan
    if not body or not body.isascii() or body.lower() in ('inf', 'infinity', 'nan'):
        return None
    if '_' in body:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def widen(value, text):
    """Return ``value`` if it fits, else its float approximation."""
    if fits(value):
        return value
    logger.debug("integer literal %r exceeds 64 bits, reading as float", text)
    warn_overflow(text)
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def parse_number(text, tag=None):
    """Parse ``text`` as a number.

    With no ``tag`` the text is resolved by the core schema first. Returns
    ``None`` when the text is not a number of the requested kind.
    """
    if tag is None:
        tag = resolve(text)
    if tag == INT_TAG:
        value = parse_int(text)
        if value is None:
            return None
        return widen(value, text)
    if tag == FLOAT_TAG:
        value = parse_float(text)
        if value is None:
            value = parse_int(text)
            if value is not None:
                value = float(value)
        return value
    return None
