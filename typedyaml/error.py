"""Errors and source positions.

Every failure raised by typedyaml is a :class:`YAMLError`. The concrete class
(and its ``kind`` attribute) tells what went wrong; the marks tell where.
"""

import enum
import warnings


class ErrorKind(enum.Enum):
    SYNTAX = 'syntax'
    UNEXPECTED_EVENT = 'unexpected event'
    UNKNOWN_ANCHOR = 'unknown anchor'
    DUPLICATE_MAP_KEY = 'duplicate map key'
    INVALID_TAG = 'invalid tag'
    RECURSION_LIMIT_EXCEEDED = 'recursion limit exceeded'
    NUMBER_OVERFLOW = 'number overflow'
    INVALID_MERGE = 'invalid merge'
    CUSTOM = 'custom'


class Mark:
    """A position in a YAML stream.

    ``line`` and ``column`` count from 0; ``index`` counts characters. When
    the source ``buffer`` is known the mark can also report its UTF-8 byte
    offset and quote the offending line.
    """

    def __init__(self, name, index, line, column, buffer=None):
        self.name = name
        self.index = index
        self.line = line
        self.column = column
        self.buffer = buffer

    @classmethod
    def from_index(cls, name, buffer, index):
        """Build a mark for a character index into ``buffer``."""
        index = max(0, min(index, len(buffer)))
        line = buffer.count('\n', 0, index)
        column = index - (buffer.rfind('\n', 0, index) + 1)
        return cls(name, index, line, column, buffer)

    @property
    def byte_offset(self):
        """Offset of the mark in the UTF-8 encoding of the source."""
        if self.buffer is None:
            return None
        return len(self.buffer[:self.index].encode('utf-8', 'surrogatepass'))

    def get_snippet(self, indent=4):
        """The source line holding the mark with a caret under the column."""
        if self.buffer is None:
            return None
        start = self.buffer.rfind('\n', 0, self.index) + 1
        end = self.buffer.find('\n', self.index)
        text = self.buffer[start:end if end >= 0 else len(self.buffer)].rstrip('\r')
        return ' ' * indent + text + '\n' + ' ' * (indent + self.index - start) + '^'

    def __repr__(self):
        return 'Mark(%r, line=%d, column=%d)' % (self.name, self.line, self.column)

    def __str__(self):
        where = '  in "%s", line %d, column %d' % (self.name, self.line + 1, self.column + 1)
        snippet = self.get_snippet()
        return where if snippet is None else where + ':\n' + snippet


class YAMLError(Exception):
    """Base exception for typedyaml errors.

    Attributes:
        kind: The :class:`ErrorKind` of the failure
        context: Description of the enclosing construct
        context_mark: Mark pointing to the context
        problem: Description of the problem
        problem_mark: Mark pointing to the problem
        note: Additional note about the error
        path: Location of the failing node inside the document, such as
            ``servers[0].port``, when known
    """

    kind = ErrorKind.CUSTOM

    def __init__(self, context=None, context_mark=None,
                 problem=None, problem_mark=None, note=None, path=None):
        super().__init__(problem if problem is not None else context)
        self.context = context
        self.context_mark = context_mark
        self.problem = problem
        self.problem_mark = problem_mark
        self.note = note
        self.path = path

    @property
    def mark(self):
        return self.problem_mark if self.problem_mark is not None else self.context_mark

    @property
    def line(self):
        mark = self.mark
        return None if mark is None else mark.line

    @property
    def column(self):
        mark = self.mark
        return None if mark is None else mark.column

    @property
    def byte_offset(self):
        mark = self.mark
        return None if mark is None else mark.byte_offset

    def locate(self, mark=None, path=None):
        """Fill in the position of an error raised without one."""
        if self.problem_mark is None and self.context_mark is None:
            self.problem_mark = mark
        if self.path is None and path:
            self.path = path
        return self

    def __str__(self):
        # context mark is skipped when it points where the problem does
        same_place = (self.problem_mark is not None and self.context_mark is not None
                      and str(self.problem_mark) == str(self.context_mark))
        parts = ['at %s:' % self.path if self.path else None,
                 self.context,
                 None if same_place or self.context_mark is None else str(self.context_mark),
                 self.problem,
                 None if self.problem_mark is None else str(self.problem_mark),
                 self.note]
        return '\n'.join(part for part in parts if part is not None)


class YAMLSyntaxError(YAMLError):
    """Malformed YAML reported by the scanner or parser."""
    kind = ErrorKind.SYNTAX


class UnexpectedEventError(YAMLError):
    """An event sequence that does not fit the requested shape."""
    kind = ErrorKind.UNEXPECTED_EVENT


class UnknownAnchorError(YAMLError):
    kind = ErrorKind.UNKNOWN_ANCHOR


class DuplicateKeyError(YAMLError):
    kind = ErrorKind.DUPLICATE_MAP_KEY


class InvalidTagError(YAMLError):
    kind = ErrorKind.INVALID_TAG


class RecursionLimitError(YAMLError):
    kind = ErrorKind.RECURSION_LIMIT_EXCEEDED


class InvalidMergeError(YAMLError):
    kind = ErrorKind.INVALID_MERGE


class CustomError(YAMLError):
    """Raised by data-model validation and user hooks."""
    kind = ErrorKind.CUSTOM


class NumberOverflowWarning(UserWarning):
    """An integer literal did not fit in 64 bits and was read as a float."""
    kind = ErrorKind.NUMBER_OVERFLOW


def warn_overflow(text):
    warnings.warn("integer %s is out of range, using a float" % text,
                  NumberOverflowWarning, stacklevel=4)
