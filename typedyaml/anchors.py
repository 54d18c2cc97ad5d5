"""Anchor bookkeeping for a single document."""

from typedyaml.error import UnknownAnchorError


class AnchorTable:
    """Maps anchor names to the nodes they label.

    An anchor is *reserved* when its node starts and *bound* once the node is
    complete, so an alias inside its own anchored node is rejected the same
    way as a forward reference. Defining an anchor again rebinds the name for
    the rest of the document.
    """

    def __init__(self):
        self._bound = {}
        self._pending = {}

    def reserve(self, name, target):
        self._pending.setdefault(name, []).append(target)

    def bind(self, name):
        targets = self._pending[name]
        self._bound[name] = targets.pop()
        if not targets:
            del self._pending[name]

    def resolve(self, name, mark=None):
        try:
            return self._bound[name]
        except KeyError:
            if name in self._pending:
                problem = "found recursive alias %r" % name
            else:
                problem = "found undefined alias %r" % name
            raise UnknownAnchorError(problem=problem, problem_mark=mark) from None

    def __contains__(self, name):
        return name in self._bound

    def __len__(self):
        return len(self._bound)

    def clear(self):
        self._bound.clear()
        self._pending.clear()
