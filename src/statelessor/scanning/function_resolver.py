"""Heuristic attribution of a line to its enclosing method name."""

from __future__ import annotations

import re
from typing import Optional

from ..models import UNKNOWN_FUNCTION, SourceUnit

DEFAULT_WINDOW = 30

_MODIFIER = re.compile(r"\b(?:public|private|protected|internal)\b", re.ASCII)
_GENERIC_ARGUMENTS = re.compile(r"<[^<>]*>")
_TRAILING_NAME = re.compile(r"[ \t]([A-Za-z0-9_]+)[ \t]*$")
NOT_METHOD_NAMES = frozenset(
    {
        "catch",
        "for",
        "foreach",
        "if",
        "lock",
        "nameof",
        "new",
        "return",
        "sizeof",
        "super",
        "switch",
        "synchronized",
        "this",
        "throw",
        "typeof",
        "using",
        "while",
    }
)


class FunctionNameResolver:
    """Recover the nearest method declaration above a line.

    Lines in ``[max(1, line - window), line]`` are scanned from the hit
    upwards. A declaration is an access modifier followed by an identifier and
    an opening parenthesis. This is a lexical heuristic: it does not track
    braces, so a hit after the end of a method can still be attributed to it.
    """

    def __init__(self, window: int = DEFAULT_WINDOW) -> None:
        if window < 0:
            raise ValueError("window must not be negative")
        self.window = window

    def resolve(self, unit: SourceUnit, line_number: int) -> str:
        if not unit.lines:
            return UNKNOWN_FUNCTION

        end = min(line_number, len(unit))
        start = max(1, line_number - self.window)
        for number in range(end, start - 1, -1):
            name = self.declared_name(unit.line(number))
            if name is not None:
                return name
        return UNKNOWN_FUNCTION

    @staticmethod
    def declared_name(line: str) -> Optional[str]:
        """Return the method name declared on ``line``, if any.

        The text between the access modifier and the first ``(`` must not
        contain ``=`` (a field initializer or expression body). Generic
        argument lists are removed innermost first, and the identifier left at
        the end is the name.
        """

        modifier = _MODIFIER.search(line)
        if modifier is None:
            return None
        head, paren, _ = line[modifier.start() :].partition("(")
        if not paren or "=" in head:
            return None

        previous = None
        while previous != head:
            previous, head = head, _GENERIC_ARGUMENTS.sub("", head)

        match = _TRAILING_NAME.search(head)
        if match is None or match.group(1) in NOT_METHOD_NAMES:
            return None
        return match.group(1)
