"""Locate throws clauses in Java source text.

The program model carries declaration lines but not character offsets. This
module finds the offsets the fix applier needs by scanning forward from the
declaration line to the method's parameter list and the clause after it.
"""

import re
from dataclasses import dataclass, field

from throwspec.models import Span

_THROWS_KEYWORD = re.compile(r"\s*throws\b")
_TYPE_NAME = re.compile(r"\s*([A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)")
_SEPARATOR = re.compile(r"\s*,")


@dataclass
class LocatedThrows:
    """Offsets of a throws clause and each of its entries."""

    clause: Span
    entries: list[tuple[str, Span]] = field(default_factory=list)


def line_offset(source: str, line: int) -> int:
    """Offset of the first character of a 1-based line."""
    if line <= 1:
        return 0
    offset = 0
    for _ in range(line - 1):
        next_newline = source.find("\n", offset)
        if next_newline == -1:
            return len(source)
        offset = next_newline + 1
    return offset


def _skip_literal(source: str, pos: int) -> int:
    """Return the offset just past the string or char literal starting at pos."""
    quote = source[pos]
    pos += 1
    while pos < len(source):
        ch = source[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == quote:
            return pos + 1
        pos += 1
    return pos


def _matching_paren(source: str, open_pos: int) -> int | None:
    depth = 0
    pos = open_pos
    while pos < len(source):
        ch = source[pos]
        if ch in "\"'":
            pos = _skip_literal(source, pos)
            continue
        if source.startswith("//", pos):
            end = source.find("\n", pos)
            pos = len(source) if end == -1 else end
            continue
        if source.startswith("/*", pos):
            end = source.find("*/", pos + 2)
            pos = len(source) if end == -1 else end + 2
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    return None


def _throws_entries(source: str, pos: int) -> list[tuple[str, Span]]:
    entries: list[tuple[str, Span]] = []
    while True:
        name = _TYPE_NAME.match(source, pos)
        if name is None:
            break
        text = re.sub(r"\s+", "", name.group(1))
        entries.append((text, Span(name.start(1), name.end(1))))
        pos = name.end()
        separator = _SEPARATOR.match(source, pos)
        if separator is None:
            break
        pos = separator.end()
    return entries


def locate_throws_clause(source: str, method_name: str, line: int) -> LocatedThrows | None:
    """Find the throws clause of the method declared at or after line.

    Occurrences of method_name whose parameter list is not followed by a
    throws clause (call sites, declarations without one) are passed over.
    Returns None when no declaration of method_name with a throws clause is
    found, in which case the finding is reported without an applicable fix.
    """
    declaration = re.compile(rf"\b{re.escape(method_name)}\s*\(")
    for match in declaration.finditer(source, line_offset(source, line)):
        close = _matching_paren(source, match.end() - 1)
        if close is None:
            return None

        keyword = _THROWS_KEYWORD.match(source, close + 1)
        if keyword is None:
            continue

        entries = _throws_entries(source, keyword.end())
        if entries:
            return LocatedThrows(clause=Span(close + 1, entries[-1][1].end), entries=entries)
    return None
