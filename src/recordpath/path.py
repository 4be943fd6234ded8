"""
Property path parser.

A path is a dot-separated list of segments. Each segment is a name with an
optional access suffix:

    name            simple attribute
    name[3]         indexed attribute (non-negative integer literal)
    name(some key)  keyed attribute (any text without ')')

Examples:
    >>> parse("address.city")
    (PathSegment(name='address', ...), PathSegment(name='city', ...))
    >>> str(parse("headers(Content-Type)")[0])
    'headers(Content-Type)'

Keys have no escape syntax, so a key can never contain ')'. A key may
contain '.', '[' and '(' since everything up to the closing ')' belongs to it.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from recordpath.errors import MalformedPathError

NESTED = '.'
INDEXED_START = '['
INDEXED_END = ']'
KEYED_START = '('
KEYED_END = ')'

# name, then an optional [digits] or (key) suffix; anchored with .match(pos)
_SEGMENT_RE = re.compile(r"([^.\[\]()]+)(?:\[([^\]]*)\]|\(([^)]*)\))?")
_DIGITS_RE = re.compile(r"[0-9]+")


class AccessKind(Enum):
    """How a segment addresses its attribute."""
    SIMPLE = "simple"
    INDEXED = "indexed"
    KEYED = "keyed"


@dataclass(frozen=True)
class PathSegment:
    """One `name`, `name[index]` or `name(key)` unit of a property path."""
    name: str
    kind: AccessKind = AccessKind.SIMPLE
    index: Optional[int] = None
    key: Optional[str] = None

    def __post_init__(self):
        if self.kind is AccessKind.INDEXED and (self.index is None or self.index < 0):
            raise ValueError(f"Indexed segment '{self.name}' needs a non-negative index, got {self.index!r}")

    @classmethod
    def simple(cls, name: str) -> 'PathSegment':
        return cls(name)

    @classmethod
    def indexed(cls, name: str, index: int) -> 'PathSegment':
        return cls(name, AccessKind.INDEXED, index=index)

    @classmethod
    def keyed(cls, name: str, key: str) -> 'PathSegment':
        return cls(name, AccessKind.KEYED, key=key)

    def __str__(self) -> str:
        if self.kind is AccessKind.INDEXED:
            return f"{self.name}{INDEXED_START}{self.index}{INDEXED_END}"
        if self.kind is AccessKind.KEYED:
            return f"{self.name}{KEYED_START}{self.key}{KEYED_END}"
        return self.name


def parse(path: str) -> Tuple[PathSegment, ...]:
    """
    Tokenize a property path into segments.

    Args:
        path: Path expression, e.g. 'orders[0].lines(sku).qty'

    Returns:
        Non-empty tuple of PathSegment in nesting order

    Raises:
        MalformedPathError: empty names, stray or doubled dots, unbalanced
            brackets/parens, missing or non-numeric index digits, or text
            following an access suffix
    """
    if not isinstance(path, str):
        raise TypeError(f"Property path must be a string, got {type(path).__name__}")
    if not path:
        raise MalformedPathError(path, "empty path")

    segments = []
    pos = 0
    end = len(path)
    while True:
        match = _SEGMENT_RE.match(path, pos)
        if match is None:
            raise MalformedPathError(path, _describe_failure(path, pos), pos)

        name, index_text, key = match.group(1), match.group(2), match.group(3)
        if index_text is not None:
            if not _DIGITS_RE.fullmatch(index_text):
                reason = "missing index value" if not index_text else f"invalid index {index_text!r}"
                raise MalformedPathError(path, reason, match.start(2))
            segments.append(PathSegment.indexed(name, int(index_text)))
        elif key is not None:
            segments.append(PathSegment.keyed(name, key))
        else:
            segments.append(PathSegment.simple(name))

        pos = match.end()
        if pos == end:
            return tuple(segments)
        if path[pos] != NESTED:
            raise MalformedPathError(path, _describe_failure(path, pos), pos)
        pos += 1
        if pos == end:
            raise MalformedPathError(path, "trailing '.'", pos - 1)


def _describe_failure(path: str, pos: int) -> str:
    """Explain why no segment could be matched at pos."""
    if pos >= len(path):
        return "unexpected end of path"
    char = path[pos]
    if char == NESTED:
        return "empty segment name"
    if char == INDEXED_START:
        if INDEXED_END not in path[pos:]:
            return "missing ']'"
        return "empty segment name"
    if char == KEYED_START:
        if KEYED_END not in path[pos:]:
            return "missing ')'"
        return "empty segment name"
    if char in (INDEXED_END, KEYED_END):
        return f"unbalanced {char!r}"
    return f"unexpected character {char!r}"


def format_path(segments: Iterable[PathSegment]) -> str:
    """Render segments back to their canonical path text."""
    return NESTED.join(str(segment) for segment in segments)
