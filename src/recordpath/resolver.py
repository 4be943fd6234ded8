"""
Path resolver: walks a parsed property path from a root record.

Every segment but the last is read to reach the next record; the last
segment is read or written depending on the mode:

    resolver.resolve(order, 'customer.address.city')                 # read
    resolver.resolve(order, 'customer.address.city', Write('Oslo'))  # write

A None intermediate raises NullInPathError unless tolerate_none is set, in
which case a read returns None and a write does nothing. Accessor errors
propagate unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence, Tuple, Union

from recordpath.accessors import PropertyAccessor
from recordpath.errors import NullInPathError
from recordpath.path import PathSegment, format_path, parse

logger = logging.getLogger(__name__)


class _ReadMode:
    """Marker for read resolution. Use the READ singleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'READ'


READ = _ReadMode()


@dataclass(frozen=True)
class Write:
    """Write mode carrying the value to store at the terminal segment."""
    value: Any


Mode = Union[_ReadMode, Write]
PathLike = Union[str, Sequence[PathSegment]]


def as_segments(path: PathLike) -> Tuple[PathSegment, ...]:
    """Parse a path string; pre-parsed segment sequences pass through."""
    if isinstance(path, str):
        return parse(path)
    segments = tuple(path)
    if not segments:
        raise ValueError("Property path has no segments")
    for segment in segments:
        if not isinstance(segment, PathSegment):
            raise TypeError(f"Expected PathSegment, got {type(segment).__name__}")
    return segments


class PathResolver:
    """Resolves property paths against records through a PropertyAccessor."""

    def __init__(self, accessor: PropertyAccessor):
        self._accessor = accessor

    @property
    def accessor(self) -> PropertyAccessor:
        return self._accessor

    def resolve(self, root: Any, path: PathLike, mode: Mode = READ, tolerate_none: bool = False) -> Any:
        """
        Read or write the property at path.

        Args:
            root: Record the path starts from (must not be None)
            path: Path text or pre-parsed segments
            mode: READ or Write(value)
            tolerate_none: Treat a None intermediate as an absent result
                instead of an error

        Returns:
            The terminal value for READ, None for Write

        Raises:
            ValueError: root is None
            MalformedPathError: path text does not parse
            NullInPathError: an intermediate value is None and tolerate_none is False
            AccessError: classified failure of a single segment
        """
        if root is None:
            raise ValueError("No root record specified")
        if mode is not READ and not isinstance(mode, Write):
            raise TypeError(f"Mode must be READ or Write(value), got {mode!r}")

        segments = as_segments(path)
        record = self.walk(root, segments[:-1], segments, tolerate_none)
        if record is None:
            return None

        terminal = segments[-1]
        if isinstance(mode, Write):
            self._accessor.write(record, terminal, mode.value)
            return None
        return self._accessor.read(record, terminal)

    def walk(self, root: Any, intermediates: Sequence[PathSegment],
             segments: Sequence[PathSegment] = (), tolerate_none: bool = False) -> Any:
        """
        Read each intermediate segment in turn and return the record reached.

        Returns None only when tolerate_none is set and a value was None.
        """
        if root is None:
            raise ValueError("No root record specified")
        record = root
        for segment in intermediates:
            record = self._accessor.read(record, segment)
            if record is None:
                full_path = format_path(segments or intermediates)
                if tolerate_none:
                    logger.debug(f"Null value for '{segment}' in '{full_path}'; tolerated")
                    return None
                raise NullInPathError(full_path, str(segment))
        return record
