"""
Error taxonomy for property-path resolution.

Every failure is classified by cause so callers can react uniformly
(e.g. ignore missing attributes) without matching on message text:

- MalformedPathError: the path expression itself is invalid (parse time)
- AccessError subclasses: raised by the accessor layer for one segment
- NullInPathError: raised by the resolver when an intermediate value is None
- TypeConversionError: raised by the converter collaborator
- IllegalStateError: mutation of a restricted or fixed dynamic shape
"""

from typing import Any, Optional


class RecordPathError(Exception):
    """Base class for all recordpath errors."""


class MalformedPathError(RecordPathError, ValueError):
    """Path expression does not match the path grammar."""

    def __init__(self, path: str, reason: str, position: Optional[int] = None):
        self.path = path
        self.reason = reason
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Malformed property path {path!r}{where}: {reason}")


class AccessError(RecordPathError):
    """Base class for classified accessor-layer failures."""

    def __init__(self, message: str, name: str, shape: Any = None):
        # AttributeError.__init__ resets .name, so assign after it runs
        super().__init__(message)
        self.name = name
        self.shape = shape


def _shape_name(shape: Any) -> str:
    if shape is None:
        return "<unknown>"
    return getattr(shape, '__name__', None) or getattr(shape, 'name', None) or repr(shape)


class UnknownAttributeError(AccessError, AttributeError):
    """Attribute is not declared (or not readable) for the record's shape."""

    def __init__(self, name: str, shape: Any = None, detail: str = "unknown attribute"):
        super().__init__(f"{_shape_name(shape)}: {detail} '{name}'", name, shape)


class NotIndexedError(AccessError, TypeError):
    """Attribute exists but is not sequence-like."""

    def __init__(self, name: str, shape: Any = None, index: Optional[int] = None):
        self.index = index
        super().__init__(
            f"{_shape_name(shape)}: attribute '{name}' is not indexed (requested [{index}])",
            name, shape,
        )


class NotKeyedError(AccessError, TypeError):
    """Attribute exists but is not map-like."""

    def __init__(self, name: str, shape: Any = None, key: Optional[str] = None):
        self.key = key
        super().__init__(
            f"{_shape_name(shape)}: attribute '{name}' is not keyed (requested ({key}))",
            name, shape,
        )


class IndexRangeError(AccessError, IndexError):
    """Index lies outside the bounds of an indexed attribute."""

    def __init__(self, name: str, index: int, size: Optional[int] = None, shape: Any = None):
        self.index = index
        self.size = size
        bounds = f" (size {size})" if size is not None else ""
        super().__init__(
            f"{_shape_name(shape)}: index {index} out of range for '{name}'{bounds}",
            name, shape,
        )


class NotWritableError(AccessError, AttributeError):
    """Attribute is declared but has no usable writer."""

    def __init__(self, name: str, shape: Any = None):
        super().__init__(f"{_shape_name(shape)}: attribute '{name}' is not writable", name, shape)


class NullInPathError(RecordPathError):
    """An intermediate segment of a nested path resolved to None."""

    def __init__(self, path: str, segment: str):
        self.path = path
        self.segment = segment
        super().__init__(f"Null value for '{segment}' in property path {path!r}")


class TypeConversionError(RecordPathError, TypeError):
    """Value could not be converted to the target type."""

    def __init__(self, value: Any, target_type: Any, reason: Optional[str] = None):
        self.value = value
        self.target_type = target_type
        target = getattr(target_type, '__name__', repr(target_type))
        message = f"Cannot convert {value!r} ({type(value).__name__}) to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class IllegalStateError(RecordPathError, RuntimeError):
    """Attempted mutation of a restricted or fixed dynamic shape."""
