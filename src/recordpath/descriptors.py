"""
Attribute descriptors and per-shape descriptor sets.

An AttributeDescriptor describes one accessible attribute of a record shape:
its declared type, element type (for indexed/keyed attributes), read/write
flags, and the accessor callables discovered when the shape was introspected.

Accessor callables all take the record as first argument:
- getter(record) / setter(record, value)
- indexed_getter(record, index) / indexed_setter(record, index, value)
- keyed_getter(record, key) / keyed_setter(record, key, value)

Setters backed by a method on the shape are held through a MethodRef so a
method replaced on the class after the descriptor was built can be found
again by name.
"""

import collections.abc
import inspect
import logging
import typing
import weakref
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Union, get_args, get_origin

logger = logging.getLogger(__name__)

_SEQUENCE_TYPES = (list, tuple, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_TYPES = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


# =============================================================================
# TYPE HELPERS
# =============================================================================

def unwrap_optional(hint: Any) -> Any:
    """Optional[X] -> X; anything else unchanged."""
    if get_origin(hint) is Union:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _origin_class(hint: Any) -> Optional[type]:
    hint = unwrap_optional(hint)
    origin = get_origin(hint) or hint
    return origin if isinstance(origin, type) else None


def is_sequence_type(hint: Any) -> bool:
    """True for list/tuple-like type hints (str and bytes excluded)."""
    origin = _origin_class(hint)
    if origin is None or issubclass(origin, (str, bytes, bytearray)):
        return False
    return any(issubclass(origin, t) for t in _SEQUENCE_TYPES)


def is_mapping_type(hint: Any) -> bool:
    origin = _origin_class(hint)
    return origin is not None and any(issubclass(origin, t) for t in _MAPPING_TYPES)


def content_type_of(hint: Any) -> Optional[Any]:
    """Element type of list[X] / value type of dict[K, X], else None."""
    hint = unwrap_optional(hint)
    args = get_args(hint)
    if is_sequence_type(hint) and args:
        return args[0]
    if is_mapping_type(hint) and len(args) == 2:
        return args[1]
    return None


def is_sequence_value(value: Any) -> bool:
    return isinstance(value, collections.abc.Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_mapping_value(value: Any) -> bool:
    return isinstance(value, collections.abc.Mapping)


def concrete_class(hint: Any) -> Optional[type]:
    """Class a value must be an instance of to match hint, if one exists."""
    hint = unwrap_optional(hint)
    if hint is Any or hint is object:
        return None
    if isinstance(hint, type):
        return hint
    return _origin_class(hint)


# =============================================================================
# METHOD REFERENCES
# =============================================================================

class MethodRef:
    """
    Weak reference to a method found on a shape, recoverable by name.

    Calling resolve(shape) returns the referenced function while it is alive.
    Once it has been collected (the class attribute was replaced or deleted),
    the method is looked up again on the shape by name, positional parameter
    count and value parameter type. None means no matching method exists any
    more.
    """

    def __init__(self, function: Callable, name: str, arity: int, value_type: Any = None):
        self._ref = weakref.ref(function)
        self.name = name
        self.arity = arity
        self.value_type = value_type if value_type is not None else value_annotation(function)

    def resolve(self, shape: type) -> Optional[Callable]:
        function = self._ref()
        if function is not None:
            return function

        candidate = getattr(shape, self.name, None)
        if candidate is None or not callable(candidate):
            logger.debug(f"Stale setter {shape.__name__}.{self.name}: no replacement found")
            return None
        if positional_arity(candidate) != self.arity:
            logger.debug(f"Stale setter {shape.__name__}.{self.name}: replacement has wrong signature")
            return None
        replacement_type = value_annotation(candidate)
        if self.value_type is not None and replacement_type is not None and replacement_type != self.value_type:
            logger.debug(f"Stale setter {shape.__name__}.{self.name}: replacement takes {replacement_type!r}")
            return None

        logger.debug(f"Stale setter {shape.__name__}.{self.name}: re-resolved by name")
        return candidate

    def __repr__(self) -> str:
        state = "alive" if self._ref() is not None else "stale"
        return f"MethodRef({self.name!r}, arity={self.arity}, {state})"


def function_hints(function: Callable) -> Dict[str, Any]:
    """Resolved annotations of a function, raw annotations if resolution fails."""
    try:
        return typing.get_type_hints(function)
    except (NameError, TypeError, AttributeError):
        return dict(getattr(function, '__annotations__', {}))


def value_annotation(function: Callable) -> Any:
    """Annotation of the last positional parameter (the written value), or None."""
    try:
        params = [
            p for p in inspect.signature(function).parameters.values()
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
    except (TypeError, ValueError):
        return None
    if len(params) < 2:
        return None
    return function_hints(function).get(params[-1].name)


def positional_arity(function: Callable) -> int:
    """Number of positional parameters (including self) of a function."""
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return -1
    return sum(
        1 for p in signature.parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    )


Accessor = Union[Callable[..., Any], MethodRef, None]


# =============================================================================
# DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class AttributeDescriptor:
    """One accessible attribute of a record shape. Immutable."""
    name: str
    declared_type: Any = object
    content_type: Any = None
    readable: bool = True
    writable: bool = True
    getter: Accessor = field(default=None, compare=False, repr=False)
    setter: Accessor = field(default=None, compare=False, repr=False)
    indexed_getter: Accessor = field(default=None, compare=False, repr=False)
    indexed_setter: Accessor = field(default=None, compare=False, repr=False)
    keyed_getter: Accessor = field(default=None, compare=False, repr=False)
    keyed_setter: Accessor = field(default=None, compare=False, repr=False)

    @property
    def is_indexed(self) -> bool:
        if self.indexed_getter is not None or self.indexed_setter is not None:
            return True
        return is_sequence_type(self.declared_type)

    @property
    def is_keyed(self) -> bool:
        if self.keyed_getter is not None or self.keyed_setter is not None:
            return True
        return is_mapping_type(self.declared_type)

    def with_changes(self, **changes) -> 'AttributeDescriptor':
        """Copy with some fields replaced; the original is left untouched."""
        return replace(self, **changes)


def resolve_accessor(accessor: Accessor, shape: type) -> Optional[Callable]:
    if isinstance(accessor, MethodRef):
        return accessor.resolve(shape)
    return accessor


class ShapeDescriptorSet(collections.abc.Mapping):
    """
    Ordered, name-unique, read-only collection of descriptors for one shape.

    Instances are published by the DescriptorCache and never mutated
    afterwards; build a new set with from_descriptors() instead.
    """

    def __init__(self, shape: Any, descriptors: Mapping[str, AttributeDescriptor]):
        self._shape = shape
        self._descriptors = MappingProxyType(dict(descriptors))

    @classmethod
    def from_descriptors(cls, shape: Any, descriptors) -> 'ShapeDescriptorSet':
        ordered: Dict[str, AttributeDescriptor] = {}
        for descriptor in descriptors:
            # Re-adding a name replaces it in place
            ordered[descriptor.name] = descriptor
        return cls(shape, ordered)

    @property
    def shape(self) -> Any:
        return self._shape

    def __getitem__(self, name: str) -> AttributeDescriptor:
        return self._descriptors[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptors(self) -> Tuple[AttributeDescriptor, ...]:
        return tuple(self._descriptors.values())

    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(self._descriptors)

    def write_method(self, name: str) -> Optional[Callable]:
        """Setter for a simple attribute, recovering stale method references."""
        descriptor = self._descriptors.get(name)
        if descriptor is None or not descriptor.writable:
            return None
        return resolve_accessor(descriptor.setter, self._shape)

    def __repr__(self) -> str:
        shape_name = getattr(self._shape, '__name__', repr(self._shape))
        return f"ShapeDescriptorSet({shape_name}, {list(self._descriptors)})"
