"""
Dynamic record model: runtime-defined record shapes and their instances.

- DynaClass: fixed shape; unknown attribute names are rejected
- LazyDynaClass: extensible shape; unknown names are registered on first
  write, can be restricted to stop accepting new names
- DynaRecord: attribute bag bound to one DynaClass for its lifetime

Attribute kinds follow the declared type: list/tuple-like types are indexed,
mapping types are keyed, everything else is simple.

    >>> person = DynaClass('Person', [('name', str), ('tags', list)]).new_instance()
    >>> person.set('name', 'Ada')
    >>> person.set_indexed('tags', 0, 'x')   # IndexRangeError: 'tags' is empty
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from recordpath.descriptors import (
    AttributeDescriptor, concrete_class, content_type_of, is_mapping_value, is_sequence_value,
)
from recordpath.errors import (
    IllegalStateError, IndexRangeError, NotIndexedError, NotKeyedError,
    NotWritableError, TypeConversionError, UnknownAttributeError,
)
from recordpath.variant import RecordVariant

logger = logging.getLogger(__name__)

AttributeSpec = Union[str, Tuple[str, Any], AttributeDescriptor]


def dyna_attribute(name: str, declared_type: Any = object, content_type: Any = None) -> AttributeDescriptor:
    """Descriptor for a dynamic attribute; dynamic attributes are always read/write."""
    if not name:
        raise ValueError("Attribute name is missing")
    if content_type is None:
        content_type = content_type_of(declared_type)
    return AttributeDescriptor(name=name, declared_type=declared_type, content_type=content_type)


def _to_descriptor(spec: AttributeSpec) -> AttributeDescriptor:
    if isinstance(spec, AttributeDescriptor):
        return spec
    if isinstance(spec, str):
        return dyna_attribute(spec)
    return dyna_attribute(*spec)


# =============================================================================
# RECORD BASE
# =============================================================================

class BaseDynaRecord(ABC):
    """Operations every dynamic record supports."""

    @property
    @abstractmethod
    def dyna_class(self) -> Any:
        """The record's shape."""

    @abstractmethod
    def get(self, name: str) -> Any: ...

    @abstractmethod
    def get_indexed(self, name: str, index: int) -> Any: ...

    @abstractmethod
    def get_keyed(self, name: str, key: str) -> Any: ...

    @abstractmethod
    def set(self, name: str, value: Any) -> None: ...

    @abstractmethod
    def set_indexed(self, name: str, index: int, value: Any) -> None: ...

    @abstractmethod
    def set_keyed(self, name: str, key: str, value: Any) -> None: ...


# =============================================================================
# SHAPES
# =============================================================================

class DynaClass:
    """Fixed dynamic record shape."""

    def __init__(self, name: str, attributes: Iterable[AttributeSpec] = ()):
        self.name = name or self.__class__.__name__
        self._attributes: Dict[str, AttributeDescriptor] = {}
        for spec in attributes:
            descriptor = _to_descriptor(spec)
            self._attributes[descriptor.name] = descriptor

    def new_instance(self) -> 'DynaRecord':
        return DynaRecord(self)

    def get_attribute(self, name: str) -> Optional[AttributeDescriptor]:
        """Declared descriptor for name, or None."""
        if not name:
            raise ValueError("Attribute name is missing")
        return self._attributes.get(name)

    def attributes(self) -> Tuple[AttributeDescriptor, ...]:
        """Snapshot of the declared attributes."""
        return tuple(self._attributes.values())

    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(self._attributes)

    @property
    def tolerates_unknown_reads(self) -> bool:
        """True if reading an undeclared name yields None instead of failing."""
        return False

    def register(self, name: str, declared_type: Any = object) -> AttributeDescriptor:
        """Declare name on first write; fixed shapes accept no new names."""
        raise UnknownAttributeError(name, self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {list(self._attributes)})"


class LazyDynaClass(DynaClass):
    """
    Extensible dynamic record shape.

    Args:
        name: Shape name
        attributes: Initially declared attributes
        return_none: Reading an undeclared name returns None (True) or
            raises UnknownAttributeError (False)

    Once restrict() is called the shape behaves like a fixed DynaClass:
    add/remove and writes to undeclared names raise IllegalStateError.
    """

    def __init__(self, name: Optional[str] = None, attributes: Iterable[AttributeSpec] = (),
                 return_none: bool = True):
        super().__init__(name, attributes)
        self.return_none = return_none
        self._restricted = False

    @property
    def restricted(self) -> bool:
        return self._restricted

    def restrict(self) -> None:
        self._restricted = True

    def unrestrict(self) -> None:
        self._restricted = False

    @property
    def tolerates_unknown_reads(self) -> bool:
        return self.return_none and not self._restricted

    def add(self, name: str, declared_type: Any = object, content_type: Any = None) -> AttributeDescriptor:
        """Declare an attribute; an already declared name is left unchanged."""
        if not name:
            raise ValueError("Attribute name is missing")
        if self._restricted:
            raise IllegalStateError(
                f"DynaClass '{self.name}' is restricted; attribute '{name}' cannot be added"
            )
        existing = self._attributes.get(name)
        if existing is not None:
            return existing
        descriptor = dyna_attribute(name, declared_type, content_type)
        self._attributes[name] = descriptor
        logger.debug(f"LazyDynaClass '{self.name}': registered '{name}' as {getattr(declared_type, '__name__', declared_type)}")
        return descriptor

    def remove(self, name: str) -> None:
        if not name:
            raise ValueError("Attribute name is missing")
        if self._restricted:
            raise IllegalStateError(
                f"DynaClass '{self.name}' is restricted; attribute '{name}' cannot be removed"
            )
        self._attributes.pop(name, None)

    def register(self, name: str, declared_type: Any = object) -> AttributeDescriptor:
        return self.add(name, declared_type)


# =============================================================================
# RECORD
# =============================================================================

class DynaRecord(BaseDynaRecord):
    """
    In-memory dynamic record. Not thread-safe.

    Unset declared attributes read as None. Values written through set() must
    be instances of the declared type (None always allowed); conversion is the
    caller's job, see PropertyAccessor.
    """

    __record_variant__ = RecordVariant.DYNAMIC

    def __init__(self, dyna_class: DynaClass):
        self._dyna_class = dyna_class
        self._values: Dict[str, Any] = {}

    @property
    def dyna_class(self) -> DynaClass:
        return self._dyna_class

    # ----- reads -----

    def get(self, name: str) -> Any:
        if self._read_descriptor(name) is None:
            return None
        return self._values.get(name)

    def get_indexed(self, name: str, index: int) -> Any:
        descriptor = self._read_descriptor(name)
        if descriptor is None:
            return None
        sequence = self._indexed_value(descriptor, index, create=False)
        if not 0 <= index < len(sequence):
            raise IndexRangeError(name, index, len(sequence), self._dyna_class)
        return sequence[index]

    def get_keyed(self, name: str, key: str) -> Any:
        descriptor = self._read_descriptor(name)
        if descriptor is None:
            return None
        return self._keyed_value(descriptor, key, create=False).get(key)

    def contains(self, name: str, key: str) -> bool:
        """True if keyed attribute name holds key."""
        value = self._values.get(name)
        return is_mapping_value(value) and key in value

    # ----- writes -----

    def set(self, name: str, value: Any) -> None:
        descriptor = self._write_descriptor(name, object)
        expected = concrete_class(descriptor.declared_type)
        if value is not None and expected is not None and not isinstance(value, expected):
            raise TypeConversionError(
                value, expected, f"attribute '{name}' of {self._dyna_class.name} is declared {expected.__name__}"
            )
        self._values[name] = value

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        if index < 0:
            raise IndexRangeError(name, index, shape=self._dyna_class)
        descriptor = self._write_descriptor(name, list)
        sequence = self._indexed_value(descriptor, index, create=True)
        if not isinstance(sequence, MutableSequence):
            raise NotWritableError(name, self._dyna_class)
        if index >= len(sequence) and isinstance(self._dyna_class, LazyDynaClass):
            sequence.extend([None] * (index + 1 - len(sequence)))
        if index >= len(sequence):
            raise IndexRangeError(name, index, len(sequence), self._dyna_class)
        sequence[index] = value
        # A list created for this write is only stored once the write succeeded
        self._values[name] = sequence

    def set_keyed(self, name: str, key: str, value: Any) -> None:
        descriptor = self._write_descriptor(name, dict)
        mapping = self._keyed_value(descriptor, key, create=True)
        if not isinstance(mapping, MutableMapping):
            raise NotWritableError(name, self._dyna_class)
        mapping[key] = value

    def remove(self, name: str, key: str) -> None:
        """Remove key from keyed attribute name, if present."""
        value = self._values.get(name)
        if value is None:
            return
        if not isinstance(value, MutableMapping):
            raise NotKeyedError(name, self._dyna_class, key)
        value.pop(key, None)

    # ----- helpers -----

    def _read_descriptor(self, name: str) -> Optional[AttributeDescriptor]:
        descriptor = self._dyna_class.get_attribute(name)
        if descriptor is None and not self._dyna_class.tolerates_unknown_reads:
            raise UnknownAttributeError(name, self._dyna_class)
        return descriptor

    def _write_descriptor(self, name: str, declared_type: Any) -> AttributeDescriptor:
        descriptor = self._dyna_class.get_attribute(name)
        if descriptor is None:
            descriptor = self._dyna_class.register(name, declared_type)
        return descriptor

    def _indexed_value(self, descriptor: AttributeDescriptor, index: int, create: bool):
        name = descriptor.name
        value = self._values.get(name)
        if value is None:
            if not descriptor.is_indexed:
                raise NotIndexedError(name, self._dyna_class, index)
            if not create:
                return ()
            value = []
        elif not is_sequence_value(value):
            raise NotIndexedError(name, self._dyna_class, index)
        return value

    def _keyed_value(self, descriptor: AttributeDescriptor, key: str, create: bool):
        name = descriptor.name
        value = self._values.get(name)
        if value is None:
            if not descriptor.is_keyed:
                raise NotKeyedError(name, self._dyna_class, key)
            if not create:
                return {}
            value = self._values[name] = {}
        elif not is_mapping_value(value):
            raise NotKeyedError(name, self._dyna_class, key)
        return value

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, DynaRecord):
            return NotImplemented
        return self._dyna_class is other._dyna_class and self._values == other._values

    __hash__ = None

    def __repr__(self) -> str:
        return f"DynaRecord({self._dyna_class.name!r}, {self._values!r})"
