"""
Accessor layer: one path segment against one record.

PropertyAccessor performs simple, indexed and keyed reads and writes,
dispatching on the record's variant tag:

- STRUCTURED: through the cached ShapeDescriptorSet of the record's class
- DYNAMIC: directly against the DynaRecord, whose class decides unknown names
- WRAPPED: forwarded to the STRUCTURED path with the wrapped instance
- MAPPING: plain mappings, names are keys

Failures are classified (UnknownAttributeError, NotIndexedError,
NotKeyedError, IndexRangeError, NotWritableError) so callers can apply
policies without inspecting messages.

Writes pass values through the converter when the declared type (element
type for indexed/keyed writes) is a class the value is not an instance of.
"""

import logging
import operator
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Callable, Optional

from recordpath.descriptor_cache import DescriptorCache
from recordpath.descriptors import (
    AttributeDescriptor, concrete_class, is_mapping_value, is_sequence_value, resolve_accessor,
)
from recordpath.errors import (
    AccessError, IndexRangeError, NotIndexedError, NotKeyedError, NotWritableError,
    TypeConversionError, UnknownAttributeError,
)
from recordpath.path import AccessKind, PathSegment
from recordpath.variant import RecordVariant, variant_of

logger = logging.getLogger(__name__)

Converter = Callable[[Any, type], Any]


class PropertyAccessor:
    """Performs single-segment reads and writes for every record variant."""

    def __init__(self, cache: DescriptorCache, converter: Optional[Converter] = None):
        self._cache = cache
        self._converter = converter

    @property
    def cache(self) -> DescriptorCache:
        return self._cache

    # =========================================================================
    # SEGMENT DISPATCH
    # =========================================================================

    def read(self, record: Any, segment: PathSegment) -> Any:
        if segment.kind is AccessKind.INDEXED:
            return self.read_indexed(record, segment.name, segment.index)
        if segment.kind is AccessKind.KEYED:
            return self.read_keyed(record, segment.name, segment.key)
        return self.read_simple(record, segment.name)

    def write(self, record: Any, segment: PathSegment, value: Any) -> None:
        if segment.kind is AccessKind.INDEXED:
            self.write_indexed(record, segment.name, segment.index, value)
        elif segment.kind is AccessKind.KEYED:
            self.write_keyed(record, segment.name, segment.key, value)
        else:
            self.write_simple(record, segment.name, value)

    def descriptor_for(self, record: Any, name: str) -> Optional[AttributeDescriptor]:
        """Descriptor of name on record, or None if the variant has no declaration."""
        variant = variant_of(record)
        if variant is RecordVariant.WRAPPED:
            record, variant = record.instance, RecordVariant.STRUCTURED
        if variant is RecordVariant.STRUCTURED:
            return self._cache.get_attributes(type(record)).get(name)
        if variant is RecordVariant.DYNAMIC:
            return record.dyna_class.get_attribute(name)
        return None

    # =========================================================================
    # READS
    # =========================================================================

    def read_simple(self, record: Any, name: str) -> Any:
        variant, record = self._unwrap(record)
        if variant is RecordVariant.DYNAMIC or variant is RecordVariant.MAPPING:
            return record.get(name)
        descriptor = self._structured_descriptor(record, name)
        return self._call_getter(record, descriptor)

    def read_indexed(self, record: Any, name: str, index: int) -> Any:
        variant, record = self._unwrap(record)
        self._check_index(record, name, index)
        if variant is RecordVariant.DYNAMIC:
            return record.get_indexed(name, index)
        if variant is RecordVariant.MAPPING:
            return self._index_into(record.get(name), name, index, type(record))

        descriptor = self._structured_descriptor(record, name)
        shape = type(record)
        getter = resolve_accessor(descriptor.indexed_getter, shape)
        if getter is not None:
            try:
                return getter(record, index)
            except IndexError as exc:
                if isinstance(exc, AccessError):
                    raise
                raise IndexRangeError(name, index, shape=shape) from exc
        if descriptor.getter is None:
            if descriptor.keyed_getter is not None:
                raise NotIndexedError(name, shape, index)
            raise UnknownAttributeError(name, shape, "no readable accessor for")
        return self._index_into(self._call_getter(record, descriptor), name, index, shape)

    def read_keyed(self, record: Any, name: str, key: str) -> Any:
        variant, record = self._unwrap(record)
        if variant is RecordVariant.DYNAMIC:
            return record.get_keyed(name, key)
        if variant is RecordVariant.MAPPING:
            return self._key_into(record.get(name), name, key, type(record))

        descriptor = self._structured_descriptor(record, name)
        shape = type(record)
        getter = resolve_accessor(descriptor.keyed_getter, shape)
        if getter is not None:
            try:
                return getter(record, key)
            except KeyError:
                return None
        if descriptor.getter is None:
            if descriptor.indexed_getter is not None:
                raise NotKeyedError(name, shape, key)
            raise UnknownAttributeError(name, shape, "no readable accessor for")
        return self._key_into(self._call_getter(record, descriptor), name, key, shape)

    # =========================================================================
    # WRITES
    # =========================================================================

    def write_simple(self, record: Any, name: str, value: Any) -> None:
        variant, record = self._unwrap(record)
        if variant is RecordVariant.DYNAMIC:
            declared = record.dyna_class.get_attribute(name)
            if declared is not None:
                value = self.coerce(value, declared.declared_type)
            record.set(name, value)
            return
        if variant is RecordVariant.MAPPING:
            if not isinstance(record, MutableMapping):
                raise NotWritableError(name, type(record))
            record[name] = value
            return

        shape = type(record)
        attributes = self._cache.get_attributes(shape)
        descriptor = attributes.get(name)
        if descriptor is None:
            raise UnknownAttributeError(name, shape)
        setter = attributes.write_method(name)
        if setter is None:
            raise NotWritableError(name, shape)
        setter(record, self.coerce(value, descriptor.declared_type))

    def write_indexed(self, record: Any, name: str, index: int, value: Any) -> None:
        variant, record = self._unwrap(record)
        self._check_index(record, name, index)
        if variant is RecordVariant.DYNAMIC:
            declared = record.dyna_class.get_attribute(name)
            if declared is not None:
                value = self.coerce(value, declared.content_type)
            record.set_indexed(name, index, value)
            return
        if variant is RecordVariant.MAPPING:
            self._assign_index(record.get(name), name, index, value, type(record))
            return

        descriptor = self._structured_descriptor(record, name)
        shape = type(record)
        value = self.coerce(value, descriptor.content_type)
        setter = resolve_accessor(descriptor.indexed_setter, shape)
        if setter is not None:
            try:
                setter(record, index, value)
            except IndexError as exc:
                if isinstance(exc, AccessError):
                    raise
                raise IndexRangeError(name, index, shape=shape) from exc
            return
        if descriptor.getter is None:
            if descriptor.keyed_getter is not None or descriptor.keyed_setter is not None:
                raise NotIndexedError(name, shape, index)
            raise NotWritableError(name, shape)
        self._assign_index(self._call_getter(record, descriptor), name, index, value, shape)

    def write_keyed(self, record: Any, name: str, key: str, value: Any) -> None:
        variant, record = self._unwrap(record)
        if variant is RecordVariant.DYNAMIC:
            declared = record.dyna_class.get_attribute(name)
            if declared is not None:
                value = self.coerce(value, declared.content_type)
            record.set_keyed(name, key, value)
            return
        if variant is RecordVariant.MAPPING:
            container = record.get(name)
            if container is None and isinstance(record, MutableMapping):
                record[name] = {key: value}
                return
            self._assign_key(container, name, key, value, type(record))
            return

        descriptor = self._structured_descriptor(record, name)
        shape = type(record)
        value = self.coerce(value, descriptor.content_type)
        setter = resolve_accessor(descriptor.keyed_setter, shape)
        if setter is not None:
            setter(record, key, value)
            return
        if descriptor.getter is None:
            if descriptor.indexed_getter is not None or descriptor.indexed_setter is not None:
                raise NotKeyedError(name, shape, key)
            raise NotWritableError(name, shape)

        container = self._call_getter(record, descriptor)
        if container is None and descriptor.is_keyed:
            simple_setter = self._cache.get_attributes(shape).write_method(name)
            if simple_setter is None:
                raise NotWritableError(name, shape)
            simple_setter(record, {key: value})
            return
        self._assign_key(container, name, key, value, shape)

    # =========================================================================
    # CONVERSION
    # =========================================================================

    def coerce(self, value: Any, declared_type: Any) -> Any:
        """Convert value to declared_type when it is not already an instance."""
        target = concrete_class(declared_type)
        if value is None or target is None or isinstance(value, target) or self._converter is None:
            return value
        try:
            converted = self._converter(value, target)
        except TypeConversionError:
            raise
        except (TypeError, ValueError) as exc:
            raise TypeConversionError(value, target, str(exc)) from exc
        logger.debug(f"Converted {value!r} to {target.__name__}")
        return converted

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _unwrap(record: Any):
        if record is None:
            raise ValueError("No record specified")
        variant = variant_of(record)
        if variant is RecordVariant.WRAPPED:
            return RecordVariant.STRUCTURED, record.instance
        return variant, record

    @staticmethod
    def _check_index(record: Any, name: str, index: int) -> None:
        # Negative indexes would wrap around inside user accessors
        if not isinstance(index, int) or index < 0:
            raise IndexRangeError(name, index, shape=type(record))

    def _structured_descriptor(self, record: Any, name: str) -> AttributeDescriptor:
        descriptor = self._cache.get_attributes(type(record)).get(name)
        if descriptor is None:
            raise UnknownAttributeError(name, type(record))
        return descriptor

    @staticmethod
    def _call_getter(record: Any, descriptor: AttributeDescriptor) -> Any:
        getter = descriptor.getter
        shape = type(record)
        if getter is None:
            raise UnknownAttributeError(descriptor.name, shape, "no simple getter for")
        try:
            return getter(record)
        except AttributeError as exc:
            # A declared plain attribute that was never assigned on this instance
            if isinstance(exc, AccessError) or not isinstance(getter, operator.attrgetter):
                raise
            raise UnknownAttributeError(descriptor.name, shape, "unset attribute") from exc

    @staticmethod
    def _index_into(container: Any, name: str, index: int, shape: Any) -> Any:
        if container is None:
            raise IndexRangeError(name, index, 0, shape)
        if not is_sequence_value(container):
            raise NotIndexedError(name, shape, index)
        if not 0 <= index < len(container):
            raise IndexRangeError(name, index, len(container), shape)
        return container[index]

    @staticmethod
    def _key_into(container: Any, name: str, key: str, shape: Any) -> Any:
        if container is None:
            return None
        if not is_mapping_value(container):
            raise NotKeyedError(name, shape, key)
        return container.get(key)

    @staticmethod
    def _assign_index(container: Any, name: str, index: int, value: Any, shape: Any) -> None:
        if container is None:
            raise IndexRangeError(name, index, 0, shape)
        if not is_sequence_value(container):
            raise NotIndexedError(name, shape, index)
        if not 0 <= index < len(container):
            raise IndexRangeError(name, index, len(container), shape)
        if not isinstance(container, MutableSequence):
            raise NotWritableError(name, shape)
        container[index] = value

    @staticmethod
    def _assign_key(container: Any, name: str, key: str, value: Any, shape: Any) -> None:
        if container is None or not is_mapping_value(container):
            raise NotKeyedError(name, shape, key)
        if not isinstance(container, MutableMapping):
            raise NotWritableError(name, shape)
        container[key] = value
