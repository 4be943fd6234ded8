"""
Wrapped-object adapter: a structured object presented as a dynamic record.

    record = WrapDynaRecord(customer)
    record.get('name')
    record.set_keyed('contacts', 'email', 'ada@example.org')

All six operations are forwarded to the structured accessor path of the
wrapped instance, so the adapter sees exactly the attributes the descriptor
cache publishes for the instance's class.
"""

import logging
from typing import Any, Optional, Tuple

from recordpath.context import ResolverContext, current_context
from recordpath.descriptors import AttributeDescriptor, ShapeDescriptorSet
from recordpath.dyna import BaseDynaRecord
from recordpath.errors import UnknownAttributeError
from recordpath.variant import RecordVariant

logger = logging.getLogger(__name__)


class WrapDynaClass:
    """Dyna-class view of a structured class's published descriptor set."""

    def __init__(self, shape: type, context: ResolverContext):
        if not isinstance(shape, type):
            raise TypeError(f"Wrapped shape must be a class, got {type(shape).__name__}")
        self._shape = shape
        self._context = context

    @classmethod
    def for_type(cls, shape: type, context: Optional[ResolverContext] = None) -> 'WrapDynaClass':
        return cls(shape, context if context is not None else current_context())

    @property
    def name(self) -> str:
        return self._shape.__name__

    @property
    def shape(self) -> type:
        return self._shape

    @property
    def descriptor_set(self) -> ShapeDescriptorSet:
        return self._context.get_attributes(self._shape)

    def attribute_names(self) -> Tuple[str, ...]:
        return self.descriptor_set.attribute_names()

    def attributes(self) -> Tuple[AttributeDescriptor, ...]:
        return self.descriptor_set.descriptors()

    def get_attribute(self, name: str) -> Optional[AttributeDescriptor]:
        if not name:
            raise ValueError("Attribute name is missing")
        return self.descriptor_set.get(name)

    @property
    def tolerates_unknown_reads(self) -> bool:
        return False

    def register(self, name: str, declared_type: Any = object) -> AttributeDescriptor:
        raise UnknownAttributeError(name, self._shape)

    def new_instance(self) -> 'WrapDynaRecord':
        """Instantiate the wrapped class with no arguments and wrap it."""
        instance = self._shape()
        logger.debug(f"WrapDynaClass({self.name}): new wrapped instance")
        return WrapDynaRecord(instance, self._context)

    def __repr__(self) -> str:
        return f"WrapDynaClass({self.name})"


class WrapDynaRecord(BaseDynaRecord):
    """Dynamic-record view over one structured instance."""

    __record_variant__ = RecordVariant.WRAPPED

    def __init__(self, instance: Any, context: Optional[ResolverContext] = None):
        if instance is None:
            raise ValueError("No instance to wrap")
        self._instance = instance
        self._context = context if context is not None else current_context()

    @property
    def instance(self) -> Any:
        return self._instance

    @property
    def dyna_class(self) -> WrapDynaClass:
        return WrapDynaClass(type(self._instance), self._context)

    def get(self, name: str) -> Any:
        return self._context.accessor.read_simple(self, name)

    def get_indexed(self, name: str, index: int) -> Any:
        return self._context.accessor.read_indexed(self, name, index)

    def get_keyed(self, name: str, key: str) -> Any:
        return self._context.accessor.read_keyed(self, name, key)

    def set(self, name: str, value: Any) -> None:
        self._context.accessor.write_simple(self, name, value)

    def set_indexed(self, name: str, index: int, value: Any) -> None:
        self._context.accessor.write_indexed(self, name, index, value)

    def set_keyed(self, name: str, key: str, value: Any) -> None:
        self._context.accessor.write_keyed(self, name, key, value)

    def __repr__(self) -> str:
        return f"WrapDynaRecord({self._instance!r})"
