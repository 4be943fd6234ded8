"""
Discovery pipeline: ordered stages that edit a shape's attribute set.

The DescriptorCache seeds a DiscoveryContext with a shape's intrinsic
attributes, then hands the context to each stage in order. Stages add,
remove or query attributes in the context's staging buffer; the published
ShapeDescriptorSet is only built after the last stage has run.

Stages hold configuration only and no per-shape state, so one stage
instance can be reused for every shape a cache builds.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from recordpath.descriptors import (
    AttributeDescriptor, MethodRef, ShapeDescriptorSet, function_hints, positional_arity,
)

logger = logging.getLogger(__name__)


class DiscoveryContext:
    """Mutable staging buffer for one shape's attribute set."""

    def __init__(self, shape: Any, descriptors: Iterable[AttributeDescriptor] = ()):
        self._shape = shape
        self._staging: Dict[str, AttributeDescriptor] = {}
        for descriptor in descriptors:
            self._staging[descriptor.name] = descriptor

    @property
    def shape(self) -> Any:
        return self._shape

    def add_attribute(self, descriptor: AttributeDescriptor) -> None:
        """Add a descriptor, replacing any existing one with the same name."""
        if not descriptor.name:
            raise ValueError("Attribute descriptor has no name")
        self._staging[descriptor.name] = descriptor

    def add_attributes(self, descriptors: Iterable[AttributeDescriptor]) -> None:
        for descriptor in descriptors:
            self.add_attribute(descriptor)

    def remove_attribute(self, name: str) -> None:
        """Remove a descriptor by name; unknown names are ignored."""
        self._staging.pop(name, None)

    def has_attribute(self, name: str) -> bool:
        return name in self._staging

    def get_attribute(self, name: str) -> Optional[AttributeDescriptor]:
        return self._staging.get(name)

    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(self._staging)

    def publish(self) -> ShapeDescriptorSet:
        """Freeze the staging buffer into a read-only descriptor set."""
        return ShapeDescriptorSet(self._shape, self._staging)


class DiscoveryStage(ABC):
    """One pluggable step of the discovery pipeline."""

    @abstractmethod
    def discover(self, context: DiscoveryContext) -> None:
        """Edit the attribute set in context."""


class SuppressAttributes(DiscoveryStage):
    """
    Hide a fixed set of attribute names from every built shape.

    Usage:
        context.add_stage(SuppressAttributes({'password', 'secret_key'}))
    """

    def __init__(self, names: Iterable[str]):
        if names is None or isinstance(names, str):
            raise TypeError("SuppressAttributes expects a collection of attribute names")
        self._names = frozenset(names)

    @property
    def suppressed(self) -> frozenset:
        return self._names

    def discover(self, context: DiscoveryContext) -> None:
        for name in self._names:
            context.remove_attribute(name)

    def __repr__(self) -> str:
        return f"SuppressAttributes({sorted(self._names)})"


class FluentSetterDiscovery(DiscoveryStage):
    """
    Register setters that return the record itself.

    Fluent setters support call chaining at the record's own call sites:

        class Query:
            def set_limit(self, limit: int) -> 'Query':
                self._limit = limit
                return self

    Intrinsic introspection only accepts setters returning None, so
    set_limit would otherwise be invisible. This stage adds `limit` as a
    writable attribute (write-only if no getter exists) or attaches the
    setter to an existing attribute that has no writer.
    """

    DEFAULT_PREFIX = 'set_'

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        if not prefix:
            raise ValueError("Prefix for fluent setters must not be empty")
        self._prefix = prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def discover(self, context: DiscoveryContext) -> None:
        shape = context.shape
        if not isinstance(shape, type):
            return
        for method_name, function in self._candidate_methods(shape):
            name = self._attribute_name(method_name)
            existing = context.get_attribute(name)
            value_type = self._value_type(function)
            setter = MethodRef(function, method_name, 2, None if value_type is object else value_type)
            if existing is None:
                context.add_attribute(AttributeDescriptor(
                    name=name,
                    declared_type=value_type,
                    readable=False,
                    writable=True,
                    setter=setter,
                ))
                logger.debug(f"Fluent setter {shape.__name__}.{method_name} -> new attribute '{name}'")
            elif existing.setter is None:
                context.add_attribute(existing.with_changes(setter=setter, writable=True))
                logger.debug(f"Fluent setter {shape.__name__}.{method_name} -> writer for '{name}'")

    def _candidate_methods(self, shape: type) -> List[Tuple[str, Callable]]:
        members: Dict[str, Any] = {}
        for klass in reversed(shape.__mro__):
            if klass is not object:
                members.update(vars(klass))
        return [
            (method_name, member) for method_name, member in members.items()
            if inspect.isfunction(member)
            and method_name.startswith(self._prefix)
            and len(method_name) > len(self._prefix)
            and positional_arity(member) == 2
        ]

    def _attribute_name(self, method_name: str) -> str:
        return method_name[len(self._prefix):]

    @staticmethod
    def _value_type(function: Callable) -> Any:
        params = list(inspect.signature(function).parameters.values())
        return function_hints(function).get(params[1].name, object)

    def __repr__(self) -> str:
        return f"FluentSetterDiscovery(prefix={self._prefix!r})"


class DiscoveryPipeline:
    """
    Ordered list of discovery stages with a configuration version.

    The version changes whenever the stage list changes, which is how the
    DescriptorCache knows earlier results no longer apply. Configure the
    pipeline before sharing its cache across threads; mutation is not
    synchronized with lookups.
    """

    def __init__(self, stages: Iterable[DiscoveryStage] = ()):
        self._stages: List[DiscoveryStage] = []
        self._version = 0
        for stage in stages:
            self.add_stage(stage)

    @property
    def version(self) -> int:
        return self._version

    @property
    def stages(self) -> Tuple[DiscoveryStage, ...]:
        return tuple(self._stages)

    def add_stage(self, stage: DiscoveryStage) -> None:
        if not isinstance(stage, DiscoveryStage):
            raise TypeError(f"Expected a DiscoveryStage, got {type(stage).__name__}")
        self._stages.append(stage)
        self._version += 1

    def remove_stage(self, stage: DiscoveryStage) -> bool:
        """Remove a stage; returns False if it was not configured."""
        if stage not in self._stages:
            return False
        self._stages.remove(stage)
        self._version += 1
        return True

    def reset(self) -> None:
        """Remove all stages."""
        self._stages.clear()
        self._version += 1

    def run(self, context: DiscoveryContext) -> None:
        """Run every stage over context; stage errors propagate."""
        for stage in self._stages:
            stage.discover(context)

    def __len__(self) -> int:
        return len(self._stages)
