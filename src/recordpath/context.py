"""
Resolver configuration and context scoping.

A ResolverContext bundles one discovery pipeline, the descriptor cache built
on it, the accessor layer and the path resolver, and offers the bulk
operations callers normally need:

    context = ResolverContext([SuppressAttributes({'password'})])
    context.get_property(order, 'customer.address.city')
    context.set_property(order, 'items[0].qty', '3')     # converted to int
    context.populate(order, {'note': 'gift', 'meta(channel)': 'web'})

Scoping follows the contextvars pattern:

- get_default_context(): process-wide context, created lazily
- set_default_context(): replace the process-wide context
- use_context(ctx): make ctx current for a with-block
- current_context(): innermost use_context() scope, else the default

The module-level functions at the bottom operate on current_context().
"""

import contextvars
import logging
import threading
from collections.abc import MutableMapping
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Mapping, Optional

from recordpath.accessors import Converter, PropertyAccessor
from recordpath.conversion import default_convert
from recordpath.descriptor_cache import DescriptorCache
from recordpath.descriptors import AttributeDescriptor, ShapeDescriptorSet, resolve_accessor
from recordpath.discovery import DiscoveryPipeline, DiscoveryStage
from recordpath.dyna import LazyDynaClass
from recordpath.errors import AccessError, NullInPathError, UnknownAttributeError
from recordpath.path import AccessKind, PathSegment
from recordpath.resolver import READ, PathLike, PathResolver, Write, as_segments
from recordpath.variant import RecordVariant, variant_of

logger = logging.getLogger(__name__)


class ResolverContext:
    """
    Explicit configuration object for property-path resolution.

    Args:
        stages: Discovery stages, in run order
        converter: Called as converter(value, target_type) for writes whose
            value does not match the declared type; defaults to default_convert
    """

    def __init__(self, stages: Iterable[DiscoveryStage] = (), converter: Optional[Converter] = None):
        self.pipeline = DiscoveryPipeline(stages)
        self.cache = DescriptorCache(self.pipeline)
        self.converter = converter if converter is not None else default_convert
        self.accessor = PropertyAccessor(self.cache, self.converter)
        self.resolver = PathResolver(self.accessor)

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def add_stage(self, stage: DiscoveryStage) -> None:
        self.pipeline.add_stage(stage)
        logger.debug(f"Added discovery stage {stage!r}")

    def remove_stage(self, stage: DiscoveryStage) -> bool:
        removed = self.pipeline.remove_stage(stage)
        if removed:
            logger.debug(f"Removed discovery stage {stage!r}")
        return removed

    def reset_stages(self) -> None:
        self.pipeline.reset()

    def clear_descriptors(self) -> None:
        """Forget every cached descriptor set, intrinsic ones included."""
        self.cache.invalidate()

    def get_attributes(self, shape: type) -> ShapeDescriptorSet:
        return self.cache.get_attributes(shape)

    # =========================================================================
    # SINGLE PROPERTY
    # =========================================================================

    def get_property(self, root: Any, path: PathLike, tolerate_none: bool = False) -> Any:
        return self.resolver.resolve(root, path, READ, tolerate_none)

    def set_property(self, root: Any, path: PathLike, value: Any, tolerate_none: bool = False) -> None:
        self.resolver.resolve(root, path, Write(value), tolerate_none)

    def is_readable(self, root: Any, path: PathLike) -> bool:
        """True if path can be read from root; classified failures give False."""
        segments = as_segments(path)
        try:
            record = self.resolver.walk(root, segments[:-1], segments)
        except (AccessError, NullInPathError):
            return False
        return self._terminal_readable(record, segments[-1])

    def is_writable(self, root: Any, path: PathLike) -> bool:
        """True if path can be written on root; classified failures give False."""
        segments = as_segments(path)
        try:
            record = self.resolver.walk(root, segments[:-1], segments)
        except (AccessError, NullInPathError):
            return False
        return self._terminal_writable(record, segments[-1])

    def get_attribute_descriptor(self, root: Any, path: PathLike) -> Optional[AttributeDescriptor]:
        """
        Descriptor of the attribute the last segment addresses.

        Returns None for mapping records and for names the record does not
        declare. Intermediate failures propagate like get_property.
        """
        segments = as_segments(path)
        record = self.resolver.walk(root, segments[:-1], segments)
        return self.accessor.descriptor_for(record, segments[-1].name)

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    def describe(self, record: Any) -> Dict[str, Any]:
        """Values of every readable simple attribute of record."""
        if record is None:
            raise ValueError("No record specified")
        variant = variant_of(record)
        if variant is RecordVariant.WRAPPED:
            record, variant = record.instance, RecordVariant.STRUCTURED

        if variant is RecordVariant.MAPPING:
            return dict(record)
        if variant is RecordVariant.DYNAMIC:
            return {name: record.get(name) for name in record.dyna_class.attribute_names()}

        description = {}
        for descriptor in self.get_attributes(type(record)).descriptors():
            if descriptor.getter is None:
                continue
            try:
                description[descriptor.name] = self.accessor.read_simple(record, descriptor.name)
            except UnknownAttributeError:
                # Declared but never assigned on this instance
                continue
        return description

    def copy_properties(self, dest: Any, orig: Any) -> None:
        """Copy readable attributes of orig onto the same-named writable attributes of dest."""
        if dest is None:
            raise ValueError("No destination record specified")
        for name, value in self.describe(orig).items():
            segment = (PathSegment.simple(name),)
            if self.is_writable(dest, segment):
                self.set_property(dest, segment, value)
            else:
                logger.debug(f"copy_properties: '{name}' not writable on {type(dest).__name__}; skipped")

    def populate(self, record: Any, values: Mapping[str, Any]) -> None:
        """Set each path -> value pair on record."""
        if record is None:
            raise ValueError("No record specified")
        for path, value in values.items():
            self.set_property(record, path, value)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _terminal_readable(self, record: Any, segment: PathSegment) -> bool:
        variant = variant_of(record)
        if variant is RecordVariant.MAPPING:
            return True
        if variant is RecordVariant.DYNAMIC:
            dyna_class = record.dyna_class
            return dyna_class.get_attribute(segment.name) is not None or dyna_class.tolerates_unknown_reads

        descriptor = self.accessor.descriptor_for(record, segment.name)
        if descriptor is None:
            return False
        if segment.kind is AccessKind.INDEXED and descriptor.indexed_getter is not None:
            return True
        if segment.kind is AccessKind.KEYED and descriptor.keyed_getter is not None:
            return True
        return descriptor.getter is not None

    def _terminal_writable(self, record: Any, segment: PathSegment) -> bool:
        variant = variant_of(record)
        if variant is RecordVariant.MAPPING:
            return isinstance(record, MutableMapping)
        if variant is RecordVariant.DYNAMIC:
            dyna_class = record.dyna_class
            if dyna_class.get_attribute(segment.name) is not None:
                return True
            return isinstance(dyna_class, LazyDynaClass) and not dyna_class.restricted

        if variant is RecordVariant.WRAPPED:
            record = record.instance
        shape = type(record)
        attributes = self.get_attributes(shape)
        descriptor = attributes.get(segment.name)
        if descriptor is None:
            return False
        if segment.kind is AccessKind.INDEXED:
            return resolve_accessor(descriptor.indexed_setter, shape) is not None or descriptor.getter is not None
        if segment.kind is AccessKind.KEYED:
            return resolve_accessor(descriptor.keyed_setter, shape) is not None or descriptor.getter is not None
        return attributes.write_method(segment.name) is not None

    def __repr__(self) -> str:
        return f"ResolverContext(stages={list(self.pipeline.stages)})"


# =============================================================================
# CONTEXT SCOPING
# =============================================================================

_default_context: Optional[ResolverContext] = None
_default_lock = threading.Lock()

# Innermost use_context() scope; None means fall back to the default context
current_resolver_context: contextvars.ContextVar[Optional[ResolverContext]] = contextvars.ContextVar(
    'current_resolver_context', default=None
)


def get_default_context() -> ResolverContext:
    """Process-wide context, created on first use."""
    global _default_context
    if _default_context is None:
        with _default_lock:
            if _default_context is None:
                _default_context = ResolverContext()
                logger.debug("Created default ResolverContext")
    return _default_context


def set_default_context(context: Optional[ResolverContext]) -> None:
    """Replace the process-wide context; None recreates it lazily on next use."""
    global _default_context
    if context is not None and not isinstance(context, ResolverContext):
        raise TypeError(f"Expected a ResolverContext, got {type(context).__name__}")
    with _default_lock:
        _default_context = context


def current_context() -> ResolverContext:
    context = current_resolver_context.get()
    return context if context is not None else get_default_context()


@contextmanager
def use_context(context: ResolverContext):
    """
    Make context current for the enclosed block.

    Usage:
        with use_context(ResolverContext([SuppressAttributes({'password'})])):
            get_property(user, 'password')   # UnknownAttributeError
    """
    if not isinstance(context, ResolverContext):
        raise TypeError(f"Expected a ResolverContext, got {type(context).__name__}")
    token = current_resolver_context.set(context)
    try:
        yield context
    finally:
        current_resolver_context.reset(token)


# =============================================================================
# MODULE-LEVEL SHORTCUTS
# =============================================================================

def get_property(root: Any, path: PathLike, tolerate_none: bool = False) -> Any:
    return current_context().get_property(root, path, tolerate_none)


def set_property(root: Any, path: PathLike, value: Any, tolerate_none: bool = False) -> None:
    current_context().set_property(root, path, value, tolerate_none)


def is_readable(root: Any, path: PathLike) -> bool:
    return current_context().is_readable(root, path)


def is_writable(root: Any, path: PathLike) -> bool:
    return current_context().is_writable(root, path)


def get_attribute_descriptor(root: Any, path: PathLike) -> Optional[AttributeDescriptor]:
    return current_context().get_attribute_descriptor(root, path)


def describe(record: Any) -> Dict[str, Any]:
    return current_context().describe(record)


def copy_properties(dest: Any, orig: Any) -> None:
    current_context().copy_properties(dest, orig)


def populate(record: Any, values: Mapping[str, Any]) -> None:
    current_context().populate(record, values)
