"""
Property-path resolution for heterogeneous records.

This package provides uniform, string-addressed access to the properties of
structured objects (plain classes, dataclasses, properties, get_x/set_x
accessor methods), dynamic attribute bags and plain mappings.

Quick Start:
    >>> from recordpath import get_property, set_property
    >>> get_property(order, 'customer.address.city')
    'Oslo'
    >>> set_property(order, 'items[2].qty', 5)
    >>> get_property(order, 'customer.contact(email)') is None   # absent key
    True

Path grammar:
    name            simple attribute
    name[3]         indexed attribute
    name(key)       keyed attribute (key may contain '.', never ')')
    a.b[0].c(k)     segments joined by '.'

Architecture:
    Path text is parsed into segments. The resolver reads every segment but
    the last to reach the terminal record, then reads or writes the terminal
    segment through the accessor layer. The accessor layer dispatches on the
    record variant:

        STRUCTURED  descriptors from the cache (introspection + discovery stages)
        DYNAMIC     DynaRecord, shape from its DynaClass / LazyDynaClass
        WRAPPED     WrapDynaRecord, forwarded to the structured path
        MAPPING     plain mappings, names are keys

Modules:
    - path: path grammar, parse() and format_path()
    - descriptors: AttributeDescriptor, ShapeDescriptorSet, MethodRef
    - introspection: intrinsic attributes of structured classes
    - discovery: discovery pipeline and built-in stages
    - descriptor_cache: thread-safe cache of per-shape descriptor sets
    - dyna: DynaClass, LazyDynaClass, DynaRecord
    - wrap: WrapDynaClass, WrapDynaRecord
    - accessors: single-segment reads and writes
    - resolver: path walking, READ / Write modes
    - context: ResolverContext, context scoping and bulk operations
    - conversion: default converter
    - errors: error taxonomy
"""

__version__ = '1.0.0'

# Path grammar
from recordpath.path import (
    AccessKind,
    PathSegment,
    parse,
    format_path,
)

# Descriptors
from recordpath.descriptors import (
    AttributeDescriptor,
    ShapeDescriptorSet,
    MethodRef,
)

# Discovery
from recordpath.discovery import (
    DiscoveryContext,
    DiscoveryStage,
    DiscoveryPipeline,
    SuppressAttributes,
    FluentSetterDiscovery,
)
from recordpath.descriptor_cache import DescriptorCache
from recordpath.introspection import introspect_shape

# Records
from recordpath.variant import RecordVariant, variant_of
from recordpath.dyna import (
    BaseDynaRecord,
    DynaClass,
    LazyDynaClass,
    DynaRecord,
    dyna_attribute,
)
from recordpath.wrap import WrapDynaClass, WrapDynaRecord

# Resolution
from recordpath.accessors import PropertyAccessor
from recordpath.resolver import READ, Write, PathResolver
from recordpath.conversion import default_convert

# Context and bulk operations
from recordpath.context import (
    ResolverContext,
    get_default_context,
    set_default_context,
    current_context,
    use_context,
    get_property,
    set_property,
    is_readable,
    is_writable,
    get_attribute_descriptor,
    describe,
    copy_properties,
    populate,
)

# Errors
from recordpath.errors import (
    RecordPathError,
    MalformedPathError,
    AccessError,
    UnknownAttributeError,
    NotIndexedError,
    NotKeyedError,
    IndexRangeError,
    NotWritableError,
    NullInPathError,
    TypeConversionError,
    IllegalStateError,
)

__all__ = [
    # Path grammar
    'AccessKind',
    'PathSegment',
    'parse',
    'format_path',
    # Descriptors
    'AttributeDescriptor',
    'ShapeDescriptorSet',
    'MethodRef',
    # Discovery
    'DiscoveryContext',
    'DiscoveryStage',
    'DiscoveryPipeline',
    'SuppressAttributes',
    'FluentSetterDiscovery',
    'DescriptorCache',
    'introspect_shape',
    # Records
    'RecordVariant',
    'variant_of',
    'BaseDynaRecord',
    'DynaClass',
    'LazyDynaClass',
    'DynaRecord',
    'dyna_attribute',
    'WrapDynaClass',
    'WrapDynaRecord',
    # Resolution
    'PropertyAccessor',
    'READ',
    'Write',
    'PathResolver',
    'default_convert',
    # Context
    'ResolverContext',
    'get_default_context',
    'set_default_context',
    'current_context',
    'use_context',
    'get_property',
    'set_property',
    'is_readable',
    'is_writable',
    'get_attribute_descriptor',
    'describe',
    'copy_properties',
    'populate',
    # Errors
    'RecordPathError',
    'MalformedPathError',
    'AccessError',
    'UnknownAttributeError',
    'NotIndexedError',
    'NotKeyedError',
    'IndexRangeError',
    'NotWritableError',
    'NullInPathError',
    'TypeConversionError',
    'IllegalStateError',
]
