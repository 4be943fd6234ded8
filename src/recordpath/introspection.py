"""
Intrinsic attribute introspection for structured classes.

Builds the attribute list a class exposes before any discovery stage runs.
Uses pure stdlib introspection and walks the MRO so subclasses override
their bases:

- Annotated fields (dataclasses, plain annotated classes); ClassVar skipped,
  frozen dataclass fields are read-only
- NamedTuple fields (read-only)
- __slots__ entries
- __init__ parameters of non-dataclass classes (attributes assigned in __init__)
- property objects
- Accessor methods classified by signature:
    get_x(self) / is_x(self)          simple getter
    get_x(self, index: int)           indexed getter
    get_x(self, key: str)             keyed getter
    set_x(self, value) -> None        simple setter
    set_x(self, index: int, value)    indexed setter
    set_x(self, key: str, value)      keyed setter

Setters annotated to return anything other than None are left out here;
FluentSetterDiscovery picks them up.
"""

import dataclasses
import inspect
import logging
import operator
import typing
from typing import Any, Callable, Dict, List, Optional

from recordpath.descriptors import AttributeDescriptor, MethodRef, content_type_of, function_hints

logger = logging.getLogger(__name__)

GETTER_PREFIXES = ('get_', 'is_')
SETTER_PREFIX = 'set_'

_EMPTY = inspect.Parameter.empty
_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def introspect_shape(cls: type) -> List[AttributeDescriptor]:
    """
    Return the intrinsic attribute descriptors of a structured class.

    Args:
        cls: The record class (its "shape")

    Returns:
        Descriptors in discovery order, names unique
    """
    parts: Dict[str, Dict[str, Any]] = {}
    hints = _class_hints(cls)
    frozen = _is_frozen(cls)

    for name, hint in hints.items():
        if not _is_public(name) or _is_classvar(hint):
            continue
        _add_field(parts, name, hint, writable=not frozen)

    if issubclass(cls, tuple) and hasattr(cls, '_fields'):
        for name in cls._fields:
            _add_field(parts, name, hints.get(name, object), writable=False)

    for klass in reversed(cls.__mro__):
        for name in _slot_names(klass):
            if _is_public(name) and name not in parts:
                _add_field(parts, name, hints.get(name, object), writable=not frozen)

    if not dataclasses.is_dataclass(cls):
        for name, param in _init_parameters(cls).items():
            if name not in parts:
                hint = param.annotation if param.annotation is not _EMPTY else object
                _add_field(parts, name, hint, writable=True)

    members: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        members.update(vars(klass))

    for name, member in members.items():
        if isinstance(member, property) and _is_public(name):
            _add_property(parts, name, member)

    for name, member in members.items():
        if inspect.isfunction(member):
            _add_accessor_method(parts, name, member)

    descriptors = [_build(name, part) for name, part in parts.items()]
    logger.debug(f"Introspected {cls.__name__}: {[d.name for d in descriptors]}")
    return descriptors


# =============================================================================
# COLLECTION
# =============================================================================

def _add_field(parts: Dict[str, Dict[str, Any]], name: str, hint: Any, writable: bool) -> None:
    parts[name] = {
        'declared_type': hint,
        'getter': operator.attrgetter(name),
        'setter': _attribute_setter(name) if writable else None,
    }


def _add_property(parts: Dict[str, Dict[str, Any]], name: str, prop: property) -> None:
    declared = object
    if prop.fget is not None:
        declared = function_hints(prop.fget).get('return', object)
    parts[name] = {
        'declared_type': declared,
        'getter': prop.fget,
        'setter': prop.fset,
    }


def _add_accessor_method(parts: Dict[str, Dict[str, Any]], method_name: str, function: Callable) -> None:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return
    params = list(signature.parameters.values())
    if not params or any(p.kind not in _POSITIONAL for p in params if p.default is _EMPTY):
        return
    args = [p for p in params[1:] if p.kind in _POSITIONAL and p.default is _EMPTY]
    hints = function_hints(function)

    if method_name.startswith(GETTER_PREFIXES):
        prefix = next(p for p in GETTER_PREFIXES if method_name.startswith(p))
        name = method_name[len(prefix):]
        if not _is_public(name):
            return
        part = parts.setdefault(name, {})
        returns = hints.get('return', object)
        if not args:
            part.setdefault('getter', function)
            part.setdefault('declared_type', returns)
        elif len(args) == 1:
            kind = _argument_kind(hints.get(args[0].name, _EMPTY))
            if kind is not None:
                part.setdefault(f'{kind}_getter', function)
                part.setdefault('content_type', returns)
                part.setdefault('declared_type', list if kind == 'indexed' else dict)
        if not part:
            del parts[name]

    elif method_name.startswith(SETTER_PREFIX):
        name = method_name[len(SETTER_PREFIX):]
        if not _is_public(name):
            return
        part = parts.setdefault(name, {})
        if len(args) == 1 and _returns_none(function, hints):
            if part.get('setter') is None:
                part['setter'] = MethodRef(function, method_name, 2, hints.get(args[0].name))
            part.setdefault('declared_type', hints.get(args[0].name, object))
        elif len(args) == 2:
            kind = _argument_kind(hints.get(args[0].name, _EMPTY))
            if kind is not None:
                part.setdefault(f'{kind}_setter', MethodRef(function, method_name, 3, hints.get(args[1].name)))
                part.setdefault('content_type', hints.get(args[1].name, object))
                part.setdefault('declared_type', list if kind == 'indexed' else dict)
        if not part:
            del parts[name]


def _build(name: str, part: Dict[str, Any]) -> AttributeDescriptor:
    declared = part.get('declared_type', object)
    content = part.get('content_type')
    if content is None:
        content = content_type_of(declared)
    getters = (part.get('getter'), part.get('indexed_getter'), part.get('keyed_getter'))
    setters = (part.get('setter'), part.get('indexed_setter'), part.get('keyed_setter'))
    return AttributeDescriptor(
        name=name,
        declared_type=declared,
        content_type=content,
        readable=any(g is not None for g in getters),
        writable=any(s is not None for s in setters),
        getter=part.get('getter'),
        setter=part.get('setter'),
        indexed_getter=part.get('indexed_getter'),
        indexed_setter=part.get('indexed_setter'),
        keyed_getter=part.get('keyed_getter'),
        keyed_setter=part.get('keyed_setter'),
    )


# =============================================================================
# HELPERS
# =============================================================================

def _attribute_setter(name: str) -> Callable[[Any, Any], None]:
    def set_attribute(record: Any, value: Any) -> None:
        setattr(record, name, value)
    set_attribute.__name__ = f'set_attribute_{name}'
    return set_attribute


def _is_public(name: str) -> bool:
    return bool(name) and not name.startswith('_') and name.isidentifier()


def _is_frozen(cls: type) -> bool:
    params = getattr(cls, '__dataclass_params__', None)
    return bool(params and params.frozen)


def _is_classvar(hint: Any) -> bool:
    if hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar:
        return True
    return isinstance(hint, str) and hint.startswith(('ClassVar', 'typing.ClassVar'))


def _class_hints(cls: type) -> Dict[str, Any]:
    """Resolved annotations over the MRO, raw annotations if resolution fails."""
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError, AttributeError):
        hints: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(klass.__dict__.get('__annotations__', {}))
        return hints


def _slot_names(klass: type) -> List[str]:
    slots = klass.__dict__.get('__slots__', ())
    if isinstance(slots, str):
        return [slots]
    return list(slots)


def _init_parameters(cls: type) -> Dict[str, inspect.Parameter]:
    """Public __init__ parameters over the MRO, most specific class first."""
    result: Dict[str, inspect.Parameter] = {}
    for klass in cls.__mro__:
        if klass is object or '__init__' not in klass.__dict__:
            continue
        try:
            signature = inspect.signature(klass.__init__)
        except (ValueError, TypeError):
            continue
        for name, param in list(signature.parameters.items())[1:]:
            if param.kind not in _POSITIONAL and param.kind is not inspect.Parameter.KEYWORD_ONLY:
                continue
            if _is_public(name) and name not in result:
                result[name] = param
    return result


def _argument_kind(hint: Any) -> Optional[str]:
    """'indexed' for int parameters, 'keyed' for str parameters."""
    if hint is int or hint == 'int':
        return 'indexed'
    if hint is str or hint == 'str':
        return 'keyed'
    return None


def _returns_none(function: Callable, hints: Dict[str, Any]) -> bool:
    if 'return' in hints:
        return hints['return'] is None or hints['return'] is type(None)
    raw = getattr(function, '__annotations__', {}).get('return', _EMPTY)
    return raw is _EMPTY or raw in (None, 'None')
