"""
Default converter collaborator.

PropertyAccessor calls a converter as converter(value, target_type) when a
written value is not an instance of the attribute's declared class. This
module supplies the converter ResolverContext uses unless another is
configured. It covers the common scalar cases; anything it does not know
raises TypeConversionError.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict

from recordpath.descriptors import is_sequence_value
from recordpath.errors import TypeConversionError

logger = logging.getLogger(__name__)

TRUE_STRINGS = frozenset({'true', 'yes', 'on', 'y', '1'})
FALSE_STRINGS = frozenset({'false', 'no', 'off', 'n', '0'})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise TypeConversionError(value, bool, "unrecognized boolean text")
    if isinstance(value, (int, float, Decimal)):
        return bool(value)
    raise TypeConversionError(value, bool)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and not value.is_integer():
        raise TypeConversionError(value, int, "value has a fractional part")
    if isinstance(value, str):
        return int(value.strip())
    return int(value)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).strip() if isinstance(value, str) else value)
    except InvalidOperation as exc:
        raise TypeConversionError(value, Decimal, "invalid decimal literal") from exc


def _to_sequence(target: type) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        if not is_sequence_value(value) and not isinstance(value, (set, frozenset)):
            raise TypeConversionError(value, target, "value is not a sequence")
        return target(value)
    return convert


_CONVERTERS: Dict[type, Callable[[Any], Any]] = {
    bool: _to_bool,
    int: _to_int,
    float: float,
    str: str,
    Decimal: _to_decimal,
    list: _to_sequence(list),
    tuple: _to_sequence(tuple),
}


def default_convert(value: Any, target_type: type) -> Any:
    """
    Convert value to target_type.

    Args:
        value: Value to convert; None is returned unchanged
        target_type: Concrete class the result must be an instance of

    Returns:
        Converted value

    Raises:
        TypeConversionError: No conversion exists or the conversion failed
    """
    if value is None or isinstance(value, target_type):
        return value

    convert = _CONVERTERS.get(target_type)
    if convert is None:
        raise TypeConversionError(value, target_type, "no converter registered")
    try:
        converted = convert(value)
    except TypeConversionError:
        raise
    except (TypeError, ValueError) as exc:
        raise TypeConversionError(value, target_type, str(exc)) from exc

    logger.debug(f"default_convert: {value!r} -> {converted!r}")
    return converted
