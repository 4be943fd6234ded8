"""
Record variant tags.

Record classes declare their variant with a class-level marker:

    class DynaRecord:
        __record_variant__ = RecordVariant.DYNAMIC

Values without a marker are MAPPING if they are mappings, otherwise
STRUCTURED (plain objects introspected through their class).
"""

import collections.abc
from enum import Enum
from typing import Any


class RecordVariant(Enum):
    STRUCTURED = "structured"
    DYNAMIC = "dynamic"
    WRAPPED = "wrapped"
    MAPPING = "mapping"


def variant_of(record: Any) -> RecordVariant:
    """Variant tag for a record value."""
    marker = getattr(type(record), '__record_variant__', None)
    if isinstance(marker, RecordVariant):
        return marker
    if isinstance(record, collections.abc.Mapping):
        return RecordVariant.MAPPING
    return RecordVariant.STRUCTURED
