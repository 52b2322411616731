"""
Runtime type names for minilang.

The type-annotation domain is closed: int, string, bool, functions and
`_none` (the absence of a value). Only the first four names and `_none` can
be written in source; `fn` exists for runtime values and diagnostics.
"""

from enum import Enum
from typing import Optional

from .errors import UnknownTypeError
from .tokens import SourceSpan


class ValueType(Enum):
    """The type of a runtime value."""
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    FN = "fn"
    NOTHING = "_none"

    def __str__(self) -> str:
        return self.value


# Names accepted in parameter and return type annotations
ANNOTATION_TYPES: dict[str, ValueType] = {
    "int": ValueType.INT,
    "string": ValueType.STRING,
    "bool": ValueType.BOOL,
    "_none": ValueType.NOTHING,
}

# Sentinel return type for definitions without a `-> type` clause
NO_VALUE_TYPE_NAME = "_none"


def resolve_type_name(name: str, span: Optional[SourceSpan] = None) -> ValueType:
    """
    Look up an annotation type by name.

    Raises:
        UnknownTypeError: If the name is not an annotation type
    """
    try:
        return ANNOTATION_TYPES[name]
    except KeyError:
        raise UnknownTypeError(name, span) from None
