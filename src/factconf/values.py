"""
Runtime values.

A Value pairs the Python object bound to a name with its factconf type.
Object values additionally remember which concrete type built them.
Values are never mutated after they are bound; sequences hold a tuple.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from .types import (
    Type, SequenceType, ObjectType,
    BOOL, INT, DOUBLE, STRING, NULL, UNKNOWN,
)


@dataclass(frozen=True)
class Value:
    """
    A runtime value with type information.

    `data` holds the Python value: bool, int, float, str, the constructed
    object (None for a null handle), or a tuple of element data for a
    sequence. `concrete_type` names the type that constructed an object.
    """
    data: Any
    type: Type
    concrete_type: Optional[str] = None

    def __repr__(self) -> str:
        if self.concrete_type:
            return f"Value({self.concrete_type}, {self.type})"
        return f"Value({self.data!r}, {self.type})"

    @property
    def is_null(self) -> bool:
        return self.data is None


def bool_val(b: bool) -> Value:
    return Value(bool(b), BOOL)


def int_val(n: int) -> Value:
    return Value(int(n), INT)


def double_val(x: float) -> Value:
    return Value(float(x), DOUBLE)


def string_val(s: str) -> Value:
    return Value(str(s), STRING)


def object_val(obj: Any, base_type: str, concrete_type: Optional[str] = None) -> Value:
    """Wrap a constructed object under its base type."""
    return Value(obj, ObjectType(base_type), concrete_type)


def null_val(base_type: Optional[str] = None) -> Value:
    """An empty object handle, typed if the base type is known."""
    return Value(None, ObjectType(base_type) if base_type else NULL)


def sequence_val(items: Sequence[Value], element_type: Optional[Type] = None) -> Value:
    """
    Create a sequence value from element Values.

    The element type defaults to that of the first element; an empty
    sequence without an element type gets the unknown element type.
    """
    if element_type is None:
        element_type = items[0].type if items else UNKNOWN
    return Value(tuple(v.data for v in items), SequenceType(element_type))


def retype(value: Value, new_type: Type) -> Value:
    """Return the same data under a different (compatible) type."""
    if isinstance(new_type, SequenceType) and new_type.element_type == DOUBLE:
        return Value(tuple(float(x) for x in value.data), new_type, value.concrete_type)
    if new_type == DOUBLE and value.type == INT:
        return Value(float(value.data), DOUBLE)
    return Value(value.data, new_type, value.concrete_type)


def unwrap_value(v: Value) -> Any:
    """Python value handed to hosts and constructors; sequences become lists."""
    if isinstance(v.type, SequenceType):
        return list(v.data)
    return v.data

