"""
Type system definitions for factconf.

Every value carries one of:
    bool, int, double, string       primitive kinds
    <TypeName>                      an object of a constructible base type
    null                            the empty object handle before it meets a type
    T[]                             a homogeneous sequence of any of the above
"""

from dataclasses import dataclass
from typing import Optional
from abc import ABC, abstractmethod


@dataclass(frozen=True)
class Type(ABC):
    """Base class for all value types."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The type name for display/errors."""
        pass

    def is_assignable_from(self, other: "Type", widen: bool = False) -> bool:
        """Check if this type can accept a value of the other type."""
        return self == other

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PrimitiveType(Type):
    """A primitive type (bool, int, double, string)."""
    _name: str

    @property
    def name(self) -> str:
        return self._name

    def is_assignable_from(self, other: "Type", widen: bool = False) -> bool:
        if self == other:
            return True
        # int literals only become doubles when widening is switched on
        if widen and self._name == "double" and other == INT:
            return True
        return False


@dataclass(frozen=True)
class ObjectType(Type):
    """An object produced by the construction resolver, named by its base type."""
    _name: str

    @property
    def name(self) -> str:
        return self._name

    def is_assignable_from(self, other: "Type", widen: bool = False) -> bool:
        return self == other or isinstance(other, NullType)


@dataclass(frozen=True)
class NullType(Type):
    """Type of a null object handle that has not been given an object type."""

    @property
    def name(self) -> str:
        return "null"


@dataclass(frozen=True)
class UnknownType(Type):
    """Element type of an empty list evaluated without an expected type."""

    @property
    def name(self) -> str:
        return "?"

    def is_assignable_from(self, other: "Type", widen: bool = False) -> bool:
        return True


@dataclass(frozen=True)
class SequenceType(Type):
    """Homogeneous ordered sequence: T[]."""
    element_type: Type

    @property
    def name(self) -> str:
        return f"{self.element_type.name}[]"

    def is_assignable_from(self, other: "Type", widen: bool = False) -> bool:
        if not isinstance(other, SequenceType):
            return False
        if isinstance(other.element_type, UnknownType):
            return True
        return self.element_type.is_assignable_from(other.element_type, widen)


BOOL = PrimitiveType("bool")
INT = PrimitiveType("int")
DOUBLE = PrimitiveType("double")
STRING = PrimitiveType("string")
NULL = NullType()
UNKNOWN = UnknownType()

PRIMITIVE_TYPES = {
    "bool": BOOL,
    "int": INT,
    "double": DOUBLE,
    "string": STRING,
}


def resolve_type_name(name: str) -> Type:
    """Map a type name to a Type; any non-primitive name is an object type."""
    return PRIMITIVE_TYPES.get(name) or ObjectType(name)


def parse_type(text: str) -> Type:
    """Parse a type written as in a specifier, e.g. 'int', 'Model[]'."""
    text = text.strip()
    if text.endswith("[]"):
        return SequenceType(resolve_type_name(text[:-2].strip()))
    return resolve_type_name(text)


def common_type(t1: Type, t2: Type) -> Optional[Type]:
    """
    The type a list holding both t1 and t2 would have, or None.

    Null handles join with any object type.
    """
    if t1 == t2:
        return t1
    if isinstance(t1, NullType) and isinstance(t2, ObjectType):
        return t2
    if isinstance(t2, NullType) and isinstance(t1, ObjectType):
        return t1
    return None
