"""
The environment: one flat table of variable bindings.

All files evaluated by one interpreter, imported ones included, share a
single Environment. A name keeps the type of its first assignment; later
assignments must be compatible with it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, TextIO, Union

from .types import (
    Type, ObjectType, SequenceType, NullType,
    BOOL, INT, DOUBLE, STRING, parse_type,
)
from .values import Value, retype, unwrap_value
from .tokens import SourceSpan
from .errors import error_incompatible_reassignment, error_retrieval_mismatch

logger = logging.getLogger(__name__)


@dataclass
class Binding:
    """A name bound to a value, with the type fixed by its first assignment."""
    name: str
    value: Value
    type: Type
    span: Optional[SourceSpan] = None


_PYTHON_TYPES = {
    bool: BOOL,
    int: INT,
    float: DOUBLE,
    str: STRING,
}


class Slot:
    """
    A typed output location for retrieving a binding.

    The expected type may be a factconf Type, a type string such as
    "double[]" or "Model", a Python scalar class (bool, int, float, str),
    `list` for any sequence, a Python class that constructed objects must
    be instances of, or None to accept anything.

    Usage:
        rate = Slot(float)
        if interp.get("rate", rate):
            use(rate.value)
    """

    def __init__(self, expected: Union[Type, str, type, None] = None, default: Any = None):
        if isinstance(expected, str):
            expected = parse_type(expected)
        self.expected = expected
        self.value = default
        self.is_set = False

    @property
    def expected_name(self) -> str:
        if self.expected is None:
            return "any"
        if isinstance(self.expected, Type):
            return self.expected.name
        return self.expected.__name__

    def accepts(self, value: Value, widen: bool = False) -> bool:
        expected = self.expected
        if expected is None:
            return True
        if isinstance(expected, Type):
            return expected.is_assignable_from(value.type, widen)
        if expected in _PYTHON_TYPES:
            return _PYTHON_TYPES[expected].is_assignable_from(value.type, widen)
        if expected is list:
            return isinstance(value.type, SequenceType)
        # A user class: constructed objects (or null handles) of that class
        if isinstance(value.type, (ObjectType, NullType)):
            return value.data is None or isinstance(value.data, expected)
        if isinstance(value.type, SequenceType):
            return False
        return isinstance(value.data, expected)

    def set(self, value: Value) -> None:
        data = unwrap_value(value)
        if self.expected in (float, DOUBLE) and value.type == INT:
            data = float(data)
        elif (isinstance(self.expected, SequenceType) and self.expected.element_type == DOUBLE
              and isinstance(value.type, SequenceType) and value.type.element_type == INT):
            data = [float(x) for x in data]
        self.value = data
        self.is_set = True

    def __repr__(self) -> str:
        return f"Slot({self.expected_name}, value={self.value!r})"


class Environment:
    """
    Symbol table mapping variable names to typed values.

    Args:
        debug: when non-zero, each binding commit is logged at DEBUG level
        widen_int_to_double: allow int values where double is expected
    """

    def __init__(self, debug: int = 0, widen_int_to_double: bool = False):
        self.debug = debug
        self.widen_int_to_double = widen_int_to_double
        self._bindings: Dict[str, Binding] = {}

    def define(self, name: str, value: Value, span: Optional[SourceSpan] = None,
               source_line: Optional[str] = None) -> Binding:
        """
        Bind `name` to `value`, replacing any earlier value.

        Raises:
            TypeError: if `name` was first bound with an incompatible type
        """
        existing = self._bindings.get(name)
        if existing is None:
            binding = Binding(name, value, value.type, span)
        else:
            if not existing.type.is_assignable_from(value.type, self.widen_int_to_double):
                raise error_incompatible_reassignment(
                    name, existing.type.name, value.type.name, span, source_line
                )
            if value.type != existing.type:
                value = retype(value, existing.type)
            binding = Binding(name, value, existing.type, span)

        self._bindings[name] = binding
        if self.debug:
            logger.debug("%s %s = %r", binding.type, name, unwrap_value(value))
        return binding

    def lookup(self, name: str) -> Optional[Value]:
        """The value bound to `name`, or None."""
        binding = self._bindings.get(name)
        return binding.value if binding else None

    def binding(self, name: str) -> Optional[Binding]:
        return self._bindings.get(name)

    def type_of(self, name: str) -> Optional[Type]:
        binding = self._bindings.get(name)
        return binding.type if binding else None

    def contains(self, name: str) -> bool:
        return name in self._bindings

    def get(self, name: str, slot: Slot) -> bool:
        """
        Store the value of `name` into `slot`.

        Returns False (leaving the slot untouched) if `name` is unbound.

        Raises:
            RetrievalTypeError: if the binding exists but its type does not
                satisfy the slot
        """
        binding = self._bindings.get(name)
        if binding is None:
            return False
        if not slot.accepts(binding.value, self.widen_int_to_double):
            raise error_retrieval_mismatch(name, slot.expected_name, binding.type.name, binding.span)
        slot.set(binding.value)
        return True

    def names(self) -> List[str]:
        return sorted(self._bindings)

    def clear(self) -> None:
        self._bindings.clear()

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[Binding]:
        for name in self.names():
            yield self._bindings[name]

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def format(self) -> str:
        """Human-readable listing, one binding per line."""
        lines = []
        for binding in self:
            value = binding.value
            if isinstance(value.type, ObjectType) and value.concrete_type:
                rendered = f"<{value.concrete_type}>"
            elif value.is_null:
                rendered = "nullptr"
            else:
                rendered = repr(unwrap_value(value))
            lines.append(f"{binding.type} {binding.name} = {rendered};")
        return "\n".join(lines)

    def print(self, out: TextIO) -> None:
        text = self.format()
        if text:
            out.write(text + "\n")
