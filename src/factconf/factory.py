"""
Construction of objects from specs.

The interpreter turns `Type(p1(v1), p2(v2))` into a call to a
ConstructionResolver with the type name and the already-evaluated
parameter values. FactoryRegistry is the bundled resolver: hosts register
a constructor for each concrete type name, under the base type that
variables are declared with, together with the parameters it accepts.

Usage:
    registry = FactoryRegistry()

    @registry.constructible("Model", params=[Param("name", STRING)])
    class PerceptronModel:
        def __init__(self, name):
            self.name = name

    interp = Interpreter(resolver=registry)
    interp.eval_string('Model m = PerceptronModel(name("foo"));')
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .types import Type, SequenceType, parse_type
from .values import Value, object_val, unwrap_value

logger = logging.getLogger(__name__)

_MISSING = object()


class ConstructionFailure(Exception):
    """
    Raised by a resolver that cannot build the requested object.

    Carries no source position; the interpreter adds it when wrapping the
    failure into a ConstructionError.
    """

    def __init__(self, type_name: str, reason: str):
        self.type_name = type_name
        self.reason = reason
        super().__init__(f"{type_name}: {reason}")


class ConstructionResolver(ABC):
    """Maps a type name and named parameter values to a constructed object."""

    @abstractmethod
    def construct(self, type_name: str, params: Sequence[Tuple[str, Value]]) -> Value:
        """
        Build an object.

        Returns a Value whose type is the ObjectType of the object's base
        type. Raises ConstructionFailure for an unknown type name, a
        missing required parameter, an unexpected parameter name, or a
        parameter value of the wrong type.
        """
        pass

    @abstractmethod
    def known_types(self) -> Dict[str, List[str]]:
        """Base type names mapped to the concrete type names registered under them."""
        pass

    def base_type_of(self, type_name: str) -> Optional[str]:
        for base, concrete in self.known_types().items():
            if type_name in concrete:
                return base
        return None

    def is_base_type(self, name: str) -> bool:
        return name in self.known_types()


@dataclass
class Param:
    """One parameter accepted by a registered constructor."""
    name: str
    type: Optional[Union[Type, str]] = None     # None accepts any value
    required: bool = True
    default: Any = _MISSING
    doc: str = ""

    def __post_init__(self):
        if isinstance(self.type, str):
            self.type = parse_type(self.type)
        if self.default is not _MISSING:
            self.required = False

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def accepts(self, value: Value, widen: bool = False) -> bool:
        if self.type is None:
            return True
        return self.type.is_assignable_from(value.type, widen)


@dataclass
class Constructible:
    """A registered concrete type."""
    name: str
    base_type: str
    constructor: Callable[..., Any]
    params: List[Param] = field(default_factory=list)
    doc: str = ""

    def param(self, name: str) -> Optional[Param]:
        for p in self.params:
            if p.name == name:
                return p
        return None

    def signature(self) -> str:
        parts = []
        for p in self.params:
            text = f"{p.name}({p.type or 'any'})"
            if not p.required:
                text += "?"
            parts.append(text)
        return f"{self.name}({', '.join(parts)}) -> {self.base_type}"


class FactoryRegistry(ConstructionResolver):
    """
    Registry of constructible types.

    Types are registered by concrete name under a base type. A base type
    can also be registered on its own so that variables of that type can
    be declared (e.g. set to nullptr) before any concrete type exists.
    """

    def __init__(self, widen_int_to_double: bool = False):
        self.widen_int_to_double = widen_int_to_double
        self._types: Dict[str, Constructible] = {}
        self._bases: Dict[str, List[str]] = {}

    def register_base(self, base_type: str) -> None:
        """Declare a base type."""
        self._bases.setdefault(base_type, [])

    def register(self, base_type: str, name: str, constructor: Callable[..., Any],
                 params: Optional[List[Param]] = None, doc: str = "") -> Constructible:
        """Register a constructor for concrete type `name` under `base_type`."""
        if name in self._types:
            raise ValueError(f"type '{name}' is already registered")
        entry = Constructible(
            name=name,
            base_type=base_type,
            constructor=constructor,
            params=list(params or []),
            doc=doc or (constructor.__doc__ or "").strip(),
        )
        self._types[name] = entry
        self._bases.setdefault(base_type, []).append(name)
        return entry

    def constructible(self, base_type: str, name: Optional[str] = None,
                      params: Optional[List[Param]] = None) -> Callable:
        """Decorator form of register(); the name defaults to the class name."""
        def decorator(constructor):
            self.register(base_type, name or constructor.__name__, constructor, params)
            return constructor
        return decorator

    def get(self, name: str) -> Optional[Constructible]:
        return self._types.get(name)

    def known_types(self) -> Dict[str, List[str]]:
        return {base: list(names) for base, names in self._bases.items()}

    def base_type_of(self, type_name: str) -> Optional[str]:
        entry = self._types.get(type_name)
        return entry.base_type if entry else None

    def construct(self, type_name: str, params: Sequence[Tuple[str, Value]],
                  widen: bool = False) -> Value:
        """
        Build `type_name` from `params`.

        int values widen to double parameters when `widen` is true or the
        registry was created with widen_int_to_double.
        """
        widen = widen or self.widen_int_to_double
        entry = self._types.get(type_name)
        if entry is None:
            raise ConstructionFailure(type_name, "unknown type")

        kwargs: Dict[str, Any] = {}
        for name, value in params:
            param = entry.param(name)
            if param is None:
                expected = ", ".join(p.name for p in entry.params) or "no parameters"
                raise ConstructionFailure(
                    type_name, f"unexpected parameter '{name}' (accepts: {expected})"
                )
            if name in kwargs:
                raise ConstructionFailure(type_name, f"parameter '{name}' given more than once")
            if not param.accepts(value, widen):
                raise ConstructionFailure(
                    type_name,
                    f"parameter '{name}' expects '{param.type}', got '{value.type}'",
                )
            kwargs[name] = _convert(value, param)

        for param in entry.params:
            if param.name in kwargs:
                continue
            if param.required:
                raise ConstructionFailure(type_name, f"missing required parameter '{param.name}'")
            if param.has_default:
                kwargs[param.name] = param.default

        logger.debug("constructing %s with %s", type_name, sorted(kwargs))
        try:
            obj = entry.constructor(**kwargs)
        except (ValueError, TypeError) as e:
            raise ConstructionFailure(type_name, str(e)) from e
        return object_val(obj, entry.base_type, type_name)


def _convert(value: Value, param: Param) -> Any:
    data = unwrap_value(value)
    if param.type is None:
        return data
    t = param.type
    if t.name == "double" and isinstance(data, int) and not isinstance(data, bool):
        return float(data)
    if isinstance(t, SequenceType) and t.element_type.name == "double":
        return [float(x) for x in data]
    return data
