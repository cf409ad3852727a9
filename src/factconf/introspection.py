"""
Introspection helpers for hosts and tooling.

These return plain dicts and strings describing what an interpreter has
bound and what its resolver can construct, for debugging output and for
JSON/YAML dumps. None of them change any state.

Usage:
    from factconf.introspection import describe_bindings, describe_types

    interp.eval_file("experiment.cfg")
    print(json.dumps(describe_bindings(interp), indent=2))
"""

from typing import Any, Dict, List

from .factory import ConstructionResolver, FactoryRegistry
from .types import ObjectType, SequenceType
from .values import Value, unwrap_value


def _plain(value: Value) -> Any:
    """Render a value with only JSON/YAML-friendly types."""
    element = value.type.element_type if isinstance(value.type, SequenceType) else value.type
    if isinstance(element, ObjectType):
        if isinstance(value.type, SequenceType):
            return [None if item is None else f"<{type(item).__name__}>" for item in value.data]
        if value.is_null:
            return None
        return f"<{value.concrete_type or type(value.data).__name__}>"
    return unwrap_value(value)


def describe_bindings(interpreter) -> Dict[str, Dict[str, Any]]:
    """Every binding as {"type": ..., "value": ...}, keyed by name."""
    result = {}
    for binding in interpreter.env:
        result[binding.name] = {
            "type": binding.type.name,
            "value": _plain(binding.value),
        }
    return result


def describe_types(resolver: ConstructionResolver) -> Dict[str, List[Dict[str, Any]]]:
    """Base types mapped to descriptions of their concrete types."""
    result: Dict[str, List[Dict[str, Any]]] = {}
    for base, names in sorted(resolver.known_types().items()):
        entries = []
        for name in names:
            info: Dict[str, Any] = {"name": name}
            if isinstance(resolver, FactoryRegistry):
                entry = resolver.get(name)
                info["params"] = [
                    {
                        "name": p.name,
                        "type": p.type.name if p.type is not None else "any",
                        "required": p.required,
                    }
                    for p in entry.params
                ]
                if entry.doc:
                    info["doc"] = entry.doc
            entries.append(info)
        result[base] = entries
    return result


def format_types(resolver: ConstructionResolver) -> str:
    """Human-readable listing of constructible types, grouped by base type."""
    lines = []
    for base, names in sorted(resolver.known_types().items()):
        lines.append(f"{base}:")
        for name in names:
            if isinstance(resolver, FactoryRegistry):
                lines.append(f"  {resolver.get(name).signature()}")
            else:
                lines.append(f"  {name}")
    return "\n".join(lines)
