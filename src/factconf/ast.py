"""
Abstract Syntax Tree (AST) node definitions for factconf statements.

The parser produces one Statement at a time; the interpreter evaluates it
against the environment before the next one is parsed.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Union, Any
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Type Specifiers
# =============================================================================

@dataclass
class TypeSpec(AstNode):
    """A declared type: 'int', 'Model', 'string[]', 'Model[]'."""
    name: str
    is_sequence: bool = False
    is_primitive: bool = False

    def __str__(self) -> str:
        return f"{self.name}[]" if self.is_sequence else self.name


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all value expressions."""
    pass


@dataclass
class Literal(Expression):
    """A literal value (bool, int, double, string)."""
    value: Union[bool, int, float, str]
    literal_type: TokenType  # INT_LITERAL, DOUBLE_LITERAL, STRING_LITERAL, BOOL_LITERAL


@dataclass
class NullLiteral(Expression):
    """nullptr: an empty object handle."""
    pass


@dataclass
class Identifier(Expression):
    """A reference to a previously bound variable."""
    name: str


@dataclass
class ListLiteral(Expression):
    """A brace-enclosed list: {1, 2, 3} or {A(x(1)), B()}."""
    elements: List[Expression] = field(default_factory=list)


@dataclass
class ParamInit(AstNode):
    """One named parameter of a construction spec: name(value)."""
    name: str
    value: Expression


@dataclass
class ConstructionSpec(Expression):
    """A request to construct an object: TypeName(p1(v1), p2(v2))."""
    type_name: str
    params: List[ParamInit] = field(default_factory=list)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class ImportStatement(Statement):
    """import "path";"""
    path: str


@dataclass
class Assignment(Statement):
    """[type_spec] name = value;"""
    name: str
    value: Expression
    type_spec: Optional[TypeSpec] = None


# =============================================================================
# Debug printing
# =============================================================================

class PrintVisitor(AstVisitor):
    """Renders statements back to source form."""

    def visit_ImportStatement(self, node: ImportStatement) -> str:
        return f'import "{node.path}";'

    def visit_Assignment(self, node: Assignment) -> str:
        prefix = f"{node.type_spec} " if node.type_spec else ""
        return f"{prefix}{node.name} = {node.value.accept(self)};"

    def visit_Literal(self, node: Literal) -> str:
        if node.literal_type == TokenType.STRING_LITERAL:
            escaped = node.value.replace("\\", "\\\\").replace('"', '\\"')
            return f'"{escaped}"'
        if node.literal_type == TokenType.BOOL_LITERAL:
            return "true" if node.value else "false"
        return repr(node.value)

    def visit_NullLiteral(self, node: NullLiteral) -> str:
        return "nullptr"

    def visit_Identifier(self, node: Identifier) -> str:
        return node.name

    def visit_ListLiteral(self, node: ListLiteral) -> str:
        return "{" + ", ".join(e.accept(self) for e in node.elements) + "}"

    def visit_ConstructionSpec(self, node: ConstructionSpec) -> str:
        params = ", ".join(f"{p.name}({p.value.accept(self)})" for p in node.params)
        return f"{node.type_name}({params})"


def format_node(node: AstNode) -> str:
    """Render a statement or expression as source text."""
    return node.accept(PrintVisitor())
