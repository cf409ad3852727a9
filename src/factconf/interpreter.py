"""
The interpreter: evaluates statements into an Environment.

Each statement is parsed and then evaluated before the next one is read,
so evaluation stops at the first error and everything bound before it
stays bound. Imported files are evaluated in situ: they share the
importing interpreter's environment, see the variables set before the
import, and leave their own variables behind.

Example:
    registry = FactoryRegistry()
    registry.register("Model", "PerceptronModel", PerceptronModel,
                      params=[Param("name", "string")])

    interp = Interpreter(resolver=registry)
    interp.eval_string('''
        string n = "foo";
        Model m = PerceptronModel(name(n));
        Model[] ms = {m, PerceptronModel(name("bar"))};
    ''')

    models = Slot("Model[]")
    interp.get("ms", models)
"""

import logging
import sys
from dataclasses import replace
from typing import IO, Any, Dict, Iterable, List, Optional, TextIO, Tuple

from .ast import (
    Statement, ImportStatement, Assignment, TypeSpec,
    Expression, Literal, NullLiteral, Identifier, ListLiteral, ConstructionSpec,
    format_node,
)
from .environment import Environment, Slot
from .errors import (
    FactconfError,
    error_type_mismatch,
    error_heterogeneous_sequence,
    error_cannot_infer,
    error_unknown_type,
    error_unresolved_reference,
    error_construction_failed,
    error_import_not_found,
)
from .factory import ConstructionFailure, ConstructionResolver, FactoryRegistry
from .imports import ImportStack
from .lexer import Lexer, TokenStream
from .parser import Parser
from .settings import InterpreterSettings
from .streams import FileStreamOpener, StreamOpener
from .tokens import TokenType
from .types import (
    Type, ObjectType, SequenceType, NullType, UnknownType,
    NULL, PRIMITIVE_TYPES, common_type,
)
from .values import (
    Value, bool_val, int_val, double_val, string_val, null_val, sequence_val,
    retype, unwrap_value,
)

logger = logging.getLogger(__name__)


_LITERALS = {
    TokenType.BOOL_LITERAL: bool_val,
    TokenType.INT_LITERAL: int_val,
    TokenType.DOUBLE_LITERAL: double_val,
    TokenType.STRING_LITERAL: string_val,
}


class Interpreter:
    """
    Evaluates factconf sources and holds the resulting bindings.

    Args:
        resolver: constructs objects for specs; defaults to an empty
            FactoryRegistry. A FactoryRegistry is told the widening setting
            on every construct; other resolvers apply their own rules.
        opener: opens files named by eval_file() and imports; defaults to
            FileStreamOpener
        settings: limits and type rules; defaults to InterpreterSettings()
        debug: overrides settings.debug when given
    """

    def __init__(self, resolver: Optional[ConstructionResolver] = None,
                 opener: Optional[StreamOpener] = None,
                 settings: Optional[InterpreterSettings] = None,
                 debug: Optional[int] = None):
        settings = settings or InterpreterSettings()
        if debug is not None:
            settings = replace(settings, debug=debug)
        self.settings = settings
        self.resolver = resolver if resolver is not None else FactoryRegistry(
            widen_int_to_double=settings.widen_int_to_double
        )
        self.opener = opener or FileStreamOpener()
        self.env = Environment(settings.debug, settings.widen_int_to_double)
        self.imports = ImportStack(self.opener, settings.max_import_depth)

    @property
    def debug(self) -> int:
        return self.settings.debug

    @property
    def widen(self) -> bool:
        return self.settings.widen_int_to_double

    def set_opener(self, opener: StreamOpener) -> None:
        """Replace the stream opener used for files and imports."""
        self.opener = opener
        self.imports.opener = opener

    # =========================================================================
    # Evaluation entry points
    # =========================================================================

    def eval_file(self, filename: str) -> None:
        """Evaluate the statements in the named file."""
        self._eval_file(filename)

    def eval_string(self, source: str, filename: Optional[str] = None) -> None:
        """Evaluate the statements in a string."""
        self._eval(TokenStream(Lexer(source, filename)))

    def eval_stream(self, stream: IO[str], filename: Optional[str] = None) -> None:
        """Evaluate the statements read from an open text stream."""
        self._eval(TokenStream(Lexer.from_stream(stream, filename)))

    def _eval_file(self, filename: str, statement: Optional[ImportStatement] = None,
                   source_line: Optional[str] = None) -> None:
        span = statement.span if statement is not None else None
        with self.imports.entered(filename, span, source_line):
            try:
                with self.opener.open(filename) as stream:
                    lexer = Lexer.from_stream(stream, filename)
            except OSError:
                raise error_import_not_found(filename, [filename], span, source_line)
            except FactconfError as e:
                self._note_chain(e)
                raise
            self._eval(TokenStream(lexer))

    def _eval(self, tokens: TokenStream) -> None:
        parser = Parser(tokens, max_nesting=self.settings.max_nesting_depth)
        try:
            for statement in parser:
                self._execute(statement, tokens)
        except FactconfError as e:
            self._note_chain(e)
            raise

    def _note_chain(self, error: FactconfError) -> None:
        # The innermost file records the chain; outer files leave it alone.
        if not error.diagnostic.import_chain and len(self.imports):
            error.diagnostic.import_chain = self.imports.chain()

    def _execute(self, statement: Statement, tokens: TokenStream) -> None:
        if self.debug > 1:
            logger.debug("%s: %s", statement.span.start, format_node(statement))
        if isinstance(statement, ImportStatement):
            self._import(statement, tokens)
        elif isinstance(statement, Assignment):
            self._assign(statement, tokens)
        else:
            raise ValueError(f"unknown statement {statement!r}")

    # =========================================================================
    # Statements
    # =========================================================================

    def _import(self, statement: ImportStatement, tokens: TokenStream) -> None:
        source_line = tokens.source_line(statement.span.start.line)
        resolved = self.imports.resolve(statement.path, statement.span, source_line)
        self._eval_file(resolved, statement, source_line)

    def _assign(self, statement: Assignment, tokens: TokenStream) -> None:
        source_line = tokens.source_line(statement.span.start.line)
        expected = None
        if statement.type_spec is not None:
            expected = self._resolve_type_spec(statement.type_spec, tokens)

        value = self._evaluate(statement.value, expected, tokens)

        if expected is None and not _is_inferable(value.type):
            # Fall back on the type the name already has, if any.
            existing = self.env.type_of(statement.name)
            if existing is None or not existing.is_assignable_from(value.type, self.widen):
                raise error_cannot_infer(
                    _describe_uninferable(value.type), statement.value.span,
                    tokens.source_line(statement.value.span.start.line),
                )
            value = retype(value, existing)

        self.env.define(statement.name, value, statement.span, source_line)

    def _resolve_type_spec(self, spec: TypeSpec, tokens: TokenStream) -> Type:
        if spec.is_primitive:
            element = PRIMITIVE_TYPES[spec.name]
        elif self.resolver.is_base_type(spec.name):
            element = ObjectType(spec.name)
        else:
            raise error_unknown_type(
                spec.name, spec.span, tokens.source_line(spec.span.start.line)
            )
        return SequenceType(element) if spec.is_sequence else element

    # =========================================================================
    # Values
    # =========================================================================

    def _evaluate(self, expr: Expression, expected: Optional[Type],
                  tokens: TokenStream) -> Value:
        """
        Evaluate a value expression.

        With an expected type, mismatches are reported at the offending
        expression; without one, the value's own type is returned.
        """
        if isinstance(expr, ListLiteral):
            return self._evaluate_list(expr, expected, tokens)

        if isinstance(expr, Literal):
            value = _LITERALS[expr.literal_type](expr.value)
        elif isinstance(expr, NullLiteral):
            if isinstance(expected, ObjectType):
                return null_val(expected.name)
            value = Value(None, NULL)
        elif isinstance(expr, Identifier):
            value = self.env.lookup(expr.name)
            if value is None:
                raise error_unresolved_reference(
                    expr.name, expr.span, tokens.source_line(expr.span.start.line)
                )
        elif isinstance(expr, ConstructionSpec):
            value = self._construct(expr, expected, tokens)
        else:
            raise ValueError(f"unknown expression {expr!r}")

        return self._check(value, expected, expr, tokens)

    def _check(self, value: Value, expected: Optional[Type], expr: Expression,
               tokens: TokenStream) -> Value:
        if expected is None:
            return value
        if not expected.is_assignable_from(value.type, self.widen):
            raise error_type_mismatch(
                expected.name, value.type.name, expr.span,
                tokens.source_line(expr.span.start.line),
            )
        if value.type != expected:
            value = retype(value, expected)
        return value

    def _evaluate_list(self, expr: ListLiteral, expected: Optional[Type],
                       tokens: TokenStream) -> Value:
        if expected is not None and not isinstance(expected, SequenceType):
            raise error_type_mismatch(
                expected.name, "list", expr.span,
                tokens.source_line(expr.span.start.line),
            )
        element_expected = expected.element_type if expected is not None else None

        items: List[Value] = []
        element_type: Optional[Type] = element_expected
        for element in expr.elements:
            item = self._evaluate(element, element_expected, tokens)
            if isinstance(item.type, SequenceType):
                raise error_type_mismatch(
                    "list element", item.type.name, element.span,
                    tokens.source_line(element.span.start.line),
                )
            if element_type is None:
                element_type = item.type
            elif element_expected is None:
                joined = common_type(element_type, item.type)
                if joined is None:
                    raise error_heterogeneous_sequence(
                        element_type.name, item.type.name, element.span,
                        tokens.source_line(element.span.start.line),
                    )
                element_type = joined
            items.append(item)

        return sequence_val(items, element_type)

    def _construct(self, spec: ConstructionSpec, expected: Optional[Type],
                   tokens: TokenStream) -> Value:
        source_line = tokens.source_line(spec.span.start.line)
        if expected is not None:
            base = self.resolver.base_type_of(spec.type_name)
            if not isinstance(expected, ObjectType) or (base is not None and base != expected.name):
                raise error_type_mismatch(
                    expected.name, base or spec.type_name, spec.span, source_line,
                )

        # Parameters are fully evaluated, nested specs included, before the
        # resolver sees this spec.
        params: List[Tuple[str, Value]] = []
        for param in spec.params:
            params.append((param.name, self._evaluate(param.value, None, tokens)))

        if self.debug:
            logger.debug("constructing %s(%s)", spec.type_name,
                         ", ".join(name for name, _ in params))
        try:
            if isinstance(self.resolver, FactoryRegistry):
                return self.resolver.construct(spec.type_name, params, widen=self.widen)
            return self.resolver.construct(spec.type_name, params)
        except ConstructionFailure as e:
            raise error_construction_failed(e.type_name, e.reason, spec.span, source_line) from e

    # =========================================================================
    # Retrieval and introspection
    # =========================================================================

    def get(self, name: str, slot: Slot) -> bool:
        """
        Store the value of variable `name` in `slot`.

        Returns False if there is no such variable.

        Raises:
            RetrievalTypeError: if the variable's type does not fit the slot
        """
        return self.env.get(name, slot)

    def get_many(self, pairs: Iterable[Tuple[str, Slot]]) -> bool:
        """
        Retrieve several variables, stopping at the first missing one.

        Slots filled before the failure keep their values.

        Example:
            i, f = Slot(int), Slot(str)
            interp.eval_string('i = 6; f = "foo";')
            interp.get_many([("i", i), ("f", f)])
        """
        for name, slot in pairs:
            if not self.get(name, slot):
                logger.warning("no variable with name '%s'", name)
                return False
        return True

    def value_of(self, name: str) -> Any:
        """The plain Python value of `name`; KeyError if unbound."""
        value = self.env.lookup(name)
        if value is None:
            raise KeyError(name)
        return unwrap_value(value)

    def bindings(self) -> Dict[str, Value]:
        """Snapshot of all current bindings."""
        return {binding.name: binding.value for binding in self.env}

    def known_types(self) -> Dict[str, List[str]]:
        """Base type names mapped to their constructible concrete types."""
        return self.resolver.known_types()

    def print_env(self, out: Optional[TextIO] = None) -> None:
        self.env.print(out or sys.stdout)

    def print_factories(self, out: Optional[TextIO] = None) -> None:
        from .introspection import format_types
        text = format_types(self.resolver)
        if text:
            (out or sys.stdout).write(text + "\n")


def _is_inferable(t: Type) -> bool:
    if isinstance(t, NullType):
        return False
    if isinstance(t, SequenceType):
        return not isinstance(t.element_type, (UnknownType, NullType))
    return True


def _describe_uninferable(t: Type) -> str:
    if isinstance(t, NullType):
        return "nullptr"
    return "an empty list" if isinstance(t.element_type, UnknownType) else "a list of nullptr"
