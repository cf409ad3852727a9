"""
Recursive descent parser for factconf.

Grammar:
    program     ::= (import_stmt | assign_stmt)*
    import_stmt ::= "import" STRING ";"
    assign_stmt ::= [type_spec] IDENT "=" value ";"
    type_spec   ::= ("bool" | "int" | "double" | "string" | IDENT) ["[" "]"]
    value       ::= element | "{" [element ("," element)*] "}"
    element     ::= literal | "nullptr" | spec | IDENT
    spec        ::= IDENT "(" [param ("," param)*] ")"
    param       ::= IDENT "(" value ")"

Statements are produced one at a time so that a caller can evaluate each
before the next is read.
"""

from typing import Iterator, List, Optional
from .tokens import Token, TokenType, SourceSpan, is_type_token, is_literal_token
from .lexer import Lexer, TokenStream
from .ast import (
    TypeSpec, Expression, Literal, NullLiteral, Identifier, ListLiteral,
    ParamInit, ConstructionSpec, Statement, ImportStatement, Assignment,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_nesting_too_deep,
)


DEFAULT_MAX_NESTING = 64


class Parser:
    """
    Recursive descent parser over a TokenStream.

    Usage:
        parser = Parser(TokenStream(Lexer(source, filename)))
        for statement in parser:
            ...
    """

    def __init__(self, tokens: TokenStream, max_nesting: int = DEFAULT_MAX_NESTING):
        self.tokens = tokens
        self.max_nesting = max_nesting
        self._depth = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        return self.tokens.peek()

    def _peek(self, offset: int = 0) -> Token:
        return self.tokens.peek(offset)

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_ahead(self, token_type: TokenType, offset: int = 1) -> bool:
        return self._peek(offset).type == token_type

    def _advance(self) -> Token:
        return self.tokens.advance()

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _error(self, expected: str) -> None:
        """Raise a parser error at the current token."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(
            expected, token.describe(), token.span,
            self.tokens.source_line(token.span.start.line),
        )

    def _span_from(self, start: Token) -> SourceSpan:
        """Span from the start token to the last consumed token."""
        return SourceSpan(start.span.start, self.tokens.previous().span.end)

    def _enter(self, token: Token) -> None:
        self._depth += 1
        if self._depth > self.max_nesting:
            raise error_nesting_too_deep(
                self.max_nesting, token.span,
                self.tokens.source_line(token.span.start.line),
            )

    def _leave(self) -> None:
        self._depth -= 1

    # =========================================================================
    # Statements
    # =========================================================================

    def parse_statement(self) -> Optional[Statement]:
        """Parse the next statement, or return None at end of input."""
        if self._is_at_end():
            return None
        self._depth = 0
        if self._check(TokenType.IMPORT):
            return self._parse_import()
        return self._parse_assignment()

    def parse_program(self) -> List[Statement]:
        """Parse every remaining statement."""
        return list(self)

    def __iter__(self) -> Iterator[Statement]:
        while True:
            statement = self.parse_statement()
            if statement is None:
                return
            yield statement

    def _parse_import(self) -> ImportStatement:
        start = self._advance()  # 'import'
        path = self._consume(TokenType.STRING_LITERAL, "a quoted file name after 'import'")
        self._consume(TokenType.SEMICOLON, "';'")
        return ImportStatement(span=self._span_from(start), path=path.value)

    def _parse_assignment(self) -> Assignment:
        start = self._current()
        type_spec = None

        # A type specifier is present when the statement does not begin
        # with 'name ='.
        if is_type_token(start.type):
            type_spec = self._parse_type_spec()
        elif start.type == TokenType.IDENTIFIER and not self._check_ahead(TokenType.ASSIGN):
            type_spec = self._parse_type_spec()

        name = self._consume(TokenType.IDENTIFIER, "a variable name")
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_value()
        self._consume(TokenType.SEMICOLON, "';'")
        return Assignment(
            span=self._span_from(start),
            name=name.value,
            value=value,
            type_spec=type_spec,
        )

    def _parse_type_spec(self) -> TypeSpec:
        start = self._advance()
        is_sequence = False
        if self._match(TokenType.LBRACKET):
            self._consume(TokenType.RBRACKET, "']' after '[' in type specifier")
            is_sequence = True
        return TypeSpec(
            span=self._span_from(start),
            name=start.lexeme,
            is_sequence=is_sequence,
            is_primitive=is_type_token(start.type),
        )

    # =========================================================================
    # Values
    # =========================================================================

    def _parse_value(self) -> Expression:
        if self._check(TokenType.LBRACE):
            return self._parse_list()
        return self._parse_element()

    def _parse_list(self) -> ListLiteral:
        start = self._advance()  # '{'
        self._enter(start)
        elements: List[Expression] = []
        if not self._check(TokenType.RBRACE):
            elements.append(self._parse_element())
            while self._match(TokenType.COMMA):
                elements.append(self._parse_element())
        self._consume(TokenType.RBRACE, "'}' to close list")
        self._leave()
        return ListLiteral(span=self._span_from(start), elements=elements)

    def _parse_element(self) -> Expression:
        token = self._current()

        if is_literal_token(token.type):
            self._advance()
            return Literal(span=token.span, value=token.value, literal_type=token.type)

        if token.type == TokenType.NULL_LITERAL:
            self._advance()
            return NullLiteral(span=token.span)

        if token.type == TokenType.IDENTIFIER:
            if self._check_ahead(TokenType.LPAREN):
                return self._parse_spec()
            self._advance()
            return Identifier(span=token.span, name=token.value)

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("a value", token.span)
        raise error_invalid_expression(
            token.describe(), token.span,
            self.tokens.source_line(token.span.start.line),
        )

    def _parse_spec(self) -> ConstructionSpec:
        start = self._advance()  # type name
        self._enter(start)
        self._advance()  # '('
        params: List[ParamInit] = []
        if not self._check(TokenType.RPAREN):
            params.append(self._parse_param())
            while self._match(TokenType.COMMA):
                params.append(self._parse_param())
        self._consume(TokenType.RPAREN, f"')' to close '{start.value}('")
        self._leave()
        return ConstructionSpec(span=self._span_from(start), type_name=start.value, params=params)

    def _parse_param(self) -> ParamInit:
        name = self._consume(TokenType.IDENTIFIER, "a parameter name")
        self._consume(TokenType.LPAREN, f"'(' after parameter name '{name.value}'")
        value = self._parse_value()
        self._consume(TokenType.RPAREN, f"')' to close parameter '{name.value}'")
        return ParamInit(span=self._span_from(name), name=name.value, value=value)


def parse(source: str, filename: Optional[str] = None,
          max_nesting: int = DEFAULT_MAX_NESTING) -> List[Statement]:
    """
    Convenience function to parse a whole program.

    Raises:
        LexerError: If tokenization fails
        ParserError: If parsing fails
    """
    parser = Parser(TokenStream(Lexer(source, filename)), max_nesting=max_nesting)
    return parser.parse_program()
