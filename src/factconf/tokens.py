"""
Token types for the factconf lexer.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Reference errors
- E4xx: Import errors
- E5xx: Construction errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42, -7
    DOUBLE_LITERAL = auto()     # 3.14, 1e-9, -2.5E+10
    STRING_LITERAL = auto()     # "hello"
    BOOL_LITERAL = auto()       # true, false
    NULL_LITERAL = auto()       # nullptr, null

    # --- Identifiers ---
    IDENTIFIER = auto()         # variable, type and parameter names

    # --- Keywords ---
    IMPORT = auto()             # import

    # --- Primitive type keywords ---
    TYPE_BOOL = auto()          # bool
    TYPE_INT = auto()           # int
    TYPE_DOUBLE = auto()        # double
    TYPE_STRING = auto()        # string

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;
    ASSIGN = auto()             # =

    # --- Special ---
    EOF = auto()                # end of stream


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (int, float, str, bool, None)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.INT_LITERAL, TokenType.DOUBLE_LITERAL,
                         TokenType.STRING_LITERAL, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name

    def describe(self) -> str:
        """Short human-readable description for error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        return f"'{self.lexeme}'"


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "import": TokenType.IMPORT,

    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,

    "nullptr": TokenType.NULL_LITERAL,
    "null": TokenType.NULL_LITERAL,

    "bool": TokenType.TYPE_BOOL,
    "int": TokenType.TYPE_INT,
    "double": TokenType.TYPE_DOUBLE,
    "string": TokenType.TYPE_STRING,
}


PUNCTUATION: dict[str, TokenType] = {
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
    '=': TokenType.ASSIGN,
}


LITERAL_TOKENS = frozenset({
    TokenType.INT_LITERAL,
    TokenType.DOUBLE_LITERAL,
    TokenType.STRING_LITERAL,
    TokenType.BOOL_LITERAL,
})


def is_type_token(token_type: TokenType) -> bool:
    """Check if a token type represents a primitive type keyword."""
    return token_type.name.startswith("TYPE_")


def is_literal_token(token_type: TokenType) -> bool:
    """Check if a token type is a scalar literal."""
    return token_type in LITERAL_TOKENS
