"""
Diagnostics and the exception hierarchy for factconf.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type errors
- E3xx: Reference errors
- E4xx: Import errors
- E5xx: Construction errors

Every fatal error carries a Diagnostic with the file name, line and column,
the offending token or identifier, and (when raised inside an imported file)
the chain of files that led to it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan]
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)
    import_chain: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        loc = f"{self.span.start}: " if self.span is not None else ""
        parts.append(f"{loc}{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.span is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        if self.import_chain:
            parts.append(f"    = import chain: {' -> '.join(self.import_chain)}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": None,
            "hints": self.hints,
            "import_chain": self.import_chain,
        }
        if self.span is not None:
            result["file"] = self.span.start.filename or ""
            result["range"] = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return result


class FactconfError(Exception):
    """Base exception for interpreter errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(FactconfError):
    """Malformed token (E0xx)."""
    pass


class ParserError(FactconfError):
    """Grammar violation: wrong token where another was expected (E1xx)."""
    pass


class TypeError(FactconfError):
    """Declared or inferred type mismatch (E2xx)."""
    pass


class RetrievalTypeError(TypeError):
    """A binding exists but cannot be stored in the requested slot (E205)."""
    pass


class UnresolvedReferenceError(FactconfError):
    """Identifier referenced before it was ever bound (E3xx)."""

    def __init__(self, diagnostic: Diagnostic, name: str):
        super().__init__(diagnostic)
        self.name = name


class ImportError(FactconfError):
    """Base class for import failures (E4xx)."""
    pass


class ImportNotFoundError(ImportError):
    """Neither candidate path of an import could be opened (E401)."""

    def __init__(self, diagnostic: Diagnostic, attempted: List[str]):
        super().__init__(diagnostic)
        self.attempted = attempted


class ImportCycleError(ImportError):
    """A file was imported while it was still being evaluated (E402)."""

    def __init__(self, diagnostic: Diagnostic, chain: List[str]):
        super().__init__(diagnostic)
        self.chain = chain


class ImportDepthError(ImportError):
    """Import nesting exceeded the configured limit (E403)."""
    pass


class ConstructionError(FactconfError):
    """The construction resolver refused a spec (E5xx)."""

    def __init__(self, diagnostic: Diagnostic, type_name: str):
        super().__init__(diagnostic)
        self.type_name = type_name


def _error(code: str, message: str, span: Optional[SourceSpan],
           source_line: Optional[str] = None, hints: Optional[List[str]] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    hints = []
    if char == '/':
        hints.append("only '//' line comments are supported")
    return LexerError(_error("E001", f"unexpected character '{char}'", span, source_line, hints))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    return LexerError(_error(
        "E002", "unterminated string literal", span, source_line,
        ["string literals must be closed with a matching '\"' on the same line"],
    ))


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    return LexerError(_error(
        "E005", f"invalid escape sequence '\\{seq}'", span, source_line,
        ["valid escape sequences: \\n, \\t, \\r, \\\", \\\\, \\0, \\x##, \\u####"],
    ))


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number literal."""
    return LexerError(_error("E006", f"invalid number literal '{text}'", span, source_line))


def error_invalid_encoding(filename: Optional[str], reason: str, span: SourceSpan) -> LexerError:
    """E007: Source bytes are not valid UTF-8."""
    where = f"'{filename}'" if filename else "source"
    return LexerError(_error(
        "E007", f"cannot decode {where} as UTF-8: {reason}", span, None,
        ["configuration files must be UTF-8 encoded"],
    ))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    return ParserError(_error("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    return ParserError(_error("E102", f"unexpected end of input, expected {expected}", span))


def error_invalid_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Token cannot start a value."""
    return ParserError(_error(
        "E103", f"expected a value, found {found}", span, source_line,
        ["a value is a literal, a {...} list, a Type(param(value), ...) spec, nullptr or a variable name"],
    ))


def error_nesting_too_deep(limit: int, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Lists or specs nested beyond the configured limit."""
    return ParserError(_error(
        "E104", f"value nesting exceeds the maximum depth of {limit}", span, source_line,
    ))


# --- Type error codes ---

def error_type_mismatch(expected: str, found: str, span: SourceSpan,
                        source_line: str = None) -> TypeError:
    """E201: Type mismatch."""
    return TypeError(_error(
        "E201", f"type mismatch: expected '{expected}', found '{found}'", span, source_line,
    ))


def error_heterogeneous_sequence(first: str, found: str, span: SourceSpan,
                                 source_line: str = None) -> TypeError:
    """E202: List elements of different types."""
    return TypeError(_error(
        "E202",
        f"list elements must all have the same type: element of type '{found}' "
        f"follows elements of type '{first}'",
        span, source_line,
    ))


def error_cannot_infer(what: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E203: Value whose type cannot be inferred without a specifier."""
    return TypeError(_error(
        "E203", f"cannot infer the type of {what}", span, source_line,
        ["add a type specifier, e.g. 'int[] xs = {};' or 'Model m = nullptr;'"],
    ))


def error_unknown_type(name: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E204: Type specifier names no known type."""
    return TypeError(_error("E204", f"unknown type '{name}'", span, source_line))


def error_retrieval_mismatch(name: str, expected: str, found: str,
                             span: Optional[SourceSpan]) -> RetrievalTypeError:
    """E205: Binding cannot be stored in the requested slot."""
    return RetrievalTypeError(_error(
        "E205",
        f"variable '{name}' has type '{found}', which cannot be retrieved as '{expected}'",
        span,
    ))


def error_incompatible_reassignment(name: str, original: str, found: str, span: SourceSpan,
                                    source_line: str = None) -> TypeError:
    """E206: Reassignment with a type different from the first assignment."""
    return TypeError(_error(
        "E206",
        f"variable '{name}' was first assigned a value of type '{original}' "
        f"and cannot be reassigned a value of type '{found}'",
        span, source_line,
    ))


# --- Reference error codes ---

def error_unresolved_reference(name: str, span: SourceSpan,
                               source_line: str = None) -> UnresolvedReferenceError:
    """E301: Undefined identifier."""
    return UnresolvedReferenceError(
        _error("E301", f"undefined variable '{name}'", span, source_line),
        name,
    )


# --- Import error codes ---

def error_import_not_found(path: str, attempted: List[str], span: SourceSpan,
                           source_line: str = None) -> ImportNotFoundError:
    """E401: No candidate path for an import could be opened."""
    tried = ", ".join(f"'{p}'" for p in attempted)
    return ImportNotFoundError(
        _error("E401", f"cannot import \"{path}\": tried {tried}", span, source_line),
        attempted,
    )


def error_import_cycle(chain: List[str], span: SourceSpan,
                       source_line: str = None) -> ImportCycleError:
    """E402: Import cycle."""
    return ImportCycleError(
        _error("E402", f"import cycle: {' -> '.join(chain)}", span, source_line),
        chain,
    )


def error_import_too_deep(limit: int, span: SourceSpan,
                          source_line: str = None) -> ImportDepthError:
    """E403: Import nesting exceeds limit."""
    return ImportDepthError(_error(
        "E403", f"imports nested more than {limit} levels deep", span, source_line,
    ))


# --- Construction error codes ---

def error_construction_failed(type_name: str, reason: str, span: SourceSpan,
                              source_line: str = None) -> ConstructionError:
    """E501: Resolver could not construct an object."""
    return ConstructionError(
        _error("E501", f"cannot construct '{type_name}': {reason}", span, source_line),
        type_name,
    )


class DiagnosticCollector:
    """Collects diagnostics, e.g. from several files checked in one run."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: FactconfError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
