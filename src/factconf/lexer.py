"""
Lexer for the factconf configuration language.

Converts source text into a stream of tokens for the parser.
Supports:
- Line comments (// to end of line); there are no block comments
- Double-quoted string literals with escape sequences
- Integer and double literals with an optional leading sign
- Keywords, type names and punctuation

Whitespace, including newlines, is insignificant.
"""

import string
from typing import IO, List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, PUNCTUATION,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
    error_invalid_encoding,
)


ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    '0': '\0',
}


class Lexer:
    """
    Pull-based tokenizer.

    Usage:
        lexer = Lexer(source_code, filename="main.cfg")
        tokens = lexer.tokenize()

    Or for streaming:
        for token in Lexer(source_code):
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

    @classmethod
    def from_stream(cls, stream: IO[str], filename: Optional[str] = None) -> "Lexer":
        """Create a lexer over the remaining contents of a text stream."""
        try:
            data = stream.read()
            if isinstance(data, bytes):
                data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            where = SourceLocation(1, 1, 0, filename)
            raise error_invalid_encoding(filename, e.reason, SourceSpan(where, where)) from e
        return cls(data, filename)

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n\f\v':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start), self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start), self.get_source_line(start.line)
            )

        self._advance()  # closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after a backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        if ch in ESCAPE_CHARS:
            return ESCAPE_CHARS[ch]
        if ch in 'xu':
            width = 2 if ch == 'x' else 4
            hex_chars = ''.join(self._advance() for _ in range(width))
            # int() alone would accept signs, underscores and whitespace
            if all(c in string.hexdigits for c in hex_chars):
                return chr(int(hex_chars, 16))
            raise error_invalid_escape_sequence(
                f"{ch}{hex_chars}", self._span(esc_start),
                self.get_source_line(esc_start.line)
            )
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self) -> Token:
        """Scan a numeric literal (int or double), with optional sign."""
        start = self._location()
        if self._peek() in '+-':
            self._advance()

        while self._peek().isdigit():
            self._advance()

        is_double = False
        if self._peek() == '.':
            is_double = True
            self._advance()
            while self._peek().isdigit():
                self._advance()

        if self._peek() in 'eE':
            is_double = True
            self._advance()
            if self._peek() in '+-':
                self._advance()
            if not self._peek().isdigit():
                lexeme = self.source[start.offset:self.pos]
                raise error_invalid_number_literal(
                    lexeme, self._span(start), self.get_source_line(start.line)
                )
            while self._peek().isdigit():
                self._advance()

        # A trailing letter makes things like 12abc a single bad literal
        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        try:
            if is_double:
                return self._make_token(TokenType.DOUBLE_LITERAL, float(lexeme), start, lexeme)
            return self._make_token(TokenType.INT_LITERAL, int(lexeme), start, lexeme)
        except ValueError:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == "true"
            elif token_type == TokenType.NULL_LITERAL:
                value = None
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _starts_number(self) -> bool:
        ch = self._peek()
        if ch.isdigit():
            return True
        if ch == '.':
            return self._peek(1).isdigit()
        if ch in '+-':
            nxt = self._peek(1)
            return nxt.isdigit() or (nxt == '.' and self._peek(2).isdigit())
        return False

    def next_token(self) -> Token:
        """Scan and return the next token; returns EOF forever at the end."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch == '"':
            return self._scan_string()

        if self._starts_number():
            return self._scan_number()

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()
        if ch in PUNCTUATION:
            return self._make_token(PUNCTUATION[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break


class TokenStream:
    """
    Buffered view over a lexer with arbitrary lookahead.

    Tokens are pulled from the lexer only when first needed. Every token
    pulled so far stays in the buffer, so the read position can be moved
    back to any earlier index with rewind().
    """

    def __init__(self, lexer: Lexer):
        self.lexer = lexer
        self._buffer: List[Token] = []
        self.pos = 0

    @property
    def filename(self) -> Optional[str]:
        return self.lexer.filename

    def _fill(self, index: int) -> None:
        while len(self._buffer) <= index:
            if self._buffer and self._buffer[-1].type == TokenType.EOF:
                return
            self._buffer.append(self.lexer.next_token())

    def peek(self, offset: int = 0) -> Token:
        """Token at current position + offset; EOF past the end."""
        idx = self.pos + offset
        self._fill(idx)
        if idx >= len(self._buffer):
            return self._buffer[-1]
        return self._buffer[idx]

    def advance(self) -> Token:
        """Consume and return the current token."""
        token = self.peek()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def previous(self) -> Token:
        """The most recently consumed token (or the first token)."""
        self._fill(max(0, self.pos - 1))
        return self._buffer[max(0, self.pos - 1)]

    def rewind(self, position: int) -> None:
        """Move the read position back to an earlier token index."""
        if position < 0 or position > self.pos:
            raise ValueError(f"cannot rewind to {position} from {self.pos}")
        self.pos = position

    def source_line(self, line_num: int) -> Optional[str]:
        return self.lexer.get_source_line(line_num)


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with EOF

    Raises:
        LexerError: If tokenization fails
    """
    return Lexer(source, filename).tokenize()
