"""
Lazy tokenizer for the markup layer.

Markup lexing is contextual (inside a tag `=` and quotes matter, outside a tag
they are plain text), so the lexer is a small hand-written scanner rather than
a grammar. It yields tokens one at a time; calling `tokenize_markup` again on
the same source restarts from the beginning.
"""

from typing import Iterator

from ..exceptions import LexError, LexErrorKind
from ..spans import MarkupTokenKind, Span, Token

NAME_START_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_:")
NAME_CHARS = NAME_START_CHARS | set("0123456789-.")
QUOTES = {'"', "'"}

# Constructs that carry no widget information and are skipped entirely.
SKIPPED_CONSTRUCTS = (
    ("<!--", "-->"),
    ("<?", "?>"),
    ("<!", ">"),
)


class MarkupLexer:
    """
    Scans one markup source, keeping a cursor and its 1-based line/column.
    Errors are raised as `LexError` and end the token stream.
    """

    def __init__(self, source: str, source_id: str = "<string>"):
        self.source = source
        self.source_id = source_id
        self.pos = 0
        self.line = 1
        self.col = 1

    # --- Cursor helpers ---
    def _peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.source[index] if index < len(self.source) else ""

    def _at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _advance(self, count: int = 1) -> str:
        text = self.source[self.pos : self.pos + count]
        for char in text:
            if char == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
        self.pos += len(text)
        return text

    def _skip_whitespace(self):
        while not self._at_end() and self._peek().isspace():
            self._advance()

    def _mark(self) -> tuple:
        return self.line, self.col

    def _span_from(self, start: tuple) -> Span:
        return Span(start_line=start[0], start_col=start[1], end_line=self.line, end_col=self.col, source_id=self.source_id)

    def _token(self, kind: MarkupTokenKind, text: str, start: tuple) -> Token:
        return Token(kind=kind, text=text, span=self._span_from(start))

    def _char_error(self, context: str) -> LexError:
        start = self._mark()
        span = Span(start_line=start[0], start_col=start[1], end_line=start[0], end_col=start[1] + 1, source_id=self.source_id)
        return LexError(LexErrorKind.UNEXPECTED_CHAR, span=span, char=self._peek(), context=context)

    def _read_name(self) -> str:
        begin = self.pos
        while not self._at_end() and self._peek() in NAME_CHARS:
            self._advance()
        return self.source[begin : self.pos]

    # --- Scanning ---
    def tokens(self) -> Iterator[Token]:
        while not self._at_end():
            if self._peek() != "<":
                yield from self._scan_text()
            elif self._skip_construct():
                continue
            elif self._peek(1) == "/":
                yield self._scan_closing_tag()
            else:
                yield from self._scan_tag()
        yield self._token(MarkupTokenKind.EOF, "", self._mark())

    def _scan_text(self) -> Iterator[Token]:
        start = self._mark()
        begin = self.pos
        while not self._at_end() and self._peek() != "<":
            self._advance()
        yield self._token(MarkupTokenKind.TEXT, self.source[begin : self.pos], start)

    def _skip_construct(self) -> bool:
        """Skips a comment, processing instruction or declaration; False if none starts here."""
        for opener, closer in SKIPPED_CONSTRUCTS:
            if not self.source.startswith(opener, self.pos):
                continue
            start = self._mark()
            end = self.source.find(closer, self.pos + len(opener))
            if end == -1:
                self._advance(len(self.source) - self.pos)
                raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(start), name=opener[1:])
            self._advance(end + len(closer) - self.pos)
            return True
        return False

    def _scan_closing_tag(self) -> Token:
        start = self._mark()
        self._advance(2)
        if self._peek() not in NAME_START_CHARS:
            if self._at_end():
                raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(start), name="/")
            raise self._char_error(" after '</'")
        name = self._read_name()
        self._skip_whitespace()
        if self._at_end():
            raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(start), name=f"/{name}")
        if self._peek() != ">":
            raise self._char_error(f" in closing tag '</{name}>'")
        self._advance()
        return self._token(MarkupTokenKind.TAG_CLOSE, name, start)

    def _scan_tag(self) -> Iterator[Token]:
        start = self._mark()
        self._advance()
        if self._peek() not in NAME_START_CHARS:
            if self._at_end():
                raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(start), name="")
            raise self._char_error(" after '<'")
        name = self._read_name()
        yield self._token(MarkupTokenKind.TAG_OPEN, name, start)

        while True:
            self._skip_whitespace()
            if self._at_end():
                raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(start), name=name)

            char = self._peek()
            if char == ">":
                tag_end = self._mark()
                self._advance()
                yield self._token(MarkupTokenKind.TAG_END, ">", tag_end)
                return
            if char == "/" and self._peek(1) == ">":
                tag_end = self._mark()
                self._advance(2)
                yield self._token(MarkupTokenKind.SELF_CLOSE, "/>", tag_end)
                return
            if char in NAME_START_CHARS:
                yield from self._scan_attribute(name, start)
                continue
            raise self._char_error(f" in tag '<{name}>'")

    def _scan_attribute(self, tag: str, tag_start: tuple) -> Iterator[Token]:
        name_start = self._mark()
        attr_name = self._read_name()
        yield self._token(MarkupTokenKind.ATTR_NAME, attr_name, name_start)

        self._skip_whitespace()
        if self._at_end():
            raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(tag_start), name=tag)
        if self._peek() != "=":
            raise self._char_error(f" after attribute '{attr_name}' (expected '=')")
        self._advance()
        self._skip_whitespace()
        if self._at_end():
            raise LexError(LexErrorKind.UNTERMINATED_TAG, span=self._span_from(tag_start), name=tag)

        quote = self._peek()
        if quote not in QUOTES:
            raise self._char_error(f" for the value of attribute '{attr_name}' (expected a quote)")
        quote_start = self._mark()
        self._advance()

        # The value span covers the text between the quotes.
        value_start = self._mark()
        end = self.source.find(quote, self.pos)
        if end == -1:
            self._advance(len(self.source) - self.pos)
            raise LexError(LexErrorKind.UNTERMINATED_ATTRIBUTE, span=self._span_from(quote_start), name=attr_name, quote=quote)
        value = self._advance(end - self.pos)
        token = self._token(MarkupTokenKind.ATTR_VALUE, value, value_start)
        self._advance()
        yield token


def tokenize_markup(source: str, source_id: str = "<string>") -> Iterator[Token]:
    """Returns a lazy token stream for `source`, always ending with an EOF token."""
    return MarkupLexer(source, source_id).tokens()
