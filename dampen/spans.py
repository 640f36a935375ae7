"""
Source positions shared by every stage of the compiler.

A `Span` is attached to each token, AST node, widget node and diagnostic so
that any later stage can point back at the exact text that produced it.
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict


class Span(BaseModel):
    """A 1-based line/column range. `end_col` is the column just past the last character."""

    model_config = ConfigDict(frozen=True)

    start_line: int
    start_col: int
    end_line: int
    end_col: int
    source_id: str = "<string>"

    def merge(self, other: "Span") -> "Span":
        """Returns the smallest span covering both `self` and `other`."""
        return Span(
            start_line=self.start_line,
            start_col=self.start_col,
            end_line=other.end_line,
            end_col=other.end_col,
            source_id=self.source_id,
        )


class Origin(BaseModel):
    """Where a piece of text starts inside its enclosing source."""

    model_config = ConfigDict(frozen=True)

    line: int = 1
    col: int = 1
    source_id: str = "<string>"

    def advance(self, text: str) -> "Origin":
        """Returns the origin of the character that follows `text`."""
        newlines = text.count("\n")
        if newlines == 0:
            return Origin(line=self.line, col=self.col + len(text), source_id=self.source_id)
        tail = len(text) - text.rfind("\n") - 1
        return Origin(line=self.line + newlines, col=tail + 1, source_id=self.source_id)

    def span_of(self, text: str) -> Span:
        """Returns the span covered by `text` when it starts at this origin."""
        end = self.advance(text)
        return Span(start_line=self.line, start_col=self.col, end_line=end.line, end_col=end.col, source_id=self.source_id)


class MarkupTokenKind(Enum):
    TAG_OPEN = "TAG_OPEN"
    TAG_END = "TAG_END"
    SELF_CLOSE = "SELF_CLOSE"
    TAG_CLOSE = "TAG_CLOSE"
    ATTR_NAME = "ATTR_NAME"
    ATTR_VALUE = "ATTR_VALUE"
    TEXT = "TEXT"
    EOF = "EOF"


class ExprTokenKind(Enum):
    IDENT = "IDENT"
    NUMBER = "NUMBER"
    STRING = "STRING"
    OP = "OP"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    DOT = "DOT"
    COMMA = "COMMA"
    EOF = "EOF"


class Token(BaseModel):
    """A lexeme produced by either the markup lexer or the expression lexer."""

    model_config = ConfigDict(frozen=True)

    kind: Union[MarkupTokenKind, ExprTokenKind]
    text: str
    span: Span
