"""
Custom exception types for the Dampen markup compiler.

Each error family has its own closed `Enum` whose values are message templates.
The templates are populated with the keyword arguments given to the exception.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dampen.spans import Span


class LexErrorKind(Enum):

    # --- Markup Lexer ---
    UNTERMINATED_TAG = "Unterminated tag '<{name}': reached the end of the input before the closing '>'."
    UNTERMINATED_ATTRIBUTE = "Unterminated value for attribute '{name}': missing closing {quote}."
    UNEXPECTED_CHAR = "Unexpected character '{char}'{context}."

    # --- Expression Lexer ---
    UNTERMINATED_STRING = "Unterminated string literal: missing closing {quote}."


class ParseErrorKind(Enum):

    # --- Expression Parser ---
    UNEXPECTED_TOKEN = "Unexpected {found}; expected {expected}."
    EXPECTED_EXPRESSION = "Expected an expression but found {found}."
    UNCLOSED_PAREN = "Unclosed '{open}': expected '{close}' but found {found}."
    NESTING_TOO_DEEP = "Expression is nested more than {limit} levels deep."
    INVALID_NUMBER = "Number literal {text} does not fit in a signed 64-bit integer."

    # --- Attribute Classifier ---
    UNTERMINATED_BINDING = "Unterminated binding: '{{' is never closed by a matching '}}'."

    # --- Markup Parser ---
    MISMATCHED_CLOSING_TAG = "Closing tag '</{found}>' does not match the open element '<{expected}>'."
    UNCLOSED_ELEMENT = "Element '<{name}>' is never closed."
    EMPTY_DOCUMENT = "The document does not contain any element."
    DUPLICATE_ATTRIBUTE = "Attribute '{name}' is defined more than once on '<{tag}>'."
    UNKNOWN_WIDGET = "Unknown widget '<{name}>'."
    MISSING_ATTRIBUTE = "Widget '<{tag}>' requires the '{name}' attribute{requirement}."
    INVALID_VERSION = "Invalid schema version '{value}': expected 'major.minor' (e.g. '1.0')."
    UNSUPPORTED_VERSION = "Schema version {value} is newer than the supported version {supported}."


class EvalErrorKind(Enum):
    UNKNOWN_FIELD = "Field '{path}' not found."
    UNKNOWN_METHOD = "Method '{method}' is not supported on a value of type '{type_name}'."
    INDEX_OUT_OF_RANGE = "Index {index} is out of range for a list of length {length}."
    TYPE_MISMATCH = "{details}"
    DIVISION_BY_ZERO = "Division by zero in '{op}'."
    INTEGER_OVERFLOW = "Integer result of '{op}' does not fit in 64 bits."


# Help lines for kinds whose suggestion is not a "did you mean" candidate.
HELP_TEMPLATES = {
    ParseErrorKind.MISSING_ATTRIBUTE: "add {suggestion}",
}


class DampenError(Exception):
    """
    Base class for every structured error raised by the compiler.

    Carries a closed `kind`, the rendered `message`, the `span` of the offending
    source text and an optional `suggestion` (a "did you mean" candidate).
    """

    def __init__(
        self,
        kind: Enum,
        span: Optional["Span"] = None,
        suggestion: Optional[str] = None,
        **kwargs,
    ):
        self.kind = kind
        self.span = span
        self.suggestion = suggestion
        self.details = kwargs
        self.message = kind.value.format(**kwargs)
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.span is None:
            return self.message
        return f"{self.message} at {self.span.start_line}:{self.span.start_col}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.name}, {str(self)!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, DampenError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.kind == other.kind
            and self.message == other.message
            and self.span == other.span
            and self.suggestion == other.suggestion
        )

    __hash__ = Exception.__hash__

    def with_span(self, span: "Span") -> "DampenError":
        """Returns a copy of this error located at `span`."""
        return type(self)(self.kind, span=span, suggestion=self.suggestion, **self.details)

    def render(self) -> str:
        """Renders the error as `<file>:<line>:<col>: <message>` plus an optional help line."""
        if self.span is None:
            text = self.message
        else:
            text = f"{self.span.source_id}:{self.span.start_line}:{self.span.start_col}: {self.message}"
        if self.suggestion:
            template = HELP_TEMPLATES.get(self.kind, "did you mean '{suggestion}'?")
            text += "\nhelp: " + template.format(suggestion=self.suggestion)
        return text


class LexError(DampenError):
    def __init__(self, kind: LexErrorKind, span: Optional["Span"] = None, suggestion: Optional[str] = None, **kwargs):
        if not isinstance(kind, LexErrorKind):
            raise InternalCompilerError(f"LexError raised with a non-lexical kind: {kind!r}")
        super().__init__(kind, span=span, suggestion=suggestion, **kwargs)


class ParseError(DampenError):
    def __init__(self, kind: ParseErrorKind, span: Optional["Span"] = None, suggestion: Optional[str] = None, **kwargs):
        if not isinstance(kind, ParseErrorKind):
            raise InternalCompilerError(f"ParseError raised with a non-syntactic kind: {kind!r}")
        super().__init__(kind, span=span, suggestion=suggestion, **kwargs)


class EvalError(DampenError):
    def __init__(self, kind: EvalErrorKind, span: Optional["Span"] = None, suggestion: Optional[str] = None, **kwargs):
        if not isinstance(kind, EvalErrorKind):
            raise InternalCompilerError(f"EvalError raised with a non-evaluation kind: {kind!r}")
        super().__init__(kind, span=span, suggestion=suggestion, **kwargs)


class InternalCompilerError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
