"""
Tokenizer for the text between the braces of a binding.

The terminal definitions live in `expression.lark`; Lark's basic lexer turns
the text into tokens, which are then re-positioned relative to the enclosing
markup source so that every span points at the original file.
"""

from importlib.resources import files as pkg_files
from typing import List

from lark import Lark
from lark import Token as LarkToken
from lark.exceptions import UnexpectedCharacters

from ..exceptions import LexError, LexErrorKind
from ..spans import ExprTokenKind, Origin, Span, Token

_expression_grammar = (pkg_files("dampen.expr") / "expression.lark").read_text(encoding="utf-8")

# Only `.lex()` is ever called on this instance; the LALR table exists because
# Lark needs a parser to build the basic lexer.
LARK_LEXER = Lark(_expression_grammar, start="start", parser="lalr", lexer="basic")

QUOTES = {'"', "'"}
SIMPLE_ESCAPES = {"\\": "\\", "'": "'", '"': '"', "n": "\n", "t": "\t", "r": "\r"}


def _position(origin: Origin, line: int, col: int) -> tuple:
    """Maps a 1-based line/column inside the expression text to the enclosing source."""
    if line == 1:
        return origin.line, origin.col + col - 1
    return origin.line + line - 1, col


def _to_token(lark_token: LarkToken, origin: Origin) -> Token:
    s_line, s_col = _position(origin, lark_token.line, lark_token.column)
    e_line, e_col = _position(origin, lark_token.end_line, lark_token.end_column)
    span = Span(start_line=s_line, start_col=s_col, end_line=e_line, end_col=e_col, source_id=origin.source_id)
    return Token(kind=ExprTokenKind[lark_token.type], text=str(lark_token.value), span=span)


def _translate_lark_error(err: UnexpectedCharacters, origin: Origin) -> LexError:
    """Translates a Lark lexing failure into a LexError located in the enclosing source."""
    line, col = _position(origin, err.line, err.column)
    span = Span(start_line=line, start_col=col, end_line=line, end_col=col + 1, source_id=origin.source_id)
    if err.char in QUOTES:
        # A quote only fails to lex when its string never closes.
        return LexError(LexErrorKind.UNTERMINATED_STRING, span=span, quote=err.char)
    return LexError(LexErrorKind.UNEXPECTED_CHAR, span=span, char=err.char, context=" in expression")


def tokenize_expression(text: str, origin: Origin = Origin()) -> List[Token]:
    """
    Splits one binding expression into tokens, always terminated by an EOF token.
    Raises LexError on the first character that cannot start a token.
    """
    tokens: List[Token] = []
    try:
        for lark_token in LARK_LEXER.lex(text):
            tokens.append(_to_token(lark_token, origin))
    except UnexpectedCharacters as e:
        raise _translate_lark_error(e, origin) from e

    end = origin.advance(text)
    tokens.append(
        Token(
            kind=ExprTokenKind.EOF,
            text="",
            span=Span(start_line=end.line, start_col=end.col, end_line=end.line, end_col=end.col, source_id=origin.source_id),
        )
    )
    return tokens


def decode_string_literal(text: str) -> str:
    """Strips the quotes of a STRING token and resolves its backslash escapes."""
    body = text[1:-1]
    out = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            escaped = body[i + 1]
            # Unknown escapes are kept verbatim, backslash included.
            out.append(SIMPLE_ESCAPES.get(escaped, "\\" + escaped))
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)
