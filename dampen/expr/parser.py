"""
Precedence-climbing recursive-descent parser for binding expressions.

Binding power, lowest to highest:
    conditional `?:` (right-associative) < `||` < `&&` < `== !=` < `< <= > >=`
    < `+ -` < `* / %` < prefix `! -` < postfix `.field`, `[index]`, `.method(args)`
    < primary (literal, identifier, parenthesised expression)

Method names are not checked here: any `.name(args)` postfix is accepted and an
unknown method only fails when the expression is evaluated.
"""

import logging
from typing import Dict, List, Tuple

from ..config import (
    BINARY_PRECEDENCE,
    CONDITIONAL_KEYWORDS,
    INT_MAX,
    INT_MIN,
    KEYWORD_LITERALS,
    MAX_EXPRESSION_DEPTH,
    SHARED_ROOT,
    UNARY_OPERATORS,
)
from ..exceptions import ParseError, ParseErrorKind
from ..spans import ExprTokenKind, Origin, Span, Token
from .classes import (
    BinaryOp,
    BinaryOperator,
    Conditional,
    Expression,
    FieldAccess,
    Index,
    Literal,
    MethodCall,
    ModelRoot,
    UnaryOp,
    UnaryOperator,
)
from .lexer import decode_string_literal, tokenize_expression
from .values import BoolValue, FloatValue, IntValue, NoneValue, StringValue

logger = logging.getLogger(__name__)

# Human-readable names used in "expected ... but found ..." messages.
FRIENDLY_TOKEN_NAMES = {
    ExprTokenKind.IDENT: "identifier",
    ExprTokenKind.NUMBER: "number",
    ExprTokenKind.STRING: "string literal",
    ExprTokenKind.OP: "operator",
    ExprTokenKind.LPAREN: "'('",
    ExprTokenKind.RPAREN: "')'",
    ExprTokenKind.LBRACKET: "'['",
    ExprTokenKind.RBRACKET: "']'",
    ExprTokenKind.DOT: "'.'",
    ExprTokenKind.COMMA: "','",
    ExprTokenKind.EOF: "the end of the expression",
}


# Tokens that start a postfix operation on the preceding operand.
POSTFIX_TOKENS = (ExprTokenKind.DOT, ExprTokenKind.LBRACKET)


def describe_token(token: Token) -> str:
    if token.kind == ExprTokenKind.EOF:
        return FRIENDLY_TOKEN_NAMES[ExprTokenKind.EOF]
    if token.kind in (ExprTokenKind.IDENT, ExprTokenKind.NUMBER, ExprTokenKind.STRING, ExprTokenKind.OP):
        return f"{FRIENDLY_TOKEN_NAMES[token.kind]} '{token.text}'"
    return FRIENDLY_TOKEN_NAMES[token.kind]


class ExpressionParser:
    """
    Builds an expression AST from the token list of a single binding.

    The parser holds a cursor into the token list. Each `_parse_*` method
    consumes the tokens of one precedence level and returns the node it built.
    Two limits keep pathological input from exhausting the Python stack: the
    number of nested parentheses/unary operators/branches, and the height of
    the resulting tree.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self._nesting = 0
        # id(node) -> (node, height); holding the node keeps its id from being reused.
        self._heights: Dict[int, Tuple[Expression, int]] = {}

    def parse(self) -> Expression:
        expr = self._parse_conditional()
        token = self._peek()
        if token.kind != ExprTokenKind.EOF:
            raise ParseError(
                ParseErrorKind.UNEXPECTED_TOKEN,
                span=token.span,
                found=describe_token(token),
                expected="an operator or the end of the expression",
            )
        return expr

    # --- Token cursor helpers ---
    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _advance(self) -> Token:
        token = self._peek()
        if token.kind != ExprTokenKind.EOF:
            self.pos += 1
        return token

    def _at_op(self, *ops: str) -> bool:
        token = self._peek()
        return token.kind == ExprTokenKind.OP and token.text in ops

    def _at_keyword(self, keyword: str) -> bool:
        token = self._peek()
        return token.kind == ExprTokenKind.IDENT and token.text == keyword

    def _expect_keyword(self, keyword: str) -> Token:
        if not self._at_keyword(keyword):
            token = self._peek()
            raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, span=token.span, found=describe_token(token), expected=f"'{keyword}'")
        return self._advance()

    def _expect_closing(self, kind: ExprTokenKind, opener: Token) -> Token:
        """Consumes the token closing `opener`, or reports which bracket was left open."""
        token = self._peek()
        if token.kind == kind:
            return self._advance()
        close = FRIENDLY_TOKEN_NAMES[kind].strip("'")
        if token.kind == ExprTokenKind.EOF:
            raise ParseError(ParseErrorKind.UNCLOSED_PAREN, span=opener.span, open=opener.text, close=close, found=describe_token(token))
        raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, span=token.span, found=describe_token(token), expected=f"'{close}'")

    # --- Depth guards ---
    def _enter(self, token: Token):
        self._nesting += 1
        if self._nesting > MAX_EXPRESSION_DEPTH:
            raise ParseError(ParseErrorKind.NESTING_TOO_DEEP, span=token.span, limit=MAX_EXPRESSION_DEPTH)

    def _leave(self):
        self._nesting -= 1

    def _make(self, node_class, *children, **fields):
        """Creates a composite node, rejecting trees taller than the nesting limit."""
        height = 1 + max((self._heights.get(id(child), (child, 1))[1] for child in children), default=0)
        if height > MAX_EXPRESSION_DEPTH:
            raise ParseError(ParseErrorKind.NESTING_TOO_DEEP, span=fields["span"], limit=MAX_EXPRESSION_DEPTH)
        node = node_class(**fields)
        self._heights[id(node)] = (node, height)
        return node

    # --- Precedence levels ---
    def _parse_conditional(self) -> Expression:
        start = self._peek()
        self._enter(start)
        try:
            if self._at_keyword("if"):
                return self._parse_keyword_conditional()

            cond = self._parse_binary(1)
            if not self._at_op("?"):
                return cond

            self._advance()
            then_branch = self._parse_conditional()
            if not self._at_op(":"):
                token = self._peek()
                raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, span=token.span, found=describe_token(token), expected="':'")
            self._advance()
            else_branch = self._parse_conditional()
            span = cond.span.merge(else_branch.span)
            return self._make(Conditional, cond, then_branch, else_branch, cond=cond, then_branch=then_branch, else_branch=else_branch, span=span)
        finally:
            self._leave()

    def _parse_keyword_conditional(self) -> Expression:
        """`if <cond> then <a> else <b>`, the long spelling of `<cond> ? <a> : <b>`."""
        if_token = self._advance()
        cond = self._parse_binary(1)
        self._expect_keyword("then")
        then_branch = self._parse_conditional()
        self._expect_keyword("else")
        else_branch = self._parse_conditional()
        span = if_token.span.merge(else_branch.span)
        return self._make(Conditional, cond, then_branch, else_branch, cond=cond, then_branch=then_branch, else_branch=else_branch, span=span)

    def _parse_binary(self, min_precedence: int) -> Expression:
        left = self._parse_unary()
        while True:
            token = self._peek()
            if token.kind != ExprTokenKind.OP or token.text not in BINARY_PRECEDENCE:
                return left
            precedence = BINARY_PRECEDENCE[token.text]
            if precedence < min_precedence:
                return left
            self._advance()
            # All binary operators are left-associative: the right side must bind tighter.
            right = self._parse_binary(precedence + 1)
            span = left.span.merge(right.span)
            left = self._make(BinaryOp, left, right, op=BinaryOperator(token.text), left=left, right=right, span=span)

    def _parse_unary(self) -> Expression:
        token = self._peek()
        if token.kind != ExprTokenKind.OP or token.text not in UNARY_OPERATORS:
            return self._parse_postfix(self._parse_primary())

        self._advance()
        # A minus directly followed by a number is a negative literal, which keeps
        # the most negative 64-bit integer representable. A number carrying a
        # postfix (`-1.5.floor()`, `-2[0]`) is negated after the postfix applies.
        if token.text == "-" and self._peek().kind == ExprTokenKind.NUMBER and self._peek(1).kind not in POSTFIX_TOKENS:
            number = self._advance()
            return self._number_literal(number, negative=True, span=token.span.merge(number.span))

        self._enter(token)
        try:
            operand = self._parse_unary()
        finally:
            self._leave()
        span = token.span.merge(operand.span)
        return self._make(UnaryOp, operand, op=UnaryOperator(token.text), operand=operand, span=span)

    def _parse_postfix(self, expr: Expression) -> Expression:
        while True:
            token = self._peek()
            if token.kind == ExprTokenKind.DOT:
                self._advance()
                name = self._peek()
                if name.kind != ExprTokenKind.IDENT:
                    raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, span=name.span, found=describe_token(name), expected="a field or method name after '.'")
                self._advance()
                if self._peek().kind == ExprTokenKind.LPAREN:
                    expr = self._parse_method_call(expr, name)
                elif isinstance(expr, FieldAccess):
                    # Extend an existing path rather than nesting field accesses.
                    expr = self._make(FieldAccess, expr.base, base=expr.base, segments=expr.segments + (name.text,), span=expr.span.merge(name.span))
                else:
                    expr = self._make(FieldAccess, expr, base=expr, segments=(name.text,), span=expr.span.merge(name.span))
            elif token.kind == ExprTokenKind.LBRACKET:
                opener = self._advance()
                self._enter(opener)
                try:
                    index = self._parse_conditional()
                finally:
                    self._leave()
                closer = self._expect_closing(ExprTokenKind.RBRACKET, opener)
                expr = self._make(Index, expr, index, base=expr, index=index, span=expr.span.merge(closer.span))
            else:
                return expr

    def _parse_method_call(self, base: Expression, name: Token) -> Expression:
        opener = self._advance()
        args: List[Expression] = []
        self._enter(opener)
        try:
            if self._peek().kind != ExprTokenKind.RPAREN:
                args.append(self._parse_conditional())
                while self._peek().kind == ExprTokenKind.COMMA:
                    self._advance()
                    args.append(self._parse_conditional())
        finally:
            self._leave()
        closer = self._expect_closing(ExprTokenKind.RPAREN, opener)
        return self._make(MethodCall, base, *args, base=base, method=name.text, args=tuple(args), span=base.span.merge(closer.span))

    def _parse_primary(self) -> Expression:
        token = self._peek()

        if token.kind == ExprTokenKind.NUMBER:
            self._advance()
            return self._number_literal(token, negative=False, span=token.span)

        if token.kind == ExprTokenKind.STRING:
            self._advance()
            return Literal(value=StringValue(value=decode_string_literal(token.text)), span=token.span)

        if token.kind == ExprTokenKind.IDENT:
            return self._parse_identifier()

        if token.kind == ExprTokenKind.LPAREN:
            opener = self._advance()
            expr = self._parse_conditional()
            self._expect_closing(ExprTokenKind.RPAREN, opener)
            return expr

        raise ParseError(ParseErrorKind.EXPECTED_EXPRESSION, span=token.span, found=describe_token(token))

    def _parse_identifier(self) -> Expression:
        token = self._advance()
        name = token.text

        if name in KEYWORD_LITERALS:
            value = KEYWORD_LITERALS[name]
            literal = NoneValue() if value is None else BoolValue(value=value)
            return Literal(value=literal, span=token.span)

        if name in CONDITIONAL_KEYWORDS:
            raise ParseError(ParseErrorKind.EXPECTED_EXPRESSION, span=token.span, found=f"keyword '{name}'")

        if (
            name == SHARED_ROOT
            and self._peek().kind == ExprTokenKind.DOT
            and self._peek(1).kind == ExprTokenKind.IDENT
            and self._peek(2).kind != ExprTokenKind.LPAREN
        ):
            # `shared.field` reads from the shared context; a bare `shared` (including
            # `shared.method()`) stays a model field.
            self._advance()
            field = self._advance()
            return FieldAccess(base=ModelRoot(span=token.span, shared=True), segments=(field.text,), span=token.span.merge(field.span))

        return FieldAccess(base=ModelRoot(span=token.span), segments=(name,), span=token.span)

    def _number_literal(self, token: Token, negative: bool, span: Span) -> Literal:
        text = ("-" if negative else "") + token.text
        if any(c in token.text for c in ".eE"):
            return Literal(value=FloatValue(value=float(text)), span=span)
        value = int(text)
        if not INT_MIN <= value <= INT_MAX:
            raise ParseError(ParseErrorKind.INVALID_NUMBER, span=span, text=text)
        return Literal(value=IntValue(value=value), span=span)


def parse_expression(text: str, origin: Origin = Origin()) -> Expression:
    """Tokenizes and parses the text of one binding (without its braces)."""
    tokens = tokenize_expression(text, origin)
    expr = ExpressionParser(tokens).parse()
    logger.debug("Parsed binding %r at %s:%d:%d", text, origin.source_id, origin.line, origin.col)
    return expr
