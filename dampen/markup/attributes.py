"""
Classifies a raw attribute string as static text, a single binding, or an
interpolation of literal fragments and bindings.

    "Hello"            -> Static("Hello")
    "{count}"          -> Binding(count)
    "Count: {count}"   -> Interpolated([LiteralPart("Count: "), ExprPart(count)])

`\\{` and `\\}` stand for literal braces. Inside a binding, braces that appear
in a quoted string literal do not count towards brace matching.
"""

import re
from typing import List, Optional, Tuple

from ..exceptions import ParseError, ParseErrorKind
from ..expr.parser import parse_expression
from ..spans import Origin, Span
from .classes import AttributeValue, Binding, ExprPart, Interpolated, InterpolationPart, LiteralPart, Static

ENTITY_REGEX = re.compile(r"&(lt|gt|amp|quot|apos|#[0-9]+|#x[0-9a-fA-F]+);")
NAMED_ENTITIES = {"lt": "<", "gt": ">", "amp": "&", "quot": '"', "apos": "'"}
QUOTES = {'"', "'"}
ESCAPED_BRACES = {"{", "}"}


def _decode_entity(name: str) -> Optional[str]:
    if name in NAMED_ENTITIES:
        return NAMED_ENTITIES[name]
    code = int(name[2:], 16) if name.startswith("#x") else int(name[1:])
    if 0 < code <= 0x10FFFF:
        return chr(code)
    return None


def decode_xml_entities(raw: str) -> Tuple[str, List[int]]:
    """
    Replaces XML character entities in `raw`.
    Returns the decoded text and, for each decoded character, its offset in `raw`.
    """
    out: List[str] = []
    offsets: List[int] = []
    i = 0
    for match in ENTITY_REGEX.finditer(raw):
        decoded = _decode_entity(match.group(1))
        if decoded is None:
            continue
        out.append(raw[i : match.start()])
        offsets.extend(range(i, match.start()))
        out.append(decoded)
        offsets.append(match.start())
        i = match.end()
    out.append(raw[i:])
    offsets.extend(range(i, len(raw)))
    return "".join(out), offsets


class AttributeClassifier:
    """
    Splits one attribute value into literal runs and `{...}` bindings.

    Works on the (optionally entity-decoded) text while mapping every index back
    to the raw attribute text, so that spans point at the original source.
    """

    def __init__(self, raw: str, origin: Origin, decode: bool):
        self.raw = raw
        self.origin = origin
        if decode:
            self.text, self.offsets = decode_xml_entities(raw)
        else:
            self.text, self.offsets = raw, list(range(len(raw)))

    def _origin_at(self, index: int) -> Origin:
        raw_index = self.offsets[index] if index < len(self.offsets) else len(self.raw)
        return self.origin.advance(self.raw[:raw_index])

    def _span(self, begin: int, end: int) -> Span:
        """Span of text[begin:end], measured on the raw attribute text."""
        start = self._origin_at(begin)
        stop = self._origin_at(end)
        return Span(start_line=start.line, start_col=start.col, end_line=stop.line, end_col=stop.col, source_id=self.origin.source_id)

    def classify(self) -> AttributeValue:
        parts: List[InterpolationPart] = []
        literal: List[str] = []
        literal_start = 0
        text = self.text
        i = 0

        def flush(end: int):
            if literal:
                parts.append(LiteralPart(text="".join(literal), span=self._span(literal_start, end)))
                literal.clear()

        while i < len(text):
            char = text[i]
            if char == "\\" and i + 1 < len(text) and text[i + 1] in ESCAPED_BRACES:
                if not literal:
                    literal_start = i
                literal.append(text[i + 1])
                i += 2
            elif char == "{":
                flush(i)
                close = self._matching_brace(i)
                expr_text = text[i + 1 : close]
                expr = parse_expression(expr_text, self._origin_at(i + 1))
                parts.append(ExprPart(expr=expr, span=self._span(i, close + 1)))
                i = close + 1
            else:
                # A stray '}' is ordinary text.
                if not literal:
                    literal_start = i
                literal.append(char)
                i += 1
        flush(len(text))

        whole = self._span(0, len(text))
        expr_parts = [p for p in parts if isinstance(p, ExprPart)]
        if not expr_parts:
            return Static(text="".join(p.text for p in parts), span=whole)
        if len(expr_parts) == 1 and all(isinstance(p, ExprPart) or p.text.strip() == "" for p in parts):
            return Binding(expr=expr_parts[0].expr, span=expr_parts[0].span)
        return Interpolated(parts=tuple(parts), span=whole)

    def _matching_brace(self, open_index: int) -> int:
        """Index of the '}' closing the '{' at `open_index`, skipping braces inside string literals."""
        text = self.text
        depth = 1
        quote = None
        i = open_index + 1
        while i < len(text):
            char = text[i]
            if quote:
                if char == "\\":
                    i += 2
                    continue
                if char == quote:
                    quote = None
            elif char in QUOTES:
                quote = char
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        raise ParseError(ParseErrorKind.UNTERMINATED_BINDING, span=self._span(open_index, open_index + 1))


def classify_attribute(raw: str, origin: Origin = Origin(), decode_entities: bool = False) -> AttributeValue:
    """
    Classifies the raw text of one attribute value.

    `origin` is the position of the first character of `raw` in its source.
    With `decode_entities`, XML character entities are decoded first; spans
    still refer to the raw text, although positions inside an expression that
    follow an entity are shifted by the entity's extra length.
    Raises ParseError or LexError for a malformed binding.
    """
    return AttributeClassifier(raw, origin, decode_entities).classify()
