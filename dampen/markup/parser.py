"""
Builds the widget tree from the markup token stream.

The tree is built with an explicit stack of open elements, so document depth is
not limited by the Python call stack. Structural errors (lexer errors,
mismatched or unclosed tags, an empty document) abort the parse. Problems
confined to one attribute or one widget are collected as diagnostics on the
returned `Document` and parsing continues.
"""

import logging
import re
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import (
    CANVAS_EVENT_OVERRIDES,
    CLASS_ATTRIBUTE,
    DEFAULT_SCHEMA_VERSION,
    DOCUMENT_ELEMENT,
    EVENT_ATTRIBUTES,
    ID_ATTRIBUTE,
    NON_EMPTY_ATTRIBUTES,
    REQUIRED_ATTRIBUTES,
    SUPPORTED_SCHEMA_VERSION,
    VERSION_ATTRIBUTE,
)
from ..diagnostics import closest_match
from ..exceptions import DampenError, ParseError, ParseErrorKind
from ..expr.classes import Expression, Literal
from ..expr.parser import parse_expression
from ..expr.values import StringValue
from ..spans import MarkupTokenKind, Origin, Span, Token
from .attributes import classify_attribute, decode_xml_entities
from .classes import (
    STANDARD_WIDGET_TAGS,
    AttributeValue,
    Document,
    EventBinding,
    EventKind,
    SchemaVersion,
    Static,
    WidgetKind,
    WidgetNode,
)
from .lexer import tokenize_markup

logger = logging.getLogger(__name__)

VERSION_REGEX = re.compile(r"^(\d+)\.(\d+)$")


class _OpenElement:
    """An element whose start tag has been read but whose children are still being collected."""

    def __init__(self, tag: str, kind: WidgetKind, start_span: Span):
        self.tag = tag
        self.kind = kind
        self.start_span = start_span
        self.id: Optional[str] = None
        self.attributes: Dict[str, AttributeValue] = {}
        self.events: List[EventBinding] = []
        self.classes: Tuple[str, ...] = ()
        self.children: List[WidgetNode] = []
        self.is_document = False

    def build(self, end_span: Span) -> WidgetNode:
        return WidgetNode(
            kind=self.kind,
            tag=self.tag,
            id=self.id,
            attributes=self.attributes,
            events=tuple(self.events),
            classes=self.classes,
            children=tuple(self.children),
            span=self.start_span.merge(end_span),
        )


class MarkupParser:
    def __init__(self, source: str, source_id: str = "<string>", allow_custom_widgets: bool = False):
        self.source = source
        self.source_id = source_id
        self.allow_custom_widgets = allow_custom_widgets
        self.diagnostics: List[DampenError] = []
        self.version = SchemaVersion(major=DEFAULT_SCHEMA_VERSION[0], minor=DEFAULT_SCHEMA_VERSION[1])
        self.roots: List[WidgetNode] = []
        self.stack: List[_OpenElement] = []

    def parse(self) -> Document:
        tokens = tokenize_markup(self.source, self.source_id)
        for token in tokens:
            if token.kind == MarkupTokenKind.TEXT:
                if token.text.strip():
                    logger.debug("Ignoring text content %r at %s:%d:%d", token.text.strip(), self.source_id, token.span.start_line, token.span.start_col)
            elif token.kind == MarkupTokenKind.TAG_OPEN:
                self._open_element(token, tokens)
            elif token.kind == MarkupTokenKind.TAG_CLOSE:
                self._close_element(token)
            elif token.kind == MarkupTokenKind.EOF:
                break

        if self.stack:
            element = self.stack[-1]
            raise ParseError(ParseErrorKind.UNCLOSED_ELEMENT, span=element.start_span, name=element.tag)
        if not self.roots:
            end = Origin(source_id=self.source_id).advance(self.source)
            raise ParseError(
                ParseErrorKind.EMPTY_DOCUMENT,
                span=Span(start_line=end.line, start_col=end.col, end_line=end.line, end_col=end.col, source_id=self.source_id),
            )

        document = Document(version=self.version, roots=tuple(self.roots), diagnostics=tuple(self.diagnostics), source_id=self.source_id)
        logger.debug("Parsed %s: %d root widget(s), %d diagnostic(s)", self.source_id, len(document.roots), len(document.diagnostics))
        return document

    # --- Elements ---
    def _open_element(self, tag_token: Token, tokens: Iterator[Token]):
        tag = tag_token.text
        raw_attributes: List[Tuple[Token, Token]] = []
        token = next(tokens)
        while token.kind == MarkupTokenKind.ATTR_NAME:
            raw_attributes.append((token, next(tokens)))
            token = next(tokens)
        self_closing = token.kind == MarkupTokenKind.SELF_CLOSE
        start_span = tag_token.span.merge(token.span)

        if tag == DOCUMENT_ELEMENT and not self.stack and not self.roots:
            element = _OpenElement(tag, WidgetKind.CUSTOM, start_span)
            element.is_document = True
            self._read_document_attributes(raw_attributes)
        else:
            element = _OpenElement(tag, WidgetKind.from_tag(tag), start_span)
            if element.kind == WidgetKind.CUSTOM and not self.allow_custom_widgets:
                self.diagnostics.append(
                    ParseError(ParseErrorKind.UNKNOWN_WIDGET, span=tag_token.span, suggestion=closest_match(tag, STANDARD_WIDGET_TAGS), name=tag)
                )
            self._read_attributes(element, raw_attributes)
            self._check_required_attributes(element, tag_token.span, raw_attributes)

        if self_closing:
            self._finish(element, token.span)
        else:
            self.stack.append(element)

    def _close_element(self, token: Token):
        if not self.stack:
            raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, span=token.span, found=f"closing tag '</{token.text}>'", expected="an opening tag")
        element = self.stack[-1]
        if element.tag != token.text:
            raise ParseError(ParseErrorKind.MISMATCHED_CLOSING_TAG, span=token.span, found=token.text, expected=element.tag)
        self.stack.pop()
        self._finish(element, token.span)

    def _finish(self, element: _OpenElement, end_span: Span):
        if element.is_document:
            # The children of the document element are the document roots.
            self.roots.extend(element.children)
            return
        node = element.build(end_span)
        if self.stack:
            self.stack[-1].children.append(node)
        else:
            self.roots.append(node)

    # --- Attributes ---
    def _unique_attributes(self, tag: str, raw_attributes: List[Tuple[Token, Token]]) -> List[Tuple[Token, Token]]:
        """Drops repeated attribute names (keeping the first) and records a diagnostic for each repeat."""
        seen = set()
        unique = []
        for name_token, value_token in raw_attributes:
            if name_token.text in seen:
                self.diagnostics.append(ParseError(ParseErrorKind.DUPLICATE_ATTRIBUTE, span=name_token.span, name=name_token.text, tag=tag))
                continue
            seen.add(name_token.text)
            unique.append((name_token, value_token))
        return unique

    def _read_document_attributes(self, raw_attributes: List[Tuple[Token, Token]]):
        for name_token, value_token in self._unique_attributes(DOCUMENT_ELEMENT, raw_attributes):
            if name_token.text != VERSION_ATTRIBUTE:
                continue
            text = value_token.text.strip()
            match = VERSION_REGEX.match(text)
            if match is None:
                self.diagnostics.append(ParseError(ParseErrorKind.INVALID_VERSION, span=value_token.span, value=value_token.text))
                continue
            version = (int(match.group(1)), int(match.group(2)))
            self.version = SchemaVersion(major=version[0], minor=version[1])
            if version > SUPPORTED_SCHEMA_VERSION:
                supported = "{}.{}".format(*SUPPORTED_SCHEMA_VERSION)
                self.diagnostics.append(ParseError(ParseErrorKind.UNSUPPORTED_VERSION, span=value_token.span, value=text, supported=supported))

    def _read_attributes(self, element: _OpenElement, raw_attributes: List[Tuple[Token, Token]]):
        for name_token, value_token in self._unique_attributes(element.tag, raw_attributes):
            name = name_token.text
            origin = Origin(line=value_token.span.start_line, col=value_token.span.start_col, source_id=self.source_id)

            if name == ID_ATTRIBUTE:
                element.id = decode_xml_entities(value_token.text)[0]
                continue

            if name in EVENT_ATTRIBUTES:
                event = self._parse_event(element.kind, name, value_token.text, origin, value_token.span)
                if event is not None:
                    element.events.append(event)
                continue

            try:
                value = classify_attribute(value_token.text, origin, decode_entities=True)
            except DampenError as e:
                # The malformed attribute is left out of the node; the rest of the widget is kept.
                self.diagnostics.append(e)
                continue

            element.attributes[name] = value
            if name == CLASS_ATTRIBUTE and isinstance(value, Static):
                element.classes = tuple(value.text.split())

    def _check_required_attributes(self, element: _OpenElement, span: Span, raw_attributes: List[Tuple[Token, Token]]):
        """Reports attributes the widget cannot do without. A malformed attribute counts as present."""
        given = {name_token.text for name_token, _ in raw_attributes}
        for name, example in REQUIRED_ATTRIBUTES.get(element.tag, ()):
            if name not in given:
                self.diagnostics.append(ParseError(ParseErrorKind.MISSING_ATTRIBUTE, span=span, suggestion=example, tag=element.tag, name=name, requirement=""))
        for name, example in NON_EMPTY_ATTRIBUTES.get(element.tag, ()):
            value = element.attributes.get(name)
            if name not in given or (isinstance(value, Static) and not value.text.strip()):
                self.diagnostics.append(
                    ParseError(ParseErrorKind.MISSING_ATTRIBUTE, span=span, suggestion=example, tag=element.tag, name=name, requirement=" with at least one entry")
                )

    def _parse_event(self, kind: WidgetKind, name: str, raw: str, origin: Origin, span: Span) -> Optional[EventBinding]:
        """
        Parses `handler`, `handler:{expr}` or `handler:'text'`.
        Returns None, after recording a diagnostic, when the parameter is malformed.
        """
        event_name = EVENT_ATTRIBUTES[name]
        if kind == WidgetKind.CANVAS:
            event_name = CANVAS_EVENT_OVERRIDES.get(name, event_name)
        event = EventKind(event_name)

        value = decode_xml_entities(raw)[0]
        handler, colon, param_text = value.partition(":")
        if not colon:
            return EventBinding(event=event, handler=value.strip(), span=span)

        param_origin = origin.advance(handler + colon)
        param: Optional[Expression]
        if len(param_text) >= 2 and param_text[0] == "'" and param_text[-1] == "'":
            param = Literal(value=StringValue(value=param_text[1:-1]), span=param_origin.span_of(param_text))
        else:
            expr_text = param_text
            if expr_text.startswith("{") and expr_text.endswith("}"):
                expr_text = expr_text[1:-1]
                param_origin = param_origin.advance("{")
            try:
                param = parse_expression(expr_text, param_origin)
            except DampenError as e:
                self.diagnostics.append(e)
                return None
        return EventBinding(event=event, handler=handler.strip(), param=param, span=span)


def parse_document(source: str, source_id: str = "<string>", allow_custom_widgets: bool = False) -> Document:
    """
    Parses one markup source into a `Document`.

    Raises LexError or ParseError when the element structure itself is broken;
    every other problem is reported in `Document.diagnostics`.
    """
    return MarkupParser(source, source_id, allow_custom_widgets).parse()
