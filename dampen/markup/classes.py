"""
Defines the formal data structures for the widget tree produced from markup:
widget nodes, classified attribute values, event bindings and the document
that holds them.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import DampenError
from ..expr.classes import Expression
from ..spans import Span


class WidgetKind(Enum):
    # --- Layout ---
    COLUMN = "column"
    ROW = "row"
    CONTAINER = "container"
    SCROLLABLE = "scrollable"
    STACK = "stack"
    GRID = "grid"
    FLOAT = "float"
    SPACE = "space"
    RULE = "rule"

    # --- Display & Input ---
    TEXT = "text"
    IMAGE = "image"
    SVG = "svg"
    BUTTON = "button"
    TEXT_INPUT = "text_input"
    CHECKBOX = "checkbox"
    SLIDER = "slider"
    PICK_LIST = "pick_list"
    TOGGLER = "toggler"
    RADIO = "radio"
    COMBO_BOX = "combobox"
    PROGRESS_BAR = "progress_bar"
    TOOLTIP = "tooltip"
    DATE_PICKER = "date_picker"
    TIME_PICKER = "time_picker"
    COLOR_PICKER = "color_picker"

    # --- Menus ---
    MENU = "menu"
    MENU_ITEM = "menu_item"
    MENU_SEPARATOR = "menu_separator"
    CONTEXT_MENU = "context_menu"

    # --- Data ---
    DATA_TABLE = "data_table"
    DATA_COLUMN = "data_column"
    TREE_VIEW = "tree_view"
    TREE_NODE = "tree_node"

    # --- Canvas ---
    CANVAS = "canvas"
    CANVAS_RECT = "rect"
    CANVAS_CIRCLE = "circle"
    CANVAS_LINE = "line"
    CANVAS_TEXT = "canvas_text"
    CANVAS_GROUP = "group"

    # --- Control Flow ---
    FOR = "for"
    IF = "if"

    # Any tag outside the standard set; the tag name is kept on the node.
    CUSTOM = "custom"

    @classmethod
    def from_tag(cls, tag: str) -> "WidgetKind":
        """Maps a tag name to its widget kind, or CUSTOM for an unknown tag."""
        try:
            return cls(tag)
        except ValueError:
            return cls.CUSTOM


STANDARD_WIDGET_TAGS = tuple(kind.value for kind in WidgetKind if kind != WidgetKind.CUSTOM)


class EventKind(Enum):
    CLICK = "click"
    PRESS = "press"
    RELEASE = "release"
    CHANGE = "change"
    INPUT = "input"
    SUBMIT = "submit"
    SELECT = "select"
    TOGGLE = "toggle"
    SCROLL = "scroll"
    CANVAS_CLICK = "canvas_click"
    CANVAS_DRAG = "canvas_drag"
    CANVAS_MOVE = "canvas_move"
    CANVAS_RELEASE = "canvas_release"
    ROW_CLICK = "row_click"
    CANCEL = "cancel"
    OPEN = "open"
    CLOSE = "close"


class MarkupNode(BaseModel):
    """A base class for all widget-tree nodes, ensuring they have a span."""

    model_config = ConfigDict(frozen=True)

    span: Span


# --- Attribute Values ---
class Static(MarkupNode):
    text: str


class Binding(MarkupNode):
    expr: Expression


class LiteralPart(MarkupNode):
    text: str


class ExprPart(MarkupNode):
    expr: Expression


InterpolationPart = Union[LiteralPart, ExprPart]


class Interpolated(MarkupNode):
    parts: Tuple[InterpolationPart, ...]


AttributeValue = Union[Static, Binding, Interpolated]


# --- Tree ---
class EventBinding(MarkupNode):
    """`on_click="handler"`, `on_click="handler:{expr}"` or `on_click="handler:'text'"`."""

    event: EventKind
    handler: str
    param: Optional[Expression] = None


class WidgetNode(MarkupNode):
    kind: WidgetKind
    tag: str
    id: Optional[str] = None
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    events: Tuple[EventBinding, ...] = ()
    classes: Tuple[str, ...] = ()
    children: Tuple["WidgetNode", ...] = ()


WidgetNode.model_rebuild()


class SchemaVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    major: int = 1
    minor: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class Document(BaseModel):
    """
    The result of parsing one markup source: the root widgets and every
    non-fatal problem found along the way.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    version: SchemaVersion = SchemaVersion()
    roots: Tuple[WidgetNode, ...] = ()
    diagnostics: Tuple[DampenError, ...] = ()
    source_id: str = "<string>"

    @property
    def root(self) -> Optional[WidgetNode]:
        return self.roots[0] if self.roots else None

    def has_errors(self) -> bool:
        return len(self.diagnostics) > 0
