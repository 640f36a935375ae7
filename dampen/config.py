"""
Static configuration data for the Dampen markup compiler.
This includes the event attribute table, operator precedences, keyword literals
and the limits used by the parser and the diagnostics.
"""

# The newest `<dampen version="major.minor">` this compiler understands.
SUPPORTED_SCHEMA_VERSION = (1, 1)
DEFAULT_SCHEMA_VERSION = (1, 0)

# Name of the optional wrapper element whose children are the document roots.
DOCUMENT_ELEMENT = "dampen"

# Attribute names that are lifted out of the attribute map into dedicated fields.
ID_ATTRIBUTE = "id"
CLASS_ATTRIBUTE = "class"
VERSION_ATTRIBUTE = "version"

# Maps `on_*` attribute names to event kinds. Canvas widgets report pointer
# events with their own kinds (see CANVAS_EVENT_OVERRIDES).
EVENT_ATTRIBUTES = {
    "on_click": "click",
    "on_press": "press",
    "on_release": "release",
    "on_change": "change",
    "on_input": "input",
    "on_submit": "submit",
    "on_select": "select",
    "on_toggle": "toggle",
    "on_scroll": "scroll",
    "on_drag": "canvas_drag",
    "on_move": "canvas_move",
    "on_row_click": "row_click",
    "on_cancel": "cancel",
    "on_open": "open",
    "on_close": "close",
}
CANVAS_EVENT_OVERRIDES = {
    "on_click": "canvas_click",
    "on_release": "canvas_release",
}

# Attributes a widget cannot do without, each with an example for the help line.
REQUIRED_ATTRIBUTES = {
    "for": (("each", 'each="item"'), ("in", 'in="{items}"')),
    "grid": (("columns", 'columns="5"'),),
    "tooltip": (("message", 'message="Help text"'),),
}

# Attributes that must also be non-empty when given as static text.
NON_EMPTY_ATTRIBUTES = {
    "pick_list": (("options", 'options="Option1,Option2"'),),
    "combobox": (("options", 'options="Option1,Option2"'),),
}

# Binding power of every binary operator; higher binds tighter.
# The conditional operator (`?:`) sits below all of them.
BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 4,
    "<=": 4,
    ">": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}
UNARY_OPERATORS = {"!", "-"}

# Identifiers that denote literal values instead of model fields.
KEYWORD_LITERALS = {"true": True, "false": False, "null": None}

# Identifiers reserved by the `if <cond> then <a> else <b>` spelling of the conditional.
CONDITIONAL_KEYWORDS = {"if", "then", "else"}

# Leading path segment that reads from the shared context instead of the local model.
SHARED_ROOT = "shared"

# Maximum nesting (and tree height) of one binding expression before the parser gives up.
MAX_EXPRESSION_DEPTH = 64

# Maximum edit distance for a "did you mean" suggestion.
SUGGESTION_MAX_DISTANCE = 2

# Range of the Int runtime value.
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1
