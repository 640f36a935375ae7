"""
Defines the formal data structures (contracts) for the Abstract Syntax Tree (AST)
of a binding expression.

Each node is an immutable pydantic model carrying a `Span` that points back at
the expression text, so evaluation errors can be reported precisely.
"""

from enum import Enum
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..spans import Span
from .values import BindingValue


class UnaryOperator(Enum):
    NOT = "!"
    NEG = "-"


class BinaryOperator(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    AND = "&&"
    OR = "||"


ARITHMETIC_OPERATORS = {BinaryOperator.ADD, BinaryOperator.SUB, BinaryOperator.MUL, BinaryOperator.DIV, BinaryOperator.MOD}
EQUALITY_OPERATORS = {BinaryOperator.EQ, BinaryOperator.NE}
ORDERING_OPERATORS = {BinaryOperator.LT, BinaryOperator.LE, BinaryOperator.GT, BinaryOperator.GE}
LOGICAL_OPERATORS = {BinaryOperator.AND, BinaryOperator.OR}


class ASTNode(BaseModel):
    """A base class for all AST nodes, ensuring they have a span."""

    model_config = ConfigDict(frozen=True)

    span: Span


class ModelRoot(ASTNode):
    """The start of a field path: the local model, or the shared context when `shared` is set."""

    shared: bool = False


class Literal(ASTNode):
    value: BindingValue


class FieldAccess(ASTNode):
    base: Union[ModelRoot, "Expression"]
    segments: Tuple[str, ...]


class Index(ASTNode):
    base: "Expression"
    index: "Expression"


class MethodCall(ASTNode):
    base: "Expression"
    method: str
    args: Tuple["Expression", ...] = ()


class UnaryOp(ASTNode):
    op: UnaryOperator
    operand: "Expression"


class BinaryOp(ASTNode):
    op: BinaryOperator
    left: "Expression"
    right: "Expression"


class Conditional(ASTNode):
    cond: "Expression"
    then_branch: "Expression"
    else_branch: "Expression"


# A generic type hint for any expression node
Expression = Union[Literal, FieldAccess, Index, MethodCall, UnaryOp, BinaryOp, Conditional]

for _node in (FieldAccess, Index, MethodCall, UnaryOp, BinaryOp, Conditional):
    _node.model_rebuild()


def field_path(node: Expression) -> Union[Tuple[str, ...], None]:
    """Returns the dotted path of a field access rooted at the model, or None for any other node."""
    if isinstance(node, FieldAccess) and isinstance(node.base, ModelRoot):
        return node.segments
    return None


def walk(node: Expression):
    """Yields `node` and every expression nested inside it, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, FieldAccess):
            if not isinstance(current.base, ModelRoot):
                stack.append(current.base)
        elif isinstance(current, Index):
            stack.extend((current.index, current.base))
        elif isinstance(current, MethodCall):
            stack.extend(reversed(current.args))
            stack.append(current.base)
        elif isinstance(current, UnaryOp):
            stack.append(current.operand)
        elif isinstance(current, BinaryOp):
            stack.extend((current.right, current.left))
        elif isinstance(current, Conditional):
            stack.extend((current.else_branch, current.then_branch, current.cond))


def uses_shared(node: Expression) -> bool:
    """True when the expression reads anything from the shared context."""
    return any(isinstance(n, FieldAccess) and isinstance(n.base, ModelRoot) and n.base.shared for n in walk(node))


def uses_model(node: Expression) -> bool:
    """True when the expression reads anything from the local model."""
    return any(isinstance(n, FieldAccess) and isinstance(n.base, ModelRoot) and not n.base.shared for n in walk(node))
