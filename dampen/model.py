"""
The model-access capability: the only way the evaluator reads application data.

`ModelAccess` is a structural protocol, so any object with `get_field` and
`list_fields` can be handed to the evaluator. `PythonModel` adapts plain Python
data (mappings, dataclasses, pydantic models and ordinary objects).
"""

import dataclasses
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Tuple, runtime_checkable

from pydantic import BaseModel

from .expr.values import BINDING_VALUE_TYPES, BindingValue, ObjectValue, StringValue, to_binding_value


@runtime_checkable
class ModelAccess(Protocol):
    def get_field(self, path: Sequence[str]) -> Optional[BindingValue]:
        """Returns the value at the dotted `path`, or None when it does not exist."""
        ...

    def list_fields(self) -> Sequence[str]:
        """Returns every readable path, dotted, for "did you mean" suggestions."""
        ...


_MISSING = object()


def _public_attributes(obj: Any) -> Mapping[str, Any]:
    if isinstance(obj, BaseModel):
        return {name: getattr(obj, name) for name in type(obj).model_fields}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if hasattr(obj, "__dict__"):
        return {name: value for name, value in vars(obj).items() if not name.startswith("_")}
    return {}


def _children(obj: Any) -> Optional[Mapping[str, Any]]:
    """Named children of a container-like value, or None for leaves."""
    if isinstance(obj, BINDING_VALUE_TYPES):
        return obj.entries if isinstance(obj, ObjectValue) else None
    if isinstance(obj, Mapping):
        return {str(key): value for key, value in obj.items()}
    if isinstance(obj, (str, bytes, int, float, bool, list, tuple, type(None))):
        return None
    return _public_attributes(obj)


def _lookup(obj: Any, name: str) -> Any:
    children = _children(obj)
    if children is None:
        return _MISSING
    return children.get(name, _MISSING)


def to_model_value(obj: Any) -> BindingValue:
    """Like `to_binding_value`, but also converts objects to `ObjectValue`s of their public attributes."""
    if isinstance(obj, BINDING_VALUE_TYPES):
        return obj
    if isinstance(obj, Mapping):
        return ObjectValue(entries={str(key): to_model_value(value) for key, value in obj.items()})
    if isinstance(obj, (list, tuple)):
        return to_binding_value([to_model_value(item) for item in obj])
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return to_binding_value(obj)
    attributes = _public_attributes(obj)
    if attributes:
        return ObjectValue(entries={name: to_model_value(value) for name, value in attributes.items()})
    return StringValue(value=str(obj))


class PythonModel:
    """
    Exposes plain Python data as a `ModelAccess`.

    Path segments are looked up as mapping keys or public attributes. Values are
    converted to `BindingValue`s when they are read, so the wrapped data can
    change between evaluations.
    """

    def __init__(self, data: Any, max_depth: int = 8):
        self.data = data
        self.max_depth = max_depth

    def get_field(self, path: Sequence[str]) -> Optional[BindingValue]:
        current = self.data
        for segment in path:
            current = _lookup(current, segment)
            if current is _MISSING:
                return None
        return to_model_value(current)

    def list_fields(self) -> List[str]:
        fields: List[str] = []
        stack: List[Tuple[str, Any, int]] = [("", self.data, 0)]
        seen = set()
        while stack:
            prefix, obj, depth = stack.pop()
            children = _children(obj)
            if children is None or depth >= self.max_depth or id(obj) in seen:
                continue
            seen.add(id(obj))
            # Pushed in reverse so fields are listed in declaration order.
            for name, value in reversed(list(children.items())):
                path = f"{prefix}.{name}" if prefix else name
                stack.append((path, value, depth + 1))
            fields.extend(f"{prefix}.{name}" if prefix else name for name in children)
        return fields

    def __repr__(self) -> str:
        return f"PythonModel({self.data!r})"
