"""
Runtime values produced by evaluating a binding expression.

`BindingValue` is a closed union of immutable tagged variants. Values coming
from plain Python data are converted with `to_binding_value`.
"""

import math
from abc import abstractmethod
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

from ..config import INT_MAX, INT_MIN


class _Value(BaseModel):
    model_config = ConfigDict(frozen=True)

    type_name: ClassVar[str] = "value"

    @abstractmethod
    def to_display_string(self) -> str:
        """Text shown when the value is interpolated into an attribute."""

    @abstractmethod
    def to_python(self) -> Any:
        """The plain Python equivalent (None, bool, int, float, str, list or dict)."""


class NoneValue(_Value):
    type_name: ClassVar[str] = "none"

    def to_display_string(self) -> str:
        return ""

    def to_python(self) -> Any:
        return None


class BoolValue(_Value):
    type_name: ClassVar[str] = "bool"
    value: StrictBool

    def to_display_string(self) -> str:
        return "true" if self.value else "false"

    def to_python(self) -> Any:
        return self.value


class IntValue(_Value):
    type_name: ClassVar[str] = "int"
    value: StrictInt

    @field_validator("value")
    @classmethod
    def _fits_in_64_bits(cls, v: int) -> int:
        if not INT_MIN <= v <= INT_MAX:
            raise ValueError(f"{v} does not fit in a signed 64-bit integer")
        return v

    def to_display_string(self) -> str:
        return str(self.value)

    def to_python(self) -> Any:
        return self.value


class FloatValue(_Value):
    type_name: ClassVar[str] = "float"
    value: StrictFloat

    def to_display_string(self) -> str:
        # Integral floats print without a fractional part ("3", not "3.0").
        if math.isfinite(self.value) and self.value.is_integer():
            return str(int(self.value))
        if math.isnan(self.value):
            return "NaN"
        if math.isinf(self.value):
            return "inf" if self.value > 0 else "-inf"
        return repr(self.value)

    def to_python(self) -> Any:
        return self.value


class StringValue(_Value):
    type_name: ClassVar[str] = "string"
    value: StrictStr

    def to_display_string(self) -> str:
        return self.value

    def to_python(self) -> Any:
        return self.value


class ListValue(_Value):
    type_name: ClassVar[str] = "list"
    items: Tuple["BindingValue", ...] = ()

    def to_display_string(self) -> str:
        return f"[{len(self.items)} items]"

    def to_python(self) -> Any:
        return [item.to_python() for item in self.items]


class ObjectValue(_Value):
    type_name: ClassVar[str] = "object"
    entries: Dict[str, "BindingValue"] = Field(default_factory=dict)

    def to_display_string(self) -> str:
        return f"{{Object with {len(self.entries)} fields}}"

    def to_python(self) -> Any:
        return {key: value.to_python() for key, value in self.entries.items()}

    def get_field(self, name: str) -> Optional["BindingValue"]:
        return self.entries.get(name)


BindingValue = Union[NoneValue, BoolValue, IntValue, FloatValue, StringValue, ListValue, ObjectValue]
BINDING_VALUE_TYPES = (NoneValue, BoolValue, IntValue, FloatValue, StringValue, ListValue, ObjectValue)

ListValue.model_rebuild()
ObjectValue.model_rebuild()


def to_binding_value(obj: Any) -> BindingValue:
    """
    Converts a plain Python value into a `BindingValue`.
    Mappings become objects, lists and tuples become lists; any other type is rejected.
    """
    if isinstance(obj, BINDING_VALUE_TYPES):
        return obj
    if obj is None:
        return NoneValue()
    # bool is a subclass of int, so it must be checked first.
    if isinstance(obj, bool):
        return BoolValue(value=obj)
    if isinstance(obj, int):
        return IntValue(value=obj)
    if isinstance(obj, float):
        return FloatValue(value=obj)
    if isinstance(obj, str):
        return StringValue(value=obj)
    if isinstance(obj, Mapping):
        return ObjectValue(entries={str(key): to_binding_value(value) for key, value in obj.items()})
    if isinstance(obj, (list, tuple)):
        return ListValue(items=tuple(to_binding_value(item) for item in obj))
    raise TypeError(f"Cannot convert a value of type '{type(obj).__name__}' to a binding value.")


def is_numeric(value: BindingValue) -> bool:
    return isinstance(value, (IntValue, FloatValue))


def values_equal(a: BindingValue, b: BindingValue) -> bool:
    """
    Equality used by `==`, `!=` and `contains`. Ints and floats compare by
    numeric value; any other pair of different types is unequal.
    """
    if is_numeric(a) and is_numeric(b):
        return a.value == b.value
    if type(a) is not type(b):
        return False
    if isinstance(a, ListValue):
        return len(a.items) == len(b.items) and all(values_equal(x, y) for x, y in zip(a.items, b.items))
    if isinstance(a, ObjectValue):
        return a.entries.keys() == b.entries.keys() and all(values_equal(v, b.entries[k]) for k, v in a.entries.items())
    return a == b
