"""Generic value model shared by the format parsers and the engine.

Every structured document (settings files, profile blocks, variable
injection files) is converted into a ``Value`` before the engine looks at
it, so the engine never depends on a particular file format.

Accessors are strict about containers and loose about scalars:

- ``as_bool()`` accepts booleans, 0/1 and the strings "true"/"false"/"1"/"0"
- ``as_int()``/``as_float()`` accept numeric-looking strings
- ``as_string()`` renders any scalar (booleans as "true"/"false")
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class _ValueBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str

    def _mismatch(self, expected: str) -> TypeError:
        return TypeError(f"Expected {expected} value, got {self.kind}")

    def is_null(self) -> bool:
        return self.kind == "null"

    def is_map(self) -> bool:
        return self.kind == "map"

    def is_array(self) -> bool:
        return self.kind == "array"

    def is_scalar(self) -> bool:
        return self.kind in ("string", "int", "float", "bool")

    def as_string(self) -> str:
        raise self._mismatch("string")

    def as_int(self) -> int:
        raise self._mismatch("integer")

    def as_float(self) -> float:
        raise self._mismatch("float")

    def as_bool(self) -> bool:
        raise self._mismatch("boolean")

    def as_map(self) -> dict[str, Value]:
        raise self._mismatch("map")

    def as_array(self) -> list[Value]:
        raise self._mismatch("array")


class NullValue(_ValueBase):
    kind: Literal["null"] = "null"


class StringValue(_ValueBase):
    kind: Literal["string"] = "string"
    value: str

    def as_string(self) -> str:
        return self.value

    def as_int(self) -> int:
        try:
            return int(self.value.strip())
        except ValueError:
            raise self._mismatch("integer") from None

    def as_float(self) -> float:
        try:
            return float(self.value.strip())
        except ValueError:
            raise self._mismatch("float") from None

    def as_bool(self) -> bool:
        lowered = self.value.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise self._mismatch("boolean")


class IntValue(_ValueBase):
    kind: Literal["int"] = "int"
    value: int

    def as_string(self) -> str:
        return str(self.value)

    def as_int(self) -> int:
        return self.value

    def as_float(self) -> float:
        return float(self.value)

    def as_bool(self) -> bool:
        if self.value in (0, 1):
            return bool(self.value)
        raise self._mismatch("boolean")


class FloatValue(_ValueBase):
    kind: Literal["float"] = "float"
    value: float

    def as_string(self) -> str:
        return str(self.value)

    def as_float(self) -> float:
        return self.value


class BoolValue(_ValueBase):
    kind: Literal["bool"] = "bool"
    value: bool

    def as_string(self) -> str:
        return "true" if self.value else "false"

    def as_bool(self) -> bool:
        return self.value


class MapValue(_ValueBase):
    kind: Literal["map"] = "map"
    entries: dict[str, Value] = {}

    def as_map(self) -> dict[str, Value]:
        return self.entries

    def get(self, key: str) -> Value:
        """Return the entry for *key*, or a null value when absent."""
        return self.entries.get(key, NullValue())


class ArrayValue(_ValueBase):
    kind: Literal["array"] = "array"
    items: list[Value] = []

    def as_array(self) -> list[Value]:
        return self.items


Value = Annotated[
    Union[
        NullValue,
        StringValue,
        IntValue,
        FloatValue,
        BoolValue,
        MapValue,
        ArrayValue,
    ],
    Field(discriminator="kind"),
]

# Rebuild models with recursive Value references.
MapValue.model_rebuild()
ArrayValue.model_rebuild()


def to_value(obj: object) -> Value:
    """Convert plain Python data (as produced by json/yaml/toml) to a Value.

    Dates and times are rendered in ISO format; any other unsupported type
    raises ``TypeError``.
    """
    if isinstance(obj, _ValueBase):
        return obj
    if obj is None:
        return NullValue()
    # bool before int: bool is an int subclass
    if isinstance(obj, bool):
        return BoolValue(value=obj)
    if isinstance(obj, int):
        return IntValue(value=obj)
    if isinstance(obj, float):
        return FloatValue(value=obj)
    if isinstance(obj, str):
        return StringValue(value=obj)
    if isinstance(obj, (datetime, date, time)):
        return StringValue(value=obj.isoformat())
    if isinstance(obj, dict):
        return MapValue(entries={str(k): to_value(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return ArrayValue(items=[to_value(item) for item in obj])
    raise TypeError(f"Cannot convert {type(obj).__name__} to a Value")
