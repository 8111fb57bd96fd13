"""Tests for the generic Value model."""

from datetime import date

import pytest
from pydantic import ValidationError

from prebyte.model.value import (
    ArrayValue,
    BoolValue,
    FloatValue,
    IntValue,
    MapValue,
    NullValue,
    StringValue,
    to_value,
)


# ---------------------------------------------------------------------------
# to_value
# ---------------------------------------------------------------------------

class TestToValue:
    def test_none(self):
        assert to_value(None).is_null()

    def test_bool_is_not_int(self):
        v = to_value(True)
        assert isinstance(v, BoolValue)
        assert v.as_bool() is True

    def test_int(self):
        v = to_value(7)
        assert isinstance(v, IntValue)
        assert v.as_int() == 7

    def test_float(self):
        assert to_value(1.5).as_float() == pytest.approx(1.5)

    def test_date_rendered_iso(self):
        assert to_value(date(2024, 1, 2)).as_string() == "2024-01-02"

    def test_nested(self):
        v = to_value({"a": [1, "x"], "b": {"c": None}})
        assert v.is_map()
        items = v.as_map()["a"].as_array()
        assert [i.kind for i in items] == ["int", "string"]
        assert v.as_map()["b"].as_map()["c"].is_null()

    def test_tuple_becomes_array(self):
        assert to_value((1, 2)).is_array()

    def test_existing_value_passes_through(self):
        v = StringValue(value="x")
        assert to_value(v) is v

    def test_unsupported_type(self):
        with pytest.raises(TypeError, match="Cannot convert"):
            to_value(object())


# ---------------------------------------------------------------------------
# Scalar accessors
# ---------------------------------------------------------------------------

class TestScalarAccessors:
    def test_string_numeric_coercion(self):
        assert StringValue(value=" 42 ").as_int() == 42
        assert StringValue(value="2.5").as_float() == pytest.approx(2.5)

    def test_string_not_numeric(self):
        with pytest.raises(TypeError, match="Expected integer value"):
            StringValue(value="abc").as_int()

    def test_string_bool_words(self):
        assert StringValue(value="TRUE").as_bool() is True
        assert StringValue(value="0").as_bool() is False

    def test_string_bool_rejects_other_words(self):
        with pytest.raises(TypeError, match="Expected boolean value, got string"):
            StringValue(value="yes").as_bool()

    def test_int_as_bool_only_zero_or_one(self):
        assert IntValue(value=1).as_bool() is True
        with pytest.raises(TypeError):
            IntValue(value=2).as_bool()

    def test_bool_renders_lowercase(self):
        assert BoolValue(value=False).as_string() == "false"

    def test_float_as_int_rejected(self):
        with pytest.raises(TypeError):
            FloatValue(value=1.0).as_int()

    def test_null_has_no_string(self):
        with pytest.raises(TypeError, match="got null"):
            NullValue().as_string()


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------

class TestContainers:
    def test_map_get_missing_is_null(self):
        assert MapValue(entries={}).get("nope").is_null()

    def test_map_is_not_scalar(self):
        m = MapValue(entries={"a": IntValue(value=1)})
        assert not m.is_scalar()
        with pytest.raises(TypeError, match="Expected string value, got map"):
            m.as_string()

    def test_array_as_map_rejected(self):
        with pytest.raises(TypeError, match="Expected map value"):
            ArrayValue(items=[]).as_map()

    def test_values_are_frozen(self):
        v = IntValue(value=1)
        with pytest.raises(ValidationError):
            v.value = 2
