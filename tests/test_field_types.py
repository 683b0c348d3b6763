from datetime import date

import pytest

from backend.field_types import HANDLERS, bounds, coerce_value, coerced_default
from backend.schema import FieldDescriptor, FieldType


def _d(t, **kw):
    return FieldDescriptor(type=t, name="f", **kw)


def test_every_type_has_a_handler():
    assert set(HANDLERS) == set(FieldType)


@pytest.mark.parametrize("raw, expected", [
    (True, True), (1, True), ("true", True), ("On", True),
    (False, False), (0, False), (None, False), ("false", False), ("", False),
])
def test_checkbox_is_strict_bool(raw, expected):
    assert coerce_value(_d("checkbox"), raw) is expected


def test_number_parsing():
    d = _d("number")
    assert coerce_value(d, "42") == 42
    assert coerce_value(d, "0.5") == 0.5
    assert coerce_value(d, 3) == 3
    assert coerce_value(d, "") is None
    assert coerce_value(d, "abc") is None
    assert coerce_value(d, None) is None


def test_slider_falls_back_to_min():
    assert coerce_value(_d("slider", options={"min": 1, "max": 5}), None) == 1
    assert coerce_value(_d("slider"), "") == 0
    assert coerce_value(_d("slider"), "0.2") == 0.2


def test_text_like_types():
    assert coerce_value(_d("text"), None) == ""
    assert coerce_value(_d("email"), 12) == "12"
    assert coerce_value(_d("date"), date(2024, 5, 1)) == "2024-05-01"
    assert coerce_value(_d("select"), None) == ""


def test_multiselect_is_list_of_str():
    d = _d("multiselect")
    assert coerce_value(d, None) == []
    assert coerce_value(d, "a") == ["a"]
    assert coerce_value(d, ("a", 1)) == ["a", "1"]


def test_json_is_passed_through_as_string():
    d = _d("json")
    assert coerce_value(d, '{"a": ') == '{"a": '
    assert coerce_value(d, {"a": 1}) == '{"a": 1}'
    assert coerce_value(d, None) == ""


def test_coerced_default_uses_default_value():
    assert coerced_default(_d("checkbox", defaultValue=1)) is True
    assert coerced_default(_d("number", defaultValue="8")) == 8


def test_bounds():
    assert bounds(_d("slider")) == {"min": 0, "max": 100, "step": 1}
    assert bounds(_d("number", options={"min": "1", "step": 0.5})) == {"min": 1, "max": None, "step": 0.5}
    assert bounds(_d("text", options=["x"])) == {"min": None, "max": None, "step": None}
