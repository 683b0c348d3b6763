"""
Behaviour of the settings-form engine: required defaults, optional on/off
list, ordering and reload.
"""
import json

import pytest

from backend.form_engine import FormEngine

FIELDS = [
    {"id": 1, "type": "text", "name": "instructions", "defaultValue": "Be nice"},
    {"id": 2, "type": "slider", "name": "temperature", "defaultValue": "0.7",
     "options": {"min": 0, "max": 2, "step": 0.1}},
    {"id": 3, "type": "checkbox", "name": "store", "defaultValue": 1},
    {"id": 4, "type": "select", "name": "effort", "defaultValue": "low",
     "options": [{"value": "low", "label": "Low"}, {"value": "high", "label": "High"}]},
    {"id": 5, "type": "number", "name": "top_p", "defaultValue": 1, "toggle": True},
    {"id": 6, "type": "checkbox", "name": "parallel", "defaultValue": 1, "toggle": True},
    {"id": 7, "type": "text", "name": "user", "defaultValue": None, "toggle": True},
]


@pytest.fixture
def engine():
    return FormEngine(FIELDS, path="config.", optional_list_field="optionalFields")


def _opt(engine, name):
    return engine.descriptor(name, optional=True)


# ---------- required fields ----------------------------------------------
def test_required_defaults_seeded(engine):
    cfg = engine.values["config"]
    assert cfg == {"instructions": "Be nice", "temperature": 0.7, "store": True, "effort": "low"}
    assert engine.values["optionalFields"] == []


def test_saved_required_values_win_but_are_coerced():
    values = {"config": {"instructions": "Saved", "store": "false"}}
    eng = FormEngine(FIELDS, values, path="config.")
    assert eng.values is values
    assert values["config"]["instructions"] == "Saved"
    assert values["config"]["store"] is False
    assert values["config"]["temperature"] == 0.7


def test_required_write_goes_to_flat_path(engine):
    d = engine.descriptor("store")
    assert engine.set_value(d, "on") is True
    assert engine.values["config"]["store"] is True


def test_empty_path_uses_top_level():
    eng = FormEngine(FIELDS[:1])
    assert eng.values["instructions"] == "Be nice"


def test_required_field_named_like_list_key_is_skipped():
    eng = FormEngine([{"type": "text", "name": "optionalFields"}], optional_list_field="optionalFields")
    assert eng.descriptors == []
    assert eng.values == {"optionalFields": []}


# ---------- optional fields ----------------------------------------------
def test_inactive_optional_reports_default(engine):
    d = _opt(engine, "top_p")
    assert engine.optional.is_active(d) is False
    assert engine.optional.current_value(d) == 1
    assert engine.optional.current_value(_opt(engine, "user")) == ""


def test_checkbox_default_is_true_and_stored_as_bool(engine):
    d = _opt(engine, "parallel")
    assert engine.optional.current_value(d) is True
    engine.optional.toggle(d)
    assert engine.values["optionalFields"] == [{"parallel": True}]
    assert engine.values["optionalFields"][0]["parallel"] is True


def test_toggle_even_times_restores_state(engine):
    d = _opt(engine, "top_p")
    for _ in range(4):
        engine.optional.toggle(d)
    assert engine.optional.is_active(d) is False
    assert not any("top_p" in e for e in engine.values["optionalFields"])


def test_activate_twice_does_not_duplicate(engine):
    d = _opt(engine, "top_p")
    engine.optional.activate(d)
    engine.optional.activate(d)
    assert engine.values["optionalFields"] == [{"top_p": 1}]


def test_removing_one_leaves_siblings_untouched(engine):
    a, b = _opt(engine, "top_p"), _opt(engine, "user")
    engine.optional.toggle(a)
    engine.optional.toggle(b)
    engine.optional.update_value(b, "alice")
    entry_b = engine.values["optionalFields"][1]

    engine.optional.toggle(a)

    assert engine.values["optionalFields"] == [{"user": "alice"}]
    assert engine.values["optionalFields"][0] is entry_b


def test_update_replaces_value_in_place(engine):
    d = _opt(engine, "top_p")
    engine.optional.toggle(d)
    entry = engine.values["optionalFields"][0]
    assert engine.optional.update_value(d, "0.3") is True
    assert engine.values["optionalFields"][0] is entry
    assert entry == {"top_p": 0.3}


def test_update_inactive_is_noop(engine):
    d = _opt(engine, "user")
    assert engine.set_value(d, "bob") is False
    assert engine.values["optionalFields"] == []


def test_removal_resolves_index_by_name(engine):
    a, b = _opt(engine, "top_p"), _opt(engine, "user")
    engine.optional.toggle(a)
    engine.optional.toggle(b)
    # someone else reshuffled the list between renders
    engine.values["optionalFields"].reverse()
    engine.optional.toggle(a)
    assert engine.values["optionalFields"] == [{"user": ""}]


def test_reactivation_restores_default(engine):
    d = _opt(engine, "top_p")
    engine.optional.toggle(d)
    engine.optional.update_value(d, 0.2)
    engine.optional.toggle(d)
    engine.optional.toggle(d)
    assert engine.optional.current_value(d) == 1


def test_active_fields_float_to_top_in_activation_order():
    eng = FormEngine([
        {"type": "text", "name": "x", "toggle": True},
        {"type": "text", "name": "y", "toggle": True},
        {"type": "text", "name": "z", "toggle": True},
    ])
    eng.optional.toggle(eng.descriptor("z"))
    eng.optional.toggle(eng.descriptor("y"))
    assert [d.name for d in eng.optional.ordered()] == ["z", "y", "x"]
    assert [(b.name, b.active) for b in eng.optional.fields()] == [
        ("z", True), ("y", True), ("x", False),
    ]


def test_duplicate_saved_entries_are_collapsed():
    values = {"optionalFields": [{"top_p": 0.5}, {"other": 1}, {"top_p": 0.9}]}
    eng = FormEngine(FIELDS, values, path="config.")
    assert values["optionalFields"] == [{"top_p": 0.5}, {"other": 1}]
    assert eng.optional.current_value(eng.descriptor("top_p")) == 0.5


def test_saved_checkbox_entry_is_normalized():
    values = {"optionalFields": [{"parallel": "yes"}]}
    FormEngine(FIELDS, values, path="config.")
    assert values["optionalFields"] == [{"parallel": True}]


def test_non_list_optional_value_is_replaced():
    eng = FormEngine(FIELDS, {"optionalFields": None}, path="config.")
    assert eng.values["optionalFields"] == []


# ---------- engine -------------------------------------------------------
def test_fields_required_first_then_optional(engine):
    engine.optional.toggle(_opt(engine, "user"))
    names = [b.name for b in engine.fields()]
    assert names == ["instructions", "temperature", "store", "effort", "user", "top_p", "parallel"]


def test_bound_field_carries_options_and_keys(engine):
    by_name = {b.name: b for b in engine.fields()}
    assert [o.value for o in by_name["effort"].options] == ["low", "high"]
    assert by_name["temperature"].bounds == {"min": 0, "max": 2, "step": 0.1}
    assert by_name["effort"].key == "config.effort"
    assert by_name["top_p"].key == "optionalFields.top_p"


def test_malformed_descriptor_does_not_break_form():
    eng = FormEngine(FIELDS + [{"type": "unknown-type", "name": "bad"}], path="config.")
    assert "bad" not in [b.name for b in eng.fields()]
    assert len(eng.fields()) == len(FIELDS)


def test_round_trip_through_json(engine):
    engine.optional.toggle(_opt(engine, "parallel"))
    engine.optional.toggle(_opt(engine, "top_p"))
    engine.optional.update_value(_opt(engine, "top_p"), 0.4)
    engine.set_value(engine.descriptor("instructions"), "Terse")

    saved = json.loads(json.dumps(engine.snapshot()))
    again = FormEngine.from_saved(FIELDS, saved, path="config.")

    for d in engine.descriptors:
        if d.toggle:
            assert again.optional.is_active(d) == engine.optional.is_active(d)
        assert again.value(d) == engine.value(d)
    assert [b.name for b in again.fields()] == [b.name for b in engine.fields()]


def test_snapshot_is_detached(engine):
    snap = engine.snapshot()
    snap["config"]["instructions"] = "changed"
    assert engine.values["config"]["instructions"] == "Be nice"


def test_missing_required():
    eng = FormEngine([
        {"type": "text", "name": "name", "required": True},
        {"type": "checkbox", "name": "agree", "required": True},
        {"type": "text", "name": "email", "required": True, "toggle": True},
    ])
    assert eng.missing_required() == ["name"]
    eng.optional.toggle(eng.descriptor("email"))
    assert eng.missing_required() == ["name", "email"]
    eng.set_value(eng.descriptor("name"), "Ada")
    eng.set_value(eng.descriptor("email"), "ada@example.com")
    assert eng.missing_required() == []


def test_reset_restores_defaults_and_clears_optional(engine):
    engine.set_value(engine.descriptor("instructions"), "x")
    engine.optional.toggle(_opt(engine, "top_p"))
    engine.values["optionalFields"].append({"foreign": 1})
    engine.reset()
    assert engine.values["config"]["instructions"] == "Be nice"
    assert engine.values["optionalFields"] == [{"foreign": 1}]
