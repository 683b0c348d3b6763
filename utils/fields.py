"""
utils/fields.py
Streamlit renderer for a backend.form_engine.FormEngine.

Usage
-----
from utils.fields import render_form
engine = FormEngine(model["fields"], values, path="config.")
if render_form(engine):
    ...  # something changed, persist engine.snapshot()

• required fields are drawn first, in descriptor order
• optional fields get an On/Off toggle; only switched-on fields show a control
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional

import streamlit as st

from backend.field_types import coerce_value, handler_for
from backend.form_engine import BoundField, FormEngine
from backend.schema import FieldType


# ----------------------------------------------------------------------
# 1. widget kwargs (pure, no Streamlit calls)
# ----------------------------------------------------------------------
def _same_numeric_type(values: Dict[str, Any]) -> Dict[str, Any]:
    # Streamlit rejects mixed int/float numeric arguments
    if any(isinstance(v, float) for v in values.values()):
        return {k: (float(v) if v is not None else None) for k, v in values.items()}
    return values


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10]) if value else None
    except ValueError:
        return None


def _index_of(values: List[str], current: Any) -> Optional[int]:
    return values.index(current) if current in values else None


def widget_kwargs(bound: BoundField, *, label_visibility: str = "visible") -> Dict[str, Any]:
    """Keyword arguments for the Streamlit widget that draws `bound`."""
    desc = bound.descriptor
    kw: Dict[str, Any] = {
        "label": desc.display_label,
        "key": bound.key,
        "help": desc.description or None,
        "label_visibility": label_visibility,
    }
    value = bound.value
    t = desc.type

    if t in (FieldType.TEXT, FieldType.EMAIL):
        kw.update(value=value, placeholder=desc.description or "")
    elif t is FieldType.DATE:
        kw.update(value=_parse_date(value))
    elif t is FieldType.TEXTAREA:
        kw.update(value=value, placeholder=desc.description or "", height=400)
    elif t is FieldType.JSON:
        kw.update(value=value, placeholder=desc.description or "{}", height=200)
    elif t in (FieldType.NUMBER, FieldType.SLIDER):
        b = bound.bounds or {}
        if t is FieldType.SLIDER and value is not None:
            # st.slider raises on out-of-range values
            value = min(max(value, b.get("min", value)), b.get("max", value))
        nums = _same_numeric_type({
            "value": value, "min_value": b.get("min"),
            "max_value": b.get("max"), "step": b.get("step"),
        })
        kw.update({k: v for k, v in nums.items() if v is not None or k == "value"})
    elif t in (FieldType.SELECT, FieldType.RADIO):
        values = [o.value for o in bound.options]
        labels = {o.value: o.label for o in bound.options}
        kw.update(options=values, index=_index_of(values, value),
                  format_func=lambda v: labels.get(v, v))
    elif t is FieldType.MULTISELECT:
        values = [o.value for o in bound.options]
        labels = {o.value: o.label for o in bound.options}
        kw.update(options=values, default=[v for v in value if v in values],
                  format_func=lambda v: labels.get(v, v))
    elif t is FieldType.CHECKBOX:
        kw.update(value=bool(value))
    return kw


# ----------------------------------------------------------------------
# 2. widget table
# ----------------------------------------------------------------------
def _json_editor(**kw):
    return st.text_area(**kw)


_WIDGETS: Dict[str, Callable[..., Any]] = {
    "text_input":   st.text_input,
    "date_input":   st.date_input,
    "number_input": st.number_input,
    "text_area":    st.text_area,
    "selectbox":    st.selectbox,
    "multiselect":  st.multiselect,
    "checkbox":     st.checkbox,
    "radio":        st.radio,
    "slider":       st.slider,
    "json_editor":  _json_editor,
}


def _draw(engine: FormEngine, bound: BoundField, *, label_visibility: str = "visible") -> bool:
    """Draw one control and write a changed value back; True if it changed."""
    widget = handler_for(bound.descriptor).widget
    kw = widget_kwargs(bound, label_visibility=label_visibility)

    if bound.descriptor.type is FieldType.TEXTAREA and not bound.optional:
        # long prompts edit in a collapsible panel instead of inline
        with st.expander(f"{bound.descriptor.display_label} · Edit text"):
            new = _WIDGETS[widget](**kw)
    else:
        new = _WIDGETS[widget](**kw)

    if coerce_value(bound.descriptor, new) == bound.value:
        return False
    return engine.set_value(bound.descriptor, new)


# ----------------------------------------------------------------------
# 3. main helper
# ----------------------------------------------------------------------
def render_form(engine: FormEngine) -> bool:
    """
    Draw every field of `engine`.
    Returns True iff any value or any optional On/Off state changed.
    Call inside a Streamlit script run.
    """
    changed = False

    for bound in engine.required.fields():
        changed = _draw(engine, bound) or changed

    for bound in engine.optional.fields():
        desc = bound.descriptor
        left, right = st.columns([4, 1])
        left.markdown(f"**{desc.display_label}**")
        on = right.toggle("On", value=bound.active, key=f"toggle:{bound.key}")
        if on != bound.active:
            engine.optional.toggle(desc)
            changed = True
            continue
        if desc.description:
            st.caption(desc.description)
        if bound.active:
            changed = _draw(engine, bound, label_visibility="collapsed") or changed

    return changed
