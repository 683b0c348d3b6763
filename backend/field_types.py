"""
Per-type field handlers.

One FieldHandler per FieldType, registered in HANDLERS.  A handler knows how
to coerce a raw value into the shape its control expects and which
Streamlit widget draws it.  Adding a field type = one enum member + one
handler here; nothing else changes.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional

from backend.schema import FieldDescriptor, FieldType

_TRUE_STRINGS = {"true", "1", "yes", "on"}

SLIDER_DEFAULTS = {"min": 0, "max": 100, "step": 1}


# ---------- coercers --------------------------------------------------------
def _to_bool(value: Any, _desc: FieldDescriptor) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                return None
    return None


def _to_number(value: Any, _desc: FieldDescriptor) -> Optional[float]:
    return _parse_number(value)


def _to_slider(value: Any, desc: FieldDescriptor) -> float:
    num = _parse_number(value)
    if num is None:
        return bounds(desc)["min"]
    return num


def _to_text(value: Any, _desc: FieldDescriptor) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _to_list(value: Any, _desc: FieldDescriptor) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def _to_json_text(value: Any, _desc: FieldDescriptor) -> str:
    # raw string passes through untouched; formatting is the editor's job
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


# ---------- registry --------------------------------------------------------
@dataclass(frozen=True)
class FieldHandler:
    coerce: Callable[[Any, FieldDescriptor], Any]
    widget: str


HANDLERS: Dict[FieldType, FieldHandler] = {
    FieldType.TEXT:        FieldHandler(_to_text,      "text_input"),
    FieldType.EMAIL:       FieldHandler(_to_text,      "text_input"),
    FieldType.DATE:        FieldHandler(_to_text,      "date_input"),
    FieldType.NUMBER:      FieldHandler(_to_number,    "number_input"),
    FieldType.TEXTAREA:    FieldHandler(_to_text,      "text_area"),
    FieldType.SELECT:      FieldHandler(_to_text,      "selectbox"),
    FieldType.MULTISELECT: FieldHandler(_to_list,      "multiselect"),
    FieldType.CHECKBOX:    FieldHandler(_to_bool,      "checkbox"),
    FieldType.RADIO:       FieldHandler(_to_text,      "radio"),
    FieldType.SLIDER:      FieldHandler(_to_slider,    "slider"),
    FieldType.JSON:        FieldHandler(_to_json_text, "json_editor"),
}


def handler_for(desc: FieldDescriptor) -> FieldHandler:
    return HANDLERS[desc.type]


def coerce_value(desc: FieldDescriptor, value: Any) -> Any:
    """Coerce `value` to the type `desc`'s control reads and writes."""
    return handler_for(desc).coerce(value, desc)


def coerced_default(desc: FieldDescriptor) -> Any:
    return coerce_value(desc, desc.default_value)


def bounds(desc: FieldDescriptor) -> Dict[str, Any]:
    """
    min / max / step passed through to number and slider controls.
    Sliders fall back to 0..100 step 1; numbers leave unset bounds as None.
    Out-of-range slider values are clamped by the renderer (utils.fields).
    """
    opts = desc.options if isinstance(desc.options, dict) else {}
    out: Dict[str, Any] = {}
    for k in ("min", "max", "step"):
        v = _parse_number(opts.get(k))
        if v is None and desc.type is FieldType.SLIDER:
            v = SLIDER_DEFAULTS[k]
        out[k] = v
    return out


__all__ = ["FieldHandler", "HANDLERS", "handler_for", "coerce_value", "coerced_default", "bounds"]
