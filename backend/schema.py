"""
backend.schema
==============
Pydantic models that define the **only valid shape** for:

• FieldDescriptor – one row of form_fields (a model's settings form)
• FieldOption     – one {value, label} choice of a select / radio field

Rows come straight from Supabase with camelCase keys (`defaultValue`), so
every model accepts both spellings.  Bad rows are *skipped*, never raised:
one broken field must not take the whole settings form down.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

log = logging.getLogger("agent_console.schema")


# ─────────────────────────── field types ───────────────────────────────
class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    DATE = "date"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SLIDER = "slider"
    JSON = "json"


CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.MULTISELECT, FieldType.RADIO})


class FieldOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: str


# ─────────────────────────── descriptor ────────────────────────────────
class FieldDescriptor(BaseModel):
    """
    Static description of one settings field.

    `toggle=False` ⇒ required field, stored flat at `values[path + name]`.
    `toggle=True`  ⇒ optional field, stored as `{name: value}` inside the
                     optional list while switched on.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id:            Union[int, str, None] = None
    type:          FieldType
    name:          str
    label:         Optional[str] = None
    description:   Optional[str] = None
    required:      bool = False
    default_value: Any = Field(default=None, alias="defaultValue")
    options:       Any = None
    toggle:        bool = False

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("field name must not be blank")
        return v

    @field_validator("required", "toggle", mode="before")
    @classmethod
    def _loose_bool(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "on")
        return bool(v)

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()

    @property
    def is_choice(self) -> bool:
        return self.type in CHOICE_TYPES


# ─────────────────────────── options ───────────────────────────────────
def _as_text(v: Any) -> str:
    return "" if v is None else str(v)


def normalize_options(options: Any) -> List[FieldOption]:
    """
    Return `options` as FieldOption pairs.
    Accepts dicts ({value, label}) or bare strings; label falls back to value
    and vice versa.  Entries left without a value or label are dropped.
    """
    if not isinstance(options, (list, tuple)):
        return []

    out: List[FieldOption] = []
    for opt in options:
        if isinstance(opt, dict):
            value = _as_text(opt.get("value")) or _as_text(opt.get("label"))
            label = _as_text(opt.get("label")) or value
        elif isinstance(opt, (str, int, float)) and not isinstance(opt, bool):
            value = label = str(opt)
        else:
            continue
        if value and label:
            out.append(FieldOption(value=value, label=label))
    return out


# ─────────────────────────── parsing ───────────────────────────────────
def parse_descriptor(raw: Any) -> Optional[FieldDescriptor]:
    """Validate one raw row; return None (and log) when it cannot be rendered."""
    if isinstance(raw, FieldDescriptor):
        desc = raw
    else:
        try:
            desc = FieldDescriptor.model_validate(raw)
        except ValidationError as exc:
            name = raw.get("name") if isinstance(raw, dict) else raw
            log.warning("Skipping field %r: %s", name, exc.errors()[0]["msg"])
            return None

    if desc.is_choice and not isinstance(desc.options, (list, tuple)):
        log.warning("Skipping %s field %r: options is not a list", desc.type.value, desc.name)
        return None
    return desc


def parse_descriptors(rows: Iterable[Any]) -> List[FieldDescriptor]:
    """
    Validate a whole field list, keeping order.
    Unknown types / malformed rows are dropped; a repeated name within the
    same partition (required vs optional) keeps the first occurrence.
    """
    seen: Dict[bool, set] = {False: set(), True: set()}
    out: List[FieldDescriptor] = []
    for raw in rows or []:
        desc = parse_descriptor(raw)
        if desc is None:
            continue
        if desc.name in seen[desc.toggle]:
            log.warning("Skipping duplicate field name %r", desc.name)
            continue
        seen[desc.toggle].add(desc.name)
        out.append(desc)
    return out


# convenience export
__all__ = [
    "FieldType",
    "FieldOption",
    "FieldDescriptor",
    "CHOICE_TYPES",
    "normalize_options",
    "parse_descriptor",
    "parse_descriptors",
]
