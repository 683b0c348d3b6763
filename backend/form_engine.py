"""
backend.form_engine
===================
Headless engine behind a model's settings form.

A form is a list of FieldDescriptors split by `toggle`:

• required fields (toggle=False) live flat at `values[path + name]` and are
  present from the moment the form is built;
• optional fields (toggle=True) live in `values[optional_list_field]`, a list
  of single-key dicts `[{name: value}, ...]`.  An optional field is *on*
  exactly when some entry carries its name.

The engine only shapes the value object in memory.  Saving it is the
caller's business (see backend.agents.save_settings).
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from backend.config import OPTIONAL_LIST_FIELD
from backend.field_types import bounds, coerce_value, coerced_default
from backend.schema import FieldDescriptor, FieldOption, normalize_options, parse_descriptors

log = logging.getLogger("agent_console.form_engine")


# ─────────────────────────── bound view ────────────────────────────────
@dataclass(frozen=True)
class BoundField:
    """What a renderer needs to draw one control."""
    descriptor: FieldDescriptor
    key:        str
    value:      Any
    optional:   bool = False
    active:     bool = True
    options:    Sequence[FieldOption] = ()
    bounds:     Optional[Dict[str, Any]] = None

    @property
    def name(self) -> str:
        return self.descriptor.name


def _bind(desc: FieldDescriptor, key: str, value: Any, *, optional: bool, active: bool) -> BoundField:
    return BoundField(
        descriptor=desc,
        key=key,
        value=value,
        optional=optional,
        active=active,
        options=tuple(normalize_options(desc.options)) if desc.is_choice else (),
        bounds=bounds(desc),
    )


def _is_empty(val: Any) -> bool:
    if isinstance(val, str):
        return not val.strip()
    return val is None or val == []


# ─────────────────────────── required ──────────────────────────────────
class RequiredFields:
    """Binds each required descriptor to `values[path + name]`."""

    def __init__(self, descriptors: Iterable[FieldDescriptor], values: Dict[str, Any], path: str = ""):
        self.descriptors: List[FieldDescriptor] = list(descriptors)
        self._values = values
        self._path = path
        self._prefix = [seg for seg in path.split(".") if seg]

    def _container(self) -> Dict[str, Any]:
        node = self._values
        for seg in self._prefix:
            nxt = node.get(seg)
            if not isinstance(nxt, dict):
                nxt = {}
                node[seg] = nxt
            node = nxt
        return node

    def key(self, desc: FieldDescriptor) -> str:
        return f"{self._path}{desc.name}"

    def seed(self) -> None:
        """Write coerced defaults for missing keys; re-coerce the ones already there."""
        box = self._container()
        for d in self.descriptors:
            raw = box[d.name] if d.name in box else d.default_value
            box[d.name] = coerce_value(d, raw)

    def reset(self) -> None:
        box = self._container()
        for d in self.descriptors:
            box[d.name] = coerced_default(d)

    def value(self, desc: FieldDescriptor) -> Any:
        box = self._container()
        if desc.name not in box:
            box[desc.name] = coerced_default(desc)
        return box[desc.name]

    def set_value(self, desc: FieldDescriptor, value: Any) -> Any:
        coerced = coerce_value(desc, value)
        self._container()[desc.name] = coerced
        return coerced

    def fields(self) -> List[BoundField]:
        return [
            _bind(d, self.key(d), self.value(d), optional=False, active=True)
            for d in self.descriptors
        ]


# ─────────────────────────── optional ──────────────────────────────────
class OptionalFields:
    """
    Binds each optional descriptor to an entry of `values[list_field]`.

    Every mutation looks the entry up by name right before touching the list,
    so positions captured earlier never decide what gets removed.
    """

    def __init__(self, descriptors: Iterable[FieldDescriptor], values: Dict[str, Any], list_field: str):
        self.descriptors: List[FieldDescriptor] = list(descriptors)
        self._values = values
        self.list_field = list_field

    # ---- list access ----
    def entries(self) -> List[Dict[str, Any]]:
        items = self._values.get(self.list_field)
        if not isinstance(items, list):
            items = []
            self._values[self.list_field] = items
        return items

    def _index(self, name: str) -> int:
        for i, item in enumerate(self.entries()):
            if isinstance(item, dict) and name in item:
                return i
        return -1

    def normalize(self) -> None:
        """Drop repeat entries for the same field (first wins) and coerce stored values."""
        known = {d.name: d for d in self.descriptors}
        items = self.entries()
        seen: set = set()
        i = 0
        while i < len(items):
            item = items[i]
            name = next(iter(item), None) if isinstance(item, dict) and len(item) == 1 else None
            if name in known:
                if name in seen:
                    log.warning("Dropping duplicate %s entry for %r", self.list_field, name)
                    del items[i]
                    continue
                seen.add(name)
                item[name] = coerce_value(known[name], item[name])
            i += 1

    # ---- queries ----
    def key(self, desc: FieldDescriptor) -> str:
        return f"{self.list_field}.{desc.name}"

    def is_active(self, desc: FieldDescriptor) -> bool:
        return self._index(desc.name) != -1

    def current_value(self, desc: FieldDescriptor) -> Any:
        idx = self._index(desc.name)
        if idx == -1:
            return coerced_default(desc)
        return self.entries()[idx][desc.name]

    # ---- mutations ----
    def activate(self, desc: FieldDescriptor) -> None:
        if self._index(desc.name) == -1:
            self.entries().append({desc.name: coerced_default(desc)})

    def deactivate(self, desc: FieldDescriptor) -> None:
        idx = self._index(desc.name)
        if idx != -1:
            del self.entries()[idx]

    def toggle(self, desc: FieldDescriptor) -> bool:
        """Flip the field on/off; return the new state."""
        if self.is_active(desc):
            self.deactivate(desc)
            return False
        self.activate(desc)
        return True

    def update_value(self, desc: FieldDescriptor, value: Any) -> bool:
        idx = self._index(desc.name)
        if idx == -1:
            log.debug("Ignoring update for inactive optional field %r", desc.name)
            return False
        self.entries()[idx][desc.name] = coerce_value(desc, value)
        return True

    def reset(self) -> None:
        names = {d.name for d in self.descriptors}
        items = self.entries()
        items[:] = [it for it in items if not (isinstance(it, dict) and it.keys() & names)]

    # ---- ordering ----
    def ordered(self) -> List[FieldDescriptor]:
        """Active fields first in activation (list) order, then inactive in descriptor order."""
        pos = {d.name: self._index(d.name) for d in self.descriptors}
        active = sorted((d for d in self.descriptors if pos[d.name] != -1), key=lambda d: pos[d.name])
        inactive = [d for d in self.descriptors if pos[d.name] == -1]
        return active + inactive

    def fields(self) -> List[BoundField]:
        return [
            _bind(d, self.key(d), self.current_value(d), optional=True, active=self.is_active(d))
            for d in self.ordered()
        ]


# ─────────────────────────── engine ────────────────────────────────────
class FormEngine:
    """
    One settings form bound to one value object.

    `fields` may be raw rows (dicts from Supabase) or FieldDescriptors;
    rows that cannot be rendered are skipped.  `values` is mutated in place.
    """

    def __init__(
        self,
        fields: Iterable[Any],
        values: Optional[Dict[str, Any]] = None,
        *,
        path: str = "",
        optional_list_field: str = OPTIONAL_LIST_FIELD,
    ):
        self.values: Dict[str, Any] = values if values is not None else {}
        self.path = path
        self.optional_list_field = optional_list_field

        descs = parse_descriptors(fields)
        required, optional = [], []
        for d in descs:
            if d.toggle:
                optional.append(d)
            elif not path and d.name == optional_list_field:
                log.warning("Skipping required field %r: clashes with the optional list key", d.name)
            else:
                required.append(d)
        self.descriptors: List[FieldDescriptor] = required + optional

        self.required = RequiredFields(required, self.values, path)
        self.optional = OptionalFields(optional, self.values, optional_list_field)
        self.required.seed()
        self.optional.normalize()

    @classmethod
    def from_saved(cls, fields: Iterable[Any], saved: Dict[str, Any], **kw) -> "FormEngine":
        """Rebuild a form from a previously saved snapshot (the stored copy is left alone)."""
        return cls(fields, copy.deepcopy(saved), **kw)

    # ---- lookup ----
    def descriptor(self, name: str, *, optional: Optional[bool] = None) -> Optional[FieldDescriptor]:
        for d in self.descriptors:
            if d.name == name and (optional is None or d.toggle == optional):
                return d
        return None

    # ---- generic accessors ----
    def value(self, desc: FieldDescriptor) -> Any:
        if desc.toggle:
            return self.optional.current_value(desc)
        return self.required.value(desc)

    def set_value(self, desc: FieldDescriptor, value: Any) -> bool:
        """Write through to the right region; inactive optional fields are left untouched."""
        if desc.toggle:
            return self.optional.update_value(desc, value)
        self.required.set_value(desc, value)
        return True

    def fields(self) -> List[BoundField]:
        return self.required.fields() + self.optional.fields()

    def missing_required(self) -> List[str]:
        """Names of `required=True` fields currently rendered with an empty value."""
        return [
            b.name for b in self.fields()
            if b.descriptor.required and b.active and _is_empty(b.value)
        ]

    # ---- lifecycle ----
    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.values)

    def reset(self) -> None:
        """Back to defaults: required re-seeded, every optional field switched off."""
        self.required.reset()
        self.optional.reset()


__all__ = ["BoundField", "RequiredFields", "OptionalFields", "FormEngine"]
