"""
Agent helpers
─────────────
  • load_models / model_form_fields – model rows and their settings forms
  • default_config / initial_values  – the value object a settings form starts from
  • AgentToolAttachments              – attach / detach tools on one agent
  • save_settings                     – write the settings payload back
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from supabase import Client

from backend.config import OPTIONAL_LIST_FIELD
from backend.db import APIError, sb
from backend.field_types import coerced_default
from backend.lifecycle import LoadGuard
from backend.schema import parse_descriptors
from backend.tools import Tool, merge_available, partition_tools, resolve_attachment_tools

log = logging.getLogger("agent_console.agents")

_MODELS_SELECT = """
  *,
  brand:brands(slug),
  forms(
    id,
    name,
    form_to_fields(
      field_order,
      form_fields(id, type, name, label, description, required, defaultValue, options, toggle)
    )
  )
"""

_ATTACHED_SELECT = "id, user_model_id, user_tool_id, created_at, tool:user_tools(*)"


# ╔══════════════════════════════════════════════════════════════════════╗
# ║ 1.  MODELS + FORMS                                                   ║
# ╚══════════════════════════════════════════════════════════════════════╝
def model_form_fields(model: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flatten `forms → form_to_fields → form_fields` into one field list,
    ordered by field_order within each form.
    """
    forms = model.get("forms") or []
    if isinstance(forms, dict):
        forms = [forms]

    out: List[Dict[str, Any]] = []
    for form in forms:
        links = sorted(
            (form or {}).get("form_to_fields") or [],
            key=lambda link: link.get("field_order") or 0,
        )
        for link in links:
            fld = link.get("form_fields")
            if isinstance(fld, dict):
                out.append(fld)
    return out


def load_models(client: Optional[Client] = None) -> List[Dict[str, Any]]:
    """All models, newest first, with `brand` reduced to its slug and `fields` flattened."""
    client = client or sb()
    try:
        res = client.table("models").select(_MODELS_SELECT).order("id", desc=True).execute()
    except APIError as exc:
        log.error("Loading models failed: %s", exc)
        return []

    models = []
    for m in res.data or []:
        brand = m.get("brand")
        models.append({
            **m,
            "brand": brand.get("slug") if isinstance(brand, dict) else brand,
            "fields": model_form_fields(m),
        })
    return models


# ╔══════════════════════════════════════════════════════════════════════╗
# ║ 2.  INITIAL VALUES                                                   ║
# ╚══════════════════════════════════════════════════════════════════════╝
def default_config(fields: Iterable[Any], model: Optional[str] = None) -> Dict[str, Any]:
    """Coerced defaults of the required fields, plus the model id."""
    out = {d.name: coerced_default(d) for d in parse_descriptors(fields) if not d.toggle}
    out["model"] = model
    return out


def initial_values(model: Dict[str, Any], agent: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """The settings value object a form is mounted with (saved settings win over defaults)."""
    settings = (agent or {}).get("settings") or {}
    return {
        "model":   model.get("model"),
        "brand":   model.get("brand"),
        "apiUrl":  model.get("api_url"),
        "config": {
            **default_config(model.get("fields") or model_form_fields(model), model.get("model")),
            **(settings.get("config") or {}),
        },
        "pipedream":    list(settings.get("pipedream") or []),
        "tools":        list(settings.get("tools") or []),
        "files":        list(settings.get("files") or []),
        "builtInTools": dict(settings.get("builtInTools") or {}),
        # non-dict entries are copied through; the engine ignores them
        OPTIONAL_LIST_FIELD: [
            dict(e) if isinstance(e, dict) else e
            for e in settings.get(OPTIONAL_LIST_FIELD) or []
        ],
    }


# ╔══════════════════════════════════════════════════════════════════════╗
# ║ 3.  TOOL ATTACHMENTS                                                 ║
# ╚══════════════════════════════════════════════════════════════════════╝
def load_user_tools(client: Client, user_id: str) -> List[Dict[str, Any]]:
    res = (
        client.table("user_tools")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []


def load_sloot_tools(client: Client) -> List[Dict[str, Any]]:
    return client.table("user_tools").select("*").eq("is_sloot", True).execute().data or []


class AgentToolAttachments:
    """
    Tools attached to one agent (`user_model_tools`) and the ones still free.
    """

    def __init__(self, agent_id: str, user_id: str, client: Optional[Client] = None):
        self.agent_id = agent_id
        self.user_id = user_id
        self._client = client
        self.guard = LoadGuard(f"agent-tools:{agent_id}")
        self.rows: List[Dict[str, Any]] = []
        self.available: List[Tool] = []
        self.sloot: List[Dict[str, Any]] = []

    @property
    def client(self) -> Client:
        return self._client or sb()

    # ---- loading ----
    def load(self) -> bool:
        """Fetch available + attached tools once; a second call while loading is skipped."""
        if not self.guard.begin():
            return False
        try:
            self.sloot = load_sloot_tools(self.client)
            self.available = merge_available(load_user_tools(self.client, self.user_id), self.sloot)
            self.refresh()
        except APIError as exc:
            log.error("Loading tools for agent %s failed: %s", self.agent_id, exc)
            self.guard.fail()
            return False
        except Exception:
            self.guard.fail()
            raise
        self.guard.finish()
        return True

    def refresh(self) -> List[Dict[str, Any]]:
        res = (
            self.client.table("user_model_tools")
            .select(_ATTACHED_SELECT)
            .eq("user_model_id", self.agent_id)
            .order("created_at", desc=True)
            .execute()
        )
        self.rows = resolve_attachment_tools(res.data or [], self.sloot)
        return self.rows

    # ---- views ----
    @property
    def attached_ids(self) -> List[str]:
        return [str(r["user_tool_id"]) for r in self.rows]

    @property
    def attached(self) -> List[Tool]:
        return partition_tools(self.available, self.attached_ids)[0]

    @property
    def unattached(self) -> List[Tool]:
        return partition_tools(self.available, self.attached_ids)[1]

    # ---- mutations ----
    def attach(self, tool_id: str) -> bool:
        if str(tool_id) in self.attached_ids:
            log.debug("Tool %s already attached to %s", tool_id, self.agent_id)
            return True
        try:
            self.client.table("user_model_tools").insert(
                {"user_model_id": self.agent_id, "user_tool_id": tool_id}
            ).execute()
            self.refresh()
        except APIError as exc:
            log.error("Attaching tool %s failed: %s", tool_id, exc)
            return False
        return True

    def detach(self, attachment_id: Any) -> bool:
        try:
            self.client.table("user_model_tools").delete().eq("id", attachment_id).execute()
            self.refresh()
        except APIError as exc:
            log.error("Detaching attachment %s failed: %s", attachment_id, exc)
            return False
        return True


# ╔══════════════════════════════════════════════════════════════════════╗
# ║ 4.  SAVE                                                             ║
# ╚══════════════════════════════════════════════════════════════════════╝
def build_settings_payload(
    agent: Dict[str, Any],
    values: Dict[str, Any],
    attached_tool_ids: Iterable[str],
    response_id: Optional[str] = None,
) -> Dict[str, Any]:
    stored = agent.get("settings") or {}
    payload: Dict[str, Any] = {
        **values,
        "mcp_servers": list(stored.get("mcp_servers") or []),
        "pipedream":   stored.get("pipedream") or values.get("pipedream") or [],
        "tools":       list(attached_tool_ids),
    }
    if response_id:
        payload["config"] = {**(payload.get("config") or {}), "previous_response_id": response_id}
    return payload


def save_settings(
    agent: Dict[str, Any],
    values: Dict[str, Any],
    attached_tool_ids: Iterable[str],
    response_id: Optional[str] = None,
    client: Optional[Client] = None,
) -> Optional[Dict[str, Any]]:
    """Write settings to `user_models` and return the refreshed agent row (None on failure)."""
    client = client or sb()
    payload = build_settings_payload(agent, values, attached_tool_ids, response_id)
    try:
        client.table("user_models").update({"settings": payload}).eq("id", agent["id"]).execute()
        row = client.table("user_models").select("*").eq("id", agent["id"]).single().execute().data
    except APIError as exc:
        log.error("Saving settings for agent %s failed: %s", agent.get("id"), exc)
        return None
    log.info("Saved settings for agent %s", agent["id"])
    return row
