"""
backend.tools
-------------
Attached-vs-available bookkeeping for tools coming from three places:

• custom tools   – rows the user created in `user_tools`
• sloot tools    – vendor rows (`is_sloot=True`) shared with every user
• pipedream      – third-party app actions (`is_pipedream=True`), grouped by app

Pure functions over lists; no Supabase calls here.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger("agent_console.tools")

UNKNOWN_APP = "Unknown App"


class ToolSource(str, Enum):
    CUSTOM = "custom"
    SLOOT = "sloot"
    PIPEDREAM = "pipedream"


class Tool(BaseModel):
    """One `user_tools` row.  Unknown columns are kept."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id:           str
    tool_name:    str = ""
    avatar:       Optional[str] = None
    tool_schema:  Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    is_sloot:     bool = False
    is_pipedream: bool = False
    pipedream:    Union[str, Dict[str, Any], None] = None
    user_id:      Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("tool_name", mode="before")
    @classmethod
    def _name_or_blank(cls, v):
        return "" if v is None else v

    @field_validator("tool_schema", mode="before")
    @classmethod
    def _parse_schema(cls, v):
        # some rows store the schema as a JSON string
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                log.warning("Unparseable tool schema: %.40s", v)
                return None
        return v if isinstance(v, dict) else None


def as_tool(row: Union[Tool, Dict[str, Any]]) -> Tool:
    return row if isinstance(row, Tool) else Tool.model_validate(row)


def tool_source(tool: Tool) -> ToolSource:
    if tool.is_pipedream:
        return ToolSource.PIPEDREAM
    if tool.is_sloot:
        return ToolSource.SLOOT
    return ToolSource.CUSTOM


# ─────────────────────────── merge / partition ─────────────────────────
def merge_available(user_tools: Iterable[Any], sloot_tools: Iterable[Any]) -> List[Tool]:
    """
    User tools followed by vendor tools, deduped by id (first wins).
    Vendor rows in the user's own list are dropped: admins see them there,
    and the shared vendor list is the one to trust.
    """
    out: List[Tool] = []
    seen: Set[str] = set()
    candidates = [t for t in map(as_tool, user_tools) if not t.is_sloot]
    candidates += [as_tool(t) for t in sloot_tools]
    for t in candidates:
        if t.id in seen:
            continue
        seen.add(t.id)
        out.append(t)
    return out


def partition_tools(available: Iterable[Any], attached_ids: Iterable[str]) -> Tuple[List[Tool], List[Tool]]:
    """Split `available` into (attached, unattached); both keep `available` order."""
    ids = {str(i) for i in attached_ids}
    attached: List[Tool] = []
    unattached: List[Tool] = []
    for t in map(as_tool, available):
        (attached if t.id in ids else unattached).append(t)
    return attached, unattached


def count_by_source(tools: Iterable[Any]) -> Dict[str, int]:
    counts = {s.value: 0 for s in ToolSource}
    for t in map(as_tool, tools):
        counts[tool_source(t).value] += 1
    return counts


# ─────────────────────────── grouping ──────────────────────────────────
def pipedream_app_name(tool: Tool) -> str:
    data = tool.pipedream
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            log.warning("Bad pipedream payload on tool %s", tool.id)
            return UNKNOWN_APP
    if not isinstance(data, dict):
        return UNKNOWN_APP
    app = data.get("app")
    name = app.get("name") if isinstance(app, dict) else None
    return name or UNKNOWN_APP


@dataclass
class GroupedTools:
    custom:    List[Tool] = field(default_factory=list)
    sloot:     List[Tool] = field(default_factory=list)
    pipedream: Dict[str, List[Tool]] = field(default_factory=dict)


def group_tools(tools: Iterable[Any]) -> GroupedTools:
    groups = GroupedTools()
    for t in map(as_tool, tools):
        src = tool_source(t)
        if src is ToolSource.PIPEDREAM:
            groups.pipedream.setdefault(pipedream_app_name(t), []).append(t)
        elif src is ToolSource.SLOOT:
            groups.sloot.append(t)
        else:
            groups.custom.append(t)
    return groups


# ─────────────────────────── attachments ───────────────────────────────
def default_tool_schema(tool_name: str) -> Dict[str, Any]:
    """Placeholder schema shown for tools saved without one."""
    return {
        "description": f"Custom tool: {tool_name}",
        "inputSchema": {
            "properties": {
                "input": {"type": "string", "description": "Input for the tool"},
            },
            "required": ["input"],
        },
    }


def resolve_attachment_tools(rows: List[Dict[str, Any]], sloot_tools: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    The `tool:user_tools(*)` join comes back empty for vendor tools the user
    cannot read; fill those in from the shared vendor list.
    """
    by_id = {t.id: t for t in map(as_tool, sloot_tools)}
    for row in rows:
        if row.get("tool"):
            continue
        vendor = by_id.get(str(row.get("user_tool_id")))
        row["tool"] = vendor.model_dump(by_alias=True) if vendor else None
    return rows


def attached_tool_card(row: Dict[str, Any]) -> Dict[str, Any]:
    """Display data for one attachment row; tools saved without a schema get the placeholder."""
    tool = as_tool(row["tool"]) if row.get("tool") else None
    name = (tool.tool_name if tool else "") or "Unknown Tool"
    return {
        "id":        tool.id if tool else str(row.get("id")),
        "tool_name": name,
        "avatar":    tool.avatar if tool else None,
        "schema":    (tool.tool_schema if tool else None) or default_tool_schema(name),
    }


__all__ = [
    "Tool",
    "ToolSource",
    "GroupedTools",
    "as_tool",
    "tool_source",
    "merge_available",
    "partition_tools",
    "count_by_source",
    "group_tools",
    "pipedream_app_name",
    "default_tool_schema",
    "resolve_attachment_tools",
    "attached_tool_card",
]
