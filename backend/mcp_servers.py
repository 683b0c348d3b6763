"""
MCP server editor state.

Keeps a server's attached tools and the tools still available to it in step
with `user_mcp_server_tools`.  Vendor (sloot) tools are always offered, even
though they live outside the user's own `user_tools` rows.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from backend.agents import load_sloot_tools, load_user_tools
from backend.db import APIError, rows, sb
from backend.lifecycle import LoadGuard
from backend.tools import Tool, count_by_source, merge_available, partition_tools

log = logging.getLogger("agent_console.mcp_servers")

_SERVER_TOOLS_SELECT = "id, user_mcp_server_id, user_tool_id, tool:user_tools(*)"


class McpServerEditor:
    def __init__(self, server_id: str, user_id: str, client: Optional[Client] = None):
        self.server_id = server_id
        self.user_id = user_id
        self._client = client
        self.guard = LoadGuard(f"mcp-server:{server_id}")
        self.server: Optional[Dict[str, Any]] = None
        self.server_tools: List[Dict[str, Any]] = []
        self.available: List[Tool] = []
        self.attached: List[Tool] = []
        self.unattached: List[Tool] = []

    @property
    def client(self) -> Client:
        return self._client or sb()

    # ---- loading ----
    def load(self) -> bool:
        if not self.guard.begin():
            return False
        try:
            ok = self._fetch()
        except APIError as exc:
            log.error("Loading MCP server %s failed: %s", self.server_id, exc)
            ok = False
        except Exception:
            self.guard.fail()
            raise
        if not ok:
            self.guard.fail()
            return False
        self.guard.finish()
        return True

    def _fetch(self) -> bool:
        found = rows(self.client, "user_mcp_servers", id=self.server_id)
        if not found:
            log.warning("MCP server %s not found", self.server_id)
            return False
        self.server = found[0]
        self.available = merge_available(
            load_user_tools(self.client, self.user_id),
            load_sloot_tools(self.client),
        )
        self.load_server_tools()
        self._reconcile()
        return True

    def load_server_tools(self) -> List[Dict[str, Any]]:
        res = (
            self.client.table("user_mcp_server_tools")
            .select(_SERVER_TOOLS_SELECT)
            .eq("user_mcp_server_id", self.server_id)
            .execute()
        )
        self.server_tools = res.data or []
        return self.server_tools

    def _reconcile(self) -> None:
        ids = [str(st["user_tool_id"]) for st in self.server_tools if st and st.get("user_tool_id")]
        self.attached, self.unattached = partition_tools(self.available, ids)

    @property
    def counts(self) -> Dict[str, int]:
        """Unattached tools per source, for the Custom / Sloot / Pipedream badges."""
        return count_by_source(self.unattached)

    # ---- mutations ----
    def attach_tool(self, tool_id: str) -> bool:
        if not self.server_id or not tool_id:
            log.error("Invalid server ID or tool ID")
            return False
        try:
            self.client.table("user_mcp_server_tools").insert(
                {"user_mcp_server_id": self.server_id, "user_tool_id": tool_id}
            ).execute()
            self.load_server_tools()
        except APIError as exc:
            log.error("Attaching tool %s to %s failed: %s", tool_id, self.server_id, exc)
            return False
        self._reconcile()
        return True

    def detach_tool(self, tool_id: str) -> bool:
        """Detach by tool id; the link row is resolved from the server's tool rows."""
        link = next(
            (st for st in self.server_tools if st and str(st.get("user_tool_id")) == str(tool_id)),
            None,
        )
        if link is None:
            log.error("Tool %s not found in server tools", tool_id)
            return False
        try:
            self.client.table("user_mcp_server_tools").delete().eq("id", link["id"]).execute()
            self.load_server_tools()
        except APIError as exc:
            log.error("Detaching tool %s from %s failed: %s", tool_id, self.server_id, exc)
            return False
        self._reconcile()
        return True

    def rename(self, name: str) -> bool:
        name = (name or "").strip()
        if not name or self.server is None:
            return False
        try:
            (
                self.client.table("user_mcp_servers")
                .update({"server_name": name})
                .eq("id", self.server_id)
                .eq("user_id", self.user_id)
                .execute()
            )
        except APIError as exc:
            log.error("Renaming MCP server %s failed: %s", self.server_id, exc)
            return False
        self.server = {**self.server, "server_name": name}
        return True
