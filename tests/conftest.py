"""
Pytest fixtures
───────────────
• `fake_sb` – in-memory stand-in for the Supabase client.  Supports the
  query-builder chain the backend uses:
      table().select().eq().order().single().execute()
      table().insert(row).execute()
      table().update(patch).eq().execute()
      table().delete().eq().execute()
  plus the `tool:user_tools(*)` embed on the two link tables.
• Nothing here touches the network.
"""

import copy
import itertools
from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

# link table → (embed key, target table, fk column)
_EMBEDS = {
    "user_model_tools":      ("tool", "user_tools", "user_tool_id"),
    "user_mcp_server_tools": ("tool", "user_tools", "user_tool_id"),
}


class FakeQuery:
    def __init__(self, db, table):
        self.db, self.table = db, table
        self.op = "select"
        self.payload = None
        self.filters = []
        self._order = None
        self._single = False

    # ---- builders ----
    def select(self, *_a, **_kw):
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, col, val):
        self.filters.append((col, val))
        return self

    def order(self, col, desc=False):
        self._order = (col, desc)
        return self

    def single(self):
        self._single = True
        return self

    # ---- run ----
    def _match(self, row):
        return all(row.get(c) == v for c, v in self.filters)

    def _embed(self, row):
        link = _EMBEDS.get(self.table)
        if not link:
            return row
        key, target, fk = link
        hit = next((t for t in self.db.tables.get(target, []) if t.get("id") == row.get(fk)), None)
        # vendor rows are invisible to the user through the join
        if hit is not None and hit.get("is_sloot") and self.db.hide_sloot_in_joins:
            hit = None
        return {**row, key: copy.deepcopy(hit)}

    def execute(self):
        self.db.calls.append((self.table, self.op, list(self.filters), self.payload))
        if (self.table, self.op) in self.db.fail_on:
            raise APIError({"message": f"{self.op} on {self.table} failed", "code": "500"})

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            new = {"id": next(self.db.ids), **self.payload}
            rows.append(new)
            return SimpleNamespace(data=[copy.deepcopy(new)])
        if self.op == "update":
            for r in rows:
                if self._match(r):
                    r.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=[copy.deepcopy(r) for r in rows if self._match(r)])
        if self.op == "delete":
            gone = [r for r in rows if self._match(r)]
            rows[:] = [r for r in rows if not self._match(r)]
            return SimpleNamespace(data=gone)

        out = [self._embed(copy.deepcopy(r)) for r in rows if self._match(r)]
        if self._order:
            col, desc = self._order
            out.sort(key=lambda r: r.get(col) or 0, reverse=desc)
        if self._single:
            return SimpleNamespace(data=out[0] if out else None)
        return SimpleNamespace(data=out)


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.calls = []
        self.fail_on = set()
        self.hide_sloot_in_joins = True
        self.ids = itertools.count(1000)

    def table(self, name):
        return FakeQuery(self, name)

    def ops(self, table, op):
        return [c for c in self.calls if c[0] == table and c[1] == op]


@pytest.fixture
def fake_sb():
    return FakeSupabase()


@pytest.fixture
def tool_rows():
    return {
        "user_tools": [
            {"id": "t-custom", "tool_name": "Weather", "user_id": "u1", "created_at": 3},
            {"id": "t-pd-1", "tool_name": "Send Slack", "user_id": "u1", "created_at": 2,
             "is_pipedream": True, "pipedream": '{"app": {"name": "Slack"}}'},
            {"id": "t-pd-2", "tool_name": "New Issue", "user_id": "u1", "created_at": 1,
             "is_pipedream": True, "pipedream": {"app": {"name": "GitHub"}}},
            {"id": "t-sloot", "tool_name": "Web Search", "user_id": "admin", "is_sloot": True},
        ],
    }
