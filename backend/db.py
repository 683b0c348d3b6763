"""
backend.db
Supabase client (lazy singleton) plus the error type its queries raise.
Pure data-access plumbing; contains **no business logic**.
"""
from __future__ import annotations

import logging

from postgrest.exceptions import APIError  # noqa: F401  (re-exported for callers)
from supabase import Client, create_client

from backend import config

log = logging.getLogger("agent_console.db")


def _make_client() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        raise RuntimeError("SUPABASE_URL / KEY env vars must be set")
    return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)


_sb: Client | None = None


def sb() -> Client:
    global _sb                           # pylint: disable=global-statement
    if _sb is None:
        _sb = _make_client()
        log.debug("Supabase client created for %s", config.SUPABASE_URL)
    return _sb


def rows(client: Client, table: str, **eq) -> list:
    q = client.table(table).select("*")
    for col, val in eq.items():
        q = q.eq(col, val)
    return q.execute().data or []
