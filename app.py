#!/usr/bin/env python3
from __future__ import annotations
import logging
import streamlit as st

from backend import config
from backend.agents       import AgentToolAttachments, initial_values, load_models, save_settings
from backend.db           import sb
from backend.form_engine  import FormEngine
from backend.tools        import attached_tool_card, group_tools
from utils.fields         import render_form

logging.basicConfig(level=config.LOG_LEVEL,
                    format="%(asctime)s %(levelname)-8s %(message)s")
log = logging.getLogger("agent_console.app")

st.set_page_config(page_title="Agent Console", layout="centered")

# ── helpers ─────────────────────────────────────────────────────────────
@st.cache_data(ttl=300)
def _models() -> list[dict]:
    return load_models()

def _agents(user_id: str) -> list[dict]:
    return (sb().table("user_models").select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute().data or [])

def _engine(model: dict, agent: dict) -> FormEngine:
    """One engine per agent, kept across reruns."""
    key = f"engine:{agent['id']}"
    if key not in st.session_state:
        st.session_state[key] = FormEngine(
            model.get("fields") or [],
            initial_values(model, agent),
            path=config.FORM_PATH,
            optional_list_field=config.OPTIONAL_LIST_FIELD,
        )
    return st.session_state[key]

def _attachments(agent: dict) -> AgentToolAttachments:
    key = f"tools:{agent['id']}"
    if key not in st.session_state:
        st.session_state[key] = AgentToolAttachments(agent["id"], config.CONSOLE_USER_ID)
    att = st.session_state[key]
    att.load()                      # no-op once ready
    return att

# ── tool section ────────────────────────────────────────────────────────
def render_tools(att: AgentToolAttachments) -> bool:
    changed = False
    st.subheader(f"Attached tools ({len(att.rows)})")
    if not att.rows:
        st.caption("No tools attached to this agent.")
    for row in att.rows:
        card = attached_tool_card(row)
        c = st.columns([5, 1])
        c[0].markdown(card["tool_name"])
        c[0].caption(card["schema"].get("description") or "")
        if c[1].button("Detach", key=f"detach{row['id']}"):
            changed = att.detach(row["id"]) or changed

    free = group_tools(att.unattached)
    with st.expander(f"Available tools ({len(att.unattached)})"):
        for t in free.custom + free.sloot:
            if st.button(f"Attach “{t.tool_name}”", key=f"attach{t.id}"):
                changed = att.attach(t.id) or changed
        for app_name, tools in free.pipedream.items():
            st.markdown(f"**{app_name}** · {len(tools)} tools")
            for t in tools:
                if st.button(f"Attach “{t.tool_name}”", key=f"attach{t.id}"):
                    changed = att.attach(t.id) or changed
    return changed

# ── page ────────────────────────────────────────────────────────────────
def render_settings():
    st.title("Agent settings")
    if not config.CONSOLE_USER_ID:
        st.error("CONSOLE_USER_ID is not set")
        return

    agents = _agents(config.CONSOLE_USER_ID)
    if not agents:
        st.info("No agents yet.")
        return
    agent = st.sidebar.selectbox("Agent", agents, format_func=lambda a: a["name"])

    models = {m["id"]: m for m in _models()}
    model = models.get(agent.get("model_id"))
    if model is None:
        st.error("This agent has no model configured")
        return

    engine = _engine(model, agent)
    att = _attachments(agent)

    tools_changed = render_tools(att)
    form_changed = render_form(engine)

    missing = engine.missing_required()
    if missing:
        st.caption(f":red[Required: {', '.join(missing)}]")

    if tools_changed or form_changed:
        row = save_settings(agent, engine.snapshot(), [r["user_tool_id"] for r in att.rows])
        if row is None:
            st.error("Saving settings failed")
        else:
            st.toast("Saved")
            st.rerun()

render_settings()
st.caption(f"Agent Console · form key: {config.OPTIONAL_LIST_FIELD}")
