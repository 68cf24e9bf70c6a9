import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import streamlit as st
from websocket import create_connection


def setup_client_logging() -> logging.Logger:
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("supporttriage.streamlit")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "client.log", maxBytes=2_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    return logger


LOGGER = setup_client_logging()

SENDER_ROLES = {"user": "user", "agent": "assistant", "system": "assistant"}
SENDER_AVATARS = {"user": None, "agent": None, "system": "⚙️"}


def send_action(ws_url: str, session_id: str, action: str, text: str = "") -> dict[str, Any]:
    """Send one action to the backend and return the last state it pushed.

    The backend pushes a state frame after every change and a done frame
    once the action has been handled; escalation notices that arrive later
    show up on the next round trip.
    """
    LOGGER.info("Connecting ws_url=%s session_id=%s action=%s", ws_url, session_id, action)
    ws = create_connection(ws_url, timeout=120)
    try:
        ws.send(json.dumps({"session_id": session_id, "action": action, "text": text}))
        state: dict[str, Any] = {}
        while True:
            payload = json.loads(ws.recv())
            t = payload.get("type")
            if t == "state":
                state = payload.get("state") or {}
            elif t == "done":
                LOGGER.info(
                    "WS done action=%s accepted=%s mode=%s",
                    payload.get("action"),
                    payload.get("accepted"),
                    state.get("mode"),
                )
                return state
            elif t == "error":
                err = payload.get("data") or "Unknown error"
                LOGGER.error("WS error: %s", err)
                raise RuntimeError(err)
    finally:
        ws.close()


def _act(action: str, text: str = "") -> None:
    st.session_state["pending_action"] = (action, text)


st.set_page_config(page_title="Support Triage Agent", page_icon="🎧", layout="centered")

st.title("AI Customer Service Agent")

with st.sidebar:
    st.subheader("Connection")
    default_ws = "ws://localhost:8000/ws/chat"
    ws_url = st.text_input("WebSocket URL", value=default_ws)
    session_id = st.text_input("Session ID", value=st.session_state.get("session_id", "streamlit-demo"))
    st.session_state["session_id"] = session_id
    st.markdown("---")
    st.button("Refresh", on_click=_act, args=("sync",), use_container_width=True)

action, action_text = st.session_state.pop("pending_action", ("sync", ""))
try:
    state = send_action(ws_url, session_id, action, action_text)
except Exception as e:
    st.error(f"Could not reach the agent: {e}")
    st.stop()

if state.get("configuration_error"):
    st.error(f"**Configuration Error:** {state['configuration_error']}")

for m in state.get("messages", []):
    sender = m.get("sender", "system")
    with st.chat_message(SENDER_ROLES.get(sender, "assistant"), avatar=SENDER_AVATARS.get(sender)):
        if sender == "system":
            st.caption(m.get("text", ""))
        else:
            st.markdown(m.get("text", ""))

if state.get("escalation_pending"):
    st.caption("Checking whether a human team should follow up. Press Refresh to see the outcome.")

if state.get("show_resolution_buttons"):
    yes_col, no_col = st.columns(2)
    yes_col.button("Yes, resolved", on_click=_act, args=("confirm_resolved",), use_container_width=True)
    no_col.button("No, not resolved", on_click=_act, args=("confirm_not_resolved",), use_container_width=True)
elif state.get("show_rephrase"):
    st.button("Rephrase my question", on_click=_act, args=("rephrase_after_unknown",))
elif state.get("show_new_query"):
    st.button("Ask Another Question", on_click=_act, args=("start_new_query",))

prompt = st.chat_input(
    "Type your question…",
    disabled=not state.get("input_enabled", False),
)
if prompt:
    _act("submit", prompt)
    st.rerun()
