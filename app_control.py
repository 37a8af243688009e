# app_control.py
# ============================================================
# Draft Autopilot control panel
# - talks to the local control API started by autopilot.py
# - never calls the League client itself
#
# run: streamlit run app_control.py
#
# env (optional):
#   AUTOPILOT_CONTROL_URL     control API (default: http://127.0.0.1:12146)
#   AUTOPILOT_CONTROL_TOKEN   token header, when the API was started with one
# ============================================================
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Tuple

import requests
import streamlit as st

from env_loader import load_project_env

TIMEOUT = 2.0
NO_BAN = "(none)"


def _control_url() -> str:
    return (os.getenv("AUTOPILOT_CONTROL_URL") or "http://127.0.0.1:12146").rstrip("/")


def _headers() -> Dict[str, str]:
    token = (os.getenv("AUTOPILOT_CONTROL_TOKEN") or "").strip()
    return {"X-AUTOPILOT-TOKEN": token} if token else {}


def api_get(path: str) -> Optional[Dict[str, Any]]:
    try:
        r = requests.get(_control_url() + path, headers=_headers(), timeout=TIMEOUT)
        r.raise_for_status()
        return r.json()
    except requests.RequestException as e:
        st.error(f"control API unreachable: {e}")
        return None


def api_post(path: str, body: Optional[dict] = None) -> bool:
    try:
        r = requests.post(_control_url() + path, json=body, headers=_headers(), timeout=TIMEOUT)
    except requests.RequestException as e:
        st.error(f"control API unreachable: {e}")
        return False
    if r.status_code == 422:
        detail = r.json().get("detail")
        st.warning(detail["error"] if isinstance(detail, dict) else str(detail))
        return False
    if r.status_code >= 400:
        st.error(f"{r.status_code}: {r.text[:200]}")
        return False
    return True


# ---- selection form ----
def ban_options(all_names: List[str]) -> List[str]:
    return [NO_BAN] + list(all_names)


def ban_index(ban: Optional[Dict[str, Any]], options: List[str]) -> int:
    """Preselect the current ban so saving the form keeps it."""
    if ban and ban.get("name") in options:
        return options.index(ban["name"])
    return 0


def selection_posts(ban_choice: str, pick_list: List[str]) -> List[Tuple[str, dict]]:
    """
    Requests the Save button sends, in order.
    An empty pick list leaves the picks untouched (Clear selection drops them).
    """
    posts = [("/plan/ban", {"champion": None if ban_choice == NO_BAN else ban_choice})]
    if pick_list:
        posts.append(("/plan/picks", {"champions": list(pick_list)}))
    return posts


def render():
    load_project_env()

    st.set_page_config(page_title="Draft Autopilot", layout="centered")
    st.title("Draft Autopilot")
    st.caption(f"control API: {_control_url()}")

    state_obj = api_get("/state")
    if not state_obj:
        st.stop()
    state = state_obj.get("state") or {}

    champ_obj = api_get("/champions") or {}
    all_names: List[str] = champ_obj.get("names") or []

    # ---- status ----
    c1, c2, c3 = st.columns(3)
    c1.metric("Phase", state.get("phase", "?"))
    c2.metric("Fallback", f"#{int(state.get('fallback_cursor') or 0) + 1}")
    c3.metric("Locked", "yes" if state.get("locked") else "no")

    ban = state.get("ban")
    picks = state.get("picks") or []
    st.write(f"**Ban**: {ban['name'] if ban else '-'}")
    st.write("**Picks**: " + (" > ".join(p["name"] for p in picks) if picks else "-"))
    if state.get("last_event"):
        st.caption(f"last cycle: {state['last_event']}")

    st.divider()

    # ---- toggles ----
    t1, t2, t3 = st.columns(3)
    with t1:
        label = "Auto-accept: ON" if state.get("auto_accept") else "Auto-accept: OFF"
        if st.button(label, use_container_width=True):
            api_post("/toggle/auto-accept")
            st.rerun()
    with t2:
        label = "Rune swap: ON" if state.get("rune_swap") else "Rune swap: OFF"
        if st.button(label, use_container_width=True):
            api_post("/toggle/rune-swap")
            st.rerun()
    with t3:
        if st.button("Stop autopilot", use_container_width=True):
            api_post("/terminate")
            st.success("terminate requested")

    st.divider()

    # ---- selection ----
    st.subheader("Selection")
    if not state.get("edit_mode"):
        if st.button("Begin editing", use_container_width=True):
            api_post("/selection/begin")
            st.rerun()
    else:
        options = ban_options(all_names)
        current_picks = [p["name"] for p in picks if p["name"] in all_names]
        with st.form("plan_form"):
            ban_pick = st.selectbox("Ban", options, index=ban_index(ban, options))
            pick_list = st.multiselect("Pick fallbacks (in order)", all_names, default=current_picks)
            st.caption("Leaving the picks empty keeps the current ones; use Clear selection to drop them.")
            submitted = st.form_submit_button("Save")
            if submitted:
                ok = True
                for path, body in selection_posts(ban_pick, pick_list):
                    ok = api_post(path, body)
                    if not ok:
                        break
                if ok:
                    api_post("/selection/end")
                    st.success("selection saved")

    if st.button("Clear selection", use_container_width=True):
        api_post("/plan/clear")
        st.rerun()


if __name__ == "__main__":
    render()
