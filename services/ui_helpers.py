# small shared UI helpers for the dashboards

from __future__ import annotations

from contextlib import contextmanager
from typing import List, Optional

import streamlit as st

from models.child import Child
from models.session import Session
from services import config_manager
from services.database_manager import DatabaseManager
from services.seed import seed_demo_data

SEVERITY_COLORS = {"CRITICAL": "#dc2626", "HIGH": "#f97316", "MEDIUM": "#facc15", "LOW": "#22c55e"}


def bootstrap(db_manager: DatabaseManager) -> None:
    # once per browser session: logging, tables and optional demo data
    if st.session_state.get("bootstrapped"):
        return
    settings = config_manager.load_settings()
    config_manager.configure_logging(settings)
    db_manager.create_tables()
    if settings.demo_mode:
        seed_demo_data(db_manager)
    st.session_state["bootstrapped"] = True


def set_sidebar_visibility(show: bool) -> None:
    # hide sidebar until login completes
    display_value = "flex" if show else "none"
    toggle_value = "block" if show else "none"
    # inject css so sidebar and toggle follow our desired visibility
    st.markdown(
        f"""
        <style>
        [data-testid="stSidebar"] {{
            display: {display_value} !important;
        }}
        button[title="Hide sidebar"] {{
            display: {toggle_value} !important;
        }}
        </style>
        """,
        unsafe_allow_html=True,
    )


def get_session() -> Session:
    # the single session object every page reads from
    session = st.session_state.get("session")
    if not isinstance(session, Session):
        session = Session()
        st.session_state["session"] = session
    return session


def guard_login() -> Session:
    # send anonymous visitors to the login page
    session = get_session()
    if not session.is_authenticated:
        set_sidebar_visibility(False)
        st.switch_page("pages/Login.py")
        st.stop()
    set_sidebar_visibility(True)
    return session


def sidebar_user_box(session: Session, key_prefix: str) -> None:
    # show info in sidebar only after login
    if not session.is_authenticated:
        return
    with st.sidebar:
        st.caption(f"Logged in as {session.name} ({session.email}).")
        if st.button("Log out", key=f"{key_prefix}_logout"):
            session.logout()
            st.rerun()


def child_selector(session: Session, children: List[Child], key: str) -> Optional[int]:
    # "All children" maps to None, the choice is remembered on the session
    options: List[Optional[int]] = [None] + [child.child_id for child in children]
    names = {child.child_id: child.name for child in children}
    current = session.selected_child_id if session.selected_child_id in options else None
    selected = st.selectbox(
        "Child",
        options,
        index=options.index(current),
        format_func=lambda value: "All children" if value is None else names.get(value, str(value)),
        key=key,
    )
    session.select_child(selected)
    return selected


def dialog_container(title: str):
    dialog_fn = getattr(st, "dialog", None)
    if callable(dialog_fn):
        try:
            context = dialog_fn(title)
            if hasattr(context, "__enter__") and hasattr(context, "__exit__"):
                return context
        except TypeError:
            pass

    @contextmanager
    def fallback():
        st.write(f"### {title}")
        yield

    return fallback()
