from __future__ import annotations

import streamlit as st

from models.child import Child
from services.child_manager import MONITORING_MODES, PLATFORMS, ChildManager
from services.database_manager import DatabaseManager
from services.errors import DashboardError
from services.ui_helpers import bootstrap, dialog_container, guard_login, sidebar_user_box

st.set_page_config(layout="wide")

db_manager = DatabaseManager()
bootstrap(db_manager)
child_manager = ChildManager(db_manager)


def sync_label(hours: int) -> str:
    # long absent devices are the ones parents need to notice
    if hours < 1:
        return "synced in the last hour"
    if hours < 48:
        return f"last sync {hours}h ago"
    return f"⚠️ no sync for {hours // 24} days"


def render_child(child: Child) -> None:
    stats = child_manager.get_child_stats(child.child_id)
    with st.container(border=True):
        cols = st.columns([3, 2, 2, 2])
        age = f" ({stats.age})" if stats.age else ""
        cols[0].markdown(f"### {stats.name}{age}")
        cols[0].caption(
            "extension not linked yet" if child.is_pending() else sync_label(stats.last_sync_hours)
        )
        cols[1].metric("Incidents", stats.total)
        cols[2].metric("Last 24h", stats.last24h)
        cols[3].metric("Critical / High", f"{stats.critical} / {stats.high}")
        if stats.platform_counts:
            st.write(
                " · ".join(f"{entry['name']}: {entry['incidents']}" for entry in stats.platform_counts)
            )
        action_cols = st.columns(6)
        if action_cols[0].button("Edit", key=f"edit_child_{child.child_id}"):
            st.session_state["child_to_edit"] = child
        if action_cols[1].button("Remove", key=f"remove_child_{child.child_id}"):
            st.session_state["child_to_remove"] = child


def add_child_section(user_id: int) -> None:
    st.subheader("Add a child")
    with st.form("add_child_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name")
            age = st.number_input("Age", min_value=0, max_value=18, value=10)
        with col2:
            platforms = st.multiselect("Platforms to monitor", PLATFORMS, default=PLATFORMS[:4])
            extension_id = st.text_input("Extension id (optional)")
        if st.form_submit_button("Add child"):
            try:
                if extension_id.strip():
                    child_manager.create_child(
                        user_id, name, extension_id.strip(), "1.0.0", "active", platforms, int(age)
                    )
                else:
                    child_manager.add_child(user_id, name, platforms, int(age))
            except DashboardError as exc:
                st.error(str(exc))
                return
            st.success("Child added.")
            st.rerun()


def show_edit_modal() -> None:
    child = st.session_state.get("child_to_edit")
    if not child:
        return
    with dialog_container(f"Edit {child.name}"):
        with st.form(f"edit_child_form_{child.child_id}"):
            name = st.text_input("Name", value=child.name)
            mode = child.data.get("monitoring_mode", MONITORING_MODES[0])
            monitoring_mode = st.selectbox(
                "Monitoring mode",
                MONITORING_MODES,
                index=MONITORING_MODES.index(mode) if mode in MONITORING_MODES else 0,
            )
            enabled = st.checkbox("Monitoring enabled", value=bool(child.data.get("monitoring_enabled", True)))
            platforms = st.multiselect(
                "Platforms",
                sorted(set(PLATFORMS) | set(child.platforms)),
                default=child.platforms,
            )
            submitted = st.form_submit_button("Save")
        if submitted:
            try:
                child_manager.update_child(
                    child.child_id,
                    name=name,
                    monitoring_mode=monitoring_mode,
                    monitoring_enabled=enabled,
                    platforms=platforms,
                )
            except DashboardError as exc:
                st.error(str(exc))
                return
            st.session_state["child_to_edit"] = None
            st.rerun()
        if st.button("Close edit", key=f"close_edit_child_{child.child_id}"):
            st.session_state["child_to_edit"] = None


def show_remove_modal() -> None:
    child = st.session_state.get("child_to_remove")
    if not child:
        return
    with dialog_container(f"Remove {child.name}?"):
        st.warning("The profile is removed. Incidents already reported stay in your history.", icon="⚠️")
        if st.button("Confirm remove", type="primary", key=f"confirm_remove_{child.child_id}"):
            try:
                child_manager.remove_child(child.child_id)
            except DashboardError as exc:
                st.error(str(exc))
                return
            st.session_state["child_to_remove"] = None
            st.rerun()
        if st.button("Cancel", key=f"cancel_remove_{child.child_id}"):
            st.session_state["child_to_remove"] = None


def main() -> None:
    session = guard_login()
    sidebar_user_box(session, "children")
    st.title("Children")
    st.write("Each child has one browser extension install that reports incidents to this dashboard.")

    children = child_manager.get_children(session.user_id)
    if not children:
        st.info("No children added yet.")
    for child in children:
        render_child(child)
    show_edit_modal()
    show_remove_modal()
    add_child_section(session.user_id)


if __name__ == "__main__":
    main()
