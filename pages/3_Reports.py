from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pandas as pd
import streamlit as st

from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.errors import DashboardError
from services.export_manager import EXPORT_TYPES, PURPOSES, ExportManager
from services.incident_manager import IncidentManager
from services.ui_helpers import bootstrap, child_selector, guard_login, sidebar_user_box

st.set_page_config(layout="wide")

db_manager = DatabaseManager()
bootstrap(db_manager)
incident_manager = IncidentManager(db_manager)
child_manager = ChildManager(db_manager)
export_manager = ExportManager(db_manager)
FILE_SUFFIX = {"csv": ("csv", "text/csv"), "json": ("json", "application/json"), "pdf": ("txt", "text/plain")}


def to_ms(day: date, end_of_day: bool = False) -> int:
    moment = datetime.combine(day, time.max if end_of_day else time.min)
    return int(moment.timestamp() * 1000)


def summary_section(user_id: int, child_id, start_ms: int, end_ms: int) -> None:
    # stats for the chosen window, same engine as the incidents page
    stats = incident_manager.get_stats(user_id, child_id=child_id, start_date=start_ms, end_date=end_ms)
    cols = st.columns(4)
    cols[0].metric("Incidents in range", stats.total)
    cols[1].metric("Critical + High", stats.critical + stats.high)
    cols[2].metric("Unacknowledged", stats.unacknowledged)
    cols[3].metric("Trend", stats.recent_trend)
    if stats.categories:
        st.dataframe(
            pd.DataFrame(sorted(stats.categories.items()), columns=["Category", "Incidents"]),
            width="stretch",
        )


def export_section(user_id: int, child_id, start_ms: int, end_ms: int) -> None:
    st.subheader("Export")
    col1, col2 = st.columns(2)
    export_type = col1.radio("Format", EXPORT_TYPES, horizontal=True, format_func=str.upper)
    purpose = col2.selectbox("Purpose", PURPOSES, format_func=lambda value: value.replace("_", " ").title())
    if purpose == "law_enforcement":
        st.caption("Keep the original device untouched when sharing a report with the police.")
    if st.button("Generate report", type="primary"):
        try:
            result = export_manager.create_export(user_id, export_type, purpose, start_ms, end_ms, child_id)
        except DashboardError as exc:
            st.error(str(exc))
            return
        if not result["incidentCount"]:
            st.warning("No incidents to export in this range.")
            return
        incidents = export_manager.select_incidents(user_id, start_ms, end_ms, child_id)
        st.session_state["pending_export"] = {
            "export_id": result["exportId"],
            "body": export_manager.render(incidents, export_type, purpose),
            "export_type": export_type,
        }
    pending = st.session_state.get("pending_export")
    if pending:
        suffix, mime = FILE_SUFFIX[pending["export_type"]]
        if st.download_button(
            "Download",
            pending["body"],
            file_name=f"safeguard-report-{pending['export_id']}.{suffix}",
            mime=mime,
        ):
            try:
                export_manager.increment_download(pending["export_id"])
            except DashboardError as exc:
                st.error(str(exc))
            st.session_state["pending_export"] = None


def history_section(user_id: int) -> None:
    st.subheader("Export history")
    history = export_manager.get_history(user_id)
    if not history:
        st.info("No exports yet.")
        return
    df = pd.DataFrame(history)[["id", "export_type", "purpose", "incident_count", "created_at", "download_count"]]
    df["created_at"] = pd.to_datetime(df["created_at"], unit="ms")
    st.dataframe(
        df.rename(
            columns={
                "id": "ID",
                "export_type": "Format",
                "purpose": "Purpose",
                "incident_count": "Incidents",
                "created_at": "Created",
                "download_count": "Downloads",
            }
        ),
        width="stretch",
    )


def main() -> None:
    session = guard_login()
    sidebar_user_box(session, "reports")
    st.title("Reports")

    children = child_manager.get_children(session.user_id)
    col1, col2, col3 = st.columns(3)
    with col1:
        child_id = child_selector(session, children, key="reports_child")
    start = col2.date_input("From", value=date.today() - timedelta(days=30))
    end = col3.date_input("To", value=date.today())
    start_ms, end_ms = to_ms(start), to_ms(end, end_of_day=True)

    try:
        summary_section(session.user_id, child_id, start_ms, end_ms)
    except DashboardError as exc:
        st.error(str(exc))
    export_section(session.user_id, child_id, start_ms, end_ms)
    history_section(session.user_id)


if __name__ == "__main__":
    main()
