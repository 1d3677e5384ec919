from __future__ import annotations

# standard libs help with date display
from datetime import datetime
from typing import List

# pandas and plotly power the analytics sections, streamlit renders everything
import pandas as pd
import plotly.express as px
import streamlit as st

# local helpers for the incident domain
from models.incident import SEVERITIES, Incident
from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.errors import DashboardError
from services.incident_manager import IncidentManager
from services.stats_engine import StatsSummary
from services.ui_helpers import (
    SEVERITY_COLORS,
    bootstrap,
    child_selector,
    guard_login,
    sidebar_user_box,
)

# configure a wide layout since this dashboard has multiple columns
st.set_page_config(layout="wide")

db_manager = DatabaseManager()
bootstrap(db_manager)
incident_manager = IncidentManager(db_manager)
child_manager = ChildManager(db_manager)
TREND_LABELS = {"increasing": "⬆️ Increasing", "decreasing": "⬇️ Decreasing", "stable": "➡️ Stable"}


def format_time(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


def stat_cards(stats: StatsSummary) -> None:
    # headline numbers across the top of the page
    cols = st.columns(5)
    cols[0].metric("Total incidents", stats.total)
    cols[1].metric("Critical", stats.critical)
    cols[2].metric("High", stats.high)
    cols[3].metric("Unviewed", stats.unviewed)
    cols[4].metric("Last 7 days", TREND_LABELS.get(stats.recent_trend, stats.recent_trend))


def charts_section(stats: StatsSummary) -> None:
    # severity, platform and category breakdowns
    if not stats.total:
        st.info("No incidents recorded yet. Charts appear once the extension reports something.")
        return
    severity_df = pd.DataFrame(
        {
            "severity": SEVERITIES[::-1],
            "count": [stats.critical, stats.high, stats.medium, stats.low],
        }
    )
    fig_severity = px.bar(
        severity_df,
        x="severity",
        y="count",
        color="severity",
        color_discrete_map=SEVERITY_COLORS,
        title="Incidents by severity",
        labels={"severity": "Severity", "count": "Incidents"},
    )
    platform_df = pd.DataFrame(sorted(stats.platforms.items()), columns=["platform", "count"])
    fig_platform = px.pie(platform_df, names="platform", values="count", title="Incidents by platform")
    category_df = pd.DataFrame(
        sorted(stats.categories.items(), key=lambda item: item[1], reverse=True),
        columns=["category", "count"],
    )
    fig_category = px.bar(
        category_df,
        x="count",
        y="category",
        orientation="h",
        title="Incidents by category",
        labels={"category": "Category", "count": "Incidents"},
    )
    chart_cols = st.columns(3)
    chart_cols[0].plotly_chart(fig_severity, width="stretch")
    chart_cols[1].plotly_chart(fig_platform, width="stretch")
    chart_cols[2].plotly_chart(fig_category, width="stretch")


def incident_card(incident: Incident) -> None:
    # one expandable row per incident with triage buttons
    badge = "🆕 " if not incident.viewed else ""
    title = (
        f"{badge}{incident.severity} · {incident.category.replace('_', ' ')} on "
        f"{incident.platform} · {format_time(incident.get_timestamp())}"
    )
    with st.expander(title):
        st.write(f"**Threat level:** {incident.data.get('threat_level')}/10")
        if incident.data.get("message_text"):
            st.write(f"**Message:** {incident.data['message_text']}")
        if incident.data.get("image_description"):
            st.write(f"**Image:** {incident.data['image_description']}")
        guidance = incident.get_parent_guidance()
        if guidance:
            st.info(guidance)
        if incident.data.get("notes"):
            st.caption(f"Notes: {incident.data['notes']}")

        cols = st.columns([2, 3, 2])
        if not incident.viewed and cols[0].button("Mark viewed", key=f"view_{incident.incident_id}"):
            try:
                incident_manager.mark_viewed(incident.incident_id)
            except DashboardError as exc:
                st.error(str(exc))
                return
            st.rerun()
        if incident.acknowledged:
            cols[2].success("Acknowledged")
            return
        notes = cols[1].text_input("Notes", key=f"notes_{incident.incident_id}")
        if cols[2].button("Acknowledge", key=f"ack_{incident.incident_id}"):
            try:
                incident_manager.mark_viewed(incident.incident_id)
                incident_manager.acknowledge(incident.incident_id, notes or None)
            except DashboardError as exc:
                st.error(str(exc))
                return
            st.rerun()


def incident_list_section(incidents: List[Incident]) -> None:
    st.subheader("Recent incidents")
    if not incidents:
        st.info("No incidents to display.")
        return
    only_unviewed = st.toggle("Only show unviewed", value=False)
    for incident in incidents:
        if only_unviewed and incident.viewed:
            continue
        incident_card(incident)


def main() -> None:
    session = guard_login()
    sidebar_user_box(session, "incidents")
    st.title("Incidents")
    st.write("Everything the browser extension has flagged for your children.")

    children = child_manager.get_children(session.user_id)
    child_id = child_selector(session, children, key="incidents_child")

    try:
        stats = incident_manager.get_stats(session.user_id, child_id=child_id)
    except DashboardError as exc:
        st.error(str(exc))
        return
    stat_cards(stats)
    charts_section(stats)

    incidents = incident_manager.get_recent(user_id=session.user_id, child_id=child_id, limit=50)
    incident_list_section(incidents)


if __name__ == "__main__":
    main()
