from __future__ import annotations

# imports needed for streamlit, auth, and db helpers
import streamlit as st

from services.database_manager import DatabaseManager
from services.incident_manager import IncidentManager
from services.ui_helpers import bootstrap, guard_login, sidebar_user_box

# configure the streamlit shell and make sure database is ready
st.set_page_config(page_title="SafeGuard Kids", layout="wide")

db_manager = DatabaseManager()
bootstrap(db_manager)
incident_manager = IncidentManager(db_manager)

# css block to style the dashboard cards
CARD_STYLE = """
<style>
section[data-testid="stMain"] div[data-testid="stButton"] button {
    background-color: #2a1f3d;
    border-radius: 14px;
    border: 1px solid #3d2f55;
    color: #f4f4f7;
    padding: 1.5rem;
    min-height: 150px;
    width: 100%;
    text-align: left;
    font-size: 1rem;
    line-height: 1.4;
    box-shadow: 0 6px 18px rgba(0, 0, 0, 0.25);
    transition: all 0.2s ease-in-out;
    white-space: normal;
}
section[data-testid="stMain"] div[data-testid="stButton"] button:hover {
    background-color: #38294f;
    border-color: #a855f7;
    transform: translateY(-2px);
}
</style>
"""

CARDS = [
    {
        "label": "Incidents",
        "description": "Review flagged conversations, mark them viewed and acknowledge them.",
        "icon": "🛡️",
        "page": "pages/1_Incidents.py",
    },
    {
        "label": "Children",
        "description": "Add children, link extensions and check when each device last synced.",
        "icon": "👧",
        "page": "pages/2_Children.py",
    },
    {
        "label": "Reports",
        "description": "Statistics for a date range and exports for records or law enforcement.",
        "icon": "📄",
        "page": "pages/3_Reports.py",
    },
    {
        "label": "Account",
        "description": "Extension API key, password and notification preferences.",
        "icon": "⚙️",
        "page": "pages/4_Account.py",
    },
]


def render_cards() -> None:
    # render every dashboard card as a large button
    st.markdown(CARD_STYLE, unsafe_allow_html=True)
    cols_per_row = 2
    for start in range(0, len(CARDS), cols_per_row):
        row = CARDS[start : start + cols_per_row]
        columns = st.columns(cols_per_row)
        for column, card in zip(columns, row):
            label = f"{card['icon']} {card['label']}\n\n{card['description']}"
            # clicking a card opens the correct page
            if column.button(label, key=f"card_{card['label']}"):
                st.switch_page(card["page"])


def main() -> None:
    # overall landing page entry
    session = guard_login()
    sidebar_user_box(session, "home")
    st.title(f"Welcome back, {session.name}")
    unviewed = len(incident_manager.get_unviewed(session.user_id))
    if unviewed:
        st.warning(f"{unviewed} new incident(s) waiting for review.")
    else:
        st.success("No new incidents. Everything has been reviewed.")
    render_cards()


if __name__ == "__main__":
    main()
