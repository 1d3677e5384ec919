from __future__ import annotations

import streamlit as st

from services import config_manager
from services.auth_manager import AuthManager
from services.database_manager import DatabaseManager
from services.errors import DashboardError
from services.ui_helpers import bootstrap, guard_login, sidebar_user_box

st.set_page_config(layout="wide")

db_manager = DatabaseManager()
bootstrap(db_manager)
auth_manager = AuthManager(db_manager)


def profile_section(user) -> None:
    st.subheader("Profile")
    st.write(f"**Name:** {user.name}")
    st.write(f"**Email:** {user.email}")
    st.write(f"**Phone:** {user.phone or 'not set'}")
    st.subheader("Extension API key")
    st.code(user.api_key, language=None)
    st.caption("Paste this key into the browser extension settings so incidents reach this dashboard.")


def password_section(user_id: int) -> None:
    st.subheader("Change password")
    with st.form("change_password_form", clear_on_submit=True):
        current = st.text_input("Current password", type="password")
        new_password = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Update password")
    if submitted:
        if new_password != confirm:
            st.error("New passwords do not match.")
            return
        try:
            auth_manager.change_password(user_id, current, new_password)
        except DashboardError as exc:
            st.error(str(exc))
            return
        st.success("Password updated.")


def notification_section(user) -> None:
    # preferences are stored for the extension, alerts are not sent from here
    st.subheader("Notification preferences")
    settings = user.notification_settings
    with st.form("notification_form"):
        col1, col2 = st.columns(2)
        with col1:
            email_enabled = st.checkbox("Email alerts", value=settings["email_enabled"])
            email_threshold = st.slider("Email threshold", 0, 10, value=settings["email_threshold"])
            daily_digest = st.checkbox("Daily digest", value=settings["daily_digest"])
        with col2:
            sms_enabled = st.checkbox("SMS alerts", value=settings["sms_enabled"])
            sms_threshold = st.slider("SMS threshold", 0, 10, value=settings["sms_threshold"])
            phone = st.text_input("Phone", value=user.phone or "")
        submitted = st.form_submit_button("Save preferences")
    if submitted:
        try:
            auth_manager.update_notification_settings(
                user.user_id,
                {
                    "email_enabled": email_enabled,
                    "sms_enabled": sms_enabled,
                    "email_threshold": email_threshold,
                    "sms_threshold": sms_threshold,
                    "daily_digest": daily_digest,
                },
                phone or None,
            )
        except DashboardError as exc:
            st.error(str(exc))
            return
        st.success("Preferences saved.")


def main() -> None:
    session = guard_login()
    sidebar_user_box(session, "account")
    st.title("Account")
    try:
        user = auth_manager.get_user(session.user_id)
    except DashboardError as exc:
        st.error(str(exc))
        session.logout()
        st.stop()

    left, right = st.columns(2)
    with left:
        profile_section(user)
        password_section(user.user_id)
    with right:
        notification_section(user)
        status = config_manager.get_status()
        st.caption(
            f"Database: {status['database']} ({status['database_source']}) · API: {status['api']} · "
            f"demo mode {status['demo_mode']}"
        )


if __name__ == "__main__":
    main()
