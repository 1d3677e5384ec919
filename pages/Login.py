from __future__ import annotations

# streamlit drives the form rendering and session state
import streamlit as st

# auth manager handles registration and login checks
from models.session import Session
from services import config_manager
from services.auth_manager import DEMO_EMAIL, AuthManager
from services.database_manager import DatabaseManager
from services.errors import DashboardError
# helper toggles sidebar visibility until login is done
from services.ui_helpers import bootstrap, get_session, set_sidebar_visibility

# configure this page for a centered login/register layout
st.set_page_config(layout="centered", page_title="Login / Register")

db_manager = DatabaseManager()
bootstrap(db_manager)
auth_manager = AuthManager(db_manager)


def login_form() -> None:
    # capture login credentials in a form and verify them
    with st.form("login_form"):
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        submitted = st.form_submit_button("Login")
    if submitted:
        try:
            user = auth_manager.login_user(email, password)
        except DashboardError as exc:
            st.error(str(exc))
            return
        # one explicit session object replaces the previous one
        st.session_state["session"] = Session.login(user)
        st.success("Login successful.")
        st.switch_page("Dashboard.py")


def registration_form() -> None:
    # collect account details and attempt to register
    with st.form("registration_form"):
        name = st.text_input("Your name", key="register_name")
        email = st.text_input("Email", key="register_email")
        phone = st.text_input("Phone (optional)", key="register_phone")
        password = st.text_input("Password", type="password", key="register_password")
        confirm = st.text_input("Confirm password", type="password", key="register_confirm")
        submitted = st.form_submit_button("Create account")
    if submitted:
        if password != confirm:
            st.error("Passwords do not match.")
            return
        try:
            user = auth_manager.register_user(email, password, name, phone or None)
        except DashboardError as exc:
            st.error(str(exc))
            return
        st.success(f"Account created for {user.email}. You can log in now.")


def demo_reset_section() -> None:
    # only offered when the demo account is seeded
    if not config_manager.load_settings().demo_mode:
        return
    with st.expander("Demo account"):
        st.write(f"Demo login: {DEMO_EMAIL}")
        if st.button("Reset demo password", key="reset_demo_password"):
            try:
                st.success(auth_manager.reset_demo_password())
            except DashboardError as exc:
                st.error(str(exc))


def main() -> None:
    # main landing logic that toggles between login and register
    session = get_session()
    set_sidebar_visibility(session.is_authenticated)
    st.title("SafeGuard Kids")
    st.write("Log in to review what the browser extension has flagged, or create a parent account.")

    # show who is logged in if someone already authenticated
    if session.is_authenticated:
        st.info(f"Logged in as {session.email}.")

    # segmented control lets user flip between login and register modes
    mode = st.segmented_control("Choose an action", ["Login", "Register"], default="Login")
    if mode == "Register":
        registration_form()
        st.caption("Already registered? Switch to Login.")
    else:
        login_form()
        st.caption("Need an account? Switch to Register.")
        demo_reset_section()


if __name__ == "__main__":
    main()
