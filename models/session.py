# explicit login session passed through the streamlit pages

from __future__ import annotations

from typing import Optional

from models.user import User


class Session:
    # holds the reference to the logged in parent, never the password

    def __init__(self) -> None:
        self.user_id: Optional[int] = None
        self.email = ""
        self.name = ""
        self.api_key = ""
        self.selected_child_id: Optional[int] = None

    @classmethod
    def login(cls, user: User) -> "Session":
        # start a new session for an authenticated user
        session = cls()
        session.user_id = user.user_id
        session.email = user.email
        session.name = user.name
        session.api_key = user.api_key
        return session

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def select_child(self, child_id: Optional[int]) -> None:
        # None means every child on the account
        self.selected_child_id = child_id

    def logout(self) -> None:
        # forget everything so the object can not be reused by accident
        self.user_id = None
        self.email = ""
        self.name = ""
        self.api_key = ""
        self.selected_child_id = None

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Session(user_id={self.user_id}, email={self.email})"
