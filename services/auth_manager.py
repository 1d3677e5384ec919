# account manager for parent registration, login and password changes

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Optional

from models.user import DEFAULT_NOTIFICATION_SETTINGS, User, normalise_settings
from services import config_manager
from services.credentials import (
    register_credential,
    rotate_credential,
    verify_password,
)
from services.database_manager import DatabaseManager
from services.errors import AuthenticationError, NotFoundError, StorageError, ValidationError
from services.stats_engine import now_ms

logger = logging.getLogger(__name__)

DEMO_EMAIL = "parent@test.com"
DEMO_PASSWORD = "password123"
INVALID_LOGIN = "Invalid email or password"
USER_COLUMNS = (
    "id, email, name, phone, api_key, email_enabled, sms_enabled, "
    "email_threshold, sms_threshold, daily_digest"
)


def generate_api_key() -> str:
    # opaque key the browser extension sends as a bearer token
    return f"sk-{secrets.token_hex(13)}"


class AuthManager:
    # registration, login and credential rotation for parent accounts

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        allow_legacy_salt: Optional[bool] = None,
    ) -> None:
        # keep a shared database helper ready
        self.db_manager = db_manager or DatabaseManager()
        if allow_legacy_salt is None:
            allow_legacy_salt = config_manager.load_settings().allow_legacy_salt
        self.allow_legacy_salt = allow_legacy_salt

    def _credential_row(self, where: str, value: Any) -> Optional[dict]:
        return self.db_manager.fetch_one(
            f"SELECT id, email, password_hash, password_salt FROM users WHERE {where} = ?",
            (value,),
        )

    def _check_password(self, row: dict, password: str) -> bool:
        # rows created before salts existed verify against an empty salt
        salt = row.get("password_salt")
        if not salt and not self.allow_legacy_salt:
            raise AuthenticationError("This account needs a password reset before it can log in.")
        return verify_password(password, row["password_hash"], salt)

    def register_user(
        self,
        email: str,
        password: str,
        name: str,
        phone: Optional[str] = None,
    ) -> User:
        # create a new parent account with default notification settings
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email or not name:
            raise ValidationError("Email and name are required.")
        if self.get_user_by_email(email):
            raise ValidationError("User with this email already exists")

        credential = register_credential(password)
        api_key = generate_api_key()
        settings = DEFAULT_NOTIFICATION_SETTINGS
        user_id = self.db_manager.execute(
            """
            INSERT INTO users (
                email, password_hash, password_salt, name, phone, api_key,
                email_verified, email_enabled, sms_enabled, email_threshold,
                sms_threshold, daily_digest, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?, ?)
            """,
            (
                email,
                credential.password_hash,
                credential.password_salt,
                name,
                phone,
                api_key,
                int(settings["email_enabled"]),
                int(settings["sms_enabled"]),
                settings["email_threshold"],
                settings["sms_threshold"],
                int(settings["daily_digest"]),
                now_ms(),
            ),
        )
        if user_id is None:
            raise StorageError("Unable to create the account.")
        self.db_manager.log_activity(user_id, "register", f"User registered: {email}")
        logger.info("Registered parent account %s", user_id)
        return self.get_user(user_id)

    def login_user(self, email: str, password: str) -> User:
        # same message for unknown email and wrong password
        email = (email or "").strip().lower()
        row = self._credential_row("email", email) if email else None
        if not row or not password or not self._check_password(row, password):
            raise AuthenticationError(INVALID_LOGIN)
        self.db_manager.log_activity(row["id"], "login", f"User logged in: {email}")
        logger.info("Parent account %s logged in", row["id"])
        return self.get_user(row["id"])

    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        # rotate salt and hash together after verifying the current password
        row = self._credential_row("id", user_id)
        if not row:
            raise NotFoundError("User not found")
        if not row.get("password_salt") and not self.allow_legacy_salt:
            raise AuthenticationError("Current password is incorrect")
        credential = rotate_credential(
            current_password,
            new_password,
            row["password_hash"],
            row.get("password_salt"),
        )
        self._store_credential(user_id, credential.password_hash, credential.password_salt)
        self.db_manager.log_activity(user_id, "password_changed", "Password was changed")
        logger.info("Password rotated for parent account %s", user_id)
        return True

    def reset_demo_password(self) -> str:
        # demo helper that puts the seeded parent back on the known password
        row = self._credential_row("email", DEMO_EMAIL)
        if not row:
            raise NotFoundError("Demo user not found")
        credential = register_credential(DEMO_PASSWORD)
        self._store_credential(row["id"], credential.password_hash, credential.password_salt)
        self.db_manager.log_activity(row["id"], "password_changed", "Demo password reset")
        return f"Demo password reset to: {DEMO_PASSWORD}"

    def _store_credential(self, user_id: int, password_hash: str, password_salt: str) -> None:
        stored = self.db_manager.update(
            "UPDATE users SET password_hash = ?, password_salt = ? WHERE id = ?",
            (password_hash, password_salt, user_id),
        )
        if not stored:
            raise StorageError("Password could not be updated, the old password still applies.")

    def get_user(self, user_id: int) -> User:
        row = self.db_manager.fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
        if not row:
            raise NotFoundError("User not found")
        return User.from_row(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self.db_manager.fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE email = ?",
            ((email or "").strip().lower(),),
        )
        return User.from_row(row) if row else None

    def get_user_by_api_key(self, api_key: Optional[str]) -> Optional[User]:
        if not api_key:
            return None
        row = self.db_manager.fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE api_key = ?", (api_key,))
        return User.from_row(row) if row else None

    def get_settings_by_api_key(self, api_key: Optional[str]) -> Dict[str, Any]:
        # profile slice the extension syncs down from the cloud
        user = self.get_user_by_api_key(api_key)
        if not user:
            raise AuthenticationError("Invalid API key")
        return {
            "email": user.email,
            "name": user.name,
            "phone": user.phone,
            "notificationSettings": user.notification_settings,
        }

    def update_notification_settings(
        self,
        user_id: int,
        settings: Dict[str, Any],
        phone: Optional[str] = None,
    ) -> bool:
        # store preferences only, nothing is dispatched from here
        current = self.get_user(user_id)
        settings = normalise_settings(settings)
        merged = dict(current.notification_settings)
        merged.update({key: settings[key] for key in DEFAULT_NOTIFICATION_SETTINGS if key in settings})
        for key in ("email_threshold", "sms_threshold"):
            value = merged[key]
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 10:
                raise ValidationError(f"{key} must be a whole number from 0 to 10.")
        stored = self.db_manager.update(
            """
            UPDATE users
               SET email_enabled = ?, sms_enabled = ?, email_threshold = ?,
                   sms_threshold = ?, daily_digest = ?, phone = ?
             WHERE id = ?
            """,
            (
                int(bool(merged["email_enabled"])),
                int(bool(merged["sms_enabled"])),
                merged["email_threshold"],
                merged["sms_threshold"],
                int(bool(merged["daily_digest"])),
                phone if phone is not None else current.phone,
                user_id,
            ),
        )
        if not stored:
            raise StorageError("Notification settings could not be saved.")
        self.db_manager.log_activity(user_id, "settings_changed", "Notification settings updated")
        return True

    def update_settings_by_api_key(
        self,
        api_key: Optional[str],
        settings: Dict[str, Any],
        phone: Optional[str] = None,
    ) -> bool:
        user = self.get_user_by_api_key(api_key)
        if not user:
            raise AuthenticationError("Invalid API key")
        return self.update_notification_settings(user.user_id, settings, phone)
