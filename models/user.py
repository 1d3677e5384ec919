# parent account domain model

from __future__ import annotations

from typing import Any, Dict, Optional

DEFAULT_NOTIFICATION_SETTINGS = {
    "email_enabled": True,
    "sms_enabled": False,
    "email_threshold": 7,
    "sms_threshold": 9,
    "daily_digest": True,
}
# the extension sends these keys in camelCase
SETTINGS_ALIASES = {
    "emailEnabled": "email_enabled",
    "smsEnabled": "sms_enabled",
    "emailThreshold": "email_threshold",
    "smsThreshold": "sms_threshold",
    "dailyDigest": "daily_digest",
}


def normalise_settings(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {SETTINGS_ALIASES.get(key, key): value for key, value in (raw or {}).items()}


class User:
    # represents an authenticated parent account without credential fields

    def __init__(
        self,
        user_id: int,
        email: str,
        name: str,
        api_key: str,
        phone: Optional[str] = None,
        notification_settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.user_id = user_id
        self.email = email
        self.name = name
        self.api_key = api_key
        self.phone = phone
        self.notification_settings = dict(notification_settings or DEFAULT_NOTIFICATION_SETTINGS)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "User":
        # build a user from a users table row
        settings = {key: row[key] for key in DEFAULT_NOTIFICATION_SETTINGS if key in row}
        for key in ("email_enabled", "sms_enabled", "daily_digest"):
            if key in settings:
                settings[key] = bool(settings[key])
        return cls(
            user_id=row["id"],
            email=row["email"],
            name=row["name"],
            api_key=row["api_key"],
            phone=row.get("phone"),
            notification_settings=settings or None,
        )

    def __str__(self) -> str:  # pragma: no cover - simple data method
        return f"User(id={self.user_id}, email={self.email})"
