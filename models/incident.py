# incident domain model shared by storage, ingestion and statistics

from __future__ import annotations

import json
import math
from typing import Any, Dict, Optional

from services.errors import ComputationError, ValidationError

SEVERITIES = ["LOW", "MEDIUM", "HIGH", "CRITICAL"]
# agents the browser extension may report, anything else is dropped
AI_AGENTS = ("agent1", "agent2", "agent3", "agent4", "tensorflow")

# payloads arrive camelCase from the extension, rows come back snake_case
FIELD_ALIASES = {
    "childId": "child_id",
    "userId": "user_id",
    "incidentType": "incident_type",
    "threatLevel": "threat_level",
    "messageText": "message_text",
    "imageDescription": "image_description",
    "conversationContext": "conversation_context",
    "aiAnalysis": "ai_analysis",
    "actionTaken": "action_taken",
    "childWarningShown": "child_warning_shown",
    "viewedAt": "viewed_at",
    "acknowledgedAt": "acknowledged_at",
    "emailSent": "email_sent",
    "smsSent": "sms_sent",
}
JSON_FIELDS = ("conversation_context", "ai_analysis")
BOOL_FIELDS = (
    "viewed",
    "acknowledged",
    "exported",
    "child_warning_shown",
    "email_sent",
    "sms_sent",
)


TIMESTAMP_LIMIT = 2 ** 63


def is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid timestamp or level, nan and inf are not numbers here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def is_storable_timestamp(value: Any) -> bool:
    # must fit the signed 64 bit integer column
    return is_number(value) and -TIMESTAMP_LIMIT <= value < TIMESTAMP_LIMIT


def parse_ai_analysis(raw: Any) -> Dict[str, Dict[str, Any]]:
    # keep one optional object per known agent
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("aiAnalysis must be an object.")
    analysis: Dict[str, Dict[str, Any]] = {}
    for agent in AI_AGENTS:
        value = raw.get(agent)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise ValidationError(f"aiAnalysis.{agent} must be an object.")
        analysis[agent] = value
    return analysis


class Incident:
    # represents one flagged interaction reported by the extension

    def __init__(self, **kwargs):
        # normalise keys so camelCase payloads and sqlite rows look the same
        self.data: Dict[str, Any] = {
            FIELD_ALIASES.get(key, key): value for key, value in kwargs.items()
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Incident":
        # decode json columns and 0/1 flags from a sqlite row
        data = dict(row)
        for field in JSON_FIELDS:
            value = data.get(field)
            if isinstance(value, str):
                data[field] = json.loads(value) if value else None
        for field in BOOL_FIELDS:
            if field in data and data[field] is not None:
                data[field] = bool(data[field])
        return cls(**data)

    @property
    def incident_id(self) -> Optional[int]:
        return self.data.get("id")

    @property
    def child_id(self) -> Optional[int]:
        return self.data.get("child_id")

    @property
    def severity(self) -> Any:
        return self.data.get("severity")

    @property
    def platform(self) -> str:
        value = self.data.get("platform")
        return "unknown" if value is None else str(value)

    @property
    def category(self) -> str:
        value = self.data.get("category")
        return "unknown" if value is None else str(value)

    @property
    def viewed(self) -> bool:
        return bool(self.data.get("viewed", False))

    @property
    def acknowledged(self) -> bool:
        return bool(self.data.get("acknowledged", False))

    def get_timestamp(self) -> float:
        # milliseconds since epoch, rejects anything that is not a plain number
        value = self.data.get("timestamp")
        if not is_storable_timestamp(value):
            raise ComputationError(
                f"Incident {self.incident_id or '?'} has an invalid timestamp: {value!r}"
            )
        return value

    def get_threat_level(self) -> Optional[int]:
        # threat level is optional for statistics but must be whole when present
        value = self.data.get("threat_level")
        if value is None:
            return None
        if not is_number(value) or (isinstance(value, float) and not value.is_integer()):
            raise ComputationError(
                f"Incident {self.incident_id or '?'} has an invalid threat level: {value!r}"
            )
        return int(value)

    def get_parent_guidance(self) -> str:
        # agent4 carries the text shown to parents
        agent4 = (self.data.get("ai_analysis") or {}).get("agent4") or {}
        return agent4.get("parentGuidance", "")

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.data)

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Incident(id={self.incident_id}, severity={self.severity})"
