# validation and storage of incidents posted by the browser extension

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from models.incident import is_number, is_storable_timestamp, parse_ai_analysis
from services.auth_manager import AuthManager
from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.errors import AuthenticationError, NotFoundError, StorageError, ValidationError
from services.incident_manager import IncidentManager

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("platform", "severity", "category")
OPTIONAL_TEXT_FIELDS = {
    "messageText": "message_text",
    "imageDescription": "image_description",
    "incidentType": "incident_type",
    "actionTaken": "action_taken",
    "extensionId": "extension_id",
}


def _parse_context(raw: Any) -> Optional[List[Dict[str, Any]]]:
    # conversation snippets around the flagged message
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("conversationContext must be a list.")
    context = []
    for entry in raw:
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("text"), str)
            or not isinstance(entry.get("type"), str)
            or not is_number(entry.get("timestamp"))
        ):
            raise ValidationError("conversationContext entries need text, type and timestamp.")
        context.append({"text": entry["text"], "type": entry["type"], "timestamp": entry["timestamp"]})
    return context


def validate_incident_payload(payload: Any) -> Dict[str, Any]:
    # return a snake_case record ready for storage or raise ValidationError
    if not isinstance(payload, dict):
        raise ValidationError("Incident payload must be a JSON object.")

    timestamp = payload.get("timestamp")
    if not is_storable_timestamp(timestamp) or timestamp < 0:
        raise ValidationError("Missing or invalid timestamp")
    record: Dict[str, Any] = {"timestamp": int(timestamp)}

    for field in REQUIRED_TEXT_FIELDS:
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Missing {field}")
        record[field] = value.strip()

    threat_level = payload.get("threatLevel")
    if isinstance(threat_level, float) and threat_level.is_integer():
        threat_level = int(threat_level)
    if isinstance(threat_level, bool) or not isinstance(threat_level, int) or not 0 <= threat_level <= 10:
        raise ValidationError("threatLevel must be a whole number from 0 to 10")
    record["threat_level"] = threat_level

    for source, target in OPTIONAL_TEXT_FIELDS.items():
        value = payload.get(source)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{source} must be a string.")
        record[target] = value
    record.setdefault("incident_type", "message")
    record.setdefault("action_taken", "log_only")

    warning = payload.get("childWarningShown", False)
    if not isinstance(warning, bool):
        raise ValidationError("childWarningShown must be true or false.")
    record["child_warning_shown"] = warning

    record["conversation_context"] = _parse_context(payload.get("conversationContext"))
    record["ai_analysis"] = parse_ai_analysis(payload.get("aiAnalysis"))
    return record


class IngestionService:
    # authenticates a submitter by api key and hands the incident to storage

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.db_manager = db_manager or DatabaseManager()
        self.auth_manager = AuthManager(self.db_manager)
        self.child_manager = ChildManager(self.db_manager)
        self.incident_manager = IncidentManager(self.db_manager)

    def authenticate(self, api_key: Optional[str]):
        if not api_key or not api_key.strip():
            raise AuthenticationError("Missing API key")
        user = self.auth_manager.get_user_by_api_key(api_key.strip())
        if not user:
            raise AuthenticationError("Invalid API key")
        return user

    def submit(self, api_key: Optional[str], payload: Any) -> Dict[str, Any]:
        user = self.authenticate(api_key)
        record = validate_incident_payload(payload)

        child_id = None
        extension_id = record.pop("extension_id", None)
        if extension_id:
            child = self.child_manager.get_child_by_extension(extension_id)
            if not child or child.data.get("user_id") != user.user_id:
                raise NotFoundError("Unknown extensionId for this account")
            child_id = child.child_id

        incident_id = self.incident_manager.create_incident(user.user_id, record, child_id)
        if extension_id:
            # only a stored incident counts as a check in
            try:
                self.child_manager.update_sync(extension_id)
            except StorageError as exc:
                logger.warning("Incident %s stored but sync time not updated: %s", incident_id, exc)
        logger.info("Accepted incident %s for parent account %s", incident_id, user.user_id)
        return {
            "success": True,
            "incidentId": incident_id,
            "message": "Incident received successfully",
        }
