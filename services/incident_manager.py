# incident storage, triage flags and statistics queries

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from models.incident import Incident
from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.errors import NotFoundError, StorageError
from services.stats_engine import StatsSummary, compute_stats, now_ms

logger = logging.getLogger(__name__)


class IncidentManager:
    # wraps every read and write against the incidents table

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.db_manager = db_manager or DatabaseManager()

    def create_incident(self, user_id: int, payload: Dict[str, Any], child_id: Optional[int] = None) -> int:
        # payload has already passed validate_incident_payload
        incident_id = self.db_manager.execute(
            """
            INSERT INTO incidents (
                child_id, user_id, timestamp, platform, incident_type, threat_level,
                severity, category, message_text, image_description,
                conversation_context, ai_analysis, action_taken, child_warning_shown,
                viewed, acknowledged, exported, email_sent, sms_sent
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 0, 0)
            """,
            (
                child_id,
                user_id,
                payload["timestamp"],
                payload["platform"],
                payload.get("incident_type", "message"),
                payload["threat_level"],
                payload["severity"],
                payload["category"],
                payload.get("message_text"),
                payload.get("image_description"),
                json.dumps(payload.get("conversation_context")) if payload.get("conversation_context") is not None else None,
                json.dumps(payload.get("ai_analysis") or {}),
                payload.get("action_taken", "log_only"),
                int(bool(payload.get("child_warning_shown"))),
                int(bool(payload.get("viewed"))),
                int(bool(payload.get("acknowledged"))),
            ),
        )
        if incident_id is None:
            raise StorageError("Incident could not be stored.")
        logger.info(
            "Stored incident %s severity=%s category=%s platform=%s",
            incident_id,
            payload["severity"],
            payload["category"],
            payload["platform"],
        )
        return incident_id

    def _fetch(self, where: str, params: tuple, limit: Optional[int] = None) -> List[Incident]:
        sql = f"SELECT * FROM incidents WHERE {where} ORDER BY timestamp DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params = params + (limit,)
        return [Incident.from_row(row) for row in self.db_manager.fetch_all(sql, params)]

    def get_recent(
        self,
        user_id: Optional[int] = None,
        child_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[Incident]:
        # child wins over user, no filter returns every account
        if child_id is not None:
            return self._fetch("child_id = ?", (child_id,), limit)
        if user_id is not None:
            return self._fetch("user_id = ?", (user_id,), limit)
        return self._fetch("1 = 1", (), limit)

    def get_by_child(self, child_id: int, limit: int = 100) -> List[Incident]:
        return self._fetch("child_id = ?", (child_id,), limit)

    def get_unviewed(self, user_id: int) -> List[Incident]:
        return self._fetch("user_id = ? AND viewed = 0", (user_id,))

    def get_by_severity(self, user_id: int, severity: str, limit: int = 50) -> List[Incident]:
        return self._fetch("user_id = ? AND severity = ?", (user_id, severity), limit)

    def get_all_for_user(self, user_id: int) -> List[Incident]:
        return self._fetch("user_id = ?", (user_id,))

    def get_incident(self, incident_id: int) -> Incident:
        row = self.db_manager.fetch_one("SELECT * FROM incidents WHERE id = ?", (incident_id,))
        if not row:
            raise NotFoundError("Incident not found")
        return Incident.from_row(row)

    def mark_viewed(self, incident_id: int, now: Optional[int] = None) -> Incident:
        # only the first call flips the flag and stamps viewed_at
        incident = self.get_incident(incident_id)
        if not incident.viewed and not self.db_manager.update(
            "UPDATE incidents SET viewed = 1, viewed_at = ? WHERE id = ? AND viewed = 0",
            (now if now is not None else now_ms(), incident_id),
        ):
            raise StorageError("Incident could not be marked as viewed.")
        return self.get_incident(incident_id)

    def acknowledge(self, incident_id: int, notes: Optional[str] = None, now: Optional[int] = None) -> Incident:
        # flag is set once, notes can be updated on later calls
        incident = self.get_incident(incident_id)
        if not incident.acknowledged and not self.db_manager.update(
            "UPDATE incidents SET acknowledged = 1, acknowledged_at = ? WHERE id = ? AND acknowledged = 0",
            (now if now is not None else now_ms(), incident_id),
        ):
            raise StorageError("Incident could not be acknowledged.")
        if notes is not None and not self.db_manager.update(
            "UPDATE incidents SET notes = ? WHERE id = ?", (notes, incident_id)
        ):
            raise StorageError("Notes could not be saved.")
        return self.get_incident(incident_id)

    def mark_exported(self, incident_ids: List[int]) -> bool:
        return self.db_manager.execute_many(
            "UPDATE incidents SET exported = 1 WHERE id = ?",
            [(incident_id,) for incident_id in incident_ids],
        )

    def get_stats(
        self,
        user_id: int,
        child_id: Optional[int] = None,
        start_date: Optional[float] = None,
        end_date: Optional[float] = None,
        now: Optional[float] = None,
    ) -> StatsSummary:
        # scoping to the account happens here, the engine does the rest
        if child_id is not None:
            ChildManager(self.db_manager).get_owned_child(user_id, child_id)
        return compute_stats(
            self.get_all_for_user(user_id),
            now=now,
            child_id=child_id,
            start_date=start_date,
            end_date=end_date,
        )
