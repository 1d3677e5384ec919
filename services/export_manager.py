# incident report exports for parents and law enforcement requests

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pandas as pd

from models.incident import Incident
from services.database_manager import DatabaseManager
from services.child_manager import ChildManager
from services.errors import NotFoundError, StorageError, ValidationError
from services.incident_manager import IncidentManager
from services.stats_engine import DAY_MS, filter_incidents, now_ms

logger = logging.getLogger(__name__)

EXPORT_TYPES = ["pdf", "csv", "json"]
PURPOSES = ["personal_record", "law_enforcement", "backup"]
EXPORT_TTL_MS = 30 * DAY_MS
CSV_COLUMNS = ["Timestamp", "Platform", "Category", "Severity", "Threat Level", "Message"]


def _iso(timestamp_ms: float) -> str:
    return (
        datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def render_csv(incidents: List[Incident]) -> str:
    # same columns as the downloadable spreadsheet on the reports page
    rows = [
        {
            "Timestamp": _iso(incident.get_timestamp()),
            "Platform": incident.platform,
            "Category": incident.category,
            "Severity": incident.severity,
            "Threat Level": incident.data.get("threat_level"),
            "Message": incident.data.get("message_text") or "",
        }
        for incident in incidents
    ]
    return pd.DataFrame(rows, columns=CSV_COLUMNS).to_csv(index=False)


def render_json(incidents: List[Incident]) -> str:
    return json.dumps([incident.to_dict() for incident in incidents], indent=2, default=str)


def render_text_report(incidents: List[Incident], purpose: str, generated_at: Optional[int] = None) -> str:
    # plain text report used when a pdf is requested
    generated = _iso(generated_at if generated_at is not None else now_ms())
    lines = [
        "=" * 60,
        "SAFEGUARD KIDS - INCIDENT REPORT",
        "=" * 60,
        "",
        f"Generated: {generated}",
        f"Total Incidents: {len(incidents)}",
        f"Purpose: {purpose.replace('_', ' ').upper()}",
        "",
        "-" * 60,
        "",
    ]
    for index, incident in enumerate(incidents, start=1):
        lines.append(f"INCIDENT #{index}")
        lines.append(f"Date: {_iso(incident.get_timestamp())}")
        lines.append(f"Platform: {incident.platform}")
        lines.append(f"Category: {incident.category}")
        lines.append(f"Severity: {incident.severity} (Level {incident.data.get('threat_level')})")
        if incident.data.get("message_text"):
            lines.append(f"Content: {incident.data['message_text']}")
        guidance = incident.get_parent_guidance()
        if guidance:
            lines.append(f"Guidance: {guidance}")
        lines.extend(["", "-" * 60, ""])
    lines.extend(["", "END OF REPORT"])
    return "\n".join(lines)


class ExportManager:
    # records which incidents went into each export

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.db_manager = db_manager or DatabaseManager()
        self.incident_manager = IncidentManager(self.db_manager)

    def select_incidents(
        self,
        user_id: int,
        start_date: int,
        end_date: int,
        child_id: Optional[int] = None,
    ) -> List[Incident]:
        if child_id is not None:
            ChildManager(self.db_manager).get_owned_child(user_id, child_id)
        return filter_incidents(
            self.incident_manager.get_all_for_user(user_id),
            child_id=child_id,
            start_date=start_date,
            end_date=end_date,
        )

    def create_export(
        self,
        user_id: int,
        export_type: str,
        purpose: str,
        start_date: int,
        end_date: int,
        child_id: Optional[int] = None,
        now: Optional[int] = None,
    ) -> Dict[str, int]:
        if export_type not in EXPORT_TYPES:
            raise ValidationError(f"Export type must be one of {', '.join(EXPORT_TYPES)}.")
        if purpose not in PURPOSES:
            raise ValidationError(f"Purpose must be one of {', '.join(PURPOSES)}.")
        if start_date > end_date:
            raise ValidationError("Start date must be before the end date.")

        incidents = self.select_incidents(user_id, start_date, end_date, child_id)
        incident_ids = [incident.incident_id for incident in incidents]
        created = now if now is not None else now_ms()
        export_id = self.db_manager.execute(
            """
            INSERT INTO exports (
                user_id, child_id, export_type, purpose, start_date, end_date,
                incident_ids, incident_count, file_size, created_at, expires_at, download_count
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, 0)
            """,
            (
                user_id,
                child_id,
                export_type,
                purpose,
                start_date,
                end_date,
                json.dumps(incident_ids),
                len(incident_ids),
                created,
                created + EXPORT_TTL_MS,
            ),
        )
        if export_id is None:
            raise StorageError("Export could not be recorded.")
        if not self.incident_manager.mark_exported(incident_ids):
            raise StorageError("Incidents could not be flagged as exported.")
        logger.info("Created %s export %s with %s incidents", export_type, export_id, len(incident_ids))
        return {"exportId": export_id, "incidentCount": len(incident_ids)}

    def get_history(self, user_id: int, limit: int = 20) -> List[dict]:
        rows = self.db_manager.fetch_all(
            "SELECT * FROM exports WHERE user_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (user_id, limit),
        )
        for row in rows:
            row["incident_ids"] = json.loads(row["incident_ids"] or "[]")
        return rows

    def increment_download(self, export_id: int) -> int:
        row = self.db_manager.fetch_one("SELECT download_count FROM exports WHERE id = ?", (export_id,))
        if not row:
            raise NotFoundError("Export not found")
        count = row["download_count"] + 1
        if not self.db_manager.update("UPDATE exports SET download_count = ? WHERE id = ?", (count, export_id)):
            raise StorageError("Download could not be recorded.")
        return count

    def render(self, incidents: List[Incident], export_type: str, purpose: str) -> str:
        # file body for the download button
        if export_type == "csv":
            return render_csv(incidents)
        if export_type == "json":
            return render_json(incidents)
        return render_text_report(incidents, purpose)
