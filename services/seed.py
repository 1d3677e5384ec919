# demo account, child and incidents for local runs

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from services.auth_manager import DEMO_EMAIL, DEMO_PASSWORD, AuthManager
from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.errors import StorageError
from services.incident_manager import IncidentManager
from services.stats_engine import HOUR_MS, now_ms

logger = logging.getLogger(__name__)

DEMO_CSV = Path(__file__).resolve().parent.parent / "demo_data" / "incidents.csv"
DEMO_API_KEY = "test-api-key-12345"
DEMO_EXTENSION_ID = "test-extension-id-12345"


def seed_demo_data(
    db_manager: Optional[DatabaseManager] = None,
    csv_path: Path = DEMO_CSV,
    now: Optional[int] = None,
) -> Dict[str, object]:
    # leave existing data alone, only an empty database is seeded
    db_manager = db_manager or DatabaseManager()
    existing = db_manager.fetch_one("SELECT id FROM users LIMIT 1")
    if existing:
        return {"alreadySeeded": True, "userId": existing["id"]}

    now = now if now is not None else now_ms()
    auth_manager = AuthManager(db_manager)
    user = auth_manager.register_user(DEMO_EMAIL, DEMO_PASSWORD, "Test Parent", "+1234567890")
    # fixed key so the extension can be pointed at a fresh demo database
    if not db_manager.update(
        "UPDATE users SET api_key = ?, email_verified = 1 WHERE id = ?", (DEMO_API_KEY, user.user_id)
    ):
        raise StorageError("Demo API key could not be set.")

    child_id = ChildManager(db_manager).create_child(
        user.user_id,
        "Test Child",
        DEMO_EXTENSION_ID,
        "1.0.0",
        "both",
        ["facebook", "instagram", "discord", "whatsapp"],
        age=12,
    )

    incident_manager = IncidentManager(db_manager)
    df = pd.read_csv(csv_path)
    count = 0
    for record in df.where(pd.notnull(df), None).to_dict(orient="records"):
        threat_level = int(record["threat_level"])
        timestamp = now - int(record["hours_ago"]) * HOUR_MS
        incident_manager.create_incident(
            user.user_id,
            {
                "timestamp": timestamp,
                "platform": record["platform"],
                "incident_type": "message",
                "threat_level": threat_level,
                "severity": record["severity"],
                "category": record["category"],
                "message_text": record.get("message_text"),
                "conversation_context": [
                    {"text": record.get("message_text") or "", "type": "received", "timestamp": timestamp}
                ],
                "ai_analysis": {
                    "agent4": {
                        "finalLevel": threat_level,
                        "severity": record["severity"],
                        "primaryThreat": record["category"],
                        "parentGuidance": f"Monitor this {record['severity'].lower()} threat closely.",
                        "childWarning": "This conversation may not be safe. Please talk to a parent."
                        if threat_level >= 7
                        else "",
                    }
                },
                "action_taken": "warn_child" if threat_level >= 7 else "log_only",
                "child_warning_shown": threat_level >= 7,
                "viewed": bool(record.get("viewed")),
                "acknowledged": bool(record.get("acknowledged")),
            },
            child_id,
        )
        count += 1

    logger.info("Seeded demo data with %s incidents", count)
    return {"alreadySeeded": False, "userId": user.user_id, "childId": child_id, "incidentCount": count}
