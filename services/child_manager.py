# child profile management and the per child rollup

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, Dict, List, Optional

from models.child import Child
from models.incident import Incident
from services.database_manager import DatabaseManager
from services.errors import NotFoundError, StorageError, ValidationError
from services.stats_engine import ChildStats, compute_child_stats, now_ms

logger = logging.getLogger(__name__)

MONITORING_MODES = ["active", "passive", "both"]
PLATFORMS = ["facebook", "instagram", "discord", "whatsapp", "twitter", "snapchat", "tiktok"]
UPDATABLE_FIELDS = ("name", "age", "avatar", "monitoring_mode", "monitoring_enabled", "platforms")


class ChildManager:
    # create, read, update and delete monitored children

    def __init__(self, db_manager: Optional[DatabaseManager] = None) -> None:
        self.db_manager = db_manager or DatabaseManager()

    def _validate(self, name: Optional[str], monitoring_mode: Optional[str], platforms: Optional[List[str]]) -> None:
        if name is not None and not name.strip():
            raise ValidationError("Child name is required.")
        if monitoring_mode is not None and monitoring_mode not in MONITORING_MODES:
            raise ValidationError(f"Monitoring mode must be one of {', '.join(MONITORING_MODES)}.")
        if platforms is not None and not all(isinstance(item, str) and item for item in platforms):
            raise ValidationError("Platforms must be a list of names.")

    def _insert(
        self,
        user_id: int,
        name: str,
        age: Optional[int],
        extension_id: str,
        extension_version: str,
        monitoring_mode: str,
        platforms: List[str],
    ) -> int:
        created = now_ms()
        child_id = self.db_manager.execute(
            """
            INSERT INTO children (
                user_id, name, age, extension_id, extension_version, last_sync_at,
                monitoring_mode, monitoring_enabled, platforms, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                user_id,
                name.strip(),
                age,
                extension_id,
                extension_version,
                created,
                monitoring_mode,
                json.dumps(list(platforms)),
                created,
            ),
        )
        if child_id is None:
            raise StorageError("Unable to save the child profile.")
        self.db_manager.log_activity(user_id, "child_added", f"Added child profile: {name.strip()}", child_id)
        logger.info("Added child %s for parent account %s", child_id, user_id)
        return child_id

    def create_child(
        self,
        user_id: int,
        name: str,
        extension_id: str,
        extension_version: str,
        monitoring_mode: str,
        platforms: List[str],
        age: Optional[int] = None,
    ) -> int:
        # register a child together with an installed extension
        self._validate(name, monitoring_mode, platforms)
        if not extension_id:
            raise ValidationError("Extension id is required.")
        if self.get_child_by_extension(extension_id):
            raise ValidationError("This extension is already registered")
        return self._insert(user_id, name, age, extension_id, extension_version, monitoring_mode, platforms)

    def add_child(self, user_id: int, name: str, platforms: List[str], age: Optional[int] = None) -> int:
        # dashboard shortcut, the extension is linked later
        self._validate(name, None, platforms)
        pending_id = f"pending_{now_ms()}_{secrets.token_hex(5)[:9]}"
        return self._insert(user_id, name, age, pending_id, "pending", "active", platforms)

    def get_children(self, user_id: int) -> List[Child]:
        rows = self.db_manager.fetch_all(
            "SELECT * FROM children WHERE user_id = ? ORDER BY created_at, id",
            (user_id,),
        )
        return [Child.from_row(row) for row in rows]

    def get_child(self, child_id: int) -> Child:
        row = self.db_manager.fetch_one("SELECT * FROM children WHERE id = ?", (child_id,))
        if not row:
            raise NotFoundError("Child not found")
        return Child.from_row(row)

    def get_owned_child(self, user_id: int, child_id: int) -> Child:
        # another account's child looks the same as a missing one
        child = self.get_child(child_id)
        if child.data.get("user_id") != user_id:
            raise NotFoundError("Child not found")
        return child

    def get_child_by_extension(self, extension_id: str) -> Optional[Child]:
        row = self.db_manager.fetch_one("SELECT * FROM children WHERE extension_id = ?", (extension_id,))
        return Child.from_row(row) if row else None

    def update_child(self, child_id: int, **fields: Any) -> int:
        # patch only the values that were supplied
        child = self.get_child(child_id)
        updates: Dict[str, Any] = {
            key: value for key, value in fields.items() if key in UPDATABLE_FIELDS and value is not None
        }
        self._validate(updates.get("name"), updates.get("monitoring_mode"), updates.get("platforms"))
        if not updates:
            return child_id
        if "platforms" in updates:
            updates["platforms"] = json.dumps(list(updates["platforms"]))
        if "monitoring_enabled" in updates:
            updates["monitoring_enabled"] = int(bool(updates["monitoring_enabled"]))
        assignments = ", ".join(f"{key} = ?" for key in updates)
        if not self.db_manager.update(
            f"UPDATE children SET {assignments} WHERE id = ?",
            tuple(updates.values()) + (child_id,),
        ):
            raise StorageError("Child profile could not be updated.")
        name = updates.get("name", child.name)
        self.db_manager.log_activity(
            child.data["user_id"], "settings_changed", f"Updated profile for {name}", child_id
        )
        return child_id

    def update_sync(self, extension_id: str, now: Optional[int] = None) -> None:
        # called whenever the extension checks in
        child = self.get_child_by_extension(extension_id)
        if not child:
            raise NotFoundError("Child not found")
        if not self.db_manager.update(
            "UPDATE children SET last_sync_at = ? WHERE id = ?",
            (now if now is not None else now_ms(), child.child_id),
        ):
            raise StorageError("Sync time could not be recorded.")

    def remove_child(self, child_id: int) -> bool:
        # incidents are kept, only the profile goes
        child = self.get_child(child_id)
        if not self.db_manager.update("DELETE FROM children WHERE id = ?", (child_id,)):
            raise StorageError("Child profile could not be removed.")
        self.db_manager.log_activity(
            child.data["user_id"], "child_removed", f"Removed child profile: {child.name}", child_id
        )
        logger.info("Removed child %s", child_id)
        return True

    def get_child_stats(self, child_id: int, now: Optional[int] = None) -> ChildStats:
        child = self.get_child(child_id)
        rows = self.db_manager.fetch_all("SELECT * FROM incidents WHERE child_id = ?", (child_id,))
        return compute_child_stats(child, [Incident.from_row(row) for row in rows], now)
