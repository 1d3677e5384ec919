# monitored child domain model

from __future__ import annotations

import json
from typing import Any, Dict, List


class Child:
    # represents one monitored child and the extension installed for them

    def __init__(self, **kwargs):
        self.data = kwargs

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Child":
        # platforms are stored as json text
        data = dict(row)
        platforms = data.get("platforms")
        if isinstance(platforms, str):
            data["platforms"] = json.loads(platforms) if platforms else []
        if "monitoring_enabled" in data:
            data["monitoring_enabled"] = bool(data["monitoring_enabled"])
        return cls(**data)

    @property
    def child_id(self) -> int:
        return self.data.get("id")

    @property
    def name(self) -> str:
        return self.data.get("name", "")

    @property
    def platforms(self) -> List[str]:
        return list(self.data.get("platforms") or [])

    @property
    def last_sync_at(self) -> int:
        return int(self.data.get("last_sync_at") or 0)

    def is_pending(self) -> bool:
        # profiles added from the dashboard wait for an extension install
        return str(self.data.get("extension_id", "")).startswith("pending_")

    def __str__(self) -> str:  # pragma: no cover - debug helper
        return f"Child(id={self.child_id}, name={self.name})"
