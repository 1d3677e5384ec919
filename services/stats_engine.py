# incident statistics and week over week trend

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from models.child import Child
from models.incident import Incident

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS
WEEK_MS = 7 * DAY_MS
# percent change that must be exceeded before a trend is reported
TREND_THRESHOLD = 10

RecordLike = Union[Incident, Mapping[str, Any]]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class StatsSummary:
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    unviewed: int = 0
    unacknowledged: int = 0
    platforms: Dict[str, int] = field(default_factory=dict)
    categories: Dict[str, int] = field(default_factory=dict)
    recent_trend: str = "stable"

    def as_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "unviewed": self.unviewed,
            "unacknowledged": self.unacknowledged,
            "platforms": dict(self.platforms),
            "categories": dict(self.categories),
            "recentTrend": self.recent_trend,
        }


@dataclass
class ChildStats:
    name: str
    age: Optional[int]
    monitoring_mode: str
    platforms: List[str]
    last_sync_hours: int
    total: int = 0
    last24h: int = 0
    critical: int = 0
    high: int = 0
    platform_counts: List[Dict[str, object]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "child": {
                "name": self.name,
                "age": self.age,
                "monitoringMode": self.monitoring_mode,
                "platforms": list(self.platforms),
                "lastSyncHours": self.last_sync_hours,
            },
            "incidents": {
                "total": self.total,
                "last24h": self.last24h,
                "critical": self.critical,
                "high": self.high,
            },
            "platforms": [dict(entry) for entry in self.platform_counts],
        }


def _as_incident(record: RecordLike) -> Incident:
    if isinstance(record, Incident):
        return record
    return Incident(**dict(record))


def _prepare(records: Iterable[RecordLike]) -> List[Incident]:
    # validate the whole input up front so a bad record rejects the computation
    incidents = [_as_incident(record) for record in records]
    for incident in incidents:
        incident.get_timestamp()
        incident.get_threat_level()
    return incidents


def filter_incidents(
    incidents: Iterable[Incident],
    child_id: Optional[int] = None,
    start_date: Optional[float] = None,
    end_date: Optional[float] = None,
) -> List[Incident]:
    # inclusive bounds, a bound of zero still counts as present
    working = []
    for incident in incidents:
        if child_id is not None and incident.child_id != child_id:
            continue
        timestamp = incident.get_timestamp()
        if start_date is not None and timestamp < start_date:
            continue
        if end_date is not None and timestamp > end_date:
            continue
        working.append(incident)
    return working


def calculate_trend(records: Iterable[RecordLike], now: Optional[float] = None) -> str:
    # compare the last 7 days with the 7 days before them
    now = now_ms() if now is None else now
    seven_days_ago = now - WEEK_MS
    fourteen_days_ago = now - 2 * WEEK_MS
    last_week = 0
    previous_week = 0
    for incident in _prepare(records):
        timestamp = incident.get_timestamp()
        if seven_days_ago <= timestamp <= now:
            last_week += 1
        elif fourteen_days_ago <= timestamp < seven_days_ago:
            previous_week += 1

    if previous_week == 0:
        return "stable"
    change = (last_week - previous_week) / previous_week * 100
    if change > TREND_THRESHOLD:
        return "increasing"
    if change < -TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def compute_stats(
    records: Iterable[RecordLike],
    now: Optional[float] = None,
    child_id: Optional[int] = None,
    start_date: Optional[float] = None,
    end_date: Optional[float] = None,
) -> StatsSummary:
    now = now_ms() if now is None else now
    working = filter_incidents(_prepare(records), child_id, start_date, end_date)

    summary = StatsSummary(total=len(working))
    platforms: Dict[str, int] = defaultdict(int)
    categories: Dict[str, int] = defaultdict(int)
    for incident in working:
        # exact, case sensitive match on the closed label set
        if incident.severity == "CRITICAL":
            summary.critical += 1
        elif incident.severity == "HIGH":
            summary.high += 1
        elif incident.severity == "MEDIUM":
            summary.medium += 1
        elif incident.severity == "LOW":
            summary.low += 1
        if not incident.viewed:
            summary.unviewed += 1
        if not incident.acknowledged:
            summary.unacknowledged += 1
        platforms[incident.platform] += 1
        categories[incident.category] += 1

    summary.platforms = dict(platforms)
    summary.categories = dict(categories)
    summary.recent_trend = calculate_trend(working, now)
    return summary


def compute_child_stats(
    child: Child,
    records: Iterable[RecordLike],
    now: Optional[float] = None,
) -> ChildStats:
    # narrower rollup for one child's already scoped incidents
    now = now_ms() if now is None else now
    incidents = _prepare(records)
    one_day_ago = now - DAY_MS

    stats = ChildStats(
        name=child.name,
        age=child.data.get("age"),
        monitoring_mode=child.data.get("monitoring_mode", ""),
        platforms=child.platforms,
        last_sync_hours=int((now - child.last_sync_at) // HOUR_MS),
        total=len(incidents),
    )
    for incident in incidents:
        if incident.get_timestamp() >= one_day_ago:
            stats.last24h += 1
        if incident.severity == "CRITICAL":
            stats.critical += 1
        elif incident.severity == "HIGH":
            stats.high += 1
    stats.platform_counts = [
        {
            "name": platform,
            "incidents": sum(1 for incident in incidents if incident.platform == platform),
        }
        for platform in child.platforms
    ]
    return stats
