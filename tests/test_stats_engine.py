import pytest

from models.child import Child
from models.incident import Incident
from services.errors import ComputationError
from services.stats_engine import calculate_trend, compute_child_stats, compute_stats

from conftest import DAY, HOUR, NOW


def make_record(**kwargs):
    defaults = dict(
        severity="LOW",
        threatLevel=2,
        category="other",
        platform="discord",
        timestamp=NOW,
        viewed=False,
        acknowledged=False,
    )
    defaults.update(kwargs)
    return defaults


def week_records(last_week: int, previous_week: int):
    records = [make_record(timestamp=NOW - DAY) for _ in range(last_week)]
    records += [make_record(timestamp=NOW - 10 * DAY) for _ in range(previous_week)]
    return records


def test_empty_input_returns_zeroed_summary():
    assert compute_stats([], now=NOW).as_dict() == {
        "total": 0,
        "critical": 0,
        "high": 0,
        "medium": 0,
        "low": 0,
        "unviewed": 0,
        "unacknowledged": 0,
        "platforms": {},
        "categories": {},
        "recentTrend": "stable",
    }


def test_counts_and_groupings():
    records = [
        make_record(severity="CRITICAL", platform="instagram", category="grooming"),
        make_record(severity="HIGH", platform="instagram", category="grooming", viewed=True),
        make_record(severity="MEDIUM", platform="whatsapp", category="sexual_content", acknowledged=True),
        make_record(severity="LOW", platform="discord", viewed=True, acknowledged=True),
    ]
    stats = compute_stats(records, now=NOW)
    assert (stats.total, stats.critical, stats.high, stats.medium, stats.low) == (4, 1, 1, 1, 1)
    assert stats.unviewed == 2
    assert stats.unacknowledged == 2
    assert stats.platforms == {"instagram": 2, "whatsapp": 1, "discord": 1}
    assert stats.categories == {"grooming": 2, "sexual_content": 1, "other": 1}


def test_unrecognised_severity_counts_only_toward_total():
    records = [make_record(severity="critical"), make_record(severity="SEVERE"), make_record(severity="HIGH")]
    stats = compute_stats(records, now=NOW)
    assert stats.total == 3
    assert stats.critical + stats.high + stats.medium + stats.low == 1


def test_date_range_filter_is_inclusive_and_applies_to_everything():
    records = [
        make_record(timestamp=100, platform="a"),
        make_record(timestamp=200, platform="b"),
        make_record(timestamp=300, platform="c"),
    ]
    stats = compute_stats(records, now=NOW, start_date=150, end_date=250)
    assert stats.total == 1
    assert stats.platforms == {"b": 1}
    assert stats.unviewed == 1

    inclusive = compute_stats(records, now=NOW, start_date=200, end_date=300)
    assert inclusive.total == 2


def test_zero_start_date_is_still_applied():
    records = [make_record(timestamp=-5), make_record(timestamp=5)]
    assert compute_stats(records, now=NOW, start_date=0).total == 1


def test_child_filter():
    records = [make_record(childId=1), make_record(childId=2), make_record(childId=1)]
    assert compute_stats(records, now=NOW, child_id=1).total == 2


@pytest.mark.parametrize(
    "last_week, previous_week, expected",
    [
        (11, 10, "stable"),
        (12, 10, "increasing"),
        (8, 10, "decreasing"),
        (9, 10, "stable"),
        (5, 0, "stable"),
        (0, 0, "stable"),
    ],
)
def test_trend_classification(last_week, previous_week, expected):
    assert calculate_trend(week_records(last_week, previous_week), now=NOW) == expected
    assert compute_stats(week_records(last_week, previous_week), now=NOW).recent_trend == expected


def test_trend_window_boundaries():
    seven_days = 7 * DAY
    records = [
        make_record(timestamp=NOW - seven_days),  # start of last week, inclusive
        make_record(timestamp=NOW - seven_days - 1),  # previous week
        make_record(timestamp=NOW - 2 * seven_days),  # start of previous week, inclusive
        make_record(timestamp=NOW + 1),  # future, ignored
        make_record(timestamp=NOW - 2 * seven_days - 1),  # too old, ignored
    ]
    # one in last week against two the week before is a 50% drop
    assert calculate_trend(records, now=NOW) == "decreasing"


def test_malformed_records_fail_closed():
    with pytest.raises(ComputationError):
        compute_stats([make_record(), make_record(timestamp="yesterday")], now=NOW)
    with pytest.raises(ComputationError):
        compute_stats([make_record(threatLevel="high")], now=NOW)
    with pytest.raises(ComputationError):
        compute_stats([make_record(timestamp=True)], now=NOW)


@pytest.mark.parametrize("timestamp", [float("nan"), float("inf"), 2 ** 63])
def test_unusable_timestamps_fail_closed(timestamp):
    with pytest.raises(ComputationError):
        compute_stats([make_record(), make_record(timestamp=timestamp)], now=NOW)


def test_accepts_incident_objects():
    records = [Incident(**make_record(severity="CRITICAL")), make_record()]
    stats = compute_stats(records, now=NOW)
    assert stats.critical == 1
    assert stats.total == 2


def test_child_rollup():
    child = Child(
        id=3,
        name="Sam",
        age=11,
        monitoring_mode="both",
        platforms=["instagram", "discord", "tiktok"],
        last_sync_at=NOW - 50 * HOUR - 5,
    )
    records = [
        make_record(severity="CRITICAL", platform="instagram", timestamp=NOW - HOUR),
        make_record(severity="HIGH", platform="instagram", timestamp=NOW - 30 * HOUR),
        make_record(severity="LOW", platform="whatsapp", timestamp=NOW - 24 * HOUR),
    ]
    stats = compute_child_stats(child, records, now=NOW)
    assert stats.last_sync_hours == 50
    assert stats.total == 3
    assert stats.last24h == 2
    assert (stats.critical, stats.high) == (1, 1)
    assert stats.platform_counts == [
        {"name": "instagram", "incidents": 2},
        {"name": "discord", "incidents": 0},
        {"name": "tiktok", "incidents": 0},
    ]
    assert stats.as_dict()["child"]["lastSyncHours"] == 50


def test_child_rollup_empty():
    child = Child(id=1, name="Ana", platforms=[], last_sync_at=NOW)
    stats = compute_child_stats(child, [], now=NOW)
    assert (stats.total, stats.last24h, stats.last_sync_hours) == (0, 0, 0)
    assert stats.platform_counts == []
