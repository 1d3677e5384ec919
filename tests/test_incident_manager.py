import pytest

from services.errors import NotFoundError, StorageError

from conftest import DAY, HOUR, NOW, make_payload


def test_create_and_read_back(incidents, parent):
    incident_id = incidents.create_incident(
        parent.user_id,
        make_payload(
            message_text="want to meet?",
            ai_analysis={"agent4": {"parentGuidance": "Talk to your child."}},
        ),
    )
    incident = incidents.get_incident(incident_id)
    assert incident.severity == "HIGH"
    assert incident.get_threat_level() == 7
    assert incident.get_parent_guidance() == "Talk to your child."
    assert not incident.viewed
    assert not incident.acknowledged


def test_recent_is_newest_first_and_limited(incidents, parent):
    for hours in (5, 1, 3):
        incidents.create_incident(parent.user_id, make_payload(timestamp=NOW - hours * HOUR))
    recent = incidents.get_recent(user_id=parent.user_id, limit=2)
    assert [i.get_timestamp() for i in recent] == [NOW - HOUR, NOW - 3 * HOUR]


def test_mark_viewed_is_idempotent(incidents, parent):
    incident_id = incidents.create_incident(parent.user_id, make_payload())
    first = incidents.mark_viewed(incident_id, now=NOW)
    second = incidents.mark_viewed(incident_id, now=NOW + DAY)
    assert first.viewed and second.viewed
    assert second.data["viewed_at"] == NOW
    assert incidents.get_unviewed(parent.user_id) == []


def test_acknowledge_keeps_first_time_and_updates_notes(incidents, parent):
    incident_id = incidents.create_incident(parent.user_id, make_payload())
    incidents.acknowledge(incident_id, "talked about it", now=NOW)
    incident = incidents.acknowledge(incident_id, "follow up next week", now=NOW + DAY)
    assert incident.acknowledged
    assert incident.data["acknowledged_at"] == NOW
    assert incident.data["notes"] == "follow up next week"


def test_unknown_incident(incidents):
    with pytest.raises(NotFoundError):
        incidents.mark_viewed(404)
    with pytest.raises(NotFoundError):
        incidents.acknowledge(404)


def test_stats_are_scoped_to_the_account(incidents, auth, parent):
    other = auth.register_user("other@example.com", "pw", "Other Parent")
    incidents.create_incident(parent.user_id, make_payload(severity="CRITICAL"))
    incidents.create_incident(parent.user_id, make_payload(severity="LOW", platform="discord"))
    incidents.create_incident(other.user_id, make_payload(severity="CRITICAL"))
    stats = incidents.get_stats(parent.user_id, now=NOW)
    assert stats.total == 2
    assert stats.critical == 1
    assert stats.low == 1
    assert stats.platforms == {"instagram": 1, "discord": 1}


def test_child_feed(incidents, children, parent):
    sam = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", [])
    for hours in (2, 1, 3):
        incidents.create_incident(parent.user_id, make_payload(timestamp=NOW - hours * HOUR), sam)
    incidents.create_incident(parent.user_id, make_payload())
    feed = incidents.get_by_child(sam, limit=2)
    assert [i.get_timestamp() for i in feed] == [NOW - HOUR, NOW - 2 * HOUR]
    assert all(i.child_id == sam for i in feed)


def test_severity_filter(incidents, parent):
    incidents.create_incident(parent.user_id, make_payload(severity="CRITICAL"))
    incidents.create_incident(parent.user_id, make_payload(severity="LOW"))
    assert [i.severity for i in incidents.get_by_severity(parent.user_id, "CRITICAL")] == ["CRITICAL"]


def test_failed_triage_write_is_reported(incidents, parent, db):
    incident_id = incidents.create_incident(parent.user_id, make_payload())
    db.execute(
        "CREATE TRIGGER block_incident_updates BEFORE UPDATE ON incidents "
        "BEGIN SELECT RAISE(ABORT, 'incidents are read only'); END"
    )
    with pytest.raises(StorageError):
        incidents.mark_viewed(incident_id, now=NOW)
    with pytest.raises(StorageError):
        incidents.acknowledge(incident_id, "notes", now=NOW)
    assert not incidents.get_incident(incident_id).viewed


def test_stats_reject_children_outside_the_account(incidents, children, auth, parent):
    other = auth.register_user("other@example.com", "pw", "Other Parent")
    foreign = children.create_child(other.user_id, "Kid", "ext-other", "1.0.0", "active", [])
    with pytest.raises(NotFoundError):
        incidents.get_stats(parent.user_id, child_id=foreign, now=NOW)
    with pytest.raises(NotFoundError):
        incidents.get_stats(parent.user_id, child_id=9999, now=NOW)
