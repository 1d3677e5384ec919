import pytest

from services.errors import NotFoundError, StorageError, ValidationError

from conftest import HOUR, NOW, make_payload


def test_create_and_fetch_child(children, parent):
    child_id = children.create_child(
        parent.user_id, "Sam", "ext-1", "1.0.0", "both", ["instagram", "discord"], age=11
    )
    child = children.get_child(child_id)
    assert child.name == "Sam"
    assert child.platforms == ["instagram", "discord"]
    assert children.get_child_by_extension("ext-1").child_id == child_id
    assert [c.child_id for c in children.get_children(parent.user_id)] == [child_id]


def test_duplicate_extension_rejected(children, parent):
    children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", [])
    with pytest.raises(ValidationError, match="already registered"):
        children.create_child(parent.user_id, "Alex", "ext-1", "1.0.0", "active", [])


def test_add_child_is_pending(children, parent):
    child = children.get_child(children.add_child(parent.user_id, "Ana", ["tiktok"]))
    assert child.is_pending()
    assert child.data["extension_version"] == "pending"


def test_update_child_patches_only_given_fields(children, parent):
    child_id = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", ["discord"], age=9)
    children.update_child(child_id, name="Samuel", age=None, platforms=["discord", "snapchat"])
    child = children.get_child(child_id)
    assert child.name == "Samuel"
    assert child.data["age"] == 9
    assert child.platforms == ["discord", "snapchat"]
    with pytest.raises(ValidationError):
        children.update_child(child_id, monitoring_mode="stealth")


def test_update_sync_and_remove(children, parent):
    child_id = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", [])
    children.update_sync("ext-1", now=NOW)
    assert children.get_child(child_id).last_sync_at == NOW
    with pytest.raises(NotFoundError):
        children.update_sync("ext-missing")
    assert children.remove_child(child_id)
    with pytest.raises(NotFoundError):
        children.get_child(child_id)
    with pytest.raises(NotFoundError):
        children.remove_child(child_id)


def test_child_stats_uses_only_that_childs_incidents(children, incidents, parent):
    sam = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", ["instagram"])
    ana = children.create_child(parent.user_id, "Ana", "ext-2", "1.0.0", "active", ["instagram"])
    children.update_sync("ext-1", now=NOW - 3 * HOUR)
    incidents.create_incident(parent.user_id, make_payload(severity="CRITICAL"), sam)
    incidents.create_incident(parent.user_id, make_payload(timestamp=NOW - 48 * HOUR), sam)
    incidents.create_incident(parent.user_id, make_payload(), ana)
    stats = children.get_child_stats(sam, now=NOW)
    assert stats.total == 2
    assert stats.last24h == 1
    assert stats.critical == 1
    assert stats.last_sync_hours == 3
    assert stats.platform_counts == [{"name": "instagram", "incidents": 2}]


def test_failed_child_writes_are_reported(children, parent, db):
    child_id = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", [])
    db.execute(
        "CREATE TRIGGER block_child_updates BEFORE UPDATE ON children "
        "BEGIN SELECT RAISE(ABORT, 'children are read only'); END"
    )
    with pytest.raises(StorageError):
        children.update_child(child_id, name="Samuel")
    with pytest.raises(StorageError):
        children.update_sync("ext-1", now=NOW)
    assert children.get_child(child_id).name == "Sam"


def test_get_owned_child(children, auth, parent):
    other = auth.register_user("other@example.com", "pw", "Other Parent")
    own = children.create_child(parent.user_id, "Sam", "ext-1", "1.0.0", "active", [])
    foreign = children.create_child(other.user_id, "Kid", "ext-2", "1.0.0", "active", [])
    assert children.get_owned_child(parent.user_id, own).name == "Sam"
    with pytest.raises(NotFoundError):
        children.get_owned_child(parent.user_id, foreign)
