from services.auth_manager import DEMO_EMAIL, DEMO_PASSWORD
from services.seed import DEMO_API_KEY, DEMO_EXTENSION_ID, seed_demo_data

from conftest import NOW


def test_seed_creates_demo_account(db, auth, incidents, children):
    result = seed_demo_data(db, now=NOW)
    assert result["alreadySeeded"] is False
    assert result["incidentCount"] == 5

    user = auth.login_user(DEMO_EMAIL, DEMO_PASSWORD)
    assert user.api_key == DEMO_API_KEY
    assert children.get_child_by_extension(DEMO_EXTENSION_ID).child_id == result["childId"]

    stats = incidents.get_stats(user.user_id, now=NOW)
    assert stats.total == 5
    assert stats.critical == 1
    assert stats.high == 2
    assert stats.unviewed == 2
    assert stats.unacknowledged == 3


def test_seed_skips_populated_database(db, parent):
    result = seed_demo_data(db, now=NOW)
    assert result == {"alreadySeeded": True, "userId": parent.user_id}
