from pathlib import Path

import pytest

from services.auth_manager import AuthManager
from services.child_manager import ChildManager
from services.database_manager import DatabaseManager
from services.incident_manager import IncidentManager

NOW = 1_700_000_000_000
HOUR = 60 * 60 * 1000
DAY = 24 * HOUR


@pytest.fixture
def db(tmp_path: Path) -> DatabaseManager:
    manager = DatabaseManager(str(tmp_path / "test.db"))
    manager.create_tables()
    return manager


@pytest.fixture
def auth(db: DatabaseManager) -> AuthManager:
    return AuthManager(db, allow_legacy_salt=True)


@pytest.fixture
def parent(auth: AuthManager):
    return auth.register_user("parent@example.com", "s3cret-pass", "Pat Parent")


@pytest.fixture
def children(db: DatabaseManager) -> ChildManager:
    return ChildManager(db)


@pytest.fixture
def incidents(db: DatabaseManager) -> IncidentManager:
    return IncidentManager(db)


def make_payload(**overrides):
    payload = {
        "timestamp": NOW,
        "platform": "instagram",
        "severity": "HIGH",
        "category": "grooming",
        "threat_level": 7,
    }
    payload.update(overrides)
    return payload
