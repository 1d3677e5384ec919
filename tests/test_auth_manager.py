import pytest

from services.auth_manager import DEMO_EMAIL, DEMO_PASSWORD, AuthManager
from services.credentials import derive_hash
from services.errors import AuthenticationError, NotFoundError, StorageError, ValidationError


def test_register_and_login(auth, parent):
    assert parent.api_key.startswith("sk-")
    assert parent.notification_settings["email_threshold"] == 7
    user = auth.login_user("Parent@Example.com ", "s3cret-pass")
    assert user.user_id == parent.user_id


def test_register_stores_salted_hash(auth, parent, db):
    row = db.fetch_one("SELECT password_hash, password_salt FROM users WHERE id = ?", (parent.user_id,))
    assert len(row["password_salt"]) == 32
    assert row["password_hash"] == derive_hash("s3cret-pass", row["password_salt"])


def test_register_rejects_duplicates_and_blanks(auth, parent):
    with pytest.raises(ValidationError, match="already exists"):
        auth.register_user("parent@example.com", "other", "Someone")
    with pytest.raises(ValidationError):
        auth.register_user("", "pw", "Name")
    with pytest.raises(ValidationError):
        auth.register_user("new@example.com", "", "Name")


def test_login_failures_share_one_message(auth, parent):
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.login_user("parent@example.com", "wrong")
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.login_user("nobody@example.com", "s3cret-pass")


def test_login_writes_activity(auth, parent, db):
    auth.login_user("parent@example.com", "s3cret-pass")
    actions = [row["action"] for row in db.fetch_all("SELECT action FROM activity_log ORDER BY id")]
    assert actions == ["register", "login"]


def test_change_password_rotates_credential(auth, parent, db):
    before = db.fetch_one("SELECT password_salt FROM users WHERE id = ?", (parent.user_id,))
    auth.change_password(parent.user_id, "s3cret-pass", "even-better")
    after = db.fetch_one("SELECT password_salt FROM users WHERE id = ?", (parent.user_id,))
    assert after["password_salt"] != before["password_salt"]
    auth.login_user("parent@example.com", "even-better")
    with pytest.raises(AuthenticationError):
        auth.login_user("parent@example.com", "s3cret-pass")


def test_change_password_errors(auth, parent):
    with pytest.raises(AuthenticationError, match="Current password is incorrect"):
        auth.change_password(parent.user_id, "nope", "new")
    with pytest.raises(NotFoundError):
        auth.change_password(9999, "s3cret-pass", "new")


def _make_legacy(db, user_id, password):
    db.execute(
        "UPDATE users SET password_hash = ?, password_salt = NULL WHERE id = ?",
        (derive_hash(password, ""), user_id),
    )


def test_legacy_unsalted_row_logs_in_when_allowed(auth, parent, db):
    _make_legacy(db, parent.user_id, "old-school")
    assert auth.login_user("parent@example.com", "old-school").user_id == parent.user_id
    # a password change migrates the row onto a real salt
    auth.change_password(parent.user_id, "old-school", "modern")
    row = db.fetch_one("SELECT password_salt FROM users WHERE id = ?", (parent.user_id,))
    assert len(row["password_salt"]) == 32


def test_legacy_unsalted_row_rejected_when_disabled(db, parent):
    _make_legacy(db, parent.user_id, "old-school")
    strict = AuthManager(db, allow_legacy_salt=False)
    with pytest.raises(AuthenticationError):
        strict.login_user("parent@example.com", "old-school")


def test_settings_by_api_key(auth, parent):
    settings = auth.get_settings_by_api_key(parent.api_key)
    assert settings["email"] == "parent@example.com"
    with pytest.raises(AuthenticationError):
        auth.get_settings_by_api_key("sk-unknown")


def test_update_notification_settings(auth, parent):
    auth.update_settings_by_api_key(
        parent.api_key,
        {"smsEnabled": True, "smsThreshold": 8},
        phone="+15550100",
    )
    user = auth.get_user(parent.user_id)
    assert user.notification_settings["sms_enabled"] is True
    assert user.notification_settings["sms_threshold"] == 8
    assert user.notification_settings["email_threshold"] == 7
    assert user.phone == "+15550100"


def test_update_notification_settings_validates_thresholds(auth, parent):
    with pytest.raises(ValidationError):
        auth.update_notification_settings(parent.user_id, {"email_threshold": 11})
    with pytest.raises(NotFoundError):
        auth.update_notification_settings(9999, {})


def _block_user_updates(db):
    db.execute(
        "CREATE TRIGGER block_user_updates BEFORE UPDATE ON users "
        "BEGIN SELECT RAISE(ABORT, 'users are read only'); END"
    )


def test_failed_password_write_keeps_old_password(auth, parent, db):
    _block_user_updates(db)
    with pytest.raises(StorageError):
        auth.change_password(parent.user_id, "s3cret-pass", "never-stored")
    assert auth.login_user("parent@example.com", "s3cret-pass").user_id == parent.user_id
    actions = [row["action"] for row in db.fetch_all("SELECT action FROM activity_log")]
    assert "password_changed" not in actions


def test_failed_settings_write_is_reported(auth, parent, db):
    _block_user_updates(db)
    with pytest.raises(StorageError):
        auth.update_notification_settings(parent.user_id, {"email_threshold": 3})


def test_reset_demo_password(auth, db):
    auth.register_user(DEMO_EMAIL, "changed-by-someone", "Test Parent")
    message = auth.reset_demo_password()
    assert DEMO_PASSWORD in message
    assert auth.login_user(DEMO_EMAIL, DEMO_PASSWORD).email == DEMO_EMAIL


def test_reset_demo_password_without_demo_account(auth):
    with pytest.raises(NotFoundError):
        auth.reset_demo_password()
