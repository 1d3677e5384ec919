from services import config_manager


def test_defaults(monkeypatch):
    for name in config_manager.DEFAULTS:
        monkeypatch.delenv(name, raising=False)
    settings = config_manager.load_settings()
    assert settings.api_port == 3001
    assert settings.allow_legacy_salt is True
    assert config_manager.get_setting_source("SAFEGUARD_DB_PATH") == "default"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SAFEGUARD_API_PORT", "8080")
    monkeypatch.setenv("SAFEGUARD_ALLOW_LEGACY_SALT", "false")
    monkeypatch.setenv("SAFEGUARD_LOG_LEVEL", "debug")
    settings = config_manager.load_settings()
    assert settings.api_port == 8080
    assert settings.allow_legacy_salt is False
    assert settings.log_level == "DEBUG"
    assert config_manager.get_setting_source("SAFEGUARD_API_PORT") == "env"
    assert config_manager.get_status()["legacy_salt"] == "rejected"


def test_bad_port_falls_back(monkeypatch):
    monkeypatch.setenv("SAFEGUARD_API_PORT", "not-a-port")
    assert config_manager.load_settings().api_port == 3001


def test_configure_logging_tolerates_unknown_level():
    # falls back to INFO instead of raising
    config_manager.configure_logging(config_manager.Settings(log_level="CHATTY"))
