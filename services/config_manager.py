from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import streamlit as st
from dotenv import load_dotenv

# path to optional .env file for local overrides
ENV_PATH = Path('.env')
load_dotenv(dotenv_path=ENV_PATH)

DEFAULTS: Dict[str, str] = {
    'SAFEGUARD_DB_PATH': 'database/safeguard.db',
    'SAFEGUARD_API_HOST': '127.0.0.1',
    'SAFEGUARD_API_PORT': '3001',
    'SAFEGUARD_LOG_LEVEL': 'INFO',
    'SAFEGUARD_ALLOW_LEGACY_SALT': 'true',
    'SAFEGUARD_DEMO_MODE': 'true',
}
TRUE_VALUES = {'1', 'true', 'yes', 'on'}
LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULTS['SAFEGUARD_DB_PATH']
    api_host: str = DEFAULTS['SAFEGUARD_API_HOST']
    api_port: int = 3001
    log_level: str = DEFAULTS['SAFEGUARD_LOG_LEVEL']
    allow_legacy_salt: bool = True
    demo_mode: bool = True


def _resolve(name: str) -> Tuple[str, str]:
    # priority order: streamlit secrets, environment (.env included), default
    try:
        secret_value = st.secrets.get(name)
    except Exception:  # no secrets.toml outside a configured streamlit app
        secret_value = None
    if secret_value not in (None, ''):
        return str(secret_value), 'secrets'
    env_value = os.environ.get(name)
    if env_value:
        return env_value, 'env'
    return DEFAULTS[name], 'default'


def get_setting(name: str) -> str:
    value, _ = _resolve(name)
    return value


def get_setting_source(name: str) -> str:
    _, source = _resolve(name)
    return source


def _as_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def _as_int(value: str, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def load_settings() -> Settings:
    # snapshot every setting into an immutable object
    return Settings(
        db_path=get_setting('SAFEGUARD_DB_PATH'),
        api_host=get_setting('SAFEGUARD_API_HOST'),
        api_port=_as_int(get_setting('SAFEGUARD_API_PORT'), Settings.api_port),
        log_level=get_setting('SAFEGUARD_LOG_LEVEL').upper(),
        allow_legacy_salt=_as_bool(get_setting('SAFEGUARD_ALLOW_LEGACY_SALT')),
        demo_mode=_as_bool(get_setting('SAFEGUARD_DEMO_MODE')),
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    # one root handler for both the dashboard and the api server
    settings = settings or load_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def get_status() -> Dict[str, str]:
    # details used by the account page
    settings = load_settings()
    return {
        'database': settings.db_path,
        'database_source': get_setting_source('SAFEGUARD_DB_PATH'),
        'api': f'{settings.api_host}:{settings.api_port}',
        'legacy_salt': 'allowed' if settings.allow_legacy_salt else 'rejected',
        'demo_mode': 'on' if settings.demo_mode else 'off',
    }
