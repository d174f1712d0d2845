#!/usr/bin/env python
# config.py
import os
from typing import List

# This assumes config.py is at the root of your project
basedir = os.path.abspath(os.path.dirname(__file__))


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _get_csv_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name)
    source = raw if raw is not None else default
    return [token.strip() for token in source.split(",") if token and token.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'vibeflo-dev-secret-change-me'

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'vibeflo', 'database', 'instance', 'vibeflo.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Auth
    AUTH_TOKEN_MAX_AGE_SECONDS = _get_int('AUTH_TOKEN_MAX_AGE_SECONDS', 7 * 24 * 3600)

    # YouTube Data API
    YOUTUBE_API_KEY = os.getenv('YOUTUBE_API_KEY')
    YOUTUBE_API_BASE_URL = os.getenv('YOUTUBE_API_BASE_URL', 'https://www.googleapis.com/youtube/v3')
    YOUTUBE_SEARCH_MAX_RESULTS = max(1, min(_get_int('YOUTUBE_SEARCH_MAX_RESULTS', 10), 50))

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS = _get_float('HTTP_TIMEOUT_SECONDS', 10.0)

    # Player client (used by vibeflo.settings)
    VIBEFLO_API_BASE_URL = os.getenv('VIBEFLO_API_BASE_URL', 'http://127.0.0.1:5000/api')
    PLAYER_STORAGE_PATH = os.getenv('PLAYER_STORAGE_PATH')
    PLAYER_RETRY_DELAY_SECONDS = _get_float('PLAYER_RETRY_DELAY_SECONDS', 0.5)
    PLAYER_POLL_INTERVAL_SECONDS = _get_float('PLAYER_POLL_INTERVAL_SECONDS', 1.0)
    PLAYER_DEFAULT_VOLUME = _get_int('PLAYER_DEFAULT_VOLUME', 50)

    # CORS
    CORS_ALLOWED_ORIGINS = _get_csv_list('CORS_ALLOWED_ORIGINS', 'http://localhost:3000')

    # Runtime behavior
    DEBUG = _get_bool('DEBUG', False)
    # Control console logging; when disabled, logs go only to file
    ENABLE_CONSOLE_LOGS = _get_bool('ENABLE_CONSOLE_LOGS', False)
