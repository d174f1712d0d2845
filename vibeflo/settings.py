#!/usr/bin/env python
"""
Configuration schema for the music player client.

Merges defaults from config.Config with ``VIBEFLO_*`` environment variables
and runtime overrides.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import Config


def _clamp_volume(value: object, default: int = 50) -> int:
    try:
        volume = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return max(0, min(volume, 100))


class PlayerSettings(BaseModel):
    """Settings for the client-side playlist cache and player."""

    model_config = ConfigDict(extra="ignore")

    api_base_url: str = "http://127.0.0.1:5000/api"
    storage_path: Optional[str] = None
    storage_prefix: str = "vibeflo_"
    youtube_api_key: Optional[str] = None
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"
    search_max_results: int = 10
    default_volume: int = 50
    player_retry_delay_seconds: float = 0.5
    poll_interval_seconds: float = 1.0
    request_timeout_seconds: float = Field(default=10.0)

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("storage_path", "youtube_api_key", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("default_volume", mode="before")
    @classmethod
    def _coerce_volume(cls, value: object) -> int:
        return _clamp_volume(value)

    @field_validator("search_max_results", mode="before")
    @classmethod
    def _coerce_max_results(cls, value: object) -> int:
        try:
            count = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 10
        return max(1, min(count, 50))

    @field_validator(
        "player_retry_delay_seconds",
        "poll_interval_seconds",
        "request_timeout_seconds",
        mode="before",
    )
    @classmethod
    def _coerce_seconds(cls, value: object) -> float:
        try:
            seconds = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.5
        return max(0.0, seconds)


_ENV_KEYS = {
    "api_base_url": "VIBEFLO_API_BASE_URL",
    "storage_path": "VIBEFLO_STORAGE_PATH",
    "storage_prefix": "VIBEFLO_STORAGE_PREFIX",
    "youtube_api_key": "VIBEFLO_YOUTUBE_API_KEY",
    "default_volume": "VIBEFLO_DEFAULT_VOLUME",
    "player_retry_delay_seconds": "VIBEFLO_PLAYER_RETRY_DELAY_SECONDS",
    "poll_interval_seconds": "VIBEFLO_POLL_INTERVAL_SECONDS",
}


def load_player_settings(overrides: Optional[Dict[str, Any]] = None) -> PlayerSettings:
    """Load settings merging config defaults, env values and runtime overrides."""
    data: Dict[str, Any] = {
        "api_base_url": Config.VIBEFLO_API_BASE_URL,
        "storage_path": Config.PLAYER_STORAGE_PATH,
        "youtube_api_key": Config.YOUTUBE_API_KEY,
        "youtube_api_base_url": Config.YOUTUBE_API_BASE_URL,
        "search_max_results": Config.YOUTUBE_SEARCH_MAX_RESULTS,
        "default_volume": Config.PLAYER_DEFAULT_VOLUME,
        "player_retry_delay_seconds": Config.PLAYER_RETRY_DELAY_SECONDS,
        "poll_interval_seconds": Config.PLAYER_POLL_INTERVAL_SECONDS,
        "request_timeout_seconds": Config.HTTP_TIMEOUT_SECONDS,
    }
    for field, env_name in _ENV_KEYS.items():
        value = os.getenv(env_name)
        if value is not None:
            data[field] = value
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return PlayerSettings(**data)


__all__ = ["PlayerSettings", "load_player_settings"]
