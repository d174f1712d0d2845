# clients/youtube.py
"""Thin wrapper around the YouTube Data API v3 search and videos endpoints."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from vibeflo.errors import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"

_YOUTUBE_ID_RE = re.compile(
    r'(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts)/|.*[?&]v=)|youtu\.be/)([^"&?/\s]{11})'
)


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """Return the 11 character video id from a watch/short/embed url, if any."""
    if not url:
        return None
    match = _YOUTUBE_ID_RE.search(url)
    return match.group(1) if match else None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def _thumbnail(snippet: Dict[str, Any], *sizes: str) -> Optional[str]:
    thumbnails = snippet.get("thumbnails") or {}
    for size in sizes:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return None


def summarize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a raw search item into the shape served by the search proxy route."""
    snippet = item.get("snippet") or {}
    item_id = item.get("id")
    video_id = item_id.get("videoId") if isinstance(item_id, dict) else item_id
    return {
        "id": video_id,
        "title": snippet.get("title"),
        "channelTitle": snippet.get("channelTitle"),
        "thumbnail": _thumbnail(snippet, "default", "medium", "high"),
    }


class YouTubeClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError("YouTube API key is not configured")

        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
        except requests.exceptions.Timeout as exc:
            logger.warning("YouTube %s request timed out", endpoint)
            raise ExternalServiceError("YouTube request timed out") from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("YouTube %s request failed: %s", endpoint, exc)
            raise ExternalServiceError("YouTube request failed") from exc

        if not 200 <= response.status_code < 300:
            logger.warning("YouTube %s returned HTTP %s", endpoint, response.status_code)
            raise ExternalServiceError(f"YouTube returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError("YouTube returned an unreadable response") from exc

        # Quota and key errors may arrive in a 200 body
        if not isinstance(payload, dict) or payload.get("error"):
            error = payload.get("error") if isinstance(payload, dict) else None
            message = error.get("message") if isinstance(error, dict) else error
            logger.warning("YouTube %s returned an error payload: %s", endpoint, message)
            raise ExternalServiceError("YouTube returned an error")
        return payload

    def search(self, query: str, max_results: int = 10) -> List[Dict[str, Any]]:
        """Return raw search items: ``{id: {videoId}, snippet: {title, channelTitle, thumbnails}}``."""
        payload = self._get(
            "search",
            {
                "part": "snippet",
                "q": query,
                "maxResults": max(1, min(int(max_results), 50)),
                "type": "video",
            },
        )
        return list(payload.get("items") or [])

    def video_details(self, video_id: str) -> Dict[str, Any]:
        payload = self._get("videos", {"part": "snippet,contentDetails", "id": video_id})
        items = payload.get("items") or []
        if not items:
            raise NotFoundError("Video not found")
        video = items[0]
        snippet = video.get("snippet") or {}
        return {
            "id": video.get("id"),
            "title": snippet.get("title"),
            "description": snippet.get("description"),
            "thumbnail": _thumbnail(snippet, "default", "medium", "high"),
            "duration": (video.get("contentDetails") or {}).get("duration"),
            "channelTitle": snippet.get("channelTitle"),
        }


__all__ = [
    "DEFAULT_BASE_URL",
    "YouTubeClient",
    "extract_youtube_id",
    "summarize_item",
    "watch_url",
]
