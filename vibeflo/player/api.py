"""HTTP client used by the player to talk to the playlist API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx response or transport failure; ``status`` is None for the latter."""

    def __init__(self, status: Optional[int], message: str) -> None:
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}" if status is not None else message)


class PlaylistApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(None, "Network error") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not 200 <= response.status_code < 300:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning("%s %s returned HTTP %s", method, url, response.status_code)
            raise ApiError(response.status_code, message or f"HTTP {response.status_code}")
        return body

    def list_playlists(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/playlists") or []

    def get_playlist(self, playlist_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/playlists/{playlist_id}")

    def create_playlist(
        self,
        name: str,
        tracks: List[Dict[str, Any]],
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": name, "tracks": tracks}
        if description is not None:
            payload["description"] = description
        return self._request("POST", "/playlists", payload)

    def update_playlist(self, playlist_id: int, **fields: Any) -> Dict[str, Any]:
        return self._request("PUT", f"/playlists/{playlist_id}", fields)

    def delete_playlist(self, playlist_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/playlists/{playlist_id}")


__all__ = ["ApiError", "PlaylistApiClient"]
