"""Single funnel for external player state changes.

Storage changes made by other tabs and the same-page ``playlist_loaded``
hand-off both arrive as ``ExternalStateChange`` objects so the player applies
them through one code path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from vibeflo.player.storage import StorageArea, StorageChange

logger = logging.getLogger(__name__)

PLAYLIST_LOADED_EVENT = "vibeflo_playlist_loaded"

KIND_STORAGE = "storage"
KIND_PLAYLIST_LOADED = "playlist_loaded"


@dataclass(frozen=True)
class ExternalStateChange:
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[ExternalStateChange], None]


class SyncChannel:
    """Pub/sub channel for one page: storage events plus the custom hand-off event."""

    def __init__(self, storage: Optional[StorageArea] = None) -> None:
        self._subscribers: List[Subscriber] = []
        self._detach_storage: Optional[Callable[[], None]] = None
        if storage is not None:
            self._detach_storage = storage.add_listener(self._on_storage_change)

    def subscribe(self, handler: Subscriber) -> Callable[[], None]:
        self._subscribers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return _unsubscribe

    def _dispatch(self, change: ExternalStateChange) -> None:
        for handler in list(self._subscribers):
            try:
                handler(change)
            except Exception:
                # A failing listener must not stop delivery to the others
                logger.exception("Subscriber failed handling %s change", change.kind)

    def _on_storage_change(self, change: StorageChange) -> None:
        self._dispatch(
            ExternalStateChange(
                KIND_STORAGE,
                {"key": change.key, "oldValue": change.old_value, "newValue": change.new_value},
            )
        )

    def publish_playlist_loaded(
        self,
        tracks: Any,
        current_track: Optional[Dict[str, Any]] = None,
        keep_open: bool = True,
    ) -> None:
        logger.debug("Dispatching %s", PLAYLIST_LOADED_EVENT)
        self._dispatch(
            ExternalStateChange(
                KIND_PLAYLIST_LOADED,
                {"tracks": tracks, "currentTrack": current_track, "keepOpen": keep_open},
            )
        )

    def close(self) -> None:
        self._subscribers.clear()
        if self._detach_storage is not None:
            self._detach_storage()
            self._detach_storage = None


__all__ = [
    "ExternalStateChange",
    "KIND_PLAYLIST_LOADED",
    "KIND_STORAGE",
    "PLAYLIST_LOADED_EVENT",
    "SyncChannel",
]
