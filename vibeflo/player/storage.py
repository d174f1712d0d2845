"""Persisted key-value storage shared by every open player ("tab").

``SharedStorage`` is the backing store of one browser profile. Each tab reads
and writes through its own ``StorageArea``; a write through one area notifies
every other attached area, never the writer itself.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "vibeflo_"

PLAYLIST_KEY = "playlist"
CURRENT_TRACK_KEY = "current_track"
PLAYER_OPEN_KEY = "player_open"
PLAYER_MINIMIZED_KEY = "player_minimized"
PLAYLIST_UPDATED_KEY = "playlist_updated"

PLAYER_KEYS = (
    PLAYLIST_KEY,
    CURRENT_TRACK_KEY,
    PLAYER_OPEN_KEY,
    PLAYER_MINIMIZED_KEY,
    PLAYLIST_UPDATED_KEY,
)


class StorageChange(NamedTuple):
    key: str
    old_value: Optional[str]
    new_value: Optional[str]


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class SharedStorage:
    """String-valued store with optional JSON-file persistence."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        self._data: Dict[str, str] = {}
        self._areas: List["StorageArea"] = []
        self._lock = threading.RLock()
        self._local = threading.local()
        if path:
            self._load()

    def _load(self) -> None:
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable player storage at %s: %s", self.path, exc)
            return
        if isinstance(data, dict):
            self._data = {str(k): str(v) for k, v in data.items() if v is not None}

    def _persist(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(self._data, fh, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def attach(self, area: "StorageArea") -> None:
        with self._lock:
            if area not in self._areas:
                self._areas.append(area)

    def detach(self, area: "StorageArea") -> None:
        with self._lock:
            if area in self._areas:
                self._areas.remove(area)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def write(self, key: str, value: Optional[str], source: Optional["StorageArea"] = None) -> None:
        """Set (or remove when ``value`` is None) and notify all areas except ``source``."""
        with self._lock:
            old_value = self._data.get(key)
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
            self._persist()
            if old_value == value:
                return
            targets = [area for area in self._areas if area is not source]
        change = StorageChange(key, old_value, value)
        queue = getattr(self._local, "queue", None)
        for area in targets:
            if queue is not None:
                queue.append((area, change))
            else:
                area._deliver(change)

    @contextlib.contextmanager
    def deferred_notifications(self) -> Iterator[None]:
        """Hold back notifications for writes made by this thread until the block exits.

        Writes still land immediately; only delivery to other areas waits, so a
        caller can write while holding its own lock and notify after releasing it.
        Nested blocks deliver once, when the outermost one exits.
        """
        if getattr(self._local, "queue", None) is not None:
            yield
            return
        self._local.queue = []
        try:
            yield
        finally:
            queued, self._local.queue = self._local.queue, None
            for area, change in queued:
                area._deliver(change)


class StorageArea:
    """One tab's view of ``SharedStorage``; keys are namespaced with ``prefix``."""

    def __init__(self, shared: SharedStorage, prefix: str = DEFAULT_PREFIX) -> None:
        self.shared = shared
        self.prefix = prefix
        self._listeners: List[Callable[[StorageChange], None]] = []
        shared.attach(self)

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    # KeyValueStore
    def get_item(self, key: str) -> Optional[str]:
        return self.shared.get(self._full_key(key))

    def set_item(self, key: str, value: str) -> None:
        self.shared.write(self._full_key(key), str(value), source=self)

    def remove_item(self, key: str) -> None:
        self.shared.write(self._full_key(key), None, source=self)

    def json_get(self, key: str, default: Any = None) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed stored value for %s%s", self.prefix, key)
            return default

    def json_set(self, key: str, value: Any) -> None:
        if value is None:
            self.remove_item(key)
            return
        self.set_item(key, json.dumps(value, ensure_ascii=False))

    def add_listener(self, callback: Callable[[StorageChange], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def close(self) -> None:
        self._listeners.clear()
        self.shared.detach(self)

    def _deliver(self, change: StorageChange) -> None:
        if not change.key.startswith(self.prefix):
            return
        local = StorageChange(change.key[len(self.prefix):], change.old_value, change.new_value)
        for listener in list(self._listeners):
            listener(local)


__all__ = [
    "CURRENT_TRACK_KEY",
    "DEFAULT_PREFIX",
    "KeyValueStore",
    "PLAYER_KEYS",
    "PLAYER_MINIMIZED_KEY",
    "PLAYER_OPEN_KEY",
    "PLAYLIST_KEY",
    "PLAYLIST_UPDATED_KEY",
    "SharedStorage",
    "StorageArea",
    "StorageChange",
]
