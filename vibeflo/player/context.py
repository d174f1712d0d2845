"""Client-side play queue, current track and player UI state.

``MusicPlayer`` is the in-process model of one open tab. State is mirrored
into a ``StorageArea`` so that other tabs (and a reload) see the same queue;
changes made elsewhere arrive through the ``SyncChannel`` and are applied by
``_on_external_change`` with last-writer-wins semantics.
"""

from __future__ import annotations

import copy
import functools
import logging
import threading
import time
import uuid
from typing import Any, Dict, List, Optional

from vibeflo.clients.youtube import YouTubeClient, extract_youtube_id, watch_url
from vibeflo.errors import ExternalServiceError
from vibeflo.observability.metrics import record_search_fallback
from vibeflo.player.api import ApiError, PlaylistApiClient
from vibeflo.player.events import (
    KIND_PLAYLIST_LOADED,
    KIND_STORAGE,
    ExternalStateChange,
    SyncChannel,
)
from vibeflo.player.handle import PlayerHandleSlot, Scheduler, timer_scheduler
from vibeflo.player.notifications import Notifier
from vibeflo.player.storage import (
    CURRENT_TRACK_KEY,
    PLAYER_MINIMIZED_KEY,
    PLAYER_OPEN_KEY,
    PLAYLIST_KEY,
    PLAYLIST_UPDATED_KEY,
    SharedStorage,
    StorageArea,
)
from vibeflo.settings import PlayerSettings

logger = logging.getLogger(__name__)

Track = Dict[str, Any]


def _sample(video_id: str, title: str, channel: str) -> Dict[str, Any]:
    thumb = f"https://i.ytimg.com/vi/{video_id}"
    return {
        "id": {"videoId": video_id},
        "snippet": {
            "title": title,
            "channelTitle": channel,
            "thumbnails": {
                "default": {"url": f"{thumb}/default.jpg"},
                "medium": {"url": f"{thumb}/mqdefault.jpg"},
                "high": {"url": f"{thumb}/hqdefault.jpg"},
            },
        },
    }


# Shown whenever the search API cannot be reached
FALLBACK_RESULTS = (
    _sample("jfKfPfyJRdk", "lofi hip hop radio - beats to relax/study to", "Lofi Girl"),
    _sample("4xDzrJKXOOY", "synthwave radio - beats to chill/game to", "Lofi Girl"),
    _sample("lTRiuFIWV54", "1 A.M Study Session - lofi hip hop/chill beats", "Lofi Girl"),
)


def _clamp_volume(volume: Any) -> int:
    try:
        value = int(round(float(volume)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(value, 100))


def _same_track(a: Optional[Track], b: Optional[Track]) -> bool:
    if not a or not b:
        return False
    return str(a.get("id")) == str(b.get("id"))


def _locked(method):
    # Storage notifications to other tabs go out after the lock is released
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.storage.shared.deferred_notifications():
            with self._lock:
                return method(self, *args, **kwargs)

    return wrapper


def track_from_search_result(result: Dict[str, Any]) -> Track:
    """Turn a raw search item into a queueable track with a client-side id."""
    video_id = (result.get("id") or {}).get("videoId")
    snippet = result.get("snippet") or {}
    thumbnails = snippet.get("thumbnails") or {}
    artwork = None
    for size in ("high", "medium", "default"):
        artwork = (thumbnails.get(size) or {}).get("url")
        if artwork:
            break
    return {
        "id": f"yt-{video_id}",
        "title": snippet.get("title") or "Unknown Title",
        "artist": snippet.get("channelTitle") or "Unknown Artist",
        "url": watch_url(video_id),
        "artwork": artwork or "",
        "source": "youtube",
    }


def track_from_song(song: Dict[str, Any]) -> Track:
    """Convert a persisted song row (either column naming) into a player track."""
    url = song.get("url") or song.get("audio_url") or ""
    youtube_id = song.get("youtube_id") or extract_youtube_id(url)
    song_id = song.get("id")
    return {
        "id": str(song_id) if song_id is not None else uuid.uuid4().hex[:13],
        "title": song.get("title") or "Unknown Title",
        "artist": song.get("artist") or "Unknown Artist",
        "url": url or (watch_url(youtube_id) if youtube_id else ""),
        "artwork": song.get("image_url") or song.get("cover_url") or "",
        "duration": song.get("duration") or 0,
        "source": "youtube",
    }


class MusicPlayer:
    def __init__(
        self,
        storage: Optional[StorageArea] = None,
        channel: Optional[SyncChannel] = None,
        api: Optional[PlaylistApiClient] = None,
        search_client: Optional[YouTubeClient] = None,
        notifier: Optional[Notifier] = None,
        slot: Optional[PlayerHandleSlot] = None,
        settings: Optional[PlayerSettings] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.settings = settings or PlayerSettings()
        self.scheduler = scheduler or timer_scheduler
        self.storage = storage or StorageArea(
            SharedStorage(self.settings.storage_path),
            prefix=self.settings.storage_prefix,
        )
        self.channel = channel or SyncChannel(self.storage)
        self.api = api
        self.search_client = search_client
        self.notifier = notifier or Notifier()
        self.slot = slot or PlayerHandleSlot(
            retry_delay=self.settings.player_retry_delay_seconds,
            scheduler=self.scheduler,
        )
        if self.slot.on_give_up is None:
            self.slot.on_give_up = self._on_player_give_up

        self._lock = threading.RLock()
        self._polling = False

        self.tracks: List[Track] = []
        self.current_track: Optional[Track] = None
        self.is_playing = False
        self.volume = self.settings.default_volume
        self.is_open = False
        self.is_minimized = False
        self.search_query = ""
        self.search_results: List[Dict[str, Any]] = []
        self.is_searching = False
        self.is_saving = False

        self._load_from_storage()
        self._last_playlist_update = self.storage.get_item(PLAYLIST_UPDATED_KEY)
        self._unsubscribe = self.channel.subscribe(self._on_external_change)

    # --- persisted state ---------------------------------------------------
    def _read_tracks(self) -> List[Track]:
        tracks = self.storage.json_get(PLAYLIST_KEY, [])
        if not isinstance(tracks, list):
            logger.warning("Stored playlist is not a list; starting empty")
            return []
        return [track for track in tracks if isinstance(track, dict)]

    def _read_current_track(self) -> Optional[Track]:
        current = self.storage.json_get(CURRENT_TRACK_KEY)
        return current if isinstance(current, dict) else None

    def _load_from_storage(self) -> None:
        self.tracks = self._read_tracks()
        self.current_track = self._read_current_track()
        self.is_open = bool(self.storage.json_get(PLAYER_OPEN_KEY, False))
        self.is_minimized = bool(self.storage.json_get(PLAYER_MINIMIZED_KEY, False))

    def _persist_tracks(self) -> None:
        self.storage.json_set(PLAYLIST_KEY, self.tracks)

    def _persist_current_track(self) -> None:
        self.storage.json_set(CURRENT_TRACK_KEY, self.current_track)

    # --- queue -------------------------------------------------------------
    @_locked
    def add_track(self, track: Track) -> None:
        self.tracks = self.tracks + [track]
        self._persist_tracks()
        if self.current_track is None:
            self.current_track = track
            self._persist_current_track()
        self.notifier.success(f'Added "{track.get("title", "track")}" to playlist')

    @_locked
    def remove_track(self, track_id: Any) -> None:
        self.tracks = [t for t in self.tracks if str(t.get("id")) != str(track_id)]
        self._persist_tracks()
        if self.current_track is not None and str(self.current_track.get("id")) == str(track_id):
            self.current_track = self.tracks[0] if self.tracks else None
            if self.current_track is None:
                self.is_playing = False
            self._persist_current_track()

    @_locked
    def play_track(self, track: Optional[Track]) -> None:
        """Select ``track`` and start playing. Membership in the queue is not checked."""
        if not track or not self.tracks:
            return
        self.current_track = track
        self.is_playing = True
        self._persist_current_track()

    def _step(self, offset: int) -> None:
        if not self.tracks or self.current_track is None:
            return
        index = next(
            (i for i, t in enumerate(self.tracks) if _same_track(t, self.current_track)),
            -1,
        )
        length = len(self.tracks)
        self.play_track(self.tracks[(index + offset + length) % length])

    @_locked
    def play_next(self) -> None:
        self._step(1)

    @_locked
    def play_previous(self) -> None:
        self._step(-1)

    # --- transport ---------------------------------------------------------
    @_locked
    def play(self) -> None:
        self.is_playing = True
        self.slot.call("play")

    @_locked
    def pause(self) -> None:
        self.is_playing = False
        self.slot.call("pause")

    def toggle_play(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    @_locked
    def set_volume(self, volume: Any) -> int:
        self.volume = _clamp_volume(volume)
        self.slot.call("set_volume", self.volume, retry=False)
        return self.volume

    def seek(self, seconds: float) -> None:
        self.slot.call("seek", max(0.0, float(seconds)), retry=False)

    @_locked
    def _on_player_give_up(self, method: str) -> None:
        if method != "play" or len(self.tracks) <= 1:
            return
        logger.info("Player never became ready; skipping to the next track")
        self.play_next()

    # --- visibility ----------------------------------------------------------
    @_locked
    def toggle_open(self) -> bool:
        self.is_open = not self.is_open
        self.storage.json_set(PLAYER_OPEN_KEY, self.is_open)
        return self.is_open

    @_locked
    def toggle_minimize(self) -> bool:
        self.is_minimized = not self.is_minimized
        self.storage.json_set(PLAYER_MINIMIZED_KEY, self.is_minimized)
        return self.is_minimized

    # --- search --------------------------------------------------------------
    def handle_search(self, query: str) -> List[Dict[str, Any]]:
        """Search for videos; any failure falls back to the built-in sample results."""
        self.search_query = (query or "").strip()
        if not self.search_query:
            self.search_results = []
            return self.search_results

        self.is_searching = True
        try:
            if self.search_client is None or not self.search_client.api_key:
                raise ExternalServiceError("YouTube API key is not configured")
            self.search_results = self.search_client.search(
                self.search_query,
                max_results=self.settings.search_max_results,
            )
        except Exception as exc:
            logger.warning("Search failed, using fallback results: %s", exc)
            record_search_fallback()
            self.search_results = copy.deepcopy(list(FALLBACK_RESULTS))
            self.notifier.warning("Search is unavailable right now; showing sample results")
        finally:
            self.is_searching = False
        return self.search_results

    # --- server sync -----------------------------------------------------------
    def save_playlist_to_account(self, name: str, description: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Create a server playlist from the queue. Local state is left untouched."""
        name = (name or "").strip()
        if not name:
            self.notifier.error("Please enter a playlist name")
            return None
        if not self.tracks:
            self.notifier.error("Add some tracks before saving")
            return None
        if self.api is None:
            self.notifier.error("Sign in to save playlists")
            return None

        self.is_saving = True
        try:
            result = self.api.create_playlist(name, copy.deepcopy(self.tracks), description)
        except ApiError as exc:
            logger.warning("Saving playlist %r failed: %s", name, exc)
            self.notifier.error(f"Failed to save playlist: {exc.message}")
            return None
        finally:
            self.is_saving = False
        self.notifier.success(f'Playlist "{name}" saved to your account')
        return result

    def load_playlist(
        self,
        tracks: List[Track],
        current_track: Optional[Track] = None,
        keep_open: bool = True,
    ) -> bool:
        """Hand a freshly loaded playlist to every player on this page and in other tabs."""
        if not isinstance(tracks, list) or not tracks:
            self.notifier.info("No playable tracks found in playlist")
            return False
        current = current_track or tracks[0]

        self._store_loaded_playlist(tracks, current, keep_open)
        # Same-page players apply the event under their own locks
        self.channel.publish_playlist_loaded(tracks, current, keep_open)
        self.notifier.success("Playlist loaded to music player")
        return True

    @_locked
    def _store_loaded_playlist(self, tracks: List[Track], current: Track, keep_open: bool) -> None:
        self.storage.remove_item(PLAYLIST_KEY)
        self.storage.remove_item(CURRENT_TRACK_KEY)
        self.storage.json_set(PLAYLIST_KEY, tracks)
        self.storage.json_set(CURRENT_TRACK_KEY, current)
        stamp = str(int(time.time() * 1000))
        self.storage.set_item(PLAYLIST_UPDATED_KEY, stamp)
        self._last_playlist_update = stamp
        if keep_open:
            self.storage.json_set(PLAYER_OPEN_KEY, True)

    # --- external changes ------------------------------------------------------
    @_locked
    def _on_external_change(self, change: ExternalStateChange) -> None:
        if change.kind == KIND_STORAGE:
            self._apply_storage_change(change.payload.get("key"))
        elif change.kind == KIND_PLAYLIST_LOADED:
            self._apply_playlist_loaded(change.payload)

    def _apply_storage_change(self, key: Optional[str]) -> None:
        if key == PLAYLIST_KEY:
            self.tracks = self._read_tracks()
        elif key == CURRENT_TRACK_KEY:
            self.current_track = self._read_current_track()
        elif key == PLAYER_OPEN_KEY:
            self.is_open = bool(self.storage.json_get(PLAYER_OPEN_KEY, False))
        elif key == PLAYER_MINIMIZED_KEY:
            self.is_minimized = bool(self.storage.json_get(PLAYER_MINIMIZED_KEY, False))
        elif key == PLAYLIST_UPDATED_KEY:
            self._last_playlist_update = self.storage.get_item(PLAYLIST_UPDATED_KEY)
            self.reload_from_storage()

    def _apply_playlist_loaded(self, payload: Dict[str, Any]) -> None:
        tracks = payload.get("tracks")
        if not isinstance(tracks, list):
            logger.warning("Ignoring playlist_loaded event without a track list: %r", tracks)
            return
        current = payload.get("currentTrack")
        self.tracks = list(tracks)
        self.current_track = current if isinstance(current, dict) else (tracks[0] if tracks else None)
        if payload.get("keepOpen"):
            self.is_open = True

    @_locked
    def reload_from_storage(self) -> None:
        self.tracks = self._read_tracks()
        self.current_track = self._read_current_track()

    # --- polling ---------------------------------------------------------------
    @_locked
    def poll_for_updates(self) -> bool:
        """Reload when the ``playlist_updated`` stamp moved; returns True if it did."""
        stamp = self.storage.get_item(PLAYLIST_UPDATED_KEY)
        if not stamp or stamp == self._last_playlist_update:
            return False
        self._last_playlist_update = stamp
        self.reload_from_storage()
        self.is_open = bool(self.storage.json_get(PLAYER_OPEN_KEY, self.is_open))
        return True

    def start_polling(self) -> None:
        if self._polling:
            return
        self._polling = True
        self.scheduler(self.settings.poll_interval_seconds, self._poll_tick)

    def stop_polling(self) -> None:
        self._polling = False

    def _poll_tick(self) -> None:
        if not self._polling:
            return
        self.poll_for_updates()
        self.scheduler(self.settings.poll_interval_seconds, self._poll_tick)

    def close(self) -> None:
        self.stop_polling()
        self._unsubscribe()


__all__ = [
    "FALLBACK_RESULTS",
    "MusicPlayer",
    "Track",
    "track_from_search_result",
    "track_from_song",
]
