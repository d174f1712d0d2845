"""Client-side music player state: play queue cache, cross-tab sync and playback slot."""

from .api import ApiError, PlaylistApiClient
from .context import FALLBACK_RESULTS, MusicPlayer, track_from_search_result, track_from_song
from .events import ExternalStateChange, SyncChannel
from .handle import MediaPlayerHandle, PlayerHandleSlot
from .notifications import Notification, Notifier
from .storage import SharedStorage, StorageArea, StorageChange

__all__ = [
    "ApiError",
    "ExternalStateChange",
    "FALLBACK_RESULTS",
    "MediaPlayerHandle",
    "MusicPlayer",
    "Notification",
    "Notifier",
    "PlayerHandleSlot",
    "PlaylistApiClient",
    "SharedStorage",
    "StorageArea",
    "StorageChange",
    "SyncChannel",
    "track_from_search_result",
    "track_from_song",
]
