from .service import (
    MISSING,
    PlaylistService,
    is_complete_track,
    song_fields_from_track,
    song_id_scheme_for,
)
from .song_ids import SCHEME_INTEGER, SCHEME_UUID, parse_reusable_song_id

__all__ = [
    "MISSING",
    "PlaylistService",
    "SCHEME_INTEGER",
    "SCHEME_UUID",
    "is_complete_track",
    "parse_reusable_song_id",
    "song_fields_from_track",
    "song_id_scheme_for",
]
