"""Song catalogue lookups shared by the song routes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import or_

from vibeflo.database.db_manager import Song, db
from vibeflo.domain.playlists.service import (
    is_complete_track,
    song_fields_from_track,
    song_id_scheme_for,
)
from vibeflo.domain.playlists.song_ids import parse_reusable_song_id
from vibeflo.errors import NotFoundError, PersistenceError, ValidationError
from vibeflo.observability.metrics import record_song_created

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def search_songs(query: str, *, session=None) -> List[dict]:
    session = session if session is not None else db.session
    text = (query or '').strip()
    if not text:
        raise ValidationError('Search query is required')

    pattern = f"%{text}%"
    rows = (
        session.query(Song)
        .filter(
            or_(
                Song.title.ilike(pattern),
                Song.artist.ilike(pattern),
                Song.album.ilike(pattern),
            )
        )
        .order_by(Song.title.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    return [song.to_dict() for song in rows]


def get_song(song_id: Any, *, session=None) -> dict:
    session = session if session is not None else db.session
    key = parse_reusable_song_id(song_id, song_id_scheme_for(Song))
    song = session.get(Song, key) if key is not None else None
    if song is None:
        raise NotFoundError('Song not found')
    return song.to_dict()


def create_song(payload: Dict[str, Any], *, session=None) -> dict:
    session = session if session is not None else db.session
    if not is_complete_track(payload):
        raise ValidationError('Title and artist are required')

    song = Song(**song_fields_from_track(payload))
    try:
        session.add(song)
        session.commit()
    except Exception as exc:
        session.rollback()
        logger.error("Failed to create song: %s", exc, exc_info=True, extra={'operation': 'create_song'})
        raise PersistenceError('Server error') from exc
    record_song_created()
    return song.to_dict()


__all__ = ["SEARCH_LIMIT", "create_song", "get_song", "search_songs"]
