"""Playlist persistence and track-list reconciliation.

Clients always submit the complete, ordered track list of a playlist. Saving
it rewrites ``playlist_songs`` wholesale (delete-all, re-insert) inside one
transaction while reusing ``songs`` rows whose ids the client already knows.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import Integer, Uuid, func
from sqlalchemy import inspect as sa_inspect

from vibeflo.clients.youtube import extract_youtube_id
from vibeflo.database.db_manager import Playlist, PlaylistSong, Song, db
from vibeflo.domain.playlists.song_ids import SCHEME_INTEGER, SCHEME_UUID, parse_reusable_song_id
from vibeflo.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
    VibeFloError,
)
from vibeflo.observability.metrics import (
    record_reconcile_failure,
    record_reconcile_success,
    record_song_created,
    record_song_reused,
    record_track_skipped,
)


logger = logging.getLogger(__name__)

MISSING = object()

TITLE_MAX = 100
ARTIST_MAX = 100
ALBUM_MAX = 100

# Operations that rewrite a submitted track list and feed the reconcile metrics
RECONCILE_OPERATIONS = frozenset({'create', 'update'})


def _first(track: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = track.get(key)
        if value:
            return str(value)
    return None


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return value[:limit]


def _coerce_duration(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        duration = int(float(value))
    except (TypeError, ValueError):
        return None
    return duration if duration > 0 else None


def _coerce_position(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        position = int(value)
    except (TypeError, ValueError):
        return None
    return position if position > 0 else None


def is_complete_track(track: Any) -> bool:
    """A track can be persisted only when it carries both a title and an artist."""
    if not isinstance(track, dict):
        return False
    title = str(track.get('title') or '').strip()
    artist = str(track.get('artist') or '').strip()
    return bool(title and artist)


def song_fields_from_track(track: Dict[str, Any]) -> Dict[str, Any]:
    """Map a submitted track (client or server naming) onto ``songs`` columns."""
    url = _first(track, 'url', 'audio_url')
    youtube_id = _first(track, 'youtube_id') or extract_youtube_id(url)
    source = _first(track, 'source') or ('youtube' if youtube_id else 'unknown')
    return {
        'title': _clip(str(track.get('title')).strip(), TITLE_MAX),
        'artist': _clip(str(track.get('artist')).strip(), ARTIST_MAX),
        'album': _clip(_first(track, 'album'), ALBUM_MAX),
        'duration': _coerce_duration(track.get('duration')),
        'image_url': _first(track, 'artwork', 'image_url', 'cover_url'),
        'url': url,
        'youtube_id': youtube_id,
        'source': source,
    }


def song_id_scheme_for(model) -> str:
    """Pick the id parsing scheme that matches ``model``'s primary key column type."""
    column_type = sa_inspect(model).primary_key[0].type
    if isinstance(column_type, Integer):
        return SCHEME_INTEGER
    if isinstance(column_type, Uuid):
        return SCHEME_UUID
    raise ValueError(f"Unsupported song primary key type: {column_type!r}")


class PlaylistService:
    """User-scoped playlist operations backed by the shared SQLAlchemy session."""

    def __init__(self, session=None) -> None:
        self.session = session if session is not None else db.session
        self.song_id_scheme = song_id_scheme_for(Song)

    # --- lookups -----------------------------------------------------------
    def get_owned_playlist(self, playlist_id: int, user_id: int) -> Playlist:
        """Return the playlist if ``user_id`` owns it.

        A missing id raises NotFoundError; an id owned by someone else raises
        AuthorizationError so callers can tell the two apart.
        """
        playlist = self.session.get(Playlist, playlist_id)
        if playlist is None:
            raise NotFoundError('Playlist not found')
        if playlist.user_id != user_id:
            logger.warning(
                "User %s denied access to playlist %s",
                user_id,
                playlist_id,
                extra={'playlist_id': playlist_id, 'user_id': user_id},
            )
            raise AuthorizationError('You do not have permission to access this playlist')
        return playlist

    def _ordered_tracks(self, playlist_id: int, *, with_position: bool = False) -> List[dict]:
        rows = (
            self.session.query(Song, PlaylistSong.position)
            .join(PlaylistSong, PlaylistSong.song_id == Song.id)
            .filter(PlaylistSong.playlist_id == playlist_id)
            .order_by(PlaylistSong.position.asc())
            .all()
        )
        return [
            song.to_dict(position=position if with_position else None)
            for song, position in rows
        ]

    def list_playlists(self, user_id: int) -> List[dict]:
        playlists = (
            self.session.query(Playlist)
            .filter(Playlist.user_id == user_id)
            .order_by(Playlist.created_at.desc(), Playlist.id.desc())
            .all()
        )
        return [playlist.to_dict() for playlist in playlists]

    def get_playlist(self, playlist_id: int, user_id: int) -> dict:
        playlist = self.get_owned_playlist(playlist_id, user_id)
        return playlist.to_dict(tracks=self._ordered_tracks(playlist.id))

    def get_playlist_songs(self, playlist_id: int, user_id: int) -> List[dict]:
        playlist = self.get_owned_playlist(playlist_id, user_id)
        return self._ordered_tracks(playlist.id, with_position=True)

    # --- transactions ------------------------------------------------------
    @contextmanager
    def _transaction(self, operation: str, **context: Any) -> Iterator[None]:
        """Commit on success; roll back and surface a generic error on failure."""
        started = time.perf_counter()
        try:
            yield
            self.session.commit()
        except VibeFloError:
            self.session.rollback()
            raise
        except Exception as exc:
            self.session.rollback()
            if operation in RECONCILE_OPERATIONS:
                record_reconcile_failure(operation, time.perf_counter() - started)
            logger.error(
                "Playlist %s failed and was rolled back: %s",
                operation,
                exc,
                exc_info=True,
                extra={'operation': operation, **context},
            )
            raise PersistenceError('Server error') from exc
        if operation in RECONCILE_OPERATIONS:
            record_reconcile_success(operation, time.perf_counter() - started)

    def _insert_song(self, fields: Dict[str, Any]) -> Song:
        song = Song(**fields)
        self.session.add(song)
        self.session.flush()
        record_song_created()
        return song

    def _reuse_song(self, raw_id: Any, fields: Dict[str, Any]) -> Optional[Song]:
        song_key = parse_reusable_song_id(raw_id, self.song_id_scheme)
        if song_key is None:
            return None
        song = self.session.get(Song, song_key)
        if song is None:
            return None
        for column, value in fields.items():
            setattr(song, column, value)
        record_song_reused()
        return song

    def _link(self, playlist_id: int, song_id: int, position: int) -> None:
        self.session.add(PlaylistSong(playlist_id=playlist_id, song_id=song_id, position=position))

    def _write_tracks(self, playlist_id: int, tracks: Iterable[Any], *, reuse_ids: bool) -> None:
        for index, track in enumerate(tracks):
            if not is_complete_track(track):
                record_track_skipped()
                logger.warning(
                    "Skipping track without title or artist: %r",
                    track,
                    extra={'playlist_id': playlist_id},
                )
                continue

            fields = song_fields_from_track(track)
            song = None
            if reuse_ids and track.get('id') is not None:
                song = self._reuse_song(track.get('id'), fields)
            if song is None:
                song = self._insert_song(fields)
            # Positions follow the submitted array index, 1-based
            self._link(playlist_id, song.id, index + 1)

    # --- writes --------------------------------------------------------------
    def create_playlist(
        self,
        user_id: int,
        name: Optional[str],
        description: Optional[str] = None,
        tracks: Optional[List[Any]] = None,
    ) -> dict:
        name = (name or '').strip()
        if not name:
            raise ValidationError('Playlist name is required')
        if tracks is not None and not isinstance(tracks, list):
            raise ValidationError('Tracks must be an array')

        with self._transaction('create', user_id=user_id, track_count=len(tracks or [])):
            playlist = Playlist(name=name[:100], description=description or None, user_id=user_id)
            self.session.add(playlist)
            self.session.flush()
            if tracks:
                logger.info(
                    "Adding %d tracks to new playlist %s",
                    len(tracks),
                    playlist.id,
                    extra={'playlist_id': playlist.id, 'track_count': len(tracks)},
                )
                self._write_tracks(playlist.id, tracks, reuse_ids=False)
            result = playlist.to_dict(tracks=self._ordered_tracks(playlist.id))
        return result

    def update_playlist(
        self,
        playlist_id: int,
        user_id: int,
        *,
        name: Optional[str] = None,
        description: Any = MISSING,
        tracks: Optional[List[Any]] = None,
    ) -> dict:
        if tracks is not None and not isinstance(tracks, list):
            raise ValidationError('Tracks must be an array')

        playlist = self.get_owned_playlist(playlist_id, user_id)

        context = {'playlist_id': playlist_id, 'user_id': user_id}
        if tracks is not None:
            context['track_count'] = len(tracks)
        with self._transaction('update', **context):
            if name and str(name).strip():
                playlist.name = str(name).strip()[:100]
            if description is not MISSING:
                playlist.description = description

            if tracks is not None:
                logger.info(
                    "Updating playlist %s with %d tracks",
                    playlist_id,
                    len(tracks),
                    extra=context,
                )
                # Full replace: positions are rebuilt from the submitted order
                self.session.query(PlaylistSong).filter(
                    PlaylistSong.playlist_id == playlist.id
                ).delete(synchronize_session='fetch')
                self._write_tracks(playlist.id, tracks, reuse_ids=True)

            result = playlist.to_dict(tracks=self._ordered_tracks(playlist.id))
        return result

    def delete_playlist(self, playlist_id: int, user_id: int) -> None:
        playlist = self.get_owned_playlist(playlist_id, user_id)
        with self._transaction('delete', playlist_id=playlist_id, user_id=user_id):
            self.session.delete(playlist)

    def add_song_to_playlist(self, playlist_id: int, user_id: int, payload: Dict[str, Any]) -> int:
        """Append one song (existing ``songId`` or new song fields); returns the song id."""
        raw_song_id = payload.get('songId', payload.get('song_id'))
        if not raw_song_id and not is_complete_track(payload):
            raise ValidationError('Either songId or song details (title & artist) are required')

        self.get_owned_playlist(playlist_id, user_id)

        with self._transaction('add_song', playlist_id=playlist_id, user_id=user_id):
            if raw_song_id:
                song_key = parse_reusable_song_id(raw_song_id, self.song_id_scheme)
                song = self.session.get(Song, song_key) if song_key is not None else None
                if song is None:
                    raise NotFoundError('Song not found')
            else:
                song = self._insert_song(song_fields_from_track(payload))
            song_id = song.id

            already = (
                self.session.query(PlaylistSong)
                .filter_by(playlist_id=playlist_id, song_id=song_id)
                .first()
            )
            if already is not None:
                raise ConflictError('Song is already in the playlist')

            position = _coerce_position(payload.get('position'))
            if position is None:
                max_position = (
                    self.session.query(func.max(PlaylistSong.position))
                    .filter(PlaylistSong.playlist_id == playlist_id)
                    .scalar()
                )
                position = (max_position or 0) + 1
            elif (
                self.session.query(PlaylistSong)
                .filter_by(playlist_id=playlist_id, position=position)
                .first()
                is not None
            ):
                raise ConflictError('Position is already taken in this playlist')

            self._link(playlist_id, song_id, position)
        return song_id

    def remove_song_from_playlist(self, playlist_id: int, user_id: int, song_id: int) -> None:
        self.get_owned_playlist(playlist_id, user_id)
        with self._transaction('remove_song', playlist_id=playlist_id, user_id=user_id, song_id=song_id):
            self.session.query(PlaylistSong).filter_by(
                playlist_id=playlist_id,
                song_id=song_id,
            ).delete(synchronize_session='fetch')


__all__ = [
    "MISSING",
    "PlaylistService",
    "is_complete_track",
    "song_fields_from_track",
    "song_id_scheme_for",
]
