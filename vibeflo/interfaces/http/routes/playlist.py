"""Playlist CRUD routes with ownership enforcement."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from vibeflo.domain.playlists import MISSING, PlaylistService
from vibeflo.errors import ValidationError


playlist_bp = Blueprint('playlist_bp', __name__, url_prefix='/api/playlists')


def _service() -> PlaylistService:
    return current_app.extensions['playlist_service']


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    return payload


@playlist_bp.route('', methods=['GET'])
@login_required
def list_playlists():
    return jsonify(_service().list_playlists(current_user.id)), 200


@playlist_bp.route('', methods=['POST'])
@login_required
def create_playlist():
    payload = _json_body()
    playlist = _service().create_playlist(
        current_user.id,
        payload.get('name'),
        payload.get('description'),
        payload.get('tracks'),
    )
    return jsonify(playlist), 201


@playlist_bp.route('/<int:playlist_id>', methods=['GET'])
@login_required
def get_playlist(playlist_id: int):
    return jsonify(_service().get_playlist(playlist_id, current_user.id)), 200


@playlist_bp.route('/<int:playlist_id>', methods=['PUT'])
@login_required
def update_playlist(playlist_id: int):
    payload = _json_body()
    playlist = _service().update_playlist(
        playlist_id,
        current_user.id,
        name=payload.get('name'),
        description=payload['description'] if 'description' in payload else MISSING,
        tracks=payload.get('tracks'),
    )
    return jsonify(playlist), 200


@playlist_bp.route('/<int:playlist_id>', methods=['DELETE'])
@login_required
def delete_playlist(playlist_id: int):
    _service().delete_playlist(playlist_id, current_user.id)
    return jsonify({'message': 'Playlist deleted successfully'}), 200


@playlist_bp.route('/<int:playlist_id>/songs', methods=['GET'])
@login_required
def get_playlist_songs(playlist_id: int):
    return jsonify(_service().get_playlist_songs(playlist_id, current_user.id)), 200


@playlist_bp.route('/<int:playlist_id>/songs', methods=['POST'])
@login_required
def add_song_to_playlist(playlist_id: int):
    song_id = _service().add_song_to_playlist(playlist_id, current_user.id, _json_body())
    return jsonify({'message': 'Song added to playlist', 'songId': song_id}), 201


@playlist_bp.route('/<int:playlist_id>/songs/<int:song_id>', methods=['DELETE'])
@login_required
def remove_song_from_playlist(playlist_id: int, song_id: int):
    _service().remove_song_from_playlist(playlist_id, current_user.id, song_id)
    return jsonify({'message': 'Song removed from playlist'}), 200


__all__ = ["playlist_bp"]
