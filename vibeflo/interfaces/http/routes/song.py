"""Song catalogue routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import login_required

from vibeflo.domain.songs import create_song, get_song, search_songs
from vibeflo.errors import ValidationError


song_bp = Blueprint('song_bp', __name__, url_prefix='/api/songs')


@song_bp.route('/search', methods=['GET'])
def search():
    return jsonify(search_songs(request.args.get('query', ''))), 200


@song_bp.route('/<song_id>', methods=['GET'])
def get_one(song_id: str):
    return jsonify(get_song(song_id)), 200


@song_bp.route('', methods=['POST'])
@login_required
def create():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Title and artist are required')
    return jsonify(create_song(payload)), 201


__all__ = ["song_bp"]
