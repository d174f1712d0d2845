"""Server-side proxy for the YouTube Data API so the key stays off the client."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from vibeflo.clients.youtube import YouTubeClient, summarize_item
from vibeflo.errors import ExternalServiceError, ValidationError


logger = logging.getLogger(__name__)

youtube_bp = Blueprint('youtube_bp', __name__, url_prefix='/api/youtube')


def _client() -> YouTubeClient:
    return current_app.extensions['youtube_client']


@youtube_bp.route('/search', methods=['GET'])
@login_required
def search():
    query = (request.args.get('query') or '').strip()
    if not query:
        raise ValidationError('Search query is required')
    default_max = current_app.config.get('YOUTUBE_SEARCH_MAX_RESULTS', 10)
    max_results = request.args.get('maxResults', type=int) or default_max
    try:
        items = _client().search(query, max_results=max_results)
    except ExternalServiceError as exc:
        logger.warning("YouTube search for %r failed: %s", query, exc.message)
        raise ExternalServiceError('Error searching YouTube') from exc
    return jsonify([summarize_item(item) for item in items]), 200


@youtube_bp.route('/video/<video_id>', methods=['GET'])
@login_required
def video(video_id: str):
    try:
        details = _client().video_details(video_id)
    except ExternalServiceError as exc:
        logger.warning("YouTube video lookup for %s failed: %s", video_id, exc.message)
        raise ExternalServiceError('Error fetching video details') from exc
    return jsonify(details), 200


__all__ = ["youtube_bp"]
