from __future__ import annotations

from typing import Optional

from flask import Blueprint, Response
from prometheus_client import Counter, Histogram, generate_latest

metrics_blueprint = Blueprint("metrics_bp", __name__)

CONTENT_TYPE_LATEST = "text/plain; version=0.0.4; charset=utf-8"

RECONCILE_SUCCESSES = Counter(
    "vibeflo_playlist_reconcile_success_total",
    "Playlist writes (create/update) committed successfully.",
    ["operation"],
)
RECONCILE_FAILURES = Counter(
    "vibeflo_playlist_reconcile_failure_total",
    "Playlist writes (create/update) rolled back after a persistence error.",
    ["operation"],
)
SONGS_CREATED = Counter(
    "vibeflo_songs_created_total",
    "Song rows inserted while reconciling playlists.",
)
SONGS_REUSED = Counter(
    "vibeflo_songs_reused_total",
    "Existing song rows matched by id and updated in place.",
)
TRACKS_SKIPPED = Counter(
    "vibeflo_tracks_skipped_total",
    "Submitted tracks skipped for missing title or artist.",
)
SEARCH_FALLBACKS = Counter(
    "vibeflo_search_fallback_total",
    "Searches answered with built-in sample results.",
)
RECONCILE_TIME = Histogram(
    "vibeflo_playlist_reconcile_seconds",
    "Time spent reconciling a submitted track list.",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, float("inf")),
)


def record_reconcile_success(operation: str, duration_seconds: Optional[float] = None) -> None:
    RECONCILE_SUCCESSES.labels(operation=operation).inc()
    if duration_seconds is not None:
        RECONCILE_TIME.observe(duration_seconds)


def record_reconcile_failure(operation: str, duration_seconds: Optional[float] = None) -> None:
    RECONCILE_FAILURES.labels(operation=operation).inc()
    if duration_seconds is not None:
        RECONCILE_TIME.observe(duration_seconds)


def record_song_created() -> None:
    SONGS_CREATED.inc()


def record_song_reused() -> None:
    SONGS_REUSED.inc()


def record_track_skipped() -> None:
    TRACKS_SKIPPED.inc()


def record_search_fallback() -> None:
    SEARCH_FALLBACKS.inc()


@metrics_blueprint.route("/metrics")
def metrics_endpoint() -> Response:
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
