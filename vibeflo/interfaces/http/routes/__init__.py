"""Route blueprints exposed via Flask."""

from .auth import auth_bp
from .health import health_bp
from .playlist import playlist_bp
from .song import song_bp
from .youtube import youtube_bp

__all__ = [
    "auth_bp",
    "health_bp",
    "playlist_bp",
    "song_bp",
    "youtube_bp",
]
