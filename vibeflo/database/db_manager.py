# database/db_manager.py
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
import os
import logging
from datetime import datetime
from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.engine import make_url
from sqlalchemy.orm import relationship

# Initialize the SQLAlchemy object
db = SQLAlchemy()
logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    playlists = relationship(
        "Playlist",
        back_populates="owner",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def get_id(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Song(db.Model):
    """A persisted song row; shared by any number of playlist memberships."""

    __tablename__ = 'songs'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(100), nullable=False)
    artist = db.Column(db.String(100), nullable=False)
    album = db.Column(db.String(100), nullable=True)
    duration = db.Column(db.Integer, nullable=True)  # seconds
    image_url = db.Column(db.Text, nullable=True)  # artwork
    url = db.Column(db.String(512), nullable=True)  # playable url
    youtube_id = db.Column(db.String(30), nullable=True)
    source = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f'<Song {self.id}: {self.title} by {self.artist}>'

    def to_dict(self, position=None) -> dict:
        data = {
            'id': self.id,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'duration': self.duration,
            'image_url': self.image_url,
            'url': self.url,
            'youtube_id': self.youtube_id,
            'source': self.source,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if position is not None:
            data['position'] = position
        return data


class Playlist(db.Model):
    __tablename__ = 'playlists'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    owner = relationship('User', back_populates='playlists')
    entries = relationship(
        'PlaylistSong',
        back_populates='playlist',
        order_by='PlaylistSong.position',
        cascade='all, delete-orphan',
        lazy=True,
    )

    def to_dict(self, *, tracks=None) -> dict:
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'description': self.description,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if tracks is not None:
            data['tracks'] = tracks
        return data


class PlaylistSong(db.Model):
    __tablename__ = 'playlist_songs'

    id = db.Column(db.Integer, primary_key=True)
    playlist_id = db.Column(
        db.Integer,
        ForeignKey('playlists.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    song_id = db.Column(
        db.Integer,
        ForeignKey('songs.id'),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False)

    playlist = relationship('Playlist', back_populates='entries')
    song = relationship('Song')

    __table_args__ = (
        UniqueConstraint('playlist_id', 'position', name='uq_playlist_song_position'),
    )

    def to_dict(self) -> dict:
        return {
            'playlist_id': self.playlist_id,
            'song_id': self.song_id,
            'position': self.position,
        }


def initialize_database(app):
    """
    Initializes the SQLAlchemy extension with the Flask app instance
    and creates all database tables if they don't already exist.
    """
    db.init_app(app)
    # Ensure the instance folder exists for SQLite database file
    instance_path = app.instance_path
    if not os.path.exists(instance_path):
        os.makedirs(instance_path)
        logger.info("Created instance folder: %s", instance_path)

    # Ensure the directory for the configured SQLite file exists
    try:
        uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if uri:
            url = make_url(uri)
            # Only handle file-based SQLite (not :memory:)
            if url.get_backend_name() == 'sqlite' and url.database and url.database != ':memory:':
                db_dir = os.path.dirname(url.database)
                if db_dir and not os.path.exists(db_dir):
                    os.makedirs(db_dir, exist_ok=True)
                    logger.info("Created SQLite DB directory: %s", db_dir)
    except Exception as e:
        # Don't block app startup on path parsing issues; log and continue
        logger.warning("Could not ensure SQLite directory exists: %s", e)

    # Create database tables within the application context
    with app.app_context():
        db.create_all()
        logger.info("Database tables created or already exist.")
