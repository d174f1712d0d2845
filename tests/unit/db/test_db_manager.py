import pytest
from flask import Flask
from sqlalchemy.exc import IntegrityError

from vibeflo.database.db_manager import Playlist, PlaylistSong, Song, db, initialize_database


@pytest.mark.unit
def test_initialize_database_creates_sqlite_directory(tmp_path):
    target_dir = tmp_path / "nested" / "dbdir"
    db_file = target_dir / "test.db"
    uri = f"sqlite:///{db_file}".replace("\\", "/")

    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    initialize_database(app)

    assert target_dir.exists()
    with app.app_context():
        assert db.session.query(Song).count() == 0


@pytest.mark.unit
def test_user_password_hashing(factories):
    user = factories.UserFactory()
    user.set_password("another-secret")

    assert user.password_hash != "another-secret"
    assert user.check_password("another-secret")
    assert not user.check_password("wrong")
    assert "password_hash" not in user.to_dict()


@pytest.mark.unit
def test_song_to_dict_optionally_includes_position(factories):
    song = factories.SongFactory(title="Weightless")

    assert "position" not in song.to_dict()
    assert song.to_dict(position=3)["position"] == 3
    assert song.to_dict()["title"] == "Weightless"


@pytest.mark.unit
def test_positions_are_unique_per_playlist(factories, db_session):
    entry = factories.PlaylistSongFactory(position=1)
    other_song = factories.SongFactory()

    with pytest.raises(IntegrityError):
        factories.PlaylistSongFactory(playlist=entry.playlist, song=other_song, position=1)
    db_session.rollback()


@pytest.mark.unit
def test_deleting_playlist_removes_memberships_only(factories, db_session):
    entry = factories.PlaylistSongFactory()
    db_session.commit()
    song_id = entry.song_id

    db_session.delete(entry.playlist)
    db_session.commit()

    assert db_session.query(Playlist).count() == 0
    assert db_session.query(PlaylistSong).count() == 0
    assert db_session.get(Song, song_id) is not None
