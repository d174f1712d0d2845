import os
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so 'app', 'config', and 'vibeflo' import correctly
_TESTS_DIR = os.path.dirname(__file__)
_ROOT_DIR = os.path.abspath(os.path.join(_TESTS_DIR, os.pardir))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)

from tests.support import factories as test_factories
from tests.support.helpers import register


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path_factory):
    """Ensure a clean env for tests with per-test sqlite files."""
    db_dir = tmp_path_factory.mktemp("db")
    db_path = Path(db_dir) / "test.sqlite"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
    for name in ("VIBEFLO_API_BASE_URL", "VIBEFLO_STORAGE_PATH", "VIBEFLO_DEFAULT_VOLUME"):
        monkeypatch.delenv(name, raising=False)
    yield db_path


@pytest.fixture
def app(_isolate_env):
    import app as app_module

    application = app_module.create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{_isolate_env.as_posix()}",
            "YOUTUBE_API_KEY": None,
        }
    )
    yield application


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def db_session(app_context):
    from vibeflo.database.db_manager import db

    test_factories.set_session(db.session)
    try:
        yield db.session
    finally:
        db.session.rollback()
        db.session.remove()
        test_factories.reset_session()


@pytest.fixture
def factories(db_session):
    yield test_factories


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(app):
    """A test client whose cookie session and bearer token both belong to a fresh user."""
    test_client = app.test_client()
    user, token = register(test_client)
    test_client.user = user
    test_client.token = token
    return test_client


@pytest.fixture
def other_client(app):
    test_client = app.test_client()
    user, token = register(test_client, email="someone-else@example.com")
    test_client.user = user
    test_client.token = token
    return test_client
