import os
import sys
import pytest

# Ensure the backend root (containing the `blacksheep` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from blacksheep import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MIN_PLAYERS = 4
    MAX_PLAYERS_LIMIT = 10
    DEFAULT_MAX_PLAYERS = 6
    NAME_MAX_LENGTH = 20
    MESSAGE_MAX_LENGTH = 100
    RESULTS_DURATION_SEC = 0
    ROOM_UPDATE_RETRIES = 3


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import blacksheep.models  # noqa: F401
        db.create_all()
    # No context stays pushed: each request gets its own `g`, so the
    # Flask-Login user is never shared between test clients
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """For tests that call the store and services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def file_app_ctx(tmp_path):
    """Like ``app_ctx`` but on a SQLite file, so other connections see real commits."""
    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'rooms.db'}"

    application = create_app(FileConfig)
    with application.app_context():
        import blacksheep.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def new_client(flask_app):
    """Each player needs their own cookie jar, so hand out fresh clients."""
    def _make():
        return flask_app.test_client()
    return _make


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
