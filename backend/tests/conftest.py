import os
import sys
import pytest

# Ensure the backend root (containing the `buzzer` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from flask_bcrypt import Bcrypt

from buzzer import create_app, socketio
from buzzer.gateway import NAMESPACE
from buzzer.services import BuzzerServices
from buzzer.services.games import GameSettings
from buzzer.session_store import SessionStore
from buzzer.utils.passwords import PasswordHasher
from config import Config


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    CORS_ORIGINS = '*'
    GM_PASSWORD = ''
    MAX_PLAYERS = 5
    BCRYPT_LOG_ROUNDS = 4


class RecordingGateway:
    """Stands in for Socket.IO: remembers rooms and every emitted event."""

    def __init__(self):
        self.rooms = {}
        self.events = []

    def join_room(self, sid, join_code):
        self.rooms.setdefault(join_code, set()).add(sid)

    def emit_to_caller(self, sid, event, payload):
        self.events.append({'to': sid, 'event': event, 'payload': payload, 'exclude': None})

    def broadcast(self, join_code, event, payload, exclude_sid=None):
        self.events.append({'to': join_code, 'event': event, 'payload': payload, 'exclude': exclude_sid})

    def named(self, event):
        return [e for e in self.events if e['event'] == event]

    def clear(self):
        self.events.clear()


@pytest.fixture()
def hasher():
    return PasswordHasher(Bcrypt(), rounds=4)


@pytest.fixture()
def store(hasher):
    return SessionStore(hasher, cleanup_interval_sec=0.01, inactive_threshold_sec=60)


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def settings():
    return GameSettings(max_players=5)


@pytest.fixture()
def services(store, gateway, hasher, settings):
    return BuzzerServices.build(store, gateway, hasher, settings)


@pytest.fixture()
def session_code(services):
    """A fresh session created with GM password 'gmsecret'."""
    session = services.sessions.create_session('gmsecret', 'gm-sid')
    services.sessions.gateway.clear()
    return session.join_code


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    created = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()
