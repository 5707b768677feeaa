import os
import sys
import pytest

# Ensure the backend root (containing the `wordguess` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from wordguess.chat.source import ChatSource
from wordguess.config import Config
from wordguess.game.errors import ChatSourceFailure
from wordguess.game.models import ChatMessage, Game
from wordguess.server import create_app


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    USERS_FILE = ''


class FakeChatSource(ChatSource):
    """Stands in for the live chat feed; tests push messages through `listener`."""

    instances = []

    def __init__(self, room, listener):
        super().__init__(room, listener)
        self.disconnected = False
        FakeChatSource.instances.append(self)

    def connect(self, timeout):
        if self.room == 'offline':
            raise ChatSourceFailure('User is offline')
        return 42

    def disconnect(self):
        self.disconnected = True


def chat(user, text, ts, nickname=None):
    return ChatMessage(user_id=user, unique_id=user, nickname=nickname or user.title(), text=text, ts_ms=ts)


@pytest.fixture()
def game():
    return Game()


@pytest.fixture()
def app_and_socketio():
    FakeChatSource.instances.clear()
    application, sio = create_app(TestConfig, source_factory=FakeChatSource)
    yield application, sio
    FakeChatSource.instances.clear()


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def runtime(flask_app):
    return flask_app.extensions['wordguess']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, socketio):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass
