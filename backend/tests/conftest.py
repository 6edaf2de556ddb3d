import os
import sys
import pytest

# Ensure the backend root (containing the `sketchbluff` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sketchbluff.game.prompts import PromptBank
from sketchbluff.game.session import Game, GameSettings
from sketchbluff.server import create_app


class TestConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    CORS_ORIGINS = '*'
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = 'threading'
    MIN_PLAYERS = 2
    SESSION_CODE_LENGTH = 6
    DRAWING_DURATION_SEC = 300
    VOTING_DURATION_SEC = 120
    GUESSING_DURATION_SEC = 180
    RESULTS_DURATION_SEC = 30
    EMPTY_SESSION_TTL_SEC = 10
    SESSION_SWEEP_SEC = 0


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Fires even when cancelled, to simulate a callback that lost the race.
        self.callback()


class FakeTimers:
    """Timer factory that never fires on its own; tests fire handles by hand."""

    def __init__(self):
        self.armed = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.armed.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.armed if not t.cancelled]

    @property
    def last(self):
        return self.armed[-1]


class ScriptedRandom:
    """Stands in for random.Random: `choice` returns the scripted values in order."""

    def __init__(self, values):
        self._values = list(values)

    def choice(self, seq):
        value = self._values.pop(0)
        assert value in seq
        return value


@pytest.fixture()
def timers():
    return FakeTimers()


@pytest.fixture()
def published():
    return []


@pytest.fixture()
def make_game(timers, published):
    def _make(prompts=None, code='TEST01', **settings):
        if prompts:
            bank = PromptBank(sorted(set(prompts)), rng=ScriptedRandom(prompts))
        else:
            bank = PromptBank()
        return Game(
            code,
            settings=GameSettings(**settings),
            prompt_bank=bank,
            timer_factory=timers,
            publish=lambda event, payload, to=None: published.append((event, payload, to)),
        )

    return _make


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['sketchbluff']


@pytest.fixture()
def sio_factory(flask_app, socketio):
    clients = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
