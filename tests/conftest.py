import os
import random
import sys

import pytest

# Ensure the project root (containing the `domino` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from domino import create_app, socketio
from domino.models import Tile
from domino.services.game.registry import registry
from domino.services.game.session import GameSession

NAMES = ['Ana', 'Bruno', 'Caio', 'Dedé']


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    DEFAULT_TABLE_ID = 'main'
    PORT = 3001
    TURN_TIMEOUT_SEC = 0
    ROUND_RESULT_DELAY_SEC = 0
    LOCKED_RESULT_DELAY_SEC = 0
    STATE_DELIVERY_DELAY_SEC = 0
    TIMER_HEARTBEAT_SEC = 0
    DISCONNECT_GRACE_SEC = 0


@pytest.fixture()
def flask_app():
    registry.clear(rng_factory=lambda: random.Random(1234))
    application = create_app(TestConfig)
    with application.app_context():
        yield application
    registry.clear(rng_factory=random.Random)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except RuntimeError:
        pass


@pytest.fixture()
def session():
    return GameSession(table_id='test', rng=random.Random(42))


@pytest.fixture()
def full_session(session):
    """Four seated players with fixed teams: seats 0 and 2 on team 1."""
    for i, name in enumerate(NAMES):
        assert session.add_player(f'sid-{i}', name).success
    set_teams(session, [1, 2, 1, 2])
    return session


def set_teams(session, teams):
    session._teams = {1: [], 2: []}
    for player, team in zip(session._players, teams):
        player.team = team
        session._teams[team].append(player)


def tiles(*pairs):
    return [Tile(a, b) for a, b in pairs]


@pytest.fixture()
def rig():
    """Force a started session into a hand-built position."""

    def _rig(session, hands, table=(), current=0, boneyard=()):
        session._started = True
        session._hands = {p.id: tiles(*hand) for p, hand in zip(session._players, hands)}
        session._table = tiles(*table)
        session._boneyard = tiles(*boneyard)
        session._current_index = current
        session._pass_count = 0
        session._last_placed = None
        return session

    return _rig


def player_ids(session):
    return [p.id for p in session.get_players()]


@pytest.fixture()
def deferred(monkeypatch):
    """Collect background tasks instead of starting them; run them by hand."""
    tasks = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda target, *args: tasks.append((target, args)))
    monkeypatch.setattr(socketio, 'sleep', lambda seconds=0: None)
    return tasks


def run_deferred(tasks):
    pending = list(tasks)
    tasks.clear()
    for target, args in pending:
        target(*args)
