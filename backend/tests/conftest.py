import os
import sys
import random
import pytest

# Ensure the backend root (containing the `chase` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from chase import create_app, socketio
from chase.models import Area, Coordinate, Location
from chase.services.games.engine import GameEngine
from chase.services.games.settings import GameSettings


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = '/'
    CORS_ORIGINS = '*'
    LOG_LEVEL = 'WARNING'
    # Let tests send back-to-back location updates
    LOCATION_UPDATE_INTERVAL_MS = 0


CENTER = Coordinate(40.0, -74.0)
AREA = Area(CENTER, 500.0)


class FakeClock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class RecordingBroadcaster:
    def __init__(self):
        self.events = []
        self.members = {}

    def to_room(self, room_code, event, payload):
        self.events.append((room_code, event, payload))

    def enter(self, handle, room_code):
        self.members.setdefault(room_code, set()).add(handle)

    def leave(self, handle, room_code):
        self.members.get(room_code, set()).discard(handle)

    def close(self, room_code):
        self.members.pop(room_code, None)

    def named(self, event):
        return [payload for _, name, payload in self.events if name == event]

    def clear(self):
        self.events.clear()


class ManualTasks:
    """Captures background tasks so tests decide when they run."""

    def __init__(self):
        self.started = []

    def start(self, target, *args):
        self.started.append((target, args))

    def run_all(self):
        started, self.started = self.started, []
        for target, args in started:
            target(*args)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    created = []

    def make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def tasks():
    return ManualTasks()


@pytest.fixture()
def settings():
    # No bonus areas unless a test asks for them, so locations never trigger one
    return GameSettings(bonus_area_count=0)


@pytest.fixture()
def engine(broadcaster, clock, tasks, settings):
    return GameEngine.create(
        broadcaster,
        settings=settings,
        clock=clock,
        start_task=tasks.start,
        sleep=lambda seconds: None,
        rng=random.Random(7),
    )


def at(north_m=0.0, east_m=0.0, timestamp=0):
    """A location offset from the test area's center, in meters."""
    from chase.services.games.geometry import offset_point
    lat, lon = offset_point(CENTER.latitude, CENTER.longitude, north_m, east_m)
    return Location(lat, lon, timestamp)


class Game:
    """A started game: the host plays pursuer, plus one or more evaders."""

    def __init__(self, engine, evaders=1, duration_ms=None):
        self.engine = engine
        created = engine.create_room('host-sid', 'Hunter')
        self.code = created.room_code
        self.pursuer_id = created.player_id
        self.evader_ids = []
        self.evader_handles = []
        for i in range(evaders):
            handle = f'evader-sid-{i}'
            joined = engine.join_room(handle, self.code, f'Runner{i}')
            self.evader_ids.append(joined.player_id)
            self.evader_handles.append(handle)
            engine.select_role(handle, 'EVADER')
        engine.select_role('host-sid', 'PURSUER')
        engine.update_area('host-sid', AREA)
        if duration_ms:
            engine.set_duration('host-sid', duration_ms)
        engine.start_game('host-sid')

    @property
    def room(self):
        return self.engine.registry.get_room(self.code)

    def move(self, handle, north_m=0.0, east_m=0.0):
        return self.engine.location_update(handle, at(north_m, east_m, self.engine.clock()))


@pytest.fixture()
def game(engine):
    return Game(engine)
