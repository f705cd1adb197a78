"""Socket.IO command surface.

Request/response commands (createRoom, joinRoom, rejoinRoom, catchAttempt)
answer through the acknowledgement callback; the rest reply only on failure,
with an ``error`` event sent to the caller alone.
"""
from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from chase import get_engine, socketio
from chase.errors import GameError, ValidationError
from chase.models import Area, Location

INTERNAL_ERROR = {'message': 'Request failed', 'code': 'INTERNAL'}


def _get_sid() -> str:
    return request.sid  # type: ignore


def command(ack=False):
    """Run a handler with the engine and caller sid, turning failures into replies."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(data=None, *args):
            payload = data if isinstance(data, dict) else {}
            try:
                return fn(get_engine(), _get_sid(), payload)
            except GameError as exc:
                current_app.logger.info(f"[rejected] event={fn.__name__} code={exc.code} message={exc.message}")
                if ack:
                    return {'success': False, 'error': exc.message, 'code': exc.code}
                emit('error', exc.to_dict())
            except Exception:
                current_app.logger.exception(f"[handler-error] event={fn.__name__}")
                if ack:
                    return {'success': False, 'error': INTERNAL_ERROR['message'], 'code': INTERNAL_ERROR['code']}
                emit('error', INTERNAL_ERROR)
            return None
        return wrapper
    return decorator


def handle_connect(auth=None):
    current_app.logger.debug(f"[connect] sid={_get_sid()}")
    emit('connected', {'message': 'Connected'})


def handle_disconnect(reason=None):
    sid = _get_sid()
    try:
        get_engine().disconnect(sid)
    except Exception:
        current_app.logger.exception(f"[handler-error] event=disconnect sid={sid}")


@command(ack=True)
def create_room(engine, sid, data):
    result = engine.create_room(sid, data.get('playerName'))
    return {'success': True, 'roomCode': result.room_code, 'playerId': result.player_id}


@command(ack=True)
def join_room(engine, sid, data):
    result = engine.join_room(sid, data.get('roomCode'), data.get('playerName'))
    return {'success': True, 'playerId': result.player_id, 'room': result.room}


@command(ack=True)
def rejoin_room(engine, sid, data):
    result = engine.rejoin_room(sid, data.get('roomCode'), data.get('playerId'))
    return {'success': True, 'playerId': result.player_id, 'room': result.room}


@command()
def select_role(engine, sid, data):
    engine.select_role(sid, data.get('role'))


@command()
def update_area(engine, sid, data):
    engine.update_area(sid, Area.from_dict(data.get('area')))


@command()
def set_game_duration(engine, sid, data):
    if 'durationMs' not in data:
        raise ValidationError('durationMs is required')
    engine.set_duration(sid, data.get('durationMs'))


@command()
def start_game(engine, sid, data):
    engine.start_game(sid)


@command()
def location_update(engine, sid, data):
    location = Location.from_dict(data.get('location') or {}, default_timestamp=engine.clock())
    engine.location_update(sid, location)


@command(ack=True)
def catch_attempt(engine, sid, data):
    return engine.catch_attempt(sid, data.get('targetPlayerId')).to_dict()


@command()
def chat_message(engine, sid, data):
    engine.chat(sid, data.get('message'))


@command()
def end_game(engine, sid, data):
    engine.end_game_by_host(sid)


EVENTS = {
    'createRoom': create_room,
    'joinRoom': join_room,
    'rejoinRoom': rejoin_room,
    'selectRole': select_role,
    'updateArea': update_area,
    'setGameDuration': set_game_duration,
    'startGame': start_game,
    'locationUpdate': location_update,
    'catchAttempt': catch_attempt,
    'chatMessage': chat_message,
    'endGame': end_game,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the connection lifecycle and command handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event, handler in EVENTS.items():
        socketio.on_event(event, handler, namespace=namespace)
