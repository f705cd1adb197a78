from flask import Flask, current_app
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def _parse_origins(value):
    if not value or value.strip() == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


def get_engine():
    """The game engine bound to the current Flask app."""
    return current_app.extensions['chase_engine']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = _parse_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from chase.main import main
    flask_app.register_blueprint(main)

    from chase.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Composition root: one engine per app, no module-level game state
    from chase.broadcast import SocketIOBroadcaster
    from chase.services.games.engine import GameEngine
    from chase.services.games.settings import GameSettings

    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/')
    engine = GameEngine.create(
        SocketIOBroadcaster(socketio, namespace=namespace),
        settings=GameSettings.from_mapping(flask_app.config),
        start_task=socketio.start_background_task,
        sleep=socketio.sleep,
        logger=flask_app.logger,
    )
    flask_app.extensions['chase_engine'] = engine

    from chase.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=namespace)

    if not flask_app.config.get('TESTING') or flask_app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        engine.reveal_scheduler.start()

    return flask_app
