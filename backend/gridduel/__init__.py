from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, game_service=None):
    """Build the Flask app, bind Socket.IO and wire the game dispatcher.

    ``game_service`` lets callers (tests) inject a pre-built ``GameService``;
    otherwise one is created per app from the config.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ALLOWED_ORIGINS', '*')
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from gridduel.main import main
    flask_app.register_blueprint(main)

    from gridduel.services.games.service import GameService
    if game_service is None:
        game_service = GameService(game_over_delay_ms=flask_app.config.get('GAME_OVER_DELAY_MS', 300))
    flask_app.extensions['game_service'] = game_service

    # Register Socket.IO event handlers against this app's service
    from gridduel.socketio_events import register_socketio_handlers
    register_socketio_handlers(game_service, namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    return flask_app
