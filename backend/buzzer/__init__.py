from flask import Flask
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config, validate_config

bcrypt = Bcrypt()
socketio = SocketIO(async_mode=None)


def _cors_origins(config):
    origins = config.get('CORS_ORIGINS', '*')
    if origins == '*':
        return origins
    return [origin.strip() for origin in origins.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    validate_config(flask_app.config, flask_app.logger)

    allowed_origins = _cors_origins(flask_app.config)
    bcrypt.init_app(flask_app)
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from buzzer.gateway import SocketIOGateway
    from buzzer.services import BuzzerServices
    from buzzer.services.games import GameSettings
    from buzzer.session_store import SessionStore
    from buzzer.utils.passwords import PasswordHasher

    hasher = PasswordHasher(bcrypt)
    store = SessionStore(
        hasher,
        cleanup_interval_sec=flask_app.config['SESSION_CLEANUP_INTERVAL_SEC'],
        inactive_threshold_sec=flask_app.config['SESSION_INACTIVE_THRESHOLD_SEC'],
    )
    flask_app.extensions['buzzer'] = BuzzerServices.build(
        store,
        SocketIOGateway(socketio),
        hasher,
        GameSettings.from_config(flask_app.config),
    )

    from buzzer.main import main
    flask_app.register_blueprint(main)

    # Importing here ensures the handlers bind to the initialized socketio instance
    from buzzer.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # The sweep runs for the life of the process; tests drive it by hand.
    if not flask_app.config.get('TESTING'):
        store.start_cleanup(socketio.start_background_task)

    return flask_app
