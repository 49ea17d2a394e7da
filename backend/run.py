import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

from buzzer import create_app, socketio  # noqa: E402

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

app = create_app()

if __name__ == '__main__':
    store = app.extensions['buzzer'].store
    try:
        # Use SocketIO server to enable websockets in dev
        socketio.run(
            app,
            host=app.config['HOST'],
            port=app.config['PORT'],
            debug=os.environ.get('FLASK_DEBUG', '0') == '1',
            allow_unsafe_werkzeug=True,
        )
    finally:
        store.stop_cleanup()
