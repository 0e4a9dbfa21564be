import logging

from config import Config
from quizroom import create_app, socketio

logging.basicConfig(
    level=getattr(logging, str(Config.LOG_LEVEL).upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
