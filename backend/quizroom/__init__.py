from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizroom.services.quiz.controller import GameController, GameSettings, make_rng
    from quizroom.services.quiz.gateway import SocketIOGateway
    from quizroom.services.quiz.question_pool import QuestionPool
    from quizroom.services.quiz.scheduler import BackgroundScheduler, ManualScheduler

    if flask_app.config.get('MANUAL_TIMERS'):
        scheduler = ManualScheduler()
    else:
        scheduler = BackgroundScheduler(socketio, heartbeat_sec=flask_app.config.get('TIMER_HEARTBEAT_SEC', 0))

    pool = QuestionPool.from_directory(flask_app.config['QUESTIONS_DIR'])
    flask_app.extensions['quizroom'] = GameController(
        pool=pool,
        gateway=SocketIOGateway(socketio, namespace),
        scheduler=scheduler,
        rng=make_rng(flask_app.config.get('RANDOM_SEED')),
        settings=GameSettings.from_config(flask_app.config),
    )

    from quizroom.routes import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from quizroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace)

    @click.command('questions-check')
    def questions_check_command():
        """Loads the question files and prints how many questions each category has."""
        controller = flask_app.extensions['quizroom']
        for category in controller.pool.categories():
            click.echo(f"{category.id}: {category.name} ({controller.pool.count(category.id)} questions)")

    flask_app.cli.add_command(questions_check_command)

    return flask_app
