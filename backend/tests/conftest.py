import os
import random
import sys
import pytest

# Ensure the backend root (containing the `quizroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from quizroom import create_app, socketio
from quizroom.messages import ServerEvent
from quizroom.models import Category, Question
from quizroom.services.quiz.controller import GameController, GameSettings
from quizroom.services.quiz.question_pool import QuestionPool
from quizroom.services.quiz.scheduler import ManualScheduler

NAMESPACE = '/ws'


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = NAMESPACE
    CORS_ORIGINS = []
    MANUAL_TIMERS = True
    RANDOM_SEED = 1234
    REVEAL_WHEN_ALL_ANSWERED = False


class RecordingGateway:
    """Collects every outbound event instead of sending it."""

    def __init__(self):
        self.sent = []
        self.members = {}

    def join(self, connection_id, room_id):
        self.members.setdefault(room_id, set()).add(connection_id)

    def leave(self, connection_id, room_id):
        self.members.get(room_id, set()).discard(connection_id)

    def to_connection(self, connection_id, event, payload):
        self.sent.append(('connection', connection_id, event.value, payload))

    def to_room(self, room_id, event, payload):
        self.sent.append(('room', room_id, event.value, payload))

    def to_everyone(self, event, payload):
        self.sent.append(('everyone', None, event.value, payload))

    def send_error(self, connection_id, message, code='error'):
        self.to_connection(connection_id, ServerEvent.ERROR, {'message': message, 'code': code})

    def payloads(self, event, target=None):
        return [
            payload for _, to, name, payload in self.sent
            if name == event and (target is None or to == target)
        ]

    def names(self):
        return [name for _, _, name, _ in self.sent]

    def clear(self):
        self.sent.clear()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_question(qid, correct='right', wrong=('wrong 1', 'wrong 2', 'wrong 3')):
    return Question(
        id=qid,
        question=f'Question {qid}?',
        correct_answer=correct,
        incorrect_answers=tuple(wrong),
        difficulty='easy',
        explanation=f'Because of {qid}.',
    )


@pytest.fixture()
def pool():
    categories = [
        Category(id=1, name='Trivia', description='Three questions', file='trivia.json'),
        Category(id=2, name='Empty', description='No questions', file='empty.json'),
    ]
    questions = {1: [make_question('q1'), make_question('q2'), make_question('q3')]}
    return QuestionPool(categories, questions)


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def settings():
    return GameSettings()


@pytest.fixture()
def game(pool, gateway, scheduler, clock, settings):
    return GameController(
        pool=pool,
        gateway=gateway,
        scheduler=scheduler,
        rng=random.Random(42),
        settings=settings,
        clock=clock,
    )


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()
