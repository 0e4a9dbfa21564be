import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000',
        ).split(',')
        if origin.strip()
    ]
    # Directory with one JSON file per quiz category
    QUESTIONS_DIR = os.environ.get('QUESTIONS_DIR') or os.path.join(BASE_DIR, 'quizroom', 'data', 'questions')
    # Room limits
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # Question timing
    QUESTION_TIME_LIMIT_MS = int(os.environ.get('QUESTION_TIME_LIMIT_MS', '9000'))
    QUESTION_START_DELAY_SEC = float(os.environ.get('QUESTION_START_DELAY_SEC', '2'))
    RESULT_DISPLAY_SEC = float(os.environ.get('RESULT_DISPLAY_SEC', '5'))
    # Final screen hold time before the room returns to waiting (seconds)
    FINAL_SCREEN_DURATION_SEC = float(os.environ.get('FINAL_SCREEN_DURATION_SEC', '10'))
    # Optional: close a question as soon as every player has answered
    REVEAL_WHEN_ALL_ANSWERED = _env_flag('REVEAL_WHEN_ALL_ANSWERED')
    # Optional: seed the shuffles (room codes, question order, answer options)
    RANDOM_SEED = os.environ.get('RANDOM_SEED') or None
    # Timer workers wake every N seconds to log and to notice cancellation (0 = one sleep)
    TIMER_HEARTBEAT_SEC = float(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # Tests drive timers by hand
    MANUAL_TIMERS = _env_flag('MANUAL_TIMERS')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
