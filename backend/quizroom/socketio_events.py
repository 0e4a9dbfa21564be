import logging
from functools import wraps

from flask import current_app, request

from quizroom import socketio
from quizroom.errors import QuizError
from quizroom.messages import ClientEvent

logger = logging.getLogger(__name__)


def _controller():
    return current_app.extensions['quizroom']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _client_action(func):
    """Run a client action, reporting rejected actions back to the caller only."""
    @wraps(func)
    def wrapper(*args):
        sid = _get_sid()
        try:
            func(sid, *args)
        except QuizError as exc:
            logger.info(f"[rejected] connection={sid} action={func.__name__} reason={exc.code}: {exc.message}")
            _controller().gateway.send_error(sid, exc.message, exc.code)
    return wrapper


def _payload(args):
    return args[0] if args else None


def handle_connect(auth=None):
    _controller().send_room_list(_get_sid())


def handle_disconnect(reason=None):
    _controller().drop_connection(_get_sid())


@_client_action
def handle_set_nickname(sid, *args):
    _controller().set_nickname(sid, _payload(args))


@_client_action
def handle_create_room(sid, *args):
    _controller().create_room(sid, _payload(args))


@_client_action
def handle_join_room(sid, *args):
    _controller().join_room(sid, _payload(args))


@_client_action
def handle_leave_room(sid, *args):
    _controller().leave_room(sid)


@_client_action
def handle_start_game(sid, *args):
    _controller().start_game(sid)


@_client_action
def handle_select_category(sid, *args):
    _controller().select_category(sid, _payload(args))


@_client_action
def handle_submit_answer(sid, *args):
    _controller().submit_answer(sid, _payload(args))


@_client_action
def handle_end_game(sid, *args):
    _controller().end_game(sid)


CLIENT_HANDLERS = {
    ClientEvent.SET_NICKNAME: handle_set_nickname,
    ClientEvent.CREATE_ROOM: handle_create_room,
    ClientEvent.JOIN_ROOM: handle_join_room,
    ClientEvent.LEAVE_ROOM: handle_leave_room,
    ClientEvent.START_GAME: handle_start_game,
    ClientEvent.SELECT_CATEGORY: handle_select_category,
    ClientEvent.SUBMIT_ANSWER: handle_submit_answer,
    ClientEvent.END_GAME: handle_end_game,
}


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the quiz namespace.

    Every ClientEvent must have a handler; a missing one is a programming
    error and stops the app from starting.
    """
    missing = [event.value for event in ClientEvent if event not in CLIENT_HANDLERS]
    if missing:
        raise RuntimeError(f"No Socket.IO handler bound for client events: {', '.join(missing)}")

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event, handler in CLIENT_HANDLERS.items():
        socketio.on_event(event.value, handler, namespace=namespace)
