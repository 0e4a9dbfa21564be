from quizroom.messages import ServerEvent


class SocketIOGateway:
    """Delivers server events to one connection, one room, or everybody.

    Uses the server object directly so it also works from timer callbacks
    that run outside a Socket.IO request context.
    """

    def __init__(self, socketio, namespace='/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def join(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.enter_room(connection_id, room_id, namespace=self.namespace)

    def leave(self, connection_id: str, room_id: str) -> None:
        self.socketio.server.leave_room(connection_id, room_id, namespace=self.namespace)

    def to_connection(self, connection_id: str, event: ServerEvent, payload) -> None:
        self.socketio.emit(event.value, payload, to=connection_id, namespace=self.namespace)

    def to_room(self, room_id: str, event: ServerEvent, payload) -> None:
        self.socketio.emit(event.value, payload, to=room_id, namespace=self.namespace)

    def to_everyone(self, event: ServerEvent, payload) -> None:
        self.socketio.emit(event.value, payload, namespace=self.namespace)

    def send_error(self, connection_id: str, message: str, code: str = 'error') -> None:
        self.to_connection(connection_id, ServerEvent.ERROR, {'message': message, 'code': code})
