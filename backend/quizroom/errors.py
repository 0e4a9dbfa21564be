"""Client-facing error taxonomy.

Every rejected client action raises one of these. The Socket.IO layer
catches ``QuizError`` and reports it privately to the initiating
connection; nothing here is fatal to a room.
"""


class QuizError(Exception):
    """Base class for all rejected client actions."""
    code = 'error'

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ValidationError(QuizError):
    """Malformed or out-of-range input (short name, unknown category...)."""
    code = 'validation_error'


class NotAuthenticated(QuizError):
    """The connection has not set a display name yet."""
    code = 'not_authenticated'


class NotInRoom(QuizError):
    """The action requires room membership."""
    code = 'not_in_room'


class NotFound(QuizError):
    """The referenced room no longer exists."""
    code = 'not_found'

    def __init__(self, room_id, message=None):
        self.room_id = room_id
        super().__init__(message or f"Room {room_id} not found")


class Forbidden(QuizError):
    """A non-host attempted a host-only action."""
    code = 'forbidden'


class InvalidState(QuizError):
    """The action is not valid in the room's current phase."""
    code = 'invalid_state'


class RoomFull(QuizError):
    """The room already holds its maximum number of players."""
    code = 'room_full'

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__('The room is full.')


class AlreadyMember(QuizError):
    """The connection is already a member of the room it tried to join."""
    code = 'already_member'

    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__('You are already in this room.')
