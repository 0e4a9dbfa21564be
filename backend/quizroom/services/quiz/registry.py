from typing import Dict, Iterator, List, Optional

from quizroom.errors import ValidationError
from quizroom.models import ConnectionUser, Room

MIN_NAME_LENGTH = 2


def normalize_name(value, what='Name') -> str:
    """Trim a user supplied name, rejecting anything shorter than two characters."""
    if not isinstance(value, str) or len(value.strip()) < MIN_NAME_LENGTH:
        raise ValidationError(f'{what} must be at least {MIN_NAME_LENGTH} characters long.')
    return value.strip()


class ConnectionRegistry:
    """Live connections and the display name / room each one is bound to."""

    def __init__(self):
        self._users: Dict[str, ConnectionUser] = {}

    def set_display_name(self, connection_id: str, name) -> str:
        nickname = normalize_name(name, 'Nickname')
        user = self._users.get(connection_id)
        if user is None:
            self._users[connection_id] = ConnectionUser(id=connection_id, nickname=nickname)
        else:
            user.nickname = nickname
        return nickname

    def get(self, connection_id: str) -> Optional[ConnectionUser]:
        return self._users.get(connection_id)

    def remove(self, connection_id: str) -> Optional[ConnectionUser]:
        return self._users.pop(connection_id, None)

    def __len__(self):
        return len(self._users)

    def __contains__(self, connection_id):
        return connection_id in self._users


class RoomRegistry:
    """Live rooms keyed by their short code."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    @staticmethod
    def _key(room_id) -> str:
        return room_id.strip().upper() if isinstance(room_id, str) else ''

    def add(self, room: Room) -> None:
        self._rooms[room.id] = room

    def get(self, room_id) -> Optional[Room]:
        return self._rooms.get(self._key(room_id))

    def remove(self, room_id) -> Optional[Room]:
        return self._rooms.pop(self._key(room_id), None)

    def exists(self, room_id) -> bool:
        return self._key(room_id) in self._rooms

    def summaries(self) -> List[dict]:
        return [room.summary() for room in self._rooms.values()]

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def __len__(self):
        return len(self._rooms)
