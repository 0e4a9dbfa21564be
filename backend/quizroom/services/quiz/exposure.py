from typing import Dict, Iterable, List, Set

from quizroom.models import Question


class ExposureTracker:
    """Remembers which questions each room has already been served, per category.

    Records survive consecutive games in the same room and are only dropped
    when the room itself is deleted.
    """

    def __init__(self):
        self._served: Dict[str, Dict[int, Set[str]]] = {}

    def ensure(self, room_id: str, category_id: int) -> Set[str]:
        return self._served.setdefault(room_id, {}).setdefault(category_id, set())

    def exposed(self, room_id: str, category_id: int) -> Set[str]:
        return set(self._served.get(room_id, {}).get(category_id, ()))

    def unseen(self, room_id: str, category_id: int, questions: Iterable[Question]) -> List[Question]:
        served = self._served.get(room_id, {}).get(category_id, ())
        return [q for q in questions if q.id not in served]

    def mark(self, room_id: str, category_id: int, question_id: str) -> None:
        self.ensure(room_id, category_id).add(question_id)

    def clear(self, room_id: str) -> None:
        self._served.pop(room_id, None)

    def __contains__(self, room_id):
        return room_id in self._served
