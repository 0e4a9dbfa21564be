import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

ROOM_ID_CHARS = string.ascii_uppercase + string.digits


class GamePhase(str, Enum):
    WAITING = 'waiting'
    CATEGORY_SELECTION = 'categorySelection'
    PLAYING = 'playing'
    FINISHED = 'finished'


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    description: str
    file: str

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
        }


@dataclass(frozen=True)
class Question:
    id: str
    question: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...]
    difficulty: str
    explanation: str

    def to_dict(self):
        return {
            'id': self.id,
            'question': self.question,
            'correctAnswer': self.correct_answer,
            'incorrectAnswers': list(self.incorrect_answers),
            'difficulty': self.difficulty,
            'explanation': self.explanation,
        }


@dataclass
class Player:
    id: str
    nickname: str
    is_host: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'nickname': self.nickname,
            'isHost': self.is_host,
        }


@dataclass
class Answer:
    answer: str
    time_spent_ms: float


@dataclass
class ConnectionUser:
    id: str
    nickname: str
    room_id: Optional[str] = None


@dataclass
class Room:
    id: str
    name: str
    host: str
    players: List[Player]
    max_players: int = 8
    game_started: bool = False
    game_phase: GamePhase = GamePhase.WAITING
    selected_category: Optional[Category] = None
    questions: List[Question] = field(default_factory=list)
    current_question_index: int = 0
    player_scores: Dict[str, int] = field(default_factory=dict)
    player_answers: Dict[str, Answer] = field(default_factory=dict)
    result_shown: bool = False
    question_started_at: Optional[float] = None
    # The single pending timer (question timeout, next question, back to waiting)
    timer: Optional[object] = None
    created_at: float = field(default_factory=time.time)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def get_player(self, player_id) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'playerCount': len(self.players),
            'maxPlayers': self.max_players,
            'gameStarted': self.game_started,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'host': self.host,
            'players': [p.to_dict() for p in self.players],
            'playerCount': len(self.players),
            'maxPlayers': self.max_players,
            'gameStarted': self.game_started,
            'gamePhase': self.game_phase.value,
            'selectedCategory': self.selected_category.to_dict() if self.selected_category else None,
            'currentQuestionIndex': self.current_question_index,
            'totalQuestions': len(self.questions),
            'playerScores': dict(self.player_scores),
            'createdAt': self.created_at,
        }


def generate_room_id(rng, exists, length=6):
    """Generate a short room code that is not used by a live room."""
    while True:
        code = ''.join(rng.choice(ROOM_ID_CHARS) for _ in range(length))
        if not exists(code):
            return code
