"""Inbound and outbound Socket.IO event names and payload parsing."""
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from quizroom.errors import ValidationError


class ClientEvent(str, Enum):
    SET_NICKNAME = 'setNickname'
    CREATE_ROOM = 'createRoom'
    JOIN_ROOM = 'joinRoom'
    LEAVE_ROOM = 'leaveRoom'
    START_GAME = 'startGame'
    SELECT_CATEGORY = 'selectCategory'
    SUBMIT_ANSWER = 'submitAnswer'
    END_GAME = 'endGame'


class ServerEvent(str, Enum):
    NICKNAME_SET = 'nicknameSet'
    ROOM_CREATED = 'roomCreated'
    ROOM_JOINED = 'roomJoined'
    PLAYER_JOINED = 'playerJoined'
    PLAYER_LEFT = 'playerLeft'
    HOST_CHANGED = 'hostChanged'
    GAME_STARTED = 'gameStarted'
    CATEGORY_SELECTED = 'categorySelected'
    QUESTION_START = 'questionStart'
    ANSWER_SUBMITTED = 'answerSubmitted'
    QUESTION_RESULT = 'questionResult'
    QUIZ_FINISHED = 'quizFinished'
    BACK_TO_WAITING = 'backToWaiting'
    ROOM_LIST_UPDATED = 'roomListUpdated'
    ERROR = 'error'


@dataclass(frozen=True)
class AnswerSubmission:
    answer: str
    time_spent_ms: Optional[float] = None

    @classmethod
    def from_payload(cls, payload: Any) -> 'AnswerSubmission':
        """Parse a ``submitAnswer`` payload.

        Accepts ``{"answer": ..., "timeSpent": ...}``; ``timeSpentMs`` is an
        alias. A missing time is left as ``None`` so the caller can measure
        it on the server clock.
        """
        if not isinstance(payload, dict):
            raise ValidationError('Answer payload must be an object.')
        answer = payload.get('answer')
        if not isinstance(answer, str):
            raise ValidationError('Answer must be a string.')
        raw_time = payload.get('timeSpent', payload.get('timeSpentMs'))
        if raw_time is None:
            return cls(answer=answer)
        if isinstance(raw_time, bool) or not isinstance(raw_time, (int, float)):
            raise ValidationError('timeSpent must be a number of milliseconds.')
        try:
            time_spent_ms = float(raw_time)
        except OverflowError:
            raise ValidationError('timeSpent is out of range.')
        if not math.isfinite(time_spent_ms):
            raise ValidationError('timeSpent is out of range.')
        return cls(answer=answer, time_spent_ms=time_spent_ms)
