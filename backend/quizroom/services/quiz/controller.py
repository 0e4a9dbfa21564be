"""Room lifecycle and the per-room quiz state machine.

Phases cycle ``waiting -> categorySelection -> playing -> finished -> waiting``.
Client actions and timer callbacks both go through ``GameController`` and
run under one re-entrant lock, so a fired question timer and a racing
``submitAnswer`` never see a half-updated room.

Each room holds at most one pending timer. Arming a timer cancels the
previous one, and a firing timer checks that it is still the room's current
handle before doing anything.
"""
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from quizroom.errors import (
    AlreadyMember,
    Forbidden,
    InvalidState,
    NotAuthenticated,
    NotFound,
    NotInRoom,
    RoomFull,
    ValidationError,
)
from quizroom.messages import AnswerSubmission, ServerEvent
from quizroom.models import Answer, ConnectionUser, GamePhase, Player, Room, generate_room_id
from .exposure import ExposureTracker
from .registry import ConnectionRegistry, RoomRegistry, normalize_name
from .scoring import rank_players, score_answer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameSettings:
    max_players: int = 8
    min_players: int = 2
    time_limit_ms: int = 9000
    question_start_delay_sec: float = 2.0
    result_display_sec: float = 5.0
    final_screen_sec: float = 10.0
    reveal_when_all_answered: bool = False

    @classmethod
    def from_config(cls, config) -> 'GameSettings':
        return cls(
            max_players=int(config.get('MAX_PLAYERS', 8)),
            min_players=int(config.get('MIN_PLAYERS', 2)),
            time_limit_ms=int(config.get('QUESTION_TIME_LIMIT_MS', 9000)),
            question_start_delay_sec=float(config.get('QUESTION_START_DELAY_SEC', 2)),
            result_display_sec=float(config.get('RESULT_DISPLAY_SEC', 5)),
            final_screen_sec=float(config.get('FINAL_SCREEN_DURATION_SEC', 10)),
            reveal_when_all_answered=bool(config.get('REVEAL_WHEN_ALL_ANSWERED', False)),
        )


def make_rng(seed=None) -> random.Random:
    """Seeded PRNG when a seed is given, the OS source otherwise."""
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


class GameController:

    def __init__(self, pool, gateway, scheduler, rng: Optional[random.Random] = None,
                 settings: Optional[GameSettings] = None, clock=time.monotonic):
        self.pool = pool
        self.gateway = gateway
        self.scheduler = scheduler
        self.rng = rng or make_rng()
        self.settings = settings or GameSettings()
        self.clock = clock
        self.connections = ConnectionRegistry()
        self.rooms = RoomRegistry()
        self.exposure = ExposureTracker()
        self.lock = threading.RLock()

    # ---- lookups ----

    def _require_user(self, connection_id) -> ConnectionUser:
        user = self.connections.get(connection_id)
        if user is None:
            raise NotAuthenticated('Please set a nickname first.')
        return user

    def _require_room(self, connection_id) -> Tuple[ConnectionUser, Room]:
        user = self._require_user(connection_id)
        if not user.room_id:
            raise NotInRoom('You are not in a room.')
        room = self.rooms.get(user.room_id)
        if room is None:
            stale = user.room_id
            user.room_id = None
            raise NotFound(stale, 'The room could not be found.')
        return user, room

    @staticmethod
    def _require_host(room: Room, connection_id, action: str) -> None:
        if room.host != connection_id:
            raise Forbidden(f'Only the host can {action}.')

    # ---- snapshots ----

    def room_summaries(self):
        with self.lock:
            return self.rooms.summaries()

    def connection_count(self) -> int:
        with self.lock:
            return len(self.connections)

    def room_count(self) -> int:
        with self.lock:
            return len(self.rooms)

    def status(self):
        return {
            'activeRooms': self.room_count(),
            'connectedUsers': self.connection_count(),
        }

    def send_room_list(self, connection_id) -> None:
        with self.lock:
            self.gateway.to_connection(connection_id, ServerEvent.ROOM_LIST_UPDATED, self.rooms.summaries())

    def _broadcast_room_list(self) -> None:
        self.gateway.to_everyone(ServerEvent.ROOM_LIST_UPDATED, self.rooms.summaries())

    # ---- timers ----

    def _cancel_timer(self, room: Room) -> None:
        if room.timer is not None:
            room.timer.cancel()
            logger.debug(f"[timer-cancel] room={room.id} handle={room.timer!r}")
            room.timer = None

    def _arm_timer(self, room: Room, delay: float, step, label: str) -> None:
        self._cancel_timer(room)

        def _fire(handle):
            with self.lock:
                if self.rooms.get(room.id) is not room or room.timer is not handle:
                    logger.info(f"[timer-abort] room={room.id} label={label} superseded")
                    return
                room.timer = None
                logger.info(f"[timer-fire] room={room.id} label={label} phase={room.game_phase.value}")
                step(room)

        room.timer = self.scheduler.schedule(delay, _fire, label=f"{room.id}:{label}")
        logger.info(f"[timer-set] room={room.id} label={label} delay={delay}s")

    # ---- connections ----

    def set_nickname(self, connection_id, name) -> str:
        with self.lock:
            nickname = self.connections.set_display_name(connection_id, name)
            user = self.connections.get(connection_id)
            room = self.rooms.get(user.room_id) if user.room_id else None
            if room is not None:
                player = room.get_player(connection_id)
                if player is not None:
                    player.nickname = nickname
            logger.info(f"[nickname] connection={connection_id} nickname={nickname}")
            self.gateway.to_connection(connection_id, ServerEvent.NICKNAME_SET, {'success': True, 'nickname': nickname})
            return nickname

    def drop_connection(self, connection_id) -> None:
        with self.lock:
            user = self.connections.get(connection_id)
            if user is None:
                return
            logger.info(f"[disconnect] connection={connection_id} nickname={user.nickname}")
            if user.room_id:
                self._leave_current_room(user)
            self.connections.remove(connection_id)

    # ---- rooms ----

    def create_room(self, connection_id, name) -> Room:
        with self.lock:
            user = self._require_user(connection_id)
            room_name = normalize_name(name, 'Room name')
            if user.room_id:
                self._leave_current_room(user)

            room_id = generate_room_id(self.rng, self.rooms.exists)
            room = Room(
                id=room_id,
                name=room_name,
                host=connection_id,
                players=[Player(id=connection_id, nickname=user.nickname, is_host=True)],
                max_players=self.settings.max_players,
            )
            self.rooms.add(room)
            user.room_id = room_id
            self.gateway.join(connection_id, room_id)
            logger.info(f"[room-created] room={room_id} name={room_name} host={connection_id}")

            self.gateway.to_connection(connection_id, ServerEvent.ROOM_CREATED, {'room': room.to_dict()})
            self._broadcast_room_list()
            return room

    def join_room(self, connection_id, room_id) -> Room:
        with self.lock:
            user = self._require_user(connection_id)
            room = self.rooms.get(room_id)
            if room is None:
                raise NotFound(room_id, 'That room does not exist.')
            if room.game_started:
                raise InvalidState('The game in this room has already started.')
            if len(room.players) >= room.max_players:
                raise RoomFull(room.id)
            if user.room_id == room.id:
                raise AlreadyMember(room.id)

            if user.room_id:
                self._leave_current_room(user)

            player = Player(id=connection_id, nickname=user.nickname, is_host=False)
            room.players.append(player)
            user.room_id = room.id
            self.gateway.join(connection_id, room.id)
            logger.info(f"[room-joined] room={room.id} connection={connection_id} players={len(room.players)}")

            self.gateway.to_room(room.id, ServerEvent.PLAYER_JOINED, {'player': player.to_dict(), 'room': room.to_dict()})
            self.gateway.to_connection(connection_id, ServerEvent.ROOM_JOINED, {'room': room.to_dict()})
            self._broadcast_room_list()
            return room

    def leave_room(self, connection_id) -> None:
        with self.lock:
            user = self.connections.get(connection_id)
            if user is None or not user.room_id:
                return
            self._leave_current_room(user)

    def _leave_current_room(self, user: ConnectionUser) -> None:
        room_id = user.room_id
        user.room_id = None
        room = self.rooms.get(room_id)
        if room is None:
            return

        self.gateway.leave(user.id, room.id)
        room.players = [p for p in room.players if p.id != user.id]
        room.player_answers.pop(user.id, None)
        room.player_scores.pop(user.id, None)
        logger.info(f"[room-left] room={room.id} connection={user.id} remaining={len(room.players)}")

        if not room.players:
            self._cancel_timer(room)
            self.rooms.remove(room.id)
            self.exposure.clear(room.id)
            logger.info(f"[room-deleted] room={room.id}")
        else:
            if room.host == user.id:
                new_host = room.players[0]
                new_host.is_host = True
                room.host = new_host.id
                logger.info(f"[host-changed] room={room.id} host={new_host.id}")
                self.gateway.to_room(room.id, ServerEvent.HOST_CHANGED, {'newHost': new_host.to_dict(), 'room': room.to_dict()})
            self.gateway.to_room(room.id, ServerEvent.PLAYER_LEFT, {'playerId': user.id, 'room': room.to_dict()})
            self._maybe_reveal_early(room)

        self._broadcast_room_list()

    # ---- game phases ----

    def start_game(self, connection_id) -> None:
        with self.lock:
            _, room = self._require_room(connection_id)
            self._require_host(room, connection_id, 'start the game')
            if room.game_phase != GamePhase.WAITING:
                raise InvalidState('The game has already started.')
            if len(room.players) < self.settings.min_players:
                raise ValidationError(f'At least {self.settings.min_players} players are required to start.')

            room.game_started = True
            room.game_phase = GamePhase.CATEGORY_SELECTION
            logger.info(f"[game-started] room={room.id} players={len(room.players)}")
            self.gateway.to_room(room.id, ServerEvent.GAME_STARTED, {'room': room.to_dict()})
            self._broadcast_room_list()

    def select_category(self, connection_id, category_id) -> None:
        with self.lock:
            _, room = self._require_room(connection_id)
            self._require_host(room, connection_id, 'choose the category')
            if room.game_phase != GamePhase.CATEGORY_SELECTION:
                raise InvalidState('The room is not choosing a category.')
            category = self.pool.get_category(category_id)
            if category is None:
                raise ValidationError('Unknown category.')

            room.selected_category = category
            room.game_phase = GamePhase.PLAYING
            room.current_question_index = 0
            room.player_answers = {}
            room.result_shown = False
            room.question_started_at = None
            self.exposure.ensure(room.id, category.id)
            questions = self.exposure.unseen(room.id, category.id, self.pool.questions_for(category.id))
            self.rng.shuffle(questions)
            room.questions = questions
            room.player_scores = {p.id: 0 for p in room.players}
            logger.info(f"[category-selected] room={room.id} category={category.id} questions={len(questions)}")

            self.gateway.to_room(room.id, ServerEvent.CATEGORY_SELECTED, {'room': room.to_dict(), 'category': category.to_dict()})
            self._broadcast_room_list()
            if not questions:
                # nothing unseen left in this category: skip the lead-in delay
                self.end_quiz(room)
                return
            self._arm_timer(room, self.settings.question_start_delay_sec, self.send_next_question, 'first-question')

    def send_next_question(self, room: Room) -> None:
        with self.lock:
            if room.game_phase != GamePhase.PLAYING:
                return
            if room.current_question_index >= len(room.questions):
                self.end_quiz(room)
                return

            question = room.questions[room.current_question_index]
            room.player_answers = {}
            room.question_started_at = self.clock()
            room.result_shown = False
            self._cancel_timer(room)

            options = [question.correct_answer, *question.incorrect_answers]
            self.rng.shuffle(options)
            self.gateway.to_room(room.id, ServerEvent.QUESTION_START, {
                'questionNumber': room.current_question_index + 1,
                'totalQuestions': len(room.questions),
                'question': question.question,
                'options': options,
                'difficulty': question.difficulty,
                'timeLimit': self.settings.time_limit_ms,
            })
            logger.info(f"[question-start] room={room.id} number={room.current_question_index + 1}/{len(room.questions)} question={question.id}")
            self._arm_timer(room, self.settings.time_limit_ms / 1000, self.show_question_result, 'question-timeout')

    def submit_answer(self, connection_id, payload) -> dict:
        with self.lock:
            _, room = self._require_room(connection_id)
            if room.game_phase != GamePhase.PLAYING:
                raise InvalidState('The quiz is not in progress.')
            question = room.current_question
            if question is None or room.question_started_at is None or room.result_shown:
                raise ValidationError('There is no open question.')
            submission = AnswerSubmission.from_payload(payload)

            limit = self.settings.time_limit_ms
            if submission.time_spent_ms is None:
                spent = (self.clock() - room.question_started_at) * 1000
            else:
                spent = submission.time_spent_ms
            spent = min(max(0.0, spent), float(limit))

            # resubmission replaces the earlier answer
            room.player_answers[connection_id] = Answer(answer=submission.answer, time_spent_ms=spent)
            preview = {
                'isCorrect': submission.answer == question.correct_answer,
                'points': score_answer(submission.answer, question.correct_answer, spent, limit),
                'correctAnswer': question.correct_answer,
            }
            self.gateway.to_connection(connection_id, ServerEvent.ANSWER_SUBMITTED, preview)
            self._maybe_reveal_early(room)
            return preview

    def _maybe_reveal_early(self, room: Room) -> None:
        if not self.settings.reveal_when_all_answered:
            return
        if room.game_phase != GamePhase.PLAYING or room.result_shown or room.question_started_at is None:
            return
        if room.current_question is None:
            return
        if all(p.id in room.player_answers for p in room.players):
            self.show_question_result(room)

    def show_question_result(self, room: Room) -> None:
        with self.lock:
            if room.result_shown:
                logger.debug(f"[result-skip] room={room.id} index={room.current_question_index} already shown")
                return
            question = room.current_question
            if room.game_phase != GamePhase.PLAYING or question is None:
                return
            room.result_shown = True
            self._cancel_timer(room)

            limit = self.settings.time_limit_ms
            player_results = []
            for player in room.players:
                answer = room.player_answers.get(player.id)
                if answer is None:
                    submitted, spent = None, float(limit)
                else:
                    submitted, spent = answer.answer, answer.time_spent_ms
                points = score_answer(submitted, question.correct_answer, spent, limit)
                room.player_scores[player.id] = room.player_scores.get(player.id, 0) + points
                player_results.append({
                    'playerId': player.id,
                    'nickname': player.nickname,
                    'answer': submitted,
                    'isCorrect': submitted is not None and submitted == question.correct_answer,
                    'timeSpent': spent,
                    'points': points,
                    'score': room.player_scores[player.id],
                })

            self.gateway.to_room(room.id, ServerEvent.QUESTION_RESULT, {
                'questionNumber': room.current_question_index + 1,
                'correctAnswer': question.correct_answer,
                'explanation': question.explanation,
                'playerResults': player_results,
            })
            self.exposure.mark(room.id, room.selected_category.id, question.id)
            logger.info(f"[question-result] room={room.id} number={room.current_question_index + 1} answers={len(room.player_answers)}")
            self._arm_timer(room, self.settings.result_display_sec, self._advance_question, 'next-question')

    def _advance_question(self, room: Room) -> None:
        room.current_question_index += 1
        self.send_next_question(room)

    def end_quiz(self, room: Room) -> None:
        with self.lock:
            self._cancel_timer(room)
            room.game_phase = GamePhase.FINISHED
            room.player_answers = {}
            room.result_shown = True
            room.question_started_at = None

            leaderboard = rank_players(room.players, room.player_scores)
            category = room.selected_category.name if room.selected_category else None
            logger.info(f"[quiz-finished] room={room.id} category={category} players={len(leaderboard)}")
            self.gateway.to_room(room.id, ServerEvent.QUIZ_FINISHED, {'finalScores': leaderboard, 'category': category})
            self._arm_timer(room, self.settings.final_screen_sec, self._return_to_waiting, 'back-to-waiting')

    def _return_to_waiting(self, room: Room) -> None:
        room.game_phase = GamePhase.WAITING
        room.game_started = False
        room.selected_category = None
        room.questions = []
        room.current_question_index = 0
        room.player_scores = {}
        room.player_answers = {}
        room.result_shown = False
        room.question_started_at = None
        logger.info(f"[back-to-waiting] room={room.id}")
        self.gateway.to_room(room.id, ServerEvent.BACK_TO_WAITING, {'room': room.to_dict()})
        self._broadcast_room_list()

    def end_game(self, connection_id) -> None:
        with self.lock:
            _, room = self._require_room(connection_id)
            self._require_host(room, connection_id, 'end the game')
            if room.game_phase != GamePhase.PLAYING:
                raise InvalidState('The quiz is not in progress.')
            logger.info(f"[end-game] room={room.id} index={room.current_question_index} by={connection_id}")
            self._cancel_timer(room)
            # answers for the interrupted question are never tallied
            room.player_answers = {}
            room.result_shown = True
            self.end_quiz(room)
