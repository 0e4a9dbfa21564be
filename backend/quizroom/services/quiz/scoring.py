import math
from typing import Dict, List, Optional

from quizroom.models import Player

BASE_POINTS = 100
BONUS_POINTS_PER_SECOND = 10


def score_answer(answer: Optional[str], correct_answer: str, time_spent_ms: float, time_limit_ms: int) -> int:
    """Points for one answer.

    A correct answer is worth 100 points plus 10 per second left on the
    clock; a wrong or missing answer is worth nothing.
    """
    if answer is None or answer != correct_answer:
        return 0
    remaining_ms = max(0.0, time_limit_ms - time_spent_ms)
    # halves round up, not to even
    return int(math.floor(BASE_POINTS + remaining_ms * BONUS_POINTS_PER_SECOND / 1000 + 0.5))


def rank_players(players: List[Player], scores: Dict[str, int]) -> List[dict]:
    """Leaderboard sorted by score with competition ranking (1, 1, 3)."""
    ordered = sorted(players, key=lambda p: scores.get(p.id, 0), reverse=True)
    leaderboard = []
    rank = 0
    previous = None
    for position, player in enumerate(ordered, start=1):
        score = scores.get(player.id, 0)
        if score != previous:
            rank = position
            previous = score
        leaderboard.append({
            'playerId': player.id,
            'nickname': player.nickname,
            'score': score,
            'rank': rank,
        })
    return leaderboard
