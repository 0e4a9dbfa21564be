import json
import logging
import os
from typing import Dict, Iterable, List, Optional

from quizroom.models import Category, Question

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    Category(id=1, name='Anime Club', description='Questions about anime', file='anime.json'),
    Category(id=2, name='History for Everyone', description='Questions about history', file='history.json'),
    Category(id=3, name='General Knowledge Duo', description='General knowledge questions', file='general.json'),
    Category(id=4, name='Math Classroom', description='Questions about mathematics', file='math.json'),
)


def _field(raw, camel, snake, default=None):
    if camel in raw:
        return raw[camel]
    return raw.get(snake, default)


def parse_question(raw) -> Optional[Question]:
    """Build a Question from one JSON entry; returns None when malformed."""
    if not isinstance(raw, dict):
        return None
    qid = raw.get('id')
    text = raw.get('question')
    correct = _field(raw, 'correctAnswer', 'correct_answer')
    incorrect = _field(raw, 'incorrectAnswers', 'incorrect_answers', [])
    if qid is None or not isinstance(text, str) or not isinstance(correct, str):
        return None
    if not isinstance(incorrect, list) or not all(isinstance(a, str) for a in incorrect):
        return None
    return Question(
        id=str(qid),
        question=text,
        correct_answer=correct,
        incorrect_answers=tuple(incorrect),
        difficulty=str(raw.get('difficulty') or 'normal'),
        explanation=str(raw.get('explanation') or ''),
    )


class QuestionPool:
    """Per-category question sets, loaded once and read-only afterwards."""

    def __init__(self, categories: Iterable[Category], questions: Dict[int, List[Question]]):
        self._categories = {c.id: c for c in categories}
        self._questions = {cid: tuple(questions.get(cid, ())) for cid in self._categories}

    @classmethod
    def from_directory(cls, path, categories=DEFAULT_CATEGORIES) -> 'QuestionPool':
        loaded = {}
        for category in categories:
            loaded[category.id] = cls._load_category(os.path.join(path, category.file), category)
        return cls(categories, loaded)

    @staticmethod
    def _load_category(file_path, category) -> List[Question]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.warning(f"[pool] category={category.id} file={file_path} not found, using empty pool")
            return []
        except (OSError, ValueError) as exc:
            logger.warning(f"[pool] category={category.id} file={file_path} unreadable ({exc}), using empty pool")
            return []

        if isinstance(data, dict):
            data = data.get('questions')
        if not isinstance(data, list):
            logger.warning(f"[pool] category={category.id} file={file_path} has no question list, using empty pool")
            return []

        questions = []
        seen = set()
        for position, raw in enumerate(data):
            question = parse_question(raw)
            if question is None:
                logger.warning(f"[pool] category={category.id} skipping malformed question at position {position}")
                continue
            if question.id in seen:
                logger.warning(f"[pool] category={category.id} skipping duplicate question id={question.id}")
                continue
            seen.add(question.id)
            questions.append(question)
        logger.info(f"[pool] category={category.id} loaded {len(questions)} questions")
        return questions

    def categories(self) -> List[Category]:
        return sorted(self._categories.values(), key=lambda c: c.id)

    def get_category(self, category_id) -> Optional[Category]:
        if isinstance(category_id, bool):
            return None
        if isinstance(category_id, str) and category_id.strip().isdigit():
            category_id = int(category_id.strip())
        if not isinstance(category_id, int):
            return None
        return self._categories.get(category_id)

    def questions_for(self, category_id) -> tuple:
        return self._questions.get(category_id, ())

    def count(self, category_id) -> int:
        return len(self.questions_for(category_id))
