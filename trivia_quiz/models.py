"""
Core data models for the trivia quiz session.
"""
import html
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

TRUE_FALSE_ANSWERS: Tuple[str, str] = ("True", "False")

# Provider category ids
CATEGORIES: Dict[str, int] = {
    "General Knowledge": 9,
    "Science": 17,
    "Math": 19,
    "History": 23,
}

DIFFICULTIES = ("easy", "medium", "hard")
QUESTION_TYPES = ("multiple", "boolean")


def decode_html(raw: str) -> str:
    """Decode HTML entities, falling back to the raw text on failure."""
    try:
        return html.unescape(raw)
    except (TypeError, ValueError, AttributeError) as e:
        logger.debug(
            f"HTML decode failed, keeping raw text: {e}",
            extra={'event_type': 'decode_fallback', 'raw_text': raw}
        )
        return raw


@dataclass(frozen=True)
class Question:
    """Represents a single fetched trivia question and its answer choices."""
    id: str
    text: str
    correct_answer: str
    incorrect_answers: Tuple[str, ...]
    presented_answers: Tuple[str, ...]

    @classmethod
    def create(
        cls,
        question_id: str,
        text: str,
        correct_answer: str,
        incorrect_answers: Sequence[str],
        rng: Optional[random.Random] = None
    ) -> "Question":
        """
        Build a question from raw provider fields.

        The presentation order is fixed as True/False for boolean questions
        and shuffled once for everything else.

        Args:
            question_id: Opaque id unique within the fetch batch
            text: Question text, possibly HTML-entity-encoded
            correct_answer: The correct answer
            incorrect_answers: One or more incorrect answers
            rng: Optional random source used for the shuffle

        Raises:
            ValueError: If no incorrect answers are given
        """
        incorrect = tuple(incorrect_answers)
        if not incorrect:
            raise ValueError("A question needs at least one incorrect answer")

        if len(incorrect) == 1 and correct_answer in TRUE_FALSE_ANSWERS:
            presented = TRUE_FALSE_ANSWERS
        else:
            answers = list(incorrect) + [correct_answer]
            (rng or random).shuffle(answers)
            presented = tuple(answers)

        return cls(
            id=question_id,
            text=decode_html(text),
            correct_answer=correct_answer,
            incorrect_answers=incorrect,
            presented_answers=presented,
        )


@dataclass
class QuizSettings:
    """Configuration settings for fetching and timing a quiz."""
    amount: int = 10
    category: str = "General Knowledge"
    difficulty: str = "easy"
    question_type: str = "multiple"
    time_limit: int = 120


@dataclass
class QuizSession:
    """State of one play-through, from load to score."""
    questions: Tuple[Question, ...]
    time_limit: int
    time_remaining: int
    generation: int
    selections: Dict[str, str] = field(default_factory=dict)
    submitted: bool = False
    score: Optional[int] = None
    submitted_by: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)

    def get_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def all_answered(self) -> bool:
        return all(q.id in self.selections for q in self.questions)


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed to observers."""
    questions: Tuple[Question, ...]
    selections: Dict[str, str]
    time_remaining: int
    submitted: bool
    score: Optional[int]
    submitted_by: Optional[str]
    all_answered: bool

    @classmethod
    def of(cls, session: QuizSession) -> "SessionSnapshot":
        return cls(
            questions=session.questions,
            selections=dict(session.selections),
            time_remaining=session.time_remaining,
            submitted=session.submitted,
            score=session.score,
            submitted_by=session.submitted_by,
            all_answered=session.all_answered(),
        )

    @property
    def answered_count(self) -> int:
        return len(self.selections)

    def results(self) -> List[Dict[str, object]]:
        """Per-question outcome, useful once the session is submitted."""
        return [
            {
                'question_id': q.id,
                'question': q.text,
                'selected': self.selections.get(q.id),
                'correct_answer': q.correct_answer,
                'is_correct': self.selections.get(q.id) == q.correct_answer,
            }
            for q in self.questions
        ]
