"""Quiz scoring.

Pure pass/fail scoring of an ordered question list against a parallel list
of selected option indexes. Selections are matched by position, not by
question id. A missing or ``None`` selection is unanswered and never
counts as correct.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from brandcoach.progress.engine import round_percent

from .models import DEFAULT_PASSING_SCORE, QuizQuestion


@dataclass(frozen=True)
class QuestionReview:
    """Per-question outcome shown after submission."""

    position: int
    question: QuizQuestion
    selected_index: int | None
    is_correct: bool

    @property
    def selected_option(self) -> str | None:
        if self.selected_index is None:
            return None
        if 0 <= self.selected_index < len(self.question.options):
            return self.question.options[self.selected_index]
        return None

    @property
    def correct_option(self) -> str | None:
        return self.question.correct_option

    @property
    def explanation(self) -> str | None:
        """Explanation, only revealed for incorrect answers."""
        return None if self.is_correct else self.question.explanation


@dataclass(frozen=True)
class QuizResult:
    score: int
    passed: bool
    correct_count: int
    total_questions: int
    points_earned: int
    points_total: int
    reviews: tuple[QuestionReview, ...]


def selection_at(selections: Sequence[int | None], position: int) -> int | None:
    """Selection for ``position``; positions past the end are unanswered."""
    return selections[position] if position < len(selections) else None


def score_quiz(
    questions: Sequence[QuizQuestion],
    selections: Sequence[int | None],
    passing_score: int = DEFAULT_PASSING_SCORE,
) -> QuizResult:
    """Score a submission.

    ``score`` is the rounded-half-up percentage of correct questions and
    ``passed`` compares that score against ``passing_score``. An empty quiz
    scores 0 and does not pass.

    >>> qs = [QuizQuestion("a", ["x", "y", "z"], c) for c in (1, 2, 2)]
    >>> result = score_quiz(qs, [1, 2, 0])
    >>> result.score, result.passed
    (67, False)
    """
    reviews = []
    for position, question in enumerate(questions):
        selected = selection_at(selections, position)
        reviews.append(
            QuestionReview(
                position=position,
                question=question,
                selected_index=selected,
                is_correct=selected is not None and selected == question.correct_answer,
            )
        )

    correct_count = sum(1 for review in reviews if review.is_correct)
    total = len(questions)
    score = round_percent(correct_count, total)

    return QuizResult(
        score=score,
        passed=total > 0 and score >= passing_score,
        correct_count=correct_count,
        total_questions=total,
        points_earned=sum(r.question.points for r in reviews if r.is_correct),
        points_total=sum(question.points for question in questions),
        reviews=tuple(reviews),
    )
