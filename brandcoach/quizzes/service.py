"""Quiz service layer.

Business logic for:
- Loading a quiz with its ordered questions
- Validating, scoring and persisting attempts
- Listing an enrollment's attempts
"""

from collections.abc import Sequence
from uuid import UUID

import structlog

from brandcoach.core.events import ChangeOperation, TableChangeBus
from brandcoach.progress.models import Enrollment

from .models import DEFAULT_PASSING_SCORE, Quiz, QuizAttempt, QuizQuestion
from .repository import QuizRepository
from .scoring import QuizResult, score_quiz


logger = structlog.get_logger(__name__)

QUIZ_ATTEMPTS_TABLE = "quiz_attempts"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizError(Exception):
    """Base quiz error."""

    def __init__(self, message: str, code: str = "quiz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class QuizNotFoundError(QuizError):
    """Quiz does not exist or is inactive."""

    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class InvalidAnswerError(QuizError):
    """Submitted selections do not fit the quiz."""

    def __init__(self, message: str = "Invalid answer"):
        super().__init__(message, "invalid_answer")


class QuizCourseMismatchError(QuizError):
    """Enrollment belongs to another course."""

    def __init__(self, message: str = "Quiz does not belong to this enrollment"):
        super().__init__(message, "quiz_course_mismatch")


def validate_selections(
    questions: Sequence[QuizQuestion], selections: Sequence[int | None]
) -> None:
    """Reject selections that cannot belong to ``questions``.

    Raises:
        InvalidAnswerError: Too many selections, or an index outside a
            question's options
    """
    if len(selections) > len(questions):
        msg = f"Expected at most {len(questions)} answers, got {len(selections)}"
        raise InvalidAnswerError(msg)

    for position, (question, selected) in enumerate(
        zip(questions, selections, strict=False)
    ):
        if selected is not None and not 0 <= selected < len(question.options):
            msg = f"Answer {position + 1} is not one of the question's options"
            raise InvalidAnswerError(msg)


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Service for quiz delivery and scoring."""

    def __init__(
        self,
        repository: QuizRepository,
        events: TableChangeBus,
        default_passing_score: int = DEFAULT_PASSING_SCORE,
    ):
        self.repository = repository
        self.events = events
        self.default_passing_score = default_passing_score

    def passing_score_for(self, quiz: Quiz) -> int:
        if quiz.passing_score is None:
            return self.default_passing_score
        return quiz.passing_score

    async def get_quiz(self, quiz_id: UUID) -> tuple[Quiz, list[QuizQuestion]]:
        """Get an active quiz and its questions in order.

        Raises:
            QuizNotFoundError: Unknown or inactive quiz
        """
        quiz = await self.repository.get_quiz(quiz_id)
        if quiz is None or not quiz.is_active:
            raise QuizNotFoundError

        questions = await self.repository.list_questions(quiz_id)
        questions.sort(key=lambda q: q.order_index)
        return quiz, questions

    async def submit_attempt(
        self,
        quiz_id: UUID,
        enrollment: Enrollment,
        selections: Sequence[int | None],
    ) -> tuple[QuizAttempt, QuizResult]:
        """Score and store an attempt.

        Raises:
            QuizNotFoundError: Unknown or inactive quiz
            QuizCourseMismatchError: Enrollment is for another course
            InvalidAnswerError: Selections do not fit the questions
        """
        quiz, questions = await self.get_quiz(quiz_id)
        if quiz.course_id != enrollment.course_id:
            raise QuizCourseMismatchError

        validate_selections(questions, selections)
        result = score_quiz(questions, selections, self.passing_score_for(quiz))

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            enrollment_id=enrollment.id,
            answers={
                position: selected
                for position, selected in enumerate(selections)
                if selected is not None
            },
            score=result.score,
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            points_earned=result.points_earned,
            points_total=result.points_total,
            passed=result.passed,
        )
        await self.repository.insert_attempt(attempt)

        logger.info(
            "quiz_attempt_recorded",
            quiz_id=str(quiz.id),
            enrollment_id=str(enrollment.id),
            score=result.score,
            passed=result.passed,
        )
        await self.events.publish(
            QUIZ_ATTEMPTS_TABLE, ChangeOperation.INSERT, attempt.to_dict()
        )
        return attempt, result

    async def list_attempts(
        self, quiz_id: UUID, enrollment_id: UUID
    ) -> list[QuizAttempt]:
        """Attempts of an enrollment on a quiz, newest first."""
        attempts = await self.repository.list_attempts(enrollment_id, quiz_id)
        return sorted(attempts, key=lambda a: a.attempted_at, reverse=True)
