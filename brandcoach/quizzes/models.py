"""Database models for quizzes.

Cassandra table definitions for:
- Quizzes: One quiz per lesson (or course-level when lesson_id is null)
- Quiz questions: Ordered questions of a quiz
- Quiz attempts: Scored submissions, newest first per (enrollment, quiz)
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from brandcoach.progress.models import ensure_utc_aware


DEFAULT_PASSING_SCORE = 70


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZZES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    id UUID PRIMARY KEY,
    course_id UUID,
    lesson_id INT,
    title TEXT,
    description TEXT,
    passing_score INT,
    is_active BOOLEAN,
    created_at TIMESTAMP
)
"""

# Questions clustered by order_index
QUIZ_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_questions (
    quiz_id UUID,
    order_index INT,
    question_id UUID,
    question TEXT,
    options LIST<TEXT>,
    correct_answer INT,
    explanation TEXT,
    points INT,
    PRIMARY KEY ((quiz_id), order_index, question_id)
) WITH CLUSTERING ORDER BY (order_index ASC, question_id ASC)
"""

# answers maps question position -> selected option index; unanswered omitted
QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    enrollment_id UUID,
    quiz_id UUID,
    attempted_at TIMESTAMP,
    id UUID,
    answers MAP<INT, INT>,
    score INT,
    correct_count INT,
    total_questions INT,
    points_earned INT,
    points_total INT,
    passed BOOLEAN,
    PRIMARY KEY ((enrollment_id, quiz_id), attempted_at, id)
) WITH CLUSTERING ORDER BY (attempted_at DESC, id ASC)
"""

QUIZZES_TABLES_CQL = [
    QUIZZES_TABLE_CQL,
    QUIZ_QUESTIONS_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Quiz:
    """A quiz attached to a course or one of its lessons."""

    def __init__(
        self,
        id: UUID,  # noqa: A002
        course_id: UUID,
        title: str,
        lesson_id: int | None = None,
        description: str | None = None,
        passing_score: int | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
    ):
        self.id = id
        self.course_id = course_id
        self.title = title
        self.lesson_id = lesson_id
        self.description = description
        self.passing_score = passing_score
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at)

    @classmethod
    def from_row(cls, row: Any) -> "Quiz":
        """Create Quiz instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            lesson_id=row.lesson_id,
            description=row.description,
            passing_score=row.passing_score,
            is_active=row.is_active is not False,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Quiz {self.id} {self.title!r}>"


class QuizQuestion:
    """A multiple-choice question.

    ``correct_answer`` is an index into ``options``.
    """

    def __init__(
        self,
        question: str,
        options: list[str],
        correct_answer: int,
        explanation: str | None = None,
        points: int = 1,
        question_id: UUID | None = None,
        order_index: int = 0,
    ):
        self.question_id = question_id or uuid4()
        self.question = question
        self.options = list(options)
        self.correct_answer = correct_answer
        self.explanation = explanation
        self.points = points
        self.order_index = order_index

    @property
    def correct_option(self) -> str | None:
        if 0 <= self.correct_answer < len(self.options):
            return self.options[self.correct_answer]
        return None

    @classmethod
    def from_row(cls, row: Any) -> "QuizQuestion":
        """Create QuizQuestion instance from Cassandra row."""
        return cls(
            question_id=row.question_id,
            order_index=row.order_index,
            question=row.question or "",
            options=list(row.options or []),
            correct_answer=row.correct_answer,
            explanation=row.explanation,
            points=row.points if row.points is not None else 1,
        )

    def __repr__(self) -> str:
        return f"<QuizQuestion {self.order_index} {self.question[:30]!r}>"


class QuizAttempt:
    """A scored quiz submission."""

    def __init__(
        self,
        quiz_id: UUID,
        enrollment_id: UUID,
        answers: dict[int, int],
        score: int,
        correct_count: int,
        total_questions: int,
        points_earned: int,
        points_total: int,
        passed: bool,
        id: UUID | None = None,  # noqa: A002
        attempted_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.quiz_id = quiz_id
        self.enrollment_id = enrollment_id
        self.answers = dict(answers)
        self.score = score
        self.correct_count = correct_count
        self.total_questions = total_questions
        self.points_earned = points_earned
        self.points_total = points_total
        self.passed = passed
        self.attempted_at = ensure_utc_aware(attempted_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt instance from Cassandra row."""
        return cls(
            id=row.id,
            quiz_id=row.quiz_id,
            enrollment_id=row.enrollment_id,
            answers=dict(row.answers or {}),
            score=row.score or 0,
            correct_count=row.correct_count or 0,
            total_questions=row.total_questions or 0,
            points_earned=row.points_earned or 0,
            points_total=row.points_total or 0,
            passed=bool(row.passed),
            attempted_at=row.attempted_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "enrollment_id": self.enrollment_id,
            "score": self.score,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "points_earned": self.points_earned,
            "points_total": self.points_total,
            "passed": self.passed,
            "attempted_at": self.attempted_at,
        }

    def __repr__(self) -> str:
        return f"<QuizAttempt {self.id} score={self.score} passed={self.passed}>"
