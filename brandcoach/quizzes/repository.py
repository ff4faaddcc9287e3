"""Data access for quizzes, questions and attempts."""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from .models import Quiz, QuizAttempt, QuizQuestion


if TYPE_CHECKING:
    from cassandra.cluster import Session


class QuizRepository(Protocol):
    """Storage operations used by ``QuizService``."""

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None: ...

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        """Questions ordered by ``order_index``."""
        ...

    async def insert_attempt(self, attempt: QuizAttempt) -> None: ...

    async def list_attempts(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> list[QuizAttempt]:
        """Attempts of one enrollment, newest first."""
        ...


class CassandraQuizRepository:
    """Cassandra-backed ``QuizRepository``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes
            WHERE id = ?
        """)

        self._get_questions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_questions
            WHERE quiz_id = ?
        """)

        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (enrollment_id, quiz_id, attempted_at, id, answers, score,
             correct_count, total_questions, points_earned, points_total, passed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts
            WHERE enrollment_id = ? AND quiz_id = ?
        """)

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz, [quiz_id])
        row = result.one()
        return Quiz.from_row(row) if row else None

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        rows = await self.session.aexecute(self._get_questions, [quiz_id])
        return [QuizQuestion.from_row(row) for row in rows]

    async def insert_attempt(self, attempt: QuizAttempt) -> None:
        await self.session.aexecute(
            self._insert_attempt,
            [
                attempt.enrollment_id,
                attempt.quiz_id,
                attempt.attempted_at,
                attempt.id,
                attempt.answers,
                attempt.score,
                attempt.correct_count,
                attempt.total_questions,
                attempt.points_earned,
                attempt.points_total,
                attempt.passed,
            ],
        )

    async def list_attempts(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> list[QuizAttempt]:
        rows = await self.session.aexecute(self._get_attempts, [enrollment_id, quiz_id])
        return [QuizAttempt.from_row(row) for row in rows]
