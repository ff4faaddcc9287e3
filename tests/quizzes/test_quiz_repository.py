"""Tests for CassandraQuizRepository against a mocked session."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from brandcoach.quizzes.models import QuizAttempt
from brandcoach.quizzes.repository import CassandraQuizRepository


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=Mock())
    return session


@pytest.fixture
def repository(mock_session) -> CassandraQuizRepository:
    return CassandraQuizRepository(session=mock_session, keyspace="test_keyspace")


class TestCassandraQuizRepository:
    """Tests for quiz queries."""

    def test_prepares_statements_for_keyspace(self, mock_session, repository) -> None:
        assert mock_session.prepare.call_count == 4
        for call in mock_session.prepare.call_args_list:
            assert "test_keyspace." in call.args[0]

    @pytest.mark.asyncio
    async def test_get_quiz_missing_returns_none(
        self, mock_session, repository
    ) -> None:
        result = Mock()
        result.one = Mock(return_value=None)
        mock_session.aexecute.return_value = result

        assert await repository.get_quiz(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_quiz_defaults_active(self, mock_session, repository) -> None:
        quiz_id = uuid4()
        row = Mock(
            id=quiz_id,
            course_id=uuid4(),
            title="Brand basics",
            lesson_id=None,
            description=None,
            passing_score=None,
            is_active=None,
            created_at=NOW,
        )
        result = Mock()
        result.one = Mock(return_value=row)
        mock_session.aexecute.return_value = result

        quiz = await repository.get_quiz(quiz_id)

        assert quiz is not None
        assert quiz.id == quiz_id
        assert quiz.is_active is True
        assert quiz.passing_score is None

    @pytest.mark.asyncio
    async def test_list_questions_defaults_points(
        self, mock_session, repository
    ) -> None:
        mock_session.aexecute.return_value = [
            Mock(
                question_id=uuid4(),
                order_index=0,
                question="Pick one",
                options=("A", "B"),
                correct_answer=1,
                explanation=None,
                points=None,
            )
        ]

        questions = await repository.list_questions(uuid4())

        assert len(questions) == 1
        assert questions[0].options == ["A", "B"]
        assert questions[0].points == 1

    @pytest.mark.asyncio
    async def test_insert_attempt_binds_columns(
        self, mock_session, repository
    ) -> None:
        attempt = QuizAttempt(
            quiz_id=uuid4(),
            enrollment_id=uuid4(),
            answers={0: 1, 1: 2},
            score=50,
            correct_count=1,
            total_questions=2,
            points_earned=1,
            points_total=2,
            passed=True,
            attempted_at=NOW,
        )

        await repository.insert_attempt(attempt)

        params = mock_session.aexecute.call_args.args[1]
        assert params[0] == attempt.enrollment_id
        assert params[1] == attempt.quiz_id
        assert params[2] == NOW
        assert params[4] == {0: 1, 1: 2}
        assert params[-1] is True
