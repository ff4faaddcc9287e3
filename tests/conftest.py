"""Shared fixtures: in-memory repositories, services and an API client."""

from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from brandcoach.config import get_settings
from brandcoach.core.events import TableChangeBus
from brandcoach.courses.models import CourseModule, Lesson
from brandcoach.main import create_app
from brandcoach.progress.engine import sort_active_lessons
from brandcoach.progress.models import Enrollment, LessonProgress
from brandcoach.progress.service import ProgressService
from brandcoach.quizzes.models import Quiz, QuizAttempt, QuizQuestion
from brandcoach.quizzes.service import QuizService


STUDENT_EMAIL = "ana@example.com"
ADMIN_EMAIL = "coach@example.com"


def issue_access_token(
    claims: dict[str, Any], expires_delta: timedelta = timedelta(minutes=15)
) -> str:
    """Sign an access token the way the auth provider does."""
    settings = get_settings()
    now = datetime.now(UTC)
    payload = {**claims, "exp": now + expires_delta, "iat": now, "type": "access"}
    return jwt.encode(
        payload, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def copy_enrollment(enrollment: Enrollment) -> Enrollment:
    return Enrollment(**enrollment.to_dict())


# ==============================================================================
# In-memory Repositories
# ==============================================================================


class InMemoryProgressRepository:
    """ProgressRepository kept in dictionaries, with seeding helpers."""

    def __init__(self) -> None:
        self.lessons: dict[UUID, list[Lesson]] = defaultdict(list)
        self.modules: dict[UUID, list[CourseModule]] = defaultdict(list)
        self.enrollments: dict[UUID, Enrollment] = {}
        self.progress: dict[UUID, list[LessonProgress]] = defaultdict(list)

    # Seeding

    def add_lessons(
        self,
        course_id: UUID,
        *lesson_specs: tuple[int, int],
        module_id: UUID | None = None,
    ) -> list[Lesson]:
        """Add lessons given as (lesson_id, order_index) pairs."""
        lessons = [
            Lesson(
                course_id=course_id,
                lesson_id=lesson_id,
                title=f"Lesson {lesson_id}",
                order_index=order_index,
                module_id=module_id,
            )
            for lesson_id, order_index in lesson_specs
        ]
        self.lessons[course_id].extend(lessons)
        return lessons

    def add_enrollment(
        self,
        course_id: UUID,
        email: str = STUDENT_EMAIL,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        student_name: str = "Ana Souza",
    ) -> Enrollment:
        enrollment = Enrollment(
            course_id=course_id,
            student_name=student_name,
            email=email,
            enrolled_at=enrolled_at,
            completed_at=completed_at,
        )
        self.enrollments[enrollment.id] = copy_enrollment(enrollment)
        return enrollment

    def add_progress(
        self,
        enrollment_id: UUID,
        lesson_id: int,
        completed_at: datetime | None = None,
        created_at: datetime | None = None,
    ) -> LessonProgress:
        row = LessonProgress(
            enrollment_id=enrollment_id,
            lesson_id=lesson_id,
            lesson_title=f"Lesson {lesson_id}",
            completed_at=completed_at or datetime.now(UTC),
            created_at=created_at,
        )
        self.progress[enrollment_id].append(row)
        return row

    # Repository protocol

    async def list_active_lessons(self, course_id: UUID) -> list[Lesson]:
        return sort_active_lessons(self.lessons[course_id])

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        return list(self.modules[course_id])

    async def list_progress(self, enrollment_id: UUID) -> list[LessonProgress]:
        return list(self.progress[enrollment_id])

    async def insert_progress(
        self,
        enrollment_id: UUID,
        lesson_id: int,
        lesson_title: str,
        completed_at: datetime,
    ) -> bool:
        if any(row.lesson_id == lesson_id for row in self.progress[enrollment_id]):
            return False
        self.progress[enrollment_id].append(
            LessonProgress(
                enrollment_id=enrollment_id,
                lesson_id=lesson_id,
                lesson_title=lesson_title,
                completed_at=completed_at,
            )
        )
        return True

    async def set_enrollment_completed(
        self, enrollment_id: UUID, completed_at: datetime
    ) -> bool:
        stored = self.enrollments.get(enrollment_id)
        if stored is None or stored.completed_at is not None:
            return False
        stored.completed_at = completed_at
        return True

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        for stored in self.enrollments.values():
            if (
                stored.course_id == enrollment.course_id
                and stored.email == enrollment.email
            ):
                return False
        self.enrollments[enrollment.id] = copy_enrollment(enrollment)
        return True

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        stored = self.enrollments.get(enrollment_id)
        return copy_enrollment(stored) if stored else None

    async def list_enrollments_by_email(self, email: str) -> list[Enrollment]:
        return [
            copy_enrollment(e)
            for e in self.enrollments.values()
            if e.email == email.strip().lower()
        ]

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        return [
            copy_enrollment(e)
            for e in self.enrollments.values()
            if e.course_id == course_id
        ]


class InMemoryQuizRepository:
    """QuizRepository kept in dictionaries."""

    def __init__(self) -> None:
        self.quizzes: dict[UUID, Quiz] = {}
        self.questions: dict[UUID, list[QuizQuestion]] = defaultdict(list)
        self.attempts: list[QuizAttempt] = []

    def add_quiz(
        self,
        course_id: UUID,
        correct_answers: list[int],
        passing_score: int | None = None,
        is_active: bool = True,
    ) -> Quiz:
        """Add a quiz whose questions have four options each."""
        quiz = Quiz(
            id=uuid4(),
            course_id=course_id,
            title="Personal brand basics",
            lesson_id=1,
            passing_score=passing_score,
            is_active=is_active,
        )
        self.quizzes[quiz.id] = quiz
        self.questions[quiz.id] = [
            QuizQuestion(
                question=f"Question {index + 1}",
                options=["A", "B", "C", "D"],
                correct_answer=correct,
                explanation=f"Because of {index + 1}",
                order_index=index,
            )
            for index, correct in enumerate(correct_answers)
        ]
        return quiz

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        return self.quizzes.get(quiz_id)

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        return list(self.questions[quiz_id])

    async def insert_attempt(self, attempt: QuizAttempt) -> None:
        self.attempts.append(attempt)

    async def list_attempts(
        self, enrollment_id: UUID, quiz_id: UUID
    ) -> list[QuizAttempt]:
        return [
            a
            for a in self.attempts
            if a.enrollment_id == enrollment_id and a.quiz_id == quiz_id
        ]


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def course_id() -> UUID:
    """Test course ID."""
    return uuid4()


@pytest.fixture
def events() -> TableChangeBus:
    """Table change bus without Redis."""
    return TableChangeBus()


@pytest.fixture
def progress_repository() -> InMemoryProgressRepository:
    return InMemoryProgressRepository()


@pytest.fixture
def quiz_repository() -> InMemoryQuizRepository:
    return InMemoryQuizRepository()


@pytest.fixture
def progress_service(
    progress_repository: InMemoryProgressRepository, events: TableChangeBus
) -> ProgressService:
    """ProgressService over the in-memory repository."""
    return ProgressService(repository=progress_repository, events=events)


@pytest.fixture
def quiz_service(
    quiz_repository: InMemoryQuizRepository, events: TableChangeBus
) -> QuizService:
    """QuizService over the in-memory repository."""
    return QuizService(repository=quiz_repository, events=events)


@pytest.fixture
def app(
    events: TableChangeBus,
    progress_service: ProgressService,
    quiz_service: QuizService,
) -> FastAPI:
    """Application with services on app.state (lifespan not run)."""
    application = create_app()
    application.state.table_events = events
    application.state.progress_service = progress_service
    application.state.quiz_service = quiz_service
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """API test client."""
    return TestClient(app)


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Build access tokens like the auth provider issues them."""

    def _make(email: str = STUDENT_EMAIL, role: str = "student") -> str:
        return issue_access_token(
            {"sub": str(uuid4()), "email": email, "role": role}
        )

    return _make


@pytest.fixture
def student_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def admin_headers(make_token: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(ADMIN_EMAIL, 'admin')}"}
