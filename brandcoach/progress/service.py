"""Learner progress service layer.

Business logic for:
- Course enrollment
- Lesson completion with auto-advance and course auto-completion
- Course progress view (resume lesson, lesson states, module grouping)
- Student dashboard and admin progress analytics

All derivations are delegated to ``brandcoach.progress.engine``; this layer
fetches rows, performs the write triggers and publishes table changes.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from brandcoach.core.events import ChangeOperation, TableChangeBus
from brandcoach.courses.models import Lesson

from .engine import (
    EnrollmentProgress,
    LessonBreakdownItem,
    ModuleGroup,
    ProgressSnapshot,
    ProgressSummary,
    activity_status,
    build_enrollment_progress,
    compute_progress,
    group_lessons_by_module,
    is_lesson_unlocked,
    last_activity_at,
    lesson_breakdown,
    lesson_states,
    next_lesson,
    round_percent,
    summarize_progress,
)
from .models import Enrollment, EnrollmentActivityStatus, LessonState
from .repository import ProgressRepository


logger = structlog.get_logger(__name__)

ENROLLMENTS_TABLE = "course_enrollments"
LESSON_PROGRESS_TABLE = "lesson_progress"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EnrollmentNotFoundError(ProgressError):
    """Enrollment does not exist."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class AlreadyEnrolledError(ProgressError):
    """Email already enrolled in the course."""

    def __init__(self, message: str = "Email already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class LessonNotFoundError(ProgressError):
    """Lesson is not an active lesson of the enrollment's course."""

    def __init__(self, message: str = "Lesson not found in this course"):
        super().__init__(message, "lesson_not_found")


class LessonLockedError(ProgressError):
    """Previous lesson must be completed first."""

    def __init__(self, message: str = "Complete the previous lesson first"):
        super().__init__(message, "lesson_locked")


# ==============================================================================
# Result Types
# ==============================================================================


@dataclass(frozen=True)
class CourseProgress:
    """Everything the course player needs for one enrollment."""

    enrollment: Enrollment
    snapshot: ProgressSnapshot
    lesson_states: list[tuple[Lesson, LessonState]]
    modules: list[ModuleGroup]
    status: EnrollmentActivityStatus
    last_activity_at: datetime


@dataclass(frozen=True)
class LessonCompletion:
    """Outcome of marking a lesson complete."""

    enrollment: Enrollment
    lesson: Lesson
    newly_completed: bool
    snapshot: ProgressSnapshot
    next_lesson: Lesson | None
    enrollment_completed: bool


@dataclass(frozen=True)
class DashboardCourse:
    """One enrollment on the student dashboard."""

    enrollment: Enrollment
    snapshot: ProgressSnapshot
    status: EnrollmentActivityStatus

    @property
    def can_review(self) -> bool:
        return self.enrollment.is_completed


@dataclass(frozen=True)
class StudentDashboard:
    email: str
    courses: list[DashboardCourse]

    @property
    def total_courses(self) -> int:
        return len(self.courses)

    @property
    def completed_courses(self) -> int:
        return sum(1 for course in self.courses if course.enrollment.is_completed)

    @property
    def average_progress(self) -> int:
        total = sum(course.snapshot.progress_percentage for course in self.courses)
        return round_percent(total, 100 * len(self.courses))


@dataclass(frozen=True)
class ProgressOverview:
    """Admin view of every enrollment in a course."""

    course_id: UUID
    rows: list[EnrollmentProgress]
    summary: ProgressSummary


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for enrollment and lesson progress tracking."""

    def __init__(
        self,
        repository: ProgressRepository,
        events: TableChangeBus,
        inactive_after_days: int = 7,
        auto_complete_enrollment: bool = True,
        sequential_unlock: bool = False,
    ):
        self.repository = repository
        self.events = events
        self.inactive_after = timedelta(days=inactive_after_days)
        self.auto_complete_enrollment = auto_complete_enrollment
        self.sequential_unlock = sequential_unlock

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(
        self,
        course_id: UUID,
        student_name: str,
        email: str,
        phone: str = "",
    ) -> Enrollment:
        """Enroll a learner in a course.

        Raises:
            AlreadyEnrolledError: If the email is already enrolled in the course
        """
        enrollment = Enrollment(
            course_id=course_id,
            student_name=student_name.strip(),
            email=email,
            phone=phone.strip(),
            enrolled_at=self._now(),
        )

        created = await self.repository.create_enrollment(enrollment)
        if not created:
            raise AlreadyEnrolledError

        logger.info(
            "learner_enrolled",
            enrollment_id=str(enrollment.id),
            course_id=str(course_id),
        )
        await self.events.publish(
            ENROLLMENTS_TABLE, ChangeOperation.INSERT, enrollment.to_dict()
        )
        return enrollment

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment:
        """Get enrollment by id.

        Raises:
            EnrollmentNotFoundError: If it does not exist
        """
        enrollment = await self.repository.get_enrollment(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def list_enrollments(self, email: str) -> list[Enrollment]:
        """All enrollments registered with ``email``."""
        enrollments = await self.repository.list_enrollments_by_email(email)
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    async def complete_enrollment(self, enrollment_id: UUID) -> Enrollment:
        """Mark the course completed for an enrollment.

        Idempotent: an existing ``completed_at`` is kept as is.
        """
        enrollment = await self.get_enrollment(enrollment_id)
        if enrollment.is_completed:
            return enrollment

        await self._set_completed(enrollment)
        return await self.get_enrollment(enrollment_id)

    async def _set_completed(self, enrollment: Enrollment) -> bool:
        """Write ``completed_at`` once and publish the change."""
        completed_at = self._now()
        applied = await self.repository.set_enrollment_completed(
            enrollment.id, completed_at
        )
        if not applied:
            # Another request completed it first
            return False

        enrollment.completed_at = completed_at
        logger.info(
            "enrollment_completed",
            enrollment_id=str(enrollment.id),
            course_id=str(enrollment.course_id),
        )
        await self.events.publish(
            ENROLLMENTS_TABLE, ChangeOperation.UPDATE, enrollment.to_dict()
        )
        return True

    # ==========================================================================
    # Course Progress
    # ==========================================================================

    async def get_course_progress(self, enrollment_id: UUID) -> CourseProgress:
        """Derive the course progress view for an enrollment."""
        enrollment = await self.get_enrollment(enrollment_id)
        lessons = await self.repository.list_active_lessons(enrollment.course_id)
        modules = await self.repository.list_modules(enrollment.course_id)
        progress = await self.repository.list_progress(enrollment.id)

        snapshot = compute_progress(lessons, progress)
        return CourseProgress(
            enrollment=enrollment,
            snapshot=snapshot,
            lesson_states=lesson_states(
                snapshot.lessons, snapshot.completed_lesson_ids
            ),
            modules=group_lessons_by_module(
                snapshot.lessons, modules, snapshot.completed_lesson_ids
            ),
            status=activity_status(
                enrollment, progress, self._now(), self.inactive_after
            ),
            last_activity_at=last_activity_at(enrollment, progress),
        )

    async def mark_lesson_complete(
        self, enrollment_id: UUID, lesson_id: int
    ) -> LessonCompletion:
        """Record that the learner finished a lesson.

        Inserting is a no-op when the lesson already has a progress row.
        Returns the next lesson by order as the auto-advance target.

        Raises:
            EnrollmentNotFoundError: Unknown enrollment
            LessonNotFoundError: Lesson is not an active lesson of the course
            LessonLockedError: Sequential unlock is on and the lesson is locked
        """
        enrollment = await self.get_enrollment(enrollment_id)
        lessons = await self.repository.list_active_lessons(enrollment.course_id)
        snapshot = compute_progress(
            lessons, await self.repository.list_progress(enrollment.id)
        )

        lesson = next(
            (item for item in snapshot.lessons if item.lesson_id == lesson_id), None
        )
        if lesson is None:
            raise LessonNotFoundError

        if self.sequential_unlock and not is_lesson_unlocked(
            snapshot.lessons, snapshot.completed_lesson_ids, lesson_id
        ):
            raise LessonLockedError

        completed_at = self._now()
        inserted = await self.repository.insert_progress(
            enrollment.id, lesson.lesson_id, lesson.title, completed_at
        )
        if inserted:
            logger.info(
                "lesson_marked_complete",
                enrollment_id=str(enrollment.id),
                lesson_id=lesson.lesson_id,
            )
            await self.events.publish(
                LESSON_PROGRESS_TABLE,
                ChangeOperation.INSERT,
                {
                    "enrollment_id": enrollment.id,
                    "lesson_id": lesson.lesson_id,
                    "lesson_title": lesson.title,
                    "completed_at": completed_at,
                    "created_at": completed_at,
                },
            )
            snapshot = compute_progress(
                lessons, await self.repository.list_progress(enrollment.id)
            )

        enrollment_completed = False
        if (
            self.auto_complete_enrollment
            and snapshot.is_fully_complete
            and not enrollment.is_completed
        ):
            enrollment_completed = await self._set_completed(enrollment)

        return LessonCompletion(
            enrollment=enrollment,
            lesson=lesson,
            newly_completed=inserted,
            snapshot=snapshot,
            next_lesson=next_lesson(snapshot.lessons, lesson.lesson_id),
            enrollment_completed=enrollment_completed,
        )

    # ==========================================================================
    # Dashboards
    # ==========================================================================

    async def get_student_dashboard(self, email: str) -> StudentDashboard:
        """Progress of every course the learner is enrolled in."""
        now = self._now()
        courses = []
        for enrollment in await self.list_enrollments(email):
            lessons = await self.repository.list_active_lessons(enrollment.course_id)
            progress = await self.repository.list_progress(enrollment.id)
            courses.append(
                DashboardCourse(
                    enrollment=enrollment,
                    snapshot=compute_progress(lessons, progress),
                    status=activity_status(
                        enrollment, progress, now, self.inactive_after
                    ),
                )
            )
        return StudentDashboard(email=email.strip().lower(), courses=courses)

    async def get_progress_overview(self, course_id: UUID) -> ProgressOverview:
        """Per-enrollment progress and cohort summary for a course."""
        now = self._now()
        lessons = await self.repository.list_active_lessons(course_id)
        rows = []
        for enrollment in await self.repository.list_course_enrollments(course_id):
            progress = await self.repository.list_progress(enrollment.id)
            rows.append(
                build_enrollment_progress(
                    enrollment, lessons, progress, now, self.inactive_after
                )
            )
        rows.sort(key=lambda row: row.enrollment.enrolled_at, reverse=True)

        logger.debug(
            "progress_overview_built", course_id=str(course_id), students=len(rows)
        )
        return ProgressOverview(
            course_id=course_id,
            rows=rows,
            summary=summarize_progress(rows),
        )

    async def get_lesson_breakdown(
        self, enrollment_id: UUID
    ) -> tuple[Enrollment, list[LessonBreakdownItem]]:
        """Per-lesson completion detail for one enrollment."""
        enrollment = await self.get_enrollment(enrollment_id)
        lessons = await self.repository.list_active_lessons(enrollment.course_id)
        progress = await self.repository.list_progress(enrollment.id)
        return enrollment, lesson_breakdown(lessons, progress)
