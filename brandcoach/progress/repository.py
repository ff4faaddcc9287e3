"""Data access for lessons, enrollments and lesson progress.

Services receive a repository in their constructor. ``CassandraProgressRepository``
is the production implementation; tests pass an in-memory one.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from brandcoach.courses.models import CourseModule, Lesson

from .engine import sort_active_lessons
from .models import Enrollment, LessonProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProgressRepository(Protocol):
    """Storage operations used by ``ProgressService``."""

    async def list_active_lessons(self, course_id: UUID) -> list[Lesson]:
        """Active lessons of a course ordered by ``order_index``."""
        ...

    async def list_modules(self, course_id: UUID) -> list[CourseModule]: ...

    async def list_progress(self, enrollment_id: UUID) -> list[LessonProgress]: ...

    async def insert_progress(
        self,
        enrollment_id: UUID,
        lesson_id: int,
        lesson_title: str,
        completed_at: datetime,
    ) -> bool:
        """Insert a completion row. Returns False if one already existed."""
        ...

    async def set_enrollment_completed(
        self, enrollment_id: UUID, completed_at: datetime
    ) -> bool:
        """Set ``completed_at`` if it is still null. Returns True if it was set."""
        ...

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        """Store a new enrollment. Returns False on a duplicate (course, email)."""
        ...

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None: ...

    async def list_enrollments_by_email(self, email: str) -> list[Enrollment]: ...

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]: ...


class CassandraProgressRepository:
    """Cassandra-backed ``ProgressRepository``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Course content
        self._get_course_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_content
            WHERE course_id = ?
        """)

        self._get_course_modules = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_modules
            WHERE course_id = ?
        """)

        # Lesson progress
        self._get_enrollment_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_progress
            WHERE enrollment_id = ?
        """)

        self._insert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress
            (enrollment_id, lesson_id, lesson_title, completed_at, created_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_enrollments
            WHERE id = ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_enrollments
            (id, course_id, student_name, email, phone, enrolled_at,
             completed_at, certificate_generated)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_enrollments
            WHERE id = ?
        """)

        self._set_enrollment_completed = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_enrollments
            SET completed_at = ?
            WHERE id = ?
            IF completed_at = null
        """)

        # Lookup tables
        self._claim_course_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_course
            (course_id, email, enrollment_id)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

        self._release_course_email = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ? AND email = ?
            IF enrollment_id = ?
        """)

        self._get_course_enrollment_ids = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ?
        """)

        self._insert_enrollment_by_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_email
            (email, course_id, enrollment_id)
            VALUES (?, ?, ?)
        """)

        self._get_email_enrollment_ids = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_email
            WHERE email = ?
        """)

    # ==========================================================================
    # Course Content
    # ==========================================================================

    async def list_active_lessons(self, course_id: UUID) -> list[Lesson]:
        rows = await self.session.aexecute(self._get_course_lessons, [course_id])
        return sort_active_lessons(Lesson.from_row(row) for row in rows)

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        rows = await self.session.aexecute(self._get_course_modules, [course_id])
        return [CourseModule.from_row(row) for row in rows]

    # ==========================================================================
    # Lesson Progress
    # ==========================================================================

    async def list_progress(self, enrollment_id: UUID) -> list[LessonProgress]:
        rows = await self.session.aexecute(
            self._get_enrollment_progress, [enrollment_id]
        )
        return [LessonProgress.from_row(row) for row in rows]

    async def insert_progress(
        self,
        enrollment_id: UUID,
        lesson_id: int,
        lesson_title: str,
        completed_at: datetime,
    ) -> bool:
        result = await self.session.aexecute(
            self._insert_progress,
            [enrollment_id, lesson_id, lesson_title, completed_at, completed_at],
        )
        return result.was_applied

    # ==========================================================================
    # Enrollments
    # ==========================================================================

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        # Claim (course_id, email) first; the lookup row is the uniqueness guard
        claim = await self.session.aexecute(
            self._claim_course_email,
            [enrollment.course_id, enrollment.email, enrollment.id],
        )
        if not claim.was_applied:
            return False

        try:
            await self.session.aexecute(
                self._insert_enrollment,
                [
                    enrollment.id,
                    enrollment.course_id,
                    enrollment.student_name,
                    enrollment.email,
                    enrollment.phone,
                    enrollment.enrolled_at,
                    enrollment.completed_at,
                    enrollment.certificate_generated,
                ],
            )
            await self.session.aexecute(
                self._insert_enrollment_by_email,
                [enrollment.email, enrollment.course_id, enrollment.id],
            )
        except Exception as e:
            logger.error(
                "enrollment_create_failed",
                enrollment_id=str(enrollment.id),
                course_id=str(enrollment.course_id),
                error=str(e),
            )
            await self._release_claim(enrollment)
            raise
        return True

    async def _release_claim(self, enrollment: Enrollment) -> None:
        """Undo a half-written enrollment so the email can enroll again."""
        try:
            await self.session.aexecute(self._delete_enrollment, [enrollment.id])
            await self.session.aexecute(
                self._release_course_email,
                [enrollment.course_id, enrollment.email, enrollment.id],
            )
        except Exception as e:
            logger.error(
                "enrollment_claim_release_failed",
                enrollment_id=str(enrollment.id),
                error=str(e),
            )

    async def set_enrollment_completed(
        self, enrollment_id: UUID, completed_at: datetime
    ) -> bool:
        result = await self.session.aexecute(
            self._set_enrollment_completed, [completed_at, enrollment_id]
        )
        return result.was_applied

    async def get_enrollment(self, enrollment_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get_enrollment, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_enrollments_by_email(self, email: str) -> list[Enrollment]:
        rows = await self.session.aexecute(
            self._get_email_enrollment_ids, [email.strip().lower()]
        )
        return await self._load_enrollments(row.enrollment_id for row in rows)

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(
            self._get_course_enrollment_ids, [course_id]
        )
        return await self._load_enrollments(row.enrollment_id for row in rows)

    async def _load_enrollments(self, enrollment_ids) -> list[Enrollment]:
        """Resolve lookup rows to enrollments, skipping dangling ids."""
        enrollments = []
        for enrollment_id in list(enrollment_ids):
            enrollment = await self.get_enrollment(enrollment_id)
            if enrollment is None:
                logger.warning(
                    "enrollment_lookup_dangling", enrollment_id=str(enrollment_id)
                )
                continue
            enrollments.append(enrollment)
        return enrollments
