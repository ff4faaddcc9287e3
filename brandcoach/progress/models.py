"""Database models for learner progress tracking.

Cassandra table definitions for:
- Enrollments: One row per learner registration in a course
- Enrollment lookups: Uniqueness per (course, email) and listing by email
- Lesson progress: One completion row per (enrollment, lesson)

Uniqueness is enforced by the primary keys together with lightweight
transactions (INSERT ... IF NOT EXISTS), so duplicate enrollments and
duplicate progress rows are rejected by storage rather than by callers.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class EnrollmentActivityStatus(str, Enum):
    """Coarse enrollment status shown on dashboards."""

    ACTIVE = "active"  # Studied within the inactivity window
    COMPLETED = "completed"  # completed_at is set
    INACTIVE = "inactive"  # No activity for longer than the window


class LessonState(str, Enum):
    """Per-lesson state in the lesson list."""

    COMPLETED = "completed"
    AVAILABLE = "available"  # First lesson, or previous lesson completed
    LOCKED = "locked"


class LessonProgressStatus(str, Enum):
    """Per-lesson status in the admin breakdown."""

    COMPLETED = "completed"
    NOT_STARTED = "not_started"


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollments (
    id UUID PRIMARY KEY,
    course_id UUID,
    student_name TEXT,
    email TEXT,
    phone TEXT,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    certificate_generated BOOLEAN
)
"""

# Uniqueness guard + admin listing: one enrollment per (course_id, email)
ENROLLMENTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_course (
    course_id UUID,
    email TEXT,
    enrollment_id UUID,
    PRIMARY KEY (course_id, email)
)
"""

# Lookup for the student dashboard
ENROLLMENTS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_email (
    email TEXT,
    course_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (email, course_id)
)
"""

# One row per (enrollment, lesson); completed_at is written once
LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    enrollment_id UUID,
    lesson_id INT,
    lesson_title TEXT,
    completed_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY (enrollment_id, lesson_id)
) WITH CLUSTERING ORDER BY (lesson_id ASC)
"""

PROGRESS_TABLES_CQL = [
    COURSE_ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_COURSE_TABLE_CQL,
    ENROLLMENTS_BY_EMAIL_TABLE_CQL,
    LESSON_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """A learner's registration in one course.

    Attributes:
        id: Enrollment UUID
        course_id: Course UUID
        student_name: Learner display name
        email: Learner email (unique per course)
        phone: Contact phone
        enrolled_at: Registration timestamp
        completed_at: Course completion timestamp, set once and never cleared
        certificate_generated: Whether a certificate was issued
    """

    def __init__(
        self,
        course_id: UUID,
        student_name: str,
        email: str,
        phone: str = "",
        id: UUID | None = None,  # noqa: A002
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        certificate_generated: bool = False,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.student_name = student_name
        self.email = email.strip().lower()
        self.phone = phone
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.certificate_generated = certificate_generated

    @property
    def is_completed(self) -> bool:
        """Check if the course was marked completed."""
        return self.completed_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            student_name=row.student_name or "",
            email=row.email or "",
            phone=row.phone or "",
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            certificate_generated=bool(row.certificate_generated),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "course_id": self.course_id,
            "student_name": self.student_name,
            "email": self.email,
            "phone": self.phone,
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "certificate_generated": self.certificate_generated,
        }

    def __repr__(self) -> str:
        state = "completed" if self.is_completed else "open"
        return f"<Enrollment {self.id} course={self.course_id} {state}>"


class LessonProgress:
    """A record asserting that a learner finished a lesson.

    A row whose ``completed_at`` is set is the only completion signal.
    """

    def __init__(
        self,
        enrollment_id: UUID,
        lesson_id: int,
        lesson_title: str = "",
        completed_at: datetime | None = None,
        created_at: datetime | None = None,
    ):
        self.enrollment_id = enrollment_id
        self.lesson_id = lesson_id
        self.lesson_title = lesson_title
        self.completed_at = ensure_utc_aware(completed_at)
        self.created_at = ensure_utc_aware(created_at) or self.completed_at

    @property
    def is_completed(self) -> bool:
        """Check if this row marks the lesson as finished."""
        return self.completed_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            enrollment_id=row.enrollment_id,
            lesson_id=row.lesson_id,
            lesson_title=row.lesson_title or "",
            completed_at=row.completed_at,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enrollment_id": self.enrollment_id,
            "lesson_id": self.lesson_id,
            "lesson_title": self.lesson_title,
            "completed_at": self.completed_at,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return (
            f"<LessonProgress enrollment={self.enrollment_id} "
            f"lesson={self.lesson_id} completed={self.is_completed}>"
        )
