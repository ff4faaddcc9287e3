"""Database models for course content.

Cassandra table definitions for:
- Course content: Lessons of a course, clustered by order_index
- Course modules: Optional grouping of lessons, clustered by order_index

Lessons and modules are authored by an administrator in an external tool;
this service only reads them.
"""

from typing import Any
from uuid import UUID


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Lessons by course; clustering keeps rows sorted by order_index
COURSE_CONTENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_content (
    course_id UUID,
    order_index INT,
    lesson_id INT,
    module_id UUID,
    title TEXT,
    description TEXT,
    video_url TEXT,
    duration TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, order_index, lesson_id)
) WITH CLUSTERING ORDER BY (order_index ASC, lesson_id ASC)
"""

COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_id UUID,
    order_index INT,
    module_id UUID,
    title TEXT,
    description TEXT,
    is_active BOOLEAN,
    PRIMARY KEY (course_id, order_index, module_id)
) WITH CLUSTERING ORDER BY (order_index ASC, module_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_CONTENT_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Lesson:
    """A lesson of a course.

    Attributes:
        course_id: Course UUID
        lesson_id: Sequential lesson number, unique within the course
        title: Lesson title
        video_url: Embedded video reference
        duration: Free-text duration label ("45 min"), never parsed
        order_index: Presentation order; drives resume and grouping
        is_active: Inactive lessons are hidden from learners
        module_id: Optional module the lesson belongs to
        description: Optional long description
    """

    def __init__(
        self,
        course_id: UUID,
        lesson_id: int,
        title: str,
        order_index: int,
        video_url: str = "",
        duration: str = "",
        is_active: bool = True,
        module_id: UUID | None = None,
        description: str | None = None,
    ):
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.title = title
        self.order_index = order_index
        self.video_url = video_url
        self.duration = duration
        self.is_active = is_active
        self.module_id = module_id
        self.description = description

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            lesson_id=row.lesson_id,
            title=row.title or "",
            order_index=row.order_index,
            video_url=row.video_url or "",
            duration=row.duration or "",
            is_active=bool(row.is_active),
            module_id=row.module_id,
            description=row.description,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "lesson_id": self.lesson_id,
            "title": self.title,
            "order_index": self.order_index,
            "video_url": self.video_url,
            "duration": self.duration,
            "is_active": self.is_active,
            "module_id": self.module_id,
            "description": self.description,
        }

    def __repr__(self) -> str:
        return f"<Lesson {self.lesson_id} order={self.order_index} {self.title!r}>"


class CourseModule:
    """A named group of lessons inside a course."""

    def __init__(
        self,
        course_id: UUID,
        module_id: UUID,
        title: str,
        order_index: int,
        is_active: bool = True,
        description: str | None = None,
    ):
        self.course_id = course_id
        self.module_id = module_id
        self.title = title
        self.order_index = order_index
        self.is_active = is_active
        self.description = description

    @classmethod
    def from_row(cls, row: Any) -> "CourseModule":
        """Create CourseModule instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            module_id=row.module_id,
            title=row.title or "",
            order_index=row.order_index,
            # Legacy rows have no is_active column value
            is_active=row.is_active is not False,
            description=row.description,
        )

    def __repr__(self) -> str:
        return f"<CourseModule {self.module_id} order={self.order_index}>"
