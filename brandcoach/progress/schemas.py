"""Pydantic schemas for learner progress tracking.

Request and response models for:
- Course enrollment
- Course progress view and lesson completion
- Student dashboard
- Admin progress overview and lesson breakdown
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from brandcoach.courses.models import Lesson

from .engine import EnrollmentProgress, LessonBreakdownItem, ModuleGroup
from .models import (
    Enrollment,
    EnrollmentActivityStatus,
    LessonProgressStatus,
    LessonState,
)
from .service import (
    CourseProgress,
    DashboardCourse,
    LessonCompletion,
    ProgressOverview,
    StudentDashboard,
)


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll a learner in a course."""

    course_id: UUID = Field(..., description="Course UUID")
    student_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr = Field(..., description="Learner email, unique per course")
    phone: str = Field(default="", max_length=30)


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    student_name: str
    email: str
    phone: str
    enrolled_at: datetime
    completed_at: datetime | None = None
    certificate_generated: bool = False

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls.model_validate(entity)


class EnrollmentListResponse(BaseModel):
    """List of enrollments."""

    items: list[EnrollmentResponse]
    total: int


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class LessonSummary(BaseModel):
    """Lesson as shown in the course player."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: int
    title: str
    order_index: int
    video_url: str = ""
    duration: str = ""
    module_id: UUID | None = None
    description: str | None = None

    @classmethod
    def from_entity(cls, entity: Lesson) -> "LessonSummary":
        """Create response from entity."""
        return cls.model_validate(entity)


class LessonStateResponse(LessonSummary):
    """Lesson with its unlock state."""

    state: LessonState


class ModuleProgressResponse(BaseModel):
    """Lessons of one module with completion totals."""

    module_id: UUID | None = Field(description="None for lessons without a module")
    title: str | None = None
    order_index: int | None = None
    lesson_ids: list[int]
    completed_count: int
    total_lessons: int
    progress_percentage: int

    @classmethod
    def from_group(cls, group: ModuleGroup) -> "ModuleProgressResponse":
        """Create response from a module group."""
        return cls(
            module_id=group.module_id,
            title=group.module.title if group.module else None,
            order_index=group.module.order_index if group.module else None,
            lesson_ids=[lesson.lesson_id for lesson in group.lessons],
            completed_count=group.completed_count,
            total_lessons=group.total_lessons,
            progress_percentage=group.progress_percentage,
        )


class CourseProgressResponse(BaseModel):
    """Complete course progress for one enrollment.

    ``resume_lesson`` is where the player opens when no lesson is selected.
    """

    enrollment: EnrollmentResponse
    status: EnrollmentActivityStatus
    last_activity_at: datetime
    completed_count: int
    total_lessons: int
    progress_percentage: int = Field(ge=0, le=100)
    completed_lesson_ids: list[int]
    resume_lesson: LessonSummary | None = None
    lessons: list[LessonStateResponse]
    modules: list[ModuleProgressResponse]

    @classmethod
    def from_progress(cls, progress: CourseProgress) -> "CourseProgressResponse":
        """Create response from the service view."""
        snapshot = progress.snapshot
        return cls(
            enrollment=EnrollmentResponse.from_entity(progress.enrollment),
            status=progress.status,
            last_activity_at=progress.last_activity_at,
            completed_count=snapshot.completed_count,
            total_lessons=snapshot.total_lessons,
            progress_percentage=snapshot.progress_percentage,
            completed_lesson_ids=sorted(snapshot.completed_lesson_ids),
            resume_lesson=(
                LessonSummary.from_entity(snapshot.resume_lesson)
                if snapshot.resume_lesson
                else None
            ),
            lessons=[
                LessonStateResponse(
                    **LessonSummary.from_entity(lesson).model_dump(), state=state
                )
                for lesson, state in progress.lesson_states
            ],
            modules=[ModuleProgressResponse.from_group(g) for g in progress.modules],
        )


class LessonCompleteResponse(BaseModel):
    """Result of marking a lesson complete."""

    enrollment_id: UUID
    lesson_id: int
    newly_completed: bool = Field(description="False if it was already completed")
    next_lesson_id: int | None = Field(description="Auto-advance target")
    completed_count: int
    total_lessons: int
    progress_percentage: int
    enrollment_completed: bool = Field(
        description="True if this completion finished the course"
    )

    @classmethod
    def from_completion(cls, result: LessonCompletion) -> "LessonCompleteResponse":
        """Create response from the service result."""
        return cls(
            enrollment_id=result.enrollment.id,
            lesson_id=result.lesson.lesson_id,
            newly_completed=result.newly_completed,
            next_lesson_id=result.next_lesson.lesson_id if result.next_lesson else None,
            completed_count=result.snapshot.completed_count,
            total_lessons=result.snapshot.total_lessons,
            progress_percentage=result.snapshot.progress_percentage,
            enrollment_completed=result.enrollment_completed,
        )


# ==============================================================================
# Dashboard Schemas
# ==============================================================================


class DashboardCourseResponse(BaseModel):
    """One course on the student dashboard."""

    enrollment_id: UUID
    course_id: UUID
    enrolled_at: datetime
    completed_at: datetime | None = None
    status: EnrollmentActivityStatus
    completed_count: int
    total_lessons: int
    progress_percentage: int
    resume_lesson_id: int | None = None
    can_review: bool

    @classmethod
    def from_course(cls, course: DashboardCourse) -> "DashboardCourseResponse":
        """Create response from a dashboard entry."""
        resume = course.snapshot.resume_lesson
        return cls(
            enrollment_id=course.enrollment.id,
            course_id=course.enrollment.course_id,
            enrolled_at=course.enrollment.enrolled_at,
            completed_at=course.enrollment.completed_at,
            status=course.status,
            completed_count=course.snapshot.completed_count,
            total_lessons=course.snapshot.total_lessons,
            progress_percentage=course.snapshot.progress_percentage,
            resume_lesson_id=resume.lesson_id if resume else None,
            can_review=course.can_review,
        )


class StudentDashboardResponse(BaseModel):
    """All courses of a learner with totals."""

    email: str
    courses: list[DashboardCourseResponse]
    total_courses: int
    completed_courses: int
    average_progress: int

    @classmethod
    def from_dashboard(cls, dashboard: StudentDashboard) -> "StudentDashboardResponse":
        """Create response from the service view."""
        return cls(
            email=dashboard.email,
            courses=[DashboardCourseResponse.from_course(c) for c in dashboard.courses],
            total_courses=dashboard.total_courses,
            completed_courses=dashboard.completed_courses,
            average_progress=dashboard.average_progress,
        )


# ==============================================================================
# Admin Schemas
# ==============================================================================


class StudentProgressRow(BaseModel):
    """One enrollment in the admin overview."""

    enrollment_id: UUID
    student_name: str
    email: str
    enrolled_at: datetime
    completed_at: datetime | None = None
    completed_count: int
    total_lessons: int
    progress_percentage: int
    last_activity_at: datetime
    status: EnrollmentActivityStatus

    @classmethod
    def from_row(cls, row: EnrollmentProgress) -> "StudentProgressRow":
        """Create response from an overview row."""
        return cls(
            enrollment_id=row.enrollment.id,
            student_name=row.enrollment.student_name,
            email=row.enrollment.email,
            enrolled_at=row.enrollment.enrolled_at,
            completed_at=row.enrollment.completed_at,
            completed_count=row.snapshot.completed_count,
            total_lessons=row.snapshot.total_lessons,
            progress_percentage=row.snapshot.progress_percentage,
            last_activity_at=row.last_activity_at,
            status=row.status,
        )


class ProgressSummaryResponse(BaseModel):
    """Cohort statistics for a course."""

    model_config = ConfigDict(from_attributes=True)

    total_students: int
    active: int
    completed: int
    inactive: int
    average_progress: int


class ProgressOverviewResponse(BaseModel):
    """Admin progress overview for a course."""

    course_id: UUID
    students: list[StudentProgressRow]
    summary: ProgressSummaryResponse

    @classmethod
    def from_overview(cls, overview: ProgressOverview) -> "ProgressOverviewResponse":
        """Create response from the service view."""
        return cls(
            course_id=overview.course_id,
            students=[StudentProgressRow.from_row(row) for row in overview.rows],
            summary=ProgressSummaryResponse.model_validate(overview.summary),
        )


class LessonBreakdownResponse(BaseModel):
    """Completion detail of one lesson."""

    lesson_id: int
    title: str
    order_index: int
    completed_at: datetime | None = None
    status: LessonProgressStatus

    @classmethod
    def from_item(cls, item: LessonBreakdownItem) -> "LessonBreakdownResponse":
        """Create response from a breakdown item."""
        return cls(
            lesson_id=item.lesson.lesson_id,
            title=item.lesson.title,
            order_index=item.lesson.order_index,
            completed_at=item.completed_at,
            status=item.status,
        )


class EnrollmentLessonsResponse(BaseModel):
    """Lesson breakdown for one enrollment."""

    enrollment: EnrollmentResponse
    lessons: list[LessonBreakdownResponse]
