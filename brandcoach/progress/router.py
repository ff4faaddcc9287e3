"""Learner progress API endpoints.

Provides routes for:
- Course enrollment
- Course progress view (resume lesson, lesson states, modules)
- Lesson completion with auto-advance
- Student dashboard
- Admin progress overview and lesson breakdown
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from brandcoach.auth.dependencies import AdminUser, CurrentUser
from brandcoach.auth.schemas import UserResponse

from .dependencies import ProgressServiceDep, handle_progress_error
from .models import Enrollment
from .schemas import (
    CourseProgressResponse,
    EnrollmentLessonsResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    LessonBreakdownResponse,
    LessonCompleteResponse,
    ProgressOverviewResponse,
    StudentDashboardResponse,
)
from .service import ProgressError, ProgressService


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])
admin_router = APIRouter(prefix="/v1/admin/progress", tags=["admin-progress"])


# ==============================================================================
# Access Validation Helper
# ==============================================================================


async def get_accessible_enrollment(
    enrollment_id: UUID,
    user: UserResponse,
    progress_service: ProgressService,
) -> Enrollment:
    """Load an enrollment the user is allowed to see.

    Learners only see enrollments registered with their own email;
    admins see all of them.

    Raises:
        HTTPException 404: Unknown enrollment
        HTTPException 403: Enrollment belongs to someone else
    """
    try:
        enrollment = await progress_service.get_enrollment(enrollment_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    if not user.is_admin and not user.owns_email(enrollment.email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this enrollment",
        )
    return enrollment


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Enroll a learner in a course.

    Learners can only enroll their own email; admins can enroll anyone.
    """
    if not user.is_admin and not user.owns_email(data.email):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only enroll with your own email",
        )

    try:
        enrollment = await progress_service.enroll(
            course_id=data.course_id,
            student_name=data.student_name,
            email=data.email,
            phone=data.phone,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "/my",
    response_model=EnrollmentListResponse,
    summary="Get my enrollments",
)
async def get_my_enrollments(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    """Get all course enrollments for the current user's email."""
    enrollments = await progress_service.list_enrollments(user.email)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    """Get a single enrollment."""
    enrollment = await get_accessible_enrollment(enrollment_id, user, progress_service)
    return EnrollmentResponse.from_entity(enrollment)


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.get(
    "/dashboard/me",
    response_model=StudentDashboardResponse,
    summary="Get my dashboard",
)
async def get_my_dashboard(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> StudentDashboardResponse:
    """Progress of every course the current user is enrolled in."""
    dashboard = await progress_service.get_student_dashboard(user.email)
    return StudentDashboardResponse.from_dashboard(dashboard)


@router.get(
    "/{enrollment_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    enrollment_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Get complete progress for an enrollment.

    Includes the resume lesson used when the player opens with no lesson
    selected, the state of every lesson and per-module totals.
    """
    await get_accessible_enrollment(enrollment_id, user, progress_service)

    try:
        progress = await progress_service.get_course_progress(enrollment_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return CourseProgressResponse.from_progress(progress)


@router.post(
    "/{enrollment_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark lesson as complete",
)
async def mark_lesson_complete(
    enrollment_id: UUID,
    lesson_id: int,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> LessonCompleteResponse:
    """Mark a lesson as complete.

    Repeating the call is harmless. ``next_lesson_id`` is the lesson the
    player should advance to.
    """
    await get_accessible_enrollment(enrollment_id, user, progress_service)

    try:
        result = await progress_service.mark_lesson_complete(enrollment_id, lesson_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return LessonCompleteResponse.from_completion(result)


@router.post(
    "/{enrollment_id}/complete",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark course as completed",
)
async def complete_enrollment(
    enrollment_id: UUID,
    progress_service: ProgressServiceDep,
    _admin: AdminUser,
) -> EnrollmentResponse:
    """Set the course completion date of an enrollment (admin only)."""
    try:
        enrollment = await progress_service.complete_enrollment(enrollment_id)
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


# ==============================================================================
# Admin Analytics Endpoints
# ==============================================================================


@admin_router.get(
    "/courses/{course_id}",
    response_model=ProgressOverviewResponse,
    summary="Get course progress overview",
)
async def get_progress_overview(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    _admin: AdminUser,
) -> ProgressOverviewResponse:
    """Progress of every enrollment in a course with cohort statistics."""
    overview = await progress_service.get_progress_overview(course_id)
    return ProgressOverviewResponse.from_overview(overview)


@admin_router.get(
    "/enrollments/{enrollment_id}/lessons",
    response_model=EnrollmentLessonsResponse,
    summary="Get lesson breakdown",
)
async def get_lesson_breakdown(
    enrollment_id: UUID,
    progress_service: ProgressServiceDep,
    _admin: AdminUser,
) -> EnrollmentLessonsResponse:
    """Completion date and status of every lesson for one enrollment."""
    try:
        enrollment, items = await progress_service.get_lesson_breakdown(
            enrollment_id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentLessonsResponse(
        enrollment=EnrollmentResponse.from_entity(enrollment),
        lessons=[LessonBreakdownResponse.from_item(item) for item in items],
    )
