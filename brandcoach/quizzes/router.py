"""Quiz API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from brandcoach.auth.dependencies import CurrentUser
from brandcoach.progress.dependencies import ProgressServiceDep
from brandcoach.progress.router import get_accessible_enrollment

from .dependencies import QuizServiceDep, handle_quiz_error
from .schemas import (
    QuizAttemptListResponse,
    QuizAttemptResponse,
    QuizResponse,
    QuizResultResponse,
    SubmitAttemptRequest,
)
from .service import QuizError


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


@router.get(
    "/{quiz_id}",
    response_model=QuizResponse,
    summary="Get quiz",
)
async def get_quiz(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    _user: CurrentUser,
) -> QuizResponse:
    """Get a quiz with its questions. The answer key is not included."""
    try:
        quiz, questions = await quiz_service.get_quiz(quiz_id)
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return QuizResponse.from_entity(
        quiz, questions, quiz_service.passing_score_for(quiz)
    )


@router.post(
    "/{quiz_id}/attempts",
    response_model=QuizResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit quiz attempt",
)
async def submit_attempt(
    quiz_id: UUID,
    data: SubmitAttemptRequest,
    quiz_service: QuizServiceDep,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> QuizResultResponse:
    """Score a submission and store it as an attempt.

    Answers are matched to questions by position.
    """
    enrollment = await get_accessible_enrollment(
        data.enrollment_id, user, progress_service
    )

    try:
        attempt, result = await quiz_service.submit_attempt(
            quiz_id, enrollment, data.answers
        )
    except QuizError as e:
        raise handle_quiz_error(e) from e
    return QuizResultResponse.from_result(attempt, result)


@router.get(
    "/{quiz_id}/attempts",
    response_model=QuizAttemptListResponse,
    summary="List my quiz attempts",
)
async def list_attempts(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
    enrollment_id: UUID = Query(..., description="Enrollment UUID"),
) -> QuizAttemptListResponse:
    """Attempts of an enrollment on this quiz, newest first."""
    await get_accessible_enrollment(enrollment_id, user, progress_service)

    attempts = await quiz_service.list_attempts(quiz_id, enrollment_id)
    return QuizAttemptListResponse(
        items=[QuizAttemptResponse.from_entity(a) for a in attempts],
        total=len(attempts),
    )
