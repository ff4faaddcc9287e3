"""Pydantic schemas for quizzes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Quiz, QuizAttempt, QuizQuestion
from .scoring import QuestionReview, QuizResult


# ==============================================================================
# Quiz Delivery Schemas
# ==============================================================================


class QuizQuestionResponse(BaseModel):
    """Question as shown to a learner, without the answer key."""

    question_id: UUID
    position: int
    question: str
    options: list[str]
    points: int

    @classmethod
    def from_entity(
        cls, entity: QuizQuestion, position: int
    ) -> "QuizQuestionResponse":
        """Create response from entity."""
        return cls(
            question_id=entity.question_id,
            position=position,
            question=entity.question,
            options=entity.options,
            points=entity.points,
        )


class QuizResponse(BaseModel):
    """Quiz with its questions."""

    id: UUID
    course_id: UUID
    lesson_id: int | None = None
    title: str
    description: str | None = None
    passing_score: int
    questions: list[QuizQuestionResponse]

    @classmethod
    def from_entity(
        cls, quiz: Quiz, questions: list[QuizQuestion], passing_score: int
    ) -> "QuizResponse":
        """Create response from entities."""
        return cls(
            id=quiz.id,
            course_id=quiz.course_id,
            lesson_id=quiz.lesson_id,
            title=quiz.title,
            description=quiz.description,
            passing_score=passing_score,
            questions=[
                QuizQuestionResponse.from_entity(q, position)
                for position, q in enumerate(questions)
            ],
        )


# ==============================================================================
# Attempt Schemas
# ==============================================================================


class SubmitAttemptRequest(BaseModel):
    """Selected option index per question position; null means unanswered."""

    enrollment_id: UUID = Field(..., description="Enrollment UUID")
    answers: list[int | None] = Field(default_factory=list)


class QuestionReviewResponse(BaseModel):
    """Per-question review after submission."""

    position: int
    question: str
    is_correct: bool
    selected_option: str | None = None
    correct_option: str | None = None
    explanation: str | None = Field(None, description="Only for wrong answers")

    @classmethod
    def from_review(cls, review: QuestionReview) -> "QuestionReviewResponse":
        """Create response from a review."""
        return cls(
            position=review.position,
            question=review.question.question,
            is_correct=review.is_correct,
            selected_option=review.selected_option,
            correct_option=review.correct_option,
            explanation=review.explanation,
        )


class QuizAttemptResponse(BaseModel):
    """Stored attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quiz_id: UUID
    enrollment_id: UUID
    score: int = Field(ge=0, le=100)
    passed: bool
    correct_count: int
    total_questions: int
    points_earned: int
    points_total: int
    attempted_at: datetime

    @classmethod
    def from_entity(cls, entity: QuizAttempt) -> "QuizAttemptResponse":
        """Create response from entity."""
        return cls.model_validate(entity)


class QuizResultResponse(BaseModel):
    """Outcome of a submission."""

    attempt: QuizAttemptResponse
    review: list[QuestionReviewResponse]

    @classmethod
    def from_result(
        cls, attempt: QuizAttempt, result: QuizResult
    ) -> "QuizResultResponse":
        """Create response from the stored attempt and its scoring."""
        return cls(
            attempt=QuizAttemptResponse.from_entity(attempt),
            review=[QuestionReviewResponse.from_review(r) for r in result.reviews],
        )


class QuizAttemptListResponse(BaseModel):
    items: list[QuizAttemptResponse]
    total: int
