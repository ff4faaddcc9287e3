"""Learner progress tracking module.

Provides:
- Course enrollment management
- Lesson completion with resume point and auto-advance
- Course activity status and dashboards
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    EnrollmentActivityStatus,
    LessonProgress,
    LessonProgressStatus,
    LessonState,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "EnrollmentActivityStatus",
    "LessonProgress",
    "LessonProgressStatus",
    "LessonState",
]
