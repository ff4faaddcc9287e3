"""Quiz module.

Provides:
- Quiz delivery without the answer key
- Position-based scoring with pass/fail and point totals
- Attempt history per enrollment
"""

from .models import QUIZZES_TABLES_CQL, Quiz, QuizAttempt, QuizQuestion
from .scoring import QuizResult, score_quiz


__all__ = [
    "QUIZZES_TABLES_CQL",
    "Quiz",
    "QuizAttempt",
    "QuizQuestion",
    "QuizResult",
    "score_quiz",
]
