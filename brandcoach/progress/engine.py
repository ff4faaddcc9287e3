"""Progress engine.

Pure derivations over lessons and progress rows that were already fetched
from storage:
- Completion set, completion percentage and resume lesson
- Next lesson for auto-advance after a completion
- Per-lesson unlock state and module grouping
- Enrollment activity status and cohort statistics for dashboards

Nothing here performs I/O, holds state between calls or knows about
subscriptions. Degenerate inputs (no lessons, no progress) return defined
values instead of raising.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from brandcoach.courses.models import CourseModule, Lesson

from .models import (
    Enrollment,
    EnrollmentActivityStatus,
    LessonProgress,
    LessonProgressStatus,
    LessonState,
)


DEFAULT_INACTIVE_AFTER = timedelta(days=7)


def round_percent(part: float, whole: float) -> int:
    """Return ``100 * part / whole`` rounded half up and clamped to 0..100.

    A non-positive ``whole`` yields 0.

    >>> round_percent(2, 3)
    67
    >>> round_percent(1, 8)
    13
    >>> round_percent(5, 0)
    0
    """
    if whole <= 0:
        return 0
    value = (Decimal(str(part)) * 100 / Decimal(str(whole))).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return max(0, min(100, int(value)))


# ==============================================================================
# Completion and Resume
# ==============================================================================


def sort_active_lessons(lessons: Iterable[Lesson]) -> list[Lesson]:
    """Drop inactive lessons and order the rest by ``order_index``."""
    return sorted(
        (lesson for lesson in lessons if lesson.is_active),
        key=lambda lesson: (lesson.order_index, lesson.lesson_id),
    )


def completed_lesson_ids(progress: Iterable[LessonProgress]) -> frozenset[int]:
    """Lesson ids with at least one completed progress row.

    Duplicate rows for the same lesson collapse into one id.
    """
    return frozenset(row.lesson_id for row in progress if row.is_completed)


def resolve_resume_lesson(
    lessons: Sequence[Lesson],
    progress: Sequence[LessonProgress],
) -> Lesson | None:
    """Pick the lesson a returning learner lands on.

    ``lessons`` must be active and ordered by ``order_index``.

    Rules:
    1. No progress rows: the first lesson.
    2. Otherwise take the highest completed lesson id (by id value, not by
       completion time) and resume at the first lesson, in order, whose id
       is greater.
    3. No such lesson: fall back to the first lesson.

    Returns None only when there are no lessons.
    """
    if not lessons:
        return None

    completed = completed_lesson_ids(progress)
    if not completed:
        return lessons[0]

    last_completed_id = max(completed)
    for lesson in lessons:
        if lesson.lesson_id > last_completed_id:
            return lesson

    return lessons[0]


def next_lesson(lessons: Sequence[Lesson], current_lesson_id: int) -> Lesson | None:
    """Lesson following ``current_lesson_id`` by ``order_index``, if any."""
    for index, lesson in enumerate(lessons):
        if lesson.lesson_id == current_lesson_id:
            return lessons[index + 1] if index + 1 < len(lessons) else None
    return None


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived progress state of one enrollment."""

    lessons: tuple[Lesson, ...]
    completed_lesson_ids: frozenset[int]
    resume_lesson: Lesson | None

    @property
    def completed_count(self) -> int:
        return len(self.completed_lesson_ids)

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def progress_percentage(self) -> int:
        return round_percent(self.completed_count, self.total_lessons)

    @property
    def is_fully_complete(self) -> bool:
        """Every active lesson has a completed row."""
        return bool(self.lessons) and all(
            lesson.lesson_id in self.completed_lesson_ids for lesson in self.lessons
        )

    def is_completed(self, lesson_id: int) -> bool:
        return lesson_id in self.completed_lesson_ids


def compute_progress(
    lessons: Iterable[Lesson],
    progress: Sequence[LessonProgress],
) -> ProgressSnapshot:
    """Derive completion set, percentage and resume lesson.

    Only completions of active lessons count toward the percentage and the
    completed set. Rows for inactive or removed lessons still feed the resume
    rule.
    """
    ordered = sort_active_lessons(lessons)
    active_ids = {lesson.lesson_id for lesson in ordered}
    return ProgressSnapshot(
        lessons=tuple(ordered),
        completed_lesson_ids=completed_lesson_ids(progress) & active_ids,
        resume_lesson=resolve_resume_lesson(ordered, progress),
    )


# ==============================================================================
# Lesson States and Module Grouping
# ==============================================================================


def lesson_states(
    lessons: Sequence[Lesson],
    completed_ids: frozenset[int],
) -> list[tuple[Lesson, LessonState]]:
    """State of each lesson for sequential unlocking.

    A lesson is available when it is the first one or the lesson before it
    is completed.
    """
    states: list[tuple[Lesson, LessonState]] = []
    for index, lesson in enumerate(lessons):
        if lesson.lesson_id in completed_ids:
            state = LessonState.COMPLETED
        elif index == 0 or lessons[index - 1].lesson_id in completed_ids:
            state = LessonState.AVAILABLE
        else:
            state = LessonState.LOCKED
        states.append((lesson, state))
    return states


def is_lesson_unlocked(
    lessons: Sequence[Lesson],
    completed_ids: frozenset[int],
    lesson_id: int,
) -> bool:
    """True when ``lesson_id`` is completed or available."""
    for lesson, state in lesson_states(lessons, completed_ids):
        if lesson.lesson_id == lesson_id:
            return state is not LessonState.LOCKED
    return False


@dataclass(frozen=True)
class ModuleGroup:
    """Lessons of one module with their completion totals.

    ``module`` is None for the trailing group of lessons without a module.
    """

    module: CourseModule | None
    lessons: tuple[Lesson, ...]
    completed_count: int

    @property
    def module_id(self) -> UUID | None:
        return self.module.module_id if self.module else None

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def progress_percentage(self) -> int:
        return round_percent(self.completed_count, self.total_lessons)


def group_lessons_by_module(
    lessons: Sequence[Lesson],
    modules: Iterable[CourseModule],
    completed_ids: frozenset[int],
) -> list[ModuleGroup]:
    """Group ordered lessons under their modules.

    Groups follow module ``order_index``; lessons keep their own order.
    Modules without lessons are skipped. Lessons whose module is unknown or
    inactive end up in a final group with no module.
    """
    ordered_modules = sorted(
        (module for module in modules if module.is_active),
        key=lambda module: module.order_index,
    )
    by_module: dict[UUID, list[Lesson]] = {m.module_id: [] for m in ordered_modules}
    ungrouped: list[Lesson] = []

    for lesson in lessons:
        if lesson.module_id is not None and lesson.module_id in by_module:
            by_module[lesson.module_id].append(lesson)
        else:
            ungrouped.append(lesson)

    def make_group(module: CourseModule | None, members: list[Lesson]) -> ModuleGroup:
        return ModuleGroup(
            module=module,
            lessons=tuple(members),
            completed_count=sum(1 for m in members if m.lesson_id in completed_ids),
        )

    groups = [
        make_group(module, by_module[module.module_id])
        for module in ordered_modules
        if by_module[module.module_id]
    ]
    if ungrouped:
        groups.append(make_group(None, ungrouped))
    return groups


# ==============================================================================
# Activity Status and Cohort Statistics
# ==============================================================================


def last_activity_at(
    enrollment: Enrollment,
    progress: Iterable[LessonProgress],
) -> datetime:
    """Latest progress row timestamp, or the enrollment time without one.

    Rows carrying neither ``created_at`` nor ``completed_at`` are skipped.
    """
    timestamps = [row.created_at for row in progress if row.created_at is not None]
    return max(timestamps) if timestamps else enrollment.enrolled_at


def activity_status(
    enrollment: Enrollment,
    progress: Iterable[LessonProgress],
    now: datetime,
    inactive_after: timedelta = DEFAULT_INACTIVE_AFTER,
) -> EnrollmentActivityStatus:
    """Coarse enrollment status for dashboards.

    ``completed`` wins when ``completed_at`` is set; otherwise the enrollment
    is ``inactive`` once the time since its last activity strictly exceeds
    ``inactive_after``. This is independent of the lesson percentage.
    """
    if enrollment.is_completed:
        return EnrollmentActivityStatus.COMPLETED
    if now - last_activity_at(enrollment, progress) > inactive_after:
        return EnrollmentActivityStatus.INACTIVE
    return EnrollmentActivityStatus.ACTIVE


@dataclass(frozen=True)
class EnrollmentProgress:
    """One row of the admin progress overview."""

    enrollment: Enrollment
    snapshot: ProgressSnapshot
    last_activity_at: datetime
    status: EnrollmentActivityStatus


def build_enrollment_progress(
    enrollment: Enrollment,
    lessons: Iterable[Lesson],
    progress: Sequence[LessonProgress],
    now: datetime,
    inactive_after: timedelta = DEFAULT_INACTIVE_AFTER,
) -> EnrollmentProgress:
    """Combine the progress snapshot with the activity status."""
    return EnrollmentProgress(
        enrollment=enrollment,
        snapshot=compute_progress(lessons, progress),
        last_activity_at=last_activity_at(enrollment, progress),
        status=activity_status(enrollment, progress, now, inactive_after),
    )


@dataclass(frozen=True)
class ProgressSummary:
    """Cohort statistics over a set of enrollments."""

    total_students: int
    active: int
    completed: int
    inactive: int
    average_progress: int


def summarize_progress(rows: Sequence[EnrollmentProgress]) -> ProgressSummary:
    """Count enrollments per status and average their percentages."""
    counts = dict.fromkeys(EnrollmentActivityStatus, 0)
    for row in rows:
        counts[row.status] += 1

    total_percent = sum(row.snapshot.progress_percentage for row in rows)
    return ProgressSummary(
        total_students=len(rows),
        active=counts[EnrollmentActivityStatus.ACTIVE],
        completed=counts[EnrollmentActivityStatus.COMPLETED],
        inactive=counts[EnrollmentActivityStatus.INACTIVE],
        average_progress=round_percent(total_percent, 100 * len(rows)),
    )


@dataclass(frozen=True)
class LessonBreakdownItem:
    """Completion detail for one lesson of one enrollment."""

    lesson: Lesson
    completed_at: datetime | None
    status: LessonProgressStatus


def lesson_breakdown(
    lessons: Iterable[Lesson],
    progress: Iterable[LessonProgress],
) -> list[LessonBreakdownItem]:
    """Every active lesson in order with the first completion found for it."""
    first_completion: dict[int, datetime] = {}
    for row in progress:
        if row.is_completed and row.lesson_id not in first_completion:
            first_completion[row.lesson_id] = row.completed_at

    return [
        LessonBreakdownItem(
            lesson=lesson,
            completed_at=first_completion.get(lesson.lesson_id),
            status=(
                LessonProgressStatus.COMPLETED
                if lesson.lesson_id in first_completion
                else LessonProgressStatus.NOT_STARTED
            ),
        )
        for lesson in sort_active_lessons(lessons)
    ]
