"""Pure progress, resume and navigation rules.

These functions do no I/O: the service loads the enrollment, the ordered
course lessons and the student's completed lesson ids, then asks here.
"""

from collections.abc import Collection, Sequence
from decimal import Decimal
from typing import NamedTuple
from uuid import UUID

from studyhub.courses.models import Lesson

from .models import FULL_PROGRESS, Enrollment, quantize_progress


class Siblings(NamedTuple):
    """Neighbours of a lesson in its course outline."""

    previous: Lesson | None
    next: Lesson | None


def calculate_progress(completed_count: int, total_count: int) -> Decimal:
    """Percentage of a course completed, clamped to [0, 100].

    A course with no lessons is 0% complete.
    """
    if total_count <= 0:
        return quantize_progress(Decimal(0))
    ratio = Decimal(completed_count) / Decimal(total_count) * FULL_PROGRESS
    return quantize_progress(max(Decimal(0), min(FULL_PROGRESS, ratio)))


def _first_incomplete(
    lessons: Sequence[Lesson], completed_ids: Collection[UUID]
) -> Lesson | None:
    return next((lesson for lesson in lessons if lesson.id not in completed_ids), None)


def resolve_resume_point(
    enrollment: Enrollment,
    ordered_lessons: Sequence[Lesson],
    completed_ids: Collection[UUID],
) -> Lesson | None:
    """Pick the lesson a student should continue with.

    1. Scan forward from the ``last_accessed_lesson_id`` hint (inclusive).
    2. Otherwise, or when nothing after the hint is incomplete, scan from the
       first lesson.
    3. When every lesson is complete, return the last one.

    Returns None only for a course without lessons.
    """
    if not ordered_lessons:
        return None

    hint = enrollment.last_accessed_lesson_id
    if hint is not None:
        for index, lesson in enumerate(ordered_lessons):
            if lesson.id == hint:
                found = _first_incomplete(ordered_lessons[index:], completed_ids)
                if found is not None:
                    return found
                break

    found = _first_incomplete(ordered_lessons, completed_ids)
    if found is not None:
        return found

    return ordered_lessons[-1]


def resolve_siblings(lesson_id: UUID, ordered_lessons: Sequence[Lesson]) -> Siblings:
    """Previous and next lessons of ``lesson_id`` in ``ordered_lessons``.

    Both are None when the lesson is not in the list (independent lessons
    pass an empty list).
    """
    index = next(
        (i for i, lesson in enumerate(ordered_lessons) if lesson.id == lesson_id),
        None,
    )
    if index is None:
        return Siblings(previous=None, next=None)

    previous = ordered_lessons[index - 1] if index > 0 else None
    following = (
        ordered_lessons[index + 1] if index + 1 < len(ordered_lessons) else None
    )
    return Siblings(previous=previous, next=following)
