"""Student progress tracking service layer.

Business logic for:
- Course enrollment management
- Lesson completion (the completion store)
- Progress calculation after every completion write
- Resume point and previous/next navigation
- Completion purge when a lesson is deleted
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from studyhub.core.errors import (
    CourseNotFoundError,
    EnrollmentNotFoundError,
    InternalConsistencyError,
    LessonAccessDeniedError,
    LessonNotFoundError,
    NotEnrolledError,
)

from .models import FULL_PROGRESS, Enrollment, LessonCompletion
from .resolvers import calculate_progress, resolve_resume_point, resolve_siblings
from .schemas import (
    CompleteLessonResponse,
    CourseLessonStatus,
    CourseProgressResponse,
    LessonNavigation,
    LessonProgressResponse,
    LessonSummary,
    LessonViewResponse,
    ProgressSnapshot,
    ResumeResponse,
)


if TYPE_CHECKING:
    from studyhub.courses.models import Course, Lesson
    from studyhub.courses.service import ContentService

    from .repository import ProgressRepository

logger = structlog.get_logger(__name__)


class ProgressService:
    """Service for enrollments, completions and derived course progress."""

    def __init__(self, repository: "ProgressRepository", content: "ContentService"):
        self.repository = repository
        self.content = content

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(self, student_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll a student in a course.

        Enrolling twice is a no-op that returns the existing enrollment.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.content.get_course(course_id)
        if course is None:
            raise CourseNotFoundError

        existing = await self.repository.get_enrollment(student_id, course_id)
        if existing is not None:
            logger.debug(
                "enrollment_exists",
                student_id=str(student_id),
                course_id=str(course_id),
            )
            return existing

        enrollment = Enrollment(student_id=student_id, course_id=course_id)
        await self.repository.insert_enrollment(enrollment)

        # Completions of independent-turned-course lessons may already exist
        snapshot = await self.recompute_progress(student_id, course_id)
        enrollment.progress = snapshot.progress
        enrollment.completed_lessons_count = snapshot.completed_lessons_count
        enrollment.completed_at = snapshot.completed_at

        logger.info(
            "enrollment_created",
            student_id=str(student_id),
            course_id=str(course_id),
        )
        return enrollment

    async def get_enrollment(
        self, student_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        """Get enrollment by student and course."""
        return await self.repository.get_enrollment(student_id, course_id)

    async def list_enrollments(self, student_id: UUID) -> list[Enrollment]:
        """Get all enrollments of a student."""
        return await self.repository.list_student_enrollments(student_id)

    # ==========================================================================
    # Completion Store
    # ==========================================================================

    async def get_completion(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonCompletion | None:
        """Get the completion record for a (student, lesson) pair."""
        return await self.repository.get_completion(student_id, lesson_id)

    async def record_completion(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonCompletion:
        """Mark a lesson complete for a student (idempotent upsert).

        Raises:
            LessonNotFoundError: If the lesson does not exist
            NotEnrolledError: If the lesson belongs to a course the student
                is not enrolled in
        """
        lesson = await self._get_lesson(lesson_id)
        completion, _ = await self._record(student_id, lesson)
        return completion

    async def _record(
        self, student_id: UUID, lesson: "Lesson"
    ) -> tuple[LessonCompletion, ProgressSnapshot | None]:
        if lesson.course_id is not None:
            enrollment = await self.repository.get_enrollment(
                student_id, lesson.course_id
            )
            if enrollment is None:
                raise NotEnrolledError

        previous = await self.repository.get_completion(student_id, lesson.id)
        completion = LessonCompletion(
            student_id=student_id,
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            teacher_id=lesson.teacher_id,
            completed_at=datetime.now(UTC),
        )
        await self.repository.save_completion(completion, previous)

        logger.info(
            "lesson_completed",
            student_id=str(student_id),
            lesson_id=str(lesson.id),
            course_id=str(lesson.course_id) if lesson.course_id else None,
            repeat=previous is not None,
        )

        snapshot = None
        if lesson.course_id is not None:
            snapshot = await self.recompute_progress(student_id, lesson.course_id)
        return completion, snapshot

    # ==========================================================================
    # Progress Calculator
    # ==========================================================================

    async def recompute_progress(
        self, student_id: UUID, course_id: UUID
    ) -> ProgressSnapshot:
        """Recalculate enrollment progress from the completion store.

        Re-reads every completion (never increments). Completions of lessons
        no longer in the course are ignored.

        Raises:
            InternalConsistencyError: If the course does not exist
            EnrollmentNotFoundError: If the student is not enrolled
        """
        course = await self.content.get_course(course_id)
        if course is None:
            logger.error(
                "progress_unknown_course",
                student_id=str(student_id),
                course_id=str(course_id),
            )
            raise InternalConsistencyError(f"Course {course_id} does not exist")

        enrollment = await self.repository.get_enrollment(student_id, course_id)
        if enrollment is None:
            raise EnrollmentNotFoundError

        lessons = await self.content.get_course_lessons(course_id)
        if not lessons:
            logger.warning("progress_zero_lesson_course", course_id=str(course_id))

        completed_ids = await self._completed_lesson_ids(
            student_id, course_id, {lesson.id for lesson in lessons}
        )

        progress = calculate_progress(len(completed_ids), len(lessons))
        now = datetime.now(UTC)
        if progress >= FULL_PROGRESS:
            completed_at = enrollment.completed_at or now
        else:
            completed_at = None

        await self.repository.update_progress(
            student_id,
            course_id,
            progress=progress,
            completed_lessons_count=len(completed_ids),
            completed_at=completed_at,
            updated_at=now,
        )

        logger.info(
            "progress_recomputed",
            student_id=str(student_id),
            course_id=str(course_id),
            progress=str(progress),
            completed=len(completed_ids),
            total=len(lessons),
        )

        return ProgressSnapshot(
            course_id=course_id,
            student_id=student_id,
            progress=progress,
            completed_lessons_count=len(completed_ids),
            completed_at=completed_at,
        )

    async def recompute_course(self, course_id: UUID) -> int:
        """Recompute progress for every enrollment of a course.

        Returns:
            Number of enrollments recomputed
        """
        enrollments = await self.repository.list_course_enrollments([course_id])
        for enrollment in enrollments.get(course_id, []):
            await self.recompute_progress(enrollment.student_id, course_id)
        return len(enrollments.get(course_id, []))

    async def _completed_lesson_ids(
        self,
        student_id: UUID,
        course_id: UUID,
        course_lesson_ids: set[UUID],
    ) -> set[UUID]:
        """Completed lesson ids of a student, restricted to the course."""
        completions = await self.repository.list_student_completions(student_id)
        completed = {c.lesson_id for c in completions}

        orphaned = [
            c.lesson_id
            for c in completions
            if c.course_id == course_id and c.lesson_id not in course_lesson_ids
        ]
        if orphaned:
            logger.warning(
                "orphaned_completion_ignored",
                student_id=str(student_id),
                course_id=str(course_id),
                lesson_ids=[str(lid) for lid in orphaned],
            )

        return completed & course_lesson_ids

    # ==========================================================================
    # Lesson Operations
    # ==========================================================================

    async def _get_lesson(self, lesson_id: UUID) -> "Lesson":
        lesson = await self.content.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        return lesson

    async def complete_lesson(
        self, lesson_id: UUID, student_id: UUID
    ) -> CompleteLessonResponse:
        """Mark a lesson complete and report course progress.

        ``next_lesson`` is the next incomplete lesson of the course, or None
        when the course is finished or the lesson is independent.
        """
        lesson = await self._get_lesson(lesson_id)
        completion, snapshot = await self._record(student_id, lesson)

        if snapshot is None:
            return CompleteLessonResponse(
                lesson_id=lesson.id,
                completed_at=completion.completed_at,
            )

        next_lesson = None
        if snapshot.progress < FULL_PROGRESS:
            ordered = await self.content.get_course_lessons(snapshot.course_id)
            completed_ids = await self._completed_lesson_ids(
                student_id, snapshot.course_id, {item.id for item in ordered}
            )
            hint = Enrollment(
                student_id=student_id,
                course_id=snapshot.course_id,
                last_accessed_lesson_id=lesson.id,
            )
            candidate = resolve_resume_point(hint, ordered, completed_ids)
            if candidate is not None and candidate.id not in completed_ids:
                next_lesson = candidate

        return CompleteLessonResponse(
            lesson_id=lesson.id,
            completed_at=completion.completed_at,
            progress=snapshot.progress,
            course_completed_at=snapshot.completed_at,
            next_lesson=LessonSummary.from_optional(next_lesson),
        )

    async def view_lesson(
        self,
        lesson_id: UUID,
        student_id: UUID,
        is_admin: bool = False,
    ) -> LessonViewResponse:
        """Lesson page data: completion state and previous/next siblings.

        Never changes completion state. An enrolled viewer moves the resume
        hint to this lesson; owners and admins may view without enrolling.

        Raises:
            LessonNotFoundError: If the lesson does not exist
            NotEnrolledError: If a course lesson is viewed without enrollment
        """
        lesson = await self._get_lesson(lesson_id)
        completion = await self.repository.get_completion(student_id, lesson.id)

        ordered: list["Lesson"] = []
        if lesson.course_id is not None:
            enrollment = await self.repository.get_enrollment(
                student_id, lesson.course_id
            )
            if enrollment is not None:
                await self.repository.update_last_accessed(
                    student_id, lesson.course_id, lesson.id, datetime.now(UTC)
                )
            elif not (is_admin or lesson.teacher_id == student_id):
                raise NotEnrolledError
            ordered = await self.content.get_course_lessons(lesson.course_id)

        siblings = resolve_siblings(lesson.id, ordered)

        return LessonViewResponse(
            lesson=LessonSummary.from_entity(lesson),
            is_completed=completion is not None,
            completed_at=completion.completed_at if completion else None,
            navigation=LessonNavigation(
                previous=LessonSummary.from_optional(siblings.previous),
                next=LessonSummary.from_optional(siblings.next),
            ),
        )

    async def get_lesson_progress(
        self, lesson_id: UUID, student_id: UUID
    ) -> LessonProgressResponse:
        """Completion state of one lesson.

        ``progress`` is the course progress for course lessons (0 when not
        enrolled) and 0 or 100 for independent lessons.
        """
        lesson = await self._get_lesson(lesson_id)
        completion = await self.repository.get_completion(student_id, lesson.id)

        if lesson.course_id is not None:
            enrollment = await self.repository.get_enrollment(
                student_id, lesson.course_id
            )
            progress = enrollment.progress if enrollment else calculate_progress(0, 0)
        else:
            progress = calculate_progress(1 if completion else 0, 1)

        return LessonProgressResponse(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            course_id=lesson.course_id,
            progress=progress,
            completed_at=completion.completed_at if completion else None,
            is_completed=completion is not None,
        )

    async def delete_lesson(
        self,
        lesson_id: UUID,
        actor_id: UUID,
        is_admin: bool = False,
    ) -> int:
        """Delete a lesson, purge its completions and recompute its course.

        Returns:
            Number of completion records purged

        Raises:
            LessonNotFoundError: If the lesson does not exist
            LessonAccessDeniedError: If the actor neither owns the lesson nor
                is an admin
        """
        lesson = await self._get_lesson(lesson_id)
        if not is_admin and lesson.teacher_id != actor_id:
            raise LessonAccessDeniedError

        await self.content.delete_lesson(lesson)

        completions = await self.repository.list_lesson_completions([lesson.id])
        purged = completions.get(lesson.id, [])
        for completion in purged:
            completion.teacher_id = lesson.teacher_id
            await self.repository.delete_completion(completion)

        recomputed = 0
        if lesson.course_id is not None:
            recomputed = await self.recompute_course(lesson.course_id)

        logger.info(
            "lesson_completions_purged",
            lesson_id=str(lesson.id),
            purged=len(purged),
            enrollments_recomputed=recomputed,
        )
        return len(purged)

    # ==========================================================================
    # Course Progress Operations
    # ==========================================================================

    async def _load_course_state(
        self, student_id: UUID, course_id: UUID
    ) -> tuple["Course", Enrollment, list["Lesson"], set[UUID]]:
        course = await self.content.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        enrollment = await self.repository.get_enrollment(student_id, course_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        ordered = await self.content.get_course_lessons(course_id)
        completed_ids = await self._completed_lesson_ids(
            student_id, course_id, {lesson.id for lesson in ordered}
        )
        return course, enrollment, ordered, completed_ids

    async def get_course_progress(
        self, student_id: UUID, course_id: UUID
    ) -> CourseProgressResponse:
        """Course outline with per-lesson completion flags.

        Raises:
            CourseNotFoundError: If the course does not exist
            EnrollmentNotFoundError: If the student is not enrolled
        """
        course, enrollment, ordered, completed_ids = await self._load_course_state(
            student_id, course_id
        )

        return CourseProgressResponse(
            course_id=course.id,
            course_title=course.title,
            progress=enrollment.progress,
            completed_lessons_count=enrollment.completed_lessons_count,
            total_lessons=len(ordered),
            last_accessed_lesson_id=enrollment.last_accessed_lesson_id,
            completed_at=enrollment.completed_at,
            lessons=[
                CourseLessonStatus(
                    id=lesson.id,
                    title=lesson.title,
                    order=lesson.order,
                    completed=lesson.id in completed_ids,
                )
                for lesson in ordered
            ],
        )

    async def resume_course(
        self, student_id: UUID, course_id: UUID
    ) -> ResumeResponse:
        """Find the lesson a student should continue with.

        Raises:
            CourseNotFoundError: If the course does not exist
            EnrollmentNotFoundError: If the student is not enrolled
        """
        course, enrollment, ordered, completed_ids = await self._load_course_state(
            student_id, course_id
        )

        lesson = resolve_resume_point(enrollment, ordered, completed_ids)

        return ResumeResponse(
            lesson=LessonSummary.from_optional(lesson),
            progress=enrollment.progress,
            course_slug=course.slug,
        )
