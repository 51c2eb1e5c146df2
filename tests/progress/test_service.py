"""Tests for ProgressService business rules."""

from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from studyhub.core.errors import (
    CourseNotFoundError,
    EnrollmentNotFoundError,
    InternalConsistencyError,
    LessonAccessDeniedError,
    LessonNotFoundError,
    NotEnrolledError,
)
from studyhub.courses.models import Course, Lesson
from studyhub.progress.models import LessonCompletion
from studyhub.progress.service import ProgressService

from ..fakes import FakeContentService, FakeProgressRepository


@pytest.fixture
def course(content: FakeContentService, teacher_id: UUID) -> Course:
    return content.add_course(teacher_id, title="Pharmacology 101")


@pytest.fixture
def lessons(content: FakeContentService, course: Course, teacher_id: UUID) -> list[Lesson]:
    return [
        content.add_lesson(teacher_id, course.id, order=order, title=f"Lesson {order}")
        for order in (1, 2, 3)
    ]


@pytest_asyncio.fixture
async def enrolled(
    progress_service: ProgressService, course: Course, student_id: UUID
) -> None:
    await progress_service.enroll(student_id, course.id)


# ==============================================================================
# Enrollment
# ==============================================================================


class TestEnroll:
    """Tests for enroll."""

    @pytest.mark.asyncio
    async def test_enroll_unknown_course(
        self, progress_service: ProgressService, student_id: UUID
    ) -> None:
        with pytest.raises(CourseNotFoundError):
            await progress_service.enroll(student_id, uuid4())

    @pytest.mark.asyncio
    async def test_enroll_starts_at_zero(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        enrollment = await progress_service.enroll(student_id, course.id)
        assert enrollment.progress == Decimal(0)
        assert enrollment.completed_at is None
        assert enrollment.last_accessed_lesson_id is None

    @pytest.mark.asyncio
    async def test_enroll_twice_is_noop(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        course: Course,
        student_id: UUID,
    ) -> None:
        first = await progress_service.enroll(student_id, course.id)
        second = await progress_service.enroll(student_id, course.id)

        assert second.enrolled_at == first.enrolled_at
        assert len(repository.enrollments) == 1
        assert len(await progress_service.list_enrollments(student_id)) == 1


# ==============================================================================
# Completion and Progress
# ==============================================================================


class TestCompleteLesson:
    """Tests for complete_lesson and the progress calculator."""

    @pytest.mark.asyncio
    async def test_unknown_lesson(
        self, progress_service: ProgressService, student_id: UUID
    ) -> None:
        with pytest.raises(LessonNotFoundError):
            await progress_service.complete_lesson(uuid4(), student_id)

    @pytest.mark.asyncio
    async def test_requires_enrollment(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.complete_lesson(lessons[0].id, student_id)
        assert repository.completions == {}

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_partial_progress(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        await progress_service.complete_lesson(lessons[0].id, student_id)
        result = await progress_service.complete_lesson(lessons[1].id, student_id)

        assert result.completed is True
        assert result.progress == Decimal("66.67")
        assert result.course_completed_at is None
        assert result.next_lesson is not None
        assert result.next_lesson.id == lessons[2].id

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.completed_lessons_count == 2

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_next_lesson_wraps_to_earlier_gap(
        self,
        progress_service: ProgressService,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        await progress_service.complete_lesson(lessons[1].id, student_id)
        result = await progress_service.complete_lesson(lessons[2].id, student_id)
        assert result.next_lesson.id == lessons[0].id

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_repeat_completion_is_idempotent(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        first = await progress_service.complete_lesson(lessons[0].id, student_id)
        second = await progress_service.complete_lesson(lessons[0].id, student_id)

        assert second.progress == first.progress == Decimal("33.33")
        assert second.completed_at >= first.completed_at
        assert len(repository.completions) == 1
        assert len(repository.activity) == 1

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_course_completion(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        for lesson in lessons:
            result = await progress_service.complete_lesson(lesson.id, student_id)

        assert result.progress == Decimal(100)
        assert result.course_completed_at is not None
        assert result.next_lesson is None

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.is_completed
        assert enrollment.completed_at == result.course_completed_at

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_completed_at_kept_on_recompute(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        for lesson in lessons:
            await progress_service.complete_lesson(lesson.id, student_id)
        finished = await progress_service.get_enrollment(student_id, course.id)

        snapshot = await progress_service.recompute_progress(student_id, course.id)
        assert snapshot.completed_at == finished.completed_at

    @pytest.mark.asyncio
    async def test_independent_lesson(
        self,
        progress_service: ProgressService,
        content: FakeContentService,
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        """Independent lessons need no enrollment and report no course progress."""
        lesson = content.add_lesson(teacher_id)
        result = await progress_service.complete_lesson(lesson.id, student_id)

        assert result.progress is None
        assert result.next_lesson is None

        progress = await progress_service.get_lesson_progress(lesson.id, student_id)
        assert progress.is_completed is True
        assert progress.progress == Decimal(100)


class TestRecomputeProgress:
    """Tests for progress recomputation."""

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_new_lesson_demotes_completed_course(
        self,
        progress_service: ProgressService,
        content: FakeContentService,
        course: Course,
        lessons: list[Lesson],
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        for lesson in lessons:
            await progress_service.complete_lesson(lesson.id, student_id)

        content.add_lesson(teacher_id, course.id, order=4)
        assert await progress_service.recompute_course(course.id) == 1

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.progress == Decimal("75.00")
        assert enrollment.completed_at is None

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_orphaned_completion_ignored(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        course: Course,
        lessons: list[Lesson],
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        removed_id = uuid4()
        repository.completions[(student_id, removed_id)] = LessonCompletion(
            student_id=student_id, lesson_id=removed_id, course_id=course.id
        )
        await progress_service.complete_lesson(lessons[0].id, student_id)

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.completed_lessons_count == 1
        assert enrollment.progress == Decimal("33.33")

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_empty_course_is_zero(
        self,
        progress_service: ProgressService,
        course: Course,
        student_id: UUID,
    ) -> None:
        snapshot = await progress_service.recompute_progress(student_id, course.id)
        assert snapshot.progress == Decimal(0)
        assert snapshot.completed_at is None

    @pytest.mark.asyncio
    async def test_unknown_course_is_inconsistent(
        self, progress_service: ProgressService, student_id: UUID
    ) -> None:
        with pytest.raises(InternalConsistencyError):
            await progress_service.recompute_progress(student_id, uuid4())

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self,
        progress_service: ProgressService,
        course: Course,
        student_id: UUID,
    ) -> None:
        with pytest.raises(EnrollmentNotFoundError):
            await progress_service.recompute_progress(student_id, course.id)


# ==============================================================================
# Lesson Views and Navigation
# ==============================================================================


class TestViewLesson:
    """Tests for view_lesson."""

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_navigation_and_hint(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        view = await progress_service.view_lesson(lessons[1].id, student_id)

        assert view.is_completed is False
        assert view.navigation.previous.id == lessons[0].id
        assert view.navigation.next.id == lessons[2].id

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.last_accessed_lesson_id == lessons[1].id
        assert enrollment.progress == Decimal(0)

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_view_does_not_complete(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        await progress_service.view_lesson(lessons[0].id, student_id)
        assert repository.completions == {}

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self,
        progress_service: ProgressService,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.view_lesson(lessons[0].id, student_id)

    @pytest.mark.asyncio
    async def test_owner_views_without_enrollment(
        self,
        progress_service: ProgressService,
        lessons: list[Lesson],
        teacher_id: UUID,
    ) -> None:
        view = await progress_service.view_lesson(lessons[0].id, teacher_id)
        assert view.navigation.previous is None
        assert view.navigation.next.id == lessons[1].id

    @pytest.mark.asyncio
    async def test_independent_lesson_has_no_siblings(
        self,
        progress_service: ProgressService,
        content: FakeContentService,
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        lesson = content.add_lesson(teacher_id)
        view = await progress_service.view_lesson(lesson.id, student_id)
        assert view.navigation.previous is None
        assert view.navigation.next is None


class TestResumeCourse:
    """Tests for resume_course and get_course_progress."""

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_resume_follows_last_view(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        await progress_service.view_lesson(lessons[2].id, student_id)
        resume = await progress_service.resume_course(student_id, course.id)

        assert resume.lesson.id == lessons[2].id
        assert resume.course_slug == "pharmacology-101"

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_resume_finished_course_returns_last(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        for lesson in lessons:
            await progress_service.complete_lesson(lesson.id, student_id)
        resume = await progress_service.resume_course(student_id, course.id)
        assert resume.lesson.id == lessons[-1].id
        assert resume.progress == Decimal(100)

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_resume_empty_course(
        self,
        progress_service: ProgressService,
        course: Course,
        student_id: UUID,
    ) -> None:
        resume = await progress_service.resume_course(student_id, course.id)
        assert resume.lesson is None

    @pytest.mark.asyncio
    async def test_resume_requires_enrollment(
        self,
        progress_service: ProgressService,
        course: Course,
        student_id: UUID,
    ) -> None:
        with pytest.raises(EnrollmentNotFoundError):
            await progress_service.resume_course(student_id, course.id)

    @pytest.mark.asyncio
    async def test_resume_unknown_course(
        self, progress_service: ProgressService, student_id: UUID
    ) -> None:
        with pytest.raises(CourseNotFoundError):
            await progress_service.resume_course(student_id, uuid4())

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_course_progress_outline(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        student_id: UUID,
    ) -> None:
        await progress_service.complete_lesson(lessons[1].id, student_id)
        result = await progress_service.get_course_progress(student_id, course.id)

        assert result.total_lessons == 3
        assert [item.completed for item in result.lessons] == [False, True, False]
        assert [item.order for item in result.lessons] == [1, 2, 3]


# ==============================================================================
# Lesson Deletion
# ==============================================================================


class TestDeleteLesson:
    """Tests for the lesson deletion cascade."""

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_purges_completions_and_recomputes(
        self,
        progress_service: ProgressService,
        repository: FakeProgressRepository,
        course: Course,
        lessons: list[Lesson],
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        await progress_service.complete_lesson(lessons[0].id, student_id)
        await progress_service.complete_lesson(lessons[1].id, student_id)

        purged = await progress_service.delete_lesson(lessons[0].id, teacher_id)

        assert purged == 1
        assert await progress_service.get_completion(student_id, lessons[0].id) is None
        assert len(repository.activity) == 1
        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.progress == Decimal("50.00")

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("enrolled")
    async def test_deleting_last_gap_completes_course(
        self,
        progress_service: ProgressService,
        course: Course,
        lessons: list[Lesson],
        teacher_id: UUID,
        student_id: UUID,
    ) -> None:
        await progress_service.complete_lesson(lessons[0].id, student_id)
        await progress_service.complete_lesson(lessons[1].id, student_id)

        await progress_service.delete_lesson(lessons[2].id, teacher_id)

        enrollment = await progress_service.get_enrollment(student_id, course.id)
        assert enrollment.progress == Decimal(100)
        assert enrollment.completed_at is not None

    @pytest.mark.asyncio
    async def test_other_teacher_denied(
        self, progress_service: ProgressService, lessons: list[Lesson]
    ) -> None:
        with pytest.raises(LessonAccessDeniedError):
            await progress_service.delete_lesson(lessons[0].id, uuid4())

    @pytest.mark.asyncio
    async def test_admin_may_delete(
        self,
        progress_service: ProgressService,
        content: FakeContentService,
        lessons: list[Lesson],
    ) -> None:
        await progress_service.delete_lesson(lessons[0].id, uuid4(), is_admin=True)
        assert lessons[0].id not in content.lessons

    @pytest.mark.asyncio
    async def test_unknown_lesson(self, progress_service: ProgressService) -> None:
        with pytest.raises(LessonNotFoundError):
            await progress_service.delete_lesson(uuid4(), uuid4())
