"""Course content service layer.

Read access to courses, ordered course outlines, teacher listings, quizzes and
quiz attempts. The only write is lesson deletion; authoring workflows
(creating, editing, publishing) live elsewhere.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from studyhub.courses.models import (
    Course,
    Lesson,
    Quiz,
    QuizAttempt,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ContentService:
    """Service for course, lesson and quiz records."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Courses
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)
        self._get_courses = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id IN ?
        """)

        # Lessons
        self._get_lesson = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE id = ?
        """)
        self._delete_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons WHERE id = ?
        """)

        # Course outline
        self._get_course_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons_by_course WHERE course_id = ?
        """)
        self._delete_course_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons_by_course
            WHERE course_id = ? AND lesson_order = ? AND created_at = ? AND lesson_id = ?
        """)

        # Teacher listings
        self._get_teacher_lessons = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons_by_teacher WHERE teacher_id = ?
        """)
        self._delete_teacher_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons_by_teacher
            WHERE teacher_id = ? AND created_at = ? AND lesson_id = ?
        """)

        # Quizzes
        self._get_teacher_quizzes = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes_by_teacher WHERE teacher_id = ?
        """)
        self._get_quiz_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts WHERE quiz_id IN ?
        """)

    # ==========================================================================
    # Course Operations
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_courses(self, course_ids: list[UUID]) -> dict[UUID, Course]:
        """Get several courses in one round trip, keyed by ID."""
        if not course_ids:
            return {}
        rows = await self.session.aexecute(self._get_courses, [list(course_ids)])
        return {row.id: Course.from_row(row) for row in rows}

    # ==========================================================================
    # Lesson Operations
    # ==========================================================================

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        """Get lesson by ID."""
        result = await self.session.aexecute(self._get_lesson, [lesson_id])
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def get_course_lessons(self, course_id: UUID) -> list[Lesson]:
        """Get the lessons of a course in outline order.

        Ordered by ``order`` ascending, ties broken by creation time.
        """
        rows = await self.session.aexecute(self._get_course_lessons, [course_id])
        lessons = [Lesson.from_outline_row(row, course_id) for row in rows]
        return sorted(lessons, key=Lesson.sort_key)

    async def list_teacher_lessons(self, teacher_id: UUID) -> list[Lesson]:
        """Get all lessons owned by a teacher, most recent first."""
        rows = await self.session.aexecute(self._get_teacher_lessons, [teacher_id])
        return [Lesson.from_teacher_row(row, teacher_id) for row in rows]

    async def delete_lesson(self, lesson: Lesson) -> None:
        """Remove a lesson from the lookup, outline and teacher tables.

        Completion records are left in place; see
        ``ProgressService.delete_lesson`` for the cascading purge.
        """
        await self.session.aexecute(self._delete_lesson, [lesson.id])
        await self.session.aexecute(
            self._delete_teacher_lesson,
            [lesson.teacher_id, lesson.created_at, lesson.id],
        )
        if lesson.course_id is not None:
            await self.session.aexecute(
                self._delete_course_lesson,
                [lesson.course_id, lesson.order, lesson.created_at, lesson.id],
            )
        logger.info("lesson_deleted", lesson_id=str(lesson.id))

    # ==========================================================================
    # Quiz Operations
    # ==========================================================================

    async def list_teacher_quizzes(self, teacher_id: UUID) -> list[Quiz]:
        """Get all quizzes owned by a teacher, most recent first."""
        rows = await self.session.aexecute(self._get_teacher_quizzes, [teacher_id])
        return [Quiz.from_teacher_row(row, teacher_id) for row in rows]

    async def get_quiz_attempts(
        self, quiz_ids: list[UUID]
    ) -> dict[UUID, list[QuizAttempt]]:
        """Get attempts for several quizzes in one round trip, grouped by quiz."""
        grouped: dict[UUID, list[QuizAttempt]] = {quiz_id: [] for quiz_id in quiz_ids}
        if not quiz_ids:
            return grouped
        rows = await self.session.aexecute(self._get_quiz_attempts, [list(quiz_ids)])
        for row in rows:
            grouped.setdefault(row.quiz_id, []).append(QuizAttempt.from_row(row))
        return grouped
