"""Cassandra persistence for enrollments and lesson completions.

Every enrollment write goes to both ``enrollments`` (by course) and
``enrollments_by_student``; every completion write goes to the completion
store plus the per-lesson and per-teacher lookup tables.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from studyhub.courses.models import ensure_utc_aware

from .models import Enrollment, LessonCompletion


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ProgressRepository:
    """Prepared-statement access to the progress tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND student_id = ?
        """)

        self._get_course_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE course_id IN ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, student_id, progress, completed_lessons_count,
             completed_at, last_accessed_lesson_id, enrolled_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET progress = ?, completed_lessons_count = ?, completed_at = ?,
                updated_at = ?
            WHERE course_id = ? AND student_id = ?
        """)

        self._update_last_accessed = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET last_accessed_lesson_id = ?, updated_at = ?
            WHERE course_id = ? AND student_id = ?
        """)

        # Enrollments by student (lookup)
        self._get_student_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_student
            WHERE student_id = ?
        """)

        self._insert_enrollment_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_student
            (student_id, course_id, progress, completed_lessons_count,
             completed_at, last_accessed_lesson_id, enrolled_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_progress_by_student = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_student
            SET progress = ?, completed_lessons_count = ?, completed_at = ?,
                updated_at = ?
            WHERE student_id = ? AND course_id = ?
        """)

        self._update_last_accessed_by_student = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_student
            SET last_accessed_lesson_id = ?, updated_at = ?
            WHERE student_id = ? AND course_id = ?
        """)

        # Completion store
        self._get_completion = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_completions
            WHERE student_id = ? AND lesson_id = ?
        """)

        self._get_student_completions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_completions
            WHERE student_id = ?
        """)

        self._insert_completion = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_completions
            (student_id, lesson_id, course_id, teacher_id, completed_at)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._delete_completion = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lesson_completions
            WHERE student_id = ? AND lesson_id = ?
        """)

        # Completions by lesson (lookup)
        self._get_lesson_completions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.completions_by_lesson
            WHERE lesson_id IN ?
        """)

        self._insert_completion_by_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.completions_by_lesson
            (lesson_id, student_id, course_id, completed_at)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_completion_by_lesson = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.completions_by_lesson
            WHERE lesson_id = ? AND student_id = ?
        """)

        # Completions by teacher (activity feed)
        self._get_teacher_activity = self.session.prepare(f"""
            SELECT completed_at, student_id, lesson_id
            FROM {self.keyspace}.completions_by_teacher
            WHERE teacher_id = ? AND completed_at >= ? AND completed_at < ?
        """)

        self._insert_teacher_activity = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.completions_by_teacher
            (teacher_id, completed_at, student_id, lesson_id)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_teacher_activity = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.completions_by_teacher
            WHERE teacher_id = ? AND completed_at = ? AND student_id = ?
            AND lesson_id = ?
        """)

    # ==========================================================================
    # Enrollments
    # ==========================================================================

    async def get_enrollment(
        self, student_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        """Get enrollment by student and course."""
        result = await self.session.aexecute(
            self._get_enrollment, [course_id, student_id]
        )
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_student_enrollments(self, student_id: UUID) -> list[Enrollment]:
        """Get all enrollments for a student."""
        rows = await self.session.aexecute(self._get_student_enrollments, [student_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_course_enrollments(
        self, course_ids: list[UUID]
    ) -> dict[UUID, list[Enrollment]]:
        """Get enrollments for several courses, grouped by course."""
        grouped: dict[UUID, list[Enrollment]] = {cid: [] for cid in course_ids}
        if not course_ids:
            return grouped
        rows = await self.session.aexecute(
            self._get_course_enrollments, [list(course_ids)]
        )
        for row in rows:
            grouped.setdefault(row.course_id, []).append(Enrollment.from_row(row))
        return grouped

    async def insert_enrollment(self, enrollment: Enrollment) -> None:
        """Write a new enrollment to both tables (dual-write)."""
        values = [
            enrollment.progress,
            enrollment.completed_lessons_count,
            enrollment.completed_at,
            enrollment.last_accessed_lesson_id,
            enrollment.enrolled_at,
            enrollment.updated_at,
        ]
        await self.session.aexecute(
            self._insert_enrollment,
            [enrollment.course_id, enrollment.student_id, *values],
        )
        await self.session.aexecute(
            self._insert_enrollment_by_student,
            [enrollment.student_id, enrollment.course_id, *values],
        )

    async def update_progress(
        self,
        student_id: UUID,
        course_id: UUID,
        progress: Decimal,
        completed_lessons_count: int,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> None:
        """Write the progress columns only; the resume hint is untouched."""
        values = [progress, completed_lessons_count, completed_at, updated_at]
        await self.session.aexecute(
            self._update_progress, [*values, course_id, student_id]
        )
        await self.session.aexecute(
            self._update_progress_by_student, [*values, student_id, course_id]
        )

    async def update_last_accessed(
        self,
        student_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        updated_at: datetime,
    ) -> None:
        """Write the resume hint only; progress columns are untouched."""
        await self.session.aexecute(
            self._update_last_accessed,
            [lesson_id, updated_at, course_id, student_id],
        )
        await self.session.aexecute(
            self._update_last_accessed_by_student,
            [lesson_id, updated_at, student_id, course_id],
        )

    # ==========================================================================
    # Completions
    # ==========================================================================

    async def get_completion(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonCompletion | None:
        """Get the completion record for a (student, lesson) pair."""
        result = await self.session.aexecute(
            self._get_completion, [student_id, lesson_id]
        )
        row = result.one()
        return LessonCompletion.from_row(row) if row else None

    async def list_student_completions(
        self, student_id: UUID
    ) -> list[LessonCompletion]:
        """Get every completion recorded for a student."""
        rows = await self.session.aexecute(
            self._get_student_completions, [student_id]
        )
        return [LessonCompletion.from_row(row) for row in rows]

    async def save_completion(
        self,
        completion: LessonCompletion,
        previous: LessonCompletion | None = None,
    ) -> None:
        """Upsert a completion into the store and its lookup tables.

        The activity table is keyed by timestamp, so a previous row for the
        same pair is removed before the new one is written.
        """
        await self.session.aexecute(
            self._insert_completion,
            [
                completion.student_id,
                completion.lesson_id,
                completion.course_id,
                completion.teacher_id,
                completion.completed_at,
            ],
        )
        await self.session.aexecute(
            self._insert_completion_by_lesson,
            [
                completion.lesson_id,
                completion.student_id,
                completion.course_id,
                completion.completed_at,
            ],
        )
        if completion.teacher_id is None:
            return
        if previous is not None and previous.completed_at != completion.completed_at:
            await self.session.aexecute(
                self._delete_teacher_activity,
                [
                    completion.teacher_id,
                    previous.completed_at,
                    previous.student_id,
                    previous.lesson_id,
                ],
            )
        await self.session.aexecute(
            self._insert_teacher_activity,
            [
                completion.teacher_id,
                completion.completed_at,
                completion.student_id,
                completion.lesson_id,
            ],
        )

    async def delete_completion(self, completion: LessonCompletion) -> None:
        """Remove a completion from the store and every lookup table."""
        await self.session.aexecute(
            self._delete_completion, [completion.student_id, completion.lesson_id]
        )
        await self.session.aexecute(
            self._delete_completion_by_lesson,
            [completion.lesson_id, completion.student_id],
        )
        if completion.teacher_id is not None:
            await self.session.aexecute(
                self._delete_teacher_activity,
                [
                    completion.teacher_id,
                    completion.completed_at,
                    completion.student_id,
                    completion.lesson_id,
                ],
            )

    async def list_lesson_completions(
        self, lesson_ids: list[UUID]
    ) -> dict[UUID, list[LessonCompletion]]:
        """Get completions for several lessons, grouped by lesson."""
        grouped: dict[UUID, list[LessonCompletion]] = {lid: [] for lid in lesson_ids}
        if not lesson_ids:
            return grouped
        rows = await self.session.aexecute(
            self._get_lesson_completions, [list(lesson_ids)]
        )
        for row in rows:
            grouped.setdefault(row.lesson_id, []).append(
                LessonCompletion(
                    student_id=row.student_id,
                    lesson_id=row.lesson_id,
                    course_id=row.course_id,
                    completed_at=row.completed_at,
                )
            )
        return grouped

    async def list_teacher_activity(
        self, teacher_id: UUID, start: datetime, end: datetime
    ) -> list[tuple[datetime, UUID]]:
        """Get ``(completed_at, student_id)`` pairs in ``[start, end)``."""
        rows = await self.session.aexecute(
            self._get_teacher_activity, [teacher_id, start, end]
        )
        return [(ensure_utc_aware(row.completed_at), row.student_id) for row in rows]
