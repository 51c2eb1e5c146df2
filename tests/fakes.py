"""In-memory stand-ins for the Cassandra-backed data access classes.

They expose the same async methods as ``ContentService`` and
``ProgressRepository`` so service tests can exercise real business rules
without a cluster.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

from studyhub.courses.models import Course, Lesson, LessonStatus, Quiz, QuizAttempt
from studyhub.progress.models import Enrollment, LessonCompletion


class FakeContentService:
    """Dict-backed ``ContentService``."""

    def __init__(self) -> None:
        self.courses: dict[UUID, Course] = {}
        self.lessons: dict[UUID, Lesson] = {}
        self.quizzes: dict[UUID, Quiz] = {}
        self.attempts: dict[UUID, list[QuizAttempt]] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=UTC)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    # Seeding helpers

    def add_course(self, teacher_id: UUID, title: str = "Course") -> Course:
        course = Course(teacher_id=teacher_id, title=title, published=True)
        self.courses[course.id] = course
        return course

    def add_lesson(
        self,
        teacher_id: UUID,
        course_id: UUID | None = None,
        order: int = 0,
        title: str = "Lesson",
        created_at: datetime | None = None,
    ) -> Lesson:
        lesson = Lesson(
            teacher_id=teacher_id,
            course_id=course_id,
            order=order,
            status=LessonStatus.PUBLIC.value,
            title=title,
            created_at=created_at or self._tick(),
        )
        self.lessons[lesson.id] = lesson
        return lesson

    def add_quiz(
        self,
        teacher_id: UUID,
        title: str = "Quiz",
        course_id: UUID | None = None,
    ) -> Quiz:
        quiz = Quiz(
            teacher_id=teacher_id,
            course_id=course_id,
            title=title,
            created_at=self._tick(),
        )
        self.quizzes[quiz.id] = quiz
        self.attempts[quiz.id] = []
        return quiz

    def add_attempt(self, quiz_id: UUID, score: float, max_score: float) -> None:
        self.attempts[quiz_id].append(
            QuizAttempt(
                quiz_id=quiz_id,
                student_id=uuid4(),
                score=score,
                max_score=max_score,
            )
        )

    # ContentService interface

    async def get_course(self, course_id: UUID) -> Course | None:
        return self.courses.get(course_id)

    async def get_courses(self, course_ids: list[UUID]) -> dict[UUID, Course]:
        return {cid: self.courses[cid] for cid in course_ids if cid in self.courses}

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        return self.lessons.get(lesson_id)

    async def get_course_lessons(self, course_id: UUID) -> list[Lesson]:
        lessons = [item for item in self.lessons.values() if item.course_id == course_id]
        return sorted(lessons, key=Lesson.sort_key)

    async def list_teacher_lessons(self, teacher_id: UUID) -> list[Lesson]:
        lessons = [item for item in self.lessons.values() if item.teacher_id == teacher_id]
        return sorted(lessons, key=lambda item: item.created_at, reverse=True)

    async def delete_lesson(self, lesson: Lesson) -> None:
        self.lessons.pop(lesson.id, None)

    async def list_teacher_quizzes(self, teacher_id: UUID) -> list[Quiz]:
        quizzes = [q for q in self.quizzes.values() if q.teacher_id == teacher_id]
        return sorted(quizzes, key=lambda q: q.created_at, reverse=True)

    async def get_quiz_attempts(
        self, quiz_ids: list[UUID]
    ) -> dict[UUID, list[QuizAttempt]]:
        return {qid: list(self.attempts.get(qid, [])) for qid in quiz_ids}


class FakeProgressRepository:
    """Dict-backed ``ProgressRepository``."""

    def __init__(self) -> None:
        self.enrollments: dict[tuple[UUID, UUID], Enrollment] = {}
        self.completions: dict[tuple[UUID, UUID], LessonCompletion] = {}
        self.activity: set[tuple[UUID, datetime, UUID, UUID]] = set()

    def _copy(self, enrollment: Enrollment) -> Enrollment:
        return Enrollment(**enrollment.to_dict())

    # Enrollments

    async def get_enrollment(
        self, student_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        found = self.enrollments.get((student_id, course_id))
        return self._copy(found) if found else None

    async def list_student_enrollments(self, student_id: UUID) -> list[Enrollment]:
        return [
            self._copy(e) for (sid, _), e in self.enrollments.items() if sid == student_id
        ]

    async def list_course_enrollments(
        self, course_ids: list[UUID]
    ) -> dict[UUID, list[Enrollment]]:
        grouped: dict[UUID, list[Enrollment]] = {cid: [] for cid in course_ids}
        for (_, cid), enrollment in self.enrollments.items():
            if cid in grouped:
                grouped[cid].append(self._copy(enrollment))
        return grouped

    async def insert_enrollment(self, enrollment: Enrollment) -> None:
        self.enrollments[(enrollment.student_id, enrollment.course_id)] = self._copy(
            enrollment
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
        enrollment = self.enrollments[(student_id, course_id)]
        enrollment.progress = progress
        enrollment.completed_lessons_count = completed_lessons_count
        enrollment.completed_at = completed_at
        enrollment.updated_at = updated_at

    async def update_last_accessed(
        self,
        student_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        updated_at: datetime,
    ) -> None:
        enrollment = self.enrollments[(student_id, course_id)]
        enrollment.last_accessed_lesson_id = lesson_id
        enrollment.updated_at = updated_at

    # Completions

    async def get_completion(
        self, student_id: UUID, lesson_id: UUID
    ) -> LessonCompletion | None:
        return self.completions.get((student_id, lesson_id))

    async def list_student_completions(
        self, student_id: UUID
    ) -> list[LessonCompletion]:
        return [c for (sid, _), c in self.completions.items() if sid == student_id]

    async def save_completion(
        self,
        completion: LessonCompletion,
        previous: LessonCompletion | None = None,
    ) -> None:
        self.completions[(completion.student_id, completion.lesson_id)] = completion
        if completion.teacher_id is None:
            return
        if previous is not None:
            self.activity.discard(
                (
                    completion.teacher_id,
                    previous.completed_at,
                    previous.student_id,
                    previous.lesson_id,
                )
            )
        self.activity.add(
            (
                completion.teacher_id,
                completion.completed_at,
                completion.student_id,
                completion.lesson_id,
            )
        )

    async def delete_completion(self, completion: LessonCompletion) -> None:
        self.completions.pop((completion.student_id, completion.lesson_id), None)
        self.activity = {
            row
            for row in self.activity
            if (row[2], row[3]) != (completion.student_id, completion.lesson_id)
        }

    async def list_lesson_completions(
        self, lesson_ids: list[UUID]
    ) -> dict[UUID, list[LessonCompletion]]:
        grouped: dict[UUID, list[LessonCompletion]] = {lid: [] for lid in lesson_ids}
        for (_, lid), completion in self.completions.items():
            if lid in grouped:
                grouped[lid].append(
                    LessonCompletion(
                        student_id=completion.student_id,
                        lesson_id=completion.lesson_id,
                        course_id=completion.course_id,
                        completed_at=completion.completed_at,
                    )
                )
        return grouped

    async def list_teacher_activity(
        self, teacher_id: UUID, start: datetime, end: datetime
    ) -> list[tuple[datetime, UUID]]:
        return [
            (completed_at, student_id)
            for tid, completed_at, student_id, _ in self.activity
            if tid == teacher_id and start <= completed_at < end
        ]
