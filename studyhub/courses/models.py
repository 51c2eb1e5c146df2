"""Database models for course content.

Cassandra table definitions for:
- Courses and lessons (main lookup tables)
- Lessons by course: ordered course outline (order ASC, created_at ASC)
- Lessons/quizzes by teacher: teacher listings, newest first
- Quizzes and quiz attempts (read by analytics)

Content authoring lives outside this service; these records are the read
model the progress tracker works against.
"""

import re
import unicodedata
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class LessonStatus(str, Enum):
    """Lesson visibility status."""

    DRAFT = "draft"
    PRIVATE = "private"
    PUBLIC = "public"


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def generate_slug(title: str) -> str:
    """Generate URL-friendly slug from title."""
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = slug.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    return re.sub(r"[-\s]+", "-", slug)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    teacher_id UUID,
    title TEXT,
    slug TEXT,
    published BOOLEAN,
    created_at TIMESTAMP
)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    teacher_id UUID,
    course_id UUID,
    lesson_order INT,
    status TEXT,
    title TEXT,
    created_at TIMESTAMP
)
"""

# Course outline: clustering gives the total order (order, then creation time)
LESSONS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_course (
    course_id UUID,
    lesson_order INT,
    created_at TIMESTAMP,
    lesson_id UUID,
    teacher_id UUID,
    status TEXT,
    title TEXT,
    PRIMARY KEY (course_id, lesson_order, created_at, lesson_id)
) WITH CLUSTERING ORDER BY (lesson_order ASC, created_at ASC, lesson_id ASC)
"""

LESSONS_BY_TEACHER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_teacher (
    teacher_id UUID,
    created_at TIMESTAMP,
    lesson_id UUID,
    course_id UUID,
    lesson_order INT,
    status TEXT,
    title TEXT,
    PRIMARY KEY (teacher_id, created_at, lesson_id)
) WITH CLUSTERING ORDER BY (created_at DESC, lesson_id ASC)
"""

QUIZZES_BY_TEACHER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes_by_teacher (
    teacher_id UUID,
    created_at TIMESTAMP,
    quiz_id UUID,
    lesson_id UUID,
    course_id UUID,
    title TEXT,
    PRIMARY KEY (teacher_id, created_at, quiz_id)
) WITH CLUSTERING ORDER BY (created_at DESC, quiz_id ASC)
"""

QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    quiz_id UUID,
    attempt_id UUID,
    student_id UUID,
    score DOUBLE,
    max_score DOUBLE,
    completed_at TIMESTAMP,
    PRIMARY KEY (quiz_id, attempt_id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSONS_BY_COURSE_TABLE_CQL,
    LESSONS_BY_TEACHER_TABLE_CQL,
    QUIZZES_BY_TEACHER_TABLE_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier (UUID)
        teacher_id: Owning teacher
        title: Course title
        slug: URL-friendly identifier
        published: Whether the course is visible in the catalogue
        created_at: Creation timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        teacher_id: UUID | None = None,
        title: str = "",
        slug: str | None = None,
        published: bool = False,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.teacher_id = teacher_id
        self.title = title.strip()
        self.slug = slug or generate_slug(title)
        self.published = bool(published)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            teacher_id=row.teacher_id,
            title=row.title or "",
            slug=row.slug,
            published=row.published,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Course {self.title}>"


class Lesson:
    """Lesson entity.

    A lesson without ``course_id`` is an independent lesson: it has no
    position and needs no enrollment.

    Attributes:
        id: Unique identifier (UUID)
        teacher_id: Owning teacher
        course_id: Owning course (None for independent lessons)
        order: Position within the course
        status: Visibility (draft, private, public)
        title: Lesson title
        created_at: Creation timestamp (tie-breaker for equal ``order``)
    """

    def __init__(
        self,
        id: UUID | None = None,
        teacher_id: UUID | None = None,
        course_id: UUID | None = None,
        order: int = 0,
        status: str = LessonStatus.DRAFT.value,
        title: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.teacher_id = teacher_id
        self.course_id = course_id
        self.order = order
        self.status = status
        self.title = title.strip()
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @property
    def is_independent(self) -> bool:
        """Check if lesson is not attached to a course."""
        return self.course_id is None

    def sort_key(self) -> tuple[int, datetime, str]:
        """Total ordering within a course: order, then creation time."""
        return (self.order, self.created_at, str(self.id))

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson from a ``lessons`` row."""
        return cls(
            id=row.id,
            teacher_id=row.teacher_id,
            course_id=row.course_id,
            order=row.lesson_order or 0,
            status=row.status or LessonStatus.DRAFT.value,
            title=row.title or "",
            created_at=row.created_at,
        )

    @classmethod
    def from_outline_row(cls, row: Any, course_id: UUID) -> "Lesson":
        """Create Lesson from a ``lessons_by_course`` row."""
        return cls(
            id=row.lesson_id,
            teacher_id=row.teacher_id,
            course_id=course_id,
            order=row.lesson_order or 0,
            status=row.status or LessonStatus.DRAFT.value,
            title=row.title or "",
            created_at=row.created_at,
        )

    @classmethod
    def from_teacher_row(cls, row: Any, teacher_id: UUID) -> "Lesson":
        """Create Lesson from a ``lessons_by_teacher`` row."""
        return cls(
            id=row.lesson_id,
            teacher_id=teacher_id,
            course_id=row.course_id,
            order=row.lesson_order or 0,
            status=row.status or LessonStatus.DRAFT.value,
            title=row.title or "",
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "course_id": self.course_id,
            "order": self.order,
            "status": self.status,
            "title": self.title,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Lesson {self.title} #{self.order} ({self.status})>"


class Quiz:
    """Quiz entity attached to a teacher's lesson or course."""

    def __init__(
        self,
        id: UUID | None = None,
        teacher_id: UUID | None = None,
        lesson_id: UUID | None = None,
        course_id: UUID | None = None,
        title: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.teacher_id = teacher_id
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.title = title.strip()
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_teacher_row(cls, row: Any, teacher_id: UUID) -> "Quiz":
        """Create Quiz from a ``quizzes_by_teacher`` row."""
        return cls(
            id=row.quiz_id,
            teacher_id=teacher_id,
            lesson_id=row.lesson_id,
            course_id=row.course_id,
            title=row.title or "",
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Quiz {self.title}>"


class QuizAttempt:
    """A single scored quiz attempt."""

    def __init__(
        self,
        quiz_id: UUID,
        student_id: UUID,
        score: float,
        max_score: float,
        id: UUID | None = None,
        completed_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.quiz_id = quiz_id
        self.student_id = student_id
        self.score = score
        self.max_score = max_score
        self.completed_at = ensure_utc_aware(completed_at) or datetime.now(UTC)

    @property
    def percent(self) -> float:
        """Score as a percentage of the maximum (0 when max_score is 0)."""
        return (self.score / self.max_score) * 100 if self.max_score > 0 else 0.0

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        """Create QuizAttempt from a ``quiz_attempts`` row."""
        return cls(
            id=row.attempt_id,
            quiz_id=row.quiz_id,
            student_id=row.student_id,
            score=row.score or 0.0,
            max_score=row.max_score or 0.0,
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return f"<QuizAttempt quiz={self.quiz_id} {self.score}/{self.max_score}>"
