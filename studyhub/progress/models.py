"""Database models for student progress tracking.

Cassandra table definitions for:
- Enrollments: per-course enrollment with cached progress
- Lesson completions: one row per (student, lesson)
- Lookup tables: completions by lesson and by teacher for analytics

Architecture: Dual-write pattern for efficient queries by both
course_id and student_id perspectives.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from studyhub.courses.models import ensure_utc_aware


FULL_PROGRESS = Decimal(100)
PROGRESS_QUANTUM = Decimal("0.01")


def quantize_progress(value: Decimal) -> Decimal:
    """Round a percentage half-up to two decimal places."""
    return value.quantize(PROGRESS_QUANTUM, rounding=ROUND_HALF_UP)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Enrollments by course
# Serves course headcounts and the progress distribution
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    student_id UUID,
    progress DECIMAL,
    completed_lessons_count INT,
    completed_at TIMESTAMP,
    last_accessed_lesson_id UUID,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, student_id)
)
"""

# Lookup: courses by student
ENROLLMENTS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_student (
    student_id UUID,
    course_id UUID,
    progress DECIMAL,
    completed_lessons_count INT,
    completed_at TIMESTAMP,
    last_accessed_lesson_id UUID,
    enrolled_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (student_id, course_id)
)
"""

# The completion store: unique per (student, lesson)
LESSON_COMPLETIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_completions (
    student_id UUID,
    lesson_id UUID,
    course_id UUID,
    teacher_id UUID,
    completed_at TIMESTAMP,
    PRIMARY KEY (student_id, lesson_id)
)
"""

COMPLETIONS_BY_LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.completions_by_lesson (
    lesson_id UUID,
    student_id UUID,
    course_id UUID,
    completed_at TIMESTAMP,
    PRIMARY KEY (lesson_id, student_id)
)
"""

# Teacher activity feed, newest first; range-scanned by weekly analytics
COMPLETIONS_BY_TEACHER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.completions_by_teacher (
    teacher_id UUID,
    completed_at TIMESTAMP,
    student_id UUID,
    lesson_id UUID,
    PRIMARY KEY (teacher_id, completed_at, student_id, lesson_id)
) WITH CLUSTERING ORDER BY (completed_at DESC, student_id ASC, lesson_id ASC)
"""

# All CQL statements for table setup
PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_STUDENT_TABLE_CQL,
    LESSON_COMPLETIONS_TABLE_CQL,
    COMPLETIONS_BY_LESSON_TABLE_CQL,
    COMPLETIONS_BY_TEACHER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Course enrollment entity.

    ``progress`` and ``completed_at`` are a cache derived from completions;
    only the progress calculator writes them.

    Attributes:
        student_id: Student UUID
        course_id: Course UUID
        progress: Overall course progress (0-100, two decimals)
        completed_lessons_count: Completed lessons currently in the course
        completed_at: Set while progress is 100
        last_accessed_lesson_id: Resume hint (advisory)
        enrolled_at: Enrollment timestamp
        updated_at: Last progress or hint write
    """

    def __init__(
        self,
        student_id: UUID,
        course_id: UUID,
        progress: Decimal = Decimal(0),
        completed_lessons_count: int = 0,
        completed_at: datetime | None = None,
        last_accessed_lesson_id: UUID | None = None,
        enrolled_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.student_id = student_id
        self.course_id = course_id
        self.progress = progress
        self.completed_lessons_count = completed_lessons_count
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_lesson_id = last_accessed_lesson_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at) or self.enrolled_at

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.progress >= FULL_PROGRESS

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_id=row.course_id,
            progress=row.progress or Decimal(0),
            completed_lessons_count=row.completed_lessons_count or 0,
            completed_at=row.completed_at,
            last_accessed_lesson_id=row.last_accessed_lesson_id,
            enrolled_at=row.enrolled_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "progress": self.progress,
            "completed_lessons_count": self.completed_lessons_count,
            "completed_at": self.completed_at,
            "last_accessed_lesson_id": self.last_accessed_lesson_id,
            "enrolled_at": self.enrolled_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment student={self.student_id} course={self.course_id} "
            f"{self.progress}%>"
        )


class LessonCompletion:
    """Completion record for one (student, lesson) pair.

    Re-marking a lesson complete overwrites ``completed_at``.
    """

    def __init__(
        self,
        student_id: UUID,
        lesson_id: UUID,
        course_id: UUID | None = None,
        teacher_id: UUID | None = None,
        completed_at: datetime | None = None,
    ):
        self.student_id = student_id
        self.lesson_id = lesson_id
        self.course_id = course_id
        self.teacher_id = teacher_id
        self.completed_at = ensure_utc_aware(completed_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "LessonCompletion":
        """Create LessonCompletion instance from Cassandra row."""
        return cls(
            student_id=row.student_id,
            lesson_id=row.lesson_id,
            course_id=row.course_id,
            teacher_id=row.teacher_id,
            completed_at=row.completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "student_id": self.student_id,
            "lesson_id": self.lesson_id,
            "course_id": self.course_id,
            "teacher_id": self.teacher_id,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return f"<LessonCompletion student={self.student_id} lesson={self.lesson_id}>"
