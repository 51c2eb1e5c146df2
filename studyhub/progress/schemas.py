"""Pydantic schemas for student progress tracking.

Request and response models for:
- Course enrollment
- Lesson completion and lesson views (with navigation)
- Course progress and resume queries
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from studyhub.courses.models import Lesson

from .models import Enrollment


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    student_id: UUID
    progress: Decimal = Field(description="0-100 percentage")
    completed_lessons_count: int
    completed_at: datetime | None = None
    last_accessed_lesson_id: UUID | None = None
    enrolled_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            student_id=entity.student_id,
            progress=entity.progress,
            completed_lessons_count=entity.completed_lessons_count,
            completed_at=entity.completed_at,
            last_accessed_lesson_id=entity.last_accessed_lesson_id,
            enrolled_at=entity.enrolled_at,
            updated_at=entity.updated_at,
        )


class EnrollmentListResponse(BaseModel):
    """List of enrollments."""

    items: list[EnrollmentResponse]
    total: int


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class LessonSummary(BaseModel):
    """Minimal lesson reference used in navigation and resume payloads."""

    id: UUID
    title: str
    order: int
    course_id: UUID | None = None
    status: str

    @classmethod
    def from_entity(cls, lesson: Lesson) -> "LessonSummary":
        """Create summary from a lesson entity."""
        return cls(
            id=lesson.id,
            title=lesson.title,
            order=lesson.order,
            course_id=lesson.course_id,
            status=lesson.status,
        )

    @classmethod
    def from_optional(cls, lesson: Lesson | None) -> "LessonSummary | None":
        """Create summary, passing None through."""
        return cls.from_entity(lesson) if lesson is not None else None


class LessonNavigation(BaseModel):
    """Previous/next siblings within the course outline."""

    previous: LessonSummary | None = None
    next: LessonSummary | None = None


class CompleteLessonResponse(BaseModel):
    """Result of marking a lesson complete."""

    message: str = "Lesson marked as complete"
    lesson_id: UUID
    completed: bool = True
    completed_at: datetime
    progress: Decimal | None = Field(
        default=None, description="Course progress; null for independent lessons"
    )
    course_completed_at: datetime | None = None
    next_lesson: LessonSummary | None = None


class LessonViewResponse(BaseModel):
    """Lesson page payload: completion state plus navigation."""

    lesson: LessonSummary
    is_completed: bool
    completed_at: datetime | None = None
    navigation: LessonNavigation


class LessonProgressResponse(BaseModel):
    """Completion state of a single lesson for the caller."""

    lesson_id: UUID
    lesson_title: str
    course_id: UUID | None = None
    progress: Decimal
    completed_at: datetime | None = None
    is_completed: bool


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class CourseLessonStatus(BaseModel):
    """One row of the course outline with completion flag."""

    id: UUID
    title: str
    order: int
    completed: bool


class CourseProgressResponse(BaseModel):
    """Full course progress for the caller."""

    course_id: UUID
    course_title: str
    progress: Decimal
    completed_lessons_count: int
    total_lessons: int
    last_accessed_lesson_id: UUID | None = None
    completed_at: datetime | None = None
    lessons: list[CourseLessonStatus]


class ResumeResponse(BaseModel):
    """Where to continue a course."""

    lesson: LessonSummary | None = None
    progress: Decimal
    course_slug: str


class ProgressSnapshot(BaseModel):
    """Recomputed enrollment progress."""

    course_id: UUID
    student_id: UUID
    progress: Decimal
    completed_lessons_count: int
    completed_at: datetime | None = None


class LessonDeletedResponse(BaseModel):
    """Result of the lesson deletion cascade."""

    lesson_id: UUID
    purged_completions: int
