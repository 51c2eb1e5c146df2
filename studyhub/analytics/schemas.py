"""Pydantic schemas for teacher analytics."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field


STANDALONE_COURSE_TITLE = "Standalone"


class Pagination(BaseModel):
    """Page metadata for paginated analytics listings."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        """Create pagination metadata (total_pages rounds up)."""
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit if limit > 0 else 0,
        )


# ==============================================================================
# Lesson Completion Rates
# ==============================================================================


class LessonCompletionRate(BaseModel):
    """Completion count of one lesson against its course enrollments."""

    lesson_id: UUID
    title: str
    course_title: str = Field(description='Course title or "Standalone"')
    completions: int
    enrolled_students: int


class LessonCompletionRatesResponse(BaseModel):
    """Paginated completion rates, newest lesson first."""

    lessons: list[LessonCompletionRate]
    pagination: Pagination


# ==============================================================================
# Lesson Dropoff
# ==============================================================================


class DropoffBucket(BaseModel):
    """Number of students in a progress range."""

    range: str
    count: int


class LessonDropoffResponse(BaseModel):
    """Progress distribution of the students of a lesson's course."""

    lesson_id: UUID
    title: str
    total_students: int
    completed_count: int
    completion_rate: int = Field(description="Rounded percentage")
    distribution: list[DropoffBucket]


# ==============================================================================
# Weekly Active Students
# ==============================================================================


class WeeklyActiveBucket(BaseModel):
    """Distinct students active in one Sunday-aligned week."""

    week_start: date
    week_end: date
    active_students: int


class WeeklyActiveResponse(BaseModel):
    """Weekly buckets, oldest first."""

    weekly_active: list[WeeklyActiveBucket]


# ==============================================================================
# Quiz Performance
# ==============================================================================


class QuizPerformance(BaseModel):
    """Average score of one quiz."""

    quiz_id: UUID
    title: str
    course_title: str
    total_attempts: int
    has_attempts: bool
    average_score: int | None = Field(
        default=None, description="Mean percentage; null without attempts"
    )


class QuizPerformanceResponse(BaseModel):
    """Paginated quiz performance, newest quiz first."""

    quizzes: list[QuizPerformance]
    pagination: Pagination


class CacheInvalidatedResponse(BaseModel):
    """Result of dropping cached analytics."""

    teacher_id: UUID
    keys_deleted: int
