"""Teacher analytics API endpoints.

Provides routes for:
- Lesson completion rates
- Lesson dropoff distribution
- Weekly active students
- Quiz performance
- Cache invalidation
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from studyhub.auth.dependencies import TeacherUser
from studyhub.config import get_settings
from studyhub.core.errors import LearningError

from .dependencies import AnalyticsServiceDep, TeacherScope, handle_analytics_error
from .schemas import (
    CacheInvalidatedResponse,
    LessonCompletionRatesResponse,
    LessonDropoffResponse,
    QuizPerformanceResponse,
    WeeklyActiveResponse,
)


router = APIRouter(prefix="/v1/analytics", tags=["analytics"])

_settings = get_settings()

PageQuery = Annotated[int, Query(ge=1, description="1-based page number")]
LimitQuery = Annotated[
    int,
    Query(ge=1, description=f"Page size (capped at {_settings.analytics_max_page_size})"),
]
WeeksQuery = Annotated[
    int,
    Query(ge=1, le=_settings.analytics_max_weeks, description="Number of weeks"),
]


@router.get(
    "/lessons",
    response_model=LessonCompletionRatesResponse,
    summary="Lesson completion rates",
)
async def lesson_completion_rates(
    teacher_id: TeacherScope,
    analytics_service: AnalyticsServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = _settings.analytics_default_page_size,
) -> LessonCompletionRatesResponse:
    """Completions per lesson against course enrollments, newest lesson first."""
    return await analytics_service.lesson_completion_rates(teacher_id, page, limit)


@router.get(
    "/lessons/{lesson_id}/dropoff",
    response_model=LessonDropoffResponse,
    summary="Lesson dropoff distribution",
)
async def lesson_dropoff(
    lesson_id: UUID,
    teacher_id: TeacherScope,
    analytics_service: AnalyticsServiceDep,
    user: TeacherUser,
) -> LessonDropoffResponse:
    """Progress distribution of the students of a lesson's course."""
    try:
        return await analytics_service.lesson_dropoff(
            teacher_id, lesson_id, is_admin=user.is_admin
        )
    except LearningError as e:
        raise handle_analytics_error(e) from e


@router.get(
    "/students/active",
    response_model=WeeklyActiveResponse,
    summary="Weekly active students",
)
async def weekly_active_students(
    teacher_id: TeacherScope,
    analytics_service: AnalyticsServiceDep,
    weeks: WeeksQuery = _settings.analytics_default_weeks,
) -> WeeklyActiveResponse:
    """Distinct students completing the teacher's lessons per calendar week."""
    return await analytics_service.weekly_active_students(teacher_id, weeks)


@router.get(
    "/quizzes",
    response_model=QuizPerformanceResponse,
    summary="Quiz performance",
)
async def quiz_performance(
    teacher_id: TeacherScope,
    analytics_service: AnalyticsServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = _settings.analytics_default_page_size,
) -> QuizPerformanceResponse:
    """Attempt counts and average score per quiz, newest quiz first."""
    return await analytics_service.quiz_performance(teacher_id, page, limit)


@router.delete(
    "/cache",
    response_model=CacheInvalidatedResponse,
    status_code=status.HTTP_200_OK,
    summary="Invalidate cached analytics",
)
async def invalidate_cache(
    teacher_id: TeacherScope,
    analytics_service: AnalyticsServiceDep,
) -> CacheInvalidatedResponse:
    """Drop cached analytics so the next read recomputes."""
    deleted = await analytics_service.invalidate_teacher_cache(teacher_id)
    return CacheInvalidatedResponse(teacher_id=teacher_id, keys_deleted=deleted)
