"""Teacher analytics service layer.

Read-only rollups over the completion store, enrollments and quiz attempts:
- Per-lesson completion rates (paginated)
- Per-lesson progress dropoff distribution
- Weekly active students
- Per-quiz average scores (paginated)

Related records are fetched with one batched ``IN`` query per table per page.
Results are cached in Redis when a client is configured.
"""

import json
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel
from redis.exceptions import RedisError

from studyhub.core.errors import LessonAccessDeniedError, LessonNotFoundError

from .schemas import (
    STANDALONE_COURSE_TITLE,
    DropoffBucket,
    LessonCompletionRate,
    LessonCompletionRatesResponse,
    LessonDropoffResponse,
    Pagination,
    QuizPerformance,
    QuizPerformanceResponse,
    WeeklyActiveBucket,
    WeeklyActiveResponse,
)


if TYPE_CHECKING:
    import redis.asyncio as redis

    from studyhub.courses.service import ContentService
    from studyhub.progress.repository import ProgressRepository

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_MAX_PAGE_SIZE = 100

DROPOFF_RANGES = ["0-25%", "26-50%", "51-75%", "76-99%"]
COMPLETED_RANGE = "100%"


def analytics_cache_key(teacher_id: UUID, suffix: str) -> str:
    """Cache key for a teacher's analytics result."""
    return f"analytics:{teacher_id}:{suffix}"


def week_start(moment: datetime) -> datetime:
    """Sunday 00:00 UTC of the calendar week containing ``moment``."""
    moment = moment.astimezone(UTC)
    days_since_sunday = (moment.weekday() + 1) % 7
    day = moment.date() - timedelta(days=days_since_sunday)
    return datetime.combine(day, time.min, tzinfo=UTC)


def dropoff_bucket(progress: Decimal) -> int | None:
    """Index into ``DROPOFF_RANGES`` for a progress value (None at 100)."""
    if progress <= 25:
        return 0
    if progress <= 50:
        return 1
    if progress <= 75:
        return 2
    if progress < 100:
        return 3
    return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves up (0.5 -> 1)."""
    return int(Decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def paginate(items: Sequence, page: int, limit: int) -> list:
    """Slice one page (1-based) out of ``items``."""
    start = (page - 1) * limit
    return list(items[start : start + limit])


class AnalyticsService:
    """Service for teacher-facing analytics."""

    def __init__(
        self,
        progress: "ProgressRepository",
        content: "ContentService",
        redis_client: "redis.Redis | None" = None,
        cache_ttl: int = DEFAULT_CACHE_TTL_SECONDS,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ):
        self.progress = progress
        self.content = content
        self.redis = redis_client
        self.cache_ttl = cache_ttl
        self.max_page_size = max_page_size

    def _clamp(self, page: int, limit: int) -> tuple[int, int]:
        return max(1, page), max(1, min(limit, self.max_page_size))

    # ==========================================================================
    # Lesson Completion Rates
    # ==========================================================================

    async def lesson_completion_rates(
        self, teacher_id: UUID, page: int = 1, limit: int = 20
    ) -> LessonCompletionRatesResponse:
        """Completions and course enrollment counts per lesson, newest first."""
        page, limit = self._clamp(page, limit)
        self._log_view(teacher_id, "lesson_completion_rates")

        key = analytics_cache_key(teacher_id, f"lessons:{page}:{limit}")
        cached = await self._cache_get(key, LessonCompletionRatesResponse)
        if cached is not None:
            return cached

        lessons = await self.content.list_teacher_lessons(teacher_id)
        page_lessons = paginate(lessons, page, limit)

        course_ids = list({item.course_id for item in page_lessons if item.course_id})
        courses = await self.content.get_courses(course_ids)
        enrollments = await self.progress.list_course_enrollments(course_ids)
        completions = await self.progress.list_lesson_completions(
            [lesson.id for lesson in page_lessons]
        )

        rows = []
        for lesson in page_lessons:
            course = courses.get(lesson.course_id) if lesson.course_id else None
            rows.append(
                LessonCompletionRate(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    course_title=course.title if course else STANDALONE_COURSE_TITLE,
                    completions=len(completions.get(lesson.id, [])),
                    enrolled_students=(
                        len(enrollments.get(lesson.course_id, []))
                        if lesson.course_id
                        else 0
                    ),
                )
            )

        result = LessonCompletionRatesResponse(
            lessons=rows,
            pagination=Pagination.build(page, limit, len(lessons)),
        )
        await self._cache_set(key, result)
        return result

    # ==========================================================================
    # Lesson Dropoff
    # ==========================================================================

    async def lesson_dropoff(
        self,
        teacher_id: UUID,
        lesson_id: UUID,
        is_admin: bool = False,
    ) -> LessonDropoffResponse:
        """Progress distribution of the students of a lesson's course.

        The four range buckets count course enrollments by progress; the
        ``100%`` bucket is the number of completion records of the lesson.
        For a course lesson ``total_students`` and ``completion_rate`` are
        measured against course enrollments, not against the lesson's own
        completion records, so the rate reads as the share of the course
        that finished this lesson. Standalone lessons have no enrollments
        and fall back to the completion count.

        Raises:
            LessonNotFoundError: If the lesson does not exist
            LessonAccessDeniedError: If the teacher does not own the lesson
        """
        lesson = await self.content.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        if not is_admin and lesson.teacher_id != teacher_id:
            logger.warning(
                "analytics_access_denied",
                teacher_id=str(teacher_id),
                lesson_id=str(lesson_id),
            )
            raise LessonAccessDeniedError

        self._log_view(teacher_id, "lesson_dropoff", lesson_id=str(lesson_id))

        key = analytics_cache_key(lesson.teacher_id, f"dropoff:{lesson_id}")
        cached = await self._cache_get(key, LessonDropoffResponse)
        if cached is not None:
            return cached

        completions = await self.progress.list_lesson_completions([lesson.id])
        completed_count = len(completions.get(lesson.id, []))

        counts = [0] * len(DROPOFF_RANGES)
        if lesson.course_id is not None:
            by_course = await self.progress.list_course_enrollments([lesson.course_id])
            enrollments = by_course.get(lesson.course_id, [])
            total_students = len(enrollments)
            for enrollment in enrollments:
                index = dropoff_bucket(enrollment.progress)
                if index is not None:
                    counts[index] += 1
        else:
            total_students = completed_count

        distribution = [
            DropoffBucket(range=label, count=count)
            for label, count in zip(DROPOFF_RANGES, counts, strict=True)
        ]
        distribution.append(DropoffBucket(range=COMPLETED_RANGE, count=completed_count))

        result = LessonDropoffResponse(
            lesson_id=lesson.id,
            title=lesson.title,
            total_students=total_students,
            completed_count=completed_count,
            completion_rate=(
                round_half_up(completed_count / total_students * 100) if total_students else 0
            ),
            distribution=distribution,
        )
        await self._cache_set(key, result)
        return result

    # ==========================================================================
    # Weekly Active Students
    # ==========================================================================

    async def weekly_active_students(
        self,
        teacher_id: UUID,
        weeks: int = 8,
        now: datetime | None = None,
    ) -> WeeklyActiveResponse:
        """Distinct students completing the teacher's lessons per week.

        Weeks start Sunday 00:00 UTC; the last bucket contains ``now``.
        Buckets are returned oldest first.
        """
        weeks = max(1, weeks)
        self._log_view(teacher_id, "weekly_active_students", weeks=weeks)

        key = analytics_cache_key(teacher_id, f"active:{weeks}")
        if now is None:
            cached = await self._cache_get(key, WeeklyActiveResponse)
            if cached is not None:
                return cached

        current = week_start(now or datetime.now(UTC))
        first = current - timedelta(weeks=weeks - 1)
        end = current + timedelta(weeks=1)

        activity = await self.progress.list_teacher_activity(teacher_id, first, end)

        students: list[set[UUID]] = [set() for _ in range(weeks)]
        for completed_at, student_id in activity:
            index = (completed_at - first).days // 7
            if 0 <= index < weeks:
                students[index].add(student_id)

        result = WeeklyActiveResponse(
            weekly_active=[
                WeeklyActiveBucket(
                    week_start=(first + timedelta(weeks=i)).date(),
                    week_end=(first + timedelta(weeks=i + 1)).date(),
                    active_students=len(students[i]),
                )
                for i in range(weeks)
            ]
        )
        if now is None:
            await self._cache_set(key, result)
        return result

    # ==========================================================================
    # Quiz Performance
    # ==========================================================================

    async def quiz_performance(
        self, teacher_id: UUID, page: int = 1, limit: int = 20
    ) -> QuizPerformanceResponse:
        """Attempt counts and average percentage per quiz, newest first."""
        page, limit = self._clamp(page, limit)
        self._log_view(teacher_id, "quiz_performance")

        key = analytics_cache_key(teacher_id, f"quizzes:{page}:{limit}")
        cached = await self._cache_get(key, QuizPerformanceResponse)
        if cached is not None:
            return cached

        quizzes = await self.content.list_teacher_quizzes(teacher_id)
        page_quizzes = paginate(quizzes, page, limit)

        courses = await self.content.get_courses(
            list({q.course_id for q in page_quizzes if q.course_id})
        )
        attempts = await self.content.get_quiz_attempts([q.id for q in page_quizzes])

        rows = []
        for quiz in page_quizzes:
            quiz_attempts = attempts.get(quiz.id, [])
            course = courses.get(quiz.course_id) if quiz.course_id else None
            average = None
            if quiz_attempts:
                average = round_half_up(
                    sum(a.percent for a in quiz_attempts) / len(quiz_attempts)
                )
            rows.append(
                QuizPerformance(
                    quiz_id=quiz.id,
                    title=quiz.title,
                    course_title=course.title if course else STANDALONE_COURSE_TITLE,
                    total_attempts=len(quiz_attempts),
                    has_attempts=bool(quiz_attempts),
                    average_score=average,
                )
            )

        result = QuizPerformanceResponse(
            quizzes=rows,
            pagination=Pagination.build(page, limit, len(quizzes)),
        )
        await self._cache_set(key, result)
        return result

    # ==========================================================================
    # Cache Management
    # ==========================================================================

    async def invalidate_teacher_cache(self, teacher_id: UUID) -> int:
        """Drop every cached analytics result of a teacher.

        Returns:
            Number of keys deleted
        """
        if not self.redis:
            return 0

        pattern = analytics_cache_key(teacher_id, "*")
        keys = [key async for key in self.redis.scan_iter(match=pattern)]
        if keys:
            await self.redis.delete(*keys)

        logger.info(
            "analytics_cache_invalidated",
            teacher_id=str(teacher_id),
            keys=len(keys),
        )
        return len(keys)

    async def _cache_get(self, key: str, model: type[ModelT]) -> ModelT | None:
        if not self.redis:
            return None
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            logger.warning("analytics_cache_read_failed", key=key, error=str(e))
            return None
        if cached:
            return model(**json.loads(cached))
        return None

    async def _cache_set(self, key: str, result: BaseModel) -> None:
        if not self.redis:
            return
        try:
            await self.redis.setex(
                key,
                self.cache_ttl,
                json.dumps(result.model_dump(mode="json")),
            )
        except RedisError as e:
            logger.warning("analytics_cache_write_failed", key=key, error=str(e))

    def _log_view(self, teacher_id: UUID, endpoint: str, **fields) -> None:
        """Audit trail for analytics access."""
        logger.info(
            "analytics_viewed",
            teacher_id=str(teacher_id),
            endpoint=endpoint,
            **fields,
        )
