"""Student progress tracking API endpoints.

Provides routes for:
- Course enrollment
- Lesson completion, lesson views and per-lesson progress
- Course progress and resume
- Lesson deletion with completion purge
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from studyhub.auth.dependencies import StudentUser, TeacherUser
from studyhub.core.errors import LearningError

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import (
    CompleteLessonResponse,
    CourseProgressResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    LessonDeletedResponse,
    LessonProgressResponse,
    LessonViewResponse,
    ResumeResponse,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])
lessons_router = APIRouter(prefix="/v1/lessons", tags=["lessons"])


# ==============================================================================
# Lesson Endpoints
# ==============================================================================


@lessons_router.post(
    "/{lesson_id}/complete",
    response_model=CompleteLessonResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark lesson as complete",
)
async def complete_lesson(
    lesson_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> CompleteLessonResponse:
    """Mark a lesson as complete for the current user.

    Course lessons require an enrollment; repeating the call only refreshes
    the completion timestamp.
    """
    try:
        return await progress_service.complete_lesson(lesson_id, user.id)
    except LearningError as e:
        raise handle_progress_error(e) from e


@lessons_router.get(
    "/{lesson_id}",
    response_model=LessonViewResponse,
    summary="View lesson",
)
async def view_lesson(
    lesson_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> LessonViewResponse:
    """Get lesson completion state and previous/next navigation."""
    try:
        return await progress_service.view_lesson(
            lesson_id, user.id, is_admin=user.is_admin
        )
    except LearningError as e:
        raise handle_progress_error(e) from e


@lessons_router.get(
    "/{lesson_id}/progress",
    response_model=LessonProgressResponse,
    summary="Get lesson progress",
)
async def get_lesson_progress(
    lesson_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> LessonProgressResponse:
    """Get completion state for a specific lesson."""
    try:
        return await progress_service.get_lesson_progress(lesson_id, user.id)
    except LearningError as e:
        raise handle_progress_error(e) from e


@lessons_router.delete(
    "/{lesson_id}",
    response_model=LessonDeletedResponse,
    summary="Delete lesson",
)
async def delete_lesson(
    lesson_id: UUID,
    user: TeacherUser,
    progress_service: ProgressServiceDep,
) -> LessonDeletedResponse:
    """Delete a lesson, purging its completions and recomputing course progress.

    Only the owning teacher or an admin may delete.
    """
    try:
        purged = await progress_service.delete_lesson(
            lesson_id, user.id, is_admin=user.is_admin
        )
    except LearningError as e:
        raise handle_progress_error(e) from e
    return LessonDeletedResponse(lesson_id=lesson_id, purged_completions=purged)


# ==============================================================================
# Course Progress Endpoints
# ==============================================================================


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> CourseProgressResponse:
    """Get progress and per-lesson completion for an enrolled course."""
    try:
        return await progress_service.get_course_progress(user.id, course_id)
    except LearningError as e:
        raise handle_progress_error(e) from e


@router.post(
    "/courses/{course_id}/resume",
    response_model=ResumeResponse,
    summary="Resume course",
)
async def resume_course(
    course_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> ResumeResponse:
    """Get the lesson to continue with."""
    try:
        return await progress_service.resume_course(user.id, course_id)
    except LearningError as e:
        raise handle_progress_error(e) from e


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> EnrollmentResponse:
    """Enroll current user in a course (no-op if already enrolled)."""
    try:
        enrollment = await progress_service.enroll(user.id, data.course_id)
    except LearningError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "/my",
    response_model=EnrollmentListResponse,
    summary="Get my enrollments",
)
async def get_my_enrollments(
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> EnrollmentListResponse:
    """Get all course enrollments for current user."""
    enrollments = await progress_service.list_enrollments(user.id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.get(
    "/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment for course",
)
async def get_enrollment(
    course_id: UUID,
    user: StudentUser,
    progress_service: ProgressServiceDep,
) -> EnrollmentResponse:
    """Get enrollment for a specific course."""
    enrollment = await progress_service.get_enrollment(user.id, course_id)
    if enrollment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not enrolled in this course",
        )
    return EnrollmentResponse.from_entity(enrollment)
