"""FastAPI dependencies for teacher analytics.

Provides dependency injection for:
- Analytics service
- Teacher scope resolution (admins may inspect another teacher)
- Error handlers
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Query, Request, status

from studyhub.auth.dependencies import TeacherUser
from studyhub.core.errors import LearningError

from .service import AnalyticsService


async def get_analytics_service(request: Request) -> AnalyticsService:
    """Get analytics service from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "analytics_service") or not app_state.analytics_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analytics service unavailable",
        )
    return app_state.analytics_service


AnalyticsServiceDep = Annotated[AnalyticsService, Depends(get_analytics_service)]


async def get_teacher_scope(
    user: TeacherUser,
    teacher_id: Annotated[
        UUID | None,
        Query(description="Teacher to inspect (admins only)"),
    ] = None,
) -> UUID:
    """Resolve whose analytics the caller is reading.

    Teachers always read their own; admins may pass ``teacher_id``.
    """
    if teacher_id is None or teacher_id == user.id:
        return user.id
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins may view another teacher's analytics",
        )
    return teacher_id


TeacherScope = Annotated[UUID, Depends(get_teacher_scope)]


def handle_analytics_error(error: LearningError) -> HTTPException:
    """Convert analytics errors to HTTP exceptions."""
    status_map = {
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_access_denied": status.HTTP_403_FORBIDDEN,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
