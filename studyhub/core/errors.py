"""Domain error taxonomy shared by the progress and analytics services.

Errors carry a safe, user-facing ``message`` and a machine ``code``. Routers
translate them into HTTP responses; nothing here knows about HTTP.
"""


class LearningError(Exception):
    """Base error for learning-progress operations."""

    def __init__(self, message: str, code: str = "learning_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LearningError):
    """A referenced lesson, course or enrollment does not exist."""

    def __init__(self, message: str = "Resource not found", code: str = "not_found"):
        super().__init__(message, code)


class ForbiddenError(LearningError):
    """The caller lacks the required relationship to the resource."""

    def __init__(self, message: str = "Access denied", code: str = "forbidden"):
        super().__init__(message, code)


class InternalConsistencyError(LearningError):
    """Stored data contradicts itself (e.g. an enrollment for a missing course)."""

    def __init__(
        self,
        message: str = "Internal consistency error",
        code: str = "internal_consistency",
    ):
        super().__init__(message, code)


class LessonNotFoundError(NotFoundError):
    """Lesson does not exist."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class CourseNotFoundError(NotFoundError):
    """Course does not exist."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class EnrollmentNotFoundError(NotFoundError):
    """Student is not enrolled in the requested course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "enrollment_not_found")


class NotEnrolledError(ForbiddenError):
    """Acting on a course lesson requires an enrollment."""

    def __init__(self, message: str = "Enrollment required"):
        super().__init__(message, "not_enrolled")


class LessonAccessDeniedError(ForbiddenError):
    """Caller does not own the lesson."""

    def __init__(self, message: str = "You do not have access to this lesson"):
        super().__init__(message, "lesson_access_denied")
