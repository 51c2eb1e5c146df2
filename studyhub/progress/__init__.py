"""Student progress tracking module.

Provides:
- Course enrollment management
- Lesson completion store
- Course progress calculation
- Resume point and lesson navigation
"""

from .models import (
    PROGRESS_TABLES_CQL,
    Enrollment,
    LessonCompletion,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "Enrollment",
    "LessonCompletion",
]
