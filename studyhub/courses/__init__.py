"""Course content read model: courses, lessons, quizzes and attempts."""

from .models import COURSES_TABLES_CQL, Course, Lesson, LessonStatus, Quiz, QuizAttempt


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "Lesson",
    "LessonStatus",
    "Quiz",
    "QuizAttempt",
]
