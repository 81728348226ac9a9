from lms_quiz.repositories.base import BaseRepository
from lms_quiz.repositories.user_repo import UserRepository
from lms_quiz.repositories.course_repo import (
    LessonRepository,
    EnrollmentRepository,
    LessonCompletionRepository,
)
from lms_quiz.repositories.badge_repo import BadgeRepository, UserBadgeRepository
from lms_quiz.repositories.quiz_repo import (
    QuizRepository,
    QuizAttemptRepository,
    QuizResponseRepository,
)

__all__ = [
    "BaseRepository",
    "UserRepository",
    "LessonRepository",
    "EnrollmentRepository",
    "LessonCompletionRepository",
    "BadgeRepository",
    "UserBadgeRepository",
    "QuizRepository",
    "QuizAttemptRepository",
    "QuizResponseRepository",
]
