from lms_quiz.models.base import Base
from lms_quiz.models.user import User, UserRole
from lms_quiz.models.course import Course, Lesson
from lms_quiz.models.enrollment import Enrollment, LessonCompletion
from lms_quiz.models.badge import Badge, UserBadge
from lms_quiz.models.quiz import Quiz
from lms_quiz.models.quiz_question import QuizQuestion, QuizOption, QuestionType
from lms_quiz.models.quiz_attempt import QuizAttempt
from lms_quiz.models.quiz_response import QuizResponse

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Course",
    "Lesson",
    "Enrollment",
    "LessonCompletion",
    "Badge",
    "UserBadge",
    "Quiz",
    "QuizQuestion",
    "QuizOption",
    "QuestionType",
    "QuizAttempt",
    "QuizResponse",
]
