"""
Access Service

Authorization checks shared by the quiz services. Identity is always passed
in explicitly; nothing here reads request state.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.exceptions import (
    AuthorizationError,
    LessonNotFoundError,
    NotEnrolledError,
    QuizNotFoundError,
)
from lms_quiz.models import Course, Lesson, Quiz, User
from lms_quiz.repositories.course_repo import EnrollmentRepository, LessonRepository


class AccessService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.lesson_repo = LessonRepository(db)
        self.enrollment_repo = EnrollmentRepository(db)

    async def get_lesson(self, lesson_id: UUID, course_id: UUID = None) -> Lesson:
        lesson = await self.lesson_repo.get_with_course(lesson_id)
        if not lesson or (course_id is not None and lesson.course_id != course_id):
            raise LessonNotFoundError(lesson_id)
        return lesson

    async def ensure_course_owner(self, user: User, course: Course) -> None:
        """Instructors manage quizzes only on their own courses."""
        if user.is_admin:
            return
        if not user.is_instructor or course.instructor_id != user.id:
            raise AuthorizationError("Not authorized to manage quizzes for this course")

    async def ensure_can_manage_quiz(self, user: User, quiz: Quiz) -> None:
        course = await self.lesson_repo.get_course_for_lesson(quiz.lesson_id)
        if course is None:
            raise LessonNotFoundError(quiz.lesson_id)
        await self.ensure_course_owner(user, course)

    async def can_manage_quiz(self, user: User, quiz: Quiz) -> bool:
        try:
            await self.ensure_can_manage_quiz(user, quiz)
        except (AuthorizationError, LessonNotFoundError):
            return False
        return True

    async def ensure_can_take_quiz(self, user: User, quiz: Quiz) -> None:
        """
        Students must be enrolled in the quiz's course, and inactive quizzes
        are reported as missing to them.

        Raises:
            QuizNotFoundError: quiz is inactive
            NotEnrolledError: student is not enrolled in the course
        """
        if user.is_admin:
            return
        if user.is_instructor and await self.can_manage_quiz(user, quiz):
            return
        if not quiz.is_active:
            raise QuizNotFoundError(quiz.id)
        course = await self.lesson_repo.get_course_for_lesson(quiz.lesson_id)
        if course is None or not await self.enrollment_repo.is_enrolled(user.id, course.id):
            raise NotEnrolledError()
