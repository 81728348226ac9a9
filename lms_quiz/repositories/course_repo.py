"""
Course Repository

Read-side access to the course collaborator tables (courses, lessons,
enrollments) plus lesson completion bookkeeping.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from lms_quiz.repositories.base import BaseRepository
from lms_quiz.models.course import Course, Lesson
from lms_quiz.models.enrollment import Enrollment, LessonCompletion


class LessonRepository(BaseRepository[Lesson]):
    """Repository for Lesson model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Lesson, db)

    async def get_with_course(self, lesson_id: UUID) -> Optional[Lesson]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.course))
            .where(self.model.id == lesson_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_course_for_lesson(self, lesson_id: UUID) -> Optional[Course]:
        stmt = (
            select(Course)
            .join(Lesson, Lesson.course_id == Course.id)
            .where(Lesson.id == lesson_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class EnrollmentRepository(BaseRepository[Enrollment]):
    """Repository for Enrollment model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Enrollment, db)

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        count = await self.count(
            self.model.user_id == user_id,
            self.model.course_id == course_id,
        )
        return count > 0


class LessonCompletionRepository(BaseRepository[LessonCompletion]):
    """Repository for LessonCompletion model."""

    def __init__(self, db: AsyncSession):
        super().__init__(LessonCompletion, db)

    async def is_completed(self, user_id: UUID, lesson_id: UUID) -> bool:
        count = await self.count(
            self.model.user_id == user_id,
            self.model.lesson_id == lesson_id,
        )
        return count > 0
