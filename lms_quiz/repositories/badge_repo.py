"""
Badge Repository

Data access layer for Badge and UserBadge models.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lms_quiz.repositories.base import BaseRepository
from lms_quiz.models.badge import Badge, UserBadge


class BadgeRepository(BaseRepository[Badge]):
    """Repository for Badge model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Badge, db)

    async def get_by_name(self, name: str) -> Optional[Badge]:
        result = await self.db.execute(
            select(self.model).where(self.model.name == name)
        )
        return result.scalar_one_or_none()


class UserBadgeRepository(BaseRepository[UserBadge]):
    """Repository for UserBadge model."""

    def __init__(self, db: AsyncSession):
        super().__init__(UserBadge, db)

    async def has_badge(self, user_id: UUID, badge_id: UUID) -> bool:
        count = await self.count(
            self.model.user_id == user_id,
            self.model.badge_id == badge_id,
        )
        return count > 0
