"""
User Repository

Data access layer for User model.
All user-related database operations.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lms_quiz.repositories.base import BaseRepository
from lms_quiz.models import User


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Get by email
    # =================
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address (case-insensitive)."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    # =================
    # Create user
    # =================
    async def create_user(
        self,
        email: str,
        password_hash: str,
        full_name: str,
        role: str,
    ) -> User:
        """Create a new active user."""
        return await self.create(
            email=email.lower(),
            password_hash=password_hash,
            full_name=full_name,
            role=role,
            is_active=True,
        )
