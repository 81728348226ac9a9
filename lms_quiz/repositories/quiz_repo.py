"""
Quiz Repository

Data access layer for Quiz, QuizQuestion, QuizAttempt, and QuizResponse models.
"""

import hashlib
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.orm import selectinload

from lms_quiz.repositories.base import BaseRepository
from lms_quiz.models.quiz import Quiz
from lms_quiz.models.quiz_question import QuizQuestion
from lms_quiz.models.quiz_attempt import QuizAttempt
from lms_quiz.models.quiz_response import QuizResponse
from lms_quiz.models.user import User


class QuizRepository(BaseRepository[Quiz]):
    """Repository for Quiz model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Quiz, db)

    async def get_by_lesson(
        self,
        lesson_id: UUID,
        active_only: bool = False,
    ) -> List[Quiz]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.questions).selectinload(QuizQuestion.options))
            .where(self.model.lesson_id == lesson_id)
            .order_by(self.model.created_at)
        )
        if active_only:
            stmt = stmt.where(self.model.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_with_questions(self, quiz_id: UUID) -> Optional[Quiz]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.questions).selectinload(QuizQuestion.options))
            .where(self.model.id == quiz_id)
            # collections replaced earlier in this session must be reloaded
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def has_attempts(self, quiz_id: UUID) -> bool:
        result = await self.db.execute(
            select(func.count(QuizAttempt.id)).where(QuizAttempt.quiz_id == quiz_id)
        )
        return (result.scalar() or 0) > 0


class QuizAttemptRepository(BaseRepository[QuizAttempt]):
    """Repository for QuizAttempt model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizAttempt, db)

    # -----------------------------
    # Locking
    # -----------------------------
    async def lock_user_quiz(self, user_id: UUID, quiz_id: UUID) -> None:
        """
        Serialize attempt creation for one (student, quiz) pair.

        Uses a transaction-scoped advisory lock on PostgreSQL; released on
        commit/rollback. Other backends rely on the unique constraint alone.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        digest = hashlib.blake2b(f"{user_id}:{quiz_id}".encode(), digest_size=8).digest()
        key = int.from_bytes(digest, "big", signed=True)
        await self.db.execute(select(func.pg_advisory_xact_lock(key)))

    # -----------------------------
    # Attempt counters
    # -----------------------------
    async def count_user_attempts(self, user_id: UUID, quiz_id: UUID) -> int:
        return await self.count(
            self.model.user_id == user_id,
            self.model.quiz_id == quiz_id,
        )

    async def get_max_attempt_number(self, user_id: UUID, quiz_id: UUID) -> int:
        stmt = (
            select(func.max(self.model.attempt_number))
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_open_attempts(self, user_id: UUID, quiz_id: UUID) -> List[QuizAttempt]:
        """In-progress attempts, newest first."""
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.completed_at.is_(None),
            )
            .order_by(self.model.attempt_number.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # -----------------------------
    # Completion (compare-and-swap)
    # -----------------------------
    async def complete_if_open(
        self,
        attempt_id: UUID,
        completed_at: datetime,
        values: Dict[str, Any],
    ) -> bool:
        """
        Set completion fields only while ``completed_at`` is still NULL.

        Returns True when this call won the write.
        """
        stmt = (
            update(self.model)
            .where(
                self.model.id == attempt_id,
                self.model.completed_at.is_(None),
            )
            .values(completed_at=completed_at, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def update_scores(self, attempt_id: UUID, values: Dict[str, Any]) -> None:
        """Rewrite score columns of a completed attempt (manual review)."""
        stmt = (
            update(self.model)
            .where(
                self.model.id == attempt_id,
                self.model.completed_at.is_not(None),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)

    # -----------------------------
    # Reads
    # -----------------------------
    async def get_with_responses(self, attempt_id: UUID) -> Optional[QuizAttempt]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.responses))
            .where(self.model.id == attempt_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_attempts(self, user_id: UUID, quiz_id: UUID) -> List[QuizAttempt]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
            )
            .order_by(self.model.attempt_number.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_latest_completed(self, user_id: UUID, quiz_id: UUID) -> Optional[QuizAttempt]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.completed_at.is_not(None),
            )
            .order_by(self.model.completed_at.desc(), self.model.attempt_number.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_best_completed(self, user_id: UUID, quiz_id: UUID) -> Optional[QuizAttempt]:
        stmt = (
            select(self.model)
            .where(
                self.model.user_id == user_id,
                self.model.quiz_id == quiz_id,
                self.model.completed_at.is_not(None),
            )
            .order_by(
                self.model.score.desc(),
                self.model.percentage.desc(),
                self.model.attempt_number.asc(),
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_completed_for_quiz(self, quiz_id: UUID) -> List[QuizAttempt]:
        stmt = (
            select(self.model)
            .options(selectinload(self.model.user))
            .where(
                self.model.quiz_id == quiz_id,
                self.model.completed_at.is_not(None),
            )
            .order_by(self.model.completed_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Students ranked by the sum of their best percentage per quiz."""
        best = (
            select(
                self.model.user_id.label("user_id"),
                self.model.quiz_id.label("quiz_id"),
                func.max(self.model.percentage).label("best_percentage"),
            )
            .where(self.model.completed_at.is_not(None))
            .group_by(self.model.user_id, self.model.quiz_id)
            .subquery()
        )
        total = func.sum(best.c.best_percentage).label("total_score")
        stmt = (
            select(
                User.id,
                User.full_name,
                User.avatar_url,
                total,
                func.count(best.c.quiz_id).label("quizzes_taken"),
            )
            .join(best, best.c.user_id == User.id)
            .group_by(User.id, User.full_name, User.avatar_url)
            .order_by(total.desc(), User.full_name.asc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [
            {
                "user_id": row.id,
                "full_name": row.full_name,
                "avatar_url": row.avatar_url,
                "total_score": round(float(row.total_score or 0), 1),
                "quizzes_taken": row.quizzes_taken,
            }
            for row in result.all()
        ]


class QuizResponseRepository(BaseRepository[QuizResponse]):
    """Repository for QuizResponse model."""

    def __init__(self, db: AsyncSession):
        super().__init__(QuizResponse, db)

    async def create_bulk(self, responses: List[dict]) -> List[QuizResponse]:
        instances = [QuizResponse(**r_data) for r_data in responses]
        self.db.add_all(instances)
        await self.db.flush()
        return instances
