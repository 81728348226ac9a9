"""
Achievement Service

Side effects of a completed attempt:
- a passed attempt marks the quiz's lesson complete for the student
- a high enough percentage awards the Quiz Master badge, once per student

Rows are only flushed. Callers run this in a savepoint after the submission
is committed, commit on success and treat failures as non-fatal.
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.config import settings
from lms_quiz.models import Quiz, QuizAttempt
from lms_quiz.repositories.badge_repo import BadgeRepository, UserBadgeRepository
from lms_quiz.repositories.course_repo import LessonCompletionRepository

logger = logging.getLogger(__name__)

LESSON_COMPLETED = "lesson_completed"
BADGE_AWARDED = "badge_awarded"


class AchievementService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.completion_repo = LessonCompletionRepository(db)
        self.badge_repo = BadgeRepository(db)
        self.user_badge_repo = UserBadgeRepository(db)

    async def on_attempt_completed(self, attempt: QuizAttempt, quiz: Quiz) -> List[str]:
        """Returns the events that were recorded (empty when nothing changed)."""
        events: List[str] = []

        if attempt.passed and not await self.completion_repo.is_completed(attempt.user_id, quiz.lesson_id):
            await self.completion_repo.create(user_id=attempt.user_id, lesson_id=quiz.lesson_id)
            events.append(LESSON_COMPLETED)

        if attempt.percentage is not None and attempt.percentage >= settings.QUIZ_MASTER_THRESHOLD:
            badge = await self.badge_repo.get_by_name(settings.QUIZ_MASTER_BADGE_NAME)
            if badge is None:
                logger.debug(f"Badge '{settings.QUIZ_MASTER_BADGE_NAME}' not configured; skipping")
            elif not await self.user_badge_repo.has_badge(attempt.user_id, badge.id):
                await self.user_badge_repo.create(user_id=attempt.user_id, badge_id=badge.id)
                events.append(BADGE_AWARDED)

        if events:
            logger.info(f"Attempt {attempt.id} for user {attempt.user_id}: {', '.join(events)}")
        return events
