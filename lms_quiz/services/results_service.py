"""
Results Service

Read-only views over persisted attempts: latest, best, history,
per-question breakdown, instructor submissions and the leaderboard.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.exceptions import AttemptNotFoundError, QuizNotFoundError
from lms_quiz.models import QuizAttempt, User
from lms_quiz.repositories.quiz_repo import QuizAttemptRepository, QuizRepository
from lms_quiz.schemas.quiz import (
    AnswerRecordResponse,
    AttemptDetailResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    SubmissionListResponse,
    SubmissionResponse,
)
from lms_quiz.services.access_service import AccessService

logger = logging.getLogger(__name__)


class ResultsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.quiz_repo = QuizRepository(db)
        self.attempt_repo = QuizAttemptRepository(db)
        self.access = AccessService(db)

    # ============================================================
    # STUDENT VIEWS
    # ============================================================

    async def get_latest_result(self, quiz_id: UUID, student_id: UUID) -> Optional[QuizAttempt]:
        """Most recently completed attempt, or None."""
        return await self.attempt_repo.get_latest_completed(student_id, quiz_id)

    async def get_best_result(self, quiz_id: UUID, student_id: UUID) -> Optional[QuizAttempt]:
        """Highest score; ties go to the earliest attempt number."""
        return await self.attempt_repo.get_best_completed(student_id, quiz_id)

    async def list_attempts(self, quiz_id: UUID, student_id: UUID) -> List[QuizAttempt]:
        """All attempts, in progress included, by attempt number ascending."""
        return await self.attempt_repo.get_user_attempts(student_id, quiz_id)

    async def get_attempt_detail(self, attempt_id: UUID, user: User) -> AttemptDetailResponse:
        """
        Per-question breakdown of one attempt.

        Visible to the attempt's owner and to whoever manages the quiz;
        everybody else gets a 404.
        """
        attempt = await self.attempt_repo.get_with_responses(attempt_id)
        if not attempt:
            raise AttemptNotFoundError(attempt_id)

        if attempt.user_id != user.id:
            quiz = await self.quiz_repo.get_by_id(attempt.quiz_id)
            if not quiz or not await self.access.can_manage_quiz(user, quiz):
                raise AttemptNotFoundError(attempt_id)

        answers = []
        if attempt.completed_at is not None:
            quiz = await self.quiz_repo.get_with_questions(attempt.quiz_id)
            order = {q.id: q.display_order for q in quiz.questions} if quiz else {}
            responses = sorted(attempt.responses, key=lambda r: order.get(r.question_id, 0))
            answers = [
                AnswerRecordResponse(
                    question_id=r.question_id,
                    selected_option_ids=r.selected_option_ids or [],
                    answer_text=r.answer_text,
                    is_correct=r.is_correct,
                    points_earned=r.points_earned,
                    manually_graded=r.manually_graded,
                )
                for r in responses
            ]
        return AttemptDetailResponse.from_attempt(attempt, answers=answers)

    # ============================================================
    # INSTRUCTOR VIEWS
    # ============================================================

    async def list_submissions(self, quiz_id: UUID, user: User) -> SubmissionListResponse:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise QuizNotFoundError(quiz_id)
        await self.access.ensure_can_manage_quiz(user, quiz)

        attempts = await self.attempt_repo.get_completed_for_quiz(quiz_id)
        submissions = [
            SubmissionResponse.from_attempt(
                a,
                user_id=a.user_id,
                student_name=a.user.full_name if a.user else None,
            )
            for a in attempts
        ]
        return SubmissionListResponse(submissions=submissions, total=len(submissions))

    # ============================================================
    # LEADERBOARD
    # ============================================================

    async def leaderboard(self, limit: int = 10) -> LeaderboardResponse:
        rows = await self.attempt_repo.get_leaderboard(limit)
        return LeaderboardResponse(
            entries=[LeaderboardEntry(rank=i + 1, **row) for i, row in enumerate(rows)]
        )
