"""
Attempt Service

The attempt tracker: eligibility, starting attempts under the attempt cap,
idempotent submission and manual review of short answers.

Concurrency:
- start: per-(student, quiz) advisory lock + UNIQUE(user_id, quiz_id,
  attempt_number); a constraint violation is retried, then reported as
  AttemptLimitExceededError.
- submit: completion is a conditional UPDATE on ``completed_at IS NULL``;
  the loser rolls back and replays the persisted result.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.config import settings
from lms_quiz.core.exceptions import (
    AttemptLimitExceededError,
    AttemptNotCompletedError,
    AttemptNotFoundError,
    IncompleteAnswersError,
    QuizNotFoundError,
    QuizValidationError,
)
from lms_quiz.models import QuestionType, Quiz, QuizAttempt, User
from lms_quiz.repositories.quiz_repo import (
    QuizAttemptRepository,
    QuizRepository,
    QuizResponseRepository,
)
from lms_quiz.schemas.quiz import AttemptInfo, StartAttemptResponse, SubmitResultResponse
from lms_quiz.services import scoring
from lms_quiz.services.access_service import AccessService
from lms_quiz.services.achievement_service import AchievementService
from lms_quiz.services.scoring import Answer, ChoiceAnswer, ScoreResult, TextAnswer
from lms_quiz.utils.time_utils import elapsed_seconds, ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class AttemptEligibility:
    can_attempt: bool
    remaining_attempts: Optional[int]
    max_attempts: Optional[int]
    attempts_used: int
    active_attempt_id: Optional[UUID] = None

    def to_info(self) -> AttemptInfo:
        return AttemptInfo(
            can_attempt=self.can_attempt,
            remaining_attempts=self.remaining_attempts,
            max_attempts=self.max_attempts,
            attempts_used=self.attempts_used,
            active_attempt_id=self.active_attempt_id,
        )


@dataclass
class StartOutcome:
    attempt: QuizAttempt
    resumed: bool
    time_limit: Optional[int] = None

    def to_response(self) -> StartAttemptResponse:
        expires_at = None
        if self.time_limit:
            expires_at = ensure_utc(self.attempt.started_at) + timedelta(minutes=self.time_limit)
        return StartAttemptResponse.from_attempt(
            self.attempt,
            resumed=self.resumed,
            time_limit=self.time_limit,
            expires_at=expires_at,
        )


@dataclass
class SubmissionOutcome:
    """
    Result of a submission.

    ``response`` is a snapshot taken right after the completing commit, so it
    stays valid even if post-submission side effects roll the session back.
    """
    attempt_id: UUID
    response: SubmitResultResponse
    already_submitted: bool = False
    warnings: Optional[List[str]] = None


class AttemptService:
    """Service for starting, submitting and reviewing quiz attempts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quiz_repo = QuizRepository(db)
        self.attempt_repo = QuizAttemptRepository(db)
        self.response_repo = QuizResponseRepository(db)
        self.access = AccessService(db)

    # ============================================================
    # ELIGIBILITY
    # ============================================================

    async def get_attempt_eligibility(self, student_id: UUID, quiz_id: UUID) -> AttemptEligibility:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz:
            raise QuizNotFoundError(quiz_id)
        return await self._eligibility(student_id, quiz)

    async def _eligibility(self, student_id: UUID, quiz: Quiz) -> AttemptEligibility:
        used = await self.attempt_repo.count_user_attempts(student_id, quiz.id)
        active = await self._find_resumable(student_id, quiz)

        if quiz.max_attempts is None:
            remaining = None
            can_attempt = True
        else:
            remaining = max(0, quiz.max_attempts - used)
            can_attempt = remaining > 0

        return AttemptEligibility(
            can_attempt=can_attempt,
            remaining_attempts=remaining,
            max_attempts=quiz.max_attempts,
            attempts_used=used,
            active_attempt_id=active.id if active else None,
        )

    async def _find_resumable(self, student_id: UUID, quiz: Quiz) -> Optional[QuizAttempt]:
        now = utc_now()
        for attempt in await self.attempt_repo.get_open_attempts(student_id, quiz.id):
            if self._is_resumable(attempt, quiz, now):
                return attempt
        return None

    def _is_resumable(self, attempt: QuizAttempt, quiz: Quiz, now: datetime) -> bool:
        """Open attempts expire once the time limit plus grace has elapsed."""
        if quiz.time_limit is None:
            return True
        deadline = ensure_utc(attempt.started_at) + timedelta(
            minutes=quiz.time_limit, seconds=settings.ATTEMPT_GRACE_SECONDS
        )
        return now <= deadline

    # ============================================================
    # START ATTEMPT
    # ============================================================

    async def start_attempt(self, student_id: UUID, quiz_id: UUID) -> StartOutcome:
        """
        Start (or resume) an attempt.

        A non-expired open attempt is returned as-is instead of consuming
        another slot. Every attempt row counts toward ``max_attempts``.

        Raises:
            QuizNotFoundError: unknown or inactive quiz
            AttemptLimitExceededError: cap reached at insertion time
        """
        retries = settings.START_ATTEMPT_RETRIES
        for try_number in range(retries + 1):
            # reload every pass: a rollback expires everything in the session
            quiz = await self.quiz_repo.get_by_id(quiz_id)
            if not quiz or not quiz.is_active:
                raise QuizNotFoundError(quiz_id)
            try:
                outcome = await self._start_once(student_id, quiz)
                await self.db.commit()
                return outcome
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    f"Attempt number conflict for user {student_id} on quiz {quiz_id} "
                    f"(try {try_number + 1}/{retries + 1})"
                )

        quiz = await self.quiz_repo.get_by_id(quiz_id)
        eligibility = await self._eligibility(student_id, quiz)
        raise AttemptLimitExceededError(quiz.max_attempts, eligibility.remaining_attempts or 0)

    async def _start_once(self, student_id: UUID, quiz: Quiz) -> StartOutcome:
        await self.attempt_repo.lock_user_quiz(student_id, quiz.id)

        active = await self._find_resumable(student_id, quiz)
        if active is not None:
            logger.info(f"Resuming attempt {active.id} (#{active.attempt_number}) for user {student_id}")
            return StartOutcome(attempt=active, resumed=True, time_limit=quiz.time_limit)

        used = await self.attempt_repo.count_user_attempts(student_id, quiz.id)
        if quiz.max_attempts is not None and used >= quiz.max_attempts:
            raise AttemptLimitExceededError(quiz.max_attempts, 0)

        number = await self.attempt_repo.get_max_attempt_number(student_id, quiz.id) + 1
        attempt = await self.attempt_repo.create(
            user_id=student_id,
            quiz_id=quiz.id,
            attempt_number=number,
            started_at=utc_now(),
        )
        logger.info(f"Started attempt {attempt.id} (#{number}) for user {student_id} on quiz {quiz.id}")
        return StartOutcome(attempt=attempt, resumed=False, time_limit=quiz.time_limit)

    # ============================================================
    # SUBMIT ATTEMPT
    # ============================================================

    async def submit_attempt(
        self,
        attempt_id: Optional[UUID],
        student_id: UUID,
        answers: Iterable[Answer],
        client_start_time: Optional[datetime] = None,
        quiz_id: Optional[UUID] = None,
    ) -> SubmissionOutcome:
        """
        Score and complete an attempt exactly once.

        Without ``attempt_id`` the student's open attempt on ``quiz_id`` is
        used. With no open attempt, the latest completed one is replayed, and
        only a student with no attempts at all gets one started here. Retakes
        go through ``start_attempt`` first.
        A repeated submit returns the persisted result with
        ``already_submitted`` set; it is not an error.

        Raises:
            AttemptNotFoundError: unknown attempt or not owned by the student
            IncompleteAnswersError: REQUIRE_ALL_ANSWERS and a question is unanswered
        """
        if attempt_id is None:
            if quiz_id is None:
                raise AttemptNotFoundError()
            attempt_id = await self._implicit_attempt_id(student_id, quiz_id)

        attempt = await self.attempt_repo.get_with_responses(attempt_id)
        if not attempt or attempt.user_id != student_id:
            raise AttemptNotFoundError(attempt_id)
        if quiz_id is not None and attempt.quiz_id != quiz_id:
            raise AttemptNotFoundError(attempt_id)

        if attempt.completed_at is not None:
            return self._replay(attempt)

        quiz = await self.quiz_repo.get_with_questions(attempt.quiz_id)
        answers = list(answers)
        result = scoring.score(quiz, answers)

        if settings.REQUIRE_ALL_ANSWERS:
            missing = _missing_answers(result)
            if missing:
                raise IncompleteAnswersError(missing)

        completed_at = utc_now()
        time_taken = elapsed_seconds(attempt.started_at, completed_at)
        overtime = (
            quiz.time_limit is not None
            and time_taken > quiz.time_limit * 60 + settings.ATTEMPT_GRACE_SECONDS
        )

        values = _score_columns(result)
        values.update(
            client_started_at=ensure_utc(client_start_time),
            time_taken_seconds=time_taken,
            raw_answers=_serialize_answers(answers),
            flagged_for_review=overtime,
        )

        won = await self.attempt_repo.complete_if_open(attempt.id, completed_at, values)
        if not won:
            await self.db.rollback()
            logger.info(f"Duplicate submission for attempt {attempt_id}; replaying stored result")
            attempt = await self.attempt_repo.get_with_responses(attempt_id)
            return self._replay(attempt)

        await self.response_repo.create_bulk([
            {
                "attempt_id": attempt.id,
                "question_id": a.question_id,
                "selected_option_ids": list(a.selected_option_ids),
                "answer_text": a.answer_text,
                "is_correct": a.is_correct,
                "points_earned": a.points_earned,
                "manually_graded": a.manually_graded,
            }
            for a in result.answers
        ])
        await self.db.commit()

        if overtime:
            logger.warning(
                f"Attempt {attempt.id} took {time_taken}s against a {quiz.time_limit} min limit; "
                f"flagged for review"
            )
        if result.warnings:
            logger.warning(f"Attempt {attempt.id} scored with data-integrity warnings: {result.warnings}")

        attempt = await self.attempt_repo.get_with_responses(attempt.id)
        logger.info(
            f"Attempt {attempt.id} submitted: {attempt.score}/{attempt.total_score} "
            f"({attempt.percentage}%), passed={attempt.passed}"
        )

        outcome = SubmissionOutcome(
            attempt_id=attempt.id,
            response=SubmitResultResponse.from_attempt(
                attempt,
                already_submitted=False,
                is_retake=attempt.attempt_number > 1,
            ),
            warnings=result.warnings,
        )
        await self._run_side_effects(attempt, quiz)
        return outcome

    async def _implicit_attempt_id(self, student_id: UUID, quiz_id: UUID) -> UUID:
        quiz = await self.quiz_repo.get_by_id(quiz_id)
        if not quiz or not quiz.is_active:
            raise QuizNotFoundError(quiz_id)

        active = await self._find_resumable(student_id, quiz)
        if active is not None:
            return active.id

        latest = await self.attempt_repo.get_latest_completed(student_id, quiz_id)
        if latest is not None:
            return latest.id

        started = await self.start_attempt(student_id, quiz_id)
        return started.attempt.id

    def _replay(self, attempt: QuizAttempt) -> SubmissionOutcome:
        return SubmissionOutcome(
            attempt_id=attempt.id,
            response=SubmitResultResponse.from_attempt(
                attempt,
                already_submitted=True,
                is_retake=attempt.attempt_number > 1,
            ),
            already_submitted=True,
            warnings=list(attempt.warnings or []),
        )

    # ============================================================
    # MANUAL REVIEW
    # ============================================================

    async def review_attempt(
        self,
        attempt_id: UUID,
        grades: Mapping[UUID, int],
        reviewer: User,
    ) -> QuizAttempt:
        """
        Apply manual grades to short-answer questions and rescore.

        Completion fields are left untouched; only scores change.
        """
        attempt = await self.attempt_repo.get_with_responses(attempt_id)
        if not attempt:
            raise AttemptNotFoundError(attempt_id)

        quiz = await self.quiz_repo.get_with_questions(attempt.quiz_id)
        await self.access.ensure_can_manage_quiz(reviewer, quiz)

        if attempt.completed_at is None:
            raise AttemptNotCompletedError()

        short_answer_ids = {
            q.id for q in quiz.questions if q.type is QuestionType.SHORT_ANSWER
        }
        errors = [
            {"field": f"grades[{i}].questionId", "message": "Not a short-answer question of this quiz"}
            for i, qid in enumerate(grades)
            if qid not in short_answer_ids
        ]
        if errors:
            raise QuizValidationError("Only short-answer questions can be graded manually", errors)

        merged = {r.question_id: r.points_earned for r in attempt.responses if r.manually_graded}
        merged.update(grades)

        result = scoring.score(quiz, _deserialize_answers(attempt.raw_answers), manual_grades=merged)
        await self.attempt_repo.update_scores(attempt.id, _score_columns(result))

        responses = {r.question_id: r for r in attempt.responses}
        for graded in result.answers:
            response = responses.get(graded.question_id)
            if response is None:
                continue
            response.is_correct = graded.is_correct
            response.points_earned = graded.points_earned
            response.manually_graded = graded.manually_graded

        await self.db.commit()
        attempt = await self.attempt_repo.get_with_responses(attempt.id)
        logger.info(
            f"Attempt {attempt.id} reviewed by {reviewer.id}: "
            f"{attempt.score}/{attempt.total_score} ({attempt.percentage}%)"
        )

        await self._run_side_effects(attempt, quiz)
        return await self.attempt_repo.get_with_responses(attempt_id)

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    async def _run_side_effects(self, attempt: QuizAttempt, quiz: Quiz) -> None:
        """Lesson completion and badges; failures never undo a submission."""
        attempt_id = attempt.id
        try:
            # a savepoint rollback leaves the caller's loaded objects usable
            async with self.db.begin_nested():
                await AchievementService(self.db).on_attempt_completed(attempt, quiz)
            await self.db.commit()
        except Exception as e:
            logger.warning(f"Post-submission side effects failed for attempt {attempt_id}: {e}")


def _score_columns(result: ScoreResult) -> Dict[str, Any]:
    return dict(
        score=result.points_earned,
        total_score=result.points_possible,
        gradable_score=result.gradable_points,
        percentage=result.percentage,
        passed=result.passed,
        correct_answers=result.correct_count,
        incorrect_answers=result.incorrect_count,
        total_questions=result.total_questions,
        pending_review=result.pending_review,
        warnings=result.warnings,
    )


def _missing_answers(result: ScoreResult) -> List[UUID]:
    missing = []
    for a in result.answers:
        has_content = bool(a.selected_option_ids) or bool((a.answer_text or "").strip())
        if not a.answered or not has_content:
            missing.append(a.question_id)
    return missing


def _serialize_answers(answers: List[Answer]) -> List[Dict[str, Any]]:
    serialized = []
    for a in answers:
        if isinstance(a, ChoiceAnswer):
            serialized.append({
                "kind": a.kind,
                "questionId": str(a.question_id),
                "selectedOptionIds": sorted(str(s) for s in a.selected_option_ids),
            })
        else:
            serialized.append({"kind": a.kind, "questionId": str(a.question_id), "text": a.text})
    return serialized


def _deserialize_answers(raw: Optional[List[Dict[str, Any]]]) -> List[Answer]:
    answers: List[Answer] = []
    for item in raw or []:
        question_id = UUID(item["questionId"])
        if item.get("kind") == "text":
            answers.append(TextAnswer(question_id, item.get("text") or ""))
        else:
            answers.append(ChoiceAnswer(
                question_id,
                frozenset(UUID(s) for s in item.get("selectedOptionIds") or []),
            ))
    return answers
