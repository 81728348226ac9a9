"""
Quiz Service

Business logic for the quiz definition store:
- Authoring quizzes on lessons (instructors on their own courses, admins anywhere)
- Whole-question replacement on update
- Building student and author views of a quiz
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.config import settings
from lms_quiz.core.exceptions import (
    QuizHasAttemptsError,
    QuizNotFoundError,
    QuizValidationError,
)
from lms_quiz.models import QuestionType, Quiz, QuizOption, QuizQuestion, User
from lms_quiz.repositories.quiz_repo import QuizRepository
from lms_quiz.schemas.quiz import (
    AttemptInfo,
    OptionResponse,
    OptionWithAnswerResponse,
    QuestionCreate,
    QuestionResponse,
    QuestionWithAnswersResponse,
    QuizAuthorDetailResponse,
    QuizCreateRequest,
    QuizDetailResponse,
    QuizResponse,
    QuizUpdateRequest,
)
from lms_quiz.services.access_service import AccessService

logger = logging.getLogger(__name__)


class QuizService:
    """Service for quiz authoring and retrieval."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.quiz_repo = QuizRepository(db)
        self.access = AccessService(db)

    # ============================================================
    # CREATE QUIZ
    # ============================================================

    async def create_quiz(
        self,
        lesson_id: UUID,
        definition: QuizCreateRequest,
        user: User,
        course_id: Optional[UUID] = None,
    ) -> Quiz:
        lesson = await self.access.get_lesson(lesson_id, course_id)
        await self.access.ensure_course_owner(user, lesson.course)

        self._validate_definition(definition.title, definition.questions)

        if "max_attempts" in definition.model_fields_set:
            max_attempts = definition.max_attempts
        else:
            max_attempts = settings.DEFAULT_MAX_ATTEMPTS

        quiz = Quiz(
            lesson_id=lesson.id,
            title=definition.title.strip(),
            description=definition.description,
            time_limit=definition.time_limit,
            passing_score=(
                definition.passing_score
                if definition.passing_score is not None
                else settings.DEFAULT_PASSING_SCORE
            ),
            max_attempts=max_attempts,
            is_active=definition.is_active,
            questions=self._build_questions(definition.questions),
        )
        await self.quiz_repo.add(quiz)
        await self.db.commit()

        logger.info(
            f"Quiz {quiz.id} created on lesson {lesson.id} by {user.id} "
            f"({len(definition.questions)} questions)"
        )
        return await self.quiz_repo.get_with_questions(quiz.id)

    # ============================================================
    # GET QUIZ
    # ============================================================

    async def get_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quiz_repo.get_with_questions(quiz_id)
        if not quiz:
            raise QuizNotFoundError(quiz_id)
        return quiz

    async def get_quiz_for_user(self, quiz_id: UUID, user: User) -> Quiz:
        """Quiz as visible to ``user``: enrollment and active checks apply."""
        quiz = await self.get_quiz(quiz_id)
        await self.access.ensure_can_take_quiz(user, quiz)
        return quiz

    # ============================================================
    # LIST QUIZZES
    # ============================================================

    async def list_quizzes_for_lesson(self, lesson_id: UUID, user: User) -> List[Quiz]:
        lesson = await self.access.get_lesson(lesson_id)
        active_only = True
        if user.is_admin:
            active_only = False
        elif user.is_instructor:
            active_only = lesson.course.instructor_id != user.id
        return await self.quiz_repo.get_by_lesson(lesson.id, active_only=active_only)

    # ============================================================
    # UPDATE QUIZ
    # ============================================================

    async def update_quiz(
        self,
        quiz_id: UUID,
        partial: QuizUpdateRequest,
        user: User,
    ) -> Quiz:
        """
        Patch quiz metadata; ``questions`` replaces the whole question list.

        Raises:
            QuizHasAttemptsError: questions supplied after students attempted
        """
        quiz = await self.get_quiz(quiz_id)
        await self.access.ensure_can_manage_quiz(user, quiz)

        fields = partial.model_fields_set
        if "title" in fields:
            self._validate_definition(partial.title, None)
            quiz.title = partial.title.strip()
        if "description" in fields:
            quiz.description = partial.description
        if "time_limit" in fields:
            quiz.time_limit = partial.time_limit
        if "passing_score" in fields and partial.passing_score is not None:
            quiz.passing_score = partial.passing_score
        if "max_attempts" in fields:
            quiz.max_attempts = partial.max_attempts
        if "is_active" in fields and partial.is_active is not None:
            quiz.is_active = partial.is_active

        if partial.questions is not None:
            self._validate_definition(quiz.title, partial.questions)
            if await self.quiz_repo.has_attempts(quiz.id):
                raise QuizHasAttemptsError(
                    "Questions cannot be replaced once students have attempted the quiz"
                )
            quiz.questions = self._build_questions(partial.questions)

        await self.db.flush()
        await self.db.commit()
        logger.info(f"Quiz {quiz.id} updated by {user.id} (fields: {sorted(fields)})")
        return await self.quiz_repo.get_with_questions(quiz.id)

    # ============================================================
    # DELETE QUIZ
    # ============================================================

    async def delete_quiz(self, quiz_id: UUID, user: User) -> None:
        quiz = await self.get_quiz(quiz_id)
        await self.access.ensure_can_manage_quiz(user, quiz)

        # attempts are never deleted, so a quiz with history can only be deactivated
        if await self.quiz_repo.has_attempts(quiz.id):
            raise QuizHasAttemptsError()

        await self.quiz_repo.delete(quiz)
        await self.db.commit()
        logger.info(f"Quiz {quiz_id} deleted by {user.id}")

    # ============================================================
    # RESPONSE BUILDERS
    # ============================================================

    def build_quiz_response(self, quiz: Quiz) -> QuizResponse:
        return QuizResponse(**self._quiz_fields(quiz))

    def build_student_detail(
        self,
        quiz: Quiz,
        attempt_info: Optional[AttemptInfo] = None,
    ) -> QuizDetailResponse:
        questions = [
            QuestionResponse(
                id=q.id,
                text=q.question_text,
                type=q.type,
                points=q.points,
                display_order=q.display_order,
                options=[OptionResponse(id=o.id, text=o.option_text) for o in q.options],
            )
            for q in quiz.questions
        ]
        return QuizDetailResponse(
            **self._quiz_fields(quiz),
            questions=questions,
            attempt_info=attempt_info,
        )

    def build_author_detail(self, quiz: Quiz) -> QuizAuthorDetailResponse:
        questions = [
            QuestionWithAnswersResponse(
                id=q.id,
                text=q.question_text,
                type=q.type,
                points=q.points,
                display_order=q.display_order,
                options=[
                    OptionWithAnswerResponse(id=o.id, text=o.option_text, is_correct=o.is_correct)
                    for o in q.options
                ],
            )
            for q in quiz.questions
        ]
        return QuizAuthorDetailResponse(**self._quiz_fields(quiz), questions=questions)

    # ============================================================
    # PRIVATE HELPERS
    # ============================================================

    def _quiz_fields(self, quiz: Quiz) -> Dict[str, Any]:
        return dict(
            id=quiz.id,
            lesson_id=quiz.lesson_id,
            title=quiz.title,
            description=quiz.description,
            time_limit=quiz.time_limit,
            passing_score=quiz.passing_score,
            max_attempts=quiz.max_attempts,
            is_active=quiz.is_active,
            question_count=quiz.question_count,
            total_points=quiz.total_points,
            created_at=quiz.created_at,
            updated_at=quiz.updated_at,
        )

    def _build_questions(self, questions: List[QuestionCreate]) -> List[QuizQuestion]:
        built = []
        for i, q in enumerate(questions):
            options = []
            if q.type.is_selectable:
                options = [
                    QuizOption(option_text=o.text.strip(), is_correct=o.is_correct, display_order=j)
                    for j, o in enumerate(q.options)
                ]
            built.append(
                QuizQuestion(
                    question_type=q.type.value,
                    question_text=q.text.strip(),
                    points=q.points,
                    display_order=i,
                    options=options,
                )
            )
        return built

    def _validate_definition(
        self,
        title: Optional[str],
        questions: Optional[List[QuestionCreate]],
    ) -> None:
        """
        Raises:
            QuizValidationError: with one entry per offending field
        """
        errors: List[Dict[str, Any]] = []

        if title is None or not title.strip():
            errors.append({"field": "title", "message": "Title is required"})

        if questions is not None:
            if not questions:
                errors.append({"field": "questions", "message": "At least one question is required"})
            for i, q in enumerate(questions):
                prefix = f"questions[{i}]"
                if not q.text.strip():
                    errors.append({"field": f"{prefix}.text", "message": "Question text is required"})
                if q.type is QuestionType.SHORT_ANSWER:
                    if q.options:
                        errors.append({
                            "field": f"{prefix}.options",
                            "message": "Short-answer questions take no options",
                        })
                    continue
                if len(q.options) < 2:
                    errors.append({
                        "field": f"{prefix}.options",
                        "message": "At least two options are required",
                    })
                if any(not o.text.strip() for o in q.options):
                    errors.append({"field": f"{prefix}.options", "message": "Option text is required"})
                correct = sum(1 for o in q.options if o.is_correct)
                if correct == 0:
                    errors.append({
                        "field": f"{prefix}.options",
                        "message": "At least one option must be marked correct",
                    })
                elif q.type is QuestionType.TRUE_FALSE and correct != 1:
                    errors.append({
                        "field": f"{prefix}.options",
                        "message": "True/false questions have exactly one correct option",
                    })

        if errors:
            raise QuizValidationError("Invalid quiz definition", errors)
