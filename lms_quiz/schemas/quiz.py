"""
Quiz Schemas

Pydantic models for quiz-related API requests and responses.
"""

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union
from uuid import UUID

from pydantic import Field, model_validator

from lms_quiz.models.quiz_question import QuestionType
from lms_quiz.schemas.base import CamelModel
from lms_quiz.services.scoring import ChoiceAnswer, TextAnswer


# ============================================================
# Authoring Requests
# ============================================================

class OptionCreate(CamelModel):
    text: str = Field(..., max_length=1000)
    is_correct: bool = False


class QuestionCreate(CamelModel):
    """A whole question; edits always replace the question and its options."""
    text: str = Field(..., max_length=5000)
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    points: int = Field(default=1, ge=1, le=1000)
    options: List[OptionCreate] = Field(default_factory=list)


class QuizCreateRequest(CamelModel):
    """
    Request to author a quiz on a lesson.

    ``maxAttempts`` omitted → configured default; explicit ``null`` → unlimited.
    """
    title: str = Field(..., max_length=200)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, le=24 * 60, description="Minutes")
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    questions: List[QuestionCreate] = Field(default_factory=list)


class QuizUpdateRequest(CamelModel):
    """Partial update. ``questions`` replaces the full question list."""
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=1, le=24 * 60)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    max_attempts: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    questions: Optional[List[QuestionCreate]] = None


# ============================================================
# Attempt Requests
# ============================================================

class ChoiceAnswerIn(CamelModel):
    kind: Literal["choice"] = "choice"
    question_id: UUID
    selected_option_ids: List[UUID] = Field(default_factory=list)

    def to_answer(self) -> ChoiceAnswer:
        return ChoiceAnswer(self.question_id, frozenset(self.selected_option_ids))


class TextAnswerIn(CamelModel):
    kind: Literal["text"] = "text"
    question_id: UUID
    text: str = Field("", max_length=10000)

    def to_answer(self) -> TextAnswer:
        return TextAnswer(self.question_id, self.text)


AnswerIn = Annotated[Union[ChoiceAnswerIn, TextAnswerIn], Field(discriminator="kind")]


def _tag_legacy_answer(item: Any) -> Any:
    """Give untagged ``{questionId, selectedOptions?|answerText?}`` items a kind."""
    if not isinstance(item, dict) or "kind" in item:
        return item
    item = dict(item)
    for key in ("selectedOptionIds", "selected_option_ids", "selectedOptions", "optionId"):
        if key in item:
            selected = item.pop(key)
            if selected is None:
                selected = []
            elif not isinstance(selected, list):
                selected = [selected]
            item["kind"] = "choice"
            item["selectedOptionIds"] = selected
            return item
    for key in ("answerText", "answer_text", "text"):
        if key in item:
            item["kind"] = "text"
            item["text"] = item.pop(key) or ""
            return item
    item["kind"] = "choice"
    return item


class QuizSubmitRequest(CamelModel):
    """Answers for one attempt. ``startTime`` is advisory only."""
    answers: List[AnswerIn] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    attempt_id: Optional[UUID] = None

    @model_validator(mode="before")
    @classmethod
    def tag_answers(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("answers"), list):
            data = {**data, "answers": [_tag_legacy_answer(a) for a in data["answers"]]}
        return data

    def to_answers(self) -> List[Union[ChoiceAnswer, TextAnswer]]:
        return [a.to_answer() for a in self.answers]


class ManualGrade(CamelModel):
    question_id: UUID
    points_awarded: int = Field(..., ge=0)


class AttemptReviewRequest(CamelModel):
    grades: List[ManualGrade] = Field(..., min_length=1)


# ============================================================
# Quiz Responses
# ============================================================

class OptionResponse(CamelModel):
    id: UUID
    text: str


class OptionWithAnswerResponse(OptionResponse):
    is_correct: bool


class QuestionResponse(CamelModel):
    """A question as shown to a student (no correctness flags)."""
    id: UUID
    text: str
    type: QuestionType
    points: int
    display_order: int
    options: List[OptionResponse] = Field(default_factory=list)


class QuestionWithAnswersResponse(QuestionResponse):
    options: List[OptionWithAnswerResponse] = Field(default_factory=list)


class AttemptInfo(CamelModel):
    can_attempt: bool
    remaining_attempts: Optional[int] = None
    max_attempts: Optional[int] = None
    attempts_used: int = 0
    active_attempt_id: Optional[UUID] = None


class QuizResponse(CamelModel):
    """Quiz metadata response."""
    id: UUID
    lesson_id: UUID
    title: str
    description: Optional[str] = None
    time_limit: Optional[int] = None
    passing_score: float
    max_attempts: Optional[int] = None
    is_active: bool
    question_count: int
    total_points: int
    created_at: datetime
    updated_at: datetime


class QuizDetailResponse(QuizResponse):
    """Quiz with questions (for taking the quiz)."""
    questions: List[QuestionResponse]
    attempt_info: Optional[AttemptInfo] = None


class QuizAuthorDetailResponse(QuizResponse):
    """Quiz with questions and correct answers (for its authors)."""
    questions: List[QuestionWithAnswersResponse]


class QuizListResponse(CamelModel):
    quizzes: List[QuizResponse]
    total: int


# ============================================================
# Attempt Responses
# ============================================================

class AttemptResponse(CamelModel):
    """Summary of an attempt; score fields are null while in progress."""
    id: UUID
    quiz_id: UUID
    attempt_number: int
    status: Literal["in_progress", "completed"]
    started_at: datetime
    completed_at: Optional[datetime] = None
    score: Optional[int] = None
    total_score: Optional[int] = None
    percentage: Optional[float] = None
    passed: Optional[bool] = None
    correct_answers: Optional[int] = None
    incorrect_answers: Optional[int] = None
    total_questions: Optional[int] = None
    time_taken: Optional[int] = Field(None, description="Seconds, measured by the server")
    pending_review: bool = False
    flagged_for_review: bool = False
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_attempt(cls, attempt, **extra):
        return cls(
            id=attempt.id,
            quiz_id=attempt.quiz_id,
            attempt_number=attempt.attempt_number,
            status="completed" if attempt.completed_at is not None else "in_progress",
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
            score=attempt.score,
            total_score=attempt.total_score,
            percentage=attempt.percentage,
            passed=attempt.passed,
            correct_answers=attempt.correct_answers,
            incorrect_answers=attempt.incorrect_answers,
            total_questions=attempt.total_questions,
            time_taken=attempt.time_taken_seconds,
            pending_review=bool(attempt.pending_review),
            flagged_for_review=bool(attempt.flagged_for_review),
            warnings=list(attempt.warnings or []),
            **extra,
        )


class StartAttemptResponse(AttemptResponse):
    resumed: bool = False
    time_limit: Optional[int] = None
    expires_at: Optional[datetime] = None


class SubmitResultResponse(AttemptResponse):
    already_submitted: bool = False
    is_retake: bool = False


class AnswerRecordResponse(CamelModel):
    question_id: UUID
    selected_option_ids: List[UUID] = Field(default_factory=list)
    answer_text: Optional[str] = None
    is_correct: Optional[bool] = None
    points_earned: int
    manually_graded: bool = False


class AttemptDetailResponse(AttemptResponse):
    answers: List[AnswerRecordResponse] = Field(default_factory=list)


class AttemptListResponse(CamelModel):
    attempts: List[AttemptResponse]
    total: int


class SubmissionResponse(AttemptResponse):
    user_id: UUID
    student_name: Optional[str] = None


class SubmissionListResponse(CamelModel):
    submissions: List[SubmissionResponse]
    total: int


class LeaderboardEntry(CamelModel):
    rank: int
    user_id: UUID
    full_name: str
    avatar_url: Optional[str] = None
    total_score: float
    quizzes_taken: int


class LeaderboardResponse(CamelModel):
    entries: List[LeaderboardEntry]
