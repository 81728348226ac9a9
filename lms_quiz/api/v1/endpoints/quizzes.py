"""
Quiz Endpoints

HTTP API for quiz authoring, taking, and results.

Endpoints:
----------
- GET    /quizzes/leaderboard                             - Students ranked by best percentages
- GET    /quizzes/attempts/{attempt_id}                   - Attempt breakdown (owner or author)
- POST   /quizzes/attempts/{attempt_id}/review            - Manually grade short answers
- POST   /courses/{course_id}/lessons/{lesson_id}/quizzes - Create a quiz
- GET    /lessons/{lesson_id}/quizzes                     - List quizzes on a lesson
- GET    /quizzes/{quiz_id}                               - Get quiz (for taking) + attemptInfo
- GET    /quizzes/{quiz_id}/manage                        - Get quiz with correct answers
- PUT    /quizzes/{quiz_id}                               - Update a quiz
- DELETE /quizzes/{quiz_id}                               - Delete a quiz
- POST   /quizzes/{quiz_id}/attempts                      - Start or resume an attempt
- POST   /quizzes/{quiz_id}/submit                        - Submit answers
- GET    /quizzes/{quiz_id}/results                       - Latest completed attempt
- GET    /quizzes/{quiz_id}/results/best                  - Best completed attempt
- GET    /quizzes/{quiz_id}/attempts                      - Attempt history
- GET    /quizzes/{quiz_id}/submissions                   - Every completed attempt (author)

Domain errors propagate to the application exception handlers.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.db.database import get_db
from lms_quiz.api.deps import get_current_user, require_author, require_student
from lms_quiz.models.user import User, UserRole
from lms_quiz.schemas.quiz import (
    AttemptDetailResponse,
    AttemptListResponse,
    AttemptResponse,
    AttemptReviewRequest,
    LeaderboardResponse,
    QuizAuthorDetailResponse,
    QuizCreateRequest,
    QuizDetailResponse,
    QuizListResponse,
    QuizSubmitRequest,
    QuizUpdateRequest,
    StartAttemptResponse,
    SubmissionListResponse,
    SubmitResultResponse,
)
from lms_quiz.services.attempt_service import AttemptService
from lms_quiz.services.quiz_service import QuizService
from lms_quiz.services.results_service import ResultsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quizzes"])


def get_quiz_service(db: AsyncSession = Depends(get_db)) -> QuizService:
    return QuizService(db)


def get_attempt_service(db: AsyncSession = Depends(get_db)) -> AttemptService:
    return AttemptService(db)


def get_results_service(db: AsyncSession = Depends(get_db)) -> ResultsService:
    return ResultsService(db)


# ============================================================
# LEADERBOARD
# ============================================================

@router.get(
    "/quizzes/leaderboard",
    response_model=LeaderboardResponse,
    summary="Quiz leaderboard",
    description="Students ranked by the sum of their best percentage on each quiz.",
)
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    results: ResultsService = Depends(get_results_service),
):
    return await results.leaderboard(limit)


# ============================================================
# ATTEMPT DETAIL / REVIEW
# ============================================================

@router.get(
    "/quizzes/attempts/{attempt_id}",
    response_model=AttemptDetailResponse,
    summary="Get attempt result detail",
)
async def get_attempt_detail(
    attempt_id: UUID,
    current_user: User = Depends(get_current_user),
    results: ResultsService = Depends(get_results_service),
):
    return await results.get_attempt_detail(attempt_id, current_user)


@router.post(
    "/quizzes/attempts/{attempt_id}/review",
    response_model=AttemptDetailResponse,
    summary="Grade short-answer questions",
    description="""
    Awards points to short-answer questions of a completed attempt and
    rescores it. Grades from earlier reviews are kept unless overwritten.
    """,
)
async def review_attempt(
    attempt_id: UUID,
    request: AttemptReviewRequest,
    current_user: User = Depends(require_author),
    attempts: AttemptService = Depends(get_attempt_service),
    results: ResultsService = Depends(get_results_service),
):
    grades = {g.question_id: g.points_awarded for g in request.grades}
    await attempts.review_attempt(attempt_id, grades, current_user)
    return await results.get_attempt_detail(attempt_id, current_user)


# ============================================================
# CREATE / LIST QUIZZES
# ============================================================

@router.post(
    "/courses/{course_id}/lessons/{lesson_id}/quizzes",
    response_model=QuizAuthorDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a quiz on a lesson",
)
async def create_quiz(
    course_id: UUID,
    lesson_id: UUID,
    request: QuizCreateRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = await service.create_quiz(lesson_id, request, current_user, course_id=course_id)
    return service.build_author_detail(quiz)


@router.get(
    "/lessons/{lesson_id}/quizzes",
    response_model=QuizListResponse,
    summary="List quizzes for a lesson",
    description="Students only see active quizzes.",
)
async def list_lesson_quizzes(
    lesson_id: UUID,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    quizzes = await service.list_quizzes_for_lesson(lesson_id, current_user)
    return QuizListResponse(
        quizzes=[service.build_quiz_response(q) for q in quizzes],
        total=len(quizzes),
    )


# ============================================================
# GET QUIZ
# ============================================================

@router.get(
    "/quizzes/{quiz_id}",
    response_model=QuizDetailResponse,
    summary="Get quiz with questions",
    description="""
    Returns the quiz with all questions (without correct answers) for taking.
    Students also get `attemptInfo`: whether they can start, how many
    attempts remain and which attempt is still open.
    """,
)
async def get_quiz(
    quiz_id: UUID,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
    attempts: AttemptService = Depends(get_attempt_service),
):
    quiz = await service.get_quiz_for_user(quiz_id, current_user)
    attempt_info = None
    if current_user.role == UserRole.STUDENT.value:
        eligibility = await attempts.get_attempt_eligibility(current_user.id, quiz.id)
        attempt_info = eligibility.to_info()
    return service.build_student_detail(quiz, attempt_info)


@router.get(
    "/quizzes/{quiz_id}/manage",
    response_model=QuizAuthorDetailResponse,
    summary="Get quiz with correct answers",
)
async def get_quiz_for_author(
    quiz_id: UUID,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = await service.get_quiz(quiz_id)
    await service.access.ensure_can_manage_quiz(current_user, quiz)
    return service.build_author_detail(quiz)


# ============================================================
# UPDATE / DELETE QUIZ
# ============================================================

@router.put(
    "/quizzes/{quiz_id}",
    response_model=QuizAuthorDetailResponse,
    summary="Update a quiz",
    description="""
    Patches metadata. When `questions` is present it replaces the whole
    question list; this is refused once students have attempted the quiz.
    """,
)
async def update_quiz(
    quiz_id: UUID,
    request: QuizUpdateRequest,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = await service.update_quiz(quiz_id, request, current_user)
    return service.build_author_detail(quiz)


@router.delete(
    "/quizzes/{quiz_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a quiz",
)
async def delete_quiz(
    quiz_id: UUID,
    current_user: User = Depends(require_author),
    service: QuizService = Depends(get_quiz_service),
):
    await service.delete_quiz(quiz_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================
# TAKE QUIZ
# ============================================================

@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start or resume an attempt",
)
async def start_attempt(
    quiz_id: UUID,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
    attempts: AttemptService = Depends(get_attempt_service),
):
    await service.get_quiz_for_user(quiz_id, current_user)
    outcome = await attempts.start_attempt(current_user.id, quiz_id)
    return outcome.to_response()


@router.post(
    "/quizzes/{quiz_id}/submit",
    response_model=SubmitResultResponse,
    summary="Submit quiz answers",
    description="""
    Scores and completes the attempt. Submitting the same attempt again
    returns the stored result with `alreadySubmitted: true`.
    """,
)
async def submit_quiz(
    quiz_id: UUID,
    submission: QuizSubmitRequest,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
    attempts: AttemptService = Depends(get_attempt_service),
):
    await service.get_quiz_for_user(quiz_id, current_user)
    outcome = await attempts.submit_attempt(
        attempt_id=submission.attempt_id,
        student_id=current_user.id,
        answers=submission.to_answers(),
        client_start_time=submission.start_time,
        quiz_id=quiz_id,
    )
    return outcome.response


# ============================================================
# RESULTS
# ============================================================

@router.get(
    "/quizzes/{quiz_id}/results",
    response_model=Optional[AttemptResponse],
    summary="Latest completed attempt",
)
async def get_latest_result(
    quiz_id: UUID,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
    results: ResultsService = Depends(get_results_service),
):
    await service.get_quiz(quiz_id)
    attempt = await results.get_latest_result(quiz_id, current_user.id)
    return AttemptResponse.from_attempt(attempt) if attempt else None


@router.get(
    "/quizzes/{quiz_id}/results/best",
    response_model=Optional[AttemptResponse],
    summary="Best completed attempt",
)
async def get_best_result(
    quiz_id: UUID,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
    results: ResultsService = Depends(get_results_service),
):
    await service.get_quiz(quiz_id)
    attempt = await results.get_best_result(quiz_id, current_user.id)
    return AttemptResponse.from_attempt(attempt) if attempt else None


@router.get(
    "/quizzes/{quiz_id}/attempts",
    response_model=AttemptListResponse,
    summary="List your attempts",
)
async def list_attempts(
    quiz_id: UUID,
    current_user: User = Depends(require_student),
    service: QuizService = Depends(get_quiz_service),
    results: ResultsService = Depends(get_results_service),
):
    await service.get_quiz(quiz_id)
    attempts = await results.list_attempts(quiz_id, current_user.id)
    return AttemptListResponse(
        attempts=[AttemptResponse.from_attempt(a) for a in attempts],
        total=len(attempts),
    )


@router.get(
    "/quizzes/{quiz_id}/submissions",
    response_model=SubmissionListResponse,
    summary="List every completed attempt on a quiz",
)
async def list_submissions(
    quiz_id: UUID,
    current_user: User = Depends(require_author),
    results: ResultsService = Depends(get_results_service),
):
    return await results.list_submissions(quiz_id, current_user)
