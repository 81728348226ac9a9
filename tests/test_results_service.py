from datetime import timedelta

import pytest

from lms_quiz.core.exceptions import AttemptNotFoundError, AuthorizationError
from lms_quiz.models import QuizAttempt
from lms_quiz.services.attempt_service import AttemptService
from lms_quiz.services.results_service import ResultsService
from lms_quiz.services.scoring import ChoiceAnswer
from lms_quiz.utils.time_utils import utc_now

from tests.conftest import correct_option_ids


async def record_attempts(db, user, quiz, scores, open_last=False):
    """Persist completed attempts with the given scores out of 100."""
    base = utc_now() - timedelta(days=1)
    attempts = []
    for i, points in enumerate(scores):
        started = base + timedelta(hours=i)
        attempts.append(QuizAttempt(
            user_id=user.id,
            quiz_id=quiz.id,
            attempt_number=i + 1,
            started_at=started,
            completed_at=started + timedelta(minutes=5),
            time_taken_seconds=300,
            score=points,
            total_score=100,
            gradable_score=100,
            percentage=float(points),
            passed=points >= quiz.passing_score,
            correct_answers=0,
            incorrect_answers=0,
            total_questions=2,
        ))
    if open_last:
        attempts.append(QuizAttempt(
            user_id=user.id,
            quiz_id=quiz.id,
            attempt_number=len(scores) + 1,
            started_at=utc_now(),
        ))
    db.add_all(attempts)
    await db.commit()
    return attempts


async def test_best_and_latest_differ(db, users, make_quiz):
    quiz = await make_quiz(max_attempts=3)
    await record_attempts(db, users.student, quiz, [40, 90, 70])
    results = ResultsService(db)

    best = await results.get_best_result(quiz.id, users.student.id)
    latest = await results.get_latest_result(quiz.id, users.student.id)

    assert (best.attempt_number, best.score) == (2, 90)
    assert (latest.attempt_number, latest.score) == (3, 70)


async def test_best_tie_goes_to_earliest_attempt(db, users, make_quiz):
    quiz = await make_quiz(max_attempts=2)
    await record_attempts(db, users.student, quiz, [80, 80])

    best = await ResultsService(db).get_best_result(quiz.id, users.student.id)

    assert best.attempt_number == 1


async def test_open_attempt_is_listed_but_never_a_result(db, users, make_quiz):
    quiz = await make_quiz(max_attempts=3)
    await record_attempts(db, users.student, quiz, [55], open_last=True)
    results = ResultsService(db)

    history = await results.list_attempts(quiz.id, users.student.id)
    latest = await results.get_latest_result(quiz.id, users.student.id)

    assert [a.attempt_number for a in history] == [1, 2]
    assert history[1].completed_at is None
    assert latest.attempt_number == 1


async def test_no_results_yet(db, users, make_quiz):
    quiz = await make_quiz()
    results = ResultsService(db)

    assert await results.get_latest_result(quiz.id, users.student.id) is None
    assert await results.get_best_result(quiz.id, users.student.id) is None
    assert await results.list_attempts(quiz.id, users.student.id) == []


async def test_attempt_detail_visible_to_owner_and_quiz_owner_only(db, users, make_quiz):
    quiz = await make_quiz()
    first, second = quiz.questions
    outcome = await AttemptService(db).submit_attempt(
        None,
        users.student.id,
        [
            ChoiceAnswer(second.id, frozenset(correct_option_ids(second))),
            ChoiceAnswer(first.id, frozenset()),
        ],
        quiz_id=quiz.id,
    )
    results = ResultsService(db)

    own = await results.get_attempt_detail(outcome.attempt_id, users.student)
    managed = await results.get_attempt_detail(outcome.attempt_id, users.instructor)

    assert [a.question_id for a in own.answers] == [first.id, second.id]
    assert [a.is_correct for a in own.answers] == [False, True]
    assert managed.id == own.id
    with pytest.raises(AttemptNotFoundError):
        await results.get_attempt_detail(outcome.attempt_id, users.second_student)
    with pytest.raises(AttemptNotFoundError):
        await results.get_attempt_detail(outcome.attempt_id, users.other_instructor)


async def test_open_attempt_detail_hides_answers(db, users, make_quiz):
    quiz = await make_quiz()
    started = await AttemptService(db).start_attempt(users.student.id, quiz.id)

    detail = await ResultsService(db).get_attempt_detail(started.attempt.id, users.student)

    assert detail.status == "in_progress"
    assert detail.answers == []
    assert detail.score is None


async def test_submissions_for_quiz_owner(db, users, make_quiz):
    quiz = await make_quiz(max_attempts=3)
    await record_attempts(db, users.student, quiz, [40, 90])
    await record_attempts(db, users.second_student, quiz, [75])
    results = ResultsService(db)

    listing = await results.list_submissions(quiz.id, users.instructor)

    assert listing.total == 3
    assert {s.student_name for s in listing.submissions} == {"Sam Student", "Alex Second"}
    with pytest.raises(AuthorizationError):
        await results.list_submissions(quiz.id, users.other_instructor)


async def test_leaderboard_sums_best_percentage_per_quiz(db, users, make_quiz):
    algebra = await make_quiz(title="Algebra", max_attempts=3)
    geometry = await make_quiz(title="Geometry", max_attempts=3)
    await record_attempts(db, users.student, algebra, [40, 90])
    await record_attempts(db, users.student, geometry, [50])
    await record_attempts(db, users.second_student, algebra, [100])

    board = await ResultsService(db).leaderboard(limit=10)

    assert [(e.rank, e.full_name, e.total_score, e.quizzes_taken) for e in board.entries] == [
        (1, "Sam Student", 140.0, 2),
        (2, "Alex Second", 100.0, 1),
    ]


async def test_leaderboard_limit(db, users, make_quiz):
    quiz = await make_quiz(max_attempts=3)
    await record_attempts(db, users.student, quiz, [60])
    await record_attempts(db, users.second_student, quiz, [70])

    board = await ResultsService(db).leaderboard(limit=1)

    assert len(board.entries) == 1
    assert board.entries[0].full_name == "Alex Second"
