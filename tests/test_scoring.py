"""
Tests for the scoring engine.

The engine only reads attributes, so quizzes are plain namespaces here.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from lms_quiz.core.exceptions import DataIntegrityWarning
from lms_quiz.services.scoring import ChoiceAnswer, TextAnswer, score


def option(text, is_correct=False):
    return SimpleNamespace(id=uuid4(), option_text=text, is_correct=is_correct)


def question(question_type="multiple_choice", points=1, options=None):
    if options is None and question_type == "multiple_choice":
        options = [option("A", True), option("B"), option("C")]
    return SimpleNamespace(id=uuid4(), question_type=question_type, points=points, options=options or [])


def quiz(*questions, passing_score=60.0):
    return SimpleNamespace(questions=list(questions), passing_score=passing_score)


def right(q):
    return ChoiceAnswer(q.id, frozenset(o.id for o in q.options if o.is_correct))


def wrong(q):
    return ChoiceAnswer(q.id, frozenset([next(o.id for o in q.options if not o.is_correct)]))


# ============================================================
# Auto-graded questions
# ============================================================

def test_all_correct_answers_pass():
    q1, q2 = question(), question()

    result = score(quiz(q1, q2), [right(q1), right(q2)])

    assert result.points_earned == 2
    assert result.points_possible == 2
    assert result.percentage == 100.0
    assert result.passed is True
    assert result.correct_count == 2
    assert result.incorrect_count == 0
    assert result.warnings == []


def test_half_correct_fails_sixty_percent_quiz():
    q1, q2 = question(), question()

    result = score(quiz(q1, q2), [right(q1), wrong(q2)])

    assert result.points_earned == 1
    assert result.percentage == 50.0
    assert result.passed is False
    assert result.correct_count == 1
    assert result.incorrect_count == 1


def test_passing_score_is_inclusive():
    questions = [question() for _ in range(5)]
    answers = [right(q) for q in questions[:3]] + [wrong(q) for q in questions[3:]]

    result = score(quiz(*questions, passing_score=60.0), answers)

    assert result.percentage == 60.0
    assert result.passed is True


def test_points_weight_the_percentage():
    heavy = question(points=3)
    light = question(points=1)

    result = score(quiz(heavy, light), [right(heavy), wrong(light)])

    assert result.points_earned == 3
    assert result.points_possible == 4
    assert result.percentage == 75.0


def test_percentage_rounded_to_one_decimal():
    questions = [question() for _ in range(3)]

    result = score(quiz(*questions), [right(questions[0])])

    assert result.percentage == 33.3


def test_multi_select_requires_exact_match():
    q = question(options=[option("A", True), option("B", True), option("C")])
    a, b, c = (o.id for o in q.options)

    partial = score(quiz(q), [ChoiceAnswer(q.id, frozenset([a]))])
    extra = score(quiz(q), [ChoiceAnswer(q.id, frozenset([a, b, c]))])
    exact = score(quiz(q), [ChoiceAnswer(q.id, frozenset([b, a]))])

    assert partial.answers[0].is_correct is False
    assert partial.points_earned == 0
    assert extra.answers[0].is_correct is False
    assert exact.answers[0].is_correct is True
    assert exact.points_earned == 1


def test_unanswered_question_counts_as_incorrect():
    q1, q2 = question(), question()

    result = score(quiz(q1, q2), [right(q1)])

    assert result.total_questions == 2
    assert result.incorrect_count == 1
    assert result.unanswered_question_ids == [q2.id]
    assert result.answers[1].answered is False


def test_true_false_accepts_option_id_or_text():
    q = question("true_false", options=[option("True", True), option("False")])

    by_id = score(quiz(q), [right(q)])
    by_text = score(quiz(q), [TextAnswer(q.id, "  true ")])
    wrong_text = score(quiz(q), [TextAnswer(q.id, "false")])

    assert by_id.answers[0].is_correct is True
    assert by_text.answers[0].is_correct is True
    assert by_text.answers[0].answer_text == "  true "
    assert wrong_text.answers[0].is_correct is False


def test_text_answer_to_multiple_choice_is_wrong_with_warning():
    q = question()

    result = score(quiz(q), [TextAnswer(q.id, "A")])

    assert result.answers[0].is_correct is False
    assert DataIntegrityWarning.ANSWER_KIND_MISMATCH in result.warnings


# ============================================================
# Short answers
# ============================================================

def test_short_answer_excluded_until_graded():
    mc = question(points=1)
    sa = question("short_answer", points=3)

    result = score(quiz(mc, sa), [right(mc), TextAnswer(sa.id, "Photosynthesis")])

    assert result.points_possible == 4
    assert result.gradable_points == 1
    assert result.points_earned == 1
    assert result.percentage == 100.0
    assert result.pending_review is True
    assert result.total_questions == 2
    short = result.answers[1]
    assert short.is_correct is None
    assert short.gradable is False
    assert short.answer_text == "Photosynthesis"


def test_unanswered_short_answer_is_not_pending():
    mc = question()
    sa = question("short_answer")

    result = score(quiz(mc, sa), [right(mc)])

    assert result.pending_review is False
    assert result.answers[1].is_correct is None


@pytest.mark.parametrize(
    "awarded, expected_earned, expected_percentage, expected_correct",
    [
        (3, 4, 100.0, True),
        (1, 2, 50.0, False),
        (0, 1, 25.0, False),
        (10, 4, 100.0, True),
    ],
)
def test_manual_grade_enters_percentage(awarded, expected_earned, expected_percentage, expected_correct):
    mc = question(points=1)
    sa = question("short_answer", points=3)

    result = score(
        quiz(mc, sa),
        [right(mc), TextAnswer(sa.id, "An answer")],
        manual_grades={sa.id: awarded},
    )

    assert result.points_earned == expected_earned
    assert result.gradable_points == 4
    assert result.percentage == expected_percentage
    assert result.pending_review is False
    assert result.answers[1].manually_graded is True
    assert result.answers[1].is_correct is expected_correct


def test_only_short_answers_yields_zero_percentage_with_warning():
    sa = question("short_answer", points=2)

    result = score(quiz(sa), [TextAnswer(sa.id, "Mitochondria")])

    assert result.percentage == 0.0
    assert result.passed is False
    assert result.pending_review is True
    assert DataIntegrityWarning.NO_GRADABLE_POINTS in result.warnings


# ============================================================
# Degenerate input
# ============================================================

def test_zero_point_quiz_is_flagged_not_raised():
    zero = SimpleNamespace(id=uuid4(), question_type="multiple_choice", points=0, options=[option("A", True)])

    result = score(quiz(zero), [right(zero)])

    assert result.percentage == 0.0
    assert result.passed is False
    assert DataIntegrityWarning.ZERO_POINTS_POSSIBLE in result.warnings


def test_empty_quiz_is_flagged():
    result = score(quiz(), [])

    assert result.total_questions == 0
    assert result.percentage == 0.0
    assert result.warnings == [DataIntegrityWarning.ZERO_POINTS_POSSIBLE]


def test_question_without_correct_option_can_never_be_correct():
    q = question(options=[option("A"), option("B")])

    result = score(quiz(q), [ChoiceAnswer(q.id, frozenset())])

    assert result.answers[0].is_correct is False
    assert DataIntegrityWarning.NO_CORRECT_OPTION in result.warnings


def test_unknown_question_is_ignored_with_warning():
    q = question()

    result = score(quiz(q), [right(q), ChoiceAnswer(uuid4(), frozenset([uuid4()]))])

    assert result.points_earned == 1
    assert result.total_questions == 1
    assert result.warnings == [DataIntegrityWarning.UNKNOWN_QUESTION]


def test_duplicate_answer_first_one_wins():
    q = question()

    result = score(quiz(q), [wrong(q), right(q), right(q)])

    assert result.answers[0].is_correct is False
    assert result.warnings == [DataIntegrityWarning.DUPLICATE_ANSWER]


def test_scoring_is_deterministic():
    q1, q2 = question(), question("short_answer")
    answers = [right(q1), TextAnswer(q2.id, "text")]

    assert score(quiz(q1, q2), answers) == score(quiz(q1, q2), answers)
