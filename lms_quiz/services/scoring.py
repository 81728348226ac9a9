"""
Scoring Engine

Pure grading of a submitted answer set against a quiz definition.

No database access and no side effects: the same quiz and answers always
produce the same ``ScoreResult``. Malformed-but-structurally-valid input
(a zero-point quiz, a question without a correct option, answers to unknown
questions) degrades to a best-effort result annotated with warning codes
instead of raising.

Grading rules:
- multiple_choice / true_false: correct iff the selected option ids equal the
  set of options flagged correct (exact match, no partial credit).
  A text answer to a true/false question is accepted when it matches the
  correct option's text, case-insensitively.
- short_answer: not auto-graded. Counts toward ``total_questions`` and
  ``points_possible`` but stays out of the percentage until a manual grade
  is supplied for it.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union
from uuid import UUID

from lms_quiz.core.exceptions import DataIntegrityWarning
from lms_quiz.models.quiz_question import QuestionType


# ============================================================
# Input: tagged answer variant
# ============================================================

@dataclass(frozen=True)
class ChoiceAnswer:
    question_id: UUID
    selected_option_ids: frozenset = frozenset()
    kind: str = field(default="choice", init=False)


@dataclass(frozen=True)
class TextAnswer:
    question_id: UUID
    text: str = ""
    kind: str = field(default="text", init=False)


Answer = Union[ChoiceAnswer, TextAnswer]


# ============================================================
# Output
# ============================================================

@dataclass
class AnswerResult:
    """
    Grading outcome for one question.

    Attributes:
        is_correct: None while a short answer awaits manual grading
        gradable: whether ``points_possible`` enters the percentage
        answered: False when the submission had no entry for the question
    """
    question_id: UUID
    question_type: QuestionType
    points_possible: int
    points_earned: int = 0
    is_correct: Optional[bool] = None
    gradable: bool = True
    answered: bool = False
    manually_graded: bool = False
    selected_option_ids: Tuple[str, ...] = ()
    answer_text: Optional[str] = None


@dataclass
class ScoreResult:
    answers: List[AnswerResult]
    points_earned: int
    points_possible: int
    gradable_points: int
    percentage: float
    passed: bool
    correct_count: int
    incorrect_count: int
    total_questions: int
    pending_review: bool
    warnings: List[str] = field(default_factory=list)

    @property
    def unanswered_question_ids(self) -> List[UUID]:
        return [a.question_id for a in self.answers if not a.answered]


# ============================================================
# Engine
# ============================================================

def index_answers(answers: Iterable[Answer]) -> Tuple[Dict[UUID, Answer], List[str]]:
    """Map answers by question id; the first answer for a question wins."""
    by_question: Dict[UUID, Answer] = {}
    warnings: List[str] = []
    for answer in answers:
        if answer.question_id in by_question:
            warnings.append(DataIntegrityWarning.DUPLICATE_ANSWER)
            continue
        by_question[answer.question_id] = answer
    return by_question, warnings


def score(
    quiz,
    answers: Iterable[Answer],
    manual_grades: Optional[Mapping[UUID, int]] = None,
) -> ScoreResult:
    """
    Grade ``answers`` against ``quiz``.

    Args:
        quiz: quiz definition with ``passing_score`` and ordered ``questions``
            (each with ``id``, ``question_type``, ``points`` and ``options``)
        answers: ChoiceAnswer / TextAnswer items
        manual_grades: points awarded per short-answer question id

    Returns:
        ScoreResult; never raises for well-typed input
    """
    manual_grades = manual_grades or {}
    by_question, warnings = index_answers(answers)

    known_ids = {q.id for q in quiz.questions}
    if any(qid not in known_ids for qid in by_question):
        warnings.append(DataIntegrityWarning.UNKNOWN_QUESTION)

    results: List[AnswerResult] = []
    for question in quiz.questions:
        answer = by_question.get(question.id)
        question_type = QuestionType(question.question_type)
        if question_type is QuestionType.SHORT_ANSWER:
            result = _grade_short_answer(question, answer, manual_grades.get(question.id), warnings)
        else:
            result = _grade_selectable(question, question_type, answer, warnings)
        results.append(result)

    points_possible = sum(r.points_possible for r in results)
    gradable_points = sum(r.points_possible for r in results if r.gradable)
    points_earned = sum(r.points_earned for r in results)

    if points_possible == 0:
        warnings.append(DataIntegrityWarning.ZERO_POINTS_POSSIBLE)
    elif gradable_points == 0:
        warnings.append(DataIntegrityWarning.NO_GRADABLE_POINTS)

    if gradable_points > 0:
        percentage = round(points_earned / gradable_points * 100, 1)
        passed = percentage >= quiz.passing_score
    else:
        percentage = 0.0
        passed = False

    return ScoreResult(
        answers=results,
        points_earned=points_earned,
        points_possible=points_possible,
        gradable_points=gradable_points,
        percentage=percentage,
        passed=passed,
        correct_count=sum(1 for r in results if r.is_correct is True),
        incorrect_count=sum(1 for r in results if r.is_correct is False),
        total_questions=len(results),
        pending_review=any(r.answered and not r.gradable for r in results),
        warnings=_dedupe(warnings),
    )


def _grade_selectable(question, question_type: QuestionType, answer: Optional[Answer], warnings: List[str]) -> AnswerResult:
    result = AnswerResult(
        question_id=question.id,
        question_type=question_type,
        points_possible=question.points,
        is_correct=False,
    )
    correct_ids = frozenset(o.id for o in question.options if o.is_correct)
    if not correct_ids:
        warnings.append(DataIntegrityWarning.NO_CORRECT_OPTION)

    if answer is None:
        return result
    result.answered = True

    if isinstance(answer, ChoiceAnswer):
        selected = frozenset(answer.selected_option_ids)
        result.selected_option_ids = tuple(sorted(str(s) for s in selected))
        result.is_correct = bool(correct_ids) and selected == correct_ids
    elif question_type is QuestionType.TRUE_FALSE:
        result.answer_text = answer.text
        correct_texts = {
            o.option_text.strip().casefold() for o in question.options if o.is_correct
        }
        result.is_correct = len(correct_texts) == 1 and answer.text.strip().casefold() in correct_texts
    else:
        result.answer_text = answer.text
        warnings.append(DataIntegrityWarning.ANSWER_KIND_MISMATCH)

    if result.is_correct:
        result.points_earned = question.points
    return result


def _grade_short_answer(question, answer: Optional[Answer], grade: Optional[int], warnings: List[str]) -> AnswerResult:
    result = AnswerResult(
        question_id=question.id,
        question_type=QuestionType.SHORT_ANSWER,
        points_possible=question.points,
        gradable=False,
    )
    if answer is not None:
        result.answered = True
        if isinstance(answer, TextAnswer):
            result.answer_text = answer.text
        else:
            result.selected_option_ids = tuple(sorted(str(s) for s in answer.selected_option_ids))
            warnings.append(DataIntegrityWarning.ANSWER_KIND_MISMATCH)

    if grade is not None:
        awarded = max(0, min(int(grade), question.points))
        result.points_earned = awarded
        result.is_correct = awarded == question.points
        result.gradable = True
        result.manually_graded = True
    return result


def _dedupe(codes: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for code in codes:
        if code not in seen:
            seen.add(code)
            ordered.append(code)
    return ordered
