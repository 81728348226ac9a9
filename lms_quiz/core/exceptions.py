"""
Domain Exceptions

Every error the quiz subsystem raises maps to a stable machine-readable
``code`` plus a human-readable message. The application-level exception
handler in ``lms_quiz.main`` turns these into JSON responses:

    {"detail": "<message>", "code": "<CODE>", ...details}
"""

from typing import Any, Dict, List, Optional
from uuid import UUID


class AppError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


# ============================================================
# 400-level: caller errors
# ============================================================

class QuizValidationError(AppError):
    """Malformed quiz definition. Carries field-level errors."""

    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


class IncompleteAnswersError(AppError):
    status_code = 422
    code = "INCOMPLETE_ANSWERS"

    def __init__(self, missing_question_ids: List[UUID]):
        super().__init__(
            f"{len(missing_question_ids)} question(s) have no answer",
            details={"missingQuestionIds": [str(q) for q in missing_question_ids]},
        )
        self.missing_question_ids = missing_question_ids


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class QuizNotFoundError(NotFoundError):
    code = "QUIZ_NOT_FOUND"

    def __init__(self, quiz_id: Any = None):
        super().__init__("Quiz not found")
        self.quiz_id = quiz_id


class AttemptNotFoundError(NotFoundError):
    code = "ATTEMPT_NOT_FOUND"

    def __init__(self, attempt_id: Any = None):
        super().__init__("Attempt not found")
        self.attempt_id = attempt_id


class LessonNotFoundError(NotFoundError):
    code = "LESSON_NOT_FOUND"

    def __init__(self, lesson_id: Any = None):
        super().__init__("Lesson not found")
        self.lesson_id = lesson_id


# ============================================================
# Business rule rejections
# ============================================================

class AttemptLimitExceededError(AppError):
    status_code = 409
    code = "ATTEMPT_LIMIT_EXCEEDED"

    def __init__(self, max_attempts: Optional[int], remaining_attempts: int = 0):
        super().__init__(
            f"Maximum attempts ({max_attempts}) reached for this quiz",
            details={
                "remainingAttempts": remaining_attempts,
                "maxAttempts": max_attempts,
            },
        )
        self.max_attempts = max_attempts
        self.remaining_attempts = remaining_attempts


class QuizHasAttemptsError(AppError):
    """Questions are frozen once students have attempted the quiz."""

    status_code = 409
    code = "QUIZ_HAS_ATTEMPTS"

    def __init__(self, message: str = "Quiz already has attempts; deactivate it instead"):
        super().__init__(message)


class AttemptNotCompletedError(AppError):
    status_code = 409
    code = "ATTEMPT_IN_PROGRESS"

    def __init__(self):
        super().__init__("Attempt has not been submitted yet")


# ============================================================
# Auth collaborator
# ============================================================

class AuthenticationError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"


class AuthorizationError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotEnrolledError(AuthorizationError):
    code = "NOT_ENROLLED"

    def __init__(self):
        super().__init__("Not enrolled in this course")


class DuplicateEmailError(AppError):
    status_code = 400
    code = "EMAIL_TAKEN"

    def __init__(self):
        super().__init__("A user with this email already exists")


# ============================================================
# Warnings (never raised, returned alongside results)
# ============================================================

class DataIntegrityWarning:
    """Codes attached to a best-effort result instead of failing the request."""

    ZERO_POINTS_POSSIBLE = "ZERO_POINTS_POSSIBLE"
    NO_GRADABLE_POINTS = "NO_GRADABLE_POINTS"
    NO_CORRECT_OPTION = "NO_CORRECT_OPTION"
    UNKNOWN_QUESTION = "UNKNOWN_QUESTION"
    ANSWER_KIND_MISMATCH = "ANSWER_KIND_MISMATCH"
    DUPLICATE_ANSWER = "DUPLICATE_ANSWER"
