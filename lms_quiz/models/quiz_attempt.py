from sqlalchemy import Column, Integer, Float, Boolean, ForeignKey, DateTime, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from lms_quiz.db.database import Base
from .base import JSONType, utcnow


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "quiz_id", "attempt_number", name="uq_quiz_attempts_user_quiz_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(UUID(as_uuid=True), ForeignKey("quizzes.id", ondelete="RESTRICT"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)

    # Timing (server clock is authoritative; client start is kept for display only)
    started_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    client_started_at = Column(DateTime(timezone=True), nullable=True)
    time_taken_seconds = Column(Integer, nullable=True)

    # Raw submission as received, before scoring
    raw_answers = Column(JSONType, nullable=True)

    # Results (nullable because filled after completion)
    score = Column(Integer, nullable=True)            # points earned
    total_score = Column(Integer, nullable=True)      # points possible
    gradable_score = Column(Integer, nullable=True)   # points the percentage is computed over
    percentage = Column(Float, nullable=True)
    passed = Column(Boolean, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    incorrect_answers = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=True)

    # Review state
    pending_review = Column(Boolean, default=False, nullable=False)
    flagged_for_review = Column(Boolean, default=False, nullable=False)
    warnings = Column(JSONType, nullable=True)

    # Relationships
    user = relationship("User", back_populates="quiz_attempts")
    quiz = relationship("Quiz")
    responses = relationship("QuizResponse", back_populates="attempt", cascade="all, delete-orphan")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None
