from sqlalchemy import Column, Integer, Boolean, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from lms_quiz.db.database import Base
from .base import JSONType
import uuid


class QuizResponse(Base):
    """One scored answer inside an attempt."""

    __tablename__ = "quiz_responses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    attempt_id = Column(UUID(as_uuid=True), ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(UUID(as_uuid=True), ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)

    # Answer
    selected_option_ids = Column(JSONType, nullable=True)  # ["<option uuid>", ...]
    answer_text = Column(Text, nullable=True)

    # NULL while a short answer waits for manual grading
    is_correct = Column(Boolean, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)
    manually_graded = Column(Boolean, default=False, nullable=False)

    # Relationships
    attempt = relationship("QuizAttempt", back_populates="responses")
    question = relationship("QuizQuestion")
