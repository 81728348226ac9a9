from sqlalchemy import Column, String, Integer, Float, Boolean, ForeignKey, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .base import BaseModel


class Quiz(BaseModel):
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("passing_score >= 0 AND passing_score <= 100", name="ck_quizzes_passing_score"),
        CheckConstraint("max_attempts IS NULL OR max_attempts >= 1", name="ck_quizzes_max_attempts"),
    )

    lesson_id = Column(UUID(as_uuid=True), ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)

    # Quiz info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    # Settings
    time_limit = Column(Integer, nullable=True)  # minutes, NULL = no limit
    passing_score = Column(Float, default=60.0, nullable=False)  # percentage
    max_attempts = Column(Integer, nullable=True)  # NULL = unlimited
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    lesson = relationship("Lesson", back_populates="quizzes")
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.display_order",
    )

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    @property
    def question_count(self) -> int:
        return len(self.questions)
