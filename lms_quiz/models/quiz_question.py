import enum
import uuid

from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from lms_quiz.db.database import Base


class QuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"

    @property
    def is_selectable(self) -> bool:
        return self is not QuestionType.SHORT_ANSWER


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"
    __table_args__ = (
        CheckConstraint("points >= 1", name="ck_quiz_questions_points"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    quiz_id = Column(UUID(as_uuid=True), ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Question content
    question_type = Column(String(30), nullable=False)  # multiple_choice, true_false, short_answer
    question_text = Column(Text, nullable=False)

    # Metadata
    points = Column(Integer, default=1, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuizOption.display_order",
    )

    @property
    def type(self) -> QuestionType:
        return QuestionType(self.question_type)

    @property
    def correct_option_ids(self) -> frozenset:
        return frozenset(o.id for o in self.options if o.is_correct)


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    question_id = Column(UUID(as_uuid=True), ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)

    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    question = relationship("QuizQuestion", back_populates="options")
