import uuid
from sqlalchemy import Column, Integer, String, Text, JSON, Boolean, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from models.base import Base, TimestampMixin

class Quiz(Base, TimestampMixin):
    __tablename__ = "quizzes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    difficulty = Column(String(20), nullable=True)  # easy, medium, hard
    time_limit_seconds = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    questions = relationship("Question", back_populates="quiz", order_by="Question.position")


class Question(Base, TimestampMixin):
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    # Never serialized to clients before the attempt is submitted
    correct_answer = Column(Integer, nullable=False)
    points = Column(Integer, default=1, nullable=False)
    explanation = Column(Text, nullable=True)

    quiz = relationship("Quiz", back_populates="questions")

    @property
    def option_count(self) -> int:
        return len(self.options or [])

    @property
    def awarded_points(self) -> int:
        # Questions imported without points are worth one
        return self.points or 1
