import uuid
from sqlalchemy import Column, Integer, JSON, DateTime, ForeignKey, Uuid, Index, func
from sqlalchemy.orm import relationship
from models.base import Base, utcnow

class ScoreRecord(Base):
    """Outcome of one completed attempt. Written once, never updated."""
    __tablename__ = "user_scores"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, index=True, nullable=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), index=True, nullable=False)

    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    time_taken_seconds = Column(Integer, nullable=True)

    # [{"questionId": "...", "selectedAnswer": 0}, ...] in submission order
    answers = Column(JSON, nullable=False)
    completed_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    quiz = relationship("Quiz")

# Profile history: latest attempts per user
Index("idx_scores_user_completed", ScoreRecord.user_id, ScoreRecord.completed_at)
