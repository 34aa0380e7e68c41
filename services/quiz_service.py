import uuid
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from models.quiz import Quiz, Question
from models.score import ScoreRecord
from core.logger import logger


class QuizService:
    """Read access to quizzes/questions and the write path for score records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active_quizzes(self) -> List[Tuple[Quiz, int]]:
        """Active quizzes, newest first, each with its question count."""
        question_count = (
            select(Question.quiz_id, func.count(Question.id).label("questions_count"))
            .group_by(Question.quiz_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Quiz, func.coalesce(question_count.c.questions_count, 0))
            .outerjoin(question_count, question_count.c.quiz_id == Quiz.id)
            .filter(Quiz.is_active == True)
            .order_by(Quiz.created_at.desc())
        )
        return [(quiz, int(count)) for quiz, count in result.all()]

    async def get_active_quiz(self, quiz_id: uuid.UUID) -> Optional[Quiz]:
        result = await self.db.execute(
            select(Quiz).filter(Quiz.id == quiz_id, Quiz.is_active == True)
        )
        return result.scalar_one_or_none()

    async def get_quiz_questions(self, quiz_id: uuid.UUID) -> List[Question]:
        result = await self.db.execute(
            select(Question)
            .filter(Question.quiz_id == quiz_id)
            .order_by(Question.position, Question.id)
        )
        return list(result.scalars().all())

    async def get_question(self, quiz_id: uuid.UUID, question_id: uuid.UUID) -> Optional[Question]:
        """Look a question up by its id scoped to the quiz it must belong to."""
        result = await self.db.execute(
            select(Question).filter(Question.id == question_id, Question.quiz_id == quiz_id)
        )
        return result.scalar_one_or_none()

    async def get_questions_by_ids(
        self, quiz_id: uuid.UUID, question_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, Question]:
        ids = set(question_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(Question).filter(Question.quiz_id == quiz_id, Question.id.in_(list(ids)))
        )
        return {q.id: q for q in result.scalars().all()}

    async def save_score(
        self,
        user_id: uuid.UUID,
        quiz_id: uuid.UUID,
        score: int,
        total_questions: int,
        time_taken_seconds: Optional[int],
        answers: List[dict],
    ) -> ScoreRecord:
        record = ScoreRecord(
            user_id=user_id,
            quiz_id=quiz_id,
            score=score,
            total_questions=total_questions,
            time_taken_seconds=time_taken_seconds,
            answers=answers,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        await self.db.refresh(record)
        logger.info("Score saved", score_id=str(record.id), user_id=str(user_id), quiz_id=str(quiz_id), score=score)
        return record

    async def get_user_scores(self, user_id: uuid.UUID, limit: int = 10) -> List[ScoreRecord]:
        result = await self.db.execute(
            select(ScoreRecord)
            .options(selectinload(ScoreRecord.quiz))
            .filter(ScoreRecord.user_id == user_id)
            .order_by(ScoreRecord.completed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
