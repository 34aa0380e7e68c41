import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import NotFound, ValidationError
from core.logger import logger
from services.answer_service import check_answer_range, grade
from services.quiz_service import QuizService


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: uuid.UUID
    selected_answer: int


@dataclass(frozen=True)
class QuestionResult:
    question_id: uuid.UUID
    selected_answer: int
    is_correct: bool
    points: int
    explanation: Optional[str]


@dataclass
class SubmissionResult:
    score: int
    total_questions: int
    results: List[QuestionResult] = field(default_factory=list)
    score_id: Optional[uuid.UUID] = None

    @property
    def saved(self) -> bool:
        return self.score_id is not None


class SubmissionService:
    """
    Scores a finished attempt from scratch on the server.

    Whatever score the client tracked during play is advisory; the result of
    `submit` is the one that gets stored and shown. Every call is a new
    attempt, there is no deduplication across calls.
    """

    def __init__(self, quiz_service: QuizService):
        self.quiz_service = quiz_service

    async def submit(
        self,
        quiz_id: uuid.UUID,
        answers: Sequence[SubmittedAnswer],
        time_taken: Optional[int] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> SubmissionResult:
        if not answers:
            raise ValidationError(["At least one answer required"])

        logger.info(
            "Processing quiz submission",
            quiz_id=str(quiz_id),
            user_id=str(user_id) if user_id else None,
            answer_count=len(answers),
        )

        quiz = await self.quiz_service.get_active_quiz(quiz_id)
        if quiz is None:
            logger.warning("Quiz not found or inactive", quiz_id=str(quiz_id))
            raise NotFound("Quiz not found or inactive")

        questions = await self.quiz_service.get_questions_by_ids(quiz_id, [a.question_id for a in answers])

        errors = []
        for answer in answers:
            question = questions.get(answer.question_id)
            if question is not None:
                error = check_answer_range(question, answer.selected_answer)
                if error:
                    errors.append(error)
        if errors:
            raise ValidationError(errors)

        score, results = self._score(answers, questions)
        outcome = SubmissionResult(score=score, total_questions=len(answers), results=results)
        logger.info("Score calculated", quiz_id=str(quiz_id), score=score, total_questions=len(answers))

        if user_id is not None:
            try:
                record = await self.quiz_service.save_score(
                    user_id=user_id,
                    quiz_id=quiz_id,
                    score=score,
                    total_questions=len(answers),
                    time_taken_seconds=time_taken,
                    answers=[
                        {"questionId": str(a.question_id), "selectedAnswer": a.selected_answer}
                        for a in answers
                    ],
                )
                outcome.score_id = record.id
            except SQLAlchemyError as e:
                # The score is still valid; the client is told it was not stored
                logger.error("Failed to save score", quiz_id=str(quiz_id), user_id=str(user_id), error=str(e))

        return outcome

    @staticmethod
    def _score(answers, questions) -> Tuple[int, List[QuestionResult]]:
        total = 0
        results = []
        seen = set()
        for answer in answers:
            question = questions.get(answer.question_id)
            if question is None or answer.question_id in seen:
                # Unknown or repeated questions are worth nothing but still count
                results.append(QuestionResult(
                    question_id=answer.question_id,
                    selected_answer=answer.selected_answer,
                    is_correct=False,
                    points=0,
                    explanation=None,
                ))
                continue

            seen.add(answer.question_id)
            graded = grade(question, answer.selected_answer)
            total += graded.points
            results.append(QuestionResult(
                question_id=answer.question_id,
                selected_answer=answer.selected_answer,
                is_correct=graded.is_correct,
                points=graded.points,
                explanation=graded.explanation,
            ))
        return total, results
