import uuid
from dataclasses import dataclass
from typing import Optional

from core.exceptions import NotFound, ValidationError
from core.logger import logger
from models.quiz import Question
from services.quiz_service import QuizService


@dataclass(frozen=True)
class AnswerResult:
    is_correct: bool
    points: int
    explanation: Optional[str]


def check_answer_range(question: Question, selected_answer: int) -> Optional[str]:
    """Return an error message if `selected_answer` is not an option of `question`."""
    if selected_answer < 0 or selected_answer >= question.option_count:
        return (
            f"Answer for question {question.id} must be between 0 and {question.option_count - 1}"
        )
    return None


def grade(question: Question, selected_answer: int) -> AnswerResult:
    is_correct = question.correct_answer == selected_answer
    return AnswerResult(
        is_correct=is_correct,
        points=question.awarded_points if is_correct else 0,
        explanation=question.explanation or None,
    )


class AnswerService:
    """Checks a single answer during play. Read-only, safe to call repeatedly."""

    def __init__(self, quiz_service: QuizService):
        self.quiz_service = quiz_service

    async def validate(
        self, question_id: uuid.UUID, selected_answer: int, quiz_id: uuid.UUID, user_id: uuid.UUID
    ) -> AnswerResult:
        question = await self.quiz_service.get_question(quiz_id, question_id)
        if question is None:
            logger.info("Question not found", question_id=str(question_id), quiz_id=str(quiz_id), user_id=str(user_id))
            raise NotFound("Question not found")

        error = check_answer_range(question, selected_answer)
        if error:
            raise ValidationError([error])

        result = grade(question, selected_answer)
        logger.debug(
            "Answer validated",
            question_id=str(question_id),
            user_id=str(user_id),
            is_correct=result.is_correct,
        )
        return result
