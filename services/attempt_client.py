"""
Client side of a quiz attempt.

Sequences one answer validation per question during play and a single
submission at the end. The server's submission result is the score of
record; the locally accumulated score is only shown when the submission
could not be completed, and is flagged as unconfirmed.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx
import structlog

VALIDATE_PATH = "/api/validate-quiz-answer"
SUBMIT_PATH = "/api/submit-quiz-results"

logger = structlog.get_logger(__name__)


class AttemptError(Exception):
    pass


@dataclass
class QuestionView:
    id: str
    question_text: str
    options: List[str]
    points: int


@dataclass
class AnswerFeedback:
    question_id: str
    selected_answer: int
    is_correct: Optional[bool]
    points: int
    explanation: Optional[str]
    confirmed: bool


@dataclass
class AttemptSummary:
    score: int
    total_points: int
    total_questions: int
    confirmed: bool
    saved: bool
    score_id: Optional[str] = None
    results: List[dict] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        if self.total_points <= 0:
            return 0
        return round(self.score / self.total_points * 100)


class QuizAttempt:
    def __init__(self, client: httpx.AsyncClient, quiz_id: str, questions: List[QuestionView], token: Optional[str] = None):
        self.client = client
        self.quiz_id = str(quiz_id)
        self.questions = questions
        self.token = token
        self.answers: Dict[str, int] = {}
        self.feedback: Dict[str, AnswerFeedback] = {}
        self.local_score = 0

    @classmethod
    async def start(cls, client: httpx.AsyncClient, quiz_id: str, token: Optional[str] = None) -> "QuizAttempt":
        """Load the answer-free question list and begin an attempt."""
        response = await client.get(f"/api/quizzes/{quiz_id}/questions")
        response.raise_for_status()
        data = response.json()
        questions = [
            QuestionView(
                id=q["id"],
                question_text=q["questionText"],
                options=q["options"],
                points=q["points"],
            )
            for q in data["questions"]
        ]
        logger.info("Quiz loaded", quiz_id=str(quiz_id), questions=len(questions))
        return cls(client, quiz_id, questions, token=token)

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    @property
    def is_complete(self) -> bool:
        return len(self.answers) == len(self.questions)

    def _headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _question(self, question_id: str) -> QuestionView:
        for question in self.questions:
            if question.id == question_id:
                return question
        raise AttemptError(f"Question {question_id} is not part of this quiz")

    async def answer(self, question_id: str, selected_answer: int) -> AnswerFeedback:
        """
        Check one answer with the server and lock the question.

        A failed check still records the answer so the attempt can move on;
        the feedback is then unconfirmed and adds nothing to the local score.
        """
        question_id = str(question_id)
        self._question(question_id)
        if question_id in self.answers:
            raise AttemptError(f"Question {question_id} was already answered")

        self.answers[question_id] = selected_answer
        try:
            response = await self.client.post(
                VALIDATE_PATH,
                json={"questionId": question_id, "selectedAnswer": selected_answer, "quizId": self.quiz_id},
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Answer validation failed", question_id=question_id, error=str(e))
            feedback = AnswerFeedback(
                question_id=question_id,
                selected_answer=selected_answer,
                is_correct=None,
                points=0,
                explanation=None,
                confirmed=False,
            )
        else:
            feedback = AnswerFeedback(
                question_id=question_id,
                selected_answer=selected_answer,
                is_correct=data["isCorrect"],
                points=data["points"],
                explanation=data.get("explanation"),
                confirmed=True,
            )
            if feedback.is_correct:
                self.local_score += feedback.points

        self.feedback[question_id] = feedback
        return feedback

    def _fallback_summary(self) -> AttemptSummary:
        return AttemptSummary(
            score=self.local_score,
            total_points=self.total_points,
            total_questions=len(self.answers),
            confirmed=False,
            saved=False,
        )

    async def finish(self, time_taken: Optional[int] = None) -> AttemptSummary:
        """Submit every recorded answer and return the score to display."""
        payload_answers = [
            {"questionId": q.id, "selectedAnswer": self.answers[q.id]}
            for q in self.questions
            if q.id in self.answers
        ]
        if not payload_answers:
            return self._fallback_summary()

        payload = {"quizId": self.quiz_id, "answers": payload_answers}
        if time_taken is not None:
            payload["timeTaken"] = max(0, int(time_taken))

        try:
            response = await self.client.post(SUBMIT_PATH, json=payload, headers=self._headers())
            response.raise_for_status()
            data = response.json()
            return AttemptSummary(
                score=data["score"],
                total_points=self.total_points,
                total_questions=data["totalQuestions"],
                confirmed=True,
                saved=data["saved"],
                score_id=data.get("scoreId"),
                results=data["results"],
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Quiz submission failed, showing local score", quiz_id=self.quiz_id, error=str(e))
            return self._fallback_summary()
