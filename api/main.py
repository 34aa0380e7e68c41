from fastapi import FastAPI, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime
import uuid

from core.config import settings
from core.exceptions import QuizAPIError, RateLimited, Unauthorized, NotFound
from core.logger import logger, setup_logging
from core.security import parse_bearer, verify_token
from db.session import get_db
from services.answer_service import AnswerService
from services.quiz_service import QuizService
from services.rate_limiter import RateLimiter
from services.submission_service import SubmissionService, SubmittedAnswer

# API Documentation
API_DESCRIPTION = """
## Voice Quiz API

Answer validation and score submission for the accessible quiz web client.

### Authentication

`Authorization: Bearer <token>` issued by the identity provider.

- Validating an answer requires a token.
- Submitting a quiz works without one, but the score is only stored for
  authenticated players.

### Rate Limits

Answer validation is limited per client address. Exceeding the quota returns
`429` with a `retryAfter` value in seconds.
"""

TAGS_METADATA = [
    {
        "name": "play",
        "description": "Answer validation and quiz submission.",
    },
    {
        "name": "quizzes",
        "description": "Quiz listing and answer-free question loading.",
    },
    {
        "name": "profile",
        "description": "Score history of the authenticated player.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    # One limiter per process, swept in the background
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        app.state.rate_limiter.sweep,
        trigger="interval",
        seconds=settings.RATE_LIMIT_SWEEP_SECONDS,
        id="rate_limit_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("API started", env=settings.ENV, rate_limit=settings.RATE_LIMIT_MAX_REQUESTS)
    try:
        yield
    finally:
        scheduler.shutdown(wait=False)
        logger.info("API stopped")


app = FastAPI(
    title="Voice Quiz API",
    description=API_DESCRIPTION,
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Registered before CORS so that unexpected 500s still carry the CORS headers
@app.middleware("http")
async def catch_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

# The web client is hosted separately
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Error translation ===

@app.exception_handler(QuizAPIError)
async def quiz_api_error_handler(request: Request, exc: QuizAPIError):
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _format_validation_error(error: dict) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part != "body"]
    if not loc:
        return error.get("msg", "Invalid value")
    return f"{'.'.join(loc)}: {error.get('msg', 'Invalid value')}"


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [_format_validation_error(e) for e in exc.errors()]
    logger.info("Request rejected", path=request.url.path, details=details)
    return JSONResponse(status_code=400, content={"error": "Invalid input data", "details": details})


# === Pydantic Models with Documentation ===

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnswerIn(CamelModel):
    """One selected answer."""
    question_id: uuid.UUID = Field(..., description="Question ID")
    selected_answer: int = Field(..., description="Index of the selected option (0-based)", ge=0, strict=True)


class ValidateAnswerRequest(AnswerIn):
    """Request body for checking a single answer during play."""
    quiz_id: uuid.UUID = Field(..., description="Quiz the question belongs to")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "questionId": "5b0a3c5e-2f43-4e43-9a57-0c1f5f3d6c11",
                "selectedAnswer": 2,
                "quizId": "0f7e8d2a-6a3b-4c55-8f0e-3b7d9a1c2e44",
            }
        }
    )


class ValidateAnswerResponse(CamelModel):
    is_correct: bool
    points: int
    explanation: Optional[str] = None


class SubmitQuizRequest(CamelModel):
    """Request body for submitting a finished attempt."""
    quiz_id: uuid.UUID = Field(..., description="Quiz ID")
    answers: List[AnswerIn] = Field(..., description="Answers in question order", min_length=1)
    time_taken: Optional[int] = Field(None, description="Seconds spent on the attempt", ge=0, strict=True)


class QuestionResultOut(CamelModel):
    question_id: uuid.UUID
    selected_answer: int
    is_correct: bool
    points: int
    explanation: Optional[str] = None


class SubmitQuizResponse(CamelModel):
    score: int = Field(..., description="Server-calculated score")
    total_questions: int = Field(..., description="Number of submitted answers")
    results: List[QuestionResultOut]
    score_id: Optional[uuid.UUID] = Field(None, description="Stored score record, null if not saved")
    saved: bool


class QuizListItem(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    difficulty: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    questions_count: int
    created_at: datetime


class PublicQuestion(CamelModel):
    """A question as sent before submission. No correct answer, no explanation."""
    id: uuid.UUID
    question_text: str
    options: List[str]
    points: int


class QuizQuestions(CamelModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    difficulty: Optional[str] = None
    time_limit_seconds: Optional[int] = None
    questions: List[PublicQuestion]


class ScoreHistoryItem(CamelModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    quiz_title: Optional[str] = None
    difficulty: Optional[str] = None
    score: int
    total_questions: int
    time_taken: Optional[int] = None
    completed_at: datetime


ERROR_RESPONSES = {
    400: {"description": "Invalid input data"},
    500: {"description": "Internal server error"},
}


# === Dependencies ===

def get_quiz_service(db: AsyncSession = Depends(get_db)) -> QuizService:
    return QuizService(db)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_client_address(request: Request) -> str:
    # Forwarding headers are only honoured by uvicorn for FORWARDED_ALLOW_IPS,
    # which rewrites request.client before it gets here.
    return request.client.host if request.client else "unknown"


async def get_current_user(authorization: Optional[str] = Header(None)) -> uuid.UUID:
    token = parse_bearer(authorization)
    if not token:
        raise Unauthorized("Missing authorization header")
    user_id = verify_token(token)
    if not user_id:
        raise Unauthorized("Invalid authorization")
    return user_id


async def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[uuid.UUID]:
    """Anonymous callers (or callers with a bad token) play without saving."""
    token = parse_bearer(authorization)
    if not token:
        return None
    user_id = verify_token(token)
    if not user_id:
        logger.info("Ignoring invalid credential on submission")
    return user_id


async def rate_limited_user(
    request: Request,
    user_id: uuid.UUID = Depends(get_current_user),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> uuid.UUID:
    await limiter.hit(get_client_address(request))
    return user_id


# === Endpoints ===

@app.post(
    "/api/validate-quiz-answer",
    response_model=ValidateAnswerResponse,
    tags=["play"],
    summary="Validate one answer",
    description="Checks a selected answer against the stored correct answer without revealing it.",
    responses={
        **ERROR_RESPONSES,
        401: {"description": "Authentication required"},
        404: {"description": "Question not found in this quiz"},
        429: {"description": "Too many requests. Please wait."},
    },
)
async def validate_quiz_answer(
    body: ValidateAnswerRequest,
    user_id: uuid.UUID = Depends(rate_limited_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    result = await AnswerService(quiz_service).validate(
        question_id=body.question_id,
        selected_answer=body.selected_answer,
        quiz_id=body.quiz_id,
        user_id=user_id,
    )
    return ValidateAnswerResponse(
        is_correct=result.is_correct,
        points=result.points,
        explanation=result.explanation,
    )


@app.post(
    "/api/submit-quiz-results",
    response_model=SubmitQuizResponse,
    tags=["play"],
    summary="Submit a finished quiz",
    description=(
        "Re-validates every answer, returns the authoritative score and per-question "
        "results, and stores the score for authenticated players. Each call is a new attempt."
    ),
    responses={
        **ERROR_RESPONSES,
        404: {"description": "Quiz not found or inactive"},
    },
)
async def submit_quiz_results(
    body: SubmitQuizRequest,
    user_id: Optional[uuid.UUID] = Depends(get_optional_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    outcome = await SubmissionService(quiz_service).submit(
        quiz_id=body.quiz_id,
        answers=[SubmittedAnswer(a.question_id, a.selected_answer) for a in body.answers],
        time_taken=body.time_taken,
        user_id=user_id,
    )
    return SubmitQuizResponse(
        score=outcome.score,
        total_questions=outcome.total_questions,
        results=[
            QuestionResultOut(
                question_id=r.question_id,
                selected_answer=r.selected_answer,
                is_correct=r.is_correct,
                points=r.points,
                explanation=r.explanation,
            )
            for r in outcome.results
        ],
        score_id=outcome.score_id,
        saved=outcome.saved,
    )


@app.get(
    "/api/quizzes",
    response_model=List[QuizListItem],
    tags=["quizzes"],
    summary="List active quizzes",
)
async def list_quizzes(quiz_service: QuizService = Depends(get_quiz_service)):
    quizzes = await quiz_service.list_active_quizzes()
    return [
        QuizListItem(
            id=q.id,
            title=q.title,
            description=q.description,
            difficulty=q.difficulty,
            time_limit_seconds=q.time_limit_seconds,
            questions_count=count,
            created_at=q.created_at,
        )
        for q, count in quizzes
    ]


@app.get(
    "/api/quizzes/{quiz_id}/questions",
    response_model=QuizQuestions,
    tags=["quizzes"],
    summary="Load quiz questions",
    description="Questions of an active quiz with correct answers and explanations removed.",
    responses={404: {"description": "Quiz not found or inactive"}},
)
async def get_quiz_questions(quiz_id: uuid.UUID, quiz_service: QuizService = Depends(get_quiz_service)):
    quiz = await quiz_service.get_active_quiz(quiz_id)
    if not quiz:
        raise NotFound("Quiz not found or inactive")
    questions = await quiz_service.get_quiz_questions(quiz_id)
    return QuizQuestions(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        difficulty=quiz.difficulty,
        time_limit_seconds=quiz.time_limit_seconds,
        questions=[
            PublicQuestion(
                id=q.id,
                question_text=q.question_text,
                options=list(q.options or []),
                points=q.awarded_points,
            )
            for q in questions
        ],
    )


@app.get(
    "/api/scores",
    response_model=List[ScoreHistoryItem],
    tags=["profile"],
    summary="Recent scores",
    description="The authenticated player's most recent attempts, newest first.",
    responses={401: {"description": "Authentication required"}},
)
async def list_scores(
    user_id: uuid.UUID = Depends(get_current_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    records = await quiz_service.get_user_scores(user_id, limit=settings.SCORE_HISTORY_LIMIT)
    return [
        ScoreHistoryItem(
            id=r.id,
            quiz_id=r.quiz_id,
            quiz_title=r.quiz.title if r.quiz else None,
            difficulty=r.quiz.difficulty if r.quiz else None,
            score=r.score,
            total_questions=r.total_questions,
            time_taken=r.time_taken_seconds,
            completed_at=r.completed_at,
        )
        for r in records
    ]


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}
