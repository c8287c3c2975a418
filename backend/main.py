# main.py
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import AI_ENABLED, CORS_ORIGINS, ID_STRATEGY, LOG_LEVEL
from db import Base, SessionLocal, engine
from errors import NotFoundError, PersistenceError, ValidationError
from generator import QuizGenerator
from llm import GeminiQuizClient
from scoring import score_submission
from sequences import build_allocator
from store import AttemptStore, QuestionStore
import models  # noqa: F401  (registers tables on Base.metadata)
import schemas

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# App & CORS
# -----------------------------------------------------------------------------
app = FastAPI(title="NebulaQuiz – Quiz & AI Assessment API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables at startup
Base.metadata.create_all(bind=engine)

# -----------------------------------------------------------------------------
# Wiring (overridable through app.dependency_overrides)
# -----------------------------------------------------------------------------
_allocator = build_allocator(ID_STRATEGY, SessionLocal)
question_store = QuestionStore(SessionLocal, _allocator)
attempt_store = AttemptStore(SessionLocal, _allocator)
ai_client = GeminiQuizClient() if AI_ENABLED else None
quiz_generator = QuizGenerator(question_store, ai_client)


def get_question_store() -> QuestionStore:
    return question_store


def get_attempt_store() -> AttemptStore:
    return attempt_store


def get_ai_client() -> Optional[GeminiQuizClient]:
    return ai_client


def get_quiz_generator() -> QuizGenerator:
    return quiz_generator


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "The operation could not be completed"})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok"}


# --- LLM smoke test ---
@app.get("/api/llm-test")
def llm_test(client: Optional[GeminiQuizClient] = Depends(get_ai_client)):
    if client is None:
        return {"ok": False, "error": "AI generation is disabled"}
    return client.ping()


# -----------------------------------------------------------------------------
# Quizzes & authoring
# -----------------------------------------------------------------------------
@app.get("/api/quizzes", response_model=schemas.QuizListOut)
def list_quizzes(category: Optional[str] = None, level: Optional[str] = None,
                 store: QuestionStore = Depends(get_question_store)):
    rows = store.list_quizzes(category, level)
    return {
        "quizzes": [
            {
                "id": r.id,
                "title": r.title,
                "description": r.description,
                "category": r.category,
                "level": r.level,
                "created_at": r.created_at,
            }
            for r in rows
        ]
    }


@app.post("/api/quizzes", response_model=schemas.CreatedOut, status_code=201)
def create_quiz(payload: schemas.QuizCreateIn, store: QuestionStore = Depends(get_question_store)):
    quiz_id = store.create_quiz(payload.title, payload.description, payload.category, payload.level)
    return {"id": quiz_id}


@app.post("/api/quizzes/{quiz_id}/questions", response_model=schemas.CreatedOut, status_code=201)
def add_question(quiz_id: int, payload: schemas.QuestionCreateIn,
                 store: QuestionStore = Depends(get_question_store)):
    options = {"A": payload.option_a, "B": payload.option_b, "C": payload.option_c, "D": payload.option_d}
    question_id = store.add_question(
        quiz_id, payload.question_text, options, payload.correct_option, payload.explanation
    )
    return {"id": question_id}


# -----------------------------------------------------------------------------
# Taking a quiz
# -----------------------------------------------------------------------------
@app.get("/api/quiz/attempts", response_model=schemas.AttemptsOut)
def get_attempts(email: str = "", quiz_id: Optional[int] = Query(default=None, alias="quizId"),
                 store: AttemptStore = Depends(get_attempt_store)):
    if not email.strip():
        raise ValidationError("email is required")
    rows = store.attempts_for(email, quiz_id)
    return {
        "attempts": [
            {
                "id": a.id,
                "user_id": a.user_id,
                "quiz_id": a.quiz_id,
                "total_questions": a.total_questions,
                "correct_answers": a.correct_answers,
                "score_percentage": a.score_percentage,
                "created_at": a.created_at,
            }
            for a in rows
        ]
    }


@app.get("/api/quiz/{quiz_id}/questions", response_model=schemas.QuestionsOut)
def get_questions(quiz_id: int, store: QuestionStore = Depends(get_question_store)):
    if not store.quiz_exists(quiz_id):
        raise NotFoundError("Quiz not found")
    return {"questions": store.list_questions(quiz_id)}


@app.post("/api/quiz/{quiz_id}/submit", response_model=schemas.QuizResult, response_model_exclude_none=True)
def submit_quiz(quiz_id: int, payload: schemas.SubmissionIn, details: bool = False,
                store: QuestionStore = Depends(get_question_store),
                attempts: AttemptStore = Depends(get_attempt_store)):
    answers = [(a.question_id, a.selected_option) for a in payload.answers]
    result = score_submission(store, quiz_id, answers, include_details=details)

    # Recording the attempt is best effort; the score is returned regardless.
    if payload.user is not None:
        try:
            user_id = attempts.upsert_user(payload.user.username, payload.user.email)
            attempts.record_attempt(user_id, quiz_id, result)
        except PersistenceError as e:
            logger.error("Failed to record attempt for quiz %s: %s", quiz_id, e)

    return result


@app.get("/api/quiz/{quiz_id}/leaderboard", response_model=schemas.LeaderboardOut)
def get_leaderboard(quiz_id: int, limit: int = 10, store: AttemptStore = Depends(get_attempt_store)):
    return {"leaderboard": store.leaderboard(quiz_id, max(1, limit))}


# -----------------------------------------------------------------------------
# AI assessment (Gemini with static fallback)
# -----------------------------------------------------------------------------
@app.post("/api/ai-assessment/generate", response_model=schemas.GenerateOut, status_code=201)
def generate_assessment(payload: schemas.GenerateIn, generator: QuizGenerator = Depends(get_quiz_generator)):
    generated = generator.generate_quiz(payload.topic, payload.difficulty, payload.question_count)
    return schemas.GenerateOut(
        quiz_id=generated.quiz_id,
        generation_type=generated.generation_type,
        message=f"Quiz generated successfully using {generated.generation_type} generation",
    )
