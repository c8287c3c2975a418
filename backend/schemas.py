# schemas.py
from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field

Difficulty = Literal["easy", "medium", "hard"]
Label = Literal["A", "B", "C", "D"]


# --- Question drafts (generation output, before persistence) ---

class OptionSet(BaseModel):
    A: str
    B: str
    C: str
    D: str


class QuestionDraft(BaseModel):
    question: str
    options: OptionSet
    correct_answer: Label
    explanation: Optional[str] = None


class AIOptionSet(OptionSet):
    A: str = Field(min_length=1)
    B: str = Field(min_length=1)
    C: str = Field(min_length=1)
    D: str = Field(min_length=1)


class AIQuestion(QuestionDraft):
    """Strict shape every AI-produced question must satisfy."""
    question: str = Field(min_length=10)
    options: AIOptionSet
    explanation: str = Field(min_length=10)


class AIQuizResponse(BaseModel):
    questions: List[AIQuestion] = Field(min_length=1)


# --- Scoring ---

class QuestionDetail(BaseModel):
    question_id: int
    question_text: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    explanation: Optional[str] = None


class QuizResult(BaseModel):
    total_questions: int
    correct_answers: int
    score_percentage: int
    details: Optional[List[QuestionDetail]] = None


# --- API payloads ---

class UserIn(BaseModel):
    username: str = Field(min_length=1)
    email: str = Field(min_length=3)


class AnswerIn(BaseModel):
    question_id: int
    selected_option: Label


class SubmissionIn(BaseModel):
    answers: List[AnswerIn]
    user: Optional[UserIn] = None


class QuizCreateIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None


class QuestionCreateIn(BaseModel):
    question_text: Optional[str] = None
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    correct_option: Optional[str] = None
    explanation: Optional[str] = None


class GenerateIn(BaseModel):
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    question_count: Optional[int] = Field(default=None, alias="questionCount")

    class Config:
        populate_by_name = True


class CreatedOut(BaseModel):
    id: int


class GenerateOut(BaseModel):
    quiz_id: int = Field(serialization_alias="quizId")
    generation_type: Literal["ai", "static"] = Field(serialization_alias="generationType")
    message: str


class QuizSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    created_at: datetime


class QuizListOut(BaseModel):
    quizzes: List[QuizSummary]


class QuestionOut(BaseModel):
    id: int
    question_text: str
    options: OptionSet


class QuestionsOut(BaseModel):
    questions: List[QuestionOut]


class AttemptOut(BaseModel):
    id: int
    user_id: int
    quiz_id: int
    total_questions: int
    correct_answers: int
    score_percentage: int
    created_at: datetime


class AttemptsOut(BaseModel):
    attempts: List[AttemptOut]


class LeaderboardRow(BaseModel):
    rank: int
    username: str
    email: str
    score_percentage: int
    correct_answers: int
    total_questions: int
    created_at: datetime


class LeaderboardOut(BaseModel):
    leaderboard: List[LeaderboardRow]
