# generator.py
"""
Quiz assembly: AI first, static bank on any generation failure, then persist
the quiz and fan its questions out to a thread pool.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List

from config import INSERT_WORKERS
from errors import PersistenceError, ValidationError
from llm import GenerationError, ProviderError
from schemas import QuestionDraft
from static_bank import DIFFICULTIES, generate_static
from utils import difficulty_label

logger = logging.getLogger(__name__)

AI_SOURCE = "ai"
STATIC_SOURCE = "static"
MIN_QUESTIONS = 5
MAX_QUESTIONS = 50


@dataclass(frozen=True)
class GeneratedQuiz:
    quiz_id: int
    generation_type: str


def validate_request(topic, difficulty, question_count) -> str:
    """Returns the trimmed topic or raises ValidationError."""
    if not isinstance(topic, str) or not topic.strip():
        raise ValidationError("Topic is required")
    if difficulty not in DIFFICULTIES:
        raise ValidationError("Invalid difficulty level")
    if isinstance(question_count, bool) or not isinstance(question_count, int):
        raise ValidationError("questionCount must be an integer")
    if not MIN_QUESTIONS <= question_count <= MAX_QUESTIONS:
        raise ValidationError(f"Question count must be between {MIN_QUESTIONS} and {MAX_QUESTIONS}")
    return topic.strip()


class QuizGenerator:

    def __init__(self, store, ai_client=None, static_source=generate_static, max_workers: int = INSERT_WORKERS):
        self.store = store
        self.ai_client = ai_client
        self.static_source = static_source
        self.max_workers = max(1, max_workers)

    def generate_quiz(self, topic, difficulty, question_count) -> GeneratedQuiz:
        topic = validate_request(topic, difficulty, question_count)

        try:
            if self.ai_client is None:
                raise ProviderError("AI generation is disabled")
            drafts = self.ai_client.generate(topic, difficulty, question_count)
            source = AI_SOURCE
        except GenerationError as e:
            logger.warning("AI generation failed for %r, falling back to static questions: %s", topic, e)
            drafts = self.static_source(topic, difficulty, question_count)
            source = STATIC_SOURCE

        # Storage failures from here on are fatal; there is no second fallback.
        quiz_id = self._create_quiz(topic, difficulty, source)
        self._insert_questions(quiz_id, drafts)
        logger.info("Quiz %s generated from %s source with %d questions", quiz_id, source, len(drafts))
        return GeneratedQuiz(quiz_id=quiz_id, generation_type=source)

    def _create_quiz(self, topic: str, difficulty: str, source: str) -> int:
        level = difficulty_label(difficulty)
        if source == AI_SOURCE:
            title = f"AI Assessment: {topic} ({level})"
            description = f"AI-generated {difficulty} level assessment on {topic}"
        else:
            title = f"Assessment: {topic} ({level})"
            description = f"{difficulty} level assessment on {topic}"
        return self.store.insert_quiz(title, description, f"{source}-generated", difficulty)

    def _insert_questions(self, quiz_id: int, drafts: List[QuestionDraft]) -> None:
        """
        Inserts every draft concurrently and waits for all of them.
        Committed rows are not rolled back when a sibling insert fails.
        """
        workers = min(self.max_workers, len(drafts)) or 1
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="question-insert") as pool:
            futures = [
                pool.submit(
                    self.store.insert_question,
                    quiz_id,
                    d.question,
                    d.options.model_dump(),
                    d.correct_answer,
                    d.explanation,
                )
                for d in drafts
            ]
        # Leaving the with-block joins the pool, so every future is done here.
        failures = [f.exception() for f in futures if f.exception() is not None]
        if not failures:
            return

        logger.error(
            "Quiz %s left partially written: %d of %d question inserts failed",
            quiz_id, len(failures), len(drafts),
        )
        first = failures[0]
        if isinstance(first, PersistenceError):
            raise first
        raise PersistenceError(f"Failed to store questions for quiz {quiz_id}") from first
