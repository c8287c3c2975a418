# llm.py: Gemini quiz generation via google-generativeai
import os
import json
import logging
from string import Template
from typing import List

import google.generativeai as genai
from pydantic import ValidationError as PydanticValidationError

from config import (
    AI_MAX_OUTPUT_TOKENS,
    AI_TEMPERATURE,
    AI_TIMEOUT_SECONDS,
    AI_TOP_K,
    AI_TOP_P,
    GEMINI_API_KEY,
    GEMINI_MODEL,
)
from schemas import AIQuestion, AIQuizResponse
from utils import looks_truncated, strip_code_fence

logger = logging.getLogger(__name__)

PROMPT_PATH = os.path.join(os.path.dirname(__file__), "prompts", "quiz_prompt.md")
with open(PROMPT_PATH, "r", encoding="utf-8") as f:
    PROMPT_TEMPLATE = Template(f.read())

DIFFICULTY_GUIDANCE = {
    "easy": "basic concepts and fundamentals that a beginner should know",
    "medium": "intermediate concepts requiring some experience and understanding",
    "hard": "advanced concepts requiring deep knowledge and complex problem-solving",
}


class GenerationError(Exception):
    pass


class ProviderError(GenerationError):
    """Transport failure, timeout, or no provider configured."""


class EmptyResponseError(GenerationError):
    pass


class TruncatedResponseError(GenerationError):
    pass


class InvalidResponseError(GenerationError):
    """Complete-looking response that is still not valid JSON."""


class ResponseValidationError(GenerationError):
    """Valid JSON that does not match the question schema."""


def build_prompt(topic: str, difficulty: str, question_count: int) -> str:
    return PROMPT_TEMPLATE.substitute(
        topic=topic,
        difficulty=difficulty,
        question_count=question_count,
        guidance=DIFFICULTY_GUIDANCE[difficulty],
    )


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "response"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_quiz_response(text: str) -> List[AIQuestion]:
    """
    Cleans, checks and validates raw model output.
    Stages fail independently: empty -> truncated -> JSON -> schema.
    """
    if not text or not text.strip():
        raise EmptyResponseError("No text response from AI")

    content = strip_code_fence(text)

    if looks_truncated(content):
        logger.error("AI response appears truncated. Last 200 chars: %s", content[-200:])
        raise TruncatedResponseError("AI response was truncated")

    try:
        data = json.loads(content)
    except (ValueError, RecursionError) as e:
        logger.error("Failed to parse AI response as JSON (%s). Last 300 chars: %s", e, content[-300:])
        raise InvalidResponseError(f"Invalid JSON response from AI: {e}") from e

    try:
        parsed = AIQuizResponse.model_validate(data)
    except PydanticValidationError as e:
        raise ResponseValidationError(f"AI response validation failed: {_describe(e)}") from e

    return parsed.questions


def _response_text(resp) -> str:
    # .text raises ValueError when the candidate was blocked or is empty.
    try:
        return resp.text or ""
    except ValueError:
        return ""


class GeminiQuizClient:
    """Generates validated question drafts from Gemini. Any failure is a GenerationError."""

    def __init__(self, api_key: str = GEMINI_API_KEY, model_name: str = GEMINI_MODEL,
                 timeout: float = AI_TIMEOUT_SECONDS, model=None):
        self.model_name = model_name
        self.timeout = timeout
        self._model = model
        if self._model is None and api_key:
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(model_name)
        self.generation_config = genai.GenerationConfig(
            temperature=AI_TEMPERATURE,
            top_p=AI_TOP_P,
            top_k=AI_TOP_K,
            max_output_tokens=AI_MAX_OUTPUT_TOKENS,
        )

    def _call(self, prompt: str, **kwargs):
        if self._model is None:
            raise ProviderError("GEMINI_API_KEY is not configured")
        try:
            return self._model.generate_content(
                prompt, request_options={"timeout": self.timeout}, **kwargs
            )
        except Exception as e:
            raise ProviderError(f"Model {self.model_name} request failed: {e}") from e

    def generate(self, topic: str, difficulty: str, question_count: int) -> List[AIQuestion]:
        prompt = build_prompt(topic, difficulty, question_count)
        logger.info("Requesting %d %s questions on %r from %s", question_count, difficulty, topic, self.model_name)
        resp = self._call(prompt, generation_config=self.generation_config)
        questions = parse_quiz_response(_response_text(resp))
        if len(questions) != question_count:
            logger.warning("Asked for %d questions, model returned %d", question_count, len(questions))
        return questions

    def ping(self) -> dict:
        """
        Returns {"ok": True, "model": <model>, "content": "..."} on success,
                or {"ok": False, "error": "..."} on failure.
        """
        try:
            text = _response_text(self._call("Reply with OK")).strip()
        except ProviderError as e:
            return {"ok": False, "error": str(e)}
        if not text:
            return {"ok": False, "error": f"Model {self.model_name} returned empty response."}
        return {"ok": True, "model": self.model_name, "content": text[:200]}
