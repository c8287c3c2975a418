import json

import pytest

from llm import (
    EmptyResponseError,
    GeminiQuizClient,
    GenerationError,
    InvalidResponseError,
    ProviderError,
    ResponseValidationError,
    TruncatedResponseError,
    build_prompt,
    parse_quiz_response,
)
from tests.conftest import StubModel, ai_payload, ai_question
from utils import looks_truncated, strip_code_fence


# --- cleanup helpers ---

def test_strip_code_fence_with_language_tag():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_strip_code_fence_without_language_tag():
    assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"


def test_strip_code_fence_leaves_plain_json_alone():
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_looks_truncated():
    assert looks_truncated('{"questions": [')
    assert looks_truncated("")
    assert not looks_truncated('{"questions": []}\n')
    assert not looks_truncated("[1]")


# --- parse / validate pipeline ---

def test_parse_accepts_fenced_response():
    questions = parse_quiz_response("```json\n" + ai_payload(3) + "\n```")

    assert len(questions) == 3
    assert questions[0].correct_answer == "B"
    assert questions[0].options.D == "Delta"
    assert questions[0].explanation.startswith("Bravo")


def test_parse_returns_drafts_unchanged():
    raw = ai_question(1, question="  Which planet is known as the red planet?  ")
    questions = parse_quiz_response(json.dumps({"questions": [raw]}))

    assert questions[0].question == raw["question"]


def test_parse_rejects_empty_text():
    with pytest.raises(EmptyResponseError):
        parse_quiz_response("   ")


def test_parse_rejects_truncated_before_parsing():
    cut = ai_payload(2)[:-20]

    with pytest.raises(TruncatedResponseError):
        parse_quiz_response(cut)


def test_parse_distinguishes_malformed_from_truncated():
    with pytest.raises(InvalidResponseError):
        parse_quiz_response('{"questions": [ {"question": "x",, } ]}')


def test_parse_rejects_short_question_and_names_field():
    payload = json.dumps({"questions": [ai_question(1, question="Too short")]})

    with pytest.raises(ResponseValidationError) as exc:
        parse_quiz_response(payload)

    assert "questions.0.question" in str(exc.value)


def test_parse_rejects_short_explanation():
    payload = json.dumps({"questions": [ai_question(1, explanation="Nope")]})

    with pytest.raises(ResponseValidationError) as exc:
        parse_quiz_response(payload)

    assert "explanation" in str(exc.value)


def test_parse_rejects_unknown_label():
    payload = json.dumps({"questions": [ai_question(1, correct_answer="E")]})

    with pytest.raises(ResponseValidationError) as exc:
        parse_quiz_response(payload)

    assert "correct_answer" in str(exc.value)


def test_parse_rejects_empty_option():
    bad = ai_question(1, options={"A": "Alpha", "B": "", "C": "Charlie", "D": "Delta"})

    with pytest.raises(ResponseValidationError) as exc:
        parse_quiz_response(json.dumps({"questions": [bad]}))

    assert "options.B" in str(exc.value)


def test_parse_rejects_missing_questions_array():
    with pytest.raises(ResponseValidationError):
        parse_quiz_response('{"quiz": []}')


def test_parse_rejects_empty_questions_array():
    with pytest.raises(ResponseValidationError):
        parse_quiz_response('{"questions": []}')


def test_all_failures_are_generation_errors():
    for exc in (EmptyResponseError, TruncatedResponseError, InvalidResponseError,
                ResponseValidationError, ProviderError):
        assert issubclass(exc, GenerationError)


# --- prompt ---

def test_prompt_embeds_topic_difficulty_and_count():
    prompt = build_prompt("Python Generators", "hard", 12)

    assert 'about "Python Generators"' in prompt
    assert "Difficulty: hard" in prompt
    assert "Number of questions: 12" in prompt
    assert "advanced concepts" in prompt
    assert "NO markdown" in prompt


def test_prompt_is_deterministic():
    assert build_prompt("SQL", "easy", 5) == build_prompt("SQL", "easy", 5)


# --- client ---

def test_client_returns_validated_questions():
    model = StubModel(text=ai_payload(5))
    client = GeminiQuizClient(api_key="", model=model, timeout=7)

    questions = client.generate("Databases", "medium", 5)

    assert len(questions) == 5
    prompt, kwargs = model.calls[0]
    assert "Databases" in prompt
    assert kwargs["request_options"] == {"timeout": 7}
    assert kwargs["generation_config"] is client.generation_config


def test_client_wraps_transport_errors():
    client = GeminiQuizClient(api_key="", model=StubModel(error=TimeoutError("deadline exceeded")))

    with pytest.raises(ProviderError) as exc:
        client.generate("Databases", "easy", 5)

    assert "deadline exceeded" in str(exc.value)


def test_client_without_key_or_model_fails_as_provider_error():
    client = GeminiQuizClient(api_key="")

    with pytest.raises(ProviderError):
        client.generate("Databases", "easy", 5)


def test_client_treats_blocked_response_as_empty():
    class Blocked:
        @property
        def text(self):
            raise ValueError("response was blocked")

    class BlockingModel(StubModel):
        def generate_content(self, prompt, **kwargs):
            return Blocked()

    client = GeminiQuizClient(api_key="", model=BlockingModel())

    with pytest.raises(EmptyResponseError):
        client.generate("Databases", "easy", 5)


def test_ping_reports_success_and_failure():
    ok = GeminiQuizClient(api_key="", model=StubModel(text="OK"), model_name="stub-model").ping()
    broken = GeminiQuizClient(api_key="", model=StubModel(error=RuntimeError("boom"))).ping()

    assert ok == {"ok": True, "model": "stub-model", "content": "OK"}
    assert broken["ok"] is False
    assert "boom" in broken["error"]


def test_parse_rejects_pathologically_nested_json():
    nested = '{"questions": ' + "[" * 5000 + "]" * 5000 + "}"

    with pytest.raises(InvalidResponseError):
        parse_quiz_response(nested)
