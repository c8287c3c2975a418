import json
import os
import tempfile
from types import SimpleNamespace

# main.py wires itself from the environment at import time.
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(), "quiz.db")
os.environ["AI_ENABLED"] = "false"
os.environ["ID_STRATEGY"] = "autoincrement"

import pytest
from fastapi.testclient import TestClient

from db import Base, make_engine, make_session_factory
from generator import QuizGenerator
from store import AttemptStore, QuestionStore


class StubModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def ai_question(n=1, **overrides):
    q = {
        "question": f"Sample question number {n} about the topic?",
        "options": {"A": "Alpha", "B": "Bravo", "C": "Charlie", "D": "Delta"},
        "correct_answer": "B",
        "explanation": "Bravo is correct because it is the second letter.",
    }
    q.update(overrides)
    return q


def ai_payload(count):
    return json.dumps({"questions": [ai_question(i + 1) for i in range(count)]})


def seed_quiz(store, correct_labels, explanations=None, title="Seeded Quiz"):
    """Creates a quiz whose questions have the given correct labels; returns (quiz_id, question_ids)."""
    quiz_id = store.insert_quiz(title, "seeded for tests", "tests", "easy")
    ids = []
    for i, label in enumerate(correct_labels):
        explanation = explanations[i] if explanations else None
        ids.append(store.insert_question(
            quiz_id,
            f"Question {i + 1}?",
            {"A": f"q{i + 1} option A", "B": f"q{i + 1} option B",
             "C": f"q{i + 1} option C", "D": f"q{i + 1} option D"},
            label,
            explanation,
        ))
    return quiz_id, ids


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'quiz.db'}")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def question_store(session_factory):
    return QuestionStore(session_factory)


@pytest.fixture
def attempt_store(session_factory):
    return AttemptStore(session_factory)


@pytest.fixture
def client(question_store, attempt_store):
    import main

    generator = QuizGenerator(question_store, ai_client=None)
    main.app.dependency_overrides[main.get_question_store] = lambda: question_store
    main.app.dependency_overrides[main.get_attempt_store] = lambda: attempt_store
    main.app.dependency_overrides[main.get_quiz_generator] = lambda: generator
    main.app.dependency_overrides[main.get_ai_client] = lambda: None
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
