# static_bank.py: offline fallback quiz generation from the curated question bank
import os
import json
import random
from itertools import cycle, islice
from types import MappingProxyType
from typing import List, Optional

from errors import ValidationError
from schemas import QuestionDraft
from utils import topic_key

BANK_PATH = os.path.join(os.path.dirname(__file__), "data", "question_bank.json")
GENERAL_TOPIC = "general"
DIFFICULTIES = ("easy", "medium", "hard")


def _load_bank(path: str):
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return MappingProxyType({
        topic: MappingProxyType({
            difficulty: tuple(QuestionDraft.model_validate(q) for q in items)
            for difficulty, items in levels.items()
        })
        for topic, levels in raw.items()
    })


# topic key -> difficulty -> drafts; read once at import and never mutated.
QUESTION_BANK = _load_bank(BANK_PATH)


def bank_for(topic: str, difficulty: str):
    """Topic-specific drafts for the difficulty, else the general bank's."""
    levels = QUESTION_BANK.get(topic_key(topic), {})
    return levels.get(difficulty) or QUESTION_BANK[GENERAL_TOPIC][difficulty]


def generate_static(topic: str, difficulty: str, count: int,
                    rng: Optional[random.Random] = None) -> List[QuestionDraft]:
    """
    Returns exactly `count` drafts: the bank shuffled, then cycled when the
    bank is smaller than the request (repeats are expected in that case).
    """
    if difficulty not in DIFFICULTIES:
        raise ValidationError(f"Invalid difficulty level: {difficulty}")
    if count < 1:
        raise ValidationError("Question count must be positive")

    bank = bank_for(topic, difficulty)
    shuffled = (rng or random).sample(bank, len(bank))
    return [draft.model_copy() for draft in islice(cycle(shuffled), count)]
