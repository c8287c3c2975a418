# utils.py
import re

FENCE_OPEN_RE = re.compile(r"^```[\w-]*[ \t]*\n?")
FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```$")


def strip_code_fence(text: str) -> str:
    """Drops a ```lang ... ``` wrapper that models like to add around JSON."""
    content = (text or "").strip()
    if content.startswith("```"):
        content = FENCE_OPEN_RE.sub("", content, count=1)
        content = FENCE_CLOSE_RE.sub("", content, count=1)
    return content.strip()


def looks_truncated(text: str) -> bool:
    # Output cut off mid-stream never ends on a closing brace or bracket.
    return not (text or "").rstrip().endswith(("}", "]"))


def topic_key(topic: str) -> str:
    """'JavaScript Fundamentals' -> 'javascriptfundamentals'"""
    return "".join((topic or "").split()).casefold()


def difficulty_label(difficulty: str) -> str:
    return difficulty[:1].upper() + difficulty[1:]
