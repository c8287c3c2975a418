# errors.py
class QuizError(Exception):
    """Base class for errors surfaced to API callers."""


class ValidationError(QuizError):
    """Caller input was malformed or out of range."""


class NotFoundError(QuizError):
    """A referenced quiz, question or user does not exist."""


class PersistenceError(QuizError):
    """The store or the sequence allocator failed."""
