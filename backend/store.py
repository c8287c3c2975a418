# store.py
"""
Data access for quizzes, questions, users and attempts.

Each call opens its own session, so a store instance can be shared by
request handlers and by the question insert pool. SQLAlchemy failures come
back as PersistenceError; nothing here retries.
"""
import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import NotFoundError, PersistenceError, ValidationError
from models import LABELS, Attempt, Question, Quiz, User

logger = logging.getLogger(__name__)


def _missing(**fields) -> List[str]:
    return [name for name, value in fields.items() if value is None or not str(value).strip()]


class _SqlStore:
    def __init__(self, session_factory, allocator=None):
        self._session_factory = session_factory
        self._allocator = allocator

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("%s failed: %s", type(self).__name__, e)
            raise PersistenceError("Database operation failed") from e
        finally:
            db.close()

    def _next_id(self, name: str) -> Optional[int]:
        # None lets the database assign the primary key.
        if self._allocator is None:
            return None
        return self._allocator.next_value(name)


class QuestionStore(_SqlStore):

    def questions_by_quiz(self, quiz_id: int) -> List[Question]:
        with self._session() as db:
            return (
                db.query(Question)
                .filter(Question.quiz_id == quiz_id)
                .order_by(Question.id)
                .all()
            )

    def quiz_exists(self, quiz_id: int) -> bool:
        with self._session() as db:
            return db.query(Quiz.id).filter(Quiz.id == quiz_id).first() is not None

    def insert_quiz(self, title: str, description: Optional[str], category: str, level: str) -> int:
        quiz_id = self._next_id("quizzes")
        with self._session() as db:
            row = Quiz(id=quiz_id, title=title, description=description, category=category, level=level)
            db.add(row)
            db.commit()
            return row.id

    def insert_question(
        self,
        quiz_id: int,
        text: str,
        options: dict,
        correct_option: str,
        explanation: Optional[str] = None,
    ) -> int:
        question_id = self._next_id("questions")
        with self._session() as db:
            row = Question(
                id=question_id,
                quiz_id=quiz_id,
                question_text=text,
                option_a=options["A"],
                option_b=options["B"],
                option_c=options["C"],
                option_d=options["D"],
                correct_option=correct_option,
                explanation=explanation,
            )
            db.add(row)
            db.commit()
            return row.id

    def list_questions(self, quiz_id: int) -> List[dict]:
        """Questions as shown to a test-taker: the correct label is never included."""
        return [
            {"id": q.id, "question_text": q.question_text, "options": q.options}
            for q in self.questions_by_quiz(quiz_id)
        ]

    def list_quizzes(self, category: Optional[str] = None, level: Optional[str] = None) -> List[Quiz]:
        with self._session() as db:
            query = db.query(Quiz)
            if category:
                query = query.filter(Quiz.category == category)
            if level:
                query = query.filter(Quiz.level == level)
            return query.order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()

    # --- manual authoring ---

    def create_quiz(self, title, description, category, level) -> int:
        missing = _missing(title=title, category=category, level=level)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        return self.insert_quiz(title.strip(), (description or "").strip(), category.strip(), level.strip())

    def add_question(self, quiz_id, text, options: dict, correct_option, explanation=None) -> int:
        missing = _missing(
            question_text=text,
            option_a=options.get("A"),
            option_b=options.get("B"),
            option_c=options.get("C"),
            option_d=options.get("D"),
            correct_option=correct_option,
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if correct_option not in LABELS:
            raise ValidationError(f"correct_option must be one of {', '.join(LABELS)}")
        if not self.quiz_exists(quiz_id):
            raise NotFoundError(f"Quiz {quiz_id} not found")
        return self.insert_question(quiz_id, text, options, correct_option, explanation or None)


class AttemptStore(_SqlStore):

    def upsert_user(self, username: str, email: str) -> int:
        """Find the user by email (renaming if needed) or create it; returns the stable id."""
        email = email.strip()
        with self._session() as db:
            user = db.query(User).filter(User.email == email).first()
            if user is None:
                user = User(id=self._next_id("users"), username=username, email=email)
                db.add(user)
                try:
                    db.commit()
                    return user.id
                except IntegrityError:
                    # Lost a race with a concurrent insert for the same email.
                    db.rollback()
                    user = db.query(User).filter(User.email == email).one()
            if user.username != username:
                user.username = username
                db.commit()
            return user.id

    def record_attempt(self, user_id: int, quiz_id: int, result) -> int:
        attempt_id = self._next_id("attempts")
        with self._session() as db:
            row = Attempt(
                id=attempt_id,
                user_id=user_id,
                quiz_id=quiz_id,
                total_questions=result.total_questions,
                correct_answers=result.correct_answers,
                score_percentage=result.score_percentage,
            )
            db.add(row)
            db.commit()
            return row.id

    def attempts_for(self, email: str, quiz_id: Optional[int] = None) -> List[Attempt]:
        with self._session() as db:
            query = db.query(Attempt).join(User, User.id == Attempt.user_id).filter(User.email == email.strip())
            if quiz_id is not None:
                query = query.filter(Attempt.quiz_id == quiz_id)
            return query.order_by(Attempt.created_at.desc(), Attempt.id.desc()).all()

    def leaderboard(self, quiz_id: int, limit: int = 10) -> List[dict]:
        """Best score first, newest first among equal scores."""
        with self._session() as db:
            rows = (
                db.query(User.username, User.email, Attempt)
                .join(User, User.id == Attempt.user_id)
                .filter(Attempt.quiz_id == quiz_id)
                .order_by(Attempt.score_percentage.desc(), Attempt.created_at.desc(), Attempt.id.desc())
                .limit(max(1, limit))
                .all()
            )
        return [
            {
                "rank": idx + 1,
                "username": username,
                "email": email,
                "score_percentage": a.score_percentage,
                "correct_answers": a.correct_answers,
                "total_questions": a.total_questions,
                "created_at": a.created_at,
            }
            for idx, (username, email, a) in enumerate(rows)
        ]
