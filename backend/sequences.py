# sequences.py
"""
Per-name integer sequences for stores that cannot auto-increment.

Every allocator hands out strictly increasing values per counter name and
never gives the same value to two concurrent callers.
"""
import logging
import threading
from typing import Dict, Optional

import redis
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from config import REDIS_URL
from errors import PersistenceError, ValidationError
from models import Counter

logger = logging.getLogger(__name__)


class SequenceAllocator:
    def next_value(self, name: str) -> int:
        raise NotImplementedError


class LocalSequenceAllocator(SequenceAllocator):
    """In-process counters; only safe for a single worker process."""

    def __init__(self, start: Optional[Dict[str, int]] = None):
        self._lock = threading.Lock()
        self._values = dict(start or {})

    def next_value(self, name: str) -> int:
        with self._lock:
            value = self._values.get(name, 0) + 1
            self._values[name] = value
            return value


class CounterTableAllocator(SequenceAllocator):
    """Counters kept in the `counters` table, bumped with UPDATE ... RETURNING."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _bump(self, db, name: str) -> Optional[int]:
        stmt = (
            update(Counter)
            .where(Counter.name == name)
            .values(seq=Counter.seq + 1)
            .returning(Counter.seq)
        )
        value = db.execute(stmt).scalar_one_or_none()
        db.commit()
        return value

    def next_value(self, name: str) -> int:
        db = self._session_factory()
        try:
            value = self._bump(db, name)
            if value is not None:
                return value
            try:
                db.add(Counter(name=name, seq=1))
                db.commit()
                return 1
            except IntegrityError:
                # Another caller created the row first.
                db.rollback()
                return self._bump(db, name)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Sequence %s could not be advanced: %s", name, e)
            raise PersistenceError(f"Sequence allocation failed for {name}") from e
        finally:
            db.close()


class RedisSequenceAllocator(SequenceAllocator):
    """Counters shared across processes through Redis INCR."""

    def __init__(self, client=None, url: str = REDIS_URL, prefix: str = "seq:"):
        self._redis = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    def next_value(self, name: str) -> int:
        try:
            return int(self._redis.incr(f"{self._prefix}{name}"))
        except redis.RedisError as e:
            logger.error("Redis sequence %s failed: %s", name, e)
            raise PersistenceError(f"Sequence allocation failed for {name}") from e


def build_allocator(strategy: str, session_factory=None, redis_url: str = REDIS_URL,
                    redis_client=None) -> Optional[SequenceAllocator]:
    """Returns None for `autoincrement`, letting the database assign ids."""
    if strategy == "autoincrement":
        return None
    if strategy == "counter":
        return CounterTableAllocator(session_factory)
    if strategy == "redis":
        return RedisSequenceAllocator(client=redis_client, url=redis_url)
    if strategy == "local":
        return LocalSequenceAllocator()
    raise ValidationError(f"Unknown ID_STRATEGY: {strategy}")
