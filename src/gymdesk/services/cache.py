"""In-process read-through cache for remote query results."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Generic, Hashable, Optional, TypeVar

from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 30.0


class Query(str, Enum):
    """Logical read queries; each value is the cache key prefix."""

    ALL_USERS = "users"
    STUDENTS = "students"
    PAYMENTS = "payments"
    CLASSES = "classes"
    ASSESSMENTS = "assessments"
    PLANS = "plans"
    ATTENDANCE_STATS = "attendance_stats"
    FINANCIAL_REPORT = "financial_report"
    ATTENDANCE_REPORT = "attendance_report"
    ROUTES = "routes"
    WORKOUTS = "personalized_workouts"
    POSTS = "posts"
    CHALLENGE_PROGRESS = "challenge_progress"
    PAYMENT_TOTALS = "payment_totals"


# Collections whose changes make a query's cached result stale.
QUERY_DEPENDENCIES: dict[Query, frozenset[str]] = {
    Query.ALL_USERS: frozenset({"users"}),
    Query.STUDENTS: frozenset({"users"}),
    Query.PAYMENTS: frozenset({"payments"}),
    Query.CLASSES: frozenset({"classes"}),
    Query.ASSESSMENTS: frozenset({"assessments"}),
    Query.PLANS: frozenset({"plans"}),
    Query.ATTENDANCE_STATS: frozenset({"classes", "attendance"}),
    Query.FINANCIAL_REPORT: frozenset({"payments"}),
    Query.ATTENDANCE_REPORT: frozenset({"attendance"}),
    Query.ROUTES: frozenset({"routes"}),
    Query.WORKOUTS: frozenset({"personalized_workouts"}),
    Query.POSTS: frozenset({"posts", "users"}),
    Query.CHALLENGE_PROGRESS: frozenset({"challenges"}),
    Query.PAYMENT_TOTALS: frozenset({"payments"}),
}

_SCOPED_QUERIES = frozenset(
    {Query.PAYMENTS, Query.ASSESSMENTS, Query.WORKOUTS, Query.PAYMENT_TOTALS}
)


@dataclass(frozen=True)
class CacheKey:
    """Typed cache key: a query plus its optional parameter.

    ``param`` is ``None`` for unparameterized queries, so a scoped key such as
    ``payments_for(7)`` can never equal ``all_payments()``.
    """

    query: Query
    param: Optional[Hashable] = None

    def __str__(self) -> str:
        if self.param is not None:
            return f"{self.query.value}_{self.param}"
        if self.query in _SCOPED_QUERIES:
            return f"{self.query.value}_all"
        return self.query.value

    @property
    def collections(self) -> frozenset[str]:
        return QUERY_DEPENDENCIES[self.query]

    @classmethod
    def all_users(cls) -> "CacheKey":
        return cls(Query.ALL_USERS)

    @classmethod
    def students(cls) -> "CacheKey":
        return cls(Query.STUDENTS)

    @classmethod
    def all_payments(cls) -> "CacheKey":
        return cls(Query.PAYMENTS)

    @classmethod
    def payments_for(cls, student_id: Hashable) -> "CacheKey":
        if student_id is None:
            raise ValueError("payments_for requires a student id; use all_payments()")
        return cls(Query.PAYMENTS, student_id)

    @classmethod
    def classes(cls) -> "CacheKey":
        return cls(Query.CLASSES)

    @classmethod
    def all_assessments(cls) -> "CacheKey":
        return cls(Query.ASSESSMENTS)

    @classmethod
    def assessments_for(cls, student_id: Hashable) -> "CacheKey":
        if student_id is None:
            raise ValueError("assessments_for requires a student id; use all_assessments()")
        return cls(Query.ASSESSMENTS, student_id)

    @classmethod
    def plans(cls) -> "CacheKey":
        return cls(Query.PLANS)

    @classmethod
    def attendance_stats(cls, student_id: Hashable) -> "CacheKey":
        return cls(Query.ATTENDANCE_STATS, student_id)

    @classmethod
    def financial_report(cls, year: int) -> "CacheKey":
        return cls(Query.FINANCIAL_REPORT, year)

    @classmethod
    def attendance_report(cls) -> "CacheKey":
        return cls(Query.ATTENDANCE_REPORT)

    @classmethod
    def routes(cls) -> "CacheKey":
        return cls(Query.ROUTES)

    @classmethod
    def workouts(cls, student_id: Optional[Hashable] = None) -> "CacheKey":
        """Workouts shared with ``student_id``, or every workout when omitted."""
        return cls(Query.WORKOUTS, student_id)

    @classmethod
    def posts(cls) -> "CacheKey":
        return cls(Query.POSTS)

    @classmethod
    def challenge_progress(cls, day: date) -> "CacheKey":
        return cls(Query.CHALLENGE_PROGRESS, day)

    @classmethod
    def payment_totals(cls, student_id: Optional[Hashable] = None) -> "CacheKey":
        return cls(Query.PAYMENT_TOTALS, student_id)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    timestamp: float


class ResultCache:
    """Key-to-result map with a fixed time-to-live.

    Stale entries are never returned but stay in the map until the next
    successful fetch overwrites them. Writes to one key are last-writer-wins:
    a slow fetch finishing after a newer one can replace fresher data, which
    the short TTL bounds.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry[Any]] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: CacheKey) -> Optional[CacheEntry[Any]]:
        """Return the entry for ``key`` whether fresh or not."""
        with self._lock:
            return self._entries.get(key)

    def put(self, key: CacheKey, data: Any) -> CacheEntry[Any]:
        entry = CacheEntry(data=data, timestamp=self._clock())
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_all(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
        if dropped:
            logger.debug("Cache cleared", extra={"entries": dropped})

    def invalidate_collection(self, collection: str) -> int:
        """Drop every entry whose query depends on ``collection``."""
        with self._lock:
            stale = [key for key in self._entries if collection in key.collections]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def is_fresh(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.timestamp < self.ttl

    def fetch(self, key: CacheKey, loader: Callable[[], T], *, force: bool = False) -> T:
        """Read-through: serve a fresh entry or call ``loader`` and cache its result.

        ``force`` skips the lookup. Exceptions from ``loader`` propagate and
        leave the cache untouched.
        """
        if not force:
            entry = self.get(key)
            if entry is not None and self.is_fresh(entry):
                return entry.data
        logger.debug("Cache %s for %s", "bypass" if force else "miss", key)
        data = loader()
        self.put(key, data)
        return data


__all__ = ["CacheEntry", "CacheKey", "DEFAULT_TTL_SECONDS", "Query", "QUERY_DEPENDENCIES", "ResultCache"]
