"""Attempt records and daily aggregation for celeration charting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

ALL_QUIZZES = "all"


def as_aware(moment: datetime) -> datetime:
    """Naive timestamps are read as UTC so mixed inputs stay comparable."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class AttemptRecord:
    """One completed or timed-out practice session."""

    quiz_id: str
    completed_at: datetime
    total_questions: int
    correct_answers: int
    total_time_minutes: float
    attempt_id: Optional[str] = None
    user_id: Optional[str] = None
    quiz_title: Optional[str] = None

    @property
    def minutes(self) -> float:
        # Zero-length sessions count as one minute.
        if self.total_time_minutes is None or self.total_time_minutes <= 0:
            return 1.0
        return float(self.total_time_minutes)

    @property
    def errors(self) -> int:
        return self.total_questions - self.correct_answers

    @property
    def accuracy_percentage(self) -> float:
        if self.total_questions <= 0:
            return 0.0
        return 100.0 * self.correct_answers / self.total_questions

    @property
    def fluency_rate(self) -> float:
        return self.correct_answers / self.minutes

    @property
    def error_rate(self) -> float:
        return self.errors / self.minutes

    @property
    def day_key(self) -> date:
        return self.completed_at.date()


@dataclass(frozen=True)
class DailySample:
    day_key: date
    timestamp: datetime
    fluency_rate: float
    error_rate: float
    accuracy_percentage: float
    total_time_minutes: float

    @classmethod
    def from_attempt(cls, attempt: AttemptRecord) -> "DailySample":
        return cls(
            day_key=attempt.day_key,
            timestamp=attempt.completed_at,
            fluency_rate=attempt.fluency_rate,
            error_rate=attempt.error_rate,
            accuracy_percentage=attempt.accuracy_percentage,
            total_time_minutes=attempt.minutes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day_key.isoformat(),
            "timestamp": self.timestamp.isoformat(),
            "fluency_rate": self.fluency_rate,
            "error_rate": self.error_rate,
            "accuracy_percentage": self.accuracy_percentage,
            "total_time_minutes": self.total_time_minutes,
        }


def sort_chronologically(attempts: Iterable[AttemptRecord]) -> List[AttemptRecord]:
    """Return attempts oldest first; ties keep their input order."""

    return sorted(attempts, key=lambda attempt: as_aware(attempt.completed_at))


def aggregate_daily(attempts: Iterable[AttemptRecord]) -> List[DailySample]:
    """Collapse attempts into one sample per calendar day.

    The first attempt of each day wins, even when a later attempt that day
    scored better. Samples come back ordered by timestamp.
    """

    by_day: Dict[date, DailySample] = {}
    skipped = 0
    for attempt in sort_chronologically(attempts):
        key = attempt.day_key
        if key in by_day:
            skipped += 1
            continue
        if attempt.total_time_minutes is None or attempt.total_time_minutes <= 0:
            logger.warning(
                "Attempt %s on %s has non-positive duration; treating as 1 minute",
                attempt.attempt_id or "<unsaved>",
                key.isoformat(),
            )
        by_day[key] = DailySample.from_attempt(attempt)

    if skipped:
        logger.debug("Ignored %d later same-day attempts for trend series", skipped)
    return sorted(by_day.values(), key=lambda sample: as_aware(sample.timestamp))


def filter_attempts(attempts: Iterable[AttemptRecord], quiz_id: Optional[str] = None) -> List[AttemptRecord]:
    """Restrict attempts to one quiz; ``None``, blank or ``"all"`` keeps everything."""

    if not quiz_id or quiz_id == ALL_QUIZZES:
        return list(attempts)
    return [attempt for attempt in attempts if attempt.quiz_id == quiz_id]


def list_quizzes(attempts: Iterable[AttemptRecord]) -> List[Tuple[str, str]]:
    """Distinct ``(quiz_id, title)`` pairs, newest attempt first."""

    newest_first = sorted(attempts, key=lambda attempt: as_aware(attempt.completed_at), reverse=True)
    seen: Dict[str, str] = {}
    for attempt in newest_first:
        if attempt.quiz_id not in seen:
            seen[attempt.quiz_id] = attempt.quiz_title or attempt.quiz_id
    return list(seen.items())
