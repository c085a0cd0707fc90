"""Log-linear celeration estimates for Standard Celeration Chart series."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from engines.attempts import DailySample, as_aware

logger = logging.getLogger(__name__)

METRICS = ("correct", "error")
RATE_FLOOR = 0.1
SECONDS_PER_WEEK = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class CelerationResult:
    slope: float
    intercept: float
    sample_count: int
    start: datetime

    @property
    def factor_per_week(self) -> float:
        return 10 ** self.slope

    def value_at(self, weeks: float) -> float:
        """Fitted count per minute ``weeks`` after the series start."""

        return 10 ** (self.intercept + self.slope * weeks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "factor_per_week": self.factor_per_week,
            "sample_count": self.sample_count,
            "start": self.start.isoformat(),
        }


@dataclass(frozen=True)
class SplitCeleration:
    pivot_date: Optional[date]
    before_correct: Optional[CelerationResult]
    before_error: Optional[CelerationResult]
    after_correct: Optional[CelerationResult]
    after_error: Optional[CelerationResult]
    before_samples: Tuple[DailySample, ...] = ()
    after_samples: Tuple[DailySample, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        def _maybe(result: Optional[CelerationResult]) -> Optional[Dict[str, Any]]:
            return result.to_dict() if result is not None else None

        return {
            "pivot_date": self.pivot_date.isoformat() if self.pivot_date else None,
            "before": {
                "correct": _maybe(self.before_correct),
                "error": _maybe(self.before_error),
                "sample_count": len(self.before_samples),
            },
            "after": {
                "correct": _maybe(self.after_correct),
                "error": _maybe(self.after_error),
                "sample_count": len(self.after_samples),
            },
        }


def weeks_between(start: datetime, moment: datetime) -> float:
    return (as_aware(moment) - as_aware(start)).total_seconds() / SECONDS_PER_WEEK


def log_rate(value: float) -> float:
    return math.log10(max(RATE_FLOOR, value))


def least_squares(xs: Sequence[float], ys: Sequence[float]) -> Optional[Tuple[float, float]]:
    """Ordinary least squares; ``None`` when the x values are all identical."""

    n = len(xs)
    if n < 2 or n != len(ys):
        return None
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_x2 = sum(x * x for x in xs)
    denom = n * sum_x2 - sum_x * sum_x
    if denom == 0:
        return None
    slope = (n * sum_xy - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


class CelerationEstimator:
    """Fit celeration lines to daily samples.

    x is measured in weeks since the first sample of whatever series is being
    fitted, y is ``log10`` of the rate floored at 0.1 per minute.
    """

    min_samples = 2

    def fit(self, samples: Sequence[DailySample], metric: str = "correct") -> Optional[CelerationResult]:
        if metric not in METRICS:
            raise ValueError(f"Unknown celeration metric: {metric!r}")
        if len(samples) < self.min_samples:
            logger.debug("Celeration (%s) needs %d samples, got %d", metric, self.min_samples, len(samples))
            return None

        start = samples[0].timestamp
        xs = [weeks_between(start, sample.timestamp) for sample in samples]
        ys = [
            log_rate(sample.fluency_rate if metric == "correct" else sample.error_rate)
            for sample in samples
        ]
        fitted = least_squares(xs, ys)
        if fitted is None:
            logger.debug("Celeration (%s) is degenerate: all %d samples share one timestamp", metric, len(samples))
            return None
        slope, intercept = fitted
        return CelerationResult(slope=slope, intercept=intercept, sample_count=len(samples), start=start)

    def fit_both(
        self, samples: Sequence[DailySample]
    ) -> Tuple[Optional[CelerationResult], Optional[CelerationResult]]:
        return self.fit(samples, "correct"), self.fit(samples, "error")

    @staticmethod
    def pivot_timestamp(pivot_date: date, reference: Optional[datetime] = None) -> datetime:
        """Midnight at the start of ``pivot_date`` in the reference's timezone."""

        tzinfo = reference.tzinfo if reference is not None else None
        return datetime.combine(pivot_date, time.min, tzinfo=tzinfo)

    def partition(
        self, samples: Sequence[DailySample], pivot_date: Optional[date]
    ) -> Tuple[List[DailySample], List[DailySample]]:
        if pivot_date is None or not samples:
            return [], list(samples)
        boundary = as_aware(self.pivot_timestamp(pivot_date, samples[0].timestamp))
        before = [sample for sample in samples if as_aware(sample.timestamp) < boundary]
        after = [sample for sample in samples if as_aware(sample.timestamp) >= boundary]
        return before, after

    def fit_split(self, samples: Sequence[DailySample], pivot_date: Optional[date]) -> SplitCeleration:
        """Fit the series before and after ``pivot_date`` independently."""

        before, after = self.partition(samples, pivot_date)
        before_correct, before_error = self.fit_both(before) if pivot_date is not None else (None, None)
        after_correct, after_error = self.fit_both(after)
        return SplitCeleration(
            pivot_date=pivot_date,
            before_correct=before_correct,
            before_error=before_error,
            after_correct=after_correct,
            after_error=after_error,
            before_samples=tuple(before),
            after_samples=tuple(after),
        )

    @staticmethod
    def trend_line(
        result: Optional[CelerationResult], samples: Sequence[DailySample]
    ) -> Optional[List[Tuple[float, float]]]:
        """Start and end points of the fitted line as ``(weeks, count/min)``."""

        if result is None or len(samples) < 3:
            return None
        end = weeks_between(result.start, samples[-1].timestamp)
        return [(0.0, result.value_at(0.0)), (end, result.value_at(end))]
