"""Compose daily samples, celeration, statistics and advice into one report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from engines.advice import AdviceEngine
from engines.attempts import ALL_QUIZZES, AttemptRecord, DailySample, aggregate_daily, filter_attempts
from engines.celeration import (
    CelerationEstimator,
    CelerationResult,
    SplitCeleration,
    weeks_between,
)
from engines.trend_statistics import SummaryStatistics, compute_summary
from env_validation import analytics_defaults

logger = logging.getLogger(__name__)

CHART_MIN_RATE = 0.1
CHART_MAX_RATE = 100.0


@dataclass
class ProgressReport:
    quiz_id: Optional[str]
    daily_samples: List[DailySample]
    correct_celeration: Optional[CelerationResult]
    error_celeration: Optional[CelerationResult]
    split: Optional[SplitCeleration]
    summary: Optional[SummaryStatistics]
    pattern: Optional[str]
    tips: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)
    chart: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        def _maybe(result: Optional[CelerationResult]) -> Optional[Dict[str, Any]]:
            return result.to_dict() if result is not None else None

        return {
            "quiz_id": self.quiz_id,
            "daily_samples": [sample.to_dict() for sample in self.daily_samples],
            "celeration": {
                "correct": _maybe(self.correct_celeration),
                "error": _maybe(self.error_celeration),
            },
            "split": self.split.to_dict() if self.split is not None else None,
            "summary": self.summary.to_dict() if self.summary is not None else None,
            "pattern": self.pattern,
            "tips": list(self.tips),
            "rules": list(self.rules),
            "chart": self.chart,
        }


def _chart_payload(
    samples: Sequence[DailySample],
    correct: Optional[CelerationResult],
    aim_fluency: float,
    aim_error: float,
) -> Dict[str, Any]:
    start = samples[0].timestamp if samples else None
    points = [
        {
            "day": sample.day_key.isoformat(),
            "weeks": weeks_between(start, sample.timestamp),
            "fluency_rate": sample.fluency_rate,
            "error_rate": sample.error_rate,
        }
        for sample in samples
    ]
    line: Optional[List[Tuple[float, float]]] = CelerationEstimator.trend_line(correct, samples)
    return {
        "min_rate": CHART_MIN_RATE,
        "max_rate": CHART_MAX_RATE,
        "aim_fluency": aim_fluency,
        "aim_error": aim_error,
        "points": points,
        "trend_line": [list(point) for point in line] if line else None,
    }


class ProgressAnalyticsEngine:
    """Stateless entry point: attempts in, progress report out."""

    def __init__(self, estimator: Optional[CelerationEstimator] = None):
        self.estimator = estimator or CelerationEstimator()

    def analyze(
        self,
        attempts: Sequence[AttemptRecord],
        *,
        quiz_id: Optional[str] = None,
        pivot_date: Optional[date] = None,
        aim_fluency: Optional[float] = None,
        aim_error: Optional[float] = None,
        moving_average_window: Optional[int] = None,
    ) -> ProgressReport:
        settings = analytics_defaults(
            {
                "aim_fluency": aim_fluency,
                "aim_error": aim_error,
                "moving_average_window": moving_average_window,
            }
        )
        selected = filter_attempts(attempts, quiz_id)
        samples = aggregate_daily(selected)
        correct, error = self.estimator.fit_both(samples)

        split: Optional[SplitCeleration] = None
        advised_samples: Sequence[DailySample] = samples
        advised_correct, advised_error = correct, error
        if pivot_date is not None:
            split = self.estimator.fit_split(samples, pivot_date)
            advised_samples = split.after_samples
            advised_correct, advised_error = split.after_correct, split.after_error

        summary = compute_summary(selected, samples, window=settings["moving_average_window"])
        advice = AdviceEngine(
            aim_fluency=settings["aim_fluency"], aim_error=settings["aim_error"]
        ).advise(advised_samples, advised_correct, advised_error)

        logger.debug(
            "Analysed %d attempts into %d daily samples (quiz=%s, pivot=%s, pattern=%s)",
            len(selected),
            len(samples),
            quiz_id or ALL_QUIZZES,
            pivot_date,
            advice.label,
        )
        return ProgressReport(
            quiz_id=None if not quiz_id or quiz_id == ALL_QUIZZES else quiz_id,
            daily_samples=samples,
            correct_celeration=correct,
            error_celeration=error,
            split=split,
            summary=summary,
            pattern=advice.label,
            tips=advice.tips,
            rules=advice.rules,
            chart=_chart_payload(samples, correct, settings["aim_fluency"], settings["aim_error"]),
        )
