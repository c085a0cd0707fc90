"""Summary statistics over the raw attempt history."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Sequence

from engines.attempts import AttemptRecord, DailySample, as_aware

DEFAULT_MOVING_WINDOW = 5
IDEAL_WEEKLY_GROWTH = 1.4
ACCURACY_TARGET = 90.0


@dataclass(frozen=True)
class SummaryStatistics:
    total_attempts: int
    average_accuracy: float
    average_fluency: float
    moving_average_accuracy: float
    moving_window: int
    moving_trend: float
    best_accuracy: float
    best_fluency: float
    accuracy_improvement: float
    fluency_improvement: float
    ideal_projection: Optional[float]
    accuracy_target_hits: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def moving_average(values: Sequence[float], window: int = DEFAULT_MOVING_WINDOW) -> Optional[float]:
    """Mean of the first ``min(window, len(values))`` values (newest first)."""

    k = min(max(1, window), len(values))
    if k == 0:
        return None
    return sum(values[:k]) / k


def ideal_projection(daily_samples: Sequence[DailySample]) -> Optional[float]:
    """Latest daily fluency grown at 1.4x per week over the charted days."""

    if not daily_samples:
        return None
    days_elapsed = len(daily_samples) - 1
    return daily_samples[-1].fluency_rate * IDEAL_WEEKLY_GROWTH ** (days_elapsed / 7)


def performance_band(accuracy: float, fluency: float) -> str:
    if accuracy >= 80 and fluency >= 30:
        return "strong"
    if accuracy >= 60 and fluency >= 20:
        return "developing"
    return "needs_work"


def compute_summary(
    attempts: Sequence[AttemptRecord],
    daily_samples: Optional[Sequence[DailySample]] = None,
    window: int = DEFAULT_MOVING_WINDOW,
) -> Optional[SummaryStatistics]:
    """Summarise every attempt, including repeated same-day sessions.

    Returns ``None`` for an empty history.
    """

    if not attempts:
        return None

    newest_first = sorted(attempts, key=lambda attempt: as_aware(attempt.completed_at), reverse=True)
    accuracies = [attempt.accuracy_percentage for attempt in newest_first]
    fluencies = [attempt.fluency_rate for attempt in newest_first]
    total = len(newest_first)

    k = min(max(1, window), total)
    moving_avg = moving_average(accuracies, k)
    moving_trend = accuracies[0] - accuracies[k - 1] if k > 1 else 0.0

    newest, oldest = newest_first[0], newest_first[-1]
    accuracy_improvement = newest.accuracy_percentage - oldest.accuracy_percentage if total > 1 else 0.0
    fluency_improvement = newest.fluency_rate - oldest.fluency_rate if total > 1 else 0.0

    return SummaryStatistics(
        total_attempts=total,
        average_accuracy=sum(accuracies) / total,
        average_fluency=sum(fluencies) / total,
        moving_average_accuracy=moving_avg if moving_avg is not None else 0.0,
        moving_window=k,
        moving_trend=moving_trend,
        best_accuracy=max(accuracies),
        best_fluency=max(fluencies),
        accuracy_improvement=accuracy_improvement,
        fluency_improvement=fluency_improvement,
        ideal_projection=ideal_projection(daily_samples or []),
        accuracy_target_hits=sum(1 for value in accuracies if value >= ACCURACY_TARGET),
    )
