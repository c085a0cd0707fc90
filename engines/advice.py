"""Heuristic coaching advice derived from daily celeration samples."""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from engines.attempts import DailySample
from engines.celeration import CelerationResult, least_squares, log_rate
from engines.pattern_classifier import classify

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_TIP = (
    "Not enough data yet: complete timings on at least 3 different days to unlock "
    "celeration-based advice."
)
MAINTAIN_COURSE_TIP = "Progress looks steady. Keep the current practice routine and keep charting daily."


@dataclass
class AdviceResult:
    label: Optional[str]
    tips: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)

    def add(self, rule: str, tip: str) -> None:
        self.rules.append(rule)
        self.tips.append(tip)

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "tips": list(self.tips), "rules": list(self.rules)}


def _factor(result: Optional[CelerationResult]) -> Optional[float]:
    return result.factor_per_week if result is not None else None


def _index_slope(values: Sequence[float]) -> Optional[float]:
    fitted = least_squares(list(range(len(values))), [log_rate(value) for value in values])
    return fitted[0] if fitted is not None else None


class AdviceEngine:
    """Evaluate the coaching rules in a fixed order.

    Every rule is independent; all that apply contribute a tip. When none
    apply a single maintain-course tip is returned.
    """

    def __init__(self, aim_fluency: float = 25.0, aim_error: float = 1.0):
        self.aim_fluency = aim_fluency
        self.aim_error = aim_error

        self.min_samples = 3
        self.recent_window = 7
        self.long_session_minutes = 1.0
        self.low_fluency_ratio = 0.7
        self.aim_streak_required = 5
        self.aim_streak_window = 7
        self.plateau_window = 7
        self.plateau_flat_slope = 0.02
        self.plateau_prior_slope = 0.05
        self.flat_spread = 1.10
        self.bounce_window = 5
        self.high_bounce_cv = 0.5
        self.moderate_bounce_cv = 0.3
        self.slow_growth_factor = 1.25
        self.rising_error_factor = 1.10
        self.rushing_factor = 1.5
        self.retention_lookback = 7
        self.retention_ratio = 0.8
        self.low_frequency = 10.0
        self.persistent_error_rate = 2.0
        self.lagging_correct_factor = 1.1
        self.outpacing_error_factor = 1.2

    def advise(
        self,
        samples: Sequence[DailySample],
        correct: Optional[CelerationResult],
        error: Optional[CelerationResult],
    ) -> AdviceResult:
        if len(samples) < self.min_samples:
            logger.debug("Advice needs %d daily samples, got %d", self.min_samples, len(samples))
            return AdviceResult(label=None, tips=[INSUFFICIENT_DATA_TIP], rules=["insufficient_data"])

        correct_factor = _factor(correct)
        error_factor = _factor(error)
        result = AdviceResult(label=classify(correct_factor, error_factor))

        rules: Tuple[Callable[..., Optional[Tuple[str, str]]], ...] = (
            self._session_length,
            self._advance_material,
            self._plateau,
            self._at_aim,
            self._flat_three,
            self._bounce,
            self._slow_growth,
            self._rising_errors,
            self._errors_above_aim,
            self._crossover,
            self._rushing,
            self._retention_drop,
            self._untimed_drill,
            self._persistent_errors,
            self._errors_outpacing,
        )
        for rule in rules:
            outcome = rule(samples, correct_factor, error_factor)
            if outcome is not None:
                result.add(*outcome)

        if not result.tips:
            result.add("maintain_course", MAINTAIN_COURSE_TIP)
        return result

    # ------------------------------------------------------------------
    def _session_length(self, samples, correct_factor, error_factor):
        recent = samples[-self.recent_window:]
        average_minutes = sum(sample.total_time_minutes for sample in recent) / len(recent)
        latest = samples[-1].fluency_rate
        if average_minutes > self.long_session_minutes and latest < self.low_fluency_ratio * self.aim_fluency:
            return (
                "session_length",
                f"Sessions average {average_minutes:.1f} minutes while fluency is {latest:.1f}/min. "
                "Try shorter 1-minute timings and build endurance gradually.",
            )
        return None

    def _advance_material(self, samples, correct_factor, error_factor):
        recent = samples[-self.aim_streak_window:]
        hits = sum(1 for sample in recent if sample.fluency_rate >= self.aim_fluency)
        if hits >= self.aim_streak_required:
            return (
                "advance_material",
                f"At or above aim on {hits} of the last {len(recent)} days. Move on to new material "
                f"or raise the aim to {self.aim_fluency + 10:g}/min.",
            )
        return None

    def _plateau(self, samples, correct_factor, error_factor):
        if len(samples) < 2 * self.plateau_window:
            return None
        window = samples[-2 * self.plateau_window:]
        prior = [sample.fluency_rate for sample in window[: self.plateau_window]]
        recent = [sample.fluency_rate for sample in window[self.plateau_window:]]
        recent_slope = _index_slope(recent)
        prior_slope = _index_slope(prior)
        if recent_slope is None or prior_slope is None:
            return None
        if abs(recent_slope) < self.plateau_flat_slope and abs(prior_slope) > self.plateau_prior_slope:
            return (
                "plateau",
                "Progress has flattened after earlier growth. Slice back to an easier set for about "
                "3 days to rebuild momentum, then return.",
            )
        return None

    def _at_aim(self, samples, correct_factor, error_factor):
        recent = samples[-3:]
        hits = sum(
            1
            for sample in recent
            if sample.fluency_rate >= self.aim_fluency and sample.error_rate <= self.aim_error
        )
        if hits >= 2:
            return (
                "at_aim",
                f"Great work: {hits} of the last 3 days met both aims. Celebrate, and consider raising the aim.",
            )
        return None

    def _flat_three(self, samples, correct_factor, error_factor):
        values = [sample.fluency_rate for sample in samples[-3:]]
        lowest = min(values)
        highest = max(values)
        if highest != lowest and lowest <= 0:
            return None
        if highest == lowest or highest / lowest < self.flat_spread:
            return (
                "flat_three",
                "The last 3 days are nearly identical. Change something: a finer skill slice, "
                "a different timing length, or denser reinforcement.",
            )
        return None

    def _bounce(self, samples, correct_factor, error_factor):
        values = [sample.fluency_rate for sample in samples[-self.bounce_window:]]
        mean = sum(values) / len(values)
        if mean == 0:
            return None
        cv = statistics.pstdev(values) / mean
        if cv > self.high_bounce_cv:
            return (
                "high_bounce",
                f"Performance is bouncing a lot (variation {cv:.0%}). Standardize timing conditions: "
                "same time of day, same setting, same timing length.",
            )
        if cv > self.moderate_bounce_cv:
            return (
                "moderate_bounce",
                f"Moderate bounce between sessions (variation {cv:.0%}). Keep practice conditions consistent.",
            )
        return None

    def _slow_growth(self, samples, correct_factor, error_factor):
        if correct_factor is not None and correct_factor < self.slow_growth_factor:
            return (
                "slow_growth",
                f"Corrects are growing at x{correct_factor:.2f}/week, below x{self.slow_growth_factor:.2f}. "
                "Adjust instruction: shorter sets and more response opportunities.",
            )
        return None

    def _rising_errors(self, samples, correct_factor, error_factor):
        if error_factor is not None and error_factor > self.rising_error_factor:
            return (
                "rising_errors",
                f"Errors are accelerating at x{error_factor:.2f}/week. Add immediate corrective feedback "
                "after each timing.",
            )
        return None

    def _errors_above_aim(self, samples, correct_factor, error_factor):
        latest = samples[-1].error_rate
        if latest > self.aim_error:
            return (
                "errors_above_aim",
                f"Latest error rate is {latest:.1f}/min, above the aim of {self.aim_error:g}/min. "
                "Tighten prompting and modeling before timing again.",
            )
        return None

    def _crossover(self, samples, correct_factor, error_factor):
        latest = samples[-1]
        if latest.fluency_rate < latest.error_rate:
            return (
                "crossover",
                "CRITICAL: errors outnumber corrects in the latest timing. Stop and reteach; "
                "the learner is likely guessing.",
            )
        return None

    def _rushing(self, samples, correct_factor, error_factor):
        if (
            correct_factor is not None
            and error_factor is not None
            and correct_factor > self.rushing_factor
            and error_factor > self.rushing_factor
        ):
            return (
                "rushing",
                "Corrects and errors are both climbing fast. The learner may be rushing or ignoring "
                "accuracy; reinforce careful responding.",
            )
        return None

    def _retention_drop(self, samples, correct_factor, error_factor):
        if len(samples) < self.retention_lookback + 1:
            return None
        earlier = samples[-(self.retention_lookback + 1)].fluency_rate
        latest = samples[-1].fluency_rate
        if latest < self.retention_ratio * earlier:
            return (
                "retention_drop",
                f"Fluency dropped from {earlier:.1f} to {latest:.1f}/min compared with a week of sessions ago. "
                "Schedule a retention check and brief review.",
            )
        return None

    def _untimed_drill(self, samples, correct_factor, error_factor):
        if (
            correct_factor is not None
            and samples[-1].fluency_rate < self.low_frequency
            and correct_factor < self.slow_growth_factor
        ):
            return (
                "untimed_drill",
                "Frequency is low and growing slowly. Add untimed drill practice before the next timing.",
            )
        return None

    def _persistent_errors(self, samples, correct_factor, error_factor):
        if all(sample.error_rate > self.persistent_error_rate for sample in samples[-3:]):
            return (
                "persistent_errors",
                "Errors have stayed above 2/min for 3 days. Practice the missed items in isolation "
                "or switch to errorless teaching.",
            )
        return None

    def _errors_outpacing(self, samples, correct_factor, error_factor):
        if (
            correct_factor is not None
            and error_factor is not None
            and correct_factor < self.lagging_correct_factor
            and error_factor > self.outpacing_error_factor
        ):
            return (
                "errors_outpacing",
                "Errors are growing faster than corrects. Shorten the timing or clarify confusable items.",
            )
        return None


def advise(
    daily_samples: Sequence[DailySample],
    correct_celeration: Optional[CelerationResult],
    error_celeration: Optional[CelerationResult],
    aim_fluency: float = 25.0,
    aim_error: float = 1.0,
) -> AdviceResult:
    return AdviceEngine(aim_fluency=aim_fluency, aim_error=aim_error).advise(
        daily_samples, correct_celeration, error_celeration
    )
