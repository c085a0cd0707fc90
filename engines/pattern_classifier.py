"""Quadrant classification of correct/error celeration pairs."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

STRONG_JAWS = "Excellent: corrects accelerating strongly while errors decelerate"
GOOD_JAWS = "Good: corrects accelerating while errors decelerate"
MARGINAL_JAWS = "Marginal: corrects barely accelerating while errors barely decelerate"
BOTH_RISING = "Both rising: corrects and errors accelerating (watch errors)"
BOTH_FALLING = "Both falling: corrects and errors decelerating (stall or dive)"
OPPOSITION = "Opposition: corrects decelerating while errors accelerate (trouble)"

PATTERN_LABELS: Tuple[str, ...] = (
    STRONG_JAWS,
    GOOD_JAWS,
    MARGINAL_JAWS,
    BOTH_RISING,
    BOTH_FALLING,
    OPPOSITION,
)

PATTERN_CODES: Dict[str, str] = {
    STRONG_JAWS: "strong_jaws",
    GOOD_JAWS: "good_jaws",
    MARGINAL_JAWS: "marginal_jaws",
    BOTH_RISING: "both_rising",
    BOTH_FALLING: "both_falling",
    OPPOSITION: "opposition",
}


def classify(correct_factor: Optional[float], error_factor: Optional[float]) -> Optional[str]:
    """Map weekly factors to a chart pattern label.

    Rows are checked in order with strict inequalities, so a factor of
    exactly 1.0 on either side matches nothing and yields ``None``.
    """

    if correct_factor is None or error_factor is None:
        return None

    if correct_factor > 1.4 and error_factor < 0.7:
        return STRONG_JAWS
    if correct_factor > 1.25 and error_factor < 0.9:
        return GOOD_JAWS
    if correct_factor > 1.0 and error_factor < 1.0:
        return MARGINAL_JAWS
    if correct_factor > 1.0 and error_factor > 1.0:
        return BOTH_RISING
    if correct_factor < 1.0 and error_factor < 1.0:
        return BOTH_FALLING
    if correct_factor < 1.0 and error_factor > 1.0:
        return OPPOSITION
    return None
