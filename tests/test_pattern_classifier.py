import itertools

import pytest

from engines.pattern_classifier import (
    BOTH_FALLING,
    BOTH_RISING,
    GOOD_JAWS,
    MARGINAL_JAWS,
    OPPOSITION,
    PATTERN_CODES,
    PATTERN_LABELS,
    STRONG_JAWS,
    classify,
)


@pytest.mark.parametrize(
    "correct, error, expected",
    [
        (1.6, 0.5, STRONG_JAWS),
        (1.3, 0.8, GOOD_JAWS),
        (1.5, 0.8, GOOD_JAWS),
        (1.1, 0.95, MARGINAL_JAWS),
        (1.2, 1.3, BOTH_RISING),
        (0.8, 0.9, BOTH_FALLING),
        (0.7, 1.4, OPPOSITION),
    ],
)
def test_decision_table(correct, error, expected):
    assert classify(correct, error) == expected


@pytest.mark.parametrize(
    "correct, error, expected",
    [
        (1.4, 0.5, GOOD_JAWS),
        (1.41, 0.7, GOOD_JAWS),
        (1.25, 0.5, MARGINAL_JAWS),
        (1.3, 0.9, MARGINAL_JAWS),
        (1.0, 0.5, None),
        (1.2, 1.0, None),
        (0.9, 1.0, None),
        (1.0, 1.0, None),
    ],
)
def test_boundaries_use_strict_inequalities(correct, error, expected):
    assert classify(correct, error) == expected


def test_missing_factor_yields_none():
    assert classify(None, 0.5) is None
    assert classify(1.5, None) is None


def test_classifier_is_total_over_positive_factors():
    grid = [0.1, 0.5, 0.7, 0.9, 0.99, 1.0, 1.01, 1.1, 1.25, 1.4, 1.5, 3.0]
    for correct, error in itertools.product(grid, grid):
        label = classify(correct, error)
        assert label is None or label in PATTERN_LABELS


def test_every_label_has_a_code():
    assert set(PATTERN_CODES) == set(PATTERN_LABELS)
