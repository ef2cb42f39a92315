"""Deterministic placeholder distributions.

Each generator spreads a single scalar over fixed percentage splits. They are
used whenever the real per-category Census variables are not requested or a
fetch fails, so the same inputs must always give the same buckets.
"""

from __future__ import annotations

import math
from typing import Sequence

from .models import AgeDistribution, EducationDistribution, IncomeDistribution

AGE_SPLIT = (25, 15, 20, 15, 10, 8, 7)
INCOME_SPLIT = (22, 30, 25, 13, 10)
EDUCATION_SPLIT = (30, 28, 22, 15, 5)

# income_from_median does not know the unit's population and always spreads
# over this base, so its counts are proportions rather than real households.
MEDIAN_INCOME_BASE = 10000

_LOW_INCOME_SHIFT = (10, 5, 0, -8, -7)
_MIDDLE_INCOME_SHIFT = (-5, 5, 5, 0, -5)
_HIGH_INCOME_SHIFT = (-10, -5, 0, 7, 8)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round`` uses banker's rounding)."""

    return int(math.floor(value + 0.5))


def _split(total: int, percents: Sequence[int]) -> list:
    return [max(0, round_half_up(total * pct / 100)) for pct in percents]


def age_from_population(total: int) -> AgeDistribution:
    return AgeDistribution(*_split(total, AGE_SPLIT))


def income_from_population(total: int) -> IncomeDistribution:
    return IncomeDistribution(*_split(total, INCOME_SPLIT))


def income_from_median(median: int) -> IncomeDistribution:
    """Shift the base income split by median-income band.

    Bands are ``< 40,000``, ``40,000 - 59,999`` and ``>= 60,000``.
    """

    if median < 40000:
        shift = _LOW_INCOME_SHIFT
    elif median < 60000:
        shift = _MIDDLE_INCOME_SHIFT
    else:
        shift = _HIGH_INCOME_SHIFT
    percents = [base + delta for base, delta in zip(INCOME_SPLIT, shift)]
    return IncomeDistribution(*_split(MEDIAN_INCOME_BASE, percents))


def education_from_population(total: int) -> EducationDistribution:
    return EducationDistribution(*_split(total, EDUCATION_SPLIT))


def education_from_raw_counts(
    total_over_25: int,
    high_school_grads: int,
    bachelors_grads: int,
    masters_grads: int,
) -> EducationDistribution:
    """Derive five education buckets from the four B15003 counts.

    Some-college is approximated as 20% of the 25+ population. Each bucket is
    clamped at zero on its own, so the buckets need not add up to
    ``total_over_25``.
    """

    some_college = round_half_up(total_over_25 * 0.2)
    return EducationDistribution(
        less_high_school=max(0, total_over_25 - high_school_grads),
        high_school=max(0, high_school_grads - bachelors_grads - some_college),
        some_college=max(0, some_college),
        bachelors=max(0, bachelors_grads - masters_grads),
        graduate=max(0, masters_grads),
    )
