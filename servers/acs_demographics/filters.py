"""Demographic filters over loaded location records."""

from __future__ import annotations

from dataclasses import fields
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    AdvancedCriteria,
    FilterCriteria,
    IncomeDistribution,
    LocationRecord,
)
from .states import STATE_NAMES_BY_FIPS, state_name
from .utils.exceptions import ValidationError

ALL_TAG = "all"

AGE_TAGS: Dict[str, str] = {
    "under18": "under18",
    "18to24": "age18to24",
    "25to34": "age25to34",
    "35to44": "age35to44",
    "45to54": "age45to54",
    "55to64": "age55to64",
    "65plus": "age65plus",
}

INCOME_TAGS: Dict[str, str] = {
    "under25k": "under25k",
    "25kto50k": "income25kto50k",
    "50kto75k": "income50kto75k",
    "75kto100k": "income75kto100k",
    "100kplus": "income100kplus",
}

EDUCATION_TAGS: Dict[str, str] = {
    "lessHighSchool": "less_high_school",
    "highSchool": "high_school",
    "someCollege": "some_college",
    "bachelors": "bachelors",
    "graduate": "graduate",
}

# criteria attribute -> (record attribute, tag table)
_DIMENSIONS = (
    ("age_range", "age_groups", AGE_TAGS),
    ("income_range", "income_groups", INCOME_TAGS),
    ("education_level", "education_levels", EDUCATION_TAGS),
)

# Bucket midpoints used to estimate a place's typical household income.
INCOME_MIDPOINTS: Dict[str, int] = {
    "under25k": 12_500,
    "income25kto50k": 37_500,
    "income50kto75k": 62_500,
    "income75kto100k": 87_500,
    "income100kplus": 125_000,
}

SIGNIFICANT_SHARE = 0.1


def _clean_tags(
    field: str, tags: Optional[Iterable[str]], known: Dict[str, str]
) -> tuple:
    cleaned = tuple(tags or ())
    unknown = [tag for tag in cleaned if tag != ALL_TAG and tag not in known]
    if unknown:
        raise ValidationError(
            f"Unknown {field} tag(s): {', '.join(unknown)}. "
            f"Valid tags: {', '.join([ALL_TAG, *known])}",
            field=field,
            value=unknown,
        )
    return cleaned


def build_criteria(
    age_range: Optional[Sequence[str]] = None,
    income_range: Optional[Sequence[str]] = None,
    education_level: Optional[Sequence[str]] = None,
) -> FilterCriteria:
    """Validate tag lists and bundle them as criteria."""

    return FilterCriteria(
        age_range=_clean_tags("age_range", age_range, AGE_TAGS),
        income_range=_clean_tags("income_range", income_range, INCOME_TAGS),
        education_level=_clean_tags("education_level", education_level, EDUCATION_TAGS),
    )


def is_active(tags: Sequence[str]) -> bool:
    """A dimension restricts nothing when it is empty or exactly ``["all"]``."""

    return bool(tags) and tuple(tags) != (ALL_TAG,)


def _passes(record: LocationRecord, tags: Sequence[str], attr: str, known) -> bool:
    distribution = getattr(record, attr)
    if distribution is None:
        return False
    for tag in tags:
        # "all" next to other tags matches any record carrying the distribution
        if tag == ALL_TAG:
            return True
        if tag not in known:
            raise ValidationError(f"Unknown filter tag: {tag}", value=tag)
        if getattr(distribution, known[tag]) > 0:
            return True
    return False


def apply_filters(
    records: Sequence[LocationRecord], criteria: FilterCriteria
) -> List[LocationRecord]:
    """Keep records with a nonzero bucket for some tag of every active dimension.

    Records without the distribution an active dimension looks at are dropped.
    """

    active = [
        (getattr(criteria, name), attr, known)
        for name, attr, known in _DIMENSIONS
        if is_active(getattr(criteria, name))
    ]
    if not active:
        return list(records)

    return [
        record
        for record in records
        if all(_passes(record, tags, attr, known) for tags, attr, known in active)
    ]


def _check_range(name: str, low, high) -> None:
    if low is not None and high is not None and low > high:
        raise ValidationError(
            f"min_{name} ({low:g}) is greater than max_{name} ({high:g})",
            field=f"min_{name}",
            value=low,
        )


def _clean_states(states: Optional[Iterable[str]]) -> Tuple[str, ...]:
    known = set(STATE_NAMES_BY_FIPS.values())
    names = []
    for value in states or ():
        name = state_name(value)
        if name not in known:
            raise ValidationError(f"Unknown state: {value}", field="states", value=value)
        if name not in names:
            names.append(name)
    return tuple(names)


def build_advanced_criteria(
    *,
    min_population: Optional[int] = None,
    max_population: Optional[int] = None,
    min_percentage: Optional[float] = None,
    max_percentage: Optional[float] = None,
    states: Optional[Sequence[str]] = None,
    min_income: Optional[float] = None,
    max_income: Optional[float] = None,
    significant_age: Optional[Sequence[str]] = None,
    significant_education: Optional[Sequence[str]] = None,
) -> AdvancedCriteria:
    """Validate range bounds, states and significance tags.

    States may be given as FIPS codes, postal abbreviations or full names.
    ``"all"`` is accepted in the tag lists and means no restriction.
    """

    _check_range("population", min_population, max_population)
    _check_range("percentage", min_percentage, max_percentage)
    _check_range("income", min_income, max_income)

    age = _clean_tags("significant_age", significant_age, AGE_TAGS)
    education = _clean_tags(
        "significant_education", significant_education, EDUCATION_TAGS
    )
    return AdvancedCriteria(
        min_population=min_population,
        max_population=max_population,
        min_percentage=min_percentage,
        max_percentage=max_percentage,
        states=_clean_states(states),
        min_income=min_income,
        max_income=max_income,
        significant_age=tuple(tag for tag in age if tag != ALL_TAG),
        significant_education=tuple(tag for tag in education if tag != ALL_TAG),
    )


def estimated_income(income: IncomeDistribution) -> float:
    """Household-weighted average of the bucket midpoints; 0 with no households."""

    households = 0
    weighted = 0
    for attr, midpoint in INCOME_MIDPOINTS.items():
        count = getattr(income, attr)
        households += count
        weighted += count * midpoint
    return weighted / households if households > 0 else 0.0


def _within(value: float, low, high) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _significant(distribution, tags: Sequence[str], known: Dict[str, str]) -> bool:
    if distribution is None:
        return False
    total = sum(getattr(distribution, f.name) for f in fields(distribution))
    if total <= 0:
        return False
    return any(getattr(distribution, known[tag]) / total > SIGNIFICANT_SHARE for tag in tags)


def _passes_advanced(record: LocationRecord, criteria: AdvancedCriteria) -> bool:
    if not _within(record.population, criteria.min_population, criteria.max_population):
        return False
    if not _within(record.percentage, criteria.min_percentage, criteria.max_percentage):
        return False
    if criteria.states and record.state not in criteria.states:
        return False
    # records without income buckets are not judged on income
    if record.income_groups is not None and not _within(
        estimated_income(record.income_groups), criteria.min_income, criteria.max_income
    ):
        return False
    if criteria.significant_age and not _significant(
        record.age_groups, criteria.significant_age, AGE_TAGS
    ):
        return False
    if criteria.significant_education and not _significant(
        record.education_levels, criteria.significant_education, EDUCATION_TAGS
    ):
        return False
    return True


def apply_advanced_filters(
    records: Sequence[LocationRecord], criteria: AdvancedCriteria
) -> List[LocationRecord]:
    """Keep records inside every range, state and significance condition."""

    return [record for record in records if _passes_advanced(record, criteria)]
