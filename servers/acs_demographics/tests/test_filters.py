from dataclasses import replace

import pytest

from acs_demographics.backup import backup_records
from acs_demographics.filters import (
    apply_advanced_filters,
    apply_filters,
    build_advanced_criteria,
    build_criteria,
    estimated_income,
    is_active,
)
from acs_demographics.models import (
    AdvancedCriteria,
    AgeDistribution,
    EducationDistribution,
    Ethnicity,
    FilterCriteria,
    IncomeDistribution,
    LocationRecord,
)
from acs_demographics.utils.exceptions import ValidationError


def _record(name, age=None, income=None, education=None):
    return LocationRecord(
        name=name,
        state="Texas",
        population=1000,
        percentage=10.0,
        zip_code="48000",
        age_groups=age,
        income_groups=income,
        education_levels=education,
    )


NO_SENIORS = _record(
    "No seniors",
    age=AgeDistribution(100, 100, 100, 100, 100, 100, 0),
    income=IncomeDistribution(100, 100, 100, 100, 0),
    education=EducationDistribution(100, 100, 100, 0, 0),
)
EVERYONE = _record(
    "Everyone",
    age=AgeDistribution(1, 1, 1, 1, 1, 1, 1),
    income=IncomeDistribution(1, 1, 1, 1, 1),
    education=EducationDistribution(1, 1, 1, 1, 1),
)
BARE = _record("Bare")
RECORDS = [NO_SENIORS, EVERYONE, BARE]


def test_empty_criteria_is_identity():
    records = backup_records(Ethnicity.MEXICAN)

    assert apply_filters(records, FilterCriteria()) == records
    assert apply_filters(RECORDS, build_criteria([], [], [])) == RECORDS


def test_all_tag_is_identity():
    criteria = build_criteria(["all"], ["all"], ["all"])

    assert apply_filters(RECORDS, criteria) == RECORDS


def test_any_tag_in_dimension_matches():
    criteria = build_criteria(age_range=["65plus", "under18"])

    assert apply_filters(RECORDS, criteria) == [NO_SENIORS, EVERYONE]


def test_zero_bucket_excludes_record():
    criteria = build_criteria(age_range=["65plus"])

    assert apply_filters(RECORDS, criteria) == [EVERYONE]


def test_dimensions_combine_with_and():
    criteria = build_criteria(
        age_range=["under18"], income_range=["25kto50k"], education_level=["graduate"]
    )

    assert apply_filters(RECORDS, criteria) == [EVERYONE]


def test_records_without_distribution_are_excluded_by_active_dimension():
    assert BARE not in apply_filters(RECORDS, build_criteria(education_level=["highSchool"]))
    assert BARE in apply_filters(RECORDS, build_criteria(education_level=["all"]))


@pytest.mark.parametrize(
    "criteria",
    [
        build_criteria(age_range=["65plus"]),
        build_criteria(income_range=["100kplus", "under25k"]),
        build_criteria(age_range=["18to24"], education_level=["bachelors"]),
    ],
)
def test_apply_filters_is_idempotent(criteria):
    once = apply_filters(RECORDS, criteria)

    assert apply_filters(once, criteria) == once


def test_unknown_tag_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        build_criteria(income_range=["millionaires"])

    assert exc_info.value.field == "income_range"


def test_filters_do_not_mutate_input():
    records = list(RECORDS)

    apply_filters(records, build_criteria(age_range=["65plus"]))

    assert records == RECORDS


def test_all_tag_only_disables_a_dimension_on_its_own():
    assert not is_active(["all"])
    assert is_active(["all", "65plus"])

    criteria = build_criteria(age_range=["all", "65plus"])

    assert apply_filters(RECORDS, criteria) == [NO_SENIORS, EVERYONE]


def test_empty_advanced_criteria_is_identity():
    assert apply_advanced_filters(RECORDS, AdvancedCriteria()) == RECORDS
    assert apply_advanced_filters(RECORDS, build_advanced_criteria()) == RECORDS


def test_population_and_percentage_bounds_are_inclusive():
    small = replace(EVERYONE, name="Small", population=500, percentage=2.5)
    large = replace(EVERYONE, name="Large", population=5000, percentage=40.0)
    records = [small, EVERYONE, large]

    by_population = build_advanced_criteria(min_population=1000, max_population=5000)
    by_percentage = build_advanced_criteria(min_percentage=2.5, max_percentage=10.0)

    assert apply_advanced_filters(records, by_population) == [EVERYONE, large]
    assert apply_advanced_filters(records, by_percentage) == [small, EVERYONE]


def test_state_list_accepts_codes_abbreviations_and_names():
    criteria = build_advanced_criteria(states=["48", "ca", "Texas"])
    california = replace(EVERYONE, name="Los Angeles", state="California")
    illinois = replace(EVERYONE, name="Chicago", state="Illinois")

    assert criteria.states == ("Texas", "California")
    assert apply_advanced_filters([california, illinois, BARE], criteria) == [
        california,
        BARE,
    ]


def test_unknown_state_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        build_advanced_criteria(states=["Atlantis"])

    assert exc_info.value.field == "states"


def test_inverted_range_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        build_advanced_criteria(min_income=90000, max_income=40000)

    assert exc_info.value.field == "min_income"


def test_estimated_income_weights_bucket_midpoints():
    assert estimated_income(NO_SENIORS.income_groups) == 50000
    assert estimated_income(EVERYONE.income_groups) == 65000
    assert estimated_income(IncomeDistribution(0, 0, 0, 0, 0)) == 0.0


def test_income_range_uses_estimated_income():
    criteria = build_advanced_criteria(min_income=60000)

    # a record without income buckets is not judged on income
    assert apply_advanced_filters(RECORDS, criteria) == [EVERYONE, BARE]
    assert apply_advanced_filters(
        RECORDS, build_advanced_criteria(min_income=40000, max_income=50000)
    ) == [NO_SENIORS, BARE]


def test_significant_tags_need_more_than_a_tenth():
    seniors = build_advanced_criteria(significant_age=["65plus"])
    children = build_advanced_criteria(significant_age=["under18"])
    graduates = build_advanced_criteria(significant_education=["bachelors", "graduate"])
    borderline = replace(
        EVERYONE, name="Borderline", age_groups=AgeDistribution(10, 90, 0, 0, 0, 0, 0)
    )

    assert apply_advanced_filters(RECORDS, seniors) == [EVERYONE]
    assert apply_advanced_filters(RECORDS, children) == [NO_SENIORS, EVERYONE]
    assert apply_advanced_filters(RECORDS, graduates) == [EVERYONE]
    assert apply_advanced_filters([borderline], children) == []


def test_significance_skips_empty_distributions():
    empty = replace(
        EVERYONE, name="Empty", age_groups=AgeDistribution(0, 0, 0, 0, 0, 0, 0)
    )
    criteria = build_advanced_criteria(significant_age=["under18"])

    assert apply_advanced_filters([empty], criteria) == []


def test_all_significance_tag_is_no_restriction():
    criteria = build_advanced_criteria(significant_age=["all"])

    assert criteria.significant_age == ()
    assert apply_advanced_filters(RECORDS, criteria) == RECORDS
