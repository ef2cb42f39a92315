"""One-request fetchers for each demographic dimension of a place.

Each fetcher returns a complete result or raises; nothing is defaulted here.
Substituting synthetic data is the orchestrator's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .client import CensusClient
from .config import (
    AGE_TOTAL_VAR,
    AGE_VARIABLES,
    EDUCATION_BACHELORS_VAR,
    EDUCATION_HIGH_SCHOOL_VAR,
    EDUCATION_MASTERS_VAR,
    EDUCATION_TOTAL_VAR,
    EDUCATION_VARIABLES,
    INCOME_VARIABLES,
    MEDIAN_INCOME_VAR,
    TOTAL_POPULATION_VAR,
)
from .models import Ethnicity, GeographicUnit
from .normalizer import parse_int, require_columns
from .utils.exceptions import FormatError


@dataclass(frozen=True, slots=True)
class BasePopulation:
    total_population: int
    target_population: int


@dataclass(frozen=True, slots=True)
class EducationCounts:
    total_over_25: int
    high_school_grads: int
    bachelors_grads: int
    masters_grads: int


async def _first_record(
    client: CensusClient,
    unit: GeographicUnit,
    variables,
    operation: str,
    timeout: float,
) -> Dict[str, str]:
    table = await client.get_table(
        variables, unit.geography(), operation=operation, timeout=timeout
    )
    require_columns(table.headers, list(variables))
    return table.to_records()[0]


def _require_value(record: Dict[str, str], variable: str, unit: GeographicUnit) -> str:
    value = record.get(variable, "").strip()
    if not value:
        raise FormatError(f"Census API returned no {variable} value for {unit.label}")
    return value


async def fetch_base_population(
    client: CensusClient, unit: GeographicUnit, ethnicity: Ethnicity, *, timeout: float
) -> BasePopulation:
    record = await _first_record(
        client,
        unit,
        (TOTAL_POPULATION_VAR, ethnicity.variable),
        "base_population",
        timeout,
    )
    return BasePopulation(
        total_population=parse_int(_require_value(record, TOTAL_POPULATION_VAR, unit)),
        target_population=parse_int(record.get(ethnicity.variable)),
    )


async def fetch_age_raw(
    client: CensusClient, unit: GeographicUnit, *, timeout: float
) -> int:
    """Total population of the unit, used to seed the synthetic age split.

    The per-bucket B01001 age variables are not requested.
    """
    record = await _first_record(client, unit, AGE_VARIABLES, "age", timeout)
    total = parse_int(_require_value(record, AGE_TOTAL_VAR, unit))
    if total <= 0:
        raise FormatError(f"Census API returned no population for {unit.label}")
    return total


async def fetch_income_raw(
    client: CensusClient, unit: GeographicUnit, *, timeout: float
) -> int:
    """Median household income of the unit."""
    record = await _first_record(client, unit, INCOME_VARIABLES, "income", timeout)
    median = parse_int(_require_value(record, MEDIAN_INCOME_VAR, unit))
    # negative values are the API's "not available" annotations
    if median <= 0:
        raise FormatError(f"Census API has no median income for {unit.label}")
    return median


async def fetch_education_raw(
    client: CensusClient, unit: GeographicUnit, *, timeout: float
) -> EducationCounts:
    record = await _first_record(client, unit, EDUCATION_VARIABLES, "education", timeout)
    return EducationCounts(
        total_over_25=parse_int(_require_value(record, EDUCATION_TOTAL_VAR, unit)),
        high_school_grads=parse_int(record.get(EDUCATION_HIGH_SCHOOL_VAR)),
        bachelors_grads=parse_int(record.get(EDUCATION_BACHELORS_VAR)),
        masters_grads=parse_int(record.get(EDUCATION_MASTERS_VAR)),
    )
