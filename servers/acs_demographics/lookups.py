"""Single-location lookups for detail views.

There is nothing sensible to fall back to for one targeted query, so every
error reaches the caller. An empty answer from the API means the location
is unknown and is reported as ``NotFoundError``.
"""

from __future__ import annotations

from typing import List, Optional

from .client import CensusClient
from .config import (
    EDUCATION_BACHELORS_VAR,
    EDUCATION_MASTERS_VAR,
    EDUCATION_TOTAL_VAR,
    MEDIAN_INCOME_VAR,
    TOTAL_POPULATION_VAR,
)
from .geography import (
    resolve_by_city_name,
    resolve_by_state_and_place,
    resolve_by_zip,
)
from .models import Ethnicity, GeographicUnit, LabeledRecord
from .normalizer import NormalizationContext, normalize


def lookup_variables(ethnicity: Ethnicity) -> List[str]:
    return [
        TOTAL_POPULATION_VAR,
        ethnicity.variable,
        MEDIAN_INCOME_VAR,
        EDUCATION_TOTAL_VAR,
        EDUCATION_BACHELORS_VAR,
        EDUCATION_MASTERS_VAR,
    ]


async def lookup_unit(
    unit: GeographicUnit,
    ethnicity: Ethnicity,
    client: CensusClient,
    *,
    operation: str,
    timeout: Optional[float] = None,
) -> LabeledRecord:
    table = await client.get_table(
        lookup_variables(ethnicity),
        unit.geography(),
        operation=operation,
        timeout=timeout or client.settings.lookup_timeout,
        empty_is_not_found=True,
    )
    return normalize(
        table.headers, table.rows[0], NormalizationContext(ethnicity, unit)
    )


async def lookup_by_zip(
    zip_code: str,
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float] = None,
) -> LabeledRecord:
    unit = resolve_by_zip(zip_code)
    return await lookup_unit(
        unit, ethnicity, client, operation="zip_lookup", timeout=timeout
    )


async def lookup_by_place(
    state_code: str,
    place_id: str,
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float] = None,
) -> LabeledRecord:
    unit = resolve_by_state_and_place(state_code, place_id)
    return await lookup_unit(
        unit, ethnicity, client, operation="place_lookup", timeout=timeout
    )


async def lookup_by_city(
    city: str,
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float] = None,
) -> LabeledRecord:
    unit = await resolve_by_city_name(city, client, timeout=timeout)
    return await lookup_unit(
        unit, ethnicity, client, operation="city_lookup", timeout=timeout
    )
