"""Per-state rankings of places and side-by-side state comparisons."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .client import CensusClient
from .config import MEDIAN_INCOME_VAR, TOTAL_POPULATION_VAR
from .fetchers import fetch_base_population
from .geography import resolve_all_places_for_state, validate_state_code
from .models import Ethnicity, GeographicUnit
from .normalizer import parse_int, percentage
from .orchestrator import settle_all
from .states import state_name
from .synthetic import round_half_up
from .utils.exceptions import ValidationError
from .utils.logger import get_logger

logger = get_logger("state_summary")

SORT_KEYS = ("population", "percentage", "cities")
TOP_PLACES = 5


@dataclass(frozen=True, slots=True)
class PlaceSummary:
    name: str
    state: str
    state_code: str
    place_id: str
    total_population: int
    target_population: int
    percentage: float
    median_income: Optional[int]


@dataclass(frozen=True, slots=True)
class StateComparison:
    state_code: str
    state_name: str
    total_population: int = 0
    target_population: int = 0
    percentage: float = 0.0
    city_count: int = 0
    average_city_percentage: float = 0.0
    top_places: Tuple[PlaceSummary, ...] = ()
    error: bool = False
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["top_places"] = [asdict(place) for place in self.top_places]
        return data


async def list_state_places(
    state_code: str,
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float] = None,
) -> List[PlaceSummary]:
    """Places in one state with any target population, largest first."""

    variables = [TOTAL_POPULATION_VAR, ethnicity.variable, MEDIAN_INCOME_VAR]
    units = await resolve_all_places_for_state(
        state_code, client, variables=variables, timeout=timeout
    )

    places = []
    for unit, record in units:
        target = parse_int(record[ethnicity.variable])
        if target <= 0:
            continue
        total = parse_int(record[TOTAL_POPULATION_VAR])
        median = parse_int(record[MEDIAN_INCOME_VAR])
        places.append(
            PlaceSummary(
                name=unit.name,
                state=unit.state_name,
                state_code=unit.state_code,
                place_id=unit.place_id or "",
                total_population=total,
                target_population=target,
                percentage=percentage(target, total),
                median_income=median if median > 0 else None,
            )
        )
    return sorted(places, key=lambda place: place.target_population, reverse=True)


async def _compare_one(
    state_code: str,
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float],
) -> StateComparison:
    name = state_name(state_code)
    state_unit = GeographicUnit(name=name, state_name=name, state_code=state_code)
    base, places = await asyncio.gather(
        fetch_base_population(
            client,
            state_unit,
            ethnicity,
            timeout=timeout or client.settings.lookup_timeout,
        ),
        list_state_places(state_code, ethnicity, client, timeout=timeout),
        return_exceptions=True,
    )
    for result in (base, places):
        if isinstance(result, BaseException):
            raise result

    average = 0.0
    if places:
        mean = sum(p.percentage for p in places) / len(places)
        average = round_half_up(mean * 10) / 10

    return StateComparison(
        state_code=state_code,
        state_name=name,
        total_population=base.total_population,
        target_population=base.target_population,
        percentage=percentage(base.target_population, base.total_population),
        city_count=len(places),
        average_city_percentage=average,
        top_places=tuple(places[:TOP_PLACES]),
    )


def _sort_value(row: StateComparison, sort_by: str) -> float:
    if sort_by == "percentage":
        return row.percentage
    if sort_by == "cities":
        return row.city_count
    return row.target_population


async def compare_states(
    state_codes: Sequence[str],
    ethnicity: Ethnicity,
    client: CensusClient,
    sort_by: str = "population",
    timeout: Optional[float] = None,
) -> List[StateComparison]:
    """Compare several states at once.

    Each state is fetched independently; a state that fails shows up as a
    row flagged ``error`` with zeroed figures instead of failing the batch.
    """

    if sort_by not in SORT_KEYS:
        raise ValidationError(
            f"sort_by must be one of: {', '.join(SORT_KEYS)}",
            field="sort_by",
            value=sort_by,
        )
    if not state_codes:
        raise ValidationError("At least one state code is required", field="states")

    codes = list(dict.fromkeys(validate_state_code(code) for code in state_codes))
    limit = client.settings.max_comparison_states
    if len(codes) > limit:
        raise ValidationError(
            f"At most {limit} states can be compared at once",
            field="states",
            value=len(codes),
        )

    results = await settle_all(
        (_compare_one(code, ethnicity, client, timeout) for code in codes),
        limit=len(codes),
    )

    rows = []
    for code, result in zip(codes, results):
        if isinstance(result, BaseException):
            logger.warning(
                f"State comparison failed for {code}: {result}",
                extra={"state_code": code, "error_type": type(result).__name__},
            )
            rows.append(
                StateComparison(
                    state_code=code,
                    state_name=state_name(code),
                    error=True,
                    error_message=str(result),
                )
            )
        else:
            rows.append(result)

    return sorted(rows, key=lambda row: _sort_value(row, sort_by), reverse=True)
