"""Turn raw Census header/value rows into labeled records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .config import (
    EDUCATION_BACHELORS_VAR,
    EDUCATION_MASTERS_VAR,
    EDUCATION_TOTAL_VAR,
    MEDIAN_INCOME_VAR,
    TOTAL_POPULATION_VAR,
)
from .models import Ethnicity, GeographicUnit, LabeledRecord, LocationRecord
from .states import state_name
from .synthetic import round_half_up
from .utils.exceptions import FormatError

_LEADING_INT = re.compile(r"\s*([-+]?[0-9]+)")
ZCTA_NAME_PREFIX = "ZCTA5 "


@dataclass(frozen=True, slots=True)
class NormalizationContext:
    """What a row describes: which population, and which geographic unit."""

    ethnicity: Ethnicity
    unit: Optional[GeographicUnit] = None


def parse_int(value: Any) -> int:
    """Parse the leading integer of a Census value; anything unparsable is 0."""

    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def percentage(part: int, whole: int) -> float:
    """``part / whole * 100`` to one decimal, 0.0 when ``whole`` is 0."""

    if whole <= 0:
        return 0.0
    value = round_half_up(part / whole * 1000) / 10
    return min(100.0, max(0.0, value))


def split_place_name(full_name: str) -> Tuple[str, str]:
    """Split ``"Laredo city, Texas"`` into place name and full state name."""

    parts = (full_name or "").split(", ")
    name = parts[0]
    state = state_name(parts[1]) if len(parts) > 1 else ""
    return name, state


def pseudo_zip(state_code: str, place_id: str) -> str:
    """Stand-in ZIP for a place: state FIPS plus the first three place digits.

    Places do not map onto a single ZIP code; this value only gives every
    record a five-character key.
    """

    return f"{state_code}{place_id[:3]}".ljust(5, "0")


def row_to_map(headers: Sequence[str], values: Sequence[Any]) -> Dict[str, str]:
    if len(values) != len(headers):
        raise FormatError(
            f"Row has {len(values)} values for {len(headers)} headers",
            payload_type="row",
        )
    return {str(h): "" if v is None else str(v) for h, v in zip(headers, values)}


def require_columns(headers: Sequence[str], columns: Sequence[str]) -> None:
    missing = [column for column in columns if column not in headers]
    if missing:
        raise FormatError(
            f"Census response is missing columns: {', '.join(missing)}",
            payload_type="headers",
        )


def location_from_row(row: Mapping[str, str], ethnicity: Ethnicity) -> LocationRecord:
    """Build a basic (not yet enriched) record from one place row."""

    name, state = split_place_name(row.get("NAME", ""))
    state_code = row.get("state", "")
    place_id = row.get("place", "")
    total = parse_int(row.get(TOTAL_POPULATION_VAR))
    target = parse_int(row.get(ethnicity.variable))

    return LocationRecord(
        name=name,
        state=state or state_name(state_code),
        population=target,
        percentage=percentage(target, total),
        zip_code=pseudo_zip(state_code, place_id),
        state_code=state_code,
        place_id=place_id,
    )


def format_number(value: int) -> str:
    return f"{value:,}"


def format_currency(value: Optional[int]) -> str:
    if value is None:
        return "N/A"
    return f"${value:,}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def normalize(
    headers: Sequence[str],
    values: Sequence[Any],
    context: NormalizationContext,
) -> LabeledRecord:
    """Label one lookup row.

    The figures are kept twice: formatted strings in ``display`` and plain
    numbers in ``values``. The untouched row is kept in ``raw``.
    """

    raw = row_to_map(headers, values)
    ethnicity = context.ethnicity
    unit = context.unit

    full_name = raw.get("NAME", "")
    if full_name.startswith(ZCTA_NAME_PREFIX):
        name, state = full_name[len(ZCTA_NAME_PREFIX):], ""
    else:
        name, state = split_place_name(full_name)
    if not name and unit is not None:
        name = unit.name
    if not state:
        state = state_name(raw.get("state")) or (unit.state_name if unit else "")

    total = parse_int(raw.get(TOTAL_POPULATION_VAR))
    target = parse_int(raw.get(ethnicity.variable))
    median = parse_int(raw.get(MEDIAN_INCOME_VAR))
    over_25 = parse_int(raw.get(EDUCATION_TOTAL_VAR))
    bachelors = parse_int(raw.get(EDUCATION_BACHELORS_VAR))
    masters = parse_int(raw.get(EDUCATION_MASTERS_VAR))

    # Census reports unavailable medians as large negative sentinels
    median_income = median if median > 0 else None
    target_share = percentage(target, total)
    higher_ed_share = percentage(bachelors + masters, over_25)

    numbers = {
        "total_population": total,
        "target_population": target,
        "target_percentage": target_share,
        "median_household_income": median_income,
        "population_25_plus": over_25,
        "bachelors_degree": bachelors,
        "masters_degree": masters,
        "higher_education_percentage": higher_ed_share,
    }
    if unit is not None:
        numbers["state_code"] = unit.state_code or raw.get("state", "")
        if unit.place_id:
            numbers["place_id"] = unit.place_id
        if unit.zip_code:
            numbers["zip_code"] = unit.zip_code

    label = ethnicity.label
    display = {
        "Location": name,
        "State": state or "N/A",
        "Total population": format_number(total),
        f"{label} population": format_number(target),
        f"{label} share": format_percent(target_share),
        "Median household income": format_currency(median_income),
        "Population 25+": format_number(over_25),
        "Bachelor's degree": format_number(bachelors),
        "Master's degree": format_number(masters),
        "Higher education share": format_percent(higher_ed_share),
    }

    return LabeledRecord(name=name, state=state, display=display, values=numbers, raw=raw)
