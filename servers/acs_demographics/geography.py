"""Resolve search input to Census geographic units."""

from __future__ import annotations

import re
from typing import Dict, Final, List, Optional, Sequence, Tuple

from .client import CensusClient
from .models import GeographicUnit
from .normalizer import require_columns, split_place_name
from .states import state_name
from .utils.exceptions import NotFoundError, ValidationError
from .utils.logger import get_logger

logger = get_logger("geography")

ZIP_PATTERN: Final = re.compile(r"[0-9]{5}")
STATE_CODE_PATTERN: Final = re.compile(r"[0-9]{2}")
PLACE_ID_PATTERN: Final = re.compile(r"[0-9]+")

# Large cities resolved without a network call: name -> (label, state FIPS, place id).
# Checked in this order; the first entry matching either way round wins.
KNOWN_CITIES: Final[Dict[str, Tuple[str, str, str]]] = {
    "miami": ("Miami", "12", "45000"),
    "los angeles": ("Los Angeles", "06", "44000"),
    "new york": ("New York", "36", "51000"),
    "chicago": ("Chicago", "17", "14000"),
    "houston": ("Houston", "48", "35000"),
    "phoenix": ("Phoenix", "04", "55000"),
    "philadelphia": ("Philadelphia", "42", "60000"),
    "san antonio": ("San Antonio", "48", "65000"),
    "dallas": ("Dallas", "48", "19000"),
    "san jose": ("San Jose", "06", "68000"),
    "austin": ("Austin", "48", "05000"),
    "jacksonville": ("Jacksonville", "12", "35000"),
    "san francisco": ("San Francisco", "06", "67000"),
    "columbus": ("Columbus", "39", "18000"),
    "indianapolis": ("Indianapolis", "18", "36000"),
    "seattle": ("Seattle", "53", "63000"),
    "denver": ("Denver", "08", "20000"),
    "washington": ("Washington", "11", "50000"),
    "boston": ("Boston", "25", "07000"),
    "el paso": ("El Paso", "48", "24000"),
    "nashville": ("Nashville", "47", "52006"),
    "detroit": ("Detroit", "26", "22000"),
    "oklahoma city": ("Oklahoma City", "40", "55000"),
    "portland": ("Portland", "41", "59000"),
    "las vegas": ("Las Vegas", "32", "40000"),
    "memphis": ("Memphis", "47", "48000"),
    "louisville": ("Louisville", "21", "48000"),
    "baltimore": ("Baltimore", "24", "04000"),
    "milwaukee": ("Milwaukee", "55", "53000"),
    "albuquerque": ("Albuquerque", "35", "02000"),
    "tucson": ("Tucson", "04", "77000"),
    "fresno": ("Fresno", "06", "27000"),
    "sacramento": ("Sacramento", "06", "64000"),
    "mesa": ("Mesa", "04", "46000"),
    "atlanta": ("Atlanta", "13", "04000"),
}


def validate_zip(zip_code: str) -> str:
    if not isinstance(zip_code, str) or not ZIP_PATTERN.fullmatch(zip_code):
        raise ValidationError(
            "ZIP code must be exactly 5 digits", field="zip_code", value=zip_code
        )
    return zip_code


def validate_state_code(state_code: Optional[str]) -> str:
    if not state_code:
        raise ValidationError("State code is required", field="state_code")
    if not isinstance(state_code, str) or not STATE_CODE_PATTERN.fullmatch(state_code):
        raise ValidationError(
            "State code must be 2 digits (e.g. 06 for California)",
            field="state_code",
            value=state_code,
        )
    return state_code


def validate_place_id(place_id: str) -> str:
    if not isinstance(place_id, str) or not PLACE_ID_PATTERN.fullmatch(place_id):
        raise ValidationError(
            "Place ID must contain only digits", field="place_id", value=place_id
        )
    return place_id


def resolve_by_zip(zip_code: str) -> GeographicUnit:
    """Resolve a ZIP code to its ZIP code tabulation area."""

    zip_code = validate_zip(zip_code)
    return GeographicUnit(
        name=f"ZCTA {zip_code}", state_name="", state_code="", zip_code=zip_code
    )


def resolve_by_state_and_place(
    state_code: str, place_id: str, name: Optional[str] = None
) -> GeographicUnit:
    state_code = validate_state_code(state_code)
    place_id = validate_place_id(place_id)
    return GeographicUnit(
        name=name or f"Place {place_id}",
        state_name=state_name(state_code),
        state_code=state_code,
        place_id=place_id,
    )


def _matches(candidate: str, query: str) -> bool:
    return bool(candidate) and (query in candidate or candidate in query)


def match_known_city(name: str) -> Optional[GeographicUnit]:
    query = " ".join(name.split()).lower()
    for key, (label, state_code, place_id) in KNOWN_CITIES.items():
        if _matches(key, query):
            return GeographicUnit(
                name=label,
                state_name=state_name(state_code),
                state_code=state_code,
                place_id=place_id,
            )
    return None


def unit_from_place_record(record: Dict[str, str]) -> GeographicUnit:
    name, state = split_place_name(record.get("NAME", ""))
    state_code = record.get("state", "")
    return GeographicUnit(
        name=name,
        state_name=state or state_name(state_code),
        state_code=state_code,
        place_id=record.get("place", ""),
    )


async def resolve_by_city_name(
    name: str, client: CensusClient, *, timeout: Optional[float] = None
) -> GeographicUnit:
    """Resolve a free-text city name.

    The static table is tried first. Otherwise every place in the country is
    fetched and the first one, in API response order, whose name contains the
    query (or is contained in it) wins. There is no ranking, so an ambiguous
    query can resolve to a smaller place listed earlier.
    """

    if not isinstance(name, str) or not name.strip():
        raise ValidationError("City name is required", field="city", value=name)

    known = match_known_city(name)
    if known is not None:
        logger.debug("Resolved city from static table", extra={"city": known.name})
        return known

    query = " ".join(name.split()).lower()
    table = await client.get_table(
        [],
        {"for": "place:*", "in": "state:*"},
        operation="city_search",
        timeout=timeout or client.settings.lookup_timeout,
    )
    require_columns(table.headers, ["NAME", "state", "place"])

    for record in table.to_records():
        place_name = record["NAME"].split(",")[0].strip().lower()
        if _matches(place_name, query):
            return unit_from_place_record(record)

    raise NotFoundError(f"No city matching '{name.strip()}' was found", query=name)


async def resolve_all_places_for_state(
    state_code: str,
    client: CensusClient,
    *,
    variables: Sequence[str] = (),
    timeout: Optional[float] = None,
) -> List[Tuple[GeographicUnit, Dict[str, str]]]:
    """List every place the API knows inside one state.

    Each unit comes with its response record, holding ``variables``.
    """

    state_code = validate_state_code(state_code)
    table = await client.get_table(
        list(variables),
        {"for": "place:*", "in": f"state:{state_code}"},
        operation="state_places",
        timeout=timeout or client.settings.lookup_timeout,
    )
    require_columns(table.headers, ["NAME", "state", "place", *variables])
    return [
        (unit_from_place_record(record), record) for record in table.to_records()
    ]
