"""Static sample datasets returned when live loading yields nothing."""

from __future__ import annotations

from typing import Dict, List, Tuple

from .models import (
    AgeDistribution,
    EducationDistribution,
    Ethnicity,
    IncomeDistribution,
    LocationRecord,
)
from .synthetic import (
    age_from_population,
    education_from_population,
    income_from_population,
)

MEXICAN_BACKUP: Tuple[LocationRecord, ...] = (
    LocationRecord(
        name="East Los Angeles",
        state="California",
        state_code="06",
        place_id="22230",
        population=97116,
        percentage=96.8,
        zip_code="90022",
        age_groups=AgeDistribution(24279, 14567, 19423, 14567, 9712, 7769, 6798),
        income_groups=IncomeDistribution(21366, 29135, 24279, 12625, 9712),
        education_levels=EducationDistribution(29135, 27192, 21366, 14567, 4856),
    ),
    LocationRecord(
        name="Laredo",
        state="Texas",
        state_code="48",
        place_id="41464",
        population=236091,
        percentage=95.4,
        zip_code="78040",
        age_groups=AgeDistribution(59023, 35414, 47218, 35414, 23609, 18887, 16526),
        income_groups=IncomeDistribution(51940, 70827, 59023, 30692, 23609),
        education_levels=EducationDistribution(70827, 66105, 51940, 35414, 11805),
    ),
    LocationRecord(
        name="Brownsville",
        state="Texas",
        state_code="48",
        place_id="10768",
        population=182781,
        percentage=93.9,
        zip_code="78520",
        age_groups=AgeDistribution(45695, 27417, 36556, 27417, 18278, 14622, 12795),
        income_groups=IncomeDistribution(40212, 54834, 45695, 23761, 18278),
        education_levels=EducationDistribution(54834, 51179, 40212, 27417, 9139),
    ),
    LocationRecord(
        name="McAllen",
        state="Texas",
        state_code="48",
        place_id="45384",
        population=142210,
        percentage=85.3,
        zip_code="78501",
        age_groups=AgeDistribution(35553, 21332, 28442, 21332, 14221, 11377, 9955),
        income_groups=IncomeDistribution(31286, 42663, 35553, 18487, 14221),
        education_levels=EducationDistribution(42663, 39819, 31286, 21332, 7111),
    ),
    LocationRecord(
        name="El Paso",
        state="Texas",
        state_code="48",
        place_id="24000",
        population=678058,
        percentage=82.9,
        zip_code="79901",
        age_groups=AgeDistribution(
            169515, 101709, 135612, 101709, 67806, 54245, 47464
        ),
        income_groups=IncomeDistribution(149173, 203417, 169515, 88147, 67806),
        education_levels=EducationDistribution(
            203417, 189856, 149173, 101709, 33903
        ),
    ),
)


def _sample(
    name: str,
    state: str,
    state_code: str,
    place_id: str,
    population: int,
    percentage: float,
    zip_code: str,
) -> LocationRecord:
    return LocationRecord(
        name=name,
        state=state,
        state_code=state_code,
        place_id=place_id,
        population=population,
        percentage=percentage,
        zip_code=zip_code,
        age_groups=age_from_population(population),
        income_groups=income_from_population(population),
        education_levels=education_from_population(population),
    )


SALVADORAN_BACKUP: Tuple[LocationRecord, ...] = (
    _sample("Los Angeles", "California", "06", "44000", 80000, 1.6, "06440"),
    _sample("Houston", "Texas", "48", "35000", 65000, 2.8, "48350"),
    _sample("New York", "New York", "36", "51000", 50000, 0.6, "36510"),
)

_BACKUPS: Dict[Ethnicity, Tuple[LocationRecord, ...]] = {
    Ethnicity.MEXICAN: MEXICAN_BACKUP,
    Ethnicity.SALVADORAN: SALVADORAN_BACKUP,
}


def backup_records(ethnicity: Ethnicity) -> List[LocationRecord]:
    """Return the sample dataset for ``ethnicity``; never touches the network."""

    return list(_BACKUPS[ethnicity])
