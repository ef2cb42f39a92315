"""Value types shared by the acquisition pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from .config import MEXICAN_POPULATION_VAR, SALVADORAN_POPULATION_VAR


class Ethnicity(str, Enum):
    """Target populations, each selected by one B03001 origin variable."""

    MEXICAN = "mexican"
    SALVADORAN = "salvadoran"

    @property
    def variable(self) -> str:
        if self is Ethnicity.MEXICAN:
            return MEXICAN_POPULATION_VAR
        return SALVADORAN_POPULATION_VAR

    @property
    def min_population(self) -> int:
        """Places must exceed this target population to enter the basic list.

        The Salvadoran community is much smaller nationally, so its cut-off
        is lower.
        """
        if self is Ethnicity.MEXICAN:
            return 1000
        return 500

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True, slots=True)
class GeographicUnit:
    """A place, ZCTA or state addressable by the Census API."""

    name: str
    state_name: str
    state_code: str
    place_id: Optional[str] = None
    zip_code: Optional[str] = None

    def geography(self) -> Dict[str, str]:
        """Return the ``for``/``in`` query parameters selecting this unit."""

        if self.zip_code:
            return {"for": f"zip code tabulation area:{self.zip_code}"}
        if self.place_id:
            return {"for": f"place:{self.place_id}", "in": f"state:{self.state_code}"}
        return {"for": f"state:{self.state_code}"}

    @property
    def label(self) -> str:
        if self.zip_code:
            return f"ZCTA {self.zip_code}"
        if self.place_id:
            return f"{self.name} ({self.state_code}/{self.place_id})"
        return f"{self.state_name} ({self.state_code})"


@dataclass(frozen=True, slots=True)
class AgeDistribution:
    under18: int
    age18to24: int
    age25to34: int
    age35to44: int
    age45to54: int
    age55to64: int
    age65plus: int


@dataclass(frozen=True, slots=True)
class IncomeDistribution:
    under25k: int
    income25kto50k: int
    income50kto75k: int
    income75kto100k: int
    income100kplus: int


@dataclass(frozen=True, slots=True)
class EducationDistribution:
    less_high_school: int
    high_school: int
    some_college: int
    bachelors: int
    graduate: int


@dataclass(frozen=True, slots=True)
class LocationRecord:
    """One place in a loaded dataset.

    ``population`` is the target-ethnicity count, not the total population.
    ``synthetic_metrics`` names the distributions that were derived rather
    than fetched, so consumers can tell real enrichment from placeholders.
    """

    name: str
    state: str
    population: int
    percentage: float
    zip_code: str
    state_code: Optional[str] = None
    place_id: Optional[str] = None
    age_groups: Optional[AgeDistribution] = None
    income_groups: Optional[IncomeDistribution] = None
    education_levels: Optional[EducationDistribution] = None
    synthetic_metrics: Tuple[str, ...] = ()

    def enriched(
        self,
        age_groups: AgeDistribution,
        income_groups: IncomeDistribution,
        education_levels: EducationDistribution,
        synthetic_metrics: Sequence[str] = (),
    ) -> "LocationRecord":
        return replace(
            self,
            age_groups=age_groups,
            income_groups=income_groups,
            education_levels=education_levels,
            synthetic_metrics=tuple(synthetic_metrics),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["synthetic_metrics"] = list(self.synthetic_metrics)
        return data


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """Category tags per dimension; empty or ``["all"]`` means unrestricted."""

    age_range: Tuple[str, ...] = ()
    income_range: Tuple[str, ...] = ()
    education_level: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AdvancedCriteria:
    """Numeric ranges, a state list and significance tags.

    Bounds left as ``None`` do not restrict. ``states`` holds full state
    names. The significance tags keep a record when one of them covers more
    than a tenth of the record's distribution.
    """

    min_population: Optional[int] = None
    max_population: Optional[int] = None
    min_percentage: Optional[float] = None
    max_percentage: Optional[float] = None
    states: Tuple[str, ...] = ()
    min_income: Optional[float] = None
    max_income: Optional[float] = None
    significant_age: Tuple[str, ...] = ()
    significant_education: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LabeledRecord:
    """A single-location lookup result.

    ``display`` holds the formatted, user-facing subset; ``values`` the same
    figures as plain numbers; ``raw`` the untouched header to value map from
    the API response.
    """

    name: str
    state: str
    display: Dict[str, str]
    values: Dict[str, Any]
    raw: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state,
            "display": dict(self.display),
            "values": dict(self.values),
            "raw": dict(self.raw),
        }
