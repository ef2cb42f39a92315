"""Load the full dataset for an ethnicity: basic list, enrichment, fallback."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .backup import backup_records
from .client import CensusClient
from .config import (
    DEFAULT_MEDIAN_INCOME,
    DEFAULT_SEED_POPULATION,
    TOTAL_POPULATION_VAR,
    Settings,
)
from .fetchers import fetch_age_raw, fetch_education_raw, fetch_income_raw
from .models import (
    AgeDistribution,
    EducationDistribution,
    Ethnicity,
    GeographicUnit,
    IncomeDistribution,
    LocationRecord,
)
from .normalizer import location_from_row, require_columns
from .synthetic import (
    age_from_population,
    education_from_population,
    education_from_raw_counts,
    income_from_median,
    income_from_population,
)
from .utils.exceptions import FETCH_FAILURES, FormatError
from .utils.logger import get_logger, log_fallback

logger = get_logger("orchestrator")

CENSUS_SOURCE = "census"
SYNTHETIC_SOURCE = "synthetic"
BACKUP_SOURCE = "backup"
METRICS = ("age", "income", "education")

Strategy = Tuple[str, Callable[[], Union[Any, Awaitable[Any]]]]


class LoadPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ENRICHING = "enriching"
    NORMALIZING = "normalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a strategy chain: the winning source and its value."""

    source: Optional[str] = None
    value: Any = None

    @property
    def available(self) -> bool:
        return self.source is not None


UNAVAILABLE = Outcome()


async def first_available(
    strategies: Sequence[Strategy], metric: str = "data", unit: Optional[str] = None
) -> Outcome:
    """Try each data source in order and return the first that succeeds.

    Only fetch failures move on to the next source; any other exception
    propagates to the caller. Every switch is logged with the source taking
    over (``"none"`` once the chain is exhausted).
    """

    for index, (source, produce) in enumerate(strategies):
        try:
            value = produce()
            if inspect.isawaitable(value):
                value = await value
        except FETCH_FAILURES as e:
            next_source = (
                strategies[index + 1][0] if index + 1 < len(strategies) else "none"
            )
            log_fallback(
                logger,
                metric,
                next_source,
                unit=unit,
                failed_source=source,
                error_code=e.error_code,
                reason=e.message,
            )
            continue
        return Outcome(source, value)
    return UNAVAILABLE


async def settle_all(
    coroutines: Iterable[Awaitable[Any]], limit: int
) -> List[Union[Any, BaseException]]:
    """Run every coroutine, at most ``limit`` at a time, and wait for all of them.

    Results come back in input order; a failed coroutine contributes its
    exception instead of cancelling the others.
    """

    semaphore = asyncio.Semaphore(max(1, limit))

    async def _bounded(coro: Awaitable[Any]) -> Any:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_bounded(coro) for coro in coroutines), return_exceptions=True
    )


def sort_by_population(records: Iterable[LocationRecord]) -> List[LocationRecord]:
    """Largest target population first; equal populations keep their order."""

    return sorted(records, key=lambda record: record.population, reverse=True)


class PopulationLoader:
    """One dataset load, observable through ``phase`` and ``used_backup``."""

    def __init__(
        self,
        client: CensusClient,
        settings: Optional[Settings] = None,
    ):
        self.client = client
        self.settings = settings or client.settings
        self.phase = LoadPhase.IDLE
        self.used_backup = False

    def _enter(self, phase: LoadPhase) -> None:
        logger.debug(f"Load phase {self.phase.value} -> {phase.value}")
        self.phase = phase

    async def load(
        self, ethnicity: Ethnicity, timeout: Optional[float] = None
    ) -> List[LocationRecord]:
        """Load, enrich and sort the top places for ``ethnicity``.

        Args:
            ethnicity: Population to load
            timeout: Deadline for the basic list request (defaults to settings)

        Returns:
            Records sorted by target population, or the backup dataset when
            nothing could be loaded
        """
        self.used_backup = False
        self._enter(LoadPhase.FETCHING)
        try:
            try:
                basic = await self.fetch_basic_list(ethnicity, timeout)
            except FETCH_FAILURES as e:
                log_fallback(
                    logger,
                    "basic_list",
                    BACKUP_SOURCE,
                    failed_source=CENSUS_SOURCE,
                    error_code=e.error_code,
                    reason=e.message,
                    ethnicity=ethnicity.value,
                )
                return self._use_backup(ethnicity)

            self._enter(LoadPhase.ENRICHING)
            results = await settle_all(
                (self._enrich(record) for record in basic),
                self.settings.max_concurrent_units,
            )

            self._enter(LoadPhase.NORMALIZING)
            records: List[LocationRecord] = []
            for record, result in zip(basic, results):
                if isinstance(result, BaseException):
                    logger.error(
                        f"Dropping {record.name}: enrichment failed",
                        exc_info=result,
                        extra={"place_id": record.place_id},
                    )
                    continue
                records.append(result)

            if not records:
                log_fallback(
                    logger,
                    "basic_list",
                    BACKUP_SOURCE,
                    reason="no place survived enrichment",
                    ethnicity=ethnicity.value,
                )
                return self._use_backup(ethnicity)

            records = sort_by_population(records)
        except BaseException:
            self._enter(LoadPhase.FAILED)
            raise

        self._enter(LoadPhase.DONE)
        logger.info(
            "Population data loaded",
            extra={"ethnicity": ethnicity.value, "records": len(records)},
        )
        return records

    def _use_backup(self, ethnicity: Ethnicity) -> List[LocationRecord]:
        self.used_backup = True
        self._enter(LoadPhase.DONE)
        return backup_records(ethnicity)

    async def fetch_basic_list(
        self, ethnicity: Ethnicity, timeout: Optional[float] = None
    ) -> List[LocationRecord]:
        """One nationwide query for every place, filtered to the top units."""

        table = await self.client.get_table(
            [TOTAL_POPULATION_VAR, ethnicity.variable],
            {"for": "place:*", "in": "state:*"},
            operation="basic_list",
            timeout=timeout or self.settings.basic_list_timeout,
        )
        require_columns(
            table.headers,
            ["NAME", "state", "place", TOTAL_POPULATION_VAR, ethnicity.variable],
        )

        records = [
            location_from_row(row, ethnicity)
            for row in table.to_records()
        ]
        records = [r for r in records if r.population > ethnicity.min_population]
        return sort_by_population(records)[: self.settings.max_units]

    async def _enrich(self, record: LocationRecord) -> LocationRecord:
        """Attach age, income and education distributions to one place.

        A failing metric falls back to synthetic data on its own. Anything
        else going wrong replaces all three with splits of the place's
        target population.
        """
        unit = GeographicUnit(
            name=record.name,
            state_name=record.state,
            state_code=record.state_code or "",
            place_id=record.place_id,
        )
        try:
            outcomes = await asyncio.gather(
                self._age(unit), self._income(unit), self._education(unit),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
                if not outcome.available:
                    raise FormatError(f"No data source for {unit.label}")
        except Exception as e:
            log_fallback(
                logger,
                "all",
                SYNTHETIC_SOURCE,
                unit=unit.label,
                error_code=getattr(e, "error_code", type(e).__name__),
                reason=str(e),
            )
            return record.enriched(
                age_from_population(record.population),
                income_from_population(record.population),
                education_from_population(record.population),
                synthetic_metrics=METRICS,
            )

        age, income, education = outcomes
        synthetic = [
            metric
            for metric, outcome in zip(METRICS, outcomes)
            if outcome.source != CENSUS_SOURCE
        ]
        return record.enriched(age.value, income.value, education.value, synthetic)

    async def _age(self, unit: GeographicUnit) -> Outcome:
        async def from_census() -> AgeDistribution:
            total = await fetch_age_raw(
                self.client, unit, timeout=self.settings.enrichment_timeout
            )
            return age_from_population(total)

        return await first_available(
            [
                (CENSUS_SOURCE, from_census),
                (SYNTHETIC_SOURCE, lambda: age_from_population(DEFAULT_SEED_POPULATION)),
            ],
            metric="age",
            unit=unit.label,
        )

    async def _income(self, unit: GeographicUnit) -> Outcome:
        async def from_census() -> IncomeDistribution:
            median = await fetch_income_raw(
                self.client, unit, timeout=self.settings.enrichment_timeout
            )
            return income_from_median(median)

        return await first_available(
            [
                (CENSUS_SOURCE, from_census),
                (SYNTHETIC_SOURCE, lambda: income_from_median(DEFAULT_MEDIAN_INCOME)),
            ],
            metric="income",
            unit=unit.label,
        )

    async def _education(self, unit: GeographicUnit) -> Outcome:
        async def from_census() -> EducationDistribution:
            counts = await fetch_education_raw(
                self.client, unit, timeout=self.settings.enrichment_timeout
            )
            return education_from_raw_counts(
                counts.total_over_25,
                counts.high_school_grads,
                counts.bachelors_grads,
                counts.masters_grads,
            )

        return await first_available(
            [
                (CENSUS_SOURCE, from_census),
                (
                    SYNTHETIC_SOURCE,
                    lambda: education_from_population(DEFAULT_SEED_POPULATION),
                ),
            ],
            metric="education",
            unit=unit.label,
        )


async def load_population_data(
    ethnicity: Ethnicity,
    client: CensusClient,
    timeout: Optional[float] = None,
) -> List[LocationRecord]:
    """Convenience wrapper around a single :class:`PopulationLoader` run."""

    return await PopulationLoader(client).load(ethnicity, timeout=timeout)
