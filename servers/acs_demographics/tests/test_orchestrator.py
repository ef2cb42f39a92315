import asyncio
import logging

import pytest

from acs_demographics.backup import backup_records
from acs_demographics.config import Settings
from acs_demographics.models import (
    AgeDistribution,
    EducationDistribution,
    Ethnicity,
    IncomeDistribution,
)
from acs_demographics.orchestrator import (
    CENSUS_SOURCE,
    LoadPhase,
    PopulationLoader,
    first_available,
    load_population_data,
    settle_all,
)
from acs_demographics.synthetic import (
    age_from_population,
    education_from_population,
    income_from_median,
    income_from_population,
)
from acs_demographics.utils.exceptions import APIError, TimeoutError
from acs_demographics.utils.rate_limiter import RateLimiter

from .fakes import PlaceApi, local_census_server, make_client, make_live_client

FIVE_UNITS = [
    ("Alpha city", "06", "10001", 400000, 200000),
    ("Bravo city", "48", "10002", 300000, 150000),
    ("Charlie city", "04", "10003", 200000, 100000),
    ("Delta city", "12", "10004", 100000, 50000),
    ("Echo city", "36", "10005", 50000, 25000),
]

REAL_AGE = AgeDistribution(5000, 3000, 4000, 3000, 2000, 1600, 1400)
REAL_INCOME = IncomeDistribution(3200, 3500, 2500, 500, 300)
REAL_EDUCATION = EducationDistribution(7500, 0, 2000, 1000, 500)


def _load(api, ethnicity=Ethnicity.MEXICAN, timeout=None, api_key="test-key", **overrides):
    async def run():
        async with make_client(api, api_key=api_key, **overrides) as client:
            loader = PopulationLoader(client)
            records = await loader.load(ethnicity, timeout=timeout)
            return loader, records

    return asyncio.run(run())


def test_single_unit_end_to_end():
    api = PlaceApi([("Test City", "06", "12345", 100000, 50000)])

    loader, records = _load(api)

    assert loader.phase is LoadPhase.DONE
    assert loader.used_backup is False
    assert len(records) == 1
    record = records[0]
    assert record.name == "Test City"
    assert record.state == "California"
    assert record.population == 50000
    assert record.percentage == 50.0
    assert record.age_groups == REAL_AGE
    assert record.income_groups == REAL_INCOME
    assert record.education_levels == REAL_EDUCATION
    assert record.synthetic_metrics == ()


def test_basic_list_failure_returns_backup_exactly():
    loader, records = _load(PlaceApi(FIVE_UNITS, basic_status=500))

    assert records == backup_records(Ethnicity.MEXICAN)
    assert loader.used_backup is True
    assert loader.phase is LoadPhase.DONE


def test_salvadoran_backup_on_failure():
    _, records = _load(PlaceApi([], basic_status=503), ethnicity=Ethnicity.SALVADORAN)

    assert records == backup_records(Ethnicity.SALVADORAN)
    assert [r.name for r in records] == ["Los Angeles", "Houston", "New York"]


def test_missing_api_key_returns_backup():
    api = PlaceApi(FIVE_UNITS)

    loader, records = _load(api, api_key=None)

    assert records == backup_records(Ethnicity.MEXICAN)
    assert api.requests == []


def test_basic_list_timeout_returns_backup():
    async def slow(request):
        await asyncio.sleep(1)
        raise AssertionError("request should have been cancelled")

    loader, records = _load(slow, timeout=0.05)

    assert records == backup_records(Ethnicity.MEXICAN)
    assert loader.used_backup is True


@pytest.mark.parametrize(
    "timeout, overrides",
    [(None, {"basic_list_timeout": 4.0}), (4.0, {})],
)
def test_basic_list_deadline_is_not_capped_by_lookup_timeout(timeout, overrides):
    api = PlaceApi([("Slowtown city", "06", "70000", 50000, 20000)])

    async def run():
        async with local_census_server(
            api, delay=lambda query: 1.5 if query["for"] == "place:*" else 0.0
        ) as base_url:
            async with make_live_client(
                base_url, lookup_timeout=1.0, **overrides
            ) as client:
                loader = PopulationLoader(client)
                return loader, await loader.load(Ethnicity.MEXICAN, timeout=timeout)

    loader, records = asyncio.run(run())

    assert loader.used_backup is False
    assert [r.name for r in records] == ["Slowtown city"]
    assert records[0].synthetic_metrics == ()


def test_slow_basic_list_past_its_deadline_returns_backup():
    api = PlaceApi([("Slowtown city", "06", "70000", 50000, 20000)])

    async def run():
        async with local_census_server(
            api, delay=lambda query: 1.5 if query["for"] == "place:*" else 0.0
        ) as base_url:
            async with make_live_client(base_url) as client:
                loader = PopulationLoader(client)
                return loader, await loader.load(Ethnicity.MEXICAN, timeout=0.5)

    loader, records = asyncio.run(run())

    assert loader.used_backup is True
    assert records == backup_records(Ethnicity.MEXICAN)


def test_back_to_back_loads_fit_the_default_request_budget():
    units = [
        (f"Place {i}", "06", str(20000 + i), 100000, 50000 - i) for i in range(50)
    ]
    api = PlaceApi(units)
    defaults = Settings()

    async def run():
        limiter = RateLimiter(defaults.rate_limit_capacity, defaults.rate_limit_refill_rate)
        async with make_client(api, limiter=limiter) as client:
            first = await PopulationLoader(client).load(Ethnicity.MEXICAN)
            second = await PopulationLoader(client).load(Ethnicity.MEXICAN)
            return limiter, first, second

    limiter, first, second = asyncio.run(run())

    assert len(first) == len(second) == 50
    assert [r.name for r in first + second if r.synthetic_metrics] == []
    assert limiter.queued_requests == 0
    assert len(api.requests) == 2 * (1 + 3 * 50)


def test_empty_basic_list_returns_backup():
    api = PlaceApi([("Tiny town", "06", "99999", 2000, 900)])

    loader, records = _load(api)

    assert records == backup_records(Ethnicity.MEXICAN)
    assert loader.used_backup is True


def test_failing_units_keep_synthetic_data():
    api = PlaceApi(FIVE_UNITS, failing_places={"10002", "10004"})

    _, records = _load(api)

    assert [r.place_id for r in records] == ["10001", "10002", "10003", "10004", "10005"]
    by_place = {r.place_id: r for r in records}
    for place_id in ("10002", "10004"):
        record = by_place[place_id]
        assert record.synthetic_metrics == ("age", "income", "education")
        assert record.age_groups == age_from_population(record.population)
        assert record.income_groups == income_from_population(record.population)
        assert record.education_levels == education_from_population(record.population)
    for place_id in ("10001", "10003", "10005"):
        assert by_place[place_id].synthetic_metrics == ()
        assert by_place[place_id].age_groups == REAL_AGE


def test_metric_failure_only_replaces_that_metric():
    api = PlaceApi(FIVE_UNITS[:1], broken_metrics={"10001": ["B19013"]})

    _, records = _load(api)

    record = records[0]
    assert record.synthetic_metrics == ("income",)
    assert record.income_groups == income_from_median(50000)
    assert record.age_groups == REAL_AGE
    assert record.education_levels == REAL_EDUCATION


def test_all_metrics_failing_use_default_seeds():
    api = PlaceApi(
        FIVE_UNITS[:1], broken_metrics={"10001": ["B01001", "B19013", "B15003"]}
    )

    _, records = _load(api)

    record = records[0]
    assert record.synthetic_metrics == ("age", "income", "education")
    assert record.age_groups == age_from_population(10000)
    assert record.income_groups == income_from_median(50000)
    assert record.education_levels == education_from_population(10000)


def test_thresholds_and_truncation():
    units = [
        ("Big", "06", "00001", 90000, 9000),
        ("Edge", "06", "00002", 50000, 1000),
        ("Just over", "06", "00003", 50000, 1001),
        ("Medium", "06", "00004", 50000, 5000),
    ]

    _, records = _load(PlaceApi(units))
    assert [r.name for r in records] == ["Big", "Medium", "Just over"]

    _, records = _load(PlaceApi(units), max_units=2)
    assert [r.name for r in records] == ["Big", "Medium"]


def test_salvadoran_threshold_and_variable():
    units = [
        ("Small", "06", "00001", 10000, 501),
        ("Smaller", "06", "00002", 10000, 500),
    ]
    api = PlaceApi(units, target_var="B03001_006E")

    _, records = _load(api, ethnicity=Ethnicity.SALVADORAN)

    assert [r.name for r in records] == ["Small"]
    assert api.requests[0]["get"] == "B03001_001E,B03001_006E,NAME"


def test_ties_keep_api_order():
    units = [
        ("First", "06", "00001", 50000, 5000),
        ("Largest", "06", "00002", 50000, 8000),
        ("Second", "06", "00003", 50000, 5000),
        ("Third", "06", "00004", 50000, 5000),
    ]

    _, records = _load(PlaceApi(units))

    assert [r.name for r in records] == ["Largest", "First", "Second", "Third"]


def test_units_whose_task_fails_are_dropped(monkeypatch):
    api = PlaceApi(FIVE_UNITS[:2])

    async def run():
        async with make_client(api) as client:
            loader = PopulationLoader(client)
            real_enrich = loader._enrich

            async def flaky(record):
                if record.place_id == "10001":
                    raise RuntimeError("task crashed")
                return await real_enrich(record)

            monkeypatch.setattr(loader, "_enrich", flaky)
            return loader, await loader.load(Ethnicity.MEXICAN)

    loader, records = asyncio.run(run())

    assert [r.place_id for r in records] == ["10002"]
    assert loader.used_backup is False


def test_load_population_data_wrapper():
    async def run():
        async with make_client(PlaceApi(FIVE_UNITS[:3])) as client:
            return await load_population_data(Ethnicity.MEXICAN, client)

    records = asyncio.run(run())

    assert [r.name for r in records] == ["Alpha city", "Bravo city", "Charlie city"]


def test_first_available_skips_failed_sources():
    async def broken():
        raise APIError("down", status_code=503)

    async def slow():
        raise TimeoutError("slow", timeout_duration=8)

    outcome = asyncio.run(
        first_available([("census", broken), ("mirror", slow), ("synthetic", lambda: 42)])
    )

    assert outcome.available
    assert outcome.source == "synthetic"
    assert outcome.value == 42


def test_first_available_reports_unavailable():
    async def broken():
        raise APIError("down")

    outcome = asyncio.run(first_available([(CENSUS_SOURCE, broken)]))

    assert not outcome.available


def test_first_available_propagates_unexpected_errors():
    async def crash():
        raise RuntimeError("bug")

    with pytest.raises(RuntimeError):
        asyncio.run(first_available([("census", crash), ("synthetic", lambda: 1)]))


def test_settle_all_waits_for_every_task():
    finished = []

    async def ok(value, delay):
        await asyncio.sleep(delay)
        finished.append(value)
        return value

    async def fail():
        raise ValueError("nope")

    results = asyncio.run(settle_all([ok("a", 0.02), fail(), ok("c", 0.01)], limit=2))

    assert results[0] == "a"
    assert isinstance(results[1], ValueError)
    assert results[2] == "c"
    assert sorted(finished) == ["a", "c"]


@pytest.fixture
def fallback_log(monkeypatch):
    """Fallback records logged under the package logger during the test."""
    records = []

    class Collector(logging.Handler):
        def emit(self, record):
            if getattr(record, "component", None) == "fallback":
                records.append(record)

    package_logger = logging.getLogger("acs_demographics")
    handler = Collector()
    monkeypatch.setattr(package_logger, "propagate", False)
    package_logger.addHandler(handler)
    try:
        yield records
    finally:
        package_logger.removeHandler(handler)


def test_metric_fallback_is_logged_with_source_and_unit(fallback_log):
    api = PlaceApi(FIVE_UNITS[:1], broken_metrics={"10001": ["B19013"]})

    _load(api)

    assert len(fallback_log) == 1
    record = fallback_log[0]
    assert record.levelno == logging.WARNING
    assert record.metric == "income"
    assert record.fallback_source == "synthetic"
    assert record.failed_source == "census"
    assert record.error_code == "API_ERROR"
    assert "10001" in record.unit


def test_unit_fallback_is_logged_for_every_metric(fallback_log):
    _load(PlaceApi(FIVE_UNITS[:2], failing_places={"10002"}))

    assert [(r.metric, r.fallback_source) for r in fallback_log] == [("all", "synthetic")]
    assert "10002" in fallback_log[0].unit
    assert fallback_log[0].error_code == "RuntimeError"


def test_backup_fallback_is_logged(fallback_log):
    _load(PlaceApi(FIVE_UNITS, basic_status=500))

    assert len(fallback_log) == 1
    record = fallback_log[0]
    assert record.metric == "basic_list"
    assert record.fallback_source == "backup"
    assert record.error_code == "API_ERROR"
    assert record.ethnicity == "mexican"
