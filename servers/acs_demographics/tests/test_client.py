import asyncio

import httpx
import pytest

from acs_demographics.client import parse_table
from acs_demographics.utils.exceptions import (
    APIError,
    ConfigurationError,
    FormatError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
)
from acs_demographics.utils.rate_limiter import RateLimiter

from .fakes import census_response, error_response, make_client, params

STATE_GEO = {"for": "state:06"}


def _get(client, variables=("B19013_001E",), geography=STATE_GEO, timeout=5.0):
    async def run():
        async with client:
            return await client.get_table(
                list(variables), geography, operation="test", timeout=timeout
            )

    return asyncio.run(run())


@pytest.mark.parametrize("payload", [None, {}, "text", [], [["NAME"]]])
def test_parse_table_rejects_short_or_non_array_payloads(payload):
    with pytest.raises(FormatError):
        parse_table(payload)


def test_parse_table_drops_rows_with_wrong_length():
    table = parse_table([["NAME", "state"], ["California", "06"], ["Texas"], ["Ohio", "39", "x"]])

    assert table.headers == ["NAME", "state"]
    assert table.rows == [["California", "06"]]
    assert table.to_records() == [{"NAME": "California", "state": "06"}]


def test_parse_table_without_valid_rows_is_a_format_error():
    with pytest.raises(FormatError):
        parse_table([["NAME", "state"], ["Texas"]])


def test_parse_table_converts_nulls_to_empty_strings():
    table = parse_table([["B19013_001E", "NAME"], [None, "Somewhere"]])

    assert table.rows == [["", "Somewhere"]]


def test_get_table_builds_query_with_key():
    seen = []

    def handler(request):
        seen.append(params(request))
        return census_response(["B19013_001E", "NAME", "state"], ["80000", "California", "06"])

    table = _get(make_client(handler))

    assert table.to_records()[0]["B19013_001E"] == "80000"
    assert seen == [
        {"get": "B19013_001E,NAME", "for": "state:06", "key": "test-key"}
    ]


def test_get_table_maps_http_status_to_api_error():
    client = make_client(lambda request: error_response(500))

    with pytest.raises(APIError) as exc_info:
        _get(client)

    assert exc_info.value.status_code == 500


def test_get_table_rejects_malformed_json():
    client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(FormatError):
        _get(client)


def test_get_table_rejects_header_only_response():
    client = make_client(lambda request: httpx.Response(200, json=[["NAME", "state"]]))

    with pytest.raises(FormatError):
        _get(client)


def test_get_table_without_api_key_makes_no_request():
    calls = []

    def handler(request):
        calls.append(request)
        return census_response(["NAME"], ["California"])

    with pytest.raises(ConfigurationError):
        _get(make_client(handler, api_key=None))
    assert calls == []


def test_get_table_times_out():
    async def slow(request):
        await asyncio.sleep(1)
        return census_response(["NAME"], ["California"])

    with pytest.raises(TimeoutError) as exc_info:
        _get(make_client(slow), timeout=0.05)

    assert exc_info.value.timeout_duration == 0.05


def test_get_table_maps_transport_failure_to_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(APIError) as exc_info:
        _get(make_client(handler))

    assert exc_info.value.status_code is None


def test_queued_request_waits_within_its_deadline():
    calls = []

    def handler(request):
        calls.append(request)
        return census_response(["NAME", "state"], ["California", "06"])

    limiter = RateLimiter(capacity=1, refill_rate=10.0)
    client = make_client(handler, limiter=limiter)

    async def run():
        async with client:
            for _ in range(2):
                await client.get_table([], STATE_GEO, operation="test", timeout=2.0)

    asyncio.run(run())

    assert len(calls) == 2
    assert limiter.queued_requests == 1


def test_deadline_expiring_in_queue_is_a_rate_limit_error():
    calls = []

    def handler(request):
        calls.append(request)
        return census_response(["NAME", "state"], ["California", "06"])

    client = make_client(handler, limiter=RateLimiter(capacity=1, refill_rate=0.5))

    async def run():
        async with client:
            await client.get_table([], STATE_GEO, operation="test", timeout=2.0)
            await client.get_table([], STATE_GEO, operation="test", timeout=0.1)

    with pytest.raises(RateLimitError) as exc_info:
        asyncio.run(run())

    assert len(calls) == 1
    assert exc_info.value.retry_after > 0


def test_empty_body_is_a_format_error_by_default():
    client = make_client(lambda request: httpx.Response(204))

    with pytest.raises(FormatError):
        _get(client)


def test_empty_body_can_mean_not_found():
    client = make_client(lambda request: httpx.Response(204))

    async def run():
        async with client:
            return await client.get_table(
                ["B19013_001E"],
                {"for": "zip code tabulation area:00000"},
                operation="test",
                timeout=5.0,
                empty_is_not_found=True,
            )

    with pytest.raises(NotFoundError) as exc_info:
        asyncio.run(run())

    assert exc_info.value.query == "zip code tabulation area:00000"


def test_rate_limiter_reports_wait_until_next_token():
    limiter = RateLimiter(capacity=2, refill_rate=4.0)

    async def run():
        await limiter.acquire()
        await limiter.acquire()

    asyncio.run(run())

    assert 0 < limiter.retry_after() <= 0.25
    assert limiter.get_status()["capacity"] == 2
