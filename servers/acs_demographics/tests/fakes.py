"""Fake Census API plumbing shared by the tests."""

import asyncio
from contextlib import asynccontextmanager
from typing import Callable, Dict, Iterable, Optional, Sequence

import httpx

from acs_demographics.client import CensusClient
from acs_demographics.config import Settings
from acs_demographics.credentials import CredentialResolver, InMemoryKeyValueStore
from acs_demographics.utils.rate_limiter import RateLimiter

AGE_HEADERS = ["B01001_001E", "B01001_002E", "B01001_026E", "NAME", "state", "place"]
INCOME_HEADERS = ["B19013_001E", "NAME", "state", "place"]
EDUCATION_HEADERS = [
    "B15003_001E",
    "B15003_017E",
    "B15003_022E",
    "B15003_023E",
    "NAME",
    "state",
    "place",
]


def census_response(
    headers: Sequence[str], *rows: Sequence[str], status_code: int = 200
) -> httpx.Response:
    return httpx.Response(status_code, json=[list(headers), *[list(r) for r in rows]])


def error_response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, text="error: unknown variable")


def params(request: httpx.Request) -> Dict[str, str]:
    return dict(request.url.params)


def make_client(
    handler: Callable,
    api_key: Optional[str] = "test-key",
    store: Optional[InMemoryKeyValueStore] = None,
    limiter: Optional[RateLimiter] = None,
    **overrides,
) -> CensusClient:
    test_settings = Settings(census_api_key=api_key, **overrides)
    return CensusClient(
        settings=test_settings,
        credentials=CredentialResolver(test_settings, store or InMemoryKeyValueStore()),
        limiter=limiter or RateLimiter(capacity=1000, refill_rate=1000.0),
        transport=httpx.MockTransport(handler),
    )


def make_live_client(base_url: str, **overrides) -> CensusClient:
    """Client talking real HTTP, for deadlines enforced by the transport."""
    test_settings = Settings(
        census_api_key="test-key", census_api_base_url=base_url, **overrides
    )
    return CensusClient(
        settings=test_settings,
        credentials=CredentialResolver(test_settings, InMemoryKeyValueStore()),
        limiter=RateLimiter(capacity=1000, refill_rate=1000.0),
    )


@asynccontextmanager
async def local_census_server(
    handler: Callable[[httpx.Request], httpx.Response],
    delay: Callable[[Dict[str, str]], float] = lambda query: 0.0,
):
    """Serve ``handler`` over HTTP on localhost, pausing ``delay(query)`` seconds.

    Yields the base URL to configure the client with.
    """

    async def serve(reader, writer):
        try:
            head = await reader.readuntil(b"\r\n\r\n")
            target = head.split(b" ", 2)[1].decode()
            request = httpx.Request("GET", f"http://127.0.0.1{target}")
            await asyncio.sleep(delay(params(request)))
            response = handler(request)
            body = response.content
            writer.write(
                (
                    f"HTTP/1.1 {response.status_code} {response.reason_phrase}\r\n"
                    "Content-Type: application/json\r\n"
                    f"Content-Length: {len(body)}\r\n"
                    "Connection: close\r\n\r\n"
                ).encode()
                + body
            )
            await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(serve, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        server.close()
        await server.wait_closed()


class PlaceApi:
    """Answers the nationwide place list and per-place metric queries.

    ``units`` are ``(name, state_code, place_id, total, target)`` tuples,
    returned in the given order. Metric requests for ``failing_places``
    raise ``RuntimeError``; ``broken_metrics`` maps a place to the metric
    prefixes that answer with HTTP 500.
    """

    def __init__(
        self,
        units: Iterable[tuple],
        target_var: str = "B03001_004E",
        failing_places: Iterable[str] = (),
        broken_metrics: Optional[Dict[str, Sequence[str]]] = None,
        basic_status: int = 200,
    ):
        self.units = list(units)
        self.target_var = target_var
        self.failing_places = set(failing_places)
        self.broken_metrics = broken_metrics or {}
        self.basic_status = basic_status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        query = params(request)
        self.requests.append(query)

        if query["for"] == "place:*":
            if self.basic_status != 200:
                return error_response(self.basic_status)
            return census_response(
                ["B03001_001E", self.target_var, "NAME", "state", "place"],
                *[
                    [str(total), str(target), f"{name}, {state}", state, place]
                    for name, state, place, total, target in self.units
                ],
            )

        place = query["for"].split(":", 1)[1]
        state = query["in"].split(":", 1)[1]
        if place in self.failing_places:
            raise RuntimeError(f"unexpected failure for place {place}")

        variables = query["get"]
        for prefix in self.broken_metrics.get(place, ()):
            if variables.startswith(prefix):
                return error_response(500)

        if variables.startswith("B01001"):
            return census_response(
                AGE_HEADERS, ["20000", "9800", "10200", "Place", state, place]
            )
        if variables.startswith("B19013"):
            return census_response(INCOME_HEADERS, ["30000", "Place", state, place])
        if variables.startswith("B15003"):
            return census_response(
                EDUCATION_HEADERS,
                ["10000", "2500", "1500", "500", "Place", state, place],
            )
        return error_response(400)
