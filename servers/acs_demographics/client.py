"""Async HTTP client for the Census Bureau ACS API."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from .config import Settings, settings as default_settings
from .credentials import CredentialResolver, JsonFileKeyValueStore
from .normalizer import row_to_map
from .utils.exceptions import (
    APIError,
    ConfigurationError,
    FormatError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
)
from .utils.logger import get_logger, log_census_request
from .utils.rate_limiter import RateLimiter

logger = get_logger("client")


@dataclass(slots=True)
class CensusTable:
    """Header row plus the well-formed value rows of a Census response."""

    headers: List[str]
    rows: List[List[str]]

    def to_records(self) -> List[Dict[str, str]]:
        """Return the rows as header-keyed dictionaries."""

        return [row_to_map(self.headers, row) for row in self.rows]


def parse_table(payload: Any) -> CensusTable:
    """Validate the JSON array shape returned by the Census API.

    Rows whose length differs from the header row are dropped, never padded
    or truncated. A payload left without any usable row is a format error.
    """

    if not isinstance(payload, list) or len(payload) < 2:
        raise FormatError(
            "Unexpected response format from Census API: expected a header row "
            "and at least one data row.",
            payload_type=type(payload).__name__,
        )

    headers = payload[0]
    if not isinstance(headers, list) or not all(isinstance(h, str) for h in headers):
        raise FormatError("Census API header row is not a list of names.")

    rows: List[List[str]] = []
    rejected = 0
    for row in payload[1:]:
        if not isinstance(row, list) or len(row) != len(headers):
            rejected += 1
            continue
        rows.append(["" if value is None else str(value) for value in row])

    if rejected:
        logger.warning(
            "Rejected malformed Census rows",
            extra={"rejected_rows": rejected, "header_count": len(headers)},
        )
    if not rows:
        raise FormatError("Census API response contained no well-formed rows.")

    return CensusTable(headers=list(headers), rows=rows)


def _selector(geography: Mapping[str, str]) -> str:
    return " in ".join(geography[key] for key in ("for", "in") if key in geography)


class CensusClient:
    """Issues single GET requests against the configured ACS dataset.

    Every request is paced by the rate limiter and bounded by its own
    deadline. Failures are raised as taxonomy errors and never retried here.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialResolver] = None,
        limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.credentials = credentials or CredentialResolver(
            self.settings, JsonFileKeyValueStore(self.settings.credential_store_path)
        )
        self.limiter = limiter or RateLimiter(
            capacity=self.settings.rate_limit_capacity,
            refill_rate=self.settings.rate_limit_refill_rate,
        )
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "CensusClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _http_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    self.settings.lookup_timeout, connect=self.settings.connect_timeout
                ),
                headers={"User-Agent": self.settings.user_agent},
                transport=self._transport,
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None

    async def get_table(
        self,
        variables: Sequence[str],
        geography: Mapping[str, str],
        *,
        operation: str,
        timeout: float,
        api_key: Optional[str] = None,
        empty_is_not_found: bool = False,
    ) -> CensusTable:
        """Fetch ``variables`` plus ``NAME`` for one geography selector.

        Waiting for the rate limiter and the HTTP exchange share one deadline.

        Args:
            variables: Census variable codes to request
            geography: ``for``/``in`` query parameters
            operation: Short label used in logs
            timeout: Deadline for the whole request in seconds
            api_key: Key to use instead of the resolved one
            empty_is_not_found: Report an empty 2xx body as ``NotFoundError``;
                the API answers that way for a ZIP or place it does not know

        Returns:
            Parsed response table

        Raises:
            ConfigurationError: If no API key is available
            APIError: On a non-2xx status or transport failure
            FormatError: If the body is not the expected tabular JSON
            NotFoundError: On an empty body when ``empty_is_not_found`` is set
            TimeoutError: If the deadline expires during the HTTP exchange
            RateLimitError: If the deadline expires while still queued
        """
        key = api_key or self.credentials.get_api_key()
        if not key:
            raise ConfigurationError(
                "No Census API key is configured. Set CENSUS_API_KEY or save a key "
                "with validate_api_key.",
                config_key="census_api_key",
            )

        requested = [var for var in variables if var and var != "NAME"]
        params: Dict[str, str] = {"get": ",".join([*requested, "NAME"])}
        params.update(geography)
        endpoint = self._describe(params)
        params["key"] = key

        queued = True

        async def send() -> httpx.Response:
            nonlocal queued
            await self.limiter.acquire()
            queued = False
            return await self._http_client().get(
                self.settings.dataset_url,
                params=params,
                timeout=httpx.Timeout(
                    timeout, connect=min(timeout, self.settings.connect_timeout)
                ),
            )

        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(send(), timeout=timeout)
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            if queued:
                self._log(operation, endpoint, start_time, error_code="RATE_LIMIT_ERROR")
                retry_after = self.limiter.retry_after()
                raise RateLimitError(
                    f"No Census API request slot freed up within {timeout:g} seconds",
                    retry_after=retry_after,
                ) from e
            self._log(operation, endpoint, start_time, error_code="TIMEOUT_ERROR")
            raise TimeoutError(
                f"Census API request timed out after {timeout:g} seconds",
                timeout_duration=timeout,
            ) from e
        except httpx.HTTPError as e:
            self._log(operation, endpoint, start_time, error_code="API_ERROR")
            raise APIError(
                f"Could not reach the Census API ({type(e).__name__})"
            ) from e

        if not 200 <= response.status_code < 300:
            self._log(
                operation,
                endpoint,
                start_time,
                status_code=response.status_code,
                error_code="API_ERROR",
            )
            raise APIError(
                f"Census API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.content.strip():
            error_code = "NOT_FOUND" if empty_is_not_found else "FORMAT_ERROR"
            self._log(
                operation,
                endpoint,
                start_time,
                status_code=response.status_code,
                error_code=error_code,
            )
            if empty_is_not_found:
                raise NotFoundError(
                    "The Census API has no data for this location "
                    f"({_selector(geography)})",
                    query=_selector(geography),
                )
            raise FormatError("Census API returned an empty response")

        try:
            payload = response.json()
        except ValueError as e:
            self._log(
                operation,
                endpoint,
                start_time,
                status_code=response.status_code,
                error_code="FORMAT_ERROR",
            )
            raise FormatError("Census API returned malformed JSON") from e

        try:
            table = parse_table(payload)
        except FormatError:
            self._log(
                operation,
                endpoint,
                start_time,
                status_code=response.status_code,
                error_code="FORMAT_ERROR",
            )
            raise

        self._log(
            operation,
            endpoint,
            start_time,
            status_code=response.status_code,
            rows=len(table.rows),
        )
        return table

    def _describe(self, params: Mapping[str, str]) -> str:
        query = "&".join(f"{name}={value}" for name, value in params.items())
        return f"{self.settings.dataset_url}?{query}"

    def _log(
        self,
        operation: str,
        endpoint: str,
        start_time: float,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        **kwargs,
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        log_census_request(
            logger, operation, endpoint, duration_ms, status_code, error_code, **kwargs
        )


# Shared client for the MCP server process
_census_client: Optional[CensusClient] = None


def get_census_client() -> CensusClient:
    """Return the process-wide client, creating it on first use."""
    global _census_client
    if _census_client is None:
        _census_client = CensusClient()
    return _census_client


async def close_census_client() -> None:
    global _census_client
    if _census_client is not None:
        await _census_client.aclose()
        _census_client = None
