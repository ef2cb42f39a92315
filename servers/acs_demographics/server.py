#!/usr/bin/env python3
"""ACS demographics MCP server: tool definitions and handlers."""

import time
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from .client import CensusClient, get_census_client
from .config import settings
from .credentials import validate_api_key
from .filters import (
    apply_advanced_filters,
    apply_filters,
    build_advanced_criteria,
    build_criteria,
)
from .lookups import lookup_by_city, lookup_by_place, lookup_by_zip
from .models import Ethnicity
from .orchestrator import PopulationLoader
from .state_summary import compare_states, list_state_places
from .states import state_name
from .utils.exceptions import (
    APIError,
    ConfigurationError,
    FormatError,
    NotFoundError,
    RateLimitError,
    TimeoutError,
    ValidationError,
)
from .utils.formatters import (
    format_error_message,
    format_labeled_record,
    format_population_summary,
    format_records_json,
    format_state_comparison,
    format_state_places,
)
from .utils.logger import get_logger, log_tool_execution, tool_call_context
from .utils.validators import validate_tool_request


# ============================================================================
# Server Setup
# ============================================================================

app = Server("acs-demographics-server")

# Outcome of the most recent dataset load, reported by get_server_status
_last_load: Dict[str, Any] = {"phase": "idle", "used_backup": False, "records": 0}

_ETHNICITY_SCHEMA = {
    "type": "string",
    "enum": [e.value for e in Ethnicity],
    "default": Ethnicity.MEXICAN.value,
    "description": "Target population: 'mexican' or 'salvadoran'",
}


def _tag_list(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


# ============================================================================
# MCP Tool Definitions
# ============================================================================


@app.list_tools()
async def handle_list_tools() -> List[Tool]:
    """Define available MCP tools for ACS demographic data"""
    return [
        Tool(
            name="load_population_data",
            description=(
                "Load the top U.S. places by Mexican or Salvadoran population from the "
                "ACS 5-year estimates, with age, income and education breakdowns. "
                "Optional filters keep places with people in the selected categories. "
                "Falls back to a sample dataset when the Census API is unavailable."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "ethnicity": _ETHNICITY_SCHEMA,
                    "age_range": _tag_list(
                        "Age tags: under18, 18to24, 25to34, 35to44, 45to54, "
                        "55to64, 65plus, or all"
                    ),
                    "income_range": _tag_list(
                        "Income tags: under25k, 25kto50k, 50kto75k, 75kto100k, "
                        "100kplus, or all"
                    ),
                    "education_level": _tag_list(
                        "Education tags: lessHighSchool, highSchool, someCollege, "
                        "bachelors, graduate, or all"
                    ),
                    "min_population": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Smallest target population to keep",
                    },
                    "max_population": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Largest target population to keep",
                    },
                    "min_percentage": {
                        "type": "number",
                        "minimum": 0,
                        "maximum": 100,
                        "description": "Smallest share of the total population, in percent",
                    },
                    "max_percentage": {
                        "type": "number",
                        "minimum": 0,
                        "maximum": 100,
                        "description": "Largest share of the total population, in percent",
                    },
                    "states": _tag_list(
                        "Keep only these states (FIPS codes, abbreviations or names)"
                    ),
                    "min_income": {
                        "type": "number",
                        "minimum": 0,
                        "description": "Lowest income estimated from the income buckets",
                    },
                    "max_income": {
                        "type": "number",
                        "minimum": 0,
                        "description": "Highest income estimated from the income buckets",
                    },
                    "significant_age": _tag_list(
                        "Keep places where one of these age tags is over 10% of people"
                    ),
                    "significant_education": _tag_list(
                        "Keep places where one of these education tags is over 10% "
                        "of adults"
                    ),
                    "limit": {
                        "type": "integer",
                        "description": "Number of records to display (1-50)",
                        "default": 20,
                        "minimum": 1,
                        "maximum": 50,
                    },
                    "include_json": {
                        "type": "boolean",
                        "description": "Append the records as JSON",
                        "default": False,
                    },
                    "timeout": {
                        "type": "number",
                        "description": "Timeout for the nationwide place query in seconds",
                    },
                },
            },
        ),
        Tool(
            name="lookup_zip",
            description=(
                "Look up population, income and education figures for one ZIP code "
                "tabulation area."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "zip_code": {
                        "type": "string",
                        "description": "5-digit ZIP code (e.g., '90022')",
                    },
                    "ethnicity": _ETHNICITY_SCHEMA,
                },
                "required": ["zip_code"],
            },
        ),
        Tool(
            name="lookup_place",
            description=(
                "Look up population, income and education figures for one Census "
                "place by state FIPS code and place ID."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "state_code": {
                        "type": "string",
                        "description": "2-digit state FIPS code (e.g., '48')",
                    },
                    "place_id": {
                        "type": "string",
                        "description": "Census place ID (e.g., '41464')",
                    },
                    "ethnicity": _ETHNICITY_SCHEMA,
                },
                "required": ["state_code", "place_id"],
            },
        ),
        Tool(
            name="lookup_city",
            description=(
                "Look up one city by name. Well-known cities resolve directly; other "
                "names are matched against all Census places, first match wins."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "city": {"type": "string", "description": "City name"},
                    "ethnicity": _ETHNICITY_SCHEMA,
                },
                "required": ["city"],
            },
        ),
        Tool(
            name="list_state_places",
            description=(
                "Rank the places in one state by Mexican or Salvadoran population, "
                "with share of total population and median household income."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "state_code": {
                        "type": "string",
                        "description": "2-digit state FIPS code",
                    },
                    "ethnicity": _ETHNICITY_SCHEMA,
                    "limit": {
                        "type": "integer",
                        "description": "Number of places to display (1-100)",
                        "default": 20,
                        "minimum": 1,
                        "maximum": 100,
                    },
                },
                "required": ["state_code"],
            },
        ),
        Tool(
            name="compare_states",
            description=(
                "Compare several states: statewide population and share, number of "
                "places with the population, and their top places. A state that "
                "cannot be loaded is reported without failing the others."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "states": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "2-digit state FIPS codes",
                    },
                    "ethnicity": _ETHNICITY_SCHEMA,
                    "sort_by": {
                        "type": "string",
                        "enum": ["population", "percentage", "cities"],
                        "default": "population",
                    },
                },
                "required": ["states"],
            },
        ),
        Tool(
            name="validate_api_key",
            description=(
                "Check a Census API key with a test query and save it locally for "
                "later requests."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "api_key": {"type": "string", "description": "Census API key"}
                },
                "required": ["api_key"],
            },
        ),
        Tool(
            name="clear_api_key",
            description="Remove the locally saved Census API key.",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


# ============================================================================
# MCP Tool Handlers
# ============================================================================


@app.call_tool()
async def handle_call_tool(
    name: str, arguments: Optional[Dict[str, Any]]
) -> List[TextContent]:
    """Handle tool execution requests, mapping failures to readable messages."""
    with tool_call_context():
        return await _call_tool(name, arguments)


async def _call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
    start_time = time.time()
    logger = get_logger("server")

    try:
        args = validate_tool_request(name, arguments)
        handler = _HANDLERS[name]
        text = await handler(args, get_census_client())

        duration_ms = (time.time() - start_time) * 1000
        log_tool_execution(logger, name, duration_ms, True)
        return [TextContent(type="text", text=text)]

    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        error_code = getattr(e, "error_code", "UNKNOWN_ERROR")
        log_tool_execution(logger, name, duration_ms, False, error_code)
        return [TextContent(type="text", text=_error_text(e, name, logger))]


def _error_text(e: Exception, name: str, logger) -> str:
    if isinstance(e, ValidationError):
        return format_error_message(
            "Invalid Format", str(e), {"field": e.field, "value": e.value}
        )
    if isinstance(e, NotFoundError):
        return format_error_message("Not Found", str(e), {"query": e.query})
    if isinstance(e, APIError):
        return format_error_message(
            "Census API Error", str(e), {"status_code": e.status_code}
        )
    if isinstance(e, FormatError):
        return format_error_message("Unexpected Census API Response", str(e))
    if isinstance(e, TimeoutError):
        return format_error_message(
            "Timeout Error", str(e), {"timeout_duration": e.timeout_duration}
        )
    if isinstance(e, RateLimitError):
        return format_error_message(
            "Rate Limit Exceeded", str(e), {"retry_after": e.retry_after}
        )
    if isinstance(e, ConfigurationError):
        return format_error_message("Missing API Key", str(e))

    logger.error(f"Unexpected error in tool {name}: {e}", exc_info=True)
    return format_error_message(
        "Internal Error",
        "An unexpected error occurred. Please try again later.",
        {"error_type": type(e).__name__},
    )


async def _handle_load_population_data(args, client: CensusClient) -> str:
    criteria = build_criteria(args.age_range, args.income_range, args.education_level)
    advanced = build_advanced_criteria(
        min_population=args.min_population,
        max_population=args.max_population,
        min_percentage=args.min_percentage,
        max_percentage=args.max_percentage,
        states=args.states,
        min_income=args.min_income,
        max_income=args.max_income,
        significant_age=args.significant_age,
        significant_education=args.significant_education,
    )

    loader = PopulationLoader(client)
    try:
        records = await loader.load(args.ethnicity, timeout=args.timeout)
    finally:
        _last_load.update(phase=loader.phase.value, used_backup=loader.used_backup)
    _last_load["records"] = len(records)

    filtered = apply_advanced_filters(apply_filters(records, criteria), advanced)
    output = format_population_summary(
        filtered,
        args.ethnicity.label,
        args.limit,
        used_backup=loader.used_backup,
        filtered_from=len(records),
    )
    if args.include_json:
        output += "\n" + format_records_json([r.to_dict() for r in filtered])
    return output


async def _handle_lookup_zip(args, client: CensusClient) -> str:
    record = await lookup_by_zip(args.zip_code, args.ethnicity, client)
    return format_labeled_record(record, f"ZIP {args.zip_code}") + _json_block(record)


async def _handle_lookup_place(args, client: CensusClient) -> str:
    record = await lookup_by_place(args.state_code, args.place_id, args.ethnicity, client)
    title = f"{record.name}, {record.state}" if record.state else record.name
    return format_labeled_record(record, title) + _json_block(record)


async def _handle_lookup_city(args, client: CensusClient) -> str:
    record = await lookup_by_city(args.city, args.ethnicity, client)
    title = f"{record.name}, {record.state}" if record.state else record.name
    return format_labeled_record(record, title) + _json_block(record)


async def _handle_list_state_places(args, client: CensusClient) -> str:
    places = await list_state_places(args.state_code, args.ethnicity, client)
    return format_state_places(
        places, state_name(args.state_code), args.ethnicity.label, args.limit
    )


async def _handle_compare_states(args, client: CensusClient) -> str:
    rows = await compare_states(args.states, args.ethnicity, client, args.sort_by)
    return format_state_comparison(rows, args.ethnicity.label, args.sort_by)


async def _handle_validate_api_key(args, client: CensusClient) -> str:
    result = await validate_api_key(args.api_key, client)
    if result.success:
        return "✅ Census API key is valid and has been saved."
    return format_error_message(
        "API Key Rejected", result.message, {"status_code": result.status_code}
    )


async def _handle_clear_api_key(args, client: CensusClient) -> str:
    client.credentials.clear_api_key()
    if client.credentials.source == "environment":
        return (
            "🗑️ Saved API key removed. A key from the CENSUS_API_KEY environment "
            "variable is still in use."
        )
    return "🗑️ Saved API key removed."


def _json_block(record) -> str:
    return "\n" + format_records_json([record.to_dict()])


_HANDLERS = {
    "load_population_data": _handle_load_population_data,
    "lookup_zip": _handle_lookup_zip,
    "lookup_place": _handle_lookup_place,
    "lookup_city": _handle_lookup_city,
    "list_state_places": _handle_list_state_places,
    "compare_states": _handle_compare_states,
    "validate_api_key": _handle_validate_api_key,
    "clear_api_key": _handle_clear_api_key,
}


async def get_server_status() -> Dict[str, Any]:
    """Report configuration and the outcome of the last dataset load."""
    client = get_census_client()
    return {
        "environment": settings.environment,
        "dataset": settings.dataset_url,
        "api_key_source": client.credentials.source,
        "rate_limiter": client.limiter.get_status(),
        "last_load": dict(_last_load),
    }
