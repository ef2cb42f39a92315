#!/usr/bin/env python3
"""Markdown formatters for ACS demographics tool output."""

import json
from dataclasses import fields
from typing import Any, Dict, List, Optional, Sequence

from .validators import sanitize_string


def format_distribution(title: str, distribution: Any) -> str:
    """Render one distribution as ``bucket: count`` pairs on a single line."""
    if distribution is None:
        return f"   {title}: n/a\n"

    parts = [
        f"{name} {getattr(distribution, name):,}"
        for name in (f.name for f in fields(distribution))
    ]
    return f"   {title}: " + ", ".join(parts) + "\n"


def format_location_record(record: Any, index: Optional[int] = None) -> str:
    """Format a loaded location record.

    Args:
        record: LocationRecord to render
        index: Optional rank number

    Returns:
        Formatted string representation of the record
    """
    prefix = f"{index}. " if index else ""
    name = sanitize_string(record.name, 100)
    state = sanitize_string(record.state, 50)

    output = f"{prefix}**{name}**, {state}\n"
    output += f"   👥 Population: {record.population:,} ({record.percentage:.1f}%)\n"
    output += f"   📮 ZIP key: `{record.zip_code}`"
    if record.state_code and record.place_id:
        output += f" · place `{record.state_code}/{record.place_id}`"
    output += "\n"
    output += format_distribution("🎂 Age", record.age_groups)
    output += format_distribution("💵 Income", record.income_groups)
    output += format_distribution("🎓 Education", record.education_levels)
    if record.synthetic_metrics:
        output += f"   ⚠️ Estimated: {', '.join(record.synthetic_metrics)}\n"
    return output


def format_population_summary(
    records: Sequence[Any],
    ethnicity_label: str,
    limit: int,
    used_backup: bool = False,
    filtered_from: Optional[int] = None,
) -> str:
    """Format the result of a dataset load."""
    if not records:
        return f"🔍 No {ethnicity_label} population records match the selected filters."

    output = f"📊 **{ethnicity_label} population by place** ({len(records)} record(s)"
    if filtered_from is not None and filtered_from != len(records):
        output += f", filtered from {filtered_from}"
    output += ")\n"
    if used_backup:
        output += "ℹ️ Live Census data was unavailable; showing the sample dataset.\n"
    output += "\n"

    for i, record in enumerate(records[:limit], 1):
        output += format_location_record(record, i) + "\n"

    if len(records) > limit:
        output += f"... (+{len(records) - limit} more records)\n"
    return output


def format_labeled_record(record: Any, title: str) -> str:
    """Format a single-location lookup."""
    output = f"📍 **{sanitize_string(title, 100)}**\n\n"
    for label, value in record.display.items():
        output += f"• **{sanitize_string(label, 50)}:** {sanitize_string(value, 100)}\n"
    return output


def format_state_places(
    places: Sequence[Any], state_label: str, ethnicity_label: str, limit: int
) -> str:
    """Format the places-in-state ranking."""
    if not places:
        return f"🔍 No places in {state_label} report a {ethnicity_label} population."

    output = (
        f"🏙️ **{ethnicity_label} population in {sanitize_string(state_label, 50)}** "
        f"({len(places)} place(s))\n\n"
    )
    for i, place in enumerate(places[:limit], 1):
        income = f"${place.median_income:,}" if place.median_income else "N/A"
        output += (
            f"{i}. **{sanitize_string(place.name, 100)}**: "
            f"{place.target_population:,} of {place.total_population:,} "
            f"({place.percentage:.1f}%), median income {income}\n"
        )
    if len(places) > limit:
        output += f"... (+{len(places) - limit} more places)\n"
    return output


def format_state_comparison(rows: Sequence[Any], ethnicity_label: str, sort_by: str) -> str:
    """Format a multi-state comparison."""
    output = f"🗺️ **{ethnicity_label} population by state** (sorted by {sort_by})\n\n"
    for i, row in enumerate(rows, 1):
        name = sanitize_string(row.state_name, 50)
        if row.error:
            message = sanitize_string(row.error_message or "unknown error", 200)
            output += f"{i}. **{name}** ({row.state_code}): ❌ data unavailable ({message})\n"
            continue
        output += (
            f"{i}. **{name}** ({row.state_code}): {row.target_population:,} "
            f"({row.percentage:.1f}%), {row.city_count} place(s), "
            f"average place share {row.average_city_percentage:.1f}%\n"
        )
        if row.top_places:
            top = ", ".join(
                f"{sanitize_string(p.name, 60)} ({p.target_population:,})"
                for p in row.top_places
            )
            output += f"   Top places: {top}\n"
    return output


def format_error_message(
    error_type: str, message: str, details: Optional[Dict[str, Any]] = None
) -> str:
    """Format error message with safe string handling.

    Args:
        error_type: Type of error
        message: Error message
        details: Optional error details

    Returns:
        Formatted error message
    """
    safe_type = sanitize_string(error_type, 50)
    safe_message = sanitize_string(message, 500)

    output = f"❌ **{safe_type}**\n\n{safe_message}\n"

    if details:
        shown = {key: value for key, value in details.items() if value is not None}
        if shown:
            output += "\n**Details:**\n"
            for key, value in shown.items():
                safe_key = sanitize_string(str(key), 30)
                safe_value = sanitize_string(str(value), 200)
                output += f"• **{safe_key}:** {safe_value}\n"

    return output


def format_records_json(records: List[Dict[str, Any]]) -> str:
    """Wrap JSON-ready records in a fenced block."""

    return "```json\n" + json.dumps(records, indent=2) + "\n```"
