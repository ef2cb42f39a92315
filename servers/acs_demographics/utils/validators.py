#!/usr/bin/env python3
"""Input validation for ACS demographics tool requests."""

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..models import Ethnicity
from .exceptions import ValidationError


class LoadPopulationDataRequest(BaseModel):
    """Validation model for load_population_data tool."""

    ethnicity: Ethnicity = Field(
        default=Ethnicity.MEXICAN, description="Population to load"
    )
    age_range: List[str] = Field(default_factory=list, max_length=8)
    income_range: List[str] = Field(default_factory=list, max_length=6)
    education_level: List[str] = Field(default_factory=list, max_length=6)
    min_population: Optional[int] = Field(default=None, ge=0)
    max_population: Optional[int] = Field(default=None, ge=0)
    min_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    max_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    states: List[str] = Field(default_factory=list, max_length=60)
    min_income: Optional[float] = Field(default=None, ge=0)
    max_income: Optional[float] = Field(default=None, ge=0)
    significant_age: List[str] = Field(default_factory=list, max_length=8)
    significant_education: List[str] = Field(default_factory=list, max_length=6)
    limit: int = Field(default=20, ge=1, le=50, description="Rows to display")
    include_json: bool = Field(default=False, description="Append JSON records")
    timeout: Optional[float] = Field(
        default=None, ge=1.0, le=120.0, description="Basic list timeout in seconds"
    )


class LookupZipRequest(BaseModel):
    """Validation model for lookup_zip tool."""

    zip_code: str = Field(..., max_length=10)
    ethnicity: Ethnicity = Ethnicity.MEXICAN

    @field_validator("zip_code", mode="before")
    @classmethod
    def strip_zip(cls, v):
        return v.strip() if isinstance(v, str) else v


class LookupPlaceRequest(BaseModel):
    """Validation model for lookup_place tool."""

    state_code: str = Field(..., max_length=2)
    place_id: str = Field(..., max_length=7)
    ethnicity: Ethnicity = Ethnicity.MEXICAN

    @field_validator("state_code", "place_id", mode="before")
    @classmethod
    def strip_codes(cls, v):
        return v.strip() if isinstance(v, str) else v


class LookupCityRequest(BaseModel):
    """Validation model for lookup_city tool."""

    city: str = Field(..., min_length=1, max_length=100, description="City name")
    ethnicity: Ethnicity = Ethnicity.MEXICAN

    @field_validator("city")
    @classmethod
    def validate_city(cls, v):
        v = " ".join(v.split())
        if not v:
            raise ValidationError("City name is required", field="city")
        if re.search(r'[<>"]', v):
            raise ValidationError("City name contains invalid characters", field="city")
        return v


class ListStatePlacesRequest(BaseModel):
    """Validation model for list_state_places tool."""

    state_code: str = Field(..., max_length=2)
    ethnicity: Ethnicity = Ethnicity.MEXICAN
    limit: int = Field(default=20, ge=1, le=100, description="Places to display")

    @field_validator("state_code", mode="before")
    @classmethod
    def strip_state(cls, v):
        return v.strip() if isinstance(v, str) else v


class CompareStatesRequest(BaseModel):
    """Validation model for compare_states tool."""

    states: List[str] = Field(..., min_length=1, max_length=56)
    ethnicity: Ethnicity = Ethnicity.MEXICAN
    sort_by: Literal["population", "percentage", "cities"] = "population"

    @field_validator("states", mode="before")
    @classmethod
    def strip_states(cls, v):
        if isinstance(v, list):
            return [code.strip() if isinstance(code, str) else code for code in v]
        return v


class ValidateApiKeyRequest(BaseModel):
    """Validation model for validate_api_key tool."""

    api_key: str = Field(..., min_length=1, max_length=100)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        v = v.strip()
        if not re.fullmatch(r"[A-Za-z0-9]+", v):
            raise ValidationError("API key must be alphanumeric", field="api_key")
        return v


class ClearApiKeyRequest(BaseModel):
    """Validation model for clear_api_key tool."""


VALIDATION_MODELS = {
    "load_population_data": LoadPopulationDataRequest,
    "lookup_zip": LookupZipRequest,
    "lookup_place": LookupPlaceRequest,
    "lookup_city": LookupCityRequest,
    "list_state_places": ListStatePlacesRequest,
    "compare_states": CompareStatesRequest,
    "validate_api_key": ValidateApiKeyRequest,
    "clear_api_key": ClearApiKeyRequest,
}


def validate_tool_request(tool_name: str, arguments: Optional[Dict[str, Any]]) -> BaseModel:
    """Validate tool request arguments.

    Args:
        tool_name: Name of the tool being called
        arguments: Tool arguments to validate

    Returns:
        Validated request model

    Raises:
        ValidationError: If validation fails
    """
    if tool_name not in VALIDATION_MODELS:
        raise ValidationError(f"Unknown tool: {tool_name}")

    try:
        return VALIDATION_MODELS[tool_name](**(arguments or {}))
    except PydanticValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(
            f"Validation failed: {first.get('msg', str(e))}", field=field
        ) from e


def sanitize_string(value: Any, max_length: int = 1000) -> str:
    """Sanitize a string value for safe use in markdown output.

    Args:
        value: Value to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        value = str(value)

    value = " ".join(value.split())

    if len(value) > max_length:
        value = value[:max_length] + "..."

    return re.sub(r'[<>"]', "", value)
