#!/usr/bin/env python3
"""Configuration management for the ACS demographics server."""

from pathlib import Path
from typing import Final, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="ACS_DEMOGRAPHICS_",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Census API Configuration
    census_api_base_url: str = Field(
        default="https://api.census.gov/data",
        description="Base URL for the Census Bureau data API",
    )
    acs_year: int = Field(
        default=2021, ge=2009, le=2100, description="ACS vintage to query"
    )
    acs_dataset: str = Field(
        default="acs/acs5", description="Dataset path under the vintage"
    )
    census_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "CENSUS_API_KEY", "ACS_DEMOGRAPHICS_CENSUS_API_KEY"
        ),
        description="Server-configured Census API key",
    )
    credential_store_path: Path = Field(
        default=Path.home() / ".config" / "acs-demographics" / "credentials.json",
        description="User-scoped file holding a locally saved API key",
    )
    user_agent: str = Field(
        default="acs-demographics-mcp/1.0", description="User-Agent header"
    )

    # Timeout Configuration
    basic_list_timeout: float = Field(
        default=15.0, ge=1.0, le=120.0, description="Nationwide place list timeout"
    )
    enrichment_timeout: float = Field(
        default=8.0, ge=1.0, le=60.0, description="Per-metric enrichment timeout"
    )
    lookup_timeout: float = Field(
        default=10.0, ge=1.0, le=60.0, description="Single-location lookup timeout"
    )
    validation_timeout: float = Field(
        default=10.0, ge=1.0, le=60.0, description="API key validation timeout"
    )
    connect_timeout: float = Field(
        default=5.0, ge=1.0, le=60.0, description="Connection timeout in seconds"
    )

    # Data Limits
    max_units: int = Field(
        default=50, ge=1, le=500, description="Places kept after the basic list"
    )
    max_concurrent_units: int = Field(
        default=50, ge=1, le=500, description="Places enriched at the same time"
    )
    max_comparison_states: int = Field(
        default=10, ge=1, le=56, description="States accepted by compare_states"
    )

    # Rate Limiting Configuration
    rate_limit_capacity: int = Field(
        default=500, ge=1, le=10000, description="Requests allowed in one burst"
    )
    rate_limit_refill_rate: float = Field(
        default=50.0,
        ge=0.1,
        le=1000.0,
        description="Rate limit refill rate (tokens per second)",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")
    log_include_extra: bool = Field(
        default=True, description="Include extra fields in JSON logs"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        valid_formats = ["json", "text"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ["development", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("census_api_base_url")
    @classmethod
    def validate_base_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError("Census API base URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("census_api_key")
    @classmethod
    def blank_key_is_missing(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

    @property
    def dataset_url(self) -> str:
        """Full endpoint for the configured ACS dataset."""
        return f"{self.census_api_base_url}/{self.acs_year}/{self.acs_dataset.strip('/')}"


# Global settings instance
settings = Settings()

# Census variable codes, kept exactly as the API names them
TOTAL_POPULATION_VAR: Final[str] = "B03001_001E"
MEXICAN_POPULATION_VAR: Final[str] = "B03001_004E"
SALVADORAN_POPULATION_VAR: Final[str] = "B03001_006E"

AGE_TOTAL_VAR: Final[str] = "B01001_001E"
AGE_MALE_VAR: Final[str] = "B01001_002E"
AGE_FEMALE_VAR: Final[str] = "B01001_026E"

MEDIAN_INCOME_VAR: Final[str] = "B19013_001E"

EDUCATION_TOTAL_VAR: Final[str] = "B15003_001E"
EDUCATION_HIGH_SCHOOL_VAR: Final[str] = "B15003_017E"
EDUCATION_BACHELORS_VAR: Final[str] = "B15003_022E"
EDUCATION_MASTERS_VAR: Final[str] = "B15003_023E"

AGE_VARIABLES: Final[tuple] = (AGE_TOTAL_VAR, AGE_MALE_VAR, AGE_FEMALE_VAR)
INCOME_VARIABLES: Final[tuple] = (MEDIAN_INCOME_VAR,)
EDUCATION_VARIABLES: Final[tuple] = (
    EDUCATION_TOTAL_VAR,
    EDUCATION_HIGH_SCHOOL_VAR,
    EDUCATION_BACHELORS_VAR,
    EDUCATION_MASTERS_VAR,
)

# Seeds used when a metric cannot be fetched
DEFAULT_SEED_POPULATION: Final[int] = 10000
DEFAULT_MEDIAN_INCOME: Final[int] = 50000

CREDENTIAL_STORE_KEY: Final[str] = "census_api_key"
