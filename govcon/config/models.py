"""Configuration schema models using Pydantic."""

import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_lookback_days

_NAICS_PATTERN = re.compile(r"^\d{2,6}$")


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class IngestionConfig(BaseModel):
    """What to pull from SAM.gov and how far back to look."""

    naics_codes: List[str] = Field(
        ..., min_length=1, description="Partition keys; one concurrent fetch per code"
    )
    procurement_types: str = Field(
        "o,k,p", description="SAM ptype filter for the regular search"
    )
    set_aside: Optional[str] = Field(None, description="Optional SAM setaside filter")
    posted_within: str = Field("30d", description="Posted-date look-back window")
    limit: int = Field(100, ge=1, le=1000, description="Records per upstream request")
    sbir_enabled: bool = Field(False, description="Also run SBIR/STTR title searches")
    sbir_keywords: List[str] = Field(
        default_factory=lambda: ["SBIR", "STTR"],
        description="Title keywords for the SBIR/STTR search",
    )
    fetch_deadline_seconds: int = Field(
        120, ge=5, le=3600, description="Time allowed for all partition fetches"
    )

    # Computed field
    posted_within_days: Optional[int] = None

    @field_validator("naics_codes", mode="before")
    @classmethod
    def validate_naics_codes(cls, v):
        """Accept unquoted YAML integers, reject non-numeric codes and drop duplicates."""
        if not isinstance(v, list):
            raise ValueError("naics_codes must be a list")
        cleaned: List[str] = []
        for code in v:
            code = str(code).strip()
            if not _NAICS_PATTERN.match(code):
                raise ValueError(f"NAICS code must be 2-6 digits, got '{code}'")
            if code not in cleaned:
                cleaned.append(code)
        return cleaned

    @field_validator("procurement_types")
    @classmethod
    def normalize_procurement_types(cls, v: str) -> str:
        types = [t.strip().lower() for t in v.split(",") if t.strip()]
        if not types:
            raise ValueError("procurement_types cannot be empty")
        return ",".join(types)

    @field_validator("set_aside")
    @classmethod
    def blank_set_aside(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("sbir_keywords")
    @classmethod
    def normalize_keywords(cls, v: List[str]) -> List[str]:
        return [k.strip() for k in v if k and k.strip()]

    @model_validator(mode="after")
    def compute_lookback(self):
        """Parse the look-back window once so fetchers can use days directly."""
        try:
            self.posted_within_days = parse_lookback_days(self.posted_within)
        except DurationParseError as e:
            raise ValueError(f"posted_within: {e}") from e
        if self.sbir_enabled and not self.sbir_keywords:
            raise ValueError("sbir_enabled requires at least one entry in sbir_keywords")
        return self


class ScoringConfig(BaseModel):
    """Batch scoring settings."""

    page_size: int = Field(
        200, ge=1, le=5000, description="Opportunities loaded per page during batch scoring"
    )
    max_background_workers: int = Field(
        2, ge=1, le=32, description="Threads for detached tenant scoring batches"
    )


class ScheduleConfig(BaseModel):
    """When the scheduler runs ingestion (UTC)."""

    ingestion_cron_hour: int = Field(2, ge=0, le=23)
    ingestion_cron_minute: int = Field(0, ge=0, le=59)
    sources_sought_on_startup: bool = Field(
        True, description="Run one Sources Sought ingestion when the scheduler starts"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True, "validate_default": True}


class AdvancedConfig(BaseModel):
    """Advanced runtime settings."""

    http_request_timeout: int = Field(
        30, ge=5, le=300, description="Request timeout for SAM.gov calls (seconds)"
    )
    user_agent: str = Field(
        "GovConTracker/1.0",
        min_length=1,
        description="User-Agent string for HTTP requests",
    )
    rate_limit_ms: int = Field(
        1000, ge=0, le=60000, description="Minimum spacing between upstream calls"
    )
    max_fetch_workers: int = Field(
        8, ge=1, le=64, description="Upper bound on concurrent partition fetches"
    )
    base_url: str = Field(
        "https://api.sam.gov/opportunities/v2/search",
        description="SAM.gov opportunities search endpoint",
    )

    @field_validator("user_agent", "base_url")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Strip whitespace; reject empty values."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Field cannot be empty or whitespace-only")
        return stripped


class AppConfig(BaseModel):
    """Root configuration object for the opportunity tracker."""

    ingestion: IngestionConfig = Field(..., description="Upstream fetch settings")
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    advanced: AdvancedConfig = Field(
        default_factory=AdvancedConfig, description="Advanced runtime settings"
    )
