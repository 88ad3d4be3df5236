"""Request models for alert management."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _clean_terms(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    cleaned = []
    for value in values:
        value = (value or "").strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return cleaned


class AlertCreateRequest(BaseModel):
    """Fields for a new alert."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    tenant_id: Optional[str] = None
    naics_codes: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    min_value: Optional[Decimal] = Field(None, ge=0)
    max_value: Optional[Decimal] = Field(None, ge=0)
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("name cannot be empty or whitespace-only")
        return stripped

    @field_validator("naics_codes", "keywords")
    @classmethod
    def clean_terms(cls, v: List[str]) -> List[str]:
        """Strip terms and drop blanks and duplicates."""
        return _clean_terms(v)


class AlertUpdateRequest(BaseModel):
    """Partial update; ``None`` leaves the field unchanged."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    naics_codes: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    min_value: Optional[Decimal] = Field(None, ge=0)
    max_value: Optional[Decimal] = Field(None, ge=0)
    enabled: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        if not stripped:
            raise ValueError("name cannot be empty or whitespace-only")
        return stripped

    @field_validator("naics_codes", "keywords")
    @classmethod
    def clean_terms(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_terms(v)
