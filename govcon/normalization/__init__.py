"""Normalization of upstream records into canonical opportunities."""

from govcon.utils.timestamps import parse_opportunity_date

from .models import NormalizationResult
from .service import OpportunityNormalizer, detect_sbir_phase

__all__ = [
    "OpportunityNormalizer",
    "NormalizationResult",
    "detect_sbir_phase",
    "parse_opportunity_date",
]
