"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    messages = []

    ingestion = config_dict.get("ingestion") or {}
    advanced = config_dict.get("advanced") or {}

    if isinstance(ingestion, dict):
        codes = ingestion.get("naics_codes") or []
        if isinstance(codes, list):
            normalized = [str(c).strip() for c in codes]
            duplicates = sorted({c for c in normalized if normalized.count(c) > 1})
            if duplicates:
                messages.append(
                    f"Duplicate NAICS codes will be fetched once: {', '.join(duplicates)}"
                )
            if len(normalized) > 25:
                messages.append(
                    f"{len(normalized)} NAICS codes configured; each one is a separate "
                    "upstream call and counts against the daily API quota"
                )

        keywords = ingestion.get("sbir_keywords")
        if keywords and not ingestion.get("sbir_enabled", False):
            messages.append("sbir_keywords are set but sbir_enabled is false; they will be ignored")

    if isinstance(advanced, dict):
        rate_limit = advanced.get("rate_limit_ms", 1000)
        if isinstance(rate_limit, int) and rate_limit < 250:
            messages.append(
                f"Low rate_limit_ms ({rate_limit}) may trigger SAM.gov throttling"
            )

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message as a UserWarning."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
