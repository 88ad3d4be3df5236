"""Look-back window parsing for ingestion configuration."""

import re

# Upstream search rejects posted-date windows of a year or more
MAX_LOOKBACK_DAYS = 364

_UNIT_DAYS = {"d": 1, "w": 7}


class DurationParseError(ValueError):
    """Raised when a look-back string cannot be parsed."""


def parse_lookback_days(value: str) -> int:
    """
    Parse a look-back window into whole days.

    Accepts ``"30d"``, ``"2w"``, combinations like ``"1w3d"`` and the
    ISO-8601 forms ``"P30D"`` / ``"P2W"``.

    Args:
        value: Duration string

    Returns:
        Number of days, between 1 and MAX_LOOKBACK_DAYS

    Raises:
        DurationParseError: If the string is malformed or out of range

    Examples:
        >>> parse_lookback_days("30d")
        30
        >>> parse_lookback_days("P2W")
        14
    """
    text = (value or "").strip().lower()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    if text.startswith("p"):
        text = text[1:]

    parts = re.findall(r"(\d+)\s*([dw])", text)
    if not parts or "".join(f"{n}{u}" for n, u in parts) != re.sub(r"\s+", "", text):
        raise DurationParseError(
            f"Invalid duration format: '{value}'. "
            "Expected days or weeks such as '30d', '2w' or 'P30D'"
        )

    days = sum(int(n) * _UNIT_DAYS[u] for n, u in parts)
    if days < 1:
        raise DurationParseError(f"Duration cannot be zero: '{value}'")
    if days > MAX_LOOKBACK_DAYS:
        raise DurationParseError(
            f"Look-back window too long: {days} days. Maximum is {MAX_LOOKBACK_DAYS} days."
        )
    return days
