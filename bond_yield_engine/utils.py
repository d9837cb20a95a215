from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, localcontext

import pandas as pd

from .config import DATE_FORMAT, DAYS_PER_MONTH, DAYS_PER_YEAR, DECIMAL_CONTEXT
from .errors import InvalidInputError


def parse_date(value: str, field: str = "date") -> pd.Timestamp:
    """
    Parse an MM/DD/YYYY date string.

    Raises InvalidInputError tagged with `field` for any other shape
    (ISO dates included) or for an impossible calendar date.
    """
    if not isinstance(value, str) or value.count("/") != 2:
        raise InvalidInputError(field, f"Date must be in MM/DD/YYYY format, got '{value}'")
    try:
        return pd.to_datetime(value.strip(), format=DATE_FORMAT)
    except (ValueError, TypeError) as exc:
        raise InvalidInputError(field, f"Invalid date '{value}'") from exc


def _linear_days(ts: pd.Timestamp) -> Decimal:
    return ts.year * DAYS_PER_YEAR + ts.month * DAYS_PER_MONTH + ts.day


def estimate_years(start: str, end: str) -> Decimal:
    """
    Years between two MM/DD/YYYY dates on a linear calendar
    (365.25-day years, 30.4375-day months).

    This is a simplified approximation, not a day count convention.
    Negative when end precedes start.
    """
    s = parse_date(start, "date")
    e = parse_date(end, "date")
    with localcontext(DECIMAL_CONTEXT):
        return (_linear_days(e) - _linear_days(s)) / DAYS_PER_YEAR


def round_periods(years: Decimal, freq: int) -> int:
    """Whole coupon periods in `years` (half-up); 0 for non-positive spans."""
    with localcontext(DECIMAL_CONTEXT):
        periods = (years * freq).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(int(periods), 0)
