"""
Mathematical utilities for funding rate calculations.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Union

RATE_QUANTUM = Decimal("0.0001")
HOURS_PER_DAY = Decimal(24)
DAYS_PER_YEAR = Decimal(365)


def safe_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Safely convert value to Decimal, returning default when it does not parse"""
    if value is None or isinstance(value, bool):
        return default
    try:
        if isinstance(value, Decimal):
            return value
        text = str(value).strip()
        if not text:
            return default
        return Decimal(text)
    except (InvalidOperation, ValueError, TypeError):
        return default


def quantize_rate(value: Decimal) -> Decimal:
    """Round a percentage to 4 fractional digits"""
    return value.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def fraction_to_percent(value: Any) -> Optional[Decimal]:
    """
    Convert an exchange-reported funding fraction to a percentage.

    Args:
        value: Raw fraction as reported by the exchange (ex: "0.0001")

    Returns:
        Percentage with 4 fractional digits (ex: Decimal("0.0100")),
        or None when the value is missing or not a finite number
    """
    fraction = safe_decimal(value)
    if fraction is None or not fraction.is_finite():
        return None
    return quantize_rate(fraction * 100)


def parse_interval_hours(value: Any, divisor: Union[int, float] = 1,
                         default: float = 8) -> float:
    """
    Convert an exchange interval field to hours.

    Missing, unparseable, non-positive or zero values fall back to default.
    """
    raw = safe_decimal(value)
    if raw is None or not raw.is_finite() or raw <= 0:
        return float(default)
    return float(raw / Decimal(str(divisor)))


def annualize(rate: Decimal, interval_hours: float) -> Decimal:
    """Extrapolate a per-settlement rate (percent) across a year of settlements"""
    periods_per_day = HOURS_PER_DAY / Decimal(str(interval_hours))
    return rate * periods_per_day * DAYS_PER_YEAR


def as_json_number(value: Union[Decimal, float, int]) -> Union[int, float]:
    """Render a number for JSON: integral values as int, others as float"""
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
