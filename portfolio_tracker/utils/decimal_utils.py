# portfolio_tracker/utils/decimal_utils.py
"""
NaN-safe conversion of upstream numbers to Decimal.

Upstream payloads mix floats, numpy scalars, numeric strings, None and NaN
for the same field. Everything financial in this codebase is Decimal, so
every value crossing the provider boundary goes through these helpers.
"""

import math
from decimal import Decimal, InvalidOperation
from typing import Any

# Precision for prices coming from the upstream provider (numeric(18, 8) in the store)
PRICE_PRECISION = Decimal("0.00000001")


def to_decimal(value: Any, precision: Decimal | None = PRICE_PRECISION) -> Decimal | None:
    """
    Convert a value to Decimal, returning None for None/NaN/inf/garbage.

    Args:
        value: Raw numeric value
        precision: Quantization exponent, or None to keep full precision
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        as_float = float(value)
        if math.isnan(as_float) or math.isinf(as_float):
            return None
        result = Decimal(str(value))
    except (TypeError, ValueError, InvalidOperation):
        return None
    return result.quantize(precision) if precision is not None else result


def to_positive_decimal(value: Any) -> Decimal | None:
    """Like to_decimal, but also rejects zero and negative values."""
    result = to_decimal(value)
    if result is None or result <= 0:
        return None
    return result


def to_int(value: Any) -> int | None:
    """Convert a value to int, returning None for NaN/None."""
    if value is None:
        return None
    try:
        if math.isnan(float(value)):
            return None
        return int(value)
    except (TypeError, ValueError):
        return None
