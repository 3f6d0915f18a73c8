"""Rounding helpers for nutrient values (half-up, never negative)."""

import math
from decimal import ROUND_HALF_UP, Context, Decimal


def _round_half_up(value: float, places: int) -> float:
    if math.isnan(value):
        return 0.0
    if math.isinf(value):
        return value
    number = Decimal(repr(value))
    # Enough digits for the integer part plus the kept decimals
    context = Context(prec=max(28, number.adjusted() + places + 2))
    quantum = Decimal(1).scaleb(-places)
    return float(number.quantize(quantum, rounding=ROUND_HALF_UP, context=context))


def round_to_integer(value: float) -> int:
    """Calories: nearest integer, floored at zero. Non-finite values give 0."""
    rounded = _round_half_up(value, 0)
    if not math.isfinite(rounded):
        return 0
    return max(0, int(rounded))


def round_to_one_decimal(value: float) -> float:
    """Grams-scale nutrients: one decimal place, floored at zero."""
    return max(0.0, _round_half_up(value, 1))


def round_to_two_decimals(value: float) -> float:
    return max(0.0, _round_half_up(value, 2))


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    if not denominator:
        return fallback
    return numerator / denominator
