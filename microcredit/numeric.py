"""
numeric.py - Integer Fixed-Point and Day-Count Helpers

All pool accounting is done in integer base units of the funding asset.
Every helper here is a pure function:

    - Bounded-integer validation (u8 / u16 / u256)
    - Overflow-checked add, sub and mul
    - Floor mul-div and basis-point scaling
    - Whole-day elapsed time and simple interest

Rounding is always toward zero (floor for non-negative operands). Nothing in
this module rounds up, so no helper can create value.

Key Formulas:
    bps_of(amount, bps)   = amount * bps // 10000
    elapsed_days(a, b)    = floor((b - a) / 1 day)
    simple_interest(p, r, d) = p * r * d // (10000 * 365)
"""

from __future__ import annotations
from datetime import datetime, timedelta

from .core import ArithmeticOverflow, InvalidAmount


# ============================================================================
# CONSTANTS
# ============================================================================

U8_MAX = 2**8 - 1
U16_MAX = 2**16 - 1
U256_MAX = 2**256 - 1

# 10000 bps = 100%
BPS_DENOMINATOR = 10_000

SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365

ONE_DAY = timedelta(days=1)


# ============================================================================
# VALIDATION
# ============================================================================

def require_uint(value, name: str, max_value: int = U256_MAX, min_value: int = 0) -> int:
    """
    Validate that value is an int within [min_value, max_value].

    bool is rejected even though it subclasses int.

    Raises:
        InvalidAmount: If value is not an int or falls outside the bounds.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{name} must be an int, got {type(value).__name__}")
    if value < min_value or value > max_value:
        raise InvalidAmount(f"{name} must be in [{min_value}, {max_value}], got {value}")
    return value


def require_positive(value, name: str) -> int:
    """Validate a strictly positive u256 amount."""
    return require_uint(value, name, U256_MAX, min_value=1)


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > U256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows u256")
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows")
    return a - b


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > U256_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows u256")
    return result


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute floor(a * b / denominator) with overflow checking on a * b.

    Raises:
        ArithmeticOverflow: If a * b exceeds u256.
        ZeroDivisionError: If denominator is zero.
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return checked_mul(a, b) // denominator


def bps_of(amount: int, bps: int) -> int:
    """Return floor(amount * bps / 10000)."""
    return mul_div(amount, bps, BPS_DENOMINATOR)


# ============================================================================
# TIME
# ============================================================================

def add_days(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)


def elapsed_days(start: datetime, end: datetime) -> int:
    """
    Whole days elapsed from start to end.

    Partial days are discarded. Returns 0 if end precedes start.
    """
    if end <= start:
        return 0
    return (end - start) // ONE_DAY


def simple_interest(principal: int, rate_bps: int, days: int) -> int:
    """
    Non-compounding interest on principal for a whole number of days.

    PURE FUNCTION - All inputs explicit.

        interest = principal * rate_bps * days // (10000 * 365)

    The single floor division truncates toward zero, so any partial unit
    of interest is never charged.

    Example:
        >>> simple_interest(1000, 500, 30)
        4
    """
    if principal == 0 or rate_bps == 0 or days <= 0:
        return 0
    return checked_mul(checked_mul(principal, rate_bps), days) // (BPS_DENOMINATOR * DAYS_PER_YEAR)
