"""Token unit and USD conversions.

Raw ERC-20 amounts are arbitrary-precision ints. Scaling goes through
Decimal so 18-decimal values above 2**53 keep their precision until the
final float conversion.
"""

from __future__ import annotations

import math
from decimal import Decimal

BASIS_POINTS_PER_UNIT = 10_000


def to_token_units(raw_value: int, decimals: int) -> float:
    """Scale a raw integer amount by the token's decimals.

    Args:
        raw_value: Amount in the smallest unit
        decimals: ERC-20 decimals (0-255)

    Returns:
        Amount in whole tokens
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return float(Decimal(raw_value).scaleb(-decimals))


def to_usd(raw_value: int, decimals: int, price_usd: float) -> float:
    """USD value of a raw amount at a single unit price."""
    return to_token_units(raw_value, decimals) * price_usd


def percent_of(part: float, whole: float) -> float:
    """`part / whole * 100`, 0.0 when `whole` is zero or not finite."""
    if not whole or not math.isfinite(whole):
        return 0.0
    return part / whole * 100


def to_basis_points(fraction: float) -> float:
    """Convert a fraction (0.01 = 1%) to basis points."""
    return fraction * BASIS_POINTS_PER_UNIT


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
