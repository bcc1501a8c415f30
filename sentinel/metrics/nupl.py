"""
NUPL (Net Unrealized Profit/Loss).

NUPL = (Market Value - Realized Value) / Market Value, clamped to [-1, 1].

Zones:
- EUPHORIA: > 0.75
- OPTIMISM: > 0.5
- HOPE: > 0.25
- FEAR: > 0
- CAPITULATION: <= 0

Usage:
    from sentinel.metrics.nupl import calculate_nupl_result

    result = calculate_nupl_result(market_value, realized_value)
    print(f"NUPL: {result.value:.2f}, Zone: {result.interpretation.value}")
"""

import math

from sentinel.models.metrics_models import NUPLResult, NUPLZone
from sentinel.utils.units import clamp

NUPL_EUPHORIA = 0.75
NUPL_OPTIMISM = 0.5
NUPL_HOPE = 0.25
NUPL_FEAR = 0.0


def calculate_nupl(market_value: float, realized_value: float) -> float:
    """Clamped NUPL, 0.0 when market value is not positive or inputs are not finite."""
    if market_value <= 0 or not math.isfinite(market_value) or not math.isfinite(realized_value):
        return 0.0
    return clamp((market_value - realized_value) / market_value, -1.0, 1.0)


def classify_nupl_zone(nupl: float) -> NUPLZone:
    """Classify NUPL value into market cycle zone.

    Args:
        nupl: NUPL value in [-1, 1].

    Returns:
        NUPLZone enum member.
    """
    if nupl > NUPL_EUPHORIA:
        return NUPLZone.EUPHORIA
    elif nupl > NUPL_OPTIMISM:
        return NUPLZone.OPTIMISM
    elif nupl > NUPL_HOPE:
        return NUPLZone.HOPE
    elif nupl > NUPL_FEAR:
        return NUPLZone.FEAR
    return NUPLZone.CAPITULATION


def calculate_nupl_result(market_value: float, realized_value: float) -> NUPLResult:
    value = calculate_nupl(market_value, realized_value)
    return NUPLResult(value=value, interpretation=classify_nupl_zone(value))
