"""Market value, realized value and MVRV.

Realized value here is a fixed 70% of market value. There is no per-token
cost-basis tracking, so the ratio reflects that constant; it is kept as a
slot for a real realized-value source.

Usage:
    from sentinel.metrics.realized_metrics import calculate_mvrv_result

    mvrv = calculate_mvrv_result(price_usd=2.0, total_supply_tokens=1_000_000)
    print(f"MVRV: {mvrv.ratio:.2f} ({mvrv.interpretation.value})")
"""

from __future__ import annotations

import math

from sentinel.models.metrics_models import MVRVResult, ValuationSignal

REALIZED_VALUE_FACTOR = 0.7

MVRV_OVERVALUED = 3.5
MVRV_UNDERVALUED = 1.0


def calculate_market_value(price_usd: float, total_supply_tokens: float) -> float:
    """Market value = price x decimal-adjusted supply."""
    return price_usd * total_supply_tokens


def calculate_realized_value(market_value: float) -> float:
    """Approximate realized value as 70% of market value."""
    return market_value * REALIZED_VALUE_FACTOR


def calculate_mvrv(market_value: float, realized_value: float) -> float:
    """MVRV = Market Value / Realized Value.

    Args:
        market_value: Market value in USD.
        realized_value: Realized value in USD.

    Returns:
        MVRV ratio, 0.0 when realized value is not positive.
    """
    if realized_value <= 0:
        return 0.0
    return market_value / realized_value


def classify_mvrv(ratio: float) -> ValuationSignal:
    """Classify MVRV.

    - OVERVALUED: > 3.5
    - UNDERVALUED: < 1.0
    - FAIR: otherwise
    """
    if ratio > MVRV_OVERVALUED:
        return ValuationSignal.OVERVALUED
    elif ratio < MVRV_UNDERVALUED:
        return ValuationSignal.UNDERVALUED
    return ValuationSignal.FAIR


def calculate_mvrv_result(price_usd: float, total_supply_tokens: float) -> MVRVResult:
    """MVRV with its market and realized values.

    Args:
        price_usd: Current unit price
        total_supply_tokens: Total supply scaled by decimals

    Returns:
        MVRVResult; all zero for non-finite inputs.
    """
    market_value = calculate_market_value(price_usd, total_supply_tokens)
    if not math.isfinite(market_value) or market_value < 0:
        return MVRVResult()
    realized_value = calculate_realized_value(market_value)
    ratio = calculate_mvrv(market_value, realized_value)
    return MVRVResult(
        ratio=ratio,
        market_value=market_value,
        realized_value=realized_value,
        interpretation=classify_mvrv(ratio),
    )
