"""NVT (Network Value to Transactions) ratio.

dailyVolume = volume30d / 30
ratio = marketCap / dailyVolume
ratio30d = marketCap / volume30d

Zero 30-day volume is not an error: every output is zero and the
interpretation is "fair".
"""

import math

from sentinel.models.metrics_models import NVTResult, ValuationSignal

DAYS_PER_MONTH_WINDOW = 30

# NVT thresholds
NVT_UNDERVALUED = 20
NVT_OVERVALUED = 95


def classify_nvt(ratio: float) -> ValuationSignal:
    if ratio > NVT_OVERVALUED:
        return ValuationSignal.OVERVALUED
    elif ratio < NVT_UNDERVALUED:
        return ValuationSignal.UNDERVALUED
    return ValuationSignal.FAIR


def calculate_nvt(market_cap_usd: float, volume_30d_usd: float) -> NVTResult:
    """Calculate NVT ratio.

    Args:
        market_cap_usd: Market capitalization in USD
        volume_30d_usd: Transfer volume over the last 30 days in USD

    Returns:
        NVTResult with daily and 30-day ratios and signal
    """
    if (
        volume_30d_usd <= 0
        or not math.isfinite(volume_30d_usd)
        or not math.isfinite(market_cap_usd)
    ):
        return NVTResult(ratio=0.0, ratio_30d=0.0, interpretation=ValuationSignal.FAIR)

    daily_volume = volume_30d_usd / DAYS_PER_MONTH_WINDOW
    ratio = market_cap_usd / daily_volume
    return NVTResult(
        ratio=ratio,
        ratio_30d=market_cap_usd / volume_30d_usd,
        interpretation=classify_nvt(ratio),
    )
