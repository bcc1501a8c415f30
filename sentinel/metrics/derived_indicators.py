"""Derived valuation indicators from aggregator outputs.

Pure functions: the same inputs always give the same DerivedIndicators.
"""

from __future__ import annotations

from dataclasses import dataclass

from sentinel.metrics.nupl import calculate_nupl_result
from sentinel.metrics.nvt import calculate_nvt
from sentinel.metrics.realized_metrics import calculate_mvrv_result
from sentinel.models.metrics_models import MVRVResult, NUPLResult, NVTResult


@dataclass(frozen=True)
class DerivedIndicators:
    mvrv: MVRVResult
    nupl: NUPLResult
    nvt: NVTResult


def calculate_derived_indicators(
    price_usd: float,
    total_supply_tokens: float,
    volume_30d_usd: float,
    market_cap_usd: float | None = None,
) -> DerivedIndicators:
    """MVRV, NUPL and NVT.

    Args:
        price_usd: Current unit price
        total_supply_tokens: Decimal-adjusted total supply
        volume_30d_usd: 30-day transfer volume in USD
        market_cap_usd: Externally supplied market cap; defaults to the MVRV
            market value

    Returns:
        DerivedIndicators
    """
    mvrv = calculate_mvrv_result(price_usd, total_supply_tokens)
    nupl = calculate_nupl_result(mvrv.market_value, mvrv.realized_value)
    market_cap = market_cap_usd if market_cap_usd is not None else mvrv.market_value
    nvt = calculate_nvt(market_cap, volume_30d_usd)
    return DerivedIndicators(mvrv=mvrv, nupl=nupl, nvt=nvt)
