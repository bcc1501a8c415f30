"""
Holder Distribution Estimator.

Approximates ownership concentration without a full indexer:

1. Scan Transfer logs over a bounded window (30 days by default) and keep
   every receiving address in first-seen order, capped at 1000 candidates.
2. Query the current balance of up to 100 candidates.
3. Sort descending and derive top-10 share, top-100 share and a Gini
   coefficient over that sample.

The Gini coefficient describes the sample, not the holder population.

Concentration Risk:
- HIGH: top10 > 50% or gini > 0.8
- MEDIUM: top10 > 30% or gini > 0.6
- LOW: otherwise

Usage:
    from sentinel.metrics.holder_distribution import calculate_holder_distribution

    result = await calculate_holder_distribution(
        fetcher, rpc, token, window, total_supply
    )
    print(f"Top 10: {result.top10_percent:.1f}%, Gini: {result.gini_coefficient:.2f}")
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Sequence

import numpy as np

from sentinel.data.erc20 import ContractReader, get_balance
from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.models.metrics_models import (
    ZERO_ADDRESS,
    BlockWindow,
    ConcentrationRisk,
    HolderDistributionResult,
    TransferRecord,
)
from sentinel.utils.evm_rpc_async import RpcError, RpcUnavailableError
from sentinel.utils.units import percent_of

logger = logging.getLogger(__name__)

DEFAULT_CANDIDATE_CAP = 1000
DEFAULT_BALANCE_SAMPLE = 100

# Concentration thresholds
TOP10_HIGH_PERCENT = 50.0
TOP10_MEDIUM_PERCENT = 30.0
GINI_HIGH = 0.8
GINI_MEDIUM = 0.6


def classify_concentration_risk(top10_percent: float, gini: float) -> ConcentrationRisk:
    """Classify concentration from top-10 share and Gini.

    Args:
        top10_percent: Share of supply held by the ten largest sampled holders
        gini: Sample Gini coefficient in [0, 1]

    Returns:
        ConcentrationRisk enum member.
    """
    if top10_percent > TOP10_HIGH_PERCENT or gini > GINI_HIGH:
        return ConcentrationRisk.HIGH
    elif top10_percent > TOP10_MEDIUM_PERCENT or gini > GINI_MEDIUM:
        return ConcentrationRisk.MEDIUM
    return ConcentrationRisk.LOW


def calculate_gini(balances: Sequence[int], total_supply: int) -> float:
    """Sample Gini coefficient, `1 - 2 * sum(cumulative_share) / n**2`.

    Shares are each balance divided by total supply, accumulated in
    descending-balance order. The result is clamped to [0, 1]; an empty
    sample or zero supply yields 0.

    Args:
        balances: Sampled balances (any order)
        total_supply: Total supply in the same unit as balances

    Returns:
        Gini coefficient in [0, 1]
    """
    n = len(balances)
    if n == 0 or total_supply <= 0:
        return 0.0

    ordered = sorted(balances, reverse=True)
    shares = np.array([b / total_supply for b in ordered], dtype=np.float64)
    cumulative = np.cumsum(shares)
    gini = 1.0 - (2.0 * float(cumulative.sum())) / (n * n)

    if not np.isfinite(gini):
        return 0.0
    return float(min(1.0, max(0.0, gini)))


def summarize_holder_distribution(
    balances: Sequence[int], total_supply: int
) -> HolderDistributionResult:
    """Top-10/top-100 shares, Gini and risk tier for a balance sample."""
    ordered = sorted(balances, reverse=True)
    top10_percent = percent_of(sum(ordered[:10]), total_supply)
    top100_percent = percent_of(sum(ordered[:100]), total_supply)
    gini = calculate_gini(ordered, total_supply)
    return HolderDistributionResult(
        top10_percent=top10_percent,
        top100_holders=top100_percent,
        gini_coefficient=gini,
        concentration_risk=classify_concentration_risk(top10_percent, gini),
        sample_size=len(ordered),
    )


class HolderCandidateCollector:
    """Receiving addresses in first-seen order, capped."""

    def __init__(self, cap: int = DEFAULT_CANDIDATE_CAP):
        self.cap = cap
        self._candidates: dict[str, None] = {}

    def add(self, record: TransferRecord) -> None:
        if len(self._candidates) >= self.cap:
            return
        if record.to_address != ZERO_ADDRESS:
            self._candidates.setdefault(record.to_address, None)

    @property
    def is_full(self) -> bool:
        return len(self._candidates) >= self.cap

    @property
    def candidates(self) -> list[str]:
        return list(self._candidates)


async def _balance_or_zero(rpc: ContractReader, token: str, holder: str) -> int:
    try:
        return await get_balance(rpc, token, holder)
    except RpcUnavailableError:
        raise
    except (RpcError, ValueError) as e:
        logger.debug("Balance lookup failed for %s, counted as zero: %s", holder, e)
        return 0


async def sample_balances(
    rpc: ContractReader, token: str, holders: Sequence[str]
) -> list[int]:
    """Current balances of `holders`; a failed lookup counts as zero.

    Requests are issued together and bounded by the client's semaphore.
    """
    return list(
        await asyncio.gather(*(_balance_or_zero(rpc, token, h) for h in holders))
    )


async def calculate_holder_distribution(
    fetcher: TransferLogFetcher,
    rpc: ContractReader,
    token: str,
    window: BlockWindow,
    total_supply: int,
    candidate_cap: int = DEFAULT_CANDIDATE_CAP,
    balance_sample: int = DEFAULT_BALANCE_SAMPLE,
) -> HolderDistributionResult:
    """Sampled holder distribution for `token`.

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        rpc: Client used for balanceOf reads
        token: Token address
        window: Bounded scan window (30 days by default)
        total_supply: Raw total supply
        candidate_cap: Max receiving addresses kept from the scan
        balance_sample: Max candidates whose balance is read

    Returns:
        HolderDistributionResult
    """
    collector = HolderCandidateCollector(candidate_cap)
    records = fetcher.iter_transfers(token, window, with_timestamps=False)
    async with aclosing(records):
        async for record in records:
            collector.add(record)
            if collector.is_full:
                break

    sampled = collector.candidates[:balance_sample]
    balances = await sample_balances(rpc, token, sampled)
    logger.info(
        "Holder sample for %s: %d candidates, %d balances read",
        token,
        len(collector.candidates),
        len(balances),
    )
    return summarize_holder_distribution(balances, total_supply)
