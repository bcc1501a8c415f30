"""
Total-Holder Historical Estimator.

Walks back from the current block over up to 90 days, one sub-window at a
time (newest first), collecting every non-zero address seen as sender or
receiver. Then:

- candidates <= cap (10,000): every balance is read and the exact non-zero
  count is reported
- candidates > cap: `cap` addresses are sampled at random and the non-zero
  share is extrapolated,
  estimated = ceil(candidates * nonzero_in_sample / sample_size)

The walk is expensive and may fail or time out; callers fall back to the
monthly active-address count. This estimator and the holder distribution
sampler use different windows and caps and are not reconciled.

Usage:
    from sentinel.metrics.total_holders import estimate_total_holders

    result = await estimate_total_holders(fetcher, rpc, token, window)
    print(f"Holders: {result.count} ({result.source.value})")
"""

from __future__ import annotations

import logging
import math
import random

from sentinel.data.erc20 import ContractReader
from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.active_addresses import ActiveAddressCounter
from sentinel.metrics.holder_distribution import sample_balances
from sentinel.models.metrics_models import (
    BlockWindow,
    HolderCountSource,
    TotalHoldersResult,
)

logger = logging.getLogger(__name__)

DEFAULT_HOLDER_CAP = 10_000


def extrapolate_holders(candidate_count: int, nonzero_in_sample: int, sample_size: int) -> int:
    """Scale the sampled non-zero share up to the full candidate set."""
    if sample_size <= 0:
        return 0
    return math.ceil(candidate_count * (nonzero_in_sample / sample_size))


async def collect_historical_addresses(
    fetcher: TransferLogFetcher, token: str, window: BlockWindow
) -> list[str]:
    """Unique non-zero addresses in `window`, walking newest sub-window first."""
    counter = ActiveAddressCounter()
    sub_windows = window.split(fetcher.max_block_span)
    for sub in reversed(sub_windows):
        async for record in fetcher.iter_transfers(token, sub, with_timestamps=False):
            counter.add(record)
    logger.debug(
        "Historical walk for %s: %d sub-windows, %d addresses",
        token,
        len(sub_windows),
        counter.count,
    )
    # Sorted so a seeded sampler is reproducible
    return sorted(counter.addresses)


async def estimate_total_holders(
    fetcher: TransferLogFetcher,
    rpc: ContractReader,
    token: str,
    window: BlockWindow,
    cap: int = DEFAULT_HOLDER_CAP,
    rng: random.Random | None = None,
) -> TotalHoldersResult:
    """Historical holder count, exact under the cap and sampled above it.

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        rpc: Client used for balanceOf reads
        token: Token address
        window: Lookback window (90 days by default)
        cap: Max balances to read
        rng: Random source for sampling (default: module random)

    Returns:
        TotalHoldersResult with source HISTORICAL or SAMPLED
    """
    candidates = await collect_historical_addresses(fetcher, token, window)

    if len(candidates) <= cap:
        balances = await sample_balances(rpc, token, candidates)
        holders = sum(1 for balance in balances if balance > 0)
        return TotalHoldersResult(
            count=holders,
            source=HolderCountSource.HISTORICAL,
            candidate_count=len(candidates),
            sample_size=len(candidates),
        )

    sampler = rng or random.Random()
    sample = sampler.sample(candidates, cap)
    balances = await sample_balances(rpc, token, sample)
    nonzero = sum(1 for balance in balances if balance > 0)
    estimated = extrapolate_holders(len(candidates), nonzero, len(sample))
    logger.info(
        "Estimated %d holders for %s from %d/%d non-zero in sample of %d candidates",
        estimated,
        token,
        nonzero,
        len(sample),
        len(candidates),
    )
    return TotalHoldersResult(
        count=estimated,
        source=HolderCountSource.SAMPLED,
        candidate_count=len(candidates),
        sample_size=len(sample),
    )
