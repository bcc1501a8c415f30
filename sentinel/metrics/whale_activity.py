"""
Whale Activity Metric.

Detects large transfers over the last 24h and scores whether whales are
accumulating or distributing.

For every transfer whose USD value reaches the threshold ($100k default):
- counts towards largeTransactions24h and whaleVolume24h
- adds to accumulation volume when the receiver is not an exchange and not
  the zero address
- adds to distribution volume when the sender is not an exchange and not
  the zero address

A wallet-to-wallet transfer satisfies both conditions and is counted in both
volumes, cancelling out in the score.

accumulationScore = (acc - dist) / (acc + dist), in [-1, 1], 0 when both
volumes are zero.

Activity level counts transfers above 1% of total supply:
- HIGH: > 10
- MODERATE: > 3
- LOW: otherwise

Usage:
    from sentinel.metrics.whale_activity import calculate_whale_activity

    result = await calculate_whale_activity(fetcher, token, window, analyzer)
"""

from __future__ import annotations

import logging
from typing import Iterable

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.models.metrics_models import (
    ZERO_ADDRESS,
    BlockWindow,
    TransferRecord,
    WhaleActivityLevel,
    WhaleActivityResult,
)
from sentinel.utils.units import clamp, to_basis_points, to_usd

logger = logging.getLogger(__name__)

DEFAULT_LARGE_TX_THRESHOLD_USD = 100_000.0

# Supply-share whales: transfers above 1% of total supply
SUPPLY_WHALE_THRESHOLD_BPS = 100
ACTIVITY_HIGH_COUNT = 10
ACTIVITY_MODERATE_COUNT = 3


def calculate_accumulation_score(accumulation_volume: float, distribution_volume: float) -> float:
    """Normalized accumulation minus distribution, clamped to [-1, 1]."""
    total = accumulation_volume + distribution_volume
    if total <= 0:
        return 0.0
    return clamp((accumulation_volume - distribution_volume) / total, -1.0, 1.0)


def classify_whale_activity(supply_whale_transfers: int) -> WhaleActivityLevel:
    """Activity level from the count of >1%-of-supply transfers."""
    if supply_whale_transfers > ACTIVITY_HIGH_COUNT:
        return WhaleActivityLevel.HIGH
    elif supply_whale_transfers > ACTIVITY_MODERATE_COUNT:
        return WhaleActivityLevel.MODERATE
    return WhaleActivityLevel.LOW


class WhaleActivityAnalyzer:
    """Streaming large-transfer accumulator."""

    def __init__(
        self,
        decimals: int,
        price_usd: float,
        exchange_addresses: Iterable[str] = (),
        threshold_usd: float = DEFAULT_LARGE_TX_THRESHOLD_USD,
        total_supply: int = 0,
    ):
        self.decimals = decimals
        self.price_usd = price_usd
        self.exchange_addresses = frozenset(addr.lower() for addr in exchange_addresses)
        self.threshold_usd = threshold_usd
        self.total_supply = total_supply

        self.large_transactions = 0
        self.whale_volume = 0.0
        self.accumulation_volume = 0.0
        self.distribution_volume = 0.0
        self.supply_whale_transfers = 0

    def _is_wallet(self, address: str) -> bool:
        return address != ZERO_ADDRESS and address not in self.exchange_addresses

    def add(self, record: TransferRecord) -> None:
        if self.total_supply > 0:
            share_bps = to_basis_points(record.value / self.total_supply)
            if share_bps > SUPPLY_WHALE_THRESHOLD_BPS:
                self.supply_whale_transfers += 1

        usd_value = to_usd(record.value, self.decimals, self.price_usd)
        if usd_value < self.threshold_usd:
            return

        self.large_transactions += 1
        self.whale_volume += usd_value
        if self._is_wallet(record.to_address):
            self.accumulation_volume += usd_value
        if self._is_wallet(record.from_address):
            self.distribution_volume += usd_value

    def result(self) -> WhaleActivityResult:
        return WhaleActivityResult(
            large_transactions_24h=self.large_transactions,
            whale_volume_24h=self.whale_volume,
            accumulation_score=calculate_accumulation_score(
                self.accumulation_volume, self.distribution_volume
            ),
            accumulation_volume=self.accumulation_volume,
            distribution_volume=self.distribution_volume,
            activity_level=classify_whale_activity(self.supply_whale_transfers),
        )


async def calculate_whale_activity(
    fetcher: TransferLogFetcher,
    token: str,
    window: BlockWindow,
    analyzer: WhaleActivityAnalyzer,
) -> WhaleActivityResult:
    """Stream the 24h window through `analyzer`."""
    async for record in fetcher.iter_transfers(
        token, window, decimals=analyzer.decimals, with_timestamps=False
    ):
        analyzer.add(record)
    result = analyzer.result()
    logger.debug(
        "Whale activity for %s: %d large transfers, score=%.3f",
        token,
        result.large_transactions_24h,
        result.accumulation_score,
    )
    return result
