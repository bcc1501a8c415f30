"""
Transaction Volume Metric.

USD-denominated transfer volume over trailing 24h/7d/30d windows. Mints and
burns are excluded. Every window is priced at the request-time unit price,
not a historical per-block price.

Usage:
    from sentinel.metrics.tx_volume import calculate_transaction_volume

    result = await calculate_transaction_volume(fetcher, token, windows, 18, 2.0)
"""

from __future__ import annotations

import asyncio
import logging

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.block_windows import PERIOD_DAY, PERIOD_MONTH, PERIOD_WEEK
from sentinel.models.metrics_models import (
    BlockWindow,
    TransactionVolumeResult,
    TransferRecord,
)
from sentinel.utils.units import to_usd

logger = logging.getLogger(__name__)


class VolumeSummer:
    """Exact integer sum of non-mint, non-burn transfer values."""

    def __init__(self):
        self.raw_total = 0
        self.transfer_count = 0

    def add(self, record: TransferRecord) -> None:
        if record.is_mint or record.is_burn:
            return
        self.raw_total += record.value
        self.transfer_count += 1

    def usd(self, decimals: int, price_usd: float) -> float:
        return to_usd(self.raw_total, decimals, price_usd)


async def window_volume_usd(
    fetcher: TransferLogFetcher,
    token: str,
    window: BlockWindow,
    decimals: int,
    price_usd: float,
) -> float:
    summer = VolumeSummer()
    async for record in fetcher.iter_transfers(
        token, window, decimals=decimals, with_timestamps=False
    ):
        summer.add(record)
    return summer.usd(decimals, price_usd)


async def calculate_transaction_volume(
    fetcher: TransferLogFetcher,
    token: str,
    windows: dict[str, BlockWindow],
    decimals: int,
    price_usd: float,
) -> TransactionVolumeResult:
    """24h, 7d and 30d USD volume, each from its own window scan.

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        token: Token address
        windows: Mapping with "day", "week" and "month" windows
        decimals: Token decimals
        price_usd: Current unit price

    Returns:
        TransactionVolumeResult
    """
    volume_24h, volume_7d, volume_30d = await asyncio.gather(
        window_volume_usd(fetcher, token, windows[PERIOD_DAY], decimals, price_usd),
        window_volume_usd(fetcher, token, windows[PERIOD_WEEK], decimals, price_usd),
        window_volume_usd(fetcher, token, windows[PERIOD_MONTH], decimals, price_usd),
    )
    logger.debug(
        "Volume for %s: 24h=%.2f 7d=%.2f 30d=%.2f", token, volume_24h, volume_7d, volume_30d
    )
    return TransactionVolumeResult(
        volume_24h=volume_24h, volume_7d=volume_7d, volume_30d=volume_30d
    )
