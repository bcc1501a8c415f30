"""
Active Addresses Metric.

Counts unique addresses that sent or received the token in a block window.
The zero address (mint/burn counterparty) is never counted.

Each period is a fresh unique count over its own window: the weekly figure
is not derived from daily figures, since an address active on several days
counts once per window.

Usage:
    from sentinel.metrics.active_addresses import calculate_active_addresses

    result = await calculate_active_addresses(fetcher, token, windows)
    print(f"Daily: {result.daily}, Monthly: {result.monthly}")
"""

from __future__ import annotations

import asyncio
import logging

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.block_windows import PERIOD_DAY, PERIOD_MONTH, PERIOD_WEEK
from sentinel.models.metrics_models import (
    ZERO_ADDRESS,
    ActiveAddressesResult,
    BlockWindow,
    TransferRecord,
)

logger = logging.getLogger(__name__)


class ActiveAddressCounter:
    """Streaming unique-address set over TransferRecords."""

    def __init__(self):
        self._addresses: set[str] = set()

    def add(self, record: TransferRecord) -> None:
        for address in (record.from_address, record.to_address):
            if address != ZERO_ADDRESS:
                self._addresses.add(address)

    @property
    def addresses(self) -> frozenset[str]:
        return frozenset(self._addresses)

    @property
    def count(self) -> int:
        return len(self._addresses)


async def count_window_active_addresses(
    fetcher: TransferLogFetcher, token: str, window: BlockWindow
) -> int:
    """Stream one window through an ActiveAddressCounter."""
    counter = ActiveAddressCounter()
    async for record in fetcher.iter_transfers(token, window, with_timestamps=False):
        counter.add(record)
    logger.debug(
        "Active addresses in blocks %d-%d: %d",
        window.from_block,
        window.to_block,
        counter.count,
    )
    return counter.count


async def calculate_active_addresses(
    fetcher: TransferLogFetcher,
    token: str,
    windows: dict[str, BlockWindow],
) -> ActiveAddressesResult:
    """Daily, weekly and monthly unique-address counts.

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        token: Token address
        windows: Mapping with "day", "week" and "month" windows

    Returns:
        ActiveAddressesResult
    """
    daily, weekly, monthly = await asyncio.gather(
        count_window_active_addresses(fetcher, token, windows[PERIOD_DAY]),
        count_window_active_addresses(fetcher, token, windows[PERIOD_WEEK]),
        count_window_active_addresses(fetcher, token, windows[PERIOD_MONTH]),
    )
    return ActiveAddressesResult(daily=daily, weekly=weekly, monthly=monthly)
