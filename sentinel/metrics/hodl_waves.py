"""HODL Waves Bucketizer.

Buckets transferred value by how long ago the transfer happened and
expresses each bucket as a share of total supply.

This measures recent transfer activity by age of event. It is not the
holding age of the tokens: no per-token last-moved tracking is done.

Age bands (days):
- <1d, 1d-7d, 7d-30d, 30d-90d, 90d-180d, 180d-365d, >=365d

Transfers without a resolved block timestamp are skipped. If heavy
re-transfer pushes the summed bands above 100% of supply, the bands are
scaled down proportionally to sum to 100%.

Usage:
    from sentinel.metrics.hodl_waves import calculate_hodl_waves

    waves = await calculate_hodl_waves(fetcher, token, window, total_supply)
    print(f"<1d: {waves.less_than_1d:.2f}%")
"""

from __future__ import annotations

import logging
import time

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.models.metrics_models import BlockWindow, HodlWavesResult, TransferRecord

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

SECONDS_PER_DAY = 86_400

# Band boundaries: (field name, min_days, max_days); None means unbounded
HODL_BANDS: list[tuple[str, int, int | None]] = [
    ("less_than_1d", 0, 1),
    ("d1_to_7", 1, 7),
    ("w1_to_4", 7, 30),
    ("m1_to_3", 30, 90),
    ("m3_to_6", 90, 180),
    ("m6_to_12", 180, 365),
    ("more_than_1y", 365, None),
]

MAX_TOTAL_PERCENT = 100.0


def classify_age_band(age_seconds: float) -> str:
    """Band name for an event age; future timestamps fall in the youngest band."""
    age_days = max(0.0, age_seconds) / SECONDS_PER_DAY
    for name, _, max_days in HODL_BANDS:
        if max_days is None or age_days < max_days:
            return name
    return HODL_BANDS[-1][0]


class HodlWaveBucketizer:
    """Streaming age-band accumulator of raw transfer value."""

    def __init__(self, now: float | None = None):
        self.now = time.time() if now is None else now
        self.buckets: dict[str, int] = {name: 0 for name, _, _ in HODL_BANDS}
        self.skipped_without_timestamp = 0

    def add(self, record: TransferRecord) -> None:
        if record.timestamp is None:
            self.skipped_without_timestamp += 1
            return
        self.buckets[classify_age_band(self.now - record.timestamp)] += record.value

    def result(self, total_supply: int) -> HodlWavesResult:
        """Percent of `total_supply` per band, total capped at 100."""
        if total_supply <= 0:
            return HodlWavesResult()

        waves = {name: value / total_supply * 100 for name, value in self.buckets.items()}

        total = sum(waves.values())
        if total > MAX_TOTAL_PERCENT:
            factor = MAX_TOTAL_PERCENT / total
            waves = {name: pct * factor for name, pct in waves.items()}

        return HodlWavesResult(**waves)


async def calculate_hodl_waves(
    fetcher: TransferLogFetcher,
    token: str,
    window: BlockWindow,
    total_supply: int,
    decimals: int = 18,
    now: float | None = None,
) -> HodlWavesResult:
    """HODL waves over the lookback window (one year by default).

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        token: Token address
        window: Lookback block window
        total_supply: Raw total supply
        decimals: Token decimals, passed through to the fetcher
        now: Reference unix time (default: current time)

    Returns:
        HodlWavesResult with percentages of total supply
    """
    bucketizer = HodlWaveBucketizer(now)
    async for record in fetcher.iter_transfers(
        token, window, decimals=decimals, with_timestamps=True
    ):
        bucketizer.add(record)

    if bucketizer.skipped_without_timestamp:
        logger.warning(
            "HODL waves for %s skipped %d transfers without block timestamp",
            token,
            bucketizer.skipped_without_timestamp,
        )
    return bucketizer.result(total_supply)
