"""Trailing block windows sized from a constant average block time.

The chain's real block interval varies; windows are an approximation driven
by `avg_block_time_seconds` and are never re-measured against block
timestamps.
"""

from __future__ import annotations

import math

from sentinel.models.metrics_models import BlockWindow

PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"


def blocks_for_seconds(seconds: float, avg_block_time_seconds: float) -> int:
    """Blocks expected in `seconds` of chain time, rounded up."""
    if avg_block_time_seconds <= 0:
        raise ValueError(
            f"avg_block_time_seconds must be positive, got {avg_block_time_seconds}"
        )
    if seconds < 0:
        raise ValueError(f"seconds must be non-negative, got {seconds}")
    return math.ceil(seconds / avg_block_time_seconds)


def trailing_window(
    current_block: int, seconds: float, avg_block_time_seconds: float
) -> BlockWindow:
    """Window ending at `current_block` and covering roughly `seconds`.

    The start is clamped at genesis for young chains.
    """
    blocks = blocks_for_seconds(seconds, avg_block_time_seconds)
    return BlockWindow(max(0, current_block - blocks), current_block)


def period_windows(
    current_block: int,
    seconds_per_day: int,
    seconds_per_week: int,
    seconds_per_month: int,
    avg_block_time_seconds: float,
) -> dict[str, BlockWindow]:
    """Independent day/week/month windows, all ending at `current_block`."""
    return {
        PERIOD_DAY: trailing_window(current_block, seconds_per_day, avg_block_time_seconds),
        PERIOD_WEEK: trailing_window(current_block, seconds_per_week, avg_block_time_seconds),
        PERIOD_MONTH: trailing_window(
            current_block, seconds_per_month, avg_block_time_seconds
        ),
    }
