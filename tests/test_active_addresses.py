"""Tests for active address counting and block window sizing."""

import random

import pytest

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.active_addresses import (
    ActiveAddressCounter,
    calculate_active_addresses,
)
from sentinel.metrics.block_windows import (
    blocks_for_seconds,
    period_windows,
    trailing_window,
)
from sentinel.models.metrics_models import BlockWindow, TransferRecord
from tests.fixtures.rpc_fixtures import (
    ALICE,
    BOB,
    CAROL,
    HEAD_BLOCK,
    TOKEN,
    ZERO,
    FakeRpcClient,
    make_log,
)


def record(sender, receiver, value=1, block=1):
    return TransferRecord(sender, receiver, value, block)


def _count_addresses(records):
    counter = ActiveAddressCounter()
    for item in records:
        counter.add(item)
    return counter.count


class TestBlockWindows:
    def test_blocks_round_up(self):
        assert blocks_for_seconds(86_400, 2.0) == 43_200
        assert blocks_for_seconds(5, 2.0) == 3

    def test_trailing_window(self):
        assert trailing_window(1_000_000, 86_400, 2.0) == BlockWindow(956_800, 1_000_000)

    def test_trailing_window_clamped_at_genesis(self):
        assert trailing_window(1_000, 86_400, 2.0) == BlockWindow(0, 1_000)

    def test_invalid_block_time(self):
        with pytest.raises(ValueError, match="avg_block_time_seconds must be positive"):
            blocks_for_seconds(60, 0)

    def test_period_windows_independent(self):
        windows = period_windows(10_000_000, 86_400, 604_800, 2_592_000, 2.0)
        assert windows["day"].from_block == 10_000_000 - 43_200
        assert windows["week"].from_block == 10_000_000 - 302_400
        assert windows["month"].from_block == 10_000_000 - 1_296_000
        assert {w.to_block for w in windows.values()} == {10_000_000}


class TestCountActiveAddresses:
    """Tests for set-based unique address counting."""

    def test_counts_senders_and_receivers(self):
        records = [record(ALICE, BOB), record(BOB, CAROL)]
        assert _count_addresses(records) == 3

    def test_zero_address_excluded(self):
        records = [record(ZERO, ALICE)] * 50 + [record(BOB, ZERO)] * 50
        assert _count_addresses(records) == 2

    def test_only_mints_and_burns_of_zero(self):
        assert _count_addresses([record(ZERO, ZERO)]) == 0

    def test_order_invariant(self):
        records = [
            record(ALICE, BOB),
            record(BOB, CAROL),
            record(ZERO, ALICE),
            record(CAROL, ALICE),
            record(BOB, ZERO),
        ]
        expected = _count_addresses(records)
        rng = random.Random(7)
        for _ in range(20):
            shuffled = records[:]
            rng.shuffle(shuffled)
            assert _count_addresses(shuffled) == expected

    def test_repeated_address_counted_once(self):
        counter = ActiveAddressCounter()
        for _ in range(10):
            counter.add(record(ALICE, BOB))
        assert counter.count == 2
        assert counter.addresses == frozenset({ALICE, BOB})

    def test_empty(self):
        assert _count_addresses([]) == 0


class TestCalculateActiveAddresses:
    @pytest.mark.asyncio
    async def test_each_period_counts_its_own_window(self):
        """A week is a fresh unique count, not a merge of daily counts."""
        logs = [
            make_log(HEAD_BLOCK - 100, ALICE, BOB, 1),  # inside day
            make_log(HEAD_BLOCK - 200, ALICE, BOB, 1, log_index=1),  # repeat inside day
            make_log(HEAD_BLOCK - 50_000, CAROL, ALICE, 1),  # week only
        ]
        rpc = FakeRpcClient(logs=logs)
        windows = period_windows(HEAD_BLOCK, 86_400, 604_800, 2_592_000, 2.0)
        result = await calculate_active_addresses(TransferLogFetcher(rpc), TOKEN, windows)
        assert result.daily == 2
        assert result.weekly == 3
        assert result.monthly == 3
        assert result.to_dict() == {"daily": 2, "weekly": 3, "monthly": 3}
