"""Tests for whale activity detection and accumulation scoring."""

import pytest

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.whale_activity import (
    WhaleActivityAnalyzer,
    calculate_accumulation_score,
    calculate_whale_activity,
    classify_whale_activity,
)
from sentinel.models.metrics_models import (
    BlockWindow,
    TransferRecord,
    WhaleActivityLevel,
    WhaleActivityResult,
)
from tests.fixtures.rpc_fixtures import (
    ALICE,
    BOB,
    DEX,
    HEAD_BLOCK,
    ONE_TOKEN,
    TOKEN,
    ZERO,
    FakeRpcClient,
    make_log,
)


def _analyze(records, whale):
    for record in records:
        whale.add(record)
    return whale.result()


def analyzer(total_supply=0, threshold=100_000.0):
    # price $1, so one token == $1
    return WhaleActivityAnalyzer(
        decimals=18,
        price_usd=1.0,
        exchange_addresses={DEX},
        threshold_usd=threshold,
        total_supply=total_supply,
    )


class TestWhaleClassification:
    """Tests for large transfer classification."""

    def test_wallet_to_wallet_counts_in_both_volumes(self):
        """A $150k wallet-to-wallet transfer is both accumulation and distribution.

        Double counting is inherited behavior and kept on purpose; the two
        contributions cancel in the score.
        """
        records = [TransferRecord(ALICE, BOB, 150_000 * ONE_TOKEN, 1)]
        result = _analyze(records, analyzer())
        assert result.large_transactions_24h == 1
        assert result.whale_volume_24h == pytest.approx(150_000.0)
        assert result.accumulation_volume == pytest.approx(150_000.0)
        assert result.distribution_volume == pytest.approx(150_000.0)
        assert result.accumulation_score == 0.0

    def test_withdrawal_from_exchange_is_accumulation(self):
        records = [TransferRecord(DEX, ALICE, 200_000 * ONE_TOKEN, 1)]
        result = _analyze(records, analyzer())
        assert result.accumulation_volume == pytest.approx(200_000.0)
        assert result.distribution_volume == 0.0
        assert result.accumulation_score == 1.0

    def test_deposit_to_exchange_is_distribution(self):
        records = [TransferRecord(ALICE, DEX, 200_000 * ONE_TOKEN, 1)]
        result = _analyze(records, analyzer())
        assert result.accumulation_score == -1.0

    def test_mint_to_wallet_is_accumulation_only(self):
        records = [TransferRecord(ZERO, ALICE, 200_000 * ONE_TOKEN, 1)]
        result = _analyze(records, analyzer())
        assert result.distribution_volume == 0.0
        assert result.accumulation_score == 1.0

    def test_below_threshold_ignored(self):
        records = [TransferRecord(ALICE, BOB, 99_999 * ONE_TOKEN, 1)]
        result = _analyze(records, analyzer())
        assert result.large_transactions_24h == 0
        assert result.whale_volume_24h == 0.0

    def test_threshold_inclusive(self):
        records = [TransferRecord(ALICE, BOB, 100_000 * ONE_TOKEN, 1)]
        assert _analyze(records, analyzer()).large_transactions_24h == 1


class TestAccumulationScore:
    def test_zero_volumes(self):
        assert calculate_accumulation_score(0.0, 0.0) == 0.0

    def test_mixed(self):
        assert calculate_accumulation_score(300.0, 100.0) == pytest.approx(0.5)

    def test_bounded(self):
        for acc, dist in [(1e30, 0.0), (0.0, 1e30), (1.0, 1e-30)]:
            assert -1.0 <= calculate_accumulation_score(acc, dist) <= 1.0

    def test_result_rejects_out_of_range(self):
        with pytest.raises(ValueError, match="accumulation_score out of range"):
            WhaleActivityResult(accumulation_score=1.5)


class TestActivityLevel:
    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, WhaleActivityLevel.LOW),
            (3, WhaleActivityLevel.LOW),
            (4, WhaleActivityLevel.MODERATE),
            (10, WhaleActivityLevel.MODERATE),
            (11, WhaleActivityLevel.HIGH),
        ],
    )
    def test_thresholds(self, count, expected):
        assert classify_whale_activity(count) is expected

    def test_supply_share_counts_transfers_above_one_percent(self):
        supply = 1_000 * ONE_TOKEN
        records = [TransferRecord(ALICE, BOB, 11 * ONE_TOKEN, i) for i in range(4)]
        records.append(TransferRecord(ALICE, BOB, 10 * ONE_TOKEN, 9))  # exactly 1%
        whale = analyzer(total_supply=supply)
        result = _analyze(records, whale)
        assert whale.supply_whale_transfers == 4
        assert result.activity_level is WhaleActivityLevel.MODERATE


class TestCalculateWhaleActivity:
    @pytest.mark.asyncio
    async def test_streams_window(self):
        rpc = FakeRpcClient(
            logs=[
                make_log(HEAD_BLOCK - 5, ALICE, BOB, 150_000 * ONE_TOKEN),
                make_log(HEAD_BLOCK - 4, ALICE, BOB, 10 * ONE_TOKEN),
            ]
        )
        result = await calculate_whale_activity(
            TransferLogFetcher(rpc), TOKEN, BlockWindow(HEAD_BLOCK - 100, HEAD_BLOCK), analyzer()
        )
        assert result.large_transactions_24h == 1
        assert result.to_dict()["whaleVolume24h"] == pytest.approx(150_000.0)
