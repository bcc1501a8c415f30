"""Tests for exchange flow analysis."""

import pytest

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.exchange_flows import (
    ExchangeFlowAnalyzer,
    calculate_buy_sell_ratio,
    calculate_exchange_flows,
)
from sentinel.models.metrics_models import BlockWindow, TransferRecord
from tests.fixtures.rpc_fixtures import (
    ALICE,
    BOB,
    DEX,
    HEAD_BLOCK,
    ONE_TOKEN,
    TOKEN,
    FakeRpcClient,
)

EXCHANGES = {DEX}


def _flows(records, exchanges, decimals, price_usd):
    analyzer = ExchangeFlowAnalyzer(exchanges)
    for record in records:
        analyzer.add(record)
    return analyzer.result(decimals, price_usd)


class TestAnalyzeExchangeFlows:
    """Tests for inflow/outflow netting."""

    def test_accumulation_positive_net_flow(self):
        """100 out of the exchange and 50 into it nets +50."""
        records = [
            TransferRecord(DEX, ALICE, 100 * ONE_TOKEN, 1),
            TransferRecord(BOB, DEX, 50 * ONE_TOKEN, 2),
        ]
        result = _flows(records, EXCHANGES, 18, 2.0)
        assert result.outflows_24h == pytest.approx(100.0)
        assert result.inflows_24h == pytest.approx(50.0)
        assert result.net_flow == pytest.approx(50.0)
        assert result.net_flow_usd == pytest.approx(100.0)

    def test_selling_pressure_negative_net_flow(self):
        records = [TransferRecord(ALICE, DEX, 30 * ONE_TOKEN, 1)]
        result = _flows(records, EXCHANGES, 18, 1.0)
        assert result.net_flow == pytest.approx(-30.0)

    def test_empty_exchange_set_is_zero(self):
        records = [TransferRecord(DEX, ALICE, 100 * ONE_TOKEN, 1)]
        result = _flows(records, set(), 18, 2.0)
        assert (result.inflows_24h, result.outflows_24h, result.net_flow, result.net_flow_usd) == (
            0.0,
            0.0,
            0.0,
            0.0,
        )

    def test_untouched_exchange_is_zero(self):
        records = [TransferRecord(ALICE, BOB, 100 * ONE_TOKEN, 1)]
        result = _flows(records, EXCHANGES, 18, 2.0)
        assert result.net_flow == 0.0
        assert result.buy_sell_ratio == 1.0

    def test_exchange_addresses_case_insensitive(self):
        analyzer = ExchangeFlowAnalyzer({DEX.upper().replace("0X", "0x")})
        analyzer.add(TransferRecord(ALICE, DEX, ONE_TOKEN, 1))
        assert analyzer.inflow_raw == ONE_TOKEN

    def test_buy_sell_counts(self):
        records = [
            TransferRecord(DEX, ALICE, 1, 1),
            TransferRecord(DEX, BOB, 1, 2),
            TransferRecord(DEX, BOB, 1, 3),
            TransferRecord(ALICE, DEX, 1, 4),
        ]
        result = _flows(records, EXCHANGES, 18, 1.0)
        assert result.buys == 3
        assert result.sells == 1
        assert result.buy_sell_ratio == pytest.approx(3.0)


class TestBuySellRatio:
    def test_no_sells_is_neutral(self):
        assert calculate_buy_sell_ratio(5, 0) == 1.0

    def test_ratio(self):
        assert calculate_buy_sell_ratio(1, 4) == pytest.approx(0.25)


class TestCalculateExchangeFlows:
    @pytest.mark.asyncio
    async def test_streams_window(self, active_chain):
        window = BlockWindow(HEAD_BLOCK - 1_000, HEAD_BLOCK)
        result = await calculate_exchange_flows(
            TransferLogFetcher(active_chain), TOKEN, window, EXCHANGES, 18, 1.0
        )
        assert result.outflows_24h == pytest.approx(100.0)
        assert result.inflows_24h == pytest.approx(50.0)
        assert result.net_flow == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_empty_set_skips_scan(self, active_chain):
        window = BlockWindow(HEAD_BLOCK - 1_000, HEAD_BLOCK)
        result = await calculate_exchange_flows(
            TransferLogFetcher(active_chain), TOKEN, window, set(), 18, 1.0
        )
        assert result.net_flow == 0.0
        assert active_chain.log_queries == []
