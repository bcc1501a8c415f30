"""
Exchange Flow Metric.

Tracks token movement to/from known exchange and DEX router addresses over
the last 24h.

Key Signals:
- Inflow (to an exchange): selling pressure
- Outflow (from an exchange): accumulation
- netFlow = outflow - inflow, positive means net accumulation

Transfer counts in each direction give a buy/sell ratio: a transfer out of
a router is a buy, a transfer into one is a sell.

With the small default address set most tokens show zero flow. That is a
valid result, not an error.

Usage:
    from sentinel.metrics.exchange_flows import calculate_exchange_flows

    result = await calculate_exchange_flows(
        fetcher, token, window, config.known_exchange_addresses, 18, 2.0
    )
    print(f"Net flow: {result.net_flow:.2f} ({result.net_flow_usd:.2f} USD)")
"""

from __future__ import annotations

import logging
from typing import Iterable

from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.models.metrics_models import (
    BlockWindow,
    ExchangeFlowResult,
    TransferRecord,
)
from sentinel.utils.units import to_token_units

logger = logging.getLogger(__name__)

# Reported when there were buys but no sells, or no trades at all
NEUTRAL_BUY_SELL_RATIO = 1.0


def calculate_buy_sell_ratio(buys: int, sells: int) -> float:
    """buys / sells, neutral 1.0 when there are no sells."""
    if sells == 0:
        return NEUTRAL_BUY_SELL_RATIO
    return buys / sells


class ExchangeFlowAnalyzer:
    """Streaming inflow/outflow accumulator for a fixed exchange set."""

    def __init__(self, exchange_addresses: Iterable[str]):
        self.exchange_addresses = frozenset(addr.lower() for addr in exchange_addresses)
        self.inflow_raw = 0
        self.outflow_raw = 0
        self.buys = 0
        self.sells = 0

    def add(self, record: TransferRecord) -> None:
        if record.to_address in self.exchange_addresses:
            self.inflow_raw += record.value
            self.sells += 1
        if record.from_address in self.exchange_addresses:
            self.outflow_raw += record.value
            self.buys += 1

    def result(self, decimals: int, price_usd: float) -> ExchangeFlowResult:
        inflows = to_token_units(self.inflow_raw, decimals)
        outflows = to_token_units(self.outflow_raw, decimals)
        net_flow = to_token_units(self.outflow_raw - self.inflow_raw, decimals)
        return ExchangeFlowResult(
            inflows_24h=inflows,
            outflows_24h=outflows,
            net_flow=net_flow,
            net_flow_usd=net_flow * price_usd,
            buys=self.buys,
            sells=self.sells,
            buy_sell_ratio=calculate_buy_sell_ratio(self.buys, self.sells),
        )


async def calculate_exchange_flows(
    fetcher: TransferLogFetcher,
    token: str,
    window: BlockWindow,
    exchange_addresses: Iterable[str],
    decimals: int,
    price_usd: float,
) -> ExchangeFlowResult:
    """Exchange flow for the 24h window.

    Args:
        fetcher: Transfer log fetcher bound to an RPC client
        token: Token address
        window: 24h block window
        exchange_addresses: Known exchange/router addresses
        decimals: Token decimals
        price_usd: Current unit price

    Returns:
        ExchangeFlowResult, all zero when no transfer touches an exchange
    """
    analyzer = ExchangeFlowAnalyzer(exchange_addresses)
    if not analyzer.exchange_addresses:
        logger.info("No known exchange addresses configured, exchange flow is zero")
        return analyzer.result(decimals, price_usd)

    async for record in fetcher.iter_transfers(
        token, window, decimals=decimals, with_timestamps=False
    ):
        analyzer.add(record)
    return analyzer.result(decimals, price_usd)
