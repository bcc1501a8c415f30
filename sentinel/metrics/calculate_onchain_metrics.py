#!/usr/bin/env python3
"""
Assemble the on-chain MetricsBundle for one token.

Usage:
    python -m sentinel.metrics.calculate_onchain_metrics --token 0x... --price 2.0
    python -m sentinel.metrics.calculate_onchain_metrics --token 0x... --price 2.0 \
        --market-cap 5000000 --skip-total-holders

All aggregators run concurrently and settle independently. A failed
aggregator is replaced by the default in DEFAULT_RESULTS and named in
`failedMetrics`; the remaining results are unaffected. Only a malformed
token address or an RPC that cannot be reached for the head block aborts
the request.

Metrics produced:
- activeAddresses: daily/weekly/monthly unique addresses
- transactionVolume: 24h/7d/30d USD volume
- exchangeFlows: known-exchange inflow/outflow over 24h
- holderDistribution: sampled top-10/top-100 share and Gini
- whaleActivity: large transfers and accumulation score over 24h
- hodlWaves: age-banded share of supply moved within a year
- mvrv / nupl / nvt: derived valuation indicators
- totalHolders: historical holder estimate, or monthly active addresses
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import random
import sys
from typing import Any, Coroutine

from sentinel.config.logging_config import setup_logging
from sentinel.config.settings import OnChainConfig, load_config
from sentinel.data.erc20 import read_token_info, validate_address
from sentinel.data.transfer_logs import TransferLogFetcher
from sentinel.metrics.active_addresses import calculate_active_addresses
from sentinel.metrics.block_windows import PERIOD_DAY, period_windows, trailing_window
from sentinel.metrics.derived_indicators import calculate_derived_indicators
from sentinel.metrics.exchange_flows import calculate_exchange_flows
from sentinel.metrics.hodl_waves import calculate_hodl_waves
from sentinel.metrics.holder_distribution import calculate_holder_distribution
from sentinel.metrics.total_holders import estimate_total_holders
from sentinel.metrics.tx_volume import calculate_transaction_volume
from sentinel.metrics.whale_activity import (
    WhaleActivityAnalyzer,
    calculate_whale_activity,
)
from sentinel.models.metrics_models import (
    ActiveAddressesResult,
    ExchangeFlowResult,
    HodlWavesResult,
    HolderCountSource,
    HolderDistributionResult,
    MetricsBundle,
    TotalHoldersResult,
    TransactionVolumeResult,
    WhaleActivityResult,
)
from sentinel.utils.evm_rpc_async import EvmRpcAsyncClient, EvmRpcConfig, RpcError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400

# Neutral result substituted for an aggregator that raised
DEFAULT_RESULTS: dict[str, Any] = {
    "active_addresses": ActiveAddressesResult(),
    "transaction_volume": TransactionVolumeResult(),
    "exchange_flows": ExchangeFlowResult(),
    "holder_distribution": HolderDistributionResult(),
    "whale_activity": WhaleActivityResult(),
    "hodl_waves": HodlWavesResult(),
}


async def settle_all(
    tasks: dict[str, Coroutine[Any, Any, Any]],
    defaults: dict[str, Any] = DEFAULT_RESULTS,
) -> tuple[dict[str, Any], list[str]]:
    """Run named coroutines concurrently and collect every outcome.

    Args:
        tasks: Metric name -> coroutine
        defaults: Metric name -> result used when that coroutine raises

    Returns:
        (results by name, names that fell back to their default)
    """
    names = list(tasks)
    outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)

    results: dict[str, Any] = {}
    failed: list[str] = []
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, Exception):
            logger.error(
                "Metric %s failed, using default: %s: %s",
                name,
                type(outcome).__name__,
                outcome,
                extra={"metric": name},
            )
            results[name] = defaults[name]
            failed.append(name)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[name] = outcome
    return results, failed


async def _total_holders_or_fallback(
    coro: Coroutine[Any, Any, TotalHoldersResult],
    timeout_seconds: float,
) -> TotalHoldersResult | None:
    """Run the historical estimator under a deadline; None on failure."""
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(
            "Total holder walk exceeded %.0fs, using active addresses",
            timeout_seconds,
            extra={"metric": "total_holders"},
        )
    except Exception as e:
        logger.error(
            "Total holder walk failed, using active addresses: %s",
            e,
            extra={"metric": "total_holders"},
        )
    return None


async def calculate_onchain_metrics(
    rpc: EvmRpcAsyncClient,
    token_address: str,
    price_usd: float,
    config: OnChainConfig | None = None,
    market_cap_usd: float | None = None,
    include_total_holders: bool = True,
    rng: random.Random | None = None,
) -> MetricsBundle:
    """Compute every on-chain metric for a token.

    Args:
        rpc: Entered EvmRpcAsyncClient (or any object with the same API)
        token_address: 0x-prefixed 40-hex token address
        price_usd: Current unit price from the market data source
        config: Engine configuration (default: from environment)
        market_cap_usd: Market cap for NVT; defaults to price x supply
        include_total_holders: Run the slow historical holder walk
        rng: Random source for holder sampling

    Returns:
        Immutable MetricsBundle

    Raises:
        ValueError: Malformed token address or price
        RpcError: Head block could not be read (includes RpcUnavailableError)
    """
    config = config or OnChainConfig()
    token = validate_address(token_address)
    if not math.isfinite(price_usd) or price_usd < 0:
        raise ValueError(f"price_usd must be a finite non-negative number, got {price_usd}")

    current_block = await rpc.get_block_number()
    info = await read_token_info(rpc, token)
    logger.info(
        "Analyzing %s (%s) at block %d, price=%.6f",
        info.symbol,
        token,
        current_block,
        price_usd,
        extra={"token": token},
    )

    fetcher = TransferLogFetcher(rpc, max_block_span=config.max_block_span)
    avg_block_time = config.avg_block_time_seconds
    windows = period_windows(
        current_block,
        config.seconds_per_day,
        config.seconds_per_week,
        config.seconds_per_month,
        avg_block_time,
    )
    day_window = windows[PERIOD_DAY]
    holder_window = trailing_window(
        current_block, config.holder_scan_days * SECONDS_PER_DAY, avg_block_time
    )
    hodl_window = trailing_window(
        current_block, config.hodl_lookback_days * SECONDS_PER_DAY, avg_block_time
    )

    whale_analyzer = WhaleActivityAnalyzer(
        decimals=info.decimals,
        price_usd=price_usd,
        exchange_addresses=config.known_exchange_addresses,
        threshold_usd=config.large_tx_threshold_usd,
        total_supply=info.total_supply,
    )

    tasks: dict[str, Coroutine[Any, Any, Any]] = {
        "active_addresses": calculate_active_addresses(fetcher, token, windows),
        "transaction_volume": calculate_transaction_volume(
            fetcher, token, windows, info.decimals, price_usd
        ),
        "exchange_flows": calculate_exchange_flows(
            fetcher,
            token,
            day_window,
            config.known_exchange_addresses,
            info.decimals,
            price_usd,
        ),
        "holder_distribution": calculate_holder_distribution(
            fetcher,
            rpc,
            token,
            holder_window,
            info.total_supply,
            candidate_cap=config.holder_candidate_cap,
            balance_sample=config.holder_balance_sample,
        ),
        "whale_activity": calculate_whale_activity(
            fetcher, token, day_window, whale_analyzer
        ),
        "hodl_waves": calculate_hodl_waves(
            fetcher, token, hodl_window, info.total_supply, decimals=info.decimals
        ),
    }

    defaults: dict[str, Any] = dict(DEFAULT_RESULTS)
    if include_total_holders:
        total_window = trailing_window(
            current_block,
            config.total_holders_lookback_days * SECONDS_PER_DAY,
            avg_block_time,
        )
        tasks["total_holders"] = _total_holders_or_fallback(
            estimate_total_holders(
                fetcher, rpc, token, total_window, cap=config.total_holders_cap, rng=rng
            ),
            config.total_holders_timeout_seconds,
        )
        defaults["total_holders"] = None

    results, failed = await settle_all(tasks, defaults)

    active: ActiveAddressesResult = results["active_addresses"]
    total_holders = results.get("total_holders")
    if total_holders is None:
        total_holders = TotalHoldersResult(
            count=active.monthly, source=HolderCountSource.ACTIVE_ADDRESSES
        )

    volume: TransactionVolumeResult = results["transaction_volume"]
    derived = calculate_derived_indicators(
        price_usd,
        info.total_supply_tokens,
        volume.volume_30d,
        market_cap_usd=market_cap_usd,
    )

    bundle = MetricsBundle(
        token=info,
        block_number=current_block,
        price_usd=price_usd,
        active_addresses=active,
        transaction_volume=volume,
        exchange_flows=results["exchange_flows"],
        holder_distribution=results["holder_distribution"],
        mvrv=derived.mvrv,
        nupl=derived.nupl,
        whale_activity=results["whale_activity"],
        hodl_waves=results["hodl_waves"],
        nvt=derived.nvt,
        total_holders=total_holders,
        failed_metrics=tuple(failed),
    )
    logger.info(
        "Metrics for %s: holders=%d (%s), volume30d=%.2f, failed=%s",
        info.symbol,
        total_holders.count,
        total_holders.source.value,
        volume.volume_30d,
        ",".join(failed) or "none",
    )
    return bundle


async def _run(args: argparse.Namespace, config: OnChainConfig) -> MetricsBundle:
    async with EvmRpcAsyncClient(EvmRpcConfig.from_onchain_config(config)) as rpc:
        return await calculate_onchain_metrics(
            rpc,
            args.token,
            args.price,
            config=config,
            market_cap_usd=args.market_cap,
            include_total_holders=not args.skip_total_holders,
        )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Compute on-chain metrics for an ERC-20 token"
    )
    parser.add_argument("--token", required=True, help="Token contract address")
    parser.add_argument("--price", type=float, required=True, help="Unit price in USD")
    parser.add_argument("--market-cap", type=float, help="Market cap in USD for NVT")
    parser.add_argument("--rpc-url", type=str, help="Override primary RPC endpoint")
    parser.add_argument(
        "--skip-total-holders",
        action="store_true",
        help="Use monthly active addresses instead of the historical walk",
    )
    parser.add_argument(
        "--env-file", type=str, help="Path to a .env file (default: ./.env)"
    )
    args = parser.parse_args(argv)

    config = load_config(args.env_file)
    if args.rpc_url:
        config.primary_rpc_url = args.rpc_url
    setup_logging(level=config.log_level, mode=config.log_mode, log_dir=config.log_dir)

    try:
        bundle = asyncio.run(_run(args, config))
    except (ValueError, RpcError) as e:
        logger.error("Metrics calculation aborted: %s", e)
        return 1

    print(json.dumps(bundle.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
