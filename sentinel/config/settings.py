#!/usr/bin/env python3
"""
Configuration for the on-chain metrics engine

Every setting can be overridden via environment variables. A `.env` file is
read by `load_config()` before the dataclass is built; values already present
in the process environment win.

Usage:
    from sentinel.config import load_config

    config = load_config()
    async with EvmRpcAsyncClient(EvmRpcConfig.from_onchain_config(config)) as rpc:
        ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_RPC_URL = "https://api.avax.network/ext/bc/C/rpc"

# TraderJoe and Pangolin routers on Avalanche C-Chain
DEFAULT_EXCHANGE_ADDRESSES = (
    "0x60ae616a2155ee3d9a68541ba4544862310933d4",
    "0xe54ca86531e17ef3616d22ca28b0d458b6c89106",
)


def _split_list(raw: str | None) -> list[str]:
    """Split a comma separated env value, dropping blanks."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _exchange_addresses_from_env() -> frozenset[str]:
    raw = os.getenv("KNOWN_EXCHANGE_ADDRESSES")
    if raw is None:
        return frozenset(DEFAULT_EXCHANGE_ADDRESSES)
    return frozenset(addr.lower() for addr in _split_list(raw))


@dataclass
class OnChainConfig:
    """
    Settings consumed by the RPC client, the fetcher and the aggregators.

    Block windows are sized from `avg_block_time_seconds`, a fixed
    approximation of the chain's block interval.
    """

    # ==================== RPC Endpoints ====================
    primary_rpc_url: str = field(
        default_factory=lambda: os.getenv("RPC_URL", DEFAULT_RPC_URL)
    )
    fallback_rpc_urls: list[str] = field(
        default_factory=lambda: _split_list(os.getenv("RPC_FALLBACK_URLS"))
    )

    # ==================== RPC Behaviour ====================
    max_block_span: int = field(
        default_factory=lambda: int(os.getenv("RPC_MAX_BLOCK_SPAN", "2048"))
    )
    rpc_max_retries: int = field(
        default_factory=lambda: int(os.getenv("RPC_MAX_RETRIES", "3"))
    )
    rpc_base_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("RPC_BASE_DELAY_SECONDS", "1.0"))
    )
    rpc_timeout_seconds: int = field(
        default_factory=lambda: int(os.getenv("RPC_TIMEOUT_SECONDS", "30"))
    )
    max_concurrent_requests: int = field(
        default_factory=lambda: int(os.getenv("RPC_MAX_CONCURRENT_REQUESTS", "10"))
    )

    # ==================== Classification Inputs ====================
    known_exchange_addresses: frozenset[str] = field(
        default_factory=_exchange_addresses_from_env
    )
    large_tx_threshold_usd: float = field(
        default_factory=lambda: float(os.getenv("LARGE_TX_THRESHOLD_USD", "100000"))
    )

    # ==================== Time Periods ====================
    seconds_per_day: int = field(
        default_factory=lambda: int(os.getenv("PERIOD_DAY_SECONDS", "86400"))
    )
    seconds_per_week: int = field(
        default_factory=lambda: int(os.getenv("PERIOD_WEEK_SECONDS", "604800"))
    )
    seconds_per_month: int = field(
        default_factory=lambda: int(os.getenv("PERIOD_MONTH_SECONDS", "2592000"))
    )
    avg_block_time_seconds: float = field(
        default_factory=lambda: float(os.getenv("AVG_BLOCK_TIME_SECONDS", "2.0"))
    )

    # ==================== Holder Sampling ====================
    holder_scan_days: int = field(
        default_factory=lambda: int(os.getenv("HOLDER_SCAN_DAYS", "30"))
    )
    holder_candidate_cap: int = field(
        default_factory=lambda: int(os.getenv("HOLDER_CANDIDATE_CAP", "1000"))
    )
    holder_balance_sample: int = field(
        default_factory=lambda: int(os.getenv("HOLDER_BALANCE_SAMPLE", "100"))
    )
    total_holders_lookback_days: int = field(
        default_factory=lambda: int(os.getenv("TOTAL_HOLDERS_LOOKBACK_DAYS", "90"))
    )
    total_holders_cap: int = field(
        default_factory=lambda: int(os.getenv("TOTAL_HOLDERS_CAP", "10000"))
    )
    total_holders_timeout_seconds: float = field(
        default_factory=lambda: float(
            os.getenv("TOTAL_HOLDERS_TIMEOUT_SECONDS", "120")
        )
    )
    hodl_lookback_days: int = field(
        default_factory=lambda: int(os.getenv("HODL_LOOKBACK_DAYS", "365"))
    )

    # ==================== Logging ====================
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_mode: str = field(
        default_factory=lambda: os.getenv("LOG_MODE", "development")
    )  # development or production
    log_dir: str = field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))

    def __post_init__(self):
        """Validate configuration after initialization"""
        self.known_exchange_addresses = frozenset(
            addr.lower() for addr in self.known_exchange_addresses
        )
        if self.max_block_span <= 0:
            raise ValueError("max_block_span must be positive")
        if self.rpc_max_retries < 1:
            raise ValueError("rpc_max_retries must be at least 1")
        if self.avg_block_time_seconds <= 0:
            raise ValueError("avg_block_time_seconds must be positive")
        if self.large_tx_threshold_usd < 0:
            raise ValueError("large_tx_threshold_usd must be non-negative")
        if self.holder_balance_sample > self.holder_candidate_cap:
            raise ValueError(
                "holder_balance_sample must not exceed holder_candidate_cap"
            )

    @property
    def rpc_urls(self) -> list[str]:
        """Primary endpoint followed by fallbacks, duplicates removed."""
        urls: list[str] = []
        for url in [self.primary_rpc_url, *self.fallback_rpc_urls]:
            if url and url not in urls:
                urls.append(url)
        return urls

    def to_dict(self) -> dict:
        """Convert configuration to dictionary"""
        data = {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }
        data["known_exchange_addresses"] = sorted(self.known_exchange_addresses)
        return data


def load_config(env_file: str | Path | None = None) -> OnChainConfig:
    """
    Load `.env` (if present) and build a fresh OnChainConfig.

    Args:
        env_file: Explicit dotenv path. Defaults to `.env` in the working
            directory.

    Returns:
        New OnChainConfig instance
    """
    env_path = Path(env_file) if env_file else Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)
    return OnChainConfig()
