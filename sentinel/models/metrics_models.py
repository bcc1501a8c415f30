"""
Data models for on-chain token metrics.

Result dataclasses exchanged between the fetcher, the aggregators, the
derived indicator calculator and the bundle assembler. All results are
frozen; `to_dict()` emits the camelCase shape handed to downstream
consumers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ConcentrationRisk(str, Enum):
    """Holder concentration tier"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ValuationSignal(str, Enum):
    """Shared by MVRV and NVT interpretations"""

    UNDERVALUED = "undervalued"
    FAIR = "fair"
    OVERVALUED = "overvalued"


class NUPLZone(str, Enum):
    """Market cycle zone derived from NUPL"""

    CAPITULATION = "capitulation"
    FEAR = "fear"
    HOPE = "hope"
    OPTIMISM = "optimism"
    EUPHORIA = "euphoria"


class WhaleActivityLevel(str, Enum):
    """Coarse whale activity derived from transfers above 1% of supply"""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class HolderCountSource(str, Enum):
    """How the total holder figure was obtained"""

    HISTORICAL = "historical"  # every candidate balance checked
    SAMPLED = "sampled"  # extrapolated from a balance sample
    ACTIVE_ADDRESSES = "active_addresses"  # monthly unique-address fallback


# =============================================================================
# Raw inputs
# =============================================================================


@dataclass(frozen=True)
class TransferRecord:
    """
    One ERC-20 Transfer event.

    Attributes:
        from_address: Lower-cased sender (zero address for mints)
        to_address: Lower-cased receiver (zero address for burns)
        value: Amount in the token's smallest unit
        block_number: Block the event was emitted in
        timestamp: Block unix time, None if the header lookup failed
    """

    from_address: str
    to_address: str
    value: int
    block_number: int
    timestamp: int | None = None

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"value must be non-negative: {self.value}")
        if self.block_number < 0:
            raise ValueError(f"block_number must be non-negative: {self.block_number}")
        object.__setattr__(self, "from_address", self.from_address.lower())
        object.__setattr__(self, "to_address", self.to_address.lower())

    @property
    def is_mint(self) -> bool:
        return self.from_address == ZERO_ADDRESS

    @property
    def is_burn(self) -> bool:
        return self.to_address == ZERO_ADDRESS


@dataclass(frozen=True)
class BlockWindow:
    """Inclusive block range [from_block, to_block]."""

    from_block: int
    to_block: int

    def __post_init__(self):
        if self.from_block < 0:
            raise ValueError(f"from_block must be non-negative: {self.from_block}")
        if self.from_block > self.to_block:
            raise ValueError(
                f"from_block {self.from_block} is after to_block {self.to_block}"
            )

    @property
    def span(self) -> int:
        """Distance between the bounds, as compared against the RPC limit."""
        return self.to_block - self.from_block

    def split(self, max_span: int) -> list[BlockWindow]:
        """Consecutive sub-windows whose span never exceeds `max_span`."""
        if max_span <= 0:
            raise ValueError(f"max_span must be positive: {max_span}")
        windows = []
        start = self.from_block
        while start <= self.to_block:
            end = min(start + max_span, self.to_block)
            windows.append(BlockWindow(start, end))
            start = end + 1
        return windows

    def to_dict(self) -> dict:
        return {"fromBlock": self.from_block, "toBlock": self.to_block}


@dataclass(frozen=True)
class TokenInfo:
    """ERC-20 metadata read at request time."""

    address: str
    name: str = "Unknown Token"
    symbol: str = "UNKNOWN"
    decimals: int = 18
    total_supply: int = 0

    @property
    def total_supply_tokens(self) -> float:
        """Total supply scaled by decimals."""
        return self.total_supply / 10**self.decimals


# =============================================================================
# Aggregator results
# =============================================================================


@dataclass(frozen=True)
class ActiveAddressesResult:
    """Unique non-zero addresses over trailing day/week/month windows."""

    daily: int = 0
    weekly: int = 0
    monthly: int = 0

    def to_dict(self) -> dict:
        return {"daily": self.daily, "weekly": self.weekly, "monthly": self.monthly}


@dataclass(frozen=True)
class TransactionVolumeResult:
    """USD volume, mints and burns excluded, priced at request time."""

    volume_24h: float = 0.0
    volume_7d: float = 0.0
    volume_30d: float = 0.0

    def to_dict(self) -> dict:
        return {
            "volume24h": self.volume_24h,
            "volume7d": self.volume_7d,
            "volume30d": self.volume_30d,
        }


@dataclass(frozen=True)
class ExchangeFlowResult:
    """
    Known-exchange flow over the last 24h.

    Attributes:
        inflows_24h: Tokens sent to exchanges (selling pressure)
        outflows_24h: Tokens withdrawn from exchanges (accumulation)
        net_flow: outflows - inflows, positive means net accumulation
        net_flow_usd: net_flow priced at request time
        buys: Count of transfers out of an exchange
        sells: Count of transfers into an exchange
        buy_sell_ratio: buys / sells, 1.0 when there are no sells
    """

    inflows_24h: float = 0.0
    outflows_24h: float = 0.0
    net_flow: float = 0.0
    net_flow_usd: float = 0.0
    buys: int = 0
    sells: int = 0
    buy_sell_ratio: float = 1.0

    def to_dict(self) -> dict:
        return {
            "inflows24h": self.inflows_24h,
            "outflows24h": self.outflows_24h,
            "netFlow": self.net_flow,
            "netFlowUSD": self.net_flow_usd,
            "buys": self.buys,
            "sells": self.sells,
            "buySellRatio": self.buy_sell_ratio,
        }


@dataclass(frozen=True)
class HolderDistributionResult:
    """
    Sampled ownership concentration.

    The Gini coefficient is computed over the balance sample only and is not
    a population-level figure.
    """

    top10_percent: float = 0.0
    top100_holders: float = 0.0
    gini_coefficient: float = 0.0
    concentration_risk: ConcentrationRisk = ConcentrationRisk.LOW
    sample_size: int = 0

    def __post_init__(self):
        if not 0.0 <= self.gini_coefficient <= 1.0:
            raise ValueError(f"gini_coefficient out of range: {self.gini_coefficient}")

    def to_dict(self) -> dict:
        return {
            "top10Percent": self.top10_percent,
            "top100Holders": self.top100_holders,
            "giniCoefficient": self.gini_coefficient,
            "concentrationRisk": self.concentration_risk.value,
            "sampleSize": self.sample_size,
        }


@dataclass(frozen=True)
class WhaleActivityResult:
    """Large-transfer activity over the last 24h."""

    large_transactions_24h: int = 0
    whale_volume_24h: float = 0.0
    accumulation_score: float = 0.0
    accumulation_volume: float = 0.0
    distribution_volume: float = 0.0
    activity_level: WhaleActivityLevel = WhaleActivityLevel.LOW

    def __post_init__(self):
        if not -1.0 <= self.accumulation_score <= 1.0:
            raise ValueError(
                f"accumulation_score out of range: {self.accumulation_score}"
            )

    def to_dict(self) -> dict:
        return {
            "largeTransactions24h": self.large_transactions_24h,
            "whaleVolume24h": self.whale_volume_24h,
            "accumulationScore": self.accumulation_score,
            "accumulationVolume": self.accumulation_volume,
            "distributionVolume": self.distribution_volume,
            "activityLevel": self.activity_level.value,
        }


@dataclass(frozen=True)
class HodlWavesResult:
    """Share of total supply moved within each age band (percent)."""

    less_than_1d: float = 0.0
    d1_to_7: float = 0.0
    w1_to_4: float = 0.0
    m1_to_3: float = 0.0
    m3_to_6: float = 0.0
    m6_to_12: float = 0.0
    more_than_1y: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.less_than_1d
            + self.d1_to_7
            + self.w1_to_4
            + self.m1_to_3
            + self.m3_to_6
            + self.m6_to_12
            + self.more_than_1y
        )

    def to_dict(self) -> dict:
        return {
            "lessThan1d": self.less_than_1d,
            "d1To7": self.d1_to_7,
            "w1To4": self.w1_to_4,
            "m1To3": self.m1_to_3,
            "m3To6": self.m3_to_6,
            "m6To12": self.m6_to_12,
            "moreThan1y": self.more_than_1y,
        }


@dataclass(frozen=True)
class TotalHoldersResult:
    """Holder count estimate and how it was derived."""

    count: int = 0
    source: HolderCountSource = HolderCountSource.ACTIVE_ADDRESSES
    candidate_count: int = 0
    sample_size: int = 0


# =============================================================================
# Derived indicators
# =============================================================================


@dataclass(frozen=True)
class MVRVResult:
    ratio: float = 0.0
    market_value: float = 0.0
    realized_value: float = 0.0
    interpretation: ValuationSignal = ValuationSignal.FAIR

    def to_dict(self) -> dict:
        return {
            "ratio": self.ratio,
            "marketValue": self.market_value,
            "realizedValue": self.realized_value,
            "interpretation": self.interpretation.value,
        }


@dataclass(frozen=True)
class NUPLResult:
    value: float = 0.0
    interpretation: NUPLZone = NUPLZone.CAPITULATION

    def __post_init__(self):
        if not -1.0 <= self.value <= 1.0:
            raise ValueError(f"NUPL value out of range: {self.value}")

    def to_dict(self) -> dict:
        return {"value": self.value, "interpretation": self.interpretation.value}


@dataclass(frozen=True)
class NVTResult:
    ratio: float = 0.0
    ratio_30d: float = 0.0
    interpretation: ValuationSignal = ValuationSignal.FAIR

    def to_dict(self) -> dict:
        return {
            "ratio": self.ratio,
            "ratio30d": self.ratio_30d,
            "interpretation": self.interpretation.value,
        }


# =============================================================================
# Bundle
# =============================================================================


def _finite(value: float) -> float:
    """Replace NaN/inf with 0.0 so no non-finite number leaves the bundle."""
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _sanitize(data):
    if isinstance(data, dict):
        return {key: _sanitize(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_sanitize(value) for value in data]
    if isinstance(data, float):
        return _finite(data)
    return data


@dataclass(frozen=True)
class MetricsBundle:
    """
    Complete on-chain metrics for one token at one block.

    Constructed once per analysis request by the assembler and never mutated.
    `failed_metrics` names every sub-object that was replaced by its default.
    """

    token: TokenInfo
    block_number: int
    price_usd: float
    active_addresses: ActiveAddressesResult
    transaction_volume: TransactionVolumeResult
    exchange_flows: ExchangeFlowResult
    holder_distribution: HolderDistributionResult
    mvrv: MVRVResult
    nupl: NUPLResult
    whale_activity: WhaleActivityResult
    hodl_waves: HodlWavesResult
    nvt: NVTResult
    total_holders: TotalHoldersResult
    failed_metrics: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return _sanitize(
            {
                "tokenAddress": self.token.address,
                "tokenName": self.token.name,
                "tokenSymbol": self.token.symbol,
                "decimals": self.token.decimals,
                "blockNumber": self.block_number,
                "priceUsd": self.price_usd,
                "activeAddresses": self.active_addresses.to_dict(),
                "transactionVolume": self.transaction_volume.to_dict(),
                "exchangeFlows": self.exchange_flows.to_dict(),
                "holderDistribution": self.holder_distribution.to_dict(),
                "mvrv": self.mvrv.to_dict(),
                "nupl": self.nupl.to_dict(),
                "whaleActivity": self.whale_activity.to_dict(),
                "hodlWaves": self.hodl_waves.to_dict(),
                "nvt": self.nvt.to_dict(),
                "totalHolders": self.total_holders.count,
                "totalHoldersSource": self.total_holders.source.value,
                "failedMetrics": list(self.failed_metrics),
            }
        )
