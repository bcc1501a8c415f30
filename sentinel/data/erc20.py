"""
ERC-20 read helpers.

ABI encoding for the handful of calls the metrics engine needs, plus
`read_token_info()` which reads each metadata field independently and
keeps a default for any field whose call fails.

Usage:
    from sentinel.data.erc20 import read_token_info, get_balance

    info = await read_token_info(rpc, "0x...")
    balance = await get_balance(rpc, info.address, holder)
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Protocol

from sentinel.models.metrics_models import ZERO_ADDRESS, TokenInfo
from sentinel.utils.evm_rpc_async import RpcError, RpcUnavailableError

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

SELECTOR_NAME = "0x06fdde03"
SELECTOR_SYMBOL = "0x95d89b41"
SELECTOR_DECIMALS = "0x313ce567"
SELECTOR_TOTAL_SUPPLY = "0x18160ddd"
SELECTOR_BALANCE_OF = "0x70a08231"

DEFAULT_NAME = "Unknown Token"
DEFAULT_SYMBOL = "UNKNOWN"
DEFAULT_DECIMALS = 18
DEFAULT_TOTAL_SUPPLY = 0

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class ContractReader(Protocol):
    async def call(self, to: str, data: str, block: int | str = "latest") -> str: ...


# =============================================================================
# Encoding helpers
# =============================================================================


def validate_address(address: str) -> str:
    """Check 0x-prefixed 40-hex form and return it lower-cased.

    Raises:
        ValueError: If the address is malformed
    """
    if not isinstance(address, str) or not _ADDRESS_RE.match(address.strip()):
        raise ValueError(f"Invalid token address: {address!r}")
    return address.strip().lower()


def pad_address(address: str) -> str:
    """Left-pad an address into a 32-byte ABI word (no 0x prefix)."""
    return address.lower().removeprefix("0x").rjust(64, "0")


def topic_to_address(topic: str) -> str:
    """Last 20 bytes of an indexed address topic."""
    return "0x" + topic.lower().removeprefix("0x")[-40:]


def _payload(data: str) -> bytes:
    return bytes.fromhex(data.removeprefix("0x"))


def decode_uint(data: str) -> int:
    """Decode the first 32-byte word as uint256; empty data decodes to 0."""
    raw = data.removeprefix("0x")[:64]
    return int(raw, 16) if raw else 0


def decode_string(data: str) -> str:
    """Decode an ABI string return value.

    Handles the dynamic `string` encoding and the older `bytes32` style used
    by a few early tokens.
    """
    payload = _payload(data)
    if not payload:
        return ""
    if len(payload) >= 64:
        offset = int.from_bytes(payload[:32], "big")
        if offset + 32 <= len(payload):
            length = int.from_bytes(payload[offset : offset + 32], "big")
            start = offset + 32
            if start + length <= len(payload):
                return payload[start : start + length].decode("utf-8", errors="replace")
    return payload[:32].rstrip(b"\x00").decode("utf-8", errors="replace")


def decode_decimals(data: str) -> int:
    decimals = decode_uint(data)
    if decimals > 255:
        raise ValueError(f"decimals out of range: {decimals}")
    return decimals


def encode_balance_of(holder: str) -> str:
    return SELECTOR_BALANCE_OF + pad_address(holder)


# =============================================================================
# Contract reads
# =============================================================================


async def _read_field(rpc: ContractReader, token: str, field: str, selector: str, decode, default):
    try:
        return decode(await rpc.call(token, selector))
    except RpcUnavailableError:
        raise
    except (RpcError, ValueError, UnicodeDecodeError) as e:
        logger.error("Error reading %s for %s: %s", field, token, e)
        return default


async def read_token_info(rpc: ContractReader, token: str) -> TokenInfo:
    """Read name, symbol, decimals and totalSupply.

    Each field is read on its own; a failed read keeps that field's default
    and is logged. Unreachable RPC propagates.

    Args:
        rpc: Client exposing `call(to, data)`
        token: Validated token address

    Returns:
        TokenInfo with defaults for unreadable fields
    """
    name, symbol, decimals, total_supply = await asyncio.gather(
        _read_field(rpc, token, "name", SELECTOR_NAME, decode_string, DEFAULT_NAME),
        _read_field(rpc, token, "symbol", SELECTOR_SYMBOL, decode_string, DEFAULT_SYMBOL),
        _read_field(rpc, token, "decimals", SELECTOR_DECIMALS, decode_decimals, DEFAULT_DECIMALS),
        _read_field(
            rpc, token, "totalSupply", SELECTOR_TOTAL_SUPPLY, decode_uint, DEFAULT_TOTAL_SUPPLY
        ),
    )
    return TokenInfo(
        address=token,
        name=name or DEFAULT_NAME,
        symbol=symbol or DEFAULT_SYMBOL,
        decimals=decimals,
        total_supply=total_supply,
    )


async def get_balance(rpc: ContractReader, token: str, holder: str) -> int:
    """Current balanceOf(holder) in the smallest unit."""
    if holder == ZERO_ADDRESS:
        return 0
    return decode_uint(await rpc.call(token, encode_balance_of(holder)))
