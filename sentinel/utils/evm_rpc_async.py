"""Async EVM JSON-RPC Client.

Async client for an ordered list of JSON-RPC endpoints with:
- Connection pooling (TCPConnector with configurable limits)
- Semaphore-based limit on in-flight requests
- Connection-level failover across primary and fallback endpoints
- Tenacity backoff on transient provider errors (429/503, rate limits)
- Proper async context management

Failover and retry are separate concerns. Failover walks the endpoint list
when a connection cannot be established or a request times out; retry
re-issues a request whose response reported a transient error. Only a
refused connection on every endpoint raises RpcUnavailableError.
Timeouts, unparseable bodies and payloads that fail validation surface
as plain RpcError so callers can treat them as per-request failures.

Usage:
    config = EvmRpcConfig.from_onchain_config(load_config())
    async with EvmRpcAsyncClient(config) as rpc:
        head = await rpc.get_block_number()
        logs = await rpc.get_logs(token, head - 100, head, [TRANSFER_TOPIC])
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import aiohttp
from pydantic import ValidationError

from sentinel.config.settings import DEFAULT_RPC_URL, OnChainConfig
from sentinel.models.rpc_models import BlockHeader, JsonRpcError, RpcLog
from sentinel.utils.retry_decorator import call_with_retry

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_MAX_CONNECTIONS = 20
DEFAULT_MAX_CONCURRENT_REQUESTS = 10
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0


class RpcError(RuntimeError):
    """JSON-RPC or HTTP level failure from a provider."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class RpcUnavailableError(RpcError):
    """No configured endpoint accepted a connection."""


@dataclass
class EvmRpcConfig:
    """Configuration for EvmRpcAsyncClient."""

    urls: list[str] = field(default_factory=lambda: [DEFAULT_RPC_URL])
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    max_concurrent_requests: int = DEFAULT_MAX_CONCURRENT_REQUESTS
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS

    def __post_init__(self):
        if not self.urls:
            raise ValueError("At least one RPC endpoint is required")

    @classmethod
    def from_onchain_config(cls, config: OnChainConfig) -> "EvmRpcConfig":
        """Derive client settings from the engine configuration."""
        return cls(
            urls=config.rpc_urls,
            max_connections=max(DEFAULT_MAX_CONNECTIONS, config.max_concurrent_requests),
            max_concurrent_requests=config.max_concurrent_requests,
            timeout_seconds=config.rpc_timeout_seconds,
            max_retries=config.rpc_max_retries,
            base_delay_seconds=config.rpc_base_delay_seconds,
        )


def to_hex_block(block: int | str) -> str:
    """Encode a block number as a JSON-RPC quantity; tags pass through."""
    if isinstance(block, str):
        return block
    if block < 0:
        raise ValueError(f"block number must be non-negative: {block}")
    return hex(block)


class EvmRpcAsyncClient:
    """Async JSON-RPC client over aiohttp.

    Example:
        async with EvmRpcAsyncClient(config) as rpc:
            ts = await rpc.get_block_timestamp(42_000_000)
    """

    def __init__(
        self,
        config: EvmRpcConfig | None = None,
        session: aiohttp.ClientSession | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """Initialize client with optional config.

        Args:
            config: EvmRpcConfig instance. If None, derived from OnChainConfig().
            session: Externally owned session (not closed on exit).
            sleep: Async sleep used between retries, for tests.
        """
        self.config = config or EvmRpcConfig.from_onchain_config(OnChainConfig())
        self._session = session
        self._owns_session = session is None
        self._semaphore: asyncio.Semaphore | None = None
        self._sleep = sleep
        self._ids = itertools.count(1)
        self._active_index = 0

    async def __aenter__(self) -> "EvmRpcAsyncClient":
        """Create aiohttp session with connection pooling."""
        if self._session is None:
            connector = aiohttp.TCPConnector(
                limit=self.config.max_connections,
                enable_cleanup_closed=True,
            )
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(connector=connector, timeout=timeout)
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)
        logger.debug(
            "EvmRpcAsyncClient initialized: endpoints=%d, concurrent=%d",
            len(self.config.urls),
            self.config.max_concurrent_requests,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close aiohttp session if this client created it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None
        self._semaphore = None

    @property
    def active_endpoint(self) -> str:
        return self.config.urls[self._active_index]

    # ==================== Transport ====================

    async def _post(self, payload: dict) -> Any:
        """POST a JSON-RPC payload, failing over on connection errors.

        Starts at the last endpoint that answered and walks the rest of the
        list in order. A timeout also moves on to the next endpoint, but an
        endpoint that timed out was reachable, so exhausting the list after
        a timeout is an ordinary request failure.

        Raises:
            RpcError: Non-2xx HTTP status, unparseable body, or timeout on
                every endpoint
            RpcUnavailableError: Every endpoint refused the connection
        """
        if not self._session or not self._semaphore:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        urls = self.config.urls
        last_error: Exception | None = None
        timed_out = False
        for offset in range(len(urls)):
            index = (self._active_index + offset) % len(urls)
            url = urls[index]
            try:
                async with self._semaphore:
                    async with self._session.post(url, json=payload) as response:
                        if response.status >= 400:
                            text = await response.text()
                            raise RpcError(
                                f"HTTP {response.status} from RPC endpoint: {text[:200]}",
                                status_code=response.status,
                                endpoint=url,
                            )
                        try:
                            body = await response.json(content_type=None)
                        except (
                            aiohttp.ContentTypeError,
                            aiohttp.ClientPayloadError,
                            json.JSONDecodeError,
                        ) as e:
                            raise RpcError(
                                f"Malformed response from RPC endpoint: {e}",
                                status_code=response.status,
                                endpoint=url,
                            ) from e
            # ServerTimeoutError is also a ClientConnectionError; match it here first
            except asyncio.TimeoutError as e:
                last_error = e
                timed_out = True
                logger.warning(
                    "RPC endpoint %s timed out, trying next",
                    url,
                    extra={"endpoint": url},
                )
                continue
            except aiohttp.ClientConnectionError as e:
                last_error = e
                logger.warning(
                    "RPC endpoint %s unreachable (%s), trying next",
                    url,
                    e,
                    extra={"endpoint": url},
                )
                continue

            if index != self._active_index:
                logger.info("RPC failover: switched to endpoint %s", url)
                self._active_index = index
            return body

        if timed_out:
            raise RpcError(
                f"RPC request timed out after trying {len(urls)} endpoint(s): {last_error!r}"
            )
        raise RpcUnavailableError(
            f"All {len(urls)} RPC endpoints unreachable: {last_error}"
        )

    async def _request(self, method: str, params: list) -> Any:
        """Single JSON-RPC request/response round trip."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        body = await self._post(payload)
        if not isinstance(body, dict):
            raise RpcError(f"Malformed JSON-RPC response for {method}: {body!r}")
        if body.get("error"):
            error = JsonRpcError.model_validate(body["error"])
            raise RpcError(f"{method} failed ({error.code}): {error.message}")
        return body.get("result")

    async def _call_rpc(self, method: str, params: list) -> Any:
        return await call_with_retry(
            lambda: self._request(method, params),
            max_retries=self.config.max_retries,
            base_delay=self.config.base_delay_seconds,
            sleep=self._sleep,
        )

    # ==================== Chain Reads ====================

    async def get_block_number(self) -> int:
        """Current head block number (eth_blockNumber)."""
        result = await self._call_rpc("eth_blockNumber", [])
        return int(result, 16)

    async def get_block(self, block_number: int) -> BlockHeader:
        """Block header without transaction bodies.

        Raises:
            RpcError: If the node does not know the block
        """
        result = await self._call_rpc(
            "eth_getBlockByNumber", [to_hex_block(block_number), False]
        )
        if result is None:
            raise RpcError(f"Block {block_number} not found")
        try:
            return BlockHeader.model_validate(result)
        except ValidationError as e:
            raise RpcError(f"Invalid header for block {block_number}: {e}") from e

    async def get_block_timestamp(self, block_number: int) -> int:
        """Unix timestamp of a block."""
        header = await self.get_block(block_number)
        return header.timestamp

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: list[str | None] | None = None,
    ) -> list[RpcLog]:
        """Event logs of one contract inside an inclusive block range.

        The caller is responsible for keeping the range within the
        provider's per-query span limit.
        """
        params = {
            "address": address,
            "fromBlock": to_hex_block(from_block),
            "toBlock": to_hex_block(to_block),
        }
        if topics:
            params["topics"] = topics
        result = await self._call_rpc("eth_getLogs", [params])
        if result is not None and not isinstance(result, list):
            raise RpcError(f"Malformed eth_getLogs result: {result!r:.200}")
        try:
            return [RpcLog.model_validate(entry) for entry in result or []]
        except ValidationError as e:
            raise RpcError(
                f"Invalid log in blocks {from_block}-{to_block}: {e}"
            ) from e

    async def call(self, to: str, data: str, block: int | str = "latest") -> str:
        """Read-only contract call (eth_call), returns the raw hex result."""
        result = await self._call_rpc(
            "eth_call", [{"to": to, "data": data}, to_hex_block(block)]
        )
        return result or "0x"
