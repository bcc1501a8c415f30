"""
Transfer Log Fetcher.

Walks a block range of one ERC-20 contract in sub-windows no wider than the
provider's per-query span, decodes Transfer events into TransferRecord and
attaches block timestamps.

Behaviour:
- Sub-windows are queried sequentially in ascending block order and records
  are yielded in (block, log index) order.
- Block timestamps are memoized per invocation; concurrent invocations never
  share a cache.
- A sub-window whose query still fails after the client's retries is
  skipped with a warning. Timeouts, unparseable responses and logs that
  cannot be decoded count as a failed sub-window. Partial coverage is
  returned instead of an error.
- RpcUnavailableError (no endpoint reachable) is not a per-window failure
  and propagates.

Usage:
    fetcher = TransferLogFetcher(rpc, max_block_span=2048)
    async for record in fetcher.iter_transfers(token, BlockWindow(a, b)):
        counter.add(record)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import AsyncIterator, Protocol

from sentinel.data.erc20 import TRANSFER_TOPIC, decode_uint, topic_to_address
from sentinel.models.metrics_models import BlockWindow, TransferRecord
from sentinel.models.rpc_models import RpcLog
from sentinel.utils.evm_rpc_async import RpcError, RpcUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MAX_BLOCK_SPAN = 2048


class LogSource(Protocol):
    async def get_logs(
        self, address: str, from_block: int, to_block: int, topics: list | None = None
    ) -> list[RpcLog]: ...

    async def get_block_timestamp(self, block_number: int) -> int: ...


def decode_transfer(log: RpcLog, timestamp: int | None = None) -> TransferRecord | None:
    """Decode an ERC-20 Transfer log.

    Returns None for logs that are not a three-topic Transfer (ERC-721
    transfers index the token id and carry four topics) or were removed by a
    reorg.

    Raises:
        RpcError: If the topics or data of a Transfer log are not valid hex
    """
    if log.removed or len(log.topics) != 3 or log.topics[0] != TRANSFER_TOPIC:
        return None
    try:
        return TransferRecord(
            from_address=topic_to_address(log.topics[1]),
            to_address=topic_to_address(log.topics[2]),
            value=decode_uint(log.data),
            block_number=log.block_number,
            timestamp=timestamp,
        )
    except ValueError as e:
        raise RpcError(
            f"Undecodable Transfer log in block {log.block_number}: {e}"
        ) from e


def _decode_logs(logs: list[RpcLog]) -> list[TransferRecord]:
    """Transfer records of one sub-window in (block, log index) order."""
    records = []
    for log in sorted(logs, key=lambda entry: (entry.block_number, entry.log_index)):
        record = decode_transfer(log)
        if record is not None:
            records.append(record)
    return records


class TransferLogFetcher:
    """Paginated Transfer log retrieval for one RPC client."""

    def __init__(self, rpc: LogSource, max_block_span: int = DEFAULT_MAX_BLOCK_SPAN):
        if max_block_span <= 0:
            raise ValueError(f"max_block_span must be positive: {max_block_span}")
        self.rpc = rpc
        self.max_block_span = max_block_span

    async def _timestamp(self, block_number: int, cache: dict[int, int | None]) -> int | None:
        if block_number in cache:
            return cache[block_number]
        try:
            timestamp = await self.rpc.get_block_timestamp(block_number)
        except RpcUnavailableError:
            raise
        except RpcError as e:
            logger.debug("Timestamp lookup failed for block %d: %s", block_number, e)
            timestamp = None
        cache[block_number] = timestamp
        return timestamp

    async def iter_transfers(
        self,
        token: str,
        window: BlockWindow,
        decimals: int = 18,
        with_timestamps: bool = True,
    ) -> AsyncIterator[TransferRecord]:
        """Yield every Transfer of `token` inside `window`.

        Args:
            token: Validated, lower-cased token address
            window: Inclusive block range, any width
            decimals: Carried for callers; not used for filtering
            with_timestamps: Resolve block timestamps (one lookup per block)

        Yields:
            TransferRecord in ascending block order
        """
        cache: dict[int, int | None] = {}
        sub_windows = window.split(self.max_block_span)
        skipped = 0

        for sub in sub_windows:
            try:
                logs = await self.rpc.get_logs(
                    token, sub.from_block, sub.to_block, [TRANSFER_TOPIC]
                )
                records = _decode_logs(logs)
            except RpcUnavailableError:
                raise
            except RpcError as e:
                skipped += 1
                logger.warning(
                    "Skipping blocks %d-%d for %s after failed log query: %s",
                    sub.from_block,
                    sub.to_block,
                    token,
                    e,
                    extra={"token": token, "block_window": sub.to_dict()},
                )
                continue

            logger.debug(
                "Fetched %d logs for blocks %d-%d", len(logs), sub.from_block, sub.to_block
            )
            for record in records:
                if with_timestamps:
                    timestamp = await self._timestamp(record.block_number, cache)
                    record = replace(record, timestamp=timestamp)
                yield record

        if skipped:
            logger.warning(
                "Transfer scan of %s covered %d/%d sub-windows (decimals=%d)",
                token,
                len(sub_windows) - skipped,
                len(sub_windows),
                decimals,
            )

    async def fetch(
        self,
        token: str,
        window: BlockWindow,
        decimals: int = 18,
        with_timestamps: bool = True,
    ) -> list[TransferRecord]:
        """Collect `iter_transfers` into a list."""
        return [
            record
            async for record in self.iter_transfers(
                token, window, decimals=decimals, with_timestamps=with_timestamps
            )
        ]
