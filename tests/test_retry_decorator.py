"""Tests for the RPC retry helper."""

import pytest

from sentinel.utils.evm_rpc_async import RpcError, RpcUnavailableError
from sentinel.utils.retry_decorator import call_with_retry, is_transient_rpc_error


class SleepRecorder:
    """Async sleep double that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class FlakyOperation:
    """Fails with the given errors in order, then returns `result`."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestIsTransientRpcError:
    """Tests for message-based transient detection."""

    @pytest.mark.parametrize(
        "message",
        [
            "HTTP 429 from RPC endpoint: slow down",
            "HTTP 503 from RPC endpoint",
            "Rate limit exceeded",
            "Too Many Requests",
            "no backend is currently healthy to serve traffic",
        ],
    )
    def test_transient_markers(self, message):
        assert is_transient_rpc_error(RpcError(message)) is True

    @pytest.mark.parametrize(
        "message",
        ["execution reverted", "invalid argument 0: hex string has odd length", ""],
    )
    def test_non_transient(self, message):
        assert is_transient_rpc_error(RpcError(message)) is False

    def test_unreachable_endpoints_not_transient(self):
        """Total unavailability is fatal, not a retry candidate."""
        exc = RpcUnavailableError("All 2 RPC endpoints unreachable: refused")
        assert is_transient_rpc_error(exc) is False


class TestCallWithRetry:
    """Tests for call_with_retry backoff behavior."""

    @pytest.mark.asyncio
    async def test_succeeds_on_third_attempt_after_two_429(self):
        """Two rate-limit failures then success waits base + 2*base."""
        sleep = SleepRecorder()
        operation = FlakyOperation([RpcError("HTTP 429"), RpcError("HTTP 429")])

        result = await call_with_retry(operation, max_retries=3, base_delay=1.0, sleep=sleep)

        assert result == "ok"
        assert operation.calls == 3
        assert sleep.delays == [1.0, 2.0]
        assert sum(sleep.delays) == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_delays_scale_with_base_delay(self):
        sleep = SleepRecorder()
        operation = FlakyOperation([RpcError("503"), RpcError("503")])

        await call_with_retry(operation, max_retries=3, base_delay=0.25, sleep=sleep)

        assert sleep.delays == [0.25, 0.5]

    @pytest.mark.asyncio
    async def test_no_sleep_on_first_success(self):
        sleep = SleepRecorder()
        operation = FlakyOperation([], result=42)

        assert await call_with_retry(operation, sleep=sleep) == 42
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_non_transient_propagates_immediately(self):
        sleep = SleepRecorder()
        operation = FlakyOperation([RpcError("execution reverted")])

        with pytest.raises(RpcError, match="execution reverted"):
            await call_with_retry(operation, max_retries=3, sleep=sleep)

        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhausted_retries_reraise_last_error(self):
        sleep = SleepRecorder()
        operation = FlakyOperation(
            [RpcError("HTTP 429 first"), RpcError("HTTP 429 second"), RpcError("HTTP 429 third")]
        )

        with pytest.raises(RpcError, match="third"):
            await call_with_retry(operation, max_retries=3, base_delay=1.0, sleep=sleep)

        assert operation.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self):
        sleep = SleepRecorder()
        operation = FlakyOperation([RpcError("HTTP 429")])

        with pytest.raises(RpcError):
            await call_with_retry(operation, max_retries=1, sleep=sleep)

        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_invalid_max_retries_raises(self):
        with pytest.raises(ValueError, match="max_retries must be at least 1"):
            await call_with_retry(FlakyOperation([]), max_retries=0)
