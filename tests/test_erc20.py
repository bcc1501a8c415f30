"""Tests for ERC-20 ABI helpers and metadata reads."""

import pytest

from sentinel.data.erc20 import (
    SELECTOR_DECIMALS,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    SELECTOR_TOTAL_SUPPLY,
    decode_decimals,
    decode_string,
    decode_uint,
    encode_balance_of,
    get_balance,
    pad_address,
    read_token_info,
    topic_to_address,
    validate_address,
)
from sentinel.utils.evm_rpc_async import RpcUnavailableError
from tests.fixtures.rpc_fixtures import (
    ALICE,
    ONE_TOKEN,
    TOKEN,
    ZERO,
    FakeRpcClient,
    encode_string,
    encode_uint,
)


class TestValidateAddress:
    def test_lowercases_checksummed_address(self):
        checksummed = "0x60aE616a2155Ee3d9A68541Ba4544862310933d4"
        assert validate_address(checksummed) == checksummed.lower()

    @pytest.mark.parametrize(
        "address",
        [
            "",
            "0x123",
            "60ae616a2155ee3d9a68541ba4544862310933d4",
            "0xZZae616a2155ee3d9a68541ba4544862310933d4",
            "0x60ae616a2155ee3d9a68541ba4544862310933d4ff",
            None,
        ],
    )
    def test_rejects_malformed(self, address):
        with pytest.raises(ValueError, match="Invalid token address"):
            validate_address(address)


class TestAbiHelpers:
    def test_pad_and_unpad_address(self):
        word = pad_address(ALICE)
        assert len(word) == 64
        assert topic_to_address("0x" + word) == ALICE

    def test_encode_balance_of(self):
        data = encode_balance_of(ALICE)
        assert data.startswith("0x70a08231")
        assert data.endswith(ALICE[2:])
        assert len(data) == 10 + 64

    def test_decode_uint(self):
        assert decode_uint(encode_uint(12345)) == 12345
        assert decode_uint("0x") == 0

    def test_decode_dynamic_string(self):
        assert decode_string(encode_string("Wrapped AVAX")) == "Wrapped AVAX"

    def test_decode_bytes32_string(self):
        data = "0x" + b"MKR".hex().ljust(64, "0")
        assert decode_string(data) == "MKR"

    def test_decode_empty_string(self):
        assert decode_string("0x") == ""

    def test_decimals_out_of_range(self):
        with pytest.raises(ValueError, match="decimals out of range"):
            decode_decimals(encode_uint(10**6))


class TestReadTokenInfo:
    @pytest.mark.asyncio
    async def test_reads_all_fields(self):
        rpc = FakeRpcClient(name="Joe Token", symbol="JOE", decimals=6, total_supply=5 * 10**12)
        info = await read_token_info(rpc, TOKEN)
        assert info.name == "Joe Token"
        assert info.symbol == "JOE"
        assert info.decimals == 6
        assert info.total_supply == 5 * 10**12
        assert info.total_supply_tokens == pytest.approx(5_000_000)

    @pytest.mark.asyncio
    async def test_failed_field_keeps_default(self):
        """One reverting call does not affect the other fields."""
        rpc = FakeRpcClient(failing_selectors={SELECTOR_NAME, SELECTOR_DECIMALS})
        info = await read_token_info(rpc, TOKEN)
        assert info.name == "Unknown Token"
        assert info.decimals == 18
        assert info.symbol == "TEST"
        assert info.total_supply == 1_000_000 * ONE_TOKEN

    @pytest.mark.asyncio
    async def test_all_fields_fail(self):
        rpc = FakeRpcClient(
            failing_selectors={SELECTOR_NAME, SELECTOR_SYMBOL, SELECTOR_DECIMALS, SELECTOR_TOTAL_SUPPLY}
        )
        info = await read_token_info(rpc, TOKEN)
        assert (info.name, info.symbol, info.decimals, info.total_supply) == (
            "Unknown Token",
            "UNKNOWN",
            18,
            0,
        )

    @pytest.mark.asyncio
    async def test_unreachable_rpc_propagates(self):
        class Unreachable(FakeRpcClient):
            async def call(self, to, data, block="latest"):
                raise RpcUnavailableError("All 1 RPC endpoints unreachable")

        with pytest.raises(RpcUnavailableError):
            await read_token_info(Unreachable(), TOKEN)


class TestGetBalance:
    @pytest.mark.asyncio
    async def test_balance(self):
        rpc = FakeRpcClient(balances={ALICE: 7 * ONE_TOKEN})
        assert await get_balance(rpc, TOKEN, ALICE) == 7 * ONE_TOKEN

    @pytest.mark.asyncio
    async def test_zero_address_short_circuits(self):
        rpc = FakeRpcClient()
        assert await get_balance(rpc, TOKEN, ZERO) == 0
        assert rpc.balance_queries == []
