#!/usr/bin/env python3
"""
Pydantic models for EVM JSON-RPC payloads

Validates the subset of `eth_getLogs` and `eth_getBlockByNumber` results the
metrics engine consumes. Hex quantities are decoded to int at the parse
boundary so the rest of the package never sees raw RPC strings.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _hex_to_int(value) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text in ("", "0x"):
            return 0
        return int(text, 16) if text.startswith("0x") else int(text)
    raise ValueError(f"Expected hex quantity, got {value!r}")


class RpcLog(BaseModel):
    """Single event log entry returned by eth_getLogs"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: str = Field(..., description="Emitting contract address")
    topics: List[str] = Field(default_factory=list, description="Indexed topics")
    data: str = Field("0x", description="Non-indexed payload as hex")
    block_number: int = Field(..., alias="blockNumber", ge=0)
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")
    log_index: int = Field(0, alias="logIndex", ge=0)
    removed: bool = Field(False, description="True if dropped by a reorg")

    @field_validator("address")
    @classmethod
    def lowercase_address(cls, v: str) -> str:
        return v.lower()

    @field_validator("topics")
    @classmethod
    def lowercase_topics(cls, v: List[str]) -> List[str]:
        return [topic.lower() for topic in v]

    @field_validator("block_number", "log_index", mode="before")
    @classmethod
    def decode_quantity(cls, v):
        return _hex_to_int(v)


class BlockHeader(BaseModel):
    """Header fields of eth_getBlockByNumber (transactions not requested)"""

    model_config = ConfigDict(extra="ignore")

    number: int = Field(..., ge=0)
    timestamp: int = Field(..., ge=0, description="Unix seconds")

    @field_validator("number", "timestamp", mode="before")
    @classmethod
    def decode_quantity(cls, v):
        return _hex_to_int(v)


class JsonRpcError(BaseModel):
    """`error` member of a JSON-RPC 2.0 response"""

    model_config = ConfigDict(extra="ignore")

    code: int = 0
    message: str = ""
