"""
Tests for the chain JSON-RPC provider and registry.
"""

import json

import httpx
import pytest

from supertx.core.errors import ConfigurationError, ExecutionError, RpcError
from supertx.providers.rpc import ChainRpcConfig, ChainRpcProvider, RpcRegistry

from tests.factories import TX_HASH


def rpc_handler(results):
    """Answer each JSON-RPC method from ``results`` (a value or a callable)."""

    def handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        result = results[payload["method"]]
        if callable(result):
            result = result(payload["params"])
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], **result})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    return handler


def make_rpc(results, chain_id: int = 8453) -> ChainRpcProvider:
    return ChainRpcProvider(
        ChainRpcConfig(chain_id=chain_id, rpc_url="https://rpc.test"),
        transport=httpx.MockTransport(rpc_handler(results)),
    )


@pytest.mark.asyncio
async def test_reads_decode_hex_quantities():
    rpc = make_rpc({"eth_getBalance": "0xde0b6b3a7640000", "eth_gasPrice": "0x3b9aca00", "eth_blockNumber": "0x10"})

    assert await rpc.get_balance("0x1111111111111111111111111111111111111111") == 10**18
    assert await rpc.gas_price() == 10**9
    assert await rpc.block_number() == 16


@pytest.mark.asyncio
async def test_rpc_error_is_raised_with_chain():
    rpc = make_rpc({"eth_call": {"error": {"code": 3, "message": "execution reverted"}}})

    with pytest.raises(RpcError) as exc_info:
        await rpc.call("0x1111111111111111111111111111111111111111", "0x")

    assert "execution reverted" in str(exc_info.value)
    assert exc_info.value.chain_id == 8453


@pytest.mark.asyncio
async def test_missing_receipt_returns_none():
    rpc = make_rpc({"eth_getTransactionReceipt": None})

    assert await rpc.get_transaction_receipt(TX_HASH) is None


@pytest.mark.asyncio
async def test_wait_for_receipt_counts_confirmations():
    receipt = {"transactionHash": TX_HASH, "status": "0x1", "blockNumber": "0x10", "gasUsed": "0x5208"}
    rpc = make_rpc({"eth_getTransactionReceipt": receipt, "eth_blockNumber": "0x11"})

    result = await rpc.wait_for_transaction_receipt(TX_HASH, confirmations=2, poll_interval_s=0)

    assert result.success is True
    assert result.block_number == 16
    assert result.gas_used == 21000


@pytest.mark.asyncio
async def test_wait_for_receipt_raises_on_revert():
    receipt = {"transactionHash": TX_HASH, "status": "0x0", "blockNumber": "0x10"}
    rpc = make_rpc({"eth_getTransactionReceipt": receipt})

    with pytest.raises(ExecutionError, match="reverted"):
        await rpc.wait_for_transaction_receipt(TX_HASH, poll_interval_s=0)


def test_registry_lookup():
    registry = RpcRegistry({8453: "https://base.test", "10": "https://op.test"})

    assert registry.chain_ids() == [10, 8453]
    assert registry.get(10).chain_id == 10
    with pytest.raises(ConfigurationError):
        registry.get(1)
