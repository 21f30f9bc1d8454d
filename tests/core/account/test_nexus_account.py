"""
Tests for ERC-7579 call encoding, RPC account reads and the multichain account.
"""

from unittest.mock import AsyncMock

import pytest
from eth_abi import decode, encode

from supertx.constants import MEE_VALIDATOR_ADDRESS
from supertx.core.abi import selector, to_bytes
from supertx.core.account import ChainDeployment, Nexus7579Encoder, RpcAccountReader
from supertx.core.account.nexus import CALL_TYPE_BATCH, CALL_TYPE_SINGLE
from supertx.core.errors import ConfigurationError, InstructionError
from supertx.core.instructions import AbstractCall, build_composable_call
from supertx.core.instructions.composable import EXECUTE_COMPOSABLE_SIGNATURE

from tests.factories import ACCOUNT, RECIPIENT, FakeReader, make_account

EXECUTE_SELECTOR = selector("execute(bytes32,bytes)")


class TestNexus7579Encoder:
    def test_single_call_is_packed(self):
        call = AbstractCall(to=RECIPIENT, value=5, data="0xabcd")

        data = to_bytes(Nexus7579Encoder().encode_execute(call))

        assert data[:4] == EXECUTE_SELECTOR
        mode, execution = decode(["bytes32", "bytes"], data[4:])
        assert mode == CALL_TYPE_SINGLE
        assert execution == to_bytes(RECIPIENT) + (5).to_bytes(32, "big") + b"\xab\xcd"

    def test_batch_encodes_execution_array(self):
        calls = [AbstractCall(to=RECIPIENT, value=1), AbstractCall(to=ACCOUNT, data="0x01")]

        data = to_bytes(Nexus7579Encoder().encode_execute_batch(calls))

        mode, execution = decode(["bytes32", "bytes"], data[4:])
        assert mode == CALL_TYPE_BATCH
        [executions] = decode(["(address,uint256,bytes)[]"], execution)
        assert [(to.lower(), value, payload) for to, value, payload in executions] == [
            (RECIPIENT, 1, b""),
            (ACCOUNT, 0, b"\x01"),
        ]

    def test_batch_of_one_is_single(self):
        encoder = Nexus7579Encoder()
        call = AbstractCall(to=RECIPIENT, value=1)

        assert encoder.encode_execute_batch([call]) == encoder.encode_execute(call)

    def test_composable_call_cannot_use_execute(self):
        call = build_composable_call(RECIPIENT, "transfer(address,uint256)", [RECIPIENT, 1])

        with pytest.raises(InstructionError):
            Nexus7579Encoder().encode_execute(call)

    def test_composable_batch_accepts_plain_calls(self):
        calls = [
            AbstractCall(to=RECIPIENT, value=1),
            build_composable_call(RECIPIENT, "transfer(address,uint256)", [RECIPIENT, 1]),
        ]

        data = Nexus7579Encoder().encode_execute_composable(calls)

        assert to_bytes(data)[:4] == selector(EXECUTE_COMPOSABLE_SIGNATURE)


class TestChainDeployment:
    def test_nonce_key_layout(self):
        deployment = ChainDeployment(8453, ACCOUNT, FakeReader(), Nexus7579Encoder())

        key = deployment.nonce_key(seed=1_700_000_000_123)

        assert key & ((1 << 160) - 1) == int(MEE_VALIDATOR_ADDRESS, 16)
        assert (key >> 160) & 0xFF == 0
        assert key >> 168 == 1_700_000_000_123 % 16777215
        assert key < 1 << 192

    def test_distinct_seeds_give_distinct_keys(self):
        deployment = ChainDeployment(8453, ACCOUNT, FakeReader(), Nexus7579Encoder())

        assert deployment.nonce_key(1) != deployment.nonce_key(2)

    def test_encode_calls_dispatch(self):
        deployment = ChainDeployment(8453, ACCOUNT, FakeReader(), Nexus7579Encoder())
        call = AbstractCall(to=RECIPIENT, value=1)

        plain = deployment.encode_calls([call])
        composable = deployment.encode_calls([call], is_composable=True)

        assert to_bytes(plain)[:4] == EXECUTE_SELECTOR
        assert to_bytes(composable)[:4] == selector(EXECUTE_COMPOSABLE_SIGNATURE)


class TestRpcAccountReader:
    @pytest.mark.asyncio
    async def test_nonce_via_entry_point(self):
        rpc = AsyncMock()
        rpc.call.return_value = "0x" + encode(["uint256"], [9]).hex()
        reader = RpcAccountReader(ACCOUNT, rpc)

        assert await reader.get_nonce(3) == 9
        data = rpc.call.await_args.args[1]
        assert data.startswith("0x35567e1a")  # getNonce(address,uint192)

    @pytest.mark.asyncio
    async def test_deployment_check(self):
        rpc = AsyncMock()
        rpc.get_code.return_value = "0x"

        assert await RpcAccountReader(ACCOUNT, rpc).is_deployed() is False

        rpc.get_code.return_value = "0x6080"
        assert await RpcAccountReader(ACCOUNT, rpc).is_deployed() is True

    @pytest.mark.asyncio
    async def test_delegated_eoa_needs_delegation_code(self):
        rpc = AsyncMock()
        authorization = {"address": ACCOUNT, "chainId": 8453, "nonce": 0}

        rpc.get_code.return_value = "0x6080"
        assert await RpcAccountReader(ACCOUNT, rpc, authorization=authorization).is_deployed() is False

        rpc.get_code.return_value = "0xef0100" + "11" * 20
        assert await RpcAccountReader(ACCOUNT, rpc, authorization=authorization).is_deployed() is True


class TestMultichainAccount:
    def test_deployment_lookup(self):
        account = make_account()

        assert account.chain_ids == [10, 8453]
        assert account.address_on(10) == ACCOUNT
        assert account.deployment_on(1) is None
        with pytest.raises(ConfigurationError):
            account.deployment_on(1, strict=True)
