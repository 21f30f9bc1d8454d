"""
ERC-7579 call encoding and RPC-backed account reads.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ...constants import ENTRY_POINT_ADDRESS
from ...providers.rpc import ChainRpcProvider
from ..abi import (
    build_entrypoint_get_nonce_call,
    encode_args,
    encode_packed_args,
    selector,
    to_bytes,
    to_hex,
)
from ..errors import InstructionError
from ..instructions.composable import encode_execute_composable, to_composable_call
from ..instructions.models import AbstractCall, Call, ComposableCall


EXECUTE_SIGNATURE = "execute(bytes32,bytes)"

CALL_TYPE_SINGLE = b"\x00" * 32
CALL_TYPE_BATCH = b"\x01" + b"\x00" * 31

# 0xef0100 || implementation marks an EIP-7702 delegated EOA
DELEGATION_CODE_PREFIX = "0xef0100"


def _plain(call: Call) -> AbstractCall:
    if isinstance(call, ComposableCall):
        raise InstructionError("Composable calls must go through executeComposable")
    return call


class Nexus7579Encoder:
    """Encodes single, batch and composable executions for an ERC-7579 account."""

    def encode_execute(self, call: Call) -> str:
        plain = _plain(call)
        execution = encode_packed_args(
            ["address", "uint256", "bytes"],
            [plain.to, plain.value_or_zero, to_bytes(plain.data_or_empty)],
        )
        return to_hex(selector(EXECUTE_SIGNATURE) + encode_args(["bytes32", "bytes"], [CALL_TYPE_SINGLE, execution]))

    def encode_execute_batch(self, calls: Sequence[Call]) -> str:
        if len(calls) == 1:
            return self.encode_execute(calls[0])
        executions = [
            (p.to, p.value_or_zero, to_bytes(p.data_or_empty))
            for p in (_plain(call) for call in calls)
        ]
        execution = encode_args(["(address,uint256,bytes)[]"], [executions])
        return to_hex(selector(EXECUTE_SIGNATURE) + encode_args(["bytes32", "bytes"], [CALL_TYPE_BATCH, execution]))

    def encode_execute_composable(self, calls: Sequence[Call]) -> str:
        return encode_execute_composable([to_composable_call(call) for call in calls])


class RpcAccountReader:
    """
    Reads nonce and deployment state over JSON-RPC.

    Init code and delegation authorizations are supplied by the caller; this
    package does not derive factory data.
    """

    def __init__(
        self,
        address: str,
        rpc: ChainRpcProvider,
        init_code: Optional[str] = None,
        authorization: Optional[Dict[str, Any]] = None,
        entry_point: str = ENTRY_POINT_ADDRESS,
    ) -> None:
        self.address = address
        self._rpc = rpc
        self._init_code = init_code
        self._authorization = authorization
        self._entry_point = entry_point

    async def get_nonce(self, key: int = 0) -> int:
        result = await self._rpc.call(self._entry_point, build_entrypoint_get_nonce_call(self.address, key))
        return int(result, 16) if result and result != "0x" else 0

    async def is_deployed(self) -> bool:
        code = await self._rpc.get_code(self.address)
        if not code or code == "0x":
            return False
        if self._authorization is not None:
            return code.lower().startswith(DELEGATION_CODE_PREFIX)
        return True

    async def get_init_code(self) -> Optional[str]:
        return self._init_code

    async def get_delegation_authorization(self) -> Optional[Dict[str, Any]]:
        return self._authorization
