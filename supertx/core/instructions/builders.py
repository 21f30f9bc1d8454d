"""
Instruction builders.

Every builder takes the instructions built so far and returns them with its
own instructions appended, so builds can be chained:

    builder = InstructionBuilder(account)
    instructions = await builder.build("intent", amount=10**6, token=usdc, to_chain_id=8453)
    instructions = await builder.build(
        "default",
        instructions=[{"calls": [{"to": target, "value": 0, "gas_limit": 50_000}], "chain_id": 8453}],
        current_instructions=instructions,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ...constants import ZERO_ADDRESS
from ..abi import build_erc20_approve, build_erc20_transfer, build_erc20_transfer_from
from ..composability.models import RuntimeValue, contains_runtime_value
from ..errors import ConfigurationError, InstructionError
from .across import AcrossPlugin
from .batching import merge_instructions
from .bridging import (
    BridgingMode,
    BridgingPlugin,
    FeeData,
    MultichainToken,
    UnifiedBalance,
    build_bridge_instructions,
    get_unified_erc20_balance,
)
from .composable import build_composable_call, build_raw_composable_call
from .models import AbstractCall, Instruction
from .resolver import InstructionLike, resolve_instructions

if TYPE_CHECKING:
    from ..account.deployment import MultichainAccount

InstructionInput = Union[Instruction, Mapping[str, Any]]


def _get(data: Mapping[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def call_from_dict(data: Mapping[str, Any]) -> AbstractCall:
    return AbstractCall(
        to=data["to"],
        value=data.get("value"),
        data=data.get("data"),
        gas_limit=_get(data, "gas_limit", "gasLimit"),
    )


def instruction_from_dict(data: InstructionInput) -> Instruction:
    if isinstance(data, Instruction):
        return data
    calls = [c if isinstance(c, AbstractCall) else call_from_dict(c) for c in data["calls"]]
    return Instruction(calls=calls, chain_id=int(_get(data, "chain_id", "chainId")))


class InstructionBuilder:
    """Builds instructions for one multichain account."""

    def __init__(
        self,
        account: "MultichainAccount",
        bridging_plugins: Optional[Sequence[BridgingPlugin]] = None,
    ) -> None:
        self.account = account
        self._bridging_plugins = list(bridging_plugins) if bridging_plugins is not None else None
        self._builders: Dict[str, Callable[..., Awaitable[List[Instruction]]]] = {
            "default": self.default,
            "transfer": self.transfer,
            "transfer_from": self.transfer_from,
            "approve": self.approve,
            "withdrawal": self.withdrawal,
            "batch": self.batch,
            "composable": self.composable,
            "raw_composable": self.raw_composable,
            "intent": self.intent,
        }

    async def build(
        self,
        type: str,
        current_instructions: Optional[Sequence[InstructionLike]] = None,
        **data: Any,
    ) -> List[Instruction]:
        builder = self._builders.get(type)
        if builder is None:
            raise InstructionError(f"Unknown instruction type: {type}")
        current = await resolve_instructions(current_instructions or [])
        return [*current, *await builder(**data)]

    async def default(self, instructions: Sequence[InstructionInput]) -> List[Instruction]:
        return [instruction_from_dict(i) for i in instructions]

    def _token_call(
        self,
        chain_id: int,
        token_address: str,
        signature: str,
        args: List[Any],
        plain_data: Callable[[], str],
        gas_limit: Optional[int],
    ) -> Instruction:
        if contains_runtime_value(args):
            call = build_composable_call(token_address, signature, args, gas_limit=gas_limit)
            return Instruction(calls=[call], chain_id=chain_id)
        return Instruction(
            calls=[AbstractCall(to=token_address, data=plain_data(), gas_limit=gas_limit)],
            chain_id=chain_id,
        )

    async def transfer(
        self,
        chain_id: int,
        token_address: str,
        amount: Union[int, RuntimeValue],
        recipient: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> List[Instruction]:
        recipient = recipient or self.account.signer_address
        if token_address.lower() == ZERO_ADDRESS:
            if isinstance(amount, RuntimeValue):
                call = build_raw_composable_call(recipient, "0x00000000", value=amount, gas_limit=gas_limit)
                return [Instruction(calls=[call], chain_id=chain_id)]
            return [Instruction(calls=[AbstractCall(to=recipient, value=amount, gas_limit=gas_limit)], chain_id=chain_id)]
        return [
            self._token_call(
                chain_id,
                token_address,
                "transfer(address,uint256)",
                [recipient, amount],
                lambda: build_erc20_transfer(recipient, amount),
                gas_limit,
            )
        ]

    async def transfer_from(
        self,
        chain_id: int,
        token_address: str,
        sender: str,
        recipient: str,
        amount: Union[int, RuntimeValue],
        gas_limit: Optional[int] = None,
    ) -> List[Instruction]:
        return [
            self._token_call(
                chain_id,
                token_address,
                "transferFrom(address,address,uint256)",
                [sender, recipient, amount],
                lambda: build_erc20_transfer_from(sender, recipient, amount),
                gas_limit,
            )
        ]

    async def approve(
        self,
        chain_id: int,
        token_address: str,
        spender: str,
        amount: Union[int, RuntimeValue],
        gas_limit: Optional[int] = None,
    ) -> List[Instruction]:
        return [
            self._token_call(
                chain_id,
                token_address,
                "approve(address,uint256)",
                [spender, amount],
                lambda: build_erc20_approve(spender, amount),
                gas_limit,
            )
        ]

    async def withdrawal(
        self,
        chain_id: int,
        token_address: str,
        amount: Union[int, RuntimeValue],
        gas_limit: Optional[int] = None,
    ) -> List[Instruction]:
        """Transfer from the smart account back to the signer."""
        return await self.transfer(chain_id, token_address, amount, self.account.signer_address, gas_limit)

    async def batch(self, instructions: Sequence[InstructionLike]) -> List[Instruction]:
        resolved = await resolve_instructions(instructions)
        if len(resolved) < 2:
            raise ConfigurationError("A batch needs at least two instructions")
        return [merge_instructions(resolved)]

    async def composable(
        self,
        chain_id: int,
        to: Union[str, RuntimeValue],
        function_signature: str,
        args: Sequence[Any] = (),
        value: Union[int, RuntimeValue, None] = None,
        gas_limit: Optional[int] = None,
        efficient_mode: bool = True,
    ) -> List[Instruction]:
        call = build_composable_call(to, function_signature, args, value, gas_limit, efficient_mode)
        return [Instruction(calls=[call], chain_id=chain_id)]

    async def raw_composable(
        self,
        chain_id: int,
        to: Union[str, RuntimeValue],
        call_data: str,
        value: Union[int, RuntimeValue, None] = None,
        gas_limit: Optional[int] = None,
    ) -> List[Instruction]:
        call = build_raw_composable_call(to, call_data, value, gas_limit)
        return [Instruction(calls=[call], chain_id=chain_id)]

    async def intent(
        self,
        amount: int,
        token: MultichainToken,
        to_chain_id: int,
        unified_balance: Optional[UnifiedBalance] = None,
        depositor: Optional[str] = None,
        recipient: Optional[str] = None,
        mode: BridgingMode = BridgingMode.DEBIT,
        fee_data: Optional[FeeData] = None,
    ) -> List[Instruction]:
        """Bridge just enough of ``token`` to ``to_chain_id`` to hold ``amount`` there."""
        if unified_balance is None:
            unified_balance = await get_unified_erc20_balance(self.account, token)

        destination = self.account.address_on(to_chain_id, strict=True)
        plugins = self._bridging_plugins
        if plugins is None:
            plugins = [AcrossPlugin()]

        result = await build_bridge_instructions(
            depositor=depositor or destination,
            recipient=recipient or destination,
            amount=amount,
            to_chain_id=to_chain_id,
            unified_balance=unified_balance,
            plugins=plugins,
            fee_data=fee_data,
            mode=mode,
        )
        return result.instructions
