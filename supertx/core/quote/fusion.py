"""
Fusion quotes: a quote plus the funding trigger that pays for it.

The trigger decides how the quote hash gets signed:
    SIMPLE  - no funding needed, sign the hash directly
    PERMIT  - ERC-2612 permit signed off-chain, spent by a transferFrom
    ONCHAIN - the signer sends a transaction carrying the hash
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ...constants import DEFAULT_QUOTE_PATH, PERMIT_QUOTE_PATH, ZERO_ADDRESS
from ...providers.mee_node import MeeNodeProvider
from ...providers.rpc import ChainRpcProvider, RpcRegistry
from ...types.quote import Quote
from ..abi import build_erc20_balance_of, build_erc20_transfer_from, encode_call, selector_hex
from ..account.deployment import MultichainAccount
from ..composability.runtime_values import runtime_erc20_allowance_of
from ..errors import ConfigurationError, RpcError
from ..instructions.batching import partition_instructions
from ..instructions.composable import build_composable_call
from ..instructions.models import AbstractCall, Instruction
from ..instructions.resolver import InstructionLike
from .builder import QuoteBuilder
from .triggers import CleanUp, CustomTrigger, FeeToken, NoTrigger, TokenTrigger, Trigger

logger = logging.getLogger(__name__)

TRANSFER_FROM_GAS_LIMIT = 150_000

_PERMIT_SIGNATURE = "permit(address,address,uint256,uint256,uint8,bytes32,bytes32)"
_ZERO_WORD = b"\x00" * 32


class QuoteType(str, Enum):
    SIMPLE = "simple"
    PERMIT = "permit"
    ONCHAIN = "onchain"


@dataclass(frozen=True)
class FusionQuote:
    quote: Quote
    trigger: Trigger
    quote_type: QuoteType


async def is_permit_supported(rpc: ChainRpcProvider, token_address: str) -> bool:
    """
    Check whether a token supports ERC-2612 permits.

    permit() called with zero arguments must revert inside the function
    (not fall through a missing selector), and both DOMAIN_SEPARATOR() and
    nonces(address) must be callable.
    """
    permit_data = encode_call(_PERMIT_SIGNATURE, [ZERO_ADDRESS, ZERO_ADDRESS, 0, 0, 0, _ZERO_WORD, _ZERO_WORD])
    results = await asyncio.gather(
        rpc.call(token_address, permit_data),
        rpc.call(token_address, selector_hex("DOMAIN_SEPARATOR()")),
        rpc.call(token_address, encode_call("nonces(address)", [ZERO_ADDRESS])),
        return_exceptions=True,
    )
    permit_result, domain_result, nonces_result = results

    if isinstance(permit_result, RpcError):
        message = str(permit_result).lower()
        has_permit = "revert" in message and "function selector" not in message
    elif isinstance(permit_result, BaseException):
        raise permit_result
    else:
        has_permit = True

    for result in (domain_result, nonces_result):
        if isinstance(result, BaseException) and not isinstance(result, RpcError):
            raise result

    supported = has_permit and not isinstance(domain_result, RpcError) and not isinstance(nonces_result, RpcError)
    logger.debug(f"Permit support for {token_address} on chain {rpc.chain_id}: {supported}")
    return supported


async def get_quote_type(node: MeeNodeProvider, rpc: RpcRegistry, trigger: Trigger) -> QuoteType:
    if isinstance(trigger, NoTrigger):
        return QuoteType.SIMPLE
    if isinstance(trigger, CustomTrigger):
        return QuoteType.ONCHAIN

    if trigger.is_native:
        return QuoteType.ONCHAIN

    info = await node.get_info()
    gas_tokens = info.gas_tokens_on(trigger.chain_id)
    if gas_tokens is not None:
        for token in gas_tokens.payment_tokens:
            if token.address.lower() == trigger.token_address.lower():
                return QuoteType.PERMIT if token.permit_enabled else QuoteType.ONCHAIN

        if gas_tokens.is_arbitrary_payment_tokens_supported:
            supported = await is_permit_supported(rpc.get(trigger.chain_id), trigger.token_address)
            return QuoteType.PERMIT if supported else QuoteType.ONCHAIN

    raise ConfigurationError(
        f"Payment token not supported: {trigger.token_address} on chain {trigger.chain_id}",
        chain_id=trigger.chain_id,
    )


async def _signer_balance(rpc: RpcRegistry, trigger: TokenTrigger, owner: str) -> int:
    provider = rpc.get(trigger.chain_id)
    if trigger.is_native:
        return await provider.get_balance(owner)
    return int(await provider.call(trigger.token_address, build_erc20_balance_of(owner)), 16)


def _transfer_from_instruction(account: MultichainAccount, trigger: TokenTrigger, amount: int) -> Instruction:
    signer = account.signer_address
    recipient = trigger.recipient or account.address_on(trigger.chain_id, strict=True)
    if trigger.use_max_available_funds:
        spender = account.address_on(trigger.chain_id, strict=True)
        call = build_composable_call(
            trigger.token_address,
            "transferFrom(address,address,uint256)",
            [signer, recipient, runtime_erc20_allowance_of(trigger.token_address, signer, spender)],
            gas_limit=TRANSFER_FROM_GAS_LIMIT,
        )
        return Instruction(calls=[call], chain_id=trigger.chain_id, is_composable=True)
    call = AbstractCall(
        to=trigger.token_address,
        data=build_erc20_transfer_from(signer, recipient, amount),
        gas_limit=TRANSFER_FROM_GAS_LIMIT,
    )
    return Instruction(calls=[call], chain_id=trigger.chain_id)


async def get_fusion_quote(
    builder: QuoteBuilder,
    rpc: RpcRegistry,
    account: MultichainAccount,
    trigger: Trigger,
    instructions: Sequence[InstructionLike],
    fee_token: Optional[FeeToken] = None,
    *,
    sponsorship: bool = False,
    cleanups: Sequence[CleanUp] = (),
    lower_bound_timestamp: Optional[int] = None,
    upper_bound_timestamp: Optional[int] = None,
    short_encoding: Optional[bool] = None,
) -> FusionQuote:
    """
    Quote a supertransaction together with its funding trigger.

    The returned trigger carries the final amount the signer must provide:
    the requested amount plus the quoted fee, unless the fee is sponsored or
    the whole balance is being swept.
    """
    quote_type = await get_quote_type(builder.node, rpc, trigger)
    path = DEFAULT_QUOTE_PATH
    eoa = None
    batched: Sequence[InstructionLike] = instructions

    if isinstance(trigger, TokenTrigger):
        amount = trigger.amount
        if trigger.use_max_available_funds:
            amount = await _signer_balance(rpc, trigger, account.signer_address)
            trigger = trigger.with_amount(amount)

        path = PERMIT_QUOTE_PATH
        eoa = account.signer_address
        if not trigger.is_native:
            batched = await partition_instructions(
                _transfer_from_instruction(account, trigger, amount),
                instructions,
            )

    quote = await builder.get_quote(
        account,
        batched,
        fee_token,
        sponsorship=sponsorship,
        cleanups=cleanups,
        path=path,
        eoa=eoa,
        lower_bound_timestamp=lower_bound_timestamp,
        upper_bound_timestamp=upper_bound_timestamp,
        short_encoding=short_encoding,
    )

    if isinstance(trigger, TokenTrigger) and not trigger.use_max_available_funds and not sponsorship:
        trigger = trigger.with_amount(trigger.amount + int(quote.payment_info.token_wei_amount))

    logger.info(f"Fusion quote {quote.hash} ({quote_type.value})")
    return FusionQuote(quote=quote, trigger=trigger, quote_type=quote_type)
