"""
On-chain signing.

The signer sends a real transaction (approval, native forward or a custom
call) whose call data ends with the quote hash. The transaction hash is the
signature.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from ...config import settings
from ...constants import FORWARDER_ADDRESS, NATIVE_TRANSFER_MARKER, ONCHAIN_SIGNATURE_PREFIX
from ...providers.rpc import RpcRegistry
from ...types.quote import SignedQuote
from ..abi import build_erc20_approve, checksum, encode_args, encode_call, strip_0x, to_bytes, to_hex
from ..account.deployment import MultichainAccount
from ..errors import ConfigurationError
from ..instructions.models import AbstractCall
from ..quote.fusion import FusionQuote
from ..quote.triggers import CustomTrigger, TokenTrigger, Trigger
from .simple import prefix_signature

logger = logging.getLogger(__name__)


def build_trigger_call(trigger: Trigger, spender: str, recipient: str) -> AbstractCall:
    """The call the signer sends: custom call, native forward, or ERC-20 approval of the account."""
    if isinstance(trigger, CustomTrigger):
        return trigger.call
    if not isinstance(trigger, TokenTrigger):
        raise ConfigurationError("On-chain signing needs a token or custom trigger")

    if trigger.is_native:
        return AbstractCall(
            to=FORWARDER_ADDRESS,
            value=trigger.amount,
            data=encode_call("forward(address)", [recipient]),
        )

    return AbstractCall(to=trigger.token_address, data=build_erc20_approve(spender, trigger.allowance_amount()))


def append_quote_hash(call: AbstractCall, quote_hash: str) -> AbstractCall:
    data = call.data if call.data else NATIVE_TRANSFER_MARKER
    return AbstractCall(
        to=call.to,
        value=call.value,
        data=data + strip_0x(quote_hash),
        gas_limit=call.gas_limit,
    )


async def send_trigger_transaction(
    fusion_quote: FusionQuote,
    account: MultichainAccount,
    rpc: RpcRegistry,
    confirmations: int,
) -> str:
    trigger = fusion_quote.trigger
    chain_id = trigger.chain_id
    chain_rpc = rpc.get(chain_id)
    spender = account.address_on(chain_id, strict=True)
    recipient = getattr(trigger, "recipient", None) or spender

    call = append_quote_hash(build_trigger_call(trigger, spender, recipient), fusion_quote.quote.hash)
    sender = account.signer_address

    tx: Dict[str, Any] = {
        "from": checksum(sender),
        "to": checksum(call.to),
        "value": call.value_or_zero,
        "data": call.data,
        "chainId": chain_id,
    }
    nonce, gas_price, gas = await asyncio.gather(
        chain_rpc.get_transaction_count(sender),
        chain_rpc.gas_price(),
        chain_rpc.estimate_gas({**tx, "value": hex(tx["value"]), "chainId": hex(chain_id)}),
    )
    tx.pop("from")
    tx.update(nonce=nonce, gasPrice=gas_price, gas=call.gas_limit or gas)

    raw_tx = await account.signer.sign_transaction(tx)
    tx_hash = await chain_rpc.send_raw_transaction(raw_tx)
    await chain_rpc.wait_for_transaction_receipt(tx_hash, confirmations=confirmations)
    return tx_hash


async def sign_onchain_quote(
    fusion_quote: FusionQuote,
    account: MultichainAccount,
    rpc: RpcRegistry,
    confirmations: Optional[int] = None,
) -> SignedQuote:
    if confirmations is None:
        confirmations = settings.onchain_trigger_confirmations

    tx_hash = await send_trigger_transaction(fusion_quote, account, rpc, confirmations)
    payload = encode_args(["bytes32", "uint256"], [to_bytes(tx_hash), fusion_quote.trigger.chain_id])
    logger.info(f"Trigger transaction {tx_hash} signs quote {fusion_quote.quote.hash}")
    return fusion_quote.quote.with_signature(prefix_signature(ONCHAIN_SIGNATURE_PREFIX, to_hex(payload)))
