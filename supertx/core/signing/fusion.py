"""
Signing strategy dispatch for fusion quotes.
"""

from __future__ import annotations

from typing import Optional

from ...providers.rpc import RpcRegistry
from ...types.quote import SignedQuote
from ..account.deployment import MultichainAccount
from ..quote.fusion import FusionQuote, QuoteType
from .onchain import sign_onchain_quote
from .permit import sign_permit_quote
from .simple import sign_simple_quote


async def sign_fusion_quote(
    fusion_quote: FusionQuote,
    account: MultichainAccount,
    rpc: RpcRegistry,
    confirmations: Optional[int] = None,
) -> SignedQuote:
    if fusion_quote.quote_type == QuoteType.PERMIT:
        return await sign_permit_quote(fusion_quote, account, rpc)
    if fusion_quote.quote_type == QuoteType.ONCHAIN:
        return await sign_onchain_quote(fusion_quote, account, rpc, confirmations)
    return await sign_simple_quote(fusion_quote.quote, account.signer)
