"""
Simple signing: the signer signs the quote hash directly.
"""

from __future__ import annotations

from ...constants import SIMPLE_SIGNATURE_PREFIX
from ...types.quote import Quote, SignedQuote
from ..abi import strip_0x
from ..account.capabilities import Signer


def prefix_signature(prefix: str, payload: str) -> str:
    return prefix + strip_0x(payload)


async def sign_simple_quote(quote: Quote, signer: Signer) -> SignedQuote:
    signature = await signer.sign_message_hash(quote.hash)
    return quote.with_signature(prefix_signature(SIMPLE_SIGNATURE_PREFIX, signature))
