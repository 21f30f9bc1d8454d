"""
Local private-key signer over eth-account.
"""

from __future__ import annotations

from typing import Any, Dict

from eth_account import Account
from eth_account.messages import encode_defunct

from ..abi import to_bytes, to_hex


class LocalSigner:
    """Signs with an in-process private key."""

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    async def sign_message_hash(self, message_hash: str) -> str:
        """EIP-191 personal signature over the raw 32-byte hash."""
        signed = self._account.sign_message(encode_defunct(primitive=to_bytes(message_hash)))
        return to_hex(bytes(signed.signature))

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str:
        signed = self._account.sign_typed_data(full_message=typed_data)
        return to_hex(bytes(signed.signature))

    async def sign_transaction(self, tx: Dict[str, Any]) -> str:
        signed = self._account.sign_transaction(tx)
        return to_hex(bytes(signed.raw_transaction))
