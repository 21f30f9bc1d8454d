"""
Capability interfaces a chain deployment is composed from.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence, runtime_checkable

from ..instructions.models import Call


@runtime_checkable
class AccountReader(Protocol):
    """Reads account state on one chain."""

    async def get_nonce(self, key: int = 0) -> int: ...

    async def is_deployed(self) -> bool: ...

    async def get_init_code(self) -> Optional[str]: ...

    async def get_delegation_authorization(self) -> Optional[Dict[str, Any]]: ...


@runtime_checkable
class CallEncoder(Protocol):
    """Encodes calls into the account's execution entry points."""

    def encode_execute(self, call: Call) -> str: ...

    def encode_execute_batch(self, calls: Sequence[Call]) -> str: ...

    def encode_execute_composable(self, calls: Sequence[Call]) -> str: ...


@runtime_checkable
class Signer(Protocol):
    """The external owner that signs quotes, permits and trigger transactions."""

    address: str

    async def sign_message_hash(self, message_hash: str) -> str: ...

    async def sign_typed_data(self, typed_data: Dict[str, Any]) -> str: ...

    async def sign_transaction(self, tx: Dict[str, Any]) -> str: ...
