"""
Funding triggers, fee token and cleanup requests.

The trigger kind is fixed when the value is constructed; strategy selection
dispatches on the type rather than probing payload shape.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import List, Optional, Union

from ...constants import ZERO_ADDRESS
from ..errors import ConfigurationError
from ..instructions.models import AbstractCall


@dataclass(frozen=True)
class FeeToken:
    address: str
    chain_id: int


@dataclass(frozen=True)
class NoTrigger:
    """The account is already funded; the quote hash is signed directly."""


@dataclass(frozen=True)
class TokenTrigger:
    """
    Move ``amount`` of ``token_address`` from the signer into the smart account.

    With ``use_max_available_funds`` the signer's whole balance is swept and the
    fee is taken out of it.
    """
    chain_id: int
    token_address: str
    amount: Optional[int] = None
    use_max_available_funds: bool = False
    recipient: Optional[str] = None
    approval_amount: Optional[int] = None
    gas_limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.amount is None and not self.use_max_available_funds:
            raise ConfigurationError("Token trigger needs an amount or use_max_available_funds", chain_id=self.chain_id)
        if self.amount is not None and self.amount < 0:
            raise ConfigurationError("Trigger amount must be non-negative", chain_id=self.chain_id)

    @property
    def is_native(self) -> bool:
        return self.token_address.lower() == ZERO_ADDRESS

    def with_amount(self, amount: int) -> "TokenTrigger":
        return replace(self, amount=amount)

    def allowance_amount(self) -> int:
        """Amount the signer approves or permits: the explicit approval, else the trigger amount."""
        amount = self.approval_amount if self.approval_amount is not None else self.amount
        if not amount:
            raise ConfigurationError("Invalid trigger amount", chain_id=self.chain_id)
        if self.amount is not None and amount < self.amount:
            raise ConfigurationError(
                f"Approval amount {amount} is below trigger amount {self.amount}",
                chain_id=self.chain_id,
            )
        return amount


@dataclass(frozen=True)
class CustomTrigger:
    """An arbitrary call the signer sends on-chain; the quote hash is appended to its data."""
    call: AbstractCall
    chain_id: int


Trigger = Union[NoTrigger, TokenTrigger, CustomTrigger]


@dataclass
class CleanUp:
    """
    Trailing transfer sweeping what is left of ``token_address`` to ``recipient``.

    ``dependencies`` are indices into the resolved instruction list; the cleanup
    only runs once each of those operations has consumed its nonce. Without
    dependencies it waits for the last operation on its chain.
    """
    chain_id: int
    token_address: str
    recipient: str
    amount: Optional[int] = None
    dependencies: Optional[List[int]] = None
    gas_limit: Optional[int] = None
