"""
Instruction and call models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..abi import to_bytes
from ..composability.models import InputParam, OutputParam
from ..errors import InstructionError


@dataclass
class AbstractCall:
    """
    A plain call: target, optional native value and call data.

    At least one of ``value`` / ``data`` must be present.
    """
    to: str
    value: Optional[int] = None
    data: Optional[str] = None
    gas_limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.value is None and self.data is None:
            raise InstructionError(f"Call to {self.to} needs a value or call data")
        if self.value is not None and self.value < 0:
            raise InstructionError(f"Call to {self.to} has a negative value")

    @property
    def value_or_zero(self) -> int:
        return self.value or 0

    @property
    def data_or_empty(self) -> str:
        return self.data or "0x"


@dataclass
class ComposableCall:
    """
    A call whose arguments may be filled from chain state right before it runs.

    ``input_params`` holds the call-data pieces in order followed by the TARGET
    and (non-zero) VALUE params.
    """
    function_sig: str
    input_params: List[InputParam]
    output_params: List[OutputParam] = field(default_factory=list)
    gas_limit: Optional[int] = None

    def to_abi(self) -> tuple:
        return (
            to_bytes(self.function_sig),
            [p.to_abi() for p in self.input_params],
            [p.to_abi() for p in self.output_params],
        )

    @property
    def is_composable(self) -> bool:
        return True


Call = Union[AbstractCall, ComposableCall]


@dataclass
class Instruction:
    """A list of calls executed on one chain as one operation."""
    calls: List[Call]
    chain_id: int
    is_composable: bool = False

    def __post_init__(self) -> None:
        if not self.calls:
            raise InstructionError(f"Instruction on chain {self.chain_id} has no calls")
        if any(isinstance(c, ComposableCall) for c in self.calls):
            self.is_composable = True

