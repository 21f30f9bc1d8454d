"""
Composability data model: input/output params, constraints and runtime values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Any, List, Tuple


class InputParamFetcherType(IntEnum):
    RAW_BYTES = 0
    STATIC_CALL = 1
    BALANCE = 2


class InputParamType(IntEnum):
    TARGET = 0
    VALUE = 1
    CALL_DATA = 2


class OutputParamFetcherType(IntEnum):
    EXEC_RESULT = 0
    STATIC_CALL = 1


class ConstraintType(IntEnum):
    EQ = 0
    GTE = 1
    LTE = 2


@dataclass(frozen=True)
class Constraint:
    """Checked by the composable module against the fetched word before the call runs."""
    constraint_type: ConstraintType
    reference_data: bytes

    def to_abi(self) -> Tuple[int, bytes]:
        return (int(self.constraint_type), self.reference_data)


@dataclass(frozen=True)
class InputParam:
    fetcher_type: InputParamFetcherType
    param_data: bytes
    constraints: Tuple[Constraint, ...] = ()
    param_type: InputParamType = InputParamType.CALL_DATA

    def with_param_type(self, param_type: InputParamType) -> "InputParam":
        return replace(self, param_type=param_type)

    def to_abi(self) -> Tuple[int, int, bytes, List[Tuple[int, bytes]]]:
        return (
            int(self.param_type),
            int(self.fetcher_type),
            self.param_data,
            [c.to_abi() for c in self.constraints],
        )


@dataclass(frozen=True)
class OutputParam:
    fetcher_type: OutputParamFetcherType
    param_data: bytes

    def to_abi(self) -> Tuple[int, bytes]:
        return (int(self.fetcher_type), self.param_data)


@dataclass
class RuntimeValue:
    """
    A value resolved by the execution network right before the owning call runs.

    Placed anywhere in a composable call's argument list, including inside
    tuples and arrays.
    """
    input_params: List[InputParam]
    output_params: List[OutputParam] = field(default_factory=list)

    @property
    def encoded_length(self) -> int:
        length = 0
        for param in self.input_params:
            if param.fetcher_type == InputParamFetcherType.RAW_BYTES:
                length += len(param.param_data)
            else:
                length += 32
        return length


def contains_runtime_value(value: Any) -> bool:
    if isinstance(value, RuntimeValue):
        return True
    if isinstance(value, (list, tuple)):
        return any(contains_runtime_value(item) for item in value)
    if isinstance(value, dict):
        return any(contains_runtime_value(item) for item in value.values())
    return False
