"""
Runtime value builders.

A source descriptor names *what* to read at execution time; the ReadRegistry
turns it into the fetcher type and param data the composable module expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

from ...constants import ENTRY_POINT_ADDRESS, ZERO_ADDRESS
from ..abi import encode_args, encode_call, encode_packed_args, pad32, to_bytes
from ..errors import InstructionError
from .models import (
    Constraint,
    ConstraintType,
    InputParam,
    InputParamFetcherType,
    RuntimeValue,
)


def _constraint(constraint_type: ConstraintType, value: Any) -> Constraint:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InstructionError(
            f"Constraint value must be a non-negative integer, got {value!r}"
        )
    return Constraint(constraint_type=constraint_type, reference_data=pad32(value))


def greater_than_or_equal_to(value: int) -> Constraint:
    return _constraint(ConstraintType.GTE, value)


def less_than_or_equal_to(value: int) -> Constraint:
    return _constraint(ConstraintType.LTE, value)


def equal_to(value: int) -> Constraint:
    return _constraint(ConstraintType.EQ, value)


@dataclass(frozen=True)
class RuntimeSource:
    """Describes an execution-time read, e.g. ``RuntimeSource("erc20_balance", {...})``."""
    kind: str
    args: Dict[str, Any] = field(default_factory=dict)


def erc20_balance(token: str, target: str) -> RuntimeSource:
    return RuntimeSource("erc20_balance", {"token": token, "target": target})


def native_balance(target: str) -> RuntimeSource:
    return RuntimeSource("native_balance", {"target": target})


def erc20_allowance(token: str, owner: str, spender: str) -> RuntimeSource:
    return RuntimeSource("erc20_allowance", {"token": token, "owner": owner, "spender": spender})


def account_nonce(account: str, nonce_key: int = 0) -> RuntimeSource:
    return RuntimeSource("account_nonce", {"account": account, "nonce_key": nonce_key})


def custom_static_call(target: str, function_signature: str, args: Sequence[Any] = ()) -> RuntimeSource:
    return RuntimeSource(
        "static_call",
        {"target": target, "function_signature": function_signature, "args": list(args)},
    )


ReadBuilder = Callable[..., Tuple[InputParamFetcherType, bytes]]


def _static_call_data(target: str, call_data: str) -> bytes:
    return encode_args(["address", "bytes"], [target, to_bytes(call_data)])


def _read_erc20_balance(token: str, target: str) -> Tuple[InputParamFetcherType, bytes]:
    return InputParamFetcherType.BALANCE, encode_packed_args(["address", "address"], [token, target])


def _read_native_balance(target: str) -> Tuple[InputParamFetcherType, bytes]:
    return _read_erc20_balance(ZERO_ADDRESS, target)


def _read_erc20_allowance(token: str, owner: str, spender: str) -> Tuple[InputParamFetcherType, bytes]:
    call_data = encode_call("allowance(address,address)", [owner, spender])
    return InputParamFetcherType.STATIC_CALL, _static_call_data(token, call_data)


def _read_account_nonce(account: str, nonce_key: int = 0) -> Tuple[InputParamFetcherType, bytes]:
    call_data = encode_call("getNonce(address,uint192)", [account, nonce_key])
    return InputParamFetcherType.STATIC_CALL, _static_call_data(ENTRY_POINT_ADDRESS, call_data)


def _read_static_call(target: str, function_signature: str, args: Sequence[Any]) -> Tuple[InputParamFetcherType, bytes]:
    call_data = encode_call(function_signature, list(args))
    return InputParamFetcherType.STATIC_CALL, _static_call_data(target, call_data)


class ReadRegistry:
    """
    Maps source kinds to builders producing (fetcher type, param data).

    Build one with build_default_read_registry() and pass it to whoever needs
    to resolve sources; register() adds protocol-specific reads.
    """

    def __init__(self) -> None:
        self._builders: Dict[str, ReadBuilder] = {}

    def register(self, kind: str, builder: ReadBuilder) -> None:
        if kind in self._builders:
            raise InstructionError(f"Runtime read '{kind}' is already registered")
        self._builders[kind] = builder

    def kinds(self) -> list[str]:
        return sorted(self._builders)

    def resolve(self, source: RuntimeSource) -> Tuple[InputParamFetcherType, bytes]:
        builder = self._builders.get(source.kind)
        if builder is None:
            raise InstructionError(f"Unknown runtime read '{source.kind}'")
        try:
            return builder(**source.args)
        except TypeError as e:
            raise InstructionError(f"Invalid arguments for runtime read '{source.kind}': {e}") from e


def build_default_read_registry() -> ReadRegistry:
    registry = ReadRegistry()
    registry.register("erc20_balance", _read_erc20_balance)
    registry.register("native_balance", _read_native_balance)
    registry.register("erc20_allowance", _read_erc20_allowance)
    registry.register("account_nonce", _read_account_nonce)
    registry.register("static_call", _read_static_call)
    return registry


# shared by the runtime_*_of helpers; clients that register extra reads build their own
_default_registry = build_default_read_registry()


def runtime_value_of(
    source: RuntimeSource,
    constraints: Iterable[Constraint] = (),
    registry: Optional[ReadRegistry] = None,
) -> RuntimeValue:
    """
    Build a runtime value from a source descriptor.

    Constraints are evaluated in order by the execution network; the first
    failing constraint aborts the owning call.
    """
    fetcher_type, param_data = (registry or _default_registry).resolve(source)
    return RuntimeValue(
        input_params=[
            InputParam(
                fetcher_type=fetcher_type,
                param_data=param_data,
                constraints=tuple(constraints),
            )
        ]
    )


def runtime_erc20_balance_of(
    token_address: str,
    target_address: str,
    constraints: Iterable[Constraint] = (),
) -> RuntimeValue:
    return runtime_value_of(erc20_balance(token_address, target_address), constraints)


def runtime_native_balance_of(
    target_address: str,
    constraints: Iterable[Constraint] = (),
) -> RuntimeValue:
    return runtime_value_of(native_balance(target_address), constraints)


def runtime_erc20_allowance_of(
    token_address: str,
    owner: str,
    spender: str,
    constraints: Iterable[Constraint] = (),
) -> RuntimeValue:
    return runtime_value_of(erc20_allowance(token_address, owner, spender), constraints)


def runtime_nonce_of(
    account_address: str,
    nonce_key: int = 0,
    constraints: Iterable[Constraint] = (),
) -> RuntimeValue:
    return runtime_value_of(account_nonce(account_address, nonce_key), constraints)


def runtime_param_via_custom_static_call(
    target_address: str,
    function_signature: str,
    args: Sequence[Any] = (),
    constraints: Iterable[Constraint] = (),
) -> RuntimeValue:
    return runtime_value_of(custom_static_call(target_address, function_signature, args), constraints)
