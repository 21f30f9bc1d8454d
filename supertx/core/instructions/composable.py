"""
Composable call builders and executeComposable encoding.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from ..abi import encode_args, pad32, selector, split_signature, strip_0x, to_hex
from ..composability.encoding import prepare_composable_input_params
from ..composability.models import InputParam, InputParamFetcherType, InputParamType, OutputParam, RuntimeValue
from ..errors import InstructionError
from .models import AbstractCall, ComposableCall

EXECUTE_COMPOSABLE_SIGNATURE = (
    "executeComposable((bytes4,(uint8,uint8,bytes,(uint8,bytes)[])[],(uint8,bytes)[])[])"
)


def _target_param(to: Union[str, RuntimeValue]) -> InputParam:
    if isinstance(to, RuntimeValue):
        if not to.input_params:
            raise InstructionError("Runtime target has no input params")
        return to.input_params[0].with_param_type(InputParamType.TARGET)
    return InputParam(
        fetcher_type=InputParamFetcherType.RAW_BYTES,
        param_data=encode_args(["address"], [to]),
        param_type=InputParamType.TARGET,
    )


def _value_param(value: Union[int, RuntimeValue, None]) -> Optional[InputParam]:
    # a missing VALUE param means zero on-chain
    if isinstance(value, RuntimeValue):
        if not value.input_params:
            return None
        return value.input_params[0].with_param_type(InputParamType.VALUE)
    if not value:
        return None
    return InputParam(
        fetcher_type=InputParamFetcherType.RAW_BYTES,
        param_data=pad32(value),
        param_type=InputParamType.VALUE,
    )


def _assemble(
    function_sig: str,
    call_data_params: List[InputParam],
    to: Union[str, RuntimeValue],
    value: Union[int, RuntimeValue, None],
    gas_limit: Optional[int],
    output_params: Sequence[OutputParam] = (),
) -> ComposableCall:
    input_params = list(call_data_params)
    input_params.append(_target_param(to))
    value_param = _value_param(value)
    if value_param is not None:
        input_params.append(value_param)
    return ComposableCall(
        function_sig=function_sig,
        input_params=input_params,
        output_params=list(output_params),
        gas_limit=gas_limit,
    )


def build_composable_call(
    to: Union[str, RuntimeValue],
    function_signature: str,
    args: Sequence[Any] = (),
    value: Union[int, RuntimeValue, None] = None,
    gas_limit: Optional[int] = None,
    efficient_mode: bool = True,
    output_params: Sequence[OutputParam] = (),
) -> ComposableCall:
    """
    Build a composable call from a function signature and arguments.

    Any argument, including tuple members and array items, may be a RuntimeValue.

    Example:
        build_composable_call(
            to=usdc,
            function_signature="transfer(address,uint256)",
            args=[recipient, runtime_erc20_balance_of(usdc, account)],
        )
    """
    _, types = split_signature(function_signature)
    call_data_params = prepare_composable_input_params(types, args, efficient_mode)
    return _assemble(
        to_hex(selector(function_signature)),
        call_data_params,
        to,
        value,
        gas_limit,
        output_params,
    )


def build_raw_composable_call(
    to: Union[str, RuntimeValue],
    call_data: str,
    value: Union[int, RuntimeValue, None] = None,
    gas_limit: Optional[int] = None,
) -> ComposableCall:
    """Wrap already-encoded call data; the arguments become one RAW_BYTES param."""
    hex_data = strip_0x(call_data)
    if len(hex_data) < 8:
        raise InstructionError(f"Invalid call data: {call_data}")
    params: List[InputParam] = []
    if len(hex_data) > 8:
        params.append(InputParam(InputParamFetcherType.RAW_BYTES, bytes.fromhex(hex_data[8:])))
    return _assemble("0x" + hex_data[:8], params, to, value, gas_limit)


def to_composable_call(call: Union[AbstractCall, ComposableCall]) -> ComposableCall:
    """Express a plain call as a composable one so it can share a composable batch."""
    if isinstance(call, ComposableCall):
        return call
    data = call.data_or_empty
    if len(strip_0x(data)) < 8:
        # bare native transfer: empty selector, no arguments
        return _assemble("0x00000000", [], call.to, call.value, call.gas_limit)
    return build_raw_composable_call(call.to, data, call.value, call.gas_limit)


def encode_execute_composable(calls: Sequence[ComposableCall]) -> str:
    encoded = encode_args(
        [split_signature(EXECUTE_COMPOSABLE_SIGNATURE)[1][0]],
        [[call.to_abi() for call in calls]],
    )
    return to_hex(selector(EXECUTE_COMPOSABLE_SIGNATURE) + encoded)
