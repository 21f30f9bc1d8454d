"""
ABI encoding with execution-time placeholders.

Standard head/tail encoding, except that a RuntimeValue can stand in for any
static word (or for a whole ``bytes`` body). The result is an ordered list of
input params: static stretches become RAW_BYTES params, runtime values keep
their own fetchers, and the composable module concatenates them in order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

from eth_abi import encode
from eth_abi.grammar import TupleType, normalize, parse

from ..abi import pad32
from ..errors import InstructionError
from .models import (
    InputParam,
    InputParamFetcherType,
    InputParamType,
    RuntimeValue,
    contains_runtime_value,
)

Chunk = Union[bytes, RuntimeValue]


@dataclass
class _Prepared:
    dynamic: bool
    chunks: List[Chunk]


def _chunk_length(chunk: Chunk) -> int:
    if isinstance(chunk, RuntimeValue):
        return chunk.encoded_length
    return len(chunk)


def _encode_prepared(items: Sequence[_Prepared]) -> List[Chunk]:
    head_length = sum(
        32 if item.dynamic else sum(_chunk_length(c) for c in item.chunks)
        for item in items
    )
    heads: List[Chunk] = []
    tails: List[Chunk] = []
    tail_offset = head_length
    for item in items:
        if item.dynamic:
            heads.append(pad32(tail_offset))
            tails.extend(item.chunks)
            tail_offset += sum(_chunk_length(c) for c in item.chunks)
        else:
            heads.extend(item.chunks)
    return heads + tails


def _prepare(abi_type: Any, value: Any) -> _Prepared:
    type_str = abi_type.to_type_str()

    if isinstance(value, RuntimeValue):
        if type_str == "bytes":
            return _Prepared(True, [pad32(value.encoded_length), value])
        if abi_type.is_dynamic:
            raise InstructionError(
                f"Runtime values can only replace static types or bytes, not {type_str}"
            )
        return _Prepared(False, [value])

    if not contains_runtime_value(value):
        encoded = encode([type_str], [value])
        if abi_type.is_dynamic:
            # drop the single offset word eth-abi puts in front of a lone dynamic value
            return _Prepared(True, [encoded[32:]])
        return _Prepared(False, [encoded])

    if abi_type.is_array:
        if not isinstance(value, (list, tuple)):
            raise InstructionError(f"Expected a sequence for {type_str}")
        items = [_prepare(abi_type.item_type, item) for item in value]
        body = _encode_prepared(items)
        if not abi_type.arrlist[-1]:
            return _Prepared(True, [pad32(len(value))] + body)
        return _Prepared(abi_type.is_dynamic, body)

    if isinstance(abi_type, TupleType):
        if not isinstance(value, (list, tuple)):
            raise InstructionError(f"Tuple arguments must be positional for {type_str}")
        if len(value) != len(abi_type.components):
            raise InstructionError(
                f"{type_str} expects {len(abi_type.components)} components, got {len(value)}"
            )
        items = [_prepare(c, v) for c, v in zip(abi_type.components, value)]
        return _Prepared(abi_type.is_dynamic, _encode_prepared(items))

    raise InstructionError(f"Runtime values are not supported inside {type_str}")


def _parse_types(types: Sequence[str]) -> List[Any]:
    return [parse(normalize(t)) for t in types]


def compress_input_params(input_params: Sequence[InputParam]) -> List[InputParam]:
    """Merge consecutive constraint-free RAW_BYTES params into one."""
    compressed: List[InputParam] = []
    pending = b""
    for param in input_params:
        if param.param_type != InputParamType.CALL_DATA:
            raise InstructionError("Target or value input params cannot be compressed")
        if param.fetcher_type != InputParamFetcherType.RAW_BYTES or param.constraints:
            if pending:
                compressed.append(InputParam(InputParamFetcherType.RAW_BYTES, pending))
                pending = b""
            compressed.append(param)
            continue
        pending += param.param_data
    if pending:
        compressed.append(InputParam(InputParamFetcherType.RAW_BYTES, pending))
    return compressed


def prepare_composable_input_params(
    types: Sequence[str],
    args: Sequence[Any],
    efficient_mode: bool = True,
) -> List[InputParam]:
    if len(types) != len(args):
        raise InstructionError(f"Expected {len(types)} arguments, got {len(args)}")

    prepared = [_prepare(t, a) for t, a in zip(_parse_types(types), args)]
    params: List[InputParam] = []
    for chunk in _encode_prepared(prepared):
        if isinstance(chunk, RuntimeValue):
            params.extend(chunk.input_params)
        else:
            params.append(InputParam(InputParamFetcherType.RAW_BYTES, chunk))

    if efficient_mode:
        return compress_input_params(params)
    return params


def runtime_encode_abi_parameters(types: Sequence[str], args: Sequence[Any]) -> RuntimeValue:
    """Runtime value for a ``bytes`` argument whose ABI-encoded body holds placeholders."""
    return RuntimeValue(input_params=prepare_composable_input_params(types, args))


def placeholder_offsets(input_params: Sequence[InputParam]) -> List[Tuple[int, InputParam]]:
    """
    Byte offset (within the call data, selector included) of every runtime slot.
    """
    offsets: List[Tuple[int, InputParam]] = []
    cursor = 4
    for param in input_params:
        if param.param_type != InputParamType.CALL_DATA:
            continue
        if param.fetcher_type == InputParamFetcherType.RAW_BYTES:
            if param.constraints:
                offsets.append((cursor, param))
            cursor += len(param.param_data)
        else:
            offsets.append((cursor, param))
            cursor += 32
    return offsets
