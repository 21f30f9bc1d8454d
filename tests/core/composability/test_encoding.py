"""
Tests for ABI encoding with runtime placeholders.
"""

import pytest
from eth_abi import encode

from supertx.core.composability import (
    InputParamFetcherType,
    InputParamType,
    greater_than_or_equal_to,
    placeholder_offsets,
    prepare_composable_input_params,
    runtime_encode_abi_parameters,
    runtime_erc20_balance_of,
)
from supertx.core.errors import InstructionError
from supertx.core.instructions import build_composable_call, build_raw_composable_call

TOKEN = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"
HOLDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"


def concat_static(params) -> bytes:
    return b"".join(p.param_data for p in params)


class TestPrepareInputParams:
    def test_static_args_match_eth_abi(self):
        params = prepare_composable_input_params(["address", "uint256"], [RECIPIENT, 10**6])

        assert len(params) == 1
        assert params[0].fetcher_type == InputParamFetcherType.RAW_BYTES
        assert params[0].param_data == encode(["address", "uint256"], [RECIPIENT, 10**6])

    def test_dynamic_static_args_match_eth_abi(self):
        types = ["address", "bytes", "uint256[]"]
        args = [RECIPIENT, b"\x12\x34", [1, 2, 3]]

        params = prepare_composable_input_params(types, args)

        assert concat_static(params) == encode(types, args)

    def test_runtime_value_splits_params(self):
        amount = runtime_erc20_balance_of(TOKEN, HOLDER, [greater_than_or_equal_to(1)])

        params = prepare_composable_input_params(["address", "uint256"], [RECIPIENT, amount])

        assert [p.fetcher_type for p in params] == [InputParamFetcherType.RAW_BYTES, InputParamFetcherType.BALANCE]
        assert params[0].param_data == encode(["address"], [RECIPIENT])

    def test_inefficient_mode_keeps_each_word(self):
        amount = runtime_erc20_balance_of(TOKEN, HOLDER)

        params = prepare_composable_input_params(
            ["address", "address", "uint256"],
            [RECIPIENT, HOLDER, amount],
            efficient_mode=False,
        )

        assert len(params) == 3

    def test_runtime_inside_tuple(self):
        amount = runtime_erc20_balance_of(TOKEN, HOLDER)

        params = prepare_composable_input_params(["(address,uint256)"], [(RECIPIENT, amount)])

        assert params[0].param_data == encode(["address"], [RECIPIENT])
        assert params[1].fetcher_type == InputParamFetcherType.BALANCE

    def test_runtime_inside_dynamic_array_keeps_offsets(self):
        amount = runtime_erc20_balance_of(TOKEN, HOLDER)

        params = prepare_composable_input_params(["uint256[]"], [[1, amount]])

        # offset word, length word, first item, then the placeholder
        assert params[0].param_data == encode(["uint256", "uint256", "uint256"], [32, 2, 1])
        assert params[1].fetcher_type == InputParamFetcherType.BALANCE

    def test_runtime_value_cannot_replace_string(self):
        with pytest.raises(InstructionError):
            prepare_composable_input_params(["string"], [runtime_erc20_balance_of(TOKEN, HOLDER)])

    def test_argument_count_checked(self):
        with pytest.raises(InstructionError):
            prepare_composable_input_params(["address", "uint256"], [RECIPIENT])


def test_runtime_encode_abi_parameters_as_bytes_argument():
    inner = runtime_encode_abi_parameters(["uint256"], [runtime_erc20_balance_of(TOKEN, HOLDER)])

    params = prepare_composable_input_params(["bytes"], [inner])

    # offset, length (one word), placeholder
    assert params[0].param_data == encode(["uint256", "uint256"], [32, 32])
    assert params[1].fetcher_type == InputParamFetcherType.BALANCE


def test_placeholder_offsets_include_selector():
    amount = runtime_erc20_balance_of(TOKEN, HOLDER)
    call = build_composable_call(TOKEN, "transfer(address,uint256)", [RECIPIENT, amount])

    [(offset, param)] = placeholder_offsets(call.input_params)

    assert offset == 4 + 32
    assert param.fetcher_type == InputParamFetcherType.BALANCE


class TestComposableCalls:
    def test_target_appended_and_zero_value_omitted(self):
        call = build_composable_call(TOKEN, "transfer(address,uint256)", [RECIPIENT, 5])

        assert call.function_sig == "0xa9059cbb"
        assert [p.param_type for p in call.input_params] == [InputParamType.CALL_DATA, InputParamType.TARGET]
        assert call.input_params[-1].param_data == encode(["address"], [TOKEN])

    def test_value_param(self):
        call = build_composable_call(TOKEN, "deposit()", [], value=10)

        assert [p.param_type for p in call.input_params] == [InputParamType.TARGET, InputParamType.VALUE]
        assert call.input_params[-1].param_data == (10).to_bytes(32, "big")

    def test_raw_call_data(self):
        data = "0xa9059cbb" + encode(["address", "uint256"], [RECIPIENT, 5]).hex()

        call = build_raw_composable_call(TOKEN, data)

        assert call.function_sig == "0xa9059cbb"
        assert call.input_params[0].param_data == encode(["address", "uint256"], [RECIPIENT, 5])

    def test_raw_call_data_too_short(self):
        with pytest.raises(InstructionError):
            build_raw_composable_call(TOKEN, "0x1234")
