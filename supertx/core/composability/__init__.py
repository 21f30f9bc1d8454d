"""
Runtime Value Encoder

Builds call data containing execution-time placeholders with numeric constraints.

Usage:
    from supertx.core.composability import (
        runtime_erc20_balance_of,
        greater_than_or_equal_to,
    )
    from supertx.core.instructions.composable import build_composable_call

    amount = runtime_erc20_balance_of(usdc, account, [greater_than_or_equal_to(1)])
    call = build_composable_call(usdc, "transfer(address,uint256)", [recipient, amount])
"""

from .models import (
    Constraint,
    ConstraintType,
    InputParam,
    InputParamFetcherType,
    InputParamType,
    OutputParam,
    OutputParamFetcherType,
    RuntimeValue,
)
from .runtime_values import (
    ReadRegistry,
    RuntimeSource,
    account_nonce,
    build_default_read_registry,
    custom_static_call,
    equal_to,
    erc20_allowance,
    erc20_balance,
    greater_than_or_equal_to,
    less_than_or_equal_to,
    native_balance,
    runtime_erc20_allowance_of,
    runtime_erc20_balance_of,
    runtime_native_balance_of,
    runtime_nonce_of,
    runtime_param_via_custom_static_call,
    runtime_value_of,
)
from .encoding import (
    placeholder_offsets,
    prepare_composable_input_params,
    runtime_encode_abi_parameters,
)

__all__ = [
    "Constraint",
    "ConstraintType",
    "InputParam",
    "InputParamFetcherType",
    "InputParamType",
    "OutputParam",
    "OutputParamFetcherType",
    "RuntimeValue",
    "ReadRegistry",
    "RuntimeSource",
    "account_nonce",
    "build_default_read_registry",
    "custom_static_call",
    "equal_to",
    "erc20_allowance",
    "erc20_balance",
    "greater_than_or_equal_to",
    "less_than_or_equal_to",
    "native_balance",
    "runtime_erc20_allowance_of",
    "runtime_erc20_balance_of",
    "runtime_native_balance_of",
    "runtime_nonce_of",
    "runtime_param_via_custom_static_call",
    "runtime_value_of",
    "placeholder_offsets",
    "prepare_composable_input_params",
    "runtime_encode_abi_parameters",
]
