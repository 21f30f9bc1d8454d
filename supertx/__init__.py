"""
supertx: build, quote, sign, execute and track multichain supertransactions.
"""

from .client import MeeClient
from .core.account import LocalSigner, MultichainAccount
from .core.errors import (
    ConfigurationError,
    ExecutionError,
    InstructionError,
    NodeApiError,
    PermitNotSupportedError,
    PollingTimeoutError,
    RpcError,
    SupertransactionFailedError,
    SupertxError,
)
from .core.instructions import AbstractCall, ComposableCall, Instruction
from .core.quote import CleanUp, CustomTrigger, FeeToken, NoTrigger, TokenTrigger
from .core.tracking import SupertransactionStatus
from .providers import RpcRegistry

__version__ = "0.1.0"

__all__ = [
    "MeeClient",
    "LocalSigner",
    "MultichainAccount",
    "ConfigurationError",
    "ExecutionError",
    "InstructionError",
    "NodeApiError",
    "PermitNotSupportedError",
    "PollingTimeoutError",
    "RpcError",
    "SupertransactionFailedError",
    "SupertxError",
    "AbstractCall",
    "ComposableCall",
    "Instruction",
    "CleanUp",
    "CustomTrigger",
    "FeeToken",
    "NoTrigger",
    "TokenTrigger",
    "SupertransactionStatus",
    "RpcRegistry",
]
