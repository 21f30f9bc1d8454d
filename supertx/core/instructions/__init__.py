"""
Instructions: models, resolution, batching/partitioning and builders.

Usage:
    from supertx.core.instructions import batch_instructions, partition_instructions

    batched = await batch_instructions([first, [second, third], fetch_more])
    combined = await partition_instructions(trigger_instruction, batched)
"""

from .models import AbstractCall, Call, ComposableCall, Instruction
from .composable import build_composable_call, build_raw_composable_call, to_composable_call
from .resolver import InstructionLike, resolve_instructions
from .batching import batch_instructions, merge_instructions, partition_instructions
from .bridging import (
    BridgingMode,
    BridgingPlugin,
    BridgingPluginResult,
    ChainBalance,
    FeeData,
    MultichainToken,
    UnifiedBalance,
    build_bridge_instructions,
    get_unified_erc20_balance,
)
from .builders import InstructionBuilder

__all__ = [
    "AbstractCall",
    "Call",
    "ComposableCall",
    "Instruction",
    "build_composable_call",
    "build_raw_composable_call",
    "to_composable_call",
    "InstructionLike",
    "resolve_instructions",
    "batch_instructions",
    "merge_instructions",
    "partition_instructions",
    "BridgingMode",
    "BridgingPlugin",
    "BridgingPluginResult",
    "ChainBalance",
    "FeeData",
    "MultichainToken",
    "UnifiedBalance",
    "build_bridge_instructions",
    "get_unified_erc20_balance",
    "InstructionBuilder",
]
