"""
Instruction batching and trigger partitioning.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..errors import ConfigurationError
from .composable import to_composable_call
from .models import Call, Instruction
from .resolver import InstructionLike, resolve_instructions

logger = logging.getLogger(__name__)


def merge_instructions(instructions: Sequence[Instruction]) -> Instruction:
    """
    Concatenate the calls of same-chain instructions into one instruction.

    If any of them is composable, plain calls are re-expressed as composable calls.
    """
    if not instructions:
        raise ConfigurationError("Cannot merge an empty list of instructions")

    chain_id = instructions[0].chain_id
    for index, instruction in enumerate(instructions):
        if instruction.chain_id != chain_id:
            raise ConfigurationError(
                f"Cannot batch instructions across chains ({chain_id} and {instruction.chain_id})",
                chain_id=instruction.chain_id,
                op_index=index,
            )

    composable = any(i.is_composable for i in instructions)
    calls: List[Call] = []
    for instruction in instructions:
        if composable:
            calls.extend(to_composable_call(call) for call in instruction.calls)
        else:
            calls.extend(instruction.calls)
    return Instruction(calls=calls, chain_id=chain_id, is_composable=composable)


async def batch_instructions(instructions: Sequence[InstructionLike]) -> List[Instruction]:
    """
    Collapse every run of consecutive same-chain instructions into one.

    Runs of length one pass through untouched; same-chain instructions that are
    not adjacent are never merged.
    """
    resolved = await resolve_instructions(instructions)

    batched: List[Instruction] = []
    run: List[Instruction] = []
    for instruction in resolved:
        if run and run[-1].chain_id != instruction.chain_id:
            batched.append(run[0] if len(run) == 1 else merge_instructions(run))
            run = []
        run.append(instruction)
    if run:
        batched.append(run[0] if len(run) == 1 else merge_instructions(run))

    logger.debug(f"Batched {len(resolved)} instructions into {len(batched)}")
    return batched


async def partition_instructions(
    trigger: InstructionLike,
    instructions: Sequence[InstructionLike],
) -> List[Instruction]:
    """
    Fold the funding trigger together with the same-chain work that follows it.

    The maximal prefix of [trigger, *instructions] on the trigger's chain becomes
    one instruction; the remainder is returned as resolved.
    """
    resolved = await resolve_instructions([trigger, *instructions])
    if not resolved:
        return resolved

    chain_id = resolved[0].chain_id
    prefix_length = 0
    for instruction in resolved:
        if instruction.chain_id != chain_id:
            break
        prefix_length += 1

    if prefix_length <= 1:
        return resolved
    return [merge_instructions(resolved[:prefix_length]), *resolved[prefix_length:]]
