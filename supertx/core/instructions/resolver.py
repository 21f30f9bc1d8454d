"""
Instruction resolution.

Callers hand over a heterogeneous list: instructions, lists of instructions,
awaitables, or zero-argument callables producing either. All deferred entries
are awaited concurrently and the flattened result keeps input order.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, List, Sequence, Union

from ..errors import InstructionError
from .models import Instruction

InstructionLike = Union[
    Instruction,
    Sequence[Instruction],
    Awaitable[Union[Instruction, Sequence[Instruction], None]],
    Callable[[], Awaitable[Union[Instruction, Sequence[Instruction], None]]],
    None,
]


async def _resolve_one(item: Any) -> Any:
    if callable(item) and not isinstance(item, Instruction):
        item = item()
    if inspect.isawaitable(item):
        return await item
    return item


def _flatten(position: int, resolved: Any) -> List[Instruction]:
    if not resolved:
        return []
    if isinstance(resolved, Instruction):
        return [resolved]
    if isinstance(resolved, (list, tuple)):
        flat = []
        for entry in resolved:
            if not entry:
                continue
            if not isinstance(entry, Instruction):
                raise InstructionError(
                    f"Entry {position} resolved to a non-instruction: {type(entry).__name__}"
                )
            flat.append(entry)
        return flat
    raise InstructionError(f"Entry {position} resolved to a non-instruction: {type(resolved).__name__}")


async def resolve_instructions(items: Sequence[InstructionLike]) -> List[Instruction]:
    results = await asyncio.gather(*(_resolve_one(item) for item in items))

    instructions: List[Instruction] = []
    for position, resolved in enumerate(results):
        instructions.extend(_flatten(position, resolved))
    return instructions
