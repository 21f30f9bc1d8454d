"""
Tests for instruction resolution, batching and trigger partitioning.
"""

import asyncio

import pytest

from supertx.core.errors import ConfigurationError, InstructionError
from supertx.core.instructions import (
    AbstractCall,
    ComposableCall,
    Instruction,
    batch_instructions,
    build_composable_call,
    merge_instructions,
    partition_instructions,
    resolve_instructions,
)

TARGET = "0x1111111111111111111111111111111111111111"


def instruction(chain_id: int, calls: int = 1) -> Instruction:
    return Instruction(
        calls=[AbstractCall(to=TARGET, value=index + 1) for index in range(calls)],
        chain_id=chain_id,
    )


class TestResolve:
    @pytest.mark.asyncio
    async def test_flattens_mixed_inputs_in_order(self):
        a, b, c, d = instruction(1), instruction(2), instruction(3), instruction(4)

        async def deferred():
            return [c, d]

        resolved = await resolve_instructions([a, [b], deferred, None])

        assert resolved == [a, b, c, d]

    @pytest.mark.asyncio
    async def test_awaitable_entry(self):
        a = instruction(1)

        async def produce():
            return a

        assert await resolve_instructions([produce()]) == [a]

    @pytest.mark.asyncio
    async def test_deferred_entries_run_concurrently_in_input_order(self):
        slow, fast = instruction(1), instruction(2)
        fast_done = asyncio.Event()
        finished = []

        async def produce_slow():
            # only completes if the second producer runs while this one waits
            await fast_done.wait()
            await asyncio.sleep(0.05)
            finished.append("slow")
            return slow

        async def produce_fast():
            await asyncio.sleep(0.05)
            finished.append("fast")
            fast_done.set()
            return fast

        loop = asyncio.get_running_loop()
        started = loop.time()
        resolved = await asyncio.wait_for(resolve_instructions([produce_slow, produce_fast]), timeout=1)
        elapsed = loop.time() - started

        assert resolved == [slow, fast]
        assert finished == ["fast", "slow"]
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_non_instruction_rejected(self):
        with pytest.raises(InstructionError, match="Entry 1"):
            await resolve_instructions([instruction(1), ["nope"]])


class TestBatch:
    @pytest.mark.asyncio
    async def test_adjacent_same_chain_merge(self):
        batched = await batch_instructions([instruction(1, 2), instruction(1, 3)])

        assert len(batched) == 1
        assert len(batched[0].calls) == 5

    @pytest.mark.asyncio
    async def test_non_adjacent_runs_stay_separate(self):
        batched = await batch_instructions(
            [instruction(1), instruction(1), instruction(2), instruction(1), instruction(1)]
        )

        assert [i.chain_id for i in batched] == [1, 2, 1]
        assert [len(i.calls) for i in batched] == [2, 1, 2]

    @pytest.mark.asyncio
    async def test_never_grows(self):
        inputs = [instruction(1), instruction(2), instruction(3)]

        assert len(await batch_instructions(inputs)) <= len(inputs)

    def test_merge_across_chains_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            merge_instructions([instruction(1), instruction(2)])

        assert exc_info.value.op_index == 1

    def test_merge_mixed_becomes_composable(self):
        composable = Instruction(
            calls=[build_composable_call(TARGET, "transfer(address,uint256)", [TARGET, 1])],
            chain_id=1,
        )

        merged = merge_instructions([instruction(1), composable])

        assert merged.is_composable
        assert all(isinstance(call, ComposableCall) for call in merged.calls)


class TestPartition:
    @pytest.mark.asyncio
    async def test_trigger_prefix_is_folded(self):
        trigger = instruction(1)
        rest = [instruction(1, 2), instruction(1), instruction(2), instruction(1)]

        partitioned = await partition_instructions(trigger, rest)

        # K = 3 leading entries on the trigger chain
        assert len(partitioned) == 5 - 3 + 1
        assert len(partitioned[0].calls) == 1 + 2 + 1
        assert [i.chain_id for i in partitioned] == [1, 2, 1]

    @pytest.mark.asyncio
    async def test_trigger_alone_when_next_is_other_chain(self):
        trigger = instruction(1)
        rest = [instruction(2)]

        partitioned = await partition_instructions(trigger, rest)

        assert partitioned == [trigger, rest[0]]
