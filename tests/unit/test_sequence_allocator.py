# Copyright (c) Nex-AGI. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Unit tests for display key allocation."""

import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st
from sqlalchemy.exc import IntegrityError

from sprintboard.tracking import KeyKind, NotFoundError, SequenceAllocator, extract_task_keys, format_display_key
from sprintboard.tracking.models import TaskModel, WorkspaceModel
from tests.utils import open_engine, seed_workspace


class TestFormatDisplayKey:
    def test_task_key(self):
        assert format_display_key("PRJ", 1, KeyKind.TASK) == "PRJ-1"

    def test_epic_key(self):
        assert format_display_key("PRJ", 3, KeyKind.EPIC) == "PRJ-E3"

    @given(
        prefix=st.from_regex(r"[A-Z]{1,5}", fullmatch=True),
        sequence=st.integers(min_value=1, max_value=10**9),
    )
    def test_task_keys_are_found_again_in_text(self, prefix, sequence):
        key = format_display_key(prefix, sequence, KeyKind.TASK)
        assert extract_task_keys(f"closes {key.lower()}.") == [key]


class TestExtractTaskKeys:
    def test_case_insensitive_and_deduplicated(self):
        assert extract_task_keys("fix prj-12 and PRJ-3, see prj-12") == ["PRJ-12", "PRJ-3"]

    def test_empty_and_none(self):
        assert extract_task_keys("") == []
        assert extract_task_keys(None) == []

    def test_epic_keys_and_long_prefixes_ignored(self):
        assert extract_task_keys("PRJ-E3 TOOLONG-1 OK-7") == ["OK-7"]


class TestSequenceAllocator:
    def test_allocations_are_consecutive_per_kind(self, tmp_path):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, _ = await seed_workspace(engine)
            allocator = SequenceAllocator(engine=engine)

            first = await allocator.allocate(workspace.id, KeyKind.TASK)
            second = await allocator.allocate(workspace.id, KeyKind.TASK)
            epic = await allocator.allocate(workspace.id, KeyKind.EPIC)

            assert (first.sequence, first.key) == (1, "PRJ-1")
            assert (second.sequence, second.key) == (2, "PRJ-2")
            assert (epic.sequence, epic.key) == (1, "PRJ-E1")

            stored = await engine.get(WorkspaceModel, workspace.id)
            assert stored.next_task_seq == 3
            assert stored.next_epic_seq == 2
            await engine.dispose()

        asyncio.run(run())

    def test_workspaces_have_independent_counters(self, tmp_path):
        async def run():
            engine = await open_engine(tmp_path)
            alpha, _ = await seed_workspace(engine, prefix="ALP")
            beta, _ = await seed_workspace(engine, prefix="BET")
            allocator = SequenceAllocator(engine=engine)

            await allocator.allocate(alpha.id, KeyKind.TASK)
            await allocator.allocate(alpha.id, KeyKind.TASK)
            beta_key = await allocator.allocate(beta.id, KeyKind.TASK)

            assert beta_key.key == "BET-1"
            await engine.dispose()

        asyncio.run(run())

    def test_missing_workspace(self, tmp_path):
        async def run():
            engine = await open_engine(tmp_path)
            allocator = SequenceAllocator(engine=engine)
            with pytest.raises(NotFoundError):
                await allocator.allocate(404, KeyKind.TASK)
            await engine.dispose()

        asyncio.run(run())

    def test_concurrent_allocations_are_unique(self, tmp_path):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, _ = await seed_workspace(engine)
            allocator = SequenceAllocator(engine=engine)

            results = await asyncio.gather(*(allocator.allocate(workspace.id, KeyKind.TASK) for _ in range(20)))

            assert sorted(r.sequence for r in results) == list(range(1, 21))
            assert len({r.key for r in results}) == 20
            stored = await engine.get(WorkspaceModel, workspace.id)
            assert stored.next_task_seq == 21
            await engine.dispose()

        asyncio.run(run())

    def test_failed_insert_does_not_consume_number(self, tmp_path):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            allocator = SequenceAllocator(engine=engine)

            # Occupy the key the next allocation will produce.
            await engine.create(
                TaskModel(
                    id_task="PRJ-1",
                    title="imported",
                    workspace_id=workspace.id,
                    step_id=steps[0].id,
                    priority_id=1,
                    type_task_id=1,
                )
            )

            with pytest.raises(IntegrityError):
                async with engine.transaction() as tx:
                    allocated = await allocator.allocate_key(tx, workspace.id, KeyKind.TASK)
                    await tx.create(
                        TaskModel(
                            id_task=allocated.key,
                            title="duplicate",
                            workspace_id=workspace.id,
                            step_id=steps[0].id,
                            priority_id=1,
                            type_task_id=1,
                        )
                    )

            stored = await engine.get(WorkspaceModel, workspace.id)
            assert stored.next_task_seq == 1
            await engine.dispose()

        asyncio.run(run())
