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

"""Unit tests for WorkspaceService."""

import asyncio

import pytest

from sprintboard.tracking import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    SprintService,
    TaskService,
    WorkspaceService,
)
from sprintboard.tracking.schemas import SprintCreate, StepOrder, TaskCreate, WorkspaceCreate, WorkspaceUpdate
from sprintboard.tracking.workspace_service import normalize_prefix
from tests.utils import open_engine, seed_steps, seed_workspace


class TestNormalizePrefix:
    def test_upper_cases(self):
        assert normalize_prefix("prj") == "PRJ"

    @pytest.mark.parametrize("prefix", ["", "TOOLONG", "PR1", "P-J", "ÄB", "ABC\n", "abc\n", " ABC"])
    def test_rejects_invalid(self, prefix):
        with pytest.raises(InvalidArgumentError):
            normalize_prefix(prefix)


class TestWorkspaceCreate:
    def test_create_with_ordered_steps(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            steps = await seed_steps(engine)
            service = WorkspaceService(engine=engine, clock=clock)

            workspace = await service.create(
                WorkspaceCreate(
                    name="Project",
                    prefix="prj",
                    methodology="scrum",
                    steps=[
                        StepOrder(step_id=steps[2].id, order=30),
                        StepOrder(step_id=steps[0].id, order=10),
                        StepOrder(step_id=steps[1].id, order=20),
                    ],
                )
            )

            assert workspace.prefix == "PRJ"
            assert (workspace.next_task_seq, workspace.next_epic_seq) == (1, 1)
            bound = await service.get_steps(workspace.id)
            assert [link.step_id for link in bound] == [steps[0].id, steps[1].id, steps[2].id]
            await engine.dispose()

        asyncio.run(run())

    def test_duplicate_steps_or_orders(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            steps = await seed_steps(engine)
            service = WorkspaceService(engine=engine, clock=clock)

            with pytest.raises(InvalidArgumentError, match="only once"):
                await service.create(
                    WorkspaceCreate(
                        name="P",
                        prefix="P",
                        steps=[StepOrder(step_id=steps[0].id, order=1), StepOrder(step_id=steps[0].id, order=2)],
                    )
                )
            with pytest.raises(InvalidArgumentError, match="orders must be unique"):
                await service.create(
                    WorkspaceCreate(
                        name="P",
                        prefix="P",
                        steps=[StepOrder(step_id=steps[0].id, order=1), StepOrder(step_id=steps[1].id, order=1)],
                    )
                )
            assert await service.list() == []
            await engine.dispose()

        asyncio.run(run())

    def test_prefix_with_trailing_newline_is_rejected(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            service = WorkspaceService(engine=engine, clock=clock)
            with pytest.raises(InvalidArgumentError, match="Prefix"):
                await service.create(WorkspaceCreate(name="P", prefix="abc\n"))
            assert await service.list() == []
            await engine.dispose()

        asyncio.run(run())

    def test_unknown_step(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            service = WorkspaceService(engine=engine, clock=clock)
            with pytest.raises(NotFoundError, match="404"):
                await service.create(WorkspaceCreate(name="P", prefix="P", steps=[StepOrder(step_id=404, order=1)]))
            assert await service.list() == []
            await engine.dispose()

        asyncio.run(run())


class TestWorkspaceUpdate:
    def test_replace_steps_and_prefix(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = WorkspaceService(engine=engine, clock=clock)

            updated = await service.update(
                workspace.id,
                WorkspaceUpdate(prefix="new", steps=[StepOrder(step_id=steps[1].id, order=1)]),
            )

            assert updated.prefix == "NEW"
            assert updated.name == workspace.name
            assert [link.step_id for link in await service.get_steps(workspace.id)] == [steps[1].id]
            await engine.dispose()

        asyncio.run(run())

    def test_failed_step_replacement_rolls_back(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = WorkspaceService(engine=engine, clock=clock)

            with pytest.raises(NotFoundError):
                await service.update(
                    workspace.id,
                    WorkspaceUpdate(name="Renamed", steps=[StepOrder(step_id=404, order=1)]),
                )

            assert (await service.get(workspace.id)).name == workspace.name
            assert len(await service.get_steps(workspace.id)) == len(steps)
            await engine.dispose()

        asyncio.run(run())

    def test_counters_survive_update(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            await TaskService(engine=engine, clock=clock).create(
                TaskCreate(workspace_id=workspace.id, step_id=steps[0].id, title="T", priority_id=1, type_task_id=1)
            )
            service = WorkspaceService(engine=engine, clock=clock)

            updated = await service.update(workspace.id, WorkspaceUpdate(name="Renamed"))
            assert updated.next_task_seq == 2
            await engine.dispose()

        asyncio.run(run())

    def test_update_missing(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            service = WorkspaceService(engine=engine, clock=clock)
            with pytest.raises(NotFoundError):
                await service.update(404, WorkspaceUpdate(name="x"))
            await engine.dispose()

        asyncio.run(run())


class TestWorkspaceDelete:
    def test_delete_blocked_by_sprint(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, _ = await seed_workspace(engine)
            await SprintService(engine=engine, clock=clock).create(SprintCreate(workspace_id=workspace.id, name="S"))
            service = WorkspaceService(engine=engine, clock=clock)

            with pytest.raises(ConflictError, match="sprints"):
                await service.delete_many([workspace.id])
            await engine.dispose()

        asyncio.run(run())

    def test_delete_empty_workspace(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, _ = await seed_workspace(engine)
            service = WorkspaceService(engine=engine, clock=clock)

            assert await service.delete_many([workspace.id]) == 1
            with pytest.raises(NotFoundError):
                await service.get(workspace.id)
            await engine.dispose()

        asyncio.run(run())
