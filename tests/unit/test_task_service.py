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

"""Unit tests for TaskService."""

import asyncio

import pytest

from sprintboard.tracking import (
    ConflictError,
    EpicService,
    InvalidArgumentError,
    NotFoundError,
    SprintService,
    TaskService,
)
from sprintboard.tracking.models import WorkspaceModel
from sprintboard.tracking.schemas import EpicCreate, SprintCreate, TaskCreate, TaskUpdate
from tests.utils import open_engine, seed_workspace


def _create(workspace_id, step_id, title="Task", **kwargs):
    return TaskCreate(workspace_id=workspace_id, step_id=step_id, title=title, priority_id=1, type_task_id=1, **kwargs)


class TestTaskCreate:
    def test_keys_follow_workspace_counter(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = TaskService(engine=engine, clock=clock)

            first = await service.create(_create(workspace.id, steps[0].id, "First"))
            second = await service.create(_create(workspace.id, steps[0].id, "Second"))

            assert first.id_task == "PRJ-1"
            assert second.id_task == "PRJ-2"
            assert first.status == str(steps[0].id)
            assert first.created_at == clock.now()
            await engine.dispose()

        asyncio.run(run())

    def test_explicit_status_kept(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = TaskService(engine=engine, clock=clock)

            task = await service.create(_create(workspace.id, steps[0].id, status="triage"))
            assert task.status == "triage"
            await engine.dispose()

        asyncio.run(run())

    def test_missing_workspace(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            service = TaskService(engine=engine, clock=clock)
            with pytest.raises(NotFoundError):
                await service.create(_create(404, 1))
            await engine.dispose()

        asyncio.run(run())

    def test_rejected_create_leaves_counter_untouched(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            alpha, alpha_steps = await seed_workspace(engine, prefix="ALP")
            beta, _ = await seed_workspace(engine, prefix="BET")
            foreign_sprint = await SprintService(engine=engine, clock=clock).create(
                SprintCreate(workspace_id=beta.id, name="B1")
            )
            service = TaskService(engine=engine, clock=clock)

            with pytest.raises(InvalidArgumentError):
                await service.create(_create(alpha.id, alpha_steps[0].id, sprint_id=foreign_sprint.id))

            stored = await engine.get(WorkspaceModel, alpha.id)
            assert stored.next_task_seq == 1
            assert await service.list(workspace_id=alpha.id) == []
            await engine.dispose()

        asyncio.run(run())

    def test_step_from_other_workspace(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            alpha, _ = await seed_workspace(engine, prefix="ALP")
            _, beta_steps = await seed_workspace(engine, prefix="BET")
            service = TaskService(engine=engine, clock=clock)
            with pytest.raises(InvalidArgumentError):
                await service.create(_create(alpha.id, beta_steps[0].id))
            await engine.dispose()

        asyncio.run(run())

    def test_concurrent_creates_get_distinct_keys(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = TaskService(engine=engine, clock=clock)

            created = await asyncio.gather(
                *(service.create(_create(workspace.id, steps[0].id, f"T{i}")) for i in range(12))
            )
            keys = sorted(task.id_task for task in created)
            assert keys == sorted(f"PRJ-{n}" for n in range(1, 13))
            await engine.dispose()

        asyncio.run(run())


class TestTaskUpdate:
    def test_update_fields(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = TaskService(engine=engine, clock=clock)
            task = await service.create(_create(workspace.id, steps[0].id, description="old"))

            clock.advance(minutes=5)
            updated = await service.update(task.id, TaskUpdate(title="Renamed", description=None))

            assert updated.title == "Renamed"
            assert updated.description is None
            assert updated.id_task == task.id_task
            assert updated.updated_at == clock.now()
            await engine.dispose()

        asyncio.run(run())

    def test_none_for_required_field_ignored(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            service = TaskService(engine=engine, clock=clock)
            task = await service.create(_create(workspace.id, steps[0].id, "Keep me"))

            updated = await service.update(task.id, TaskUpdate(title=None))
            assert updated.title == "Keep me"
            await engine.dispose()

        asyncio.run(run())

    def test_update_checks_merged_references(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            alpha, alpha_steps = await seed_workspace(engine, prefix="ALP")
            beta, _ = await seed_workspace(engine, prefix="BET")
            foreign_epic = await EpicService(engine=engine, clock=clock).create(
                EpicCreate(workspace_id=beta.id, title="Other")
            )
            service = TaskService(engine=engine, clock=clock)
            task = await service.create(_create(alpha.id, alpha_steps[0].id))

            with pytest.raises(InvalidArgumentError):
                await service.update(task.id, TaskUpdate(epic_id=foreign_epic.id))
            assert (await service.get(task.id)).epic_id is None
            await engine.dispose()

        asyncio.run(run())

    def test_update_missing_task(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            service = TaskService(engine=engine, clock=clock)
            with pytest.raises(NotFoundError):
                await service.update(404, TaskUpdate(title="x"))
            await engine.dispose()

        asyncio.run(run())


class TestTaskMove:
    def test_move_sets_step_and_status(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            sprint = await SprintService(engine=engine, clock=clock).create(
                SprintCreate(workspace_id=workspace.id, name="S1")
            )
            service = TaskService(engine=engine, clock=clock)
            task = await service.create(_create(workspace.id, steps[0].id, sprint_id=sprint.id))

            moved = await service.move(task.id, steps[2].id)
            assert moved.step_id == steps[2].id
            assert moved.status == str(steps[2].id)
            assert moved.sprint_id == sprint.id
            await engine.dispose()

        asyncio.run(run())

    def test_move_to_foreign_step(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            alpha, alpha_steps = await seed_workspace(engine, prefix="ALP")
            _, beta_steps = await seed_workspace(engine, prefix="BET")
            service = TaskService(engine=engine, clock=clock)
            task = await service.create(_create(alpha.id, alpha_steps[0].id))

            with pytest.raises(InvalidArgumentError):
                await service.move(task.id, beta_steps[0].id)
            await engine.dispose()

        asyncio.run(run())

    def test_move_by_keys(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            other, other_steps = await seed_workspace(engine, prefix="PRJ", name="Same prefix")
            service = TaskService(engine=engine, clock=clock)
            first = await service.create(_create(workspace.id, steps[0].id))
            second = await service.create(_create(workspace.id, steps[0].id))
            untouched = await service.create(_create(other.id, other_steps[0].id))

            moved = await service.move_by_keys(
                workspace_id=workspace.id, keys=["prj-1", "PRJ-2", "PRJ-99"], step_id=steps[1].id
            )

            assert moved == 2
            assert (await service.get(first.id)).step_id == steps[1].id
            assert (await service.get(second.id)).status == str(steps[1].id)
            assert (await service.get(untouched.id)).step_id == other_steps[0].id
            assert await service.move_by_keys(workspace_id=workspace.id, keys=[], step_id=steps[1].id) == 0
            await engine.dispose()

        asyncio.run(run())


class TestTaskQueriesAndDelete:
    def test_list_filters(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            sprint = await SprintService(engine=engine, clock=clock).create(
                SprintCreate(workspace_id=workspace.id, name="S1")
            )
            service = TaskService(engine=engine, clock=clock)
            planned = await service.create(_create(workspace.id, steps[0].id, sprint_id=sprint.id))
            backlog = await service.create(_create(workspace.id, steps[1].id))

            assert [t.id for t in await service.list(workspace_id=workspace.id)] == [backlog.id, planned.id]
            assert [t.id for t in await service.list(sprint_id=sprint.id)] == [planned.id]
            assert [t.id for t in await service.list(workspace_id=workspace.id, backlog_only=True)] == [backlog.id]
            assert [t.id for t in await service.list(step_id=steps[1].id)] == [backlog.id]
            assert (await service.get_by_key(workspace.id, "prj-1")).id == planned.id
            await engine.dispose()

        asyncio.run(run())

    def test_delete_blocked_by_epic(self, tmp_path, clock):
        async def run():
            engine = await open_engine(tmp_path)
            workspace, steps = await seed_workspace(engine)
            epic = await EpicService(engine=engine, clock=clock).create(EpicCreate(workspace_id=workspace.id, title="E"))
            service = TaskService(engine=engine, clock=clock)
            free = await service.create(_create(workspace.id, steps[0].id))
            linked = await service.create(_create(workspace.id, steps[0].id, epic_id=epic.id))

            with pytest.raises(ConflictError, match="PRJ-2"):
                await service.delete_many([free.id, linked.id])
            assert len(await service.list(workspace_id=workspace.id)) == 2

            assert await service.delete_many([free.id]) == 1
            with pytest.raises(NotFoundError):
                await service.get(free.id)
            await engine.dispose()

        asyncio.run(run())
