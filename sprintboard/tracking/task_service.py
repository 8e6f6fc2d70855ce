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

"""Task service.

Creates tasks with workspace-scoped display keys and keeps their step,
sprint and epic references inside the task's workspace.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .clock import Clock, SystemClock
from .errors import ConflictError, NotFoundError
from .models import KeyKind, TaskModel
from .orm import AndFilter, ComparisonFilter, NotFilter
from .referential_validator import ReferentialValidator
from .schemas import TaskCreate, TaskUpdate
from .sequence_allocator import SequenceAllocator

if TYPE_CHECKING:
    from .orm import DatabaseEngine

logger = logging.getLogger(__name__)

# Columns that cannot be cleared; an explicit None for them is ignored.
_NON_NULLABLE_FIELDS = frozenset({"title", "step_id", "priority_id", "type_task_id", "status"})


class TaskService:
    """Task create/update/move/delete with referential checks."""

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        clock: Clock | None = None,
        validator: ReferentialValidator | None = None,
        allocator: SequenceAllocator | None = None,
    ) -> None:
        self._engine = engine
        self._clock = clock or SystemClock()
        self._validator = validator or ReferentialValidator(engine=engine)
        self._allocator = allocator or SequenceAllocator(engine=engine)

    async def get(self, task_id: int) -> TaskModel:
        task = await self._engine.get(TaskModel, task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def get_by_key(self, workspace_id: int, id_task: str) -> TaskModel:
        task = await self._engine.find_first(
            TaskModel,
            filters=AndFilter(
                filters=[
                    ComparisonFilter.eq("workspace_id", workspace_id),
                    ComparisonFilter.eq("id_task", id_task.upper()),
                ]
            ),
        )
        if task is None:
            raise NotFoundError(f"Task {id_task} not found in workspace {workspace_id}")
        return task

    async def list(
        self,
        *,
        workspace_id: int | None = None,
        step_id: int | None = None,
        sprint_id: int | None = None,
        backlog_only: bool = False,
    ) -> list[TaskModel]:
        """List tasks, newest first. ``backlog_only`` selects tasks without a sprint."""
        filters = []
        if workspace_id is not None:
            filters.append(ComparisonFilter.eq("workspace_id", workspace_id))
        if step_id is not None:
            filters.append(ComparisonFilter.eq("step_id", step_id))
        if backlog_only:
            filters.append(ComparisonFilter.is_null("sprint_id"))
        elif sprint_id is not None:
            filters.append(ComparisonFilter.eq("sprint_id", sprint_id))
        return await self._engine.find_many(
            TaskModel,
            filters=AndFilter(filters=filters) if filters else None,
            order_by="-id",
        )

    async def create(self, data: TaskCreate) -> TaskModel:
        """Create a task and assign its display key.

        Key allocation and insert share one transaction: if the insert fails
        the workspace counter is not advanced.

        Raises:
            NotFoundError: If the workspace, sprint or epic does not exist
            InvalidArgumentError: If step, sprint or epic belong to another workspace
        """
        await self._validator.require_workspace(data.workspace_id)
        await self._validator.validate_task_references(
            workspace_id=data.workspace_id,
            step_id=data.step_id,
            sprint_id=data.sprint_id,
            epic_id=data.epic_id,
        )

        now = self._clock.now()
        async with self._engine.transaction() as tx:
            allocated = await self._allocator.allocate_key(tx, data.workspace_id, KeyKind.TASK)
            task = TaskModel(
                id_task=allocated.key,
                title=data.title,
                description=data.description,
                estimate=data.estimate,
                start_date=data.start_date,
                deadline=data.deadline,
                status=data.status or str(data.step_id),
                workspace_id=data.workspace_id,
                step_id=data.step_id,
                sprint_id=data.sprint_id,
                epic_id=data.epic_id,
                priority_id=data.priority_id,
                type_task_id=data.type_task_id,
                reporter_id=data.reporter_id,
                assignee_id=data.assignee_id,
                user_id=data.user_id,
                created_at=now,
                updated_at=now,
            )
            await tx.create(task)

        logger.info(f"Task created: {task.id_task} (id={task.id}) workspace={task.workspace_id}")
        return task

    async def update(self, task_id: int, patch: TaskUpdate) -> TaskModel:
        """Apply an edit after checking the resulting references.

        Raises:
            NotFoundError: If the task, sprint or epic does not exist
            InvalidArgumentError: If step, sprint or epic belong to another workspace
        """
        current = await self.get(task_id)

        values: dict[str, Any] = {}
        for name in patch.model_fields_set:
            value = getattr(patch, name)
            if value is None and name in _NON_NULLABLE_FIELDS:
                continue
            values[name] = value

        await self._validator.validate_task_references(
            workspace_id=current.workspace_id,
            step_id=values.get("step_id", current.step_id),
            sprint_id=values.get("sprint_id", current.sprint_id),
            epic_id=values.get("epic_id", current.epic_id),
        )

        if not values:
            return current

        values["updated_at"] = self._clock.now()
        async with self._engine.transaction() as tx:
            await tx.update_many(TaskModel, filters=ComparisonFilter.eq("id", task_id), values=values)
            updated = await tx.get(TaskModel, task_id)
            if updated is None:
                raise NotFoundError(f"Task {task_id} not found")

        logger.info(f"Task updated: {updated.id_task} fields={sorted(values)}")
        return updated

    async def move(self, task_id: int, step_id: int) -> TaskModel:
        """Move a task to another step of its workspace; the sprint is left alone."""
        task = await self.get(task_id)
        await self._validator.validate_step_in_workspace(step_id, task.workspace_id)

        async with self._engine.transaction() as tx:
            await tx.update_many(
                TaskModel,
                filters=ComparisonFilter.eq("id", task_id),
                values={"step_id": step_id, "status": str(step_id), "updated_at": self._clock.now()},
            )
            moved = await tx.get(TaskModel, task_id)
            if moved is None:
                raise NotFoundError(f"Task {task_id} not found")

        logger.info(f"Task moved: {moved.id_task} step={step_id}")
        return moved

    async def move_by_keys(self, *, workspace_id: int, keys: list[str], step_id: int) -> int:
        """Move every task of the workspace whose display key is in ``keys``.

        Unknown keys are ignored.

        Returns:
            Number of tasks moved
        """
        if not keys:
            return 0
        await self._validator.validate_step_in_workspace(step_id, workspace_id)

        moved = await self._engine.update_many(
            TaskModel,
            filters=AndFilter(
                filters=[
                    ComparisonFilter.eq("workspace_id", workspace_id),
                    ComparisonFilter.in_("id_task", [key.upper() for key in keys]),
                ]
            ),
            values={"step_id": step_id, "status": str(step_id), "updated_at": self._clock.now()},
        )
        logger.info(f"Tasks moved by key: {moved} of {len(keys)} keys -> step {step_id} workspace={workspace_id}")
        return moved

    async def delete_many(self, ids: list[int]) -> int:
        """Delete tasks unless any of them is still linked to an epic.

        Raises:
            ConflictError: If a task has an epic; nothing is deleted
        """
        if not ids:
            return 0
        selected = ComparisonFilter.in_("id", list(ids))
        linked = AndFilter(filters=[selected, NotFilter(filter=ComparisonFilter.is_null("epic_id"))])

        async with self._engine.transaction() as tx:
            blocked = await tx.find_many(TaskModel, filters=linked, order_by="id")
            if blocked:
                keys = ", ".join(task.id_task for task in blocked)
                raise ConflictError(f"Cannot delete: {keys} linked to an epic")
            deleted = await tx.delete(TaskModel, filters=selected)

        logger.info(f"Tasks deleted: {deleted} of {len(ids)} requested")
        return deleted
