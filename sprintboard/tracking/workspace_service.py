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

"""Workspace service.

A workspace owns the display-key prefix and the ordered set of steps its
board uses. The highest-ordered step is the final step that sprint close
leaves behind.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .clock import Clock, SystemClock
from .errors import ConflictError, InvalidArgumentError, NotFoundError
from .models import EpicModel, SprintModel, StepModel, TaskModel, WorkspaceModel, WorkspaceStepModel
from .orm import ComparisonFilter
from .schemas import PREFIX_PATTERN, StepOrder, WorkspaceCreate, WorkspaceUpdate

if TYPE_CHECKING:
    from .orm import DatabaseEngine, Transaction

logger = logging.getLogger(__name__)


def normalize_prefix(prefix: str) -> str:
    """Validate a display-key prefix and return it upper-cased.

    Raises:
        InvalidArgumentError: If the prefix is not 1-5 ASCII letters
    """
    if not PREFIX_PATTERN.fullmatch(prefix):
        raise InvalidArgumentError(f"Prefix must be 1-5 letters: {prefix!r}")
    return prefix.upper()


def _check_step_orders(steps: list[StepOrder]) -> None:
    step_ids = [step.step_id for step in steps]
    if len(set(step_ids)) != len(step_ids):
        raise InvalidArgumentError("Each step may appear only once in a workspace")
    orders = [step.order for step in steps]
    if len(set(orders)) != len(orders):
        raise InvalidArgumentError("Step orders must be unique within a workspace")


class WorkspaceService:
    """Workspace CRUD with ordered step bindings."""

    def __init__(self, *, engine: DatabaseEngine, clock: Clock | None = None) -> None:
        self._engine = engine
        self._clock = clock or SystemClock()

    async def _require_steps(self, tx: Transaction, steps: list[StepOrder]) -> None:
        if not steps:
            return
        wanted = [step.step_id for step in steps]
        found = await tx.find_many(StepModel, filters=ComparisonFilter.in_("id", wanted))
        missing = sorted(set(wanted) - {step.id for step in found})
        if missing:
            raise NotFoundError(f"Steps not found: {missing}")

    async def _write_steps(self, tx: Transaction, workspace: WorkspaceModel, steps: list[StepOrder]) -> None:
        if not steps:
            return
        await tx.create_many(
            [WorkspaceStepModel(workspace_id=workspace.id, step_id=step.step_id, order=step.order) for step in steps]
        )

    async def get(self, workspace_id: int) -> WorkspaceModel:
        workspace = await self._engine.get(WorkspaceModel, workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        return workspace

    async def get_steps(self, workspace_id: int) -> list[WorkspaceStepModel]:
        """Return the workspace's step bindings in board order."""
        await self.get(workspace_id)
        return await self._engine.find_many(
            WorkspaceStepModel,
            filters=ComparisonFilter.eq("workspace_id", workspace_id),
            order_by=("order", "id"),
        )

    async def list(self) -> list[WorkspaceModel]:
        return await self._engine.find_many(WorkspaceModel, order_by=("name", "id"))

    async def create(self, data: WorkspaceCreate) -> WorkspaceModel:
        """Create a workspace and bind its steps.

        Raises:
            InvalidArgumentError: Bad prefix, or repeated step ids or orders
            NotFoundError: If a step does not exist
        """
        prefix = normalize_prefix(data.prefix)
        _check_step_orders(data.steps)

        now = self._clock.now()
        async with self._engine.transaction() as tx:
            await self._require_steps(tx, data.steps)
            workspace = WorkspaceModel(
                name=data.name,
                prefix=prefix,
                methodology=data.methodology,
                team_id=data.team_id,
                created_at=now,
                updated_at=now,
            )
            await tx.create(workspace)
            await self._write_steps(tx, workspace, data.steps)

        logger.info(f"Workspace created: {workspace.prefix} (id={workspace.id}) steps={len(data.steps)}")
        return workspace

    async def update(self, workspace_id: int, patch: WorkspaceUpdate) -> WorkspaceModel:
        """Edit a workspace; a new step list replaces the old bindings.

        A changed prefix applies to keys allocated afterwards only.

        Raises:
            NotFoundError: If the workspace or a step does not exist
            InvalidArgumentError: Bad prefix, or repeated step ids or orders
        """
        await self.get(workspace_id)

        values: dict[str, Any] = {}
        for name in ("name", "methodology", "team_id"):
            if name in patch.model_fields_set:
                value = getattr(patch, name)
                if value is None and name != "team_id":
                    continue
                values[name] = value
        if patch.prefix is not None:
            values["prefix"] = normalize_prefix(patch.prefix)
        if patch.steps is not None:
            _check_step_orders(patch.steps)
        values["updated_at"] = self._clock.now()

        async with self._engine.transaction() as tx:
            # 1. Row update
            await tx.update_many(WorkspaceModel, filters=ComparisonFilter.eq("id", workspace_id), values=values)

            updated = await tx.get(WorkspaceModel, workspace_id)
            if updated is None:
                raise NotFoundError(f"Workspace {workspace_id} not found")

            # 2. Replace step bindings
            if patch.steps is not None:
                await self._require_steps(tx, patch.steps)
                await tx.delete(WorkspaceStepModel, filters=ComparisonFilter.eq("workspace_id", workspace_id))
                await self._write_steps(tx, updated, patch.steps)

        logger.info(f"Workspace updated: {updated.prefix} (id={workspace_id}) fields={sorted(values)}")
        return updated

    async def delete_many(self, ids: list[int]) -> int:
        """Delete empty workspaces together with their step bindings.

        Raises:
            ConflictError: If tasks, epics or sprints still reference a selected workspace
        """
        if not ids:
            return 0
        owned = ComparisonFilter.in_("workspace_id", list(ids))

        async with self._engine.transaction() as tx:
            for model_class, label in ((TaskModel, "tasks"), (EpicModel, "epics"), (SprintModel, "sprints")):
                if await tx.count(model_class, filters=owned):
                    raise ConflictError(f"Cannot delete: workspace still has {label}")
            await tx.delete(WorkspaceStepModel, filters=owned)
            deleted = await tx.delete(WorkspaceModel, filters=ComparisonFilter.in_("id", list(ids)))

        logger.info(f"Workspaces deleted: {deleted} of {len(ids)} requested")
        return deleted
