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

"""Workspace-consistency checks for task references.

Every write path that attaches a task to a step, sprint or epic goes through
:class:`ReferentialValidator`, so create and update enforce the same rules.
The checks are reads only; an entity deleted between check and write shows up
as a foreign-key failure from the store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import InvalidArgumentError, NotFoundError
from .models import EpicModel, SprintModel, WorkspaceModel, WorkspaceStepModel
from .orm import AndFilter, ComparisonFilter

if TYPE_CHECKING:
    from .orm import DatabaseEngine

logger = logging.getLogger(__name__)


class ReferentialValidator:
    """Confirms that referenced entities live in the expected workspace."""

    def __init__(self, *, engine: DatabaseEngine) -> None:
        self._engine = engine

    async def require_workspace(self, workspace_id: int) -> WorkspaceModel:
        workspace = await self._engine.get(WorkspaceModel, workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        return workspace

    async def validate_step_in_workspace(self, step_id: int, workspace_id: int) -> None:
        """Require a workspace/step association.

        Raises:
            InvalidArgumentError: If the step is not bound to the workspace
        """
        link = await self._engine.find_first(
            WorkspaceStepModel,
            filters=AndFilter(
                filters=[
                    ComparisonFilter.eq("step_id", step_id),
                    ComparisonFilter.eq("workspace_id", workspace_id),
                ]
            ),
        )
        if link is None:
            raise InvalidArgumentError(f"Step {step_id} does not belong to workspace {workspace_id}")

    async def validate_sprint_in_workspace(self, sprint_id: int, workspace_id: int) -> SprintModel:
        """Require an existing sprint of the same workspace.

        Raises:
            NotFoundError: If the sprint does not exist
            InvalidArgumentError: If the sprint belongs to another workspace
        """
        sprint = await self._engine.get(SprintModel, sprint_id)
        if sprint is None:
            raise NotFoundError(f"Sprint {sprint_id} not found")
        if sprint.workspace_id != workspace_id:
            raise InvalidArgumentError(f"Sprint {sprint_id} belongs to workspace {sprint.workspace_id}, not {workspace_id}")
        return sprint

    async def validate_epic_in_workspace(self, epic_id: int | None, workspace_id: int) -> EpicModel | None:
        """Require an existing epic of the same workspace; ``None`` passes.

        Raises:
            NotFoundError: If the epic does not exist
            InvalidArgumentError: If the epic belongs to another workspace
        """
        if epic_id is None:
            return None
        epic = await self._engine.get(EpicModel, epic_id)
        if epic is None:
            raise NotFoundError(f"Epic {epic_id} not found")
        if epic.workspace_id != workspace_id:
            raise InvalidArgumentError(f"Epic {epic_id} belongs to workspace {epic.workspace_id}, not {workspace_id}")
        return epic

    async def validate_task_references(
        self,
        *,
        workspace_id: int,
        step_id: int,
        sprint_id: int | None,
        epic_id: int | None,
    ) -> None:
        """Run every reference check a task write needs."""
        if sprint_id is not None:
            await self.validate_sprint_in_workspace(sprint_id, workspace_id)
        await self.validate_step_in_workspace(step_id, workspace_id)
        await self.validate_epic_in_workspace(epic_id, workspace_id)

    async def final_step_id(self, workspace_id: int) -> int | None:
        """Return the step with the highest order, or None when the workspace has no steps."""
        links = await self._engine.find_many(
            WorkspaceStepModel,
            filters=ComparisonFilter.eq("workspace_id", workspace_id),
            order_by=("-order", "-id"),
            limit=1,
        )
        if not links:
            return None
        return links[0].step_id
