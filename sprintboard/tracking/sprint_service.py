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

"""Sprint lifecycle service.

Drives create/activate/update/close and owns every write to
``activated_at`` and ``closed_at``. Closing a sprint migrates its unfinished
tasks (all tasks not in the workspace's final step) to the backlog or to
another open sprint with one bulk statement, in the same transaction as the
sprint update. A second, concurrent close finds nothing left to move.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .clock import Clock, SystemClock
from .errors import InvalidArgumentError, InvalidStateError, NotFoundError
from .models import SprintModel, TaskModel
from .orm import AndFilter, ComparisonFilter, all_of
from .referential_validator import ReferentialValidator
from .schemas import SprintCreate, SprintMigration, SprintUpdate
from .sprint_lifecycle import SprintAction, ensure_can_activate, ensure_can_receive_tasks, next_state

if TYPE_CHECKING:
    from .orm import DatabaseEngine, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SprintCloseResult:
    """Outcome of closing a sprint."""

    sprint: SprintModel
    moved_count: int


class SprintService:
    """Sprint state machine backed by the database engine.

    Example:
        >>> service = SprintService(engine=engine)
        >>> sprint = await service.create(SprintCreate(workspace_id=1, name="Sprint 1"))
        >>> result = await service.close(sprint.id, SprintMigration(to="backlog"))
        >>> result.moved_count
        0
    """

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        clock: Clock | None = None,
        validator: ReferentialValidator | None = None,
    ) -> None:
        self._engine = engine
        self._clock = clock or SystemClock()
        self._validator = validator or ReferentialValidator(engine=engine)

    # --- helpers ---

    async def _deactivate_others(self, tx: Transaction, workspace_id: int, *, keep_id: int | None) -> int:
        """Keep a single active sprint per workspace."""
        return await tx.update_many(
            SprintModel,
            filters=all_of(
                ComparisonFilter.eq("workspace_id", workspace_id),
                ComparisonFilter.eq("is_active", True),
                ComparisonFilter.neq("id", keep_id) if keep_id is not None else None,
            ),
            values={"is_active": False, "updated_at": self._clock.now()},
        )

    async def _write_activation(self, sprint: SprintModel, values: dict[str, Any]) -> SprintModel:
        """Activate ``sprint``, applying ``values`` in the same statement."""
        now = self._clock.now()
        async with self._engine.transaction() as tx:
            await self._deactivate_others(tx, sprint.workspace_id, keep_id=sprint.id)
            # closed_at IS NULL keeps the gate closed even against a concurrent close.
            matched = await tx.update_many(
                SprintModel,
                filters=AndFilter(
                    filters=[
                        ComparisonFilter.eq("id", sprint.id),
                        ComparisonFilter.is_null("closed_at"),
                    ]
                ),
                values={**values, "is_active": True, "updated_at": now},
                fill_nulls={"activated_at": now},
            )
            current = await tx.get(SprintModel, sprint.id)
            if current is None:
                raise NotFoundError(f"Sprint {sprint.id} not found")
            if matched == 0:
                raise InvalidStateError(f"Sprint {sprint.id} is closed and cannot be activated")

        logger.info(f"Sprint activated: {current.id} workspace={current.workspace_id} activated_at={current.activated_at}")
        return current

    # --- public API ---

    async def get(self, sprint_id: int) -> SprintModel:
        sprint = await self._engine.get(SprintModel, sprint_id)
        if sprint is None:
            raise NotFoundError(f"Sprint {sprint_id} not found")
        return sprint

    async def list(self, *, workspace_id: int | None = None, is_active: bool | None = None) -> list[SprintModel]:
        """List sprints, active first, then by most recent start."""
        filters = []
        if workspace_id is not None:
            filters.append(ComparisonFilter.eq("workspace_id", workspace_id))
        if is_active is not None:
            filters.append(ComparisonFilter.eq("is_active", is_active))
        return await self._engine.find_many(
            SprintModel,
            filters=AndFilter(filters=filters) if filters else None,
            order_by=("-is_active", "-start_date", "-id"),
        )

    async def create(self, data: SprintCreate) -> SprintModel:
        """Create a planned sprint, or an active one when ``is_active`` is requested.

        Raises:
            NotFoundError: If the workspace does not exist
            InvalidArgumentError: If activation is requested without both dates
        """
        await self._validator.require_workspace(data.workspace_id)

        now = self._clock.now()
        sprint = SprintModel(
            workspace_id=data.workspace_id,
            name=data.name,
            start_date=data.start_date,
            end_date=data.end_date,
            created_at=now,
            updated_at=now,
        )
        if data.is_active:
            if data.start_date is None or data.end_date is None:
                raise InvalidArgumentError("Define start and end dates to activate the sprint on creation")
            sprint.is_active = True
            sprint.activated_at = data.activated_at or now

        async with self._engine.transaction() as tx:
            if sprint.is_active:
                await self._deactivate_others(tx, data.workspace_id, keep_id=None)
            await tx.create(sprint)

        logger.info(f"Sprint created: {sprint.id} workspace={sprint.workspace_id} state={sprint.state.value}")
        return sprint

    async def activate(self, sprint_id: int) -> SprintModel:
        """Make the sprint the active one of its workspace.

        Re-activating an open sprint keeps its original ``activated_at``.

        Raises:
            NotFoundError: If the sprint does not exist
            InvalidStateError: If the sprint is closed
            InvalidArgumentError: If start or end date is missing
        """
        sprint = await self.get(sprint_id)
        ensure_can_activate(closed_at=sprint.closed_at, start_date=sprint.start_date, end_date=sprint.end_date)
        return await self._write_activation(sprint, {})

    async def update(self, sprint_id: int, patch: SprintUpdate) -> SprintModel:
        """Apply an edit; ``is_active=True`` follows the activation rules.

        Dates sent in the same patch count for the activation check.
        """
        sprint = await self.get(sprint_id)
        fields = patch.model_fields_set

        values: dict[str, Any] = {}
        if "name" in fields and patch.name is not None:
            values["name"] = patch.name
        if "start_date" in fields:
            values["start_date"] = patch.start_date
        if "end_date" in fields:
            values["end_date"] = patch.end_date

        if patch.is_active is True:
            ensure_can_activate(
                closed_at=sprint.closed_at,
                start_date=values.get("start_date", sprint.start_date),
                end_date=values.get("end_date", sprint.end_date),
            )
            return await self._write_activation(sprint, values)

        if patch.is_active is False:
            next_state(sprint.state, SprintAction.DEACTIVATE)
            values["is_active"] = False

        if not values:
            return sprint

        values["updated_at"] = self._clock.now()
        async with self._engine.transaction() as tx:
            await tx.update_many(SprintModel, filters=ComparisonFilter.eq("id", sprint_id), values=values)
            updated = await tx.get(SprintModel, sprint_id)
            if updated is None:
                raise NotFoundError(f"Sprint {sprint_id} not found")

        logger.info(f"Sprint updated: {sprint_id} fields={sorted(values)}")
        return updated

    async def close(self, sprint_id: int, migration: SprintMigration | None = None) -> SprintCloseResult:
        """Close a sprint and migrate its unfinished tasks.

        Tasks already in the workspace's final step stay where they are.
        Closing twice keeps the first ``closed_at`` and the explicit
        ``end_date``; the second call only moves tasks that still match.

        Raises:
            NotFoundError: If the sprint does not exist
            InvalidArgumentError: If ``sprint_id`` does not fit the destination, or the
                target sprint is missing, is the source, or belongs to another workspace
            InvalidStateError: If the target sprint is closed, even when it closes
                while this call runs
        """
        migration = migration or SprintMigration()
        sprint = await self.get(sprint_id)

        # 1. Resolve the destination before touching anything.
        target_id: int | None = None
        if migration.to == "backlog" and migration.sprint_id is not None:
            raise InvalidArgumentError("sprint_id must not be set when migrating to the backlog")
        if migration.to == "sprint":
            if migration.sprint_id is None:
                raise InvalidArgumentError("sprint_id is required when migrating to a sprint")
            target = await self._engine.get(SprintModel, migration.sprint_id)
            if target is None:
                raise InvalidArgumentError(f"Target sprint {migration.sprint_id} not found")
            ensure_can_receive_tasks(target, sprint)
            target_id = target.id

        # 2. Tasks in the final step are done and stay with the closed sprint.
        final_step_id = await self._validator.final_step_id(sprint.workspace_id)
        unfinished = all_of(
            ComparisonFilter.eq("sprint_id", sprint.id),
            ComparisonFilter.neq("step_id", final_step_id) if final_step_id is not None else None,
        )

        # 3. Migrate and close in one transaction.
        now = self._clock.now()
        async with self._engine.transaction() as tx:
            if target_id is not None:
                # The target must still be open when the tasks land on it.
                still_open = await tx.update_many(
                    SprintModel,
                    filters=AndFilter(
                        filters=[
                            ComparisonFilter.eq("id", target_id),
                            ComparisonFilter.is_null("closed_at"),
                        ]
                    ),
                    values={"updated_at": now},
                )
                if still_open == 0:
                    raise InvalidStateError(f"Target sprint {target_id} is closed")
            moved_count = await tx.update_many(
                TaskModel,
                filters=unfinished,
                values={"sprint_id": target_id, "updated_at": now},
            )
            await tx.update_many(
                SprintModel,
                filters=ComparisonFilter.eq("id", sprint.id),
                values={"is_active": False, "updated_at": now},
                fill_nulls={"end_date": now, "closed_at": now},
            )
            closed = await tx.get(SprintModel, sprint.id)
            if closed is None:
                raise NotFoundError(f"Sprint {sprint_id} not found")

        logger.info(f"Sprint closed: {sprint.id} moved={moved_count} to={migration.to} target={target_id}")
        return SprintCloseResult(sprint=closed, moved_count=moved_count)

    async def delete_many(self, ids: list[int]) -> int:
        """Delete sprints; their tasks fall back to the backlog."""
        if not ids:
            return 0
        now = self._clock.now()
        async with self._engine.transaction() as tx:
            await tx.update_many(
                TaskModel,
                filters=ComparisonFilter.in_("sprint_id", list(ids)),
                values={"sprint_id": None, "updated_at": now},
            )
            deleted = await tx.delete(SprintModel, filters=ComparisonFilter.in_("id", list(ids)))
        logger.info(f"Sprints deleted: {deleted} of {len(ids)} requested")
        return deleted
