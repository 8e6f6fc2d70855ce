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

"""Epic service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .clock import Clock, SystemClock
from .errors import ConflictError, NotFoundError
from .models import EpicModel, KeyKind, TaskModel
from .orm import AndFilter, ComparisonFilter
from .referential_validator import ReferentialValidator
from .schemas import EpicCreate, EpicUpdate
from .sequence_allocator import SequenceAllocator

if TYPE_CHECKING:
    from .orm import DatabaseEngine

logger = logging.getLogger(__name__)

_NON_NULLABLE_FIELDS = frozenset({"title", "status"})


class EpicService:
    """Epic create/update/delete. Keys come from the workspace epic counter."""

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

    async def get(self, epic_id: int) -> EpicModel:
        epic = await self._engine.get(EpicModel, epic_id)
        if epic is None:
            raise NotFoundError(f"Epic {epic_id} not found")
        return epic

    async def list(self, *, workspace_id: int | None = None, status: str | None = None) -> list[EpicModel]:
        filters = []
        if workspace_id is not None:
            filters.append(ComparisonFilter.eq("workspace_id", workspace_id))
        if status is not None:
            filters.append(ComparisonFilter.eq("status", status))
        return await self._engine.find_many(
            EpicModel,
            filters=AndFilter(filters=filters) if filters else None,
            order_by="-id",
        )

    async def count_tasks(self, epic_id: int) -> int:
        await self.get(epic_id)
        return await self._engine.count(TaskModel, filters=ComparisonFilter.eq("epic_id", epic_id))

    async def create(self, data: EpicCreate) -> EpicModel:
        """Create an epic keyed "PREFIX-EN".

        Raises:
            NotFoundError: If the workspace does not exist
        """
        await self._validator.require_workspace(data.workspace_id)

        now = self._clock.now()
        async with self._engine.transaction() as tx:
            allocated = await self._allocator.allocate_key(tx, data.workspace_id, KeyKind.EPIC)
            epic = EpicModel(
                key=allocated.key,
                title=data.title,
                description=data.description,
                status=data.status,
                workspace_id=data.workspace_id,
                priority_id=data.priority_id,
                start_date=data.start_date,
                target_date=data.target_date,
                created_at=now,
                updated_at=now,
            )
            await tx.create(epic)

        logger.info(f"Epic created: {epic.key} (id={epic.id}) workspace={epic.workspace_id}")
        return epic

    async def update(self, epic_id: int, patch: EpicUpdate) -> EpicModel:
        """Apply an edit. The key and workspace never change."""
        current = await self.get(epic_id)

        values: dict[str, Any] = {}
        for name in patch.model_fields_set:
            value = getattr(patch, name)
            if value is None and name in _NON_NULLABLE_FIELDS:
                continue
            values[name] = value
        if not values:
            return current

        values["updated_at"] = self._clock.now()
        async with self._engine.transaction() as tx:
            await tx.update_many(EpicModel, filters=ComparisonFilter.eq("id", epic_id), values=values)
            updated = await tx.get(EpicModel, epic_id)
            if updated is None:
                raise NotFoundError(f"Epic {epic_id} not found")

        logger.info(f"Epic updated: {updated.key} fields={sorted(values)}")
        return updated

    async def delete_many(self, ids: list[int]) -> int:
        """Delete epics that have no tasks.

        Raises:
            ConflictError: If any selected epic still has tasks; nothing is deleted
        """
        if not ids:
            return 0
        selected = ComparisonFilter.in_("id", list(ids))

        async with self._engine.transaction() as tx:
            linked_tasks = await tx.find_many(TaskModel, filters=ComparisonFilter.in_("epic_id", list(ids)))
            if linked_tasks:
                blocked_ids = sorted({task.epic_id for task in linked_tasks if task.epic_id is not None})
                blocked = await tx.find_many(EpicModel, filters=ComparisonFilter.in_("id", blocked_ids), order_by="id")
                keys = ", ".join(epic.key for epic in blocked)
                raise ConflictError(f"Cannot delete: epics {keys} still have tasks")
            deleted = await tx.delete(EpicModel, filters=selected)

        logger.info(f"Epics deleted: {deleted} of {len(ids)} requested")
        return deleted
