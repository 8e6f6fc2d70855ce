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

"""Workspace dashboard.

Read-only summary of a workspace board. A task counts as done when it sits
in the workspace's final step, the same rule sprint close uses; a workspace
without steps has no done tasks.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING

from .clock import Clock, SystemClock
from .deadline import DeadlineState, deadline_state
from .models import EpicModel, SprintModel, StepModel, TaskModel, WorkspaceStepModel
from .orm import ComparisonFilter, all_of
from .referential_validator import ReferentialValidator

if TYPE_CHECKING:
    from .orm import DatabaseEngine, Filter, Transaction

logger = logging.getLogger(__name__)

UPCOMING_WINDOW = timedelta(days=7)
DASHBOARD_LIST_SIZE = 10


@dataclass(frozen=True)
class StepCount:
    step_id: int
    name: str
    count: int


@dataclass(frozen=True)
class EpicProgress:
    """Done share of an epic's tasks, ``pct`` rounded half up."""

    id: int
    key: str
    title: str
    total: int
    done: int
    pct: int


@dataclass(frozen=True)
class AssignedTask:
    task: TaskModel
    deadline_state: DeadlineState


@dataclass
class DashboardSummary:
    """Everything the workspace dashboard shows."""

    workspace_id: int
    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    upcoming_tasks: int = 0
    active_sprint: SprintModel | None = None
    tasks_by_step: list[StepCount] = field(default_factory=list)
    epic_progress: list[EpicProgress] = field(default_factory=list)
    my_tasks: list[AssignedTask] = field(default_factory=list)
    recent_activity: list[TaskModel] = field(default_factory=list)


def _by_deadline(task: TaskModel) -> tuple[bool, datetime]:
    # Tasks without a deadline go last.
    return (task.deadline is None, task.deadline or datetime.max)


class DashboardService:
    """Builds :class:`DashboardSummary` for a workspace.

    Example:
        >>> service = DashboardService(engine=engine)
        >>> summary = await service.summary(workspace_id=1, assignee_id=7)
        >>> summary.overdue_tasks
        2
    """

    def __init__(
        self,
        *,
        engine: DatabaseEngine,
        clock: Clock | None = None,
        validator: ReferentialValidator | None = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._engine = engine
        self._clock = clock or SystemClock()
        self._validator = validator or ReferentialValidator(engine=engine)
        self._tz = tz

    async def _tasks_by_step(self, tx: Transaction, in_workspace: Filter, workspace_id: int) -> list[StepCount]:
        links = await tx.find_many(
            WorkspaceStepModel,
            filters=ComparisonFilter.eq("workspace_id", workspace_id),
            order_by=("order", "id"),
        )
        if not links:
            return []
        steps = await tx.find_many(StepModel, filters=ComparisonFilter.in_("id", [link.step_id for link in links]))
        names = {step.id: step.name for step in steps}
        counts = [
            StepCount(
                step_id=link.step_id,
                name=names.get(link.step_id, ""),
                count=await tx.count(TaskModel, filters=all_of(in_workspace, ComparisonFilter.eq("step_id", link.step_id))),
            )
            for link in links
        ]
        # Busiest first; ties keep board order.
        return sorted(counts, key=lambda item: -item.count)

    async def _epic_progress(self, tx: Transaction, workspace_id: int, final_step_id: int | None) -> list[EpicProgress]:
        epics = await tx.find_many(
            EpicModel,
            filters=ComparisonFilter.eq("workspace_id", workspace_id),
            order_by="-id",
            limit=DASHBOARD_LIST_SIZE,
        )
        progress = []
        for epic in epics:
            in_epic = ComparisonFilter.eq("epic_id", epic.id)
            total = await tx.count(TaskModel, filters=in_epic)
            done = 0
            if final_step_id is not None:
                done = await tx.count(TaskModel, filters=all_of(in_epic, ComparisonFilter.eq("step_id", final_step_id)))
            pct = math.floor(done * 100 / total + 0.5) if total else 0
            progress.append(EpicProgress(id=epic.id, key=epic.key, title=epic.title, total=total, done=done, pct=pct))
        return sorted(progress, key=lambda item: -item.pct)

    async def summary(self, workspace_id: int, *, assignee_id: int | None = None) -> DashboardSummary:
        """Summarize a workspace board.

        Overdue and upcoming counts skip done tasks. Upcoming means due
        within the next seven days. ``my_tasks`` lists the assignee's tasks
        by nearest deadline and stays empty without ``assignee_id``.

        Raises:
            NotFoundError: If the workspace does not exist
        """
        await self._validator.require_workspace(workspace_id)
        final_step_id = await self._validator.final_step_id(workspace_id)

        now = self._clock.now()
        in_workspace = ComparisonFilter.eq("workspace_id", workspace_id)
        not_done = ComparisonFilter.neq("step_id", final_step_id) if final_step_id is not None else None

        summary = DashboardSummary(workspace_id=workspace_id)
        async with self._engine.transaction() as tx:
            # 1. Headline counts
            summary.total_tasks = await tx.count(TaskModel, filters=in_workspace)
            if final_step_id is not None:
                summary.completed_tasks = await tx.count(
                    TaskModel, filters=all_of(in_workspace, ComparisonFilter.eq("step_id", final_step_id))
                )
            summary.overdue_tasks = await tx.count(
                TaskModel, filters=all_of(in_workspace, not_done, ComparisonFilter.lt("deadline", now))
            )
            summary.upcoming_tasks = await tx.count(
                TaskModel,
                filters=all_of(
                    in_workspace,
                    not_done,
                    ComparisonFilter.gte("deadline", now),
                    ComparisonFilter.lte("deadline", now + UPCOMING_WINDOW),
                ),
            )

            # 2. Running sprint
            summary.active_sprint = await tx.find_first(
                SprintModel, filters=all_of(in_workspace, ComparisonFilter.eq("is_active", True))
            )

            # 3. Breakdowns
            summary.tasks_by_step = await self._tasks_by_step(tx, in_workspace, workspace_id)
            summary.epic_progress = await self._epic_progress(tx, workspace_id, final_step_id)

            # 4. Task lists
            if assignee_id is not None:
                assigned = await tx.find_many(
                    TaskModel, filters=all_of(in_workspace, ComparisonFilter.eq("assignee_id", assignee_id))
                )
                summary.my_tasks = [
                    AssignedTask(task=task, deadline_state=deadline_state(task.deadline, self._clock, self._tz))
                    for task in sorted(assigned, key=_by_deadline)[:DASHBOARD_LIST_SIZE]
                ]
            summary.recent_activity = await tx.find_many(
                TaskModel,
                filters=in_workspace,
                order_by=("-updated_at", "-id"),
                limit=DASHBOARD_LIST_SIZE,
            )

        logger.debug(
            f"Dashboard built: workspace={workspace_id} total={summary.total_tasks} overdue={summary.overdue_tasks}"
        )
        return summary
