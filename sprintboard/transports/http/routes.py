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

"""Tracking HTTP endpoints.

One router per resource. Handlers only translate between HTTP and the
services; business-rule errors propagate to the exception handlers
installed by :class:`~sprintboard.transports.http.server.TrackerServer`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from sprintboard.tracking import (
    DashboardService,
    EpicService,
    SprintService,
    TaskService,
    WorkspaceService,
    extract_task_keys,
)
from sprintboard.tracking.models import EpicModel, TaskModel, WorkspaceModel, WorkspaceStepModel
from sprintboard.tracking.schemas import (
    EpicCreate,
    EpicUpdate,
    SprintCreate,
    SprintMigration,
    SprintUpdate,
    TaskCreate,
    TaskUpdate,
    WorkspaceCreate,
    WorkspaceUpdate,
)
from sprintboard.transports.http.models import (
    ERROR_RESPONSES,
    BulkDeleteRequest,
    BulkDeleteResponse,
    CloseSprintResponse,
    CountResponse,
    MoveByKeysRequest,
    MoveByKeysResponse,
    MoveTaskRequest,
    dashboard_to_dict,
    sprint_to_dict,
)


def create_workspace_router(service: WorkspaceService, dashboard: DashboardService) -> APIRouter:
    router = APIRouter(prefix="/workspaces", tags=["workspaces"], responses=ERROR_RESPONSES)

    @router.get("")
    async def list_workspaces() -> list[WorkspaceModel]:
        return await service.list()

    @router.post("", status_code=201)
    async def create_workspace(request: WorkspaceCreate) -> WorkspaceModel:
        return await service.create(request)

    @router.delete("")
    async def delete_workspaces(request: BulkDeleteRequest) -> BulkDeleteResponse:
        return BulkDeleteResponse(deleted=await service.delete_many(request.ids))

    @router.get("/{workspace_id}")
    async def get_workspace(workspace_id: int) -> WorkspaceModel:
        return await service.get(workspace_id)

    @router.get("/{workspace_id}/steps")
    async def get_workspace_steps(workspace_id: int) -> list[WorkspaceStepModel]:
        return await service.get_steps(workspace_id)

    @router.get("/{workspace_id}/dashboard")
    async def get_workspace_dashboard(
        workspace_id: int,
        assignee_id: int | None = Query(default=None),
    ) -> dict[str, Any]:
        """Board summary; ``assignee_id`` fills the personal task list."""
        return dashboard_to_dict(await dashboard.summary(workspace_id, assignee_id=assignee_id))

    @router.patch("/{workspace_id}")
    async def update_workspace(workspace_id: int, request: WorkspaceUpdate) -> WorkspaceModel:
        return await service.update(workspace_id, request)

    return router


def create_sprint_router(service: SprintService) -> APIRouter:
    router = APIRouter(prefix="/sprints", tags=["sprints"], responses=ERROR_RESPONSES)

    @router.get("")
    async def list_sprints(
        workspace_id: int | None = Query(default=None),
        is_active: bool | None = Query(default=None),
    ) -> list[dict[str, Any]]:
        sprints = await service.list(workspace_id=workspace_id, is_active=is_active)
        return [sprint_to_dict(sprint) for sprint in sprints]

    @router.post("", status_code=201)
    async def create_sprint(request: SprintCreate) -> dict[str, Any]:
        return sprint_to_dict(await service.create(request))

    @router.delete("")
    async def delete_sprints(request: BulkDeleteRequest) -> BulkDeleteResponse:
        return BulkDeleteResponse(deleted=await service.delete_many(request.ids))

    @router.get("/{sprint_id}")
    async def get_sprint(sprint_id: int) -> dict[str, Any]:
        return sprint_to_dict(await service.get(sprint_id))

    @router.patch("/{sprint_id}")
    async def update_sprint(sprint_id: int, request: SprintUpdate) -> dict[str, Any]:
        return sprint_to_dict(await service.update(sprint_id, request))

    @router.post("/{sprint_id}/activate")
    async def activate_sprint(sprint_id: int) -> dict[str, Any]:
        return sprint_to_dict(await service.activate(sprint_id))

    @router.post("/{sprint_id}/close")
    async def close_sprint(sprint_id: int, request: SprintMigration | None = None) -> CloseSprintResponse:
        result = await service.close(sprint_id, request)
        return CloseSprintResponse(sprint=sprint_to_dict(result.sprint), moved_count=result.moved_count)

    return router


def create_task_router(service: TaskService) -> APIRouter:
    router = APIRouter(prefix="/tasks", tags=["tasks"], responses=ERROR_RESPONSES)

    @router.get("")
    async def list_tasks(
        workspace_id: int | None = Query(default=None),
        step_id: int | None = Query(default=None),
        sprint_id: int | None = Query(default=None),
        backlog_only: bool = Query(default=False),
    ) -> list[TaskModel]:
        return await service.list(
            workspace_id=workspace_id,
            step_id=step_id,
            sprint_id=sprint_id,
            backlog_only=backlog_only,
        )

    @router.post("", status_code=201)
    async def create_task(request: TaskCreate) -> TaskModel:
        return await service.create(request)

    @router.delete("")
    async def delete_tasks(request: BulkDeleteRequest) -> BulkDeleteResponse:
        return BulkDeleteResponse(deleted=await service.delete_many(request.ids))

    @router.post("/move-by-keys")
    async def move_tasks_by_keys(request: MoveByKeysRequest) -> MoveByKeysResponse:
        """Move tasks named by key, or by keys mentioned in free text."""
        keys = [key.upper() for key in request.keys]
        for key in extract_task_keys(request.text):
            if key not in keys:
                keys.append(key)
        moved = await service.move_by_keys(workspace_id=request.workspace_id, keys=keys, step_id=request.step_id)
        return MoveByKeysResponse(keys=keys, moved=moved)

    @router.get("/{task_id}")
    async def get_task(task_id: int) -> TaskModel:
        return await service.get(task_id)

    @router.patch("/{task_id}")
    async def update_task(task_id: int, request: TaskUpdate) -> TaskModel:
        return await service.update(task_id, request)

    @router.patch("/{task_id}/move")
    async def move_task(task_id: int, request: MoveTaskRequest) -> TaskModel:
        return await service.move(task_id, request.step_id)

    return router


def create_epic_router(service: EpicService) -> APIRouter:
    router = APIRouter(prefix="/epics", tags=["epics"], responses=ERROR_RESPONSES)

    @router.get("")
    async def list_epics(
        workspace_id: int | None = Query(default=None),
        status: str | None = Query(default=None),
    ) -> list[EpicModel]:
        return await service.list(workspace_id=workspace_id, status=status)

    @router.post("", status_code=201)
    async def create_epic(request: EpicCreate) -> EpicModel:
        return await service.create(request)

    @router.delete("")
    async def delete_epics(request: BulkDeleteRequest) -> BulkDeleteResponse:
        return BulkDeleteResponse(deleted=await service.delete_many(request.ids))

    @router.get("/{epic_id}")
    async def get_epic(epic_id: int) -> EpicModel:
        return await service.get(epic_id)

    @router.get("/{epic_id}/task-count")
    async def count_epic_tasks(epic_id: int) -> CountResponse:
        return CountResponse(count=await service.count_tasks(epic_id))

    @router.patch("/{epic_id}")
    async def update_epic(epic_id: int, request: EpicUpdate) -> EpicModel:
        return await service.update(epic_id, request)

    return router
