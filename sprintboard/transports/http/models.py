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

"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, Field

from sprintboard.tracking import DashboardSummary
from sprintboard.tracking.models import SprintModel


class BulkDeleteRequest(BaseModel):
    """Ids selected for a bulk delete."""

    ids: list[int] = Field(min_length=1)


class BulkDeleteResponse(BaseModel):
    deleted: int


class MoveTaskRequest(BaseModel):
    step_id: int


class MoveByKeysRequest(BaseModel):
    """Move tasks named by display key, e.g. keys parsed from a commit message.

    Either ``keys`` or ``text`` must be given; keys found in ``text`` are added.
    """

    workspace_id: int
    step_id: int
    keys: list[str] = Field(default_factory=list)
    text: str | None = None


class MoveByKeysResponse(BaseModel):
    keys: list[str]
    moved: int


class CloseSprintResponse(BaseModel):
    sprint: dict[str, Any]
    moved_count: int


class CountResponse(BaseModel):
    count: int


class ErrorResponse(BaseModel):
    """Body of every error response."""

    code: str
    detail: str


# Documented on every router; the bodies come from TrackerServer's exception handlers.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid argument"},
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Invalid state or conflict"},
    503: {"model": ErrorResponse, "description": "Storage unavailable"},
}


def sprint_to_dict(sprint: SprintModel) -> dict[str, Any]:
    """Serialize a sprint together with its derived state."""
    data = sprint.model_dump(mode="json")
    data["state"] = sprint.state.value
    return data


def dashboard_to_dict(summary: DashboardSummary) -> dict[str, Any]:
    """Serialize a dashboard summary; assigned tasks carry their deadline state."""
    return {
        "workspace_id": summary.workspace_id,
        "total_tasks": summary.total_tasks,
        "completed_tasks": summary.completed_tasks,
        "overdue_tasks": summary.overdue_tasks,
        "upcoming_tasks": summary.upcoming_tasks,
        "active_sprint": sprint_to_dict(summary.active_sprint) if summary.active_sprint else None,
        "tasks_by_step": [asdict(item) for item in summary.tasks_by_step],
        "epic_progress": [asdict(item) for item in summary.epic_progress],
        "my_tasks": [
            {**item.task.model_dump(mode="json"), "deadline_state": item.deadline_state.value}
            for item in summary.my_tasks
        ],
        "recent_activity": [task.model_dump(mode="json") for task in summary.recent_activity],
    }
