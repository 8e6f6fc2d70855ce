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

"""Validated inputs for the tracking services.

Update models distinguish "field omitted" from "field set to None" through
pydantic's ``model_fields_set``; services only touch fields the caller sent.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .clock import to_naive_utc

PREFIX_PATTERN = re.compile(r"[A-Za-z]{1,5}")


class _DatesNormalized(BaseModel):
    """Normalizes every datetime field to naive UTC."""

    @field_validator("*", mode="after")
    @classmethod
    def _naive_utc(cls, value: object) -> object:
        if isinstance(value, datetime):
            return to_naive_utc(value)
        return value


# --- Workspaces ---


class StepOrder(BaseModel):
    """Position of a step on a workspace board."""

    step_id: int
    order: int


class WorkspaceCreate(BaseModel):
    name: str
    prefix: str
    methodology: str = ""
    team_id: int | None = None
    steps: list[StepOrder] = Field(default_factory=list)


class WorkspaceUpdate(BaseModel):
    """Workspace edit. The sequence counters are not editable."""

    name: str | None = None
    prefix: str | None = None
    methodology: str | None = None
    team_id: int | None = None
    steps: list[StepOrder] | None = None


# --- Sprints ---


class SprintCreate(_DatesNormalized):
    workspace_id: int
    name: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool = False
    activated_at: datetime | None = None


class SprintUpdate(_DatesNormalized):
    name: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None


class SprintMigration(BaseModel):
    """Where the unfinished tasks of a closing sprint go.

    ``sprint_id`` names the target and is only valid with ``to="sprint"``.
    """

    to: Literal["backlog", "sprint"] = "backlog"
    sprint_id: int | None = None


# --- Tasks ---


class TaskCreate(_DatesNormalized):
    workspace_id: int
    step_id: int
    title: str
    priority_id: int
    type_task_id: int
    description: str | None = None
    estimate: str | None = None
    start_date: datetime | None = None
    deadline: datetime | None = None
    sprint_id: int | None = None
    epic_id: int | None = None
    reporter_id: int | None = None
    assignee_id: int | None = None
    user_id: int | None = None
    status: str | None = None


class TaskUpdate(_DatesNormalized):
    """Task edit. ``id_task`` and ``workspace_id`` cannot change."""

    title: str | None = None
    description: str | None = None
    estimate: str | None = None
    start_date: datetime | None = None
    deadline: datetime | None = None
    step_id: int | None = None
    sprint_id: int | None = None
    epic_id: int | None = None
    priority_id: int | None = None
    type_task_id: int | None = None
    reporter_id: int | None = None
    assignee_id: int | None = None
    user_id: int | None = None
    status: str | None = None


# --- Epics ---


class EpicCreate(_DatesNormalized):
    workspace_id: int
    title: str
    description: str | None = None
    status: str = "open"
    priority_id: int | None = None
    start_date: datetime | None = None
    target_date: datetime | None = None


class EpicUpdate(_DatesNormalized):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority_id: int | None = None
    start_date: datetime | None = None
    target_date: datetime | None = None
