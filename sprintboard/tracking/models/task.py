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

"""Task model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..clock import utcnow


class TaskModel(SQLModel, table=True):
    """Unit of work tracked on a workspace board.

    Attributes:
        id: Internal identifier (primary key).
        id_task: Display key ("PRJ-42"), unique within the workspace and immutable.
        title: Task title.
        status: Mirrors the current step id as text.
        workspace_id: Owning workspace.
        step_id: Current workflow step; must be bound to the workspace.
        sprint_id: Sprint the task is planned in, None for the backlog.
        epic_id: Parent epic of the same workspace, if any.
        priority_id: Priority catalogue entry.
        type_task_id: Task type catalogue entry.
        reporter_id: Reporting user.
        assignee_id: Assigned user.
        user_id: Creating user.
    """

    __tablename__ = "tasks"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("workspace_id", "id_task", name="uq_task_workspace_key"),)

    id: int | None = Field(default=None, primary_key=True)
    id_task: str
    title: str
    description: str | None = Field(default=None)
    estimate: str | None = Field(default=None)
    start_date: datetime | None = Field(default=None, sa_type=DateTime)
    deadline: datetime | None = Field(default=None, sa_type=DateTime)
    status: str = ""

    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    step_id: int = Field(foreign_key="steps.id")
    sprint_id: int | None = Field(default=None, foreign_key="sprints.id", ondelete="SET NULL", index=True)
    epic_id: int | None = Field(default=None, foreign_key="epics.id", index=True)

    priority_id: int
    type_task_id: int
    reporter_id: int | None = Field(default=None)
    assignee_id: int | None = Field(default=None)
    user_id: int | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
