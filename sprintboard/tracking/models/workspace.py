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

"""Workspace and workspace step association models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..clock import utcnow


class WorkspaceModel(SQLModel, table=True):
    """Container scoping tasks, epics, sprints and steps.

    Attributes:
        id: Workspace identifier (primary key).
        name: Display name.
        prefix: 1-5 upper-case letters used in display keys ("PRJ-12").
        methodology: Free-form methodology label (e.g. "scrum", "kanban").
        next_task_seq: Next task sequence number. Only the sequence allocator writes it.
        next_epic_seq: Next epic sequence number. Only the sequence allocator writes it.
        team_id: Owning team, if any.
    """

    __tablename__ = "workspaces"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    name: str
    prefix: str = Field(max_length=5)
    methodology: str = ""
    next_task_seq: int = Field(default=1)
    next_epic_seq: int = Field(default=1)
    team_id: int | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class WorkspaceStepModel(SQLModel, table=True):
    """Binds a step to a workspace at a given position."""

    __tablename__ = "workspace_steps"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("workspace_id", "step_id", name="uq_workspace_step"),)

    id: int | None = Field(default=None, primary_key=True)
    workspace_id: int = Field(foreign_key="workspaces.id", ondelete="CASCADE", index=True)
    step_id: int = Field(foreign_key="steps.id")
    order: int
