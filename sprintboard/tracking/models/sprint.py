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

"""Sprint model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from ..clock import utcnow
from .types import SprintState, derive_sprint_state


class SprintModel(SQLModel, table=True):
    """Time-boxed iteration inside a workspace.

    The lifecycle state is not stored; it is derived from ``is_active`` and
    ``closed_at`` (see :attr:`state`).

    Attributes:
        id: Sprint identifier (primary key).
        workspace_id: Owning workspace.
        name: Display name.
        start_date: Planned start, required before activation.
        end_date: Planned end, required before activation; defaulted on close.
        is_active: Whether this is the running sprint of its workspace.
        activated_at: First activation time, never overwritten.
        closed_at: Close time, never overwritten. Once set the sprint cannot be reactivated.
    """

    __tablename__ = "sprints"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    name: str
    start_date: datetime | None = Field(default=None, sa_type=DateTime)
    end_date: datetime | None = Field(default=None, sa_type=DateTime)
    is_active: bool = Field(default=False)
    activated_at: datetime | None = Field(default=None, sa_type=DateTime)
    closed_at: datetime | None = Field(default=None, sa_type=DateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    @property
    def state(self) -> SprintState:
        return derive_sprint_state(self.is_active, self.closed_at)
