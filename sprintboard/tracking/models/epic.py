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

"""Epic model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ..clock import utcnow


class EpicModel(SQLModel, table=True):
    """Large body of work grouping tasks.

    ``key`` ("PRJ-E3") is drawn from the workspace epic counter and never changes.
    """

    __tablename__ = "epics"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("workspace_id", "key", name="uq_epic_workspace_key"),)

    id: int | None = Field(default=None, primary_key=True)
    key: str
    title: str
    description: str | None = Field(default=None)
    status: str = Field(default="open")
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    priority_id: int | None = Field(default=None)
    start_date: datetime | None = Field(default=None, sa_type=DateTime)
    target_date: datetime | None = Field(default=None, sa_type=DateTime)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
