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

"""Workflow step catalogue model."""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class StepModel(SQLModel, table=True):
    """A workflow column such as "To do" or "Done".

    Steps are shared across workspaces; a workspace picks and orders them
    through :class:`WorkspaceStepModel`.
    """

    __tablename__ = "steps"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    name: str
