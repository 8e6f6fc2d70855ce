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

"""
Test utilities and helper functions.

Engines are file-backed so concurrent transactions get separate connections.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from sprintboard.tracking import ALL_MODELS, WorkspaceService
from sprintboard.tracking.models import StepModel, WorkspaceModel
from sprintboard.tracking.orm import SQLDatabaseEngine
from sprintboard.tracking.schemas import StepOrder, WorkspaceCreate

DEFAULT_STEPS = ("To do", "In progress", "Done")


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.current = now or datetime(2024, 1, 15, 9, 0, 0)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def sqlite_url(tmp_path: Path, name: str = "tracker.db") -> str:
    return f"sqlite+aiosqlite:///{tmp_path / name}"


async def open_engine(tmp_path: Path, name: str = "tracker.db") -> SQLDatabaseEngine:
    """Create a file-backed engine with every tracking table."""
    engine = SQLDatabaseEngine.from_url(sqlite_url(tmp_path, name))
    await engine.setup_models(ALL_MODELS)
    return engine


async def seed_steps(engine: SQLDatabaseEngine, names: tuple[str, ...] = DEFAULT_STEPS) -> list[StepModel]:
    return await engine.create_many([StepModel(name=name) for name in names])


async def seed_workspace(
    engine: SQLDatabaseEngine,
    *,
    prefix: str = "PRJ",
    name: str = "Project",
    step_names: tuple[str, ...] = DEFAULT_STEPS,
) -> tuple[WorkspaceModel, list[StepModel]]:
    """Create steps and a workspace ordering them 1..n; the last step is final."""
    steps = await seed_steps(engine, step_names)
    workspace = await WorkspaceService(engine=engine).create(
        WorkspaceCreate(
            name=name,
            prefix=prefix,
            steps=[StepOrder(step_id=step.id, order=index + 1) for index, step in enumerate(steps)],
        )
    )
    return workspace, steps
