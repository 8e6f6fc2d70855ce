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

"""Tracking storage models.

All models inherit directly from SQLModel:
- WorkspaceModel: Workspace with its display-key counters
- WorkspaceStepModel: Ordered workspace/step association
- StepModel: Workflow step catalogue
- SprintModel: Sprint with derived lifecycle state
- EpicModel: Epic with per-workspace key
- TaskModel: Task with per-workspace key
"""

from .epic import EpicModel
from .sprint import SprintModel
from .step import StepModel
from .task import TaskModel
from .types import KeyKind, SprintState, derive_sprint_state
from .workspace import WorkspaceModel, WorkspaceStepModel

ALL_MODELS = [
    StepModel,
    WorkspaceModel,
    WorkspaceStepModel,
    SprintModel,
    EpicModel,
    TaskModel,
]

__all__ = [
    "ALL_MODELS",
    "EpicModel",
    "KeyKind",
    "SprintModel",
    "SprintState",
    "StepModel",
    "TaskModel",
    "WorkspaceModel",
    "WorkspaceStepModel",
    "derive_sprint_state",
]
