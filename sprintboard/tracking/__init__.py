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

"""Project tracking core.

This package provides the workspace-scoped domain services:
- SequenceAllocator: per-workspace display keys ("PRJ-12", "PRJ-E3")
- SprintService: sprint lifecycle with bulk migration of unfinished tasks
- ReferentialValidator: workspace-consistency checks for task references
- TaskService / EpicService / WorkspaceService: orchestration over the store
- DashboardService: read-only workspace summary with deadline states
"""

from .clock import Clock, SystemClock
from .dashboard_service import AssignedTask, DashboardService, DashboardSummary, EpicProgress, StepCount
from .deadline import DeadlineState, deadline_state
from .epic_service import EpicService
from .errors import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError, TrackerError
from .models import ALL_MODELS, KeyKind, SprintState
from .referential_validator import ReferentialValidator
from .sequence_allocator import AllocatedKey, SequenceAllocator, extract_task_keys, format_display_key
from .sprint_service import SprintCloseResult, SprintService
from .task_service import TaskService
from .workspace_service import WorkspaceService

__all__ = [
    "ALL_MODELS",
    "AllocatedKey",
    "AssignedTask",
    "Clock",
    "ConflictError",
    "DashboardService",
    "DashboardSummary",
    "DeadlineState",
    "EpicProgress",
    "EpicService",
    "InvalidArgumentError",
    "InvalidStateError",
    "KeyKind",
    "NotFoundError",
    "ReferentialValidator",
    "SequenceAllocator",
    "SprintCloseResult",
    "SprintService",
    "SprintState",
    "StepCount",
    "SystemClock",
    "TaskService",
    "TrackerError",
    "WorkspaceService",
    "deadline_state",
    "extract_task_keys",
    "format_display_key",
]
