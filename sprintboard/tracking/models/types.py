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

"""Enumerations shared by the tracking models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum


class SprintState(str, Enum):
    """Lifecycle state of a sprint, derived from its stored fields."""

    PLANNED = "planned"
    ACTIVE = "active"
    CLOSED = "closed"


class KeyKind(str, Enum):
    """Which per-workspace counter a display key is drawn from."""

    TASK = "task"
    EPIC = "epic"


def derive_sprint_state(is_active: bool, closed_at: datetime | None) -> SprintState:
    """Map the persisted ``(is_active, closed_at)`` pair onto a state.

    ``is_active`` wins over ``closed_at``; a sprint is closed only once it is
    inactive with a close time.
    """
    if is_active:
        return SprintState.ACTIVE
    if closed_at is not None:
        return SprintState.CLOSED
    return SprintState.PLANNED
