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

"""Sprint lifecycle state machine.

Sprints move planned -> active -> closed. Closing is a one-way gate: a
closed sprint can never be activated again. The persisted schema keeps the
``(is_active, closed_at)`` pair; :func:`derive_sprint_state` maps it onto
:class:`SprintState`, and the helpers below decide whether a transition is
allowed before any statement runs.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from .errors import InvalidArgumentError, InvalidStateError
from .models import SprintModel, SprintState, derive_sprint_state


class SprintAction(str, Enum):
    """Requested lifecycle transitions."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    CLOSE = "close"


_TRANSITIONS: dict[tuple[SprintState, SprintAction], SprintState] = {
    (SprintState.PLANNED, SprintAction.ACTIVATE): SprintState.ACTIVE,
    (SprintState.ACTIVE, SprintAction.ACTIVATE): SprintState.ACTIVE,
    (SprintState.PLANNED, SprintAction.DEACTIVATE): SprintState.PLANNED,
    (SprintState.ACTIVE, SprintAction.DEACTIVATE): SprintState.PLANNED,
    (SprintState.CLOSED, SprintAction.DEACTIVATE): SprintState.CLOSED,
    (SprintState.PLANNED, SprintAction.CLOSE): SprintState.CLOSED,
    (SprintState.ACTIVE, SprintAction.CLOSE): SprintState.CLOSED,
    (SprintState.CLOSED, SprintAction.CLOSE): SprintState.CLOSED,
}


def next_state(state: SprintState, action: SprintAction) -> SprintState:
    """Return the state reached by applying ``action`` to ``state``.

    Raises:
        InvalidStateError: If the transition is not allowed
    """
    try:
        return _TRANSITIONS[(state, action)]
    except KeyError:
        raise InvalidStateError(f"Cannot {action.value} a {state.value} sprint") from None


def ensure_can_activate(
    *,
    closed_at: datetime | None,
    start_date: datetime | None,
    end_date: datetime | None,
) -> None:
    """Check activation preconditions.

    Raises:
        InvalidStateError: If the sprint was ever closed
        InvalidArgumentError: If start or end date is missing
    """
    if closed_at is not None:
        next_state(SprintState.CLOSED, SprintAction.ACTIVATE)
    if start_date is None or end_date is None:
        raise InvalidArgumentError("Define start and end dates before activating the sprint")


def ensure_can_receive_tasks(target: SprintModel, source: SprintModel) -> None:
    """Check that ``target`` may take over the unfinished tasks of ``source``.

    Raises:
        InvalidArgumentError: If target is the source or lives in another workspace
        InvalidStateError: If target is closed
    """
    if target.id == source.id:
        raise InvalidArgumentError(f"Sprint {source.id} cannot migrate tasks into itself")
    if target.workspace_id != source.workspace_id:
        raise InvalidArgumentError(
            f"Target sprint {target.id} belongs to workspace {target.workspace_id}, not {source.workspace_id}"
        )
    if target.closed_at is not None:
        raise InvalidStateError(f"Target sprint {target.id} is closed")


__all__ = [
    "SprintAction",
    "SprintState",
    "derive_sprint_state",
    "ensure_can_activate",
    "ensure_can_receive_tasks",
    "next_state",
]
