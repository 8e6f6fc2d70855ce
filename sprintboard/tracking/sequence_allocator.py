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

"""Workspace-scoped display key allocation.

Tasks and epics get human-readable keys ("PRJ-42", "PRJ-E3") drawn from
per-workspace counters stored on the workspace row. The counter is bumped
with a single ``UPDATE ... SET n = n + 1`` as the first statement of the
caller's transaction, so concurrent allocators serialize on the row lock
and no two of them can observe the same number. Rolling back the caller's
transaction also rolls back the bump.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import NotFoundError
from .models import KeyKind, WorkspaceModel
from .orm import ComparisonFilter

if TYPE_CHECKING:
    from .orm import DatabaseEngine, Transaction

logger = logging.getLogger(__name__)

TASK_KEY_PATTERN = re.compile(r"\b([A-Z]{1,5}-\d+)\b")

_COUNTER_FIELDS: dict[KeyKind, str] = {
    KeyKind.TASK: "next_task_seq",
    KeyKind.EPIC: "next_epic_seq",
}


@dataclass(frozen=True)
class AllocatedKey:
    """A reserved sequence number and the display key built from it."""

    sequence: int
    key: str


def format_display_key(prefix: str, sequence: int, kind: KeyKind) -> str:
    """Build ``PREFIX-N`` for tasks and ``PREFIX-EN`` for epics."""
    if kind is KeyKind.EPIC:
        return f"{prefix}-E{sequence}"
    return f"{prefix}-{sequence}"


def extract_task_keys(text: str | None) -> list[str]:
    """Find task display keys mentioned in free text.

    The text is upper-cased first; duplicates are dropped, first occurrence wins.

    Example:
        >>> extract_task_keys("fix prj-12 and PRJ-3, see prj-12")
        ['PRJ-12', 'PRJ-3']
    """
    found: dict[str, None] = {}
    for match in TASK_KEY_PATTERN.finditer((text or "").upper()):
        found.setdefault(match.group(1))
    return list(found)


class SequenceAllocator:
    """Reserves task and epic sequence numbers for a workspace."""

    def __init__(self, *, engine: DatabaseEngine) -> None:
        self._engine = engine

    async def allocate_key(self, tx: Transaction, workspace_id: int, kind: KeyKind) -> AllocatedKey:
        """Reserve the next number of ``kind`` inside the caller's transaction.

        The entity insert that consumes the key must run in the same
        transaction so a failed insert leaves the counter untouched.

        Raises:
            NotFoundError: If the workspace does not exist
        """
        field = _COUNTER_FIELDS[kind]
        workspace_filter = ComparisonFilter.eq("id", workspace_id)

        # 1. Bump first: the write takes the row lock before anything is read.
        updated = await tx.increment(WorkspaceModel, filters=workspace_filter, field=field)
        if updated == 0:
            raise NotFoundError(f"Workspace {workspace_id} not found")

        # 2. Read back our own write; the reserved number is the value before the bump.
        workspace = await tx.get(WorkspaceModel, workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        sequence = getattr(workspace, field) - 1

        allocated = AllocatedKey(
            sequence=sequence,
            key=format_display_key(workspace.prefix, sequence, kind),
        )
        logger.debug(f"Allocated {kind.value} key {allocated.key} in workspace {workspace_id}")
        return allocated

    async def allocate(self, workspace_id: int, kind: KeyKind) -> AllocatedKey:
        """Reserve a number in a transaction of its own."""
        async with self._engine.transaction() as tx:
            return await self.allocate_key(tx, workspace_id, kind)
