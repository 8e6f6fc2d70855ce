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

"""Task deadline classification.

Deadlines are compared by calendar day in the board's time zone, so a task
due at 23:00 local time is still "today" until local midnight.
"""

from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo
from enum import Enum

from .clock import Clock


class DeadlineState(str, Enum):
    """Where a task's deadline falls relative to today."""

    NONE = "none"
    TODAY = "today"
    EXPIRED = "expired"
    FUTURE = "future"


def local_day(value: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar day of ``value`` in ``tz``; naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz).date()


def deadline_state(deadline: datetime | None, clock: Clock, tz: tzinfo = timezone.utc) -> DeadlineState:
    """Classify ``deadline`` against the clock's current day.

    Example:
        >>> deadline_state(None, SystemClock())
        <DeadlineState.NONE: 'none'>
    """
    if deadline is None:
        return DeadlineState.NONE
    due = local_day(deadline, tz)
    today = local_day(clock.now(), tz)
    if due == today:
        return DeadlineState.TODAY
    if due < today:
        return DeadlineState.EXPIRED
    return DeadlineState.FUTURE
