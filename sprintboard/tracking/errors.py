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

"""Error taxonomy shared by every tracking operation.

Each error kind carries a stable code; transports map the kind, not the
message text, to a client-facing status.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for business-rule failures."""

    code = "tracker_error"


class NotFoundError(TrackerError):
    """A referenced workspace, sprint, task, epic or step does not exist."""

    code = "not_found"


class InvalidArgumentError(TrackerError):
    """Input is malformed or references an entity of another workspace."""

    code = "invalid_argument"


class InvalidStateError(TrackerError):
    """The requested transition is not allowed from the entity's current state."""

    code = "invalid_state"


class ConflictError(TrackerError):
    """The operation is blocked by dependent entities."""

    code = "conflict"
