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

"""HTTP transport for Sprintboard.

This module provides:
- HTTPConfig: server settings with environment defaults
- TrackerServer: FastAPI app wiring the tracking services
"""

from sprintboard.transports.http.config import HTTPConfig
from sprintboard.transports.http.server import TrackerServer, status_for

__all__ = [
    "HTTPConfig",
    "TrackerServer",
    "status_for",
]
