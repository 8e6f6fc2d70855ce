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

"""HTTP transport configuration for Sprintboard.

Defaults come from the environment so a ``.env`` file loaded by the CLI can
configure the server without flags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///sprintboard.db"


@dataclass
class HTTPConfig:
    """Configuration for the HTTP server.

    Attributes:
        host: Host to bind to (env SPRINTBOARD_HOST, default: 127.0.0.1)
        port: Port to bind to (env SPRINTBOARD_PORT, default: 8000)
        database_url: Async SQLAlchemy URL (env SPRINTBOARD_DATABASE_URL)
        cors_origins: List of allowed CORS origins (default: ["*"])
        cors_credentials: Allow credentials (default: True)
        cors_methods: Allowed HTTP methods (default: ["*"])
        cors_headers: Allowed headers (default: ["*"])
        log_level: Logging level (env SPRINTBOARD_LOG_LEVEL, default: "info")
        timezone: IANA zone used to decide which day a deadline falls on
            (env SPRINTBOARD_TIMEZONE, default: "UTC")
    """

    host: str = field(default_factory=lambda: os.getenv("SPRINTBOARD_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("SPRINTBOARD_PORT", "8000")))
    database_url: str = field(default_factory=lambda: os.getenv("SPRINTBOARD_DATABASE_URL", DEFAULT_DATABASE_URL))
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    cors_credentials: bool = True
    cors_methods: list[str] = field(default_factory=lambda: ["*"])
    cors_headers: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = field(default_factory=lambda: os.getenv("SPRINTBOARD_LOG_LEVEL", "info").lower())
    timezone: str = field(default_factory=lambda: os.getenv("SPRINTBOARD_TIMEZONE", "UTC"))

    @property
    def zone(self) -> tzinfo:
        """Resolved :attr:`timezone`."""
        if self.timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)
