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
Pytest configuration and fixtures for sprintboard tests.
"""

import pytest

from tests.utils import FrozenClock


@pytest.fixture
def clock():
    """Frozen clock starting at 2024-01-15 09:00 UTC."""
    return FrozenClock()


@pytest.fixture(autouse=True)
def clean_sprintboard_env(monkeypatch):
    """Keep SPRINTBOARD_* variables from the developer's shell out of tests."""
    for name in (
        "SPRINTBOARD_HOST",
        "SPRINTBOARD_PORT",
        "SPRINTBOARD_DATABASE_URL",
        "SPRINTBOARD_LOG_LEVEL",
        "SPRINTBOARD_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)
