# Copyright 2026 Firefly Software Solutions Inc.
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
"""LoggingPort: how PyNoSQL's logging is set up and tuned at runtime.

Library modules always log through ``structlog.get_logger("pynosql.<area>")``.
A port implementation decides where those events go. Repository
dispatch logs every compiled query on ``pynosql.data`` at DEBUG, which
:meth:`LoggingPort.show_queries` switches on and off.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pynosql.core.config import Config


@runtime_checkable
class LoggingPort(Protocol):
    """Logging contract for PyNoSQL."""

    def configure(self, config: Config) -> None:
        """Apply the ``pynosql.logging`` section: levels, format and ``show_queries``."""
        ...

    def get_logger(self, name: str) -> Any: ...

    def set_level(self, name: str, level: str) -> None: ...

    def show_queries(self, enabled: bool = True) -> None:
        """Log (or stop logging) the query behind every repository call."""
        ...
