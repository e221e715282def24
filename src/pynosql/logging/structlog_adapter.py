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
"""StructlogAdapter: default LoggingPort implementation using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from pynosql.core.config import Config
from pynosql.data.condition import Condition
from pynosql.data.pageable import PageRequest, Sort
from pynosql.data.query import Query

_QUERY_LOGGER = "pynosql.data"

_QUERY_TYPES = (Query, Condition, Sort, PageRequest)


def render_query_values(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Structlog processor rendering query model values with their compact ``str`` form."""
    for key, value in event_dict.items():
        if isinstance(value, _QUERY_TYPES):
            event_dict[key] = str(value)
        elif isinstance(value, tuple) and value and all(isinstance(v, Sort) for v in value):
            event_dict[key] = ", ".join(str(v) for v in value)
    return event_dict


class StructlogAdapter:
    """Default logging adapter backed by structlog.

    Reads ``pynosql.logging.level.root``, per-module levels under
    ``pynosql.logging.level.<module>``, ``pynosql.logging.format``
    (``console`` or ``json``) and ``pynosql.logging.show_queries``, which
    lowers the ``pynosql.data`` logger to DEBUG so that every compiled
    query is logged when a repository method runs.
    """

    def __init__(self) -> None:
        self._root_level: str = "INFO"
        self._format: str = "console"
        self._module_levels: dict[str, str] = {}
        self._show_queries: bool = False

    def configure(self, config: Config) -> None:
        """Configure structlog from the logging section of config."""
        level_section = dict(config.get_section("pynosql.logging.level"))
        self._root_level = str(level_section.pop("root", "INFO")).upper()
        self._module_levels = {k: str(v).upper() for k, v in level_section.items()}
        self._format = str(config.get("pynosql.logging.format", "console")).lower()
        self._show_queries = str(config.get("pynosql.logging.show_queries", False)).lower() in ("true", "1", "yes")

        self._setup_structlog()
        self._apply_levels()

    def get_logger(self, name: str) -> Any:
        """Get a structlog BoundLogger by name."""
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        """Set the log level for a specific stdlib logger."""
        log_level = getattr(logging, level.upper(), logging.INFO)
        logging.getLogger(name).setLevel(log_level)

    def show_queries(self, enabled: bool = True) -> None:
        """Switch DEBUG query logging on ``pynosql.data`` on or off.

        Switching off restores the configured ``pynosql.data`` level, or
        lets the logger inherit the root level again.
        """
        self._show_queries = enabled
        self.set_level(_QUERY_LOGGER, "DEBUG" if enabled else self._module_levels.get(_QUERY_LOGGER, "NOTSET"))

    def _setup_structlog(self) -> None:
        log_level = getattr(logging, self._root_level, logging.INFO)

        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            render_query_values,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
        ]

        if self._format == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer())

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=log_level,
            force=True,
        )

    def _apply_levels(self) -> None:
        for module, level in self._module_levels.items():
            self.set_level(module, level)
        if self._show_queries and _QUERY_LOGGER not in self._module_levels:
            self.set_level(_QUERY_LOGGER, "DEBUG")
