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
"""Sort specifications and page requests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pynosql.kernel.exceptions import InvalidPageError, InvalidQueryError


class Direction(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class Sort:
    """A single sort order: field name + direction.

    Inside a :class:`~pynosql.data.query.Query` the field is a storage
    name. In a :class:`PageRequest` or a repository ``Sort`` argument it is
    the entity field name and is translated when the query is built.
    """

    field: str
    direction: Direction = Direction.ASC

    def __post_init__(self) -> None:
        if not self.field:
            raise InvalidQueryError("Sort requires a field name")

    @staticmethod
    def asc(field: str) -> Sort:
        """Create an ascending order for the given field."""
        return Sort(field, Direction.ASC)

    @staticmethod
    def desc(field: str) -> Sort:
        """Create a descending order for the given field."""
        return Sort(field, Direction.DESC)

    @staticmethod
    def of(field: str, direction: Direction | str) -> Sort:
        return Sort(field, Direction(str(direction).upper()))

    @property
    def is_ascending(self) -> bool:
        return self.direction is Direction.ASC

    def reversed(self) -> Sort:
        """Return the same field with the opposite direction."""
        return Sort(self.field, Direction.DESC if self.is_ascending else Direction.ASC)

    def __str__(self) -> str:
        return f"{self.field} {self.direction}"


@dataclass(frozen=True)
class PageRequest:
    """Pagination request: 1-based page number, page size, and sort overrides."""

    page: int = 1
    size: int = 10
    sorts: tuple[Sort, ...] = ()

    def __post_init__(self) -> None:
        if self.page < 1:
            raise InvalidPageError(f"page must be >= 1, got {self.page}")
        if self.size < 1:
            raise InvalidPageError(f"size must be >= 1, got {self.size}")

    @staticmethod
    def of(page: int, size: int, *sorts: Sort) -> PageRequest:
        """Create a request for the given page, size, and optional sorts."""
        return PageRequest(page=page, size=size, sorts=tuple(sorts))

    @staticmethod
    def of_size(size: int) -> PageRequest:
        """First page with the given size."""
        return PageRequest(page=1, size=size)

    @property
    def skip(self) -> int:
        """Number of records before the first one of this page."""
        return self.size * (self.page - 1)

    def sorted_by(self, *sorts: Sort) -> PageRequest:
        """Return a copy of this request with *sorts* as its sort overrides."""
        return PageRequest(page=self.page, size=self.size, sorts=tuple(sorts))

    def next(self) -> PageRequest:
        """Return the request for the next page."""
        return PageRequest(page=self.page + 1, size=self.size, sorts=self.sorts)

    def previous(self) -> PageRequest:
        """Return the request for the previous page.

        Raises:
            InvalidPageError: On the first page.
        """
        if self.page == 1:
            raise InvalidPageError("There is no page before page 1")
        return PageRequest(page=self.page - 1, size=self.size, sorts=self.sorts)

    def __str__(self) -> str:
        text = f"page={self.page}, size={self.size}"
        if self.sorts:
            text += f", sorts=[{', '.join(str(s) for s in self.sorts)}]"
        return f"PageRequest({text})"
