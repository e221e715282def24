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
"""The store-agnostic query handed to a template.

Usage::

    query = Query.of("Person", Condition.gt("age", 30), (Sort.asc("name"),), max_result=10)

    # Fluent equivalent
    query = select().from_("Person").where(Condition.gt("age", 30)).order_by(Sort.asc("name")).limit(10).build()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from pynosql.data.condition import Condition
from pynosql.data.pageable import PageRequest, Sort
from pynosql.kernel.exceptions import InvalidQueryError


@dataclass(frozen=True)
class Query:
    """An immutable select request against one collection.

    Attributes:
        collection: Storage-native collection name.
        condition: Optional root of the condition tree.
        sorts: Sort orders, first wins.
        first_result: Number of records to skip, ``None`` for none.
        max_result: Maximum number of records, ``None`` for unbounded.
        projection: Storage field names to return, empty for all fields.
    """

    collection: str
    condition: Condition | None = None
    sorts: tuple[Sort, ...] = ()
    first_result: int | None = None
    max_result: int | None = None
    projection: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.collection:
            raise InvalidQueryError("Query requires a collection name")
        if self.max_result is not None and self.max_result < 0:
            raise InvalidQueryError(f"max_result must be >= 0, got {self.max_result}")
        if self.first_result is not None and self.first_result < 0:
            raise InvalidQueryError(f"first_result must be >= 0, got {self.first_result}")
        if self.condition is not None and not isinstance(self.condition, Condition):
            raise InvalidQueryError(f"condition must be a Condition, got {self.condition!r}")

    @staticmethod
    def of(
        collection: str,
        condition: Condition | None = None,
        sorts: Iterable[Sort] = (),
        first_result: int | None = None,
        max_result: int | None = None,
        projection: Iterable[str] = (),
    ) -> Query:
        return Query(
            collection=collection,
            condition=condition,
            sorts=tuple(sorts),
            first_result=first_result,
            max_result=max_result,
            projection=tuple(projection),
        )

    def with_page(self, page_request: PageRequest) -> Query:
        """Return a copy bounded to the page described by *page_request*."""
        return Query(
            collection=self.collection,
            condition=self.condition,
            sorts=self.sorts,
            first_result=page_request.skip,
            max_result=page_request.size,
            projection=self.projection,
        )

    def with_max_result(self, max_result: int) -> Query:
        return Query(
            collection=self.collection,
            condition=self.condition,
            sorts=self.sorts,
            first_result=self.first_result,
            max_result=max_result,
            projection=self.projection,
        )

    def __str__(self) -> str:
        parts = [f"from {self.collection}"]
        if self.projection:
            parts.insert(0, f"select {', '.join(self.projection)}")
        if self.condition is not None:
            parts.append(f"where {self.condition}")
        if self.sorts:
            parts.append(f"order by {', '.join(str(s) for s in self.sorts)}")
        if self.first_result:
            parts.append(f"skip {self.first_result}")
        if self.max_result is not None:
            parts.append(f"limit {self.max_result}")
        return " ".join(parts)


class QueryBuilder:
    """Fluent builder for :class:`Query` values."""

    def __init__(self, projection: Iterable[str] = ()) -> None:
        self._projection = tuple(projection)
        self._collection: str | None = None
        self._condition: Condition | None = None
        self._sorts: list[Sort] = []
        self._first_result: int | None = None
        self._max_result: int | None = None

    def from_(self, collection: str) -> QueryBuilder:
        self._collection = collection
        return self

    def where(self, condition: Condition) -> QueryBuilder:
        """Set the condition, AND-ing it with any condition already set."""
        self._condition = condition if self._condition is None else self._condition & condition
        return self

    def order_by(self, *sorts: Sort) -> QueryBuilder:
        self._sorts.extend(sorts)
        return self

    def skip(self, first_result: int) -> QueryBuilder:
        self._first_result = first_result
        return self

    def limit(self, max_result: int) -> QueryBuilder:
        self._max_result = max_result
        return self

    def build(self) -> Query:
        return Query.of(
            self._collection or "",
            self._condition,
            self._sorts,
            self._first_result,
            self._max_result,
            self._projection,
        )


def select(*fields: str) -> QueryBuilder:
    """Start a fluent query, optionally projecting *fields*."""
    return QueryBuilder(fields)
