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
"""MongoDB query compiler: translates a :class:`Query` into pymongo arguments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pymongo

from pynosql.data.condition import Condition, Operator, like_regex
from pynosql.data.pageable import Sort
from pynosql.data.query import Query

_COMPARISONS = {
    Operator.GREATER_THAN: "$gt",
    Operator.GREATER_EQUALS: "$gte",
    Operator.LESSER_THAN: "$lt",
    Operator.LESSER_EQUALS: "$lte",
}


@dataclass(frozen=True)
class MongoQuery:
    """Arguments for ``collection.find()`` derived from one :class:`Query`.

    As in pymongo, a ``limit`` of 0 means no limit.
    """

    collection: str
    filter: dict[str, Any] = field(default_factory=dict)
    sort: list[tuple[str, int]] = field(default_factory=list)
    skip: int = 0
    limit: int = 0
    projection: dict[str, int] | None = None


class MongoQueryCompiler:
    """Compile store-agnostic queries into MongoDB filter documents.

    Translation rules:

    * ``EQUALS`` -> ``{field: value}``
    * ``GREATER_THAN`` and friends -> ``$gt`` / ``$gte`` / ``$lt`` / ``$lte``
    * ``LIKE`` -> anchored ``$regex`` (``%`` = ``.*``, ``_`` = ``.``)
    * ``IN`` -> ``$in``; ``BETWEEN`` -> ``$gte`` + ``$lte``
    * ``AND`` / ``OR`` -> ``$and`` / ``$or``; ``NOT`` -> ``$nor``
    """

    def compile(self, query: Query) -> MongoQuery:
        projection: dict[str, int] | None = None
        if query.projection:
            projection = {name: 1 for name in query.projection}
            if "_id" not in projection:
                projection["_id"] = 0
        return MongoQuery(
            collection=query.collection,
            filter=self.build_filter(query.condition),
            sort=self.build_sort(query.sorts),
            skip=query.first_result or 0,
            limit=query.max_result or 0,
            projection=projection,
        )

    def build_filter(self, condition: Condition | None) -> dict[str, Any]:
        """Build a MongoDB filter document; ``None`` matches every document."""
        if condition is None:
            return {}
        op = condition.operator
        if op is Operator.AND:
            return {"$and": [self.build_filter(c) for c in condition.children]}
        if op is Operator.OR:
            return {"$or": [self.build_filter(c) for c in condition.children]}
        if op is Operator.NOT:
            return {"$nor": [self.build_filter(condition.children[0])]}

        field_name = condition.field
        value = _to_bson(condition.value)
        if op is Operator.EQUALS:
            return {field_name: value}
        if op in _COMPARISONS:
            return {field_name: {_COMPARISONS[op]: value}}
        if op is Operator.LIKE:
            return {field_name: {"$regex": like_regex(str(value)), "$options": "s"}}
        if op is Operator.IN:
            return {field_name: {"$in": value}}
        if op is Operator.BETWEEN:
            return {field_name: {"$gte": value[0], "$lte": value[1]}}

        raise ValueError(f"Unknown operator: {op}")

    @staticmethod
    def build_sort(sorts: tuple[Sort, ...]) -> list[tuple[str, int]]:
        """Build a pymongo sort specification."""
        return [(s.field, pymongo.ASCENDING if s.is_ascending else pymongo.DESCENDING) for s in sorts]


def _to_bson(value: Any) -> Any:
    """Frozen condition values back to BSON arrays."""
    if isinstance(value, (tuple, frozenset)):
        return [_to_bson(item) for item in value]
    return value
