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
"""In-memory template for tests and examples.

Implements :class:`~pynosql.data.ports.outbound.TemplatePort`
synchronously over plain dicts, evaluating condition trees, sorts,
skip/limit and projections in Python.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from typing import Any

from pynosql.data.condition import Condition, Operator, freeze_value, like_regex
from pynosql.data.pageable import Sort
from pynosql.data.query import Query
from pynosql.kernel.exceptions import NullArgumentError
from pynosql.mapping.converter import EntityConverter

_MISSING = object()


class InMemoryTemplate:
    """Dict-backed template keeping records per collection in insertion order.

    Every executed query is appended to :attr:`executed` so tests can
    assert on what a repository method produced.

    Usage::

        template = InMemoryTemplate(EntityConverter(entities))
        people = dispatcher.create(PersonRepository, template)
    """

    def __init__(self, converter: EntityConverter) -> None:
        self._converter = converter
        self._collections: dict[str, dict[Any, dict[str, Any]]] = {}
        self.executed: list[Query] = []

    # ------------------------------------------------------------------
    # TemplatePort
    # ------------------------------------------------------------------

    def insert(self, entity: Any) -> Any:
        """Store *entity*, replacing any record with the same id.

        Entities whose id is ``None`` get a generated hex id.
        """
        if entity is None:
            raise NullArgumentError("entity")
        metadata = self._converter.entities.get(type(entity))
        record = self._converter.to_record(entity)
        if metadata.id is not None:
            key = record.get(metadata.id.storage_name)
            if key is None:
                key = uuid.uuid4().hex
                metadata.id.write(entity, key)
                record[metadata.id.storage_name] = key
        else:
            key = uuid.uuid4().hex
        assert metadata.name is not None
        self.put(metadata.name, key, record)
        return entity

    def execute(self, query: Query) -> list[dict[str, Any]]:
        self.executed.append(query)
        records = [r for r in self._collection(query.collection).values() if matches(query.condition, r)]
        records = sort_records(records, query.sorts)
        start = query.first_result or 0
        end = None if query.max_result is None else start + query.max_result
        records = records[start:end]
        if query.projection:
            return [{name: lookup(r, name) for name in query.projection} for r in records]
        return [dict(r) for r in records]

    def delete(self, collection: str, id: Any) -> None:
        self._collection(collection).pop(id, None)

    def find(self, collection: str, id: Any) -> dict[str, Any] | None:
        record = self._collection(collection).get(id)
        return None if record is None else dict(record)

    def exists(self, collection: str, id: Any) -> bool:
        return id in self._collection(collection)

    def count(self, collection: str) -> int:
        return len(self._collection(collection))

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def put(self, collection: str, key: Any, record: Mapping[str, Any]) -> None:
        """Store a raw record under *key*."""
        self._collections.setdefault(collection, {})[key] = dict(record)

    def records(self, collection: str) -> list[dict[str, Any]]:
        """Stored records of *collection*, in insertion order."""
        return [dict(r) for r in self._collection(collection).values()]

    def clear(self) -> None:
        self._collections.clear()
        self.executed.clear()

    def _collection(self, collection: str) -> dict[Any, dict[str, Any]]:
        return self._collections.get(collection, {})


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def lookup(record: Mapping[str, Any], path: str) -> Any:
    """Read a dotted storage path, ``None`` when any segment is missing."""
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def matches(condition: Condition | None, record: Mapping[str, Any]) -> bool:
    """Evaluate *condition* against *record*; ``None`` matches everything."""
    if condition is None:
        return True
    op = condition.operator
    if op is Operator.AND:
        return all(matches(c, record) for c in condition.children)
    if op is Operator.OR:
        return any(matches(c, record) for c in condition.children)
    if op is Operator.NOT:
        return not matches(condition.children[0], record)

    assert condition.field is not None
    value = freeze_value(lookup(record, condition.field))
    expected = condition.value
    if op is Operator.EQUALS:
        return value == expected
    if op is Operator.IN:
        return value in expected
    if value is None:
        return False
    if op is Operator.GREATER_THAN:
        return value > expected
    if op is Operator.GREATER_EQUALS:
        return value >= expected
    if op is Operator.LESSER_THAN:
        return value < expected
    if op is Operator.LESSER_EQUALS:
        return value <= expected
    if op is Operator.BETWEEN:
        low, high = expected
        return low <= value <= high
    if op is Operator.LIKE:
        return isinstance(value, str) and re.match(like_regex(expected), value, re.DOTALL) is not None
    raise ValueError(f"Unknown operator: {op}")


def sort_records(records: list[dict[str, Any]], sorts: tuple[Sort, ...]) -> list[dict[str, Any]]:
    """Stable multi-key sort; ``None`` values sort first in ascending order."""
    ordered = list(records)
    for sort in reversed(sorts):
        ordered.sort(
            key=lambda r: (lookup(r, sort.field) is not None, lookup(r, sort.field)),
            reverse=not sort.is_ascending,
        )
    return ordered
