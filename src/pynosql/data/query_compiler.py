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
"""Query method compiler: turns a :class:`ParsedQuery` into a :class:`QueryPlan`.

A plan is built once per repository method. At call time it receives the
bound arguments and produces an immutable :class:`~pynosql.data.query.Query`;
no method-name parsing or metadata lookup happens per call.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pynosql.data.condition import Condition
from pynosql.data.pageable import Direction, PageRequest, Sort
from pynosql.data.query import Query
from pynosql.data.query_parser import FieldPredicate, ParsedQuery
from pynosql.kernel.exceptions import RepositoryDefinitionError
from pynosql.mapping.metadata import EntityMetadata

ConditionFactory = Callable[[Sequence[Any], Mapping[str, Any]], "Condition | None"]


def _no_condition(values: Sequence[Any], params: Mapping[str, Any]) -> Condition | None:
    return None


@dataclass(frozen=True)
class QueryPlan:
    """Everything needed to build the query of one repository method.

    Attributes:
        metadata: Metadata of the repository's entity.
        condition_factory: Builds the condition from the positional values
            and the named arguments of a call.
        sorts: Sorts derived from the method declaration (storage names).
        base_condition: Condition AND-ed into every query, used to restrict
            a subtype repository to its discriminator value.
        projection: Storage names to return, empty for whole records.
    """

    metadata: EntityMetadata
    condition_factory: ConditionFactory = _no_condition
    sorts: tuple[Sort, ...] = ()
    base_condition: Condition | None = None
    projection: tuple[str, ...] = ()

    @property
    def collection(self) -> str:
        assert self.metadata.name is not None
        return self.metadata.name

    def build(
        self,
        values: Sequence[Any] = (),
        params: Mapping[str, Any] | None = None,
        sorts: Iterable[Sort] = (),
        page_request: PageRequest | None = None,
    ) -> Query:
        """Build the query for one call.

        Sorts passed at call time (directly or through *page_request*) come
        first and replace declared sorts on the same field.
        """
        condition = self.condition_factory(values, params or {})
        if self.base_condition is not None:
            condition = self.base_condition if condition is None else Condition.and_(condition, self.base_condition)

        dynamic = [*(page_request.sorts if page_request is not None else ()), *sorts]
        merged = [Sort(self.metadata.column_name(s.field), s.direction) for s in dynamic]
        seen = {s.field for s in merged}
        merged.extend(s for s in self.sorts if s.field not in seen)

        query = Query.of(self.collection, condition, merged, projection=self.projection)
        if page_request is not None:
            query = query.with_page(page_request)
        return query

    def with_projection(self, projection: Iterable[str]) -> QueryPlan:
        return QueryPlan(self.metadata, self.condition_factory, self.sorts, self.base_condition, tuple(projection))

    def restricted_to(self, base_condition: Condition | None) -> QueryPlan:
        return QueryPlan(self.metadata, self.condition_factory, self.sorts, base_condition, self.projection)


class QueryMethodCompiler:
    """Compile a :class:`ParsedQuery` into a :class:`QueryPlan`.

    Field names are translated to storage names through the entity metadata;
    arguments bind positionally in predicate order. ``_and_`` binds tighter
    than ``_or_``::

        find_by_a_or_b_and_c  ->  OR(EQUALS(a), AND(EQUALS(b), EQUALS(c)))
    """

    def compile(self, parsed: ParsedQuery, metadata: EntityMetadata, method_name: str = "") -> QueryPlan:
        predicates = [(metadata.column_name(p.field_name), p) for p in parsed.predicates]
        connectors = list(parsed.connectors)
        if len(connectors) != max(len(predicates) - 1, 0):
            raise RepositoryDefinitionError(method_name, "predicates and connectors do not line up")
        sorts = tuple(
            Sort(metadata.column_name(o.field_name), Direction.DESC if o.direction == "desc" else Direction.ASC)
            for o in parsed.order_clauses
        )
        if not predicates:
            return QueryPlan(metadata=metadata, sorts=sorts)

        def condition_factory(values: Sequence[Any], params: Mapping[str, Any]) -> Condition:
            return self._build_condition(predicates, connectors, values)

        return QueryPlan(metadata=metadata, condition_factory=condition_factory, sorts=sorts)

    # ------------------------------------------------------------------
    # Condition building
    # ------------------------------------------------------------------

    @staticmethod
    def _build_clause(
        column: str, predicate: FieldPredicate, args: Sequence[Any], arg_idx: int,
    ) -> tuple[Condition, int]:
        """Build a single condition from a predicate.

        Returns:
            A tuple of ``(condition, new_arg_index)``.
        """
        op = predicate.operator

        if op == "eq":
            return Condition.eq(column, args[arg_idx]), arg_idx + 1
        if op == "not":
            return Condition.not_(Condition.eq(column, args[arg_idx])), arg_idx + 1
        if op == "gt":
            return Condition.gt(column, args[arg_idx]), arg_idx + 1
        if op == "gte":
            return Condition.gte(column, args[arg_idx]), arg_idx + 1
        if op == "lt":
            return Condition.lt(column, args[arg_idx]), arg_idx + 1
        if op == "lte":
            return Condition.lte(column, args[arg_idx]), arg_idx + 1
        if op == "like":
            return Condition.like(column, args[arg_idx]), arg_idx + 1
        if op == "containing":
            return Condition.like(column, f"%{args[arg_idx]}%"), arg_idx + 1
        if op == "starts_with":
            return Condition.like(column, f"{args[arg_idx]}%"), arg_idx + 1
        if op == "ends_with":
            return Condition.like(column, f"%{args[arg_idx]}"), arg_idx + 1
        if op == "in":
            return Condition.in_(column, args[arg_idx]), arg_idx + 1
        if op == "not_in":
            return Condition.not_(Condition.in_(column, args[arg_idx])), arg_idx + 1
        if op == "between":
            return Condition.between(column, args[arg_idx], args[arg_idx + 1]), arg_idx + 2
        if op == "is_null":
            return Condition.eq(column, None), arg_idx
        if op == "is_not_null":
            return Condition.not_(Condition.eq(column, None)), arg_idx
        if op == "true":
            return Condition.eq(column, True), arg_idx
        if op == "false":
            return Condition.eq(column, False), arg_idx

        raise ValueError(f"Unknown operator: {op}")

    def _build_condition(
        self, predicates: list[tuple[str, FieldPredicate]], connectors: list[str], args: Sequence[Any],
    ) -> Condition:
        groups: list[list[Condition]] = [[]]
        arg_idx = 0
        for i, (column, predicate) in enumerate(predicates):
            clause, arg_idx = self._build_clause(column, predicate, args, arg_idx)
            if i > 0 and connectors[i - 1] == "or":
                groups.append([])
            groups[-1].append(clause)

        terms = [group[0] if len(group) == 1 else Condition.and_(*group) for group in groups]
        return terms[0] if len(terms) == 1 else Condition.or_(*terms)
