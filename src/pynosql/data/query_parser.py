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
"""Derived query method parser for Spring Data-style repositories.

Parses method names like ``find_by_status_and_role_order_by_name_desc`` into
structured query descriptions that
:class:`~pynosql.data.query_compiler.QueryMethodCompiler` turns into
store-agnostic conditions.

Grammar
-------
**Prefixes:** ``find_by``, ``count_by``, ``exists_by``, ``delete_by``

**Connectors:** ``_and_``, ``_or_`` (AND binds tighter than OR)

**Operators (suffix on field name):**
    - *(none)* or ``_equals`` = equals
    - ``_not`` = not equals
    - ``_greater_than`` / ``_greater_than_equal`` = ``>`` / ``>=``
    - ``_less_than`` / ``_less_than_equal`` = ``<`` / ``<=``
    - ``_between`` = BETWEEN (takes 2 args)
    - ``_like`` = LIKE
    - ``_containing`` / ``_starts_with`` / ``_ends_with`` = LIKE with ``%`` added
    - ``_in`` / ``_not_in`` = IN / NOT IN (takes an iterable arg)
    - ``_is_null`` / ``_is_not_null`` = equals / not equals ``None`` (no arg)
    - ``_true`` / ``_false`` = equals ``True`` / ``False`` (no arg)

**Ordering suffix:** ``_order_by_{field}[_asc|_desc]`` (can chain multiple)

Fields are matched against the entity's field paths, longest name first, so ``find_by_first_name_and_age`` resolves the field
``first_name``. Embedded fields are addressed as ``owner_child``
(``find_by_address_city``) and resolve to the dotted path
``address.city``. A field name that itself contains ``_and_`` or ``_or_``
is matched as a whole when it is the longest candidate.

Example::

    parser = QueryMethodParser()
    parsed = parser.parse("find_by_age_greater_than_and_name", ["name", "age"])
    # ParsedQuery(prefix="find_by",
    #             predicates=[FieldPredicate("age", "gt"), FieldPredicate("name", "eq")],
    #             connectors=["and"])
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from pynosql.kernel.exceptions import RepositoryDefinitionError

# Operator suffixes ordered longest-first to prevent partial matches.
# E.g., ``_greater_than_equal`` must be checked before ``_greater_than``.
OPERATORS: dict[str, str] = {
    "_greater_than_equal": "gte",
    "_less_than_equal": "lte",
    "_greater_than": "gt",
    "_less_than": "lt",
    "_is_not_null": "is_not_null",
    "_is_null": "is_null",
    "_starts_with": "starts_with",
    "_ends_with": "ends_with",
    "_containing": "containing",
    "_between": "between",
    "_not_in": "not_in",
    "_equals": "eq",
    "_false": "false",
    "_true": "true",
    "_like": "like",
    "_not": "not",
    "_in": "in",
}

# Number of positional arguments each operator consumes.
ARITY: dict[str, int] = {
    "between": 2,
    "is_null": 0,
    "is_not_null": 0,
    "true": 0,
    "false": 0,
}

_CONNECTORS = ("and", "or")
_DIRECTIONS = ("asc", "desc")

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class FieldPredicate:
    """A single field predicate parsed from a method name."""

    field_name: str
    operator: str = "eq"  # default is equals

    @property
    def arity(self) -> int:
        return ARITY.get(self.operator, 1)


@dataclass
class OrderClause:
    """A single order-by clause."""

    field_name: str
    direction: str = "asc"


@dataclass
class ParsedQuery:
    """Result of parsing a query method name."""

    prefix: str  # find_by, count_by, exists_by, delete_by
    predicates: list[FieldPredicate] = field(default_factory=list)
    connectors: list[str] = field(default_factory=list)  # "and" or "or" between predicates
    order_clauses: list[OrderClause] = field(default_factory=list)

    @property
    def arity(self) -> int:
        """Number of positional arguments the predicates consume."""
        return sum(p.arity for p in self.predicates)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class QueryMethodParser:
    """Parse method names into structured query descriptions.

    Examples, given the entity's field paths as the second argument::

        parse("find_by_email")                         -> find where email = ?
        parse("find_by_status_and_role")               -> find where status = ? AND role = ?
        parse("find_by_age_greater_than")              -> find where age > ?
        parse("find_by_name_order_by_created_at_desc") -> find where name = ? ORDER BY created_at DESC
        parse("count_by_active")                       -> count where active = ?
        parse("exists_by_email")                       -> exists where email = ?
    """

    PREFIXES = ("find_by_", "count_by_", "exists_by_", "delete_by_")

    def parse(self, method_name: str, field_names: Iterable[str]) -> ParsedQuery:
        """Parse a method name into a :class:`ParsedQuery`.

        Args:
            method_name: The repository method name.
            field_names: The entity's field paths. Every field in the name
                must resolve to one of them.

        Raises:
            RepositoryDefinitionError: When the name does not follow the grammar.
        """
        prefix: str | None = None
        body = method_name
        for p in self.PREFIXES:
            if method_name.startswith(p):
                prefix = p.rstrip("_")
                body = method_name[len(p) :]
                break
        if prefix is None:
            raise RepositoryDefinitionError(method_name, f"name must start with one of {self.PREFIXES}")

        order_body = ""
        if body.startswith("order_by_"):
            order_body, body = body[len("order_by_") :], ""
        else:
            order_match = re.search(r"_order_by_(.+)$", body)
            if order_match:
                order_body = order_match.group(1)
                body = body[: order_match.start()]

        candidates = _candidates(field_names)
        predicates, connectors = self._match_predicates(method_name, body, candidates)
        order_clauses = self._match_order(method_name, order_body, candidates)

        return ParsedQuery(
            prefix=prefix,
            predicates=predicates,
            connectors=connectors,
            order_clauses=order_clauses,
        )

    @staticmethod
    def _match_predicates(
        method_name: str, body: str, candidates: list[tuple[tuple[str, ...], str]]
    ) -> tuple[list[FieldPredicate], list[str]]:
        if not body:
            return [], []
        tokens = body.split("_")
        predicates: list[FieldPredicate] = []
        connectors: list[str] = []
        i = 0
        while True:
            path, i = _match_field(method_name, tokens, i, candidates)
            operator, i = _match_operator(method_name, tokens, i)
            predicates.append(FieldPredicate(field_name=path, operator=operator))
            if i == len(tokens):
                return predicates, connectors
            connectors.append(tokens[i])
            i += 1
            if i == len(tokens):
                raise RepositoryDefinitionError(method_name, f"dangling '{connectors[-1]}' connector")

    @staticmethod
    def _match_order(
        method_name: str, order_body: str, candidates: list[tuple[tuple[str, ...], str]]
    ) -> list[OrderClause]:
        clauses: list[OrderClause] = []
        if not order_body:
            return clauses
        tokens = order_body.split("_")
        i = 0
        while i < len(tokens):
            path, i = _match_field(method_name, tokens, i, candidates)
            direction = "asc"
            if i < len(tokens) and tokens[i] in _DIRECTIONS:
                direction = tokens[i]
                i += 1
            clauses.append(OrderClause(field_name=path, direction=direction))
        return clauses


# ---------------------------------------------------------------------------
# Token matching helpers
# ---------------------------------------------------------------------------

_OPERATOR_TOKENS: list[tuple[tuple[str, ...], str]] = sorted(
    ((tuple(suffix.lstrip("_").split("_")), op) for suffix, op in OPERATORS.items()),
    key=lambda item: -len(item[0]),
)


def _candidates(field_names: Iterable[str]) -> list[tuple[tuple[str, ...], str]]:
    """Tokenize field paths, longest first; direct fields win ties over embedded paths."""
    tokenized = [(tuple(name.replace(".", "_").split("_")), name) for name in field_names]
    return sorted(tokenized, key=lambda item: (-len(item[0]), "." in item[1]))


def _match_field(
    method_name: str, tokens: list[str], i: int, candidates: list[tuple[tuple[str, ...], str]]
) -> tuple[str, int]:
    for field_tokens, path in candidates:
        end = i + len(field_tokens)
        if tuple(tokens[i:end]) == field_tokens:
            return path, end
    remainder = "_".join(tokens[i:])
    raise RepositoryDefinitionError(method_name, f"no entity field matches '{remainder}'")


def _match_operator(method_name: str, tokens: list[str], i: int) -> tuple[str, int]:
    if i == len(tokens) or tokens[i] in _CONNECTORS:
        return "eq", i
    for op_tokens, op in _OPERATOR_TOKENS:
        end = i + len(op_tokens)
        if tuple(tokens[i:end]) == op_tokens and (end == len(tokens) or tokens[end] in _CONNECTORS):
            return op, end
    remainder = "_".join(tokens[i:])
    raise RepositoryDefinitionError(method_name, f"unknown operator '{remainder}'")
