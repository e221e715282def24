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
"""Store-agnostic condition trees.

A :class:`Condition` is either a *leaf* comparing a storage field with a
value, or a *logical* node (AND / OR / NOT) over child conditions.
Conditions are frozen value objects with structural equality; no
normalization is ever applied, so ``~~cond`` stays ``NOT(NOT(cond))``.

Field names inside conditions are storage-native names. Translating
entity field names is the caller's job (see
:class:`~pynosql.data.query_compiler.QueryMethodCompiler`).

Example::

    adults = Condition.gte("age", 18) & Condition.lt("age", 65)
    named = Condition.eq("name", "Ana") | Condition.like("name", "An%")
    cond = adults & ~named
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pynosql.kernel.exceptions import InvalidQueryError


class Operator(StrEnum):
    """Comparison and logical operators understood by every template."""

    EQUALS = "EQUALS"
    GREATER_THAN = "GREATER_THAN"
    GREATER_EQUALS = "GREATER_EQUALS"
    LESSER_THAN = "LESSER_THAN"
    LESSER_EQUALS = "LESSER_EQUALS"
    LIKE = "LIKE"
    IN = "IN"
    BETWEEN = "BETWEEN"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"

    @property
    def is_logical(self) -> bool:
        return self in _LOGICAL


_LOGICAL = frozenset({Operator.AND, Operator.OR, Operator.NOT})


@dataclass(frozen=True)
class Condition:
    """A node of a condition tree.

    Attributes:
        operator: The comparison or logical operator.
        field: Storage field name (leaf nodes only).
        value: Compared value (leaf nodes only), kept hashable: lists are
            stored as tuples. ``IN`` values are tuples, ``BETWEEN`` values
            are ``(low, high)`` tuples.
        children: Ordered child conditions (logical nodes only).
    """

    operator: Operator
    field: str | None = None
    value: Any = None
    children: tuple[Condition, ...] = ()

    def __post_init__(self) -> None:
        if self.operator.is_logical:
            if self.field is not None:
                raise InvalidQueryError(f"{self.operator} conditions do not reference a field")
            if not self.children:
                raise InvalidQueryError(f"{self.operator} requires at least one condition")
            if self.operator is Operator.NOT and len(self.children) != 1:
                raise InvalidQueryError("NOT takes exactly one condition")
            for child in self.children:
                if not isinstance(child, Condition):
                    raise InvalidQueryError(f"{self.operator} children must be conditions, got {child!r}")
            return

        if not self.field:
            raise InvalidQueryError(f"{self.operator} requires a field name")
        if self.children:
            raise InvalidQueryError(f"{self.operator} conditions cannot have children")
        if self.operator is Operator.BETWEEN and (not isinstance(self.value, tuple) or len(self.value) != 2):
            raise InvalidQueryError("BETWEEN requires a (low, high) pair")
        if self.operator is Operator.IN and not isinstance(self.value, tuple):
            raise InvalidQueryError("IN requires a tuple of values")
        object.__setattr__(self, "value", freeze_value(self.value))

    @property
    def is_logical(self) -> bool:
        return self.operator.is_logical

    # ------------------------------------------------------------------
    # Leaf builders
    # ------------------------------------------------------------------

    @staticmethod
    def eq(field: str, value: Any) -> Condition:
        """Equal to."""
        return Condition(Operator.EQUALS, field, value)

    @staticmethod
    def gt(field: str, value: Any) -> Condition:
        """Greater than."""
        return Condition(Operator.GREATER_THAN, field, value)

    @staticmethod
    def gte(field: str, value: Any) -> Condition:
        """Greater than or equal to."""
        return Condition(Operator.GREATER_EQUALS, field, value)

    @staticmethod
    def lt(field: str, value: Any) -> Condition:
        """Less than."""
        return Condition(Operator.LESSER_THAN, field, value)

    @staticmethod
    def lte(field: str, value: Any) -> Condition:
        """Less than or equal to."""
        return Condition(Operator.LESSER_EQUALS, field, value)

    @staticmethod
    def like(field: str, pattern: str) -> Condition:
        """SQL-style LIKE: ``%`` matches any run of characters, ``_`` exactly one."""
        return Condition(Operator.LIKE, field, pattern)

    @staticmethod
    def in_(field: str, values: Iterable[Any]) -> Condition:
        """Value is one of *values*."""
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            raise InvalidQueryError(f"IN requires an iterable of values, got {values!r}")
        return Condition(Operator.IN, field, tuple(values))

    @staticmethod
    def between(field: str, low: Any, high: Any) -> Condition:
        """Inclusive range ``low <= value <= high``."""
        return Condition(Operator.BETWEEN, field, (low, high))

    # ------------------------------------------------------------------
    # Logical builders
    # ------------------------------------------------------------------

    @staticmethod
    def and_(*conditions: Condition) -> Condition:
        """All *conditions* must hold."""
        return Condition(Operator.AND, children=tuple(conditions))

    @staticmethod
    def or_(*conditions: Condition) -> Condition:
        """At least one of *conditions* must hold."""
        return Condition(Operator.OR, children=tuple(conditions))

    @staticmethod
    def not_(condition: Condition) -> Condition:
        """Negate *condition*."""
        return Condition(Operator.NOT, children=(condition,))

    def __and__(self, other: Condition) -> Condition:
        return Condition.and_(self, other)

    def __or__(self, other: Condition) -> Condition:
        return Condition.or_(self, other)

    def __invert__(self) -> Condition:
        return Condition.not_(self)

    def __str__(self) -> str:
        if self.is_logical:
            return f"{self.operator}({', '.join(str(c) for c in self.children)})"
        return f"{self.operator}({self.field}, {self.value!r})"


def freeze_value(value: Any) -> Any:
    """Hashable form of a compared value: lists become tuples, sets frozensets."""
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze_value(item) for item in value)
    return value


def like_regex(pattern: str) -> str:
    r"""Translate a LIKE pattern into an anchored regular expression.

    The pattern ends with ``(?![\s\S])`` rather than ``$``, which would also
    match before a trailing newline. The expression means the same in Python
    and in MongoDB's PCRE.
    """
    translated = "".join(".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern)
    return f"^{translated}(?![\\s\\S])"
