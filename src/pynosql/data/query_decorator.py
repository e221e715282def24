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
"""Custom ``@query`` support: JSON filter documents compiled to condition trees.

The filter is a JSON object whose keys are entity field names (dotted for
embedded fields) and whose values are either literals (equality) or
operator objects. Named parameters use the ``:param_name`` convention
inside JSON string values.

Usage::

    from pynosql.data import query

    class PersonRepository(Repository[Person, str]):

        @query('{"age": {"$gt": ":age"}, "active": true}')
        async def adults_older_than(self, age: int) -> list[Person]: ...

        @query('{"$or": [{"name": ":name"}, {"nickname": ":name"}]}')
        async def called(self, name: str) -> Person | None: ...

Supported operators: ``$eq $ne $gt $gte $lt $lte $like $in $between``
on fields and ``$and $or $not`` between documents.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Collection, Mapping, Sequence
from typing import Any

from pynosql.data.condition import Condition
from pynosql.data.query_compiler import QueryPlan
from pynosql.kernel.exceptions import InvalidQueryError, RepositoryDefinitionError
from pynosql.mapping.metadata import EntityMetadata

_QUERY_ATTR = "__pynosql_query__"
_PLACEHOLDER_RE = re.compile(r":([A-Za-z_]\w*)")

_Builder = Callable[[Mapping[str, Any]], Condition]


def query(filter_document: str) -> Callable:
    """Mark a repository method with a custom JSON filter document.

    Args:
        filter_document: A JSON object, e.g. ``'{"email": ":email"}'``.

    Returns:
        A decorator that stores the filter on the wrapped function via
        ``__pynosql_query__``.
    """

    def decorator(func: Callable) -> Callable:
        setattr(func, _QUERY_ATTR, filter_document)
        return func

    return decorator


def query_filter(func: Any) -> str | None:
    """Return the filter attached by :func:`query`, or ``None``."""
    return getattr(func, _QUERY_ATTR, None)


def _substitute_params(obj: Any, params: Mapping[str, Any]) -> Any:
    """Recursively replace ``:param`` placeholders inside a JSON value.

    - A string that is exactly ``":param_name"`` is replaced by the value,
      preserving its Python type.
    - A string that contains ``:param_name`` among other text gets that
      portion replaced with ``str(value)``. Each placeholder is
      matched on its whole name, so ``:name`` never eats into ``:name_prefix``.
    - Lists are recursed into; other types pass through unchanged.
    """
    if isinstance(obj, list):
        return [_substitute_params(item, params) for item in obj]
    if isinstance(obj, str):
        match = _PLACEHOLDER_RE.fullmatch(obj.strip())
        if match and match.group(1) in params:
            return params[match.group(1)]
        return _PLACEHOLDER_RE.sub(lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0), obj)
    return obj


def _pair(value: Any) -> tuple[Any, Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
        raise InvalidQueryError(f"$between requires a [low, high] pair, got {value!r}")
    return value[0], value[1]


_FIELD_OPERATORS: dict[str, Callable[[str, Any], Condition]] = {
    "$eq": Condition.eq,
    "$ne": lambda field, value: Condition.not_(Condition.eq(field, value)),
    "$gt": Condition.gt,
    "$gte": Condition.gte,
    "$lt": Condition.lt,
    "$lte": Condition.lte,
    "$like": Condition.like,
    "$in": Condition.in_,
    "$between": lambda field, value: Condition.between(field, *_pair(value)),
}


class CustomQueryCompiler:
    """Compile ``@query``-decorated methods into :class:`QueryPlan` objects.

    The JSON document is parsed and validated once; each call only
    substitutes parameters into the leaf values.
    """

    def compile(
        self,
        method: Callable[..., Any],
        metadata: EntityMetadata,
        parameter_names: Collection[str] = (),
    ) -> QueryPlan:
        """Compile *method*'s filter document.

        Raises:
            RepositoryDefinitionError: On invalid JSON, unknown operators or
                fields, or placeholders that name no parameter.
        """
        name = method.__name__
        filter_document = query_filter(method)
        if filter_document is None:
            raise RepositoryDefinitionError(name, "method is not decorated with @query")
        try:
            template = json.loads(filter_document)
        except json.JSONDecodeError as exc:
            raise RepositoryDefinitionError(name, f"invalid JSON filter: {exc.msg}") from exc
        if not isinstance(template, dict):
            raise RepositoryDefinitionError(name, "the filter must be a JSON object")

        for placeholder in _placeholders(template):
            if placeholder not in parameter_names:
                raise RepositoryDefinitionError(name, f"':{placeholder}' does not name a method parameter")

        builder = _DocumentCompiler(name, metadata).document(template)
        if builder is None:
            return QueryPlan(metadata=metadata)

        def condition_factory(values: Sequence[Any], params: Mapping[str, Any]) -> Condition:
            return builder(params)

        return QueryPlan(metadata=metadata, condition_factory=condition_factory)


class _DocumentCompiler:
    def __init__(self, method: str, metadata: EntityMetadata) -> None:
        self._method = method
        self._metadata = metadata
        self._paths = set(metadata.field_paths())

    def document(self, doc: Mapping[str, Any]) -> _Builder | None:
        builders = [self._entry(key, value) for key, value in doc.items()]
        return _combine(builders)

    def _entry(self, key: str, value: Any) -> _Builder:
        if key in ("$and", "$or"):
            if not isinstance(value, list) or not value:
                raise RepositoryDefinitionError(self._method, f"{key} requires a non-empty list of documents")
            children = [self._sub_document(key, item) for item in value]
            combine = Condition.and_ if key == "$and" else Condition.or_
            return lambda params: combine(*(child(params) for child in children))
        if key == "$not":
            child = self._sub_document(key, value)
            return lambda params: Condition.not_(child(params))
        if key.startswith("$"):
            raise RepositoryDefinitionError(self._method, f"unknown operator '{key}'")

        if key not in self._paths:
            raise RepositoryDefinitionError(self._method, f"unknown field '{key}'")
        column = self._metadata.column_name(key)

        if isinstance(value, dict) and value and all(k.startswith("$") for k in value):
            return _combine([self._operator(column, op, operand) for op, operand in value.items()])  # type: ignore[return-value]
        return self._leaf(Condition.eq, column, value)

    def _sub_document(self, key: str, value: Any) -> _Builder:
        if not isinstance(value, dict):
            raise RepositoryDefinitionError(self._method, f"{key} operands must be JSON objects")
        builder = self.document(value)
        if builder is None:
            raise RepositoryDefinitionError(self._method, f"{key} operands must not be empty")
        return builder

    def _operator(self, column: str, op: str, operand: Any) -> _Builder:
        factory = _FIELD_OPERATORS.get(op)
        if factory is None:
            raise RepositoryDefinitionError(self._method, f"unknown operator '{op}'")
        return self._leaf(factory, column, operand)

    @staticmethod
    def _leaf(factory: Callable[[str, Any], Condition], column: str, operand: Any) -> _Builder:
        return lambda params: factory(column, _substitute_params(operand, params))


def _combine(builders: list[_Builder]) -> _Builder | None:
    if not builders:
        return None
    if len(builders) == 1:
        return builders[0]
    return lambda params: Condition.and_(*(b(params) for b in builders))


def _placeholders(obj: Any) -> set[str]:
    if isinstance(obj, dict):
        return set().union(*(_placeholders(v) for v in obj.values())) if obj else set()
    if isinstance(obj, list):
        return set().union(*(_placeholders(v) for v in obj)) if obj else set()
    if isinstance(obj, str):
        return {match.group(1) for match in _PLACEHOLDER_RE.finditer(obj)}
    return set()
