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
"""Repository dispatcher: synthesizes query methods on repository classes.

Every public stub on a :class:`~pynosql.data.repository.Repository`
subclass is classified once, when the class is first analyzed, into a
:class:`QueryMethod` descriptor. The resulting dispatch table is cached
per class and bound onto each repository instance at creation. A stub
that cannot be classified fails the analysis with
:class:`~pynosql.kernel.exceptions.RepositoryDefinitionError`, before any
call is made.

Per call, a bound method:

1. builds the :class:`~pynosql.data.query.Query` from its arguments,
2. hands it to the template,
3. maps every record to an entity (or a projection), in store order,
4. wraps the results in the declared return shape.
"""

from __future__ import annotations

import functools
import inspect
import types
from collections.abc import (
    AsyncGenerator,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Collection,
    Generator,
    Iterable,
    Iterator,
    Mapping,
    Sequence,
)
from collections.abc import Set as AbstractSet
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

import structlog

from pynosql.data.page import Page
from pynosql.data.pageable import PageRequest, Sort
from pynosql.data.projection import is_projection, projection_columns, to_projection
from pynosql.data.query import Query
from pynosql.data.query_compiler import QueryMethodCompiler, QueryPlan
from pynosql.data.query_decorator import CustomQueryCompiler, query_filter
from pynosql.data.query_parser import QueryMethodParser
from pynosql.data.repository import Repository, collect, resolve, subtype_condition
from pynosql.kernel.exceptions import (
    MappingException,
    NonUniqueResultError,
    NullArgumentError,
    PyNoSQLException,
    RepositoryDefinitionError,
    RepositoryException,
)
from pynosql.mapping.converter import EntityConverter
from pynosql.mapping.metadata import EntityMetadata
from pynosql.mapping.registry import EntitiesMetadata

logger = structlog.get_logger("pynosql.data")

R = TypeVar("R", bound=Repository)

_MISSING = object()


class MethodKind(StrEnum):
    FIND = "find"
    COUNT = "count"
    EXISTS = "exists"
    DELETE = "delete"


class ReturnShape(StrEnum):
    """How the mapped results of a query method are returned."""

    SINGLE = "single"
    LIST = "list"
    TUPLE = "tuple"
    SET = "set"
    PAGE = "page"
    ITERATOR = "iterator"
    ASYNC_ITERATOR = "async_iterator"
    BOOL = "bool"
    INT = "int"
    NONE = "none"


_PREFIX_KINDS = {
    "find_by": MethodKind.FIND,
    "count_by": MethodKind.COUNT,
    "exists_by": MethodKind.EXISTS,
    "delete_by": MethodKind.DELETE,
}

_COLLECTION_SHAPES: dict[Any, ReturnShape] = {
    list: ReturnShape.LIST,
    Sequence: ReturnShape.LIST,
    Collection: ReturnShape.LIST,
    tuple: ReturnShape.TUPLE,
    set: ReturnShape.SET,
    frozenset: ReturnShape.SET,
    AbstractSet: ReturnShape.SET,
    Iterator: ReturnShape.ITERATOR,
    Iterable: ReturnShape.ITERATOR,
    Generator: ReturnShape.ITERATOR,
    AsyncIterator: ReturnShape.ASYNC_ITERATOR,
    AsyncIterable: ReturnShape.ASYNC_ITERATOR,
    AsyncGenerator: ReturnShape.ASYNC_ITERATOR,
}


@dataclass(frozen=True)
class QueryMethod:
    """Compiled description of one synthesized repository method.

    Attributes:
        name: Method name.
        kind: Find, count, exists or delete.
        shape: Declared return shape.
        plan: Builds the query from the call arguments.
        signature: The stub's signature, used to bind call arguments.
        value_parameters: Parameters feeding the condition, in order.
        page_request_parameter: Name of the ``PageRequest`` parameter, if any.
        sort_parameters: Names of ``Sort`` parameters, in order.
        projection: Projection type, ``None`` to return entities.
        is_async: Whether the stub was declared ``async def``.
    """

    name: str
    kind: MethodKind
    shape: ReturnShape
    plan: QueryPlan
    signature: inspect.Signature
    value_parameters: tuple[str, ...] = ()
    page_request_parameter: str | None = None
    sort_parameters: tuple[str, ...] = ()
    projection: type | None = None
    is_async: bool = True

    def build_query(self, args: Sequence[Any], kwargs: Mapping[str, Any]) -> tuple[Query, PageRequest | None]:
        """Bind a call's arguments and build its query; also returns the call's page request."""
        bound = self.signature.bind(None, *args, **kwargs)
        bound.apply_defaults()
        arguments = bound.arguments

        sorts: list[Sort] = []
        for name in self.sort_parameters:
            value = arguments.get(name)
            if value is None:
                continue
            if isinstance(value, Sort):
                sorts.append(value)
            else:
                sorts.extend(value)

        page_request = arguments.get(self.page_request_parameter) if self.page_request_parameter else None
        if self.shape is ReturnShape.PAGE and page_request is None:
            raise NullArgumentError(self.page_request_parameter or "page_request")

        params = {name: arguments[name] for name in self.value_parameters}
        query = self.plan.build(list(params.values()), params, sorts, page_request)
        if self.kind is MethodKind.EXISTS:
            return query.with_max_result(1), page_request
        if self.shape is ReturnShape.SINGLE and query.max_result is None:
            return query.with_max_result(2), page_request
        return query, page_request


class RepositoryDispatcher:
    """Analyze repository classes and create repository instances.

    Usage::

        entities = EntitiesMetadata()
        entities.register(Person)
        entities.freeze()

        dispatcher = RepositoryDispatcher(entities)
        people = dispatcher.create(PersonRepository, InMemoryTemplate(EntityConverter(entities)))
        await people.find_by_age_greater_than_and_name_equals(30, "Ana")
    """

    def __init__(self, entities: EntitiesMetadata, converter: EntityConverter | None = None) -> None:
        self._entities = entities
        self._converter = converter or EntityConverter(entities)
        self._query_parser = QueryMethodParser()
        self._query_compiler = QueryMethodCompiler()
        self._custom_compiler = CustomQueryCompiler()
        self._tables: dict[type, Mapping[str, QueryMethod]] = {}

    def create(self, repository_type: type[R], template: Any) -> R:
        """Instantiate *repository_type* on *template* with its query methods bound."""
        table = self.analyze(repository_type)
        repository = repository_type(template, self._entities, self._converter)
        for name, method in table.items():
            original = getattr(repository_type, name)
            setattr(repository, name, self._wrap(method, original).__get__(repository, repository_type))
        logger.info(
            "repository_created",
            repository=repository_type.__qualname__,
            collection=repository.collection,
            methods=len(table),
        )
        return repository

    def analyze(self, repository_type: type) -> Mapping[str, QueryMethod]:
        """Return the cached dispatch table of *repository_type*, building it on first use."""
        table = self._tables.get(repository_type)
        if table is not None:
            return table

        entity_type = getattr(repository_type, "_entity_type", None)
        if entity_type is None:
            raise RepositoryDefinitionError(
                repository_type.__qualname__, "declare the entity type as Repository[Entity, ID]"
            )
        metadata = self._entities.get(entity_type)
        restriction = subtype_condition(self._entities, metadata)
        base_names = set(dir(Repository))

        built: dict[str, QueryMethod] = {}
        for name, attr in self._candidate_methods(repository_type):
            if name in base_names:
                continue
            is_custom = query_filter(attr) is not None
            if not is_custom and not self._is_stub(attr):
                continue
            method = self._compile_method(name, attr, metadata, is_custom)
            method = replace(method, plan=method.plan.restricted_to(restriction))
            built[name] = method
            logger.debug(
                "repository_method_compiled",
                repository=repository_type.__qualname__,
                method=name,
                kind=str(method.kind),
                shape=str(method.shape),
            )

        table = types.MappingProxyType(built)
        self._tables[repository_type] = table
        return table

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    @staticmethod
    def _candidate_methods(repository_type: type) -> list[tuple[str, Any]]:
        """Public functions declared on *repository_type* and its bases below ``Repository``."""
        seen: set[str] = set()
        found: list[tuple[str, Any]] = []
        for klass in repository_type.__mro__:
            if klass is Repository or not issubclass(klass, Repository):
                continue
            for name, attr in vars(klass).items():
                if name.startswith("_") or name in seen:
                    continue
                seen.add(name)
                if inspect.isfunction(attr):
                    found.append((name, attr))
        return found

    def _compile_method(self, name: str, func: Any, metadata: EntityMetadata, is_custom: bool) -> QueryMethod:
        try:
            hints = get_type_hints(func, localns={metadata.type.__name__: metadata.type})
        except (NameError, TypeError) as exc:
            raise RepositoryDefinitionError(name, f"cannot resolve annotations: {exc}") from exc

        signature = inspect.signature(func)
        value_parameters, page_request_parameter, sort_parameters = self._classify_parameters(
            name, signature, hints
        )

        prefix = next((p for p in _PREFIX_KINDS if name.startswith(p + "_")), None)
        return_hint = hints.get("return", _MISSING)
        if is_custom:
            plan = self._custom_compiler.compile(func, metadata, value_parameters)
            if prefix is not None:
                kind = _PREFIX_KINDS[prefix]
            elif return_hint is int:
                kind = MethodKind.COUNT
            elif return_hint is bool:
                kind = MethodKind.EXISTS
            else:
                kind = MethodKind.FIND
        elif prefix is not None:
            parsed = self._query_parser.parse(name, metadata.field_paths())
            if parsed.arity != len(value_parameters):
                raise RepositoryDefinitionError(
                    name,
                    f"the name requires {parsed.arity} argument(s) but the method declares {len(value_parameters)}",
                )
            plan = self._query_compiler.compile(parsed, metadata, name)
            kind = _PREFIX_KINDS[prefix]
        else:
            raise RepositoryDefinitionError(
                name, f"stub methods must start with one of {QueryMethodParser.PREFIXES} or use @query"
            )

        if kind is MethodKind.DELETE and metadata.id is None:
            raise RepositoryDefinitionError(name, f"{metadata.type.__qualname__} has no id field to delete by")

        shape, projection = self._return_shape(name, kind, return_hint, metadata)
        if shape is ReturnShape.PAGE and page_request_parameter is None:
            raise RepositoryDefinitionError(name, "returning a Page requires a PageRequest parameter")
        if projection is not None:
            try:
                columns = projection_columns(projection, metadata)
            except MappingException as exc:
                raise RepositoryDefinitionError(name, str(exc)) from exc
            plan = plan.with_projection(columns)

        return QueryMethod(
            name=name,
            kind=kind,
            shape=shape,
            plan=plan,
            signature=signature,
            value_parameters=value_parameters,
            page_request_parameter=page_request_parameter,
            sort_parameters=sort_parameters,
            projection=projection,
            is_async=inspect.iscoroutinefunction(func),
        )

    @staticmethod
    def _classify_parameters(
        name: str, signature: inspect.Signature, hints: Mapping[str, Any]
    ) -> tuple[tuple[str, ...], str | None, tuple[str, ...]]:
        values: list[str] = []
        sorts: list[str] = []
        page_request: str | None = None
        for parameter in list(signature.parameters.values())[1:]:
            hint = _strip_optional(hints.get(parameter.name, _MISSING))
            if hint is PageRequest:
                page_request = parameter.name
            elif hint is Sort or _element_type(hint) is Sort:
                sorts.append(parameter.name)
            elif parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
                raise RepositoryDefinitionError(name, f"variadic parameter '{parameter.name}' is not supported")
            else:
                values.append(parameter.name)
        return tuple(values), page_request, tuple(sorts)

    @staticmethod
    def _return_shape(
        name: str, kind: MethodKind, hint: Any, metadata: EntityMetadata
    ) -> tuple[ReturnShape, type | None]:
        if kind is MethodKind.COUNT:
            if hint in (_MISSING, int):
                return ReturnShape.INT, None
            raise RepositoryDefinitionError(name, "count methods must return int")
        if kind is MethodKind.EXISTS:
            if hint in (_MISSING, bool):
                return ReturnShape.BOOL, None
            raise RepositoryDefinitionError(name, "exists methods must return bool")
        if kind is MethodKind.DELETE:
            if hint in (_MISSING, None, type(None)):
                return ReturnShape.NONE, None
            if hint is int:
                return ReturnShape.INT, None
            raise RepositoryDefinitionError(name, "delete methods must return None or int")

        if hint is _MISSING:
            return ReturnShape.LIST, None
        hint = _strip_optional(hint)
        origin = get_origin(hint) or hint
        if origin is Page:
            shape = ReturnShape.PAGE
        else:
            shape = _COLLECTION_SHAPES.get(origin, ReturnShape.SINGLE)
        element = _element_type(hint) if shape is not ReturnShape.SINGLE else hint

        if element is _MISSING or element is Any or isinstance(element, TypeVar):
            return shape, None
        if is_projection(element):
            return shape, element
        if isinstance(element, type) and (issubclass(element, metadata.type) or issubclass(metadata.type, element)):
            return shape, None
        raise RepositoryDefinitionError(
            name, f"cannot return {getattr(element, '__qualname__', element)!s} from {metadata.type.__qualname__} records"
        )

    # ------------------------------------------------------------------
    # Stub detection
    # ------------------------------------------------------------------

    @staticmethod
    def _is_stub(method: Any) -> bool:
        """Return ``True`` if *method* appears to be a stub (body is ``...`` or ``pass``).

        A method is considered a stub when its code object contains no
        meaningful constants beyond ``None``, ``Ellipsis`` and its docstring.
        """
        func = inspect.unwrap(method)
        code = getattr(func, "__code__", None)
        if code is None:
            return False
        if inspect.isgeneratorfunction(func) or inspect.isasyncgenfunction(func):
            return False

        consts = set(code.co_consts)
        consts.discard(None)
        consts.discard(Ellipsis)
        consts.discard(func.__doc__)
        return len(consts) == 0 and not code.co_names

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _wrap(self, method: QueryMethod, original: Callable[..., Any]) -> Callable[..., Any]:
        if method.shape is ReturnShape.ASYNC_ITERATOR:

            async def stream(repository: Repository, *args: Any, **kwargs: Any) -> AsyncIterator[Any]:
                query, _ = self._prepare(repository, method, args, kwargs)
                records = await resolve(repository._template.execute(query))
                if hasattr(records, "__aiter__"):
                    async for record in records:
                        yield self._map(repository, method, record)
                else:
                    for record in records:
                        yield self._map(repository, method, record)

            return functools.wraps(original)(stream)

        if method.is_async:

            async def invoke(repository: Repository, *args: Any, **kwargs: Any) -> Any:
                return await self._invoke_async(repository, method, args, kwargs)

            return functools.wraps(original)(invoke)

        def invoke_sync(repository: Repository, *args: Any, **kwargs: Any) -> Any:
            return self._invoke_sync(repository, method, args, kwargs)

        return functools.wraps(original)(invoke_sync)

    def _prepare(
        self, repository: Repository, method: QueryMethod, args: Sequence[Any], kwargs: Mapping[str, Any]
    ) -> tuple[Query, PageRequest | None]:
        query, page_request = method.build_query(args, kwargs)
        logger.debug(
            "query_method_invoked",
            repository=type(repository).__qualname__,
            method=method.name,
            query=query,
        )
        return query, page_request

    async def _invoke_async(
        self, repository: Repository, method: QueryMethod, args: Sequence[Any], kwargs: Mapping[str, Any]
    ) -> Any:
        query, page_request = self._prepare(repository, method, args, kwargs)
        template = repository._template
        records = await resolve(template.execute(query))

        if method.shape is ReturnShape.ITERATOR:
            if hasattr(records, "__aiter__"):
                records = await collect(records)
            return (self._map(repository, method, record) for record in records)

        records = await collect(records)
        if method.kind is MethodKind.DELETE:
            id_column = repository.metadata.require_id().storage_name
            for record in records:
                await resolve(template.delete(query.collection, record[id_column]))
            return len(records) if method.shape is ReturnShape.INT else None
        return self._shape(repository, method, records, page_request)

    def _invoke_sync(
        self, repository: Repository, method: QueryMethod, args: Sequence[Any], kwargs: Mapping[str, Any]
    ) -> Any:
        query, page_request = self._prepare(repository, method, args, kwargs)
        template = repository._template
        records = _require_sync(method.name, template.execute(query))
        if hasattr(records, "__aiter__") and not hasattr(records, "__iter__"):
            raise _sync_template_error(method.name)

        if method.shape is ReturnShape.ITERATOR:
            return (self._map(repository, method, record) for record in records)

        records = list(records)
        if method.kind is MethodKind.DELETE:
            id_column = repository.metadata.require_id().storage_name
            for record in records:
                _require_sync(method.name, template.delete(query.collection, record[id_column]))
            return len(records) if method.shape is ReturnShape.INT else None
        return self._shape(repository, method, records, page_request)

    def _map(self, repository: Repository, method: QueryMethod, record: Mapping[str, Any]) -> Any:
        metadata = repository.metadata
        if method.projection is not None:
            return to_projection(method.projection, metadata, record)
        return self._converter.to_entity(metadata.type, record)

    def _shape(
        self, repository: Repository, method: QueryMethod, records: list[Any], page_request: PageRequest | None
    ) -> Any:
        shape = method.shape
        if shape is ReturnShape.INT:
            return len(records)
        if shape is ReturnShape.BOOL:
            return bool(records)
        if shape is ReturnShape.SINGLE:
            if len(records) > 1:
                raise NonUniqueResultError(method.name, len(records))
            return self._map(repository, method, records[0]) if records else None

        items = [self._map(repository, method, record) for record in records]
        if shape is ReturnShape.TUPLE:
            return tuple(items)
        if shape is ReturnShape.SET:
            return set(items)
        if shape is ReturnShape.PAGE:
            assert page_request is not None
            return Page.of(items, page_request)
        return items


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sync_template_error(method: str) -> PyNoSQLException:
    return RepositoryException(
        f"Method '{method}' is synchronous but the template returned an awaitable or async result",
        code="REPOSITORY_003",
        context={"method": method},
    )


def _require_sync(method: str, result: Any) -> Any:
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise _sync_template_error(method)
    return result


def _strip_optional(hint: Any) -> Any:
    """``X | None`` and ``Optional[X]`` become ``X``."""
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint


def _element_type(hint: Any) -> Any:
    args = [a for a in get_args(hint) if a is not Ellipsis]
    return args[0] if args else _MISSING
