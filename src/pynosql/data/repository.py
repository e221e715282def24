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
"""Generic repository base class with the fixed CRUD vocabulary.

Stub methods declared on subclasses (derived ``find_by_*`` names or
``@query`` methods) are compiled and bound by
:class:`~pynosql.data.dispatcher.RepositoryDispatcher`.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from typing import Any, Generic, TypeVar, get_args, get_origin

from pynosql.data.condition import Condition
from pynosql.data.page import Page
from pynosql.data.pageable import PageRequest
from pynosql.data.ports.outbound import TemplatePort
from pynosql.data.query import Query
from pynosql.data.query_compiler import QueryPlan
from pynosql.kernel.exceptions import NullArgumentError
from pynosql.mapping.converter import EntityConverter
from pynosql.mapping.metadata import EntityMetadata
from pynosql.mapping.registry import EntitiesMetadata

T = TypeVar("T")
ID = TypeVar("ID")


async def resolve(value: Any) -> Any:
    """Await *value* when the template returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


async def collect(records: Any) -> list[Any]:
    """Materialize a sync or async iterable of records, keeping store order."""
    records = await resolve(records)
    if hasattr(records, "__aiter__"):
        return [record async for record in records]
    return list(records)


def subtype_condition(entities: EntitiesMetadata, metadata: EntityMetadata) -> Condition | None:
    """Condition restricting a hierarchy member to its own records and those of its subtypes.

    Returns ``None`` outside hierarchies and for the hierarchy root.
    """
    inheritance = metadata.inheritance
    if inheritance is None or metadata.type is inheritance.parent:
        return None
    values = [
        m.inheritance.discriminator_value
        for m in entities.subtypes(inheritance.parent)
        if m.inheritance is not None and issubclass(m.type, metadata.type)
    ]
    if len(values) == 1:
        return Condition.eq(inheritance.discriminator_column, values[0])
    return Condition.in_(inheritance.discriminator_column, values)


class Repository(Generic[T, ID]):
    """Generic CRUD repository over a :class:`TemplatePort`.

    Type Parameters:
        T: The entity type (an ``@entity`` dataclass).
        ID: The identifier type.

    Usage::

        class PersonRepository(Repository[Person, str]):
            async def find_by_age_greater_than(self, age: int) -> list[Person]: ...

        repository = dispatcher.create(PersonRepository, template)

    Identifier-based methods raise :class:`~pynosql.kernel.exceptions.IdNotFoundError`
    when the entity does not declare an id field.
    """

    _entity_type: type | None = None
    _id_type: type | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in getattr(cls, "__orig_bases__", []):
            origin = get_origin(base)
            if origin is Repository:
                args = get_args(base)
                if args and not isinstance(args[0], TypeVar):
                    cls._entity_type = args[0]
                if len(args) > 1 and not isinstance(args[1], TypeVar):
                    cls._id_type = args[1]
                break

    def __init__(
        self,
        template: TemplatePort,
        entities: EntitiesMetadata,
        converter: EntityConverter | None = None,
        entity_type: type[T] | None = None,
    ) -> None:
        model = entity_type or getattr(type(self), "_entity_type", None)
        if model is None:
            raise TypeError(
                f"{type(self).__name__} requires either Repository[Entity, ID] "
                f"declaration or explicit entity_type argument"
            )
        self._template = template
        self._entities = entities
        self._metadata = entities.get(model)
        self._converter = converter or EntityConverter(entities)
        self._restriction = subtype_condition(entities, self._metadata)
        self._plan = QueryPlan(metadata=self._metadata, base_condition=self._restriction)

    @property
    def metadata(self) -> EntityMetadata:
        return self._metadata

    @property
    def collection(self) -> str:
        return self._plan.collection

    async def save(self, entity: T) -> T:
        """Persist an entity (insert or replace)."""
        if entity is None:
            raise NullArgumentError("entity")
        return await resolve(self._template.insert(entity))

    async def save_all(self, entities: Iterable[T]) -> list[T]:
        """Persist several entities, in order."""
        if entities is None:
            raise NullArgumentError("entities")
        return [await self.save(entity) for entity in entities]

    async def find_by_id(self, id: ID) -> T | None:
        """Find an entity by its identifier."""
        if id is None:
            raise NullArgumentError("id")
        id_field = self._metadata.require_id()
        if self._restriction is None:
            record = await resolve(self._template.find(self.collection, id))
            return None if record is None else self._converter.to_entity(self._metadata.type, record)

        query = Query.of(
            self.collection,
            Condition.and_(Condition.eq(id_field.storage_name, id), self._restriction),
            max_result=1,
        )
        records = await collect(self._template.execute(query))
        return self._converter.to_entity(self._metadata.type, records[0]) if records else None

    async def exists_by_id(self, id: ID) -> bool:
        """Check if an entity with the given identifier exists."""
        if id is None:
            raise NullArgumentError("id")
        self._metadata.require_id()
        if self._restriction is None:
            return bool(await resolve(self._template.exists(self.collection, id)))
        return await self.find_by_id(id) is not None

    async def count(self) -> int:
        """Return the number of stored entities."""
        if self._restriction is None:
            return int(await resolve(self._template.count(self.collection)))
        return len(await collect(self._template.execute(self._plan.build())))

    async def find_all(self) -> list[T]:
        """Return every stored entity."""
        records = await collect(self._template.execute(self._plan.build()))
        return list(self._converter.to_entities(self._metadata.type, records))

    async def find_all_paged(self, page_request: PageRequest) -> Page[T]:
        """Return one page of entities, sorted by the request's sorts."""
        if page_request is None:
            raise NullArgumentError("page_request")
        records = await collect(self._template.execute(self._plan.build(page_request=page_request)))
        return Page.of(self._converter.to_entities(self._metadata.type, records), page_request)

    async def delete(self, entity: T) -> None:
        """Delete the given entity."""
        if entity is None:
            raise NullArgumentError("entity")
        await self.delete_by_id(self._converter.id_value(entity))

    async def delete_by_id(self, id: ID) -> None:
        """Delete the entity with the given identifier, if present."""
        if id is None:
            raise NullArgumentError("id")
        self._metadata.require_id()
        await resolve(self._template.delete(self.collection, id))
