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
"""MongoDB template backed by a motor (asyncio) database."""

from __future__ import annotations

from typing import Any

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from pynosql.config.properties.mongodb import DocumentProperties
from pynosql.core.config import Config
from pynosql.data.document.mongodb.query_compiler import MongoQueryCompiler
from pynosql.data.query import Query
from pynosql.kernel.exceptions import NullArgumentError
from pynosql.mapping.converter import EntityConverter

logger = structlog.get_logger("pynosql.data.document")

_DEFAULT_ID_COLUMN = "_id"


class MongoTemplate:
    """Async :class:`~pynosql.data.ports.outbound.TemplatePort` for MongoDB.

    ``execute`` returns the motor cursor itself, so repository methods
    returning iterators stream documents instead of loading them all.

    Usage::

        client = AsyncIOMotorClient("mongodb://localhost:27017")
        template = MongoTemplate(client["shop"], EntityConverter(entities))
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        converter: EntityConverter,
        compiler: MongoQueryCompiler | None = None,
    ) -> None:
        self._database = database
        self._converter = converter
        self._compiler = compiler or MongoQueryCompiler()

    @classmethod
    def from_config(cls, config: Config, converter: EntityConverter) -> MongoTemplate:
        """Connect using ``pynosql.data.document.uri`` and ``pynosql.data.document.database``."""
        properties = config.bind(DocumentProperties)
        client: AsyncIOMotorClient = AsyncIOMotorClient(properties.uri)
        logger.info("mongo_template_configured", database=properties.database)
        return cls(client[properties.database], converter)

    @property
    def database(self) -> AsyncIOMotorDatabase:
        return self._database

    async def execute(self, query: Query) -> Any:
        if query.max_result == 0:
            return []
        mongo_query = self._compiler.compile(query)
        return self._database[mongo_query.collection].find(
            mongo_query.filter,
            projection=mongo_query.projection,
            sort=mongo_query.sort or None,
            skip=mongo_query.skip,
            limit=mongo_query.limit,
        )

    async def insert(self, entity: Any) -> Any:
        """Insert *entity*, or replace the document with the same id.

        When the id is stored as ``_id`` and is ``None``, MongoDB generates
        one and it is written back to the entity.
        """
        if entity is None:
            raise NullArgumentError("entity")
        metadata = self._converter.entities.get(type(entity))
        record = self._converter.to_record(entity)
        collection = self._database[metadata.name]
        id_field = metadata.id

        if id_field is None:
            await collection.insert_one(record)
            return entity

        id_value = record.get(id_field.storage_name)
        if id_value is None:
            if id_field.storage_name == _DEFAULT_ID_COLUMN:
                del record[_DEFAULT_ID_COLUMN]
            result = await collection.insert_one(record)
            if id_field.storage_name == _DEFAULT_ID_COLUMN:
                id_field.write(entity, result.inserted_id)
            return entity

        await collection.replace_one({id_field.storage_name: id_value}, record, upsert=True)
        return entity

    async def delete(self, collection: str, id: Any) -> None:
        await self._database[collection].delete_one({self._id_column(collection): id})

    async def find(self, collection: str, id: Any) -> dict[str, Any] | None:
        return await self._database[collection].find_one({self._id_column(collection): id})

    async def exists(self, collection: str, id: Any) -> bool:
        count = await self._database[collection].count_documents({self._id_column(collection): id}, limit=1)
        return count > 0

    async def count(self, collection: str) -> int:
        return await self._database[collection].count_documents({})

    def _id_column(self, collection: str) -> str:
        metadata = self._converter.entities.find_by_name(collection)
        if metadata is None or metadata.id is None:
            return _DEFAULT_ID_COLUMN
        return metadata.id.storage_name
