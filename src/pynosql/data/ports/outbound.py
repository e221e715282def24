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
"""Outbound ports: the template contract and repository interfaces."""

from __future__ import annotations

from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, Protocol, TypeVar, Union, runtime_checkable

from pynosql.data.page import Page
from pynosql.data.pageable import PageRequest
from pynosql.data.query import Query

T = TypeVar("T")
ID = TypeVar("ID")

Record = Mapping[str, Any]
MaybeAwaitable = Union[T, Awaitable[T]]


@runtime_checkable
class TemplatePort(Protocol):
    """Store adapter used by repositories.

    Every method may either return its result directly or return an
    awaitable; ``execute`` may also return an async iterable of records.
    Templates receive entities on ``insert`` and convert them to records
    themselves.
    """

    def execute(self, query: Query) -> Any: ...

    def insert(self, entity: Any) -> Any: ...

    def delete(self, collection: str, id: Any) -> MaybeAwaitable[None]: ...

    def find(self, collection: str, id: Any) -> MaybeAwaitable[Record | None]: ...

    def exists(self, collection: str, id: Any) -> MaybeAwaitable[bool]: ...

    def count(self, collection: str) -> MaybeAwaitable[int]: ...


@runtime_checkable
class CrudRepository(Protocol[T, ID]):
    """Spring Data-style CRUD repository interface."""

    async def save(self, entity: T) -> T: ...

    async def save_all(self, entities: Iterable[T]) -> list[T]: ...

    async def find_by_id(self, id: ID) -> T | None: ...

    async def find_all(self) -> list[T]: ...

    async def delete(self, entity: T) -> None: ...

    async def delete_by_id(self, id: ID) -> None: ...

    async def count(self) -> int: ...

    async def exists_by_id(self, id: ID) -> bool: ...


@runtime_checkable
class PagingRepository(CrudRepository[T, ID], Protocol[T, ID]):
    """CrudRepository with pagination support."""

    async def find_all_paged(self, page_request: PageRequest) -> Page[T]: ...
