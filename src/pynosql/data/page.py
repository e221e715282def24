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
"""Pagination results for paginated query methods.

A :class:`Page` only knows its content and the request that produced it.
No count query is ever issued, so totals and the ``has_next`` /
``has_previous`` flags raise :class:`UnsupportedCapabilityError`; callers
needing totals call ``count`` on the repository or template explicitly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

from pynosql.data.pageable import PageRequest
from pynosql.kernel.exceptions import NullArgumentError, UnsupportedCapabilityError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Page(Generic[T]):
    """A page of results from a paginated query.

    Attributes:
        entities: The items on this page, in store order.
        page_request: The request that produced this page.
    """

    entities: tuple[T, ...]
    page_request: PageRequest

    @staticmethod
    def of(entities: Iterable[T], page_request: PageRequest) -> Page[T]:
        """Create a page from *entities* and the *page_request* that produced them."""
        if entities is None:
            raise NullArgumentError("entities")
        if page_request is None:
            raise NullArgumentError("page_request")
        return Page(entities=tuple(entities), page_request=page_request)

    @staticmethod
    def skip(page_request: PageRequest) -> int:
        """Offset formula ``size * (page - 1)``."""
        if page_request is None:
            raise NullArgumentError("page_request")
        return page_request.size * (page_request.page - 1)

    def content(self) -> tuple[T, ...]:
        return self.entities

    def has_content(self) -> bool:
        return bool(self.entities)

    def number_of_elements(self) -> int:
        return len(self.entities)

    def next_page_request(self) -> PageRequest:
        return self.page_request.next()

    def previous_page_request(self) -> PageRequest:
        """Raises :class:`InvalidPageError` on the first page."""
        return self.page_request.previous()

    def total_elements(self) -> int:
        raise UnsupportedCapabilityError("total_elements")

    def total_pages(self) -> int:
        raise UnsupportedCapabilityError("total_pages")

    def has_next(self) -> bool:
        raise UnsupportedCapabilityError("has_next")

    def has_previous(self) -> bool:
        raise UnsupportedCapabilityError("has_previous")

    def has_totals(self) -> bool:
        raise UnsupportedCapabilityError("has_totals")

    def map(self, func: Callable[[T], U]) -> Page[U]:
        """Transform items using a mapping function, keeping the page request."""
        return Page(entities=tuple(func(item) for item in self.entities), page_request=self.page_request)

    def __iter__(self) -> Iterator[T]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)
