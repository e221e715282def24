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
"""Projection marker and helpers for returning a subset of entity fields."""

from __future__ import annotations

from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any, get_type_hints

from pynosql.kernel.exceptions import MappingException
from pynosql.mapping.metadata import EntityMetadata

_PROJECTION_MARKER = "__pynosql_projection__"


def projection(cls: type) -> type:
    """Mark a Protocol or class as a projection of an entity.

    Repository methods returning a projection fetch only the declared
    fields and return :class:`~types.SimpleNamespace` objects.

    Usage::

        @projection
        class PersonSummary(Protocol):
            name: str
            age: int
    """
    setattr(cls, _PROJECTION_MARKER, True)
    return cls


def is_projection(cls: Any) -> bool:
    """Check if a type is marked as a projection."""
    return isinstance(cls, type) and cls.__dict__.get(_PROJECTION_MARKER, False) is True


def projection_fields(cls: type) -> list[str]:
    """Get the field names declared on a projection type."""
    hints = get_type_hints(cls)
    return [name for name in hints if not name.startswith("_")]


def projection_columns(cls: type, metadata: EntityMetadata) -> tuple[str, ...]:
    """Storage names of the fields *cls* projects out of *metadata*'s entity."""
    columns = []
    for name in projection_fields(cls):
        if metadata.field_by_name(name) is None:
            raise MappingException(
                f"Projection {cls.__qualname__} declares '{name}', which {metadata.type.__qualname__} does not map",
                code="MAPPING_011",
                context={"projection": cls.__qualname__, "field": name},
            )
        columns.append(metadata.column_name(name))
    return tuple(columns)


def to_projection(cls: type, metadata: EntityMetadata, record: Mapping[str, Any]) -> SimpleNamespace:
    """Build the projected view of *record*, keyed by entity field names."""
    return SimpleNamespace(**{name: record.get(metadata.column_name(name)) for name in projection_fields(cls)})
