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
"""Convert entities to storage records and back.

Records are plain mappings keyed by storage names. Reading a record is a
two-pass process for polymorphic hierarchies: the discriminator is read
first to pick the concrete subtype, then that subtype's constructor
descriptor is applied to the remaining fields.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, TypeVar

from pynosql.kernel.exceptions import MappingException, NullArgumentError
from pynosql.mapping.metadata import EntityMetadata, FieldKind, FieldMapping
from pynosql.mapping.registry import EntitiesMetadata

T = TypeVar("T")

_MISSING = object()


class EntityConverter:
    """Maps entities to records and records to entities using registered metadata."""

    def __init__(self, entities: EntitiesMetadata) -> None:
        self._entities = entities

    @property
    def entities(self) -> EntitiesMetadata:
        return self._entities

    # ------------------------------------------------------------------
    # Entity -> record
    # ------------------------------------------------------------------

    def to_record(self, entity: Any) -> dict[str, Any]:
        """Return the storage record of *entity*, including its discriminator."""
        if entity is None:
            raise NullArgumentError("entity")
        metadata = self._entities.get(type(entity))
        record: dict[str, Any] = {}
        if metadata.inheritance is not None:
            record[metadata.inheritance.discriminator_column] = metadata.inheritance.discriminator_value
        record.update(self._write_fields(metadata, entity))
        return record

    def id_value(self, entity: Any) -> Any:
        """Return the identifier of *entity* (``IdNotFoundError`` without an id field)."""
        return self._entities.get(type(entity)).require_id().read(entity)

    def _write_fields(self, metadata: EntityMetadata, instance: Any) -> dict[str, Any]:
        return {mapping.storage_name: self._write_value(mapping, mapping.read(instance)) for mapping in metadata.fields}

    def _write_value(self, mapping: FieldMapping, value: Any) -> Any:
        if value is None:
            return None
        if mapping.kind is FieldKind.EMBEDDED and mapping.embedded is not None:
            return self._write_fields(mapping.embedded, value)
        if mapping.kind is FieldKind.COLLECTION:
            if mapping.embedded is not None:
                return [self._write_fields(mapping.embedded, item) for item in value]
            return list(value)
        return value

    # ------------------------------------------------------------------
    # Record -> entity
    # ------------------------------------------------------------------

    def to_entity(self, entity_type: type[T], record: Mapping[str, Any]) -> T:
        """Rebuild an instance of *entity_type* (or of the subtype named by the discriminator)."""
        if record is None:
            raise NullArgumentError("record")
        metadata = self._resolve_subtype(self._entities.get(entity_type), record)
        return self._read(metadata, record)

    def to_entities(self, entity_type: type[T], records: Iterable[Mapping[str, Any]]) -> Iterator[T]:
        """Lazily convert *records*, preserving their order."""
        for record in records:
            yield self.to_entity(entity_type, record)

    def _resolve_subtype(self, metadata: EntityMetadata, record: Mapping[str, Any]) -> EntityMetadata:
        inheritance = metadata.inheritance
        if inheritance is None:
            return metadata
        value = record.get(inheritance.discriminator_column)
        if value is None or value == inheritance.discriminator_value:
            return metadata
        subtype = self._entities.find_by_discriminator(inheritance.parent, value)
        if subtype is None or not issubclass(subtype.type, metadata.type):
            raise MappingException(
                f"Discriminator '{value}' does not name a registered subtype of {metadata.type.__qualname__}",
                code="MAPPING_010",
                context={"discriminator": value, "type": metadata.type.__qualname__},
            )
        return subtype

    def _read(self, metadata: EntityMetadata, record: Mapping[str, Any]) -> Any:
        kwargs: dict[str, Any] = {}
        for mapping in metadata.constructor.parameters:
            raw = record.get(mapping.storage_name, _MISSING)
            if raw is _MISSING:
                if mapping.has_default:
                    continue
                raw = None
            kwargs[mapping.name] = self._read_value(mapping, raw)
        instance = metadata.new_instance(**kwargs)

        for mapping in metadata.fields:
            if mapping in metadata.constructor or mapping.storage_name not in record:
                continue
            mapping.write(instance, self._read_value(mapping, record[mapping.storage_name]))
        return instance

    def _read_value(self, mapping: FieldMapping, raw: Any) -> Any:
        if raw is None:
            return None
        if mapping.kind is FieldKind.EMBEDDED and mapping.embedded is not None:
            return self._read(mapping.embedded, raw)
        if mapping.kind is FieldKind.COLLECTION:
            items = [self._read(mapping.embedded, item) for item in raw] if mapping.embedded is not None else raw
            return (mapping.container or list)(items)
        return raw
