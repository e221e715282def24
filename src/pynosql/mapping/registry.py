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
"""Registry of entity metadata, populated during warm-up and then frozen."""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from pynosql.kernel.exceptions import MappingException, MetadataNotFoundError, RegistryFrozenError
from pynosql.mapping.builder import EntityMetadataBuilder
from pynosql.mapping.metadata import EntityMetadata

logger = structlog.get_logger("pynosql.mapping")


class EntitiesMetadata:
    """Metadata for every registered entity type, keyed by type.

    The registry is written only while the application starts. Call
    :meth:`freeze` once every entity is registered; afterwards it is
    read-only and safe to share between threads and tasks.

    Usage::

        entities = EntitiesMetadata()
        entities.register(Person, Notification, SmsNotification)
        entities.freeze()
        entities.get(Person).column_name("age")
    """

    def __init__(self, builder: EntityMetadataBuilder | None = None) -> None:
        self._builder = builder or EntityMetadataBuilder()
        self._by_type: dict[type, EntityMetadata] = {}
        self._by_discriminator: dict[tuple[type, str], EntityMetadata] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, *types: type) -> None:
        """Build and cache metadata for each of *types* (already registered types are skipped)."""
        if self._frozen:
            raise RegistryFrozenError(
                "Entity registry is frozen; register entities before freezing",
                code="MAPPING_009",
                context={"types": [t.__qualname__ for t in types]},
            )
        for entity_type in types:
            if entity_type in self._by_type:
                continue
            metadata = self._builder.build(entity_type)
            if metadata.inheritance is not None:
                key = (metadata.inheritance.parent, metadata.inheritance.discriminator_value)
                claimed = self._by_discriminator.get(key)
                if claimed is not None and claimed.type is not entity_type:
                    raise MappingException(
                        f"Discriminator value '{key[1]}' of {entity_type.__qualname__} is already used by "
                        f"{claimed.type.__qualname__}",
                        code="MAPPING_012",
                        context={
                            "discriminator": key[1],
                            "type": entity_type.__qualname__,
                            "claimed_by": claimed.type.__qualname__,
                        },
                    )
                self._by_discriminator[key] = metadata
            self._by_type[entity_type] = metadata
            logger.debug(
                "entity_metadata_registered",
                entity=entity_type.__qualname__,
                collection=metadata.name,
                fields=len(metadata.fields),
            )

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True
        logger.info("entity_registry_frozen", entities=len(self._by_type))

    def get(self, entity_type: type) -> EntityMetadata:
        """Return the metadata of *entity_type* or raise :class:`MetadataNotFoundError`."""
        metadata = self._by_type.get(entity_type)
        if metadata is None:
            raise MetadataNotFoundError(entity_type)
        return metadata

    def find_by_name(self, name: str) -> EntityMetadata | None:
        """Return the entity owning collection *name* (hierarchy roots only)."""
        for metadata in self._by_type.values():
            if metadata.name == name and metadata.has_entity_name:
                return metadata
        return None

    def find_by_discriminator(self, parent: type, value: str) -> EntityMetadata | None:
        return self._by_discriminator.get((parent, value))

    def subtypes(self, parent: type) -> list[EntityMetadata]:
        """Every registered member of the hierarchy rooted at *parent*."""
        return [m for (root, _), m in self._by_discriminator.items() if root is parent]

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._by_type

    def __iter__(self) -> Iterator[EntityMetadata]:
        return iter(self._by_type.values())

    def __len__(self) -> int:
        return len(self._by_type)
