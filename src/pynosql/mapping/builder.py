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
"""Build :class:`EntityMetadata` from dataclass declarations.

All introspection (dataclass fields, type hints, markers) happens here,
once per type. The resulting metadata carries an explicit constructor
descriptor so that mapping records back to objects never inspects the
class again.
"""

from __future__ import annotations

import dataclasses
import re
import types
from collections.abc import Sequence, Set
from typing import Any, Union, get_args, get_origin, get_type_hints

from pynosql.config.properties.mapping import MappingProperties
from pynosql.core.config import Config
from pynosql.kernel.exceptions import MappingException
from pynosql.mapping.entity import (
    COLUMN_KEY,
    ID_KEY,
    TRANSIENT_KEY,
    declared_discriminator_column,
    declared_discriminator_value,
    entity_name,
    inheritance_root,
    is_embeddable,
    is_entity,
)
from pynosql.mapping.metadata import (
    ConstructorMetadata,
    EntityMetadata,
    FieldKind,
    FieldMapping,
    InheritanceMetadata,
)

_NAMING_STRATEGIES = ("class", "lower", "snake")

_CONTAINERS: dict[Any, type] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    Sequence: list,
    Set: frozenset,
}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


class EntityMetadataBuilder:
    """Derive :class:`EntityMetadata` for ``@entity`` and ``@embeddable`` dataclasses.

    Args:
        collection_naming: How to derive collection names for entities that
            do not declare one: ``class``, ``lower`` or ``snake``.
    """

    def __init__(self, collection_naming: str = "class") -> None:
        if collection_naming not in _NAMING_STRATEGIES:
            raise ValueError(f"collection_naming must be one of {_NAMING_STRATEGIES}, got '{collection_naming}'")
        self._collection_naming = collection_naming
        self._embedded_cache: dict[type, EntityMetadata] = {}

    @classmethod
    def from_config(cls, config: Config) -> EntityMetadataBuilder:
        properties = config.bind(MappingProperties)
        return cls(collection_naming=properties.collection_naming)

    def build(self, cls: type) -> EntityMetadata:
        """Build metadata for an ``@entity`` dataclass."""
        if not is_entity(cls):
            raise MappingException(
                f"{cls.__qualname__} is not marked with @entity",
                code="MAPPING_006",
                context={"type": cls.__qualname__},
            )
        self._require_dataclass(cls)

        inheritance: InheritanceMetadata | None = None
        root = inheritance_root(cls)
        if root is not None:
            inheritance = InheritanceMetadata(
                discriminator_value=declared_discriminator_value(cls),
                discriminator_column=declared_discriminator_column(root),
                parent=root,
                entity=cls,
            )
            name = self._collection_name(root)
        else:
            name = self._collection_name(cls)

        fields, constructor = self._map_fields(cls)
        return EntityMetadata(
            name=name,
            type=cls,
            fields=fields,
            constructor=constructor,
            instance_factory=cls,
            inheritance=inheritance,
            is_inheritance=root is cls,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collection_name(self, cls: type) -> str:
        declared = entity_name(cls)
        if declared:
            return declared
        if self._collection_naming == "lower":
            return cls.__name__.lower()
        if self._collection_naming == "snake":
            return _CAMEL_RE.sub("_", cls.__name__).lower()
        return cls.__name__

    def _build_embedded(self, cls: type) -> EntityMetadata:
        cached = self._embedded_cache.get(cls)
        if cached is not None:
            return cached
        self._require_dataclass(cls)
        fields, constructor = self._map_fields(cls)
        metadata = EntityMetadata(name=None, type=cls, fields=fields, constructor=constructor, instance_factory=cls)
        self._embedded_cache[cls] = metadata
        return metadata

    @staticmethod
    def _require_dataclass(cls: type) -> None:
        if not dataclasses.is_dataclass(cls):
            raise MappingException(
                f"{cls.__qualname__} must be a dataclass to be mapped",
                code="MAPPING_007",
                context={"type": cls.__qualname__},
            )

    def _map_fields(self, cls: type) -> tuple[tuple[FieldMapping, ...], ConstructorMetadata]:
        try:
            hints = get_type_hints(cls)
        except NameError as exc:
            raise MappingException(
                f"Cannot resolve type hints of {cls.__qualname__}: {exc}",
                code="MAPPING_008",
            ) from exc

        mappings: list[FieldMapping] = []
        parameters: list[FieldMapping] = []
        for dc_field in dataclasses.fields(cls):
            if dc_field.metadata.get(TRANSIENT_KEY):
                continue
            mapping = self._map_field(dc_field, hints.get(dc_field.name, Any))
            mappings.append(mapping)
            if dc_field.init:
                parameters.append(mapping)
        return tuple(mappings), ConstructorMetadata(tuple(parameters))

    def _map_field(self, dc_field: dataclasses.Field, hint: Any) -> FieldMapping:
        storage_name = dc_field.metadata.get(COLUMN_KEY) or dc_field.name
        has_default = (
            dc_field.default is not dataclasses.MISSING or dc_field.default_factory is not dataclasses.MISSING
        )
        if dc_field.metadata.get(ID_KEY):
            return FieldMapping(dc_field.name, storage_name, FieldKind.ID, hint, has_default)

        target = _strip_optional(hint)
        if is_embeddable(target) or is_entity(target):
            return FieldMapping(
                dc_field.name, storage_name, FieldKind.EMBEDDED, hint, has_default,
                embedded=self._build_embedded(target),
            )

        origin = get_origin(target)
        container = _CONTAINERS.get(origin) if origin is not None else _CONTAINERS.get(target)
        if container is not None:
            args = [a for a in get_args(target) if a is not Ellipsis]
            element = _strip_optional(args[0]) if args else None
            embedded = self._build_embedded(element) if is_embeddable(element) or is_entity(element) else None
            return FieldMapping(
                dc_field.name, storage_name, FieldKind.COLLECTION, hint, has_default,
                embedded=embedded, container=container,
            )

        return FieldMapping(dc_field.name, storage_name, FieldKind.DEFAULT, hint, has_default)


def _strip_optional(hint: Any) -> Any:
    """``X | None`` and ``Optional[X]`` become ``X``."""
    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return hint
