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
"""Structural metadata of mapped types.

:class:`EntityMetadata` is built once per type by
:class:`~pynosql.mapping.builder.EntityMetadataBuilder` and never mutated
afterwards. Two instances are equal when they describe the same type.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pynosql.kernel.exceptions import IdNotFoundError, MappingException


class FieldKind(StrEnum):
    DEFAULT = "DEFAULT"
    ID = "ID"
    EMBEDDED = "EMBEDDED"
    COLLECTION = "COLLECTION"


@dataclass(frozen=True)
class FieldMapping:
    """One mapped field.

    Attributes:
        name: Attribute name on the entity.
        storage_name: Field name used by the store.
        kind: Field kind.
        type: Resolved type hint.
        has_default: Whether the dataclass field declares a default.
        embedded: Metadata of the nested type for ``EMBEDDED`` fields and
            for ``COLLECTION`` fields whose elements are embeddable.
        container: Collection type (``list``, ``tuple``, ``set``,
            ``frozenset``) for ``COLLECTION`` fields.
    """

    name: str
    storage_name: str
    kind: FieldKind = FieldKind.DEFAULT
    type: Any = None
    has_default: bool = False
    embedded: EntityMetadata | None = None
    container: type | None = None

    @property
    def is_id(self) -> bool:
        return self.kind is FieldKind.ID

    def read(self, instance: Any) -> Any:
        return getattr(instance, self.name)

    def write(self, instance: Any, value: Any) -> None:
        # frozen dataclasses reject setattr
        object.__setattr__(instance, self.name, value)


@dataclass(frozen=True)
class InheritanceMetadata:
    """Where an entity sits in a polymorphic hierarchy.

    Attributes:
        discriminator_value: Value stored for records of ``entity``.
        discriminator_column: Storage field holding the discriminator.
        parent: The hierarchy root.
        entity: The described type.
    """

    discriminator_value: str
    discriminator_column: str
    parent: type
    entity: type

    @property
    def is_parent(self) -> bool:
        return self.parent is self.entity


@dataclass(frozen=True)
class ConstructorMetadata:
    """Ordered constructor parameters, each bound to a mapped field by keyword.

    An empty parameter list means the type is built with its default
    constructor and every field is assigned afterwards.
    """

    parameters: tuple[FieldMapping, ...] = ()

    @property
    def is_default(self) -> bool:
        return not self.parameters

    def __contains__(self, item: FieldMapping) -> bool:
        return any(p.name == item.name for p in self.parameters)


@dataclass(frozen=True, eq=False)
class EntityMetadata:
    """Structural description of a mapped type.

    Attributes:
        name: Collection name, ``None`` for embeddable types.
        type: The mapped class.
        fields: Mapped fields in declaration order.
        constructor: Constructor parameter bindings.
        instance_factory: Callable building a new instance from keyword arguments.
        inheritance: Hierarchy descriptor, ``None`` outside hierarchies.
        is_inheritance: ``True`` for the class declaring the hierarchy.
    """

    name: str | None
    type: type
    fields: tuple[FieldMapping, ...]
    constructor: ConstructorMetadata = ConstructorMetadata()
    instance_factory: Callable[..., Any] | None = None
    inheritance: InheritanceMetadata | None = None
    is_inheritance: bool = False
    fields_by_storage_name: Mapping[str, FieldMapping] = field(init=False, repr=False)
    fields_by_field_name: Mapping[str, FieldMapping] = field(init=False, repr=False)
    id: FieldMapping | None = field(init=False, repr=False)

    def __post_init__(self) -> None:
        by_storage: dict[str, FieldMapping] = {}
        by_name: dict[str, FieldMapping] = {}
        ids = [f for f in self.fields if f.is_id]
        if len(ids) > 1:
            raise MappingException(
                f"{self.type.__qualname__} declares more than one id field: {[f.name for f in ids]}",
                code="MAPPING_003",
            )
        for mapping in self.fields:
            if mapping.storage_name in by_storage:
                raise MappingException(
                    f"{self.type.__qualname__}: fields '{by_storage[mapping.storage_name].name}' and "
                    f"'{mapping.name}' share the storage name '{mapping.storage_name}'",
                    code="MAPPING_004",
                )
            by_storage[mapping.storage_name] = mapping
            by_name[mapping.name] = mapping
        if self.inheritance is not None and self.inheritance.discriminator_column in by_storage:
            raise MappingException(
                f"{self.type.__qualname__}: field '{by_storage[self.inheritance.discriminator_column].name}' "
                f"collides with the discriminator column '{self.inheritance.discriminator_column}'",
                code="MAPPING_005",
            )
        object.__setattr__(self, "fields_by_storage_name", MappingProxyType(by_storage))
        object.__setattr__(self, "fields_by_field_name", MappingProxyType(by_name))
        object.__setattr__(self, "id", ids[0] if ids else None)
        if self.instance_factory is None:
            object.__setattr__(self, "instance_factory", self.type)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def has_entity_name(self) -> bool:
        """Whether records of this type live under its own collection name."""
        return self.inheritance is None or self.is_inheritance

    def column_name(self, field_name: str) -> str:
        """Translate an entity field name (dotted for embedded paths) to its storage name.

        Unknown names are returned unchanged.
        """
        head, _, rest = field_name.partition(".")
        mapping = self.fields_by_field_name.get(head)
        if mapping is None:
            return field_name
        if not rest:
            return mapping.storage_name
        if mapping.embedded is None:
            return f"{mapping.storage_name}.{rest}"
        return f"{mapping.storage_name}.{mapping.embedded.column_name(rest)}"

    def field_mapping(self, storage_name: str) -> FieldMapping | None:
        """Return the field stored under *storage_name*, if any."""
        return self.fields_by_storage_name.get(storage_name)

    def field_by_name(self, field_name: str) -> FieldMapping | None:
        return self.fields_by_field_name.get(field_name)

    def field_paths(self) -> list[str]:
        """All addressable field-name paths, embedded fields as ``owner.child``."""
        paths: list[str] = []
        for mapping in self.fields:
            paths.append(mapping.name)
            if mapping.kind is FieldKind.EMBEDDED and mapping.embedded is not None:
                paths.extend(f"{mapping.name}.{sub}" for sub in mapping.embedded.field_paths())
        return paths

    def require_id(self) -> FieldMapping:
        """Return the id field or raise :class:`IdNotFoundError`."""
        if self.id is None:
            raise IdNotFoundError(self.type)
        return self.id

    def new_instance(self, **kwargs: Any) -> Any:
        assert self.instance_factory is not None
        return self.instance_factory(**kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EntityMetadata):
            return NotImplemented
        return self.type is other.type

    def __hash__(self) -> int:
        return hash(self.type)
