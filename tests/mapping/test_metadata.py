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
"""Tests for EntityMetadataBuilder and EntityMetadata."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from pynosql.kernel.exceptions import IdNotFoundError, MappingException
from pynosql.mapping import (
    EntityMetadataBuilder,
    FieldKind,
    column,
    discriminator_value,
    embeddable,
    entity,
    id_field,
    inheritance,
    transient,
)

# ---------------------------------------------------------------------------
# Test entities
# ---------------------------------------------------------------------------


@embeddable
@dataclass
class Address:
    city: str = column("city_name", default="")
    street: str = ""


@entity("people")
@dataclass
class Person:
    id: str | None = id_field()
    name: str = ""
    age: int = 0
    first_name: str = column("given_name", default="")
    address: Address | None = None
    tags: list[str] = field(default_factory=list)
    previous_addresses: list[Address] = field(default_factory=list)
    cache: dict = transient(default_factory=dict)


@entity
@dataclass
class OrderLine:
    sku: str = ""
    quantity: int = 0


@entity
@dataclass
class AuditEvent:
    id: str = id_field("event_id", default="")
    kind: str = ""


@entity
@inheritance(discriminator_column="kind")
@dataclass
class Notification:
    id: str | None = id_field()
    message: str = ""


@entity
@discriminator_value("SMS")
@dataclass
class SmsNotification(Notification):
    phone: str = ""


@entity
@dataclass
class EmailNotification(Notification):
    email: str = ""


@dataclass
class NotAnEntity:
    value: int = 0


@entity
class NotADataclass:
    value: int = 0


@entity
@dataclass
class TwoIds:
    a: str = id_field("a")
    b: str = id_field("b")


@entity
@dataclass
class SharedColumn:
    a: str = column("x", default="")
    b: str = column("x", default="")


@pytest.fixture
def builder():
    return EntityMetadataBuilder()


# ===========================================================================
# Builder
# ===========================================================================


class TestEntityMetadataBuilder:
    def test_declared_collection_name(self, builder: EntityMetadataBuilder):
        assert builder.build(Person).name == "people"

    def test_collection_naming_strategies(self):
        assert EntityMetadataBuilder().build(OrderLine).name == "OrderLine"
        assert EntityMetadataBuilder("lower").build(OrderLine).name == "orderline"
        assert EntityMetadataBuilder("snake").build(OrderLine).name == "order_line"

    def test_unknown_naming_strategy_rejected(self):
        with pytest.raises(ValueError, match="collection_naming"):
            EntityMetadataBuilder("plural")

    def test_fields_in_declaration_order_without_transient(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert metadata.field_names == [
            "id", "name", "age", "first_name", "address", "tags", "previous_addresses",
        ]

    def test_field_kinds(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert metadata.field_by_name("id").kind is FieldKind.ID
        assert metadata.field_by_name("name").kind is FieldKind.DEFAULT
        assert metadata.field_by_name("address").kind is FieldKind.EMBEDDED
        assert metadata.field_by_name("tags").kind is FieldKind.COLLECTION
        assert metadata.field_by_name("previous_addresses").embedded.type is Address

    def test_id_field(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert metadata.id.name == "id"
        assert metadata.id.storage_name == "_id"
        assert builder.build(AuditEvent).id.storage_name == "event_id"

    def test_entity_without_id(self, builder: EntityMetadataBuilder):
        metadata = builder.build(OrderLine)
        assert metadata.id is None
        with pytest.raises(IdNotFoundError):
            metadata.require_id()

    def test_constructor_metadata(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert [p.name for p in metadata.constructor.parameters] == metadata.field_names
        assert metadata.field_by_name("name") in metadata.constructor

    def test_requires_entity_marker(self, builder: EntityMetadataBuilder):
        with pytest.raises(MappingException, match="@entity"):
            builder.build(NotAnEntity)

    def test_requires_dataclass(self, builder: EntityMetadataBuilder):
        with pytest.raises(MappingException, match="dataclass"):
            builder.build(NotADataclass)

    def test_more_than_one_id_rejected(self, builder: EntityMetadataBuilder):
        with pytest.raises(MappingException, match="more than one id"):
            builder.build(TwoIds)

    def test_shared_storage_name_rejected(self, builder: EntityMetadataBuilder):
        with pytest.raises(MappingException, match="share the storage name"):
            builder.build(SharedColumn)


class TestInheritanceMetadata:
    def test_root(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Notification)
        assert metadata.is_inheritance
        assert metadata.has_entity_name
        assert metadata.inheritance.is_parent
        assert metadata.inheritance.discriminator_column == "kind"
        assert metadata.inheritance.discriminator_value == "Notification"

    def test_subtype_shares_root_collection(self, builder: EntityMetadataBuilder):
        metadata = builder.build(SmsNotification)
        assert metadata.name == "Notification"
        assert not metadata.has_entity_name
        assert metadata.inheritance.parent is Notification
        assert metadata.inheritance.discriminator_value == "SMS"
        assert not metadata.inheritance.is_parent

    def test_discriminator_defaults_to_class_name(self, builder: EntityMetadataBuilder):
        assert builder.build(EmailNotification).inheritance.discriminator_value == "EmailNotification"

    def test_subtype_inherits_parent_fields(self, builder: EntityMetadataBuilder):
        assert builder.build(SmsNotification).field_names == ["id", "message", "phone"]


class TestEntityMetadata:
    def test_column_name_translation(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert metadata.column_name("first_name") == "given_name"
        assert metadata.column_name("id") == "_id"
        assert metadata.column_name("age") == "age"

    def test_column_name_through_embedded(self, builder: EntityMetadataBuilder):
        assert builder.build(Person).column_name("address.city") == "address.city_name"

    def test_unknown_field_name_returned_unchanged(self, builder: EntityMetadataBuilder):
        assert builder.build(Person).column_name("nickname") == "nickname"

    def test_field_mapping_by_storage_name(self, builder: EntityMetadataBuilder):
        metadata = builder.build(Person)
        assert metadata.field_mapping("given_name").name == "first_name"
        assert metadata.field_mapping("first_name") is None

    def test_field_paths_include_embedded(self, builder: EntityMetadataBuilder):
        paths = builder.build(Person).field_paths()
        assert "address.city" in paths
        assert "address.street" in paths
        assert "first_name" in paths

    def test_equality_by_type(self):
        assert EntityMetadataBuilder().build(Person) == EntityMetadataBuilder("lower").build(Person)
        assert EntityMetadataBuilder().build(Person) != EntityMetadataBuilder().build(OrderLine)

    def test_new_instance(self, builder: EntityMetadataBuilder):
        person = builder.build(Person).new_instance(name="Ana", age=31)
        assert person == Person(name="Ana", age=31)
