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
"""Tests for the EntitiesMetadata registry."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from pynosql.kernel.exceptions import MappingException, MetadataNotFoundError, RegistryFrozenError
from pynosql.mapping import EntitiesMetadata, EntityMetadataBuilder, discriminator_value, entity, id_field, inheritance


@entity("books")
@dataclass
class Book:
    id: str | None = id_field()
    title: str = ""


@entity
@inheritance()
@dataclass
class Vehicle:
    id: str | None = id_field()
    wheels: int = 0


@entity
@discriminator_value("car")
@dataclass
class Car(Vehicle):
    seats: int = 4


@entity
@discriminator_value("truck")
@dataclass
class Truck(Vehicle):
    payload: int = 0


@entity
@discriminator_value("car")
@dataclass
class Van(Vehicle):
    doors: int = 5


class Unregistered:
    pass


@pytest.fixture
def entities():
    registry = EntitiesMetadata()
    registry.register(Book, Vehicle, Car, Truck)
    return registry


class TestEntitiesMetadata:
    def test_get_registered(self, entities: EntitiesMetadata):
        assert entities.get(Book).name == "books"
        assert Book in entities
        assert len(entities) == 4

    def test_get_unregistered_raises(self, entities: EntitiesMetadata):
        with pytest.raises(MetadataNotFoundError) as exc_info:
            entities.get(Unregistered)
        assert exc_info.value.entity_type is Unregistered

    def test_register_is_idempotent(self, entities: EntitiesMetadata):
        first = entities.get(Book)
        entities.register(Book)
        assert entities.get(Book) is first
        assert len(entities) == 4

    def test_find_by_name_returns_hierarchy_root(self, entities: EntitiesMetadata):
        assert entities.find_by_name("Vehicle").type is Vehicle
        assert entities.find_by_name("books").type is Book
        assert entities.find_by_name("missing") is None

    def test_find_by_discriminator(self, entities: EntitiesMetadata):
        assert entities.find_by_discriminator(Vehicle, "car").type is Car
        assert entities.find_by_discriminator(Vehicle, "Vehicle").type is Vehicle
        assert entities.find_by_discriminator(Vehicle, "bus") is None

    def test_subtypes(self, entities: EntitiesMetadata):
        assert {m.type for m in entities.subtypes(Vehicle)} == {Vehicle, Car, Truck}

    def test_iteration(self, entities: EntitiesMetadata):
        assert {m.type for m in entities} == {Book, Vehicle, Car, Truck}

    def test_duplicate_discriminator_value_raises(self, entities: EntitiesMetadata):
        with pytest.raises(MappingException) as exc_info:
            entities.register(Van)
        assert exc_info.value.code == "MAPPING_012"
        assert exc_info.value.context["claimed_by"] == "Car"
        assert Van not in entities
        assert entities.find_by_discriminator(Vehicle, "car").type is Car

    def test_custom_builder(self):
        registry = EntitiesMetadata(EntityMetadataBuilder("lower"))
        registry.register(Vehicle)
        assert registry.get(Vehicle).name == "vehicle"


class TestFreeze:
    def test_register_after_freeze_raises(self, entities: EntitiesMetadata):
        entities.freeze()
        assert entities.frozen
        with pytest.raises(RegistryFrozenError):
            entities.register(Unregistered)

    def test_reads_after_freeze(self, entities: EntitiesMetadata):
        entities.freeze()
        assert entities.get(Car).inheritance.discriminator_value == "car"
