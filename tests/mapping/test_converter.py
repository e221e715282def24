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
"""Tests for EntityConverter: entity <-> record round trips."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from pynosql.kernel.exceptions import IdNotFoundError, MappingException, NullArgumentError
from pynosql.mapping import (
    EntitiesMetadata,
    EntityConverter,
    column,
    discriminator_value,
    embeddable,
    entity,
    id_field,
    inheritance,
    transient,
)


@embeddable
@dataclass
class Address:
    city: str = column("city_name", default="")
    zip_code: str = ""


@entity("customers")
@dataclass
class Customer:
    id: str | None = id_field()
    name: str = column("full_name", default="")
    address: Address | None = None
    previous: list[Address] = field(default_factory=list)
    tags: tuple[str, ...] = ()
    scores: set[int] = field(default_factory=set)
    session: str = transient(default="")


@entity
@dataclass
class Tally:
    name: str = ""
    total: int = field(default=0, init=False)


@entity
@inheritance(discriminator_column="type")
@dataclass
class Shape:
    id: str | None = id_field()
    label: str = ""


@entity
@discriminator_value("circle")
@dataclass
class Circle(Shape):
    radius: float = 0.0


@entity
@discriminator_value("square")
@dataclass
class Square(Shape):
    side: float = 0.0


@entity
@discriminator_value("rounded")
@dataclass
class RoundedSquare(Square):
    corner: float = 0.0


@pytest.fixture
def converter():
    entities = EntitiesMetadata()
    entities.register(Customer, Tally, Shape, Circle, Square, RoundedSquare)
    entities.freeze()
    return EntityConverter(entities)


class TestToRecord:
    def test_storage_names_and_embedded_values(self, converter: EntityConverter):
        customer = Customer(id="c1", name="Ana", address=Address("Lisbon", "1000"), tags=("vip",))
        assert converter.to_record(customer) == {
            "_id": "c1",
            "full_name": "Ana",
            "address": {"city_name": "Lisbon", "zip_code": "1000"},
            "previous": [],
            "tags": ["vip"],
            "scores": [],
        }

    def test_transient_not_stored(self, converter: EntityConverter):
        record = converter.to_record(Customer(id="c1", session="abc"))
        assert "session" not in record

    def test_discriminator_written(self, converter: EntityConverter):
        record = converter.to_record(Circle(id="s1", label="wheel", radius=2.0))
        assert record == {"type": "circle", "_id": "s1", "label": "wheel", "radius": 2.0}

    def test_none_entity_rejected(self, converter: EntityConverter):
        with pytest.raises(NullArgumentError):
            converter.to_record(None)

    def test_id_value(self, converter: EntityConverter):
        assert converter.id_value(Customer(id="c9")) == "c9"
        with pytest.raises(IdNotFoundError):
            converter.id_value(Tally(name="x"))


class TestToEntity:
    def test_round_trip(self, converter: EntityConverter):
        customer = Customer(
            id="c1",
            name="Ana",
            address=Address("Lisbon", "1000"),
            previous=[Address("Porto", "4000"), Address("Faro", "8000")],
            tags=("vip", "early"),
            scores={3, 5},
        )
        assert converter.to_entity(Customer, converter.to_record(customer)) == customer

    def test_collections_rebuilt_with_declared_container(self, converter: EntityConverter):
        restored = converter.to_entity(Customer, {"_id": "c1", "tags": ["a"], "scores": [1, 1, 2]})
        assert restored.tags == ("a",)
        assert restored.scores == {1, 2}

    def test_missing_fields_use_defaults(self, converter: EntityConverter):
        restored = converter.to_entity(Customer, {"_id": "c2"})
        assert restored == Customer(id="c2")

    def test_unknown_record_keys_ignored(self, converter: EntityConverter):
        restored = converter.to_entity(Customer, {"_id": "c3", "full_name": "Rui", "legacy": True})
        assert restored.name == "Rui"

    def test_non_init_fields_set_after_construction(self, converter: EntityConverter):
        restored = converter.to_entity(Tally, {"name": "visits", "total": 42})
        assert restored.total == 42

    def test_none_record_rejected(self, converter: EntityConverter):
        with pytest.raises(NullArgumentError):
            converter.to_entity(Customer, None)

    def test_to_entities_preserves_order(self, converter: EntityConverter):
        records = [{"_id": str(i), "full_name": f"n{i}"} for i in range(5)]
        assert [c.id for c in converter.to_entities(Customer, records)] == ["0", "1", "2", "3", "4"]


class TestPolymorphicRead:
    def test_round_trip_through_root(self, converter: EntityConverter):
        circle = Circle(id="s1", label="wheel", radius=2.0)
        restored = converter.to_entity(Shape, converter.to_record(circle))
        assert type(restored) is Circle
        assert restored == circle

    def test_nested_subtype(self, converter: EntityConverter):
        shape = RoundedSquare(id="s2", side=3.0, corner=0.5)
        restored = converter.to_entity(Square, converter.to_record(shape))
        assert type(restored) is RoundedSquare
        assert restored == shape

    def test_record_without_discriminator_reads_requested_type(self, converter: EntityConverter):
        assert type(converter.to_entity(Shape, {"_id": "s3", "label": "x"})) is Shape

    def test_unknown_discriminator_raises(self, converter: EntityConverter):
        with pytest.raises(MappingException, match="triangle"):
            converter.to_entity(Shape, {"type": "triangle", "_id": "s4"})

    def test_discriminator_outside_requested_subtree_raises(self, converter: EntityConverter):
        with pytest.raises(MappingException):
            converter.to_entity(Square, {"type": "circle", "_id": "s5"})
