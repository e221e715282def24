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
"""Tests for the @query decorator and CustomQueryCompiler."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from pynosql.data.condition import Condition
from pynosql.data.query_decorator import CustomQueryCompiler, _substitute_params, query, query_filter
from pynosql.kernel.exceptions import InvalidQueryError, RepositoryDefinitionError
from pynosql.mapping import EntityMetadataBuilder, column, embeddable, entity, id_field
from pynosql.mapping.metadata import EntityMetadata


@embeddable
@dataclass
class Address:
    city: str = column("city_name", default="")


@entity("people")
@dataclass
class Person:
    id: str | None = id_field()
    name: str = ""
    nickname: str = ""
    age: int = column("years", default=0)
    active: bool = True
    address: Address | None = None


@pytest.fixture(scope="module")
def metadata() -> EntityMetadata:
    return EntityMetadataBuilder().build(Person)


def compile_filter(filter_document: str, metadata: EntityMetadata, *parameters: str):
    @query(filter_document)
    async def custom(self): ...

    return CustomQueryCompiler().compile(custom, metadata, parameters)


class TestQueryDecorator:
    def test_stores_filter(self):
        @query('{"name": ":name"}')
        async def by_name(self, name: str): ...

        assert query_filter(by_name) == '{"name": ":name"}'

    def test_undecorated(self):
        async def plain(self): ...

        assert query_filter(plain) is None


class TestSubstituteParams:
    def test_exact_placeholder_keeps_type(self):
        assert _substitute_params(":age", {"age": 30}) == 30
        assert _substitute_params(":tags", {"tags": ["a"]}) == ["a"]

    def test_embedded_placeholder_is_stringified(self):
        assert _substitute_params("%:name%", {"name": "An"}) == "%An%"

    def test_embedded_placeholder_matches_whole_name(self):
        params = {"name": "zzz", "name_prefix": "Bo"}
        assert _substitute_params(":name_prefix%", params) == "Bo%"
        assert _substitute_params(":name-:name_prefix", params) == "zzz-Bo"

    def test_time_literal_is_not_a_placeholder(self):
        assert _substitute_params("10:30", {"30": "x"}) == "10:30"

    def test_lists_recursed(self):
        assert _substitute_params([":a", 2, ":b"], {"a": 1, "b": 3}) == [1, 2, 3]

    def test_other_values_unchanged(self):
        assert _substitute_params(True, {"a": 1}) is True
        assert _substitute_params("plain", {"a": 1}) == "plain"


class TestCustomQueryCompiler:
    def test_equality_with_parameter(self, metadata: EntityMetadata):
        plan = compile_filter('{"name": ":name"}', metadata, "name")
        assert plan.build(params={"name": "Ana"}).condition == Condition.eq("name", "Ana")

    def test_several_keys_are_anded(self, metadata: EntityMetadata):
        plan = compile_filter('{"age": {"$gt": ":age"}, "active": true}', metadata, "age")
        assert plan.build(params={"age": 30}).condition == Condition.and_(
            Condition.gt("years", 30), Condition.eq("active", True)
        )

    def test_or_of_documents(self, metadata: EntityMetadata):
        plan = compile_filter('{"$or": [{"name": ":name"}, {"nickname": ":name"}]}', metadata, "name")
        assert plan.build(params={"name": "Ana"}).condition == Condition.or_(
            Condition.eq("name", "Ana"), Condition.eq("nickname", "Ana")
        )

    def test_not(self, metadata: EntityMetadata):
        plan = compile_filter('{"$not": {"active": true}}', metadata)
        assert plan.build().condition == Condition.not_(Condition.eq("active", True))

    @pytest.mark.parametrize(
        ("operator", "operand", "expected"),
        [
            ("$eq", "1", Condition.eq("years", 1)),
            ("$ne", "1", Condition.not_(Condition.eq("years", 1))),
            ("$gte", "1", Condition.gte("years", 1)),
            ("$lt", "1", Condition.lt("years", 1)),
            ("$lte", "1", Condition.lte("years", 1)),
            ("$in", "[1, 2]", Condition.in_("years", (1, 2))),
            ("$between", "[1, 2]", Condition.between("years", 1, 2)),
        ],
    )
    def test_field_operators(self, metadata: EntityMetadata, operator: str, operand: str, expected: Condition):
        plan = compile_filter(f'{{"age": {{"{operator}": {operand}}}}}', metadata)
        assert plan.build().condition == expected

    def test_like_with_placeholder_inside_pattern(self, metadata: EntityMetadata):
        plan = compile_filter('{"name": {"$like": ":prefix%"}}', metadata, "prefix")
        assert plan.build(params={"prefix": "An"}).condition == Condition.like("name", "An%")

    def test_embedded_field(self, metadata: EntityMetadata):
        plan = compile_filter('{"address.city": ":city"}', metadata, "city")
        assert plan.build(params={"city": "Porto"}).condition == Condition.eq("address.city_name", "Porto")

    def test_empty_filter_matches_everything(self, metadata: EntityMetadata):
        assert compile_filter("{}", metadata).build().condition is None

    def test_between_requires_pair_at_call_time(self, metadata: EntityMetadata):
        plan = compile_filter('{"age": {"$between": ":range"}}', metadata, "range")
        with pytest.raises(InvalidQueryError):
            plan.build(params={"range": [1, 2, 3]})

    @pytest.mark.parametrize(
        ("filter_document", "reason"),
        [
            ('{"name": ', "invalid JSON"),
            ('["name"]', "JSON object"),
            ('{"name": ":missing"}', ":missing"),
            ('{"name": {"$like": "%:missing%"}}', ":missing"),
            ('{"height": 1}', "unknown field 'height'"),
            ('{"age": {"$regex": "x"}}', "unknown operator '$regex'"),
            ('{"$nor": [{"age": 1}]}', "unknown operator '$nor'"),
            ('{"$or": []}', "non-empty list"),
            ('{"$and": [1]}', "JSON objects"),
        ],
    )
    def test_definition_errors(self, metadata: EntityMetadata, filter_document: str, reason: str):
        with pytest.raises(RepositoryDefinitionError) as exc_info:
            compile_filter(filter_document, metadata)
        assert reason in exc_info.value.reason

    def test_undecorated_method(self, metadata: EntityMetadata):
        async def plain(self): ...

        with pytest.raises(RepositoryDefinitionError):
            CustomQueryCompiler().compile(plain, metadata)
