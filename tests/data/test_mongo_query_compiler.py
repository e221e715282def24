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
"""Tests for MongoQueryCompiler: unit tests, no MongoDB required."""

from __future__ import annotations

import pymongo
import pytest

from pynosql.data.condition import Condition
from pynosql.data.document.mongodb import MongoQuery, MongoQueryCompiler
from pynosql.data.pageable import Sort
from pynosql.data.query import Query


@pytest.fixture
def compiler():
    return MongoQueryCompiler()


class TestBuildFilter:
    def test_none_matches_everything(self, compiler: MongoQueryCompiler):
        assert compiler.build_filter(None) == {}

    @pytest.mark.parametrize(
        ("condition", "expected"),
        [
            (Condition.eq("name", "Ana"), {"name": "Ana"}),
            (Condition.eq("email", None), {"email": None}),
            (Condition.eq("tags", ["a", "b"]), {"tags": ["a", "b"]}),
            (Condition.gt("age", 1), {"age": {"$gt": 1}}),
            (Condition.gte("age", 1), {"age": {"$gte": 1}}),
            (Condition.lt("age", 1), {"age": {"$lt": 1}}),
            (Condition.lte("age", 1), {"age": {"$lte": 1}}),
            (Condition.in_("age", (1, 2)), {"age": {"$in": [1, 2]}}),
            (Condition.between("age", 18, 65), {"age": {"$gte": 18, "$lte": 65}}),
            (Condition.like("name", "An%"), {"name": {"$regex": r"^An.*(?![\s\S])", "$options": "s"}}),
            (Condition.like("name", "a.b_"), {"name": {"$regex": r"^a\.b.(?![\s\S])", "$options": "s"}}),
        ],
    )
    def test_leaf(self, compiler: MongoQueryCompiler, condition: Condition, expected: dict):
        assert compiler.build_filter(condition) == expected

    def test_logical(self, compiler: MongoQueryCompiler):
        condition = Condition.or_(
            Condition.eq("name", "Ana"),
            Condition.and_(Condition.gt("age", 30), Condition.not_(Condition.eq("active", False))),
        )
        assert compiler.build_filter(condition) == {
            "$or": [
                {"name": "Ana"},
                {"$and": [{"age": {"$gt": 30}}, {"$nor": [{"active": False}]}]},
            ]
        }

    def test_embedded_path(self, compiler: MongoQueryCompiler):
        assert compiler.build_filter(Condition.eq("address.city", "Porto")) == {"address.city": "Porto"}


class TestCompile:
    def test_full_query(self, compiler: MongoQueryCompiler):
        query = Query.of("people", Condition.eq("name", "Ana"), [Sort.desc("age"), Sort.asc("name")], 20, 10)
        assert compiler.compile(query) == MongoQuery(
            collection="people",
            filter={"name": "Ana"},
            sort=[("age", pymongo.DESCENDING), ("name", pymongo.ASCENDING)],
            skip=20,
            limit=10,
        )

    def test_defaults(self, compiler: MongoQueryCompiler):
        mongo_query = compiler.compile(Query.of("people"))
        assert (mongo_query.filter, mongo_query.sort, mongo_query.skip, mongo_query.limit, mongo_query.projection) == ({}, [], 0, 0, None)

    def test_projection_hides_id(self, compiler: MongoQueryCompiler):
        mongo_query = compiler.compile(Query.of("people", projection=["name", "age"]))
        assert mongo_query.projection == {"name": 1, "age": 1, "_id": 0}

    def test_projection_keeps_requested_id(self, compiler: MongoQueryCompiler):
        mongo_query = compiler.compile(Query.of("people", projection=["_id", "name"]))
        assert mongo_query.projection == {"_id": 1, "name": 1}
