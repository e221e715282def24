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
"""PyNoSQL Data — query model and repository synthesis.

Provides the store-agnostic abstractions (Condition, Sort, Query,
PageRequest, Page), the :class:`Repository` base class, and the
:class:`RepositoryDispatcher` that compiles derived ``find_by_*`` names
and ``@query`` filters into queries run by a template.

Templates:
    - **In-memory** (``pynosql.testing``): dict-backed, synchronous.
    - **MongoDB** (``pynosql.data.document.mongodb``): pymongo + motor.
"""

from pynosql.data.condition import Condition, Operator
from pynosql.data.dispatcher import MethodKind, QueryMethod, RepositoryDispatcher, ReturnShape
from pynosql.data.page import Page
from pynosql.data.pageable import Direction, PageRequest, Sort
from pynosql.data.ports.outbound import CrudRepository, PagingRepository, TemplatePort
from pynosql.data.projection import projection
from pynosql.data.query import Query, QueryBuilder, select
from pynosql.data.query_compiler import QueryMethodCompiler, QueryPlan
from pynosql.data.query_decorator import CustomQueryCompiler, query
from pynosql.data.query_parser import QueryMethodParser
from pynosql.data.repository import Repository

__all__ = [
    "Condition",
    "CrudRepository",
    "CustomQueryCompiler",
    "Direction",
    "MethodKind",
    "Operator",
    "Page",
    "PageRequest",
    "PagingRepository",
    "Query",
    "QueryBuilder",
    "QueryMethod",
    "QueryMethodCompiler",
    "QueryMethodParser",
    "QueryPlan",
    "Repository",
    "RepositoryDispatcher",
    "ReturnShape",
    "Sort",
    "TemplatePort",
    "projection",
    "query",
    "select",
]
