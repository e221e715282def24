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

# =============================================================================
# Base Exception
# =============================================================================


class PyNoSQLException(Exception):
    """Base exception for all PyNoSQL errors.

    Carries an optional error code and context dict for structured error data.
    Catch PyNoSQLException to handle every mapping, query and repository
    failure, or catch specific subclasses for targeted handling.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "MAPPING_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


class NullArgumentError(PyNoSQLException):
    """A required argument was ``None``."""

    def __init__(self, argument: str) -> None:
        super().__init__(f"{argument} is required", code="ARGUMENT_001", context={"argument": argument})
        self.argument = argument


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(PyNoSQLException):
    """Configuration could not be loaded, resolved or bound."""


# =============================================================================
# Mapping Exceptions
# =============================================================================


class MappingException(PyNoSQLException):
    """Entity metadata could not be built or resolved."""


class MetadataNotFoundError(MappingException):
    """The requested type is not a registered entity."""

    def __init__(self, entity_type: type) -> None:
        name = getattr(entity_type, "__qualname__", repr(entity_type))
        super().__init__(
            f"No entity metadata registered for {name}",
            code="MAPPING_001",
            context={"type": name},
        )
        self.entity_type = entity_type


class IdNotFoundError(MappingException):
    """An identifier-based operation was used on an entity without an id field."""

    def __init__(self, entity_type: type) -> None:
        name = getattr(entity_type, "__qualname__", repr(entity_type))
        super().__init__(
            f"Entity {name} does not declare an id field",
            code="MAPPING_002",
            context={"type": name},
        )
        self.entity_type = entity_type


class RegistryFrozenError(MappingException):
    """Entities cannot be registered once the registry has been frozen."""


# =============================================================================
# Query Exceptions
# =============================================================================


class QueryException(PyNoSQLException):
    """Query, condition or pagination arguments are not acceptable."""


class InvalidQueryError(QueryException):
    """Malformed Query or Condition construction arguments."""


class InvalidPageError(QueryException):
    """Page navigation or page request arguments are out of range."""


class UnsupportedCapabilityError(QueryException):
    """A capability is intentionally not implemented (e.g. page totals)."""

    def __init__(self, capability: str) -> None:
        super().__init__(
            f"PyNoSQL has no support for the capability '{capability}'",
            code="QUERY_404",
            context={"capability": capability},
        )
        self.capability = capability


# =============================================================================
# Repository Exceptions
# =============================================================================


class RepositoryException(PyNoSQLException):
    """Repository synthesis or execution failures."""


class NonUniqueResultError(RepositoryException):
    """A single-result repository method received more than one record."""

    def __init__(self, method: str, count: int) -> None:
        super().__init__(
            f"Method '{method}' expected a single result but received {count}",
            code="REPOSITORY_002",
            context={"method": method, "count": count},
        )
        self.method = method


class RepositoryDefinitionError(RepositoryException):
    """A repository method cannot be classified into a known query shape."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(
            f"Invalid repository method '{method}': {reason}",
            code="REPOSITORY_001",
            context={"method": method, "reason": reason},
        )
        self.method = method
        self.reason = reason
