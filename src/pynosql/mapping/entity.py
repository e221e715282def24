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
"""Entity declaration markers.

Entities are plain dataclasses marked with :func:`entity`. Field helpers
wrap :func:`dataclasses.field` and record the storage name in the field
metadata, so the declaration stays a regular dataclass.

Example::

    @embeddable
    @dataclass
    class Address:
        city: str = column("city_name")
        street: str = ""


    @entity("people")
    @dataclass
    class Person:
        id: int = id_field()
        name: str = ""
        age: int = 0
        address: Address | None = None


    @entity
    @inheritance(discriminator_column="kind")
    @dataclass
    class Notification:
        id: str = id_field()


    @entity
    @discriminator_value("SMS")
    @dataclass
    class SmsNotification(Notification):
        phone: str = ""
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

_ENTITY_ATTR = "__pynosql_entity__"
_EMBEDDABLE_ATTR = "__pynosql_embeddable__"
_INHERITANCE_ATTR = "__pynosql_inheritance__"
_DISCRIMINATOR_ATTR = "__pynosql_discriminator__"

COLUMN_KEY = "pynosql.column"
ID_KEY = "pynosql.id"
TRANSIENT_KEY = "pynosql.transient"

DEFAULT_ID_COLUMN = "_id"
DEFAULT_DISCRIMINATOR_COLUMN = "dtype"


class _EntityMarker:
    """Holds the optional collection name declared by :func:`entity`."""

    __slots__ = ("name",)

    def __init__(self, name: str | None) -> None:
        self.name = name


def entity(cls: type[T] | str | None = None, *, name: str | None = None) -> Any:
    """Mark a dataclass as a mapped entity.

    Usable bare (``@entity``), with a positional collection name
    (``@entity("people")``) or with ``name=``. Without a name, the
    collection name follows ``pynosql.mapping.collection_naming``.
    """
    if isinstance(cls, str):
        name, cls = cls, None

    def decorator(target: type[T]) -> type[T]:
        setattr(target, _ENTITY_ATTR, _EntityMarker(name))
        return target

    if cls is None:
        return decorator
    return decorator(cls)


def embeddable(cls: type[T]) -> type[T]:
    """Mark a dataclass as a value stored as a nested record inside its owner."""
    setattr(cls, _EMBEDDABLE_ATTR, True)
    return cls


def inheritance(discriminator_column: str = DEFAULT_DISCRIMINATOR_COLUMN) -> Callable[[type[T]], type[T]]:
    """Declare *cls* as the root of a polymorphic hierarchy stored in one collection."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _INHERITANCE_ATTR, discriminator_column)
        return cls

    return decorator


def discriminator_value(value: str) -> Callable[[type[T]], type[T]]:
    """Set the discriminator stored for records of *cls* (defaults to the class name)."""

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _DISCRIMINATOR_ATTR, value)
        return cls

    return decorator


def column(name: str | None = None, **kwargs: Any) -> Any:
    """A mapped field stored under *name* (defaults to the field name).

    Remaining keyword arguments go to :func:`dataclasses.field`.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[COLUMN_KEY] = name
    return dataclasses.field(metadata=metadata, **kwargs)


def id_field(name: str = DEFAULT_ID_COLUMN, **kwargs: Any) -> Any:
    """The identifier field, stored under *name* (``_id`` by default).

    Defaults to ``None`` so entities can be created before a key is known.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[COLUMN_KEY] = name
    metadata[ID_KEY] = True
    if "default" not in kwargs and "default_factory" not in kwargs:
        kwargs["default"] = None
    return dataclasses.field(metadata=metadata, **kwargs)


def transient(**kwargs: Any) -> Any:
    """A dataclass field that is never stored. It must have a default."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TRANSIENT_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


# ---------------------------------------------------------------------------
# Introspection helpers
# ---------------------------------------------------------------------------


def is_entity(cls: Any) -> bool:
    """Whether *cls* itself (not only a base class) is marked with :func:`entity`."""
    return isinstance(cls, type) and isinstance(cls.__dict__.get(_ENTITY_ATTR), _EntityMarker)


def is_embeddable(cls: Any) -> bool:
    return isinstance(cls, type) and cls.__dict__.get(_EMBEDDABLE_ATTR) is True


def entity_name(cls: type) -> str | None:
    marker = cls.__dict__.get(_ENTITY_ATTR)
    return marker.name if isinstance(marker, _EntityMarker) else None


def inheritance_root(cls: type) -> type | None:
    """Return the class in *cls*'s MRO that declares :func:`inheritance`, if any."""
    for klass in cls.__mro__:
        if _INHERITANCE_ATTR in klass.__dict__:
            return klass
    return None


def declared_discriminator_column(cls: type) -> str:
    return cls.__dict__[_INHERITANCE_ATTR]


def declared_discriminator_value(cls: type) -> str:
    return cls.__dict__.get(_DISCRIMINATOR_ATTR, cls.__name__)
