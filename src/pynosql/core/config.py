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
"""Layered PyNoSQL configuration.

Sources, later wins:

1. Packaged defaults (``pynosql/resources/pynosql-defaults.yaml``).
2. The files given to :meth:`Config.load`, YAML or TOML by suffix.
3. Profile overlays next to each file: ``<stem>-<profile><suffix>``.
4. ``PYNOSQL_*`` environment variables, read on every lookup
   (``pynosql.data.document.uri`` -> ``PYNOSQL_DATA_DOCUMENT_URI``).

String values may reference other keys or environment variables with
``${key}`` and ``${key:default}``.

Typed sections come from :func:`config_properties` classes passed to
:meth:`Config.bind`; see :mod:`pynosql.config.properties`.

Usage::

    config = Config.load("pynosql.yaml", profiles=["test"])
    entities = EntitiesMetadata(EntityMetadataBuilder.from_config(config))
    template = MongoTemplate.from_config(config, EntityConverter(entities))
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from pynosql.kernel.exceptions import ConfigurationError

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10

_CONFIG_PROPERTIES_ATTR = "__pynosql_config_prefix__"

_ENV_PREFIX = "PYNOSQL_"
_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass or pydantic model as the typed view of *prefix*.

    Usage::

        @config_properties(prefix="pynosql.mapping")
        @dataclass
        class MappingProperties:
            collection_naming: str = "class"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


def env_key(key: str) -> str:
    """Environment variable overriding the dot-notation *key*."""
    return _ENV_PREFIX + key.removeprefix("pynosql.").upper().replace(".", "_").replace("-", "_")


class Config:
    """Hierarchical configuration with dot-notation access."""

    def __init__(self, data: Mapping[str, Any] | None = None, sources: Sequence[str] = ()) -> None:
        self._data: dict[str, Any] = dict(data or {})
        self._sources = tuple(sources)

    @property
    def sources(self) -> tuple[str, ...]:
        """Files merged into this configuration, in merge order."""
        return self._sources

    @classmethod
    def load(cls, *paths: str | Path, profiles: Sequence[str] = (), defaults: bool = True) -> Config:
        """Merge the packaged defaults, *paths* and their profile overlays.

        Raises:
            ConfigurationError: When one of *paths* does not exist. Profile
                overlays are optional.
        """
        data = _read_defaults() if defaults else {}
        sources: list[str] = []
        for path in map(Path, paths):
            if not path.is_file():
                raise ConfigurationError(
                    f"Configuration file not found: {path}", code="CONFIG_001", context={"path": str(path)}
                )
            overlays = (path.with_name(f"{path.stem}-{profile}{path.suffix}") for profile in profiles)
            for layer in (path, *overlays):
                if layer.is_file():
                    data = _merge(data, _read_file(layer))
                    sources.append(str(layer))
        return cls(data, sources)

    def get(self, key: str, default: Any = None) -> Any:
        """Value at *key*; the environment wins and placeholders are resolved."""
        env_value = os.environ.get(env_key(key))
        if env_value is not None:
            return env_value
        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._resolve(value)
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Copy of the mapping stored under *prefix* (empty when absent)."""
        section = self._lookup(prefix)
        return dict(section) if isinstance(section, Mapping) else {}

    def bind(self, properties_cls: type[T]) -> T:
        """Build the ``@config_properties`` class *properties_cls* from its section.

        Environment overrides apply field by field. Pydantic models are
        validated on the spot; dataclass fields typed ``int``, ``float`` or
        ``bool`` are converted from strings.

        Raises:
            ConfigurationError: When the class is not decorated, or a value
                fails validation or conversion.
        """
        prefix = getattr(properties_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ConfigurationError(
                f"{properties_cls.__name__} is not decorated with @config_properties", code="CONFIG_002"
            )

        if issubclass(properties_cls, BaseModel):
            values = self.get_section(prefix)
            for name in properties_cls.model_fields:
                value = self.get(f"{prefix}.{name}")
                if value is not None:
                    values[name] = value
            try:
                return properties_cls.model_validate(values)
            except ValidationError as exc:
                raise ConfigurationError(
                    f"Configuration validation failed for '{properties_cls.__name__}' (prefix='{prefix}'):\n{exc}",
                    code="CONFIG_003",
                    context={"prefix": prefix},
                ) from exc

        hints = get_type_hints(properties_cls)
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(properties_cls):  # type: ignore[arg-type]
            key = f"{prefix}.{field.name}"
            value = self.get(key)
            if value is not None:
                kwargs[field.name] = _coerce(key, value, hints.get(field.name))
        return properties_cls(**kwargs)

    def _lookup(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, Mapping):
                return None
            current = current.get(part)
        return current

    def _resolve(self, value: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ConfigurationError(
                f"Placeholders in '{value}' nest too deeply; check for circular references", code="CONFIG_004"
            )

        def replace(match: re.Match[str]) -> str:
            inner = match.group(1)
            ref, has_default, fallback = inner.partition(":")
            resolved = os.environ.get(ref)
            if resolved is None:
                found = self._lookup(ref)
                resolved = None if found is None else str(found)
            if resolved is None:
                if has_default:
                    return fallback
                raise ConfigurationError(
                    f"Cannot resolve placeholder '${{{inner}}}': not found in environment or config",
                    code="CONFIG_004",
                    context={"placeholder": inner},
                )
            return self._resolve(resolved, depth + 1) if "${" in resolved else resolved

        return _PLACEHOLDER_RE.sub(replace, value)


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with open(path, "rb") as f:
            return tomllib.load(f)
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _read_defaults() -> dict[str, Any]:
    defaults = importlib.resources.files("pynosql.resources").joinpath("pynosql-defaults.yaml")
    return yaml.safe_load(defaults.read_text()) or {}


def _merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = _merge(current, value) if isinstance(current, Mapping) and isinstance(value, Mapping) else value
    return merged


def _coerce(key: str, value: Any, expected: Any) -> Any:
    if not isinstance(value, str):
        return value
    if expected is bool:
        return value.strip().lower() in _TRUE_VALUES
    if expected in (int, float):
        try:
            return expected(value)
        except ValueError as exc:
            raise ConfigurationError(
                f"'{key}' must be {expected.__name__}, got '{value}'", code="CONFIG_003", context={"key": key}
            ) from exc
    return value
