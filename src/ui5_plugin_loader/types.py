"""Data models for ui5-plugin-loader."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Literal, NamedTuple

from ui5_plugin_loader.errors import ManifestError


class Category(StrEnum):
    MIDDLEWARE = "middleware"
    TASK = "task"

    @property
    def hint_keys(self) -> tuple[str, str]:
        """Manifest keys carrying the (after, before) hint for this category."""
        if self is Category.MIDDLEWARE:
            return ("afterMiddleware", "beforeMiddleware")
        return ("afterTask", "beforeTask")

    @property
    def manifest_key(self) -> str:
        """Top-level manifest array holding entries of this category."""
        return "middleware" if self is Category.MIDDLEWARE else "tasks"


class Provenance(StrEnum):
    PACKAGE = "package"  # <package dir>/ui5-plugin-loader.json
    FALLBACK = "fallback"  # <manifests dir>/<package>.json


@dataclass(frozen=True)
class OrderHint:
    direction: Literal["after", "before"]
    target: str


@dataclass(frozen=True)
class ExtensionDescriptor:
    """One middleware or task entry contributed by a manifest.

    Instances are never mutated; pipeline stages derive new ones with
    ``dataclasses.replace``.
    """

    name: str
    category: Category
    source_dependency: str
    provenance: Provenance
    order_hint: OrderHint | None = None
    mount_path: str | None = None
    configuration: Mapping[str, Any] = field(default_factory=dict)
    dependencies: tuple[str, ...] = ()
    order: int | None = None

    @classmethod
    def from_entry(
        cls,
        entry: Mapping[str, Any],
        category: Category,
        dependency: str,
        provenance: Provenance,
    ) -> ExtensionDescriptor:
        """Build a descriptor from one raw manifest array entry.

        Raises:
            ManifestError: If the entry is not an object or has no usable name.
        """
        if not isinstance(entry, Mapping):
            raise ManifestError(f"{category.manifest_key} entry must be an object")
        name = entry.get("name")
        if not isinstance(name, str) or not name:
            raise ManifestError(f"{category.manifest_key} entry is missing a name")

        after_key, before_key = category.hint_keys
        hint = None
        # "after" wins when a manifest sets both directions
        if entry.get(after_key):
            hint = OrderHint("after", entry[after_key])
        elif entry.get(before_key):
            hint = OrderHint("before", entry[before_key])

        configuration = entry.get("configuration") or {}
        if not isinstance(configuration, Mapping):
            raise ManifestError(f"configuration of '{name}' must be an object")

        return cls(
            name=name,
            category=category,
            source_dependency=dependency,
            provenance=provenance,
            order_hint=hint,
            mount_path=entry.get("mountPath") if category is Category.MIDDLEWARE else None,
            configuration=dict(configuration),
            dependencies=tuple(entry.get("dependencies") or ()),
            order=entry.get("order"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Host-facing shape, using the manifest's camelCase keys."""
        result: dict[str, Any] = {"name": self.name}
        if self.order_hint is not None:
            after_key, before_key = self.category.hint_keys
            key = after_key if self.order_hint.direction == "after" else before_key
            result[key] = self.order_hint.target
        if self.mount_path is not None:
            result["mountPath"] = self.mount_path
        result["configuration"] = dict(self.configuration)
        if self.dependencies:
            result["dependencies"] = list(self.dependencies)
        if self.order is not None:
            result["order"] = self.order
        return result


class ManifestHit(NamedTuple):
    document: dict[str, Any]
    provenance: Provenance
    path: Path


@dataclass(frozen=True)
class PipelineResult:
    middleware: tuple[ExtensionDescriptor, ...]
    tasks: tuple[ExtensionDescriptor, ...]
    duration_ms: float
    total: int


# (request, response, proceed) -> awaitable
Handler = Callable[[Any, Any, Callable[..., Awaitable[None]]], Awaitable[None]]


@dataclass
class LoadedHandler:
    name: str
    handler: Handler
