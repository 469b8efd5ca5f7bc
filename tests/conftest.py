"""Shared test fixtures for ui5-plugin-loader."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from ui5_plugin_loader.types import Category, ExtensionDescriptor, OrderHint, Provenance

# ---------------------------------------------------------------------------
# Shared helpers (plain functions, not fixtures, importable by test files)
# ---------------------------------------------------------------------------

_CACHED_PROPERTY_NAMES = frozenset({"project_root"})


def make_settings(**overrides):
    """Create a Settings object from pure defaults (no toml, no .env, no env vars).

    Accepts model fields and cached property overrides::

        s = make_settings(manifests_dir=tmp_path)
        s = make_settings(project_root=tmp_path)
    """
    from ui5_plugin_loader.config import Settings

    cached = {k: overrides.pop(k) for k in list(overrides) if k in _CACHED_PROPERTY_NAMES}
    s = Settings.model_construct(**overrides)
    for key, value in cached.items():
        s.__dict__[key] = value
    return s


def make_descriptor(
    name: str,
    category: Category = Category.MIDDLEWARE,
    *,
    dependency: str = "some-dep",
    provenance: Provenance = Provenance.FALLBACK,
    after: str | None = None,
    before: str | None = None,
    **fields: Any,
) -> ExtensionDescriptor:
    hint = None
    if after is not None:
        hint = OrderHint("after", after)
    elif before is not None:
        hint = OrderHint("before", before)
    return ExtensionDescriptor(
        name=name,
        category=category,
        source_dependency=dependency,
        provenance=provenance,
        order_hint=hint,
        **fields,
    )


def write_json(path: Path, document: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def no_packages(package_name: str) -> Path | None:
    """PackageLocator that reports every package as not installed."""
    return None


class FakeEnumerator:
    """Stands in for DependencyEnumerator with a fixed dependency list."""

    def __init__(self, names: list[str]):
        self.names = list(names)

    def list_all(self) -> list[str]:
        return list(self.names)


# ---------------------------------------------------------------------------
# Autouse fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    """Ensure each test starts with a clean Settings singleton built from defaults."""
    safe = make_settings(project_root=tmp_path)
    monkeypatch.setattr("ui5_plugin_loader.config._settings", safe)


# ---------------------------------------------------------------------------
# Reusable fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def manifests_dir(tmp_path: Path) -> Path:
    path = tmp_path / "manifests"
    path.mkdir()
    return path
