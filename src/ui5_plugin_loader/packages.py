"""Locate installed extension packages in the host environment."""

from __future__ import annotations

import importlib.util
import re
from collections.abc import Callable
from pathlib import Path

# Given a package name, return its directory (or None when not installed)
PackageLocator = Callable[[str], Path | None]

_NON_IDENTIFIER_RE = re.compile(r"[^0-9a-zA-Z_]+")


def import_name_for(package_name: str) -> str:
    """Map a distribution-style name to its import name.

    ``ui5-tooling-modules`` → ``ui5_tooling_modules``;
    ``@scope/some-pkg`` → ``scope_some_pkg``.
    """
    return _NON_IDENTIFIER_RE.sub("_", package_name.lstrip("@")).strip("_").lower()


def locate_package(package_name: str, packages_dir: Path | None = None) -> Path | None:
    """Return the directory of an installed package, or None.

    A ``packages_dir`` (node_modules-style layout, one directory per package)
    is consulted first; otherwise the import system is asked for a package
    of the derived import name.
    """
    if packages_dir is not None:
        candidate = packages_dir / package_name
        if candidate.is_dir():
            return candidate

    import_name = import_name_for(package_name)
    if not import_name:
        return None
    try:
        spec = importlib.util.find_spec(import_name)
    except (ImportError, ValueError):
        return None
    if spec is None or not spec.submodule_search_locations:
        return None
    return Path(next(iter(spec.submodule_search_locations)))


def make_locator(packages_dir: Path | None = None) -> PackageLocator:
    """Bind *packages_dir* into a :data:`PackageLocator`."""

    def _locate(package_name: str) -> Path | None:
        return locate_package(package_name, packages_dir)

    return _locate
