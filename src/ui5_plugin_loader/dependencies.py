"""Dependency enumerator: direct dependency names of the host project.

No transitive resolution and no deduplication: the required group comes
first, then the development group, exactly as declared. Duplicates are
resolved later by the pipeline's deduplication stage.

Python requirement names are normalized (PEP 503), so ``UI5_Tooling_Modules``
is looked up as ``ui5-tooling-modules``. package.json names are npm names and
are used verbatim.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from ui5_plugin_loader.logger import logger

DEFAULT_DESCRIPTORS = ("pyproject.toml", "package.json")


def requirement_name(requirement: str) -> str | None:
    """``"UI5_Tooling_Modules>=3.0 ; python_version>'3.10'"`` → ``"ui5-tooling-modules"``."""
    try:
        return canonicalize_name(Requirement(requirement.strip()).name)
    except InvalidRequirement:
        return None


def _names_from_requirements(requirements: Any) -> list[str]:
    names: list[str] = []
    if not isinstance(requirements, list):
        return names
    for item in requirements:
        # Dependency groups may hold {include-group = "..."} tables; those are not packages
        if not isinstance(item, str):
            continue
        name = requirement_name(item)
        if name:
            names.append(name)
        else:
            logger.warning("Ignoring unparseable requirement", requirement=item)
    return names


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _from_pyproject(data: dict[str, Any]) -> list[str]:
    project = _table(data, "project")
    names = _names_from_requirements(project.get("dependencies"))
    names += _names_from_requirements(_table(data, "dependency-groups").get("dev"))
    names += _names_from_requirements(_table(project, "optional-dependencies").get("dev"))
    return names


def _from_package_json(data: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for key in ("dependencies", "devDependencies"):
        group = data.get(key)
        if isinstance(group, dict):
            names.extend(group)
    return names


class DependencyEnumerator:
    """Read the declared dependencies of the project rooted at *project_root*.

    The first descriptor file in *descriptors* that exists is used.
    """

    def __init__(
        self,
        project_root: Path,
        descriptors: Sequence[str] = DEFAULT_DESCRIPTORS,
    ) -> None:
        self.project_root = Path(project_root)
        self.descriptors = tuple(descriptors)

    def find_descriptor(self) -> Path | None:
        for filename in self.descriptors:
            path = self.project_root / filename
            if path.is_file():
                return path
        return None

    def list_all(self) -> list[str]:
        """Return dependency names (required, then development). Never raises."""
        path = self.find_descriptor()
        if path is None:
            logger.warning(
                "No project descriptor found",
                project_root=str(self.project_root),
                looked_for=list(self.descriptors),
            )
            return []

        try:
            if path.suffix == ".toml":
                with path.open("rb") as f:
                    names = _from_pyproject(tomllib.load(f))
            else:
                data = json.loads(path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    raise ValueError("project descriptor must be a JSON object")
                names = _from_package_json(data)
        except (OSError, ValueError) as exc:
            # tomllib.TOMLDecodeError and json.JSONDecodeError are ValueErrors
            logger.error("Failed to read project descriptor", path=str(path), error=str(exc))
            return []

        logger.debug("Enumerated dependencies", path=str(path), count=len(names))
        return names
