"""Descriptor store: reads one manifest per dependency.

Lookup order for a dependency ``foo``:

1. ``<package dir of foo>/ui5-plugin-loader.json`` (shipped by the package)
2. ``<fallback dir>/foo.json`` (bundled or project-provided fallback)

A broken manifest is never fatal: it is logged and treated as absent, so a
broken package manifest falls through to the fallback directory.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ui5_plugin_loader.logger import logger
from ui5_plugin_loader.packages import PackageLocator, make_locator
from ui5_plugin_loader.schema import Validator
from ui5_plugin_loader.types import ManifestHit, Provenance

DEFAULT_MANIFEST_FILENAME = "ui5-plugin-loader.json"


class DescriptorStore:
    """Find, parse and validate extension manifests.

    Args:
        validator: Manifest validator; None skips schema validation.
        locator: Resolves a dependency name to its installed directory.
        manifest_filename: File name looked up inside a package directory.
    """

    def __init__(
        self,
        validator: Validator | None = None,
        *,
        locator: PackageLocator | None = None,
        manifest_filename: str = DEFAULT_MANIFEST_FILENAME,
    ) -> None:
        self._validator = validator
        self._locator = locator or make_locator()
        self._manifest_filename = manifest_filename

    def load(self, dependency_name: str, fallback_dir: Path | str) -> ManifestHit | None:
        """Return the manifest for *dependency_name*, preferring the package's own."""
        package_dir = self._locator(dependency_name)
        if package_dir is not None:
            path = package_dir / self._manifest_filename
            logger.debug("Checking package manifest", dependency=dependency_name, path=str(path))
            document = self.read_manifest(path)
            if document is not None:
                logger.info("Found manifest in package", dependency=dependency_name)
                return ManifestHit(document, Provenance.PACKAGE, path)

        path = Path(fallback_dir) / f"{dependency_name}.json"
        logger.debug("Checking fallback manifest", dependency=dependency_name, path=str(path))
        document = self.read_manifest(path)
        if document is not None:
            logger.info("Found manifest in fallback directory", dependency=dependency_name)
            return ManifestHit(document, Provenance.FALLBACK, path)

        logger.debug("No manifest found", dependency=dependency_name)
        return None

    def read_manifest(self, path: Path) -> dict[str, Any] | None:
        """Parse and validate one manifest file. Never raises."""
        if not path.is_file():
            return None

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Failed to load manifest", path=str(path), error=str(exc))
            return None

        if not isinstance(document, dict):
            logger.error("Manifest must be a JSON object", path=str(path))
            return None

        if self._validator is not None:
            issues = self._validator.validate(document)
            if issues:
                logger.error("Invalid manifest", path=str(path), violations=len(issues))
                for issue in issues:
                    logger.error(
                        "Manifest violation",
                        path=str(path),
                        at=issue.path or "/",
                        message=issue.message,
                    )
                return None

        if "$schema" not in document:
            logger.warning(
                "Manifest has no $schema property; add one for editor support",
                path=str(path),
            )

        logger.debug("Loaded and validated manifest", path=str(path))
        return document
