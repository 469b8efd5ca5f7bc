"""JSON Schema validation for manifests and loader configuration.

Validators are built explicitly with :func:`load_validator` and handed to the
components that need them, so tests can pass fakes or ``None``. A schema that
cannot be loaded yields ``None`` and callers skip validation (fail-open).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, NamedTuple, Protocol

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from ui5_plugin_loader.logger import logger

SCHEMAS_DIR = Path(__file__).parent / "schemas"
MANIFEST_SCHEMA = "ui5-plugin-loader.schema.json"
LOADER_CONFIG_SCHEMA = "loader-config.schema.json"


class ValidationIssue(NamedTuple):
    path: str  # JSON pointer into the instance, "" for the root
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class Validator(Protocol):
    def validate(self, instance: Any) -> list[ValidationIssue]: ...


class SchemaValidator:
    """Thin wrapper around a compiled Draft 2020-12 validator."""

    def __init__(self, schema: dict[str, Any]) -> None:
        Draft202012Validator.check_schema(schema)
        self._validator = Draft202012Validator(schema)

    def validate(self, instance: Any) -> list[ValidationIssue]:
        """Return every violation, ordered by instance path. Empty means valid."""
        errors = sorted(
            self._validator.iter_errors(instance),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        return [
            ValidationIssue("".join(f"/{p}" for p in err.absolute_path), err.message)
            for err in errors
        ]


def load_validator(schema_name: str, schemas_dir: Path = SCHEMAS_DIR) -> SchemaValidator | None:
    """Compile the named schema, or return None when it is missing or broken."""
    schema_path = schemas_dir / schema_name
    if not schema_path.exists():
        logger.debug("Schema not found, validation disabled", schema=str(schema_path))
        return None
    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        return SchemaValidator(schema)
    except (OSError, json.JSONDecodeError, SchemaError) as exc:
        logger.warning("Schema validation disabled", schema=str(schema_path), error=str(exc))
        return None
