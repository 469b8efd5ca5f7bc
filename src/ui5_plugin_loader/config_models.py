"""Loader configuration models: the ``configuration`` block a host passes in.

Field names are snake_case in Python and camelCase on the wire (the same keys
used in ui5.yaml and in manifests).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ui5_plugin_loader.types import Category


class OverridePatch(BaseModel):
    """Partial replacement for one extension, keyed by extension name."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    after_middleware: str | None = Field(None, alias="afterMiddleware")
    before_middleware: str | None = Field(None, alias="beforeMiddleware")
    after_task: str | None = Field(None, alias="afterTask")
    before_task: str | None = Field(None, alias="beforeTask")
    mount_path: str | None = Field(None, alias="mountPath")
    configuration: dict[str, Any] | None = None

    def hints_for(self, category: Category) -> tuple[str | None, str | None]:
        """Return the (after, before) pair on the axis matching *category*."""
        if category is Category.MIDDLEWARE:
            return self.after_middleware, self.before_middleware
        return self.after_task, self.before_task


class LoaderConfiguration(BaseModel):
    """Normalized run configuration produced by the first pipeline stage."""

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    disable: list[str] = []
    override: dict[str, OverridePatch] = {}

    @property
    def disabled_names(self) -> frozenset[str]:
        return frozenset(self.disable)
