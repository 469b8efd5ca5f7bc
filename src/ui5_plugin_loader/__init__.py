"""Discover, order and load UI5 tooling extensions from project dependencies.

Usage:
    from ui5_plugin_loader import run_pipeline

    result = run_pipeline({"disable": ["ui5-middleware-livereload"]})
    print([d.name for d in result.middleware])
"""

from ui5_plugin_loader.errors import (
    HandlerLoadError,
    HostContractError,
    ManifestError,
    PipelineError,
    PluginLoaderError,
)
from ui5_plugin_loader.host import determine_required_dependencies, middleware, task
from ui5_plugin_loader.pipeline import run_pipeline
from ui5_plugin_loader.types import (
    Category,
    ExtensionDescriptor,
    OrderHint,
    PipelineResult,
    Provenance,
)

__all__ = [
    "Category",
    "ExtensionDescriptor",
    "HandlerLoadError",
    "HostContractError",
    "ManifestError",
    "OrderHint",
    "PipelineError",
    "PipelineResult",
    "PluginLoaderError",
    "Provenance",
    "determine_required_dependencies",
    "middleware",
    "run_pipeline",
    "task",
]
