"""Resolution pipeline: from raw host configuration to ordered extensions.

Stages run strictly in order, each taking the previous stage's list and
returning a new one (descriptors are immutable):

1. ``load_config``        normalize the host's configuration block
2. ``discover_manifests`` flatten every dependency's manifest into descriptors
3. ``apply_disable``      drop disabled names
4. ``fill_defaults``      give hint-less extensions the host's default anchor
5. ``apply_override``     merge per-name override patches
6. ``validate_refs``      warn about hints pointing nowhere (advisory only)
7. ``deduplicate``        first occurrence of a name wins
8. ``smart_sort``         fixed name-pattern buckets, then name

The final order comes from the name buckets alone. Order hints are carried
through for the host's own scheduler and are not consulted by the sort.
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from ui5_plugin_loader.config import get_settings
from ui5_plugin_loader.config_models import LoaderConfiguration, OverridePatch
from ui5_plugin_loader.dependencies import DependencyEnumerator
from ui5_plugin_loader.errors import ManifestError, PipelineError
from ui5_plugin_loader.logger import logger
from ui5_plugin_loader.packages import make_locator
from ui5_plugin_loader.schema import (
    LOADER_CONFIG_SCHEMA,
    MANIFEST_SCHEMA,
    Validator,
    load_validator,
)
from ui5_plugin_loader.store import DescriptorStore
from ui5_plugin_loader.types import (
    Category,
    ExtensionDescriptor,
    OrderHint,
    PipelineResult,
)

# Top-level configuration keys a host may legitimately pass
KNOWN_CONFIG_KEYS = frozenset(
    {"debug", "disable", "override", "middlewareName", "configuration", "manifestsDir"}
)

DEFAULT_ANCHORS: dict[Category, str] = {
    Category.MIDDLEWARE: "compression",
    Category.TASK: "replaceVersion",
}

# Host-provided middleware/tasks that are always valid hint targets
BUILTIN_TARGETS: dict[Category, frozenset[str]] = {
    Category.MIDDLEWARE: frozenset({"compression", "csp", "cors"}),
    Category.TASK: frozenset({"replaceVersion", "replaceCopyright", "replaceToken"}),
}

# First matching substring wins; tested in this order
SORT_PATTERNS: tuple[tuple[str, int], ...] = (
    ("stringreplace", 10),
    ("transpile", 20),
    ("modules", 30),
    ("livereload", 40),
)
DEFAULT_BUCKET = 50


# ---------------------------------------------------------------------------
# Stage 1: configuration
# ---------------------------------------------------------------------------


def load_config(
    raw: Mapping[str, Any] | None = None,
    validator: Validator | None = None,
) -> LoaderConfiguration:
    """Normalize the host configuration into a :class:`LoaderConfiguration`.

    The block may arrive wrapped in a ``configuration`` key (as UI5 tooling
    passes custom middleware options). Unknown keys and schema violations are
    warnings; an input that cannot be modelled at all raises.
    """
    logger.debug("Pipeline step 1: loading configuration")
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise TypeError(f"configuration must be a mapping, got {type(raw).__name__}")

    nested = raw.get("configuration")
    src = nested if isinstance(nested, Mapping) else raw

    disable = src.get("disable")
    override = src.get("override")
    normalized: dict[str, Any] = {
        "debug": bool(src.get("debug")),
        "disable": [n for n in disable if isinstance(n, str)] if isinstance(disable, list) else [],
        "override": dict(override) if isinstance(override, Mapping) else {},
    }

    if validator is not None:
        issues = validator.validate(normalized)
        if issues:
            logger.warning("Configuration validation warnings", count=len(issues))
            for issue in issues:
                logger.warning("Configuration issue", at=issue.path or "/", message=issue.message)

    for key in src:
        if key not in KNOWN_CONFIG_KEYS:
            logger.warning("Unknown configuration key, ignoring", key=key)

    config = LoaderConfiguration.model_validate(normalized)
    logger.debug(
        "Configuration loaded",
        debug=config.debug,
        disable=len(config.disable),
        override=len(config.override),
    )
    return config


# ---------------------------------------------------------------------------
# Stage 2: discovery
# ---------------------------------------------------------------------------


def discover_manifests(
    dependencies: Iterable[str],
    store: DescriptorStore,
    manifests_dir: Path | str,
) -> list[ExtensionDescriptor]:
    """Flatten each dependency's manifest into descriptors.

    Order is dependency order, then middleware before tasks, then array order.
    """
    logger.debug("Pipeline step 2: discovering manifests")
    descriptors: list[ExtensionDescriptor] = []
    scanned = 0

    for dependency in dependencies:
        scanned += 1
        hit = store.load(dependency, manifests_dir)
        if hit is None:
            continue

        logger.debug("Processing manifest", dependency=dependency, source=hit.provenance.value)
        if hit.document.get("presets"):
            # Presets are validated with the manifest but never expanded into descriptors
            logger.debug("Manifest presets are accepted but not expanded", dependency=dependency)

        for category in Category:
            entries = hit.document.get(category.manifest_key)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                try:
                    descriptors.append(
                        ExtensionDescriptor.from_entry(entry, category, dependency, hit.provenance)
                    )
                except ManifestError as exc:
                    logger.error(
                        "Skipping malformed manifest entry",
                        dependency=dependency,
                        path=str(hit.path),
                        error=str(exc),
                    )

    logger.debug("Discovered extensions", extensions=len(descriptors), dependencies=scanned)
    return descriptors


# ---------------------------------------------------------------------------
# Stages 3-7: list transformations
# ---------------------------------------------------------------------------


def apply_disable(
    descriptors: Sequence[ExtensionDescriptor],
    disabled: Iterable[str],
) -> list[ExtensionDescriptor]:
    logger.debug("Pipeline step 3: applying disable list")
    disabled = frozenset(disabled)
    if not disabled:
        return list(descriptors)

    kept: list[ExtensionDescriptor] = []
    for descriptor in descriptors:
        if descriptor.name in disabled:
            logger.info("Disabled extension", name=descriptor.name)
            continue
        kept.append(descriptor)

    logger.debug("Disabled extensions", count=len(descriptors) - len(kept))
    return kept


def fill_defaults(descriptors: Sequence[ExtensionDescriptor]) -> list[ExtensionDescriptor]:
    """Anchor hint-less middleware after ``compression``, tasks after ``replaceVersion``."""
    logger.debug("Pipeline step 4: filling default order values")
    result: list[ExtensionDescriptor] = []
    for descriptor in descriptors:
        if descriptor.order_hint is None:
            anchor = DEFAULT_ANCHORS[descriptor.category]
            descriptor = dataclasses.replace(descriptor, order_hint=OrderHint("after", anchor))
            logger.debug("Added default order hint", name=descriptor.name, after=anchor)
        result.append(descriptor)
    return result


def _patched(descriptor: ExtensionDescriptor, patch: OverridePatch) -> ExtensionDescriptor:
    hint = descriptor.order_hint
    after, before = patch.hints_for(descriptor.category)
    # Each direction replaces the hint outright, clearing the opposite one;
    # "before" is applied second so it wins when both are given
    if after is not None:
        hint = OrderHint("after", after)
    if before is not None:
        hint = OrderHint("before", before)

    changes: dict[str, Any] = {"order_hint": hint}
    if patch.mount_path is not None and descriptor.category is Category.MIDDLEWARE:
        changes["mount_path"] = patch.mount_path
    if patch.configuration is not None:
        changes["configuration"] = {**descriptor.configuration, **patch.configuration}
    return dataclasses.replace(descriptor, **changes)


def apply_override(
    descriptors: Sequence[ExtensionDescriptor],
    overrides: Mapping[str, OverridePatch],
) -> list[ExtensionDescriptor]:
    logger.debug("Pipeline step 5: applying overrides")
    if not overrides:
        return list(descriptors)

    result: list[ExtensionDescriptor] = []
    for descriptor in descriptors:
        patch = overrides.get(descriptor.name)
        if patch is not None:
            logger.info("Applying override", name=descriptor.name)
            descriptor = _patched(descriptor, patch)
        result.append(descriptor)
    return result


def validate_refs(descriptors: Sequence[ExtensionDescriptor]) -> list[ExtensionDescriptor]:
    """Warn about hints whose target is neither discovered nor a host builtin."""
    logger.debug("Pipeline step 6: validating references")
    names = {d.name for d in descriptors}
    for descriptor in descriptors:
        hint = descriptor.order_hint
        if hint is None:
            continue
        if hint.target in names or hint.target in BUILTIN_TARGETS[descriptor.category]:
            continue
        after_key, before_key = descriptor.category.hint_keys
        logger.warning(
            "Extension references unknown target",
            name=descriptor.name,
            hint=after_key if hint.direction == "after" else before_key,
            target=hint.target,
        )
    return list(descriptors)


def deduplicate(descriptors: Sequence[ExtensionDescriptor]) -> list[ExtensionDescriptor]:
    logger.debug("Pipeline step 7: removing duplicates")
    seen: set[str] = set()
    result: list[ExtensionDescriptor] = []
    for descriptor in descriptors:
        if descriptor.name in seen:
            logger.warning(
                "Duplicate extension, using first occurrence",
                name=descriptor.name,
                dropped_from=descriptor.source_dependency,
            )
            continue
        seen.add(descriptor.name)
        result.append(descriptor)

    if len(result) != len(descriptors):
        logger.debug("Removed duplicate extensions", count=len(descriptors) - len(result))
    return result


# ---------------------------------------------------------------------------
# Stage 8: ordering
# ---------------------------------------------------------------------------


def sort_bucket(name: str) -> int:
    lowered = name.lower()
    for pattern, bucket in SORT_PATTERNS:
        if pattern in lowered:
            return bucket
    return DEFAULT_BUCKET


def smart_sort(descriptors: Sequence[ExtensionDescriptor]) -> list[ExtensionDescriptor]:
    """Sort by pattern bucket, then by name (ordinal)."""
    logger.debug("Pipeline step 8: smart sorting")
    ordered = sorted(descriptors, key=lambda d: (sort_bucket(d.name), d.name))
    logger.debug("Smart sort order", order=" → ".join(d.name for d in ordered))
    return ordered


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def default_store() -> DescriptorStore:
    """Descriptor store wired from settings, validating against the bundled schema."""
    s = get_settings()
    return DescriptorStore(
        load_validator(MANIFEST_SCHEMA),
        locator=make_locator(s.packages_dir),
        manifest_filename=s.manifest_filename,
    )


def default_enumerator() -> DependencyEnumerator:
    s = get_settings()
    return DependencyEnumerator(s.project_root, s.project_descriptors)


def run_pipeline(
    config: Mapping[str, Any] | None = None,
    manifests_dir: Path | str | None = None,
    *,
    enumerator: DependencyEnumerator | None = None,
    store: DescriptorStore | None = None,
    config_validator: Validator | None = None,
) -> PipelineResult:
    """Run all eight stages and split the result by category.

    Raises:
        PipelineError: If any stage fails; the original exception is chained.
    """
    logger.info("Starting plugin loader pipeline")
    started = time.monotonic()

    try:
        manifests_dir = manifests_dir or get_settings().manifests_dir
        enumerator = enumerator or default_enumerator()
        store = store or default_store()
        if config_validator is None:
            config_validator = load_validator(LOADER_CONFIG_SCHEMA)

        normalized = load_config(config, config_validator)
        discovered = discover_manifests(enumerator.list_all(), store, manifests_dir)
        enabled = apply_disable(discovered, normalized.disabled_names)
        defaulted = fill_defaults(enabled)
        overridden = apply_override(defaulted, normalized.override)
        validated = validate_refs(overridden)
        unique = deduplicate(validated)
        ordered = smart_sort(unique)
    except Exception as exc:
        logger.error("Pipeline failed", error=str(exc))
        raise PipelineError(f"Plugin loader pipeline failed: {exc}") from exc

    middleware = tuple(d for d in ordered if d.category is Category.MIDDLEWARE)
    tasks = tuple(d for d in ordered if d.category is Category.TASK)
    duration_ms = (time.monotonic() - started) * 1000

    logger.info(
        "Pipeline completed",
        middleware=len(middleware),
        tasks=len(tasks),
        duration_ms=round(duration_ms, 1),
    )
    return PipelineResult(
        middleware=middleware,
        tasks=tasks,
        duration_ms=duration_ms,
        total=len(ordered),
    )
