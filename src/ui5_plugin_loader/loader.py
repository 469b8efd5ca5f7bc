"""Handler loader: turns middleware descriptors into live request handlers.

For each descriptor the loader:

1. derives the package that ships the extension (known table, then
   ``-middleware``/``-task`` suffix stripping, then the name itself),
2. checks that the package is installed,
3. asks an ordered list of resolvers for the package's entry point; the first
   one that yields a callable factory wins,
4. calls the exported factory with the host context plus the extension's
   options, and keeps the handler it returns.

Descriptors are processed one at a time. A failure on one is logged and
skipped; it never affects the others.
"""

from __future__ import annotations

import importlib
import inspect
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import ModuleType
from typing import Any

import pluggy

from ui5_plugin_loader.errors import HandlerLoadError
from ui5_plugin_loader.logger import logger
from ui5_plugin_loader.packages import PackageLocator, import_name_for, make_locator
from ui5_plugin_loader.plugins import get_plugin_manager
from ui5_plugin_loader.types import ExtensionDescriptor, LoadedHandler

# Extensions whose package cannot be derived from the name alone
KNOWN_PACKAGES: dict[str, str] = {
    "ui5-tooling-transpile-middleware": "ui5-tooling-transpile",
    "ui5-tooling-transpile-task": "ui5-tooling-transpile",
    "ui5-tooling-modules-middleware": "ui5-tooling-modules",
    "ui5-tooling-modules-task": "ui5-tooling-modules",
    "ui5-tooling-stringreplace-middleware": "ui5-tooling-stringreplace",
    "ui5-tooling-stringreplace-task": "ui5-tooling-stringreplace",
    "ui5-middleware-livereload": "ui5-middleware-livereload",
}

_SUFFIX_RE = re.compile(r"^(.+)-(middleware|task)$")

# Module entry points tried inside a package, in order. ``{pkg}`` is the import name.
DEFAULT_ENTRY_POINTS: tuple[str, ...] = (
    "{pkg}.lib.middleware",
    "{pkg}.lib.livereload",
    "{pkg}.middleware",
    "{pkg}",
)

# Attribute looked up on an entry point module for the handler factory
FACTORY_ATTRIBUTE = "middleware"

# (package_name, extension_name) -> module, factory, or None to try the next resolver
Resolver = Callable[[str, str], Any]


def module_resolver(template: str) -> Resolver:
    """Resolver that imports ``template`` with ``{pkg}`` set to the package's import name."""

    def _resolve(package_name: str, extension_name: str) -> ModuleType | None:
        module_path = template.format(pkg=import_name_for(package_name))
        try:
            return importlib.import_module(module_path)
        except ImportError as exc:
            logger.debug("Entry point not importable", module=module_path, error=str(exc))
            return None

    _resolve.__qualname__ = f"module_resolver({template!r})"
    return _resolve


def plugin_resolver(pm: pluggy.PluginManager) -> Resolver:
    """Resolver that asks installed pluggy plugins for a factory."""

    def _resolve(package_name: str, extension_name: str) -> Any:
        return pm.hook.ui5_middleware_factory(
            package_name=package_name, extension_name=extension_name
        )

    return _resolve


def default_resolvers(pm: pluggy.PluginManager | None = None) -> list[Resolver]:
    resolvers = [module_resolver(template) for template in DEFAULT_ENTRY_POINTS]
    resolvers.append(plugin_resolver(pm or get_plugin_manager()))
    return resolvers


def factory_of(export: Any) -> Callable[..., Any] | None:
    """Return the handler factory exposed by a resolved entry point."""
    if isinstance(export, ModuleType):
        factory = getattr(export, FACTORY_ATTRIBUTE, None)
        return factory if callable(factory) else None
    return export if callable(export) else None


class HandlerLoader:
    """Load middleware handlers for a list of descriptors.

    Args:
        resolvers: Ordered entry point resolvers. Defaults to
            :data:`DEFAULT_ENTRY_POINTS` followed by the pluggy hook.
        package_names: Extra extension-name → package-name mappings, merged
            over :data:`KNOWN_PACKAGES`.
        locator: Decides whether a package is installed.
    """

    def __init__(
        self,
        resolvers: Sequence[Resolver] | None = None,
        *,
        package_names: Mapping[str, str] | None = None,
        locator: PackageLocator | None = None,
    ) -> None:
        self._resolvers = list(resolvers) if resolvers is not None else default_resolvers()
        self._package_names = {**KNOWN_PACKAGES, **(package_names or {})}
        self._locator = locator or make_locator()

    def package_name_for(self, extension_name: str) -> str:
        if extension_name in self._package_names:
            return self._package_names[extension_name]
        match = _SUFFIX_RE.match(extension_name)
        if match:
            return match.group(1)
        return extension_name

    def resolve_factory(self, descriptor: ExtensionDescriptor) -> Callable[..., Any]:
        """Find the factory for *descriptor*.

        Resolvers are tried in order until one yields a callable factory; an
        export without one falls through to the next resolver.

        Raises:
            HandlerLoadError: If the package is missing, no resolver finds an
                entry point, or the entry point exports no factory.
        """
        package_name = self.package_name_for(descriptor.name)
        if self._locator(package_name) is None:
            raise HandlerLoadError(f"Package '{package_name}' not found")

        found_export = False
        for resolver in self._resolvers:
            export = resolver(package_name, descriptor.name)
            if export is None:
                continue
            factory = factory_of(export)
            if factory is not None:
                return factory
            # An importable module without a factory does not end the search
            found_export = True
            logger.debug(
                "Entry point exports no factory, trying next resolver",
                package=package_name,
                export=getattr(export, "__name__", repr(export)),
            )

        if found_export:
            raise HandlerLoadError(
                f"Entry point of '{package_name}' exports no callable '{FACTORY_ATTRIBUTE}'"
            )
        raise HandlerLoadError(f"No entry point found in package '{package_name}'")

    async def load_one(
        self,
        descriptor: ExtensionDescriptor,
        context: Mapping[str, Any],
    ) -> LoadedHandler:
        """Resolve and initialize one handler. Factory exceptions propagate."""
        factory = self.resolve_factory(descriptor)
        handler_context = {
            **context,
            "options": {**descriptor.configuration, "middlewareName": descriptor.name},
        }

        handler = factory(handler_context)
        if inspect.isawaitable(handler):
            handler = await handler
        if not callable(handler):
            raise HandlerLoadError(f"Factory of '{descriptor.name}' did not return a handler")
        return LoadedHandler(name=descriptor.name, handler=handler)

    async def load(
        self,
        descriptors: Iterable[ExtensionDescriptor],
        context: Mapping[str, Any] | None = None,
    ) -> list[LoadedHandler]:
        """Load handlers in input order, skipping any descriptor that fails."""
        context = context or {}
        loaded: list[LoadedHandler] = []
        for descriptor in descriptors:
            try:
                loaded.append(await self.load_one(descriptor, context))
            except HandlerLoadError as exc:
                logger.warning("Skipping middleware", name=descriptor.name, reason=str(exc))
                continue
            except Exception as exc:
                logger.error("Error loading middleware", name=descriptor.name, error=str(exc))
                continue
            logger.info("Loaded middleware", name=descriptor.name)
        return loaded
