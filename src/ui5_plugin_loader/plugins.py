"""Plugin manager for middleware factories contributed via entry points.

Usage:
    from ui5_plugin_loader.plugins import get_plugin_manager

    pm = get_plugin_manager()
    factory = pm.hook.ui5_middleware_factory(
        package_name="ui5-tooling-modules",
        extension_name="ui5-tooling-modules-middleware",
    )
"""

from __future__ import annotations

import pluggy

from ui5_plugin_loader.hookspecs import PROJECT_NAME, LoaderSpec
from ui5_plugin_loader.logger import logger

__all__ = [
    "get_plugin_manager",
]


def get_plugin_manager(*, load_entrypoints: bool = True) -> pluggy.PluginManager:
    """Create a plugin manager with the loader hook specifications.

    Third-party implementations register under the ``ui5_plugin_loader``
    entry point group in their pyproject.toml.
    """
    pm = pluggy.PluginManager(PROJECT_NAME)
    pm.add_hookspecs(LoaderSpec)

    if load_entrypoints:
        discovered = pm.load_setuptools_entrypoints(PROJECT_NAME)
        if discovered:
            logger.info("Discovered third-party plugins", count=discovered)

    # Entry points sometimes expose the class rather than an instance
    for plugin in list(pm.get_plugins()):
        if isinstance(plugin, type):
            plugin_name = pm.get_name(plugin) or plugin.__name__
            pm.unregister(plugin=plugin)
            logger.warning("Unregistered invalid class-based plugin object", plugin=plugin_name)

    return pm
