"""Pluggy hook specifications for ui5-plugin-loader.

Third-party packages implement these hooks (registered through the
``ui5_plugin_loader`` entry point group) to contribute middleware factories
that live outside the conventional module layout.
"""

from __future__ import annotations

from typing import Any

import pluggy

PROJECT_NAME = "ui5_plugin_loader"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class LoaderSpec:
    """Hook specifications for ui5-plugin-loader plugins."""

    @hookspec(firstresult=True)
    def ui5_middleware_factory(self, package_name: str, extension_name: str) -> Any | None:
        """Provide the middleware factory for an extension.

        Called only after every module entry point of *package_name* failed to
        import. The first non-None result wins.

        Args:
            package_name: Package derived from the extension name
                (e.g., "ui5-tooling-modules").
            extension_name: Extension name from the manifest
                (e.g., "ui5-tooling-modules-middleware").

        Returns:
            A callable ``factory(context) -> handler`` (sync or async), or None
            if this plugin does not provide the extension.
        """
