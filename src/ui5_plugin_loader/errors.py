"""Exception hierarchy for the plugin loader.

Only ``PipelineError`` and ``HostContractError`` ever reach the host; the
others are raised and caught internally so one broken extension never stops
a run.
"""

from __future__ import annotations


class PluginLoaderError(Exception):
    """Base class for every error raised by ui5_plugin_loader."""


class ManifestError(PluginLoaderError):
    """A manifest document or one of its entries is malformed."""


class HandlerLoadError(PluginLoaderError):
    """A middleware handler could not be resolved or initialized."""


class PipelineError(PluginLoaderError):
    """A pipeline stage failed. Fatal to the current run."""


class HostContractError(PluginLoaderError):
    """The host did not provide an API the loader depends on."""
