"""Structured logging singleton.

The loader runs inside a host build tool and may log before ``Settings`` is
ever built (schemas and manifests are read lazily, settings on first use), so
the initial level comes straight from the environment: the same
``UI5_PLUGIN_LOADER_LOGGING__LEVEL`` variable ``Settings.logging.level`` reads,
then the generic ``LOG_LEVEL``. Only the ``ui5_plugin_loader`` logger is
leveled; the host's own loggers are left alone.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

_PACKAGE_LOGGER = "ui5_plugin_loader"
LEVEL_ENV_VARS = ("UI5_PLUGIN_LOADER_LOGGING__LEVEL", "LOG_LEVEL")


def _level(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def initial_level() -> int:
    """Level from the first loader log variable that is set, else INFO."""
    for var in LEVEL_ENV_VARS:
        value = os.environ.get(var)
        if value:
            return _level(value)
    return logging.INFO


def _setup_logging() -> structlog.stdlib.BoundLogger:
    # A stderr handler is only installed if the host has not configured logging
    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger(_PACKAGE_LOGGER).setLevel(initial_level())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger(_PACKAGE_LOGGER)


logger = _setup_logging()


def enable_debug() -> None:
    """Lower the package logger to DEBUG for the rest of the process.

    Driven by ``debug: true`` in the loader configuration. The root logger
    keeps its level so other libraries stay quiet.
    """
    logging.getLogger(_PACKAGE_LOGGER).setLevel(logging.DEBUG)
    logger.debug("Debug logging enabled for ui5-plugin-loader")


def set_level(level_name: str) -> None:
    """Apply a level name (e.g. from ``Settings.logging.level``) to the package logger."""
    logging.getLogger(_PACKAGE_LOGGER).setLevel(_level(level_name))
