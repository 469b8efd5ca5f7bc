"""Host entry points: what the build tool calls to initialize the loader.

``middleware(context)`` runs the pipeline, loads middleware handlers and
returns one composed ``(request, response, proceed)`` callable.
``task(context)`` runs the pipeline and registers every discovered task with
the host through ``context["task_util"].register_task``.

The context is a mapping with the host's collaborators::

    {
        "options": {...},            # loader configuration (may nest "configuration")
        "middleware_util": ...,      # forwarded to middleware factories
        "task_util": ...,            # must provide async register_task(options)
        "resources": ...,            # forwarded to middleware factories
    }
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from ui5_plugin_loader.config import get_settings
from ui5_plugin_loader.dependencies import DependencyEnumerator
from ui5_plugin_loader.dispatch import Dispatch, compose
from ui5_plugin_loader.errors import HostContractError
from ui5_plugin_loader.loader import HandlerLoader
from ui5_plugin_loader.logger import enable_debug, logger, set_level
from ui5_plugin_loader.pipeline import DEFAULT_ANCHORS, run_pipeline
from ui5_plugin_loader.schema import Validator
from ui5_plugin_loader.store import DescriptorStore
from ui5_plugin_loader.types import Category, ExtensionDescriptor

# register_task(options) may be sync or async
RegisterTask = Callable[[dict[str, Any]], Any]


async def determine_required_dependencies() -> set[str]:
    """Dependencies the host must build first. Always empty so builds are never blocked."""
    return set()


def _options(context: Mapping[str, Any]) -> Mapping[str, Any]:
    options = context.get("options")
    return options if isinstance(options, Mapping) else {}


def _debug_requested(options: Mapping[str, Any]) -> bool:
    nested = options.get("configuration")
    if isinstance(nested, Mapping) and nested.get("debug") is True:
        return True
    return options.get("debug") is True


def _configure_logging(options: Mapping[str, Any]) -> None:
    set_level(get_settings().logging.level)
    if _debug_requested(options):
        enable_debug()


def _manifests_dir(options: Mapping[str, Any]) -> Path:
    configured = options.get("manifestsDir")
    return Path(configured) if configured else get_settings().manifests_dir


def registration_options(descriptor: ExtensionDescriptor) -> dict[str, Any]:
    """Build the ``register_task`` payload for one task descriptor."""
    options: dict[str, Any] = {
        "name": descriptor.name,
        "configuration": dict(descriptor.configuration),
    }
    hint = descriptor.order_hint
    if hint is None:
        options["afterTask"] = DEFAULT_ANCHORS[Category.TASK]
    elif hint.direction == "after":
        options["afterTask"] = hint.target
    else:
        options["beforeTask"] = hint.target
    return options


async def register_tasks(tasks: Iterable[ExtensionDescriptor], register: RegisterTask) -> int:
    """Register each task with the host. Returns how many registrations succeeded."""
    registered = 0
    for descriptor in tasks:
        options = registration_options(descriptor)
        try:
            result = register(options)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error("Failed to register task", name=descriptor.name, error=str(exc))
            continue
        registered += 1
        logger.info("Registered task", name=descriptor.name)
    return registered


async def middleware(
    context: Mapping[str, Any],
    *,
    loader: HandlerLoader | None = None,
    enumerator: DependencyEnumerator | None = None,
    store: DescriptorStore | None = None,
    config_validator: Validator | None = None,
) -> Dispatch:
    """Initialize the middleware side of the loader.

    Raises:
        PipelineError: If the pipeline fails; the host decides whether that
            blocks startup.
    """
    options = _options(context)
    _configure_logging(options)
    logger.debug("Middleware initialization started", options=dict(options))

    manifests_dir = _manifests_dir(options)
    logger.debug("Using manifests directory", path=str(manifests_dir))

    try:
        result = run_pipeline(
            options,
            manifests_dir,
            enumerator=enumerator,
            store=store,
            config_validator=config_validator,
        )
        handlers = await (loader or HandlerLoader()).load(result.middleware, context)
    except Exception as exc:
        logger.error("Middleware initialization failed", error=str(exc))
        raise

    logger.info(
        "Plugin loader completed",
        middleware=len(handlers),
        tasks=len(result.tasks),
    )
    return compose(handlers)


async def task(
    context: Mapping[str, Any],
    *,
    enumerator: DependencyEnumerator | None = None,
    store: DescriptorStore | None = None,
    config_validator: Validator | None = None,
) -> Callable[[Any], Awaitable[None]]:
    """Initialize the task side of the loader and register discovered tasks.

    Returns the (empty) task body the host runs later; the real work happens
    in the tasks registered here.

    Raises:
        HostContractError: If the host has no ``register_task`` API.
        PipelineError: If the pipeline fails.
    """
    options = _options(context)
    _configure_logging(options)
    logger.debug("Task initialization started", options=dict(options))

    register = getattr(context.get("task_util"), "register_task", None)
    if not callable(register):
        message = "ui5-plugin-loader requires a host task_util with register_task support"
        logger.error(message)
        raise HostContractError(message)

    try:
        result = run_pipeline(
            options,
            _manifests_dir(options),
            enumerator=enumerator,
            store=store,
            config_validator=config_validator,
        )
        if result.tasks:
            logger.info("Registering tasks", count=len(result.tasks))
            registered = await register_tasks(result.tasks, register)
        else:
            logger.debug("No task configurations found for registration")
            registered = 0
    except Exception as exc:
        logger.error("Task initialization failed", error=str(exc))
        raise

    logger.info("Plugin loader task completed", registered=registered, tasks=len(result.tasks))

    async def run(task_context: Any) -> None:
        # Registered tasks do the work; this body only satisfies the host contract
        logger.debug("Task execution completed (tasks registered dynamically)")

    return run
