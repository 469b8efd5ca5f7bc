"""Dispatch adapter: one composite middleware over the loaded handlers.

Every handler has the signature ``async (request, response, proceed)`` and is
expected to eventually ``await proceed()``. The chain is built by folding the
handler list right to left, so each step's ``proceed`` is the next handler.

Errors short-circuit: a handler that raises is logged under its own name and
its exception is handed to the host's continuation as ``proceed(error)``;
passing an error to any ``proceed`` skips the rest of the chain. Exceptions
raised by the host's continuation itself propagate unchanged.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import reduce
from typing import Any

from aiohttp import web

from ui5_plugin_loader.logger import logger
from ui5_plugin_loader.types import LoadedHandler

Proceed = Callable[..., Awaitable[None]]
Dispatch = Callable[[Any, Any, Proceed], Awaitable[None]]


async def _settle(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


def _link(loaded: LoadedHandler, downstream: Proceed, request: Any, response: Any) -> Proceed:
    async def step(error: BaseException | None = None) -> None:
        if error is not None:
            await downstream(error)
            return

        downstream_failed = False

        async def proceed(err: BaseException | None = None) -> None:
            nonlocal downstream_failed
            try:
                await downstream(err)
            except Exception:
                downstream_failed = True
                raise

        try:
            await _settle(loaded.handler(request, response, proceed))
        except Exception as exc:
            # Failures further down the chain were already handled there
            if downstream_failed:
                raise
            logger.error("Error in middleware", name=loaded.name, error=str(exc))
            await downstream(exc)

    return step


def _forward_errors(proceed: Proceed) -> Proceed:
    async def terminal(error: BaseException | None = None) -> None:
        if error is not None:
            await _settle(proceed(error))
        else:
            await _settle(proceed())

    return terminal


def compose(handlers: Sequence[LoadedHandler]) -> Dispatch:
    """Fold *handlers* into one ``(request, response, proceed)`` callable."""
    handlers = tuple(handlers)

    async def dispatch(request: Any, response: Any, proceed: Proceed) -> None:
        chain = reduce(
            lambda downstream, loaded: _link(loaded, downstream, request, response),
            reversed(handlers),
            _forward_errors(proceed),
        )
        await chain()

    return dispatch


# ---------------------------------------------------------------------------
# aiohttp integration
# ---------------------------------------------------------------------------


@dataclass
class ResponseSlot:
    """Mutable response holder handed to handlers as ``response``.

    A handler that answers the request itself sets ``response`` and does not
    proceed; otherwise the downstream aiohttp handler's response lands here.
    """

    response: web.StreamResponse | None = None


def aiohttp_middleware(dispatch: Dispatch) -> Callable[..., Awaitable[web.StreamResponse]]:
    """Mount a composed chain into an aiohttp application.

    Errors forwarded through the chain are re-raised so aiohttp's own error
    handling (and any outer middleware) takes over.

    Usage::

        app = web.Application(middlewares=[aiohttp_middleware(dispatch)])
    """

    @web.middleware
    async def plugin_loader_middleware(
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
    ) -> web.StreamResponse:
        slot = ResponseSlot()

        async def proceed(error: BaseException | None = None) -> None:
            if error is not None:
                raise error
            slot.response = await handler(request)

        await dispatch(request, slot, proceed)
        if slot.response is None:
            logger.warning("Request left unanswered by plugin middleware", path=request.path)
            raise web.HTTPInternalServerError(reason="Plugin middleware did not respond")
        return slot.response

    return plugin_loader_middleware
