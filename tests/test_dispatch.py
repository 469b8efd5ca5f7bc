"""Tests for the composed middleware chain and its aiohttp adapter."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import test_utils, web

from ui5_plugin_loader.dispatch import ResponseSlot, aiohttp_middleware, compose
from ui5_plugin_loader.types import LoadedHandler


def _recording(name: str, calls: list[str]) -> LoadedHandler:
    async def handler(request, response, proceed):
        calls.append(name)
        await proceed()

    return LoadedHandler(name=name, handler=handler)


class TestCompose:
    """Chain semantics: order, pass-through and error short-circuit."""

    @pytest.mark.asyncio
    async def test_empty_chain_passes_through(self):
        proceed = AsyncMock()
        await compose([])("req", "res", proceed)
        proceed.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_handlers_run_in_order(self):
        calls: list[str] = []
        proceed = AsyncMock(side_effect=lambda *a: calls.append("terminal"))
        dispatch = compose([_recording("a", calls), _recording("b", calls)])

        await dispatch("req", "res", proceed)

        assert calls == ["a", "b", "terminal"]

    @pytest.mark.asyncio
    async def test_request_and_response_forwarded(self):
        seen = []

        async def handler(request, response, proceed):
            seen.append((request, response))
            await proceed()

        await compose([LoadedHandler("h", handler)])("req", "res", AsyncMock())
        assert seen == [("req", "res")]

    @pytest.mark.asyncio
    async def test_raising_handler_forwards_error(self):
        calls: list[str] = []
        boom = RuntimeError("boom")

        async def failing(request, response, proceed):
            raise boom

        proceed = AsyncMock()
        dispatch = compose(
            [_recording("a", calls), LoadedHandler("bad", failing), _recording("c", calls)]
        )

        with patch("ui5_plugin_loader.dispatch.logger") as mock_logger:
            await dispatch("req", "res", proceed)

        assert calls == ["a"]
        proceed.assert_awaited_once_with(boom)
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["name"] == "bad"

    @pytest.mark.asyncio
    async def test_sync_handler_error(self):
        def failing(request, response, proceed):
            raise ValueError("sync")

        proceed = AsyncMock()
        await compose([LoadedHandler("sync", failing)])("req", "res", proceed)
        (error,) = proceed.await_args.args
        assert isinstance(error, ValueError)

    @pytest.mark.asyncio
    async def test_error_passed_to_proceed_short_circuits(self):
        calls: list[str] = []
        err = PermissionError("denied")

        async def rejecting(request, response, proceed):
            await proceed(err)

        proceed = AsyncMock()
        await compose([LoadedHandler("r", rejecting), _recording("after", calls)])(
            "req", "res", proceed
        )

        assert calls == []
        proceed.assert_awaited_once_with(err)

    @pytest.mark.asyncio
    async def test_handler_may_stop_chain(self):
        async def answering(request, response, proceed):
            return None

        proceed = AsyncMock()
        await compose([LoadedHandler("stop", answering)])("req", "res", proceed)
        proceed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_host_continuation(self):
        proceed = MagicMock(return_value=None)
        await compose([_recording("a", [])])("req", "res", proceed)
        proceed.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_async_work_before_proceed_keeps_order(self):
        calls: list[str] = []

        async def slow(request, response, proceed):
            await asyncio.sleep(0)
            calls.append("slow")
            await proceed()

        await compose([LoadedHandler("slow", slow), _recording("fast", calls)])(
            "req", "res", AsyncMock()
        )
        assert calls == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_continuation_errors_propagate_unlogged(self):
        proceed = AsyncMock(side_effect=LookupError("host failure"))

        with patch("ui5_plugin_loader.dispatch.logger") as mock_logger:
            with pytest.raises(LookupError):
                await compose([_recording("a", []), _recording("b", [])])("req", "res", proceed)

        proceed.assert_awaited_once_with()
        mock_logger.error.assert_not_called()

    @pytest.mark.asyncio
    async def test_chain_is_reusable(self):
        calls: list[str] = []
        dispatch = compose([_recording("a", calls)])
        await dispatch("r1", "s1", AsyncMock())
        await dispatch("r2", "s2", AsyncMock())
        assert calls == ["a", "a"]


async def _ok(request: web.Request) -> web.Response:
    return web.Response(text="downstream")


async def _get(dispatch, path: str = "/"):
    app = web.Application(middlewares=[aiohttp_middleware(dispatch)])
    app.router.add_get("/", _ok)
    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.get(path)
        return resp.status, await resp.text()


class TestAiohttpMiddleware:
    """The composed chain mounted into a real aiohttp application."""

    @pytest.mark.asyncio
    async def test_pass_through(self):
        calls: list[str] = []
        status, body = await _get(compose([_recording("a", calls)]))
        assert (status, body) == (200, "downstream")
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        assert await _get(compose([])) == (200, "downstream")

    @pytest.mark.asyncio
    async def test_handler_answers_itself(self):
        async def answering(request, response: ResponseSlot, proceed):
            response.response = web.Response(text="intercepted")

        assert await _get(compose([LoadedHandler("x", answering)])) == (200, "intercepted")

    @pytest.mark.asyncio
    async def test_forwarded_http_error(self):
        async def forbidding(request, response, proceed):
            await proceed(web.HTTPForbidden())

        status, _ = await _get(compose([LoadedHandler("x", forbidding)]))
        assert status == 403

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_server_error(self):
        async def failing(request, response, proceed):
            raise RuntimeError("boom")

        status, _ = await _get(compose([LoadedHandler("x", failing)]))
        assert status == 500

    @pytest.mark.asyncio
    async def test_unanswered_request(self):
        async def silent(request, response, proceed):
            return None

        with patch("ui5_plugin_loader.dispatch.logger") as mock_logger:
            status, _ = await _get(compose([LoadedHandler("x", silent)]))
        assert status == 500
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_downstream_not_found_propagates(self):
        status, _ = await _get(compose([_recording("a", [])]), "/missing")
        assert status == 404
