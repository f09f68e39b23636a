"""Shared test fixtures for the LoadClimb test suite."""

from __future__ import annotations

import asyncio
import logging
import socket
import threading
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from loadclimb.transport.http import HttpTransport

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from yarl import URL


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


@pytest.fixture(autouse=True)
def _reset_loadclimb_logger() -> Iterator[None]:
    """Drop handlers installed by setup_logging so each test starts clean."""
    yield
    logger = logging.getLogger("loadclimb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Scripted in-memory transport
# =============================================================================


class ScriptedTransport:
    """Transport whose responses are produced by an async script.

    The script receives the 1-based call number (in launch order) and the
    URL, and returns a status code or raises. URL validation is the real
    ``HttpTransport.build_request``.

    Attributes:
        calls: URLs of every ``send`` call, in launch order.
        cancelled: Call numbers whose ``send`` was cancelled.
        in_flight: Number of ``send`` calls currently running.
        max_in_flight: Highest ``in_flight`` value observed.
    """

    def __init__(self, script: Callable[[int, str], Awaitable[int]]) -> None:
        self._script = script
        self.calls: list[str] = []
        self.cancelled: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def build_request(self, url: str) -> URL:
        return HttpTransport().build_request(url)

    async def send(self, request: URL) -> int:
        self.calls.append(str(request))
        call_number = len(self.calls)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await self._script(call_number, str(request))
        except asyncio.CancelledError:
            self.cancelled.append(call_number)
            raise
        finally:
            self.in_flight -= 1

    @staticmethod
    def round_of(call_number: int) -> int:
        """Return the round a 1-based call number falls in.

        Round ``k`` issues ``k`` requests, so it covers call numbers
        ``k*(k-1)/2 + 1`` through ``k*(k+1)/2``.
        """
        k = 1
        while k * (k + 1) // 2 < call_number:
            k += 1
        return k

    @staticmethod
    async def block_forever() -> int:
        """Never return; only cancellation ends the wait."""
        await asyncio.Event().wait()
        return 200


@pytest.fixture
def scripted_transport() -> type[ScriptedTransport]:
    """Return the ScriptedTransport class for building in-memory transports."""
    return ScriptedTransport


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Target HTTP server handlers
# =============================================================================


_RELEASE_KEY = web.AppKey("release", asyncio.Event)


async def _ok_handler(request: web.Request) -> web.Response:
    """Always 200."""
    return web.Response(text="ok")


async def _status_handler(request: web.Request) -> web.Response:
    """Return the status given in the path (``/status/503``)."""
    return web.Response(status=int(request.match_info["code"]), text="status")


async def _slow_handler(request: web.Request) -> web.Response:
    """Hold the request until the fixture releases it at teardown."""
    await request.app[_RELEASE_KEY].wait()
    return web.Response(text="late")


def _create_target_app() -> web.Application:
    """Build the target server app with all test routes."""
    app = web.Application()
    app[_RELEASE_KEY] = asyncio.Event()
    app.router.add_get("/ok", _ok_handler)
    app.router.add_get("/status/{code:\\d+}", _status_handler)
    app.router.add_get("/slow", _slow_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def target_server() -> AsyncIterator[str]:
    """Aiohttp target server fixture.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = _create_target_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    app[_RELEASE_KEY].set()
    await runner.cleanup()


@pytest.fixture
def sync_target_server() -> Iterator[str]:
    """Target server running in a background thread for sync tests.

    Needed by CLI tests, where the command runs its own event loop and
    blocks the main thread.
    """
    port = _get_free_port()
    started = threading.Event()
    holder: list[tuple[asyncio.AbstractEventLoop, web.Application]] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        app = _create_target_app()
        runner = web.AppRunner(app)
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        holder.append((loop, app))
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if holder:
        loop, app = holder[0]
        loop.call_soon_threadsafe(app[_RELEASE_KEY].set)
        loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5.0)
