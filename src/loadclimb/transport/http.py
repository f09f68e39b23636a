"""Shared aiohttp transport with fixed connect, TLS and response deadlines."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import aiohttp
from yarl import URL

from loadclimb._internal.config import EngineConfig

if TYPE_CHECKING:
    from types import TracebackType


class Transport(Protocol):
    """Anything that can build and send a single GET request."""

    def build_request(self, url: str) -> URL:
        """Validate ``url`` and return the request target.

        Raises:
            aiohttp.InvalidURL: If the URL cannot be requested.
        """
        ...

    async def send(self, request: URL) -> int:
        """Send one GET request and return the response status."""
        ...


def is_timeout_error(exc: BaseException) -> bool:
    """Return True if ``exc`` means a connect, TLS or response deadline passed.

    aiohttp raises ``ServerTimeoutError`` (and its connect/socket subclasses)
    for its own deadlines and a bare ``TimeoutError`` when the overall
    request timeout fires. A connector error wrapping an OS-level
    ``ETIMEDOUT`` also counts.

    Args:
        exc: Exception raised while sending a request.

    Returns:
        Whether the exception is a timeout.
    """
    if isinstance(exc, (TimeoutError, aiohttp.ServerTimeoutError)):
        return True
    os_error = getattr(exc, "os_error", None)
    return isinstance(os_error, TimeoutError)


class HttpTransport:
    """Async HTTP transport wrapping one shared ``aiohttp.ClientSession``.

    The session and its connection pool are created on ``__aenter__`` and
    shared by every concurrent request. Timeouts come from ``EngineConfig``
    and are never changed while the transport is open.

    Attributes:
        config: Timeout and pool policy for this transport.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """Initialize the transport.

        Args:
            config: Timeout and pool policy. Defaults to ``EngineConfig()``.
        """
        self.config = config or EngineConfig()
        self._timeout = aiohttp.ClientTimeout(
            total=self.config.request_timeout,
            connect=self.config.tls_handshake_timeout,
            sock_connect=self.config.connect_timeout,
        )
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpTransport:
        """Open the underlying aiohttp session."""
        connector = aiohttp.TCPConnector(limit=self.config.connection_pool_size)
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def build_request(self, url: str) -> URL:
        """Parse and validate a target URL.

        Args:
            url: Absolute http(s) URL.

        Returns:
            The parsed URL.

        Raises:
            aiohttp.InvalidURL: If the URL is not an absolute http(s) URL
                with a host.
        """
        try:
            target = URL(url)
        except (TypeError, ValueError) as exc:
            raise aiohttp.InvalidURL(url) from exc

        if not target.absolute or target.scheme not in ("http", "https") or not target.host:
            raise aiohttp.InvalidURL(url)
        return target

    async def send(self, request: URL) -> int:
        """Send a GET request and return its status code.

        The response is released before returning; the body is not read.

        Args:
            request: Target built by ``build_request``.

        Returns:
            The HTTP status code.

        Raises:
            RuntimeError: If the transport is used outside of an async
                context manager.
            aiohttp.ClientError: On transport failures.
            TimeoutError: When the overall request deadline passes.
        """
        if self._session is None:
            msg = "HttpTransport must be used as an async context manager"
            raise RuntimeError(msg)

        async with self._session.get(request) as resp:
            return resp.status
