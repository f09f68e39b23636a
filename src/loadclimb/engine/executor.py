"""Single request attempt: send, classify, report."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp

from loadclimb._internal.errors import UnexpectedStatusError
from loadclimb._internal.logging import get_logger
from loadclimb.engine.signals import FailureKind, FailureReport
from loadclimb.transport.http import is_timeout_error

if TYPE_CHECKING:
    from loadclimb.engine.signals import FailureSignals
    from loadclimb.transport.http import Transport

logger = get_logger("engine.executor")


async def execute_request(
    transport: Transport,
    url: str,
    signals: FailureSignals,
    concurrency: int,
) -> None:
    """Issue one GET request and report its outcome.

    Outcomes:
        - Malformed URL: ordinary failure carrying the construction error.
        - Timeout while sending: timeout failure carrying the timeout error.
        - Any other transport error: ordinary failure carrying it unchanged.
        - Status other than 200: ordinary failure with
          ``UnexpectedStatusError``.
        - Status 200: nothing is reported.

    Nothing is returned and no request outcome is raised. Cancellation
    propagates so the surrounding round can be torn down, and so does any
    exception that is not a transport error, which fails the round.

    Args:
        transport: Shared transport used to build and send the request.
        url: Target URL.
        signals: Streams the outcome is reported on.
        concurrency: Level of the round this attempt belongs to.
    """
    try:
        request = transport.build_request(url)
    except (aiohttp.InvalidURL, ValueError) as exc:
        await signals.report(FailureReport(FailureKind.ORDINARY, url, exc, concurrency))
        return

    try:
        status = await transport.send(request)
    except (aiohttp.ClientError, OSError, TimeoutError) as exc:
        kind = FailureKind.TIMEOUT if is_timeout_error(exc) else FailureKind.ORDINARY
        logger.debug("Request to %s raised %s: %s", url, type(exc).__name__, exc)
        await signals.report(FailureReport(kind, url, exc, concurrency))
        return

    if status != 200:
        error = UnexpectedStatusError(status, url)
        await signals.report(FailureReport(FailureKind.ORDINARY, url, error, concurrency))
