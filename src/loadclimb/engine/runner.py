"""Blocking entry point: event loop, logging and signal wiring around a run."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import TYPE_CHECKING

from loadclimb._internal.config import load_config
from loadclimb._internal.logging import get_logger, setup_logging
from loadclimb.engine.escalation import EscalationEngine
from loadclimb.transport.http import HttpTransport

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadclimb._internal.config import EngineConfig
    from loadclimb.engine.escalation import RunResult
    from loadclimb.engine.signals import FailureReport

logger = get_logger("engine.runner")


def _loop_factory() -> Callable[[], asyncio.AbstractEventLoop] | None:
    """Return the uvloop loop factory, or None for the default loop on Windows."""
    if sys.platform == "win32":
        return None

    import uvloop

    logger.debug("Using uvloop event loop")
    return uvloop.new_event_loop


def run_escalation(
    url: str,
    *,
    config: EngineConfig | None = None,
    deadline: float | None = None,
    log_level: int = logging.INFO,
    json_logs: bool = False,
    on_round_start: Callable[[int, int], None] | None = None,
    on_failure: Callable[[FailureReport], None] | None = None,
) -> RunResult:
    """Run an escalation against ``url`` in the current thread.

    Sets up logging, opens the shared transport and runs the engine on a
    uvloop event loop until a timeout, the deadline, or SIGINT/SIGTERM.

    Args:
        url: Target URL.
        config: Transport policy. Defaults to ``load_config()``.
        deadline: Optional run budget in seconds.
        log_level: Logging level (default: logging.INFO).
        json_logs: Emit JSON log lines instead of plain text.
        on_round_start: Optional callback invoked before each round.
        on_failure: Optional callback invoked with each ordinary failure.

    Returns:
        RunResult describing how the run ended.

    Raises:
        ConfigError: If the environment configuration is invalid.
        EngineError: If the engine fails unexpectedly.
    """
    setup_logging(level=log_level, json_format=json_logs)
    engine_config = config or load_config()

    with asyncio.Runner(loop_factory=_loop_factory()) as runner:
        return runner.run(
            _run(
                url,
                engine_config,
                deadline=deadline,
                on_round_start=on_round_start,
                on_failure=on_failure,
            )
        )


async def _run(
    url: str,
    config: EngineConfig,
    *,
    deadline: float | None,
    on_round_start: Callable[[int, int], None] | None,
    on_failure: Callable[[FailureReport], None] | None,
) -> RunResult:
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)
    try:
        async with HttpTransport(config) as transport:
            engine = EscalationEngine(
                transport,
                on_round_start=on_round_start,
                on_failure=on_failure,
            )
            return await engine.run(url, stop_event=stop_event, deadline=deadline)
    finally:
        _remove_signal_handlers()


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Install SIGINT and SIGTERM handlers that set ``stop_event``."""
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("Signal received, stopping escalation")
        stop_event.set()

    if sys.platform != "win32":
        loop.add_signal_handler(signal.SIGINT, _signal_handler)
        loop.add_signal_handler(signal.SIGTERM, _signal_handler)
    else:
        # Windows doesn't support add_signal_handler
        signal.signal(signal.SIGINT, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
        signal.signal(signal.SIGTERM, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))


def _remove_signal_handlers() -> None:
    """Remove the custom signal handlers, restoring defaults."""
    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    else:
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
