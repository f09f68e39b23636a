"""Escalation engine: runs the round controller and listens for failures."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from loadclimb._internal.errors import EngineError, RunCancelledError, describe_error
from loadclimb._internal.logging import get_logger
from loadclimb.engine.controller import RoundController
from loadclimb.engine.signals import FailureSignals

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadclimb.engine.signals import FailureReport
    from loadclimb.transport.http import Transport

logger = get_logger("engine.escalation")


class RunOutcome(Enum):
    """Why a run ended."""

    TIMEOUT = auto()
    CANCELLED = auto()


@dataclass(frozen=True)
class RunResult:
    """Terminal outcome of an escalation run.

    Attributes:
        url: Target URL of the run.
        outcome: Whether the run ended on a timeout or a cancellation.
        error: The timeout error, or the ``RunCancelledError``.
        concurrency: Level of the round in which the run ended, 0 if it was
            cancelled before the first round started.
        rounds_completed: Rounds that passed their barrier before the end.
        duration_seconds: Wall-clock duration of the run.
        timeout_report: The report that ended the run, for timeouts.
    """

    url: str
    outcome: RunOutcome
    error: BaseException
    concurrency: int
    rounds_completed: int
    duration_seconds: float
    timeout_report: FailureReport | None = None


class EscalationEngine:
    """Top-level run loop deciding when escalation stops.

    Starts a fresh ``RoundController`` for every run and waits on three
    events: an ordinary failure (logged, run continues), a timeout failure
    (logged, run ends) and external cancellation through the stop event or
    the run deadline (run ends). Ending a run cancels the controller and
    every in-flight request attempt.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        on_round_start: Callable[[int, int], None] | None = None,
        on_failure: Callable[[FailureReport], None] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            transport: Open transport shared by every request attempt.
            on_round_start: Optional callback invoked with
                ``(round_number, level)`` before each round.
            on_failure: Optional callback invoked with every ordinary
                failure report.
        """
        self._transport = transport
        self._on_round_start = on_round_start
        self._on_failure = on_failure

    async def run(
        self,
        url: str,
        *,
        stop_event: asyncio.Event | None = None,
        deadline: float | None = None,
    ) -> RunResult:
        """Escalate against ``url`` until a timeout or a cancellation.

        Args:
            url: Target URL. Must be non-empty; malformed URLs are reported
                as ordinary failures.
            stop_event: Optional external event that cancels the run when
                set.
            deadline: Optional run budget in seconds.

        Returns:
            RunResult describing how the run ended.

        Raises:
            ValueError: If ``url`` is empty or ``deadline`` is not positive.
            EngineError: If the round controller fails unexpectedly.
        """
        if not url:
            msg = "url must not be empty"
            raise ValueError(msg)
        if deadline is not None and deadline <= 0:
            msg = f"deadline must be positive, got {deadline}"
            raise ValueError(msg)

        external_stop = stop_event or asyncio.Event()
        halt = asyncio.Event()
        signals = FailureSignals()
        controller = RoundController(
            self._transport,
            signals,
            on_round_start=self._on_round_start,
        )

        loop = asyncio.get_running_loop()
        deadline_at = None if deadline is None else loop.time() + deadline

        def _should_stop() -> bool:
            return (
                halt.is_set()
                or external_stop.is_set()
                or (deadline_at is not None and loop.time() >= deadline_at)
            )

        logger.info("Starting escalation against %s", url, extra={"url": url})
        start_time = time.monotonic()

        controller_task = asyncio.create_task(
            controller.run(url, _should_stop), name="round-controller"
        )
        failure_task = asyncio.create_task(signals.next_failure())
        timeout_task = asyncio.create_task(signals.next_timeout())
        stop_task = asyncio.create_task(external_stop.wait())
        deadline_task: asyncio.Task[None] | None = None
        if deadline is not None:
            deadline_task = asyncio.create_task(asyncio.sleep(deadline))

        error: BaseException
        timeout_report: FailureReport | None = None

        try:
            while True:
                waiting: set[asyncio.Task[Any]] = {
                    controller_task,
                    failure_task,
                    timeout_task,
                    stop_task,
                }
                if deadline_task is not None:
                    waiting.add(deadline_task)
                done, _pending = await asyncio.wait(
                    waiting, return_when=asyncio.FIRST_COMPLETED
                )

                if failure_task in done:
                    delivery = failure_task.result()
                    report = delivery.report
                    logger.warning(
                        "Request failed: %s (concurrency=%d)",
                        describe_error(report.error),
                        report.concurrency,
                        extra={"concurrency": report.concurrency, "url": report.url},
                    )
                    if self._on_failure is not None:
                        self._on_failure(report)
                    delivery.release()
                    failure_task = asyncio.create_task(signals.next_failure())

                if timeout_task in done:
                    halt.set()
                    delivery = timeout_task.result()
                    timeout_report = delivery.report
                    error = timeout_report.error
                    logger.error(
                        "Request timed out: %s (concurrency=%d)",
                        describe_error(error),
                        timeout_report.concurrency,
                        extra={"concurrency": timeout_report.concurrency, "url": url},
                    )
                    delivery.release()
                    break

                if controller_task in done and controller_task.exception() is not None:
                    exc = controller_task.exception()
                    logger.error("Round controller stopped unexpectedly", exc_info=exc)
                    raise EngineError("Round controller stopped unexpectedly") from exc

                # The controller returns on its own only once a stop was observed.
                if (
                    stop_task in done
                    or controller_task in done
                    or (deadline_task is not None and deadline_task in done)
                ):
                    halt.set()
                    reason = "interrupted" if external_stop.is_set() else "deadline exceeded"
                    error = RunCancelledError(reason)
                    logger.info(
                        "Run cancelled: %s (concurrency=%d)",
                        reason,
                        controller.active_level,
                        extra={"concurrency": controller.active_level},
                    )
                    break
        finally:
            halt.set()
            helpers = [controller_task, failure_task, timeout_task, stop_task]
            if deadline_task is not None:
                helpers.append(deadline_task)
            for task in helpers:
                task.cancel()
            await asyncio.gather(*helpers, return_exceptions=True)

        duration = time.monotonic() - start_time
        concurrency = timeout_report.concurrency if timeout_report else controller.active_level
        outcome = RunOutcome.TIMEOUT if timeout_report else RunOutcome.CANCELLED
        logger.info(
            "Escalation stopped: concurrency=%d, rounds_completed=%d, duration=%.1fs",
            concurrency,
            controller.rounds_completed,
            duration,
            extra={
                "concurrency": concurrency,
                "rounds_completed": controller.rounds_completed,
                "outcome": outcome.name.lower(),
            },
        )

        return RunResult(
            url=url,
            outcome=outcome,
            error=error,
            concurrency=concurrency,
            rounds_completed=controller.rounds_completed,
            duration_seconds=duration,
            timeout_report=timeout_report,
        )
