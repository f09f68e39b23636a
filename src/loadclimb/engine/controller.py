"""Round controller: escalating bursts of concurrent request attempts."""

from __future__ import annotations

import asyncio
from enum import Enum, auto
from typing import TYPE_CHECKING

from loadclimb._internal.logging import get_logger
from loadclimb.engine.executor import execute_request

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadclimb.engine.signals import FailureSignals
    from loadclimb.transport.http import Transport

logger = get_logger("engine.controller")


class ControllerState(Enum):
    """State machine for a round controller."""

    IDLE = auto()
    ROUND_RUNNING = auto()
    ROUND_DONE = auto()
    CANCELLED = auto()


class RoundController:
    """Drives rounds of concurrent requests against one URL.

    Round ``k`` launches exactly ``level`` request attempts, waits for every
    one of them to finish, then raises ``level`` by one. The level starts at
    1 and is only written here, after the round barrier, so no attempt ever
    observes it changing.

    State machine: IDLE -> ROUND_RUNNING -> ROUND_DONE -> ROUND_RUNNING -> ...
                                                       -> CANCELLED
    """

    def __init__(
        self,
        transport: Transport,
        signals: FailureSignals,
        *,
        on_round_start: Callable[[int, int], None] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            transport: Transport shared by every request attempt.
            signals: Streams that request attempts report failures on.
            on_round_start: Optional callback invoked with
                ``(round_number, level)`` before each round launches.
        """
        self._transport = transport
        self._signals = signals
        self._on_round_start = on_round_start
        self._level = 1
        self._rounds_completed = 0
        self._active_level = 0
        self._state = ControllerState.IDLE

    @property
    def level(self) -> int:
        """Return the concurrency level of the current or next round."""
        return self._level

    @property
    def active_level(self) -> int:
        """Return the level of the round in progress or last started, 0 before any."""
        return self._active_level

    @property
    def rounds_completed(self) -> int:
        """Return the number of rounds that passed their barrier."""
        return self._rounds_completed

    @property
    def state(self) -> ControllerState:
        """Return the current controller state."""
        return self._state

    async def run(self, url: str, should_stop: Callable[[], bool]) -> None:
        """Run rounds until ``should_stop()`` is true or the task is cancelled.

        ``should_stop`` is checked before every round, including the first;
        once it returns true no new round is started. Cancelling the task running this coroutine
        cancels the in-flight attempts of the current round.

        Args:
            url: Target URL for every request attempt.
            should_stop: Predicate that ends the loop before the next round.
        """
        try:
            while not should_stop():
                await self.run_round(url)
        finally:
            self._state = ControllerState.CANCELLED
            logger.debug(
                "Round controller stopped: level=%d, rounds_completed=%d",
                self._level,
                self._rounds_completed,
            )

    async def run_round(self, url: str) -> None:
        """Run one round at the current level and advance the level.

        Args:
            url: Target URL for every request attempt.
        """
        level = self._level
        round_number = self._rounds_completed + 1
        self._active_level = level
        self._state = ControllerState.ROUND_RUNNING

        logger.info(
            "Round %d: concurrency=%d",
            round_number,
            level,
            extra={"round": round_number, "concurrency": level},
        )
        if self._on_round_start is not None:
            self._on_round_start(round_number, level)

        async with asyncio.TaskGroup() as group:
            for i in range(level):
                group.create_task(
                    execute_request(self._transport, url, self._signals, level),
                    name=f"round-{round_number}-request-{i}",
                )

        self._state = ControllerState.ROUND_DONE
        self._rounds_completed = round_number
        self._level = level + 1
        logger.debug("Round %d done", round_number)
