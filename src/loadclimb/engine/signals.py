"""Failure reports and the two signal streams that carry them to the listener."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum, auto


class FailureKind(Enum):
    """Which signal stream a failure is reported on."""

    ORDINARY = auto()
    TIMEOUT = auto()


@dataclass(frozen=True)
class FailureReport:
    """One unsuccessful request attempt.

    Attributes:
        kind: Ordinary failure or timeout failure.
        url: Target URL of the attempt.
        error: The construction, transport or status error.
        concurrency: Concurrency level of the round the attempt belonged to.
    """

    kind: FailureKind
    url: str
    error: BaseException
    concurrency: int


@dataclass
class Delivery:
    """A report handed to the listener, holding its producer until released.

    Attributes:
        report: The delivered failure report.
    """

    report: FailureReport
    _handled: asyncio.Future[None] = field(repr=False)

    def release(self) -> None:
        """Let the producing request attempt finish."""
        if not self._handled.done():
            self._handled.set_result(None)


class FailureSignals:
    """Two unbuffered many-producer/single-consumer failure streams.

    ``report()`` suspends the producing request attempt until the listener
    has received the report and called ``Delivery.release()``. Reports are
    never dropped, and a round cannot pass its barrier while one of its
    reports is still being handled.
    """

    def __init__(self) -> None:
        self._ordinary: asyncio.Queue[Delivery] = asyncio.Queue(maxsize=1)
        self._timeout: asyncio.Queue[Delivery] = asyncio.Queue(maxsize=1)

    async def report(self, report: FailureReport) -> None:
        """Publish a report on the stream matching its kind.

        Returns once the listener has released the delivery. Cancellation
        of the producer while it waits is propagated.
        """
        handled: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        queue = self._timeout if report.kind is FailureKind.TIMEOUT else self._ordinary
        await queue.put(Delivery(report, handled))
        await handled

    async def next_failure(self) -> Delivery:
        """Wait for the next ordinary failure."""
        return await self._ordinary.get()

    async def next_timeout(self) -> Delivery:
        """Wait for the next timeout failure."""
        return await self._timeout.get()
