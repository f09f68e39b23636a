"""Drive the engine from your own event loop.

Shows the async API: a shared HttpTransport with tighter timeouts, an
observer for ordinary failures, and a stop event set by the caller. Run with:

    python examples/embedded_engine.py https://staging.example.com/health
"""

from __future__ import annotations

import asyncio
import sys

from loadclimb import EngineConfig, EscalationEngine, FailureReport, HttpTransport


def _print_failure(report: FailureReport) -> None:
    print(f"request at concurrency {report.concurrency} failed: {report.error}")


async def main(url: str) -> None:
    config = EngineConfig(request_timeout=0.5, connect_timeout=2.0)
    stop_event = asyncio.Event()

    # Give up after 50 rounds even if the target never times out.
    def _on_round_start(round_number: int, level: int) -> None:
        if round_number > 50:
            stop_event.set()

    async with HttpTransport(config) as transport:
        engine = EscalationEngine(
            transport,
            on_round_start=_on_round_start,
            on_failure=_print_failure,
        )
        result = await engine.run(url, stop_event=stop_event)

    print(f"{result.outcome.name}: concurrency={result.concurrency}, error={result.error!r}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8080/"))
