"""``loadclimb run``: escalate concurrency against a URL with live terminal output."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from loadclimb._internal.config import load_config
from loadclimb._internal.errors import LoadClimbError, describe_error
from loadclimb.engine.escalation import RunOutcome
from loadclimb.engine.runner import run_escalation

if TYPE_CHECKING:
    from loadclimb._internal.config import EngineConfig
    from loadclimb.engine.escalation import RunResult
    from loadclimb.engine.signals import FailureReport

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Config construction helpers
# ---------------------------------------------------------------------------


def _build_config(
    request_timeout: float | None,
    connect_timeout: float | None,
    tls_timeout: float | None,
    pool_size: int | None,
) -> EngineConfig:
    """Load the environment config and apply CLI overrides.

    Raises:
        typer.BadParameter: If an override is out of range.
        ConfigError: If the environment configuration is invalid.
    """
    overrides: dict[str, float | int] = {}
    for flag, field_name, value in (
        ("--request-timeout", "request_timeout", request_timeout),
        ("--connect-timeout", "connect_timeout", connect_timeout),
        ("--tls-timeout", "tls_handshake_timeout", tls_timeout),
    ):
        if value is None:
            continue
        if value <= 0:
            msg = f"{flag} must be positive, got {value}"
            raise typer.BadParameter(msg)
        overrides[field_name] = value

    if pool_size is not None:
        overrides["connection_pool_size"] = pool_size

    return dataclasses.replace(load_config(), **overrides)


# ---------------------------------------------------------------------------
# Rich display
# ---------------------------------------------------------------------------


def _make_live_table(round_number: int, level: int) -> Table:
    """Build a Rich table showing the round in progress."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if round_number == 0:
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Round", str(round_number))
    table.add_row("Concurrency", str(level))
    return table


def _print_summary(result: RunResult) -> None:
    """Print the final outcome table."""
    style = "bold red" if result.outcome is RunOutcome.TIMEOUT else "bold green"
    table = Table(
        title="Escalation Stopped",
        show_header=True,
        header_style=style,
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("URL", escape(result.url))
    table.add_row("Outcome", result.outcome.name.lower())
    table.add_row("Concurrency", str(result.concurrency))
    table.add_row("Rounds Completed", str(result.rounds_completed))
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    table.add_row("Error", escape(describe_error(result.error)))

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    url: str = typer.Argument(
        ...,
        help="Target URL to send GET requests to.",
    ),
    deadline: float | None = typer.Option(
        None,
        "--deadline",
        "-d",
        help="Stop the run after this many seconds.",
        min=0.001,
    ),
    request_timeout: float | None = typer.Option(
        None,
        "--request-timeout",
        help="Per-request deadline in seconds (default: 1.0).",
    ),
    connect_timeout: float | None = typer.Option(
        None,
        "--connect-timeout",
        help="TCP connect deadline in seconds (default: 5.0).",
    ),
    tls_timeout: float | None = typer.Option(
        None,
        "--tls-timeout",
        help="Connection and TLS handshake deadline in seconds (default: 5.0).",
    ),
    pool_size: int | None = typer.Option(
        None,
        "--pool-size",
        help="Maximum simultaneous connections, 0 for unlimited (default: 0).",
        min=0,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit log lines as JSON.",
    ),
) -> None:
    """Escalate concurrent GET requests until the target times out."""
    if not url:
        msg = "URL must not be empty"
        raise typer.BadParameter(msg)

    try:
        config = _build_config(request_timeout, connect_timeout, tls_timeout, pool_size)
    except LoadClimbError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    log_level = logging.DEBUG if verbose else logging.INFO

    console.print(
        Panel(
            f"[bold]URL:[/bold]      {escape(url)}\n"
            f"[bold]Timeout:[/bold]  {config.request_timeout}s per request\n"
            f"[bold]Deadline:[/bold] {f'{deadline}s' if deadline else 'none'}",
            title="LoadClimb",
            border_style="cyan",
        )
    )

    try:
        with Live(
            _make_live_table(0, 0),
            console=console,
            refresh_per_second=4,
            transient=True,
        ) as live:

            def _on_round_start(round_number: int, level: int) -> None:
                live.update(_make_live_table(round_number, level))

            def _on_failure(report: FailureReport) -> None:
                live.console.print(
                    f"[yellow]failure[/yellow] concurrency={report.concurrency}: "
                    f"{escape(describe_error(report.error))}"
                )

            result = run_escalation(
                url,
                config=config,
                deadline=deadline,
                log_level=log_level,
                json_logs=json_logs,
                on_round_start=_on_round_start,
                on_failure=_on_failure,
            )
    except LoadClimbError as exc:
        console.print(f"[red]Escalation failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if result.outcome is RunOutcome.TIMEOUT:
        console.print(
            f"[red]TIMEOUT:[/red] target stopped keeping up at concurrency "
            f"{result.concurrency}: {escape(describe_error(result.error))}"
        )
        raise typer.Exit(code=1)

    console.print("[green]Escalation cancelled before any timeout.[/green]")
